"""Inbound interfaces: HTTP API and Slack endpoints."""
