"""Slack assistant service: channel summaries, mention lookup and DM conversations."""

__version__ = "1.0.0"
