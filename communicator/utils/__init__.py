"""Logging, tracing and Slack formatting helpers."""

from communicator.utils.logging import (
    configure_logging,
    get_request_id,
    set_request_id,
)
from communicator.utils.observability import setup_logfire
from communicator.utils.slack_formatter import (
    markdown_to_mrkdwn,
    parse_blocks,
    text_to_blocks,
)

__all__ = [
    "configure_logging",
    "get_request_id",
    "markdown_to_mrkdwn",
    "parse_blocks",
    "set_request_id",
    "setup_logfire",
    "text_to_blocks",
]
