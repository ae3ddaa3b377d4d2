"""External collaborators: Slack messaging and text generation."""

from communicator.services.base import (
    ChannelMessage,
    Communicator,
    MessagingClient,
    MessagingError,
    SearchMatch,
    TextGenerator,
)
from communicator.services.llm import GenerationClient, is_fallback
from communicator.services.slack import SlackClient

__all__ = [
    "ChannelMessage",
    "Communicator",
    "GenerationClient",
    "MessagingClient",
    "MessagingError",
    "SearchMatch",
    "SlackClient",
    "TextGenerator",
    "is_fallback",
]
