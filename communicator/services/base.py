"""Collaborator interfaces consumed by the processor and HTTP layer."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol, runtime_checkable


class MessagingError(Exception):
    """A messaging API call failed.

    Attributes:
        code: Provider error code, e.g. "missing_scope" or "channel_not_found".
    """

    def __init__(self, code: str, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or code)


@dataclass(frozen=True)
class ChannelMessage:
    """A message fetched from channel history."""

    text: str
    user: str = ""
    ts: str = ""
    channel: str = ""
    metadata: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class SearchMatch:
    """A single search.messages hit."""

    text: str
    channel_id: str
    channel_name: str
    user: str


@runtime_checkable
class Communicator(Protocol):
    """Anything that can deliver a text message to a destination."""

    async def send_message(self, destination: str, message: str) -> None: ...


@runtime_checkable
class MessagingClient(Communicator, Protocol):
    """Messaging operations the processor relies on."""

    async def get_history(
        self, channel: str, start: datetime, end: datetime
    ) -> list[ChannelMessage]: ...

    async def list_member_channels(self, limit: int = 30) -> list[str]: ...

    async def search(self, query: str) -> list[SearchMatch]: ...


@runtime_checkable
class TextGenerator(Protocol):
    """Turns a prompt into displayable text. Never raises."""

    async def generate(self, prompt: str) -> str: ...
