# communicator/core/session/store.py
"""In-memory per-user session state.

Holds two process-lifetime maps keyed by Slack user ID:
- rolling direct-message history, bounded to the most recent N turns
- the last generated summary, consumed by at most one later turn

Both maps share one lock. Critical sections only touch the maps, so the
store is safe to call from the event loop and from worker threads alike.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass, field
from enum import Enum

logger = logging.getLogger(__name__)

# 5 request/response pairs
DEFAULT_HISTORY_LIMIT = 10


class Speaker(str, Enum):
    """Author of a conversation turn."""

    USER = "User"
    ASSISTANT = "Assistant"


@dataclass(frozen=True)
class ConversationTurn:
    """A single line of a direct-message conversation."""

    speaker: Speaker
    text: str

    def render(self) -> str:
        """Render as a prompt line, e.g. "User: hello"."""
        return f"{self.speaker.value}: {self.text}"


@dataclass(frozen=True)
class SummaryContext:
    """The most recent summary shown to a user.

    Attributes:
        user_id: Slack user the summary was generated for.
        summary_text: Generated summary as shown to the user.
        channel_id: Channel the summary was scoped to, if any.
        source_messages: Message texts the summary was generated from.
    """

    user_id: str
    summary_text: str
    channel_id: str | None = None
    source_messages: tuple[str, ...] = field(default_factory=tuple)


class SessionStore:
    """Per-user conversation history and single-use summary context.

    Example:
        >>> store = SessionStore(history_limit=2)
        >>> store.append_turn("U1", ConversationTurn(Speaker.USER, "hi"))
        >>> store.append_turn("U1", ConversationTurn(Speaker.ASSISTANT, "hello"))
        >>> store.append_turn("U1", ConversationTurn(Speaker.USER, "bye"))
        >>> [t.text for t in store.get_history("U1")]
        ['hello', 'bye']
    """

    def __init__(self, history_limit: int = DEFAULT_HISTORY_LIMIT) -> None:
        if history_limit < 1:
            raise ValueError("history_limit must be at least 1")
        self._history_limit = history_limit
        self._histories: dict[str, deque[ConversationTurn]] = {}
        self._summaries: dict[str, SummaryContext] = {}
        self._lock = threading.Lock()

    @property
    def history_limit(self) -> int:
        return self._history_limit

    def append_turn(self, user_id: str, turn: ConversationTurn) -> None:
        """Append a turn, dropping the oldest entries beyond the limit."""
        with self._lock:
            history = self._histories.get(user_id)
            if history is None:
                history = deque(maxlen=self._history_limit)
                self._histories[user_id] = history
            history.append(turn)

    def get_history(self, user_id: str) -> list[ConversationTurn]:
        """Return a copy of the user's history, oldest first."""
        with self._lock:
            history = self._histories.get(user_id)
            return list(history) if history else []

    def set_summary(self, user_id: str, context: SummaryContext) -> None:
        """Store summary context for the user, replacing any previous one."""
        with self._lock:
            self._summaries[user_id] = context
        logger.info("Storing summary context for user %s", user_id)

    def take_summary(self, user_id: str) -> SummaryContext | None:
        """Remove and return the user's summary context, if any.

        Concurrent callers never both receive the same stored value.
        """
        with self._lock:
            context = self._summaries.pop(user_id, None)
        if context is not None:
            logger.info("Found summary context for user %s", user_id)
        return context

    def has_summary(self, user_id: str) -> bool:
        """Check for summary context without consuming it."""
        with self._lock:
            return user_id in self._summaries
