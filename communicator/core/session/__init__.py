"""Session state for direct-message conversations."""

from communicator.core.session.store import (
    DEFAULT_HISTORY_LIMIT,
    ConversationTurn,
    SessionStore,
    Speaker,
    SummaryContext,
)

__all__ = [
    "ConversationTurn",
    "DEFAULT_HISTORY_LIMIT",
    "SessionStore",
    "Speaker",
    "SummaryContext",
]
