"""Keyword-based intent classification for direct messages.

Classification is a case-insensitive substring match where the first
matching rule wins. Substring matching also fires on unrelated sentences
("I missed the bus"); that behavior is intentional and kept as-is.
"""

import re
from datetime import timedelta
from enum import Enum

from communicator.core.time_parser import DEFAULT_LOOKBACK, MAX_WINDOW_DAYS

SUMMARY_KEYWORDS = ("summary", "summarize")
MENTIONS_KEYWORDS = ("mentions", "tagged", "missed")

# First "<N> d" in the message, e.g. "last 3 d", "10 days"
DAY_WINDOW_PATTERN = re.compile(r"(\d+)\s*d")


class Intent(str, Enum):
    """What a direct message is asking for."""

    SUMMARY = "summary"
    MENTIONS = "mentions"
    CONVERSATION = "conversation"


def classify_intent(text: str) -> Intent:
    """Classify a direct message.

    Args:
        text: Raw message text.

    Returns:
        Intent.SUMMARY if the text mentions a summary, Intent.MENTIONS if it
        asks about mentions, otherwise Intent.CONVERSATION.

    Examples:
        >>> classify_intent("Can you SUMMARIZE today?")
        <Intent.SUMMARY: 'summary'>
        >>> classify_intent("was I tagged anywhere?")
        <Intent.MENTIONS: 'mentions'>
        >>> classify_intent("hello there")
        <Intent.CONVERSATION: 'conversation'>
    """
    lowered = (text or "").lower()
    if any(keyword in lowered for keyword in SUMMARY_KEYWORDS):
        return Intent.SUMMARY
    if any(keyword in lowered for keyword in MENTIONS_KEYWORDS):
        return Intent.MENTIONS
    return Intent.CONVERSATION


def extract_day_window(text: str) -> timedelta:
    """Extract a look-back window in days from free text.

    Args:
        text: Raw message text, e.g. "summarize last 3 d".

    Returns:
        The requested number of days, or 24 hours if none is given or the
        value is zero or out of range.
    """
    match = DAY_WINDOW_PATTERN.search(text or "")
    if not match:
        return DEFAULT_LOOKBACK
    days = int(match.group(1))
    if days <= 0 or days > MAX_WINDOW_DAYS:
        return DEFAULT_LOOKBACK
    return timedelta(days=days)
