# communicator/core/time_parser.py
"""Look-back window parser for summary requests.

Parses expressions like "48h", "7d", "3 days", "1m" or "2 years" into a
timedelta measured back from the current time. Months and years follow the
calendar, so "1m" on March 31st reaches back to the last day of February.
"""

import calendar
import re
from datetime import datetime, timedelta, timezone

DEFAULT_LOOKBACK = timedelta(hours=24)
# Slack history does not reach back further than this in practice
MAX_WINDOW_DAYS = 3650
MAX_LOOKBACK = timedelta(days=MAX_WINDOW_DAYS)

# Long unit names: "20 days", "1 hour", "2 years"
LONG_PATTERN = re.compile(r"^(\d+)\s*(hour|day|week|month|year)s?$")
# Short unit names: "48h", "7d", "1m", "1y"
SHORT_PATTERN = re.compile(r"^(\d+)\s*(h|d|w|m|y)$")

UNIT_ALIASES = {
    "h": "hour",
    "d": "day",
    "w": "week",
    "m": "month",
    "y": "year",
}


def _subtract_months(base_time: datetime, months: int) -> datetime:
    """Move base_time back by a number of calendar months.

    The day is clamped to the length of the target month.

    Args:
        base_time: Reference time.
        months: Number of months to go back.

    Returns:
        The shifted datetime.
    """
    total = base_time.year * 12 + (base_time.month - 1) - months
    year, month_index = divmod(total, 12)
    month = month_index + 1
    day = min(base_time.day, calendar.monthrange(year, month)[1])
    return base_time.replace(year=year, month=month, day=day)


def _window_length(value: int, unit: str, base_time: datetime | None) -> timedelta:
    if unit == "hour":
        return timedelta(hours=value)
    if unit == "day":
        return timedelta(days=value)
    if unit == "week":
        return timedelta(weeks=value)

    if base_time is None:
        base_time = datetime.now(timezone.utc)
    months = value if unit == "month" else value * 12
    return base_time - _subtract_months(base_time, months)


def parse_lookback(text: str, base_time: datetime | None = None) -> timedelta:
    """Parse a look-back expression into a timedelta.

    Args:
        text: Expression such as "48h", "7d", "3 days", "1m" or "2 years".
        base_time: Reference time for calendar units. Defaults to now (UTC).

    Returns:
        Length of the window as a timedelta.

    Raises:
        ValueError: If the expression is not recognized or reaches back
            further than MAX_LOOKBACK.

    Examples:
        >>> parse_lookback("48h")
        datetime.timedelta(days=2)
        >>> parse_lookback("7 days")
        datetime.timedelta(days=7)
    """
    normalized = (text or "").strip().lower()

    match = LONG_PATTERN.match(normalized) or SHORT_PATTERN.match(normalized)
    if not match:
        raise ValueError(
            f"invalid duration format: {text!r}. Use a format like '48h', '7d' or '20 days'"
        )

    value = int(match.group(1))
    unit = UNIT_ALIASES.get(match.group(2), match.group(2))

    try:
        window = _window_length(value, unit, base_time)
    except (OverflowError, ValueError) as e:
        raise ValueError(f"duration out of range: {text!r}") from e

    if window > MAX_LOOKBACK:
        raise ValueError(f"duration longer than {MAX_WINDOW_DAYS} days: {text!r}")
    return window


def format_window(window: timedelta) -> str:
    """Format a look-back window for humans, e.g. "3 days" or "12 hours".

    Args:
        window: Look-back window.

    Returns:
        Human readable description.
    """
    hours = int(window.total_seconds() // 3600)
    if hours and hours % 24 == 0:
        days = hours // 24
        return f"{days} day" if days == 1 else f"{days} days"
    return f"{hours} hour" if hours == 1 else f"{hours} hours"
