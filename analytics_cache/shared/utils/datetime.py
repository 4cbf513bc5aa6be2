"""
UTC datetime utilities for consistent timezone handling.

All timestamps written by the cache are timezone-aware UTC. Row date
values coming back from the analytical store (or from a cached entry,
where they are ISO strings) are normalized with parse_row_date.
"""

from datetime import UTC, date, datetime
from typing import Any


def utc_now() -> datetime:
    """
    Return the current UTC datetime with timezone info.

    Use this instead of:
        - datetime.now() - naive, uses local timezone
        - datetime.utcnow() - naive, deprecated in Python 3.12

    Returns:
        Timezone-aware datetime in UTC
    """
    return datetime.now(UTC)


def ensure_utc(dt: datetime | None) -> datetime | None:
    """
    Ensure a datetime is UTC-aware.

    - If None, returns None
    - If naive, assumes UTC and attaches timezone
    - If aware, converts to UTC

    Args:
        dt: A datetime that may be naive or aware

    Returns:
        UTC-aware datetime or None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        # Naive datetime - assume it's UTC and attach timezone
        return dt.replace(tzinfo=UTC)

    # Aware datetime - convert to UTC
    return dt.astimezone(UTC)


def parse_row_date(value: Any) -> date | None:
    """
    Return the calendar date of a row value, or None if it has none.

    Accepts date, datetime (its date part) and ISO-8601 strings
    ("2025-01-31", "2025-01-31T00:00:00+00:00"). Anything else, including
    malformed strings, yields None.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and len(value) >= 10:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None
