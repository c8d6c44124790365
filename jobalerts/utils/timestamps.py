"""Timestamp utilities for UTC handling and datetime parsing.

This module provides utilities for working with timestamps in UTC:
- Getting current UTC time
- Parsing ISO 8601 datetime strings (CLI input, store rows)
- Converting timezone-naive to timezone-aware UTC
- Formatting timestamps for storage and display

New timestamps are written as fixed-width ISO 8601 strings with a ``Z``
suffix. Rows written elsewhere may use other ISO forms or offsets, so store
queries only narrow by calendar day and exact comparisons happen on parsed
values.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

STORAGE_FORMAT = "%Y-%m-%dT%H:%M:%S.%fZ"


def utc_now() -> datetime:
    """Get current UTC time as timezone-aware datetime.

    Returns:
        Current UTC time with timezone info
    """
    return datetime.now(timezone.utc)


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    """Ensure a datetime is timezone-aware and in UTC.

    If the datetime is timezone-naive, it's treated as UTC.
    If the datetime has a different timezone, it's converted to UTC.

    Args:
        dt: Datetime to convert (can be None)

    Returns:
        Timezone-aware datetime in UTC, or None if input is None
    """
    if dt is None:
        return None

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt.astimezone(timezone.utc)


def parse_iso_datetime(iso_string: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 datetime string to UTC datetime.

    Supports:
    - 2025-11-04T12:00:00Z
    - 2025-11-04T12:00:00.123456Z
    - 2025-11-04T12:00:00+00:00
    - 2025-11-04

    Args:
        iso_string: ISO 8601 formatted datetime string

    Returns:
        Timezone-aware datetime in UTC, or None if the string is empty

    Raises:
        ValueError: If the string is not a recognisable ISO 8601 value
    """
    if iso_string is None or not iso_string.strip():
        return None

    cleaned = iso_string.strip()
    if cleaned.endswith("Z"):
        cleaned = cleaned[:-1] + "+00:00"

    try:
        return ensure_utc(datetime.fromisoformat(cleaned))
    except ValueError:
        # Date-only values are accepted on older interpreters too
        return ensure_utc(datetime.strptime(cleaned, "%Y-%m-%d"))


def format_timestamp(dt: datetime) -> str:
    """Format a datetime as ISO 8601 string in UTC without microseconds.

    Example:
        >>> from datetime import datetime, timezone
        >>> format_timestamp(datetime(2025, 11, 4, 12, 0, tzinfo=timezone.utc))
        '2025-11-04T12:00:00Z'
    """
    return ensure_utc(dt).strftime("%Y-%m-%dT%H:%M:%SZ")


def to_storage(dt: Optional[datetime]) -> Optional[str]:
    """Format datetime as fixed-width ISO 8601 string for database storage."""
    if dt is None:
        return None
    return ensure_utc(dt).strftime(STORAGE_FORMAT)


def from_storage(value: Optional[str]) -> Optional[datetime]:
    """Parse a stored timestamp string back into an aware UTC datetime."""
    if value is None or value == "":
        return None
    return parse_iso_datetime(value)


def storage_day_floor(dt: datetime) -> str:
    """Lexical lower bound for stored strings of instants at or after ``dt``.

    Any ISO 8601 rendering starts with its local calendar date, which is at
    most one day away from the UTC date.

    Example:
        >>> from datetime import datetime, timezone
        >>> storage_day_floor(datetime(2025, 11, 9, 9, 0, tzinfo=timezone.utc))
        '2025-11-08'
    """
    return (ensure_utc(dt) - timedelta(days=1)).date().isoformat()


def storage_day_ceiling(dt: datetime) -> str:
    """Exclusive lexical upper bound for stored strings of instants up to ``dt``."""
    return (ensure_utc(dt) + timedelta(days=2)).date().isoformat()
