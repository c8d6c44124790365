"""Utility functions for time handling and text formatting."""

from .text import format_salary, truncate_text
from .timestamps import (
    ensure_utc,
    format_timestamp,
    parse_iso_datetime,
    to_storage,
    from_storage,
    storage_day_ceiling,
    storage_day_floor,
    utc_now,
)

__all__ = [
    # Timestamps
    "utc_now",
    "ensure_utc",
    "parse_iso_datetime",
    "format_timestamp",
    "to_storage",
    "from_storage",
    "storage_day_floor",
    "storage_day_ceiling",
    # Text
    "truncate_text",
    "format_salary",
]
