"""Utility functions for UTC time handling and timestamp storage."""

from .timestamps import (
    STORAGE_FORMAT,
    ensure_utc,
    format_timestamp_for_log,
    from_storage,
    to_storage,
    utc_now,
)

__all__ = [
    "STORAGE_FORMAT",
    "utc_now",
    "ensure_utc",
    "to_storage",
    "from_storage",
    "format_timestamp_for_log",
]
