"""
Database Utilities

Shared utility functions for the database layer.
"""

from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """
    Current UTC time as a naive datetime.

    MongoDB stores datetimes as UTC without tzinfo and pymongo returns them
    naive, so everything written and compared by the repositories is naive UTC.
    """
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize an aware datetime to naive UTC; naive values are assumed UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
