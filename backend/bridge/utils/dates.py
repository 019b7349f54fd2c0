"""Timestamp helpers.

All stored timestamps are naive UTC so comparisons behave the same on
Postgres and SQLite.
"""
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def from_unix(ts: Optional[int]) -> Optional[datetime]:
    """Convert a provider unix timestamp (seconds) to naive UTC, passing None through."""
    if ts is None:
        return None
    return datetime.fromtimestamp(int(ts), tz=timezone.utc).replace(tzinfo=None)


def isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() + "Z" if value else None
