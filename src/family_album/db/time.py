# src/family_album/db/time.py
"""Time utilities for database models."""

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def naive_utcnow() -> datetime:
    """Return the current UTC time without tzinfo, as stored in DateTime columns."""
    return utcnow().replace(tzinfo=None)
