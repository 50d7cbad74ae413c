"""Helpers for working with timezone-aware datetimes."""

from __future__ import annotations

from datetime import datetime, timezone


def utcnow() -> datetime:
    """Return the current time as a naive UTC datetime for storage."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def require_utc(value: datetime | None, *, field_name: str = "timestamp") -> datetime | None:
    """Ensure ``value`` includes timezone info and return a UTC-normalized copy.

    Args:
        value: The datetime to validate.
        field_name: Human-readable name used in validation errors.

    Returns:
        A timezone-aware datetime normalized to UTC, or ``None`` if ``value`` is
        ``None``.

    Raises:
        ValueError: If ``value`` is timezone-naive.
    """

    if value is None:
        return None

    if value.tzinfo is None or value.utcoffset() is None:
        raise ValueError(f"{field_name} must include a timezone offset")

    return value.astimezone(timezone.utc)


def to_storage(value: datetime | None) -> datetime | None:
    """Return the naive UTC form stored in the database.

    Naive values are assumed to already be UTC and pass through unchanged.
    """

    if value is None:
        return None
    if value.tzinfo is None or value.utcoffset() is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)
