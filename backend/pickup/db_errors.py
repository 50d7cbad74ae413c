"""Helpers for working with database/SQLAlchemy errors."""

from __future__ import annotations

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

_UNIQUE_VIOLATION_SQLSTATES = {"23505"}


def is_unique_violation(exc: SQLAlchemyError, constraint_hint: str | None = None) -> bool:
    """Return ``True`` if ``exc`` is a unique/duplicate-key violation.

    Parameters
    ----------
    exc:
        The SQLAlchemy exception to inspect.
    constraint_hint:
        Optional substring (an index name or a column such as ``"season.number"``)
        that must appear in the original database error message. PostgreSQL
        reports the constraint name while SQLite reports the columns, so
        callers may pass either. When omitted, any unique violation matches.
    """

    if not isinstance(exc, IntegrityError):
        return False

    orig = getattr(exc, "orig", None)
    if orig is None:
        return False

    message = str(orig).lower()
    if constraint_hint and constraint_hint.lower() not in message:
        return False

    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate in _UNIQUE_VIOLATION_SQLSTATES:
        return True

    return "unique constraint" in message or "duplicate key" in message
