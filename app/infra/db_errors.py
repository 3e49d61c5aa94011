"""Translate SQLAlchemy / driver exceptions into domain errors."""

from __future__ import annotations

from sqlalchemy.exc import DBAPIError, IntegrityError, SQLAlchemyError

from app.core.exceptions import DatabaseError, DeadlockError, DomainError, DuplicateKeyError

_UNIQUE_VIOLATION = "23505"
_DEADLOCK_DETECTED = "40P01"
_SERIALIZATION_FAILURE = "40001"


def _sqlstate(exc: BaseException) -> str | None:
    orig = getattr(exc, "orig", None)
    for candidate in (orig, getattr(orig, "__cause__", None)):
        code = getattr(candidate, "sqlstate", None) or getattr(candidate, "pgcode", None)
        if code:
            return str(code)
    return None


def is_unique_violation(exc: BaseException) -> bool:
    if not isinstance(exc, IntegrityError):
        return False
    if _sqlstate(exc) == _UNIQUE_VIOLATION:
        return True
    message = str(getattr(exc, "orig", exc)).lower()
    return "unique constraint" in message or "duplicate key" in message


def is_deadlock(exc: BaseException) -> bool:
    if not isinstance(exc, DBAPIError):
        return False
    if _sqlstate(exc) in {_DEADLOCK_DETECTED, _SERIALIZATION_FAILURE}:
        return True
    message = str(getattr(exc, "orig", exc)).lower()
    # SQLite はロック昇格の競合を "database is locked" で返す
    return "deadlock" in message or "database is locked" in message


def translate(exc: SQLAlchemyError, *, operation: str, table: str) -> DomainError:
    if is_unique_violation(exc):
        return DuplicateKeyError(operation=operation, table=table, cause=exc)
    if is_deadlock(exc):
        return DeadlockError(operation=operation, table=table, cause=exc)
    return DatabaseError(operation=operation, table=table, cause=exc)


__all__ = ["is_deadlock", "is_unique_violation", "translate"]
