from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.exceptions import DatabaseError, DeadlockError, DuplicateKeyError
from app.infra import db_errors


class _DriverError(Exception):
    def __init__(self, message: str, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


def test_unique_violation_by_sqlstate():
    exc = IntegrityError("INSERT", {}, _DriverError("dup", sqlstate="23505"))
    err = db_errors.translate(exc, operation="create", table="subjects")
    assert isinstance(err, DuplicateKeyError)
    assert err.table == "subjects"
    assert err.cause is exc


def test_unique_violation_by_sqlite_message():
    exc = IntegrityError("INSERT", {}, _DriverError("UNIQUE constraint failed: subjects.name"))
    assert db_errors.is_unique_violation(exc)


def test_deadlock_by_sqlstate_and_message():
    assert db_errors.is_deadlock(OperationalError("UPDATE", {}, _DriverError("x", "40P01")))
    assert db_errors.is_deadlock(OperationalError("UPDATE", {}, _DriverError("x", "40001")))
    locked = OperationalError("UPDATE", {}, _DriverError("database is locked"))
    assert isinstance(db_errors.translate(locked, operation="update", table="x"), DeadlockError)


def test_other_failures_become_database_errors():
    exc = OperationalError("SELECT", {}, _DriverError("connection refused"))
    err = db_errors.translate(exc, operation="find_all", table="universities")
    assert isinstance(err, DatabaseError)
    assert err.operation == "find_all"
