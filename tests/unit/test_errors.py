import pytest

from app.api.errors import STATUS_BY_KIND, status_for
from app.core.exceptions import (
    DatabaseError,
    DeadlineExceededError,
    DeadlockError,
    DuplicateKeyError,
    ErrorKind,
    InvalidInputError,
    InvalidYearError,
    NotFoundError,
    ValidationError,
)
from app.domain.validators import FieldViolation


@pytest.mark.parametrize(
    "kind,status",
    [
        (ErrorKind.NOT_FOUND, 404),
        (ErrorKind.VALIDATION_ERROR, 400),
        (ErrorKind.INVALID_INPUT, 400),
        (ErrorKind.INVALID_YEAR, 400),
        (ErrorKind.AUTHENTICATION, 401),
        (ErrorKind.AUTHORIZATION, 403),
        (ErrorKind.DUPLICATE_KEY, 409),
        (ErrorKind.TIMEOUT, 504),
        (ErrorKind.DEADLOCK, 500),
        (ErrorKind.DATABASE_ERROR, 500),
    ],
)
def test_status_for_kind(kind, status):
    assert status_for(kind) == status


def test_every_kind_has_a_status():
    assert set(STATUS_BY_KIND) == set(ErrorKind)


def test_errors_compare_by_kind():
    assert NotFoundError("大学が見つかりません") == NotFoundError("学部が見つかりません")
    assert NotFoundError() != DuplicateKeyError()
    assert InvalidYearError() != ValidationError()
    assert isinstance(InvalidYearError(), ValidationError)


def test_default_messages_and_codes():
    assert DeadlineExceededError().kind is ErrorKind.TIMEOUT
    assert DeadlockError().code == "deadlock"
    assert InvalidInputError().message == "リクエストが不正です"


def test_details_carry_operation_table_and_context():
    cause = RuntimeError("boom")
    err = DatabaseError(operation="update", table="subjects", cause=cause).with_context("id", 3)
    details = err.details()
    assert details["operation"] == "update"
    assert details["table"] == "subjects"
    assert details["context"] == {"id": "3"}
    assert "timestamp" in details
    assert err.__cause__ is cause
    assert "operation=update" in str(err) and "table=subjects" in str(err)


def test_validation_details_list_violations():
    violation = FieldViolation("departments[0].name", "required", "学部名は必須です")
    err = ValidationError("学部名は必須です", violations=[violation], rule="required")
    details = err.details()
    assert details["rule"] == "required"
    assert details["violations"] == [
        {"path": "departments[0].name", "rule": "required", "message": "学部名は必須です"}
    ]
