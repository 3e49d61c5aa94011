"""Domain-level exception hierarchy for service and repository layers.

エラーは種別 (ErrorKind) で比較する。メッセージは人間向けの補足情報。
"""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any


class ErrorKind(StrEnum):
    NOT_FOUND = "NOT_FOUND"
    DUPLICATE_KEY = "DUPLICATE_KEY"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_YEAR = "INVALID_YEAR"
    DATABASE_ERROR = "DATABASE_ERROR"
    TIMEOUT = "TIMEOUT"
    DEADLOCK = "DEADLOCK"
    INVALID_INPUT = "INVALID_INPUT"
    AUTHENTICATION = "AUTHENTICATION"
    AUTHORIZATION = "AUTHORIZATION"


class DomainError(Exception):
    """Base class for domain-specific failures."""

    kind: ErrorKind = ErrorKind.DATABASE_ERROR
    default_message: str = "内部エラーが発生しました"

    def __init__(
        self,
        message: str | None = None,
        *,
        code: str | None = None,
        cause: BaseException | None = None,
        operation: str | None = None,
        table: str | None = None,
        context: dict[str, str] | None = None,
    ) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)
        self.code = code or self.kind.value.lower()
        self.cause = cause
        self.operation = operation
        self.table = table
        self.timestamp = datetime.now(UTC)
        self.context: dict[str, str] = dict(context or {})
        if cause is not None:
            self.__cause__ = cause

    def with_context(self, key: str, value: Any) -> DomainError:
        self.context[key] = str(value)
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, DomainError):
            return NotImplemented
        return self.kind == other.kind

    def __hash__(self) -> int:
        return hash(self.kind)

    def details(self) -> dict[str, Any]:
        out: dict[str, Any] = {"code": self.code, "timestamp": self.timestamp.isoformat()}
        if self.operation:
            out["operation"] = self.operation
        if self.table:
            out["table"] = self.table
        if self.context:
            out["context"] = dict(self.context)
        return out

    def __str__(self) -> str:
        parts = [f"[{self.kind.value}]"]
        if self.operation:
            parts.append(f"operation={self.operation}")
        if self.table:
            parts.append(f"table={self.table}")
        parts.append(self.message)
        if self.cause is not None:
            parts.append(f"(cause: {self.cause})")
        return " ".join(parts)


class NotFoundError(DomainError):
    """Raised when a requested entity does not exist."""

    kind = ErrorKind.NOT_FOUND
    default_message = "指定されたデータが見つかりません"


class DuplicateKeyError(DomainError):
    """Raised when a uniqueness rule would be broken."""

    kind = ErrorKind.DUPLICATE_KEY
    default_message = "データが重複しています"


class ValidationError(DomainError):
    """Raised when input validation fails at the domain/service layer."""

    kind = ErrorKind.VALIDATION_ERROR
    default_message = "入力値が不正です"

    def __init__(
        self,
        message: str | None = None,
        *,
        violations: list[Any] | None = None,
        rule: str | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.violations = list(violations or [])
        self.rule = rule

    def details(self) -> dict[str, Any]:
        out = super().details()
        if self.rule:
            out["rule"] = self.rule
        if self.violations:
            out["violations"] = [
                {"path": v.path, "rule": v.rule, "message": v.message} for v in self.violations
            ]
        return out


class InvalidYearError(ValidationError):
    kind = ErrorKind.INVALID_YEAR
    default_message = "学年度は2000年から2100年の間で指定してください"


class DatabaseError(DomainError):
    kind = ErrorKind.DATABASE_ERROR
    default_message = "データベースエラーが発生しました"


class DeadlineExceededError(DomainError):
    kind = ErrorKind.TIMEOUT
    default_message = "処理がタイムアウトしました"


class DeadlockError(DomainError):
    kind = ErrorKind.DEADLOCK
    default_message = "デッドロックが検出されました"


class InvalidInputError(DomainError):
    kind = ErrorKind.INVALID_INPUT
    default_message = "リクエストが不正です"


class AuthenticationError(DomainError):
    kind = ErrorKind.AUTHENTICATION
    default_message = "認証が必要です"


class AuthorizationError(DomainError):
    kind = ErrorKind.AUTHORIZATION
    default_message = "権限がありません"
