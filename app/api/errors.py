"""Centralised exception handlers: domain errors -> {code, message, details}."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from app.core.exceptions import DomainError, ErrorKind

logger = structlog.get_logger(__name__)

STATUS_BY_KIND: dict[ErrorKind, int] = {
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.VALIDATION_ERROR: 400,
    ErrorKind.INVALID_INPUT: 400,
    ErrorKind.INVALID_YEAR: 400,
    ErrorKind.AUTHENTICATION: 401,
    ErrorKind.AUTHORIZATION: 403,
    ErrorKind.DUPLICATE_KEY: 409,
    ErrorKind.TIMEOUT: 504,
    ErrorKind.DEADLOCK: 500,
    ErrorKind.DATABASE_ERROR: 500,
}

MSG_INVALID_BODY = "リクエストの形式が不正です"
MSG_INTERNAL = "内部エラーが発生しました"


def status_for(kind: ErrorKind) -> int:
    return STATUS_BY_KIND.get(kind, 500)


def _body(code: str, message: str, details: dict | None = None) -> dict:
    return {"code": code, "message": message, "details": details}


def _domain_error_handler(_: Request, exc: DomainError) -> JSONResponse:
    status = status_for(exc.kind)
    log = logger.error if status >= 500 else logger.info
    log(
        "domain_error",
        kind=exc.kind.value,
        code=exc.code,
        operation=exc.operation,
        table=exc.table,
        status=status,
    )
    return JSONResponse(status_code=status, content=_body(exc.kind.value, exc.message, exc.details()))


def _validation_exception_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    errors = [
        {"loc": [str(p) for p in err.get("loc", ())], "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content=_body(ErrorKind.INVALID_INPUT.value, MSG_INVALID_BODY, {"errors": errors}),
    )


def _http_exception_handler(_: Request, exc: HTTPException) -> JSONResponse:
    code = ErrorKind.NOT_FOUND.value if exc.status_code == 404 else "HTTP_ERROR"
    return JSONResponse(status_code=exc.status_code, content=_body(code, str(exc.detail)))


def _unhandled_exception_handler(_: Request, exc: Exception) -> JSONResponse:
    # Hide internal details by default
    logger.exception("unhandled_error", error_type=type(exc).__name__)
    return JSONResponse(status_code=500, content=_body("INTERNAL_ERROR", MSG_INTERNAL))


def install(app: FastAPI) -> None:
    # Register centralized exception handlers
    app.add_exception_handler(DomainError, _domain_error_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(HTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _unhandled_exception_handler)
