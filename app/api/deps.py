"""API dependency helpers and service providers."""

from fastapi import Request

from app.core.deadline import Deadline
from app.db import get_sessionmaker
from app.infra.unit_of_work import SqlAlchemyUnitOfWork
from app.services.universities import UniversityService

__all__ = [
    "uow_factory",
    "get_university_service",
    "request_deadline",
]


def uow_factory() -> SqlAlchemyUnitOfWork:
    return SqlAlchemyUnitOfWork(get_sessionmaker())


def get_university_service(request: Request) -> UniversityService:
    return request.app.state.university_service


def request_deadline(request: Request) -> Deadline:
    """リクエスト単位のデッドライン（REQUEST_TIMEOUT_SECONDS、既定 5 秒）"""
    return Deadline(request.app.state.settings.request_timeout_seconds, operation=request.url.path)
