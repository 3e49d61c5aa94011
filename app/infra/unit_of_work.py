"""大学ツリー更新用の Unit of Work。"""

from __future__ import annotations

from contextlib import AbstractAsyncContextManager
from typing import Protocol

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.repositories.interfaces import UniversityRepository
from app.repositories.sqlalchemy import SqlAlchemyUniversityRepository

logger = structlog.get_logger(__name__)


class UnitOfWork(Protocol, AbstractAsyncContextManager["UnitOfWork"]):
    """サービス層から見えるトランザクション境界。"""

    universities: UniversityRepository


class SqlAlchemyUnitOfWork(UnitOfWork):
    """AsyncSession 1 つ = トランザクション 1 つ。

    正常終了でコミット、例外でロールバックする。ツリー単位の書き込みは
    すべてこの中で行い、途中失敗時に部分的な行が残らないようにする。
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory
        self._session: AsyncSession | None = None
        self.universities: UniversityRepository

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        self._session = self._session_factory()
        self.universities = SqlAlchemyUniversityRepository(self._session)
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        session = self._session
        if session is None:
            return
        self._session = None
        try:
            if exc_type is None:
                await session.commit()
            else:
                logger.debug("uow_rollback", error=type(exc).__name__)
                await session.rollback()
        finally:
            await session.close()
