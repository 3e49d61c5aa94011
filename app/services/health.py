from __future__ import annotations

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.infra.cache import TTLCache


class HealthService:
    def __init__(self, sessionmaker: async_sessionmaker[AsyncSession], cache: TTLCache | None = None):
        self._sessionmaker = sessionmaker
        self._cache = cache

    async def ping_database(self) -> None:
        async with self._sessionmaker() as session:
            await session.execute(text("SELECT 1"))

    async def ok(self) -> dict:
        await self.ping_database()
        payload: dict = {"ok": True}
        if self._cache is not None:
            stats = self._cache.stats()
            payload["cache"] = {"hits": stats.hits, "misses": stats.misses, "items": stats.items}
        return payload
