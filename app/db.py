# app/db.py
from sqlalchemy.engine.url import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from app.core.config import Settings, get_settings

engine: AsyncEngine | None = None
SessionLocal: async_sessionmaker[AsyncSession] | None = None


def _apply_asyncpg_scheme(database_url: str) -> str:
    if database_url.startswith("postgresql+psycopg://"):
        return database_url.replace("postgresql+psycopg://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql+psycopg2://"):
        return database_url.replace("postgresql+psycopg2://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    return database_url


def _create_engine(database_url: str, settings: Settings) -> AsyncEngine:
    url = make_url(database_url)
    connect_args = {}
    kwargs = {}

    if url.get_backend_name() == "postgresql" and url.get_driver_name() == "asyncpg":
        query = dict(url.query)
        if "sslmode" in query:
            # asyncpg accepts 'disable', 'allow', 'prefer', 'require', 'verify-ca', 'verify-full'
            connect_args["ssl"] = query.pop("sslmode")
        if "channel_binding" in query:
            # asyncpg does not support channel_binding, so we remove it
            query.pop("channel_binding")
        url = url._replace(query=query)
        # 最大 100 接続 (pool_size + max_overflow)、アイドル 10、寿命 1 時間
        kwargs.update(
            pool_size=settings.db_pool_size,
            max_overflow=settings.db_max_overflow,
            pool_recycle=settings.db_pool_recycle_seconds,
            pool_timeout=settings.request_timeout_seconds,
        )

    return create_async_engine(
        url,
        pool_pre_ping=True,
        connect_args=connect_args,
        **kwargs,
    )


def configure_engine(settings: Settings | None = None) -> AsyncEngine:
    """Configure SQLAlchemy engine and session factory."""

    global engine, SessionLocal

    settings = settings or get_settings()
    engine = _create_engine(_apply_asyncpg_scheme(settings.sqlalchemy_url), settings)
    SessionLocal = async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    return engine


def get_sessionmaker() -> async_sessionmaker[AsyncSession]:
    if SessionLocal is None:
        configure_engine()
    assert SessionLocal is not None
    return SessionLocal


async def dispose_engine() -> None:
    global engine, SessionLocal
    if engine is not None:
        await engine.dispose()
    engine = None
    SessionLocal = None
