from contextlib import asynccontextmanager

import sentry_sdk
import structlog
import uvicorn
from fastapi import FastAPI
from sentry_sdk.integrations.starlette import StarletteIntegration
from starlette.middleware.cors import CORSMiddleware

from app.api import errors
from app.api.deps import uow_factory
from app.api.routers.healthz import router as healthz_router
from app.api.routers.readyz import router as readyz_router
from app.api.routers.universities import router as universities_router
from app.core.config import Settings, get_settings
from app.core.startup import run_database_migrations
from app.db import configure_engine, dispose_engine
from app.infra.cache import TTLCache
from app.logging import setup_logging
from app.middleware.request_id import request_id_middleware
from app.services.universities import UniversityService


def _init_sentry(settings: Settings) -> None:
    # DSN 未設定なら何もしない
    if not settings.sentry_dsn:
        return
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        environment=settings.app_env,
        release=settings.release,
        integrations=[StarletteIntegration()],
        traces_sample_rate=settings.sentry_traces_sample_rate,
        send_default_pii=False,
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    # Initialize structured logging first
    setup_logging(settings)
    _init_sentry(settings)
    logger = structlog.get_logger(__name__)

    configure_engine(settings)
    cache = TTLCache(
        default_ttl=settings.cache_ttl_seconds,
        sweep_interval=settings.cache_sweep_interval_seconds,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        run_database_migrations(settings)
        logger.info("app_startup", env=settings.app_env, port=settings.port)
        try:
            yield
        finally:
            cache.close()
            await dispose_engine()
            logger.info("app_shutdown")

    app = FastAPI(
        title="University Exam API",
        description="大学・学部・学科・入試日程・試験種別・科目の CRUD API",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.cache = cache
    app.state.university_service = UniversityService(
        uow_factory, cache, default_timeout=settings.request_timeout_seconds
    )

    # Request-ID middleware (JSON access log)
    app.middleware("http")(request_id_middleware)

    if settings.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=settings.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "HEAD"],
            allow_headers=["*"],
        )

    errors.install(app)
    app.include_router(universities_router)
    app.include_router(healthz_router)
    app.include_router(readyz_router)

    # Simple health for tests and uptime checks
    @app.get("/health", tags=["health"])
    def health():
        return {"status": "ok", "env": settings.app_env}

    return app


def run() -> None:
    """Console entry point: serve the app on PORT."""
    settings = get_settings()
    uvicorn.run("app.main:create_app", factory=True, host="0.0.0.0", port=settings.port)
