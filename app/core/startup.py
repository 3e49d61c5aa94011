"""Startup helpers for database migrations and readiness tracking."""

from __future__ import annotations

import os
import threading
import time
from pathlib import Path
from typing import Final

import structlog
from alembic import command
from alembic.config import Config
from structlog.stdlib import BoundLogger

from app.core.config import Settings

_PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[2]
_MAX_ATTEMPTS: Final[int] = 10
_RETRY_DELAY_SECONDS: Final[float] = 2.0

_MIGRATIONS_COMPLETED: bool = False
_MIGRATION_ERROR: str | None = None
_WORKER: threading.Thread | None = None


def is_migration_completed() -> bool:
    """Return True when startup migrations have finished successfully."""

    return _MIGRATIONS_COMPLETED


def last_migration_error() -> str | None:
    return _MIGRATION_ERROR


def alembic_config(settings: Settings) -> Config:
    cfg = Config(str(_PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(_PROJECT_ROOT / "migrations"))
    cfg.set_main_option("sqlalchemy.url", settings.sqlalchemy_url.replace("%", "%%"))
    cfg.attributes["configure_logger"] = False
    return cfg


def run_database_migrations(settings: Settings) -> None:
    """Run `alembic upgrade head` in a background thread (synchronously in prod)."""

    global _MIGRATIONS_COMPLETED, _MIGRATION_ERROR, _WORKER
    logger = structlog.get_logger(__name__)

    if _MIGRATIONS_COMPLETED:
        logger.info("alembic_upgrade_skipped", reason="already_completed")
        return

    if os.getenv("TESTING"):
        _MIGRATIONS_COMPLETED = True
        _MIGRATION_ERROR = None
        logger.info("alembic_upgrade_skipped", reason="testing")
        return

    if settings.app_env == "prod":
        success, error_message = _run_migrations_sequence(settings, logger)
        _MIGRATIONS_COMPLETED = success
        _MIGRATION_ERROR = error_message
        if not success:
            raise SystemExit(1)
        return

    if _WORKER and _WORKER.is_alive():
        logger.info("alembic_upgrade_skipped", reason="already_running")
        return

    _MIGRATIONS_COMPLETED = False
    _MIGRATION_ERROR = None
    _WORKER = threading.Thread(
        target=_run_migrations_async, args=(settings,), name="alembic-startup", daemon=True
    )
    _WORKER.start()
    logger.info("alembic_upgrade_background_started")


def _run_migrations_async(settings: Settings) -> None:
    global _MIGRATIONS_COMPLETED, _MIGRATION_ERROR

    logger = structlog.get_logger(__name__).bind(mode="async")
    success, error_message = _run_migrations_sequence(settings, logger)
    _MIGRATIONS_COMPLETED = success
    _MIGRATION_ERROR = error_message


def _run_migrations_sequence(settings: Settings, logger: BoundLogger) -> tuple[bool, str | None]:
    last_error: str | None = None

    for attempt in range(1, _MAX_ATTEMPTS + 1):
        try:
            logger.info("alembic_upgrade_start", attempt=attempt)
            command.upgrade(alembic_config(settings), "head")
        except Exception as exc:  # pragma: no cover - error path
            last_error = str(exc) or exc.__class__.__name__
            logger.exception("alembic_upgrade_failed", attempt=attempt)
        else:
            logger.info("alembic_upgrade_succeeded", attempt=attempt)
            return True, None

        if attempt < _MAX_ATTEMPTS:
            delay = _RETRY_DELAY_SECONDS * attempt
            logger.info("alembic_upgrade_retry", next_attempt=attempt + 1, delay_seconds=delay)
            time.sleep(delay)

    logger.error("alembic_upgrade_exhausted", attempts=_MAX_ATTEMPTS)
    return False, last_error or "alembic upgrade failed"


__all__ = [
    "alembic_config",
    "is_migration_completed",
    "last_migration_error",
    "run_database_migrations",
]
