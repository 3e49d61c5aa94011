from __future__ import annotations

import logging
from typing import Any

import structlog

from app.core.config import Settings


def _log_level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)


def _log_format(settings: Settings) -> str:
    if settings.log_format:
        return settings.log_format.lower()
    return "console" if settings.app_env == "dev" else "json"


def setup_logging(settings: Settings) -> None:
    """Configure structlog on top of stdlib logging.

    - JSON lines (console renderer in dev unless LOG_FORMAT is given)
    - ISO/UTC timestamp, level, event and contextvars (request_id, path, method)
    - uvicorn / SQLAlchemy records go through the same formatter
    """

    shared_processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.format_exc_info,
    ]

    structlog.configure(
        processors=shared_processors + [structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    if _log_format(settings) == "console":
        renderer = structlog.dev.ConsoleRenderer()
    else:
        renderer = structlog.processors.JSONRenderer(ensure_ascii=False)

    formatter = structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=shared_processors,
        processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
    )
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    logging.basicConfig(level=_log_level(settings.log_level), handlers=[handler], force=True)


def get_logger(*args: Any, **kwargs: Any) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(*args, **kwargs)
