from __future__ import annotations

import time
import uuid
from collections.abc import Callable

import sentry_sdk
import structlog
from fastapi import Request, Response

REQUEST_ID_HEADER = "X-Request-ID"

logger = structlog.get_logger(__name__)


def _elapsed_ms(start_ns: int) -> float:
    return round((time.perf_counter_ns() - start_ns) / 1_000_000.0, 3)


async def request_id_middleware(request: Request, call_next: Callable) -> Response:
    """Bind X-Request-ID to the log context and emit one access event per request.

    The inbound header is reused when present, otherwise a UUID4 is issued.
    The id is always echoed back on the response.
    """
    rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid.uuid4())
    path, method = request.url.path, request.method

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(request_id=rid, path=path, method=method)
    sentry_sdk.set_tag("request_id", rid)

    start_ns = time.perf_counter_ns()
    try:
        response = await call_next(request)
    except Exception:
        logger.error("http_request", status=500, duration_ms=_elapsed_ms(start_ns), exc_info=True)
        structlog.contextvars.clear_contextvars()
        raise

    logger.info(
        "http_request",
        status=response.status_code,
        duration_ms=_elapsed_ms(start_ns),
        client_ip=(request.client.host if request.client else None) or "-",
    )
    response.headers[REQUEST_ID_HEADER] = rid
    structlog.contextvars.clear_contextvars()
    return response
