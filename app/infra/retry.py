"""Retry / Backoff ユーティリティ (非同期)。

デッドロック用の固定バックオフ: 10ms → 40ms → 160ms（初回 + 最大 3 回の再試行）。
待機時間は呼び出し側のデッドライン内で消費される。
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from functools import wraps
from typing import ParamSpec, TypeVar

import structlog

from app.core.exceptions import DeadlockError

logger = structlog.get_logger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

DEADLOCK_BACKOFF_SECONDS: tuple[float, ...] = (0.01, 0.04, 0.16)


def async_retry(
    *,
    delays: Sequence[float] = DEADLOCK_BACKOFF_SECONDS,
    retry_on: tuple[type[Exception], ...] = (DeadlockError,),
    logger_=logger,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Async 関数用リトライデコレータ。delays の数だけ再試行し、最後の例外をそのまま送出する。"""

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            attempts = len(delays) + 1
            for attempt in range(1, attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except retry_on as exc:  # type: ignore[misc]
                    if attempt >= attempts:
                        logger_.error("retry_exhausted", attempts=attempts, error=str(exc))
                        raise
                    delay = delays[attempt - 1]
                    logger_.warning(
                        "retry_scheduled",
                        attempt=attempt,
                        max_attempts=attempts,
                        delay_seconds=delay,
                        error=str(exc),
                    )
                    await asyncio.sleep(delay)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper

    return decorator


__all__ = ["DEADLOCK_BACKOFF_SECONDS", "async_retry"]
