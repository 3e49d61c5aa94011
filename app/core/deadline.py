"""Request-scoped deadline passed alongside service parameters."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Awaitable
from typing import TypeVar

from app.core.exceptions import DeadlineExceededError

T = TypeVar("T")


class Deadline:
    """Absolute expiry on the monotonic clock.

    ``run()`` awaits a coroutine until the deadline; on expiry the coroutine is
    cancelled (which aborts the in-flight DB call) and DeadlineExceededError is
    raised.
    """

    def __init__(self, timeout_seconds: float, *, operation: str | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        self.operation = operation
        self._expires_at = time.monotonic() + timeout_seconds

    @classmethod
    def never(cls) -> Deadline:
        return cls(float("inf"))

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self._expires_at

    async def run(self, awaitable: Awaitable[T], *, operation: str | None = None) -> T:
        op = operation or self.operation
        if self.expired:
            if asyncio.iscoroutine(awaitable):
                awaitable.close()
            raise DeadlineExceededError(operation=op)
        timeout = None if self._expires_at == float("inf") else self.remaining()
        try:
            return await asyncio.wait_for(awaitable, timeout=timeout)
        except TimeoutError as exc:
            raise DeadlineExceededError(operation=op, cause=exc) from exc
