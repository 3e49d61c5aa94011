"""プロセス内 TTL キャッシュ。

- エントリごとに絶対有効期限を持つ（デフォルト 5 分）
- バックグラウンドの掃除スレッドが一定間隔（デフォルト 10 分）で期限切れを削除
- 読み取りは read ロック、set / delete / 掃除は write ロック
- 掃除スレッドは最初の書き込み時に起動し、close() で停止する
- clear() は世代番号を進める。読み込み中に無効化された結果は保存しない
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

KEY_ALL = "universities:all"
KEY_SEARCH = "universities:search:{query}"
KEY_ONE = "universities:{id}"

DEFAULT_TTL_SECONDS = 300.0
DEFAULT_SWEEP_INTERVAL_SECONDS = 600.0


class RWLock:
    """Writer-preferring readers-writer lock."""

    def __init__(self) -> None:
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._waiting_writers = 0

    @contextmanager
    def read(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._waiting_writers:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write(self) -> Iterator[None]:
        with self._cond:
            self._waiting_writers += 1
            while self._writer or self._readers:
                self._cond.wait()
            self._waiting_writers -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


@dataclass
class CacheStats:
    hits: int
    misses: int
    items: int


class TTLCache:
    def __init__(
        self,
        *,
        default_ttl: float = DEFAULT_TTL_SECONDS,
        sweep_interval: float = DEFAULT_SWEEP_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.default_ttl = default_ttl
        self.sweep_interval = sweep_interval
        self._clock = clock
        self._items: dict[str, tuple[float, Any]] = {}
        self._lock = RWLock()
        self._stats_lock = threading.Lock()
        self._hits = 0
        self._misses = 0
        self._generation = 0
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None
        self._sweeper_guard = threading.Lock()

    def get(self, key: str) -> Any | None:
        with self._lock.read():
            entry = self._items.get(key)
            now = self._clock()
        hit = entry is not None and entry[0] > now
        with self._stats_lock:
            if hit:
                self._hits += 1
            else:
                self._misses += 1
        if not hit:
            logger.debug("cache_miss", key=key)
            return None
        logger.debug("cache_hit", key=key)
        return entry[1]

    def set(
        self, key: str, value: Any, ttl: float | None = None, *, generation: int | None = None
    ) -> bool:
        """Store ``value``; skipped when ``generation`` predates the last clear()."""
        self._ensure_sweeper()
        expires_at = self._clock() + (self.default_ttl if ttl is None else ttl)
        with self._lock.write():
            if generation is not None and generation != self._generation:
                return False
            self._items[key] = (expires_at, value)
        return True

    def delete(self, key: str) -> None:
        with self._lock.write():
            self._items.pop(key, None)

    def clear(self) -> None:
        with self._lock.write():
            self._items.clear()
            self._generation += 1

    @property
    def generation(self) -> int:
        with self._lock.read():
            return self._generation

    def sweep(self) -> int:
        """Remove expired entries and return how many were dropped."""
        now = self._clock()
        with self._lock.write():
            expired = [k for k, (exp, _) in self._items.items() if exp <= now]
            for k in expired:
                del self._items[k]
        return len(expired)

    def stats(self) -> CacheStats:
        with self._lock.read():
            items = len(self._items)
        with self._stats_lock:
            return CacheStats(hits=self._hits, misses=self._misses, items=items)

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and self._sweeper.is_alive()

    def _ensure_sweeper(self) -> None:
        if self._sweeper is not None or self._stop.is_set():
            return
        with self._sweeper_guard:
            if self._sweeper is not None:
                return
            self._sweeper = threading.Thread(
                target=self._sweep_loop, name="ttl-cache-sweeper", daemon=True
            )
            self._sweeper.start()

    def _sweep_loop(self) -> None:
        while not self._stop.wait(self.sweep_interval):
            removed = self.sweep()
            if removed:
                logger.debug("cache_sweep", removed=removed)

    def close(self) -> None:
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None:
            sweeper.join(timeout=1.0)
        self.clear()


__all__ = ["KEY_ALL", "KEY_ONE", "KEY_SEARCH", "CacheStats", "RWLock", "TTLCache"]
