import threading

from app.infra.cache import KEY_ALL, KEY_ONE, TTLCache


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def test_get_returns_value_until_expiry():
    clock = FakeClock()
    cache = TTLCache(default_ttl=300, clock=clock)
    try:
        cache.set(KEY_ALL, ["u"])
        assert cache.get(KEY_ALL) == ["u"]
        clock.advance(299)
        assert cache.get(KEY_ALL) == ["u"]
        clock.advance(1)
        assert cache.get(KEY_ALL) is None
    finally:
        cache.close()


def test_stats_count_hits_and_misses():
    cache = TTLCache()
    try:
        assert cache.get("missing") is None
        cache.set(KEY_ONE.format(id=1), "u1")
        assert cache.get("universities:1") == "u1"
        stats = cache.stats()
        assert (stats.hits, stats.misses, stats.items) == (1, 1, 1)
    finally:
        cache.close()


def test_sweep_removes_only_expired_entries():
    clock = FakeClock()
    cache = TTLCache(default_ttl=10, clock=clock)
    try:
        cache.set("short", 1, ttl=5)
        cache.set("long", 2)
        clock.advance(6)
        assert cache.sweep() == 1
        assert cache.stats().items == 1
        assert cache.get("long") == 2
    finally:
        cache.close()


def test_clear_discards_results_loaded_before_it():
    cache = TTLCache()
    try:
        generation = cache.generation
        cache.clear()
        assert cache.set(KEY_ALL, "stale", generation=generation) is False
        assert cache.get(KEY_ALL) is None
        assert cache.set(KEY_ALL, "fresh", generation=cache.generation) is True
        assert cache.get(KEY_ALL) == "fresh"
    finally:
        cache.close()


def test_delete_removes_single_key():
    cache = TTLCache()
    try:
        cache.set("a", 1)
        cache.set("b", 2)
        cache.delete("a")
        assert cache.get("a") is None
        assert cache.get("b") == 2
    finally:
        cache.close()


def test_sweeper_starts_lazily_and_stops_on_close():
    cache = TTLCache(sweep_interval=0.01)
    assert not cache.sweeper_running
    cache.set("a", 1)
    assert cache.sweeper_running
    cache.close()
    assert not cache.sweeper_running
    assert cache.stats().items == 0


def test_concurrent_readers_and_writers():
    cache = TTLCache()
    errors: list[BaseException] = []

    def worker(n: int) -> None:
        try:
            for i in range(200):
                cache.set(f"k{n}:{i}", i)
                assert cache.get(f"k{n}:{i}") in (i, None)
                if i % 50 == 0:
                    cache.clear()
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=worker, args=(n,)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    cache.close()
    assert errors == []
