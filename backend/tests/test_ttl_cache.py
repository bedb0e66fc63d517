from __future__ import annotations

import threading
import time

import pytest

from backend.app.caching import CacheKeys, TTLCache


class FakeMonotonic:
    def __init__(self) -> None:
        self.value = 1000.0

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float) -> None:
        self.value += seconds


@pytest.fixture
def clock() -> FakeMonotonic:
    return FakeMonotonic()


@pytest.fixture
def cache(clock: FakeMonotonic) -> TTLCache:
    return TTLCache(clock=clock)


def test_set_then_get_returns_value(cache: TTLCache) -> None:
    cache.set("k", {"v": 1}, 30)

    assert cache.get("k") == {"v": 1}


def test_get_after_ttl_returns_default_and_evicts(cache: TTLCache, clock: FakeMonotonic) -> None:
    cache.set("k", "v", 30)

    clock.advance(30)
    assert cache.get("k") == "v"

    clock.advance(0.001)
    assert cache.get("k") is None
    assert len(cache) == 0


def test_set_overwrites_existing_entry(cache: TTLCache, clock: FakeMonotonic) -> None:
    cache.set("k", "old", 10)
    clock.advance(9)
    cache.set("k", "new", 10)
    clock.advance(9)

    assert cache.get("k") == "new"


def test_delete_reports_presence(cache: TTLCache) -> None:
    cache.set("k", None, 30)

    assert cache.delete("k") is True
    assert cache.delete("k") is False


def test_invalidate_removes_keys_containing_pattern(cache: TTLCache) -> None:
    cache.set(CacheKeys.subscription("t1"), "a", 30)
    cache.set(CacheKeys.subscription_warning("t1"), "b", 30)
    cache.set(CacheKeys.subscription("t2"), "c", 30)

    removed = cache.invalidate(["t1"])

    assert removed == 2
    assert cache.stats().keys == (CacheKeys.subscription("t2"),)


def test_invalidate_twice_matches_single_call(cache: TTLCache) -> None:
    cache.set("dashboard:stats:t1", 1, 30)
    cache.set("analytics:t2:week", 2, 30)

    cache.invalidate(["dashboard:"])
    after_first = cache.stats()
    assert cache.invalidate(["dashboard:"]) == 0

    assert cache.stats() == after_first


def test_invalidate_unknown_pattern_is_noop(cache: TTLCache) -> None:
    cache.set("k", 1, 30)

    assert cache.invalidate(["missing", ""]) == 0
    assert cache.get("k") == 1


def test_get_cached_or_fetch_runs_producer_once_while_fresh(cache: TTLCache, clock: FakeMonotonic) -> None:
    calls = []

    def producer() -> str:
        calls.append(1)
        return f"value-{len(calls)}"

    assert cache.get_cached_or_fetch("k", producer, 30) == "value-1"
    clock.advance(10)
    assert cache.get_cached_or_fetch("k", producer, 30) == "value-1"
    assert len(calls) == 1

    clock.advance(25)
    assert cache.get_cached_or_fetch("k", producer, 30) == "value-2"
    assert len(calls) == 2


def test_get_cached_or_fetch_caches_none(cache: TTLCache) -> None:
    calls = []

    def producer() -> None:
        calls.append(1)
        return None

    assert cache.get_cached_or_fetch("k", producer, 30) is None
    assert cache.get_cached_or_fetch("k", producer, 30) is None
    assert len(calls) == 1


def test_get_cached_or_fetch_treats_wrong_type_as_miss(cache: TTLCache) -> None:
    cache.set("k", "corrupted", 30)

    value = cache.get_cached_or_fetch("k", lambda: 42, 30, expected_type=int)

    assert value == 42
    assert cache.get("k") == 42


def test_sweep_evicts_only_expired_entries(cache: TTLCache, clock: FakeMonotonic) -> None:
    cache.set("short", 1, 5)
    cache.set("long", 2, 60)

    clock.advance(10)

    assert cache.sweep() == 1
    assert cache.stats().keys == ("long",)


def test_concurrent_misses_settle_on_one_value() -> None:
    cache = TTLCache()
    barrier = threading.Barrier(4)
    results = []
    lock = threading.Lock()

    def producer() -> str:
        return "record"

    def worker() -> None:
        barrier.wait()
        value = cache.get_cached_or_fetch("k", producer, 30)
        with lock:
            results.append(value)

    threads = [threading.Thread(target=worker) for _ in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results == ["record"] * 4
    assert cache.get("k") == "record"


def test_background_sweeper_lifecycle() -> None:
    cache = TTLCache(sweep_interval=0.01)
    cache.set("k", 1, 0.001)

    with cache:
        assert cache.running is True
        deadline = time.monotonic() + 2
        while len(cache) and time.monotonic() < deadline:
            time.sleep(0.01)
        assert len(cache) == 0

    assert cache.running is False


def test_stop_clears_entries() -> None:
    cache = TTLCache()
    cache.start()
    cache.set("k", 1, 30)

    cache.stop()

    assert len(cache) == 0
    assert cache.running is False


def test_rejects_non_positive_sweep_interval() -> None:
    with pytest.raises(ValueError):
        TTLCache(sweep_interval=0)
