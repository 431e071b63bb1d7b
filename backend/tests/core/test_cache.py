# tests/core/test_cache.py
import asyncio

import pytest

from vitrine.core.cache import CacheManager, run_periodic_cleanup


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_get_returns_value_until_ttl_passes():
    clock = FakeClock()
    cache = CacheManager(default_ttl_seconds=60, clock=clock)
    cache.set("k", {"v": 1})

    clock.now += 60
    assert cache.get("k") == {"v": 1}  # exatamente no limite ainda vale

    clock.now += 0.001
    assert cache.get("k") is None
    assert cache.stats()["size"] == 0  # removido no get


def test_custom_ttl_overrides_default():
    clock = FakeClock()
    cache = CacheManager(default_ttl_seconds=1800, clock=clock)
    cache.set("short", "x", ttl=5)
    clock.now += 6
    assert cache.get("short") is None


def test_zero_ttl_falls_back_to_default():
    clock = FakeClock()
    cache = CacheManager(default_ttl_seconds=30, clock=clock)
    cache.set("k", "v", ttl=0)
    clock.now += 29
    assert cache.get("k") == "v"
    clock.now += 2
    assert cache.get("k") is None


def test_invalidate_pattern_and_cleanup_counts():
    clock = FakeClock()
    cache = CacheManager(default_ttl_seconds=10, clock=clock)
    cache.set("market:fees:100.0", 1)
    cache.set("market:fees:50.0", 2)
    cache.set("other", 3, ttl=100)

    assert cache.invalidate_pattern(r"^market:fees:") == 2
    assert cache.stats()["keys"] == ["other"]

    cache.set("stale", 4, ttl=1)
    clock.now += 2
    assert cache.cleanup() == 1
    assert cache.get("other") == 3


async def test_get_or_set_calls_fetcher_once():
    cache = CacheManager()
    calls = []

    async def fetcher():
        calls.append(1)
        return [1, 2, 3]

    assert await cache.get_or_set("k", fetcher) == [1, 2, 3]
    assert await cache.get_or_set("k", fetcher) == [1, 2, 3]
    assert len(calls) == 1


async def test_periodic_cleanup_runs_until_cancelled():
    clock = FakeClock()
    cache = CacheManager(default_ttl_seconds=1, clock=clock)
    cache.set("k", 1)
    clock.now += 5
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) > 1:
            raise asyncio.CancelledError()

    with pytest.raises(asyncio.CancelledError):
        await run_periodic_cleanup(cache, 300, sleep=fake_sleep)

    assert sleeps == [300, 300]
    assert cache.stats()["size"] == 0
