"""Tests for the provider TTL cache."""

import pytest

from phishlens.cache import SignalCache


class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSignalCache:
    def test_expiry(self):
        clock = FakeClock()
        cache = SignalCache(ttl_seconds=60, clock=clock)
        cache.set("https://a.example/", "verdict")
        clock.now += 59
        assert cache.get("https://a.example/") == "verdict"
        clock.now += 1
        assert cache.get("https://a.example/") is None

    def test_per_entry_ttl(self):
        clock = FakeClock()
        cache = SignalCache(ttl_seconds=60, clock=clock)
        cache.set("k", "v", ttl_seconds=5)
        clock.now += 5
        assert cache.get("k") is None

    def test_oldest_entries_evicted(self):
        cache = SignalCache(max_entries=2)
        cache.set("a", 1)
        cache.set("b", 2)
        cache.set("c", 3)
        assert cache.get("a") is None
        assert cache.get("c") == 3
        assert cache.get("b") == 2

    @pytest.mark.asyncio
    async def test_get_or_fetch(self):
        cache = SignalCache()
        calls = []

        async def fetch():
            calls.append(1)
            return "fresh"

        assert await cache.get_or_fetch("k", fetch) == "fresh"
        assert await cache.get_or_fetch("k", fetch) == "fresh"
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_get_or_fetch_failure_not_cached(self):
        cache = SignalCache()

        async def fetch():
            raise RuntimeError("down")

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("k", fetch)
        assert cache.get("k") is None
