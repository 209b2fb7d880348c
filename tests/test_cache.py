import asyncio

import pytest

from herokeeper.cache import _MISSING, AsyncTTLCache, cached


class Source:
    def __init__(self, cache):
        self.calls = 0
        self.fail = False

        @cached(cache=cache, key_func=lambda key: f"k:{key}", retry=2, retry_delay=0)
        async def load(key):
            self.calls += 1
            if self.fail:
                raise ConnectionError("db down")
            return f"{key}-{self.calls}"

        self.load = load


class TestAsyncTTLCache:
    def test_set_get_invalidate(self):
        cache = AsyncTTLCache(maxsize=4, ttl=60)
        cache.set("a", 1)
        assert cache.get("a") == 1

        cache.invalidate("a")
        assert cache.get("a") is _MISSING
        assert cache.get_stale("a") == 1

    def test_stale_tier_is_bounded(self):
        cache = AsyncTTLCache(maxsize=2, ttl=60)
        for key in "abc":
            cache.set(key, key)
        assert cache.stale_size == 2
        assert cache.get_stale("a") is _MISSING


class TestCached:
    def test_second_read_is_served_from_cache(self):
        source = Source(AsyncTTLCache(ttl=60))

        async def scenario():
            return await source.load("x"), await source.load("x")

        assert asyncio.run(scenario()) == ("x-1", "x-1")
        assert source.calls == 1

    def test_outage_falls_back_to_stale(self):
        cache = AsyncTTLCache(ttl=60)
        source = Source(cache)
        asyncio.run(source.load("x"))
        cache.invalidate("k:x")
        source.fail = True

        assert asyncio.run(source.load("x")) == "x-1"
        assert source.calls == 3

    def test_outage_without_stale_raises(self):
        source = Source(AsyncTTLCache(ttl=60))
        source.fail = True

        with pytest.raises(ConnectionError):
            asyncio.run(source.load("x"))
