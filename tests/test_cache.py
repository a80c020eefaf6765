import asyncio
from unittest.mock import patch

from data_sources import cache
from data_sources.cache import cached, clear_cache, get_cache_stats


def test_cached_returns_stored_result():
    calls = []

    @cached(ttl_seconds=60)
    async def lookup(key, scale=1):
        calls.append(key)
        return {"key": key, "value": len(key) * scale}

    async def run():
        first = await lookup("SW1A")
        second = await lookup("SW1A")
        other = await lookup("SW1A", scale=2)
        return first, second, other

    first, second, other = asyncio.run(run())
    assert first == second == {"key": "SW1A", "value": 4}
    assert other["value"] == 8
    assert calls == ["SW1A", "SW1A"]


def test_none_is_not_cached():
    calls = []

    @cached(ttl_seconds=60)
    async def lookup(key):
        calls.append(key)
        return None

    async def run():
        await lookup("x")
        await lookup("x")

    asyncio.run(run())
    assert calls == ["x", "x"]


def test_zero_ttl_disables_caching():
    calls = []

    @cached(ttl_seconds=0)
    async def lookup(key):
        calls.append(key)
        return key

    async def run():
        await lookup("x")
        await lookup("x")

    asyncio.run(run())
    assert len(calls) == 2


def test_entries_expire():
    calls = []

    @cached(ttl_seconds=10)
    async def lookup(key):
        calls.append(key)
        return key

    async def run():
        with patch.object(cache.time, "time", return_value=1000.0):
            await lookup("x")
        with patch.object(cache.time, "time", return_value=1005.0):
            await lookup("x")
        with patch.object(cache.time, "time", return_value=1011.0):
            await lookup("x")

    asyncio.run(run())
    assert len(calls) == 2


def test_clear_cache_by_prefix_and_stats():
    @cached(ttl_seconds=60)
    async def alpha(key):
        return key

    @cached(ttl_seconds=60)
    async def beta(key):
        return key

    async def run():
        await alpha("a")
        await beta("b")
        before = await get_cache_stats()
        await clear_cache("alpha")
        after_prefix = await get_cache_stats()
        await clear_cache()
        after_all = await get_cache_stats()
        return before, after_prefix, after_all

    before, after_prefix, after_all = asyncio.run(run())
    assert before["total_entries"] == 2
    assert before["redis_available"] is False
    assert after_prefix["total_entries"] == 1
    assert after_all["total_entries"] == 0


def test_expired_entries_are_swept_on_an_interval():
    @cached(ttl_seconds=60)
    async def lookup(key):
        return key

    async def run(key, now):
        with patch.object(cache.time, "time", return_value=now):
            await lookup(key)

    with patch.dict(cache.CACHE_TTL, {"upstream": 60}), patch.object(cache, "_last_cleanup", 0.0):
        asyncio.run(run("a", 1000.0))
        asyncio.run(run("b", 1100.0))
        # Expired but the sweep interval has not elapsed
        assert len(cache._cache) == 2

        asyncio.run(run("c", 1000.0 + cache.CLEANUP_INTERVAL_SECONDS))
        assert len(cache._cache) == 1
        assert cache._last_cleanup == 1000.0 + cache.CLEANUP_INTERVAL_SECONDS
