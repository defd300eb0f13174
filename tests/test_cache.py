import asyncio
import os
import sys
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

import pytest

from agroquote.cache import RefreshCache
from agroquote.errors import FeedUnavailableError


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now


class CountingLoader:
    def __init__(self, delay=0.0):
        self.calls = 0
        self.delay = delay
        self.fail = False

    async def __call__(self):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise FeedUnavailableError("sin conexion")
        return f"snapshot-{self.calls}"


def test_cached_within_ttl():
    clock = FakeClock()
    cache = RefreshCache(60, clock=clock)
    loader = CountingLoader()

    async def run():
        a = await cache.get(loader)
        clock.now += 30
        b = await cache.get(loader)
        return a, b

    a, b = asyncio.run(run())
    assert a == b == "snapshot-1"
    assert loader.calls == 1
    assert cache.is_fresh()


def test_refetch_after_ttl():
    clock = FakeClock()
    cache = RefreshCache(60, clock=clock)
    loader = CountingLoader()

    async def run():
        await cache.get(loader)
        clock.now += 61
        assert not cache.is_fresh()
        return await cache.get(loader)

    assert asyncio.run(run()) == "snapshot-2"
    assert loader.calls == 2


def test_force_always_refetches():
    cache = RefreshCache(60, clock=FakeClock())
    loader = CountingLoader()

    async def run():
        await cache.get(loader)
        await cache.get(loader, force=True)
        return await cache.get(loader, force=True)

    assert asyncio.run(run()) == "snapshot-3"
    assert loader.calls == 3


def test_failed_refresh_keeps_previous_snapshot():
    clock = FakeClock()
    cache = RefreshCache(60, clock=clock)
    loader = CountingLoader()

    async def run():
        await cache.get(loader)
        loader.fail = True
        clock.now += 120
        with pytest.raises(FeedUnavailableError):
            await cache.get(loader)

    asyncio.run(run())
    assert cache.peek() == "snapshot-1"
    assert not cache.is_fresh()


def test_concurrent_callers_share_one_refresh():
    cache = RefreshCache(60, clock=FakeClock())
    loader = CountingLoader(delay=0.01)

    async def run():
        return await asyncio.gather(*[cache.get(loader) for _ in range(5)])

    results = asyncio.run(run())
    assert results == ["snapshot-1"] * 5
    assert loader.calls == 1


def test_invalidate():
    cache = RefreshCache(60, clock=FakeClock())
    loader = CountingLoader()

    async def run():
        await cache.get(loader)
        cache.invalidate()
        return await cache.get(loader)

    assert asyncio.run(run()) == "snapshot-2"


def test_empty_cache():
    cache = RefreshCache(60)
    assert cache.peek() is None
    assert not cache.is_fresh()


class SheetLoader:
    """返回调用时刻的表格内容，抓取过程有延迟。"""

    def __init__(self, content):
        self.content = content
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        seen = self.content
        await asyncio.sleep(0.02)
        return seen


def test_force_during_running_refresh_refetches():
    cache = RefreshCache(60, clock=FakeClock())
    loader = SheetLoader("old")

    async def run():
        first = asyncio.ensure_future(cache.get(loader))
        await asyncio.sleep(0.005)
        loader.content = "new"
        forced = await cache.get(loader, force=True)
        return await first, forced

    first, forced = asyncio.run(run())
    assert first == "old"
    assert forced == "new"
    assert loader.calls == 2
    assert cache.peek() == "new"


def test_concurrent_forced_callers_share_one_refresh():
    cache = RefreshCache(60, clock=FakeClock())
    loader = CountingLoader(delay=0.01)

    async def run():
        await cache.get(loader)
        return await asyncio.gather(*[cache.get(loader, force=True) for _ in range(3)])

    assert asyncio.run(run()) == ["snapshot-2"] * 3
    assert loader.calls == 2
