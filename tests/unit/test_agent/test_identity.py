"""Tests for the memoized node name cache."""

import asyncio

import pytest

from consul_agent.agent.identity import NodeNameCache
from consul_agent.core.exceptions import ConsulConnectionError


class CountingFetch:
    """Fetch stub that counts calls and yields to the loop before answering."""

    def __init__(self, value="node-A", failures=0):
        self.value = value
        self.failures = failures
        self.calls = 0
        self.release = asyncio.Event()
        self.release.set()

    async def __call__(self):
        self.calls += 1
        await asyncio.sleep(0)
        await self.release.wait()
        if self.failures:
            self.failures -= 1
            raise ConsulConnectionError("agent unreachable", operation="self")
        return self.value


@pytest.mark.asyncio
class TestNodeNameCache:
    """Test compute-once behavior."""

    async def test_first_call_fetches_and_stores(self):
        fetch = CountingFetch()
        cache = NodeNameCache(fetch)

        assert not cache.resolved
        assert await cache.get() == "node-A"
        assert cache.resolved
        assert fetch.calls == 1

    async def test_later_calls_use_memoized_value(self):
        fetch = CountingFetch()
        cache = NodeNameCache(fetch)

        for _ in range(5):
            assert await cache.get() == "node-A"

        assert fetch.calls == 1

    async def test_concurrent_callers_share_one_fetch(self):
        """N racing callers before resolution issue exactly one fetch."""
        fetch = CountingFetch()
        fetch.release.clear()
        cache = NodeNameCache(fetch)

        tasks = [asyncio.create_task(cache.get()) for _ in range(50)]
        await asyncio.sleep(0)
        fetch.release.set()
        results = await asyncio.gather(*tasks)

        assert results == ["node-A"] * 50
        assert fetch.calls == 1

    async def test_failure_propagates_and_does_not_poison(self):
        fetch = CountingFetch(failures=1)
        cache = NodeNameCache(fetch)

        with pytest.raises(ConsulConnectionError):
            await cache.get()

        assert not cache.resolved
        assert await cache.get() == "node-A"
        assert fetch.calls == 2

    async def test_cancelled_fetch_leaves_cache_unresolved(self):
        fetch = CountingFetch()
        fetch.release.clear()
        cache = NodeNameCache(fetch)

        task = asyncio.create_task(cache.get())
        await asyncio.sleep(0.01)
        task.cancel()

        with pytest.raises(asyncio.CancelledError):
            await task

        assert not cache.resolved

        fetch.release.set()
        assert await cache.get() == "node-A"
        assert fetch.calls == 2

    async def test_timeout_leaves_cache_retryable(self):
        fetch = CountingFetch()
        fetch.release.clear()
        cache = NodeNameCache(fetch)

        with pytest.raises(TimeoutError):
            async with asyncio.timeout(0.01):
                await cache.get()

        fetch.release.set()
        assert await cache.get() == "node-A"

    async def test_value_never_changes_after_resolution(self):
        fetch = CountingFetch()
        cache = NodeNameCache(fetch)
        await cache.get()

        fetch.value = "node-B"

        assert await cache.get() == "node-A"
        assert fetch.calls == 1
