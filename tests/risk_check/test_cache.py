"""
Single-flight Cache Tests.

============================================================
PURPOSE
============================================================
Verify at-most-one in-flight fetch per key, TTL expiry, and that
failures are never cached.
============================================================
"""

import asyncio

import pytest

from risk_check.cache import SingleFlightCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestSingleFlightCache:
    """Tests for SingleFlightCache."""

    @pytest.mark.asyncio
    async def test_concurrent_callers_share_fetch(self):
        cache = SingleFlightCache(name="test")
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            await asyncio.sleep(0.05)
            return "value"

        results = await asyncio.gather(*(cache.get_or_fetch("k", fetch) for _ in range(5)))

        assert results == ["value"] * 5
        assert calls == 1
        assert cache.get_stats()["fetches"] == 1

    @pytest.mark.asyncio
    async def test_hit_until_expiry(self):
        clock = FakeClock()
        cache = SingleFlightCache(name="test", ttl_seconds=60, clock=clock)
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            return calls

        assert await cache.get_or_fetch("k", fetch) == 1
        clock.now += 59
        assert await cache.get_or_fetch("k", fetch) == 1
        clock.now += 1
        assert await cache.get_or_fetch("k", fetch) == 2

    @pytest.mark.asyncio
    async def test_failure_not_cached(self):
        cache = SingleFlightCache(name="test")
        outcomes = [RuntimeError("upstream down"), "recovered"]

        async def fetch():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        with pytest.raises(RuntimeError):
            await cache.get_or_fetch("k", fetch)

        assert await cache.get_or_fetch("k", fetch) == "recovered"
        assert cache.get_stats()["in_flight"] == 0

    @pytest.mark.asyncio
    async def test_failure_seen_by_every_waiter(self):
        cache = SingleFlightCache(name="test")

        async def fetch():
            await asyncio.sleep(0.02)
            raise ValueError("bad payload")

        results = await asyncio.gather(
            cache.get_or_fetch("k", fetch),
            cache.get_or_fetch("k", fetch),
            return_exceptions=True,
        )

        assert all(isinstance(r, ValueError) for r in results)

    @pytest.mark.asyncio
    async def test_cancelled_waiter_does_not_cancel_fetch(self):
        cache = SingleFlightCache(name="test")

        async def fetch():
            await asyncio.sleep(0.05)
            return "value"

        first = asyncio.ensure_future(cache.get_or_fetch("k", fetch))
        second = asyncio.ensure_future(cache.get_or_fetch("k", fetch))
        await asyncio.sleep(0.01)
        first.cancel()

        assert await second == "value"
        assert first.cancelled()

    @pytest.mark.asyncio
    async def test_none_is_not_cached(self):
        cache = SingleFlightCache(name="test")
        calls = 0

        async def fetch():
            nonlocal calls
            calls += 1
            return None

        await cache.get_or_fetch("k", fetch)
        await cache.get_or_fetch("k", fetch)

        assert calls == 2

    @pytest.mark.asyncio
    async def test_clear(self):
        cache = SingleFlightCache(name="test")

        async def fetch():
            return "value"

        await cache.get_or_fetch("k", fetch)
        cache.clear()

        assert cache.get("k") is None
        assert cache.get_stats()["entries"] == 0
