"""
Provider Result Cache - TTL cache with single-flight fetches.

Sits in front of slow upstream lookups (VirusTotal by domain, Subscan by
address). Guarantees at most one in-flight fetch per key: concurrent
callers for the same key await the same fetch. Failures are never cached.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar


logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class CacheEntry(Generic[T]):
    """Cached value with expiry."""
    data: T
    created_at: float
    expires_at: float
    hits: int = 0

    def is_expired(self, now: float) -> bool:
        return now >= self.expires_at


def _consume_result(task: "asyncio.Future[Any]") -> None:
    # Retrieve the exception so abandoned fetches don't warn on GC
    if not task.cancelled():
        task.exception()


class SingleFlightCache(Generic[T]):
    """
    Async TTL cache with at-most-one-in-flight fetch per key.

    Usage:
        cache = SingleFlightCache(name="virustotal", ttl_seconds=300)
        result = await cache.get_or_fetch(domain, lambda: fetch(domain))
    """

    MAX_ENTRIES = 1000

    def __init__(
        self,
        name: str,
        ttl_seconds: float = 300,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.name = name
        self._ttl = ttl_seconds
        self._clock = clock
        self._entries: dict[str, CacheEntry[T]] = {}
        self._inflight: dict[str, asyncio.Future[T]] = {}
        self._hits = 0
        self._misses = 0
        self._fetches = 0

    def get(self, key: str) -> Optional[T]:
        """Return a fresh cached value or None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._entries[key]
            return None
        entry.hits += 1
        return entry.data

    async def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], Awaitable[T]],
    ) -> T:
        """
        Return the cached value for key, fetching it if missing or expired.

        Concurrent calls for the same key share one fetch. If the fetch
        raises, every waiter sees the error and nothing is cached.
        """
        cached = self.get(key)
        if cached is not None:
            self._hits += 1
            logger.debug(f"[{self.name}] Cache hit for {key}")
            return cached

        self._misses += 1
        inflight = self._inflight.get(key)
        if inflight is None:
            inflight = asyncio.ensure_future(self._load(key, fetch))
            inflight.add_done_callback(_consume_result)
            self._inflight[key] = inflight
        else:
            logger.debug(f"[{self.name}] Joining in-flight fetch for {key}")

        # One waiter being cancelled must not cancel the shared fetch
        return await asyncio.shield(inflight)

    async def _load(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        self._fetches += 1
        try:
            value = await fetch()
            self._put(key, value)
            return value
        finally:
            self._inflight.pop(key, None)

    def _put(self, key: str, value: T) -> None:
        now = self._clock()
        self._entries[key] = CacheEntry(
            data=value,
            created_at=now,
            expires_at=now + self._ttl,
        )
        if len(self._entries) > self.MAX_ENTRIES:
            self._evict_expired()

    def _evict_expired(self) -> None:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if e.is_expired(now)]
        for key in expired:
            del self._entries[key]
        logger.debug(f"[{self.name}] Evicted {len(expired)} expired entries")

    def clear(self) -> None:
        self._entries.clear()
        logger.info(f"[{self.name}] Cache cleared")

    def get_stats(self) -> dict[str, Any]:
        total = self._hits + self._misses
        hit_rate = (self._hits / total * 100) if total > 0 else 0
        return {
            "entries": len(self._entries),
            "in_flight": len(self._inflight),
            "hits": self._hits,
            "misses": self._misses,
            "fetches": self._fetches,
            "hit_rate_percent": round(hit_rate, 2),
        }
