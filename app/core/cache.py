"""In-memory TTL cache for tenant-scoped content.

One instance is shared by every request in the process. Entries are fresh for
``ttl`` seconds after they were written; stale entries are dropped on read and
trigger a reload. Concurrent misses on the same key share one in-flight load.
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Hashable
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default TTL in seconds (12 hours)
DEFAULT_TTL = 12 * 60 * 60


@dataclass(frozen=True)
class CacheEntry(Generic[T]):
    value: T
    written_at: float

    def is_fresh(self, now: float, ttl: float) -> bool:
        return now - self.written_at < ttl


class ContentCache:
    """TTL cache with per-key load coalescing.

    ``clock`` is injectable so tests can move time forward without sleeping.
    """

    def __init__(
        self,
        ttl: float = DEFAULT_TTL,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self._clock = clock
        self._entries: dict[Hashable, CacheEntry[Any]] = {}
        self._in_flight: dict[Hashable, asyncio.Task[Any]] = {}

    def get(self, key: Hashable) -> Any | None:
        """Return cached value if present and not expired, else None."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if not entry.is_fresh(self._clock(), self.ttl):
            self._entries.pop(key, None)
            logger.info("Cache expired for key %s", key)
            return None
        return entry.value

    def peek(self, key: Hashable) -> CacheEntry[Any] | None:
        """Return the raw entry regardless of freshness."""
        return self._entries.get(key)

    def is_fresh(self, key: Hashable) -> bool:
        entry = self._entries.get(key)
        return entry is not None and entry.is_fresh(self._clock(), self.ttl)

    def put(self, key: Hashable, value: Any) -> None:
        """Store a value in the cache."""
        self._entries[key] = CacheEntry(value=value, written_at=self._clock())

    def invalidate(self, key: Hashable | None = None) -> None:
        """Remove one entry, or every entry when ``key`` is None."""
        if key is None:
            size = len(self._entries)
            self._entries.clear()
            logger.info("Cleared entire content cache (%d entries)", size)
        else:
            self._entries.pop(key, None)

    def clear(self) -> None:
        self.invalidate()

    def keys(self) -> list[Hashable]:
        return list(self._entries)

    def now(self) -> float:
        return self._clock()

    async def get_or_load(
        self, key: Hashable, loader: Callable[[], Awaitable[T]]
    ) -> T:
        """Return a fresh value for ``key``, loading it at most once concurrently.

        Callers arriving while a load is running await that same load. A failed
        load stores nothing and re-raises in every waiter.
        """
        value = self.get(key)
        if value is not None:
            return value
        return await self._join_or_start(key, loader, "Cache miss for key %s, loading")

    async def reload(self, key: Hashable, loader: Callable[[], Awaitable[T]]) -> T:
        """Load ``key`` again even if fresh, replacing the entry on success.

        A load already running for ``key`` is joined instead of starting another.
        """
        return await self._join_or_start(key, loader, "Reloading key %s")

    async def _join_or_start(
        self, key: Hashable, loader: Callable[[], Awaitable[T]], message: str
    ) -> T:
        task = self._in_flight.get(key)
        if task is None:
            logger.info(message, key)
            task = asyncio.ensure_future(self._load(key, loader))
            self._in_flight[key] = task
        return await asyncio.shield(task)

    async def _load(self, key: Hashable, loader: Callable[[], Awaitable[T]]) -> T:
        try:
            value = await loader()
            self.put(key, value)
            return value
        finally:
            self._in_flight.pop(key, None)

    def stats(self) -> dict:
        now = self._clock()
        fresh = sum(1 for e in self._entries.values() if e.is_fresh(now, self.ttl))
        return {
            "size": len(self._entries),
            "fresh": fresh,
            "ttl_seconds": self.ttl,
            "in_flight": [str(k) for k in self._in_flight],
        }
