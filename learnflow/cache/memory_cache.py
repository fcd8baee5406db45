"""In-memory cache implementation."""

import asyncio
import logging
import math
import time
from collections import OrderedDict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from .base import CacheBackend, CacheStats, glob_to_regex, make_key

logger = logging.getLogger(__name__)


@dataclass
class CacheEntry:
    """A single cache entry. Times come from time.monotonic()."""
    namespace: str
    key: str
    value: Any
    expires_at: float
    created_at: float = field(default_factory=time.monotonic)
    access_count: int = 0
    last_accessed: float = field(default_factory=time.monotonic)

    def is_expired(self, now: Optional[float] = None) -> bool:
        return (now if now is not None else time.monotonic()) >= self.expires_at


class MemoryCache(CacheBackend):
    """
    Process-local cache with TTL expiry and LRU eviction.

    Expired entries are dropped lazily by `get` and periodically by a
    background sweep started with `start()`. When the cache is full, the
    least recently used 10% of capacity is evicted before inserting.
    """

    backend_name = "memory"

    def __init__(
        self,
        name: str = "general",
        default_ttl: float = 300.0,
        max_size: int = 1000,
        sweep_interval: float = 60.0,
    ):
        super().__init__(name, default_ttl)
        self.max_size = max_size
        self.sweep_interval = sweep_interval
        self._entries: OrderedDict[str, CacheEntry] = OrderedDict()
        self._stats = CacheStats()
        self._sweep_task: Optional[asyncio.Task] = None

    def get(self, namespace: str, key: Any) -> Optional[Any]:
        cache_key = make_key(namespace, key)
        entry = self._entries.get(cache_key)

        if entry is None:
            self._stats.misses += 1
            return None

        if entry.is_expired():
            del self._entries[cache_key]
            self._stats.misses += 1
            return None

        # Move to end (most recently used)
        self._entries.move_to_end(cache_key)
        entry.access_count += 1
        entry.last_accessed = time.monotonic()
        self._stats.hits += 1
        return entry.value

    def set(self, namespace: str, key: Any, value: Any, ttl: Optional[float] = None) -> bool:
        cache_key = make_key(namespace, key)
        now = time.monotonic()

        if cache_key in self._entries:
            del self._entries[cache_key]
        elif len(self._entries) >= self.max_size:
            self._evict()

        self._entries[cache_key] = CacheEntry(
            namespace=namespace,
            key=str(key),
            value=value,
            expires_at=now + (ttl or self.default_ttl),
            created_at=now,
            last_accessed=now,
        )
        self._stats.sets += 1
        return True

    def delete(self, namespace: str, key: Any) -> bool:
        if self._entries.pop(make_key(namespace, key), None) is None:
            return False
        self._stats.deletes += 1
        return True

    def delete_namespace(self, namespace: str) -> int:
        prefix = f"{namespace}:"
        doomed = [k for k in self._entries if k.startswith(prefix)]
        for cache_key in doomed:
            del self._entries[cache_key]
        self._stats.deletes += len(doomed)
        return len(doomed)

    def invalidate(self, patterns: Iterable[str]) -> int:
        """Deletes entries by exact `namespace:key` or by `*` wildcard patterns."""
        invalidated = 0
        for pattern in patterns:
            if "*" in pattern:
                regex = glob_to_regex(pattern)
                doomed = [k for k in self._entries if regex.match(k)]
                for cache_key in doomed:
                    del self._entries[cache_key]
                invalidated += len(doomed)
            elif self._entries.pop(pattern, None) is not None:
                invalidated += 1
        self._stats.deletes += invalidated
        return invalidated

    def clear(self) -> None:
        self._entries.clear()

    def size(self) -> int:
        return len(self._entries)

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self._stats.to_dict(),
            "size": len(self._entries),
            "max_size": self.max_size,
            "backend": self.backend_name,
        }

    # Awaitable interface; entries live in process memory so nothing blocks.

    async def aget(self, namespace: str, key: Any) -> Optional[Any]:
        return self.get(namespace, key)

    async def aset(self, namespace: str, key: Any, value: Any, ttl: Optional[float] = None) -> bool:
        return self.set(namespace, key, value, ttl)

    async def adelete(self, namespace: str, key: Any) -> bool:
        return self.delete(namespace, key)

    async def adelete_namespace(self, namespace: str) -> int:
        return self.delete_namespace(namespace)

    async def ainvalidate(self, patterns: Iterable[str]) -> int:
        return self.invalidate(patterns)

    async def aclear(self) -> None:
        self.clear()

    async def asize(self) -> int:
        return self.size()

    async def aget_stats(self) -> Dict[str, Any]:
        return self.get_stats()

    def purge_expired(self) -> int:
        now = time.monotonic()
        expired = [k for k, entry in self._entries.items() if entry.is_expired(now)]
        for cache_key in expired:
            del self._entries[cache_key]
        if expired:
            logger.info(
                f"Cache cleanup: removed {len(expired)} expired entries",
                extra={"event": "cache_sweep", "cache": self.name},
            )
        return len(expired)

    def _evict(self) -> None:
        # Least recently used entries sit at the front of the OrderedDict
        to_remove = min(len(self._entries), math.ceil(self.max_size * 0.1))
        for _ in range(to_remove):
            self._entries.popitem(last=False)
        self._stats.evictions += to_remove

    async def start(self) -> None:
        """Start the background sweep of expired entries."""
        if self._sweep_task is not None and not self._sweep_task.done():
            return
        self._sweep_task = asyncio.create_task(
            self._sweep_loop(), name=f"learnflow:cache-sweep:{self.name}"
        )

    async def stop(self) -> None:
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        try:
            await self._sweep_task
        except asyncio.CancelledError:
            pass
        self._sweep_task = None

    async def close(self) -> None:
        await self.stop()
        self.clear()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self.sweep_interval)
            try:
                self.purge_expired()
            except Exception:
                logger.exception(f"Cache sweep failed for {self.name}")
