"""Named caches used by the learning platform."""

import asyncio
import logging
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Optional

from .base import CacheBackend
from .memory_cache import MemoryCache
from .redis_cache import RedisCache

if TYPE_CHECKING:
    from learnflow.config import Settings

logger = logging.getLogger(__name__)

# None means "use the configured default TTL"
DEFAULT_CACHE_TTLS: Dict[str, Optional[float]] = {
    "video_analysis": 3600.0,
    "readiness": 300.0,
    "career_data": 1800.0,
    "general": None,
}


class CacheRegistry:
    """Holds the named caches and fans lifecycle and stats calls out to them."""

    def __init__(self, caches: Dict[str, CacheBackend]):
        self._caches = dict(caches)

    def __getitem__(self, name: str) -> CacheBackend:
        return self._caches[name]

    def __contains__(self, name: str) -> bool:
        return name in self._caches

    def __iter__(self) -> Iterator[str]:
        return iter(self._caches)

    def names(self) -> List[str]:
        return list(self._caches)

    async def clear(self, name: Optional[str] = None) -> List[str]:
        """Clears one cache, or all of them. Raises KeyError for an unknown name."""
        if name is None:
            targets = self.names()
        elif name in self._caches:
            targets = [name]
        else:
            raise KeyError(name)

        for target in targets:
            await self._caches[target].aclear()
        logger.info(f"Cleared caches: {', '.join(targets)}")
        return targets

    async def get_stats(self) -> Dict[str, Dict[str, Any]]:
        return {name: await cache.aget_stats() for name, cache in self._caches.items()}

    async def total_size(self) -> int:
        return sum([await cache.asize() for cache in self._caches.values()])

    async def start(self) -> None:
        for cache in self._caches.values():
            await cache.start()

    async def stop(self) -> None:
        await asyncio.gather(*(cache.stop() for cache in self._caches.values()))

    async def close(self) -> None:
        await asyncio.gather(*(cache.close() for cache in self._caches.values()))


def create_cache(name: str, settings: "Settings", default_ttl: Optional[float] = None) -> CacheBackend:
    ttl = default_ttl or settings.cache_default_ttl
    fallback = MemoryCache(
        name=name,
        default_ttl=ttl,
        max_size=settings.cache_max_size,
        sweep_interval=settings.cache_sweep_interval,
    )
    redis_url = settings.cache_redis_url
    if not redis_url:
        return fallback

    # the connection is checked when the cache starts or is first used
    return RedisCache.from_url(redis_url, name=name, default_ttl=ttl, fallback=fallback)


def create_caches(settings: "Settings") -> CacheRegistry:
    """Builds every named cache, Redis-backed when Redis is configured."""
    return CacheRegistry(
        {name: create_cache(name, settings, ttl) for name, ttl in DEFAULT_CACHE_TTLS.items()}
    )
