from .base import CacheBackend, CacheStats
from .memory_cache import MemoryCache
from .redis_cache import RedisCache
from .registry import DEFAULT_CACHE_TTLS, CacheRegistry, create_cache, create_caches

__all__ = [
    "CacheBackend",
    "CacheStats",
    "MemoryCache",
    "RedisCache",
    "CacheRegistry",
    "DEFAULT_CACHE_TTLS",
    "create_cache",
    "create_caches",
]
