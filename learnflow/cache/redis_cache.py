"""Redis-backed cache with an in-memory fallback."""

import logging
import re
from typing import Any, Dict, Iterable, List, Optional

import redis.asyncio as redis
from redis.exceptions import RedisError

from learnflow.common.exceptions import CacheSerializationError
from learnflow.serialization.base import BaseSerializer
from learnflow.serialization.json_serializer import JsonSerializer
from .base import CacheBackend, CacheStats, make_key
from .memory_cache import MemoryCache

logger = logging.getLogger(__name__)

_GLOB_SPECIAL = re.compile(r"([?\[\]\\*])")
_GLOB_SPECIAL_EXCEPT_STAR = re.compile(r"([?\[\]\\])")


def escape_glob(text: str, keep_star: bool = False) -> str:
    """Escapes Redis MATCH metacharacters, optionally leaving `*` active."""
    pattern = _GLOB_SPECIAL_EXCEPT_STAR if keep_star else _GLOB_SPECIAL
    return pattern.sub(r"\\\1", text)


class RedisCache(CacheBackend):
    """
    Cache stored in Redis under `<prefix>:<cache name>:<namespace>:<key>`.

    Values are JSON-serialized and expire through Redis TTLs. Errors from
    Redis are logged and turned into safe defaults (None for reads, False or
    0 for writes). The connection is checked on first use (or by `start()`);
    when Redis cannot be reached, every operation is served by an in-memory
    fallback cache instead.

    Only the awaitable interface is available, on a `redis.asyncio` client.
    """

    backend_name = "redis"

    def __init__(
        self,
        redis_client: redis.Redis,
        name: str = "general",
        default_ttl: float = 300.0,
        key_prefix: str = "learnflow",
        serializer: Optional[BaseSerializer] = None,
        fallback: Optional[MemoryCache] = None,
        scan_count: int = 500,
    ):
        super().__init__(name, default_ttl)
        self.redis_client = redis_client
        self.key_prefix = f"{key_prefix}:{name}:"
        self.serializer = serializer or JsonSerializer()
        self.fallback = fallback or MemoryCache(name=name, default_ttl=default_ttl)
        self.scan_count = scan_count
        self._available: Optional[bool] = None
        self._stats = CacheStats()

    @classmethod
    def from_url(cls, url: str, socket_timeout: float = 5.0, **kwargs: Any) -> "RedisCache":
        client = redis.Redis.from_url(
            url,
            decode_responses=True,
            socket_timeout=socket_timeout,
            socket_connect_timeout=socket_timeout,
        )
        return cls(client, **kwargs)

    async def connect(self) -> bool:
        """Checks the connection; switches to the in-memory fallback if Redis is unreachable."""
        try:
            await self.redis_client.ping()
            self._available = True
        except RedisError as e:
            logger.warning(
                f"Redis unavailable for cache {self.name}, using in-memory fallback: {e}",
                extra={"event": "cache_fallback", "cache": self.name, "error": str(e)},
            )
            self._available = False
        return self._available

    async def _use_redis(self) -> bool:
        if self._available is None:
            await self.connect()
        return self._available

    @property
    def using_fallback(self) -> bool:
        return self._available is False

    def _redis_key(self, namespace: str, key: Any) -> str:
        return self.key_prefix + make_key(namespace, key)

    def _log_error(self, operation: str, error: Exception) -> None:
        logger.error(
            f"Cache {operation} error in {self.name}: {error}",
            extra={"event": "cache_error", "cache": self.name, "error": str(error)},
        )

    async def aget(self, namespace: str, key: Any) -> Optional[Any]:
        if not await self._use_redis():
            return await self.fallback.aget(namespace, key)
        try:
            data = await self.redis_client.get(self._redis_key(namespace, key))
        except RedisError as e:
            self._log_error("get", e)
            self._stats.misses += 1
            return None

        if data is None:
            self._stats.misses += 1
            return None
        try:
            value = self.serializer.deserialize_value(data)
        except CacheSerializationError as e:
            self._log_error("get", e)
            self._stats.misses += 1
            return None
        self._stats.hits += 1
        return value

    async def aset(self, namespace: str, key: Any, value: Any, ttl: Optional[float] = None) -> bool:
        if not await self._use_redis():
            return await self.fallback.aset(namespace, key, value, ttl)
        try:
            data = self.serializer.serialize_value(value)
            ttl_ms = max(1, int((ttl or self.default_ttl) * 1000))
            await self.redis_client.set(self._redis_key(namespace, key), data, px=ttl_ms)
        except (RedisError, CacheSerializationError) as e:
            self._log_error("set", e)
            return False
        self._stats.sets += 1
        return True

    async def adelete(self, namespace: str, key: Any) -> bool:
        if not await self._use_redis():
            return await self.fallback.adelete(namespace, key)
        try:
            deleted = await self.redis_client.delete(self._redis_key(namespace, key))
        except RedisError as e:
            self._log_error("delete", e)
            return False
        self._stats.deletes += deleted
        return deleted > 0

    async def _delete_matching(self, match: str) -> int:
        removed = 0
        batch: List[str] = []
        async for redis_key in self.redis_client.scan_iter(match=match, count=self.scan_count):
            batch.append(redis_key)
            if len(batch) >= self.scan_count:
                removed += await self.redis_client.delete(*batch)
                batch = []
        if batch:
            removed += await self.redis_client.delete(*batch)
        return removed

    async def adelete_namespace(self, namespace: str) -> int:
        if not await self._use_redis():
            return await self.fallback.adelete_namespace(namespace)
        try:
            removed = await self._delete_matching(f"{escape_glob(self.key_prefix + namespace)}:*")
        except RedisError as e:
            self._log_error("delete_namespace", e)
            return 0
        self._stats.deletes += removed
        return removed

    async def ainvalidate(self, patterns: Iterable[str]) -> int:
        if not await self._use_redis():
            return await self.fallback.ainvalidate(patterns)
        invalidated = 0
        try:
            for pattern in patterns:
                if "*" in pattern:
                    match = escape_glob(self.key_prefix) + escape_glob(pattern, keep_star=True)
                    invalidated += await self._delete_matching(match)
                else:
                    invalidated += await self.redis_client.delete(self.key_prefix + pattern)
        except RedisError as e:
            self._log_error("invalidate", e)
        self._stats.deletes += invalidated
        return invalidated

    async def aclear(self) -> None:
        if not await self._use_redis():
            await self.fallback.aclear()
            return
        try:
            await self._delete_matching(escape_glob(self.key_prefix) + "*")
        except RedisError as e:
            self._log_error("clear", e)

    async def asize(self) -> int:
        if not await self._use_redis():
            return await self.fallback.asize()
        count = 0
        try:
            async for _ in self.redis_client.scan_iter(
                match=escape_glob(self.key_prefix) + "*", count=self.scan_count
            ):
                count += 1
        except RedisError as e:
            self._log_error("size", e)
            return 0
        return count

    async def aget_stats(self) -> Dict[str, Any]:
        if not await self._use_redis():
            return {**(await self.fallback.aget_stats()), "backend": "memory-fallback"}
        return {
            **self._stats.to_dict(),
            "size": await self.asize(),
            "max_size": None,
            "backend": self.backend_name,
        }

    def purge_expired(self) -> int:
        # Redis expires keys itself
        if self.using_fallback:
            return self.fallback.purge_expired()
        return 0

    async def start(self) -> None:
        if not await self._use_redis():
            await self.fallback.start()

    async def stop(self) -> None:
        await self.fallback.stop()

    async def close(self) -> None:
        await self.fallback.close()
        try:
            await self.redis_client.aclose()
        except RedisError as e:
            self._log_error("close", e)
