# learnflow/cache/base.py
import asyncio
import inspect
import math
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Union

CacheFactory = Callable[[], Union[Any, Awaitable[Any]]]


def make_key(namespace: str, key: Any) -> str:
    return f"{namespace}:{key}"


def glob_to_regex(pattern: str) -> "re.Pattern[str]":
    """Translates a pattern where only `*` is special into an anchored regex."""
    return re.compile("^" + ".*".join(re.escape(part) for part in pattern.split("*")) + "$")


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    sets: int = 0
    deletes: int = 0
    evictions: int = 0

    @property
    def hit_rate(self) -> int:
        """Hit rate as a whole percentage, rounded half up; 0 before any lookup."""
        total = self.hits + self.misses
        if total == 0:
            return 0
        return math.floor(self.hits / total * 100 + 0.5)

    def to_dict(self) -> Dict[str, int]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "evictions": self.evictions,
            "hit_rate": self.hit_rate,
        }


class CacheBackend(ABC):
    """
    Namespaced key/value cache with per-entry TTL.

    Entries are addressed by (namespace, key) and stored internally under
    `namespace:key`. A falsy ttl means "use the default TTL"; there is no
    never-expire option.

    Code running on the event loop uses the awaitable methods (`aget`,
    `aset`, ...), which every backend provides. The in-memory cache also
    offers plain synchronous counterparts.
    """

    backend_name = "base"

    def __init__(self, name: str = "general", default_ttl: float = 300.0):
        self.name = name
        self.default_ttl = default_ttl
        self._inflight: Dict[str, asyncio.Future] = {}

    @abstractmethod
    async def aget(self, namespace: str, key: Any) -> Optional[Any]: ...

    @abstractmethod
    async def aset(self, namespace: str, key: Any, value: Any, ttl: Optional[float] = None) -> bool: ...

    @abstractmethod
    async def adelete(self, namespace: str, key: Any) -> bool: ...

    @abstractmethod
    async def adelete_namespace(self, namespace: str) -> int: ...

    @abstractmethod
    async def ainvalidate(self, patterns: Iterable[str]) -> int: ...

    @abstractmethod
    async def aclear(self) -> None: ...

    @abstractmethod
    async def asize(self) -> int: ...

    @abstractmethod
    async def aget_stats(self) -> Dict[str, Any]: ...

    def purge_expired(self) -> int:
        return 0

    async def start(self) -> None:
        pass

    async def stop(self) -> None:
        pass

    async def close(self) -> None:
        await self.stop()

    async def get_or_set(
        self,
        namespace: str,
        key: Any,
        factory: CacheFactory,
        ttl: Optional[float] = None,
    ) -> Any:
        """
        Returns the cached value, or computes it with `factory`, stores and
        returns it. Concurrent callers for the same missing key share a single
        factory call; if it raises, every caller sees the exception and
        nothing is stored.

        The factory runs in its own task, so cancelling one caller leaves the
        computation and the other callers alone.
        """
        value = await self.aget(namespace, key)
        if value is not None:
            return value

        cache_key = make_key(namespace, key)
        task = self._inflight.get(cache_key)
        if task is None:
            task = asyncio.ensure_future(self._compute(namespace, key, factory, ttl))
            self._inflight[cache_key] = task
            task.add_done_callback(lambda done: self._forget(cache_key, done))
        return await asyncio.shield(task)

    async def _compute(self, namespace: str, key: Any, factory: CacheFactory, ttl: Optional[float]) -> Any:
        value = factory()
        if inspect.isawaitable(value):
            value = await value
        await self.aset(namespace, key, value, ttl)
        return value

    def _forget(self, cache_key: str, task: asyncio.Future) -> None:
        if self._inflight.get(cache_key) is task:
            del self._inflight[cache_key]
        if not task.cancelled():
            task.exception()  # mark retrieved when every caller went away
