import asyncio
import time

import pytest

from learnflow.cache.base import CacheStats
from learnflow.cache.memory_cache import MemoryCache


# --- Basic operations ---

def test_set_and_get(memory_cache):
    assert memory_cache.set("users", 1, {"name": "ada"}) is True
    assert memory_cache.get("users", 1) == {"name": "ada"}
    assert memory_cache.get("users", 2) is None


def test_entry_expires_after_ttl(memory_cache):
    memory_cache.set("ns", "k", "value", ttl=0.1)

    time.sleep(0.05)
    assert memory_cache.get("ns", "k") == "value"

    time.sleep(0.1)
    assert memory_cache.get("ns", "k") is None
    assert memory_cache.size() == 0


def test_falsy_ttl_uses_default():
    cache = MemoryCache(default_ttl=0.05)
    cache.set("ns", "k", "value", ttl=0)

    assert cache.get("ns", "k") == "value"
    time.sleep(0.08)
    assert cache.get("ns", "k") is None


def test_set_replaces_existing_value(memory_cache):
    memory_cache.set("ns", "k", 1)
    memory_cache.set("ns", "k", 2)

    assert memory_cache.get("ns", "k") == 2
    assert memory_cache.size() == 1


def test_delete(memory_cache):
    memory_cache.set("ns", "k", 1)

    assert memory_cache.delete("ns", "k") is True
    assert memory_cache.delete("ns", "k") is False
    assert memory_cache.get("ns", "k") is None


def test_namespaces_are_isolated(memory_cache):
    memory_cache.set("a", "x", 1)
    memory_cache.set("a", "y", 2)
    memory_cache.set("b", "x", 3)
    memory_cache.set("ab", "x", 4)

    assert memory_cache.delete_namespace("a") == 2

    assert memory_cache.get("a", "x") is None
    assert memory_cache.get("b", "x") == 3
    assert memory_cache.get("ab", "x") == 4


def test_invalidate_by_pattern_and_exact_key(memory_cache):
    memory_cache.set("ns", "user:1", "a")
    memory_cache.set("ns", "user:2", "b")
    memory_cache.set("ns", "post:1", "c")

    assert memory_cache.invalidate(["ns:user:*"]) == 2
    assert memory_cache.get("ns", "post:1") == "c"

    assert memory_cache.invalidate(["ns:post:1", "ns:missing"]) == 1
    assert memory_cache.size() == 0


def test_invalidate_treats_only_star_as_special(memory_cache):
    memory_cache.set("ns", "a.b", 1)
    memory_cache.set("ns", "aXb", 2)

    assert memory_cache.invalidate(["ns:a.*"]) == 1
    assert memory_cache.get("ns", "aXb") == 2


def test_clear(memory_cache):
    memory_cache.set("a", 1, 1)
    memory_cache.set("b", 1, 1)
    memory_cache.clear()
    assert memory_cache.size() == 0


# --- Eviction ---

def test_full_cache_evicts_least_recently_used():
    cache = MemoryCache(max_size=10)
    for n in range(10):
        cache.set("ns", n, n)

    # touch the oldest entry so the second oldest is evicted instead
    assert cache.get("ns", 0) == 0
    cache.set("ns", "new", "value")

    assert cache.size() == 10
    assert cache.get("ns", 1) is None
    assert cache.get("ns", 0) == 0
    assert cache.get("ns", "new") == "value"
    assert cache.get_stats()["evictions"] == 1


def test_eviction_removes_ten_percent_rounded_up():
    cache = MemoryCache(max_size=25)
    for n in range(25):
        cache.set("ns", n, n)

    cache.set("ns", "overflow", 1)

    # ceil(25 * 0.1) == 3 evicted, then one inserted
    assert cache.size() == 23
    assert [cache.get("ns", n) for n in range(3)] == [None, None, None]


# --- Stats ---

def test_stats_track_hits_and_misses(memory_cache):
    memory_cache.set("ns", "k", 1)
    memory_cache.get("ns", "k")
    memory_cache.get("ns", "k")
    memory_cache.get("ns", "missing")

    stats = memory_cache.get_stats()

    assert stats["hits"] == 2
    assert stats["misses"] == 1
    assert stats["sets"] == 1
    assert stats["size"] == 1
    assert stats["max_size"] == 10
    assert stats["hit_rate"] == 67
    assert stats["backend"] == "memory"


@pytest.mark.parametrize(
    "hits,misses,expected",
    [(0, 0, 0), (1, 1, 50), (1, 7, 13), (1, 0, 100), (0, 3, 0), (1, 199, 1)],
)
def test_hit_rate_is_rounded_percentage(hits, misses, expected):
    assert CacheStats(hits=hits, misses=misses).hit_rate == expected


def test_purge_expired_removes_only_expired(memory_cache):
    memory_cache.set("ns", "short", 1, ttl=0.01)
    memory_cache.set("ns", "long", 2, ttl=60)
    time.sleep(0.03)

    assert memory_cache.purge_expired() == 1
    assert memory_cache.size() == 1


@pytest.mark.asyncio
async def test_background_sweep_purges_expired_entries():
    cache = MemoryCache(sweep_interval=0.02)
    cache.set("ns", "k", 1, ttl=0.01)
    await cache.start()

    await asyncio.sleep(0.08)

    assert cache.size() == 0
    await cache.close()


# --- get_or_set ---

@pytest.mark.asyncio
async def test_get_or_set_computes_once_and_caches(memory_cache):
    calls = []

    async def factory():
        calls.append(1)
        return {"score": 80}

    assert await memory_cache.get_or_set("ns", "k", factory) == {"score": 80}
    assert await memory_cache.get_or_set("ns", "k", factory) == {"score": 80}
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_get_or_set_accepts_sync_factory(memory_cache):
    assert await memory_cache.get_or_set("ns", "k", lambda: 5, ttl=60) == 5
    assert memory_cache.get("ns", "k") == 5


@pytest.mark.asyncio
async def test_get_or_set_is_single_flight(memory_cache):
    calls = []

    async def factory():
        calls.append(1)
        await asyncio.sleep(0.02)
        return "value"

    results = await asyncio.gather(
        *(memory_cache.get_or_set("ns", "k", factory) for _ in range(5))
    )

    assert results == ["value"] * 5
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_get_or_set_survives_first_caller_being_cancelled(memory_cache):
    started = asyncio.Event()
    release = asyncio.Event()

    async def factory():
        started.set()
        await release.wait()
        return "value"

    first = asyncio.create_task(memory_cache.get_or_set("ns", "k", factory))
    await started.wait()
    second = asyncio.create_task(memory_cache.get_or_set("ns", "k", factory))
    await asyncio.sleep(0)

    first.cancel()
    await asyncio.sleep(0)
    release.set()

    assert await asyncio.wait_for(second, 1) == "value"
    assert first.cancelled()
    assert memory_cache.get("ns", "k") == "value"


@pytest.mark.asyncio
async def test_awaitable_interface_matches_sync_one(memory_cache):
    assert await memory_cache.aset("ns", "k", 1) is True
    assert await memory_cache.aget("ns", "k") == 1
    assert await memory_cache.asize() == 1
    assert await memory_cache.ainvalidate(["ns:*"]) == 1
    assert await memory_cache.adelete("ns", "k") is False
    assert (await memory_cache.aget_stats())["hits"] == 1


@pytest.mark.asyncio
async def test_get_or_set_failure_reaches_every_waiter_and_is_not_cached(memory_cache):
    calls = []

    async def factory():
        calls.append(1)
        await asyncio.sleep(0.01)
        raise RuntimeError("boom")

    results = await asyncio.gather(
        *(memory_cache.get_or_set("ns", "k", factory) for _ in range(3)),
        return_exceptions=True,
    )

    assert len(calls) == 1
    assert all(isinstance(r, RuntimeError) for r in results)
    assert memory_cache.get("ns", "k") is None

    assert await memory_cache.get_or_set("ns", "k", lambda: "recovered") == "recovered"
