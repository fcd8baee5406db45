# tests/conftest.py
import pytest
import pytest_asyncio
import redis.asyncio as redis
from redis.exceptions import RedisError

from learnflow.cache.memory_cache import MemoryCache
from learnflow.client import JobQueue


# --- Fixtures ---
@pytest_asyncio.fixture
async def queue():
    q = JobQueue(concurrency=3, retry_attempts=3, retry_delay=0.01)
    yield q
    await q.close()


@pytest.fixture
def memory_cache():
    return MemoryCache(name="test", default_ttl=300.0, max_size=10)


@pytest_asyncio.fixture
async def redis_client():
    r = redis.Redis(host="localhost", port=6379, db=0, decode_responses=True)
    try:
        await r.ping()
    except RedisError:
        await r.aclose()
        pytest.skip("Redis server not running on localhost:6379")
    await r.flushdb()
    yield r
    await r.flushdb()
    await r.aclose()
