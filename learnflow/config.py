# learnflow/config.py
import os
from dataclasses import dataclass
from typing import Callable, Mapping, Optional, TypeVar
from urllib.parse import quote, urlparse

from learnflow.common.exceptions import ConfigurationError

T = TypeVar("T")


def _read(env: Mapping[str, str], name: str, default: T, cast: Callable[[str], T]) -> T:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {raw!r}") from e


@dataclass
class Settings:
    queue_concurrency: int = 3
    retry_attempts: int = 3
    retry_delay: float = 5.0
    job_timeout: Optional[float] = 300.0

    cache_default_ttl: float = 300.0
    cache_max_size: int = 1000
    cache_sweep_interval: float = 60.0

    redis_url: Optional[str] = None
    upstash_rest_url: Optional[str] = None
    upstash_rest_token: Optional[str] = None

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if env is None else env
        job_timeout = _read(env, "LEARNFLOW_JOB_TIMEOUT", 300.0, float)
        return cls(
            queue_concurrency=_read(env, "LEARNFLOW_QUEUE_CONCURRENCY", 3, int),
            retry_attempts=_read(env, "LEARNFLOW_RETRY_ATTEMPTS", 3, int),
            retry_delay=_read(env, "LEARNFLOW_RETRY_DELAY", 5.0, float),
            job_timeout=job_timeout if job_timeout > 0 else None,
            cache_default_ttl=_read(env, "LEARNFLOW_CACHE_DEFAULT_TTL", 300.0, float),
            cache_max_size=_read(env, "LEARNFLOW_CACHE_MAX_SIZE", 1000, int),
            cache_sweep_interval=_read(env, "LEARNFLOW_CACHE_SWEEP_INTERVAL", 60.0, float),
            redis_url=env.get("LEARNFLOW_REDIS_URL") or None,
            upstash_rest_url=env.get("UPSTASH_REDIS_REST_URL") or None,
            upstash_rest_token=env.get("UPSTASH_REDIS_REST_TOKEN") or None,
        )

    @property
    def cache_redis_url(self) -> Optional[str]:
        """
        Redis URL for the durable caches, or None to use in-memory caches.

        An explicit LEARNFLOW_REDIS_URL wins. Otherwise the Upstash REST
        endpoint and token are turned into a TLS connection to the same host.
        """
        if self.redis_url:
            return self.redis_url
        if not (self.upstash_rest_url and self.upstash_rest_token):
            return None
        host = urlparse(self.upstash_rest_url).hostname
        if not host:
            raise ConfigurationError(
                f"Invalid value for UPSTASH_REDIS_REST_URL: {self.upstash_rest_url!r}"
            )
        return f"rediss://default:{quote(self.upstash_rest_token, safe='')}@{host}:6379"
