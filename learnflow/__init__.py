from .cache import CacheBackend, CacheRegistry, MemoryCache, RedisCache, create_caches
from .client import JobQueue
from .common.exceptions import (
    ConfigurationError,
    HandlerError,
    InvalidPayload,
    JobCancelledError,
    JobTimeoutError,
    LearnFlowException,
    UnknownJobType,
)
from .common.job import Job, JobHandle, Priority
from .config import Settings
from .context import LearnFlowContext, create_context

__all__ = [
    "JobQueue",
    "Job",
    "JobHandle",
    "Priority",
    "CacheBackend",
    "CacheRegistry",
    "MemoryCache",
    "RedisCache",
    "create_caches",
    "Settings",
    "LearnFlowContext",
    "create_context",
    "LearnFlowException",
    "ConfigurationError",
    "UnknownJobType",
    "InvalidPayload",
    "HandlerError",
    "JobTimeoutError",
    "JobCancelledError",
]
