# learnflow/context.py
import logging
from typing import Optional

from .cache.registry import CacheRegistry, create_caches
from .client import JobQueue
from .config import Settings

logger = logging.getLogger(__name__)


class LearnFlowContext:
    """The queue and caches of one application instance, passed explicitly to whoever needs them."""

    def __init__(self, settings: Settings, queue: JobQueue, caches: CacheRegistry):
        self.settings = settings
        self.queue = queue
        self.caches = caches

    async def start(self) -> None:
        await self.caches.start()
        logger.info(f"LearnFlow started with caches: {', '.join(self.caches.names())}")

    async def close(self) -> None:
        await self.queue.close()
        await self.caches.close()
        logger.info("LearnFlow shut down")


def create_context(settings: Optional[Settings] = None) -> LearnFlowContext:
    settings = settings or Settings.from_env()
    return LearnFlowContext(
        settings=settings,
        queue=JobQueue.from_settings(settings),
        caches=create_caches(settings),
    )
