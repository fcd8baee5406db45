# learnflow/server/worker.py
import asyncio
import logging
from typing import Callable, Dict, List

from learnflow.common.job import Job
from learnflow.server.processor import JobProcessor
from learnflow.storage.base import JobStorage

logger = logging.getLogger(__name__)


class Worker:
    """
    Cooperative processing loop.

    Each iteration draws up to `concurrency` ready jobs and runs them with
    asyncio.gather; the next batch is drawn only once the whole batch is done.
    Jobs are drawn round-robin across type queues, starting one type further
    along on every batch so later-registered types are not starved.
    """

    def __init__(
        self,
        storage: JobStorage,
        processor_factory: Callable[[Job], JobProcessor],
        concurrency: int = 3,
    ):
        if concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        self.storage = storage
        self.processor_factory = processor_factory
        self.concurrency = concurrency
        self._running: Dict[str, asyncio.Task] = {}
        self._offset = 0

    def next_batch(self) -> List[Job]:
        names = self.storage.queue_names()
        if not names:
            return []
        start = self._offset % len(names)
        order = names[start:] + names[:start]
        self._offset = start + 1

        batch: List[Job] = []
        progressed = True
        while len(batch) < self.concurrency and progressed:
            progressed = False
            for name in order:
                if len(batch) >= self.concurrency:
                    break
                job = self.storage.pop_ready(name)
                if job is not None:
                    batch.append(job)
                    progressed = True
        return batch

    async def run(self) -> None:
        """Process batches until no job is ready."""
        logger.debug("Processing loop started")
        while self.storage.has_ready():
            batch = self.next_batch()
            if not batch:
                break
            tasks = []
            for job in batch:
                task = asyncio.create_task(self._process(job), name=f"learnflow:{job.id}")
                self._running[job.id] = task
                tasks.append(task)

            results = await asyncio.gather(*tasks, return_exceptions=True)
            for job, result in zip(batch, results):
                if isinstance(result, Exception):
                    logger.error(
                        f"Unhandled exception while processing job {job.id}",
                        exc_info=result,
                    )
        logger.debug("Processing loop idle")

    async def _process(self, job: Job) -> None:
        try:
            await self.processor_factory(job).process()
        finally:
            self._running.pop(job.id, None)

    def cancel_running(self, job_id: str) -> bool:
        task = self._running.get(job_id)
        if task is None or task.done():
            return False
        task.cancel()
        return True
