# learnflow/client.py
import asyncio
import functools
import logging
from datetime import datetime, timedelta, UTC
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Type, Union

from pydantic import BaseModel

from .common.job import Job, JobHandle, Priority
from .common.states import ALL_STATES, CancelledState, PendingState
from .filters.base import JobFilter
from .filters.builtin import RetryFilter
from .registry import JobHandler, JobRegistry
from .server.processor import JobProcessor
from .server.worker import Worker
from .storage.base import JobStorage
from .storage.memory_storage import MemoryStorage

if TYPE_CHECKING:
    from .config import Settings

logger = logging.getLogger(__name__)


class JobQueue:
    """
    In-process, priority-aware, retrying job queue.

    Handlers are registered per job type and run on the event loop with at
    most `concurrency` of them in flight. Failed attempts are retried with
    exponential backoff (`retry_delay * 2 ** (attempts - 1)` seconds) until
    `max_attempts` is reached. `add` is fire-and-forget; `enqueue` returns a
    JobHandle for callers that want the outcome.
    """

    def __init__(
        self,
        concurrency: int = 3,
        retry_attempts: int = 3,
        retry_delay: float = 5.0,
        job_timeout: Optional[float] = None,
        filters: Optional[List[JobFilter]] = None,
        storage: Optional[JobStorage] = None,
    ):
        self.concurrency = concurrency
        self.retry_attempts = retry_attempts
        self.retry_delay = retry_delay
        self.job_timeout = job_timeout
        self.storage = storage or MemoryStorage()
        self.registry = JobRegistry()
        self.filters = filters if filters is not None else [RetryFilter(retry_delay)]
        self._worker = Worker(self.storage, self._make_processor, concurrency)
        self._loop_task: Optional[asyncio.Task] = None
        self._timers: Dict[str, asyncio.TimerHandle] = {}

    @classmethod
    def from_settings(cls, settings: "Settings") -> "JobQueue":
        return cls(
            concurrency=settings.queue_concurrency,
            retry_attempts=settings.retry_attempts,
            retry_delay=settings.retry_delay,
            job_timeout=settings.job_timeout,
        )

    @property
    def is_processing(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    def register(
        self,
        job_type: str,
        handler: Optional[JobHandler] = None,
        *,
        payload_model: Optional[Type[BaseModel]] = None,
    ):
        """
        Register the handler for a job type. Handlers are called as
        `handler(payload, job)` and may be plain functions or coroutines.

        Can be used as a decorator:

            @queue.register("send_email")
            async def send_email(payload, job):
                ...
        """
        if handler is None:
            return functools.partial(self.register, job_type, payload_model=payload_model)

        self.storage.add_queue(job_type)
        self.registry.register(job_type, handler, payload_model)
        logger.info(f'Job type "{job_type}" registered')
        return handler

    def add(
        self,
        job_type: str,
        payload: Any = None,
        *,
        max_attempts: Optional[int] = None,
        priority: Union[Priority, str] = Priority.NORMAL,
        delay: float = 0.0,
        timeout: Optional[float] = None,
    ) -> str:
        """Creates a fire-and-forget job and returns its id."""
        return self._add(job_type, payload, max_attempts, priority, delay, timeout).id

    def enqueue(self, job_type: str, payload: Any = None, **options: Any) -> JobHandle:
        """Like `add`, but returns a handle that can be awaited or cancelled."""
        return JobHandle(self._add(job_type, payload, **options), self)

    def add_bulk(self, job_type: str, payloads: Iterable[Any], **options: Any) -> List[str]:
        """Adds one job per payload. Not atomic: a failure leaves earlier jobs queued."""
        return [self.add(job_type, payload, **options) for payload in payloads]

    def _add(
        self,
        job_type: str,
        payload: Any,
        max_attempts: Optional[int] = None,
        priority: Union[Priority, str] = Priority.NORMAL,
        delay: float = 0.0,
        timeout: Optional[float] = None,
    ) -> Job:
        registered = self.registry.get(job_type)
        priority = Priority(priority)
        payload = registered.validate(payload)
        loop = asyncio.get_running_loop()

        job = Job(
            job_type=job_type,
            payload=payload,
            max_attempts=max_attempts or self.retry_attempts,
            priority=priority,
            delay=delay or 0.0,
            timeout=timeout,
            state_data=PendingState(reason="Added").serialize_data(),
        )
        self.storage.store(job)

        if job.delay > 0:
            self._schedule(job, job.delay, loop)
        else:
            self.storage.push_ready(job, front=job.priority is Priority.HIGH)
            self._start_processing(loop)

        logger.info(
            f"Job {job.id} added to queue",
            extra={"event": "job_added", "job_id": job.id, "job_type": job_type},
        )
        return job

    def _schedule(self, job: Job, delay: float, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        loop = loop or asyncio.get_running_loop()
        job.next_attempt_at = datetime.now(UTC) + timedelta(seconds=delay)
        self._timers[job.id] = loop.call_later(delay, self._make_ready, job)

    def _make_ready(self, job: Job) -> None:
        self._timers.pop(job.id, None)
        if job.status != PendingState.NAME:
            return
        job.next_attempt_at = None
        # priority only moves a job forward on its first attempt; retries go to the back
        self.storage.push_ready(job, front=job.attempts == 0 and job.priority is Priority.HIGH)
        self._start_processing()

    def _start_processing(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        if self.is_processing:
            return
        loop = loop or asyncio.get_running_loop()
        self._loop_task = loop.create_task(self._worker.run(), name="learnflow:processing-loop")
        self._loop_task.add_done_callback(self._on_loop_done)

    @staticmethod
    def _on_loop_done(task: asyncio.Task) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error("Processing loop crashed", exc_info=task.exception())

    def _make_processor(self, job: Job) -> JobProcessor:
        return JobProcessor(
            job,
            self.registry,
            self.storage,
            self.filters,
            schedule_retry=self._schedule,
            default_timeout=self.job_timeout,
        )

    def cancel(self, job_id: str) -> bool:
        """
        Cancel a pending or processing job. Processing jobs have their
        handler task cancelled. Returns False for unknown or finished jobs.
        """
        job = self.storage.get_job_data(job_id)
        if job is None or job.is_finished:
            return False

        if job.status == PendingState.NAME:
            timer = self._timers.pop(job.id, None)
            if timer is not None:
                timer.cancel()
            self.storage.discard_ready(job)
            self.storage.set_job_state(job, CancelledState(reason="Cancelled before processing"))
            logger.info(f"Job {job.id} cancelled", extra={"event": "job_cancelled", "job_id": job.id})
            return True

        job.cancel_requested = True
        return self._worker.cancel_running(job.id)

    # --- Inspection ---

    def get_job(self, job_id: str) -> Optional[Job]:
        return self.storage.get_job_data(job_id)

    def list_jobs(self, job_type: Optional[str] = None, status: Optional[str] = None) -> List[Job]:
        return self.storage.get_jobs(job_type, status)

    def get_stats(self) -> Dict[str, Dict]:
        """Job counts by status, per type queue and in total."""
        stats = {"queues": {}, "total": {name: 0 for name in ALL_STATES}}
        for job_type in self.storage.queue_names():
            counts = {name: 0 for name in ALL_STATES}
            for job in self.storage.get_jobs(job_type):
                counts[job.status] += 1
            stats["queues"][job_type] = counts
            for name, count in counts.items():
                stats["total"][name] += count
        return stats

    def cleanup(self, max_age: float = 3600.0) -> int:
        """Removes finished jobs whose final state is at least `max_age` seconds old."""
        cutoff = datetime.now(UTC) - timedelta(seconds=max_age)
        removed = 0
        for job in self.storage.get_jobs():
            finished_at = job.finished_at
            if finished_at is not None and finished_at <= cutoff:
                self.storage.remove(job.id)
                removed += 1
        if removed:
            logger.info(f"Cleaned up {removed} finished jobs")
        return removed

    # --- Lifecycle ---

    def has_unfinished_jobs(self) -> bool:
        return any(not job.is_finished for job in self.storage.get_jobs())

    async def join(self, timeout: Optional[float] = None, poll_interval: float = 0.01) -> None:
        """Waits until every job is completed, failed or cancelled."""

        async def _wait() -> None:
            while self.has_unfinished_jobs():
                await asyncio.sleep(poll_interval)

        await asyncio.wait_for(_wait(), timeout)

    async def close(self) -> None:
        """
        Stops scheduled retries and the processing loop. Every job that has
        not finished is cancelled, so waiting handles raise JobCancelledError.
        """
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

        if self._loop_task is not None and not self._loop_task.done():
            self._loop_task.cancel()
            try:
                await self._loop_task
            except asyncio.CancelledError:
                pass
        self._loop_task = None

        cancelled = 0
        for job in self.storage.get_jobs():
            if job.is_finished:
                continue
            self.storage.discard_ready(job)
            self.storage.set_job_state(job, CancelledState(reason="Queue closed"))
            cancelled += 1
        if cancelled:
            logger.info(f"Cancelled {cancelled} unfinished jobs on close")
