# learnflow/server/processor.py
import asyncio
import traceback
import logging
from typing import Callable, List, Optional

from learnflow.common.job import Job
from learnflow.common.states import (
    BaseState,
    CancelledState,
    CompletedState,
    FailedState,
    PendingState,
    ProcessingState,
)
from learnflow.execution.performer import perform_job_async
from learnflow.filters.base import ElectStateContext, JobFilter
from learnflow.registry import JobRegistry
from learnflow.storage.base import JobStorage

logger = logging.getLogger(__name__)


class JobProcessor:
    """Runs one attempt of a job and elects the state it ends up in."""

    def __init__(
        self,
        job: Job,
        registry: JobRegistry,
        storage: JobStorage,
        filters: List[JobFilter],
        schedule_retry: Callable[[Job, float], None],
        default_timeout: Optional[float] = None,
    ):
        self.job = job
        self.registry = registry
        self.storage = storage
        self.filters = filters
        self.schedule_retry = schedule_retry
        self.default_timeout = default_timeout

    async def process(self) -> Optional[BaseState]:
        job = self.job
        job_type = self.registry.get(job.job_type)
        timeout = job.timeout if job.timeout is not None else self.default_timeout

        if job.status != PendingState.NAME:
            # cancelled between being drawn into a batch and starting
            return None

        job.attempts += 1
        self.storage.set_job_state(job, ProcessingState(attempt=job.attempts))

        try:
            result = await perform_job_async(job_type.handler, job, timeout)
            final_state = CompletedState(result=result, reason="Job performed successfully")

        except asyncio.CancelledError:
            if not job.cancel_requested:
                # the processing loop is shutting down
                self._finish(CancelledState(reason="Queue closed"))
                raise
            asyncio.current_task().uncancel()
            final_state = CancelledState(reason="Cancelled while processing")

        except Exception as e:
            job.error = str(e) or type(e).__name__
            failed_state = FailedState(
                exception_type=type(e).__name__,
                exception_message=job.error,
                exception_details=traceback.format_exc(),
            )

            elect_state_context = ElectStateContext(
                job=job, candidate_state=failed_state, exception=e
            )
            for f in self.filters:
                f.on_state_election(elect_state_context)
            final_state = elect_state_context.candidate_state

        self._finish(final_state)
        if isinstance(final_state, PendingState):
            self.schedule_retry(job, final_state.retry_in or 0.0)
        return final_state

    def _finish(self, state: BaseState) -> None:
        self.storage.set_job_state(self.job, state, expected_old_state=ProcessingState.NAME)
        self._log_outcome(state)

    def _log_outcome(self, state: BaseState) -> None:
        job = self.job
        extra = {
            "event": f"job_{state.name}",
            "job_id": job.id,
            "job_type": job.job_type,
            "attempts": job.attempts,
            "status": state.name,
        }
        if isinstance(state, CompletedState):
            logger.info(f"Job {job.id} completed", extra=extra)
        elif isinstance(state, PendingState):
            logger.warning(
                f"Job {job.id} failed, retrying in {state.retry_in}s "
                f"(attempt {job.attempts}/{job.max_attempts})",
                extra={**extra, "event": "job_retry_scheduled", "error": job.error},
            )
        elif isinstance(state, FailedState):
            logger.error(
                f"Job {job.id} failed permanently: {job.error}",
                extra={**extra, "error": job.error},
            )
        elif isinstance(state, CancelledState):
            logger.info(f"Job {job.id} cancelled while processing", extra=extra)
