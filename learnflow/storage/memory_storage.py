# learnflow/storage/memory_storage.py
from collections import deque
from datetime import datetime, UTC
from typing import Optional, List, Dict

from learnflow.storage.base import JobStorage
from learnflow.common.job import Job
from learnflow.common.states import (
    BaseState,
    CancelledState,
    CompletedState,
    FailedState,
    PendingState,
    ProcessingState,
)


class MemoryStorage(JobStorage):
    """
    Per-type job queues held in process memory.

    `_jobs` owns every job of a type in insertion order until it is removed.
    `_ready` holds the pending jobs that may be picked up right now; jobs
    waiting on a delay or a retry backoff are pending but not ready.
    No locking: all access happens on the event loop thread.
    """

    def __init__(self):
        self._jobs: Dict[str, Dict[str, Job]] = {}
        self._ready: Dict[str, deque[Job]] = {}
        self._index: Dict[str, str] = {}  # job id -> job type

    def add_queue(self, job_type: str) -> None:
        if job_type not in self._jobs:
            self._jobs[job_type] = {}
            self._ready[job_type] = deque()

    def queue_names(self) -> List[str]:
        return list(self._jobs.keys())

    def store(self, job: Job) -> str:
        self.add_queue(job.job_type)
        self._jobs[job.job_type][job.id] = job
        self._index[job.id] = job.job_type
        return job.id

    def push_ready(self, job: Job, front: bool = False) -> None:
        ready = self._ready[job.job_type]
        if front:
            ready.appendleft(job)
        else:
            ready.append(job)

    def discard_ready(self, job: Job) -> None:
        ready = self._ready.get(job.job_type)
        if ready and job in ready:
            ready.remove(job)

    def pop_ready(self, job_type: str) -> Optional[Job]:
        ready = self._ready.get(job_type)
        while ready:
            job = ready.popleft()
            if job.status == PendingState.NAME:
                return job
        return None

    def has_ready(self) -> bool:
        return any(self._ready.values())

    def set_job_state(
        self, job: Job, state: BaseState, expected_old_state: Optional[str] = None
    ) -> bool:
        if expected_old_state and job.status != expected_old_state:
            return False

        now = datetime.now(UTC)
        job.status = state.name
        job.state_data = state.serialize_data()

        if isinstance(state, ProcessingState):
            job.started_at = now
            job.next_attempt_at = None
        elif isinstance(state, CompletedState):
            job.result = state.result
            job.error = None
            job.completed_at = now
        elif isinstance(state, FailedState):
            job.error = state.exception_message
            job.failed_at = now
        elif isinstance(state, CancelledState):
            job.cancelled_at = now

        if state.IS_FINAL:
            job.notify_waiters()
        return True

    def get_job_data(self, job_id: str) -> Optional[Job]:
        job_type = self._index.get(job_id)
        if job_type is None:
            return None
        return self._jobs[job_type].get(job_id)

    def get_jobs(
        self, job_type: Optional[str] = None, state_name: Optional[str] = None
    ) -> List[Job]:
        if job_type is not None:
            queues = [self._jobs.get(job_type, {})]
        else:
            queues = list(self._jobs.values())
        return [
            job
            for queue in queues
            for job in queue.values()
            if state_name is None or job.status == state_name
        ]

    def remove(self, job_id: str) -> bool:
        job_type = self._index.pop(job_id, None)
        if job_type is None:
            return False
        job = self._jobs[job_type].pop(job_id)
        self.discard_ready(job)
        return True
