# learnflow/common/job.py
import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, UTC
from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from learnflow.common.exceptions import HandlerError, JobCancelledError
from learnflow.common.states import (
    FINAL_STATES,
    CancelledState,
    CompletedState,
    FailedState,
    PendingState,
)

if TYPE_CHECKING:
    from learnflow.client import JobQueue


class Priority(str, Enum):
    HIGH = "high"
    NORMAL = "normal"


def generate_job_id(job_type: str) -> str:
    return f"{job_type}_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


@dataclass(eq=False)
class Job:
    """
    A unit of deferred work.

    Jobs are created by JobQueue.add and owned by the type queue of their
    storage until cleanup removes them. The state machine is
    pending -> processing -> completed | failed, with processing -> pending
    on a retryable failure and cancelled reachable from any live state.
    """

    job_type: str
    payload: Any

    id: str = ""
    status: str = PendingState.NAME
    state_data: Dict[str, Any] = field(default_factory=dict)

    attempts: int = 0
    max_attempts: int = 3
    priority: Priority = Priority.NORMAL
    delay: float = 0.0
    timeout: Optional[float] = None

    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    failed_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    next_attempt_at: Optional[datetime] = None

    result: Any = None
    error: Optional[str] = None

    cancel_requested: bool = field(default=False, repr=False, compare=False)
    _waiters: List[asyncio.Future] = field(default_factory=list, repr=False, compare=False)

    def __post_init__(self):
        if not self.id:
            self.id = generate_job_id(self.job_type)

    @property
    def is_finished(self) -> bool:
        return self.status in FINAL_STATES

    @property
    def finished_at(self) -> Optional[datetime]:
        if self.status == CompletedState.NAME:
            return self.completed_at
        if self.status == FailedState.NAME:
            return self.failed_at
        if self.status == CancelledState.NAME:
            return self.cancelled_at
        return None

    def add_waiter(self, future: asyncio.Future) -> None:
        self._waiters.append(future)

    def remove_waiter(self, future: asyncio.Future) -> None:
        if future in self._waiters:
            self._waiters.remove(future)

    def notify_waiters(self) -> None:
        waiters, self._waiters = self._waiters, []
        for future in waiters:
            if not future.done():
                future.set_result(None)

    def to_dict(self) -> Dict[str, Any]:
        payload = self.payload
        if hasattr(payload, "model_dump"):
            payload = payload.model_dump(mode="json")
        return {
            "id": self.id,
            "type": self.job_type,
            "payload": payload,
            "status": self.status,
            "state_data": dict(self.state_data),
            "attempts": self.attempts,
            "max_attempts": self.max_attempts,
            "priority": self.priority.value,
            "delay": self.delay,
            "timeout": self.timeout,
            "created_at": _isoformat(self.created_at),
            "started_at": _isoformat(self.started_at),
            "completed_at": _isoformat(self.completed_at),
            "failed_at": _isoformat(self.failed_at),
            "cancelled_at": _isoformat(self.cancelled_at),
            "next_attempt_at": _isoformat(self.next_attempt_at),
            "result": self.result,
            "error": self.error,
        }


class JobHandle:
    """Awaitable view of a job returned by JobQueue.enqueue."""

    def __init__(self, job: Job, queue: "JobQueue"):
        self._job = job
        self._queue = queue

    @property
    def id(self) -> str:
        return self._job.id

    @property
    def job(self) -> Job:
        return self._job

    @property
    def status(self) -> str:
        return self._job.status

    def done(self) -> bool:
        return self._job.is_finished

    def cancel(self) -> bool:
        return self._queue.cancel(self._job.id)

    async def result(self, timeout: Optional[float] = None) -> Any:
        """
        Wait for the job to reach a final state and return its result.

        Raises HandlerError when the job failed permanently, JobCancelledError
        when it was cancelled and asyncio.TimeoutError when `timeout` elapses
        first. A timeout does not affect the job itself.
        """
        if not self._job.is_finished:
            future = asyncio.get_running_loop().create_future()
            self._job.add_waiter(future)
            try:
                await asyncio.wait_for(future, timeout)
            finally:
                self._job.remove_waiter(future)

        if self._job.status == CompletedState.NAME:
            return self._job.result
        if self._job.status == CancelledState.NAME:
            raise JobCancelledError(self._job.id)
        raise HandlerError(self._job)

    def __repr__(self) -> str:
        return f"JobHandle(id={self._job.id!r}, status={self._job.status!r})"
