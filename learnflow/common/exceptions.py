# learnflow/common/exceptions.py
from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from learnflow.common.job import Job


class LearnFlowException(Exception):
    """Base exception for the learnflow package."""

    pass


class ConfigurationError(LearnFlowException):
    """Raised when an environment setting cannot be parsed."""

    pass


class UnknownJobType(LearnFlowException):
    """Raised when a job is added for a type with no registered handler."""

    def __init__(self, job_type: str):
        super().__init__(f"Unknown job type: {job_type}")
        self.job_type = job_type


class InvalidPayload(LearnFlowException):
    """Raised when a payload is rejected by the payload model of its job type."""

    def __init__(self, job_type: str, detail: str):
        super().__init__(f"Invalid payload for job type {job_type}: {detail}")
        self.job_type = job_type
        self.detail = detail


class HandlerError(LearnFlowException):
    """A job exhausted its attempts. Raised to callers waiting on a JobHandle."""

    def __init__(self, job: "Job", message: Optional[str] = None):
        super().__init__(message or f"Job {job.id} failed: {job.error}")
        self.job = job


class JobTimeoutError(LearnFlowException):
    """Recorded on a job whose attempt ran longer than its timeout."""

    def __init__(self, job_id: str, timeout: float):
        super().__init__(f"Job {job_id} timed out after {timeout}s")
        self.job_id = job_id
        self.timeout = timeout


class JobCancelledError(LearnFlowException):
    """Raised to callers waiting on a JobHandle whose job was cancelled."""

    def __init__(self, job_id: str):
        super().__init__(f"Job {job_id} was cancelled")
        self.job_id = job_id


class CacheSerializationError(LearnFlowException):
    """Raised when a cache value cannot be serialized or deserialized."""

    pass
