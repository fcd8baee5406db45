# learnflow/common/states.py

from datetime import datetime, UTC
from typing import Dict, Any, Optional


class BaseState:
    NAME = "base"
    IS_FINAL = False

    def __init__(self, reason: Optional[str] = None, created_at: datetime = None):
        self.reason = reason
        self.created_at = created_at or datetime.now(UTC)

    @property
    def name(self) -> str:
        return self.NAME

    def serialize_data(self) -> Dict[str, Any]:
        data = {"created_at": self.created_at.isoformat()}
        if self.reason:
            data["reason"] = self.reason
        return data


class PendingState(BaseState):
    """Waiting to be picked up, either freshly added or scheduled for a retry."""

    NAME = "pending"

    def __init__(self, retry_in: Optional[float] = None, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.retry_in = retry_in

    def serialize_data(self) -> Dict[str, Any]:
        data = super().serialize_data()
        if self.retry_in is not None:
            data["retry_in"] = self.retry_in
        return data


class ProcessingState(BaseState):
    NAME = "processing"

    def __init__(self, attempt: int, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.attempt = attempt

    def serialize_data(self) -> Dict[str, Any]:
        data = super().serialize_data()
        data["attempt"] = self.attempt
        return data


class CompletedState(BaseState):
    NAME = "completed"
    IS_FINAL = True

    def __init__(self, result: Any, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.result = result

    def serialize_data(self) -> Dict[str, Any]:
        data = super().serialize_data()
        data["result"] = self.result
        return data


class FailedState(BaseState):
    NAME = "failed"
    IS_FINAL = True

    def __init__(
        self,
        exception_type: str,
        exception_message: str,
        exception_details: str = "",
        *args,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self.exception_type = exception_type
        self.exception_message = exception_message
        self.exception_details = exception_details

    def serialize_data(self) -> Dict[str, Any]:
        data = super().serialize_data()
        data.update(
            {
                "exception_type": self.exception_type,
                "exception_message": self.exception_message,
                "exception_details": self.exception_details,
            }
        )
        return data


class CancelledState(BaseState):
    NAME = "cancelled"
    IS_FINAL = True


ALL_STATES = [
    PendingState.NAME,
    ProcessingState.NAME,
    CompletedState.NAME,
    FailedState.NAME,
    CancelledState.NAME,
]

FINAL_STATES = [CompletedState.NAME, FailedState.NAME, CancelledState.NAME]
