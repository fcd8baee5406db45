# learnflow/storage/base.py
from abc import ABC, abstractmethod
from typing import Optional, List

from learnflow.common.job import Job
from learnflow.common.states import BaseState


class JobStorage(ABC):
    @abstractmethod
    def add_queue(self, job_type: str) -> None: ...

    @abstractmethod
    def queue_names(self) -> List[str]: ...

    @abstractmethod
    def store(self, job: Job) -> str: ...

    @abstractmethod
    def push_ready(self, job: Job, front: bool = False) -> None: ...

    @abstractmethod
    def discard_ready(self, job: Job) -> None: ...

    @abstractmethod
    def pop_ready(self, job_type: str) -> Optional[Job]: ...

    @abstractmethod
    def has_ready(self) -> bool: ...

    @abstractmethod
    def set_job_state(
        self, job: Job, state: BaseState, expected_old_state: Optional[str] = None
    ) -> bool: ...

    @abstractmethod
    def get_job_data(self, job_id: str) -> Optional[Job]: ...

    @abstractmethod
    def get_jobs(
        self, job_type: Optional[str] = None, state_name: Optional[str] = None
    ) -> List[Job]: ...

    @abstractmethod
    def remove(self, job_id: str) -> bool: ...
