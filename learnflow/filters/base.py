# learnflow/filters/base.py
from abc import ABC
from typing import Optional

from learnflow.common.job import Job
from learnflow.common.states import BaseState


class ElectStateContext:
    """The job whose attempt just ended, the state it is about to enter and the error that ended it."""

    def __init__(self, job: Job, candidate_state: BaseState, exception: Optional[Exception] = None):
        self.job = job
        self.candidate_state = candidate_state
        self.exception = exception


class JobFilter(ABC):
    """
    Hook into the state a job attempt ends in.

    Filters run in order after a failed attempt and may replace
    `elect_state_context.candidate_state`, e.g. with a PendingState to retry.
    """

    def on_state_election(self, elect_state_context: ElectStateContext) -> None:
        pass
