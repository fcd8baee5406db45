# learnflow/filters/builtin.py
from learnflow.common.states import PendingState, FailedState
import logging
from learnflow.filters.base import ElectStateContext, JobFilter

logger = logging.getLogger(__name__)


def backoff_seconds(retry_delay: float, attempts: int) -> float:
    """Exponential backoff: retry_delay after attempt 1, 2x after attempt 2, 4x after 3..."""
    return retry_delay * (2 ** max(0, attempts - 1))


class RetryFilter(JobFilter):
    def __init__(self, retry_delay: float = 5.0):
        self.retry_delay = retry_delay

    def on_state_election(self, elect_state_context: ElectStateContext):
        job = elect_state_context.job
        candidate_state = elect_state_context.candidate_state

        if isinstance(candidate_state, FailedState):
            logger.debug(
                f"RetryFilter: Job {job.id} failed. Attempts: {job.attempts}, Max attempts: {job.max_attempts}"
            )

            if job.attempts < job.max_attempts:
                delay = backoff_seconds(self.retry_delay, job.attempts)
                logger.debug(f"RetryFilter: Re-enqueuing job {job.id} in {delay}s")

                elect_state_context.candidate_state = PendingState(
                    retry_in=delay,
                    reason=f"Retrying job... Attempt {job.attempts} of {job.max_attempts} failed",
                )
            else:
                logger.debug(
                    f"RetryFilter: Job {job.id} retries exhausted. Moving to Failed state."
                )
