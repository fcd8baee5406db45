# learnflow/execution/performer.py
import asyncio
import inspect
from typing import Any, Callable, Optional

from learnflow.common.exceptions import JobTimeoutError
from learnflow.common.job import Job


async def perform_job_async(
    handler: Callable[[Any, Job], Any], job: Job, timeout: Optional[float] = None
) -> Any:
    """Runs a sync or async job handler on the event loop, bounded by `timeout`."""
    result = handler(job.payload, job)
    if not inspect.isawaitable(result):
        return result
    if timeout is None:
        return await result
    try:
        return await asyncio.wait_for(result, timeout)
    except asyncio.TimeoutError as e:
        raise JobTimeoutError(job.id, timeout) from e
