# main.py
import asyncio
import logging

from learnflow import JobQueue, Priority
from learnflow.logging_config import configure_logging

logger = logging.getLogger("learnflow.demo")


async def add_numbers(payload, job):
    logger.info(f"Executing {job.job_type} with payload: {payload}")
    return payload["x"] + payload["y"]


async def main() -> None:
    configure_logging()

    # 1. Create a queue and register a handler
    queue = JobQueue(concurrency=2, retry_delay=0.5)
    queue.register("add_numbers", add_numbers)

    # 2. Fire-and-forget and awaitable jobs
    job_id = queue.add("add_numbers", {"x": 1, "y": 2})
    logger.info(f"Added job {job_id}")
    handle = queue.enqueue("add_numbers", {"x": 40, "y": 2}, priority=Priority.HIGH)

    # 3. Wait for the outcome
    logger.info(f"Result of {handle.id}: {await handle.result(timeout=5)}")
    await queue.join(timeout=5)
    logger.info(f"Queue stats: {queue.get_stats()['total']}")

    await queue.close()


if __name__ == "__main__":
    asyncio.run(main())
