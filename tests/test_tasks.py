# tests/test_tasks.py
import asyncio


def success_task(payload, job):
    """A simple handler that succeeds."""
    return payload["x"] + payload["y"]


async def async_success_task(payload, job):
    await asyncio.sleep(0)
    return payload["x"] + payload["y"]


async def echo_task(payload, job):
    """Doubles `value`."""
    return payload["value"] * 2


def failure_task(payload, job):
    """A handler that is designed to fail."""
    raise ValueError("This task is designed to fail")


async def slow_task(payload, job):
    await asyncio.sleep(payload.get("seconds", 10))
    return "done"


class FlakyTask:
    """Fails until it has been called `failures + 1` times, recording when each call happened."""

    def __init__(self, failures: int):
        self.failures = failures
        self.calls = []

    async def __call__(self, payload, job):
        self.calls.append(asyncio.get_running_loop().time())
        if len(self.calls) <= self.failures:
            raise RuntimeError(f"flaky failure {len(self.calls)}")
        return "ok"


class RecordingTask:
    """Records the payload of every call in order."""

    def __init__(self):
        self.seen = []

    async def __call__(self, payload, job):
        self.seen.append(payload)
        return payload
