"""Stats and health routes."""
from datetime import datetime, UTC
from typing import Any, Dict

from litestar import Controller, get

from learnflow.context import LearnFlowContext


class CoreController(Controller):
    path = "/"

    @get("/stats")
    async def stats(self, context: LearnFlowContext) -> Dict[str, Any]:
        return {
            "success": True,
            "data": {
                "job_queue": context.queue.get_stats(),
                "cache": await context.caches.get_stats(),
                "timestamp": datetime.now(UTC).isoformat(),
            },
        }

    @get("/health")
    async def health(self, context: LearnFlowContext) -> Dict[str, Any]:
        return {
            "success": True,
            "data": {
                "status": "healthy",
                "timestamp": datetime.now(UTC).isoformat(),
                "services": {
                    "job_queue": {
                        "status": "running" if context.queue.is_processing else "idle",
                        "pending": context.queue.get_stats()["total"]["pending"],
                    },
                    "cache": {
                        "status": "running",
                        "total_size": await context.caches.total_size(),
                    },
                },
            },
        }
