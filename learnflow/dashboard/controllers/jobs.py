"""Job-related admin routes."""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from litestar import Controller, Response, get, post
from litestar.params import Parameter

from learnflow.common.states import ALL_STATES
from learnflow.context import LearnFlowContext
from learnflow.serialization.base import BaseSerializer

PAGE_SIZE = 20


@dataclass
class CleanupRequest:
    max_age_hours: float = 1.0


def _not_found(message: str) -> Response[Dict[str, Any]]:
    return Response({"success": False, "message": message}, status_code=404)


class JobsController(Controller):
    path = "/jobs"

    @get()
    async def list_jobs(
        self,
        context: LearnFlowContext,
        serializer: BaseSerializer,
        status: Optional[str] = Parameter(query="status", default=None),
        job_type: Optional[str] = Parameter(query="type", default=None),
        page: int = Parameter(query="page", default=1, ge=1),
    ) -> Response[Dict[str, Any]]:
        if status is not None and status not in ALL_STATES:
            return Response(
                {"success": False, "message": f"Unknown job status: {status}"}, status_code=400
            )

        jobs = context.queue.list_jobs(job_type, status)
        start = (page - 1) * PAGE_SIZE
        return Response(
            {
                "success": True,
                "data": {
                    "jobs": [serializer.to_primitive(job.to_dict()) for job in jobs[start : start + PAGE_SIZE]],
                    "page": page,
                    "page_size": PAGE_SIZE,
                    "total": len(jobs),
                },
            }
        )

    @get("/{job_id:str}")
    async def job_details(
        self, context: LearnFlowContext, serializer: BaseSerializer, job_id: str
    ) -> Response[Dict[str, Any]]:
        job = context.queue.get_job(job_id)
        if job is None:
            return _not_found(f"Job {job_id} not found")
        return Response({"success": True, "data": serializer.to_primitive(job.to_dict())})

    @post("/cleanup", status_code=200)
    async def cleanup_jobs(self, context: LearnFlowContext, data: CleanupRequest) -> Dict[str, Any]:
        removed = context.queue.cleanup(data.max_age_hours * 3600)
        return {"success": True, "message": f"Removed {removed} old jobs", "data": {"removed": removed}}

    @post("/{job_id:str}/cancel", status_code=200)
    async def cancel_job(self, context: LearnFlowContext, job_id: str) -> Response[Dict[str, Any]]:
        if not context.queue.cancel(job_id):
            return _not_found(f"Job {job_id} not found or not cancellable")
        return Response({"success": True, "message": f"Job {job_id} cancelled"})
