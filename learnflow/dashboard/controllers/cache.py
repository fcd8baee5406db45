"""Cache management routes."""
from dataclasses import dataclass
from typing import Any, Dict, Optional

from litestar import Controller, Response, get, post

from learnflow.context import LearnFlowContext


@dataclass
class ClearCacheRequest:
    namespace: Optional[str] = None


class CacheController(Controller):
    path = "/cache"

    @get("/stats")
    async def cache_stats(self, context: LearnFlowContext) -> Dict[str, Any]:
        return {"success": True, "data": await context.caches.get_stats()}

    @post("/clear", status_code=200)
    async def clear_cache(
        self, context: LearnFlowContext, data: ClearCacheRequest
    ) -> Response[Dict[str, Any]]:
        try:
            cleared = await context.caches.clear(data.namespace)
        except KeyError:
            return Response(
                {"success": False, "message": "Invalid cache namespace"}, status_code=400
            )
        message = f"{data.namespace} cache cleared" if data.namespace else "All caches cleared"
        return Response({"success": True, "message": message, "data": {"cleared": cleared}})
