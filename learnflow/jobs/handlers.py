# learnflow/jobs/handlers.py
import logging
from datetime import datetime, UTC
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from learnflow.cache.registry import CacheRegistry
from learnflow.client import JobQueue
from learnflow.common.exceptions import LearnFlowException
from learnflow.common.job import Job, Priority

from .services import LearningServices, Record

logger = logging.getLogger(__name__)


class VideoAnalysisPayload(BaseModel):
    video_id: str
    user_id: str
    video_url: Optional[str] = None
    force_refresh: bool = False


class SuggestionsPayload(BaseModel):
    path_id: str
    user_id: str
    trigger: str
    context: Dict[str, Any] = Field(default_factory=dict)


class ReadinessPayload(BaseModel):
    user_id: str
    career_id: Optional[str] = None
    path_id: Optional[str] = None


class PathInferencePayload(BaseModel):
    path_id: str
    user_id: str
    mode: Literal["diff", "full"] = "diff"


class BatchVideoAnalysisPayload(BaseModel):
    video_ids: List[str]
    user_id: str
    delay_between: float = Field(default=1.0, ge=0)


def _analysis_summary(video: Record) -> Dict[str, Any]:
    return {
        "skills": list(video.get("inferred_skills") or []),
        "careers": list(video.get("inferred_careers") or []),
        "score": video.get("codelearnn_score") or 0,
    }


class BackgroundJobs:
    """
    Background work of the learning platform: video analysis, AI
    suggestions, career readiness and path inference.

    Call `register()` once to attach the handlers to the queue, then use the
    shortcut methods to enqueue work.
    """

    def __init__(self, queue: JobQueue, caches: CacheRegistry, services: LearningServices):
        self.queue = queue
        self.caches = caches
        self.services = services

    def register(self) -> "BackgroundJobs":
        self.queue.register("video_analysis", self.video_analysis, payload_model=VideoAnalysisPayload)
        self.queue.register("ai_suggestions", self.ai_suggestions, payload_model=SuggestionsPayload)
        self.queue.register("readiness_calc", self.readiness_calc, payload_model=ReadinessPayload)
        self.queue.register("path_inference", self.path_inference, payload_model=PathInferencePayload)
        self.queue.register(
            "batch_video_analysis",
            self.batch_video_analysis,
            payload_model=BatchVideoAnalysisPayload,
        )
        logger.info("Background job handlers registered")
        return self

    # --- Handlers ---

    async def video_analysis(self, payload: VideoAnalysisPayload, job: Job) -> Any:
        cache = self.caches["video_analysis"]
        if not payload.force_refresh:
            cached = await cache.aget("analysis", payload.video_id)
            if cached is not None:
                logger.info(f"Video analysis cache hit for {payload.video_id}")
                return cached

        video = await self.services.find_video(payload.video_id, payload.user_id)
        if video is None:
            raise LookupError(f"Video {payload.video_id} not found")

        if video.get("codelearnn_score") and video.get("inferred_skills") and not payload.force_refresh:
            await cache.aset("analysis", payload.video_id, _analysis_summary(video))
            return video

        analysis = await self.services.analyze_video(
            video.get("title", ""),
            video.get("description") or "",
            video.get("channel_title", ""),
        )
        video["inferred_skills"] = analysis.get("skills") or []
        video["inferred_careers"] = analysis.get("careers") or []
        video["codelearnn_score"] = analysis.get("score") or 0
        video["analysis_updated_at"] = datetime.now(UTC).isoformat()
        await self.services.save_video(video)

        await cache.aset("analysis", payload.video_id, _analysis_summary(video))
        logger.info(f"Video {payload.video_id} analyzed successfully", extra={"job_id": job.id})
        return video

    async def ai_suggestions(self, payload: SuggestionsPayload, job: Job) -> List[Any]:
        suggestions = await self.services.generate_suggestions(
            payload.path_id, payload.user_id, payload.trigger, payload.context
        )
        logger.info(f"Generated {len(suggestions)} suggestions for path {payload.path_id}")
        return suggestions

    async def readiness_calc(self, payload: ReadinessPayload, job: Job) -> Record:
        cache = self.caches["readiness"]
        cache_key = f"{payload.user_id}_{payload.career_id or 'default'}"
        cached = await cache.aget("score", cache_key)
        if cached is not None:
            return cached

        readiness = await self.services.calculate_readiness(payload.user_id, payload.career_id)
        if payload.path_id:
            await self.services.update_path_readiness(payload.path_id, payload.user_id)

        await cache.aset("score", cache_key, readiness)
        logger.info(f"Readiness calculated for user {payload.user_id}: {readiness.get('score')}%")
        return readiness

    async def path_inference(self, payload: PathInferencePayload, job: Job) -> Dict[str, Any]:
        path = await self.services.find_path(payload.path_id)
        if path is None:
            raise LookupError(f"Path {payload.path_id} not found")

        # dicts keep first-seen order while deduplicating
        skills: Dict[str, None] = {}
        careers: Dict[str, None] = {}
        for node in (path.get("structure_graph") or {}).get("nodes", []):
            skills.update(dict.fromkeys(node.get("skills") or []))
            careers.update(dict.fromkeys(node.get("careers") or []))

        changed = (
            set(skills) != set(path.get("inferred_skills") or [])
            or set(careers) != set(path.get("inferred_careers") or [])
        )
        if changed or payload.mode == "full":
            path["inferred_skills"] = list(skills)
            path["inferred_careers"] = list(careers)
            await self.services.save_path(path)
            await self.caches["readiness"].adelete_namespace("score")
            logger.info(f"Path {payload.path_id} inference updated")
        else:
            logger.info(f"Path {payload.path_id} inference unchanged (skipped)")

        return {"skills": list(skills), "careers": list(careers), "changed": changed}

    async def batch_video_analysis(self, payload: BatchVideoAnalysisPayload, job: Job) -> Dict[str, List]:
        results: Dict[str, List] = {"successful": [], "failed": []}
        for video_id in payload.video_ids:
            try:
                self.queue.add(
                    "video_analysis",
                    {"video_id": video_id, "user_id": payload.user_id},
                    delay=payload.delay_between,
                )
            except LearnFlowException as e:
                results["failed"].append({"video_id": video_id, "error": str(e)})
            else:
                results["successful"].append(video_id)

        logger.info(f"Batch analysis queued: {len(results['successful'])} videos")
        return results

    # --- Shortcuts ---

    def analyze_video(self, video_id: str, user_id: str, **options: Any) -> str:
        return self.queue.add("video_analysis", {"video_id": video_id, "user_id": user_id, **options})

    def generate_suggestions(
        self,
        path_id: str,
        user_id: str,
        trigger: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> str:
        return self.queue.add(
            "ai_suggestions",
            {"path_id": path_id, "user_id": user_id, "trigger": trigger, "context": context or {}},
        )

    def calculate_readiness(
        self,
        user_id: str,
        career_id: Optional[str] = None,
        path_id: Optional[str] = None,
        priority: Priority = Priority.NORMAL,
    ) -> str:
        return self.queue.add(
            "readiness_calc",
            {"user_id": user_id, "career_id": career_id, "path_id": path_id},
            priority=priority,
        )

    def update_path_inference(self, path_id: str, user_id: str, mode: str = "diff") -> str:
        return self.queue.add("path_inference", {"path_id": path_id, "user_id": user_id, "mode": mode})

    def batch_analyze_videos(self, video_ids: List[str], user_id: str, **options: Any) -> str:
        return self.queue.add(
            "batch_video_analysis",
            {"video_ids": list(video_ids), "user_id": user_id, **options},
        )
