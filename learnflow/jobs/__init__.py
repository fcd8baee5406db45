from .handlers import (
    BackgroundJobs,
    BatchVideoAnalysisPayload,
    PathInferencePayload,
    ReadinessPayload,
    SuggestionsPayload,
    VideoAnalysisPayload,
)
from .services import LearningServices

__all__ = [
    "BackgroundJobs",
    "LearningServices",
    "VideoAnalysisPayload",
    "SuggestionsPayload",
    "ReadinessPayload",
    "PathInferencePayload",
    "BatchVideoAnalysisPayload",
]
