from .runner import PipelineConfig, VideoAnalysisPipeline
from .session import CancelSignal, Session, SessionConfig

__all__ = ["CancelSignal", "PipelineConfig", "Session", "SessionConfig", "VideoAnalysisPipeline"]
