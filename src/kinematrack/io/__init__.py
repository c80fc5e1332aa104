from .frames import ArrayFrameSource, FrameSource
from .video import VideoFrameSource, VideoSourceConfig

__all__ = ["ArrayFrameSource", "FrameSource", "VideoFrameSource", "VideoSourceConfig"]
