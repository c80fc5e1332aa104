from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional, Union

import cv2
import numpy as np

from kinematrack.utils.types import Frame

VideoUri = Union[str, int]


logger = logging.getLogger("kinematrack.io.video")


@dataclass(frozen=True)
class VideoSourceConfig:
    uri: VideoUri
    frame_step_s: float = 0.01
    fps_hint: float = 30.0
    resize_enabled: bool = False
    resize_width: int = 640
    resize_height: int = 480

    @staticmethod
    def from_dict(d: Dict[str, Any], frame_step_s: float) -> "VideoSourceConfig":
        resize = d.get("resize", {}) or {}
        uri: VideoUri = d.get("uri", "")
        if isinstance(uri, str) and uri.strip().isdigit():
            uri = int(uri.strip())
        return VideoSourceConfig(
            uri=uri,
            frame_step_s=float(frame_step_s),
            fps_hint=float(d.get("fps_hint", 30.0)),
            resize_enabled=bool(resize.get("enabled", False)),
            resize_width=int(resize.get("width", 640)),
            resize_height=int(resize.get("height", 480)),
        )


class VideoFrameSource:
    """Decodes a video file (or device index) and yields RGB frames every ``frame_step_s`` seconds."""

    def __init__(self, cfg: VideoSourceConfig) -> None:
        if cfg.frame_step_s <= 0.0:
            raise ValueError(f"frame_step_s must be > 0, got {cfg.frame_step_s}")
        self._cfg = cfg
        self._cap = cv2.VideoCapture(cfg.uri)
        if not self._cap.isOpened():
            raise RuntimeError(f"Failed to open video source: {cfg.uri}")

        self._frame_index = 0
        fps = self._cap.get(cv2.CAP_PROP_FPS)
        self._fps = float(fps) if fps is not None and fps > 1e-3 else float(cfg.fps_hint)
        logger.info("opened %s (%.2f fps, sampling every %.4f s)", cfg.uri, self._fps, cfg.frame_step_s)

    @property
    def fps(self) -> float:
        return self._fps

    def __iter__(self) -> Iterator[Frame]:
        next_t: Optional[float] = None
        step = float(self._cfg.frame_step_s)
        while True:
            ok, frame_bgr = self._cap.read()
            if not ok:
                break
            t_s = self._timestamp_s()
            self._frame_index += 1
            if next_t is None:
                next_t = t_s
            if t_s + 1e-9 < next_t:
                continue
            while next_t <= t_s + 1e-9:
                next_t += step

            if self._cfg.resize_enabled:
                frame_bgr = cv2.resize(
                    frame_bgr,
                    (self._cfg.resize_width, self._cfg.resize_height),
                    interpolation=cv2.INTER_LINEAR,
                )
            if frame_bgr is None or frame_bgr.ndim != 3 or frame_bgr.shape[2] != 3:
                raise ValueError(f"Decoded frame {self._frame_index - 1} is not a 3-channel image")
            yield Frame(timestamp_s=t_s, pixels=np.ascontiguousarray(cv2.cvtColor(frame_bgr, cv2.COLOR_BGR2RGB)))

    def _timestamp_s(self) -> float:
        pos_msec = self._cap.get(cv2.CAP_PROP_POS_MSEC)
        if pos_msec is not None and pos_msec > 0:
            return float(pos_msec) / 1000.0
        return float(self._frame_index) / self._fps

    def close(self) -> None:
        self._cap.release()
