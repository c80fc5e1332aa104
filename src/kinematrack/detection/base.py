from __future__ import annotations

from typing import Optional, Protocol

from kinematrack.utils.types import Detection, Frame


class Detector(Protocol):
    def detect(self, frame: Frame) -> Optional[Detection]:
        ...
