from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional

import cv2
import numpy as np

from kinematrack.detection.base import Detector
from kinematrack.detection.color import ColorPredicate, color_mask, segment, segmentation_from_mask
from kinematrack.detection.localize import DEFAULT_MIN_PIXELS, localize_centroid, localize_largest_component
from kinematrack.utils.types import Detection, Frame


logger = logging.getLogger("kinematrack.detection")


@dataclass
class ColorThresholdDetector(Detector):
    predicate: ColorPredicate = field(default_factory=ColorPredicate)
    stride: int = 2
    min_pixels: int = DEFAULT_MIN_PIXELS

    def detect(self, frame: Frame) -> Optional[Detection]:
        return localize_centroid(segment(frame, self.predicate, self.stride), self.min_pixels)


@dataclass
class ConnectedComponentDetector(Detector):
    predicate: ColorPredicate = field(default_factory=ColorPredicate)
    stride: int = 2
    min_pixels: int = DEFAULT_MIN_PIXELS

    def detect(self, frame: Frame) -> Optional[Detection]:
        return localize_largest_component(segment(frame, self.predicate, self.stride), self.min_pixels)


@dataclass
class BackgroundSubtractionDetector(Detector):
    """Largest moving blob against a running-average background.

    The first ``warmup_frames`` frames only train the background model. When
    ``predicate`` is set, foreground pixels must also pass the colour test.
    """

    alpha: float = 0.05
    diff_threshold: float = 25.0
    warmup_frames: int = 5
    stride: int = 2
    min_pixels: int = DEFAULT_MIN_PIXELS
    predicate: Optional[ColorPredicate] = None

    def __post_init__(self) -> None:
        if not 0.0 < float(self.alpha) <= 1.0:
            raise ValueError(f"background alpha must be within (0, 1], got {self.alpha}")
        self._background: Optional[np.ndarray] = None
        self._seen = 0

    def detect(self, frame: Frame) -> Optional[Detection]:
        grey = cv2.cvtColor(frame.pixels, cv2.COLOR_RGB2GRAY).astype(np.float32)
        bg = self._background
        if bg is None or bg.shape != grey.shape:
            self._background = grey.copy()
            self._seen = 1
            return None

        foreground = cv2.absdiff(grey, bg) > float(self.diff_threshold)
        cv2.accumulateWeighted(grey, bg, float(self.alpha))
        self._seen += 1
        if self._seen <= int(self.warmup_frames):
            return None

        s = int(self.stride)
        mask = foreground[::s, ::s]
        if self.predicate is not None:
            mask = mask & color_mask(frame.pixels[::s, ::s], self.predicate)
        det = localize_largest_component(segmentation_from_mask(mask, s), self.min_pixels)
        if det is None and logger.isEnabledFor(logging.DEBUG):
            logger.debug("no foreground blob at t=%.3f (%d candidate pixels)", frame.timestamp_s, int(mask.sum()))
        return det
