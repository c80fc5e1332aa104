from __future__ import annotations

from typing import Any, Dict

from kinematrack.detection.base import Detector
from kinematrack.detection.color import ColorPredicate
from kinematrack.detection.localize import DEFAULT_MIN_PIXELS
from kinematrack.detection.strategies import (
    BackgroundSubtractionDetector,
    ColorThresholdDetector,
    ConnectedComponentDetector,
)
from kinematrack.utils.config import section

STRATEGIES = ("color_threshold", "connected_component", "background_subtraction")


def create_detector(strategy: str, params: Dict[str, Any]) -> Detector:
    strategy = str(strategy).lower()
    stride = int(params.get("stride", 2))
    if stride < 1:
        raise ValueError("detection.stride must be >= 1")
    min_pixels = int(params.get("min_pixels", DEFAULT_MIN_PIXELS))

    if strategy == "color_threshold":
        return ColorThresholdDetector(
            predicate=ColorPredicate.from_dict(section(params, "color")),
            stride=stride,
            min_pixels=min_pixels,
        )

    if strategy == "connected_component":
        return ConnectedComponentDetector(
            predicate=ColorPredicate.from_dict(section(params, "color")),
            stride=stride,
            min_pixels=min_pixels,
        )

    if strategy == "background_subtraction":
        bg = section(params, "background")
        use_color = bool(bg.get("use_color", False))
        return BackgroundSubtractionDetector(
            alpha=float(bg.get("alpha", 0.05)),
            diff_threshold=float(bg.get("diff_threshold", 25.0)),
            warmup_frames=int(bg.get("warmup_frames", 5)),
            stride=stride,
            min_pixels=min_pixels,
            predicate=ColorPredicate.from_dict(section(params, "color")) if use_color else None,
        )

    raise ValueError(f"Unknown detection strategy: {strategy} (expected one of {', '.join(STRATEGIES)})")
