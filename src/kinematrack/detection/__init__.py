from .base import Detector
from .color import ColorPredicate, color_mask, rgb_to_hsv, segment
from .localize import largest_component, localize_centroid, localize_largest_component
from .registry import STRATEGIES, create_detector
from .strategies import BackgroundSubtractionDetector, ColorThresholdDetector, ConnectedComponentDetector

__all__ = [
    "BackgroundSubtractionDetector",
    "ColorPredicate",
    "ColorThresholdDetector",
    "ConnectedComponentDetector",
    "Detector",
    "STRATEGIES",
    "color_mask",
    "create_detector",
    "largest_component",
    "localize_centroid",
    "localize_largest_component",
    "rgb_to_hsv",
    "segment",
]
