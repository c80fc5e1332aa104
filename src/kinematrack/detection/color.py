from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import cv2
import numpy as np

from kinematrack.utils.types import Frame, Segmentation

_CHANNEL_INDEX = {"r": 0, "g": 1, "b": 2}


@dataclass(frozen=True)
class ColorPredicate:
    """HSV window a target pixel must fall into.

    Hue is in degrees; ``h_min > h_max`` selects the wrapped range through 0
    (e.g. 300..25 for pink/red). Saturation and value floors are in [0, 1].
    """

    h_min: float = 70.0
    h_max: float = 170.0
    s_min: float = 0.25
    v_min: float = 0.15
    min_channel_sum: int = 0
    dominant_channel: Optional[str] = None

    def __post_init__(self) -> None:
        for name in ("h_min", "h_max"):
            h = float(getattr(self, name))
            if h < 0.0 or h > 360.0:
                raise ValueError(f"{name} must be within [0, 360], got {h}")
        if not 0.0 <= float(self.s_min) <= 1.0:
            raise ValueError(f"s_min must be within [0, 1], got {self.s_min}")
        if not 0.0 <= float(self.v_min) <= 1.0:
            raise ValueError(f"v_min must be within [0, 1], got {self.v_min}")
        if int(self.min_channel_sum) < 0 or int(self.min_channel_sum) > 765:
            raise ValueError(f"min_channel_sum must be within [0, 765], got {self.min_channel_sum}")
        if self.dominant_channel is not None and self.dominant_channel not in _CHANNEL_INDEX:
            raise ValueError(f"dominant_channel must be one of r, g, b, got {self.dominant_channel}")

    @property
    def wraps(self) -> bool:
        return float(self.h_min) > float(self.h_max)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "ColorPredicate":
        dom = d.get("dominant_channel")
        return ColorPredicate(
            h_min=float(d.get("h_min", 70.0)),
            h_max=float(d.get("h_max", 170.0)),
            s_min=float(d.get("s_min", 0.25)),
            v_min=float(d.get("v_min", 0.15)),
            min_channel_sum=int(d.get("min_channel_sum", 0)),
            dominant_channel=str(dom).lower() if dom else None,
        )


def rgb_to_hsv(rgb: np.ndarray) -> np.ndarray:
    """Convert uint8 RGB to float HSV with H in degrees, S and V in [0, 1]."""
    return cv2.cvtColor(rgb.astype(np.float32) / 255.0, cv2.COLOR_RGB2HSV)


def color_mask(rgb: np.ndarray, predicate: ColorPredicate) -> np.ndarray:
    hsv = rgb_to_hsv(rgb)
    h = hsv[..., 0]
    if predicate.wraps:
        hue_ok = (h >= predicate.h_min) | (h <= predicate.h_max)
    else:
        hue_ok = (h >= predicate.h_min) & (h <= predicate.h_max)
    mask = hue_ok & (hsv[..., 1] >= predicate.s_min) & (hsv[..., 2] >= predicate.v_min)

    if predicate.min_channel_sum > 0:
        mask &= rgb.astype(np.int32).sum(axis=2) >= int(predicate.min_channel_sum)

    if predicate.dominant_channel is not None:
        i = _CHANNEL_INDEX[predicate.dominant_channel]
        others = [j for j in range(3) if j != i]
        ch = rgb[..., i]
        mask &= (ch > rgb[..., others[0]]) & (ch > rgb[..., others[1]])
    return mask


def segment(frame: Frame, predicate: ColorPredicate, stride: int = 1) -> Segmentation:
    stride = int(stride)
    if stride < 1:
        raise ValueError(f"stride must be >= 1, got {stride}")
    mask = color_mask(frame.pixels[::stride, ::stride], predicate)
    return segmentation_from_mask(mask, stride)


def segmentation_from_mask(mask: np.ndarray, stride: int) -> Segmentation:
    rows, cols = np.nonzero(mask)
    return Segmentation(xs=cols * int(stride), ys=rows * int(stride), mask=mask, stride=int(stride))
