from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Optional, Tuple

import numpy as np

MotionAxis = Literal["speed", "x", "y"]
FitMode = Literal["origin", "free"]


@dataclass(frozen=True)
class Frame:
    timestamp_s: float
    pixels: np.ndarray

    def __post_init__(self) -> None:
        if not math.isfinite(float(self.timestamp_s)):
            raise ValueError(f"Frame timestamp must be finite, got {self.timestamp_s}")
        px = self.pixels
        if not isinstance(px, np.ndarray) or px.ndim != 3 or px.shape[2] != 3:
            shape = getattr(px, "shape", None)
            raise ValueError(f"Expected HxWx3 RGB pixel array, got shape {shape}")
        if px.dtype != np.uint8:
            raise ValueError(f"Expected uint8 pixel data, got {px.dtype}")
        if px.shape[0] == 0 or px.shape[1] == 0:
            raise ValueError("Frame has no pixels")

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    @staticmethod
    def from_bytes(timestamp_s: float, width: int, height: int, pixel_bytes: bytes) -> "Frame":
        expected = int(width) * int(height) * 3
        if len(pixel_bytes) != expected:
            raise ValueError(f"RGB8 buffer has {len(pixel_bytes)} bytes, expected {expected} for {width}x{height}")
        px = np.frombuffer(pixel_bytes, dtype=np.uint8).reshape(int(height), int(width), 3).copy()
        return Frame(timestamp_s=float(timestamp_s), pixels=px)


@dataclass(frozen=True)
class Segmentation:
    """Target pixels of one frame.

    ``xs``/``ys`` are full-frame pixel coordinates; ``mask`` is the strided
    binary grid they were sampled from (``mask[r, c]`` covers pixel
    ``(c * stride, r * stride)``).
    """

    xs: np.ndarray
    ys: np.ndarray
    mask: np.ndarray
    stride: int

    @property
    def count(self) -> int:
        return int(self.xs.size)


@dataclass(frozen=True)
class Detection:
    centroid_x: float
    centroid_y: float
    extent_px: float
    pixel_count: int

    @property
    def centroid_xy(self) -> Tuple[float, float]:
        return (self.centroid_x, self.centroid_y)


@dataclass(frozen=True)
class SampleRecord:
    t: float
    x: float
    y: float
    vx: float
    vy: float

    @property
    def speed(self) -> float:
        return float(math.hypot(self.vx, self.vy))


@dataclass(frozen=True)
class FitResult:
    slope: float
    intercept: float = 0.0
    r_squared: Optional[float] = None


@dataclass(frozen=True)
class QuadraticFit:
    a: float
    b: float
    c: float
    r_squared: Optional[float] = None

    @property
    def acceleration(self) -> float:
        return 2.0 * self.a


@dataclass(frozen=True)
class Report:
    sample_count: int
    slope: Optional[float]
    intercept: Optional[float]
    r_squared: Optional[float]
    a_theory: float
    calibration_scale: Optional[float]
    fit_mode: FitMode = "origin"
    motion_axis: MotionAxis = "speed"
    a_constrained: Optional[float] = None
    a_free: Optional[float] = None
    a_quadratic: Optional[float] = None
    relative_error: Optional[float] = None
