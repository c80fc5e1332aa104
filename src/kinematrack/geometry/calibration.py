from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np


logger = logging.getLogger("kinematrack.geometry.calibration")


@dataclass(frozen=True)
class CalibrationConfig:
    min_samples: int = 10
    window_s: float = 0.5
    max_elapsed_s: float = 0.6
    min_median_px: float = 1.0

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "CalibrationConfig":
        cfg = CalibrationConfig(
            min_samples=int(d.get("min_samples", 10)),
            window_s=float(d.get("window_s", 0.5)),
            max_elapsed_s=float(d.get("max_elapsed_s", 0.6)),
            min_median_px=float(d.get("min_median_px", 1.0)),
        )
        if cfg.min_samples < 1:
            raise ValueError("calibration.min_samples must be >= 1")
        if cfg.window_s < 0.0 or cfg.max_elapsed_s <= 0.0:
            raise ValueError("calibration.window_s must be >= 0 and calibration.max_elapsed_s > 0")
        return cfg

    def required_samples(self, frame_step_s: float) -> int:
        if frame_step_s <= 0.0:
            raise ValueError(f"frame_step_s must be > 0, got {frame_step_s}")
        return max(int(self.min_samples), int(math.ceil(float(self.window_s) / float(frame_step_s))))


def scale_from_reference_points(
    p0_px: Tuple[float, float], p1_px: Tuple[float, float], distance_m: float
) -> float:
    """Metres per pixel from two image points a known distance apart."""
    if not distance_m > 0.0:
        raise ValueError(f"Reference distance must be > 0 m, got {distance_m}")
    dist_px = math.hypot(float(p1_px[0]) - float(p0_px[0]), float(p1_px[1]) - float(p0_px[1]))
    if dist_px <= 0.0:
        raise ValueError("Reference points coincide")
    return float(distance_m) / dist_px


class AutoScaleCalibrator:
    """Derives metres-per-pixel from the median apparent size of the target.

    Extents are collected from successful detections until enough samples
    (or enough elapsed time) have been seen; the scale is then frozen. A
    degenerate median leaves the scale unset and restarts collection.
    """

    def __init__(
        self,
        reference_dimension_m: float,
        frame_step_s: float,
        cfg: Optional[CalibrationConfig] = None,
        fixed_scale_m_per_px: Optional[float] = None,
    ) -> None:
        if not reference_dimension_m > 0.0:
            raise ValueError(f"reference_dimension_m must be > 0, got {reference_dimension_m}")
        self._cfg = cfg or CalibrationConfig()
        self._reference_m = float(reference_dimension_m)
        self._required = self._cfg.required_samples(frame_step_s)
        self._extents: List[float] = []
        self._window_start_s: Optional[float] = None
        self._scale: Optional[float] = None
        if fixed_scale_m_per_px is not None:
            if not fixed_scale_m_per_px > 0.0:
                raise ValueError(f"fixed_scale_m_per_px must be > 0, got {fixed_scale_m_per_px}")
            self._scale = float(fixed_scale_m_per_px)

    @property
    def scale_m_per_px(self) -> Optional[float]:
        return self._scale

    @property
    def reference_dimension_m(self) -> float:
        return self._reference_m

    @property
    def collected_extents(self) -> Tuple[float, ...]:
        return tuple(self._extents)

    @property
    def required_samples(self) -> int:
        return self._required

    @property
    def is_calibrated(self) -> bool:
        return self._scale is not None

    def observe(self, extent_px: float, t_s: float) -> Optional[float]:
        if self._scale is not None:
            return self._scale
        if self._window_start_s is None:
            self._window_start_s = float(t_s)
        self._extents.append(float(extent_px))
        elapsed = float(t_s) - self._window_start_s
        if len(self._extents) >= self._required or elapsed > self._cfg.max_elapsed_s:
            return self._attempt()
        return None

    def finalize(self) -> Optional[float]:
        if self._scale is None and self._extents:
            return self._attempt()
        return self._scale

    def _attempt(self) -> Optional[float]:
        n = len(self._extents)
        median = float(np.median(np.asarray(self._extents, dtype=np.float64)))
        if not median > self._cfg.min_median_px:
            logger.warning("calibration failed: median extent %.2f px over %d samples", median, n)
            self._extents.clear()
            self._window_start_s = None
            return None
        self._scale = self._reference_m / median
        logger.info(
            "calibrated: %.6f m/px (median extent %.2f px over %d samples, reference %.4f m)",
            self._scale,
            median,
            n,
            self._reference_m,
        )
        return self._scale
