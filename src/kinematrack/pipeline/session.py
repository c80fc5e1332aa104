from __future__ import annotations

import logging
import math
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Iterable, List, Literal, Optional, Protocol, Tuple

from kinematrack.detection.base import Detector
from kinematrack.detection.registry import create_detector
from kinematrack.geometry.calibration import AutoScaleCalibrator, CalibrationConfig
from kinematrack.kinematics.analysis import AnalysisConfig, analyze
from kinematrack.tracking.kalman import ConstantVelocityTracker, TrackerConfig
from kinematrack.utils.config import section
from kinematrack.utils.types import Detection, Frame, Report, SampleRecord

UncalibratedPolicy = Literal["hold", "pixels"]


logger = logging.getLogger("kinematrack.pipeline.session")


class CancelSignal(Protocol):
    def is_set(self) -> bool:
        ...


@dataclass(frozen=True)
class SessionConfig:
    reference_dimension_m: float
    frame_step_s: float
    theta_deg: float
    slow_motion_scale: float = 1.0
    uncalibrated: UncalibratedPolicy = "hold"
    fixed_scale_m_per_px: Optional[float] = None
    max_held_detections: int = 2000
    detection_strategy: str = "color_threshold"
    detection: Dict[str, Any] = field(default_factory=dict)
    calibration: CalibrationConfig = field(default_factory=CalibrationConfig)
    tracking: TrackerConfig = field(default_factory=TrackerConfig)
    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)

    def __post_init__(self) -> None:
        if not self.reference_dimension_m > 0.0:
            raise ValueError("session.reference_dimension_m must be > 0")
        if not self.frame_step_s > 0.0:
            raise ValueError("session.frame_step_s must be > 0")
        if not self.slow_motion_scale > 0.0:
            raise ValueError("session.slow_motion_scale must be > 0")
        if self.uncalibrated not in {"hold", "pixels"}:
            raise ValueError("session.uncalibrated must be one of: hold, pixels")
        if int(self.max_held_detections) < 1:
            raise ValueError("session.max_held_detections must be >= 1")

    @property
    def physical_frame_step_s(self) -> float:
        return float(self.frame_step_s) / float(self.slow_motion_scale)

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "SessionConfig":
        s = section(d, "session")
        det = section(d, "detection")
        fixed = s.get("fixed_scale_m_per_px")
        return SessionConfig(
            reference_dimension_m=float(s.get("reference_dimension_m", 0.04)),
            frame_step_s=float(s.get("frame_step_s", 0.01)),
            theta_deg=float(s.get("theta_deg", 0.0)),
            slow_motion_scale=float(s.get("slow_motion_scale", 1.0)),
            uncalibrated=str(s.get("uncalibrated", "hold")).lower(),  # type: ignore[arg-type]
            fixed_scale_m_per_px=float(fixed) if fixed is not None else None,
            max_held_detections=int(s.get("max_held_detections", 2000)),
            detection_strategy=str(det.get("strategy", "color_threshold")).lower(),
            detection=det,
            calibration=CalibrationConfig.from_dict(section(d, "calibration")),
            tracking=TrackerConfig.from_dict(section(d, "tracking")),
            analysis=AnalysisConfig.from_dict(section(d, "analysis")),
        )


class Session:
    """One processing run: owns the detector, calibrator, tracker and samples.

    Frames must arrive in timestamp order. Sample times are physical seconds
    since the first frame in which the target was detected.
    """

    def __init__(
        self,
        cfg: SessionConfig,
        detector: Optional[Detector] = None,
        on_sample: Optional[Callable[[SampleRecord], None]] = None,
    ) -> None:
        self._cfg = cfg
        self._detector = detector or create_detector(cfg.detection_strategy, cfg.detection)
        self._calibrator = AutoScaleCalibrator(
            reference_dimension_m=cfg.reference_dimension_m,
            frame_step_s=cfg.physical_frame_step_s,
            cfg=cfg.calibration,
            fixed_scale_m_per_px=cfg.fixed_scale_m_per_px,
        )
        self._tracker = ConstantVelocityTracker(cfg.tracking)
        self._on_sample = on_sample
        self._samples: List[SampleRecord] = []
        self._held: Deque[Tuple[float, Detection]] = deque(maxlen=int(cfg.max_held_detections))
        self._epoch_s: Optional[float] = None
        self._last_frame_s: Optional[float] = None
        self._tracking_pixels = False
        self.frames_seen = 0
        self.detections = 0
        self.held_dropped = 0

    @property
    def config(self) -> SessionConfig:
        return self._cfg

    @property
    def samples(self) -> Tuple[SampleRecord, ...]:
        return tuple(self._samples)

    @property
    def calibration_scale(self) -> Optional[float]:
        return self._calibrator.scale_m_per_px

    @property
    def calibrator(self) -> AutoScaleCalibrator:
        return self._calibrator

    @property
    def tracker(self) -> ConstantVelocityTracker:
        return self._tracker

    @property
    def epoch_s(self) -> Optional[float]:
        return self._epoch_s

    @property
    def pixel_units(self) -> bool:
        return self._tracking_pixels

    def relative_time(self, timestamp_s: float) -> float:
        if self._epoch_s is None:
            raise RuntimeError("No detection yet; relative time is undefined")
        return (float(timestamp_s) - self._epoch_s) / float(self._cfg.slow_motion_scale)

    def process_frame(self, frame: Frame) -> List[SampleRecord]:
        if self._last_frame_s is not None and frame.timestamp_s < self._last_frame_s:
            raise ValueError(f"Frame timestamp went backwards: {frame.timestamp_s} < {self._last_frame_s}")
        self._last_frame_s = float(frame.timestamp_s)
        self.frames_seen += 1

        det = self._detector.detect(frame)
        if det is None:
            if logger.isEnabledFor(logging.DEBUG):
                logger.debug("target not found at %.3f s", frame.timestamp_s)
            if self._cfg.tracking.gap_policy == "predict" and self._tracker.initialized:
                self._tracker.predict_to(self.relative_time(frame.timestamp_s))
            return []

        self.detections += 1
        if self._epoch_s is None:
            self._epoch_s = float(frame.timestamp_s)
            logger.info("target first detected at %.3f s", self._epoch_s)
        t = self.relative_time(frame.timestamp_s)

        was_calibrated = self._calibrator.is_calibrated
        scale = self._calibrator.observe(det.extent_px, t)
        if scale is None:
            self._hold(t, det)
            if self._cfg.uncalibrated == "hold":
                return []
            self._tracking_pixels = True
            return _present([self._track(t, det.centroid_x, det.centroid_y)])

        out: List[Optional[SampleRecord]] = []
        if not was_calibrated:
            out.extend(self._on_calibrated(scale))
        out.append(self._track(t, det.centroid_x * scale, det.centroid_y * scale))
        return _present(out)

    def run(self, frames: Iterable[Frame], cancel: Optional[CancelSignal] = None) -> int:
        """Feed frames until the source ends or ``cancel`` is set; returns frames processed."""
        n = 0
        for frame in frames:
            if cancel is not None and cancel.is_set():
                logger.info("processing cancelled after %d frames", n)
                break
            self.process_frame(frame)
            n += 1
        return n

    def finalize(self) -> Report:
        if not self._calibrator.is_calibrated:
            scale = self._calibrator.finalize()
            if scale is not None:
                self._on_calibrated(scale)
            elif self._tracking_pixels:
                logger.warning("calibration unavailable; samples are in pixel units")
                self._held.clear()
            elif self._held:
                logger.warning(
                    "calibration unavailable at end of stream; dropping %d held detections",
                    len(self._held),
                )
                self._held.clear()

        report = analyze(
            self._samples,
            theta_deg=self._cfg.theta_deg,
            calibration_scale=self._calibrator.scale_m_per_px,
            cfg=self._cfg.analysis,
            units_calibrated=not self._tracking_pixels,
        )
        logger.info(
            "session done: frames=%d detections=%d samples=%d a_fit=%s a_theory=%.4f scale=%s",
            self.frames_seen,
            self.detections,
            report.sample_count,
            "unavailable" if report.slope is None else f"{report.slope:.4f}",
            report.a_theory,
            "unavailable" if report.calibration_scale is None else f"{report.calibration_scale:.6f}",
        )
        return report

    def _on_calibrated(self, scale: float) -> List[Optional[SampleRecord]]:
        if self._tracking_pixels:
            # pixel-unit records stay with the sinks; the samples are rebuilt in metres
            logger.info("scale available; replaying %d detections in metres", len(self._held))
            self._tracker.reset()
            self._samples.clear()
            self._tracking_pixels = False
        held = list(self._held)
        self._held.clear()
        return [self._track(t, d.centroid_x * scale, d.centroid_y * scale) for t, d in held]

    def _hold(self, t: float, det: Detection) -> None:
        if len(self._held) == self._held.maxlen:
            self.held_dropped += 1
            if self.held_dropped == 1:
                logger.warning("held detections exceed %d; dropping the oldest", self._held.maxlen)
        self._held.append((t, det))

    def _track(self, t: float, x: float, y: float) -> Optional[SampleRecord]:
        sx, svx, sy, svy = self._tracker.update(x, y, t)
        if self._samples and t <= self._samples[-1].t:
            # same timestamp as the previous record: state absorbed, no new record
            return None
        rec = SampleRecord(t=t, x=sx, y=sy, vx=svx, vy=svy)
        if not all(math.isfinite(v) for v in (rec.t, rec.x, rec.y, rec.vx, rec.vy)):
            raise RuntimeError(f"Non-finite sample at t={t}")
        self._samples.append(rec)
        if self._on_sample is not None:
            self._on_sample(rec)
        return rec


def _present(records: List[Optional[SampleRecord]]) -> List[SampleRecord]:
    return [r for r in records if r is not None]
