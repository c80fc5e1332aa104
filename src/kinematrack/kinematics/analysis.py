from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional, Sequence

from kinematrack.kinematics.regression import fit_linear, fit_quadratic, fit_through_origin, theoretical_acceleration
from kinematrack.kinematics.series import AXES, VELOCITY_SOURCES, position_series, velocity_series
from kinematrack.utils.types import FitMode, FitResult, MotionAxis, Report, SampleRecord


@dataclass(frozen=True)
class AnalysisConfig:
    motion_axis: MotionAxis = "speed"
    fit_mode: FitMode = "origin"
    velocity_source: str = "filter"

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "AnalysisConfig":
        axis = str(d.get("motion_axis", "speed")).lower()
        if axis not in AXES:
            raise ValueError(f"analysis.motion_axis must be one of: {', '.join(AXES)}")
        mode = str(d.get("fit_mode", "origin")).lower()
        if mode not in {"origin", "free"}:
            raise ValueError("analysis.fit_mode must be one of: origin, free")
        source = str(d.get("velocity_source", "filter")).lower()
        if source not in VELOCITY_SOURCES:
            raise ValueError(f"analysis.velocity_source must be one of: {', '.join(VELOCITY_SOURCES)}")
        return AnalysisConfig(motion_axis=axis, fit_mode=mode, velocity_source=source)  # type: ignore[arg-type]


def relative_error(a_fit: Optional[float], a_theory: float) -> Optional[float]:
    if a_fit is None or a_theory == 0.0:
        return None
    return abs(a_fit - a_theory) / abs(a_theory)


def analyze(
    samples: Sequence[SampleRecord],
    theta_deg: float,
    calibration_scale: Optional[float] = None,
    cfg: Optional[AnalysisConfig] = None,
    units_calibrated: bool = True,
) -> Report:
    """Fit the finalized trajectory and compare it with ``g sin(theta)``.

    Unavailable fits stay ``None`` in the report; nothing here raises on
    short or degenerate input. Samples in pixel units (``units_calibrated``
    false) are fitted but not compared with the theory.
    """
    cfg = cfg or AnalysisConfig()
    ts, vs = velocity_series(samples, cfg.motion_axis, cfg.velocity_source)
    constrained = fit_through_origin(ts, vs)
    free = fit_linear(ts, vs)
    pt, ps = position_series(samples, cfg.motion_axis)
    quad = fit_quadratic(pt, ps)

    primary: Optional[FitResult] = constrained if cfg.fit_mode == "origin" else free
    a_theory = theoretical_acceleration(theta_deg)
    slope = primary.slope if primary is not None else None

    return Report(
        sample_count=len(samples),
        slope=slope,
        intercept=primary.intercept if primary is not None else None,
        r_squared=primary.r_squared if primary is not None else None,
        a_theory=a_theory,
        calibration_scale=calibration_scale,
        fit_mode=cfg.fit_mode,
        motion_axis=cfg.motion_axis,
        a_constrained=constrained.slope if constrained is not None else None,
        a_free=free.slope if free is not None else None,
        a_quadratic=quad.acceleration if quad is not None else None,
        relative_error=relative_error(slope, a_theory) if units_calibrated else None,
    )


def report_to_dict(report: Report) -> Dict[str, Any]:
    return {
        "sample_count": report.sample_count,
        "slope": report.slope,
        "intercept": report.intercept,
        "r_squared": report.r_squared,
        "a_theory": report.a_theory,
        "calibration_scale": report.calibration_scale,
        "fit_mode": report.fit_mode,
        "motion_axis": report.motion_axis,
        "a_constrained": report.a_constrained,
        "a_free": report.a_free,
        "a_quadratic": report.a_quadratic,
        "relative_error": report.relative_error,
    }
