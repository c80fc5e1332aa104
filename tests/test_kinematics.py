import math

import pytest

from kinematrack.kinematics.analysis import AnalysisConfig, analyze, relative_error, report_to_dict
from kinematrack.kinematics.regression import (
    G_MPS2,
    fit_linear,
    fit_quadratic,
    fit_through_origin,
    theoretical_acceleration,
)
from kinematrack.kinematics.series import difference_velocity_series, position_series, velocity_series
from kinematrack.utils.types import SampleRecord


def _ramp(a: float, n: int = 20, dt: float = 0.05, angle_deg: float = 0.0):
    """Samples of uniform acceleration from rest along a line at ``angle_deg``."""
    c = math.cos(math.radians(angle_deg))
    s = math.sin(math.radians(angle_deg))
    out = []
    for k in range(n):
        t = k * dt
        d = 0.5 * a * t * t
        v = a * t
        out.append(SampleRecord(t=t, x=0.2 + d * c, y=0.1 + d * s, vx=v * c, vy=v * s))
    return out


def test_fit_through_origin_exact() -> None:
    ts = [0.1 * k for k in range(1, 11)]
    vs = [2.0 * t for t in ts]
    fit = fit_through_origin(ts, vs)
    assert fit is not None
    assert abs(fit.slope - 2.0) < 1e-9
    assert fit.intercept == 0.0


def test_fit_linear_exact() -> None:
    ts = [0.1 * k for k in range(1, 11)]
    vs = [2.0 * t + 1.0 for t in ts]
    fit = fit_linear(ts, vs)
    assert fit is not None
    assert abs(fit.slope - 2.0) < 1e-9
    assert abs(fit.intercept - 1.0) < 1e-9
    assert fit.r_squared is not None
    assert abs(fit.r_squared - 1.0) < 1e-9


def test_fits_unavailable_on_short_or_degenerate_input() -> None:
    assert fit_through_origin([], []) is None
    assert fit_through_origin([0.5], [1.0]) is None
    assert fit_linear([0.5], [1.0]) is None
    assert fit_linear([0.5, 0.5, 0.5], [1.0, 2.0, 3.0]) is None
    assert fit_through_origin([0.0, 0.0], [1.0, 2.0]) is None
    assert fit_quadratic([0.1, 0.2], [1.0, 2.0]) is None
    assert fit_quadratic([0.3, 0.3, 0.3, 0.3], [1.0, 2.0, 3.0, 4.0]) is None


def test_fit_linear_flat_series_has_no_r_squared() -> None:
    fit = fit_linear([0.0, 1.0, 2.0], [3.0, 3.0, 3.0])
    assert fit is not None
    assert abs(fit.slope) < 1e-12
    assert fit.r_squared is None


def test_non_finite_points_are_ignored() -> None:
    fit = fit_through_origin([0.1, 0.2, float("nan"), 0.4], [0.2, 0.4, 5.0, float("inf")])
    assert fit is not None
    assert abs(fit.slope - 2.0) < 1e-9
    with pytest.raises(ValueError):
        fit_linear([0.1, 0.2], [1.0])


def test_fit_quadratic_recovers_acceleration() -> None:
    ts = [1.0 + 0.02 * k for k in range(30)]
    ys = [0.5 * 3.2 * t * t - 0.4 * t + 0.7 for t in ts]
    q = fit_quadratic(ts, ys)
    assert q is not None
    assert abs(q.acceleration - 3.2) < 1e-6
    assert abs(q.b + 0.4) < 1e-6
    assert abs(q.c - 0.7) < 1e-6
    assert q.r_squared is not None and q.r_squared > 0.999999


def test_fit_quadratic_short_time_span() -> None:
    q = fit_quadratic([0.0, 0.01, 0.02], [0.0, 0.0001, 0.0004])
    assert q is not None
    assert abs(q.acceleration - 2.0) < 1e-6


def test_theoretical_acceleration() -> None:
    assert G_MPS2 == 9.81
    assert abs(theoretical_acceleration(30.0) - 4.905) < 1e-9
    assert theoretical_acceleration(0.0) == 0.0
    assert abs(theoretical_acceleration(90.0) - 9.81) < 1e-12


def test_relative_error() -> None:
    assert relative_error(None, 4.9) is None
    assert relative_error(1.0, 0.0) is None
    assert abs(relative_error(5.0, 4.0) - 0.25) < 1e-12


def test_filter_series_skips_initialisation_record() -> None:
    samples = _ramp(2.0, n=5)
    ts, vs = velocity_series(samples, "speed", "filter")
    assert ts == [s.t for s in samples[1:]]
    assert len(vs) == 4


def test_difference_series_and_axes() -> None:
    samples = _ramp(2.0, n=6, angle_deg=90.0)
    ts, vx = difference_velocity_series(samples, "x")
    assert len(ts) == 5
    assert all(abs(v) < 1e-9 for v in vx)
    _, vy = difference_velocity_series(samples, "y")
    # backward difference of a parabola is the velocity at the interval midpoint
    for t, v in zip(ts, vy):
        assert abs(v - 2.0 * (t - 0.025)) < 1e-9
    with pytest.raises(ValueError):
        velocity_series(samples, "z")
    with pytest.raises(ValueError):
        velocity_series(samples, "speed", "optical_flow")


def test_position_series_is_displacement_from_start() -> None:
    samples = _ramp(2.0, n=4, angle_deg=30.0)
    ts, ds = position_series(samples, "speed")
    assert ds[0] == 0.0
    assert abs(ds[-1] - 0.5 * 2.0 * ts[-1] ** 2) < 1e-12
    assert position_series([], "x") == ([], [])


def test_analyze_matches_incline_theory() -> None:
    a = theoretical_acceleration(20.0)
    samples = _ramp(a, n=25, angle_deg=-20.0)
    report = analyze(samples, theta_deg=20.0, calibration_scale=0.005)
    assert report.sample_count == 25
    assert report.slope is not None
    assert abs(report.slope - a) < 1e-9
    assert report.intercept == 0.0
    assert report.a_free is not None and abs(report.a_free - a) < 1e-9
    assert report.a_quadratic is not None and abs(report.a_quadratic - a) < 1e-6
    assert report.relative_error is not None and report.relative_error < 1e-9
    assert report.calibration_scale == 0.005


def test_analyze_free_fit_on_x_axis() -> None:
    samples = _ramp(1.5, n=10)
    cfg = AnalysisConfig(motion_axis="x", fit_mode="free", velocity_source="difference")
    report = analyze(samples, theta_deg=10.0, cfg=cfg)
    assert report.fit_mode == "free"
    assert report.motion_axis == "x"
    assert report.slope is not None and abs(report.slope - 1.5) < 1e-9
    assert report.r_squared is not None and abs(report.r_squared - 1.0) < 1e-9
    assert report.calibration_scale is None


def test_analyze_too_few_samples_reports_unavailable() -> None:
    report = analyze(_ramp(1.0, n=1), theta_deg=30.0)
    assert report.sample_count == 1
    assert report.slope is None
    assert report.a_quadratic is None
    assert report.relative_error is None
    assert abs(report.a_theory - 4.905) < 1e-9
    d = report_to_dict(report)
    assert d["slope"] is None
    assert d["sample_count"] == 1


def test_analysis_config_from_dict() -> None:
    cfg = AnalysisConfig.from_dict({"motion_axis": "Y", "fit_mode": "free"})
    assert cfg.motion_axis == "y"
    assert cfg.fit_mode == "free"
    assert cfg.velocity_source == "filter"
    with pytest.raises(ValueError):
        AnalysisConfig.from_dict({"fit_mode": "robust"})


def test_fit_linear_keeps_r_squared_on_small_scale_data() -> None:
    ts = [0.001 * k for k in range(4)]
    vs = [1e-4 * t + 1e-3 for t in ts]
    fit = fit_linear(ts, vs)
    assert fit is not None
    assert abs(fit.slope - 1e-4) < 1e-12
    assert fit.r_squared is not None
    assert fit.r_squared > 0.999


def test_fit_linear_non_finite_result_is_unavailable() -> None:
    assert fit_linear([0.0, 1.0, 2.0], [1e308, 1e308, 1e308]) is None
