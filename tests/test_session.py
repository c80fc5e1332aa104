import threading

import numpy as np
import pytest

from kinematrack.io.frames import ArrayFrameSource
from kinematrack.kinematics.regression import theoretical_acceleration
from kinematrack.pipeline.session import Session, SessionConfig
from kinematrack.utils.types import Frame

W = 300
H = 80
DT = 0.05
D_PX = 30


def _frame(t: float, cx=None, cy: int = 40) -> Frame:
    img = np.zeros((H, W, 3), dtype=np.uint8)
    img[:, :] = (40, 40, 120)
    if cx is not None:
        yy, xx = np.mgrid[0:H, 0:W]
        r = D_PX / 2.0
        img[(xx + 0.5 - cx) ** 2 + (yy + 0.5 - cy) ** 2 <= r * r] = (30, 200, 40)
    return Frame(timestamp_s=t, pixels=img)


def _rolling(n: int, t0: float = 0.0):
    # x advances by k^2 pixels: constant acceleration of 2 / DT^2 px/s^2
    return [_frame(t0 + k * DT, cx=20 + k * k) for k in range(n)]


def _cfg(**overrides) -> SessionConfig:
    raw = {
        "session": {
            "reference_dimension_m": 0.15,
            "frame_step_s": DT,
            "theta_deg": 30.0,
        },
        "detection": {"strategy": "color_threshold", "stride": 1, "min_pixels": 40},
        "tracking": {"q_pos": 1e-9, "q_vel": 1.0, "r_std": 1e-5, "p0_pos": 1e-8, "p0_vel": 100.0},
        "analysis": {"motion_axis": "x", "fit_mode": "free"},
    }
    for key, value in overrides.items():
        sect, name = key.split("__")
        raw.setdefault(sect, {})[name] = value
    return SessionConfig.from_dict(raw)


def test_recovers_incline_acceleration_from_rolling_disc() -> None:
    a_theory = theoretical_acceleration(30.0)
    scale = a_theory / (2.0 / DT ** 2)
    session = Session(_cfg(session__reference_dimension_m=D_PX * scale))
    session.run(ArrayFrameSource(_rolling(16)))
    report = session.finalize()

    assert session.frames_seen == 16
    assert session.detections == 16
    assert report.sample_count == 16
    assert report.calibration_scale is not None
    assert abs(report.calibration_scale - scale) / scale < 0.01
    assert report.slope is not None
    assert abs(report.slope - a_theory) / a_theory < 0.01
    assert report.r_squared is not None and report.r_squared > 0.999
    assert report.a_quadratic is not None
    assert abs(report.a_quadratic - a_theory) / a_theory < 0.01
    assert report.relative_error is not None and report.relative_error < 0.01

    ts = [s.t for s in session.samples]
    assert ts[0] == 0.0
    assert all(b > a for a, b in zip(ts, ts[1:]))
    assert all(abs(s.vy) < 1e-3 for s in session.samples)


def test_calibrates_to_reference_over_diameter() -> None:
    session = Session(_cfg())
    session.run(ArrayFrameSource(_rolling(12)))
    assert session.calibration_scale is not None
    assert abs(session.calibration_scale - 0.15 / D_PX) / (0.15 / D_PX) < 0.01


def test_time_is_relative_to_first_detection() -> None:
    frames = [_frame(10.0), _frame(10.0 + DT), _frame(10.0 + 2 * DT)]
    frames += _rolling(12, t0=10.0 + 3 * DT)
    session = Session(_cfg())
    session.run(frames)
    session.finalize()
    assert session.epoch_s == pytest.approx(10.0 + 3 * DT)
    assert session.samples[0].t == 0.0
    assert session.samples[-1].t == pytest.approx(11 * DT)


def test_slow_motion_scale_shrinks_time() -> None:
    session = Session(_cfg(session__slow_motion_scale=4.0))
    session.run(_rolling(12))
    session.finalize()
    assert session.samples[-1].t == pytest.approx(11 * DT / 4.0)
    assert session.calibrator.required_samples == 40


def test_hold_replays_detections_after_calibration() -> None:
    emitted = []
    session = Session(_cfg(), on_sample=emitted.append)
    frames = _rolling(12)
    returned = []
    for f in frames[:9]:
        returned.extend(session.process_frame(f))
    assert returned == []
    assert session.samples == ()
    assert session.calibration_scale is None

    batch = session.process_frame(frames[9])
    assert len(batch) == 10
    assert [s.t for s in batch] == pytest.approx([k * DT for k in range(10)])
    assert emitted == batch


def test_short_stream_calibrates_at_finalize() -> None:
    session = Session(_cfg())
    session.run(_rolling(5))
    assert session.samples == ()
    report = session.finalize()
    assert report.sample_count == 5
    assert report.calibration_scale is not None


def test_uncalibrated_stream_drops_held_detections() -> None:
    session = Session(_cfg(calibration__min_median_px=100.0))
    session.run(_rolling(12))
    report = session.finalize()
    assert report.sample_count == 0
    assert report.slope is None
    assert report.calibration_scale is None


def test_pixels_policy_emits_pixel_samples_until_calibrated() -> None:
    session = Session(_cfg(session__uncalibrated="pixels"))
    frames = _rolling(14)
    early = []
    for f in frames[:9]:
        early.extend(session.process_frame(f))
    assert len(early) == 9
    assert session.pixel_units
    assert early[0].x == pytest.approx(20 - 0.5)

    after = session.process_frame(frames[9])
    assert len(after) == 10
    assert not session.pixel_units
    assert after[0].t == 0.0
    assert after[0].x == pytest.approx((20 - 0.5) * 0.15 / D_PX)
    assert after[-1].x == pytest.approx((20 + 81 - 0.5) * 0.15 / D_PX, rel=1e-3)
    session.run(frames[10:])
    assert len(session.samples) == 14
    assert all(s.x < 2.0 for s in session.samples)


def test_pixels_policy_short_stream_calibrates_at_finalize() -> None:
    session = Session(_cfg(session__uncalibrated="pixels"))
    session.run(_rolling(5))
    assert session.pixel_units
    assert len(session.calibrator.collected_extents) == 5

    report = session.finalize()
    assert not session.pixel_units
    assert report.calibration_scale is not None
    assert abs(report.calibration_scale - 0.15 / D_PX) < 1e-9
    assert report.sample_count == 5
    assert session.samples[0].x == pytest.approx((20 - 0.5) * 0.15 / D_PX)
    assert report.relative_error is not None


def test_pixels_policy_uncalibrated_report_has_no_theory_comparison() -> None:
    session = Session(_cfg(session__uncalibrated="pixels", calibration__min_median_px=100.0))
    session.run(_rolling(12))
    report = session.finalize()
    assert session.pixel_units
    assert report.calibration_scale is None
    assert report.sample_count == 12
    assert report.slope is not None
    assert report.relative_error is None


def test_held_detections_are_capped() -> None:
    session = Session(_cfg(session__max_held_detections=4))
    session.run(_rolling(12))
    # calibration at the tenth frame replays only the four newest held detections
    assert session.held_dropped == 5
    ts = [s.t for s in session.samples]
    assert len(ts) == 7
    assert ts[0] == pytest.approx(5 * DT)
    with pytest.raises(ValueError):
        _cfg(session__max_held_detections=0)


def test_fixed_scale_skips_calibration() -> None:
    session = Session(_cfg(session__fixed_scale_m_per_px=0.01))
    out = session.process_frame(_rolling(1)[0])
    assert len(out) == 1
    assert out[0].x == pytest.approx((20 - 0.5) * 0.01)
    assert session.calibrator.collected_extents == ()


def test_misses_leave_gaps() -> None:
    frames = _rolling(12)
    frames[4] = _frame(frames[4].timestamp_s)
    frames[5] = _frame(frames[5].timestamp_s)
    session = Session(_cfg())
    session.run(frames)
    report = session.finalize()
    assert report.sample_count == 10
    assert session.detections == 10
    ts = [s.t for s in session.samples]
    assert all(abs(t - 4 * DT) > 1e-9 for t in ts)
    assert ts[4] == pytest.approx(6 * DT)


def test_predict_gap_policy_advances_tracker() -> None:
    frames = _rolling(12)
    frames[11] = _frame(frames[11].timestamp_s)
    session = Session(_cfg(tracking__gap_policy="predict"))
    session.run(frames)
    assert session.tracker.last_update_s == pytest.approx(11 * DT)
    assert session.samples[-1].t == pytest.approx(10 * DT)


def test_duplicate_timestamp_yields_one_record() -> None:
    session = Session(_cfg(session__fixed_scale_m_per_px=0.01))
    f = _rolling(1)[0]
    assert len(session.process_frame(f)) == 1
    assert session.process_frame(Frame(timestamp_s=f.timestamp_s, pixels=f.pixels)) == []
    assert len(session.samples) == 1


def test_backwards_timestamp_raises() -> None:
    session = Session(_cfg())
    session.process_frame(_frame(1.0))
    with pytest.raises(ValueError):
        session.process_frame(_frame(0.5))


def test_cancellation_keeps_samples() -> None:
    stop = threading.Event()

    def on_sample(_s) -> None:
        if len(session.samples) >= 3:
            stop.set()

    session = Session(_cfg(session__fixed_scale_m_per_px=0.01), on_sample=on_sample)
    n = session.run(_rolling(12), cancel=stop)
    assert n == 3
    assert len(session.samples) == 3
    assert session.finalize().sample_count == 3


def test_session_config_validation() -> None:
    with pytest.raises(ValueError):
        _cfg(session__reference_dimension_m=0.0)
    with pytest.raises(ValueError):
        _cfg(session__slow_motion_scale=0.0)
    with pytest.raises(ValueError):
        _cfg(session__uncalibrated="guess")
    with pytest.raises(ValueError):
        Session(_cfg(detection__strategy="hough"))


def test_relative_time_before_detection_raises() -> None:
    session = Session(_cfg())
    with pytest.raises(RuntimeError):
        session.relative_time(1.0)
