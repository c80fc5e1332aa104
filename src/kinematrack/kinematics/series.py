from __future__ import annotations

import math
from typing import List, Sequence, Tuple

from kinematrack.utils.types import SampleRecord

Series = Tuple[List[float], List[float]]

AXES = ("speed", "x", "y")
VELOCITY_SOURCES = ("filter", "difference")


def _check_axis(axis: str) -> None:
    if axis not in AXES:
        raise ValueError(f"motion axis must be one of {', '.join(AXES)}, got {axis}")


def _component(axis: str, dx: float, dy: float) -> float:
    if axis == "x":
        return dx
    if axis == "y":
        return dy
    return math.hypot(dx, dy)


def filter_velocity_series(samples: Sequence[SampleRecord], axis: str = "speed") -> Series:
    """Velocity along ``axis`` as estimated by the tracker.

    The first record carries the filter's zero-velocity initialisation, not
    an estimate, so it is left out.
    """
    _check_axis(axis)
    ts: List[float] = []
    vs: List[float] = []
    for s in samples[1:]:
        ts.append(float(s.t))
        vs.append(_component(axis, s.vx, s.vy))
    return ts, vs


def difference_velocity_series(samples: Sequence[SampleRecord], axis: str = "speed") -> Series:
    """Velocity from consecutive position differences, stamped at the later sample."""
    _check_axis(axis)
    ts: List[float] = []
    vs: List[float] = []
    for prev, cur in zip(samples, samples[1:]):
        dt = float(cur.t - prev.t)
        if dt <= 0.0:
            continue
        ts.append(float(cur.t))
        vs.append(_component(axis, cur.x - prev.x, cur.y - prev.y) / dt)
    return ts, vs


def velocity_series(samples: Sequence[SampleRecord], axis: str = "speed", source: str = "filter") -> Series:
    if source == "filter":
        return filter_velocity_series(samples, axis)
    if source == "difference":
        return difference_velocity_series(samples, axis)
    raise ValueError(f"velocity source must be one of {', '.join(VELOCITY_SOURCES)}, got {source}")


def position_series(samples: Sequence[SampleRecord], axis: str = "speed") -> Series:
    """Displacement from the first record along ``axis``.

    For ``speed`` this is the straight-line distance from the start point.
    """
    _check_axis(axis)
    if not samples:
        return [], []
    x0 = samples[0].x
    y0 = samples[0].y
    ts = [float(s.t) for s in samples]
    ps = [_component(axis, s.x - x0, s.y - y0) for s in samples]
    return ts, ps
