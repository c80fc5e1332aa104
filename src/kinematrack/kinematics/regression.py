from __future__ import annotations

import math
from typing import List, Optional, Sequence, Tuple

from kinematrack.utils.types import FitResult, QuadraticFit

G_MPS2 = 9.81
EPS = 1e-12


def _finite_pairs(ts: Sequence[float], vs: Sequence[float]) -> List[Tuple[float, float]]:
    if len(ts) != len(vs):
        raise ValueError(f"t and value series differ in length: {len(ts)} != {len(vs)}")
    return [(float(t), float(v)) for t, v in zip(ts, vs) if math.isfinite(t) and math.isfinite(v)]


def fit_through_origin(ts: Sequence[float], vs: Sequence[float]) -> Optional[FitResult]:
    """Least squares ``v = slope * t`` (intercept pinned at 0)."""
    pairs = _finite_pairs(ts, vs)
    if len(pairs) < 2:
        return None
    stt = sum(t * t for t, _ in pairs)
    if stt < EPS:
        return None
    stv = sum(t * v for t, v in pairs)
    return FitResult(slope=stv / stt, intercept=0.0, r_squared=None)


def fit_linear(ts: Sequence[float], vs: Sequence[float]) -> Optional[FitResult]:
    """Least squares ``v = slope * t + intercept`` with R^2."""
    pairs = _finite_pairs(ts, vs)
    n = len(pairs)
    if n < 2:
        return None
    st = sum(t for t, _ in pairs)
    sv = sum(v for _, v in pairs)
    stt = sum(t * t for t, _ in pairs)
    stv = sum(t * v for t, v in pairs)
    svv = sum(v * v for _, v in pairs)

    denom = n * stt - st * st
    if not denom > EPS * n * stt:
        return None
    slope = (n * stv - st * sv) / denom
    intercept = (sv - slope * st) / n

    ss_xy = stv - st * sv / n
    ss_xx = stt - st * st / n
    ss_yy = svv - sv * sv / n
    if not (math.isfinite(slope) and math.isfinite(intercept)):
        return None
    r_squared: Optional[float] = None
    # spreads relative to the raw second moments, so small-scale data keeps its R^2
    if ss_xx > EPS * stt and ss_yy > EPS * svv:
        r2 = (ss_xy * ss_xy) / (ss_xx * ss_yy)
        if math.isfinite(r2):
            r_squared = min(1.0, r2)
    return FitResult(slope=slope, intercept=intercept, r_squared=r_squared)


def _det3(m: Sequence[Sequence[float]]) -> float:
    return (
        m[0][0] * (m[1][1] * m[2][2] - m[1][2] * m[2][1])
        - m[0][1] * (m[1][0] * m[2][2] - m[1][2] * m[2][0])
        + m[0][2] * (m[1][0] * m[2][1] - m[1][1] * m[2][0])
    )


def _replace_column(m: Sequence[Sequence[float]], col: int, rhs: Sequence[float]) -> List[List[float]]:
    return [[rhs[r] if c == col else m[r][c] for c in range(3)] for r in range(3)]


def fit_quadratic(ts: Sequence[float], ys: Sequence[float]) -> Optional[QuadraticFit]:
    """Least squares ``y = a t^2 + b t + c`` solved with Cramer's rule.

    Time is centred on its mean before building the normal equations, then
    the coefficients are mapped back to the input time origin.
    """
    pairs = _finite_pairs(ts, ys)
    n = len(pairs)
    if n < 3:
        return None
    t_mean = sum(t for t, _ in pairs) / n
    us = [(t - t_mean, y) for t, y in pairs]

    s1 = sum(u for u, _ in us)
    s2 = sum(u ** 2 for u, _ in us)
    s3 = sum(u ** 3 for u, _ in us)
    s4 = sum(u ** 4 for u, _ in us)
    r0 = sum(y for _, y in us)
    r1 = sum(u * y for u, y in us)
    r2 = sum(u * u * y for u, y in us)

    m = [[s4, s3, s2], [s3, s2, s1], [s2, s1, float(n)]]
    rhs = [r2, r1, r0]
    det = _det3(m)
    # determinant relative to the magnitude of the centred sums
    scale = s4 * s2 * n
    if scale <= 0.0 or abs(det) <= EPS * scale:
        return None
    a = _det3(_replace_column(m, 0, rhs)) / det
    b_u = _det3(_replace_column(m, 1, rhs)) / det
    c_u = _det3(_replace_column(m, 2, rhs)) / det

    b = b_u - 2.0 * a * t_mean
    c = a * t_mean * t_mean - b_u * t_mean + c_u

    y_mean = r0 / n
    ss_tot = sum((y - y_mean) ** 2 for _, y in us)
    r_squared: Optional[float] = None
    if ss_tot > EPS:
        ss_res = sum((y - (a * u * u + b_u * u + c_u)) ** 2 for u, y in us)
        r_squared = max(0.0, 1.0 - ss_res / ss_tot)
    if not all(math.isfinite(v) for v in (a, b, c)):
        return None
    return QuadraticFit(a=a, b=b, c=c, r_squared=r_squared)


def theoretical_acceleration(theta_deg: float, g: float = G_MPS2) -> float:
    """Acceleration along a frictionless incline of ``theta_deg`` degrees."""
    return float(g) * math.sin(math.radians(float(theta_deg)))
