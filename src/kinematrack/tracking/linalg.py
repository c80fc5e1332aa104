"""Fixed-size matrix helpers for the 4-state constant-velocity filter.

State order is ``[x, vx, y, vy]``. Every array here has a shape known up
front (4, 4x4, 2x4, 2x2); helpers check it instead of broadcasting.
"""

from __future__ import annotations

from typing import Tuple

import numpy as np

STATE_DIM = 4
MEAS_DIM = 2

# H: state -> measured (x, y)
H = np.array(
    [
        [1.0, 0.0, 0.0, 0.0],
        [0.0, 0.0, 1.0, 0.0],
    ],
    dtype=np.float64,
)
H.setflags(write=False)

I4 = np.eye(STATE_DIM, dtype=np.float64)
I4.setflags(write=False)


def check_shape(a: np.ndarray, shape: Tuple[int, ...], name: str) -> np.ndarray:
    if a.shape != shape:
        raise ValueError(f"{name} must have shape {shape}, got {a.shape}")
    return a


def transition(dt: float) -> np.ndarray:
    F = np.eye(STATE_DIM, dtype=np.float64)
    F[0, 1] = dt
    F[2, 3] = dt
    return F


def diag4(a: float, b: float) -> np.ndarray:
    """diag(a, b, a, b): same variance pair for both axes."""
    return np.diag(np.array([a, b, a, b], dtype=np.float64))


def inv2(m: np.ndarray, eps: float = 1e-15) -> np.ndarray:
    check_shape(m, (2, 2), "inv2 input")
    a, b = float(m[0, 0]), float(m[0, 1])
    c, d = float(m[1, 0]), float(m[1, 1])
    det = a * d - b * c
    if abs(det) < eps:
        raise ValueError(f"2x2 matrix is singular (det={det:.3e})")
    return np.array([[d, -b], [-c, a]], dtype=np.float64) / det


def symmetrize(P: np.ndarray) -> np.ndarray:
    return 0.5 * (P + P.T)
