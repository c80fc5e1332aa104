from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Literal, Optional, Tuple

import numpy as np

from kinematrack.tracking.linalg import H, I4, MEAS_DIM, check_shape, diag4, inv2, symmetrize, transition

GapPolicy = Literal["skip", "predict"]

MIN_DT_S = 1e-6


logger = logging.getLogger("kinematrack.tracking")


@dataclass(frozen=True)
class TrackerConfig:
    """Noise model of the constant-velocity filter (units: m, m/s).

    ``q_pos``/``q_vel`` are per-step process variances; velocity gets the
    larger one. ``p0_vel`` is the initial velocity variance.
    """

    q_pos: float = 1e-6
    q_vel: float = 1e-4
    r_std: float = 0.002
    p0_pos: float = 1e-2
    p0_vel: float = 1e2
    gap_policy: GapPolicy = "skip"

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "TrackerConfig":
        gap = str(d.get("gap_policy", "skip")).lower()
        if gap not in {"skip", "predict"}:
            raise ValueError("tracking.gap_policy must be one of: skip, predict")
        cfg = TrackerConfig(
            q_pos=float(d.get("q_pos", 1e-6)),
            q_vel=float(d.get("q_vel", 1e-4)),
            r_std=float(d.get("r_std", 0.002)),
            p0_pos=float(d.get("p0_pos", 1e-2)),
            p0_vel=float(d.get("p0_vel", 1e2)),
            gap_policy=gap,  # type: ignore[arg-type]
        )
        if cfg.q_pos < 0.0 or cfg.q_vel < 0.0:
            raise ValueError("tracking.q_pos and tracking.q_vel must be >= 0")
        if cfg.r_std <= 0.0 or cfg.p0_pos <= 0.0 or cfg.p0_vel <= 0.0:
            raise ValueError("tracking.r_std, tracking.p0_pos and tracking.p0_vel must be > 0")
        return cfg


class ConstantVelocityTracker:
    """Linear Kalman filter over ``[x, vx, y, vy]`` fed with (x, y) positions."""

    def __init__(self, cfg: Optional[TrackerConfig] = None) -> None:
        self._cfg = cfg or TrackerConfig()
        self._Q = diag4(self._cfg.q_pos, self._cfg.q_vel)
        self._R = np.eye(MEAS_DIM, dtype=np.float64) * (self._cfg.r_std ** 2)
        self._x: Optional[np.ndarray] = None
        self._P: Optional[np.ndarray] = None
        self._t_last_s: Optional[float] = None

    @property
    def config(self) -> TrackerConfig:
        return self._cfg

    @property
    def initialized(self) -> bool:
        return self._x is not None

    @property
    def last_update_s(self) -> Optional[float]:
        return self._t_last_s

    @property
    def state(self) -> Optional[Tuple[float, float, float, float]]:
        if self._x is None:
            return None
        x, vx, y, vy = (float(v) for v in self._x)
        return (x, vx, y, vy)

    @property
    def covariance(self) -> Optional[np.ndarray]:
        return None if self._P is None else self._P.copy()

    def reset(self) -> None:
        self._x = None
        self._P = None
        self._t_last_s = None

    def update(self, x_m: float, y_m: float, t_s: float) -> Tuple[float, float, float, float]:
        z = np.array([float(x_m), float(y_m)], dtype=np.float64)
        if not np.all(np.isfinite(z)):
            raise ValueError(f"Measurement must be finite, got ({x_m}, {y_m})")

        if self._x is None or self._P is None or self._t_last_s is None:
            self._x = np.array([z[0], 0.0, z[1], 0.0], dtype=np.float64)
            self._P = diag4(self._cfg.p0_pos, self._cfg.p0_vel)
            self._t_last_s = float(t_s)
            return self.state  # type: ignore[return-value]

        self._predict(float(t_s))

        P = self._P
        y = z - H @ self._x
        S = H @ P @ H.T + self._R
        K = P @ H.T @ inv2(S)
        self._x = check_shape(self._x + K @ y, (4,), "state")
        self._P = symmetrize((I4 - K @ H) @ P)
        self._check_finite()
        return self.state  # type: ignore[return-value]

    def predict_to(self, t_s: float) -> Optional[Tuple[float, float, float, float]]:
        """Advance without a measurement (predict-through gap policy)."""
        if self._x is None:
            return None
        self._predict(float(t_s))
        self._check_finite()
        return self.state

    def _predict(self, t_s: float) -> None:
        assert self._x is not None and self._P is not None and self._t_last_s is not None
        dt = max(MIN_DT_S, t_s - self._t_last_s)
        F = transition(dt)
        self._x = F @ self._x
        self._P = symmetrize(F @ self._P @ F.T + self._Q)
        self._t_last_s = max(self._t_last_s, t_s)

    def _check_finite(self) -> None:
        if not (np.all(np.isfinite(self._x)) and np.all(np.isfinite(self._P))):
            logger.error("filter diverged at t=%s", self._t_last_s)
            raise RuntimeError("Kalman filter state became non-finite")
