from .kalman import ConstantVelocityTracker, GapPolicy, TrackerConfig
from .linalg import inv2, transition

__all__ = ["ConstantVelocityTracker", "GapPolicy", "TrackerConfig", "inv2", "transition"]
