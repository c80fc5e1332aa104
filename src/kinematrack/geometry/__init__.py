from .calibration import AutoScaleCalibrator, CalibrationConfig, scale_from_reference_points

__all__ = ["AutoScaleCalibrator", "CalibrationConfig", "scale_from_reference_points"]
