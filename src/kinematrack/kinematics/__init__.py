from .analysis import AnalysisConfig, analyze, relative_error, report_to_dict
from .regression import G_MPS2, fit_linear, fit_quadratic, fit_through_origin, theoretical_acceleration
from .series import position_series, velocity_series

__all__ = [
    "AnalysisConfig",
    "G_MPS2",
    "analyze",
    "fit_linear",
    "fit_quadratic",
    "fit_through_origin",
    "position_series",
    "relative_error",
    "report_to_dict",
    "theoretical_acceleration",
    "velocity_series",
]
