from .config import deep_merge, load_yaml, resolve_path, section
from .logging import setup_logging
from .types import Detection, FitResult, Frame, QuadraticFit, Report, SampleRecord, Segmentation

__all__ = [
    "Detection",
    "FitResult",
    "Frame",
    "QuadraticFit",
    "Report",
    "SampleRecord",
    "Segmentation",
    "deep_merge",
    "load_yaml",
    "resolve_path",
    "section",
    "setup_logging",
]
