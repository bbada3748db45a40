from .thresholds import (
    CheckKey,
    CHECK_ORDER,
    MaxBound,
    TargetTolerance,
    ThresholdEntry,
    FormThresholds,
    ThresholdConfig,
    get_thresholds,
    load_thresholds,
    thresholds_from_dict,
    THRESHOLDS,
)
from .settings import Settings, get_settings

__all__ = [
    "CheckKey",
    "CHECK_ORDER",
    "MaxBound",
    "TargetTolerance",
    "ThresholdEntry",
    "FormThresholds",
    "ThresholdConfig",
    "get_thresholds",
    "load_thresholds",
    "thresholds_from_dict",
    "THRESHOLDS",
    "Settings", "get_settings",
]
