from .types import (
    CalibrationProfile,
    EndOfListSettings,
    ErrorRecoverySettings,
    PointPct,
    RandomizationProfile,
    RegionPct,
    Roi,
    SafetySettings,
    TimingSettings,
)
from .loader import (
    CalibrationError,
    default_profiles,
    load_calibration,
    parse_calibration,
    save_calibration,
)

__all__ = [
    "CalibrationProfile",
    "EndOfListSettings",
    "ErrorRecoverySettings",
    "PointPct",
    "RandomizationProfile",
    "RegionPct",
    "Roi",
    "SafetySettings",
    "TimingSettings",
    "CalibrationError",
    "default_profiles",
    "load_calibration",
    "parse_calibration",
    "save_calibration",
]
