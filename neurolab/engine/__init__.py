"""MRI lab catalogue, configuration records and the safety formula library."""

from .catalog import (
    COSTS,
    SUBJECT_TIERS,
    UNLOCK_THRESHOLDS,
    CoilType,
    CoolingType,
    GradientType,
    MagnetType,
    PurchaseCategory,
    SequenceType,
    SubjectType,
)
from .formulas import ConsolePreview, predicted_snr, preview_console, safety_factor
from .models import (
    LabConfiguration,
    SafetyChecklist,
    SafetyModelState,
    ScanParameters,
    ShimmingVector,
)

__all__ = [
    "COSTS",
    "CoilType",
    "ConsolePreview",
    "CoolingType",
    "GradientType",
    "LabConfiguration",
    "MagnetType",
    "PurchaseCategory",
    "SUBJECT_TIERS",
    "SafetyChecklist",
    "SafetyModelState",
    "ScanParameters",
    "SequenceType",
    "ShimmingVector",
    "SubjectType",
    "UNLOCK_THRESHOLDS",
    "predicted_snr",
    "preview_console",
    "safety_factor",
]
