"""Configuration records consumed by the MRI formula library and scan engine.

Records are frozen: the stores swap in a new instance through
:func:`dataclasses.replace` on every transition, which keeps a configuration
snapshot immutable for the duration of a scan attempt.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .catalog import CoilType, CoolingType, GradientType, MagnetType, SequenceType

RESOLUTION_RANGE_MM = (0.2, 3.0)
DURATION_RANGE_MIN = (1.0, 20.0)
SHIM_RANGE = (-100.0, 100.0)
MODEL_COUNT_RANGE = (2, 64)


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return float(max(low, min(high, value)))


@dataclass(frozen=True, slots=True)
class LabConfiguration:
    """Purchased hardware; the first three fields stay ``None`` until bought."""

    magnet: Optional[MagnetType] = None
    cooling: Optional[CoolingType] = None
    coil: Optional[CoilType] = None
    gradient: GradientType = GradientType.STANDARD
    ptx_enabled: bool = False

    @property
    def is_complete(self) -> bool:
        return self.magnet is not None and self.cooling is not None and self.coil is not None

    def missing_fields(self) -> list[str]:
        return [name for name in ("magnet", "cooling", "coil") if getattr(self, name) is None]

    def as_dict(self) -> Dict[str, Any]:
        return {
            "magnet": self.magnet.value if self.magnet else None,
            "cooling": self.cooling.value if self.cooling else None,
            "coil": self.coil.value if self.coil else None,
            "gradient": self.gradient.value,
            "ptx_enabled": self.ptx_enabled,
        }


@dataclass(frozen=True, slots=True)
class ScanParameters:
    """Pulse sequence, voxel size (mm) and acquisition time (minutes)."""

    sequence: SequenceType = SequenceType.GRE
    resolution: float = 2.0
    duration: float = 5.0

    def clamped(self) -> "ScanParameters":
        return ScanParameters(
            sequence=self.sequence,
            resolution=_clamp(self.resolution, RESOLUTION_RANGE_MM),
            duration=_clamp(self.duration, DURATION_RANGE_MIN),
        )

    def as_dict(self) -> Dict[str, Any]:
        return {"sequence": self.sequence.value, "resolution": self.resolution, "duration": self.duration}


@dataclass(frozen=True, slots=True)
class ShimmingVector:
    """Per-axis B0 shim offsets; zero on every axis is a perfect shim."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0

    @property
    def error(self) -> float:
        return abs(self.x) + abs(self.y) + abs(self.z)

    def clamped(self) -> "ShimmingVector":
        return ShimmingVector(
            x=_clamp(self.x, SHIM_RANGE),
            y=_clamp(self.y, SHIM_RANGE),
            z=_clamp(self.z, SHIM_RANGE),
        )

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True, slots=True)
class SafetyModelState:
    """Number of virtual observation points used by the SAR safety model."""

    model_count_n: int = 2

    def __post_init__(self) -> None:
        low, high = MODEL_COUNT_RANGE
        object.__setattr__(self, "model_count_n", int(max(low, min(high, int(self.model_count_n)))))


@dataclass(frozen=True, slots=True)
class SafetyChecklist:
    """Pre-scan screening items; every box must be ticked before scanning."""

    physiological: bool = False
    vestibular: bool = False
    metallic_implants: bool = False

    @property
    def complete(self) -> bool:
        return self.physiological and self.vestibular and self.metallic_implants

    def as_dict(self) -> Dict[str, bool]:
        return asdict(self)


__all__ = [
    "DURATION_RANGE_MIN",
    "LabConfiguration",
    "MODEL_COUNT_RANGE",
    "RESOLUTION_RANGE_MM",
    "SHIM_RANGE",
    "SafetyChecklist",
    "SafetyModelState",
    "ScanParameters",
    "ShimmingVector",
]
