"""Exceptions and outcome classifications shared by the game engines.

A failed scan, a burnt cortex or a lost debate is a *result*, reported through
:class:`FailureReason`.  Exceptions are reserved for callers that drive an
engine before its inputs are valid.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Dict


class FailureReason(str, Enum):
    HARDWARE_INCOMPATIBILITY = "quench"
    RF_INHOMOGENEITY = "B1 inhomogeneity"
    GEOMETRIC_DISTORTION = "geometric distortion"
    GRADIENT_OVERLOAD = "gradient overload"
    PNS_ABORT = "PNS abort"
    MOTION_ARTIFACT = "motion artifact"
    LOW_SNR = "noise"
    THERMAL_DAMAGE = "thermal damage"
    INTEGRITY_EXHAUSTED = "integrity exhausted"


class SimulationError(RuntimeError):
    """Base class for engine errors."""

    code = "simulation_error"

    def __init__(self, message: str, *, context: Dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.context = dict(context or {})


class PreconditionError(SimulationError):
    """Raised when an engine is invoked before its inputs are ready."""

    code = "precondition_failed"


__all__ = ["FailureReason", "PreconditionError", "SimulationError"]
