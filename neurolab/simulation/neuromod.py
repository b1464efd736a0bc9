"""Closed-loop neuromodulation of a parkinsonian subthalamic nucleus.

The player first identifies the pathological circuit, then chooses between an
implanted optical fiber (blue light, delivered directly) and upconversion
nanoparticles (near-infrared light converted in situ).  During the control
phase each 100 ms tick:

* light delivery efficiency depends on the method and wavelength;
* effective power suppresses STN firing, with a little physiological noise;
* total delivered power heats the tissue, which cools passively toward 37 degC;
* sustained overheating erodes tissue integrity;
* holding STN activity low while the tissue stays cool builds stability.

The run ends when stability saturates (success) or integrity is exhausted.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import logging
from typing import Dict, Mapping, Optional, Protocol

from .errors import FailureReason, PreconditionError

LOGGER = logging.getLogger(__name__)

TICK_SECONDS = 0.1
BASELINE_TEMPERATURE = 37.0
BASELINE_STN = 80.0
SUPPRESSION_GAIN = 2.0
NOISE_AMPLITUDE = 10.0
HEATING_COEFFICIENT = 0.02
COOLING_PER_TICK = 0.5
DAMAGE_THRESHOLD = 41.0
STABLE_STN = 40.0
STABLE_TEMPERATURE = 40.0
FIBER_BAND_NM = (450.0, 500.0)
FIBER_OFF_BAND_EFFICIENCY = 0.1
UCNP_PEAK_NM = 980.0
UCNP_HALF_WIDTH_NM = 50.0
WAVELENGTH_RANGE_NM = (400.0, 1100.0)
POWER_RANGE_MW = (0.0, 100.0)
FREQUENCY_RANGE_HZ = (1.0, 100.0)

DIAGNOSIS_KNOWLEDGE_POINTS = 50
TREATMENT_KNOWLEDGE_POINTS = 30
CREDIBILITY_SHIFT = 10


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return float(max(low, min(high, value)))


class RandomSource(Protocol):
    def random(self) -> float:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True)
class CircuitOption:
    id: str
    label: str
    description: str


CIRCUIT_OPTIONS: Mapping[str, CircuitOption] = {
    "healthy": CircuitOption("healthy", "Normal Pathway", "Balanced Direct/Indirect"),
    "pd": CircuitOption("pd", "Parkinsonian State", "STN Hyperactivity due to GPe inhibition"),
    "hd": CircuitOption("hd", "Huntington State", "Striatal atrophy"),
}
PATHOLOGICAL_CIRCUIT = "pd"


class TreatmentMethod(str, Enum):
    FIBER = "fiber"
    UCNP = "ucnp"

    @property
    def default_wavelength(self) -> float:
        return 980.0 if self is TreatmentMethod.UCNP else 473.0


class LoopStatus(str, Enum):
    IDLE = "idle"
    ACTIVE = "active"
    SUCCESS = "success"
    FAILURE = "failure"


@dataclass(frozen=True)
class TreatmentConfig:
    """Operator controls for the stimulation source."""

    method: Optional[TreatmentMethod] = None
    wavelength: float = 470.0
    power: float = 0.0
    frequency: float = 20.0

    def for_method(self, method: TreatmentMethod) -> "TreatmentConfig":
        return replace(self, method=method, wavelength=method.default_wavelength, power=0.0, frequency=20.0)

    def clamped(self) -> "TreatmentConfig":
        return replace(
            self,
            wavelength=_clamp(self.wavelength, WAVELENGTH_RANGE_NM),
            power=_clamp(self.power, POWER_RANGE_MW),
            frequency=_clamp(self.frequency, FREQUENCY_RANGE_HZ),
        )

    def as_dict(self) -> Dict[str, object]:
        return {
            "method": self.method.value if self.method else None,
            "wavelength": self.wavelength,
            "power": self.power,
            "frequency": self.frequency,
        }


@dataclass(frozen=True)
class NeuromodulationState:
    elapsed: float = 0.0
    temperature: float = BASELINE_TEMPERATURE
    stn_activity: float = BASELINE_STN
    tremor: float = 100.0
    tissue_integrity: float = 100.0
    stability: float = 0.0
    status: LoopStatus = LoopStatus.IDLE
    reason: Optional[FailureReason] = None

    @property
    def finished(self) -> bool:
        return self.status in (LoopStatus.SUCCESS, LoopStatus.FAILURE)

    def as_dict(self) -> Dict[str, object]:
        return {
            "elapsed": round(self.elapsed, 3),
            "temperature": self.temperature,
            "stn_activity": self.stn_activity,
            "tremor": self.tremor,
            "tissue_integrity": self.tissue_integrity,
            "stability": self.stability,
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
        }


@dataclass(frozen=True)
class TreatmentResult:
    success: bool
    tissue_integrity: float
    treatment_stability: float

    def as_dict(self) -> Dict[str, object]:
        return {
            "success": self.success,
            "tissue_integrity": self.tissue_integrity,
            "treatment_stability": self.treatment_stability,
        }


def is_correct_diagnosis(circuit_id: str) -> bool:
    if circuit_id not in CIRCUIT_OPTIONS:
        raise ValueError(f"Unknown circuit '{circuit_id}'")
    return circuit_id == PATHOLOGICAL_CIRCUIT


def delivery_efficiency(method: TreatmentMethod, wavelength: float) -> float:
    """Fraction of the emitted light that reaches the opsin as usable blue."""

    if method is TreatmentMethod.FIBER:
        low, high = FIBER_BAND_NM
        return 1.0 if low <= wavelength <= high else FIBER_OFF_BAND_EFFICIENCY
    offset = abs(wavelength - UCNP_PEAK_NM)
    if offset < UCNP_HALF_WIDTH_NM:
        return max(0.0, 1.0 - offset / UCNP_HALF_WIDTH_NM)
    return 0.0


def duty_cycle(frequency: float) -> float:
    return min(1.0, frequency / 100.0)


def step_loop(state: NeuromodulationState, config: TreatmentConfig, rng: RandomSource) -> NeuromodulationState:
    """Advance the loop by one tick.

    Finished states are returned untouched; the terminal check runs after the
    tick's own updates so the tick that saturates stability also ends the run.
    """

    if state.finished:
        return state
    if config.method is None:
        raise PreconditionError("Select a treatment method before running the loop")

    duty = duty_cycle(config.frequency)
    effective_power = config.power * delivery_efficiency(config.method, config.wavelength) * duty
    noise = (rng.random() - 0.5) * NOISE_AMPLITUDE
    stn = max(10.0, min(100.0, BASELINE_STN - SUPPRESSION_GAIN * effective_power + noise))

    temperature = state.temperature + config.power * duty * HEATING_COEFFICIENT - COOLING_PER_TICK
    temperature = max(BASELINE_TEMPERATURE, temperature)

    integrity = state.tissue_integrity
    if temperature > DAMAGE_THRESHOLD:
        integrity = max(0.0, integrity - 1.0)

    stability = state.stability
    if stn < STABLE_STN and temperature < STABLE_TEMPERATURE:
        stability = min(100.0, stability + 1.0)

    status = LoopStatus.ACTIVE
    reason: Optional[FailureReason] = None
    if stability >= 100.0:
        status = LoopStatus.SUCCESS
        LOGGER.info("Neuromodulation stabilised after %.1fs", state.elapsed + TICK_SECONDS)
    elif integrity <= 0.0:
        status = LoopStatus.FAILURE
        reason = FailureReason.INTEGRITY_EXHAUSTED
        LOGGER.info("Tissue integrity exhausted after %.1fs", state.elapsed + TICK_SECONDS)

    return NeuromodulationState(
        elapsed=state.elapsed + TICK_SECONDS,
        temperature=temperature,
        stn_activity=stn,
        tremor=stn,
        tissue_integrity=integrity,
        stability=stability,
        status=status,
        reason=reason,
    )


def result_of(state: NeuromodulationState) -> TreatmentResult:
    if not state.finished:
        raise PreconditionError("Treatment loop has not finished")
    return TreatmentResult(
        success=state.status is LoopStatus.SUCCESS,
        tissue_integrity=state.tissue_integrity,
        treatment_stability=state.stability,
    )


__all__ = [
    "CIRCUIT_OPTIONS",
    "CREDIBILITY_SHIFT",
    "CircuitOption",
    "DIAGNOSIS_KNOWLEDGE_POINTS",
    "LoopStatus",
    "NeuromodulationState",
    "TREATMENT_KNOWLEDGE_POINTS",
    "TreatmentConfig",
    "TreatmentMethod",
    "TreatmentResult",
    "delivery_efficiency",
    "duty_cycle",
    "is_correct_diagnosis",
    "result_of",
    "step_loop",
]
