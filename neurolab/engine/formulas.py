"""
formulas
========

Closed-form safety and image-quality relations for the MRI console.

All functions are pure and side-effect free.  The scan engine and the live
console preview share :func:`predicted_snr`, so the number shown while the
player tunes parameters is the number the experiment is judged on.

Safety model
------------
The SAR safety factor shrinks as more virtual observation points (VOPs) are
simulated::

    SF(N) = 1 + 5.37 * N ** -0.75

A large safety factor forces the RF power down, which costs signal:
``power_clamp = min(1, 1.5 / SF)``.

Gradients
---------
Finer voxels and EPI read-outs demand faster slew.  Demand is compared to the
capacity of the installed gradient tier and drives the peripheral nerve
stimulation (PNS) risk estimate.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Dict, List, Mapping, Tuple

from .catalog import GradientType, MagnetType, SequenceType
from .models import LabConfiguration, SafetyModelState, ScanParameters, ShimmingVector

BASE_SNR: Mapping[MagnetType, float] = {
    MagnetType.T3: 40.0,
    MagnetType.T7: 70.0,
    MagnetType.T11_7: 100.0,
}

SEQUENCE_SNR_MULTIPLIER: Mapping[SequenceType, float] = {
    SequenceType.GRE: 1.0,
    SequenceType.SE: 1.5,
    SequenceType.EPI: 0.8,
}

GRADIENT_CAPACITY: Mapping[GradientType, float] = {
    GradientType.STANDARD: 80.0,
    GradientType.HIGH_PERF: 200.0,
    GradientType.CONNECTOME: 300.0,
}

SAR_COEFFICIENT = 5.37
SAR_EXPONENT = 0.75
POWER_LIMIT = 1.5
REFERENCE_DURATION_MIN = 4.0
PNS_THRESHOLD = 250.0
PNS_WARNING_LEVEL = 85.0
SHIM_GOOD_THRESHOLD = 15.0
SHIM_ABORT_THRESHOLD = 60.0
MOTION_ONSET_MIN = 10.0


def safety_factor(n: int) -> float:
    """Return the SAR safety factor for ``n`` virtual observation points."""

    if n < 2:
        raise ValueError(f"Safety model needs at least 2 observation points, got {n}")
    return 1.0 + SAR_COEFFICIENT * float(n) ** -SAR_EXPONENT


def power_clamp(sf: float) -> float:
    return min(1.0, POWER_LIMIT / sf)


def predicted_snr(
    magnet: MagnetType,
    resolution: float,
    duration: float,
    sequence: SequenceType,
    sf: float,
) -> float:
    """Signal-to-noise ratio of a scan.

    Signal scales with field strength, with the square root of acquisition
    time and with voxel volume, then is throttled by the SAR power clamp.
    """

    if resolution <= 0:
        raise ValueError("resolution must be positive")
    if duration < 0:
        raise ValueError("duration must be non-negative")
    base = BASE_SNR[magnet]
    return (
        base
        * power_clamp(sf)
        * math.sqrt(duration / REFERENCE_DURATION_MIN)
        * SEQUENCE_SNR_MULTIPLIER[sequence]
        / resolution**3
    )


def gradient_demand(resolution: float, sequence: SequenceType) -> float:
    """Required slew rate in T/m/s."""

    epi_factor = 1.5 if sequence is SequenceType.EPI else 1.0
    return (3.5 - resolution) * 80.0 * epi_factor


def gradient_capacity(tier: GradientType) -> float:
    return GRADIENT_CAPACITY[tier]


def gradient_load(demand: float, capacity: float) -> float:
    return min(100.0, demand / capacity * 100.0)


def pns_risk_raw(demand: float) -> float:
    """Uncapped PNS percentage; the scan gate aborts above 100."""

    return demand / PNS_THRESHOLD * 100.0


def pns_risk(demand: float) -> float:
    return min(100.0, pns_risk_raw(demand))


def shim_error(vector: ShimmingVector) -> float:
    return vector.error


@dataclass(frozen=True)
class BlurTerms:
    shim: float
    motion: float
    resolution: float

    @property
    def total(self) -> float:
        return self.shim + self.motion + self.resolution


def image_blur(shim_err: float, duration: float, resolution: float) -> BlurTerms:
    """Blur contributions used to render the preview phantom."""

    motion = (duration - MOTION_ONSET_MIN) * 0.5 if duration > MOTION_ONSET_MIN else 0.0
    return BlurTerms(shim=shim_err / 20.0, motion=motion, resolution=3.0 - resolution)


def safety_factor_curve(start: int = 2, stop: int = 64, step: int = 2) -> List[Tuple[int, float]]:
    return [(n, round(safety_factor(n), 2)) for n in range(start, stop + 1, step)]


@dataclass(frozen=True)
class ConsolePreview:
    """Every live quantity the scan console displays before acquisition."""

    snr: float
    safety_factor: float
    power_clamp: float
    gradient_demand: float
    gradient_capacity: float
    gradient_load: float
    gradient_overload: bool
    pns_risk: float
    pns_warning: bool
    shim_error: float
    shim_good: bool
    blur: BlurTerms
    rf_artifacts: bool
    safety_curve: List[Tuple[int, float]] = field(default_factory=list)

    def as_dict(self) -> Dict[str, object]:
        return {
            "snr": self.snr,
            "safety_factor": self.safety_factor,
            "power_clamp": self.power_clamp,
            "gradient_demand": self.gradient_demand,
            "gradient_capacity": self.gradient_capacity,
            "gradient_load": self.gradient_load,
            "gradient_overload": self.gradient_overload,
            "pns_risk": self.pns_risk,
            "pns_warning": self.pns_warning,
            "shim_error": self.shim_error,
            "shim_good": self.shim_good,
            "blur": {
                "shim": self.blur.shim,
                "motion": self.blur.motion,
                "resolution": self.blur.resolution,
                "total": self.blur.total,
            },
            "rf_artifacts": self.rf_artifacts,
            "safety_curve": [list(point) for point in self.safety_curve],
        }


def preview_console(
    lab: LabConfiguration,
    scan: ScanParameters,
    shim: ShimmingVector,
    safety: SafetyModelState,
) -> ConsolePreview:
    """Compute the console read-outs for the current configuration.

    Without a magnet the SNR reads zero; everything else is still defined.
    """

    sf = safety_factor(safety.model_count_n)
    clamp = power_clamp(sf)
    snr = 0.0
    if lab.magnet is not None:
        snr = predicted_snr(lab.magnet, scan.resolution, scan.duration, scan.sequence, sf)
    demand = gradient_demand(scan.resolution, scan.sequence)
    capacity = gradient_capacity(lab.gradient)
    pns = pns_risk(demand)
    err = shim_error(shim)
    rf_artifacts = bool(lab.magnet is not None and lab.magnet.is_ultra_high_field and not lab.ptx_enabled)
    return ConsolePreview(
        snr=snr,
        safety_factor=sf,
        power_clamp=clamp,
        gradient_demand=demand,
        gradient_capacity=capacity,
        gradient_load=gradient_load(demand, capacity),
        gradient_overload=demand > capacity,
        pns_risk=pns,
        pns_warning=pns > PNS_WARNING_LEVEL,
        shim_error=err,
        shim_good=err < SHIM_GOOD_THRESHOLD,
        blur=image_blur(err, scan.duration, scan.resolution),
        rf_artifacts=rf_artifacts,
        safety_curve=safety_factor_curve(),
    )


__all__ = [
    "BASE_SNR",
    "BlurTerms",
    "ConsolePreview",
    "GRADIENT_CAPACITY",
    "PNS_WARNING_LEVEL",
    "SEQUENCE_SNR_MULTIPLIER",
    "SHIM_ABORT_THRESHOLD",
    "SHIM_GOOD_THRESHOLD",
    "gradient_capacity",
    "gradient_demand",
    "gradient_load",
    "image_blur",
    "pns_risk",
    "pns_risk_raw",
    "power_clamp",
    "predicted_snr",
    "preview_console",
    "safety_factor",
    "safety_factor_curve",
    "shim_error",
]
