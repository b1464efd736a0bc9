"""MRI experiment resolution.

:func:`resolve_experiment` runs the acquisition gate pipeline against a frozen
snapshot of the lab.  Gates are evaluated in a fixed order and the first one
that trips decides the outcome; later gates are never consulted, so the
motion draw only consumes randomness once hardware, shim, gradient and PNS
checks have passed.

The returned :class:`ExperimentResult` carries the console log that the
frontend replays with the stage delays; :func:`stream_scan` performs that
replay on an asyncio loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
import logging
import math
from typing import AsyncIterator, List, Optional, Protocol, Sequence, Tuple

from ..engine.catalog import CoolingType, MagnetType
from ..engine.formulas import (
    SHIM_ABORT_THRESHOLD,
    gradient_capacity,
    gradient_demand,
    pns_risk_raw,
    predicted_snr,
    safety_factor,
)
from ..engine.models import LabConfiguration, SafetyModelState, ScanParameters, ShimmingVector
from .errors import FailureReason, PreconditionError

LOGGER = logging.getLogger(__name__)

DEFAULT_STAGE_DELAYS_MS: Tuple[int, int, int, int] = (800, 800, 800, 1000)
FAILURE_MONEY = 50_000
FAILURE_PRESTIGE = 2
SUCCESS_MONEY_SCALE = 500_000
SUCCESS_PRESTIGE_SCALE = 10
REFERENCE_SNR = 50.0
MIN_ACCEPTABLE_SNR = 20.0
MOTION_PROBABILITY = 0.5
MOTION_ONSET_MIN = 10.0


class RandomSource(Protocol):
    """Anything exposing ``random() -> float`` in ``[0, 1)``."""

    def random(self) -> float:  # pragma: no cover - protocol
        ...


@dataclass(frozen=True)
class ScanLogEntry:
    message: str
    delay_ms: int = 0


@dataclass(frozen=True)
class ExperimentResult:
    """Outcome of a single scan attempt."""

    success: bool
    snr: float
    reason: Optional[FailureReason]
    message: str
    prestige_delta: int
    money_delta: int
    artifacts: bool = False
    log: Tuple[ScanLogEntry, ...] = field(default_factory=tuple)

    def as_dict(self) -> dict[str, object]:
        return {
            "success": self.success,
            "snr": self.snr,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
            "prestige_delta": self.prestige_delta,
            "money_delta": self.money_delta,
            "artifacts": self.artifacts,
            "log": [{"message": entry.message, "delay_ms": entry.delay_ms} for entry in self.log],
        }


def _failure(
    reason: FailureReason,
    message: str,
    log: List[ScanLogEntry],
    *,
    snr: float = 0.0,
    artifacts: bool = False,
) -> ExperimentResult:
    LOGGER.info("Scan failed: %s", reason.value)
    log.append(ScanLogEntry(message))
    return ExperimentResult(
        success=False,
        snr=snr,
        reason=reason,
        message=message,
        prestige_delta=FAILURE_PRESTIGE,
        money_delta=FAILURE_MONEY,
        artifacts=artifacts,
        log=tuple(log),
    )


def resolve_experiment(
    lab: LabConfiguration,
    scan: ScanParameters,
    shim: ShimmingVector,
    safety: SafetyModelState,
    rng: RandomSource,
    *,
    stage_delays_ms: Sequence[int] = DEFAULT_STAGE_DELAYS_MS,
) -> ExperimentResult:
    """Run the gate pipeline and score the acquisition."""

    magnet = lab.magnet
    if not lab.is_complete or magnet is None:
        raise PreconditionError(
            "Lab configuration is incomplete",
            context={"missing": lab.missing_fields()},
        )

    delays = tuple(stage_delays_ms) + DEFAULT_STAGE_DELAYS_MS[len(stage_delays_ms):]
    log: List[ScanLogEntry] = [ScanLogEntry("Initializing gradients...", delays[0])]

    # Hardware gates.
    if magnet is MagnetType.T11_7 and lab.cooling is not CoolingType.SUPERFLUID:
        return _failure(
            FailureReason.HARDWARE_INCOMPATIBILITY,
            "MAGNET QUENCH DETECTED! Temp > 2.1K. Critical failure.",
            log,
        )
    log.append(ScanLogEntry(f"B0 Field Strength: {magnet.field_strength:g}T... Stable.", delays[1]))

    if magnet.is_ultra_high_field and not lab.ptx_enabled:
        return _failure(
            FailureReason.RF_INHOMOGENEITY,
            "FATAL: B1+ Inhomogeneity too high. Center brightening obscures data. pTx required.",
            log,
            artifacts=True,
        )

    error = shim.error
    log.append(ScanLogEntry(f"Running Active Shimming... Residual Δ: {error:g}Hz", delays[2]))
    if error > SHIM_ABORT_THRESHOLD:
        return _failure(
            FailureReason.GEOMETRIC_DISTORTION,
            "Geometric Distortion severe. Image warped beyond recognition. Check Shimming.",
            log,
        )

    demand = gradient_demand(scan.resolution, scan.sequence)
    capacity = gradient_capacity(lab.gradient)
    log.append(ScanLogEntry(f"Checking Gradient Slew Rates... Demand: {demand:.0f} T/m/s"))
    if demand > capacity:
        return _failure(
            FailureReason.GRADIENT_OVERLOAD,
            f"GRADIENT FAILURE: Demand ({demand:.0f}) exceeds Capacity ({capacity:.0f}). "
            "Hardware tripped.",
            log,
        )

    pns = pns_risk_raw(demand)
    if pns > 100.0:
        return _failure(
            FailureReason.PNS_ABORT,
            f"SAFETY HALT: Peripheral Nerve Stimulation (PNS) risk {pns:.0f}% > 100%. "
            "Subject reported twitching.",
            log,
        )

    log.append(ScanLogEntry(f"Acquiring k-Space data... [{scan.sequence.value}]", delays[3]))
    snr = predicted_snr(
        magnet,
        scan.resolution,
        scan.duration,
        scan.sequence,
        safety_factor(safety.model_count_n),
    )
    LOGGER.debug("Scan SNR %.2f (N=%d)", snr, safety.model_count_n)

    if scan.duration > MOTION_ONSET_MIN and rng.random() < MOTION_PROBABILITY:
        return _failure(
            FailureReason.MOTION_ARTIFACT,
            "Subject moved during long scan. Motion artifacts ruined the data.",
            log,
            snr=snr,
            artifacts=True,
        )

    if snr < MIN_ACCEPTABLE_SNR:
        return _failure(
            FailureReason.LOW_SNR,
            f"SNR too low ({snr:.1f}). Image is just noise.",
            log,
            snr=snr,
        )

    quality = snr / REFERENCE_SNR
    money = math.floor(SUCCESS_MONEY_SCALE * quality)
    prestige = math.floor(SUCCESS_PRESTIGE_SCALE * quality)
    message = f"Success! SNR: {snr:.1f}. Data published."
    log.append(ScanLogEntry(message))
    LOGGER.info("Scan succeeded: snr=%.2f money=%d prestige=%d", snr, money, prestige)
    return ExperimentResult(
        success=True,
        snr=snr,
        reason=None,
        message=message,
        prestige_delta=prestige,
        money_delta=money,
        artifacts=False,
        log=tuple(log),
    )


async def stream_scan(result: ExperimentResult, *, time_scale: float = 1.0) -> AsyncIterator[ScanLogEntry]:
    """Replay ``result.log``, pausing for each entry's delay after yielding it.

    ``time_scale`` multiplies every delay; tests pass ``0`` to skip waiting.
    """

    for entry in result.log:
        yield entry
        if entry.delay_ms and time_scale > 0:
            await asyncio.sleep(entry.delay_ms / 1000.0 * time_scale)


__all__ = [
    "DEFAULT_STAGE_DELAYS_MS",
    "ExperimentResult",
    "FAILURE_MONEY",
    "FAILURE_PRESTIGE",
    "RandomSource",
    "ScanLogEntry",
    "resolve_experiment",
    "stream_scan",
]
