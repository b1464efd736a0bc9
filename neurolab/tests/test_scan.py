from __future__ import annotations

from dataclasses import replace

import numpy as np
import pytest

from neurolab.engine.catalog import CoolingType, GradientType, MagnetType, SequenceType
from neurolab.engine.models import LabConfiguration, SafetyModelState, ScanParameters, ShimmingVector
from neurolab.simulation.errors import FailureReason, PreconditionError
from neurolab.simulation.scan import FAILURE_MONEY, FAILURE_PRESTIGE, resolve_experiment, stream_scan

SHARP = SafetyModelState(model_count_n=64)
PERFECT_SHIM = ShimmingVector()


def _run(lab, scan=ScanParameters(resolution=1.0, duration=4.0), shim=PERFECT_SHIM, rng=None, **kwargs):
    if rng is None:
        rng = np.random.default_rng(0)
    return resolve_experiment(lab, scan, shim, SHARP, rng, **kwargs)


def test_incomplete_lab_is_a_precondition_error(fixed_random) -> None:
    with pytest.raises(PreconditionError) as excinfo:
        resolve_experiment(
            LabConfiguration(magnet=MagnetType.T3),
            ScanParameters(),
            PERFECT_SHIM,
            SHARP,
            fixed_random(),
        )
    assert excinfo.value.context["missing"] == ["cooling", "coil"]


def test_successful_scan_rewards_by_quality(starter_lab: LabConfiguration) -> None:
    result = _run(starter_lab)

    assert result.success is True
    assert result.reason is None
    assert result.snr == pytest.approx(40.0)
    assert result.money_delta == 400_000
    assert result.prestige_delta == 8
    assert [entry.delay_ms for entry in result.log] == [800, 800, 800, 0, 1000, 0]
    assert result.log[0].message == "Initializing gradients..."
    assert result.log[-1].message == result.message
    assert result.message.startswith("Success! SNR: 40.0")
    assert result.log[1].message == "B0 Field Strength: 3T... Stable."


def test_quench_is_checked_first(starter_lab: LabConfiguration) -> None:
    lab = replace(starter_lab, magnet=MagnetType.T11_7, ptx_enabled=False)
    result = _run(lab, shim=ShimmingVector(x=100.0, y=100.0, z=100.0))

    assert result.success is False
    assert result.reason is FailureReason.HARDWARE_INCOMPATIBILITY
    assert result.money_delta == FAILURE_MONEY
    assert result.prestige_delta == FAILURE_PRESTIGE
    assert len(result.log) == 2
    assert "QUENCH" in result.message


def test_ultra_high_field_needs_parallel_transmit(starter_lab: LabConfiguration) -> None:
    result = _run(replace(starter_lab, magnet=MagnetType.T7))
    assert result.reason is FailureReason.RF_INHOMOGENEITY
    assert result.artifacts is True

    superfluid = replace(starter_lab, magnet=MagnetType.T11_7, cooling=CoolingType.SUPERFLUID)
    assert _run(superfluid).reason is FailureReason.RF_INHOMOGENEITY
    assert _run(replace(superfluid, ptx_enabled=True)).success is True


def test_shim_abort_threshold_is_exclusive(starter_lab: LabConfiguration) -> None:
    at_limit = _run(starter_lab, shim=ShimmingVector(x=30.0, y=-20.0, z=10.0))
    assert at_limit.success is True

    beyond = _run(starter_lab, shim=ShimmingVector(x=30.0, y=-20.0, z=11.0))
    assert beyond.reason is FailureReason.GEOMETRIC_DISTORTION
    assert "61Hz" in beyond.log[-2].message


def test_gradient_overload(starter_lab: LabConfiguration) -> None:
    lab = replace(starter_lab, gradient=GradientType.STANDARD)
    result = _run(lab, scan=ScanParameters(resolution=2.0, duration=4.0))
    assert result.reason is FailureReason.GRADIENT_OVERLOAD
    assert "Demand (120)" in result.message


def test_pns_abort_uses_uncapped_risk(starter_lab: LabConfiguration) -> None:
    lab = replace(starter_lab, gradient=GradientType.CONNECTOME)
    result = _run(lab, scan=ScanParameters(sequence=SequenceType.EPI, resolution=1.2, duration=4.0))
    assert result.reason is FailureReason.PNS_ABORT
    assert "110%" in result.message


def test_long_scans_can_fail_on_motion(starter_lab: LabConfiguration, fixed_random) -> None:
    scan = ScanParameters(resolution=1.0, duration=12.0)
    moved = _run(starter_lab, scan=scan, rng=fixed_random(0.2))
    assert moved.reason is FailureReason.MOTION_ARTIFACT
    assert moved.artifacts is True
    assert moved.snr == pytest.approx(40.0 * 3 ** 0.5)

    still = _run(starter_lab, scan=scan, rng=fixed_random(0.5))
    assert still.success is True


def test_short_scans_never_draw_randomness(starter_lab: LabConfiguration, fixed_random) -> None:
    rng = fixed_random(0.0)
    result = _run(starter_lab, scan=ScanParameters(resolution=1.0, duration=10.0), rng=rng)
    assert result.success is True
    assert rng.calls == 0


def test_low_snr_is_noise(starter_lab: LabConfiguration) -> None:
    result = _run(starter_lab, scan=ScanParameters(resolution=2.0, duration=5.0))
    assert result.reason is FailureReason.LOW_SNR
    assert result.snr == pytest.approx(40.0 * (5.0 / 4.0) ** 0.5 / 8)
    assert result.money_delta == FAILURE_MONEY


def test_custom_stage_delays_are_applied(starter_lab: LabConfiguration) -> None:
    result = _run(starter_lab, stage_delays_ms=(10, 20))
    assert [entry.delay_ms for entry in result.log] == [10, 20, 800, 0, 1000, 0]


@pytest.mark.anyio("asyncio")
async def test_stream_scan_replays_every_entry(starter_lab: LabConfiguration) -> None:
    result = _run(starter_lab)
    replayed = [entry async for entry in stream_scan(result, time_scale=0)]
    assert replayed == list(result.log)


@pytest.mark.parametrize("duration", [1.0, 5.0, 10.0])
def test_short_scans_are_reproducible(starter_lab: LabConfiguration, duration: float) -> None:
    scan = ScanParameters(sequence=SequenceType.SE, resolution=1.5, duration=duration)
    first = _run(starter_lab, scan, rng=np.random.default_rng(1))
    second = _run(starter_lab, scan, rng=np.random.default_rng(99))

    assert (first.snr, first.success, first.money_delta, first.prestige_delta) == (
        second.snr,
        second.success,
        second.money_delta,
        second.prestige_delta,
    )
    assert first.reason is second.reason
