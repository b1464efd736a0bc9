from __future__ import annotations

import numpy as np
import pytest

from neurolab.simulation.errors import FailureReason, PreconditionError
from neurolab.simulation.neuromod import (
    CIRCUIT_OPTIONS,
    LoopStatus,
    NeuromodulationState,
    TreatmentConfig,
    TreatmentMethod,
    delivery_efficiency,
    duty_cycle,
    is_correct_diagnosis,
    result_of,
    step_loop,
)


def _run_until_finished(config: TreatmentConfig, rng, limit: int = 1000) -> tuple[NeuromodulationState, int]:
    state = NeuromodulationState(status=LoopStatus.ACTIVE)
    ticks = 0
    while not state.finished:
        state = step_loop(state, config, rng)
        ticks += 1
        assert ticks < limit
    return state, ticks


def test_only_the_parkinsonian_circuit_is_pathological() -> None:
    assert set(CIRCUIT_OPTIONS) == {"healthy", "pd", "hd"}
    assert is_correct_diagnosis("pd") is True
    assert is_correct_diagnosis("hd") is False
    with pytest.raises(ValueError):
        is_correct_diagnosis("thalamus")


def test_delivery_efficiency_windows() -> None:
    assert delivery_efficiency(TreatmentMethod.FIBER, 473.0) == 1.0
    assert delivery_efficiency(TreatmentMethod.FIBER, 450.0) == 1.0
    assert delivery_efficiency(TreatmentMethod.FIBER, 980.0) == pytest.approx(0.1)
    assert delivery_efficiency(TreatmentMethod.UCNP, 980.0) == 1.0
    assert delivery_efficiency(TreatmentMethod.UCNP, 1005.0) == pytest.approx(0.5)
    assert delivery_efficiency(TreatmentMethod.UCNP, 473.0) == 0.0
    assert duty_cycle(20.0) == pytest.approx(0.2)
    assert duty_cycle(150.0) == 1.0


def test_method_selection_resets_the_source() -> None:
    config = TreatmentConfig(power=80.0, frequency=60.0).for_method(TreatmentMethod.UCNP)
    assert config.wavelength == 980.0
    assert config.power == 0.0
    assert config.frequency == 20.0


def test_step_requires_a_method(fixed_random) -> None:
    with pytest.raises(PreconditionError):
        step_loop(NeuromodulationState(status=LoopStatus.ACTIVE), TreatmentConfig(), fixed_random())


def test_balanced_fiber_stimulation_stabilises(fixed_random) -> None:
    config = TreatmentConfig(method=TreatmentMethod.FIBER, wavelength=473.0, power=50.0, frequency=50.0)
    state, ticks = _run_until_finished(config, fixed_random(0.5))

    assert ticks == 100
    assert state.status is LoopStatus.SUCCESS
    assert state.stability == 100.0
    assert state.temperature == pytest.approx(37.0)
    assert state.stn_activity == pytest.approx(30.0)
    assert state.tremor == state.stn_activity
    assert state.elapsed == pytest.approx(10.0)

    result = result_of(state)
    assert result.success is True
    assert result.tissue_integrity == 100.0


def test_overheating_exhausts_tissue(fixed_random) -> None:
    config = TreatmentConfig(method=TreatmentMethod.UCNP, wavelength=980.0, power=100.0, frequency=50.0)
    state, _ = _run_until_finished(config, fixed_random(0.5))

    assert state.status is LoopStatus.FAILURE
    assert state.reason is FailureReason.INTEGRITY_EXHAUSTED
    assert state.tissue_integrity == 0.0
    assert state.stability < 100.0
    assert result_of(state).success is False


def test_noise_moves_stn_activity(fixed_random) -> None:
    config = TreatmentConfig(method=TreatmentMethod.FIBER, wavelength=473.0, power=0.0)
    low = step_loop(NeuromodulationState(status=LoopStatus.ACTIVE), config, fixed_random(0.0))
    high = step_loop(NeuromodulationState(status=LoopStatus.ACTIVE), config, fixed_random(0.99))
    assert low.stn_activity == pytest.approx(75.0)
    assert high.stn_activity == pytest.approx(84.9)


def test_idle_source_cools_to_baseline_without_stabilising() -> None:
    config = TreatmentConfig(method=TreatmentMethod.FIBER, wavelength=473.0, power=0.0, frequency=50.0)
    rng = np.random.default_rng(5)
    state = NeuromodulationState(temperature=40.0, status=LoopStatus.ACTIVE)
    temperatures = [state.temperature]
    for _ in range(500):
        state = step_loop(state, config, rng)
        temperatures.append(state.temperature)
        assert state.stability == 0.0

    assert all(later <= earlier for earlier, later in zip(temperatures, temperatures[1:]))
    assert temperatures[6:] == [37.0] * (len(temperatures) - 6)
    assert state.status is LoopStatus.ACTIVE
    assert state.tissue_integrity == 100.0


def test_finished_states_are_returned_untouched(fixed_random) -> None:
    done = NeuromodulationState(status=LoopStatus.SUCCESS, stability=100.0)
    assert step_loop(done, TreatmentConfig(), fixed_random()) is done


def test_result_requires_a_finished_loop() -> None:
    with pytest.raises(PreconditionError):
        result_of(NeuromodulationState(status=LoopStatus.ACTIVE))
