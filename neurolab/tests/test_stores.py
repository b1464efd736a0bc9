from __future__ import annotations

import numpy as np
import pytest

from neurolab.engine.catalog import (
    TUTORIAL_DONE,
    CoilType,
    CoolingType,
    MagnetType,
    PurchaseCategory,
    SequenceType,
    SubjectType,
)
from neurolab.simulation.debate import CLAIMS, DebateOutcome, card_effect
from neurolab.simulation.maze import MazeStatus, MouseState
from neurolab.simulation.neuromod import TreatmentMethod, TreatmentResult
from neurolab.simulation.scan import ExperimentResult
from neurolab.state.lab import INITIAL_BUDGET, GameStage, LabStore
from neurolab.state.neurofiles import MAX_SUSPICION, Chapter, NeuroFilesStore


def _result(prestige: int, money: int = 0) -> ExperimentResult:
    return ExperimentResult(
        success=True,
        snr=50.0,
        reason=None,
        message="Success!",
        prestige_delta=prestige,
        money_delta=money,
    )


def _complete_lab(store: LabStore) -> None:
    assert store.purchase(PurchaseCategory.MAGNET, "3T")
    assert store.purchase(PurchaseCategory.COOLING, "Standard")
    assert store.purchase(PurchaseCategory.COIL, "Birdcage")


def test_lab_store_defaults() -> None:
    store = LabStore()
    assert store.budget == INITIAL_BUDGET
    assert store.unlocked_magnets == {MagnetType.T3}
    assert store.shimming.error == 65.0
    assert store.stage is GameStage.START
    assert store.tutorial_active and store.tutorial_step == 0
    assert store.can_run_scan() is False


def test_purchase_spends_budget_and_installs_hardware() -> None:
    store = LabStore()
    _complete_lab(store)
    assert store.budget == INITIAL_BUDGET - 1_600_000
    assert store.lab.magnet is MagnetType.T3
    assert store.lab.cooling is CoolingType.STANDARD
    assert store.lab.coil is CoilType.BIRDCAGE


def test_purchase_refusals_leave_state_untouched() -> None:
    store = LabStore()
    assert store.purchase(PurchaseCategory.MAGNET, "3T")
    assert store.purchase(PurchaseCategory.COOLING, "Superfluid") is False
    assert store.budget == 1_000_000
    assert store.lab.cooling is None

    store.budget = 10_000_000
    assert store.purchase(PurchaseCategory.MAGNET, "7T") is False
    assert store.lab.magnet is MagnetType.T3

    with pytest.raises(KeyError):
        store.purchase(PurchaseCategory.COIL, "Helmholtz")


def test_prestige_unlocks_magnets() -> None:
    store = LabStore()
    store.complete_experiment(_result(prestige=50, money=5_000_000))
    assert store.is_unlocked(MagnetType.T7)
    assert not store.is_unlocked(MagnetType.T11_7)
    assert store.purchase(PurchaseCategory.MAGNET, "7T") is True

    store.complete_experiment(_result(prestige=150))
    assert store.is_unlocked(MagnetType.T11_7)
    assert store.last_result is not None
    assert store.tutorial_step == TUTORIAL_DONE


def test_tutorial_advances_on_the_expected_actions() -> None:
    store = LabStore()
    store.next_tutorial_step()
    store.next_tutorial_step()
    assert store.tutorial_step == 2
    store.purchase(PurchaseCategory.COIL, "Birdcage")
    assert store.tutorial_step == 2

    store.purchase(PurchaseCategory.MAGNET, "3T")
    assert store.tutorial_step == 3
    store.purchase(PurchaseCategory.COOLING, "Standard")
    assert store.tutorial_step == 4
    store.purchase(PurchaseCategory.COIL, "Birdcage")
    assert store.tutorial_step == 5
    store.set_stage(GameStage.SAFETY)
    assert store.tutorial_step == 6
    assert store.stage is GameStage.SAFETY

    store.skip_tutorial()
    assert store.tutorial_active is False
    assert store.tutorial_step == TUTORIAL_DONE


def test_console_settings_are_clamped() -> None:
    store = LabStore()
    scan = store.set_scan_params(sequence=SequenceType.EPI, resolution=0.05, duration=30.0)
    assert scan.sequence is SequenceType.EPI
    assert scan.resolution == 0.2
    assert scan.duration == 20.0

    shim = store.set_shimming(x=150.0, z=-101.0)
    assert (shim.x, shim.y, shim.z) == (100.0, -30.0, -100.0)

    assert store.set_model_count(100).model_count_n == 64
    assert store.set_model_count(1).model_count_n == 2


def test_checklist_and_scan_readiness() -> None:
    store = LabStore()
    _complete_lab(store)
    for item in ("physiological", "vestibular", "metallic_implants"):
        store.toggle_checklist(item)
    assert store.checklist.complete
    assert store.gradient_overloaded() is True
    assert store.can_run_scan() is False

    store.set_scan_params(resolution=3.0)
    assert store.can_run_scan() is True

    store.toggle_checklist("vestibular")
    assert store.can_run_scan() is False
    with pytest.raises(ValueError):
        store.toggle_checklist("pacemaker")


def test_subjects_are_gated_by_prestige() -> None:
    store = LabStore()
    assert store.available_subjects() == [SubjectType.PHANTOM]
    assert store.set_subject(SubjectType.ADULT) is False
    assert store.subject is SubjectType.PHANTOM

    store.complete_experiment(_result(prestige=20))
    assert store.set_subject(SubjectType.ADULT) is True
    assert SubjectType.PEDIATRIC not in store.available_subjects()


def test_next_round_redraws_the_shim() -> None:
    store = LabStore()
    store.complete_experiment(_result(prestige=1))
    store.next_round(np.random.default_rng(5))

    assert store.day == 2
    assert store.stage is GameStage.PROCUREMENT
    assert store.last_result is None
    for value in (store.shimming.x, store.shimming.y, store.shimming.z):
        assert -30 <= value < 30
        assert float(value).is_integer()


def test_lab_snapshot_serialises_enums() -> None:
    snapshot = LabStore().snapshot()
    assert snapshot["unlocked_magnets"] == ["3T"]
    assert snapshot["lab"]["magnet"] is None
    assert snapshot["scan"] == {"sequence": "GRE", "resolution": 2.0, "duration": 5.0}
    assert snapshot["can_run_scan"] is False


def test_neurofiles_resources() -> None:
    store = NeuroFilesStore()
    assert store.chapter is Chapter.CHAPTER1
    assert store.add_knowledge_points(200) == 200
    assert store.add_evidence("Wireless Photometry Specs") is True
    assert store.add_evidence("Wireless Photometry Specs") is False
    assert store.evidence == ["Wireless Photometry Specs"]
    for _ in range(5):
        store.increase_suspicion(30)
    assert store.suspicion == MAX_SUSPICION


def test_neurofiles_maze_state() -> None:
    store = NeuroFilesStore()
    assert store.set_led_spacing(0.01) == 0.1
    assert store.set_led_spacing(9.0) == 3.0
    store.set_maze_status(MazeStatus.ACTIVE)
    store.update_mouse(y=40.0, frozen=True)
    assert store.mouse == MouseState(y=40.0, frozen=True)

    store.reset_maze()
    assert store.mouse == MouseState()
    assert store.maze_status is MazeStatus.SETUP
    assert store.led_spacing == 0.5


def test_chapter3_outcome_shifts_ceo_credibility() -> None:
    store = NeuroFilesStore()
    store.select_treatment(TreatmentMethod.UCNP)
    assert store.treatment.wavelength == 980.0
    store.set_treatment_config(power=40.0)
    assert store.treatment.power == 40.0

    store.complete_chapter3(TreatmentResult(success=True, tissue_integrity=90.0, treatment_stability=100.0))
    assert store.debate.ceo_credibility == 110.0

    other = NeuroFilesStore()
    other.complete_chapter3(TreatmentResult(success=False, tissue_integrity=0.0, treatment_stability=12.0))
    assert other.debate.ceo_credibility == 90.0


def test_neurofiles_debate_transitions() -> None:
    store = NeuroFilesStore()
    for claim in CLAIMS:
        store.play_card(card_effect(claim, claim.weakness))
        store.next_claim()
    assert store.debate.outcome is DebateOutcome.WIN

    store.reset_debate()
    assert store.debate.outcome is None
    assert store.debate.claim_index == 0

    snapshot = store.snapshot()
    assert snapshot["chapter"] == "chapter1"
    assert snapshot["debate"]["claim"] == CLAIMS[0].text
