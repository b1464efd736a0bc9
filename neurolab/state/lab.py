"""State store for the MRI lab track.

:class:`LabStore` is the only writer of lab state.  Callers mutate it through
named transitions and read it through attributes or :meth:`LabStore.snapshot`;
the scan engine receives frozen copies of the configuration records.
"""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
import logging
from typing import Any, Dict, List, Optional, Protocol, Set

from ..engine.catalog import (
    TUTORIAL_DONE,
    UNLOCK_THRESHOLDS,
    SUBJECT_TIERS,
    CoilType,
    CoolingType,
    GradientType,
    MagnetType,
    PurchaseCategory,
    SequenceType,
    SubjectType,
    price_of,
)
from ..engine.formulas import gradient_capacity, gradient_demand
from ..engine.models import (
    LabConfiguration,
    SafetyChecklist,
    SafetyModelState,
    ScanParameters,
    ShimmingVector,
)
from ..simulation.scan import ExperimentResult

LOGGER = logging.getLogger(__name__)

INITIAL_BUDGET = 2_000_000
INITIAL_SHIMMING = ShimmingVector(x=20.0, y=-30.0, z=15.0)
SHIM_REDRAW_RANGE = (-30, 30)


class GameStage(str, Enum):
    START = "start"
    PROCUREMENT = "procurement"
    SAFETY = "safety"
    REVIEW = "review"


class IntegerSource(Protocol):
    def integers(self, low: int, high: int) -> Any:  # pragma: no cover - protocol
        ...


class LabStore:
    """Budget, hardware, console settings and tutorial progress."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.budget: int = INITIAL_BUDGET
        self.prestige: int = 0
        self.day: int = 1
        self.unlocked_magnets: Set[MagnetType] = {MagnetType.T3}
        self.lab = LabConfiguration()
        self.subject = SubjectType.PHANTOM
        self.safety = SafetyModelState()
        self.checklist = SafetyChecklist()
        self.scan = ScanParameters()
        self.shimming = INITIAL_SHIMMING
        self.stage = GameStage.START
        self.last_result: Optional[ExperimentResult] = None
        self.tutorial_active = True
        self.tutorial_step = 0

    # -- procurement -----------------------------------------------------

    def is_unlocked(self, magnet: MagnetType) -> bool:
        return magnet in self.unlocked_magnets

    def purchase(self, category: PurchaseCategory, item: str) -> bool:
        """Buy ``item``; returns ``False`` and leaves state untouched when refused.

        Raises ``KeyError`` for items that are not in the catalogue.
        """

        cost = price_of(category, item)
        if self.budget < cost:
            LOGGER.info("Purchase of %s %s refused: budget %d < %d", category.value, item, self.budget, cost)
            return False

        if category is PurchaseCategory.MAGNET:
            magnet = MagnetType(item)
            if not self.is_unlocked(magnet):
                LOGGER.info("Purchase of magnet %s refused: locked", item)
                return False
            lab = replace(self.lab, magnet=magnet)
        elif category is PurchaseCategory.COOLING:
            lab = replace(self.lab, cooling=CoolingType(item))
        elif category is PurchaseCategory.COIL:
            lab = replace(self.lab, coil=CoilType(item))
        elif category is PurchaseCategory.GRADIENT:
            lab = replace(self.lab, gradient=GradientType(item))
        else:
            lab = replace(self.lab, ptx_enabled=True)

        if self.tutorial_active:
            if self.tutorial_step == 2 and category is PurchaseCategory.MAGNET and lab.magnet is MagnetType.T3:
                self.tutorial_step = 3
            elif self.tutorial_step == 3 and category is PurchaseCategory.COOLING:
                self.tutorial_step = 4
            elif self.tutorial_step == 4 and category is PurchaseCategory.COIL:
                self.tutorial_step = 5

        self.budget -= cost
        self.lab = lab
        LOGGER.debug("Purchased %s %s for %d", category.value, item, cost)
        return True

    # -- console ---------------------------------------------------------

    def set_scan_params(
        self,
        *,
        sequence: Optional[SequenceType] = None,
        resolution: Optional[float] = None,
        duration: Optional[float] = None,
    ) -> ScanParameters:
        updated = self.scan
        if sequence is not None:
            updated = replace(updated, sequence=SequenceType(sequence))
        if resolution is not None:
            updated = replace(updated, resolution=float(resolution))
        if duration is not None:
            updated = replace(updated, duration=float(duration))
        self.scan = updated.clamped()
        return self.scan

    def set_shimming(
        self,
        *,
        x: Optional[float] = None,
        y: Optional[float] = None,
        z: Optional[float] = None,
    ) -> ShimmingVector:
        updated = self.shimming
        if x is not None:
            updated = replace(updated, x=float(x))
        if y is not None:
            updated = replace(updated, y=float(y))
        if z is not None:
            updated = replace(updated, z=float(z))
        self.shimming = updated.clamped()
        return self.shimming

    def set_model_count(self, n: int) -> SafetyModelState:
        self.safety = SafetyModelState(model_count_n=n)
        return self.safety

    def toggle_checklist(self, item: str) -> SafetyChecklist:
        if item not in SafetyChecklist.__dataclass_fields__:
            raise ValueError(f"Unknown checklist item '{item}'")
        self.checklist = replace(self.checklist, **{item: not getattr(self.checklist, item)})
        return self.checklist

    def available_subjects(self) -> List[SubjectType]:
        return [tier.subject for tier in SUBJECT_TIERS.values() if self.prestige >= tier.required_prestige]

    def set_subject(self, subject: SubjectType) -> bool:
        tier = SUBJECT_TIERS[subject]
        if self.prestige < tier.required_prestige:
            LOGGER.info("Subject %s locked until prestige %d", subject.value, tier.required_prestige)
            return False
        self.subject = subject
        return True

    def set_stage(self, stage: GameStage) -> None:
        if self.tutorial_active and self.tutorial_step == 5 and stage is GameStage.SAFETY:
            self.tutorial_step = 6
        self.stage = stage

    def gradient_overloaded(self) -> bool:
        return gradient_demand(self.scan.resolution, self.scan.sequence) > gradient_capacity(self.lab.gradient)

    def can_run_scan(self) -> bool:
        return self.lab.is_complete and self.checklist.complete and not self.gradient_overloaded()

    # -- results ---------------------------------------------------------

    def complete_experiment(self, result: ExperimentResult) -> None:
        self.last_result = result
        self.prestige += result.prestige_delta
        self.budget += result.money_delta
        for magnet, threshold in UNLOCK_THRESHOLDS.items():
            if self.prestige >= threshold and magnet not in self.unlocked_magnets:
                LOGGER.info("Unlocked %s magnet at prestige %d", magnet.value, self.prestige)
                self.unlocked_magnets.add(magnet)
        if self.tutorial_active:
            self.tutorial_step = TUTORIAL_DONE

    def next_round(self, rng: IntegerSource) -> None:
        low, high = SHIM_REDRAW_RANGE
        self.day += 1
        self.stage = GameStage.PROCUREMENT
        self.last_result = None
        self.shimming = ShimmingVector(
            x=float(rng.integers(low, high)),
            y=float(rng.integers(low, high)),
            z=float(rng.integers(low, high)),
        )

    # -- tutorial --------------------------------------------------------

    def next_tutorial_step(self) -> int:
        self.tutorial_step += 1
        return self.tutorial_step

    def skip_tutorial(self) -> None:
        self.tutorial_active = False
        self.tutorial_step = TUTORIAL_DONE

    def snapshot(self) -> Dict[str, Any]:
        return {
            "budget": self.budget,
            "prestige": self.prestige,
            "day": self.day,
            "unlocked_magnets": [magnet.value for magnet in MagnetType if magnet in self.unlocked_magnets],
            "lab": self.lab.as_dict(),
            "subject": self.subject.value,
            "model_count_n": self.safety.model_count_n,
            "checklist": self.checklist.as_dict(),
            "scan": self.scan.as_dict(),
            "shimming": self.shimming.as_dict(),
            "stage": self.stage.value,
            "last_result": self.last_result.as_dict() if self.last_result else None,
            "tutorial_active": self.tutorial_active,
            "tutorial_step": self.tutorial_step,
            "can_run_scan": self.can_run_scan(),
        }


__all__ = ["GameStage", "INITIAL_BUDGET", "INITIAL_SHIMMING", "LabStore"]
