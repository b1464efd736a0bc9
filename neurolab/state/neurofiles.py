"""State store for the Neuro-Files investigation track."""

from __future__ import annotations

from dataclasses import replace
from enum import Enum
import logging
from typing import Any, Dict, List

from ..simulation.debate import CardEffect, DebateState, apply_effect, advance
from ..simulation.level import OpticalLevel
from ..simulation.maze import DEFAULT_LED_SPACING_MM, LED_SPACING_RANGE_MM, MazeStatus, MouseState
from ..simulation.neuromod import (
    CREDIBILITY_SHIFT,
    NeuromodulationState,
    TreatmentConfig,
    TreatmentMethod,
    TreatmentResult,
)

LOGGER = logging.getLogger(__name__)

MAX_SUSPICION = 100


class Chapter(str, Enum):
    INTRO = "intro"
    CHAPTER1 = "chapter1"
    CHAPTER2 = "chapter2"
    CHAPTER3 = "chapter3"
    CHAPTER4 = "chapter4"
    END_GOOD = "end_good"
    END_BAD = "end_bad"


class NeuroFilesStore:
    """Chapter progress, investigation resources and per-chapter state."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self.chapter = Chapter.CHAPTER1
        self.knowledge_points = 0
        self.evidence: List[str] = []
        self.suspicion = 0
        self.level = OpticalLevel()
        self.led_spacing = DEFAULT_LED_SPACING_MM
        self.mouse = MouseState()
        self.maze_status = MazeStatus.SETUP
        self.pathway_identified = False
        self.treatment = TreatmentConfig()
        self.neuromod = NeuromodulationState()
        self.treatment_result = TreatmentResult(success=False, tissue_integrity=100.0, treatment_stability=0.0)
        self.debate = DebateState()

    # -- shared resources ------------------------------------------------

    def set_chapter(self, chapter: Chapter) -> None:
        LOGGER.info("Chapter %s -> %s", self.chapter.value, chapter.value)
        self.chapter = chapter

    def add_knowledge_points(self, points: int) -> int:
        self.knowledge_points += points
        return self.knowledge_points

    def add_evidence(self, evidence: str) -> bool:
        if evidence in self.evidence:
            return False
        self.evidence.append(evidence)
        return True

    def increase_suspicion(self, amount: int) -> int:
        self.suspicion = min(MAX_SUSPICION, self.suspicion + amount)
        return self.suspicion

    # -- chapter 1 -------------------------------------------------------

    def init_level(self, level: OpticalLevel) -> None:
        self.level = level

    # -- chapter 2 -------------------------------------------------------

    def set_led_spacing(self, spacing: float) -> float:
        low, high = LED_SPACING_RANGE_MM
        self.led_spacing = max(low, min(high, float(spacing)))
        return self.led_spacing

    def update_mouse(self, **changes: Any) -> MouseState:
        self.mouse = replace(self.mouse, **changes)
        return self.mouse

    def set_maze_status(self, status: MazeStatus) -> None:
        self.maze_status = status

    def reset_maze(self) -> None:
        self.led_spacing = DEFAULT_LED_SPACING_MM
        self.mouse = MouseState()
        self.maze_status = MazeStatus.SETUP

    # -- chapter 3 -------------------------------------------------------

    def identify_pathway(self) -> None:
        self.pathway_identified = True

    def select_treatment(self, method: TreatmentMethod) -> TreatmentConfig:
        self.treatment = self.treatment.for_method(method)
        return self.treatment

    def set_treatment_config(self, **changes: Any) -> TreatmentConfig:
        self.treatment = replace(self.treatment, **changes).clamped()
        return self.treatment

    def update_neuromod(self, state: NeuromodulationState) -> None:
        self.neuromod = state

    def complete_chapter3(self, result: TreatmentResult) -> None:
        """Record the treatment outcome; it sets the CEO's footing for the debate."""

        self.treatment_result = result
        shift = CREDIBILITY_SHIFT if result.success else -CREDIBILITY_SHIFT
        self.debate = replace(self.debate, ceo_credibility=self.debate.ceo_credibility + shift)

    # -- chapter 4 -------------------------------------------------------

    def play_card(self, effect: CardEffect) -> DebateState:
        self.debate = apply_effect(self.debate, effect)
        return self.debate

    def next_claim(self) -> DebateState:
        self.debate = advance(self.debate)
        return self.debate

    def reset_debate(self) -> None:
        self.debate = DebateState()

    def snapshot(self) -> Dict[str, Any]:
        return {
            "chapter": self.chapter.value,
            "knowledge_points": self.knowledge_points,
            "evidence": list(self.evidence),
            "suspicion": self.suspicion,
            "level": self.level.as_dict(),
            "led_spacing": self.led_spacing,
            "mouse": self.mouse.as_dict(),
            "maze_status": self.maze_status.value,
            "pathway_identified": self.pathway_identified,
            "treatment": self.treatment.as_dict(),
            "neuromod": self.neuromod.as_dict(),
            "treatment_result": self.treatment_result.as_dict(),
            "debate": self.debate.as_dict(),
        }


__all__ = ["Chapter", "MAX_SUSPICION", "NeuroFilesStore"]
