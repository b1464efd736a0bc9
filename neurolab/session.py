"""Game session orchestration.

A :class:`GameSession` owns both state stores, one seeded random generator and
the tick loops for the real-time chapters.  It is the only place where engine
results are written back into the stores, and where rewards and chapter
transitions are applied.

Delayed chapter advances are scheduled on the running asyncio loop and are
guarded by the owning tick loop's generation token; when no loop is running
(plain synchronous use) the advance is applied immediately.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, replace
import logging
from typing import AsyncIterator, Optional, Tuple
from uuid import uuid4

import numpy as np

from .config import DEFAULT_GAME_CONFIG, GameConfig
from .engine.catalog import PurchaseCategory, SubjectType
from .engine.formulas import ConsolePreview, preview_console
from .simulation.debate import WIN_KNOWLEDGE_POINTS, CardEffect, DebateOutcome, DebateState, card_effect
from .simulation.errors import PreconditionError
from .simulation.level import OpticalLevel, generate_level
from .simulation.loop import TickLoop
from .simulation.maze import (
    CROSSTALK_SUSPICION,
    SUCCESS_EVIDENCE,
    SUCCESS_KNOWLEDGE_POINTS as MAZE_KNOWLEDGE_POINTS,
    MazeStatus,
    MazeStep,
    MouseAction,
    advance_mouse,
    apply_action,
)
from .simulation.neuromod import (
    DIAGNOSIS_KNOWLEDGE_POINTS,
    TREATMENT_KNOWLEDGE_POINTS,
    LoopStatus,
    NeuromodulationState,
    TreatmentMethod,
    is_correct_diagnosis,
    result_of,
    step_loop,
)
from .simulation.optical import (
    SUCCESS_KNOWLEDGE_POINTS as OPTICAL_KNOWLEDGE_POINTS,
    LaserControls,
    OpticalChamber,
    OpticalFrame,
    OpticalStatus,
)
from .simulation.scan import ExperimentResult, ScanLogEntry, resolve_experiment, stream_scan
from .state.lab import GameStage, LabStore
from .state.neurofiles import Chapter, NeuroFilesStore

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScanReadiness:
    ready: bool
    lab_complete: bool
    checklist_complete: bool
    gradient_overload: bool


class GameSession:
    """One player's game: lab track, Neuro-Files track and their timers."""

    def __init__(
        self,
        config: GameConfig | None = None,
        *,
        seed: Optional[int] = None,
        rng: Optional[np.random.Generator] = None,
        session_id: Optional[str] = None,
    ) -> None:
        self.config = config or DEFAULT_GAME_CONFIG
        self.id = session_id or uuid4().hex
        if rng is None:
            rng = np.random.default_rng(seed if seed is not None else self.config.seed)
        self.rng = rng
        self.lab = LabStore()
        self.neurofiles = NeuroFilesStore()
        self.optical = OpticalChamber(self.neurofiles.level)
        self.optical_loop = TickLoop(self.config.optical_interval, self._optical_loop_tick, name="optical")
        self.maze_loop = TickLoop(self.config.maze_interval, self._maze_loop_tick, name="maze")
        self.neuromod_loop = TickLoop(self.config.neuromod_interval, self._neuromod_loop_tick, name="neuromod")

    # -- MRI lab ---------------------------------------------------------

    def purchase(self, category: PurchaseCategory, item: str) -> bool:
        return self.lab.purchase(category, item)

    def set_subject(self, subject: SubjectType) -> bool:
        return self.lab.set_subject(subject)

    def preview(self) -> ConsolePreview:
        return preview_console(self.lab.lab, self.lab.scan, self.lab.shimming, self.lab.safety)

    def scan_readiness(self) -> ScanReadiness:
        return ScanReadiness(
            ready=self.lab.can_run_scan(),
            lab_complete=self.lab.lab.is_complete,
            checklist_complete=self.lab.checklist.complete,
            gradient_overload=self.lab.gradient_overloaded(),
        )

    def run_experiment(self) -> ExperimentResult:
        """Resolve a scan from the current console state and record the outcome."""

        readiness = self.scan_readiness()
        if not readiness.ready:
            raise PreconditionError(
                "Scan console is not ready",
                context={
                    "lab_complete": readiness.lab_complete,
                    "checklist_complete": readiness.checklist_complete,
                    "gradient_overload": readiness.gradient_overload,
                    "missing": self.lab.lab.missing_fields(),
                },
            )
        result = resolve_experiment(
            self.lab.lab,
            self.lab.scan,
            self.lab.shimming,
            self.lab.safety,
            self.rng,
            stage_delays_ms=self.config.scan_stage_delays_ms,
        )
        self.lab.complete_experiment(result)
        self.lab.set_stage(GameStage.REVIEW)
        return result

    async def stream_experiment(self, *, time_scale: float = 1.0) -> AsyncIterator[ScanLogEntry]:
        result = self.run_experiment()
        async for entry in stream_scan(result, time_scale=time_scale):
            yield entry

    def next_round(self) -> None:
        self.lab.next_round(self.rng)

    def reset_lab(self) -> None:
        self.lab.reset()

    # -- chapter transitions ---------------------------------------------

    def _schedule_advance(self, loop: TickLoop, chapter: Chapter) -> None:
        def _advance() -> None:
            self.neurofiles.set_chapter(chapter)

        try:
            asyncio.get_running_loop()
        except RuntimeError:
            LOGGER.debug("No running event loop; advancing to %s immediately", chapter.value)
            _advance()
            return
        loop.schedule_once(self.config.chapter_advance_delay, _advance)

    # -- chapter 1: optical targeting ------------------------------------

    def new_level(self) -> OpticalLevel:
        self.optical_loop.stop()
        level = generate_level(self.rng)
        self.neurofiles.init_level(level)
        self.optical.load_level(level)
        return level

    def toggle_particle(self, x: int, y: int) -> bool:
        return self.optical.toggle_particle(x, y)

    def set_laser(self, controls: LaserControls) -> None:
        self.optical.set_controls(controls)

    def set_firing(self, firing: bool) -> None:
        self.optical.set_firing(firing)

    def optical_tick(self) -> OpticalFrame:
        before = self.optical.status
        frame = self.optical.tick()
        if before is not OpticalStatus.SUCCESS and frame.status is OpticalStatus.SUCCESS:
            self.neurofiles.add_knowledge_points(OPTICAL_KNOWLEDGE_POINTS)
            self._schedule_advance(self.optical_loop, Chapter.CHAPTER2)
        return frame

    def _optical_loop_tick(self) -> bool:
        frame = self.optical_tick()
        return frame.status is not OpticalStatus.IDLE

    # -- chapter 2: wireless steering ------------------------------------

    def set_led_spacing(self, spacing: float) -> float:
        return self.neurofiles.set_led_spacing(spacing)

    def start_maze(self) -> None:
        if self.neurofiles.maze_status is not MazeStatus.SETUP:
            raise PreconditionError(
                "Maze run already started",
                context={"status": self.neurofiles.maze_status.value},
            )
        self.neurofiles.set_maze_status(MazeStatus.ACTIVE)

    def _apply_maze_step(self, step: MazeStep) -> MazeStep:
        was_active = self.neurofiles.maze_status is MazeStatus.ACTIVE
        self.neurofiles.update_mouse(
            x=step.mouse.x, y=step.mouse.y, angle=step.mouse.angle, frozen=step.mouse.frozen
        )
        self.neurofiles.set_maze_status(step.status)
        if was_active and step.completed:
            self.neurofiles.add_knowledge_points(MAZE_KNOWLEDGE_POINTS)
            self.neurofiles.add_evidence(SUCCESS_EVIDENCE)
            self._schedule_advance(self.maze_loop, Chapter.CHAPTER3)
        elif was_active and step.failed:
            self.neurofiles.increase_suspicion(CROSSTALK_SUSPICION)
        return step

    def maze_tick(self) -> MazeStep:
        return self._apply_maze_step(advance_mouse(self.neurofiles.mouse, self.neurofiles.maze_status))

    def maze_action(self, action: MouseAction) -> MazeStep:
        step = apply_action(
            self.neurofiles.mouse,
            self.neurofiles.maze_status,
            action,
            self.neurofiles.led_spacing,
        )
        return self._apply_maze_step(step)

    def reset_maze(self) -> None:
        self.maze_loop.stop()
        self.neurofiles.reset_maze()

    def _maze_loop_tick(self) -> bool:
        step = self.maze_tick()
        return step.status is not MazeStatus.ACTIVE

    # -- chapter 3: neuromodulation --------------------------------------

    def diagnose(self, circuit_id: str) -> bool:
        if not is_correct_diagnosis(circuit_id):
            return False
        if not self.neurofiles.pathway_identified:
            self.neurofiles.identify_pathway()
            self.neurofiles.add_knowledge_points(DIAGNOSIS_KNOWLEDGE_POINTS)
        return True

    def select_treatment(self, method: TreatmentMethod) -> None:
        if not self.neurofiles.pathway_identified:
            raise PreconditionError("Identify the pathological circuit first")
        if self.neurofiles.neuromod.finished:
            raise PreconditionError(
                "Treatment already concluded",
                context={"status": self.neurofiles.neuromod.status.value},
            )
        self.neuromod_loop.stop()
        self.neurofiles.select_treatment(method)
        self.neurofiles.update_neuromod(NeuromodulationState())
        self.neurofiles.add_knowledge_points(TREATMENT_KNOWLEDGE_POINTS)

    def set_treatment(
        self,
        *,
        wavelength: Optional[float] = None,
        power: Optional[float] = None,
        frequency: Optional[float] = None,
    ) -> None:
        changes = {
            key: float(value)
            for key, value in (("wavelength", wavelength), ("power", power), ("frequency", frequency))
            if value is not None
        }
        self.neurofiles.set_treatment_config(**changes)

    def set_treatment_active(self, active: bool) -> NeuromodulationState:
        state = self.neurofiles.neuromod
        if state.finished:
            return state
        if active and self.neurofiles.treatment.method is None:
            raise PreconditionError("Select a treatment method before running the loop")
        status = LoopStatus.ACTIVE if active else LoopStatus.IDLE
        updated = replace(state, status=status)
        self.neurofiles.update_neuromod(updated)
        return updated

    def neuromod_tick(self) -> NeuromodulationState:
        state = self.neurofiles.neuromod
        if state.status is not LoopStatus.ACTIVE:
            return state
        updated = step_loop(state, self.neurofiles.treatment, self.rng)
        self.neurofiles.update_neuromod(updated)
        if updated.finished:
            self.neurofiles.complete_chapter3(result_of(updated))
            self.neurofiles.set_chapter(Chapter.CHAPTER4)
        return updated

    def _neuromod_loop_tick(self) -> bool:
        return self.neuromod_tick().status is not LoopStatus.ACTIVE

    # -- chapter 4: debate -----------------------------------------------

    def play_card(self, card_id: str) -> Tuple[DebateState, CardEffect]:
        claim = self.neurofiles.debate.current_claim
        if claim is None:
            raise PreconditionError("The debate is over", context={"outcome": self._debate_outcome()})
        effect = card_effect(claim, card_id)
        self.neurofiles.play_card(effect)
        state = self.neurofiles.next_claim()
        if state.outcome is DebateOutcome.WIN:
            self.neurofiles.add_knowledge_points(WIN_KNOWLEDGE_POINTS)
            self.neurofiles.set_chapter(Chapter.END_GOOD)
        elif state.outcome is DebateOutcome.LOSS:
            self.neurofiles.set_chapter(Chapter.END_BAD)
        return state, effect

    def _debate_outcome(self) -> Optional[str]:
        outcome = self.neurofiles.debate.outcome
        return outcome.value if outcome else None

    def reset_debate(self) -> None:
        self.neurofiles.reset_debate()
        self.neurofiles.set_chapter(Chapter.CHAPTER4)

    # -- lifecycle -------------------------------------------------------

    def loops(self) -> Tuple[TickLoop, ...]:
        return (self.optical_loop, self.maze_loop, self.neuromod_loop)

    def stop_all(self) -> None:
        for loop in self.loops():
            loop.stop()

    def reset_neurofiles(self) -> None:
        self.stop_all()
        self.neurofiles.reset()
        self.optical = OpticalChamber(self.neurofiles.level)


__all__ = ["GameSession", "ScanReadiness"]
