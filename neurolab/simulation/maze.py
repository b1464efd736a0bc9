"""Wireless optogenetic steering of a freely moving mouse.

Coordinates are percentages of the arena; the extraction zone is the top 15%.
The implant carries two LEDs; when they sit closer than 1.5 mm a turning
command bleeds into the neighbouring cortex and the chapter is lost.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from enum import Enum
import logging
import math
from typing import Dict, Optional

LOGGER = logging.getLogger(__name__)

SPEED = 1.5
TURN_DEGREES = 30.0
ARENA_MIN = 5.0
ARENA_MAX = 95.0
GOAL_Y = 15.0
CROSSTALK_SPACING_MM = 1.5
LED_SPACING_RANGE_MM = (0.1, 3.0)
DEFAULT_LED_SPACING_MM = 0.5
CROSSTALK_SUSPICION = 30
SUCCESS_KNOWLEDGE_POINTS = 150
SUCCESS_EVIDENCE = "Wireless Photometry Specs"

CROSSTALK_MESSAGE = (
    "CRITICAL FAILURE: Signal Crosstalk Detected! LEDs are too close (<1.5mm). "
    "Red light spread to adjacent cortex."
)
COMPLETE_MESSAGE = "TARGET ACQUIRED. Wireless Control Successful."


class MazeStatus(str, Enum):
    SETUP = "setup"
    ACTIVE = "active"
    FAILED = "failed"
    COMPLETE = "complete"


class MouseAction(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    STOP = "stop"


@dataclass(frozen=True)
class MouseState:
    """Position in arena percent; ``angle`` 0 points up, clockwise positive."""

    x: float = 50.0
    y: float = 90.0
    angle: float = 0.0
    frozen: bool = False

    def as_dict(self) -> Dict[str, object]:
        return {"x": self.x, "y": self.y, "angle": self.angle, "frozen": self.frozen}


@dataclass(frozen=True)
class MazeStep:
    """Mouse state after a tick or command plus any status change it caused."""

    mouse: MouseState
    status: MazeStatus
    message: Optional[str] = None

    @property
    def completed(self) -> bool:
        return self.status is MazeStatus.COMPLETE

    @property
    def failed(self) -> bool:
        return self.status is MazeStatus.FAILED


def advance_mouse(mouse: MouseState, status: MazeStatus) -> MazeStep:
    """Move the mouse one tick along its heading."""

    if status is not MazeStatus.ACTIVE or mouse.frozen:
        return MazeStep(mouse=mouse, status=status)
    heading = math.radians(mouse.angle - 90.0)
    x = mouse.x + math.cos(heading) * SPEED
    y = mouse.y + math.sin(heading) * SPEED
    x = max(ARENA_MIN, min(ARENA_MAX, x))
    y = max(ARENA_MIN, min(ARENA_MAX, y))
    moved = replace(mouse, x=x, y=y)
    if y < GOAL_Y:
        LOGGER.info("Mouse reached extraction zone at (%.1f, %.1f)", x, y)
        return MazeStep(mouse=moved, status=MazeStatus.COMPLETE, message=COMPLETE_MESSAGE)
    return MazeStep(mouse=moved, status=status)


def apply_action(mouse: MouseState, status: MazeStatus, action: MouseAction, led_spacing: float) -> MazeStep:
    """Apply a steering command.

    Commands are ignored unless the run is active.  ``stop`` freezes the mouse;
    turning unfreezes it unless the LED spacing causes crosstalk.
    """

    if status is not MazeStatus.ACTIVE:
        return MazeStep(mouse=mouse, status=status)
    if action is MouseAction.STOP:
        return MazeStep(mouse=replace(mouse, frozen=True), status=status)
    if led_spacing < CROSSTALK_SPACING_MM:
        LOGGER.info("LED crosstalk at spacing %.2f mm", led_spacing)
        return MazeStep(mouse=mouse, status=MazeStatus.FAILED, message=CROSSTALK_MESSAGE)
    delta = -TURN_DEGREES if action is MouseAction.LEFT else TURN_DEGREES
    return MazeStep(mouse=replace(mouse, angle=mouse.angle + delta, frozen=False), status=status)


__all__ = [
    "COMPLETE_MESSAGE",
    "CROSSTALK_MESSAGE",
    "CROSSTALK_SUSPICION",
    "DEFAULT_LED_SPACING_MM",
    "LED_SPACING_RANGE_MM",
    "MazeStatus",
    "MazeStep",
    "MouseAction",
    "MouseState",
    "SUCCESS_EVIDENCE",
    "SUCCESS_KNOWLEDGE_POINTS",
    "advance_mouse",
    "apply_action",
]
