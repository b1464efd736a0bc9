"""Procedural level generation for the optical targeting chapter.

Levels are always solvable: vessels never spawn in the 3x3 neighbourhood of
the target (leaving room for an upconversion particle next to it) or in the
entry corridor directly below the laser source.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Dict, List, Tuple

import numpy as np

LOGGER = logging.getLogger(__name__)

GRID_WIDTH = 20
GRID_HEIGHT = 15
SKULL_ROWS = 2
VESSEL_GROUPS = 5
VESSEL_MAX_ROW = 14

Cell = Tuple[int, int]


@dataclass(frozen=True)
class OpticalLevel:
    """Laser column, target cell and blood-vessel obstacles."""

    source_x: int = 10
    target_x: int = 10
    target_y: int = 12
    vessels: Tuple[Cell, ...] = field(default_factory=tuple)

    @property
    def target(self) -> Cell:
        return (self.target_x, self.target_y)

    def as_dict(self) -> Dict[str, object]:
        return {
            "source_x": self.source_x,
            "target_x": self.target_x,
            "target_y": self.target_y,
            "vessels": [list(cell) for cell in self.vessels],
        }


def _in_safe_zone(x: int, y: int, source_x: int, target_x: int, target_y: int) -> bool:
    if abs(x - target_x) <= 1 and abs(y - target_y) <= 1:
        return True
    return abs(x - source_x) <= 1 and y <= 3


def generate_level(rng: np.random.Generator) -> OpticalLevel:
    """Draw a fresh level from ``rng``.

    ``integers`` bounds are half-open, so the source lands in columns 5-14,
    the target in rows 10-13 and columns 2-17.
    """

    source_x = int(rng.integers(5, 15))
    target_y = int(rng.integers(10, 14))
    target_x = int(max(2, min(17, int(rng.integers(2, 18)))))

    vessels: List[Cell] = []
    for _ in range(VESSEL_GROUPS):
        start_x = int(rng.integers(1, 19))
        start_y = int(rng.integers(3, 12))
        length = int(rng.integers(2, 6))
        horizontal = rng.random() > 0.6
        for offset in range(length):
            x = start_x + offset if horizontal else start_x
            y = start_y if horizontal else start_y + offset
            if x < GRID_WIDTH and y < VESSEL_MAX_ROW and not _in_safe_zone(x, y, source_x, target_x, target_y):
                vessels.append((x, y))

    LOGGER.debug(
        "Generated level source=%d target=(%d, %d) vessels=%d",
        source_x,
        target_x,
        target_y,
        len(vessels),
    )
    return OpticalLevel(source_x=source_x, target_x=target_x, target_y=target_y, vessels=tuple(vessels))


__all__ = ["GRID_HEIGHT", "GRID_WIDTH", "OpticalLevel", "SKULL_ROWS", "generate_level"]
