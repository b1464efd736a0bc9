"""Optical ray propagation through a coarse cortical cross-section.

Each tick the whole frame is recomputed from the level, the particle layout
and the laser controls; nothing carries over from the previous tick.  A single
ray is marched from the top edge in sixth-of-a-cell steps.  Blue light is
absorbed quickly by skull and tissue, near-infrared (NIR) passes almost
losslessly and is converted back to blue by upconversion nanoparticles
(UCNPs), which radiate isotropically into their neighbourhood.

Blood vessels absorb part of the beam and heat up.  If any cell exceeds
42 degC while firing the attempt fails; if the target cell receives enough
blue light the chapter is won.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import math
from typing import Dict, List, Optional, Set, Tuple

import numpy as np
import numpy.typing as npt

from .errors import FailureReason
from .level import GRID_HEIGHT, GRID_WIDTH, SKULL_ROWS, Cell, OpticalLevel

LOGGER = logging.getLogger(__name__)

BASELINE_TEMPERATURE = 37.0
THERMAL_LIMIT = 42.0
STEP_SIZE = 1.0 / 6.0
MAX_STEPS = 300
IDLE_POWER = 10.0
MAX_ANGLE = 45.0
UCNP_INVENTORY = 3
UCNP_RADIUS = 3.5
UCNP_MIN_ENERGY = 5.0
UCNP_CONVERSION = 0.8
UCNP_VESSEL_HEATING = 0.08
ACTIVATION_GAIN = 2.5
SUCCESS_KNOWLEDGE_POINTS = 200


class CellType(str, Enum):
    SKULL = "skull"
    TISSUE = "tissue"
    VESSEL = "vessel"
    TARGET = "target"
    UCNP = "ucnp"


class LaserType(str, Enum):
    BLUE = "blue"
    NIR = "nir"


class OpticalStatus(str, Enum):
    IDLE = "idle"
    SUCCESS = "success"
    FAILURE = "fail"


@dataclass(frozen=True)
class LaserControls:
    """Beam angle in degrees from vertical (positive to the right) and power in mW."""

    angle: float = 0.0
    power: float = 50.0
    laser: LaserType = LaserType.NIR

    @property
    def clamped_angle(self) -> float:
        return max(-MAX_ANGLE, min(MAX_ANGLE, self.angle))


@dataclass(frozen=True)
class GridCell:
    x: int
    y: int
    type: CellType
    blue_intensity: float
    nir_intensity: float
    temperature: float


@dataclass
class OpticalFrame:
    """Intensity and temperature maps for one tick plus the derived outcome."""

    terrain: npt.NDArray[np.str_]
    blue: npt.NDArray[np.float64]
    nir: npt.NDArray[np.float64]
    temperature: npt.NDArray[np.float64]
    path: List[Cell] = field(default_factory=list)
    max_temperature: float = BASELINE_TEMPERATURE
    activation: float = 0.0
    status: OpticalStatus = OpticalStatus.IDLE
    reason: Optional[FailureReason] = None
    message: str = ""

    def cell(self, x: int, y: int) -> GridCell:
        return GridCell(
            x=x,
            y=y,
            type=CellType(str(self.terrain[y, x])),
            blue_intensity=float(self.blue[y, x]),
            nir_intensity=float(self.nir[y, x]),
            temperature=float(self.temperature[y, x]),
        )

    def cells(self) -> List[GridCell]:
        return [self.cell(x, y) for y in range(GRID_HEIGHT) for x in range(GRID_WIDTH)]

    def as_dict(self, *, include_grid: bool = True) -> Dict[str, object]:
        payload: Dict[str, object] = {
            "path": [list(cell) for cell in self.path],
            "max_temperature": self.max_temperature,
            "activation": self.activation,
            "status": self.status.value,
            "reason": self.reason.value if self.reason else None,
            "message": self.message,
        }
        if include_grid:
            payload["terrain"] = self.terrain.tolist()
            payload["blue"] = np.round(self.blue, 3).tolist()
            payload["nir"] = np.round(self.nir, 3).tolist()
            payload["temperature"] = np.round(self.temperature, 3).tolist()
        return payload


def build_terrain(level: OpticalLevel, particles: Set[Cell] | None = None) -> npt.NDArray[np.str_]:
    """Return the ``(height, width)`` terrain map for ``level``."""

    terrain = np.full((GRID_HEIGHT, GRID_WIDTH), CellType.TISSUE.value, dtype="<U6")
    terrain[:SKULL_ROWS, :] = CellType.SKULL.value
    for x, y in level.vessels:
        if 0 <= x < GRID_WIDTH and 0 <= y < GRID_HEIGHT:
            terrain[y, x] = CellType.VESSEL.value
    for x, y in particles or ():
        terrain[y, x] = CellType.UCNP.value
    terrain[level.target_y, level.target_x] = CellType.TARGET.value
    return terrain


def _emit_upconversion(
    terrain: npt.NDArray[np.str_],
    blue: npt.NDArray[np.float64],
    temperature: npt.NDArray[np.float64],
    gx: int,
    gy: int,
    power: float,
) -> None:
    reach = int(math.floor(UCNP_RADIUS))
    for dy in range(-reach, reach + 1):
        for dx in range(-reach, reach + 1):
            nx, ny = gx + dx, gy + dy
            if not (0 <= nx < GRID_WIDTH and 0 <= ny < GRID_HEIGHT):
                continue
            distance = math.sqrt(dx * dx + dy * dy)
            if distance > UCNP_RADIUS:
                continue
            deposited = power / (1.0 + 0.5 * distance)
            blue[ny, nx] += deposited
            if terrain[ny, nx] == CellType.VESSEL.value:
                temperature[ny, nx] += deposited * UCNP_VESSEL_HEATING


def trace_frame(
    level: OpticalLevel,
    particles: Set[Cell],
    controls: LaserControls,
    firing: bool,
) -> OpticalFrame:
    """March the beam through a fresh grid and classify the outcome."""

    terrain = build_terrain(level, particles)
    blue = np.zeros((GRID_HEIGHT, GRID_WIDTH), dtype=float)
    nir = np.zeros((GRID_HEIGHT, GRID_WIDTH), dtype=float)
    temperature = np.full((GRID_HEIGHT, GRID_WIDTH), BASELINE_TEMPERATURE, dtype=float)

    radians = math.radians(controls.clamped_angle)
    dir_x, dir_y = math.sin(radians), math.cos(radians)
    x, y = level.source_x + 0.5, 0.0
    energy = float(controls.power) if firing else IDLE_POWER
    is_blue = controls.laser is LaserType.BLUE
    intensity = blue if is_blue else nir
    path: List[Cell] = []

    for _ in range(MAX_STEPS):
        x += dir_x * STEP_SIZE
        y += dir_y * STEP_SIZE
        if x < 0 or x >= GRID_WIDTH or y >= GRID_HEIGHT:
            break
        gx, gy = int(math.floor(x)), int(math.floor(y))
        if not path or path[-1] != (gx, gy):
            path.append((gx, gy))
        kind = terrain[gy, gx]

        if kind == CellType.SKULL.value and is_blue:
            energy *= 0.5
            temperature[gy, gx] += energy * 0.1
        if kind == CellType.VESSEL.value:
            energy *= 0.8
            temperature[gy, gx] += energy * 0.5

        intensity[gy, gx] = max(intensity[gy, gx], energy)
        energy *= 0.90 if is_blue else 0.99

        if kind == CellType.UCNP.value and not is_blue and energy > UCNP_MIN_ENERGY:
            _emit_upconversion(terrain, blue, temperature, gx, gy, energy * UCNP_CONVERSION)
            energy *= 0.8

        if energy < 1.0:
            break

    max_temperature = float(temperature.max())
    activation = float(min(100.0, blue[level.target_y, level.target_x] * ACTIVATION_GAIN))
    frame = OpticalFrame(
        terrain=terrain,
        blue=blue,
        nir=nir,
        temperature=temperature,
        path=path,
        max_temperature=max_temperature,
        activation=activation,
    )
    if firing:
        if max_temperature > THERMAL_LIMIT:
            frame.status = OpticalStatus.FAILURE
            frame.reason = FailureReason.THERMAL_DAMAGE
            frame.message = "FAILURE: Vessel overheated! Thermal damage detected."
        elif activation >= 100.0:
            frame.status = OpticalStatus.SUCCESS
            frame.message = "SUCCESS: Target Activated! Neural link established."
    return frame


class ParticleLayout:
    """Player-placed UCNP markers with a fixed inventory."""

    def __init__(self, capacity: int = UCNP_INVENTORY) -> None:
        self.capacity = capacity
        self._cells: Set[Cell] = set()

    @property
    def cells(self) -> Set[Cell]:
        return set(self._cells)

    @property
    def remaining(self) -> int:
        return self.capacity - len(self._cells)

    def clear(self) -> None:
        self._cells.clear()

    def toggle(self, level: OpticalLevel, x: int, y: int) -> bool:
        """Place or remove a particle; returns ``True`` when the layout changed.

        Only plain tissue accepts a particle.  Removing one returns it to the
        inventory.
        """

        cell = (x, y)
        if cell in self._cells:
            self._cells.remove(cell)
            return True
        if not (0 <= x < GRID_WIDTH and 0 <= y < GRID_HEIGHT):
            return False
        if self.remaining <= 0:
            return False
        if build_terrain(level)[y, x] != CellType.TISSUE.value:
            return False
        self._cells.add(cell)
        return True


class OpticalChamber:
    """Chapter state machine wrapped around :func:`trace_frame`.

    Holds the level, particle layout, controls and firing flag.  Terminal
    frames lock the chamber: a failure stops firing, a success ignores any
    further input until :meth:`reset_attempt` or a new level.
    """

    def __init__(self, level: OpticalLevel | None = None) -> None:
        self.level = level or OpticalLevel()
        self.particles = ParticleLayout()
        self.controls = LaserControls()
        self.firing = False
        self.status = OpticalStatus.IDLE
        self.last_frame: OpticalFrame | None = None

    def load_level(self, level: OpticalLevel) -> None:
        self.level = level
        self.particles.clear()
        self.reset_attempt()

    def reset_attempt(self) -> None:
        self.firing = False
        self.status = OpticalStatus.IDLE
        self.last_frame = None

    def set_controls(self, controls: LaserControls) -> None:
        self.controls = controls

    def toggle_particle(self, x: int, y: int) -> bool:
        if self.firing or self.status is OpticalStatus.SUCCESS:
            return False
        return self.particles.toggle(self.level, x, y)

    def set_firing(self, firing: bool) -> None:
        if self.status is OpticalStatus.SUCCESS:
            return
        if firing:
            self.status = OpticalStatus.IDLE
        self.firing = firing

    def tick(self) -> OpticalFrame:
        """Recompute the frame; returns it with any newly reached outcome."""

        frame = trace_frame(self.level, self.particles.cells, self.controls, self.firing)
        if self.status is OpticalStatus.SUCCESS:
            frame.status = OpticalStatus.SUCCESS
        elif frame.status is OpticalStatus.FAILURE:
            LOGGER.info("Optical attempt failed: max temperature %.2f", frame.max_temperature)
            self.status = OpticalStatus.FAILURE
            self.firing = False
        elif frame.status is OpticalStatus.SUCCESS:
            LOGGER.info("Optical target activated (%.1f%%)", frame.activation)
            self.status = OpticalStatus.SUCCESS
        self.last_frame = frame
        return frame


__all__ = [
    "CellType",
    "GridCell",
    "LaserControls",
    "LaserType",
    "OpticalChamber",
    "OpticalFrame",
    "OpticalStatus",
    "ParticleLayout",
    "SUCCESS_KNOWLEDGE_POINTS",
    "THERMAL_LIMIT",
    "build_terrain",
    "trace_frame",
]
