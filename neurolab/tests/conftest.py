import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest
from httpx import ASGITransport, AsyncClient

from neurolab.api.routes import services
from neurolab.config import GameConfig
from neurolab.engine.catalog import CoilType, CoolingType, GradientType, MagnetType
from neurolab.engine.models import LabConfiguration
import neurolab.main as neurolab_main


class FixedRandom:
    """Random source returning a scripted sequence of draws, repeating the last one."""

    def __init__(self, *values: float) -> None:
        self.values = list(values) or [0.5]
        self.calls = 0

    def random(self) -> float:
        index = min(self.calls, len(self.values) - 1)
        self.calls += 1
        return self.values[index]


@pytest.fixture()
def anyio_backend() -> str:  # pragma: no cover - restrict to asyncio for anyio plugin
    return "asyncio"


@pytest.fixture()
def fast_config() -> GameConfig:
    return GameConfig(
        seed=7,
        optical_tick_ms=1,
        maze_tick_ms=1,
        neuromod_tick_ms=1,
        chapter_advance_delay_ms=5,
        scan_stage_delays_ms=(0, 0, 0, 0),
    )


@pytest.fixture()
def starter_lab() -> LabConfiguration:
    """A complete 3T lab with gradients strong enough for 1 mm voxels."""

    return LabConfiguration(
        magnet=MagnetType.T3,
        cooling=CoolingType.STANDARD,
        coil=CoilType.BIRDCAGE,
        gradient=GradientType.HIGH_PERF,
    )


@pytest.fixture()
async def test_client(fast_config: GameConfig):
    previous = services.config
    services.configure(config=fast_config)
    services.sessions.clear()
    transport = ASGITransport(app=neurolab_main.app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as client:
        yield client
    for session in list(services.sessions.values()):
        session.stop_all()
    services.sessions.clear()
    services.configure(config=previous)


@pytest.fixture()
def fixed_random():
    return FixedRandom
