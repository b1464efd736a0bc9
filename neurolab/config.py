"""Configuration helpers for the game services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Optional, Tuple

import logging
import os

LOGGER = logging.getLogger(__name__)

_FALSE_VALUES = {"0", "false", "no"}


def _parse_positive_int(raw: str | None, default: int, *, name: str) -> int:
    if raw is None:
        return default
    try:
        parsed = int(raw)
    except (TypeError, ValueError):
        LOGGER.warning("Ignoring invalid %s=%r; using %d", name, raw, default)
        return default
    if parsed <= 0:
        LOGGER.warning("Ignoring non-positive %s=%r; using %d", name, raw, default)
        return default
    return parsed


@dataclass(slots=True)
class GameConfig:
    """Timing and randomness settings for a game session.

    Tick intervals and the chapter-advance delay are part of the observable
    pacing of the game; the scan stage delays drive the staged console log.
    """

    seed: Optional[int] = None
    optical_tick_ms: int = 50
    maze_tick_ms: int = 50
    neuromod_tick_ms: int = 100
    chapter_advance_delay_ms: int = 2000
    scan_stage_delays_ms: Tuple[int, ...] = field(default_factory=lambda: (800, 800, 800, 1000))

    @property
    def optical_interval(self) -> float:
        return self.optical_tick_ms / 1000.0

    @property
    def maze_interval(self) -> float:
        return self.maze_tick_ms / 1000.0

    @property
    def neuromod_interval(self) -> float:
        return self.neuromod_tick_ms / 1000.0

    @property
    def chapter_advance_delay(self) -> float:
        return self.chapter_advance_delay_ms / 1000.0

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        prefix: str = "NEUROLAB_",
    ) -> "GameConfig":
        """Read ``<prefix>SEED``, ``<prefix>*_TICK_MS`` and friends.

        ``<prefix>SCAN_STAGE_DELAYS_MS`` is a comma separated list.  Invalid
        values fall back to the defaults with a warning.
        """

        env = env or os.environ
        defaults = cls()

        seed: Optional[int] = None
        raw_seed = env.get(f"{prefix}SEED")
        if raw_seed not in (None, ""):
            try:
                seed = int(raw_seed)
            except (TypeError, ValueError):
                LOGGER.warning("Ignoring invalid %sSEED=%r", prefix, raw_seed)

        delays = defaults.scan_stage_delays_ms
        raw_delays = env.get(f"{prefix}SCAN_STAGE_DELAYS_MS")
        if raw_delays:
            try:
                parsed = tuple(int(part) for part in raw_delays.split(",") if part.strip())
            except ValueError:
                LOGGER.warning("Ignoring invalid %sSCAN_STAGE_DELAYS_MS=%r", prefix, raw_delays)
            else:
                if parsed and all(value >= 0 for value in parsed):
                    delays = parsed

        return cls(
            seed=seed,
            optical_tick_ms=_parse_positive_int(
                env.get(f"{prefix}OPTICAL_TICK_MS"), defaults.optical_tick_ms, name=f"{prefix}OPTICAL_TICK_MS"
            ),
            maze_tick_ms=_parse_positive_int(
                env.get(f"{prefix}MAZE_TICK_MS"), defaults.maze_tick_ms, name=f"{prefix}MAZE_TICK_MS"
            ),
            neuromod_tick_ms=_parse_positive_int(
                env.get(f"{prefix}NEUROMOD_TICK_MS"), defaults.neuromod_tick_ms, name=f"{prefix}NEUROMOD_TICK_MS"
            ),
            chapter_advance_delay_ms=_parse_positive_int(
                env.get(f"{prefix}CHAPTER_ADVANCE_DELAY_MS"),
                defaults.chapter_advance_delay_ms,
                name=f"{prefix}CHAPTER_ADVANCE_DELAY_MS",
            ),
            scan_stage_delays_ms=delays,
        )


@dataclass(slots=True)
class TelemetryConfig:
    """Runtime configuration for OpenTelemetry exporters."""

    enabled: bool = False
    service_name: str = "neurolab-api"
    environment: str = "development"
    exporter_endpoint: Optional[str] = None
    exporter_protocol: str = "http/protobuf"
    sampling_ratio: float = 0.1
    capture_metrics: bool = True
    capture_traces: bool = True

    @classmethod
    def from_env(
        cls,
        env: Mapping[str, str] | None = None,
        prefix: str = "OTEL_",
    ) -> "TelemetryConfig":
        """Construct a configuration object from environment variables."""

        env = env or os.environ
        enabled_raw = env.get(f"{prefix}ENABLED") or env.get("ENABLE_TELEMETRY")
        enabled = False
        if enabled_raw is not None:
            enabled = str(enabled_raw).strip().lower() not in _FALSE_VALUES
        endpoint = env.get(f"{prefix}EXPORTER_OTLP_ENDPOINT")
        protocol = env.get(f"{prefix}EXPORTER_OTLP_PROTOCOL")
        service_name = env.get(f"{prefix}SERVICE_NAME") or env.get("SERVICE_NAME") or "neurolab-api"
        environment_name = env.get(f"{prefix}ENVIRONMENT") or env.get("DEPLOYMENT_ENV", "development")

        def _parse_ratio(raw: str | None, default: float) -> float:
            if raw is None:
                return default
            try:
                parsed = float(raw)
            except (TypeError, ValueError):
                return default
            return max(0.0, min(1.0, parsed))

        sampling_ratio = _parse_ratio(
            env.get(f"{prefix}SAMPLING_RATIO") or env.get(f"{prefix}TRACES_SAMPLER_ARG"),
            0.1,
        )
        capture_metrics = env.get(f"{prefix}CAPTURE_METRICS", "1").lower() not in _FALSE_VALUES
        capture_traces = env.get(f"{prefix}CAPTURE_TRACES", "1").lower() not in _FALSE_VALUES

        return cls(
            enabled=enabled or bool(endpoint),
            service_name=service_name,
            environment=environment_name,
            exporter_endpoint=endpoint,
            exporter_protocol=protocol or "http/protobuf",
            sampling_ratio=sampling_ratio,
            capture_metrics=capture_metrics,
            capture_traces=capture_traces,
        )


DEFAULT_GAME_CONFIG = GameConfig.from_env()
DEFAULT_TELEMETRY_CONFIG = TelemetryConfig.from_env()
