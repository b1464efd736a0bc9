import logging

from neurolab.config import GameConfig, TelemetryConfig


def test_game_config_reads_prefixed_environment() -> None:
    env = {
        "NEUROLAB_SEED": "5",
        "NEUROLAB_OPTICAL_TICK_MS": "20",
        "NEUROLAB_NEUROMOD_TICK_MS": "250",
        "NEUROLAB_CHAPTER_ADVANCE_DELAY_MS": "500",
        "NEUROLAB_SCAN_STAGE_DELAYS_MS": "100, 200,300,400",
    }

    config = GameConfig.from_env(env)

    assert config.seed == 5
    assert config.optical_tick_ms == 20
    assert config.optical_interval == 0.02
    assert config.maze_tick_ms == 50
    assert config.neuromod_interval == 0.25
    assert config.chapter_advance_delay == 0.5
    assert config.scan_stage_delays_ms == (100, 200, 300, 400)


def test_game_config_ignores_invalid_values(caplog) -> None:
    env = {
        "NEUROLAB_SEED": "abc",
        "NEUROLAB_MAZE_TICK_MS": "-5",
        "NEUROLAB_OPTICAL_TICK_MS": "fast",
        "NEUROLAB_SCAN_STAGE_DELAYS_MS": "1,x",
    }

    with caplog.at_level(logging.WARNING, logger="neurolab.config"):
        config = GameConfig.from_env(env)

    assert config.seed is None
    assert config.maze_tick_ms == 50
    assert config.optical_tick_ms == 50
    assert config.scan_stage_delays_ms == (800, 800, 800, 1000)
    assert len(caplog.records) == 4


def test_game_config_supports_custom_prefix() -> None:
    config = GameConfig.from_env({"GAME_SEED": "9", "NEUROLAB_SEED": "1"}, prefix="GAME_")
    assert config.seed == 9


def test_telemetry_config_enables_with_endpoint() -> None:
    config = TelemetryConfig.from_env({"OTEL_EXPORTER_OTLP_ENDPOINT": "http://collector:4318"})

    assert config.enabled
    assert config.service_name == "neurolab-api"
    assert config.exporter_endpoint == "http://collector:4318"
    assert config.sampling_ratio == 0.1


def test_telemetry_config_clamps_sampling_and_respects_disable() -> None:
    env = {
        "OTEL_ENABLED": "false",
        "OTEL_SAMPLING_RATIO": "3",
        "OTEL_SERVICE_NAME": "lab-staging",
        "OTEL_CAPTURE_METRICS": "no",
    }

    config = TelemetryConfig.from_env(env)

    assert not config.enabled
    assert config.sampling_ratio == 1.0
    assert config.service_name == "lab-staging"
    assert config.capture_metrics is False
    assert config.capture_traces is True
