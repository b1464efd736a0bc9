from __future__ import annotations

import json

import pytest

from neurolab import quickstart


def test_run_quickstart_returns_payload() -> None:
    payload = quickstart.run_quickstart("starter", seed=1)
    assert payload["result"]["success"] is True
    assert payload["result"]["snr"] == pytest.approx(40.0 * 1.25 ** 0.5)
    assert payload["preview"]["snr"] == pytest.approx(payload["result"]["snr"])
    summary = quickstart.summarise_quickstart(payload)
    assert "Console preview" in summary
    assert "Scan log" in summary
    assert "Result: SUCCESS" in summary


def test_overrides_can_break_the_scan() -> None:
    payload = quickstart.run_quickstart("starter", resolution=0.5)
    assert payload["result"]["reason"] == "gradient overload"
    assert payload["preview"]["gradient_overload"] is True
    assert "gradient overload" in quickstart.summarise_quickstart(payload)


@pytest.mark.parametrize(
    "kwargs",
    [
        {"sequence": "FLAIR"},
        {"resolution": 5.0},
        {"duration": 0.0},
        {"model_count_n": 1},
        {"model_count_n": 100},
    ],
)
def test_run_quickstart_rejects_invalid_overrides(kwargs) -> None:
    with pytest.raises(quickstart.QuickstartError):
        quickstart.run_quickstart("starter", **kwargs)


def test_unknown_preset() -> None:
    with pytest.raises(quickstart.QuickstartError):
        quickstart.run_quickstart("clinical_9T")


def test_available_presets_lists_expected_options() -> None:
    presets = quickstart.available_presets()
    assert set(presets) == {"starter", "ultra_high_field", "mesoscopic"}
    assert presets["ultra_high_field"].lab.ptx_enabled


def test_every_preset_runs() -> None:
    for name in quickstart.available_presets():
        payload = quickstart.run_quickstart(name, seed=3)
        assert payload["result"]["log"]


def test_main_prints_json(capsys) -> None:
    assert quickstart.main(["--preset", "ultra_high_field", "--json", "--seed", "2"]) == 0
    data = json.loads(capsys.readouterr().out)
    assert data["lab"]["magnet"] == "7T"
    assert data["result"]["success"] is True


def test_main_lists_presets(capsys) -> None:
    assert quickstart.main(["--list-presets"]) == 0
    out = capsys.readouterr().out
    assert "mesoscopic" in out


def test_main_reports_invalid_input() -> None:
    with pytest.raises(SystemExit) as excinfo:
        quickstart.main(["--resolution", "9"])
    assert excinfo.value.code == 2
