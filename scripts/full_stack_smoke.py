"""End-to-end smoke test that plays a session through the public API routes."""

from __future__ import annotations

from pathlib import Path
import sys

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from neurolab.main import app


def _build_lab(client: TestClient, base: str) -> None:
    for category, item in (("magnet", "3T"), ("cooling", "Standard"), ("coil", "Birdcage")):
        response = client.post(f"{base}/lab/purchase", json={"category": category, "item": item})
        response.raise_for_status()
        assert response.json()["accepted"], f"Purchase of {item} was refused"
    client.patch(f"{base}/lab/scan", json={"resolution": 3.0}).raise_for_status()
    client.patch(f"{base}/lab/shimming", json={"x": 0, "y": 0, "z": 0}).raise_for_status()
    response = client.patch(
        f"{base}/lab/safety",
        json={"model_count_n": 64, "toggle": ["physiological", "vestibular", "metallic_implants"]},
    )
    response.raise_for_status()
    assert response.json()["can_run_scan"], "Console should be ready to scan"


def main() -> None:
    with TestClient(app) as client:
        health = client.get("/health")
        health.raise_for_status()
        assert health.json()["status"] == "ok"

        created = client.post("/sessions", json={"seed": 7})
        created.raise_for_status()
        base = f"/sessions/{created.json()['session_id']}"

        _build_lab(client, base)
        preview = client.get(f"{base}/lab/preview")
        preview.raise_for_status()
        assert preview.json()["safety_curve"], "Preview is missing the safety curve"

        experiment = client.post(f"{base}/lab/experiment")
        experiment.raise_for_status()
        data = experiment.json()
        assert data["log"], "Scan produced no console log"
        assert data["state"]["stage"] == "review"

        refs = client.get("/refs")
        refs.raise_for_status()
        assert refs.json(), "Scientific references missing"

        level = client.post(f"{base}/optical/level")
        level.raise_for_status()
        frame = client.post(f"{base}/optical/tick", json={"firing": True, "include_grid": True})
        frame.raise_for_status()
        assert frame.json()["path"], "Laser trace is empty"

        debate = client.post(f"{base}/debate/play", json={"card_id": "clearance"})
        debate.raise_for_status()
        assert debate.json()["debate"]["history"], "Debate history missing"

        client.delete(base).raise_for_status()


if __name__ == "__main__":
    main()
