"""Integration tests for the FastAPI routes using httpx."""

from __future__ import annotations

import pytest
from httpx import AsyncClient


async def _new_session(client: AsyncClient, seed: int = 3) -> str:
    response = await client.post("/sessions", json={"seed": seed})
    assert response.status_code == 201
    return response.json()["session_id"]


async def _ready_console(client: AsyncClient, base: str) -> None:
    for category, item in (("magnet", "3T"), ("cooling", "Standard"), ("coil", "Birdcage")):
        response = await client.post(f"{base}/lab/purchase", json={"category": category, "item": item})
        assert response.json()["accepted"] is True
    await client.patch(f"{base}/lab/scan", json={"resolution": 3.0, "duration": 8.0})
    await client.patch(f"{base}/lab/shimming", json={"x": 0, "y": 0, "z": 0})
    response = await client.patch(
        f"{base}/lab/safety",
        json={"model_count_n": 64, "toggle": ["physiological", "vestibular", "metallic_implants"]},
    )
    assert response.status_code == 200


@pytest.mark.anyio("asyncio")
async def test_health_endpoints(test_client: AsyncClient) -> None:
    for path in ("/", "/health"):
        response = await test_client.get(path)
        assert response.status_code == 200
        assert response.json()["status"] == "ok"


@pytest.mark.anyio("asyncio")
async def test_unknown_session_is_404(test_client: AsyncClient) -> None:
    response = await test_client.get("/sessions/missing/lab")
    assert response.status_code == 404
    detail = response.json()["detail"]
    assert detail["code"] == "session_not_found"
    assert detail["context"] == {"session_id": "missing"}


@pytest.mark.anyio("asyncio")
async def test_session_lifecycle(test_client: AsyncClient) -> None:
    session_id = await _new_session(test_client)
    response = await test_client.get(f"/sessions/{session_id}/lab")
    assert response.json()["budget"] == 2_000_000

    assert (await test_client.delete(f"/sessions/{session_id}")).status_code == 204
    assert (await test_client.delete(f"/sessions/{session_id}")).status_code == 404


@pytest.mark.anyio("asyncio")
async def test_scan_flow(test_client: AsyncClient) -> None:
    base = f"/sessions/{await _new_session(test_client)}"

    blocked = await test_client.post(f"{base}/lab/experiment")
    assert blocked.status_code == 409
    assert blocked.json()["detail"]["code"] == "precondition_failed"

    await _ready_console(test_client, base)
    preview = await test_client.get(f"{base}/lab/preview")
    assert preview.status_code == 200
    assert preview.json()["gradient_overload"] is False
    assert len(preview.json()["safety_curve"]) == 32

    response = await test_client.post(f"{base}/lab/experiment")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["reason"] == "noise"
    assert data["log"][0]["message"] == "Initializing gradients..."
    assert data["state"]["stage"] == "review"
    assert data["state"]["prestige"] == 2

    next_round = await test_client.post(f"{base}/lab/next-round")
    assert next_round.json()["day"] == 2


@pytest.mark.anyio("asyncio")
async def test_lab_validation_errors(test_client: AsyncClient) -> None:
    base = f"/sessions/{await _new_session(test_client)}"

    unknown = await test_client.post(f"{base}/lab/purchase", json={"category": "coil", "item": "Helmholtz"})
    assert unknown.status_code == 422
    assert unknown.json()["detail"]["code"] == "unknown_item"

    bad_item = await test_client.patch(f"{base}/lab/safety", json={"toggle": ["pacemaker"]})
    assert bad_item.status_code == 422
    assert bad_item.json()["detail"]["code"] == "unknown_checklist_item"

    locked = await test_client.post(f"{base}/lab/subject", json={"subject": "Neonate"})
    assert locked.json()["accepted"] is False
    assert locked.json()["available"] == ["Phantom"]

    clamped = await test_client.patch(f"{base}/lab/shimming", json={"x": 500})
    assert clamped.json()["shimming"]["x"] == 100.0


@pytest.mark.anyio("asyncio")
async def test_tutorial_and_stage(test_client: AsyncClient) -> None:
    base = f"/sessions/{await _new_session(test_client)}"
    response = await test_client.post(f"{base}/lab/tutorial", json={"action": "next"})
    assert response.json()["tutorial_step"] == 1
    response = await test_client.post(f"{base}/lab/stage", json={"stage": "procurement"})
    assert response.json()["stage"] == "procurement"
    response = await test_client.post(f"{base}/lab/tutorial", json={"action": "skip"})
    assert response.json()["tutorial_active"] is False
    assert (await test_client.post(f"{base}/lab/tutorial", json={"action": "back"})).status_code == 422


@pytest.mark.anyio("asyncio")
async def test_scientific_refs(test_client: AsyncClient) -> None:
    response = await test_client.get("/refs")
    keys = {item["key"] for item in response.json()}
    assert {"11.7T", "pTx", "VOP"} <= keys

    single = await test_client.get("/refs/pTx")
    assert single.status_code == 200
    assert single.json()["fact"]
    assert (await test_client.get("/refs/unknown")).status_code == 404


@pytest.mark.anyio("asyncio")
async def test_optical_chapter(test_client: AsyncClient) -> None:
    base = f"/sessions/{await _new_session(test_client)}"

    placed = await test_client.post(f"{base}/optical/particles", json={"x": 10, "y": 11})
    assert placed.json() == {"changed": True, "remaining": 2, "particles": [[10, 11]]}

    frame = await test_client.post(f"{base}/optical/tick", json={"firing": True, "power": 50})
    data = frame.json()
    assert data["status"] == "success"
    assert data["knowledge_points"] == 200
    assert data["terrain"] is None

    level = await test_client.post(f"{base}/optical/level")
    assert level.status_code == 200
    grid = await test_client.post(f"{base}/optical/tick", json={"include_grid": True})
    assert len(grid.json()["terrain"]) == 15
    assert grid.json()["status"] == "idle"


@pytest.mark.anyio("asyncio")
async def test_maze_chapter(test_client: AsyncClient) -> None:
    base = f"/sessions/{await _new_session(test_client)}"

    await test_client.post(f"{base}/maze/config", json={"led_spacing": 2.0})
    started = await test_client.post(f"{base}/maze/start")
    assert started.json()["status"] == "active"
    assert (await test_client.post(f"{base}/maze/start")).status_code == 409

    turned = await test_client.post(f"{base}/maze/action", json={"action": "left"})
    assert turned.json()["mouse"]["angle"] == -30.0
    await test_client.post(f"{base}/maze/action", json={"action": "right"})

    done = await test_client.post(f"{base}/maze/tick", json={"ticks": 100})
    data = done.json()
    assert data["status"] == "complete"
    assert data["knowledge_points"] == 150
    assert data["evidence"] == ["Wireless Photometry Specs"]

    reset = await test_client.post(f"{base}/maze/reset")
    assert reset.json()["status"] == "setup"


@pytest.mark.anyio("asyncio")
async def test_neuromodulation_chapter(test_client: AsyncClient) -> None:
    base = f"/sessions/{await _new_session(test_client)}"

    early = await test_client.post(f"{base}/neuromod/treatment", json={"method": "fiber"})
    assert early.status_code == 409

    unknown = await test_client.post(f"{base}/neuromod/diagnose", json={"circuit": "cortex"})
    assert unknown.status_code == 422
    diagnosis = await test_client.post(f"{base}/neuromod/diagnose", json={"circuit": "pd"})
    assert diagnosis.json() == {"correct": True, "knowledge_points": 50}

    treatment = await test_client.post(f"{base}/neuromod/treatment", json={"method": "fiber"})
    assert treatment.json()["treatment"]["wavelength"] == 473.0

    response = await test_client.post(
        f"{base}/neuromod/step",
        json={"power": 50, "frequency": 50, "ticks": 500},
    )
    data = response.json()
    assert data["state"]["status"] == "success"
    assert data["chapter"] == "chapter4"
    assert data["treatment_result"]["success"] is True

    replay = await test_client.post(f"{base}/neuromod/treatment", json={"method": "ucnp"})
    assert replay.status_code == 409
    assert replay.json()["detail"]["context"] == {"status": "success"}


@pytest.mark.anyio("asyncio")
async def test_debate_chapter(test_client: AsyncClient) -> None:
    cards = await test_client.get("/debate/cards")
    assert [card["id"] for card in cards.json()] == ["mkultra", "viral_vector", "clearance"]

    base = f"/sessions/{await _new_session(test_client)}"
    unknown = await test_client.post(f"{base}/debate/play", json={"card_id": "rumour"})
    assert unknown.status_code == 422

    for card_id in ("mkultra", "viral_vector", "clearance"):
        response = await test_client.post(f"{base}/debate/play", json={"card_id": card_id})
        assert response.json()["effective"] is True
    data = response.json()
    assert data["debate"]["outcome"] == "win"
    assert data["chapter"] == "end_good"
    assert data["knowledge_points"] == 500

    over = await test_client.post(f"{base}/debate/play", json={"card_id": "mkultra"})
    assert over.status_code == 409

    appeal = await test_client.post(f"{base}/debate/reset")
    assert appeal.json()["chapter"] == "chapter4"


@pytest.mark.anyio("asyncio")
async def test_neurofiles_snapshot_and_reset(test_client: AsyncClient) -> None:
    base = f"/sessions/{await _new_session(test_client)}"
    await test_client.post(f"{base}/neuromod/diagnose", json={"circuit": "pd"})
    state = await test_client.get(f"{base}/neurofiles")
    assert state.json()["pathway_identified"] is True

    reset = await test_client.post(f"{base}/neurofiles/reset")
    assert reset.json()["knowledge_points"] == 0
    assert reset.json()["chapter"] == "chapter1"
