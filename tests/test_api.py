"""Test the FastAPI endpoints."""
import pytest
from httpx import ASGITransport, AsyncClient
from api.app import app


def client() -> AsyncClient:
    return AsyncClient(transport=ASGITransport(app=app), base_url="http://test")


def unit_payload(uid: str, morale: float = 75):
    return {
        "id": uid, "name": uid, "max_hp": 100, "morale": morale,
        "stats": {"firepower": 14, "accuracy": 62, "defense": 12, "maneuver": 55},
    }


@pytest.mark.asyncio
async def test_start_battle():
    """Test starting a new battle."""
    async with client() as ac:
        response = await ac.post("/battle/start", json={"seed": 123, "id": "local"})
    assert response.status_code == 200
    assert response.json() == {"battle_id": "local"}


@pytest.mark.asyncio
async def test_get_state():
    """Test getting battle state."""
    async with client() as ac:
        await ac.post("/battle/start", json={"seed": 42, "id": "local"})
        response = await ac.get("/battle/local/state")

    assert response.status_code == 200
    data = response.json()
    assert data["phase"] == "contact"
    assert data["phase_label"] == "Contact"
    assert data["tick_count"] == 0
    assert len(data["squads"]) == 2
    assert [len(s["units"]) for s in data["squads"]] == [5, 5]
    assert "contact" in data["log"][0]["message"]


@pytest.mark.asyncio
async def test_start_with_custom_squads_and_tick():
    """Custom squads are accepted in any order and ticked on demand."""
    squads = [
        {"id": "b", "name": "Raiders", "side": "B",
         "units": [unit_payload("b-1", morale=10), unit_payload("b-2", morale=10)]},
        {"id": "a", "name": "Wanderers", "side": "A",
         "units": [unit_payload("a-1"), unit_payload("a-2")]},
    ]
    async with client() as ac:
        start = await ac.post("/battle/start", json={"seed": 5, "id": "custom", "squads": squads})
        assert start.status_code == 200
        response = await ac.post("/battle/custom/tick", params={"count": 1})

    data = response.json()
    assert response.status_code == 200
    assert data["tick_count"] == 1
    assert [s["side"] for s in data["squads"]] == ["A", "B"]
    assert data["phase"] == "rout"
    assert data["phase_meta"]["routing_side"] == "B"


@pytest.mark.asyncio
async def test_start_rejects_duplicate_sides():
    squads = [
        {"id": "a1", "name": "x", "side": "A", "units": [unit_payload("x")]},
        {"id": "a2", "name": "y", "side": "A", "units": [unit_payload("y")]},
    ]
    async with client() as ac:
        response = await ac.post("/battle/start", json={"squads": squads})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_get_events_and_summary():
    """Test retrieving log events after ticking to the end."""
    async with client() as ac:
        await ac.post("/battle/start", json={"seed": 42, "id": "local"})
        await ac.post("/battle/local/tick", params={"count": 500})
        response = await ac.get("/battle/local/events", params={"since": 0})
        summary = await ac.get("/battle/local/summary")

    assert response.status_code == 200
    data = response.json()
    assert data["next_offset"] == len(data["events"])
    assert data["events"][0]["tick"] == 0
    assert data["events"][-1]["phase"] == "ended"

    body = summary.json()
    assert body["phase"] == "ended"
    assert [s["side"] for s in body["squads"]] == ["A", "B"]
    assert body["squads"][0]["total_count"] == 5


@pytest.mark.asyncio
async def test_time_control():
    async with client() as ac:
        await ac.post("/battle/start", json={"seed": 1, "id": "paced"})
        set_resp = await ac.post("/battle/paced/time-control", json={"speed": 8})
        get_resp = await ac.get("/battle/paced/time-control")
        pause = await ac.post("/battle/paced/pause")

    assert set_resp.json() == {"speed": 8.0}
    assert get_resp.json() == {"speed": 8.0}
    assert pause.json() == {"paused": True}


@pytest.mark.asyncio
async def test_unknown_battle_is_404():
    async with client() as ac:
        response = await ac.get("/battle/missing/state")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_start_speed_defaults_to_settings(monkeypatch):
    monkeypatch.setenv("SKIRMISH_SPEED", "6")
    async with client() as ac:
        await ac.post("/battle/start", json={"seed": 1, "id": "env-paced"})
        from_env = await ac.get("/battle/env-paced/time-control")
        await ac.post("/battle/start", json={"seed": 1, "id": "req-paced", "speed": 2})
        from_request = await ac.get("/battle/req-paced/time-control")

    assert from_env.json() == {"speed": 6.0}
    assert from_request.json() == {"speed": 2.0}
