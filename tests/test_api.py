"""Test the FastAPI endpoints."""
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from api.app import app, keyring
from securemsg.crypto import UNDECRYPTABLE_PLACEHOLDER, EncryptError, is_encrypted_message


@pytest_asyncio.fixture
async def ac():
    """Client against a fresh, manually stepped simulation."""
    keyring.clear()
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        response = await client.post("/sim/start", json={"seed": 123, "run_loop": False})
        assert response.status_code == 200
        yield client
    keyring.clear()


@pytest.mark.asyncio
async def test_start_simulation(ac):
    response = await ac.post("/sim/start", json={"seed": 1, "run_loop": False})
    assert response.status_code == 200
    assert response.json() == {"running": False, "tick_ms": 5000}


@pytest.mark.asyncio
async def test_get_state(ac):
    response = await ac.get("/sim/state")
    assert response.status_code == 200
    data = response.json()
    assert data["networkStatus"] == "MESH_ONLY"
    assert len(data["units"]) == 5
    assert len(data["mesh"]) == 5
    unit = data["units"][0]
    assert set(unit) == {"id", "callsign", "type", "position", "status",
                         "lastUpdate", "connectionStatus"}
    assert unit["connectionStatus"] == "ONLINE"
    assert unit["type"] == "COMMAND"
    node = data["mesh"][3]
    assert node["unitId"] == "unit-4"
    assert node["isActive"] is False
    assert node["connections"] == []
    assert node["signalStrength"] == 0


@pytest.mark.asyncio
async def test_tick_advances_state(ac):
    before = (await ac.get("/sim/state")).json()
    response = await ac.post("/sim/tick")
    assert response.status_code == 200
    assert response.json()["events"][0]["kind"] == "Tick"
    after = (await ac.get("/sim/state")).json()
    assert after["tick"] == before["tick"] + 1
    assert after["units"][0]["position"] != before["units"][0]["position"]


@pytest.mark.asyncio
async def test_deploy_unit(ac):
    unit = {
        "id": "unit-6", "callsign": "Foxtrot-6", "type": "INFANTRY",
        "position": {"lat": 28.219, "lng": 94.728},
        "status": {"personnel": 12, "condition": 90, "ammo": 80, "fuel": 70},
        "connectionStatus": "ONLINE",
    }
    response = await ac.post("/units", json=unit)
    assert response.status_code == 200
    assert response.json()["callsign"] == "Foxtrot-6"

    state = (await ac.get("/sim/state")).json()
    assert state["mesh"][-1]["unitId"] == "unit-6"
    assert "unit-1" in state["mesh"][-1]["connections"]

    response = await ac.post("/units", json=unit)
    assert response.status_code == 409


@pytest.mark.asyncio
async def test_send_and_list_messages(ac):
    response = await ac.post("/messages", json={"content": "Holding at bridge", "priority": "HIGH"})
    assert response.status_code == 200
    msg = response.json()
    assert msg["senderId"] == "unit-1"
    assert msg["priority"] == "HIGH"
    assert msg["acknowledged"] is False
    assert msg["deliveredTo"] == []

    messages = (await ac.get("/messages")).json()
    assert messages[0]["id"] == msg["id"]
    assert len(messages) == 4


@pytest.mark.asyncio
async def test_encrypted_message_flow(ac):
    response = await ac.post("/messages", json={"content": "Enemy at ridge", "encrypt": True})
    assert response.status_code == 400

    await ac.put("/crypto/key", json={"password": "sharedkey123"})
    assert (await ac.get("/crypto/key")).json() == {"hasKey": True}
    response = await ac.post("/messages", json={"content": "Enemy at ridge", "encrypt": True})
    assert response.status_code == 200
    assert is_encrypted_message(response.json()["content"])

    revealed = (await ac.get("/messages", params={"reveal": True})).json()
    assert revealed[0]["content"] == "Enemy at ridge"
    assert revealed[0]["encrypted"] is True
    assert revealed[1]["content"] == "Enemy movement detected at north ridge."

    await ac.put("/crypto/key", json={"password": "otherkey"})
    revealed = (await ac.get("/messages", params={"reveal": True})).json()
    assert revealed[0]["content"] == UNDECRYPTABLE_PLACEHOLDER


@pytest.mark.asyncio
async def test_generate_key(ac):
    response = await ac.post("/crypto/key/generate")
    assert len(response.json()["key"]) == 32
    response = await ac.delete("/crypto/key")
    assert response.json() == {"hasKey": False}


@pytest.mark.asyncio
async def test_issue_command(ac):
    response = await ac.post("/commands", json={
        "type": "MOVE", "targetUnitIds": ["unit-2"], "description": "Advance",
        "coordinates": {"lat": 28.22, "lng": 94.74},
    })
    assert response.status_code == 200
    cmd = response.json()
    assert cmd["type"] == "MOVE"
    assert cmd["targetUnitIds"] == ["unit-2"]
    assert cmd["coordinates"] == {"lat": 28.22, "lng": 94.74}

    commands = (await ac.get("/commands")).json()
    assert commands[0]["id"] == cmd["id"]

    response = await ac.post("/commands", json={
        "type": "HOLD", "targetUnitIds": [], "description": "Nobody"})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_acknowledge(ac):
    response = await ac.post("/messages/msg-2/ack")
    assert response.status_code == 200
    assert response.json()["acknowledged"] is True
    response = await ac.post("/commands/cmd-2/ack")
    assert response.json()["acknowledged"] is True
    response = await ac.post("/commands/cmd-404/ack")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_toggle_network_full_cycle(ac):
    seen = [(await ac.post("/network/toggle")).json()["networkStatus"] for _ in range(4)]
    assert seen == ["DEGRADED", "OFFLINE", "ONLINE", "MESH_ONLY"]


@pytest.mark.asyncio
async def test_get_events(ac):
    await ac.post("/sim/tick")
    await ac.post("/messages", json={"content": "ping"})
    response = await ac.get("/sim/events?since=0")
    assert response.status_code == 200
    data = response.json()
    assert data["next_offset"] == 2
    assert [e["kind"] for e in data["events"]] == ["Tick", "MessageSent"]


@pytest.mark.asyncio
async def test_encrypt_failure_aborts_send(ac, monkeypatch):
    """A message that cannot be encrypted is not appended."""
    def fail(message, password):
        raise EncryptError("failed to encrypt message")

    monkeypatch.setattr("api.app.encrypt_message", fail)
    await ac.put("/crypto/key", json={"password": "sharedkey123"})
    before = (await ac.get("/messages")).json()

    response = await ac.post("/messages", json={"content": "Enemy at ridge", "encrypt": True})
    assert response.status_code == 500

    after = (await ac.get("/messages")).json()
    assert len(after) == len(before)
    events = (await ac.get("/sim/events?since=0")).json()["events"]
    assert "MessageSent" not in [e["kind"] for e in events]


@pytest.mark.asyncio
async def test_deploy_unit_without_id(ac):
    """The server assigns an id when the client leaves it out."""
    unit = {
        "callsign": "Golf-7", "type": "AIR",
        "position": {"lat": 28.25, "lng": 94.70},
        "status": {"personnel": 4, "condition": 100, "ammo": 50, "fuel": 90},
    }
    first = (await ac.post("/units", json=unit)).json()
    second = (await ac.post("/units", json=unit)).json()
    assert first["id"].startswith("unit-")
    assert first["id"] != second["id"]
    assert first["connectionStatus"] == "ONLINE"
    state = (await ac.get("/sim/state")).json()
    assert [u["id"] for u in state["units"]][-2:] == [first["id"], second["id"]]
