"""End-to-end tests of the HTTP routes and WebSocket endpoint."""

import json

import pytest
from fastapi.testclient import TestClient

from scoreboard.core.config import Settings
from scoreboard.main import DEFAULT_HTML, create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        _env_file=None,
        state_file=str(tmp_path / "game_state.json"),
        static_dir=str(tmp_path),
    )


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as test_client:
        yield test_client


def handshake(ws):
    """Read the events every new connection receives."""
    return ws.receive_json(), ws.receive_json(), ws.receive_json()


def test_status_endpoint(client):
    """Test the status endpoint reports state and client count."""
    response = client.get("/api/status")
    assert response.status_code == 200

    body = response.json()
    assert body["status"] == "running"
    assert body["connectedClients"] == 0
    assert body["gameState"]["team1Name"] == "Red Team"
    assert body["serverStartTime"]


def test_unknown_path_is_not_found(client):
    """Test unknown path is not found."""
    assert client.get("/nothing-here").status_code == 404


def test_index_falls_back_to_default_page(client):
    """Test index falls back to default page."""
    response = client.get("/")
    assert response.status_code == 200
    assert response.text == DEFAULT_HTML


def test_index_serves_static_file(settings, tmp_path):
    """Test index serves static file."""
    (tmp_path / "index.html").write_text("<h1>Scoreboard</h1>", encoding="utf-8")
    with TestClient(create_app(settings)) as test_client:
        assert test_client.get("/index.html").text == "<h1>Scoreboard</h1>"


def test_cors_is_permissive(client):
    """Test CORS headers allow any origin."""
    response = client.get("/api/status", headers={"Origin": "http://example.com"})
    assert response.headers["access-control-allow-origin"] == "*"


def test_connect_receives_welcome_init_and_count(client):
    """Test connect receives welcome init and count."""
    with client.websocket_connect("/") as ws:
        welcome, init, count = handshake(ws)

        assert welcome["type"] == "welcome"
        assert welcome["clientCount"] == 1
        assert init["type"] == "init"
        assert init["data"]["team1Score"] == 0
        assert count == {"type": "clientCount", "count": 1, "timestamp": count["timestamp"]}

        assert client.get("/api/status").json()["connectedClients"] == 1


def test_mutation_fans_out_and_effects_skip_sender(client):
    """Test mutation fans out and effects skip sender."""
    with client.websocket_connect("/") as first:
        handshake(first)
        with client.websocket_connect("/ws") as second:
            handshake(second)
            assert first.receive_json()["count"] == 2

            first.send_text(json.dumps(
                {"type": "updateScore", "team": 1, "points": 5, "triggerEffects": True}
            ))

            update = first.receive_json()
            assert update["type"] == "stateUpdate"
            assert update["data"]["team1Score"] == 5

            assert second.receive_json()["type"] == "stateUpdate"
            effects = second.receive_json()
            assert effects["type"] == "triggerEffects"
            assert effects["team"] == 1

            first.send_text(json.dumps({"type": "ping"}))
            assert first.receive_json()["type"] == "pong"


def test_disconnect_broadcasts_count(client):
    """Test disconnect broadcasts count."""
    with client.websocket_connect("/") as first:
        handshake(first)
        with client.websocket_connect("/") as second:
            handshake(second)
            first.receive_json()

        count = first.receive_json()
        assert count["type"] == "clientCount"
        assert count["count"] == 1


def test_reconnect_receives_current_state(client):
    """Test reconnect receives current state."""
    with client.websocket_connect("/") as ws:
        handshake(ws)
        ws.send_text(json.dumps({"type": "updateScore", "team": 2, "points": 3}))
        ws.receive_json()

    with client.websocket_connect("/") as ws:
        _, init, _ = handshake(ws)
        assert init["data"]["team2Score"] == 3


def test_bad_messages_get_errors(client):
    """Test bad messages get errors."""
    with client.websocket_connect("/") as ws:
        handshake(ws)

        ws.send_text("not json")
        assert ws.receive_json()["message"] == "Invalid message format"

        ws.send_text(json.dumps({"type": "dance"}))
        assert ws.receive_json()["message"] == "Unknown message type: dance"

        ws.send_text(json.dumps({"type": "getState"}))
        assert ws.receive_json()["type"] == "state"


def test_state_loaded_at_boot_and_saved_at_shutdown(settings, tmp_path):
    """Test state loaded at boot and saved at shutdown."""
    path = tmp_path / "game_state.json"
    path.write_text(json.dumps({"team1Score": 4, "team1Name": "Lions"}), encoding="utf-8")

    with TestClient(create_app(settings)) as test_client:
        body = test_client.get("/api/status").json()
        assert body["gameState"]["team1Score"] == 4
        assert body["gameState"]["team1Name"] == "Lions"
        assert body["gameState"]["team2Name"] == "Blue Team"

        with test_client.websocket_connect("/") as ws:
            handshake(ws)
            ws.send_text(json.dumps({"type": "updateScore", "team": 1, "points": 1}))
            ws.receive_json()

    saved = json.loads(path.read_text(encoding="utf-8"))
    assert saved["team1Score"] == 5


def test_corrupt_state_file_falls_back_to_defaults(settings, tmp_path):
    """Test corrupt state file falls back to defaults."""
    (tmp_path / "game_state.json").write_text("{corrupt", encoding="utf-8")

    with TestClient(create_app(settings)) as test_client:
        assert test_client.get("/api/status").json()["gameState"]["team1Score"] == 0


def test_non_finite_state_file_boots_with_defaults(settings, tmp_path):
    """Test a state file holding NaN does not stop the server from booting."""
    (tmp_path / "game_state.json").write_text('{"team1Score": NaN, "team2Score": 1e999}', encoding="utf-8")

    with TestClient(create_app(settings)) as test_client:
        state = test_client.get("/api/status").json()["gameState"]
        assert (state["team1Score"], state["team2Score"]) == (0, 0)
