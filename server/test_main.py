"""
Test suite for the FastAPI app: health endpoints and the /ws endpoint.

Run with: pytest test_main.py -v
"""

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client


class TestHealthEndpoints:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_ready(self, client):
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["checks"]["rooms"]["status"] == "ok"

    def test_metrics(self, client):
        data = client.get("/metrics").json()
        assert "active_rooms" in data
        assert set(data["rooms_by_status"]) == {"waiting", "playing", "finished"}


class TestWebSocket:

    def test_create_room_round_trip(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "create_room", "player_name": "Alice"})
            created = ws.receive_json()
            assert created["type"] == "room_created"
            assert len(created["room_code"]) == 4

            update = ws.receive_json()
            assert update["type"] == "lobby_update"
            assert update["lobby"]["players"][0]["name"] == "Alice"

            ws.send_json({"type": "leave_room"})

    def test_unknown_message_type(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.send_json({"type": "dance"})
            reply = ws.receive_json()
            assert reply["type"] == "error"
            assert "dance" in reply["message"]
