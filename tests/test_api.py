"""
HTTP and WebSocket surface tests (FastAPI TestClient).
"""
import logging

import pytest
from fastapi import WebSocketDisconnect
from fastapi.testclient import TestClient

from main import app
from models import QueueEntry
from api import websocket as websocket_api
from api.queue import get_queue_manager
from core.connection_manager import connection_manager
from core.exceptions import NotFoundError, StoreError


@pytest.fixture
def client():
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def join(client, name="Ana", code="ABCDE", **kwargs):
    return client.post("/api/queue/add", json={"name": name, "referralCode": code}, **kwargs)


class BrokenManager:
    def admit(self, *args):
        raise StoreError("insert failed")

    def get_status(self):
        raise StoreError("count failed")

    def rotate(self):
        raise StoreError("update failed")


class VanishingManager:
    def rotate(self):
        raise NotFoundError("gone")


class TestAddEndpoint:
    def test_add_returns_id(self, client):
        response = join(client)
        assert response.status_code == 200
        body = response.json()
        assert body["message"]
        assert body["id"]

    def test_add_rejects_short_name(self, client):
        response = join(client, name="A")
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid queue entry"
        assert "name" in body["error"]

    def test_add_rejects_bad_code(self, client):
        response = join(client, code="ab")
        assert response.status_code == 400
        assert "referralCode" in response.json()["error"]

    def test_add_rejects_code_with_trailing_newline(self, client):
        response = join(client, code="ABCDE\n")
        assert response.status_code == 400
        assert "referralCode" in response.json()["error"]
        assert client.get("/api/queue/status").json() == {"totalInQueue": 0}

    def test_add_accepts_referral_link(self, client):
        assert join(client, code="https://temu.to/xyz").status_code == 200

    def test_add_rejects_missing_fields(self, client):
        response = client.post("/api/queue/add", json={"name": "Ana"})
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Invalid request"
        assert "referralCode" in body["error"]

    def test_add_records_forwarded_ip(self, client, db):
        response = join(client, headers={"X-Forwarded-For": "203.0.113.7, 10.0.0.1"})
        entry = db.query(QueueEntry).filter(QueueEntry.id == response.json()["id"]).one()
        assert entry.ip_address == "203.0.113.7"

    def test_add_records_peer_ip_without_proxy(self, client, db):
        response = join(client)
        entry = db.query(QueueEntry).filter(QueueEntry.id == response.json()["id"]).one()
        assert entry.ip_address == "testclient"

    def test_store_failure_is_generic_500(self, client):
        app.dependency_overrides[get_queue_manager] = lambda: BrokenManager()
        response = join(client)
        assert response.status_code == 500
        assert response.json() == {"message": "Server error"}


class TestStatusEndpoint:
    def test_status_counts_waiting_entries(self, client):
        assert client.get("/api/queue/status").json() == {"totalInQueue": 0}
        join(client, name="Ana")
        join(client, name="Bruno")
        assert client.get("/api/queue/status").json() == {"totalInQueue": 2}

    def test_status_store_failure(self, client):
        app.dependency_overrides[get_queue_manager] = lambda: BrokenManager()
        response = client.get("/api/queue/status")
        assert response.status_code == 500
        assert response.json() == {"message": "Server error"}


class TestRotateEndpoint:
    def test_rotate_empty_queue(self, client):
        response = client.post("/api/queue/rotate")
        assert response.status_code == 200
        assert response.json() == {"message": "No more turns", "next": None}

    def test_rotate_to_next_entry(self, client):
        join(client, name="Ana")
        second_id = join(client, name="Bruno").json()["id"]

        response = client.post("/api/queue/rotate")

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Turn rotated"
        assert body["next"]["id"] == second_id
        assert body["next"]["name"] == "Bruno"
        assert body["next"]["isActive"] is True
        assert body["next"]["position"] == 2
        assert client.get("/api/queue/status").json() == {"totalInQueue": 1}

        drained = client.post("/api/queue/rotate").json()
        assert drained == {"message": "No more turns", "next": None}

    def test_vanished_active_entry_is_benign(self, client):
        app.dependency_overrides[get_queue_manager] = lambda: VanishingManager()
        response = client.post("/api/queue/rotate")
        assert response.status_code == 200
        assert response.json()["next"] is None

    def test_rotate_store_failure(self, client):
        app.dependency_overrides[get_queue_manager] = lambda: BrokenManager()
        response = client.post("/api/queue/rotate")
        assert response.status_code == 500
        assert response.json() == {"message": "Server error"}


class TestWebSocket:
    def test_initial_push_on_empty_queue(self, client):
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json() == {"active": None}

    def test_pushes_follow_admit_and_rotate(self, client):
        with client.websocket_connect("/ws") as ws:
            assert ws.receive_json() == {"active": None}

            first_id = join(client, name="Ana").json()["id"]
            assert ws.receive_json()["active"]["id"] == first_id

            second_id = join(client, name="Bruno").json()["id"]
            # active entry unchanged, still pushed after every admit
            assert ws.receive_json()["active"]["id"] == first_id

            client.post("/api/queue/rotate")
            assert ws.receive_json()["active"]["id"] == second_id

            client.post("/api/queue/rotate")
            assert ws.receive_json() == {"active": None}

    def test_initial_push_shows_current_active(self, client):
        entry_id = join(client).json()["id"]
        with client.websocket_connect("/ws") as ws:
            active = ws.receive_json()["active"]
            assert active["id"] == entry_id
            assert active["isActive"] is True

    def test_inbound_messages_are_ignored(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("hello")
            entry_id = join(client).json()["id"]
            assert ws.receive_json()["active"]["id"] == entry_id

    def test_failed_initial_push_closes_connection(self, client, monkeypatch, caplog):
        async def unavailable(ws):
            raise StoreError("database unavailable")

        monkeypatch.setattr(websocket_api, "send_active_entry", unavailable)

        with caplog.at_level(logging.ERROR, logger="api.websocket"):
            with client.websocket_connect("/ws") as ws:
                with pytest.raises(WebSocketDisconnect) as exc:
                    ws.receive_json()

        assert exc.value.code == 1011
        assert connection_manager.count == 0
        assert "Initial active-entry push failed" in caplog.text
        assert "receive failed" not in caplog.text


class TestHealth:
    def test_root_and_health(self, client):
        assert client.get("/").json()["status"] == "ok"
        assert client.get("/health").json() == {"status": "healthy"}
