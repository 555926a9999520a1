"""End-to-end tests over the FastAPI app: REST writes, WebSocket fan-out, error mapping."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from unittest.mock import patch
from fastapi.testclient import TestClient

from app.config import settings
from app.main import create_app
from app.services.memory_storage import MemStorage

STUDENT = {
    "email": "Somchai.J@student.chula.ac.th",
    "externalId": "oauth|1001",
    "name": "Somchai Jaidee",
    "studentId": "6530000021",
}

SEAT_POST = {"userId": 1, "location": {"zone": "A", "seatId": "A-12"}, "duration": 45}


@pytest.fixture
def client():
    # Entering the context keeps one event loop for HTTP calls and sockets
    with TestClient(create_app(storage=MemStorage(), seed_demo=False)) as client:
        yield client


class TestHealth:
    def test_health(self, client):
        body = client.get("/api/health").json()
        assert body["status"] == "ok"
        assert body["storageStatus"] == "ok"
        assert body["connections"] == 0


class TestAuth:
    def test_first_login_creates_user(self, client):
        response = client.post("/api/auth/login", json=STUDENT)
        assert response.status_code == 200
        user = response.json()["user"]
        assert user["email"] == "somchai.j@student.chula.ac.th"
        assert user["role"] == "student"
        assert "externalId" not in user

        again = client.post("/api/auth/login", json=STUDENT).json()["user"]
        assert again["id"] == user["id"]

    def test_non_institutional_email_rejected(self, client):
        response = client.post("/api/auth/login", json={**STUDENT, "email": "somchai@gmail.com"})
        assert response.status_code == 400
        assert "student.chula.ac.th" in response.json()["error"]

    def test_me_requires_identity(self, client):
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json() == {"error": "Unauthorized"}

    def test_me_and_preferences(self, client):
        client.post("/api/auth/login", json=STUDENT)
        headers = {"X-Student-Id": "6530000021"}
        assert client.get("/api/auth/me", headers=headers).json()["user"]["name"] == "Somchai Jaidee"

        response = client.put("/api/auth/preferences", headers=headers,
                              json={"notificationThreshold": 90, "favoriteAreas": ["Zone C"]})
        prefs = response.json()["user"]["preferences"]
        assert prefs == {"notifications": True, "notificationThreshold": 90, "favoriteAreas": ["Zone C"]}

    def test_threshold_out_of_range(self, client):
        client.post("/api/auth/login", json=STUDENT)
        response = client.put("/api/auth/preferences", headers={"X-Student-Id": "6530000021"},
                              json={"notificationThreshold": 150})
        assert response.status_code == 400


class TestOccupancyApi:
    def test_current_occupancy(self, client):
        body = client.get("/api/occupancy/current").json()
        assert (body["current"], body["total"], body["percentage"]) == (0, 400, 0)
        assert [z["percentage"] for z in body["zones"]] == [32, 94, 68, 55]

    def test_scan_then_history(self, client):
        response = client.post("/api/occupancy/scan", json={"studentId": "6530000021", "eventType": "entry"})
        assert response.status_code == 200
        assert response.json()["eventType"] == "entry"

        history = client.get("/api/occupancy/history").json()
        assert history[-1]["currentOccupancy"] == 1
        assert history[-1]["zoneOccupancy"]["2"] == 47

    def test_bad_scan_is_400_with_error_body(self, client):
        response = client.post("/api/occupancy/scan", json={"studentId": "6530000021", "eventType": "enter"})
        assert response.status_code == 400
        assert "eventType" in response.json()["error"]

    def test_bad_history_range(self, client):
        response = client.get("/api/occupancy/history", params={"start": "yesterday-ish"})
        assert response.status_code == 400

    def test_snapshot_unknown_zone(self, client):
        response = client.post("/api/occupancy/update",
                               json={"currentOccupancy": 10, "capacity": 400, "zoneOccupancy": {"9": 1}})
        assert response.status_code == 404
        assert response.json() == {"error": "Zone 9 not found"}

    def test_snapshot_updates_zone(self, client):
        response = client.post("/api/occupancy/update",
                               json={"currentOccupancy": 150, "capacity": 400, "zoneOccupancy": {"2": 45}})
        assert response.status_code == 200
        assert client.get("/api/zones/2").json()["currentOccupancy"] == 45


class TestZonesApi:
    def test_list_and_get(self, client):
        zones = client.get("/api/zones").json()
        assert [z["name"] for z in zones][0] == "Zone A - Reading Area"
        assert client.get("/api/zones/4").json()["capacity"] == 40

    def test_unknown_zone(self, client):
        response = client.get("/api/zones/99")
        assert response.status_code == 404
        assert response.json()["error"] == "Zone 99 not found"


class TestSeatsApi:
    def test_post_list_verify_remove(self, client):
        created = client.post("/api/seats", json=SEAT_POST).json()
        assert created["status"] == "active"
        assert created["verifications"] == {"positive": 0, "negative": 0}
        assert [p["id"] for p in client.get("/api/seats").json()] == [created["id"]]
        assert client.get("/api/seats/zone/A").json()[0]["id"] == created["id"]
        assert client.get("/api/seats/zone/B").json() == []

        voted = client.post(f"/api/seats/{created['id']}/verify", json={"isPositive": True}).json()
        assert voted["verifications"]["positive"] == 1

        client.put(f"/api/seats/{created['id']}", json={"status": "removed"})
        assert client.get("/api/seats").json() == []

    def test_zero_duration_rejected(self, client):
        response = client.post("/api/seats", json={**SEAT_POST, "duration": 0})
        assert response.status_code == 400
        assert "duration" in response.json()["error"]

    def test_unknown_post(self, client):
        response = client.put("/api/seats/99", json={"status": "removed"})
        assert response.status_code == 404
        assert response.json() == {"error": "Seat post 99 not found"}


class TestAnnouncementsApi:
    def test_publish_and_deactivate(self, client):
        created = client.post("/api/announcements", json={"message": "Closing at 20:00", "createdBy": 1}).json()
        assert client.get("/api/announcements").json()[0]["message"] == "Closing at 20:00"

        for _ in range(2):
            response = client.put(f"/api/announcements/{created['id']}/deactivate")
            assert response.status_code == 200
            assert response.json()["isActive"] is False
        assert client.get("/api/announcements").json() == []

    def test_past_expiry_not_listed(self, client):
        client.post("/api/announcements",
                    json={"message": "Old news", "createdBy": 1, "expiry": "2020-01-01T00:00:00Z"})
        assert client.get("/api/announcements").json() == []


class TestErrors:
    def test_unknown_route(self, client):
        response = client.get("/api/nowhere")
        assert response.status_code == 404
        assert "error" in response.json()

    def test_api_key_guards_admin_writes(self):
        with patch.object(settings, "API_KEY", "s3cret"):
            with TestClient(create_app(storage=MemStorage(), seed_demo=False)) as client:
                body = {"message": "Maintenance", "createdBy": 1}
                assert client.post("/api/announcements", json=body).status_code == 401
                ok = client.post("/api/announcements", json=body, headers={"X-API-Key": "s3cret"})
                assert ok.status_code == 200
                # Student-facing writes stay open
                assert client.post("/api/seats", json=SEAT_POST).status_code == 200


class TestLiveUpdates:
    def test_initial_data_first(self, client):
        with client.websocket_connect("/ws") as ws:
            frame = ws.receive_json()
            assert frame["type"] == "initialData"
            assert set(frame["data"]) == {"occupancy", "announcements", "seatPosts"}
            assert client.get("/api/health").json()["connections"] == 1

    def test_scan_reaches_every_dashboard(self, client):
        with client.websocket_connect("/ws") as first, client.websocket_connect("/ws") as second:
            first.receive_json()
            second.receive_json()

            client.post("/api/occupancy/scan", json={"studentId": "6530000021", "eventType": "entry"})

            a, b = first.receive_json(), second.receive_json()
            assert a == b
            assert a["type"] == "occupancyUpdate"
            assert (a["data"]["current"], a["data"]["total"]) == (1, 400)

    def test_seat_post_lifecycle_frames(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            created = client.post("/api/seats", json=SEAT_POST).json()
            client.post(f"/api/seats/{created['id']}/verify", json={"isPositive": False})

            new = ws.receive_json()
            update = ws.receive_json()
            assert (new["type"], new["data"]["id"]) == ("newSeatPost", created["id"])
            assert update["type"] == "seatPostUpdate"
            assert update["data"]["verifications"]["negative"] == 1

    def test_rejected_write_broadcasts_nothing(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            client.post("/api/seats", json={**SEAT_POST, "duration": 0})
            client.post("/api/announcements", json={"message": "Next frame", "createdBy": 1})
            assert ws.receive_json()["type"] == "newAnnouncement"

    def test_get_occupancy_command(self, client):
        with client.websocket_connect("/ws") as ws:
            ws.receive_json()
            ws.send_text("{ not json")
            ws.send_json({"type": "getOccupancy"})
            reply = ws.receive_json()
            assert reply["type"] == "occupancyUpdate"
            assert len(reply["data"]["zones"]) == 4

    def test_update_capacity_command_is_broadcast(self, client):
        with client.websocket_connect("/ws") as admin, client.websocket_connect("/ws") as viewer:
            admin.receive_json()
            viewer.receive_json()
            admin.send_json({"type": "updateCapacity", "data": {"totalCapacity": 500, "zoneCapacities": {"1": 200}}})

            frame = viewer.receive_json()
            assert frame["type"] == "capacityUpdate"
            assert frame["data"]["totalCapacity"] == 500
            assert frame["data"]["zones"][0]["percentage"] == 16
            assert admin.receive_json() == frame
