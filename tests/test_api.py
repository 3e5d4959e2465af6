"""
==============================================================================
API Integration Tests
==============================================================================

Tests for REST API endpoints and the check-in WebSocket.

==============================================================================
"""

import time

import pytest
from fastapi.testclient import TestClient

from checkpoint.api.v1.health import HealthController
from checkpoint.core import exceptions
from checkpoint.services.session_manager import CheckInSessionManager


SESSION_URL = "/api/v1/checkin/evt-1/session"


def wait_for_scans(client: TestClient, count: int, timeout: float = 2.0) -> dict:
    """Poll the scans endpoint until `count` results are recorded."""
    deadline = time.monotonic() + timeout
    while True:
        data = client.get("/api/v1/checkin/evt-1/scans").json()
        if data["total"] >= count:
            return data
        if time.monotonic() > deadline:
            raise AssertionError(f"expected {count} scans, got {data['total']}")
        time.sleep(0.01)


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_health_check(self, client: TestClient):
        """Test health check returns status."""
        response = client.get("/api/v1/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["details"]["active"] == 0
        assert data["components"] == {"api": "healthy", "camera": "healthy", "recognition": "healthy"}

    def test_health_degraded_on_camera_error(self, client: TestClient, camera):
        camera.devices = []
        client.post(SESSION_URL)

        data = client.get("/api/v1/health").json()
        assert data["status"] == "degraded"
        assert data["components"]["camera"] == "degraded"
        assert data["details"]["camera_errors"] == 1
        assert data["details"]["cameras_streaming"] == 0

    def test_readiness_probe(self, client: TestClient):
        """Test readiness probe."""
        response = client.get("/api/v1/health/ready")
        assert response.status_code == 200
        assert response.json()["ready"] is True

    def test_liveness_probe(self, client: TestClient):
        """Test liveness probe."""
        response = client.get("/api/v1/health/live")
        assert response.status_code == 200
        assert response.json()["alive"] is True


class TestHealthReport:
    """Tests for camera and recognition engine availability."""

    @pytest.mark.asyncio
    async def test_engine_ready_after_first_sample(self, manager: CheckInSessionManager):
        scheduler = await manager.start_session("evt-1")
        controller = HealthController(manager)

        try:
            details = controller.check_sessions()
            assert details["cameras_streaming"] == 1
            assert details["engines_ready"] == 0
            assert details["engine_errors"] == 0

            await scheduler.sample_once()

            health = controller.get_health()
            assert health["status"] == "healthy"
            assert health["details"]["engines_ready"] == 1
        finally:
            await manager.shutdown_all()

    @pytest.mark.asyncio
    async def test_engine_startup_failure_degrades(self, manager: CheckInSessionManager, recognizer):
        """Test an engine that failed to initialize is reported."""
        recognizer.init_error = exceptions.recognition_failed("tesseract not installed")
        scheduler = await manager.start_session("evt-1")
        controller = HealthController(manager)

        try:
            assert await scheduler.sample_once() is None

            health = controller.get_health()
            assert health["status"] == "degraded"
            assert health["components"]["recognition"] == "degraded"
            assert health["components"]["camera"] == "healthy"
            assert health["details"]["engine_errors"] == 1
            assert health["details"]["engines_ready"] == 0
        finally:
            await manager.shutdown_all()

    @pytest.mark.asyncio
    async def test_engine_not_ready_degrades(self, manager: CheckInSessionManager, recognizer):
        scheduler = await manager.start_session("evt-1")
        controller = HealthController(manager)

        try:
            await scheduler.sample_once()
            recognizer.ready = False

            health = controller.get_health()
            assert health["components"]["recognition"] == "degraded"
            assert health["details"]["engine_errors"] == 1
        finally:
            await manager.shutdown_all()


class TestSessionEndpoints:
    """Tests for session start, status and teardown."""

    def test_start_session(self, client: TestClient):
        response = client.post(SESSION_URL)
        assert response.status_code == 201
        data = response.json()
        assert data["event_id"] == "evt-1"
        assert data["state"] == "capturing"
        assert data["busy"] is False

    def test_start_twice(self, client: TestClient):
        client.post(SESSION_URL)
        response = client.post(SESSION_URL)
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SESSION_EXISTS"

    def test_start_without_camera(self, client: TestClient, camera):
        """Test a session without cameras is created in ERROR."""
        camera.devices = []
        response = client.post(SESSION_URL)
        assert response.status_code == 201
        data = response.json()
        assert data["state"] == "error"
        assert "No cameras found" in data["error"]

    def test_insecure_origin_refused(self, client: TestClient):
        """Test plain HTTP from a non-local host cannot open the camera."""
        response = client.post(f"http://kiosk.example{SESSION_URL}")
        assert response.status_code == 503
        error = response.json()["error"]
        assert error["code"] == "CAMERA_UNAVAILABLE"
        assert error["details"]["reason"] == "insecure_context"

    def test_forwarded_https_allowed(self, client: TestClient):
        response = client.post(
            f"http://kiosk.example{SESSION_URL}",
            headers={"X-Forwarded-Proto": "https"}
        )
        assert response.status_code == 201

    def test_get_session(self, client: TestClient):
        client.post(SESSION_URL)
        response = client.get(SESSION_URL)
        assert response.status_code == 200
        assert response.json()["state"] == "capturing"

    def test_unknown_session(self, client: TestClient):
        response = client.get("/api/v1/checkin/nope/session")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SESSION_NOT_FOUND"

    def test_stop_session(self, client: TestClient, camera, gateway):
        client.post(SESSION_URL)
        response = client.delete(SESSION_URL)
        assert response.status_code == 200
        assert response.json()["success"] is True

        assert client.get(SESSION_URL).status_code == 404
        assert camera.is_streaming is False
        assert gateway.closed is True

    def test_stop_unknown_session(self, client: TestClient):
        assert client.delete(SESSION_URL).status_code == 404


class TestManualEntryEndpoint:
    """Tests for manual entry and scan history."""

    def test_manual_entry_verified(self, client: TestClient, gateway):
        client.post(SESSION_URL)
        response = client.post(
            "/api/v1/checkin/evt-1/manual",
            json={"candidate_id": "1017 0487 7704 8490"}
        )
        assert response.status_code == 202
        assert response.json()["candidate_id"] == "1017048777048490"

        data = wait_for_scans(client, 1)
        assert data["items"][0]["status"] == "verified"
        assert data["items"][0]["source_channel"] == "manual"
        assert gateway.calls[0][1] == "1017048777048490"

    def test_manual_entry_blank(self, client: TestClient):
        client.post(SESSION_URL)
        response = client.post("/api/v1/checkin/evt-1/manual", json={"candidate_id": "   "})
        assert response.status_code == 422

    def test_manual_entry_busy(self, client: TestClient, gateway):
        gateway.delay = 0.5
        client.post(SESSION_URL)
        first = client.post("/api/v1/checkin/evt-1/manual", json={"candidate_id": "123456789012"})
        second = client.post("/api/v1/checkin/evt-1/manual", json={"candidate_id": "999988887777"})

        assert first.status_code == 202
        assert second.status_code == 409
        assert second.json()["error"]["code"] == "SCANNER_BUSY"

    def test_gateway_failure_recorded(self, client: TestClient, gateway):
        gateway.error = RuntimeError("gateway down")
        client.post(SESSION_URL)
        client.post("/api/v1/checkin/evt-1/manual", json={"candidate_id": "123456789012"})

        item = wait_for_scans(client, 1)["items"][0]
        assert item["status"] == "error"
        assert item["message"] == "Error processing scan: gateway down"

    def test_manual_without_session(self, client: TestClient):
        response = client.post("/api/v1/checkin/evt-1/manual", json={"candidate_id": "123456789012"})
        assert response.status_code == 404


class TestViewportEndpoint:
    """Tests for viewport reporting."""

    def test_update_viewport(self, client: TestClient, manager: CheckInSessionManager):
        client.post(SESSION_URL)
        response = client.put("/api/v1/checkin/evt-1/viewport", json={"width": 800, "height": 450})
        assert response.status_code == 200
        assert manager.get("evt-1").viewport == (800, 450)

    def test_negative_viewport(self, client: TestClient):
        client.post(SESSION_URL)
        response = client.put("/api/v1/checkin/evt-1/viewport", json={"width": -1, "height": 450})
        assert response.status_code == 422


class TestCheckInWebSocket:
    """Tests for the live check-in feed."""

    def test_snapshot_and_result(self, client: TestClient):
        client.post(SESSION_URL)

        with client.websocket_connect("/ws/checkin/evt-1") as websocket:
            snapshot = websocket.receive_json()
            assert snapshot["type"] == "state"
            assert snapshot["state"] == "capturing"

            websocket.send_json({"type": "manual", "candidate_id": "1017048777048490"})

            messages = []
            while not any(m["type"] == "result" for m in messages):
                messages.append(websocket.receive_json())

        assert "manual" in [m["type"] for m in messages]
        states = [m["state"] for m in messages if m["type"] == "state"]
        assert states[0] == "processing"
        result = next(m for m in messages if m["type"] == "result")["result"]
        assert result["candidate_id"] == "1017048777048490"

    def test_viewport_message(self, client: TestClient, manager: CheckInSessionManager):
        client.post(SESSION_URL)

        with client.websocket_connect("/ws/checkin/evt-1") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "viewport", "width": 320, "height": 180})
            websocket.send_json({"type": "bogus"})
            error = websocket.receive_json()

        assert error["code"] == "UNKNOWN_MESSAGE"
        assert manager.get("evt-1").viewport == (320, 180)

    def test_unknown_session(self, client: TestClient):
        with client.websocket_connect("/ws/checkin/missing") as websocket:
            error = websocket.receive_json()

        assert error["type"] == "error"
        assert error["code"] == "SESSION_NOT_FOUND"

    def test_stop_message(self, client: TestClient, manager: CheckInSessionManager):
        client.post(SESSION_URL)

        with client.websocket_connect("/ws/checkin/evt-1") as websocket:
            websocket.receive_json()
            websocket.send_json({"type": "stop"})

        deadline = time.monotonic() + 2.0
        while "evt-1" in manager and time.monotonic() < deadline:
            time.sleep(0.01)
        assert "evt-1" not in manager
