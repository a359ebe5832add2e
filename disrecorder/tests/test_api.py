"""
Tests for the REST control API.
"""

import pytest
from fastapi.testclient import TestClient

from api import RecorderAPI, create_api_server
from recorder import create_loopback_controller

from .conftest import GROUP, PORT, make_recorded


@pytest.fixture
def controller(network, storage):
    return create_loopback_controller(network, GROUP, PORT, storage=storage)


@pytest.fixture
def client(controller):
    with TestClient(RecorderAPI(controller).app) as client:
        yield client


class TestStatusEndpoints:
    """Tests for read-only endpoints."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_status(self, client):
        data = client.get("/api/status").json()
        assert data["recording"]["state"] == "idle"
        assert data["replay"]["state"] == "idle"

    def test_exercises(self, client, storage):
        storage.store_pdu(make_recorded("alpha", 0))
        storage.store_pdu(make_recorded("alpha", 1))

        data = client.get("/api/exercises").json()
        assert data["count"] == 1
        assert data["exercises"] == [{"exercise_id": "alpha", "pdu_count": 2}]

    def test_clear_exercise(self, client, storage):
        storage.store_pdu(make_recorded("alpha", 0))

        response = client.delete("/api/exercises/alpha")
        assert response.status_code == 200
        assert storage.get_exercise_ids() == set()


class TestRecordingEndpoints:
    """Tests for recording control."""

    def test_start_and_stop(self, client, controller):
        response = client.post("/api/recording/start", json={"exercise_id": "alpha"})
        assert response.status_code == 200
        assert controller.is_recording

        response = client.post("/api/recording/stop")
        assert response.status_code == 200
        assert response.json()["exercise_id"] == "alpha"
        assert not controller.is_recording

    def test_second_start_conflicts(self, client):
        client.post("/api/recording/start", json={"exercise_id": "alpha"})

        response = client.post("/api/recording/start", json={"exercise_id": "bravo"})
        assert response.status_code == 409

    def test_stop_while_idle(self, client):
        assert client.post("/api/recording/stop").status_code == 409

    def test_empty_exercise_id(self, client):
        response = client.post("/api/recording/start", json={"exercise_id": ""})
        assert response.status_code == 422


class TestReplayEndpoints:
    """Tests for replay control."""

    def test_replay_and_wait(self, client, storage, network):
        for ts in (0, 10, 20):
            storage.store_pdu(make_recorded("alpha", ts))

        response = client.post(
            "/api/replay/start",
            json={"exercise_id": "alpha", "speed_factor": 2.0, "wait": True},
        )

        assert response.status_code == 200
        result = response.json()["result"]
        assert result["status"] == "completed"
        assert result["pdus_sent"] == 3
        assert len(network.sent) == 3

    def test_replay_empty_exercise(self, client):
        response = client.post("/api/replay/start", json={"exercise_id": "missing"})
        assert response.status_code == 200
        assert response.json()["result"]["status"] == "empty"

    def test_start_then_stop(self, client, storage, controller):
        storage.store_pdu(make_recorded("alpha", 0))
        storage.store_pdu(make_recorded("alpha", 60000))

        response = client.post("/api/replay/start", json={"exercise_id": "alpha"})
        assert response.status_code == 200
        assert controller.is_replaying

        conflict = client.post("/api/replay/start", json={"exercise_id": "alpha"})
        assert conflict.status_code == 409

        response = client.post("/api/replay/stop", json={"wait": True})
        assert response.status_code == 200
        assert response.json()["result"]["status"] == "stopped"
        assert not controller.is_replaying

    def test_stop_while_idle(self, client):
        response = client.post("/api/replay/stop")
        assert response.status_code == 200
        assert response.json()["message"] == "Not currently replaying"

    @pytest.mark.parametrize("speed", [0, -1.5])
    def test_invalid_speed(self, client, speed):
        response = client.post("/api/replay/start", json={"exercise_id": "alpha", "speed_factor": speed})
        assert response.status_code == 422


class TestAnalyzerEndpoints:
    """Tests for analyzer management."""

    def test_add_list_remove(self, client):
        response = client.post("/api/analyzers", json={"kind": "statistics"})
        assert response.status_code == 200

        data = client.get("/api/analyzers").json()
        assert [a["name"] for a in data["analyzers"]] == ["Statistics Analyzer"]
        assert "statistics" in data["available"]

        assert client.delete("/api/analyzers/Statistics Analyzer").status_code == 200
        assert client.get("/api/analyzers").json()["analyzers"] == []

    def test_duplicate_kind(self, client):
        client.post("/api/analyzers", json={"kind": "statistics"})
        assert client.post("/api/analyzers", json={"kind": "statistics"}).status_code == 409

    def test_unknown_kind(self, client):
        assert client.post("/api/analyzers", json={"kind": "spectrum"}).status_code == 422

    def test_remove_unknown(self, client):
        assert client.delete("/api/analyzers/nothing").status_code == 404


class TestCreateApiServer:
    """Tests for server construction."""

    def test_server_config(self, controller):
        api, config = create_api_server(controller, host="127.0.0.1", port=9090)
        assert config["app"] is api.app
        assert config["host"] == "127.0.0.1"
        assert config["port"] == 9090
