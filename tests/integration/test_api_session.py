"""Integration tests for the session API using FastAPI TestClient."""

import asyncio
import base64
import time

import pytest

# FastAPI/httpx may not be installed; skip these tests if not available
pytest.importorskip("fastapi")
pytest.importorskip("httpx")

from fastapi.testclient import TestClient

from streetgen.api.main import create_app
from streetgen.api.websocket import stop_task
from streetgen.config import AppConfig
from streetgen.services.geocoding_service import GeocodingService

GEO_VIEWPORT = {
    "north": 40.01,
    "south": 40.0,
    "east": -73.99,
    "west": -74.0,
    "width": 1000,
    "height": 1000,
    "zoom": 15,
}


@pytest.fixture(autouse=True)
def app_config(tmp_path, monkeypatch):
    config = AppConfig(data_dir=tmp_path / "data", pictures_dir=tmp_path / "pictures")
    monkeypatch.setattr("streetgen.config._config", config)
    return config


@pytest.fixture
def client(session):
    """Test client serving the fixture session."""
    app = create_app(session=session, geocoder=GeocodingService())
    with TestClient(app) as test_client:
        yield test_client


def _wait_for_generation(client, timeout=5.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        generation = client.get("/api/session").json()["generation"]
        if generation["status"] != "loading":
            return generation
        time.sleep(0.02)
    raise AssertionError("generation did not finish")


def _select(client, degrees=90):
    client.put("/api/session/point", json={"geo": {"latitude": 40.005, "longitude": -73.995}})
    return client.put("/api/session/direction", json={"degrees": degrees})


class TestHealth:

    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_config(self, client, app_config):
        data = client.get("/api/config").json()
        assert data["gemini_model"] == app_config.gemini_model
        assert data["pictures_dir"] == str(app_config.pictures_dir)


class TestSelection:

    def test_initial_snapshot(self, client):
        data = client.get("/api/session").json()
        assert data["mode"] == "real_world"
        assert data["phase"] == "empty"
        assert data["can_generate"] is False
        assert data["requirement_hint"] == "location"
        assert data["generation"]["status"] == "idle"

    def test_point_and_direction(self, client):
        response = _select(client, degrees=-45)
        assert response.status_code == 200
        data = response.json()
        assert data["point"] == {"latitude": 40.005, "longitude": -73.995}
        assert data["direction"] == 315
        assert data["direction_name"] == "Northwest"
        assert data["requirement_hint"] == "api_key"

    def test_direction_before_point(self, client):
        response = client.put("/api/session/direction", json={"degrees": 10})
        assert response.status_code == 409

    def test_point_for_wrong_mode(self, client):
        response = client.put("/api/session/point", json={"fantasy": {"x_percent": 0.5, "y_percent": 0.5}})
        assert response.status_code == 422

    def test_invalid_point(self, client):
        response = client.put("/api/session/point", json={"geo": {"latitude": 100, "longitude": 0}})
        assert response.status_code == 422

    def test_clear(self, client):
        _select(client)
        data = client.post("/api/session/clear").json()
        assert data["point"] is None
        assert data["direction"] is None

    def test_mode(self, client, session):
        _select(client)
        data = client.put("/api/session/mode", json={"mode": "fantasy"}).json()
        assert data["mode"] == "fantasy"
        assert data["requirement_hint"] == "select_fantasy_map"

        data = client.put("/api/session/mode", json={"mode": "real_world"}).json()
        assert data["direction"] == 90


class TestGestures:

    def test_press_drag_release(self, client):
        response = client.post("/api/session/gesture/press", json={"x": 500, "y": 500, "geo": GEO_VIEWPORT})
        assert response.json()["handled"] is True

        response = client.post("/api/session/gesture/move", json={"x": 500, "y": 900, "geo": GEO_VIEWPORT})
        assert response.json()["direction"] == 180
        assert response.json()["snapshot"]["preview_direction"] == 180

        response = client.post("/api/session/gesture/release", json={"x": 500, "y": 900, "geo": GEO_VIEWPORT})
        data = response.json()
        assert data["direction"] == 180
        assert data["snapshot"]["direction"] == 180
        assert data["snapshot"]["phase"] == "direction_set"

    def test_viewport_must_match_mode(self, client):
        response = client.post("/api/session/gesture/press", json={
            "x": 1, "y": 1, "image": {"image_width": 10, "image_height": 10},
        })
        assert response.status_code == 422

    def test_press_requires_position(self, client):
        response = client.post("/api/session/gesture/press", json={"geo": GEO_VIEWPORT})
        assert response.status_code == 422


class TestGeneration:

    def test_incomplete_selection_rejected(self, client, sample_png):
        response = client.post(
            "/api/session/generate",
            files={"file": ("capture.png", sample_png, "image/png")},
        )
        assert response.status_code == 409
        assert response.json()["detail"] == "Tap the map to choose a location"

    def test_missing_key_reported_in_state(self, client, sample_png):
        _select(client)
        response = client.post(
            "/api/session/generate",
            files={"file": ("capture.png", sample_png, "image/png")},
        )
        assert response.status_code == 202
        data = response.json()
        assert data["job_id"] is None
        assert data["snapshot"]["generation"]["error_kind"] == "missing_credential"

    def test_missing_capture(self, client, session):
        session.settings.save_api_key("key")
        _select(client)
        response = client.post("/api/session/generate", data={"custom_prompt": "dusk"})
        assert response.status_code == 400

    def test_generate_fetch_and_save(self, client, session, fake_gemini, sample_png):
        session.settings.save_api_key("key")
        _select(client)

        response = client.post(
            "/api/session/generate",
            files={"file": ("capture.png", sample_png, "image/png")},
            data={"custom_prompt": "at dusk", "satellite": "true"},
        )
        assert response.status_code == 202
        assert response.json()["job_id"] == 1

        generation = _wait_for_generation(client)
        assert generation["status"] == "success"
        assert base64.b64decode(generation["image_base64"]) == fake_gemini.image_bytes
        assert "at dusk" in fake_gemini.calls[0]["prompt"]

        response = client.get("/api/session/image")
        assert response.status_code == 200
        assert response.headers["content-type"] == "image/png"
        assert response.content == fake_gemini.image_bytes

        response = client.post("/api/session/save")
        assert response.status_code == 200
        assert response.json()["result"] == "success"

    def test_non_image_upload(self, client, session):
        session.settings.save_api_key("key")
        _select(client)
        response = client.post(
            "/api/session/generate",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400

    def test_no_image_yet(self, client):
        assert client.get("/api/session/image").status_code == 404
        assert client.post("/api/session/save").status_code == 404

    def test_cancel_when_idle(self, client):
        data = client.post("/api/session/cancel").json()
        assert data["success"] is False


class TestWebSocket:

    def test_snapshot_on_connect_and_update(self, client):
        with client.websocket_connect("/api/ws/session") as websocket:
            message = websocket.receive_json()
            assert message["type"] == "snapshot"
            assert message["data"]["mode"] == "real_world"

            websocket.send_json({"type": "ping"})
            assert websocket.receive_json() == {"type": "pong"}

            client.put("/api/session/mode", json={"mode": "fantasy"})
            message = websocket.receive_json()
            assert message["type"] == "snapshot"
            assert message["data"]["mode"] == "fantasy"

    def test_stop_task_collects_failure(self):
        async def run():
            async def failing():
                raise RuntimeError("socket closed")

            task = asyncio.create_task(failing())
            await asyncio.sleep(0)
            await stop_task(task)
            return task

        task = asyncio.run(run())
        assert task.done()
        assert isinstance(task.exception(), RuntimeError)

    def test_stop_task_cancels_running(self):
        async def run():
            task = asyncio.create_task(asyncio.sleep(10))
            await asyncio.sleep(0)
            await stop_task(task)
            return task

        assert asyncio.run(run()).cancelled()
