"""
API Tests
=========

REST and WebSocket surface, driven through the FastAPI TestClient with
the periodic scheduler effectively idle (see conftest).
"""

import asyncio

import pytest
from fastapi.testclient import TestClient

from crowd_monitor import main
from crowd_monitor.errors import PersistenceError
from crowd_monitor.models import ClassifiedReading


@pytest.fixture
def client():
    with TestClient(main.app) as test_client:
        yield test_client


@pytest.fixture
def runtime(client):
    return main.get_runtime()


def record_refresh_threads(monkeypatch, hub):
    """Wrap the hub's refresh source to note whether it ran on the event loop."""
    calls = []
    build = hub._refresh_source

    def source():
        try:
            asyncio.get_running_loop()
            calls.append("event-loop")
        except RuntimeError:
            calls.append("worker")
        return build()

    monkeypatch.setattr(hub, "_refresh_source", source)
    return calls


class TestHttpEndpoints:

    def test_root(self, client):
        body = client.get("/").json()
        assert body["status"] == "running"
        assert body["zones"] == 9

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "OK"
        assert body["uptime"] >= 0

    def test_zones_empty_before_first_tick(self, client):
        body = client.get("/api/zones").json()
        assert body["success"] is True
        assert body["data"] == []

    def test_zones_after_tick(self, client, runtime):
        runtime.pipeline.run_tick()

        body = client.get("/api/zones").json()

        assert len(body["data"]) == 9
        first = body["data"][0]
        assert set(first) == {
            "zoneId", "zoneName", "population", "density",
            "cluster", "capacity", "status", "timestamp",
        }
        assert first["zoneId"] == "AB1"
        assert first["status"] in {"normal", "moderate", "overcrowded"}

    def test_history(self, client, runtime):
        runtime.pipeline.run_tick()
        runtime.pipeline.run_tick()

        body = client.get("/api/history/Library", params={"minutes": 15}).json()

        assert body["success"] is True
        assert body["zoneId"] == "Library"
        assert body["count"] == 2
        assert body["minutes"] == 15
        stamps = [r["timestamp"] for r in body["data"]]
        assert stamps == sorted(stamps)

    def test_history_reports_clamped_window(self, client):
        body = client.get("/api/history/AB1", params={"minutes": 100000}).json()
        assert body["success"] is True
        assert body["minutes"] == 1440

    def test_history_unknown_zone(self, client):
        response = client.get("/api/history/Nowhere")
        assert response.status_code == 200
        assert response.json()["data"] == []

    def test_history_rejects_zero_window(self, client):
        assert client.get("/api/history/AB1", params={"minutes": 0}).status_code == 422

    def test_summary(self, client, runtime):
        result = runtime.pipeline.run_tick()

        summary = client.get("/api/summary").json()["summary"]

        assert summary["totalZones"] == 9
        assert summary["totalPopulation"] == sum(r.population for r in result.readings)
        assert summary["overcrowdedZones"] == sum(1 for r in result.readings if r.is_overcrowded)

    def test_refresh_is_not_persisted(self, client, runtime):
        body = client.get("/api/refresh").json()
        assert len(body["data"]) == 9
        assert runtime.store.count() == 0

    def test_refresh_runs_off_the_event_loop(self, client, runtime, monkeypatch):
        calls = record_refresh_threads(monkeypatch, runtime.hub)
        assert client.get("/api/refresh").status_code == 200
        assert calls == ["worker"]

    def test_metrics(self, client, runtime):
        runtime.pipeline.run_tick()
        body = client.get("/metrics").json()
        assert body["tick_count"] == 1
        assert body["stored_readings"] == 9
        assert body["persistence_failures"] == 0

    def test_store_failure_returns_500(self, client, runtime, monkeypatch):
        def broken():
            raise PersistenceError("database is locked", operation="latest_per_zone")

        monkeypatch.setattr(runtime.store, "latest_per_zone", broken)

        response = client.get("/api/zones")

        assert response.status_code == 500
        assert response.json() == {"success": False, "error": "database is locked"}


class TestZoneStream:

    def test_receives_tick_snapshot(self, client, runtime):
        with client.websocket_connect("/ws/zones") as websocket:
            result = runtime.pipeline.run_tick()
            message = websocket.receive_json()

        assert message["event"] == "zoneUpdate"
        assert len(message["data"]) == 9
        assert [ClassifiedReading.from_dict(r) for r in message["data"]] == result.readings

    def test_request_update_answers_only_requester(self, client, runtime):
        with client.websocket_connect("/ws/zones") as websocket:
            websocket.send_text("not json")
            websocket.send_json({"event": "requestUpdate"})
            message = websocket.receive_json()

        assert message["event"] == "zoneUpdate"
        assert len(message["data"]) == 9
        assert runtime.store.count() == 0
        assert runtime.pipeline.tick_count == 0

    def test_request_update_runs_off_the_event_loop(self, client, runtime, monkeypatch):
        calls = record_refresh_threads(monkeypatch, runtime.hub)
        with client.websocket_connect("/ws/zones") as websocket:
            websocket.send_json({"event": "requestUpdate"})
            websocket.receive_json()

        assert calls == ["worker"]
