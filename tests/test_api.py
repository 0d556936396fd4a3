"""
End-to-end tests through the FastAPI app.
"""

import time

import pytest
from fastapi.testclient import TestClient

from src.api.main import create_app
from src.core import heartbeat
from src.core.cache_engine import CacheEngine


@pytest.fixture
def engine():
    return CacheEngine(failure_rate=0.0, network_delay_ms=0)


@pytest.fixture
def client(temp_db, engine):
    with TestClient(create_app(cache_engine=engine)) as test_client:
        yield test_client


def _create(client, value="A", **extra):
    response = client.post("/db/create", json={"value": value, **extra})
    assert response.status_code == 201
    return response.json()


class TestHealth:

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["db_health"] is True
        assert data["record_count"] == 0
        assert data["cache"]["total_entries"] == 0


class TestRecordEndpoints:
    """Record store endpoints."""

    def test_create_and_read(self, client):
        created = _create(client, "hello")

        assert created["version"] == 1
        response = client.get(f"/db/{created['id']}")
        assert response.json()["value"] == "hello"
        assert client.get(f"/cache/{created['id']}").json()["version"] == 1

    def test_create_without_caching(self, client):
        created = _create(client, "hello", cache_immediately=False)

        assert client.get(f"/cache/{created['id']}").status_code == 404

    def test_blank_value_rejected(self, client):
        response = client.post("/db/create", json={"value": "   "})

        assert response.status_code == 422

    def test_list_all(self, client):
        _create(client, "a")
        _create(client, "b")

        response = client.get("/db/all")

        assert [record["value"] for record in response.json()] == ["a", "b"]

    def test_get_missing(self, client):
        assert client.get("/db/999").status_code == 404

    def test_update(self, client):
        created = _create(client)

        response = client.put(f"/db/update/{created['id']}", json={"value": "B"})

        assert response.status_code == 200
        assert response.json()["version"] == 2
        assert client.get(f"/cache/{created['id']}").status_code == 404

    def test_update_missing(self, client):
        response = client.put("/db/update/999", json={"value": "B"})

        assert response.status_code == 404
        assert "999" in response.json()["detail"]

    def test_delete(self, client):
        created = _create(client)

        assert client.delete(f"/db/{created['id']}").status_code == 204
        assert client.get(f"/db/{created['id']}").status_code == 404
        assert client.get(f"/cache/{created['id']}").status_code == 404
        assert client.delete(f"/db/{created['id']}").status_code == 404


class TestCacheEndpoints:
    """Direct cache access."""

    def test_list_and_stats(self, client):
        _create(client, "a")
        _create(client, "b", cache_immediately=False)

        assert len(client.get("/cache/all").json()) == 1
        stats = client.get("/cache/stats").json()
        assert stats["total_entries"] == 1
        assert stats["failure_rate"] == 0.0

    def test_invalidate_single_entry(self, client):
        created = _create(client)

        response = client.delete(f"/cache/{created['id']}")

        assert response.json() == {
            "id": created["id"], "invalidated": True, "message": "Cache invalidated successfully"
        }

    def test_clear(self, client):
        _create(client, "a")
        _create(client, "b")

        response = client.delete("/cache/clear")

        assert response.json()["removed"] == 2
        assert client.get("/cache/all").json() == []

    def test_failure_rate(self, client, engine):
        response = client.post("/cache/config/failure-rate", params={"rate": 0.75})

        assert response.json()["new_rate"] == 0.75
        assert engine.failure_rate == 0.75

    @pytest.mark.parametrize("rate", [-0.1, 1.5])
    def test_failure_rate_out_of_range(self, client, engine, rate):
        response = client.post("/cache/config/failure-rate", params={"rate": rate})

        assert response.status_code == 422
        assert engine.failure_rate == 0.0


class TestAnalysisEndpoints:
    """Drift analysis and the invalidation audit log."""

    def test_missed_invalidation_drift_and_heal(self, client):
        created = _create(client, "A")
        record_id = created["id"]
        client.put(f"/db/update/{record_id}", json={"value": "A2", "invalidate_cache": False})

        assert client.get(f"/analyze/stale/{record_id}").json()["is_stale"] is True
        summary = client.get("/analyze/drift/summary").json()
        assert summary == {"total_records": 1, "stale_records": 1, "drift_score": 100.0, "verdict": "CRITICAL"}

        report = client.get("/analyze/drift", params={"auto_fix": True}).json()

        assert report["verdict"] == "CRITICAL"
        assert report["auto_fixed_count"] == 1
        assert report["stale_details"][0]["version_drift"] == 1
        assert report["verdict_description"]
        assert client.get(f"/analyze/stale/{record_id}").json()["is_stale"] is False
        assert client.get(f"/cache/{record_id}").json()["version"] == 2

    def test_healthy_report(self, client):
        _create(client, "A")

        report = client.get("/analyze/drift").json()

        assert report["verdict"] == "HEALTHY"
        assert report["drift_score"] == 0.0
        assert report["cached_records"] == 1

    def test_force_refresh(self, client):
        created = _create(client, "A", cache_immediately=False)

        response = client.post(f"/analyze/refresh/{created['id']}")

        assert response.json()["version"] == 1
        assert client.get(f"/cache/{created['id']}").status_code == 200

    def test_force_refresh_missing(self, client):
        assert client.post("/analyze/refresh/999").status_code == 404

    def test_simulated_failure_events(self, client):
        created = _create(client, "A")
        record_id = created["id"]
        client.put(f"/db/update/{record_id}", json={"value": "A2", "simulate_failure": True})
        client.put(f"/db/update/{record_id}", json={"value": "A3"})

        events = client.get("/analyze/events").json()
        assert [event["status"] for event in events] == ["FAILED", "SUCCESS"]
        assert events[0]["reason"] == "Simulated failure"

        recent = client.get("/analyze/events/recent", params={"limit": 1}).json()
        assert [event["db_version"] for event in recent] == [3]

        stats = client.get("/analyze/events/stats").json()
        assert stats == {
            "total_invalidation_attempts": 2,
            "failed_invalidations": 1,
            "successful_invalidations": 1,
            "failure_rate": "50.00%"
        }

        assert len(client.get(f"/analyze/events/record/{record_id}").json()) == 2
        assert client.get("/analyze/events/record/999").json() == []


@pytest.fixture
def monitored_client(temp_db, engine, monkeypatch):
    monkeypatch.setenv("DRIFT_MONITOR_ENABLED", "true")
    monkeypatch.setenv("DRIFT_MONITOR_INTERVAL_SEC", "60")
    heartbeat.tasks.clear()
    heartbeat.running = False
    heartbeat.shutdown_event = None
    with TestClient(create_app(cache_engine=engine)) as test_client:
        yield test_client
    heartbeat.tasks.clear()


@pytest.fixture
def auto_fix_enabled(monkeypatch):
    monkeypatch.setenv("DRIFT_MONITOR_AUTO_FIX", "true")


def _wait_for_drift_check(client, predicate, timeout=5.0):
    """Poll the monitor until its latest summary satisfies ``predicate``."""
    deadline = time.monotonic() + timeout
    summary = None
    while time.monotonic() < deadline:
        task = client.get("/analyze/monitor").json()["tasks"]["drift_check"]
        summary = task["last_result"]
        if summary is not None and predicate(summary):
            return summary
        heartbeat.reset_task("drift_check")
        time.sleep(0.05)
    return summary


class TestDriftMonitor:
    """Periodic drift check running inside the API process."""

    def test_disabled_by_default(self, client):
        status = client.get("/analyze/monitor").json()

        assert status["status"] == "disabled"
        assert heartbeat.running is False

    def test_monitor_sees_drift_in_the_api_cache(self, monitored_client):
        created = _create(monitored_client, "A")
        monitored_client.put(f"/db/update/{created['id']}", json={"value": "A2", "invalidate_cache": False})

        summary = _wait_for_drift_check(monitored_client, lambda s: s["stale_records"] == 1)

        assert summary["stale_records"] == 1
        assert summary["drift_score"] == 100.0
        assert summary["verdict"] == "CRITICAL"
        assert monitored_client.get("/analyze/monitor").json()["status"] == "running"

    def test_monitor_auto_fix_heals_the_api_cache(self, auto_fix_enabled, monitored_client):
        created = _create(monitored_client, "A")
        monitored_client.put(f"/db/update/{created['id']}", json={"value": "A2", "invalidate_cache": False})
        assert monitored_client.get(f"/cache/{created['id']}").json()["version"] == 1

        def healed(summary):
            return monitored_client.get(f"/cache/{created['id']}").json()["version"] == 2

        summary = _wait_for_drift_check(monitored_client, healed)

        assert "auto_fixed" in summary
        assert monitored_client.get(f"/cache/{created['id']}").json()["version"] == 2

    def test_monitor_stops_with_the_app(self, temp_db, engine, monkeypatch):
        monkeypatch.setenv("DRIFT_MONITOR_ENABLED", "true")
        heartbeat.tasks.clear()
        heartbeat.running = False

        with TestClient(create_app(cache_engine=engine)):
            assert heartbeat.running is True
            assert heartbeat.list_tasks() == ["drift_check"]

        assert heartbeat.running is False
        assert heartbeat.list_tasks() == []
