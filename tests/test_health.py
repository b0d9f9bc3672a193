"""System and per-entity health endpoints."""
from __future__ import annotations

from types import SimpleNamespace

import pytest

from sampling_qc import health


class TestOverallStatus:
    def test_all_healthy(self):
        status, message = health.overall_status({"a": {"status": "healthy"}, "b": {"status": "healthy"}})
        assert status == "healthy"
        assert message == "All systems operational"

    def test_unhealthy_wins_over_degraded(self):
        status, message = health.overall_status(
            {"a": {"status": "unhealthy"}, "b": {"status": "degraded"}, "c": {"status": "healthy"}}
        )
        assert status == "unhealthy"
        assert message == "1 unhealthy, 1 degraded components"

    def test_degraded_only(self):
        status, _ = health.overall_status({"a": {"status": "degraded"}})
        assert status == "degraded"


class TestHealthEndpoint:
    def test_reports_components(self, client, monkeypatch):
        monkeypatch.setattr(health.psutil, "virtual_memory", lambda: SimpleNamespace(percent=40.0))
        response = client.get("/health")
        assert response.status_code == 200
        body = response.get_json()
        assert body["status"] == "healthy"
        assert set(body["components"]) == {"database", "session", "memory"}
        assert body["components"]["database"]["dialect"] == "sqlite"

    def test_high_memory_is_unhealthy(self, client, monkeypatch):
        monkeypatch.setattr(health.psutil, "virtual_memory", lambda: SimpleNamespace(percent=95.0))
        response = client.get("/health")
        assert response.status_code == 503
        assert response.get_json()["components"]["memory"]["status"] == "unhealthy"

    def test_development_secret_is_degraded(self, app, client, monkeypatch):
        monkeypatch.setattr(health.psutil, "virtual_memory", lambda: SimpleNamespace(percent=40.0))
        app.config["SECRET_KEY"] = "dev-secret-key"
        body = client.get("/health").get_json()
        assert body["status"] == "degraded"
        assert body["components"]["session"]["status"] == "degraded"

    @pytest.mark.parametrize(
        "path",
        [
            "/api/defects/health",
            "/api/customers/health",
            "/api/defect-image/health",
            "/api/inf-lotinput/health",
            "/api/auth/health",
        ],
    )
    def test_entity_health_is_public(self, client, path):
        response = client.get(path)
        assert response.status_code == 200
        assert response.get_json()["data"]["status"] == "healthy"
