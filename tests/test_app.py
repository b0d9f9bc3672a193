"""Application factory wiring: errors, request ids, CLI commands."""
from __future__ import annotations

from sampling_qc.entities.customer_site.models import CustomerSite
from sampling_qc.entities.defect.models import Defect
from sampling_qc.extensions import db
from sampling_qc.seed import seed_master_data


class TestErrorHandlers:
    def test_unknown_route_is_json_404(self, client):
        response = client.get("/api/nothing-here")
        assert response.status_code == 404
        body = response.get_json()
        assert body["success"] is False
        assert body["code"] == "NOT_FOUND"

    def test_wrong_method_is_json_405(self, logged_in_client):
        response = logged_in_client.delete("/api/defects")
        assert response.status_code == 405
        assert response.get_json()["code"] == "METHOD_NOT_ALLOWED"

    def test_unhandled_error_is_json_500(self, app, logged_in_client):
        app.config["PROPAGATE_EXCEPTIONS"] = False

        @app.get("/api/explode")
        def explode():
            raise RuntimeError("kaboom")

        response = logged_in_client.get("/api/explode")
        assert response.status_code == 500
        assert response.get_json()["error"] == "Internal server error"


class TestRequestTracking:
    def test_request_id_is_generated(self, client):
        response = client.get("/api")
        assert response.headers["X-Request-ID"].startswith("req_")

    def test_request_id_is_echoed(self, client):
        response = client.get("/api", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"


class TestSeed:
    def test_seed_is_idempotent(self, app):
        first = seed_master_data()
        assert first["defects"] > 0
        second = seed_master_data()
        assert set(second.values()) == {0}
        assert db.session.scalar(db.select(db.func.count(Defect.id))) == first["defects"]

    def test_seed_command(self, app):
        result = app.test_cli_runner().invoke(args=["seed"])
        assert result.exit_code == 0
        assert "customers: 2 added" in result.output

    def test_sync_command_reports_missing_configuration(self, app, fake_source):
        result = app.test_cli_runner().invoke(args=["sync-lotinput"])
        assert result.exit_code == 1
        assert "MSSQL configuration not found" in result.output

    def test_seed_pairs_customers_with_sites(self, app):
        added = seed_master_data()
        assert added["customer_sites"] == 2
        assert db.session.get(CustomerSite, "SGT-TH").customers == "SGT"

    def test_checkin_sync_command_reports_missing_configuration(self, app, fake_source):
        result = app.test_cli_runner().invoke(args=["sync-checkin"])
        assert result.exit_code == 1
        assert "MSSQL configuration not found" in result.output
