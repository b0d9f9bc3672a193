"""Entity auto-discovery, fallbacks and registry precedence."""
from __future__ import annotations

import importlib
from types import SimpleNamespace

from flask import Blueprint, Flask, jsonify

from sampling_qc import create_app
from sampling_qc.discovery import (
    ENTITY_PATTERNS,
    ENTITY_ROUTES,
    EntityAutoDiscovery,
    EntityRoute,
    PatternType,
    is_valid_blueprint,
)
from sampling_qc.extensions import db

from conftest import AppTestConfig


def ping_blueprint(name: str, reply: str) -> Blueprint:
    bp = Blueprint(name, __name__)

    @bp.get("/ping")
    def ping():
        return jsonify({"reply": reply})

    return bp


class TestBlueprintValidation:
    """Structural blueprint check."""

    def test_accepts_flask_blueprint(self):
        assert is_valid_blueprint(Blueprint("x", __name__))

    def test_rejects_other_objects(self):
        assert not is_valid_blueprint(None)
        assert not is_valid_blueprint(Blueprint)
        assert not is_valid_blueprint(importlib)
        assert not is_valid_blueprint(SimpleNamespace(route=lambda: None))


class TestDiscoveryOnApplication:
    """Discovery as run by the application factory."""

    def test_every_entity_registers(self, app):
        summary = app.extensions["entity_discovery"]["summary"]
        assert summary.total_entities == len(ENTITY_PATTERNS)
        assert summary.failed == 0
        assert summary.fallbacks == 0

    def test_sources_follow_module_conventions(self, app):
        sources = {
            result.entity_name: result.source
            for result in app.extensions["entity_discovery"]["summary"].results
        }
        assert sources["defect"] == "create_blueprint"
        assert sources["sampling-reason"] == "create_sampling_reason_routes"
        assert sources["line-fvi"] == "create_routes"
        assert sources["auth"] == "auth_bp"
        assert sources["defect-image"] == "create_defect_image_blueprint"
        assert sources["inspection-data"] == "inspection_data_routes"
        assert sources["report"] == "get_router"
        for entity in ("parts", "customer-site", "inf-checkin", "defectdata-customer", "defect-customer-image"):
            assert sources[entity] == "create_blueprint"

    def test_api_info_lists_entities(self, client):
        body = client.get("/api").get_json()
        assert body["discovery"]["totalEntities"] == len(ENTITY_PATTERNS)
        paths = {entity["api_path"] for entity in body["entities"]}
        assert "/api/inf-lotinput" in paths

    def test_debug_routes(self, client):
        body = client.get("/api/debug/routes").get_json()
        paths = {route["path"] for route in body["routes"]}
        assert "/api/defects" in paths
        assert "/api/auth/login" in paths

    def test_shipped_tables_are_consistent(self, app):
        assert app.extensions["entity_discovery"]["registrar"].validate_configurations() == []


class TestDiscoveryFailures:
    """A broken entity module degrades to a 501 placeholder."""

    def make_app(self):
        app = Flask(__name__)
        app.config["TESTING"] = True
        return app

    def test_import_error_produces_fallback(self):
        app = self.make_app()

        def importer(name):
            if name.endswith(".customer.routes"):
                raise ImportError("customer module is broken")
            return importlib.import_module(name)

        discovery = EntityAutoDiscovery(
            app,
            db,
            patterns={"customer": PatternType.VARCHAR_CODE, "defect": PatternType.SERIAL_ID},
            import_module=importer,
        )
        summary = discovery.discover_and_register()

        assert summary.total_entities == 2
        assert summary.successful + summary.failed == summary.total_entities
        assert summary.successful == 2
        assert summary.fallbacks == 1
        customer = next(r for r in summary.results if r.entity_name == "customer")
        assert customer.fallback is True
        assert "customer module is broken" in customer.error

        response = app.test_client().get("/api/customers/ABC")
        assert response.status_code == 501
        body = response.get_json()
        assert body["success"] is False
        assert body["pattern"] == "VARCHAR_CODE"

    def test_factory_exception_produces_fallback(self):
        app = self.make_app()

        def explode(_db):
            raise RuntimeError("boom")

        discovery = EntityAutoDiscovery(
            app,
            db,
            patterns={"defect": PatternType.SERIAL_ID},
            registry={"defect": explode},
        )
        summary = discovery.discover_and_register()

        assert summary.fallbacks == 1
        assert app.test_client().get("/api/defects/1").status_code == 501

    def test_module_without_blueprint_falls_back(self):
        app = self.make_app()
        empty = SimpleNamespace(__name__="empty.routes")
        discovery = EntityAutoDiscovery(
            app,
            db,
            patterns={"report": PatternType.SPECIAL},
            import_module=lambda _name: empty,
        )
        result = discovery.discover_and_register().results[0]
        assert result.fallback is True
        assert "exposes no blueprint" in result.error
        assert app.test_client().get("/api/report").status_code == 501

    def test_missing_route_configuration_fails(self):
        app = self.make_app()
        discovery = EntityAutoDiscovery(app, db, patterns={"widget": PatternType.SERIAL_ID})
        summary = discovery.discover_and_register()
        assert summary.failed == 1
        assert summary.results[0].error == "No route configuration found"

    def test_duplicate_mount_is_reported_not_raised(self):
        app = self.make_app()
        routes = {
            "first": EntityRoute("first", "/api/things", "things", "first"),
            "second": EntityRoute("second", "/api/things", "things", "second"),
        }
        registry = {
            "first": lambda _db: ping_blueprint("things", "first"),
            "second": lambda _db: ping_blueprint("things", "second"),
        }
        discovery = EntityAutoDiscovery(
            app,
            db,
            patterns={"first": PatternType.SERIAL_ID, "second": PatternType.SERIAL_ID},
            routes=routes,
            registry=registry,
        )
        summary = discovery.discover_and_register()
        assert summary.successful == 1
        assert summary.failed == 1
        assert discovery.validate_configurations() == ["/api/things: mounted by more than one entity"]


class TestRegistry:
    """Configured route factories take precedence over module discovery."""

    def test_registry_factory_wins(self):
        class RegistryConfig(AppTestConfig):
            ENTITY_ROUTE_FACTORIES = {"customer": lambda _db: ping_blueprint("customer", "registry")}

        app = create_app(RegistryConfig)
        result = next(
            r
            for r in app.extensions["entity_discovery"]["summary"].results
            if r.entity_name == "customer"
        )
        assert result.source == "registry"
        assert app.test_client().get("/api/customers/ping").get_json() == {"reply": "registry"}


class TestConfigurationValidation:
    def test_reports_mismatched_tables(self):
        app = Flask(__name__)
        discovery = EntityAutoDiscovery(
            app,
            db,
            patterns={"defect": PatternType.SERIAL_ID, "ghost": PatternType.SPECIAL},
            routes={
                "defect": ENTITY_ROUTES["defect"],
                "orphan": EntityRoute("orphan", "/orphan", "orphan", "orphan"),
            },
        )
        problems = discovery.validate_configurations()
        assert "ghost: pattern has no route configuration" in problems
        assert "orphan: route configuration has no pattern" in problems
        assert "orphan: api path /orphan is outside /api/" in problems
