"""Application factory for the sampling inspection control system."""
from __future__ import annotations

from pathlib import Path

from flask import Flask, jsonify
from werkzeug.exceptions import HTTPException

from .config import Config
from .discovery import EntityAutoDiscovery
from .entities import load_models
from .extensions import cors, db, mssql
from .health import UNHEALTHY, collect_system_health
from .logging_config import configure_logging
from .middleware import error_response, register_request_tracking
from .models import ensure_default_sysconfig, ensure_default_user, utcnow
from .seed import register_commands


def create_app(config_object: type[Config] | None = None) -> Flask:
    """Application factory used by Flask.

    Parameters
    ----------
    config_object: type[Config] | None
        Optional configuration object to allow overriding defaults when
        creating the application.
    """
    app = Flask(__name__, instance_relative_config=True)
    app.config.from_object(config_object or Config())

    configure_logging(app)
    register_extensions(app)
    register_request_tracking(app)
    initialize_database(app)
    register_blueprints(app)
    register_error_handlers(app)
    register_core_routes(app)
    register_commands(app)

    with app.app_context():
        app.logger.info(
            "%s %s started (database: %s)",
            app.config["APP_NAME"],
            app.config["APP_VERSION"],
            db.engine.dialect.name,
        )
    return app


def register_extensions(app: Flask) -> None:
    """Register Flask extensions."""
    db.init_app(app)
    mssql.init_app(app)
    origins = [origin.strip() for origin in app.config["CORS_ORIGIN"].split(",") if origin.strip()]
    cors.init_app(app, resources={r"/api/*": {"origins": origins}}, supports_credentials=True)


def register_blueprints(app: Flask) -> None:
    """Mount every entity under ``/api`` and keep the discovery summary."""
    discovery = EntityAutoDiscovery(app, db, registry=app.config.get("ENTITY_ROUTE_FACTORIES"))
    for problem in discovery.validate_configurations():
        app.logger.warning("Entity configuration problem: %s", problem)
    summary = discovery.discover_and_register()
    app.extensions["entity_discovery"] = {"registrar": discovery, "summary": summary}


def register_error_handlers(app: Flask) -> None:
    @app.errorhandler(404)
    def not_found(_error):
        return error_response("Resource not found", "NOT_FOUND", 404)

    @app.errorhandler(405)
    def method_not_allowed(_error):
        return error_response("Method not allowed", "METHOD_NOT_ALLOWED", 405)

    @app.errorhandler(413)
    def too_large(_error):
        return error_response("Request payload too large", "PAYLOAD_TOO_LARGE", 413)

    @app.errorhandler(Exception)
    def unhandled(error: Exception):
        if isinstance(error, HTTPException):
            return error_response(error.description or error.name, error.name.upper().replace(" ", "_"), error.code)
        db.session.rollback()
        app.logger.exception("Unhandled error: %s", error)
        message = str(error) if app.debug else "Internal server error"
        return error_response(message, "INTERNAL_ERROR", 500)


def register_core_routes(app: Flask) -> None:
    @app.route("/health")
    def health():
        """System health across database, session and memory."""
        report = collect_system_health()
        status = 503 if report["status"] == UNHEALTHY else 200
        return jsonify(report), status

    @app.route("/api")
    def api_info():
        discovery = app.extensions["entity_discovery"]
        return jsonify(
            {
                "success": True,
                "name": app.config["APP_NAME"],
                "version": app.config["APP_VERSION"],
                "timestamp": utcnow().isoformat(),
                "entities": discovery["registrar"].get_entity_info(),
                "discovery": discovery["summary"].to_dict(),
            }
        )

    @app.route("/api/debug/routes")
    def debug_routes():
        routes = sorted(
            (
                {
                    "path": rule.rule,
                    "methods": sorted(rule.methods - {"HEAD", "OPTIONS"}),
                    "endpoint": rule.endpoint,
                }
                for rule in app.url_map.iter_rules()
            ),
            key=lambda route: route["path"],
        )
        return jsonify(
            {
                "success": True,
                "count": len(routes),
                "routes": routes,
                "discovery": app.extensions["entity_discovery"]["summary"].to_dict(),
            }
        )


def initialize_database(app: Flask) -> None:
    """Ensure the database is ready to use."""
    with app.app_context():
        Path(app.instance_path).mkdir(parents=True, exist_ok=True)
        load_models()
        db.create_all()
        ensure_default_user()
        ensure_default_sysconfig()


def shutdown(app: Flask) -> None:
    """Release the MSSQL pool and the primary database engine."""
    app.logger.info("Shutting down %s", app.config["APP_NAME"])
    mssql.close()
    with app.app_context():
        db.engine.dispose()
