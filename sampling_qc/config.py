"""Configuration objects for the Flask application."""
from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path

from sqlalchemy.engine import URL


def _int_from_env(name: str, default: int) -> int:
    """Return an integer value from ``name`` or ``default`` when missing/invalid."""

    raw_value = os.environ.get(name)
    if raw_value is None:
        return default
    try:
        return int(raw_value)
    except ValueError:
        return default


def _bool_from_env(name: str, default: bool = False) -> bool:
    raw_value = os.environ.get(name)
    if raw_value is None:
        return default
    return raw_value.strip().lower() in {"1", "true", "yes", "on"}


def _database_uri() -> str:
    """Resolve the primary database URI.

    ``DATABASE_URL`` wins. Otherwise a PostgreSQL URL is assembled from the
    ``DB_*`` variables when ``DB_HOST`` is present, falling back to a SQLite
    file inside the instance folder for local development.
    """

    explicit = os.environ.get("DATABASE_URL")
    if explicit:
        return explicit

    host = os.environ.get("DB_HOST")
    if host:
        return URL.create(
            "postgresql+psycopg2",
            username=os.environ.get("DB_USER"),
            password=os.environ.get("DB_PASSWORD"),
            host=host,
            port=_int_from_env("DB_PORT", 5432),
            database=os.environ.get("DB_NAME", "sampling_qc"),
        ).render_as_string(hide_password=False)

    instance = Path(os.environ.get("FLASK_INSTANCE_PATH", "instance")).absolute()
    return f"sqlite:///{instance / 'sampling_qc.db'}"


class Config:
    """Base configuration."""

    APP_NAME = "Sampling Inspection Control System"
    APP_VERSION = "1.0.0"

    SECRET_KEY = os.environ.get("SESSION_SECRET", os.environ.get("FLASK_SECRET_KEY", "dev-secret-key"))
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {
        "pool_pre_ping": True,
    }
    if SQLALCHEMY_DATABASE_URI.startswith("postgresql"):
        SQLALCHEMY_ENGINE_OPTIONS.update(
            pool_size=_int_from_env("DB_POOL_SIZE", 20),
            pool_recycle=_int_from_env("DB_POOL_RECYCLE", 1800),
        )

    PERMANENT_SESSION_LIFETIME = timedelta(hours=_int_from_env("SESSION_HOURS", 24))
    SESSION_COOKIE_NAME = "sampling_qc_session"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _bool_from_env("SESSION_COOKIE_SECURE")

    CORS_ORIGIN = os.environ.get("CORS_ORIGIN", "http://localhost:3000")

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_DIR = os.environ.get("LOG_DIR")
    LOG_RETENTION_DAYS = _int_from_env("LOG_RETENTION_DAYS", 7)
    SLOW_REQUEST_MS = _int_from_env("SLOW_REQUEST_MS", 2000)

    MSSQL_ODBC_DRIVER = os.environ.get("MSSQL_ODBC_DRIVER", "ODBC Driver 18 for SQL Server")
    MSSQL_CONNECT_TIMEOUT = _int_from_env("MSSQL_CONNECT_TIMEOUT", 30)
    MSSQL_POOL_SIZE = _int_from_env("MSSQL_POOL_SIZE", 10)
    MSSQL_IMPORT_LIMIT = _int_from_env("MSSQL_IMPORT_LIMIT", 500)

    REPORT_DPPM_TARGET = _int_from_env("REPORT_DPPM_TARGET", 150)

    DEFAULT_ADMIN_USERNAME = os.environ.get("DEFAULT_ADMIN_USERNAME", "admin")
    DEFAULT_ADMIN_PASSWORD = os.environ.get("DEFAULT_ADMIN_PASSWORD")

    # ten images of 5 MB plus form overhead
    MAX_CONTENT_LENGTH = _int_from_env("MAX_CONTENT_LENGTH", 52 * 1024 * 1024)

    # entity name -> callable(db) returning a Blueprint; consulted before
    # module discovery
    ENTITY_ROUTE_FACTORIES: dict = {}
