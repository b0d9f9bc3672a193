"""Aggregated system health for the ``/health`` endpoint."""
from __future__ import annotations

import time
from typing import Any

import psutil
from flask import current_app
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from .extensions import db
from .models import utcnow

HEALTHY = "healthy"
DEGRADED = "degraded"
UNHEALTHY = "unhealthy"

MEMORY_DEGRADED_PERCENT = 70
MEMORY_UNHEALTHY_PERCENT = 90
DEFAULT_SECRET = "dev-secret-key"


def check_database() -> dict[str, Any]:
    started = time.perf_counter()
    try:
        db.session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        db.session.rollback()
        current_app.logger.error("Database health check failed: %s", exc)
        return {"status": UNHEALTHY, "error": str(exc)}
    return {
        "status": HEALTHY,
        "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        "dialect": db.engine.dialect.name,
    }


def check_session() -> dict[str, Any]:
    secret = current_app.config.get("SECRET_KEY")
    if not secret:
        return {"status": UNHEALTHY, "error": "SECRET_KEY is not configured"}
    if secret == DEFAULT_SECRET:
        return {"status": DEGRADED, "warning": "Using the development session secret"}
    return {
        "status": HEALTHY,
        "lifetime_hours": current_app.permanent_session_lifetime.total_seconds() / 3600,
    }


def check_memory() -> dict[str, Any]:
    memory = psutil.virtual_memory()
    process = psutil.Process()
    if memory.percent > MEMORY_UNHEALTHY_PERCENT:
        status = UNHEALTHY
    elif memory.percent > MEMORY_DEGRADED_PERCENT:
        status = DEGRADED
    else:
        status = HEALTHY
    return {
        "status": status,
        "used_percent": memory.percent,
        "process_rss_mb": round(process.memory_info().rss / (1024 * 1024), 1),
    }


def overall_status(components: dict[str, dict[str, Any]]) -> tuple[str, str]:
    """Worst component wins; the message counts the problems."""

    statuses = [component["status"] for component in components.values()]
    unhealthy = statuses.count(UNHEALTHY)
    degraded = statuses.count(DEGRADED)
    if not unhealthy and not degraded:
        return HEALTHY, "All systems operational"
    status = UNHEALTHY if unhealthy else DEGRADED
    return status, f"{unhealthy} unhealthy, {degraded} degraded components"


def collect_system_health() -> dict[str, Any]:
    components = {
        "database": check_database(),
        "session": check_session(),
        "memory": check_memory(),
    }
    status, message = overall_status(components)
    return {
        "status": status,
        "message": message,
        "timestamp": utcnow().isoformat(),
        "version": current_app.config.get("APP_VERSION"),
        "components": components,
    }
