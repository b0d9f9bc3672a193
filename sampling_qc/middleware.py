"""Session guards and request tracking."""
from __future__ import annotations

import secrets
import time
from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import Flask, Response, current_app, g, jsonify, request, session

from .models import Role, utcnow


def error_response(message: str, code: str, status: int) -> tuple[Response, int]:
    """JSON body used for every authentication/authorisation failure."""

    return (
        jsonify(
            {
                "success": False,
                "error": message,
                "code": code,
                "meta": {"timestamp": utcnow().isoformat() + "Z"},
            }
        ),
        status,
    )


def current_user() -> dict[str, Any] | None:
    """Return the user stored on the session, validated by the guards."""

    return g.get("user")


def current_user_id() -> int | None:
    user = current_user()
    return user["id"] if user else None


def _load_session_user() -> tuple[dict[str, Any] | None, str | None]:
    payload = session.get("user")
    if payload is None:
        return None, "NO_SESSION"
    if not isinstance(payload, dict):
        return None, "INVALID_SESSION"
    try:
        int(payload["id"])
        Role(payload["role"])
    except (KeyError, TypeError, ValueError):
        return None, "INVALID_SESSION"
    return payload, None


def require_authentication(view: Callable) -> Callable:
    """Reject requests that do not carry a valid login session."""

    @wraps(view)
    def wrapped(*args, **kwargs):
        user, failure = _load_session_user()
        if failure == "NO_SESSION":
            return error_response("Authentication required", failure, 401)
        if failure is not None:
            session.clear()
            return error_response("Session is invalid, please log in again", failure, 401)
        g.user = user
        return view(*args, **kwargs)

    return wrapped


def require_role(minimum: Role) -> Callable[[Callable], Callable]:
    """Allow only sessions whose role is at least ``minimum``."""

    def decorator(view: Callable) -> Callable:
        @require_authentication
        @wraps(view)
        def wrapped(*args, **kwargs):
            role = Role(g.user["role"])
            if not role.satisfies(minimum):
                current_app.logger.warning(
                    "User %s (%s) denied %s %s", g.user["username"], role.value, request.method, request.path
                )
                return error_response(
                    f"{minimum.label} access required", "INSUFFICIENT_PERMISSIONS", 403
                )
            return view(*args, **kwargs)

        return wrapped

    return decorator


require_user = require_role(Role.USER)
require_manager = require_role(Role.MANAGER)
require_admin = require_role(Role.ADMIN)


def _new_request_id() -> str:
    return f"req_{int(time.time() * 1000)}_{secrets.token_hex(4)}"


def register_request_tracking(app: Flask) -> None:
    """Tag each request with an id and log its outcome and duration."""

    @app.before_request
    def start_request_timer() -> None:
        g.request_id = request.headers.get("X-Request-ID") or _new_request_id()
        g.request_started = time.perf_counter()

    @app.after_request
    def log_request(response: Response) -> Response:
        request_id = g.get("request_id")
        if request_id:
            response.headers["X-Request-ID"] = request_id

        started = g.get("request_started")
        if started is None:
            return response

        duration_ms = (time.perf_counter() - started) * 1000
        app.logger.info(
            "[%s] %s %s -> %s (%.1f ms)",
            request_id,
            request.method,
            request.path,
            response.status_code,
            duration_ms,
        )
        if duration_ms > app.config.get("SLOW_REQUEST_MS", 2000):
            app.logger.warning(
                "[%s] Slow request: %s %s took %.0f ms",
                request_id,
                request.method,
                request.path,
                duration_ms,
            )
        return response
