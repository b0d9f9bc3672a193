"""Session authentication routes mounted at ``/api/auth``."""
from __future__ import annotations

from flask import Blueprint, jsonify, request, session
from pydantic import ValidationError

from ...extensions import db
from ...generic import ServiceResult, respond
from ...generic.service import format_validation_errors
from ...middleware import current_user, current_user_id, error_response, require_authentication
from ...models import User, utcnow
from .service import LoginRequest, PasswordChange, authenticate, change_password

auth_bp = Blueprint("auth", __name__)


@auth_bp.post("/login")
def login():
    try:
        credentials = LoginRequest.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return respond(ServiceResult.invalid(format_validation_errors(exc)))

    result = authenticate(credentials.username, credentials.password)
    if not result.success:
        return error_response(result.error, "INVALID_CREDENTIALS", 401)

    user: User = result.data
    session.clear()
    session.permanent = True
    session["user"] = user.session_payload()
    session["login_time"] = utcnow().isoformat()
    return jsonify({"success": True, "data": {"user": user.to_dict()}, "message": "Login successful"})


@auth_bp.get("/status")
def status():
    user = session.get("user")
    return jsonify(
        {
            "success": True,
            "data": {
                "authenticated": user is not None,
                "user": user,
                "login_time": session.get("login_time"),
            },
        }
    )


@auth_bp.post("/logout")
def logout():
    username = (session.get("user") or {}).get("username")
    session.clear()
    return jsonify({"success": True, "message": f"{username} logged out" if username else "Logged out"})


@auth_bp.get("/profile")
@require_authentication
def profile():
    user = db.session.get(User, current_user_id())
    if user is None or not user.is_active:
        session.clear()
        return error_response("Session user no longer exists", "INVALID_SESSION", 401)
    return jsonify({"success": True, "data": user.to_dict()})


@auth_bp.put("/password")
@require_authentication
def password():
    try:
        change = PasswordChange.model_validate(request.get_json(silent=True) or {})
    except ValidationError as exc:
        return respond(ServiceResult.invalid(format_validation_errors(exc)))
    return respond(change_password(current_user_id(), change))


@auth_bp.get("/health")
def health():
    return jsonify(
        {
            "success": True,
            "data": {
                "status": "healthy",
                "session_user": (current_user() or session.get("user") or {}).get("username"),
                "timestamp": utcnow().isoformat(),
            },
        }
    )
