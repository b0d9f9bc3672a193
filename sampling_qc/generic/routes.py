"""Blueprint factory exposing an :class:`EntityService` over HTTP."""
from __future__ import annotations

from typing import Any

from flask import Blueprint, Response, jsonify, request
from pydantic import ValidationError

from ..middleware import current_user_id, require_authentication, require_role
from .config import QueryOptions, ServiceResult
from .service import EntityService, format_validation_errors

STATUS_BY_KIND = {
    "validation": 400,
    "not_found": 404,
    "conflict": 409,
    "unavailable": 503,
    "error": 500,
}


def respond(result: ServiceResult, success_status: int = 200) -> tuple[Response, int]:
    """Translate a service envelope into a JSON response."""

    if result.success:
        return jsonify(result.to_dict()), success_status
    return jsonify(result.to_dict()), STATUS_BY_KIND.get(result.kind or "error", 500)


def parse_query_options() -> QueryOptions | ServiceResult:
    try:
        return QueryOptions.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return ServiceResult.invalid(format_validation_errors(exc))


def json_body() -> Any:
    return request.get_json(silent=True)


def create_entity_blueprint(service: EntityService, import_name: str = __name__) -> Blueprint:
    """Build the standard CRUD routes for ``service``.

    The caller may attach extra routes to the returned blueprint before it
    is registered on the application.
    """

    config = service.config
    bp = Blueprint(config.blueprint_name, import_name)
    key_rule = "<int:key>" if config.key_type is int else "<string:key>"
    require_writer = require_role(config.write_role)

    @bp.post("")
    @require_writer
    def create_item():
        return respond(service.create(json_body(), current_user_id()), 201)

    @bp.get("")
    @require_authentication
    def list_items():
        options = parse_query_options()
        if isinstance(options, ServiceResult):
            return respond(options)
        return respond(service.get_all(options))

    @bp.get("/health")
    def health():
        return respond(service.health())

    @bp.get("/statistics")
    @require_authentication
    def statistics():
        return respond(service.statistics())

    @bp.get("/search/name")
    @require_authentication
    def search_by_name():
        return respond(service.search_by_name(request.args.get("name")))

    @bp.get(f"/{key_rule}")
    @require_authentication
    def get_item(key):
        return respond(service.get_by_id(key))

    @bp.put(f"/{key_rule}")
    @require_writer
    def update_item(key):
        return respond(service.update(key, json_body(), current_user_id()))

    @bp.delete(f"/{key_rule}")
    @require_writer
    def delete_item(key):
        return respond(service.delete(key))

    @bp.patch(f"/{key_rule}/status")
    @require_writer
    def change_status(key):
        return respond(service.change_status(key, current_user_id()))

    return bp
