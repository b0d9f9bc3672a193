"""Check-in routes mounted at ``/api/inf-checkin``."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from ...generic import ServiceResult, respond
from ...generic.service import format_validation_errors
from ...middleware import require_authentication, require_user
from ..inf_lotinput.service import ImportResult, SyncResult
from .schemas import CheckinImportParams, CheckinQuery, CheckinRangeParams, LineMappingQuery
from .service import CheckinService


def _outcome(result: ImportResult | SyncResult):
    return jsonify(result.to_dict()), 200 if result.success else 503


def _invalid(exc: ValidationError):
    return respond(ServiceResult.invalid(format_validation_errors(exc)))


def create_blueprint(db) -> Blueprint:
    bp = Blueprint("inf_checkin", __name__)

    def service() -> CheckinService:
        return CheckinService(
            db,
            current_app.extensions["mssql"],
            limit=current_app.config.get("MSSQL_IMPORT_LIMIT", 500),
        )

    def _list(args: dict):
        try:
            query = CheckinQuery.model_validate(args)
        except ValidationError as exc:
            return _invalid(exc)
        return respond(service().get_all(query))

    @bp.get("")
    @require_authentication
    def list_records():
        return _list(request.args.to_dict())

    @bp.get("/search")
    @require_authentication
    def search():
        args = request.args.to_dict()
        if "q" in args:
            args.setdefault("globalSearch", args.pop("q"))
        return _list(args)

    @bp.get("/user/<username>")
    @require_authentication
    def by_username(username: str):
        return respond(service().get_by_username(username))

    @bp.get("/line/<line_id>")
    @require_authentication
    def by_line(line_id: str):
        return respond(service().get_by_line(line_id))

    @bp.get("/active")
    @require_authentication
    def active_workers():
        return respond(service().get_active_workers())

    @bp.get("/statistics")
    @require_authentication
    def statistics():
        return respond(service().get_statistics())

    @bp.get("/operators")
    @require_authentication
    def operators():
        return respond(service().get_operators(request.args.get("gr_code") or None))

    @bp.get("/filter-options")
    @require_authentication
    def filter_options():
        return respond(service().get_filter_options())

    @bp.get("/fvi-line-mapping")
    @require_authentication
    def line_mapping():
        try:
            query = LineMappingQuery.model_validate(request.args.to_dict())
        except ValidationError as exc:
            return _invalid(exc)
        return respond(service().get_line_mapping(query))

    @bp.get("/fvi-lines-by-date")
    @require_authentication
    def lines_by_date():
        try:
            query = CheckinRangeParams.model_validate(
                {"dateFrom": request.args.get("date"), "dateTo": request.args.get("date")}
            )
        except ValidationError as exc:
            return _invalid(exc)
        return respond(service().get_lines_by_date(query.date_from))

    @bp.get("/health")
    def health():
        return respond(service().health_check())

    @bp.get("/sync")
    @require_user
    def sync_status():
        return _outcome(service().sync(auto_import=False))

    @bp.post("/sync")
    @require_user
    def sync():
        return _outcome(service().sync())

    @bp.post("/import")
    @require_user
    def import_window():
        try:
            params = CheckinImportParams.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            return _invalid(exc)
        return _outcome(service().import_from_mssql(params))

    @bp.post("/import/today")
    @require_user
    def import_today():
        return _outcome(service().import_today())

    @bp.post("/import/range")
    @require_user
    def import_range():
        try:
            params = CheckinRangeParams.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            return _invalid(exc)
        return _outcome(service().import_range(params.date_from, params.date_to))

    @bp.post("/import/auto")
    @require_user
    def import_auto():
        return _outcome(service().import_auto())

    return bp
