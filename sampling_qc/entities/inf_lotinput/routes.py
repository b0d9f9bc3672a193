"""Lot input routes mounted at ``/api/inf-lotinput``."""
from __future__ import annotations

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from ...generic import ServiceResult, respond
from ...generic.service import format_validation_errors
from ...middleware import require_authentication, require_user
from .schemas import ImportParams, LotInputQuery, RangeImportParams
from .service import ImportResult, LotInputService, SyncResult


def _outcome(result: ImportResult | SyncResult):
    return jsonify(result.to_dict()), 200 if result.success else 503


def create_blueprint(db) -> Blueprint:
    bp = Blueprint("inf_lotinput", __name__)

    def service() -> LotInputService:
        return LotInputService(
            db,
            current_app.extensions["mssql"],
            limit=current_app.config.get("MSSQL_IMPORT_LIMIT", 500),
        )

    def _import_with(schema: type[ImportParams], run):
        try:
            params = schema.model_validate(request.get_json(silent=True) or {})
        except ValidationError as exc:
            return respond(ServiceResult.invalid(format_validation_errors(exc)))
        return _outcome(run(params))

    @bp.get("")
    @require_authentication
    def list_records():
        try:
            query = LotInputQuery.model_validate(request.args.to_dict())
        except ValidationError as exc:
            return respond(ServiceResult.invalid(format_validation_errors(exc)))
        return respond(service().get_all(query))

    @bp.get("/lot/<lot_no>")
    @require_authentication
    def by_lot(lot_no: str):
        return respond(service().get_by_lot_number(lot_no))

    @bp.get("/statistics")
    @require_authentication
    def statistics():
        return respond(service().get_statistics())

    @bp.get("/filter-options")
    @require_authentication
    def filter_options():
        return respond(service().get_filter_options())

    @bp.get("/health")
    def health():
        return respond(service().health_check())

    @bp.route("/sync", methods=["GET", "POST"])
    @require_user
    def sync():
        return _outcome(service().sync())

    @bp.post("/import")
    @require_user
    def import_window():
        return _import_with(ImportParams, service().import_from_mssql)

    @bp.post("/import/today")
    @require_user
    def import_today():
        return _outcome(service().import_today())

    @bp.post("/import/range")
    @require_user
    def import_range():
        return _import_with(
            RangeImportParams,
            lambda params: service().import_range(params.date_from, params.date_to),
        )

    return bp
