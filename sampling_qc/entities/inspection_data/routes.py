"""Inspection data routes mounted at ``/api/inspectiondata``."""
from __future__ import annotations

from flask import Blueprint, request

from ...generic import ServiceResult, respond
from ...generic.routes import json_body, parse_query_options
from ...middleware import current_user_id, require_authentication, require_user
from .service import FILTER_FIELDS, InspectionService


def inspection_data_routes(db) -> Blueprint:
    service = InspectionService(db)
    bp = Blueprint("inspection_data", __name__)

    @bp.get("")
    @require_authentication
    def list_inspections():
        options = parse_query_options()
        if isinstance(options, ServiceResult):
            return respond(options)
        filters = {name: request.args.get(name, "") for name in FILTER_FIELDS}
        return respond(service.get_all(options, filters))

    @bp.post("")
    @require_user
    def create_inspection():
        return respond(service.create(json_body(), current_user_id()), 201)

    @bp.get("/iqa")
    @require_authentication
    def list_iqa():
        return respond(service.list_iqa(request.args.get("fy"), request.args.get("ww")))

    @bp.post("/iqa")
    @require_user
    def create_iqa():
        return respond(service.create_iqa(json_body(), current_user_id()), 201)

    @bp.get("/<inspection_no>")
    @require_authentication
    def get_inspection(inspection_no: str):
        return respond(service.get_by_inspection_no(inspection_no))

    return bp
