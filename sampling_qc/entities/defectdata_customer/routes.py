"""Customer defect record routes mounted at ``/api/defectdata-customer``."""
from __future__ import annotations

from flask import Blueprint, request
from pydantic import BaseModel, ValidationError

from ...generic import EntityRepository, ServiceResult, create_entity_blueprint, respond
from ...generic.service import format_validation_errors
from ...middleware import current_user_id, require_authentication, require_user
from .schemas import DateWindow, DefectRecordSearch, StationQuery, TrendQuery
from .service import DEFECTDATA_CUSTOMER_CONFIG, CustomerDefectService


def _parse(schema: type[BaseModel], data) -> BaseModel | ServiceResult:
    try:
        return schema.model_validate(data or {})
    except ValidationError as exc:
        return ServiceResult.invalid(format_validation_errors(exc))


def create_blueprint(db) -> Blueprint:
    service = CustomerDefectService(EntityRepository(db, DEFECTDATA_CUSTOMER_CONFIG))
    bp = create_entity_blueprint(service, __name__)

    @bp.get("/inspection/<inspection_no>")
    @bp.get("/detail/<inspection_no>")
    @require_authentication
    def by_inspection(inspection_no: str):
        return respond(service.by_inspection(inspection_no))

    @bp.get("/station/<station>")
    @require_authentication
    def by_station(station: str):
        query = _parse(StationQuery, request.args.to_dict())
        if isinstance(query, ServiceResult):
            return respond(query)
        return respond(service.by_station(station, query.start_date, query.end_date, query.limit))

    @bp.get("/inspector/<inspector>")
    @require_authentication
    def by_inspector(inspector: str):
        return respond(service.by_inspector(inspector, request.args.get("limit", 100, type=int)))

    @bp.get("/inspector/<inspector>/performance")
    @require_authentication
    def inspector_performance(inspector: str):
        return respond(service.inspector_performance(inspector))

    @bp.get("/<int:key>/profile")
    @require_authentication
    def profile(key: int):
        return respond(service.profile(key))

    @bp.get("/summary")
    @require_authentication
    def summary():
        window = _parse(DateWindow, request.args.to_dict())
        if isinstance(window, ServiceResult):
            return respond(window)
        return respond(service.summary(window.start_date, window.end_date))

    @bp.get("/trends")
    @require_authentication
    def trends():
        query = _parse(TrendQuery, request.args.to_dict())
        if isinstance(query, ServiceResult):
            return respond(query)
        return respond(service.trends(query.days))

    @bp.get("/today")
    @require_authentication
    def today():
        return respond(service.today())

    @bp.post("/search")
    @require_authentication
    def search():
        criteria = _parse(DefectRecordSearch, request.get_json(silent=True))
        if isinstance(criteria, ServiceResult):
            return respond(criteria)
        return respond(service.search(criteria))

    @bp.post("/bulk")
    @require_user
    def bulk_create():
        body = request.get_json(silent=True)
        items = body.get("records") if isinstance(body, dict) else body
        return respond(service.bulk_create(items, current_user_id()), 201)

    return bp
