"""Report routes mounted at ``/api/report``."""
from __future__ import annotations

import re

from flask import Blueprint, current_app, request
from pydantic import BaseModel, ValidationError

from ...generic import ServiceResult, respond
from ...generic.service import format_validation_errors
from ...middleware import require_authentication
from .schemas import YEAR_PATTERN, PeriodFilter, WeekFilter
from .service import ReportService


def _parse(schema: type[BaseModel]) -> BaseModel | ServiceResult:
    try:
        return schema.model_validate(request.args.to_dict())
    except ValidationError as exc:
        return ServiceResult.invalid(format_validation_errors(exc))


def get_router(db) -> Blueprint:
    bp = Blueprint("report", __name__)

    def service() -> ReportService:
        return ReportService(db, current_app.config.get("REPORT_DPPM_TARGET", 150))

    def with_filter(schema: type[BaseModel], operation):
        parsed = _parse(schema)
        if isinstance(parsed, ServiceResult):
            return respond(parsed)
        return respond(operation(parsed))

    @bp.get("/lar-chart")
    @require_authentication
    def lar_chart():
        return with_filter(PeriodFilter, service().lar_chart)

    @bp.get("/lar-defect")
    @require_authentication
    def lar_defect():
        return with_filter(PeriodFilter, service().lar_defect)

    @bp.get("/oqa-dppm")
    @require_authentication
    def oqa_dppm():
        return with_filter(PeriodFilter, service().oqa_dppm)

    @bp.get("/iqa-result")
    @require_authentication
    def iqa_result():
        return with_filter(WeekFilter, service().iqa_result)

    @bp.get("/models")
    @require_authentication
    def models():
        return respond(service().models())

    @bp.get("/fiscal-years")
    @require_authentication
    def fiscal_years():
        return respond(service().fiscal_years())

    @bp.get("/work-weeks")
    @require_authentication
    def work_weeks():
        fy = request.args.get("fy")
        if fy and not re.match(YEAR_PATTERN, fy):
            return respond(ServiceResult.invalid(["fy: Fiscal year must be four digits"]))
        return respond(service().work_weeks(fy))

    return bp
