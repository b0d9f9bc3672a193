"""Recording and listing inspection results."""
from __future__ import annotations

from typing import Any

from flask import current_app
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from ...fiscal import work_week
from ...generic import (
    QueryOptions,
    ServiceResult,
    build_pagination,
    guard_database,
    validate_payload,
)
from ...models import utcnow
from ..defect.models import Defect
from .models import DefectData, InspectionData, IqaData
from .schemas import InspectionCreate, IqaCreate

DEFAULT_LIMIT = 20
MAX_LIMIT = 200
FILTER_FIELDS = ("station", "fy", "ww", "model", "lot_no")


class InspectionService:
    def __init__(self, db) -> None:
        self.db = db

    @property
    def session(self):
        return self.db.session

    @guard_database("Failed to record inspection")
    def create(self, data: Any, user_id: int | None = None) -> ServiceResult:
        values, errors = validate_payload(InspectionCreate, data)
        if errors:
            return ServiceResult.invalid(errors)

        existing = self.session.scalar(
            select(InspectionData.id).where(InspectionData.inspection_no == values["inspection_no"])
        )
        if existing is not None:
            return ServiceResult.invalid(
                [f"inspection_no: Inspection {values['inspection_no']} already exists"]
            )

        defect_lines = values.pop("defects")
        defect_ids = {line["defect_id"] for line in defect_lines}
        if defect_ids:
            known = set(self.session.scalars(select(Defect.id).where(Defect.id.in_(defect_ids))))
            missing = sorted(defect_ids - known)
            if missing:
                return ServiceResult.invalid([f"defects: Unknown defect id(s) {missing}"])

        inspected_at = values.get("inspected_at") or utcnow()
        fy, ww = work_week(inspected_at)
        values["inspected_at"] = inspected_at
        values["fy"] = values.get("fy") or fy
        values["ww"] = values.get("ww") or ww

        inspection = InspectionData(**values, created_by=user_id, updated_by=user_id)
        inspection.defects = [DefectData(**line) for line in defect_lines]
        try:
            self.session.add(inspection)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            current_app.logger.exception("Failed to record inspection %s", values["inspection_no"])
            return ServiceResult.fail("Failed to record inspection")

        current_app.logger.info(
            "Inspection %s recorded for lot %s (%s)",
            inspection.inspection_no,
            inspection.lot_no,
            "pass" if inspection.judgment else "fail",
        )
        return ServiceResult.ok(inspection.to_dict(), message="Inspection recorded successfully")

    @guard_database("Failed to list inspections")
    def get_all(self, options: QueryOptions, filters: dict[str, str]) -> ServiceResult:
        clauses = [
            getattr(InspectionData, name) == value
            for name, value in filters.items()
            if name in FILTER_FIELDS and value
        ]
        if options.search:
            clauses.append(
                or_(
                    InspectionData.inspection_no.icontains(options.search, autoescape=True),
                    InspectionData.lot_no.icontains(options.search, autoescape=True),
                    InspectionData.model.icontains(options.search, autoescape=True),
                )
            )

        limit = min(options.limit or DEFAULT_LIMIT, MAX_LIMIT)
        statement = select(InspectionData)
        count_statement = select(func.count(InspectionData.id))
        if clauses:
            statement = statement.where(*clauses)
            count_statement = count_statement.where(*clauses)
        order = InspectionData.inspected_at.desc()
        if "sort_order" in options.model_fields_set and options.sort_order == "asc":
            order = InspectionData.inspected_at.asc()

        rows = self.session.scalars(
            statement.order_by(order).limit(limit).offset((options.page - 1) * limit)
        )
        total = self.session.scalar(count_statement) or 0
        return ServiceResult.ok(
            [row.to_dict() for row in rows],
            pagination=build_pagination(options.page, limit, total),
        )

    @guard_database("Failed to load inspection")
    def get_by_inspection_no(self, inspection_no: str) -> ServiceResult:
        inspection = self.session.scalars(
            select(InspectionData).where(InspectionData.inspection_no == inspection_no)
        ).first()
        if inspection is None:
            return ServiceResult.not_found("Inspection", inspection_no)
        return ServiceResult.ok(inspection.to_dict())

    @guard_database("Failed to record IQA result")
    def create_iqa(self, data: Any, user_id: int | None = None) -> ServiceResult:
        values, errors = validate_payload(IqaCreate, data)
        if errors:
            return ServiceResult.invalid(errors)
        record = IqaData(**values, created_by=user_id)
        self.session.add(record)
        self.session.commit()
        return ServiceResult.ok(record.to_dict(), message="IQA result recorded successfully")

    @guard_database("Failed to list IQA results")
    def list_iqa(self, fy: str | None = None, ww: str | None = None) -> ServiceResult:
        statement = select(IqaData).order_by(IqaData.fy.desc(), IqaData.ww.desc(), IqaData.id.desc())
        if fy:
            statement = statement.where(IqaData.fy == fy)
        if ww:
            statement = statement.where(IqaData.ww == ww)
        return ServiceResult.ok([record.to_dict() for record in self.session.scalars(statement)])
