"""Lot acceptance and defect-rate aggregations over inspection records."""
from __future__ import annotations

from typing import Any

from sqlalchemy import case, func, select

from ...generic import ServiceResult, guard_database
from ..defect.models import Defect
from ..inspection_data.models import DefectData, InspectionData, IqaData
from .schemas import PeriodFilter, WeekFilter

OQA_STATION = "OQA"
FIRST_ROUND = 1


def lot_acceptance_rate(passed: int, total: int) -> float:
    return round(passed / total * 100, 2) if total else 0.0


def dppm(defects: int, inspected: int) -> float:
    """Defective parts per million inspected."""

    return round(defects / inspected * 1_000_000, 2) if inspected else 0.0


class ReportService:
    def __init__(self, db, dppm_target: float = 150) -> None:
        self.db = db
        self.dppm_target = dppm_target

    @property
    def session(self):
        return self.db.session

    @staticmethod
    def _period_clauses(period: PeriodFilter) -> list:
        week_key = InspectionData.fy + InspectionData.ww
        clauses = [
            InspectionData.station == OQA_STATION,
            InspectionData.round == FIRST_ROUND,
        ]
        if period.model:
            clauses.append(InspectionData.model == period.model)
        if period.start:
            clauses.append(week_key >= period.start)
        if period.end:
            clauses.append(week_key <= period.end)
        return clauses

    @staticmethod
    def _lot_totals():
        return (
            func.count(InspectionData.id).label("total_lot"),
            func.coalesce(
                func.sum(case((InspectionData.judgment.is_(True), 1), else_=0)), 0
            ).label("pass_lot"),
            func.coalesce(
                func.sum(case((InspectionData.judgment.is_(False), 1), else_=0)), 0
            ).label("fail_lot"),
            func.coalesce(func.sum(InspectionData.sampling_qty), 0).label("total_inspection"),
            func.coalesce(func.sum(InspectionData.ng_qty), 0).label("total_ng"),
        )

    @staticmethod
    def _rates(row) -> dict[str, Any]:
        return {
            "total_lot": row.total_lot,
            "pass": row.pass_lot,
            "fail": row.fail_lot,
            "total_inspection": row.total_inspection,
            "total_ng": row.total_ng,
            "lar": lot_acceptance_rate(row.pass_lot, row.total_lot),
            "dppm": dppm(row.total_ng, row.total_inspection),
        }

    @guard_database("Failed to build LAR chart")
    def lar_chart(self, period: PeriodFilter) -> ServiceResult:
        """LAR and DPPM per fiscal week and model."""

        statement = (
            select(InspectionData.fy, InspectionData.ww, InspectionData.model, *self._lot_totals())
            .where(*self._period_clauses(period))
            .group_by(InspectionData.fy, InspectionData.ww, InspectionData.model)
            .order_by(InspectionData.fy, InspectionData.ww, InspectionData.model)
        )
        rows = [
            {"fy": row.fy, "ww": row.ww, "model": row.model, **self._rates(row)}
            for row in self.session.execute(statement)
        ]
        return ServiceResult.ok(rows)

    @guard_database("Failed to build LAR defect breakdown")
    def lar_defect(self, period: PeriodFilter) -> ServiceResult:
        """NG quantity per fiscal week and defect name."""

        statement = (
            select(
                InspectionData.fy,
                InspectionData.ww,
                Defect.name.label("defect_name"),
                func.sum(DefectData.ng_qty).label("ng_qty"),
            )
            .join(DefectData, DefectData.inspection_no == InspectionData.inspection_no)
            .join(Defect, Defect.id == DefectData.defect_id)
            .where(*self._period_clauses(period))
            .group_by(InspectionData.fy, InspectionData.ww, Defect.name)
            .order_by(InspectionData.fy, InspectionData.ww, func.sum(DefectData.ng_qty).desc())
        )
        rows = [
            {"fy": row.fy, "ww": row.ww, "defect_name": row.defect_name, "ng_qty": row.ng_qty}
            for row in self.session.execute(statement)
        ]
        return ServiceResult.ok(rows)

    @guard_database("Failed to build OQA DPPM report")
    def oqa_dppm(self, period: PeriodFilter) -> ServiceResult:
        statement = (
            select(InspectionData.fy, InspectionData.ww, *self._lot_totals())
            .where(*self._period_clauses(period))
            .group_by(InspectionData.fy, InspectionData.ww)
            .order_by(InspectionData.fy, InspectionData.ww)
        )
        weeks = []
        for row in self.session.execute(statement):
            rates = self._rates(row)
            weeks.append(
                {
                    "fy": row.fy,
                    "ww": row.ww,
                    **rates,
                    "meets_target": rates["dppm"] <= self.dppm_target,
                }
            )
        return ServiceResult.ok({"dppmTarget": self.dppm_target, "weeks": weeks})

    @guard_database("Failed to build IQA result")
    def iqa_result(self, week: WeekFilter) -> ServiceResult:
        """Incoming QA lot acceptance per model for one fiscal week."""

        statement = (
            select(
                IqaData.model,
                func.count(IqaData.id).label("total_lot"),
                func.coalesce(func.sum(case((IqaData.rej == 0, 1), else_=0)), 0).label("accepted"),
                func.coalesce(func.sum(case((IqaData.rej > 0, 1), else_=0)), 0).label("rejected"),
                func.coalesce(func.sum(IqaData.rej), 0).label("rejected_qty"),
                func.coalesce(func.sum(IqaData.qty), 0).label("total_qty"),
            )
            .where(IqaData.fy == week.year, IqaData.ww == week.ww)
            .group_by(IqaData.model)
            .order_by(IqaData.model)
        )
        rows = [
            {
                "model": row.model,
                "total_lot": row.total_lot,
                "accepted": row.accepted,
                "rejected": row.rejected,
                "rejected_qty": row.rejected_qty,
                "total_qty": row.total_qty,
                "lar": lot_acceptance_rate(row.accepted, row.total_lot),
            }
            for row in self.session.execute(statement)
        ]
        return ServiceResult.ok({"fy": week.year, "ww": week.ww, "models": rows})

    @guard_database("Failed to list models")
    def models(self) -> ServiceResult:
        return ServiceResult.ok(
            list(
                self.session.scalars(
                    select(InspectionData.model).distinct().order_by(InspectionData.model)
                )
            )
        )

    @guard_database("Failed to list fiscal years")
    def fiscal_years(self) -> ServiceResult:
        return ServiceResult.ok(
            list(
                self.session.scalars(
                    select(InspectionData.fy).distinct().order_by(InspectionData.fy.desc())
                )
            )
        )

    @guard_database("Failed to list work weeks")
    def work_weeks(self, fy: str | None = None) -> ServiceResult:
        statement = select(InspectionData.ww).distinct().order_by(InspectionData.ww)
        if fy:
            statement = statement.where(InspectionData.fy == fy)
        return ServiceResult.ok(list(self.session.scalars(statement)))
