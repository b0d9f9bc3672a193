"""Interval-driven import of lot input rows from MSSQL."""
from __future__ import annotations

from datetime import date, datetime, timedelta
from typing import Any

from flask import current_app
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError

from ...generic import ServiceResult, build_pagination, guard_database
from ...models import isoformat, utcnow
from ...services.mirror import (
    DEFAULT_IMPORT_START,
    ImportCounts,
    ImportResult,
    MirrorService,
    SyncResult,
    as_datetime,
    start_of,
)
from ...services.mssql import MssqlSettings
from .models import InfLotInput
from .schemas import ImportParams, LotInputQuery

__all__ = [
    "DEFAULT_IMPORT_START",
    "ImportCounts",
    "ImportResult",
    "LotInputService",
    "SyncResult",
    "map_source_row",
]

SOURCE_COLUMNS = {
    "Id": "id",
    "LotNo": "lot_no",
    "PartSite": "part_site",
    "LineNo": "line_no",
    "ItemNo": "item_no",
    "Model": "model",
    "Version": "version",
    "InputDate": "input_date",
    "FinishOn": "finish_on",
}
DATETIME_COLUMNS = ("input_date", "finish_on")


def map_source_row(row: dict[str, Any]) -> dict[str, Any]:
    """Translate a ``dbo.Input`` row into ``inf_lotinput`` column values."""

    values = {column: row.get(source) for source, column in SOURCE_COLUMNS.items()}
    if values["id"] is None or str(values["id"]).strip() == "":
        raise ValueError("row has no Id")
    if not values["lot_no"]:
        raise ValueError("row has no LotNo")

    values["id"] = str(values["id"]).strip()
    values["lot_no"] = str(values["lot_no"]).strip()
    if not values["line_no"]:
        values["line_no"] = values["lot_no"][:3]
    for column in DATETIME_COLUMNS:
        values[column] = as_datetime(values[column])
    return values


class LotInputService(MirrorService):
    """Reads, statistics and MSSQL synchronisation for ``inf_lotinput``."""

    model = InfLotInput
    label = "lot input"
    params_schema = ImportParams

    def map_row(self, row: dict[str, Any]) -> dict[str, Any]:
        return map_source_row(row)

    def fetch(self, settings: MssqlSettings, params: ImportParams) -> list[dict[str, Any]]:
        return self.source.fetch_lot_inputs(
            settings, params.date_from, params.date_to, limit=self.limit
        )

    def last_input_date(self) -> date | None:
        latest = self.session.scalar(select(func.max(InfLotInput.input_date)))
        return latest.date() if latest else None

    def resume_params(self) -> ImportParams:
        date_from = self.last_input_date() or DEFAULT_IMPORT_START
        current_app.logger.info("Lot input sync resuming from %s", date_from.isoformat())
        return ImportParams(date_from=date_from)

    # -- reads --------------------------------------------------------------

    def get_all(self, query: LotInputQuery) -> ServiceResult:
        clauses = []
        if query.lot_no_search:
            clauses.append(InfLotInput.lot_no.icontains(query.lot_no_search, autoescape=True))
        if query.item_no_search:
            clauses.append(InfLotInput.item_no.icontains(query.item_no_search, autoescape=True))
        if query.global_search:
            clauses.append(
                or_(
                    *(
                        column.icontains(query.global_search, autoescape=True)
                        for column in (
                            InfLotInput.lot_no,
                            InfLotInput.item_no,
                            InfLotInput.model,
                            InfLotInput.part_site,
                        )
                    )
                )
            )
        for column, value in (
            (InfLotInput.part_site, query.part_site),
            (InfLotInput.line_no, query.line_no),
            (InfLotInput.model, query.model),
            (InfLotInput.version, query.version),
        ):
            if value:
                clauses.append(column == value)
        if query.input_date_from:
            clauses.append(InfLotInput.input_date >= start_of(query.input_date_from))
        if query.input_date_to:
            clauses.append(InfLotInput.input_date < start_of(query.input_date_to + timedelta(days=1)))

        statement = select(InfLotInput)
        count_statement = select(func.count(InfLotInput.id))
        if clauses:
            statement = statement.where(*clauses)
            count_statement = count_statement.where(*clauses)

        try:
            rows = self.session.scalars(
                statement.order_by(InfLotInput.input_date.desc(), InfLotInput.id.desc())
                .limit(query.limit)
                .offset((query.page - 1) * query.limit)
            ).all()
            total = self.session.scalar(count_statement) or 0
        except SQLAlchemyError:
            self.session.rollback()
            current_app.logger.exception("Failed to list lot input records")
            return ServiceResult.fail("Failed to list lot input records")

        return ServiceResult.ok(
            [row.to_dict() for row in rows],
            pagination=build_pagination(query.page, query.limit, total),
        )

    @guard_database("Failed to load lot input records")
    def get_by_lot_number(self, lot_no: str) -> ServiceResult:
        records = self.session.scalars(
            select(InfLotInput)
            .where(InfLotInput.lot_no == lot_no.strip())
            .order_by(InfLotInput.input_date.desc())
        ).all()
        if not records:
            return ServiceResult.not_found("Lot", lot_no)
        return ServiceResult.ok([record.to_dict() for record in records])

    @guard_database("Failed to summarise lot input records")
    def get_statistics(self, now: datetime | None = None) -> ServiceResult:
        today = (now or utcnow()).date()
        column = InfLotInput.input_date
        return ServiceResult.ok(
            {
                "total": self.session.scalar(select(func.count(InfLotInput.id))) or 0,
                "today": self._count_since(column, start_of(today)),
                "this_month": self._count_since(column, start_of(today.replace(day=1))),
                "this_year": self._count_since(column, start_of(date(today.year, 1, 1))),
                "last_sync": isoformat(self.last_import_time()),
            }
        )

    @guard_database("Failed to load lot input filter options")
    def get_filter_options(self) -> ServiceResult:
        return ServiceResult.ok(
            {
                "part_sites": self._distinct(InfLotInput.part_site),
                "line_nos": self._distinct(InfLotInput.line_no),
                "models": self._distinct(InfLotInput.model),
                "versions": self._distinct(InfLotInput.version),
            }
        )
