"""Operator check-in mirror: MSSQL import plus the line and operator lookups."""
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
    ImportResult,
    MirrorService,
    as_datetime,
    start_of,
)
from ...services.mssql import MssqlSettings
from .models import InfCheckin
from .schemas import CheckinImportParams, CheckinQuery, LineMappingQuery

SOURCE_COLUMNS = {
    "id": "id",
    "LineNoId": "line_no_id",
    "WorkShiftId": "work_shift_id",
    "GrCode": "gr_code",
    "Username": "username",
    "Firstname": "oprname",
    "CreatedOn": "created_on",
    "CheckedOut": "checked_out",
    "TimeOffWork": "time_off_work",
    "Group": "group_code",
    "Team": "team",
    "TimeStartWork": "time_start_work",
    "DateTimeStartWork": "date_time_start_work",
    "DateTimeOffWork": "date_time_off_work",
}
DATETIME_COLUMNS = ("created_on", "checked_out", "date_time_start_work", "date_time_off_work")
TIME_COLUMNS = ("time_off_work", "time_start_work")
SEARCH_COLUMNS = ("username", "oprname", "line_no_id", "work_shift_id", "group_code", "team")


def _as_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def map_checkin_row(row: dict[str, Any]) -> dict[str, Any]:
    """Translate a ``dbo.CheckIn`` row into ``inf_checkin`` column values."""

    values = {column: row.get(source) for source, column in SOURCE_COLUMNS.items()}
    if values["id"] is None or str(values["id"]).strip() == "":
        raise ValueError("row has no id")
    values["id"] = str(values["id"]).strip()
    for column in DATETIME_COLUMNS:
        values[column] = as_datetime(values[column])
    for column in TIME_COLUMNS:
        values[column] = _as_text(values[column])
    return values


def _day_bounds(day: date) -> tuple[datetime, datetime]:
    return start_of(day), start_of(day + timedelta(days=1))


class CheckinService(MirrorService):
    """Reads and MSSQL synchronisation for ``inf_checkin``."""

    model = InfCheckin
    label = "check-in"
    params_schema = CheckinImportParams

    def map_row(self, row: dict[str, Any]) -> dict[str, Any]:
        return map_checkin_row(row)

    def fetch(self, settings: MssqlSettings, params: CheckinImportParams) -> list[dict[str, Any]]:
        return self.source.fetch_checkins(
            settings,
            params.date_from,
            params.date_to,
            limit=self.limit,
            created_after=params.created_after,
        )

    def last_created_on(self) -> datetime | None:
        return self.session.scalar(select(func.max(InfCheckin.created_on)))

    def resume_params(self) -> CheckinImportParams:
        last = self.last_created_on()
        if last is None:
            return CheckinImportParams(date_from=DEFAULT_IMPORT_START)
        current_app.logger.info("Check-in sync resuming after %s", last.isoformat())
        return CheckinImportParams(created_after=last)

    def import_auto(self, now: datetime | None = None) -> ImportResult:
        """Import everything created after the newest mirrored check-in."""

        try:
            params = self.resume_params()
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.exception("Check-in auto import aborted")
            return ImportResult(
                success=False, message=f"Import failed: {exc.__class__.__name__}", errors=[str(exc)]
            )
        return self.import_from_mssql(params, now=now)

    # -- reads --------------------------------------------------------------

    def _clauses(self, query: CheckinQuery) -> list:
        clauses = []
        if query.global_search:
            clauses.append(
                or_(
                    *(
                        getattr(InfCheckin, name).icontains(query.global_search, autoescape=True)
                        for name in SEARCH_COLUMNS
                    )
                )
            )
        if query.username:
            clauses.append(InfCheckin.username.icontains(query.username, autoescape=True))
        if query.oprname:
            clauses.append(InfCheckin.oprname.icontains(query.oprname, autoescape=True))
        for column, value in (
            (InfCheckin.line_no_id, query.line_no_id),
            (InfCheckin.work_shift_id, query.work_shift_id),
            (InfCheckin.group_code, query.group_code),
            (InfCheckin.team, query.team),
        ):
            if value:
                clauses.append(column == value)
        if query.status == "working":
            clauses.append(InfCheckin.date_time_off_work.is_(None))
        elif query.status == "checked_out":
            clauses.append(InfCheckin.date_time_off_work.is_not(None))
        if query.created_on_from:
            clauses.append(InfCheckin.created_on >= start_of(query.created_on_from))
        if query.created_on_to:
            clauses.append(InfCheckin.created_on < start_of(query.created_on_to + timedelta(days=1)))
        return clauses

    @guard_database("Failed to list check-in records")
    def get_all(self, query: CheckinQuery) -> ServiceResult:
        clauses = self._clauses(query)
        statement = select(InfCheckin).where(*clauses)
        total = self.session.scalar(select(func.count(InfCheckin.id)).where(*clauses)) or 0
        rows = self.session.scalars(
            statement.order_by(InfCheckin.created_on.desc(), InfCheckin.id.desc())
            .limit(query.limit)
            .offset((query.page - 1) * query.limit)
        ).all()
        return ServiceResult.ok(
            [row.to_dict() for row in rows],
            pagination=build_pagination(query.page, query.limit, total),
        )

    def _listing(self, *clauses) -> list[dict[str, Any]]:
        rows = self.session.scalars(
            select(InfCheckin).where(*clauses).order_by(InfCheckin.created_on.desc())
        )
        return [row.to_dict() for row in rows]

    @guard_database("Failed to load check-ins for user")
    def get_by_username(self, username: str) -> ServiceResult:
        return ServiceResult.ok(
            self._listing(InfCheckin.username.icontains(username.strip(), autoescape=True))
        )

    @guard_database("Failed to load check-ins for line")
    def get_by_line(self, line_id: str) -> ServiceResult:
        return ServiceResult.ok(self._listing(InfCheckin.line_no_id == line_id))

    @guard_database("Failed to load active workers")
    def get_active_workers(self) -> ServiceResult:
        return ServiceResult.ok(self._listing(InfCheckin.date_time_off_work.is_(None)))

    @guard_database("Failed to summarise check-in records")
    def get_statistics(self, now: datetime | None = None) -> ServiceResult:
        today = (now or utcnow()).date()
        column = InfCheckin.created_on
        return ServiceResult.ok(
            {
                "totalRecords": self.session.scalar(select(func.count(InfCheckin.id))) or 0,
                "totalToday": self._count_since(column, start_of(today)),
                "totalMonth": self._count_since(column, start_of(today.replace(day=1))),
                "totalYear": self._count_since(column, start_of(date(today.year, 1, 1))),
                "lastSync": isoformat(self.last_import_time()),
            }
        )

    @guard_database("Failed to load operators")
    def get_operators(self, gr_code: str | None = None) -> ServiceResult:
        statement = (
            select(InfCheckin.username, func.max(InfCheckin.oprname).label("oprname"))
            .where(InfCheckin.username.is_not(None))
            .group_by(InfCheckin.username)
            .order_by(InfCheckin.username)
        )
        if gr_code:
            statement = statement.where(InfCheckin.gr_code == gr_code)
        return ServiceResult.ok(
            [{"username": row.username, "oprname": row.oprname} for row in self.session.execute(statement)]
        )

    @guard_database("Failed to load check-in filter options")
    def get_filter_options(self) -> ServiceResult:
        return ServiceResult.ok(
            {
                "lineIds": self._distinct(InfCheckin.line_no_id),
                "workShiftIds": self._distinct(InfCheckin.work_shift_id),
                "groupCodes": self._distinct(InfCheckin.group_code),
                "teams": self._distinct(InfCheckin.team),
            }
        )

    @guard_database("Failed to load FVI line mapping")
    def get_line_mapping(self, query: LineMappingQuery) -> ServiceResult:
        """Stations staffed on one line, day and shift."""

        start, end = _day_bounds(query.work_date)
        statement = (
            select(InfCheckin.gr_code, InfCheckin.group_code, InfCheckin.username, InfCheckin.oprname)
            .where(
                InfCheckin.line_no_id == query.line,
                InfCheckin.work_shift_id == query.shift,
                InfCheckin.date_time_start_work >= start,
                InfCheckin.date_time_start_work < end,
            )
            .order_by(InfCheckin.gr_code)
        )
        return ServiceResult.ok(
            [
                {
                    "gr_code": row.gr_code,
                    "group_code": row.group_code,
                    "username": row.username,
                    "oprname": row.oprname,
                }
                for row in self.session.execute(statement)
            ]
        )

    @guard_database("Failed to load FVI lines")
    def get_lines_by_date(self, day: date) -> ServiceResult:
        start, end = _day_bounds(day)
        lines = self.session.scalars(
            select(InfCheckin.line_no_id)
            .where(
                InfCheckin.line_no_id.is_not(None),
                InfCheckin.date_time_start_work >= start,
                InfCheckin.date_time_start_work < end,
            )
            .distinct()
            .order_by(InfCheckin.line_no_id)
        )
        return ServiceResult.ok([{"line_no_id": line} for line in lines])
