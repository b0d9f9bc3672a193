"""Interval-driven mirroring of MSSQL rows into a local table.

Subclasses name the local model, translate one source row into column
values, fetch rows from the connection manager and decide where the next
sync resumes. Everything else (the interval check, per-row upserts and the
imported/updated/skipped bookkeeping) lives here.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from typing import Any, ClassVar

from flask import current_app
from pydantic import ValidationError
from sqlalchemy import func, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from ..generic import ServiceResult
from ..generic.service import format_validation_errors
from ..models import SysConfig, isoformat, utcnow
from .mssql import MssqlError, MssqlSettings

DEFAULT_IMPORT_START = date(2024, 1, 1)

UPSERT_BUILDERS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class ImportCounts:
    imported: int = 0
    updated: int = 0
    skipped: int = 0

    @property
    def total(self) -> int:
        return self.imported + self.updated + self.skipped

    def to_dict(self) -> dict[str, int]:
        return {"imported": self.imported, "updated": self.updated, "skipped": self.skipped}


@dataclass
class ImportResult:
    success: bool
    message: str
    counts: ImportCounts = field(default_factory=ImportCounts)
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "message": self.message,
            "data": self.counts.to_dict(),
            "errors": self.errors,
        }


@dataclass
class SyncResult:
    success: bool
    should_import: bool
    message: str
    counts: ImportCounts | None = None
    last_import_time: datetime | None = None
    next_import_time: datetime | None = None
    sync_interval_minutes: int | None = None
    errors: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "shouldImport": self.should_import,
            "message": self.message,
            "data": self.counts.to_dict() if self.counts else None,
            "lastImportTime": isoformat(self.last_import_time),
            "nextImportTime": isoformat(self.next_import_time),
            "syncIntervalMinutes": self.sync_interval_minutes,
            "errors": self.errors,
        }


def as_datetime(value: Any) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    return datetime.fromisoformat(str(value))


def start_of(day: date) -> datetime:
    return datetime.combine(day, time.min)


class MirrorService:
    """Base for services that copy an MSSQL table into the primary store.

    ``source`` is anything exposing the fetch method a subclass calls; in
    production that is the application's
    :class:`~sampling_qc.services.mssql.MssqlConnectionManager`.
    """

    model: ClassVar[type]
    label: ClassVar[str] = "record"
    params_schema: ClassVar[type]

    def __init__(self, db, source, limit: int = 500) -> None:
        self.db = db
        self.source = source
        self.limit = limit

    @property
    def session(self):
        return self.db.session

    # -- hooks --------------------------------------------------------------

    def map_row(self, row: dict[str, Any]) -> dict[str, Any]:
        raise NotImplementedError

    def fetch(self, settings: MssqlSettings, params: Any) -> list[dict[str, Any]]:
        raise NotImplementedError

    def resume_params(self) -> Any:
        """Parameters for the import a due sync runs."""

        raise NotImplementedError

    # -- sync ---------------------------------------------------------------

    def last_import_time(self) -> datetime | None:
        return self.session.scalar(select(func.max(self.model.imported_at)))

    def sync(self, now: datetime | None = None, auto_import: bool = True) -> SyncResult:
        """Import when no import happened yet or the configured interval has elapsed.

        With ``auto_import`` off the result only reports whether an import is due.
        """

        now = now or utcnow()
        try:
            config = SysConfig.latest()
            interval = config.mssql_sync if config else None
            last_import = self.last_import_time()

            if last_import is not None:
                if not interval:
                    return SyncResult(
                        success=False,
                        should_import=False,
                        message="MSSQL sync interval not configured in sysconfig",
                        last_import_time=last_import,
                    )
                next_import = last_import + timedelta(minutes=interval)
                if now < next_import:
                    current_app.logger.debug(
                        "%s sync skipped; next import due at %s", self.label, next_import.isoformat()
                    )
                    return SyncResult(
                        success=True,
                        should_import=False,
                        message=f"Next import scheduled at {next_import.isoformat()}",
                        last_import_time=last_import,
                        next_import_time=next_import,
                        sync_interval_minutes=interval,
                    )

            if not auto_import:
                return SyncResult(
                    success=True,
                    should_import=True,
                    message="Import should run (sync interval elapsed)",
                    last_import_time=last_import,
                    sync_interval_minutes=interval,
                )
            params = self.resume_params()
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.exception("%s sync failed", self.label)
            return SyncResult(
                success=False,
                should_import=False,
                message=f"Sync failed: {exc.__class__.__name__}",
                errors=[str(exc)],
            )

        current_app.logger.info("%s sync starting", self.label)
        result = self.import_from_mssql(params, now=now)
        return SyncResult(
            success=result.success,
            should_import=True,
            message=result.message,
            counts=result.counts,
            last_import_time=last_import,
            next_import_time=now + timedelta(minutes=interval) if interval else None,
            sync_interval_minutes=interval,
            errors=result.errors,
        )

    # -- import -------------------------------------------------------------

    def _upsert_statement(self, values: dict[str, Any]):
        builder = UPSERT_BUILDERS[self.db.engine.dialect.name]
        statement = builder(self.model).values(**values)
        return statement.on_conflict_do_update(
            index_elements=[self.model.id],
            set_={name: statement.excluded[name] for name in values if name != "id"},
        )

    def _write_row(self, values: dict[str, Any]) -> bool:
        """Upsert one row in its own transaction; return ``True`` if it existed."""

        exists = (
            self.session.scalar(select(self.model.id).where(self.model.id == values["id"]))
            is not None
        )
        if self.db.engine.dialect.name in UPSERT_BUILDERS:
            self.session.execute(self._upsert_statement(values))
        else:
            self.session.merge(self.model(**values))
        self.session.commit()
        return exists

    def import_rows(self, rows: list[dict[str, Any]], now: datetime | None = None) -> ImportResult:
        now = now or utcnow()
        counts = ImportCounts()
        errors: list[str] = []

        for row in rows:
            label = row.get("Id", row.get("id", "?"))
            try:
                values = self.map_row(row)
            except (TypeError, ValueError) as exc:
                counts.skipped += 1
                errors.append(f"Row {label}: {exc}")
                continue

            values["imported_at"] = now
            try:
                existed = self._write_row(values)
            except SQLAlchemyError as exc:
                self.session.rollback()
                counts.skipped += 1
                errors.append(f"Row {label}: {exc.__class__.__name__}: {exc}")
                current_app.logger.warning("Skipping %s row %s: %s", self.label, label, exc)
                continue

            if existed:
                counts.updated += 1
            else:
                counts.imported += 1

        message = (
            f"Successfully processed {counts.total} records: {counts.imported} imported, "
            f"{counts.updated} updated, {counts.skipped} skipped"
        )
        current_app.logger.info("%s import finished. %s", self.label.capitalize(), message)
        return ImportResult(success=True, message=message, counts=counts, errors=errors)

    def import_from_mssql(self, params: Any = None, now: datetime | None = None) -> ImportResult:
        if not isinstance(params, self.params_schema):
            try:
                params = self.params_schema.model_validate(params or {})
            except ValidationError as exc:
                return ImportResult(
                    success=False,
                    message="Invalid import parameters",
                    errors=format_validation_errors(exc),
                )

        try:
            settings = MssqlSettings.from_sysconfig(SysConfig.latest())
            rows = self.fetch(settings, params)
        except MssqlError as exc:
            current_app.logger.error("%s import aborted: %s", self.label.capitalize(), exc)
            return ImportResult(success=False, message=str(exc), errors=[str(exc)])
        except SQLAlchemyError as exc:
            self.session.rollback()
            current_app.logger.exception("%s import aborted", self.label.capitalize())
            return ImportResult(
                success=False, message=f"Import failed: {exc.__class__.__name__}", errors=[str(exc)]
            )

        if not rows:
            return ImportResult(success=True, message="No records found to import")
        return self.import_rows(rows, now=now)

    def import_today(self, now: datetime | None = None) -> ImportResult:
        today = (now or utcnow()).date()
        return self.import_from_mssql({"dateFrom": today, "dateTo": today}, now=now)

    def import_range(self, date_from: date, date_to: date, now: datetime | None = None) -> ImportResult:
        return self.import_from_mssql({"dateFrom": date_from, "dateTo": date_to}, now=now)

    # -- reads --------------------------------------------------------------

    def _distinct(self, column) -> list[str]:
        return list(
            self.session.scalars(
                select(column).where(column.is_not(None)).distinct().order_by(column)
            )
        )

    def _count_since(self, column, start: datetime) -> int:
        return self.session.scalar(
            select(func.count(self.model.id)).where(column >= start)
        ) or 0

    def health_check(self) -> ServiceResult:
        try:
            total = self.session.scalar(select(func.count(self.model.id))) or 0
            last_sync = self.last_import_time()
            config = SysConfig.latest()
        except SQLAlchemyError:
            self.session.rollback()
            current_app.logger.exception("%s health check failed", self.label.capitalize())
            return ServiceResult.fail(
                f"{self.label.capitalize()} storage is unreachable", kind="unavailable"
            )

        return ServiceResult.ok(
            {
                "status": "healthy",
                "record_count": total,
                "last_sync": isoformat(last_sync),
                "mssql_configured": bool(
                    config and config.mssql_server and config.mssql_database and config.mssql_username
                ),
                "sync_interval_minutes": config.mssql_sync if config else None,
            }
        )
