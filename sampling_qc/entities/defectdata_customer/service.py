"""Customer defect records: generic CRUD plus inspector and trend analytics."""
from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Any

from flask import current_app
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError

from ...generic import (
    EntityConfig,
    EntityRepository,
    EntityService,
    ServiceResult,
    build_pagination,
    guard_database,
    validate_payload,
)
from ...models import isoformat, utcnow
from ...services.mirror import start_of
from ..defect.models import Defect
from ..defect_customer_image.models import DefectCustomerImage
from .models import DefectDataCustomer
from .schemas import DefectRecordCreate, DefectRecordSearch, DefectRecordUpdate

IMAGE_ROUTE = "/api/defect-customer-image"
MAX_BULK = 100
RELATED_LIMIT = 10
TOP_LIMIT = 10


def known_defect(repository: EntityRepository, values: dict[str, Any], key: Any) -> str | None:
    defect_id = values.get("defect_id")
    if defect_id is not None and repository.session.get(Defect, defect_id) is None:
        return f"defect_id: Defect {defect_id} does not exist"
    return None


def default_defect_date(values: dict[str, Any], operation: str) -> dict[str, Any]:
    if operation == "create" and values.get("defect_date") is None:
        values["defect_date"] = utcnow()
    return values


DEFECTDATA_CUSTOMER_CONFIG = EntityConfig(
    entity_name="defectdata-customer",
    model=DefectDataCustomer,
    create_schema=DefectRecordCreate,
    update_schema=DefectRecordUpdate,
    searchable_fields=("inspection_no", "inspector", "qc_name", "station", "linevi"),
    sortable_fields=("id", "inspection_no", "defect_date", "station", "inspector", "ng_qty", "created_at"),
    default_sort="defect_date",
    name_field="inspection_no",
    rules=(known_defect,),
    prepare=default_defect_date,
)


def _day(value: Any) -> str:
    return value.isoformat() if hasattr(value, "isoformat") else str(value)


class CustomerDefectService(EntityService):
    """``defect_id`` on an image row refers to a record here, so deletes take images along."""

    def _image_ids(self, record_ids: list[int]) -> dict[int, list[int]]:
        images: dict[int, list[int]] = defaultdict(list)
        if not record_ids:
            return images
        rows = self.session.execute(
            select(DefectCustomerImage.defect_id, DefectCustomerImage.id)
            .where(DefectCustomerImage.defect_id.in_(record_ids))
            .order_by(DefectCustomerImage.id)
        )
        for record_id, image_id in rows:
            images[record_id].append(image_id)
        return images

    def _records(self, *clauses, limit: int | None = None) -> list[DefectDataCustomer]:
        statement = (
            select(DefectDataCustomer)
            .where(*clauses)
            .order_by(DefectDataCustomer.defect_date.desc(), DefectDataCustomer.created_at.desc())
        )
        if limit is not None:
            statement = statement.limit(limit)
        return list(self.session.scalars(statement))

    def delete(self, key: Any) -> ServiceResult:
        try:
            self.session.execute(delete(DefectCustomerImage).where(DefectCustomerImage.defect_id == key))
        except SQLAlchemyError as exc:
            return self._database_failure("delete", exc)
        return super().delete(key)

    @guard_database("Failed to load customer defect records")
    def by_inspection(self, inspection_no: str) -> ServiceResult:
        """Records of one inspection with links to their images."""

        records = self._records(DefectDataCustomer.inspection_no == inspection_no)
        images = self._image_ids([record.id for record in records])
        return ServiceResult.ok(
            [
                {
                    **record.to_dict(),
                    "defect_description": record.defect.description if record.defect else None,
                    "defect_group": record.defect.defect_group if record.defect else None,
                    "image_urls": [f"{IMAGE_ROUTE}/{image_id}" for image_id in images[record.id]],
                }
                for record in records
            ]
        )

    @guard_database("Failed to load customer defect records")
    def by_station(
        self, station: str, start: date | None = None, end: date | None = None, limit: int = 100
    ) -> ServiceResult:
        clauses = [DefectDataCustomer.station == station.upper()]
        if start:
            clauses.append(DefectDataCustomer.defect_date >= start_of(start))
        if end:
            clauses.append(DefectDataCustomer.defect_date < start_of(end + timedelta(days=1)))
        return ServiceResult.ok([record.to_dict() for record in self._records(*clauses, limit=limit)])

    @guard_database("Failed to load customer defect records")
    def by_inspector(self, inspector: str, limit: int = 100) -> ServiceResult:
        records = self._records(DefectDataCustomer.inspector == inspector, limit=limit)
        return ServiceResult.ok([record.to_dict() for record in records])

    @guard_database("Failed to load customer defect records")
    def today(self, now: datetime | None = None) -> ServiceResult:
        start = start_of((now or utcnow()).date())
        records = self._records(DefectDataCustomer.defect_date >= start)
        return ServiceResult.ok([record.to_dict() for record in records])

    @guard_database("Failed to load inspector performance")
    def inspector_performance(self, inspector: str) -> ServiceResult:
        row = self.session.execute(
            select(
                func.count(DefectDataCustomer.id).label("total_records"),
                func.coalesce(func.sum(DefectDataCustomer.ng_qty), 0).label("total_ng_qty"),
                func.count(DefectDataCustomer.defect_id.distinct()).label("unique_defects_found"),
                func.avg(DefectDataCustomer.ng_qty).label("avg_ng_per_record"),
                func.max(DefectDataCustomer.defect_date).label("latest_record_at"),
            ).where(DefectDataCustomer.inspector == inspector)
        ).one()
        if not row.total_records:
            return ServiceResult.not_found("Inspector", inspector)

        def covered(column) -> list[str]:
            return list(
                self.session.scalars(
                    select(column)
                    .where(DefectDataCustomer.inspector == inspector, column.is_not(None))
                    .distinct()
                    .order_by(column)
                )
            )

        return ServiceResult.ok(
            {
                "inspector": inspector,
                "total_records": row.total_records,
                "total_ng_qty": row.total_ng_qty,
                "unique_defects_found": row.unique_defects_found,
                "stations_covered": covered(DefectDataCustomer.station),
                "lines_covered": covered(DefectDataCustomer.linevi),
                "avg_ng_per_record": round(float(row.avg_ng_per_record or 0), 2),
                "latest_record_at": isoformat(row.latest_record_at),
            }
        )

    @guard_database("Failed to load customer defect record")
    def profile(self, record_id: int) -> ServiceResult:
        record = self.session.get(DefectDataCustomer, record_id)
        if record is None:
            return ServiceResult.not_found(self.config.label, record_id)

        related = self._records(
            DefectDataCustomer.inspection_no == record.inspection_no,
            DefectDataCustomer.id != record.id,
            limit=RELATED_LIMIT,
        )

        def count_where(clause) -> int:
            return self.session.scalar(select(func.count(DefectDataCustomer.id)).where(clause)) or 0

        return ServiceResult.ok(
            {
                **record.to_dict(),
                "defect_description": record.defect.description if record.defect else None,
                "related_records": [other.to_dict() for other in related],
                "summary_stats": {
                    "same_inspection_count": count_where(
                        DefectDataCustomer.inspection_no == record.inspection_no
                    ),
                    "same_station_count": count_where(DefectDataCustomer.station == record.station),
                    "same_defect_count": count_where(DefectDataCustomer.defect_id == record.defect_id),
                },
            }
        )

    @guard_database("Failed to summarise customer defect records")
    def summary(
        self, start: date | None = None, end: date | None = None, now: datetime | None = None
    ) -> ServiceResult:
        """Counts by period, station, line, defect and inspector; weeks start on Monday."""

        today = (now or utcnow()).date()
        clauses = []
        if start and end:
            clauses = [
                DefectDataCustomer.defect_date >= start_of(start),
                DefectDataCustomer.defect_date < start_of(end + timedelta(days=1)),
            ]
        count = func.count(DefectDataCustomer.id).label("count")
        ng_total = func.coalesce(func.sum(DefectDataCustomer.ng_qty), 0).label("total_ng_qty")

        def since(day: date) -> int:
            return self.session.scalar(
                select(func.count(DefectDataCustomer.id)).where(
                    *clauses, DefectDataCustomer.defect_date >= start_of(day)
                )
            ) or 0

        basic = self.session.execute(
            select(count, ng_total, func.max(DefectDataCustomer.defect_date).label("latest")).where(*clauses)
        ).one()

        by_station: dict[str, dict[str, Any]] = {}
        for row in self.session.execute(
            select(DefectDataCustomer.station, count, ng_total)
            .where(*clauses)
            .group_by(DefectDataCustomer.station)
            .order_by(count.desc())
        ):
            by_station[row.station] = {"count": row.count, "total_ng_qty": row.total_ng_qty, "defect_types": []}
        for station, name in self.session.execute(
            select(DefectDataCustomer.station, Defect.name)
            .join(Defect, Defect.id == DefectDataCustomer.defect_id)
            .where(*clauses)
            .distinct()
            .order_by(DefectDataCustomer.station, Defect.name)
        ):
            by_station[station]["defect_types"].append(name)

        by_linevi = {
            row.linevi: {"count": row.count, "total_ng_qty": row.total_ng_qty}
            for row in self.session.execute(
                select(DefectDataCustomer.linevi, count, ng_total)
                .where(*clauses)
                .group_by(DefectDataCustomer.linevi)
                .order_by(count.desc())
            )
        }
        by_defect_type = {
            str(row.defect_id): {
                "count": row.count,
                "total_ng_qty": row.total_ng_qty,
                "defect_name": row.defect_name,
            }
            for row in self.session.execute(
                select(DefectDataCustomer.defect_id, Defect.name.label("defect_name"), count, ng_total)
                .outerjoin(Defect, Defect.id == DefectDataCustomer.defect_id)
                .where(*clauses)
                .group_by(DefectDataCustomer.defect_id, Defect.name)
                .order_by(count.desc())
                .limit(TOP_LIMIT)
            )
        }
        top_inspectors = [
            {"inspector": row.inspector, "count": row.count, "total_ng_qty": row.total_ng_qty}
            for row in self.session.execute(
                select(DefectDataCustomer.inspector, count, ng_total)
                .where(*clauses)
                .group_by(DefectDataCustomer.inspector)
                .order_by(count.desc())
                .limit(TOP_LIMIT)
            )
        ]

        return ServiceResult.ok(
            {
                "total_records": basic.count,
                "today_records": since(today),
                "this_week_records": since(today - timedelta(days=today.weekday())),
                "this_month_records": since(today.replace(day=1)),
                "total_ng_qty": basic.total_ng_qty,
                "latest_record_at": isoformat(basic.latest),
                "by_station": by_station,
                "by_linevi": by_linevi,
                "by_defect_type": by_defect_type,
                "top_inspectors": top_inspectors,
            }
        )

    @guard_database("Failed to load customer defect trends")
    def trends(self, days: int = 7, now: datetime | None = None) -> ServiceResult:
        """One row per day over the last ``days`` days, newest first."""

        since = start_of((now or utcnow()).date() - timedelta(days=days))
        day = func.date(DefectDataCustomer.defect_date).label("day")
        statement = (
            select(
                day,
                func.count(DefectDataCustomer.id).label("count"),
                func.coalesce(func.sum(DefectDataCustomer.ng_qty), 0).label("total_ng_qty"),
                func.count(DefectDataCustomer.inspection_no.distinct()).label("unique_inspections"),
                func.count(DefectDataCustomer.defect_id.distinct()).label("unique_defect_types"),
            )
            .where(DefectDataCustomer.defect_date >= since)
            .group_by(day)
            .order_by(day.desc())
        )
        return ServiceResult.ok(
            [
                {
                    "date": _day(row.day),
                    "count": row.count,
                    "total_ng_qty": row.total_ng_qty,
                    "unique_inspections": row.unique_inspections,
                    "unique_defect_types": row.unique_defect_types,
                }
                for row in self.session.execute(statement)
            ]
        )

    @guard_database("Failed to search customer defect records")
    def search(self, criteria: DefectRecordSearch) -> ServiceResult:
        clauses = []
        for name in ("inspection_no", "inspector", "linevi", "groupvi", "qc_name", "defect_id"):
            value = getattr(criteria, name)
            if value is not None and value != "":
                clauses.append(getattr(DefectDataCustomer, name) == value)
        if criteria.station:
            clauses.append(DefectDataCustomer.station == criteria.station.upper())
        for name in ("inspection_no", "inspector", "qc_name"):
            value = getattr(criteria, f"{name}_contains")
            if value:
                clauses.append(getattr(DefectDataCustomer, name).icontains(value, autoescape=True))
        if criteria.start_date:
            clauses.append(DefectDataCustomer.defect_date >= start_of(criteria.start_date))
        if criteria.end_date:
            clauses.append(
                DefectDataCustomer.defect_date < start_of(criteria.end_date + timedelta(days=1))
            )

        total = self.session.scalar(select(func.count(DefectDataCustomer.id)).where(*clauses)) or 0
        rows = self.session.scalars(
            select(DefectDataCustomer)
            .where(*clauses)
            .order_by(DefectDataCustomer.defect_date.desc(), DefectDataCustomer.id.desc())
            .limit(criteria.limit)
            .offset((criteria.page - 1) * criteria.limit)
        )
        return ServiceResult.ok(
            [row.to_dict() for row in rows],
            pagination=build_pagination(criteria.page, criteria.limit, total),
        )

    def bulk_create(self, items: Any, user_id: int | None = None) -> ServiceResult:
        """Validate every record first, then insert all of them or none."""

        if not isinstance(items, list) or not items:
            return ServiceResult.invalid(["records: A non-empty list of records is required"])
        if len(items) > MAX_BULK:
            return ServiceResult.invalid([f"records: At most {MAX_BULK} records per request"])

        rows: list[dict[str, Any]] = []
        errors: list[str] = []
        for index, item in enumerate(items, start=1):
            values, item_errors = validate_payload(DefectRecordCreate, item)
            errors.extend(f"Record {index}: {message}" for message in item_errors)
            if values is not None:
                rows.append(values)
        if errors:
            return ServiceResult.invalid(errors)

        try:
            wanted = {values["defect_id"] for values in rows}
            known = set(self.session.scalars(select(Defect.id).where(Defect.id.in_(wanted))))
            missing = sorted(wanted - known)
            if missing:
                return ServiceResult.invalid([f"defect_id: Unknown defect id(s) {missing}"])
            records = [
                DefectDataCustomer(
                    **default_defect_date(values, "create"), created_by=user_id, updated_by=user_id
                )
                for values in rows
            ]
            self.session.add_all(records)
            self.session.commit()
            payload = [record.to_dict() for record in records]
        except SQLAlchemyError as exc:
            return self._database_failure("create", exc)

        current_app.logger.info("Stored %s customer defect record(s)", len(records))
        return ServiceResult.ok(payload, message=f"{len(records)} record(s) created successfully")
