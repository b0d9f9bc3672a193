"""Part rules and bulk import."""
from __future__ import annotations

from typing import Any

from flask import current_app
from pydantic import ValidationError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ...extensions import db
from ...generic import EntityRepository, ServiceResult, guard_database
from ...generic.service import format_validation_errors
from ...services.mirror import ImportCounts
from ..customer_site.models import CustomerSite
from .models import Part
from .schemas import PartImport

INVALID_CUSTOMER_SITE = "customer_site_code: Invalid customer-site code"


def unique_partno(repository: EntityRepository, values: dict[str, Any], key: Any) -> str | None:
    if key is not None:
        return None
    partno = values.get("partno")
    if partno and repository.get(partno) is not None:
        return f"partno: Part '{partno}' already exists"
    return None


def known_customer_site(repository: EntityRepository, values: dict[str, Any], key: Any) -> str | None:
    code = values.get("customer_site_code")
    if code and repository.session.get(CustomerSite, code) is None:
        return INVALID_CUSTOMER_SITE
    return None


def resolve_customer_site(values: dict[str, Any], operation: str = "create") -> dict[str, Any]:
    """Swap ``customer_site_code`` for the ``customer`` and ``part_site`` it names."""

    code = values.pop("customer_site_code", None)
    if code:
        pairing = db.session.get(CustomerSite, code)
        if pairing is not None:
            values["customer"] = pairing.customers
            values["part_site"] = pairing.site
    return values


class PartImporter:
    """Upserts part rows one at a time; a bad row is skipped, not fatal."""

    def __init__(self, db) -> None:
        self.db = db

    @property
    def session(self):
        return self.db.session

    def _write(self, values: dict[str, Any], user_id: int | None) -> bool:
        part = self.session.get(Part, values["partno"])
        existed = part is not None
        if part is None:
            part = Part(partno=values["partno"], created_by=user_id)
            self.session.add(part)
        for name, value in values.items():
            setattr(part, name, value)
        part.updated_by = user_id
        self.session.commit()
        return existed

    @guard_database("Failed to import parts")
    def run(self, rows: list[Any], user_id: int | None = None) -> ServiceResult:
        if not rows:
            return ServiceResult.invalid(["parts: At least one part is required"])

        counts = ImportCounts()
        errors: list[str] = []
        for index, row in enumerate(rows, start=1):
            label = row.get("partno", index) if isinstance(row, dict) else index
            try:
                parsed = PartImport.model_validate(row)
            except ValidationError as exc:
                counts.skipped += 1
                errors.extend(f"Row {label}: {message}" for message in format_validation_errors(exc))
                continue

            values = parsed.model_dump(exclude_unset=True)
            code = values.get("customer_site_code")
            if code and self.session.get(CustomerSite, code) is None:
                counts.skipped += 1
                errors.append(f"Row {label}: {INVALID_CUSTOMER_SITE}")
                continue
            values = resolve_customer_site(values)

            try:
                existed = self._write(values, user_id)
            except SQLAlchemyError as exc:
                self.session.rollback()
                counts.skipped += 1
                errors.append(f"Row {label}: {exc.__class__.__name__}")
                current_app.logger.warning("Skipping part %s: %s", label, exc)
                continue

            if existed:
                counts.updated += 1
            else:
                counts.imported += 1

        current_app.logger.info(
            "Part import finished: %s imported, %s updated, %s skipped",
            counts.imported,
            counts.updated,
            counts.skipped,
        )
        return ServiceResult.ok(
            {**counts.to_dict(), "errors": errors},
            message=f"Processed {counts.total} part(s)",
        )

    @guard_database("Failed to load customer-sites")
    def customer_sites(self) -> ServiceResult:
        pairings = self.session.scalars(
            select(CustomerSite).where(CustomerSite.is_active.is_(True)).order_by(CustomerSite.code)
        )
        return ServiceResult.ok(
            [
                {"code": pairing.code, "customers": pairing.customers, "site": pairing.site}
                for pairing in pairings
            ]
        )
