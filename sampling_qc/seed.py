"""``flask`` CLI commands for seeding master data and running a sync."""
from __future__ import annotations

import click
from flask import Flask, current_app
from sqlalchemy import select

from .extensions import db
from .entities.customer.models import Customer
from .entities.customer_site.models import CustomerSite
from .entities.defect.models import Defect
from .entities.inf_checkin.service import CheckinService
from .entities.inf_lotinput.service import LotInputService
from .entities.line_fvi.models import LineFvi
from .entities.sampling_reason.models import SamplingReason

DEFECTS = [
    {"name": "Scratch", "description": "Visible scratch on the surface", "defect_group": "Cosmetic"},
    {"name": "Contamination", "description": "Particle or stain on the part", "defect_group": "Cosmetic"},
    {"name": "Dent", "description": "Deformed edge or surface", "defect_group": "Mechanical"},
    {"name": "Missing Label", "description": "Label absent or unreadable", "defect_group": "Labeling"},
]
SAMPLING_REASONS = [
    {"name": "Routine", "description": "Scheduled lot sampling"},
    {"name": "Customer Complaint", "description": "Tightened sampling after a complaint"},
    {"name": "New Model", "description": "First lots of a new model"},
]
CUSTOMERS = [
    {"code": "SGT", "name": "Seagate"},
    {"code": "WD", "name": "Western Digital"},
]
LINES = [
    {"code": "F01", "name": "FVI Line 1"},
    {"code": "F02", "name": "FVI Line 2"},
]
CUSTOMER_SITES = [
    {"code": "SGT-TH", "customers": "SGT", "site": "TH"},
    {"code": "WD-TH", "customers": "WD", "site": "TH"},
]


def _seed(model, key: str, rows: list[dict]) -> int:
    """Insert rows whose ``key`` value is not present yet; return how many."""

    column = getattr(model, key)
    existing = set(db.session.scalars(select(column)))
    added = 0
    for row in rows:
        if row[key] not in existing:
            db.session.add(model(**row))
            added += 1
    return added


def seed_master_data() -> dict[str, int]:
    added = {
        "defects": _seed(Defect, "name", DEFECTS),
        "sampling_reasons": _seed(SamplingReason, "name", SAMPLING_REASONS),
        "customers": _seed(Customer, "code", CUSTOMERS),
        "line_fvi": _seed(LineFvi, "code", LINES),
    }
    db.session.flush()
    added["customer_sites"] = _seed(CustomerSite, "code", CUSTOMER_SITES)
    db.session.commit()
    return added


def register_commands(app: Flask) -> None:
    @app.cli.command("seed")
    def seed_command() -> None:
        """Seed defects, sampling reasons, customers, customer-sites and FVI lines."""

        added = seed_master_data()
        for table, count in added.items():
            click.echo(f"{table}: {count} added")

    @app.cli.command("sync-lotinput")
    def sync_lotinput_command() -> None:
        """Run one interval-checked lot input sync from MSSQL."""

        _run_sync(LotInputService)

    @app.cli.command("sync-checkin")
    def sync_checkin_command() -> None:
        """Run one interval-checked operator check-in sync from MSSQL."""

        _run_sync(CheckinService)


def _run_sync(service_class) -> None:
    service = service_class(
        db,
        current_app.extensions["mssql"],
        limit=current_app.config.get("MSSQL_IMPORT_LIMIT", 500),
    )
    result = service.sync()
    click.echo(result.message)
    if not result.success:
        raise SystemExit(1)
