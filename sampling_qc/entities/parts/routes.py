"""Part routes mounted at ``/api/parts``."""
from __future__ import annotations

from flask import Blueprint, request

from ...generic import EntityConfig, build_service, create_entity_blueprint, respond
from ...middleware import current_user_id, require_authentication, require_user
from .models import Part
from .schemas import PartCreate, PartUpdate
from .service import PartImporter, known_customer_site, resolve_customer_site, unique_partno

PARTS_CONFIG = EntityConfig(
    entity_name="parts",
    model=Part,
    create_schema=PartCreate,
    update_schema=PartUpdate,
    primary_key="partno",
    key_type=str,
    searchable_fields=("partno", "product_families", "customer", "customer_driver"),
    sortable_fields=("partno", "product_families", "customer", "part_site", "created_at", "updated_at"),
    default_sort="partno",
    name_field="partno",
    rules=(unique_partno, known_customer_site),
    prepare=resolve_customer_site,
)


def _import_rows(body) -> list:
    if isinstance(body, list):
        return body
    if isinstance(body, dict):
        rows = body.get("parts")
        return rows if isinstance(rows, list) else [body]
    return []


def create_blueprint(db) -> Blueprint:
    importer = PartImporter(db)
    bp = create_entity_blueprint(build_service(db, PARTS_CONFIG), __name__)

    @bp.get("/customer-sites")
    @require_authentication
    def customer_sites():
        return respond(importer.customer_sites())

    @bp.post("/import")
    @require_user
    def import_parts():
        rows = _import_rows(request.get_json(silent=True))
        return respond(importer.run(rows, current_user_id()))

    return bp
