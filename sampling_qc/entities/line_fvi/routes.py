"""FVI line routes mounted at ``/api/line-fvi``."""
from __future__ import annotations

from flask import Blueprint

from ...generic import EntityConfig, build_service, create_entity_blueprint
from ...generic.schemas import CodeEntityCreate, CodeEntityUpdate, unique_code
from .models import LineFvi

LINE_FVI_CONFIG = EntityConfig(
    entity_name="line-fvi",
    model=LineFvi,
    create_schema=CodeEntityCreate,
    update_schema=CodeEntityUpdate,
    primary_key="code",
    key_type=str,
    searchable_fields=("code", "name"),
    sortable_fields=("code", "name", "created_at", "updated_at"),
    default_sort="code",
    max_limit=200,
    rules=(unique_code,),
)


def create_routes(db) -> Blueprint:
    return create_entity_blueprint(build_service(db, LINE_FVI_CONFIG), __name__)
