"""Customer routes mounted at ``/api/customers``."""
from __future__ import annotations

from flask import Blueprint

from ...generic import EntityConfig, build_service, create_entity_blueprint
from ...generic.schemas import CodeEntityCreate, CodeEntityUpdate, unique_code
from .models import Customer

CUSTOMER_CONFIG = EntityConfig(
    entity_name="customer",
    model=Customer,
    create_schema=CodeEntityCreate,
    update_schema=CodeEntityUpdate,
    primary_key="code",
    key_type=str,
    searchable_fields=("code", "name"),
    sortable_fields=("code", "name", "created_at", "updated_at"),
    default_sort="code",
    rules=(unique_code,),
)


def create_blueprint(db) -> Blueprint:
    return create_entity_blueprint(build_service(db, CUSTOMER_CONFIG), __name__)
