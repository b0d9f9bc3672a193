"""Sampling reason routes mounted at ``/api/sampling-reasons``."""
from __future__ import annotations

from typing import Any, Optional

from flask import Blueprint
from pydantic import BaseModel, ConfigDict, Field

from ...generic import EntityConfig, EntityRepository, build_service, create_entity_blueprint
from .models import SamplingReason


class SamplingReasonCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: str = Field(min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    is_active: bool = True


class SamplingReasonUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    description: Optional[str] = Field(default=None, max_length=1000)
    is_active: Optional[bool] = None


def unique_reason(repository: EntityRepository, values: dict[str, Any], key: Any) -> str | None:
    name = values.get("name")
    if name and repository.find_by_name(name, exclude_key=key) is not None:
        return f"name: Sampling reason '{name}' already exists"
    return None


SAMPLING_REASON_CONFIG = EntityConfig(
    entity_name="sampling-reason",
    model=SamplingReason,
    create_schema=SamplingReasonCreate,
    update_schema=SamplingReasonUpdate,
    searchable_fields=("name", "description"),
    rules=(unique_reason,),
)


def create_sampling_reason_routes(db) -> Blueprint:
    return create_entity_blueprint(build_service(db, SAMPLING_REASON_CONFIG), __name__)
