"""Value types shared by the generic entity layer."""
from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..models import Role

ErrorKind = Literal["validation", "not_found", "conflict", "unavailable", "error"]

# rule(repository, values, key) -> error message or None; key is None on create
Rule = Callable[[Any, dict[str, Any], Any], "str | None"]


@dataclass(frozen=True)
class EntityConfig:
    """Describes one table for the generic repository/service/routes trio."""

    entity_name: str
    model: type
    create_schema: type[BaseModel]
    update_schema: type[BaseModel]
    primary_key: str = "id"
    key_type: type = int
    searchable_fields: tuple[str, ...] = ("name",)
    sortable_fields: tuple[str, ...] = ("id", "name", "created_at", "updated_at")
    default_sort: str = "name"
    default_limit: int = 20
    max_limit: int = 100
    name_field: str = "name"
    rules: Sequence[Rule] = ()
    prepare: Callable[[dict[str, Any], str], dict[str, Any]] | None = None
    serializer: Callable[[Any], dict[str, Any]] | None = None
    write_role: Role = Role.USER

    @property
    def label(self) -> str:
        return self.entity_name.replace("-", " ").capitalize()

    @property
    def blueprint_name(self) -> str:
        return self.entity_name.replace("-", "_")

    def serialize(self, instance: Any) -> dict[str, Any]:
        if self.serializer is not None:
            return self.serializer(instance)
        return instance.to_dict()


class QueryOptions(BaseModel):
    """List query parameters accepted by every ``GET`` collection route."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    page: int = Field(default=1, ge=1)
    limit: int | None = Field(default=None, ge=1)
    search: str | None = None
    sort_by: str | None = Field(default=None, alias="sortBy")
    sort_order: Literal["asc", "desc"] = Field(default="asc", alias="sortOrder")
    is_active: bool | None = Field(default=None, alias="isActive")

    @field_validator("sort_order", mode="before")
    @classmethod
    def lower_sort_order(cls, value: Any) -> Any:
        return value.lower() if isinstance(value, str) else value

    @field_validator("search")
    @classmethod
    def blank_search_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        value = value.strip()
        return value or None

    def effective_limit(self, config: EntityConfig) -> int:
        return min(self.limit or config.default_limit, config.max_limit)


def build_pagination(page: int, limit: int, total: int) -> dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit else 0
    return {
        "page": page,
        "limit": limit,
        "total": total,
        "totalPages": total_pages,
        "hasNext": page < total_pages,
        "hasPrev": page > 1,
    }


@dataclass
class ServiceResult:
    """Envelope returned by every service call."""

    success: bool
    data: Any = None
    message: str | None = None
    error: str | None = None
    errors: list[str] = field(default_factory=list)
    kind: ErrorKind | None = None
    pagination: dict[str, Any] | None = None

    @classmethod
    def ok(
        cls,
        data: Any = None,
        message: str | None = None,
        pagination: dict[str, Any] | None = None,
    ) -> "ServiceResult":
        return cls(success=True, data=data, message=message, pagination=pagination)

    @classmethod
    def fail(cls, error: str, kind: ErrorKind = "error") -> "ServiceResult":
        return cls(success=False, error=error, kind=kind)

    @classmethod
    def invalid(cls, errors: list[str]) -> "ServiceResult":
        return cls(
            success=False,
            error="Validation failed",
            errors=list(errors),
            kind="validation",
        )

    @classmethod
    def not_found(cls, label: str, key: Any) -> "ServiceResult":
        return cls(success=False, error=f"{label} {key} not found", kind="not_found")

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"success": self.success}
        if self.success or self.data is not None:
            payload["data"] = self.data
        if self.pagination is not None:
            payload["pagination"] = self.pagination
        if self.message:
            payload["message"] = self.message
        if self.error:
            payload["error"] = self.error
        if self.errors:
            payload["errors"] = self.errors
        return payload
