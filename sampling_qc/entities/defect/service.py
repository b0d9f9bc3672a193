"""Defect catalogue configuration and name checks."""
from __future__ import annotations

from typing import Any

from ...generic import EntityConfig, EntityRepository, EntityService, ServiceResult, guard_database
from .models import Defect
from .schemas import DefectCreate, DefectUpdate, normalise_defect_name


def unique_name(repository: EntityRepository, values: dict[str, Any], key: Any) -> str | None:
    """Reject names that already exist, ignoring case and outer whitespace."""

    name = values.get("name")
    if name is None:
        return None
    if repository.find_by_name(name, exclude_key=key) is not None:
        return f"name: Defect name '{name}' already exists"
    return None


DEFECT_CONFIG = EntityConfig(
    entity_name="defect",
    model=Defect,
    create_schema=DefectCreate,
    update_schema=DefectUpdate,
    searchable_fields=("name", "description"),
    sortable_fields=("id", "name", "defect_group", "is_active", "created_at", "updated_at"),
    default_limit=30,
    max_limit=200,
    rules=(unique_name,),
)


class DefectService(EntityService):
    """Generic CRUD plus the name-availability check used by the editor."""

    @guard_database("Failed to validate defect name")
    def validate_name(self, name: str, exclude_id: int | None = None) -> ServiceResult:
        try:
            canonical = normalise_defect_name(name)
        except ValueError as exc:
            return ServiceResult.ok(
                {"name": name, "is_valid": False, "is_unique": False, "errors": [str(exc)]}
            )

        taken = self.repository.find_by_name(canonical, exclude_key=exclude_id) is not None
        errors = [f"Defect name '{canonical}' already exists"] if taken else []
        return ServiceResult.ok(
            {"name": canonical, "is_valid": not taken, "is_unique": not taken, "errors": errors}
        )

    def get_by_group(self, group: str) -> ServiceResult:
        return self.filter_by(defect_group=group)
