"""Composable CRUD building blocks shared by lookup entities."""
from __future__ import annotations

from .config import EntityConfig, QueryOptions, ServiceResult, build_pagination
from .repository import EntityRepository
from .routes import create_entity_blueprint, respond
from .service import EntityService, guard_database, validate_payload

__all__ = [
    "EntityConfig",
    "EntityRepository",
    "EntityService",
    "QueryOptions",
    "ServiceResult",
    "build_pagination",
    "build_service",
    "create_entity_blueprint",
    "guard_database",
    "respond",
    "validate_payload",
]


def build_service(db, config: EntityConfig) -> EntityService:
    """Wire a repository and service for ``config``."""

    return EntityService(EntityRepository(db, config))
