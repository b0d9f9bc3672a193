"""Sysconfig routes mounted at ``/api/sysconfig``."""
from __future__ import annotations

from flask import Blueprint, current_app

from ...generic import (
    EntityConfig,
    EntityRepository,
    EntityService,
    ServiceResult,
    create_entity_blueprint,
    guard_database,
    respond,
)
from ...middleware import require_authentication, require_manager
from ...models import Role, SysConfig
from ...services.mssql import MssqlError, MssqlSettings
from .schemas import SysConfigCreate, SysConfigUpdate

SYSCONFIG_CONFIG = EntityConfig(
    entity_name="sysconfig",
    model=SysConfig,
    create_schema=SysConfigCreate,
    update_schema=SysConfigUpdate,
    searchable_fields=("system_name", "news"),
    sortable_fields=("id", "system_name", "created_at", "updated_at"),
    default_sort="id",
    name_field="system_name",
    write_role=Role.MANAGER,
)


class SysConfigService(EntityService):
    @guard_database("Failed to load sysconfig")
    def active(self) -> ServiceResult:
        config = SysConfig.latest()
        if config is None:
            return ServiceResult.not_found("Sysconfig", "(latest)")
        return ServiceResult.ok(config.to_dict())

    @guard_database("Failed to load sysconfig")
    def options(self) -> ServiceResult:
        config = SysConfig.latest()
        if config is None:
            return ServiceResult.not_found("Sysconfig", "(latest)")
        return ServiceResult.ok(config.options())

    @guard_database("Failed to load sysconfig")
    def test_mssql(self, manager) -> ServiceResult:
        try:
            settings = MssqlSettings.from_sysconfig(SysConfig.latest())
            details = manager.test_connection(settings)
        except MssqlError as exc:
            current_app.logger.warning("MSSQL connection test failed: %s", exc)
            return ServiceResult.fail(str(exc), kind="unavailable")
        return ServiceResult.ok(details, message="MSSQL connection successful")


def create_blueprint(db) -> Blueprint:
    service = SysConfigService(EntityRepository(db, SYSCONFIG_CONFIG))
    bp = create_entity_blueprint(service, __name__)

    @bp.get("/active")
    @require_authentication
    def active():
        return respond(service.active())

    @bp.get("/options")
    @require_authentication
    def options():
        return respond(service.options())

    @bp.post("/mssql/test")
    @require_manager
    def test_mssql():
        return respond(service.test_mssql(current_app.extensions["mssql"]))

    return bp
