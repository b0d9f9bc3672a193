"""Defect routes mounted at ``/api/defects``."""
from __future__ import annotations

from flask import Blueprint

from ...generic import EntityRepository, create_entity_blueprint, respond
from ...middleware import require_authentication
from .service import DEFECT_CONFIG, DefectService


def create_blueprint(db) -> Blueprint:
    service = DefectService(EntityRepository(db, DEFECT_CONFIG))
    bp = create_entity_blueprint(service, __name__)

    @bp.get("/validate/name/<name>")
    @require_authentication
    def validate_name(name: str):
        return respond(service.validate_name(name))

    @bp.get("/validate/name/<name>/<int:exclude_id>")
    @require_authentication
    def validate_name_excluding(name: str, exclude_id: int):
        return respond(service.validate_name(name, exclude_id))

    @bp.get("/group/<group>")
    @require_authentication
    def by_group(group: str):
        return respond(service.get_by_group(group))

    return bp
