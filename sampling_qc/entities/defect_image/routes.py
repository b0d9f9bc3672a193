"""Defect image routes mounted at ``/api/defect-image``."""
from __future__ import annotations

from flask import Blueprint, Response, request

from ...generic import ServiceResult, respond
from ...middleware import current_user_id, require_authentication, require_user
from .service import DefectImageService


def _uploaded_files():
    files = request.files.getlist("images") + request.files.getlist("images[]")
    single = request.files.get("image")
    if single is not None:
        files.insert(0, single)
    return [upload for upload in files if upload and upload.filename]


def image_blueprint(name: str, service: DefectImageService) -> Blueprint:
    """Upload, download and removal routes for one image table."""

    bp = Blueprint(name, __name__)

    @bp.post("")
    @bp.post("/bulk")
    @require_user
    def upload():
        defect_id = request.form.get("defect_id", type=int)
        if defect_id is None:
            return respond(ServiceResult.invalid(["defect_id: A numeric defect id is required"]))
        return respond(service.bulk_create(defect_id, _uploaded_files(), current_user_id()), 201)

    @bp.get("/<int:image_id>")
    @require_authentication
    def download(image_id: int):
        result = service.download(image_id)
        if not result.success:
            return respond(result)
        image = result.data
        response = Response(image.image_data, mimetype=image.content_type)
        response.headers["Cache-Control"] = "private, max-age=3600"
        return response

    @bp.get("/defect/<int:defect_id>")
    @require_authentication
    def list_for_defect(defect_id: int):
        return respond(service.list_for_defect(defect_id))

    @bp.get("/defect/<int:defect_id>/count")
    @require_authentication
    def count_for_defect(defect_id: int):
        return respond(service.count_for_defect(defect_id))

    @bp.delete("/<int:image_id>")
    @require_user
    def delete_image(image_id: int):
        return respond(service.delete(image_id))

    @bp.delete("/defect/<int:defect_id>")
    @require_user
    def delete_for_defect(defect_id: int):
        return respond(service.delete_for_defect(defect_id))

    @bp.get("/health")
    def health():
        return respond(service.health())

    return bp


def create_defect_image_blueprint(db) -> Blueprint:
    return image_blueprint("defect_image", DefectImageService(db))
