"""Storage of defect images."""
from __future__ import annotations

from collections.abc import Iterable

from flask import current_app
from sqlalchemy import delete, func, select
from sqlalchemy.exc import SQLAlchemyError
from werkzeug.datastructures import FileStorage

from ...generic import ServiceResult, guard_database
from ..defect.models import Defect
from .models import DefectImage

ALLOWED_MIME_TYPES = frozenset({"image/jpeg", "image/png", "image/gif", "image/webp"})
MAX_FILE_SIZE = 5 * 1024 * 1024
MAX_FILES = 10


class UploadError(ValueError):
    """Raised when an uploaded file breaks the size or type limits."""


def read_upload(upload: FileStorage) -> tuple[bytes, str]:
    """Return the bytes and MIME type of ``upload`` after checking limits."""

    mimetype = (upload.mimetype or "").lower()
    if mimetype not in ALLOWED_MIME_TYPES:
        raise UploadError(
            f"{upload.filename or 'file'}: only JPEG, PNG, GIF and WebP images are allowed"
        )
    data = upload.read(MAX_FILE_SIZE + 1)
    if len(data) > MAX_FILE_SIZE:
        raise UploadError(f"{upload.filename or 'file'}: image exceeds 5 MB")
    if not data:
        raise UploadError(f"{upload.filename or 'file'}: image is empty")
    return data, mimetype


class DefectImageService:
    """Images attached to one owner row; subclasses swap the tables."""

    model = DefectImage
    owner = Defect
    owner_label = "Defect"
    label = "Defect image"

    def __init__(self, db) -> None:
        self.db = db

    @property
    def session(self):
        return self.db.session

    def _owner_exists(self, owner_id: int) -> bool:
        return self.session.get(self.owner, owner_id) is not None

    def create(self, defect_id: int, upload: FileStorage, user_id: int | None = None) -> ServiceResult:
        return self.bulk_create(defect_id, [upload], user_id)

    @guard_database("Failed to store images")
    def bulk_create(
        self,
        defect_id: int,
        uploads: Iterable[FileStorage],
        user_id: int | None = None,
    ) -> ServiceResult:
        """Insert every upload in one transaction; any failure stores none."""

        uploads = list(uploads)
        if not uploads:
            return ServiceResult.invalid(["images: At least one image is required"])
        if len(uploads) > MAX_FILES:
            return ServiceResult.invalid([f"images: At most {MAX_FILES} images per upload"])
        if not self._owner_exists(defect_id):
            return ServiceResult.not_found(self.owner_label, defect_id)

        images = []
        try:
            for upload in uploads:
                data, mimetype = read_upload(upload)
                images.append(
                    self.model(
                        defect_id=defect_id,
                        image_data=data,
                        content_type=mimetype,
                        file_name=upload.filename,
                        file_size=len(data),
                        created_by=user_id,
                    )
                )
        except UploadError as exc:
            return ServiceResult.invalid([str(exc)])

        try:
            self.session.add_all(images)
            self.session.commit()
        except SQLAlchemyError:
            self.session.rollback()
            current_app.logger.exception("Failed to store images for %s %s", self.owner_label, defect_id)
            return ServiceResult.fail(f"Failed to store {self.label.lower()}s")

        current_app.logger.info("Stored %s image(s) for %s %s", len(images), self.owner_label, defect_id)
        return ServiceResult.ok(
            [image.to_dict() for image in images],
            message=f"{len(images)} image(s) uploaded successfully",
        )

    @guard_database("Failed to load image")
    def download(self, image_id: int) -> ServiceResult:
        """Envelope whose ``data`` is the image row itself, binary included."""

        image = self.session.get(self.model, image_id)
        if image is None:
            return ServiceResult.not_found(self.label, image_id)
        return ServiceResult.ok(image)

    @guard_database("Failed to list images")
    def list_for_defect(self, defect_id: int) -> ServiceResult:
        images = self.session.scalars(
            select(self.model)
            .where(self.model.defect_id == defect_id)
            .order_by(self.model.created_at.asc(), self.model.id.asc())
        )
        return ServiceResult.ok([image.to_dict() for image in images])

    @guard_database("Failed to count images")
    def count_for_defect(self, defect_id: int) -> ServiceResult:
        count = self.session.scalar(
            select(func.count(self.model.id)).where(self.model.defect_id == defect_id)
        )
        return ServiceResult.ok({"defect_id": defect_id, "count": count or 0})

    @guard_database("Failed to delete image")
    def delete(self, image_id: int) -> ServiceResult:
        image = self.session.get(self.model, image_id)
        if image is None:
            return ServiceResult.not_found(self.label, image_id)
        self.session.delete(image)
        self.session.commit()
        return ServiceResult.ok({"id": image_id}, message="Image deleted successfully")

    @guard_database("Failed to delete images")
    def delete_for_defect(self, defect_id: int) -> ServiceResult:
        result = self.session.execute(delete(self.model).where(self.model.defect_id == defect_id))
        self.session.commit()
        current_app.logger.info(
            "Deleted %s image(s) for %s %s", result.rowcount, self.owner_label, defect_id
        )
        return ServiceResult.ok({"defect_id": defect_id, "deleted": result.rowcount})

    def health(self) -> ServiceResult:
        try:
            total = self.session.scalar(select(func.count(self.model.id)))
        except SQLAlchemyError:
            self.session.rollback()
            current_app.logger.exception("%s health check failed", self.label)
            return ServiceResult.fail(f"{self.label} storage is unreachable", kind="unavailable")
        return ServiceResult.ok({"status": "healthy", "record_count": total or 0})
