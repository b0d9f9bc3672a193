"""Database model for defect images."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from ...extensions import db
from ...models import isoformat, utcnow


class ImageColumns:
    """Columns shared by every image table; ``defect_id`` is declared per table."""

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True)
    image_data: Mapped[bytes] = mapped_column(db.LargeBinary, nullable=False)
    content_type: Mapped[str] = mapped_column(db.String(50), nullable=False)
    file_name: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    file_size: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    created_by: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        """Metadata only; the binary is served by its own route."""

        return {
            "id": self.id,
            "defect_id": self.defect_id,
            "content_type": self.content_type,
            "file_name": self.file_name,
            "file_size": self.file_size,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
        }


class DefectImage(ImageColumns, db.Model):
    """Binary image owned by a defect; removed together via ``defect_id``."""

    __tablename__ = "defect_image"

    defect_id: Mapped[int] = mapped_column(
        db.Integer, ForeignKey("defects.id"), nullable=False, index=True
    )
