"""Database model for the defect catalogue."""
from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Mapped, mapped_column

from ...extensions import db
from ...models import AuditMixin


class Defect(AuditMixin, db.Model):
    """A named defect inspectors can record against a lot."""

    __tablename__ = "defects"

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True)
    name: Mapped[str] = mapped_column(db.String(100), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    defect_group: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "defect_group": self.defect_group,
            "is_active": self.is_active,
            **self.audit_dict(),
        }
