"""Database model for customers."""
from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Mapped, mapped_column

from ...extensions import db
from ...models import AuditMixin


class Customer(AuditMixin, db.Model):
    __tablename__ = "customers"

    code: Mapped[str] = mapped_column(db.String(10), primary_key=True)
    name: Mapped[str] = mapped_column(db.String(100), nullable=False)
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.name,
            "is_active": self.is_active,
            **self.audit_dict(),
        }
