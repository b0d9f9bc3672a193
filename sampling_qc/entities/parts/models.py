"""Database model for parts."""
from __future__ import annotations

from typing import Any

from sqlalchemy.orm import Mapped, mapped_column

from ...extensions import db
from ...models import AuditMixin


class Part(AuditMixin, db.Model):
    """``customer`` and ``part_site`` are copied from the customer-site the part was filed under."""

    __tablename__ = "parts"

    partno: Mapped[str] = mapped_column(db.String(25), primary_key=True)
    product_families: Mapped[str | None] = mapped_column(db.String(10), nullable=True)
    versions: Mapped[str | None] = mapped_column(db.String(10), nullable=True)
    production_site: Mapped[str | None] = mapped_column(db.String(5), nullable=True)
    part_site: Mapped[str | None] = mapped_column(db.String(5), nullable=True, index=True)
    customer: Mapped[str | None] = mapped_column(db.String(10), nullable=True, index=True)
    tab: Mapped[str | None] = mapped_column(db.String(5), nullable=True)
    product_type: Mapped[str | None] = mapped_column(db.String(5), nullable=True)
    customer_driver: Mapped[str | None] = mapped_column(db.String(200), nullable=True)
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "partno": self.partno,
            "product_families": self.product_families,
            "versions": self.versions,
            "production_site": self.production_site,
            "part_site": self.part_site,
            "customer": self.customer,
            "tab": self.tab,
            "product_type": self.product_type,
            "customer_driver": self.customer_driver,
            "is_active": self.is_active,
            **self.audit_dict(),
        }
