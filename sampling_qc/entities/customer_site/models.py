"""Database model for customer-site pairings."""
from __future__ import annotations

from typing import Any

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from ...extensions import db
from ...models import AuditMixin


class CustomerSite(AuditMixin, db.Model):
    """Which customer a site builds for; parts resolve both through ``code``."""

    __tablename__ = "customers_site"

    code: Mapped[str] = mapped_column(db.String(10), primary_key=True)
    customers: Mapped[str] = mapped_column(
        db.String(10), ForeignKey("customers.code"), nullable=False, index=True
    )
    site: Mapped[str] = mapped_column(db.String(5), nullable=False, index=True)
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "customers": self.customers,
            "site": self.site,
            "is_active": self.is_active,
            **self.audit_dict(),
        }
