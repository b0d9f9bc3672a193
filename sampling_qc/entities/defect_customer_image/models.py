"""Database model for customer defect images."""
from __future__ import annotations

from sqlalchemy import ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from ...extensions import db
from ..defect_image.models import ImageColumns


class DefectCustomerImage(ImageColumns, db.Model):
    """``defect_id`` points at a ``defectdata_customer`` row, not the defect catalogue."""

    __tablename__ = "defect_customer_image"

    defect_id: Mapped[int] = mapped_column(
        db.Integer, ForeignKey("defectdata_customer.id"), nullable=False, index=True
    )
