"""Database model for customer defect records."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ...extensions import db
from ...models import AuditMixin, isoformat, utcnow
from ..defect.models import Defect


class DefectDataCustomer(AuditMixin, db.Model):
    __tablename__ = "defectdata_customer"

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True)
    inspection_no: Mapped[str] = mapped_column(db.String(20), nullable=False, index=True)
    defect_date: Mapped[datetime] = mapped_column(db.DateTime, nullable=False, default=utcnow, index=True)
    qc_name: Mapped[str | None] = mapped_column(db.String(30), nullable=True)
    qclead_name: Mapped[str | None] = mapped_column(db.String(30), nullable=True)
    mbr_name: Mapped[str | None] = mapped_column(db.String(30), nullable=True)
    linevi: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    groupvi: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    station: Mapped[str] = mapped_column(db.String(5), nullable=False, index=True)
    inspector: Mapped[str] = mapped_column(db.String(20), nullable=False, index=True)
    defect_id: Mapped[int] = mapped_column(db.Integer, ForeignKey("defects.id"), nullable=False)
    ng_qty: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    trayno: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    tray_position: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    color: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    defect_detail: Mapped[str | None] = mapped_column(db.String(200), nullable=True)

    defect: Mapped[Defect] = relationship(Defect)

    __table_args__ = (
        CheckConstraint("ng_qty >= 0", name="defectdata_customer_ng_qty_non_negative"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "inspection_no": self.inspection_no,
            "defect_date": isoformat(self.defect_date),
            "qc_name": self.qc_name,
            "qclead_name": self.qclead_name,
            "mbr_name": self.mbr_name,
            "linevi": self.linevi,
            "groupvi": self.groupvi,
            "station": self.station,
            "inspector": self.inspector,
            "defect_id": self.defect_id,
            "defect_name": self.defect.name if self.defect else None,
            "ng_qty": self.ng_qty,
            "trayno": self.trayno,
            "tray_position": self.tray_position,
            "color": self.color,
            "defect_detail": self.defect_detail,
            **self.audit_dict(),
        }
