"""Database models for inspection records and incoming QA data."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import CheckConstraint, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ...extensions import db
from ...models import AuditMixin, isoformat, utcnow


class InspectionData(AuditMixin, db.Model):
    """One sampling inspection of a lot at a station."""

    __tablename__ = "inspection_data"

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True)
    inspection_no: Mapped[str] = mapped_column(db.String(50), nullable=False, unique=True)
    station: Mapped[str] = mapped_column(db.String(10), nullable=False, index=True)
    round: Mapped[int] = mapped_column(db.Integer, nullable=False, default=1)
    fy: Mapped[str] = mapped_column(db.String(4), nullable=False, index=True)
    ww: Mapped[str] = mapped_column(db.String(2), nullable=False, index=True)
    model: Mapped[str] = mapped_column(db.String(50), nullable=False, index=True)
    version: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    lot_no: Mapped[str] = mapped_column(db.String(50), nullable=False, index=True)
    shift: Mapped[str | None] = mapped_column(db.String(10), nullable=True)
    judgment: Mapped[bool] = mapped_column(db.Boolean, nullable=False)
    sampling_qty: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    ng_qty: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    inspected_at: Mapped[datetime] = mapped_column(db.DateTime, nullable=False, default=utcnow)

    defects: Mapped[list["DefectData"]] = relationship(
        "DefectData", cascade="all, delete-orphan", back_populates="inspection"
    )

    __table_args__ = (
        CheckConstraint("sampling_qty >= 0", name="inspection_sampling_qty_non_negative"),
        CheckConstraint("ng_qty >= 0", name="inspection_ng_qty_non_negative"),
    )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "inspection_no": self.inspection_no,
            "station": self.station,
            "round": self.round,
            "fy": self.fy,
            "ww": self.ww,
            "model": self.model,
            "version": self.version,
            "lot_no": self.lot_no,
            "shift": self.shift,
            "judgment": self.judgment,
            "sampling_qty": self.sampling_qty,
            "ng_qty": self.ng_qty,
            "inspected_at": isoformat(self.inspected_at),
            "defects": [defect.to_dict() for defect in self.defects],
            **self.audit_dict(),
        }


class DefectData(db.Model):
    """NG quantity per defect found during an inspection."""

    __tablename__ = "defect_data"

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True)
    inspection_no: Mapped[str] = mapped_column(
        db.String(50), ForeignKey("inspection_data.inspection_no"), nullable=False, index=True
    )
    defect_id: Mapped[int] = mapped_column(db.Integer, ForeignKey("defects.id"), nullable=False)
    ng_qty: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)

    inspection: Mapped[InspectionData] = relationship("InspectionData", back_populates="defects")

    def to_dict(self) -> dict[str, Any]:
        return {"defect_id": self.defect_id, "ng_qty": self.ng_qty}


class IqaData(db.Model):
    """Incoming quality assurance result for a supplier lot."""

    __tablename__ = "iqa_data"

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True)
    fy: Mapped[str] = mapped_column(db.String(4), nullable=False, index=True)
    ww: Mapped[str] = mapped_column(db.String(2), nullable=False, index=True)
    model: Mapped[str] = mapped_column(db.String(50), nullable=False)
    item: Mapped[str | None] = mapped_column(db.String(50), nullable=True)
    lot_no: Mapped[str] = mapped_column(db.String(50), nullable=False)
    qty: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    rej: Mapped[int] = mapped_column(db.Integer, nullable=False, default=0)
    created_by: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "fy": self.fy,
            "ww": self.ww,
            "model": self.model,
            "item": self.item,
            "lot_no": self.lot_no,
            "qty": self.qty,
            "rej": self.rej,
            "created_by": self.created_by,
            "created_at": isoformat(self.created_at),
        }
