"""Database model for mirrored lot input rows."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Mapped, mapped_column

from ...extensions import db
from ...models import isoformat


class InfLotInput(db.Model):
    """Copy of one ``dbo.Input`` row; ``imported_at`` marks the last sync write."""

    __tablename__ = "inf_lotinput"

    id: Mapped[str] = mapped_column(db.String(50), primary_key=True)
    lot_no: Mapped[str] = mapped_column(db.String(50), nullable=False, index=True)
    part_site: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    line_no: Mapped[str | None] = mapped_column(db.String(10), nullable=True)
    item_no: Mapped[str | None] = mapped_column(db.String(50), nullable=True)
    model: Mapped[str | None] = mapped_column(db.String(50), nullable=True)
    version: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    input_date: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True, index=True)
    finish_on: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True)
    imported_at: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True, index=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "LotNo": self.lot_no,
            "PartSite": self.part_site,
            "LineNo": self.line_no,
            "ItemNo": self.item_no,
            "Model": self.model,
            "Version": self.version,
            "InputDate": isoformat(self.input_date),
            "FinishOn": isoformat(self.finish_on),
            "imported_at": isoformat(self.imported_at),
        }
