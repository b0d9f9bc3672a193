"""Database model for mirrored operator check-ins."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy.orm import Mapped, mapped_column

from ...extensions import db
from ...models import isoformat


class InfCheckin(db.Model):
    """Copy of one ``dbo.CheckIn`` row; an open shift has no ``date_time_off_work``."""

    __tablename__ = "inf_checkin"

    id: Mapped[str] = mapped_column(db.String(50), primary_key=True)
    line_no_id: Mapped[str | None] = mapped_column(db.String(20), nullable=True, index=True)
    work_shift_id: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    gr_code: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    username: Mapped[str | None] = mapped_column(db.String(50), nullable=True, index=True)
    oprname: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    created_on: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True, index=True)
    checked_out: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True)
    time_off_work: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    time_start_work: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    date_time_start_work: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True)
    date_time_off_work: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True)
    group_code: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    team: Mapped[str | None] = mapped_column(db.String(20), nullable=True)
    imported_at: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True, index=True)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "line_no_id": self.line_no_id,
            "work_shift_id": self.work_shift_id,
            "gr_code": self.gr_code,
            "username": self.username,
            "oprname": self.oprname,
            "created_on": isoformat(self.created_on),
            "checked_out": isoformat(self.checked_out),
            "time_off_work": self.time_off_work,
            "time_start_work": self.time_start_work,
            "date_time_start_work": isoformat(self.date_time_start_work),
            "date_time_off_work": isoformat(self.date_time_off_work),
            "group_code": self.group_code,
            "team": self.team,
            "imported_at": isoformat(self.imported_at),
        }
