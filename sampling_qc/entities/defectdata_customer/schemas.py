"""Request payloads for customer defect records."""
from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def _upper(value):
    return value.upper() if isinstance(value, str) else value


class DefectRecordFields(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    defect_date: Optional[datetime] = None
    qc_name: Optional[str] = Field(default=None, max_length=30)
    qclead_name: Optional[str] = Field(default=None, max_length=30)
    mbr_name: Optional[str] = Field(default=None, max_length=30)
    linevi: Optional[str] = Field(default=None, max_length=20)
    groupvi: Optional[str] = Field(default=None, max_length=20)
    trayno: Optional[str] = Field(default=None, max_length=20)
    tray_position: Optional[str] = Field(default=None, max_length=20)
    color: Optional[str] = Field(default=None, max_length=20)
    defect_detail: Optional[str] = Field(default=None, max_length=200)


class DefectRecordCreate(DefectRecordFields):
    inspection_no: str = Field(min_length=1, max_length=20)
    station: str = Field(min_length=1, max_length=5)
    inspector: str = Field(min_length=1, max_length=20)
    defect_id: int = Field(ge=1)
    ng_qty: int = Field(default=0, ge=0)

    upper_station = field_validator("station", mode="before")(_upper)


class DefectRecordUpdate(DefectRecordFields):
    inspection_no: Optional[str] = Field(default=None, min_length=1, max_length=20)
    station: Optional[str] = Field(default=None, min_length=1, max_length=5)
    inspector: Optional[str] = Field(default=None, min_length=1, max_length=20)
    defect_id: Optional[int] = Field(default=None, ge=1)
    ng_qty: Optional[int] = Field(default=None, ge=0)

    upper_station = field_validator("station", mode="before")(_upper)


class DateWindow(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    start_date: Optional[date] = Field(default=None, alias="startDate")
    end_date: Optional[date] = Field(default=None, alias="endDate")

    @model_validator(mode="after")
    def ordered(self) -> "DateWindow":
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("startDate must not be after endDate")
        return self


class StationQuery(DateWindow):
    limit: int = Field(default=100, ge=1, le=500)


class TrendQuery(BaseModel):
    days: int = Field(default=7, ge=1, le=365)


class DefectRecordSearch(DateWindow):
    """Exact-match filters plus ``*_contains`` substring filters."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=200)
    inspection_no: Optional[str] = None
    station: Optional[str] = None
    inspector: Optional[str] = None
    linevi: Optional[str] = None
    groupvi: Optional[str] = None
    qc_name: Optional[str] = None
    defect_id: Optional[int] = None
    inspection_no_contains: Optional[str] = None
    inspector_contains: Optional[str] = None
    qc_name_contains: Optional[str] = None
