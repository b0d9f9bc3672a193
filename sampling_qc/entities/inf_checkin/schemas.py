"""Parameters accepted by the check-in routes."""
from __future__ import annotations

from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..inf_lotinput.schemas import ImportParams


class CheckinImportParams(ImportParams):
    """Import window; ``created_after`` resumes after the newest mirrored row."""

    created_after: Optional[datetime] = Field(default=None, alias="createdAfter")


class CheckinRangeParams(CheckinImportParams):
    date_from: date = Field(alias="dateFrom")
    date_to: date = Field(alias="dateTo")


class CheckinQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=50, ge=1, le=200)
    global_search: Optional[str] = Field(default=None, alias="globalSearch")
    username: Optional[str] = None
    oprname: Optional[str] = None
    line_no_id: Optional[str] = Field(default=None, alias="lineId")
    work_shift_id: Optional[str] = Field(default=None, alias="shiftId")
    group_code: Optional[str] = None
    team: Optional[str] = None
    status: Literal["all", "working", "checked_out"] = "all"
    created_on_from: Optional[date] = Field(default=None, alias="createdOnFrom")
    created_on_to: Optional[date] = Field(default=None, alias="createdOnTo")


class LineMappingQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    line: str = Field(min_length=1)
    work_date: date = Field(alias="date")
    shift: str = Field(min_length=1)
