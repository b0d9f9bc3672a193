"""Parameters accepted by the lot input routes."""
from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class ImportParams(BaseModel):
    """Optional inclusive date window for an MSSQL import."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    date_from: Optional[date] = Field(default=None, alias="dateFrom")
    date_to: Optional[date] = Field(default=None, alias="dateTo")

    @model_validator(mode="after")
    def ordered(self) -> "ImportParams":
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("dateFrom must not be after dateTo")
        return self


class RangeImportParams(ImportParams):
    date_from: date = Field(alias="dateFrom")
    date_to: date = Field(alias="dateTo")


class LotInputQuery(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=20, ge=1, le=200)
    lot_no_search: Optional[str] = Field(default=None, alias="lotNoSearch")
    item_no_search: Optional[str] = Field(default=None, alias="itemNoSearch")
    global_search: Optional[str] = Field(default=None, alias="globalSearch")
    part_site: Optional[str] = Field(default=None, alias="partSite")
    line_no: Optional[str] = Field(default=None, alias="lineNo")
    model: Optional[str] = None
    version: Optional[str] = None
    input_date_from: Optional[date] = Field(default=None, alias="inputDateFrom")
    input_date_to: Optional[date] = Field(default=None, alias="inputDateTo")
