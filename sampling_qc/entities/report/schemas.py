"""Query parameters for report routes."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

YEAR_PATTERN = r"^\d{4}$"
WEEK_PATTERN = r"^\d{2}$"


class PeriodFilter(BaseModel):
    """Optional ``yearFrom/wwFrom`` to ``yearTo/wwTo`` window plus model."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    model: Optional[str] = None
    year_from: Optional[str] = Field(default=None, alias="yearFrom", pattern=YEAR_PATTERN)
    ww_from: Optional[str] = Field(default=None, alias="wwFrom", pattern=WEEK_PATTERN)
    year_to: Optional[str] = Field(default=None, alias="yearTo", pattern=YEAR_PATTERN)
    ww_to: Optional[str] = Field(default=None, alias="wwTo", pattern=WEEK_PATTERN)

    @model_validator(mode="after")
    def complete_bounds(self) -> "PeriodFilter":
        if bool(self.year_from) != bool(self.ww_from):
            raise ValueError("yearFrom and wwFrom must be given together")
        if bool(self.year_to) != bool(self.ww_to):
            raise ValueError("yearTo and wwTo must be given together")
        if self.start and self.end and self.start > self.end:
            raise ValueError("Start week must not be after end week")
        return self

    @property
    def start(self) -> str | None:
        return f"{self.year_from}{self.ww_from}" if self.year_from else None

    @property
    def end(self) -> str | None:
        return f"{self.year_to}{self.ww_to}" if self.year_to else None


class WeekFilter(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore", str_strip_whitespace=True)

    year: str = Field(pattern=YEAR_PATTERN)
    ww: str = Field(pattern=WEEK_PATTERN)
