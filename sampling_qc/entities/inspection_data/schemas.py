"""Request payloads for inspection records."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

FY_PATTERN = r"^\d{4}$"
WW_PATTERN = r"^\d{2}$"


class DefectLine(BaseModel):
    defect_id: int = Field(ge=1)
    ng_qty: int = Field(ge=1)


class InspectionCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    inspection_no: str = Field(min_length=1, max_length=50)
    station: Literal["OQA", "SIV", "FVI"]
    round: int = Field(default=1, ge=1)
    model: str = Field(min_length=1, max_length=50)
    version: Optional[str] = Field(default=None, max_length=20)
    lot_no: str = Field(min_length=1, max_length=50)
    shift: Optional[str] = Field(default=None, max_length=10)
    judgment: bool
    sampling_qty: int = Field(ge=0)
    ng_qty: int = Field(default=0, ge=0)
    inspected_at: Optional[datetime] = None
    fy: Optional[str] = Field(default=None, pattern=FY_PATTERN)
    ww: Optional[str] = Field(default=None, pattern=WW_PATTERN)
    defects: List[DefectLine] = []

    @field_validator("station", mode="before")
    @classmethod
    def upper_station(cls, value):
        return value.upper() if isinstance(value, str) else value

    @field_validator("ng_qty")
    @classmethod
    def ng_leq_sampling(cls, v, info):
        sampled = info.data.get("sampling_qty", None)
        if sampled is not None and v > sampled:
            raise ValueError("ng_qty cannot exceed sampling_qty")
        return v


class IqaCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    fy: str = Field(pattern=FY_PATTERN)
    ww: str = Field(pattern=WW_PATTERN)
    model: str = Field(min_length=1, max_length=50)
    item: Optional[str] = Field(default=None, max_length=50)
    lot_no: str = Field(min_length=1, max_length=50)
    qty: int = Field(ge=0)
    rej: int = Field(default=0, ge=0)

    @field_validator("rej")
    @classmethod
    def rej_leq_qty(cls, v, info):
        qty = info.data.get("qty", None)
        if qty is not None and v > qty:
            raise ValueError("rej cannot exceed qty")
        return v
