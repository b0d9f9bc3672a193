"""Request payloads for sysconfig rows."""
from __future__ import annotations

import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NUMBER_LIST_PATTERN = re.compile(r"^\s*\d+\s*(,\s*\d+\s*)*$")
NUMBER_LIST_FIELDS = (
    "fvi_lot_qty",
    "general_oqa_qty",
    "crack_oqa_qty",
    "general_siv_qty",
    "crack_siv_qty",
)


def check_number_list(value: Optional[str]) -> Optional[str]:
    """Accept ``"32, 50,80"`` style values and normalise the spacing."""

    if value is None or value.strip() == "":
        return None
    if not NUMBER_LIST_PATTERN.match(value):
        raise ValueError("Must be a comma-separated list of whole numbers")
    return ",".join(part.strip() for part in value.split(","))


class SysConfigFields(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    system_name: Optional[str] = Field(default=None, max_length=100)
    fvi_lot_qty: Optional[str] = None
    general_oqa_qty: Optional[str] = None
    crack_oqa_qty: Optional[str] = None
    general_siv_qty: Optional[str] = None
    crack_siv_qty: Optional[str] = None
    defect_type: Optional[str] = None
    defect_group: Optional[str] = None
    shift: Optional[str] = None
    site: Optional[str] = None
    tabs: Optional[str] = None
    product_type: Optional[str] = None
    product_families: Optional[str] = None
    mssql_server: Optional[str] = Field(default=None, max_length=255)
    mssql_port: Optional[int] = Field(default=None, ge=1, le=65535)
    mssql_database: Optional[str] = Field(default=None, max_length=255)
    mssql_username: Optional[str] = Field(default=None, max_length=255)
    mssql_password: Optional[str] = Field(default=None, max_length=255)
    mssql_sync: Optional[int] = Field(default=None, ge=1, le=1440)
    news: Optional[str] = None

    @field_validator(*NUMBER_LIST_FIELDS)
    @classmethod
    def check_quantities(cls, value: Optional[str]) -> Optional[str]:
        return check_number_list(value)


class SysConfigCreate(SysConfigFields):
    is_active: bool = True


class SysConfigUpdate(SysConfigFields):
    is_active: Optional[bool] = None
