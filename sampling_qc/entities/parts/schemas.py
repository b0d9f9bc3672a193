"""Request payloads for parts."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PartFields(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    product_families: Optional[str] = Field(default=None, max_length=10)
    versions: Optional[str] = Field(default=None, max_length=10)
    production_site: Optional[str] = Field(default=None, max_length=5)
    tab: Optional[str] = Field(default=None, max_length=5)
    product_type: Optional[str] = Field(default=None, max_length=5)
    customer_driver: Optional[str] = Field(default=None, max_length=200)
    customer_site_code: Optional[str] = Field(default=None, max_length=10)

    @field_validator("customer_site_code")
    @classmethod
    def upper_code(cls, value: Optional[str]) -> Optional[str]:
        return value.upper() if value else None


class PartCreate(PartFields):
    """Every descriptive field is required when a part is filed by hand."""

    partno: str = Field(min_length=1, max_length=25)
    product_families: str = Field(min_length=1, max_length=10)
    versions: str = Field(min_length=1, max_length=10)
    production_site: str = Field(min_length=1, max_length=5)
    tab: str = Field(min_length=1, max_length=5)
    product_type: str = Field(min_length=1, max_length=5)
    customer_driver: str = Field(min_length=1, max_length=200)
    customer_site_code: str = Field(min_length=1, max_length=10)
    is_active: bool = True


class PartUpdate(PartFields):
    is_active: Optional[bool] = None


class PartImport(PartFields):
    """Bulk rows only need a part number."""

    partno: str = Field(min_length=1, max_length=25)
    is_active: bool = True
