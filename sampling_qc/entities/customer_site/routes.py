"""Customer-site routes mounted at ``/api/customer-sites``."""
from __future__ import annotations

from typing import Any, Optional

from flask import Blueprint
from pydantic import BaseModel, ConfigDict, Field, field_validator

from ...generic import EntityConfig, EntityRepository, build_service, create_entity_blueprint, respond
from ...generic.schemas import CODE_PATTERN, unique_code
from ...middleware import require_authentication
from ..customer.models import Customer
from .models import CustomerSite


def _upper(value: Optional[str]) -> Optional[str]:
    return value.upper() if value else value


class CustomerSiteCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    code: str
    customers: str = Field(min_length=1, max_length=10)
    site: str = Field(min_length=1, max_length=5)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def check_code(cls, value: str) -> str:
        value = value.upper()
        if not CODE_PATTERN.match(value):
            raise ValueError("Code must be 1-10 letters, digits, hyphens or underscores")
        return value

    @field_validator("customers", "site")
    @classmethod
    def upper(cls, value: str) -> str:
        return _upper(value)


class CustomerSiteUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    customers: Optional[str] = Field(default=None, min_length=1, max_length=10)
    site: Optional[str] = Field(default=None, min_length=1, max_length=5)
    is_active: Optional[bool] = None

    @field_validator("customers", "site")
    @classmethod
    def upper(cls, value: Optional[str]) -> Optional[str]:
        return _upper(value)


def known_customer(repository: EntityRepository, values: dict[str, Any], key: Any) -> str | None:
    code = values.get("customers")
    if code and repository.session.get(Customer, code) is None:
        return f"customers: Customer '{code}' does not exist"
    return None


CUSTOMER_SITE_CONFIG = EntityConfig(
    entity_name="customer-site",
    model=CustomerSite,
    create_schema=CustomerSiteCreate,
    update_schema=CustomerSiteUpdate,
    primary_key="code",
    key_type=str,
    searchable_fields=("code", "customers", "site"),
    sortable_fields=("code", "customers", "site", "created_at", "updated_at"),
    default_sort="code",
    name_field="code",
    rules=(unique_code, known_customer),
)


def create_blueprint(db) -> Blueprint:
    service = build_service(db, CUSTOMER_SITE_CONFIG)
    bp = create_entity_blueprint(service, __name__)

    @bp.get("/customer/<customer_code>")
    @require_authentication
    def by_customer(customer_code: str):
        return respond(service.filter_by(customers=customer_code.upper()))

    @bp.get("/site/<site_code>")
    @require_authentication
    def by_site(site_code: str):
        return respond(service.filter_by(site=site_code.upper()))

    return bp
