"""User administration routes mounted at ``/api/users``."""
from __future__ import annotations

import re
from typing import Any, Optional

from flask import Blueprint
from pydantic import BaseModel, ConfigDict, Field, field_validator
from werkzeug.security import generate_password_hash

from ...generic import EntityConfig, EntityRepository, build_service, create_entity_blueprint
from ...models import Role, User

USERNAME_PATTERN = re.compile(r"^[A-Za-z0-9_.-]{3,50}$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _check_email(value: Optional[str]) -> Optional[str]:
    if value and not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address")
    return value or None


class UserCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, use_enum_values=True)

    username: str
    password: str = Field(min_length=6, max_length=128)
    name: str = Field(min_length=2, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    position: Optional[str] = Field(default=None, max_length=100)
    role: Role = Role.USER
    description: Optional[str] = None
    is_active: bool = True

    @field_validator("username")
    @classmethod
    def check_username(cls, value: str) -> str:
        if not USERNAME_PATTERN.match(value):
            raise ValueError(
                "Username must be 3-50 characters of letters, digits, dots, hyphens or underscores"
            )
        return value

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)


class UserUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, use_enum_values=True)

    password: Optional[str] = Field(default=None, min_length=6, max_length=128)
    name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    email: Optional[str] = Field(default=None, max_length=255)
    position: Optional[str] = Field(default=None, max_length=100)
    role: Optional[Role] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None

    @field_validator("email")
    @classmethod
    def check_email(cls, value: Optional[str]) -> Optional[str]:
        return _check_email(value)


def unique_username(repository: EntityRepository, values: dict[str, Any], key: Any) -> str | None:
    username = values.get("username")
    if username and repository.find_by_name(username, exclude_key=key) is not None:
        return f"username: Username '{username}' is already taken"
    return None


def hash_password(values: dict[str, Any], operation: str) -> dict[str, Any]:
    """Replace the plain ``password`` field with its hash."""

    password = values.pop("password", None)
    if password:
        values["password_hash"] = generate_password_hash(password)
    return values


USER_CONFIG = EntityConfig(
    entity_name="user",
    model=User,
    create_schema=UserCreate,
    update_schema=UserUpdate,
    searchable_fields=("username", "name", "email", "position"),
    sortable_fields=("id", "username", "name", "role", "last_login", "created_at"),
    default_sort="username",
    name_field="username",
    rules=(unique_username,),
    prepare=hash_password,
    write_role=Role.MANAGER,
)


def create_blueprint(db) -> Blueprint:
    return create_entity_blueprint(build_service(db, USER_CONFIG), __name__)
