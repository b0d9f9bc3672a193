"""Payloads shared by the code-keyed lookup tables."""
from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

CODE_PATTERN = re.compile(r"^[A-Z0-9_-]{1,10}$")


class CodeEntityCreate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    code: str
    name: str = Field(min_length=1, max_length=100)
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def check_code(cls, value: str) -> str:
        value = value.upper()
        if not CODE_PATTERN.match(value):
            raise ValueError("Code must be 1-10 letters, digits, hyphens or underscores")
        return value


class CodeEntityUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    is_active: Optional[bool] = None


def unique_code(repository, values: dict[str, Any], key: Any) -> str | None:
    """Creation-only rule: the code is the primary key and may not be reused."""

    if key is not None:
        return None
    code = values.get("code")
    if code and repository.get(code) is not None:
        return f"code: {repository.config.label} code '{code}' already exists"
    return None
