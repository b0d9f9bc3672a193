"""Request payloads for defects."""
from __future__ import annotations

import re
import unicodedata
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

NAME_MIN_LENGTH = 2
NAME_MAX_LENGTH = 100
DESCRIPTION_MAX_LENGTH = 5000
NAME_PATTERN = re.compile(r"^[a-zA-Z0-9 \-_.()]+$")
REPEATED_WHITESPACE = re.compile(r"\s{2,}")


def normalise_defect_name(value: str) -> str:
    """Return the canonical form of a defect name or raise ``ValueError``."""

    value = unicodedata.normalize("NFC", value).strip()
    if len(value) < NAME_MIN_LENGTH:
        raise ValueError(f"Defect name must be at least {NAME_MIN_LENGTH} characters")
    if len(value) > NAME_MAX_LENGTH:
        raise ValueError(f"Defect name cannot exceed {NAME_MAX_LENGTH} characters")
    if not NAME_PATTERN.match(value):
        raise ValueError(
            "Defect name can only contain letters, numbers, spaces, hyphens, "
            "underscores, periods and parentheses"
        )
    if REPEATED_WHITESPACE.search(value):
        raise ValueError("Defect name cannot contain consecutive spaces")
    return value


def normalise_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    if len(value) > DESCRIPTION_MAX_LENGTH:
        raise ValueError(f"Description cannot exceed {DESCRIPTION_MAX_LENGTH} characters")
    if value and not value.strip():
        raise ValueError("Description cannot be only whitespace")
    return value.strip() or None


class DefectCreate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    description: Optional[str] = None
    defect_group: Optional[str] = Field(default=None, max_length=100)
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return normalise_defect_name(value)

    @field_validator("description")
    @classmethod
    def check_description(cls, value: Optional[str]) -> Optional[str]:
        return normalise_description(value)


class DefectUpdate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    description: Optional[str] = None
    defect_group: Optional[str] = Field(default=None, max_length=100)
    is_active: Optional[bool] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            raise ValueError("Defect name cannot be null")
        return normalise_defect_name(value)

    @field_validator("description")
    @classmethod
    def check_description(cls, value: Optional[str]) -> Optional[str]:
        return normalise_description(value)
