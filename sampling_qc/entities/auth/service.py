"""Credential checks and password changes."""
from __future__ import annotations

from typing import Optional

from flask import current_app
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError

from ...extensions import db
from ...generic import ServiceResult
from ...models import User, utcnow


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    username: str = Field(min_length=1)
    password: str = Field(min_length=1)


class PasswordChange(BaseModel):
    model_config = ConfigDict(extra="ignore")

    current_password: str = Field(min_length=1)
    new_password: str = Field(min_length=6, max_length=128)
    confirm_password: Optional[str] = None

    @model_validator(mode="after")
    def passwords_match(self) -> "PasswordChange":
        if self.confirm_password is not None and self.confirm_password != self.new_password:
            raise ValueError("New password and confirmation do not match")
        if self.current_password == self.new_password:
            raise ValueError("New password must differ from the current password")
        return self


def _database_failure(action: str) -> ServiceResult:
    db.session.rollback()
    current_app.logger.exception("Failed to %s", action)
    return ServiceResult.fail(f"Failed to {action}")


def authenticate(username: str, password: str) -> ServiceResult:
    """Return the user on valid credentials; failures never reveal which part was wrong."""

    try:
        user = db.session.execute(
            select(User).where(User.username == username)
        ).scalar_one_or_none()

        if user is None or not user.check_password(password):
            current_app.logger.warning("Failed login attempt for %s", username)
            return ServiceResult.fail("Invalid username or password", kind="validation")
        if not user.is_active:
            current_app.logger.warning("Login attempt for disabled account %s", username)
            return ServiceResult.fail("Account is disabled", kind="validation")

        user.last_login = utcnow()
        db.session.commit()
    except SQLAlchemyError:
        return _database_failure("authenticate")
    current_app.logger.info("User %s logged in", username)
    return ServiceResult.ok(user)


def change_password(user_id: int, request: PasswordChange) -> ServiceResult:
    try:
        user = db.session.get(User, user_id)
        if user is None:
            return ServiceResult.not_found("User", user_id)
        if not user.check_password(request.current_password):
            return ServiceResult.invalid(["current_password: Current password is incorrect"])

        user.set_password(request.new_password)
        user.updated_by = user_id
        user.updated_at = utcnow()
        db.session.commit()
    except SQLAlchemyError:
        return _database_failure("change password")
    current_app.logger.info("User %s changed password", user.username)
    return ServiceResult.ok(message="Password changed successfully")
