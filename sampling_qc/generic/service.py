"""Validation and envelope handling for generic entities."""
from __future__ import annotations

from collections.abc import Callable
from functools import wraps
from typing import Any

from flask import current_app
from pydantic import BaseModel, ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from ..models import utcnow
from .config import EntityConfig, QueryOptions, ServiceResult, build_pagination
from .repository import EntityRepository


def format_validation_errors(exc: ValidationError) -> list[str]:
    """Flatten pydantic errors into ``field: message`` strings."""

    messages: list[str] = []
    for error in exc.errors():
        message = error["msg"].removeprefix("Value error, ")
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{location}: {message}" if location else message)
    return messages


def validate_payload(
    schema: type[BaseModel], data: Any, *, partial: bool = False
) -> tuple[dict[str, Any] | None, list[str]]:
    if not isinstance(data, dict):
        return None, ["Request body must be a JSON object"]
    try:
        parsed = schema.model_validate(data)
    except ValidationError as exc:
        return None, format_validation_errors(exc)
    return parsed.model_dump(exclude_unset=partial), []


def guard_database(failure: str, kind: str = "error") -> Callable[[Callable], Callable]:
    """Turn a ``SQLAlchemyError`` raised by a service method into a failed envelope.

    The decorated method's owner must expose ``session``; the session is
    rolled back before the failure is returned.
    """

    def decorator(method: Callable) -> Callable:
        @wraps(method)
        def wrapped(self, *args, **kwargs):
            try:
                return method(self, *args, **kwargs)
            except SQLAlchemyError:
                self.session.rollback()
                current_app.logger.exception("%s.%s failed", type(self).__name__, method.__name__)
                return ServiceResult.fail(failure, kind=kind)

        return wrapped

    return decorator


class EntityService:
    """CRUD operations that never raise past the service boundary."""

    def __init__(self, repository: EntityRepository) -> None:
        self.repository = repository

    @property
    def config(self) -> EntityConfig:
        return self.repository.config

    @property
    def session(self):
        return self.repository.session

    def _check_rules(self, values: dict[str, Any], key: Any = None) -> list[str]:
        errors = []
        for rule in self.config.rules:
            message = rule(self.repository, values, key)
            if message:
                errors.append(message)
        return errors

    def _database_failure(self, action: str, exc: SQLAlchemyError) -> ServiceResult:
        self.repository.rollback()
        current_app.logger.exception("Failed to %s %s", action, self.config.entity_name)
        if isinstance(exc, IntegrityError):
            return ServiceResult.fail(
                f"Cannot {action} {self.config.label.lower()}: conflicting or referenced data",
                kind="conflict",
            )
        return ServiceResult.fail(f"Failed to {action} {self.config.label.lower()}")

    def create(self, data: Any, user_id: int | None = None) -> ServiceResult:
        values, errors = validate_payload(self.config.create_schema, data)
        if errors:
            return ServiceResult.invalid(errors)

        try:
            errors = self._check_rules(values)
            if errors:
                return ServiceResult.invalid(errors)
            if self.config.prepare is not None:
                values = self.config.prepare(values, "create")
            values.update(created_by=user_id, updated_by=user_id)
            instance = self.repository.insert(values)
            payload = self.config.serialize(instance)
        except SQLAlchemyError as exc:
            return self._database_failure("create", exc)

        current_app.logger.info("%s created: %s", self.config.label, payload.get(self.config.primary_key))
        return ServiceResult.ok(payload, message=f"{self.config.label} created successfully")

    def update(self, key: Any, data: Any, user_id: int | None = None) -> ServiceResult:
        values, errors = validate_payload(self.config.update_schema, data, partial=True)
        if errors:
            return ServiceResult.invalid(errors)
        if not values:
            return ServiceResult.invalid(["No fields to update"])

        try:
            instance = self.repository.get(key)
            if instance is None:
                return ServiceResult.not_found(self.config.label, key)
            errors = self._check_rules(values, key)
            if errors:
                return ServiceResult.invalid(errors)
            if self.config.prepare is not None:
                values = self.config.prepare(values, "update")
            values.update(updated_by=user_id, updated_at=utcnow())
            instance = self.repository.save(instance, values)
            payload = self.config.serialize(instance)
        except SQLAlchemyError as exc:
            return self._database_failure("update", exc)
        return ServiceResult.ok(payload, message=f"{self.config.label} updated successfully")

    def get_all(self, options: QueryOptions | None = None) -> ServiceResult:
        options = options or QueryOptions()
        limit = options.effective_limit(self.config)
        try:
            rows, total = self.repository.list(options, limit)
        except SQLAlchemyError as exc:
            return self._database_failure("list", exc)
        return ServiceResult.ok(
            [self.config.serialize(row) for row in rows],
            pagination=build_pagination(options.page, limit, total),
        )

    def get_by_id(self, key: Any) -> ServiceResult:
        try:
            instance = self.repository.get(key)
        except SQLAlchemyError as exc:
            return self._database_failure("load", exc)
        if instance is None:
            return ServiceResult.not_found(self.config.label, key)
        return ServiceResult.ok(self.config.serialize(instance))

    def delete(self, key: Any) -> ServiceResult:
        try:
            instance = self.repository.get(key)
            if instance is None:
                return ServiceResult.not_found(self.config.label, key)
            self.repository.delete(instance)
        except SQLAlchemyError as exc:
            return self._database_failure("delete", exc)
        current_app.logger.info("%s deleted: %s", self.config.label, key)
        return ServiceResult.ok({self.config.primary_key: key}, message=f"{self.config.label} deleted successfully")

    def change_status(self, key: Any, user_id: int | None = None) -> ServiceResult:
        if not hasattr(self.config.model, "is_active"):
            return ServiceResult.fail(f"{self.config.label} has no active status", kind="validation")
        try:
            instance = self.repository.get(key)
            if instance is None:
                return ServiceResult.not_found(self.config.label, key)
            values = {
                "is_active": not instance.is_active,
                "updated_by": user_id,
                "updated_at": utcnow(),
            }
            instance = self.repository.save(instance, values)
            payload = self.config.serialize(instance)
        except SQLAlchemyError as exc:
            return self._database_failure("update", exc)
        state = "activated" if payload.get("is_active") else "deactivated"
        return ServiceResult.ok(payload, message=f"{self.config.label} {state}")

    def search_by_name(self, term: str | None) -> ServiceResult:
        if not term or not term.strip():
            return ServiceResult.invalid(["name: Search term is required"])
        try:
            rows = self.repository.search_by_name(term, self.config.max_limit)
        except SQLAlchemyError as exc:
            return self._database_failure("search", exc)
        return ServiceResult.ok([self.config.serialize(row) for row in rows])

    def filter_by(self, **criteria: Any) -> ServiceResult:
        try:
            rows = self.repository.filter_by(**criteria)
        except SQLAlchemyError as exc:
            return self._database_failure("list", exc)
        return ServiceResult.ok([self.config.serialize(row) for row in rows])

    def statistics(self) -> ServiceResult:
        try:
            return ServiceResult.ok(self.repository.statistics())
        except SQLAlchemyError as exc:
            return self._database_failure("summarise", exc)

    def health(self) -> ServiceResult:
        try:
            count = self.repository.count()
        except SQLAlchemyError:
            self.repository.rollback()
            current_app.logger.exception("%s health check failed", self.config.entity_name)
            return ServiceResult.fail(
                f"{self.config.label} storage is unreachable", kind="unavailable"
            )
        return ServiceResult.ok(
            {
                "status": "healthy",
                "entity": self.config.entity_name,
                "table": self.config.model.__tablename__,
                "record_count": count,
                "timestamp": utcnow().isoformat(),
            }
        )
