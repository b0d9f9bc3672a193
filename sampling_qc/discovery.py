"""Entity auto-discovery and route registration.

Every entity in :data:`ENTITY_PATTERNS` is mounted at startup. Route
factories come from an explicit registry when one is configured, otherwise
from the entity's ``routes`` module by naming convention. A broken or
missing module never stops the application from starting: it gets a
placeholder blueprint answering ``501`` and the failure is reported in the
discovery summary.
"""
from __future__ import annotations

import importlib
import time
from collections.abc import Callable, Mapping
from dataclasses import asdict, dataclass, field
from enum import Enum
from types import ModuleType
from typing import Any

from flask import Blueprint, Flask, jsonify

from .models import utcnow

ENTITIES_PACKAGE = "sampling_qc.entities"

RouteFactory = Callable[[Any], Blueprint]


class PatternType(str, Enum):
    SERIAL_ID = "SERIAL_ID"
    VARCHAR_CODE = "VARCHAR_CODE"
    SPECIAL = "SPECIAL"


@dataclass(frozen=True)
class EntityRoute:
    entity_name: str
    api_path: str
    table_name: str
    module: str
    primary_key: str = "id"

    @property
    def snake_name(self) -> str:
        return self.entity_name.replace("-", "_")


ENTITY_PATTERNS: dict[str, PatternType] = {
    "user": PatternType.SERIAL_ID,
    "defect": PatternType.SERIAL_ID,
    "sysconfig": PatternType.SERIAL_ID,
    "sampling-reason": PatternType.SERIAL_ID,
    "customer": PatternType.VARCHAR_CODE,
    "line-fvi": PatternType.VARCHAR_CODE,
    "auth": PatternType.SPECIAL,
    "defect-image": PatternType.SPECIAL,
    "inspection-data": PatternType.SPECIAL,
    "inf-lotinput": PatternType.SPECIAL,
    "report": PatternType.SPECIAL,
    "parts": PatternType.SPECIAL,
    "customer-site": PatternType.SPECIAL,
    "inf-checkin": PatternType.SPECIAL,
    "defectdata-customer": PatternType.SPECIAL,
    "defect-customer-image": PatternType.SPECIAL,
}

ENTITY_ROUTES: dict[str, EntityRoute] = {
    "user": EntityRoute("user", "/api/users", "users", "user"),
    "defect": EntityRoute("defect", "/api/defects", "defects", "defect"),
    "sysconfig": EntityRoute("sysconfig", "/api/sysconfig", "sysconfig", "sysconfig"),
    "sampling-reason": EntityRoute(
        "sampling-reason", "/api/sampling-reasons", "sampling_reasons", "sampling_reason"
    ),
    "customer": EntityRoute("customer", "/api/customers", "customers", "customer", "code"),
    "line-fvi": EntityRoute("line-fvi", "/api/line-fvi", "line_fvi", "line_fvi", "code"),
    "auth": EntityRoute("auth", "/api/auth", "users", "auth"),
    "defect-image": EntityRoute("defect-image", "/api/defect-image", "defect_image", "defect_image"),
    "inspection-data": EntityRoute(
        "inspection-data", "/api/inspectiondata", "inspection_data", "inspection_data", "inspection_no"
    ),
    "inf-lotinput": EntityRoute("inf-lotinput", "/api/inf-lotinput", "inf_lotinput", "inf_lotinput"),
    "report": EntityRoute("report", "/api/report", "inspection_data", "report"),
    "parts": EntityRoute("parts", "/api/parts", "parts", "parts", "partno"),
    "customer-site": EntityRoute(
        "customer-site", "/api/customer-sites", "customers_site", "customer_site", "code"
    ),
    "inf-checkin": EntityRoute("inf-checkin", "/api/inf-checkin", "inf_checkin", "inf_checkin"),
    "defectdata-customer": EntityRoute(
        "defectdata-customer", "/api/defectdata-customer", "defectdata_customer", "defectdata_customer"
    ),
    "defect-customer-image": EntityRoute(
        "defect-customer-image",
        "/api/defect-customer-image",
        "defect_customer_image",
        "defect_customer_image",
    ),
}

BLUEPRINT_METHODS = ("register", "route", "get", "post", "put", "delete")


def is_valid_blueprint(candidate: Any) -> bool:
    """Structural check: anything that can carry routes and be registered."""

    if candidate is None or isinstance(candidate, (type, ModuleType)):
        return False
    return all(callable(getattr(candidate, name, None)) for name in BLUEPRINT_METHODS)


def factory_names(route: EntityRoute) -> tuple[str, ...]:
    snake = route.snake_name
    return (
        f"create_{snake}_blueprint",
        f"create_{snake}_routes",
        f"{snake}_routes",
        "create_routes",
        "get_router",
    )


def blueprint_names(route: EntityRoute) -> tuple[str, ...]:
    return (f"{route.snake_name}_bp", "bp", "router", "routes")


@dataclass
class RegistrationResult:
    entity_name: str
    pattern_type: str
    api_path: str | None
    success: bool
    source: str | None = None
    fallback: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "entityName": self.entity_name,
            "patternType": self.pattern_type,
            "apiPath": self.api_path,
            "success": self.success,
            "source": self.source,
            "fallback": self.fallback,
            "error": self.error,
        }


@dataclass
class DiscoverySummary:
    total_entities: int = 0
    successful: int = 0
    failed: int = 0
    fallbacks: int = 0
    results: list[RegistrationResult] = field(default_factory=list)
    start_time: str | None = None
    end_time: str | None = None
    duration_ms: float = 0.0

    def record(self, result: RegistrationResult) -> None:
        self.results.append(result)
        self.total_entities += 1
        if result.success:
            self.successful += 1
        else:
            self.failed += 1
        if result.fallback:
            self.fallbacks += 1

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalEntities": self.total_entities,
            "successful": self.successful,
            "failed": self.failed,
            "fallbacks": self.fallbacks,
            "results": [result.to_dict() for result in self.results],
            "startTime": self.start_time,
            "endTime": self.end_time,
            "durationMs": self.duration_ms,
        }


class ResolutionError(LookupError):
    """Raised when a module exposes no usable blueprint."""


def fallback_blueprint(route: EntityRoute, pattern: PatternType, reason: str) -> Blueprint:
    """Placeholder routes answering ``501`` for an entity that failed to load."""

    bp = Blueprint(f"{route.snake_name}_fallback", __name__)

    def not_implemented(**_kwargs):
        return (
            jsonify(
                {
                    "success": False,
                    "message": f"{route.entity_name} routes are not available",
                    "pattern": pattern.value,
                    "note": "not implemented",
                    "reason": reason,
                }
            ),
            501,
        )

    if route.entity_name == "auth":
        bp.add_url_rule("/login", "login", not_implemented, methods=["POST"])
        bp.add_url_rule("/logout", "logout", not_implemented, methods=["POST"])
        return bp

    bp.add_url_rule("", "list", not_implemented, methods=["GET"])
    if pattern is PatternType.SERIAL_ID:
        bp.add_url_rule("/<int:key>", "get", not_implemented, methods=["GET"])
    elif pattern is PatternType.VARCHAR_CODE:
        bp.add_url_rule("/<string:key>", "get", not_implemented, methods=["GET"])
    return bp


class EntityAutoDiscovery:
    """Resolves and mounts one blueprint per configured entity."""

    def __init__(
        self,
        app: Flask,
        db: Any,
        *,
        patterns: Mapping[str, PatternType] | None = None,
        routes: Mapping[str, EntityRoute] | None = None,
        registry: Mapping[str, RouteFactory] | None = None,
        import_module: Callable[[str], ModuleType] = importlib.import_module,
        package: str = ENTITIES_PACKAGE,
    ) -> None:
        self.app = app
        self.db = db
        self.patterns = dict(ENTITY_PATTERNS if patterns is None else patterns)
        self.routes = dict(ENTITY_ROUTES if routes is None else routes)
        self.registry = dict(registry or {})
        self.import_module = import_module
        self.package = package

    @property
    def logger(self):
        return self.app.logger

    def resolve(self, route: EntityRoute) -> tuple[Blueprint, str]:
        """Return ``(blueprint, source)`` or raise :class:`ResolutionError`."""

        factory = self.registry.get(route.entity_name)
        if factory is not None:
            blueprint = factory(self.db)
            if not is_valid_blueprint(blueprint):
                raise ResolutionError(f"registry factory for {route.entity_name} returned no blueprint")
            return blueprint, "registry"

        module = self.import_module(f"{self.package}.{route.module}.routes")

        create_blueprint = getattr(module, "create_blueprint", None)
        if callable(create_blueprint) and not is_valid_blueprint(create_blueprint):
            blueprint = create_blueprint(self.db)
            if is_valid_blueprint(blueprint):
                return blueprint, "create_blueprint"

        blueprint = getattr(module, "blueprint", None)
        if is_valid_blueprint(blueprint):
            return blueprint, "blueprint"

        for name in factory_names(route):
            candidate = getattr(module, name, None)
            if candidate is None:
                continue
            if is_valid_blueprint(candidate):
                return candidate, name
            if callable(candidate):
                blueprint = candidate(self.db)
                if is_valid_blueprint(blueprint):
                    return blueprint, name

        for name in blueprint_names(route):
            candidate = getattr(module, name, None)
            if is_valid_blueprint(candidate):
                return candidate, name

        raise ResolutionError(f"{module.__name__} exposes no blueprint or route factory")

    def register_entity(self, entity_name: str, pattern: PatternType) -> RegistrationResult:
        route = self.routes.get(entity_name)
        if route is None:
            self.logger.error("No route configuration for entity %s", entity_name)
            return RegistrationResult(
                entity_name, pattern.value, None, success=False, error="No route configuration found"
            )

        fallback = False
        error = None
        try:
            blueprint, source = self.resolve(route)
        except Exception as exc:  # noqa: BLE001 - any import/factory failure degrades to a fallback
            error = f"{exc.__class__.__name__}: {exc}"
            self.logger.warning("Using fallback routes for %s: %s", entity_name, error)
            blueprint, source, fallback = fallback_blueprint(route, pattern, error), "fallback", True

        try:
            self.app.register_blueprint(blueprint, url_prefix=route.api_path)
        except Exception as exc:  # noqa: BLE001 - one entity must not abort the rest
            message = f"{exc.__class__.__name__}: {exc}"
            self.logger.error("Failed to mount %s at %s: %s", entity_name, route.api_path, message)
            return RegistrationResult(
                entity_name,
                pattern.value,
                route.api_path,
                success=False,
                source=source,
                fallback=fallback,
                error=message,
            )

        self.logger.debug("Mounted %s at %s via %s", entity_name, route.api_path, source)
        return RegistrationResult(
            entity_name,
            pattern.value,
            route.api_path,
            success=True,
            source=source,
            fallback=fallback,
            error=error,
        )

    def discover_and_register(self) -> DiscoverySummary:
        """Mount every configured entity; always returns a complete summary."""

        summary = DiscoverySummary(start_time=utcnow().isoformat())
        started = time.perf_counter()

        for entity_name, pattern in self.patterns.items():
            summary.record(self.register_entity(entity_name, pattern))

        summary.end_time = utcnow().isoformat()
        summary.duration_ms = round((time.perf_counter() - started) * 1000, 2)
        self.logger.info(
            "Entity discovery finished: %s/%s registered, %s failed, %s fallback(s) in %.1f ms",
            summary.successful,
            summary.total_entities,
            summary.failed,
            summary.fallbacks,
            summary.duration_ms,
        )
        for result in summary.results:
            if not result.success or result.fallback:
                self.logger.warning("  %s: %s", result.entity_name, result.error)
        return summary

    def validate_configurations(self) -> list[str]:
        """Return configuration problems; an empty list means consistent tables."""

        problems = []
        for name in self.patterns:
            if name not in self.routes:
                problems.append(f"{name}: pattern has no route configuration")
        for name, route in self.routes.items():
            if name not in self.patterns:
                problems.append(f"{name}: route configuration has no pattern")
            if not route.api_path.startswith("/api/"):
                problems.append(f"{name}: api path {route.api_path} is outside /api/")
        paths = [route.api_path for route in self.routes.values()]
        for path in sorted({path for path in paths if paths.count(path) > 1}):
            problems.append(f"{path}: mounted by more than one entity")
        return problems

    def get_entity_info(self) -> list[dict[str, Any]]:
        return [
            {
                "patternType": self.patterns[name].value,
                **asdict(route),
            }
            for name, route in self.routes.items()
            if name in self.patterns
        ]
