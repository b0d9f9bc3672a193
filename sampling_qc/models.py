"""Core database models for the sampling QC backend."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from flask import current_app
from sqlalchemy import func, select
from sqlalchemy.orm import Mapped, mapped_column
from werkzeug.security import check_password_hash, generate_password_hash

from .extensions import db


def utcnow() -> datetime:
    """Naive UTC timestamp used for every application-managed column."""

    return datetime.now(timezone.utc).replace(tzinfo=None)


def isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


class Role(str, Enum):
    """Enumeration of user roles within the platform."""

    ADMIN = "admin"
    MANAGER = "manager"
    USER = "user"
    VIEWER = "viewer"

    @property
    def label(self) -> str:
        """Return a human-readable label for the role."""

        return {
            Role.ADMIN: "Administrator",
            Role.MANAGER: "Manager",
            Role.USER: "User",
            Role.VIEWER: "Viewer",
        }[self]

    @property
    def level(self) -> int:
        return {Role.VIEWER: 0, Role.USER: 1, Role.MANAGER: 2, Role.ADMIN: 3}[self]

    def satisfies(self, minimum: "Role") -> bool:
        """Return ``True`` when this role is at least ``minimum``."""

        return self.level >= minimum.level


class AuditMixin:
    """Audit columns shared by every editable table."""

    created_by: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    updated_by: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    created_at: Mapped[datetime] = mapped_column(db.DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        db.DateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    def audit_dict(self) -> dict[str, Any]:
        return {
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": isoformat(self.created_at),
            "updated_at": isoformat(self.updated_at),
        }


class User(AuditMixin, db.Model):
    """Represents an authenticated user."""

    __tablename__ = "users"

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True)
    username: Mapped[str] = mapped_column(db.String(64), unique=True, nullable=False)
    email: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    password_hash: Mapped[str] = mapped_column(db.String(255), nullable=False)
    name: Mapped[str] = mapped_column(db.String(100), nullable=False)
    position: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    role: Mapped[str] = mapped_column(db.String(32), nullable=False, default=Role.USER.value)
    description: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)
    last_login: Mapped[datetime | None] = mapped_column(db.DateTime, nullable=True)

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    @property
    def role_enum(self) -> Role:
        """Return the role as an enum instance."""

        return Role(self.role)

    def session_payload(self) -> dict[str, Any]:
        """Subset of user fields stored in the session cookie."""

        return {
            "id": self.id,
            "username": self.username,
            "name": self.name,
            "role": self.role,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "username": self.username,
            "email": self.email,
            "name": self.name,
            "position": self.position,
            "role": self.role,
            "role_label": self.role_enum.label,
            "description": self.description,
            "is_active": self.is_active,
            "last_login": isoformat(self.last_login),
            **self.audit_dict(),
        }


class SysConfig(AuditMixin, db.Model):
    """Sampling settings and MSSQL connection parameters.

    Only the most recent row is authoritative; older rows are kept as
    history. Option lists are stored as comma-separated strings the way the
    inspection screens consume them.
    """

    __tablename__ = "sysconfig"

    OPTION_FIELDS = (
        "fvi_lot_qty",
        "general_oqa_qty",
        "crack_oqa_qty",
        "general_siv_qty",
        "crack_siv_qty",
        "defect_type",
        "defect_group",
        "shift",
        "site",
        "tabs",
        "product_type",
        "product_families",
    )
    NUMERIC_OPTION_FIELDS = OPTION_FIELDS[:5]

    id: Mapped[int] = mapped_column(db.Integer, primary_key=True)
    system_name: Mapped[str | None] = mapped_column(db.String(100), nullable=True)
    fvi_lot_qty: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    general_oqa_qty: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    crack_oqa_qty: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    general_siv_qty: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    crack_siv_qty: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    defect_type: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    defect_group: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    shift: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    site: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    tabs: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    product_type: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    product_families: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    mssql_server: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    mssql_port: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    mssql_database: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    mssql_username: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    mssql_password: Mapped[str | None] = mapped_column(db.String(255), nullable=True)
    mssql_sync: Mapped[int | None] = mapped_column(db.Integer, nullable=True)
    news: Mapped[str | None] = mapped_column(db.Text, nullable=True)
    is_active: Mapped[bool] = mapped_column(db.Boolean, nullable=False, default=True)

    @staticmethod
    def latest() -> "SysConfig | None":
        """Return the authoritative (most recent) configuration row."""

        return db.session.execute(
            select(SysConfig).order_by(SysConfig.id.desc()).limit(1)
        ).scalar_one_or_none()

    def options(self) -> dict[str, list[Any]]:
        """Return every option field split into a list."""

        parsed: dict[str, list[Any]] = {}
        for field in self.OPTION_FIELDS:
            values = split_options(getattr(self, field))
            if field in self.NUMERIC_OPTION_FIELDS:
                values = [int(value) for value in values if value.isdigit()]
            parsed[field] = values
        return parsed

    def to_dict(self) -> dict[str, Any]:
        payload = {field: getattr(self, field) for field in self.OPTION_FIELDS}
        payload.update(
            {
                "id": self.id,
                "system_name": self.system_name,
                "mssql_server": self.mssql_server,
                "mssql_port": self.mssql_port,
                "mssql_database": self.mssql_database,
                "mssql_username": self.mssql_username,
                "has_mssql_password": bool(self.mssql_password),
                "mssql_sync": self.mssql_sync,
                "news": self.news,
                "is_active": self.is_active,
                **self.audit_dict(),
            }
        )
        return payload


def split_options(raw: str | None) -> list[str]:
    if not raw:
        return []
    return [item.strip() for item in raw.split(",") if item.strip()]


DEFAULT_SYSCONFIG: dict[str, Any] = {
    "fvi_lot_qty": "1000,2000,3000",
    "general_oqa_qty": "32,50,80,125",
    "crack_oqa_qty": "32,50,80",
    "general_siv_qty": "32,50,80,125",
    "crack_siv_qty": "32,50,80",
    "defect_type": "Cosmetic,Functional,Crack",
    "defect_group": "Visual,Dimension,Electrical",
    "shift": "A,B,C",
    "site": "KBN,PNA",
    "tabs": "OQA,SIV,FVI",
    "product_type": "HDD,Slider",
    "product_families": "Seagate,WD",
}


def ensure_default_user() -> None:
    """Create the bootstrap administrator when the user table is empty."""

    password = current_app.config.get("DEFAULT_ADMIN_PASSWORD")
    if not password:
        return

    if db.session.scalar(select(func.count(User.id))):
        return

    username = current_app.config.get("DEFAULT_ADMIN_USERNAME", "admin")
    user = User(username=username, name="Administrator", role=Role.ADMIN.value)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    current_app.logger.info("Created default administrator %s", username)


def ensure_default_sysconfig() -> None:
    """Seed a sysconfig row so the inspection screens have options to show."""

    if SysConfig.latest() is not None:
        return

    db.session.add(
        SysConfig(system_name=current_app.config.get("APP_NAME"), **DEFAULT_SYSCONFIG)
    )
    db.session.commit()
    current_app.logger.info("Seeded default sysconfig row")
