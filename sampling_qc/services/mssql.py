"""Connection management for the external MSSQL lot-input and check-in source."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Engine
from sqlalchemy.exc import SQLAlchemyError

__all__ = [
    "MssqlError",
    "MssqlConfigurationError",
    "MssqlRequestError",
    "MssqlSettings",
    "MssqlConnectionManager",
]

logger = logging.getLogger(__name__)

DEFAULT_PORT = 1433

LOT_INPUT_QUERY = """
SELECT TOP (:limit)
    Id, LotNo, PartSite, LEFT(LotNo, 3) AS [LineNo], ItemNo, Model, Version,
    InputDate, FinishOn
FROM dbo.Input
{where}
ORDER BY InputDate DESC
"""

CHECKIN_QUERY = """
SELECT TOP (:limit)
    id, LineNoId, WorkShiftId, GrCode, Username, Firstname, CreatedOn,
    CheckedOut, TimeOffWork, [Group], Team, TimeStartWork,
    DateTimeStartWork, DateTimeOffWork
FROM dbo.CheckIn
{where}
ORDER BY CreatedOn ASC
"""


class MssqlError(Exception):
    """Base exception for MSSQL related errors."""


class MssqlConfigurationError(MssqlError):
    """Raised when the sysconfig row lacks MSSQL connection settings."""


class MssqlRequestError(MssqlError):
    """Raised when a connection or query against MSSQL fails."""


@dataclass(frozen=True)
class MssqlSettings:
    server: str
    database: str
    username: str
    password: str | None = None
    port: int = DEFAULT_PORT

    @property
    def identity(self) -> tuple[str, int, str, str]:
        """Fields whose change requires a fresh engine."""

        return (self.server, self.port, self.database, self.username)

    @classmethod
    def from_sysconfig(cls, config: Any) -> "MssqlSettings":
        """Build settings from a sysconfig row, raising when incomplete."""

        if config is None or not (
            config.mssql_server and config.mssql_database and config.mssql_username
        ):
            raise MssqlConfigurationError(
                "MSSQL configuration not found or incomplete in sysconfig table. "
                "Please configure MSSQL settings in System Setup."
            )
        return cls(
            server=config.mssql_server,
            port=config.mssql_port or DEFAULT_PORT,
            database=config.mssql_database,
            username=config.mssql_username,
            password=config.mssql_password,
        )


class MssqlConnectionManager:
    """Owns the MSSQL engine and rebuilds it when the target changes."""

    def __init__(self, app=None) -> None:
        self._engine: Engine | None = None
        self._settings: MssqlSettings | None = None
        self.driver = "ODBC Driver 18 for SQL Server"
        self.connect_timeout = 30
        self.pool_size = 10
        if app is not None:
            self.init_app(app)

    def init_app(self, app) -> None:
        self.driver = app.config.get("MSSQL_ODBC_DRIVER", self.driver)
        self.connect_timeout = app.config.get("MSSQL_CONNECT_TIMEOUT", self.connect_timeout)
        self.pool_size = app.config.get("MSSQL_POOL_SIZE", self.pool_size)
        app.extensions["mssql"] = self

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    def _build_url(self, settings: MssqlSettings) -> URL:
        return URL.create(
            "mssql+pyodbc",
            username=settings.username,
            password=settings.password,
            host=settings.server,
            port=settings.port,
            database=settings.database,
            query={
                "driver": self.driver,
                "Encrypt": "no",
                "TrustServerCertificate": "yes",
            },
        )

    def get_engine(self, settings: MssqlSettings) -> Engine:
        """Return the cached engine, recreating it if ``settings`` changed."""

        if self._engine is not None and self._settings is not None:
            if self._settings.identity != settings.identity:
                logger.info("MSSQL target changed; recreating connection pool")
                self.close()

        if self._engine is None:
            try:
                self._engine = create_engine(
                    self._build_url(settings),
                    pool_size=self.pool_size,
                    pool_pre_ping=True,
                    connect_args={"timeout": self.connect_timeout},
                )
            except (SQLAlchemyError, ImportError) as exc:
                raise MssqlRequestError(f"Unable to create MSSQL engine: {exc}") from exc
            self._settings = settings
            logger.info(
                "MSSQL pool created for %s:%s/%s",
                settings.server,
                settings.port,
                settings.database,
            )
        return self._engine

    def fetch_lot_inputs(
        self,
        settings: MssqlSettings,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 500,
    ) -> list[dict[str, Any]]:
        """Return up to ``limit`` rows from ``dbo.Input``, newest first.

        ``date_to`` covers the whole day: rows strictly before the following
        midnight are included.
        """

        conditions: list[str] = []
        params: dict[str, Any] = {"limit": limit}
        if date_from is not None:
            conditions.append("InputDate >= :date_from")
            params["date_from"] = date_from
        if date_to is not None:
            conditions.append("InputDate < :date_to")
            params["date_to"] = date_to + timedelta(days=1)

        return self._fetch(settings, LOT_INPUT_QUERY, conditions, params)

    def fetch_checkins(
        self,
        settings: MssqlSettings,
        date_from: date | None = None,
        date_to: date | None = None,
        limit: int = 500,
        created_after: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """Return up to ``limit`` rows from ``dbo.CheckIn``, oldest first.

        ``created_after`` resumes strictly after the newest mirrored row;
        ``date_from`` and ``date_to`` bound whole days.
        """

        conditions: list[str] = []
        params: dict[str, Any] = {"limit": limit}
        if created_after is not None:
            conditions.append("CreatedOn > :created_after")
            params["created_after"] = created_after
        if date_from is not None:
            conditions.append("CreatedOn >= :date_from")
            params["date_from"] = date_from
        if date_to is not None:
            conditions.append("CreatedOn < :date_to")
            params["date_to"] = date_to + timedelta(days=1)
        return self._fetch(settings, CHECKIN_QUERY, conditions, params)

    def _fetch(
        self,
        settings: MssqlSettings,
        query: str,
        conditions: list[str],
        params: dict[str, Any],
    ) -> list[dict[str, Any]]:
        """Run ``query`` with its WHERE built from bound-parameter conditions only."""

        where = f"WHERE {' AND '.join(conditions)}" if conditions else ""
        statement = text(query.format(where=where))

        engine = self.get_engine(settings)
        try:
            with engine.connect() as connection:
                rows = connection.execute(statement, params).mappings().all()
        except SQLAlchemyError as exc:
            raise MssqlRequestError(str(exc)) from exc
        return [dict(row) for row in rows]

    def test_connection(self, settings: MssqlSettings) -> dict[str, Any]:
        engine = self.get_engine(settings)
        try:
            with engine.connect() as connection:
                server_time = connection.execute(text("SELECT GETDATE() AS server_time")).scalar()
        except SQLAlchemyError as exc:
            raise MssqlRequestError(str(exc)) from exc
        return {
            "server": settings.server,
            "database": settings.database,
            "server_time": server_time.isoformat() if server_time else None,
        }

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            logger.info("MSSQL connection pool closed")
        self._engine = None
        self._settings = None
