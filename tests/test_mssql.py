"""MSSQL settings resolution and connection manager bookkeeping."""
from __future__ import annotations

from datetime import date, datetime
from types import SimpleNamespace

import pytest

from sampling_qc.services.mssql import (
    MssqlConfigurationError,
    MssqlConnectionManager,
    MssqlRequestError,
    MssqlSettings,
)


def sysconfig(**overrides):
    values = {
        "mssql_server": "erp.local",
        "mssql_port": None,
        "mssql_database": "Factory",
        "mssql_username": "reader",
        "mssql_password": "pw",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestSettings:
    def test_default_port(self):
        settings = MssqlSettings.from_sysconfig(sysconfig())
        assert settings.port == 1433
        assert settings.identity == ("erp.local", 1433, "Factory", "reader")

    @pytest.mark.parametrize("field", ["mssql_server", "mssql_database", "mssql_username"])
    def test_incomplete_configuration(self, field):
        with pytest.raises(MssqlConfigurationError, match="not found or incomplete"):
            MssqlSettings.from_sysconfig(sysconfig(**{field: None}))

    def test_missing_row(self):
        with pytest.raises(MssqlConfigurationError):
            MssqlSettings.from_sysconfig(None)

    def test_password_is_not_part_of_identity(self):
        first = MssqlSettings.from_sysconfig(sysconfig(mssql_password="a"))
        second = MssqlSettings.from_sysconfig(sysconfig(mssql_password="b"))
        assert first.identity == second.identity


class TestConnectionManager:
    def test_registers_as_extension(self, app):
        manager = MssqlConnectionManager()
        manager.init_app(app)
        assert app.extensions["mssql"] is manager
        assert manager.driver == app.config["MSSQL_ODBC_DRIVER"]

    def test_url_carries_driver_options(self):
        manager = MssqlConnectionManager()
        url = manager._build_url(MssqlSettings.from_sysconfig(sysconfig(mssql_port=1444)))
        assert url.drivername == "mssql+pyodbc"
        assert url.port == 1444
        assert url.query["TrustServerCertificate"] == "yes"

    def test_close_without_engine(self):
        manager = MssqlConnectionManager()
        manager.close()
        assert manager.is_connected is False


class FakeEngine:
    def __init__(self, url):
        self.url = url
        self.disposed = False
        self.executed = []

    def dispose(self):
        self.disposed = True

    def connect(self):
        return FakeConnection(self)


class FakeConnection:
    def __init__(self, engine):
        self.engine = engine

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False

    def execute(self, statement, params=None):
        self.engine.executed.append((statement, params))
        return SimpleNamespace(mappings=lambda: SimpleNamespace(all=lambda: [{"Id": 1}]))


@pytest.fixture
def engines(monkeypatch):
    built = []

    def fake_create_engine(url, **options):
        engine = FakeEngine(url)
        built.append(engine)
        return engine

    monkeypatch.setattr("sampling_qc.services.mssql.create_engine", fake_create_engine)
    return built


class TestEngineReuse:
    def test_same_target_reuses_engine(self, engines):
        manager = MssqlConnectionManager()
        settings = MssqlSettings.from_sysconfig(sysconfig())
        first = manager.get_engine(settings)
        second = manager.get_engine(MssqlSettings.from_sysconfig(sysconfig(mssql_password="new")))
        assert first is second
        assert len(engines) == 1
        assert manager.is_connected is True

    def test_changed_target_disposes_old_engine(self, engines):
        manager = MssqlConnectionManager()
        first = manager.get_engine(MssqlSettings.from_sysconfig(sysconfig()))
        second = manager.get_engine(MssqlSettings.from_sysconfig(sysconfig(mssql_database="Archive")))
        assert first is not second
        assert first.disposed is True
        assert second.disposed is False
        assert second.url.database == "Archive"

    def test_close_disposes(self, engines):
        manager = MssqlConnectionManager()
        engine = manager.get_engine(MssqlSettings.from_sysconfig(sysconfig()))
        manager.close()
        assert engine.disposed is True
        assert manager.is_connected is False


class TestQueries:
    """Filters reach MSSQL only as bound parameters."""

    def test_lot_input_window_is_bound(self, engines):
        manager = MssqlConnectionManager()
        rows = manager.fetch_lot_inputs(
            MssqlSettings.from_sysconfig(sysconfig()),
            date_from=date(2025, 1, 1),
            date_to=date(2025, 1, 31),
            limit=25,
        )
        assert rows == [{"Id": 1}]

        statement, params = engines[0].executed[0]
        sql = str(statement)
        assert "InputDate >= :date_from" in sql
        assert "InputDate < :date_to" in sql
        assert "2025" not in sql
        assert params == {"limit": 25, "date_from": date(2025, 1, 1), "date_to": date(2025, 2, 1)}

    def test_unfiltered_query_has_no_where(self, engines):
        manager = MssqlConnectionManager()
        manager.fetch_lot_inputs(MssqlSettings.from_sysconfig(sysconfig()))
        statement, params = engines[0].executed[0]
        assert "WHERE" not in str(statement)
        assert params == {"limit": 500}

    def test_checkins_resume_after_timestamp(self, engines):
        manager = MssqlConnectionManager()
        after = datetime(2025, 3, 4, 9, 15)
        manager.fetch_checkins(MssqlSettings.from_sysconfig(sysconfig()), created_after=after)
        statement, params = engines[0].executed[0]
        assert "CreatedOn > :created_after" in str(statement)
        assert params["created_after"] == after

    def test_driver_failure_is_wrapped(self, monkeypatch):
        def broken(url, **options):
            raise ImportError("pyodbc missing")

        monkeypatch.setattr("sampling_qc.services.mssql.create_engine", broken)
        with pytest.raises(MssqlRequestError, match="pyodbc missing"):
            MssqlConnectionManager().get_engine(MssqlSettings.from_sysconfig(sysconfig()))
