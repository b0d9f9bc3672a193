"""Shared fixtures: an in-memory application, clients and a fake MSSQL source."""
from __future__ import annotations

from datetime import date

import pytest

from sampling_qc import create_app
from sampling_qc.config import Config
from sampling_qc.extensions import db
from sampling_qc.models import Role, SysConfig, User


class AppTestConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret-key"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS: dict = {}
    DEFAULT_ADMIN_USERNAME = "admin"
    DEFAULT_ADMIN_PASSWORD = "admin-password"
    LOG_LEVEL = "WARNING"
    LOG_DIR = None
    ENTITY_ROUTE_FACTORIES: dict = {}


class FakeLotSource:
    """Stands in for the MSSQL connection manager."""

    def __init__(self, rows=None):
        self.rows = list(rows or [])
        self.calls: list[tuple[date | None, date | None, int]] = []
        self.checkin_rows: list[dict] = []
        self.checkin_calls: list[tuple] = []

    def fetch_lot_inputs(self, settings, date_from=None, date_to=None, limit=500):
        self.calls.append((date_from, date_to, limit))
        return [dict(row) for row in self.rows]

    def fetch_checkins(self, settings, date_from=None, date_to=None, limit=500, created_after=None):
        self.checkin_calls.append((date_from, date_to, limit, created_after))
        return [dict(row) for row in self.checkin_rows]

    def test_connection(self, settings):
        return {"server": settings.server, "database": settings.database, "server_time": None}

    def close(self):
        pass


def login_as(client, user: User) -> None:
    with client.session_transaction() as session:
        session["user"] = user.session_payload()


def make_user(username: str, role: Role, password: str = "secret-pass") -> User:
    user = User(username=username, name=username.title(), role=role.value)
    user.set_password(password)
    db.session.add(user)
    db.session.commit()
    return user


@pytest.fixture
def app():
    app = create_app(AppTestConfig)
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def admin(app):
    return db.session.execute(db.select(User).filter_by(username="admin")).scalar_one()


@pytest.fixture
def logged_in_client(client, admin):
    login_as(client, admin)
    return client


@pytest.fixture
def viewer_client(app):
    client = app.test_client()
    login_as(client, make_user("viewer", Role.VIEWER))
    return client


@pytest.fixture
def fake_source(app):
    source = FakeLotSource()
    app.extensions["mssql"] = source
    return source


@pytest.fixture
def mssql_config(app):
    config = SysConfig(
        system_name="Test",
        mssql_server="mssql.local",
        mssql_database="Production",
        mssql_username="reader",
        mssql_password="pw",
        mssql_sync=30,
    )
    db.session.add(config)
    db.session.commit()
    return config
