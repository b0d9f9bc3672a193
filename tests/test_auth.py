"""Session login, logout, profile and password changes."""
from __future__ import annotations

from sqlalchemy import text

from sampling_qc.extensions import db
from sampling_qc.models import Role

from conftest import make_user


def login(client, username="admin", password="admin-password"):
    return client.post("/api/auth/login", json={"username": username, "password": password})


class TestLogin:
    def test_default_admin_can_log_in(self, client):
        response = login(client)
        assert response.status_code == 200
        user = response.get_json()["data"]["user"]
        assert user["username"] == "admin"
        assert user["role"] == "admin"
        assert "password_hash" not in user

        status = client.get("/api/auth/status").get_json()["data"]
        assert status["authenticated"] is True
        assert status["user"]["username"] == "admin"

    def test_wrong_password(self, client):
        response = login(client, password="nope")
        assert response.status_code == 401
        body = response.get_json()
        assert body["code"] == "INVALID_CREDENTIALS"
        assert body["error"] == "Invalid username or password"

    def test_unknown_user_gets_same_message(self, client):
        response = login(client, username="ghost")
        assert response.get_json()["error"] == "Invalid username or password"

    def test_disabled_account(self, app, client):
        user = make_user("operator", Role.USER)
        user.is_active = False
        db.session.commit()
        response = login(client, "operator", "secret-pass")
        assert response.status_code == 401
        assert response.get_json()["error"] == "Account is disabled"

    def test_missing_fields(self, client):
        response = client.post("/api/auth/login", json={"username": "admin"})
        assert response.status_code == 400

    def test_login_records_last_login(self, client, admin):
        login(client)
        assert admin.last_login is not None


class TestSession:
    def test_logout_clears_session(self, client):
        login(client)
        assert client.post("/api/auth/logout").get_json()["message"] == "admin logged out"
        assert client.get("/api/auth/status").get_json()["data"]["authenticated"] is False
        assert client.get("/api/auth/profile").status_code == 401

    def test_profile(self, logged_in_client):
        body = logged_in_client.get("/api/auth/profile").get_json()
        assert body["data"]["role_label"] == "Administrator"

    def test_session_cookie_is_http_only(self, client):
        response = login(client)
        cookie = response.headers["Set-Cookie"]
        assert "sampling_qc_session=" in cookie
        assert "HttpOnly" in cookie


class TestPasswordChange:
    def test_change_password(self, client):
        login(client)
        response = client.put(
            "/api/auth/password",
            json={"current_password": "admin-password", "new_password": "new-password", "confirm_password": "new-password"},
        )
        assert response.status_code == 200

        client.post("/api/auth/logout")
        assert login(client).status_code == 401
        assert login(client, password="new-password").status_code == 200

    def test_wrong_current_password(self, logged_in_client):
        response = logged_in_client.put(
            "/api/auth/password",
            json={"current_password": "wrong", "new_password": "new-password"},
        )
        assert response.status_code == 400

    def test_confirmation_mismatch(self, logged_in_client):
        response = logged_in_client.put(
            "/api/auth/password",
            json={"current_password": "admin-password", "new_password": "new-password", "confirm_password": "other"},
        )
        assert response.status_code == 400
        assert "do not match" in response.get_json()["errors"][0]


class TestStorageFailure:
    def test_login_reports_failure_without_raising(self, client):
        db.session.execute(text("DROP TABLE users"))
        db.session.commit()
        response = login(client)
        assert response.status_code == 500
        body = response.get_json()
        assert body["success"] is False
        assert body["error"] == "Failed to authenticate"
