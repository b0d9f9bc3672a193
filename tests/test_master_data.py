"""Customers, FVI lines and sampling reasons share the generic routes."""
from __future__ import annotations

import pytest


class TestCodeKeyedEntities:
    """Tables keyed by an upper-case code rather than a serial id."""

    @pytest.mark.parametrize("path", ["/api/customers", "/api/line-fvi"])
    def test_code_is_uppercased_and_used_as_key(self, logged_in_client, path):
        response = logged_in_client.post(path, json={"code": " f01 ", "name": "First"})
        assert response.status_code == 201
        assert response.get_json()["data"]["code"] == "F01"

        assert logged_in_client.get(f"{path}/F01").get_json()["data"]["name"] == "First"
        assert logged_in_client.get(f"{path}/F99").status_code == 404

    @pytest.mark.parametrize("path", ["/api/customers", "/api/line-fvi"])
    def test_code_cannot_be_reused(self, logged_in_client, path):
        logged_in_client.post(path, json={"code": "SGT", "name": "Seagate"})
        response = logged_in_client.post(path, json={"code": "sgt", "name": "Again"})
        assert response.status_code == 400
        assert "already exists" in response.get_json()["errors"][0]

    def test_invalid_code(self, logged_in_client):
        response = logged_in_client.post("/api/customers", json={"code": "TOO-LONG-CODE", "name": "X"})
        assert response.status_code == 400

    def test_update_and_status(self, logged_in_client):
        logged_in_client.post("/api/customers", json={"code": "WD", "name": "WD"})
        response = logged_in_client.put("/api/customers/WD", json={"name": "Western Digital", "code": "XX"})
        data = response.get_json()["data"]
        assert (data["code"], data["name"]) == ("WD", "Western Digital")
        assert logged_in_client.patch("/api/customers/WD/status").get_json()["data"]["is_active"] is False

    def test_default_sort_by_code(self, logged_in_client):
        for code in ("ZZ", "AA", "MM"):
            logged_in_client.post("/api/line-fvi", json={"code": code, "name": code})
        body = logged_in_client.get("/api/line-fvi").get_json()
        assert [row["code"] for row in body["data"]] == ["AA", "MM", "ZZ"]


class TestSamplingReasons:
    def test_crud(self, logged_in_client):
        response = logged_in_client.post("/api/sampling-reasons", json={"name": "Routine"})
        assert response.status_code == 201
        reason_id = response.get_json()["data"]["id"]

        duplicate = logged_in_client.post("/api/sampling-reasons", json={"name": "ROUTINE"})
        assert duplicate.status_code == 400

        updated = logged_in_client.put(
            f"/api/sampling-reasons/{reason_id}", json={"description": "Scheduled"}
        )
        assert updated.get_json()["data"]["description"] == "Scheduled"
        assert logged_in_client.delete(f"/api/sampling-reasons/{reason_id}").status_code == 200

    def test_search_parameter(self, logged_in_client):
        for name in ("Routine", "New Model", "Complaint"):
            logged_in_client.post("/api/sampling-reasons", json={"name": name})
        body = logged_in_client.get("/api/sampling-reasons?search=mod").get_json()
        assert [row["name"] for row in body["data"]] == ["New Model"]
