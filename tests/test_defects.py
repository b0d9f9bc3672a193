"""Defect catalogue CRUD through the generic entity routes."""
from __future__ import annotations

import math

import pytest
from sqlalchemy import text

from sampling_qc.entities.defect.schemas import normalise_defect_name
from sampling_qc.entities.defect.service import DEFECT_CONFIG, DefectService
from sampling_qc.extensions import db
from sampling_qc.generic import EntityRepository


def create_defect(client, name, **extra):
    return client.post("/api/defects", json={"name": name, **extra})


class TestDefectCreate:
    """Creation, validation and uniqueness."""

    def test_create_returns_created_record(self, logged_in_client, admin):
        response = create_defect(logged_in_client, "Scratch A1", description="Surface mark")
        assert response.status_code == 201
        body = response.get_json()
        assert body["success"] is True
        assert body["data"]["name"] == "Scratch A1"
        assert body["data"]["is_active"] is True
        assert body["data"]["created_by"] == admin.id
        assert body["message"] == "Defect created successfully"

    def test_duplicate_name_rejected_ignoring_case(self, logged_in_client):
        assert create_defect(logged_in_client, "Scratch A1").status_code == 201

        response = create_defect(logged_in_client, "  scratch a1 ")
        assert response.status_code == 400
        body = response.get_json()
        assert body["success"] is False
        assert any("already exists" in error for error in body["errors"])

    @pytest.mark.parametrize(
        "name",
        ["A", "Bad@Name", "Two  spaces", "Scratch\t\tA1", "A \tB", "Tab\tname", "x" * 101],
    )
    def test_invalid_names_rejected(self, logged_in_client, name):
        response = create_defect(logged_in_client, name)
        assert response.status_code == 400
        assert response.get_json()["errors"][0].startswith("name:")

    def test_whitespace_description_rejected(self, logged_in_client):
        response = create_defect(logged_in_client, "Dent", description="   ")
        assert response.status_code == 400
        assert "whitespace" in response.get_json()["errors"][0]

    def test_non_object_body_rejected(self, logged_in_client):
        response = logged_in_client.post("/api/defects", json=["Dent"])
        assert response.status_code == 400
        assert response.get_json()["errors"] == ["Request body must be a JSON object"]

    def test_name_is_normalised(self):
        assert normalise_defect_name("  Burr (edge) ") == "Burr (edge)"


class TestDefectAccess:
    """Session and role guards on the defect routes."""

    def test_list_requires_session(self, client):
        response = client.get("/api/defects")
        assert response.status_code == 401
        assert response.get_json()["code"] == "NO_SESSION"

    def test_viewer_cannot_create(self, viewer_client):
        response = create_defect(viewer_client, "Scratch")
        assert response.status_code == 403
        assert response.get_json()["code"] == "INSUFFICIENT_PERMISSIONS"

    def test_viewer_can_read(self, viewer_client):
        assert viewer_client.get("/api/defects").status_code == 200

    def test_corrupt_session_is_cleared(self, client):
        with client.session_transaction() as session:
            session["user"] = {"id": "x", "role": "superuser"}
        response = client.get("/api/defects")
        assert response.status_code == 401
        assert response.get_json()["code"] == "INVALID_SESSION"


class TestDefectLifecycle:
    """Update, status toggle, delete and the name helpers."""

    def test_update_and_toggle_status(self, logged_in_client):
        defect_id = create_defect(logged_in_client, "Crack").get_json()["data"]["id"]

        response = logged_in_client.put(
            f"/api/defects/{defect_id}", json={"defect_group": "Mechanical"}
        )
        assert response.status_code == 200
        assert response.get_json()["data"]["defect_group"] == "Mechanical"

        response = logged_in_client.patch(f"/api/defects/{defect_id}/status")
        assert response.get_json()["data"]["is_active"] is False
        assert response.get_json()["message"] == "Defect deactivated"

    def test_update_to_existing_name_conflicts(self, logged_in_client):
        create_defect(logged_in_client, "Crack")
        other = create_defect(logged_in_client, "Chip").get_json()["data"]["id"]

        response = logged_in_client.put(f"/api/defects/{other}", json={"name": "CRACK"})
        assert response.status_code == 400

    def test_update_keeping_own_name_is_allowed(self, logged_in_client):
        defect_id = create_defect(logged_in_client, "Crack").get_json()["data"]["id"]
        response = logged_in_client.put(f"/api/defects/{defect_id}", json={"name": "crack"})
        assert response.status_code == 200

    def test_update_with_no_fields_rejected(self, logged_in_client):
        defect_id = create_defect(logged_in_client, "Crack").get_json()["data"]["id"]
        response = logged_in_client.put(f"/api/defects/{defect_id}", json={})
        assert response.status_code == 400

    def test_missing_defect_is_404(self, logged_in_client):
        assert logged_in_client.get("/api/defects/999").status_code == 404
        assert logged_in_client.delete("/api/defects/999").status_code == 404

    def test_delete(self, logged_in_client):
        defect_id = create_defect(logged_in_client, "Crack").get_json()["data"]["id"]
        assert logged_in_client.delete(f"/api/defects/{defect_id}").status_code == 200
        assert logged_in_client.get(f"/api/defects/{defect_id}").status_code == 404

    def test_validate_name(self, logged_in_client):
        defect_id = create_defect(logged_in_client, "Crack").get_json()["data"]["id"]

        taken = logged_in_client.get("/api/defects/validate/name/crack").get_json()["data"]
        assert taken["is_unique"] is False

        own = logged_in_client.get(f"/api/defects/validate/name/crack/{defect_id}").get_json()["data"]
        assert own["is_unique"] is True

        invalid = logged_in_client.get("/api/defects/validate/name/x").get_json()["data"]
        assert invalid["is_valid"] is False

    def test_group_and_search(self, logged_in_client):
        create_defect(logged_in_client, "Crack", defect_group="Mechanical")
        create_defect(logged_in_client, "Stain", defect_group="Cosmetic")

        group = logged_in_client.get("/api/defects/group/Mechanical").get_json()["data"]
        assert [item["name"] for item in group] == ["Crack"]

        found = logged_in_client.get("/api/defects/search/name?name=tai").get_json()["data"]
        assert [item["name"] for item in found] == ["Stain"]

        assert logged_in_client.get("/api/defects/search/name").status_code == 400

    def test_statistics(self, logged_in_client):
        create_defect(logged_in_client, "Crack")
        create_defect(logged_in_client, "Stain", is_active=False)
        stats = logged_in_client.get("/api/defects/statistics").get_json()["data"]
        assert stats == {"total": 2, "active": 1, "inactive": 1}


class TestDefectListing:
    """Pagination, filters and sorting on the collection route."""

    def test_pagination_metadata(self, logged_in_client):
        for index in range(7):
            create_defect(logged_in_client, f"Defect {index}")

        body = logged_in_client.get("/api/defects?page=2&limit=3").get_json()
        pagination = body["pagination"]
        assert len(body["data"]) == 3
        assert pagination["total"] == 7
        assert pagination["totalPages"] == math.ceil(7 / 3)
        assert pagination["hasNext"] is True
        assert pagination["hasPrev"] is True

    def test_limit_capped_at_maximum(self, logged_in_client):
        body = logged_in_client.get("/api/defects?limit=5000").get_json()
        assert body["pagination"]["limit"] == 200

    def test_is_active_filter_and_sort(self, logged_in_client):
        create_defect(logged_in_client, "Alpha")
        create_defect(logged_in_client, "Beta")
        create_defect(logged_in_client, "Gamma", is_active=False)

        body = logged_in_client.get("/api/defects?isActive=true&sortBy=name&sortOrder=DESC").get_json()
        assert [item["name"] for item in body["data"]] == ["Beta", "Alpha"]

    def test_unknown_sort_field_falls_back(self, logged_in_client):
        create_defect(logged_in_client, "Beta")
        create_defect(logged_in_client, "Alpha")
        body = logged_in_client.get("/api/defects?sortBy=password").get_json()
        assert [item["name"] for item in body["data"]] == ["Alpha", "Beta"]

    def test_invalid_page_rejected(self, logged_in_client):
        assert logged_in_client.get("/api/defects?page=0").status_code == 400

    def test_search_wildcards_are_literal(self, logged_in_client):
        create_defect(logged_in_client, "Stain", description="Covers 100% of pad")
        create_defect(logged_in_client, "Dent", description="Minor")
        body = logged_in_client.get("/api/defects?search=%25").get_json()
        assert [item["name"] for item in body["data"]] == ["Stain"]

    def test_name_search_underscore_is_literal(self, logged_in_client):
        create_defect(logged_in_client, "Pin_1")
        create_defect(logged_in_client, "PinX1")
        body = logged_in_client.get("/api/defects/search/name?name=Pin_1").get_json()
        assert [item["name"] for item in body["data"]] == ["Pin_1"]


class TestDatabaseFailures:
    """A broken table yields a failed envelope instead of an exception."""

    @pytest.fixture
    def service(self, app):
        db.session.execute(text("DROP TABLE defects"))
        db.session.commit()
        return DefectService(EntityRepository(db, DEFECT_CONFIG))

    def test_create(self, service):
        result = service.create({"name": "Scratch A1"})
        assert result.success is False
        assert result.kind == "error"

    def test_update(self, service):
        result = service.update(1, {"name": "Renamed"})
        assert result.success is False
        assert result.kind == "error"

    def test_validate_name(self, service):
        result = service.validate_name("Scratch A1")
        assert result.success is False
        assert result.error == "Failed to validate defect name"

    def test_routes_answer_with_json(self, logged_in_client, service):
        response = logged_in_client.get("/api/defects")
        assert response.status_code == 500
        assert response.get_json()["success"] is False
        assert logged_in_client.get("/api/defects/health").status_code == 503
