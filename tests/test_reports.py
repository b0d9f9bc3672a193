"""Inspection recording and the LAR / DPPM reports built on it."""
from __future__ import annotations

import pytest
from sqlalchemy import text

from sampling_qc.entities.report.service import dppm, lot_acceptance_rate
from sampling_qc.extensions import db


def record(client, inspection_no, *, judgment=True, sampling_qty=100, ng_qty=0, station="OQA",
           round=1, model="ALPHA", inspected_at="2024-07-08T10:00:00", defects=()):
    return client.post(
        "/api/inspectiondata",
        json={
            "inspection_no": inspection_no,
            "station": station,
            "round": round,
            "model": model,
            "lot_no": f"LOT-{inspection_no}",
            "judgment": judgment,
            "sampling_qty": sampling_qty,
            "ng_qty": ng_qty,
            "inspected_at": inspected_at,
            "defects": list(defects),
        },
    )


@pytest.fixture
def scratch_id(logged_in_client):
    return logged_in_client.post("/api/defects", json={"name": "Scratch"}).get_json()["data"]["id"]


class TestRates:
    def test_lot_acceptance_rate(self):
        assert lot_acceptance_rate(3, 4) == 75.0
        assert lot_acceptance_rate(0, 0) == 0.0

    def test_dppm(self):
        assert dppm(2, 1000) == 2000.0
        assert dppm(5, 0) == 0.0


class TestInspectionRecording:
    def test_work_week_assigned_from_inspection_date(self, logged_in_client):
        response = record(logged_in_client, "I-1")
        assert response.status_code == 201
        data = response.get_json()["data"]
        assert (data["fy"], data["ww"]) == ("2025", "02")

    def test_ng_cannot_exceed_sampling(self, logged_in_client):
        assert record(logged_in_client, "I-1", sampling_qty=5, ng_qty=6).status_code == 400

    def test_duplicate_inspection_number(self, logged_in_client):
        record(logged_in_client, "I-1")
        assert record(logged_in_client, "I-1").status_code == 400

    def test_unknown_defect_rejected(self, logged_in_client):
        response = record(logged_in_client, "I-1", ng_qty=1, defects=[{"defect_id": 42, "ng_qty": 1}])
        assert response.status_code == 400

    def test_lookup_by_inspection_number(self, logged_in_client, scratch_id):
        record(logged_in_client, "I-7", ng_qty=2, defects=[{"defect_id": scratch_id, "ng_qty": 2}])
        body = logged_in_client.get("/api/inspectiondata/I-7").get_json()
        assert body["data"]["defects"] == [{"defect_id": scratch_id, "ng_qty": 2}]
        assert logged_in_client.get("/api/inspectiondata/I-8").status_code == 404

    def test_list_filters(self, logged_in_client):
        record(logged_in_client, "I-1", model="ALPHA")
        record(logged_in_client, "I-2", model="BETA")
        body = logged_in_client.get("/api/inspectiondata?model=BETA").get_json()
        assert [row["inspection_no"] for row in body["data"]] == ["I-2"]


class TestReports:
    @pytest.fixture(autouse=True)
    def inspections(self, logged_in_client, scratch_id):
        record(logged_in_client, "A", judgment=True, sampling_qty=500, ng_qty=0)
        record(logged_in_client, "B", judgment=False, sampling_qty=500, ng_qty=1,
               defects=[{"defect_id": scratch_id, "ng_qty": 1}])
        record(logged_in_client, "C", judgment=True, sampling_qty=1000, ng_qty=0,
               inspected_at="2024-07-15T10:00:00")
        # excluded: second round and another station
        record(logged_in_client, "D", judgment=False, sampling_qty=100, ng_qty=50, round=2)
        record(logged_in_client, "E", judgment=False, sampling_qty=100, ng_qty=50, station="SIV")

    def test_lar_chart(self, logged_in_client):
        rows = logged_in_client.get("/api/report/lar-chart").get_json()["data"]
        assert [(row["ww"], row["total_lot"], row["lar"]) for row in rows] == [
            ("02", 2, 50.0),
            ("03", 1, 100.0),
        ]
        assert rows[0]["dppm"] == 1000.0

    def test_period_filter(self, logged_in_client):
        rows = logged_in_client.get(
            "/api/report/lar-chart?yearFrom=2025&wwFrom=03&yearTo=2025&wwTo=03"
        ).get_json()["data"]
        assert [row["ww"] for row in rows] == ["03"]

    def test_incomplete_period_rejected(self, logged_in_client):
        assert logged_in_client.get("/api/report/lar-chart?yearFrom=2025").status_code == 400

    def test_lar_defect(self, logged_in_client):
        rows = logged_in_client.get("/api/report/lar-defect").get_json()["data"]
        assert rows == [{"fy": "2025", "ww": "02", "defect_name": "Scratch", "ng_qty": 1}]

    def test_oqa_dppm_against_target(self, logged_in_client):
        body = logged_in_client.get("/api/report/oqa-dppm").get_json()["data"]
        assert body["dppmTarget"] == 150
        assert [week["meets_target"] for week in body["weeks"]] == [False, True]

    def test_lookups(self, logged_in_client):
        assert logged_in_client.get("/api/report/models").get_json()["data"] == ["ALPHA"]
        assert logged_in_client.get("/api/report/fiscal-years").get_json()["data"] == ["2025"]
        assert logged_in_client.get("/api/report/work-weeks?fy=2025").get_json()["data"] == ["02", "03"]
        assert logged_in_client.get("/api/report/work-weeks?fy=25").status_code == 400


class TestIqa:
    def test_iqa_result(self, logged_in_client):
        for lot, rej in (("L1", 0), ("L2", 3), ("L3", 0)):
            response = logged_in_client.post(
                "/api/inspectiondata/iqa",
                json={"fy": "2025", "ww": "10", "model": "ALPHA", "lot_no": lot, "qty": 50, "rej": rej},
            )
            assert response.status_code == 201

        body = logged_in_client.get("/api/report/iqa-result?year=2025&ww=10").get_json()["data"]
        assert body["models"][0]["total_lot"] == 3
        assert body["models"][0]["rejected"] == 1
        assert body["models"][0]["lar"] == 66.67

    def test_rejects_above_quantity(self, logged_in_client):
        response = logged_in_client.post(
            "/api/inspectiondata/iqa",
            json={"fy": "2025", "ww": "10", "model": "ALPHA", "lot_no": "L1", "qty": 5, "rej": 6},
        )
        assert response.status_code == 400

    def test_week_required(self, logged_in_client):
        assert logged_in_client.get("/api/report/iqa-result?year=2025").status_code == 400


class TestMissingTables:
    """Reports and inspection reads answer with a failed envelope when storage breaks."""

    @pytest.fixture(autouse=True)
    def drop_inspection_tables(self, app):
        db.session.execute(text("DROP TABLE defect_data"))
        db.session.execute(text("DROP TABLE inspection_data"))
        db.session.commit()

    @pytest.mark.parametrize(
        "path",
        ["/api/report/lar-chart", "/api/report/lar-defect", "/api/report/oqa-dppm", "/api/report/models",
         "/api/inspectiondata"],
    )
    def test_read_fails_cleanly(self, logged_in_client, path):
        response = logged_in_client.get(path)
        assert response.status_code == 500
        assert response.get_json()["success"] is False

    def test_recording_fails_cleanly(self, logged_in_client):
        response = record(logged_in_client, "A")
        assert response.status_code == 500
        assert response.get_json()["success"] is False
