"""Defect image upload, download and removal."""
from __future__ import annotations

from io import BytesIO

import pytest
from sqlalchemy import text
from werkzeug.datastructures import FileStorage

from sampling_qc.entities.defect_image.service import DefectImageService
from sampling_qc.extensions import db

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def defect_id(logged_in_client):
    response = logged_in_client.post("/api/defects", json={"name": "Scratch"})
    return response.get_json()["data"]["id"]


def upload(client, defect_id, *files):
    data = {"defect_id": str(defect_id)}
    data["images"] = [(BytesIO(content), name, mimetype) for name, content, mimetype in files]
    return client.post("/api/defect-image", data=data, content_type="multipart/form-data")


class TestUpload:
    def test_upload_and_download(self, logged_in_client, defect_id):
        response = upload(logged_in_client, defect_id, ("a.png", PNG_BYTES, "image/png"))
        assert response.status_code == 201
        image = response.get_json()["data"][0]
        assert image["file_size"] == len(PNG_BYTES)
        assert image["content_type"] == "image/png"

        download = logged_in_client.get(f"/api/defect-image/{image['id']}")
        assert download.status_code == 200
        assert download.data == PNG_BYTES
        assert download.mimetype == "image/png"

    def test_bulk_upload_is_all_or_nothing(self, logged_in_client, defect_id):
        response = upload(
            logged_in_client,
            defect_id,
            ("a.png", PNG_BYTES, "image/png"),
            ("notes.txt", b"hello", "text/plain"),
        )
        assert response.status_code == 400
        count = logged_in_client.get(f"/api/defect-image/defect/{defect_id}/count").get_json()
        assert count["data"]["count"] == 0

    def test_too_many_files(self, logged_in_client, defect_id):
        files = [(f"{index}.png", PNG_BYTES, "image/png") for index in range(11)]
        assert upload(logged_in_client, defect_id, *files).status_code == 400

    def test_unknown_defect(self, logged_in_client):
        response = upload(logged_in_client, 999, ("a.png", PNG_BYTES, "image/png"))
        assert response.status_code == 404

    def test_missing_defect_id(self, logged_in_client):
        response = logged_in_client.post(
            "/api/defect-image",
            data={"image": (BytesIO(PNG_BYTES), "a.png", "image/png")},
            content_type="multipart/form-data",
        )
        assert response.status_code == 400

    def test_no_files(self, logged_in_client, defect_id):
        response = logged_in_client.post(
            "/api/defect-image", data={"defect_id": str(defect_id)}, content_type="multipart/form-data"
        )
        assert response.status_code == 400


class TestRemoval:
    def test_delete_single_and_all(self, logged_in_client, defect_id):
        upload(
            logged_in_client,
            defect_id,
            ("a.png", PNG_BYTES, "image/png"),
            ("b.jpg", PNG_BYTES, "image/jpeg"),
            ("c.gif", PNG_BYTES, "image/gif"),
        )
        images = logged_in_client.get(f"/api/defect-image/defect/{defect_id}").get_json()["data"]
        assert [image["file_name"] for image in images] == ["a.png", "b.jpg", "c.gif"]

        assert logged_in_client.delete(f"/api/defect-image/{images[0]['id']}").status_code == 200
        assert logged_in_client.delete(f"/api/defect-image/{images[0]['id']}").status_code == 404

        response = logged_in_client.delete(f"/api/defect-image/defect/{defect_id}")
        assert response.get_json()["data"]["deleted"] == 2


class TestServiceCreate:
    def test_single_image(self, app, defect_id):
        upload = FileStorage(stream=BytesIO(PNG_BYTES), filename="one.webp", content_type="image/webp")
        result = DefectImageService(db).create(defect_id, upload)
        assert result.success is True
        assert result.data[0]["content_type"] == "image/webp"

    def test_missing_table_is_a_failed_result(self, app, defect_id):
        db.session.execute(text("DROP TABLE defect_image"))
        db.session.commit()
        upload = FileStorage(stream=BytesIO(PNG_BYTES), filename="one.png", content_type="image/png")
        service = DefectImageService(db)

        created = service.create(defect_id, upload)
        assert created.success is False
        assert created.error == "Failed to store images"
        assert service.count_for_defect(defect_id).success is False
        assert service.download(1).success is False
