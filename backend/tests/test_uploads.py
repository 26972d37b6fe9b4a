"""
Image upload tests against the local file storage collaborator.
"""

import io
import os

import pytest


PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


def _upload(client, headers, data=PNG_BYTES, filename="photo.PNG", content_type="image/png"):
    return client.post(
        "/api/upload/image",
        data={"file": (io.BytesIO(data), filename, content_type)},
        headers=headers,
        content_type="multipart/form-data",
    )


class TestUpload:
    def test_store_and_delete(self, app, client, admin_headers):
        resp = _upload(client, admin_headers)
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["url"].startswith("/uploads/")
        assert data["url"].endswith(".png")

        stored_name = data["path"].split("/", 1)[1]
        assert os.path.isfile(os.path.join(app.config["UPLOAD_FOLDER"], stored_name))

        deleted = client.delete(f"/api/upload/image?path={data['path']}", headers=admin_headers)
        assert deleted.status_code == 200
        assert not os.path.exists(os.path.join(app.config["UPLOAD_FOLDER"], stored_name))

    def test_random_name_ignores_client_filename(self, client, admin_headers):
        data = _upload(client, admin_headers, filename="../../etc/passwd.png").get_json()["data"]
        assert "passwd" not in data["url"]
        assert ".." not in data["path"]

    @pytest.mark.parametrize(
        "filename,content_type,ext",
        [("x.html", "image/png", ".png"), ("photo", "image/jpeg", ".jpg"), ("anim.GIF.svg", "image/gif", ".gif")],
    )
    def test_extension_follows_content_type(self, app, client, admin_headers, filename, content_type, ext):
        data = _upload(client, admin_headers, filename=filename, content_type=content_type).get_json()["data"]
        stored_name = data["path"].split("/", 1)[1]
        assert os.path.splitext(stored_name)[1] == ext
        assert data["url"].endswith(ext)
        assert os.path.isfile(os.path.join(app.config["UPLOAD_FOLDER"], stored_name))

    def test_rejects_wrong_type(self, client, admin_headers):
        resp = _upload(client, admin_headers, filename="doc.pdf", content_type="application/pdf")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "Invalid file type. Only JPEG, PNG, WebP, and GIF are allowed"

    def test_rejects_large_file(self, app, client, admin_headers):
        too_big = b"\x00" * (app.config["MAX_UPLOAD_BYTES"] + 1)
        resp = _upload(client, admin_headers, data=too_big)
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "File too large. Maximum size is 5MB"

    def test_missing_file(self, client, admin_headers):
        resp = client.post("/api/upload/image", data={}, headers=admin_headers,
                           content_type="multipart/form-data")
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "No file provided"

    @pytest.mark.parametrize(
        "path,status",
        [
            ("", 400),
            ("uploads/../../secrets.txt", 400),
            ("uploads/missing.png", 404),
        ],
    )
    def test_delete_rejects(self, client, admin_headers, path, status):
        resp = client.delete(f"/api/upload/image?path={path}", headers=admin_headers)
        assert resp.status_code == status
