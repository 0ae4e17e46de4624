"""Integration tests for the upload area API

Tests the standalone upload workflow:
- File upload with validation
- Download by {category}/{file} path
- Deletion
- Error handling
"""

import pytest

from conftest import stored_files

pytestmark = pytest.mark.integration

PDF = b"%PDF-1.4\ntest content\n"


def upload(client, filename="receipt.pdf", content=PDF, mime_type="application/pdf"):
    return client.post("/api/uploads", files={"file": (filename, content, mime_type)})


class TestUploadFile:
    """Tests for POST /api/uploads"""

    def test_upload_pdf(self, client, upload_dir):
        response = upload(client)

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        stored = data["file"]
        assert stored["name"] == "receipt.pdf"
        assert stored["mimeType"] == "application/pdf"
        assert stored["sizeBytes"] == len(PDF)
        assert stored["storagePath"].startswith("documents/")
        assert stored["storagePath"].endswith(".pdf")
        assert stored_files(upload_dir) == [stored["storagePath"]]

    def test_image_goes_to_images(self, client):
        response = upload(client, "logo.png", b"\x89PNG\r\n\x1a\n", "image/png")

        assert response.json()["file"]["storagePath"].startswith("images/")

    def test_unsupported_type(self, client, upload_dir):
        response = upload(client, "tool.exe", b"MZ", "application/x-msdownload")

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_attachment"
        assert stored_files(upload_dir) == []

    def test_empty_file(self, client):
        response = upload(client, content=b"")

        assert response.status_code == 400
        assert response.json()["error"] == "invalid_attachment"

    def test_missing_file_field(self, client):
        response = client.post("/api/uploads")

        assert response.status_code == 422


class TestFileAccess:
    """Tests for GET and DELETE /api/uploads/file"""

    def test_download(self, client):
        path = upload(client).json()["file"]["storagePath"]

        response = client.get("/api/uploads/file", params={"path": path})

        assert response.status_code == 200
        assert response.content == PDF
        assert response.headers["content-type"] == "application/pdf"

    def test_download_missing(self, client):
        response = client.get("/api/uploads/file", params={"path": "documents/missing.pdf"})

        assert response.status_code == 404
        assert response.json()["error"] == "http_error"

    @pytest.mark.parametrize("path", ["../etc/passwd", "secrets/file.pdf", "documents/a/b.pdf"])
    def test_bad_path(self, client, path):
        response = client.get("/api/uploads/file", params={"path": path})

        assert response.status_code == 400

    def test_delete(self, client, upload_dir):
        path = upload(client).json()["file"]["storagePath"]

        response = client.delete("/api/uploads/file", params={"path": path})

        assert response.status_code == 200
        assert response.json()["success"] is True
        assert stored_files(upload_dir) == []
        assert client.delete("/api/uploads/file", params={"path": path}).status_code == 404

    def test_uploaded_metadata_fits_registration_slot(self, client):
        stored = upload(client).json()["file"]
        registration = client.post(
            "/api/registrations",
            json={
                "companyName": "Acme Holdings",
                "contactPersonName": "Jordan Silva",
                "contactPersonEmail": "jordan@acme.test",
                "contactPersonPhone": "+94 77 123 4567",
                "selectedPackage": "standard",
                "paymentReceipt": stored,
            },
        )

        assert registration.status_code == 201
        assert registration.json()["paymentReceipt"]["storagePath"] == stored["storagePath"]
