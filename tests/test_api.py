"""
API Tests
=========

FastAPI surface exercised through TestClient with the mock camera.
"""

import pytest
from fastapi.testclient import TestClient

from capturecam.config import settings


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings.camera, "backend", "mock")
    monkeypatch.setattr(settings.storage, "uploads_dir", str(tmp_path / "uploads"))
    monkeypatch.setattr(settings.storage, "leads_db_path", str(tmp_path / "leads.db"))

    from capturecam.main import app

    with TestClient(app) as test_client:
        yield test_client


class TestServiceEndpoints:
    """Info, liveness, readiness and metrics."""

    def test_root(self, client):
        body = client.get("/").json()
        assert body["service"] == "CaptureCam"
        assert body["camera_backend"] == "mock"

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_ready(self, client):
        response = client.get("/ready")
        assert response.status_code == 200
        assert response.json()["state"] == "LIVE"

    def test_metrics(self, client):
        body = client.get("/metrics").json()
        assert body["capture_count"] == 0
        assert body["source"]["backend"] == "mock"


class TestCaptureEndpoints:
    """Capture, retake, artifact and upload."""

    def test_status(self, client):
        body = client.get("/capture/status").json()
        assert body["state"] == "LIVE"
        assert body["has_artifact"] is False

    def test_capture_flow(self, client, tmp_path):
        response = client.post("/capture")
        body = response.json()
        assert response.status_code == 200
        assert body["success"] is True
        assert body["reason_code"] == "ACCEPTED"
        assert body["state"] == "ACCEPTED"

        artifact = client.get("/capture/artifact")
        assert artifact.status_code == 200
        assert artifact.headers["content-type"] == "image/png"
        assert artifact.content.startswith(b"\x89PNG")

        again = client.post("/capture").json()
        assert again["reason_code"] == "NOT_LIVE"

        uploaded = client.post("/capture/upload")
        assert uploaded.status_code == 201
        filename = uploaded.json()["filename"]
        assert (tmp_path / "uploads" / filename).exists()

        retake = client.post("/capture/retake").json()
        assert retake["discarded"] is True
        assert retake["state"] == "LIVE"
        assert retake["capture_count"] == 1

    def test_no_artifact(self, client):
        assert client.get("/capture/artifact").status_code == 404

        response = client.post("/capture/upload")
        assert response.status_code == 409
        assert response.json()["success"] is False


class TestUploadAndGallery:
    """Multipart upload and gallery listing."""

    def test_upload_and_list(self, client, sharp_png):
        response = client.post(
            "/api/upload",
            files={"image": ("card.png", sharp_png, "image/png")},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["url"] == f"/uploads/{body['filename']}"
        assert body["size"] == len(sharp_png)

        gallery = client.get("/api/gallery").json()
        assert gallery["total"] == 1
        assert gallery["images"][0]["filename"] == body["filename"]

    def test_missing_image_field(self, client):
        response = client.post("/api/upload", files={"other": ("a.png", b"x", "image/png")})
        assert response.status_code == 400
        assert "No image file provided" in response.json()["error"]

    def test_unsupported_type(self, client):
        response = client.post(
            "/api/upload",
            files={"image": ("card.gif", b"GIF89a", "image/gif")},
        )
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Unsupported file type: image/gif. Allowed: image/png, image/jpeg, image/webp",
        }

    def test_empty_gallery(self, client):
        assert client.get("/api/gallery").json() == {"success": True, "images": [], "total": 0}


class TestLeads:
    """Lead creation and listing."""

    def test_create_and_list(self, client):
        created = client.post("/api/leads", json={"name": "Grace Hopper", "company": "Navy"})
        assert created.status_code == 201
        lead = created.json()["lead"]
        assert lead["name"] == "Grace Hopper"

        listed = client.get("/api/leads").json()
        assert listed["success"] is True
        assert [item["id"] for item in listed["leads"]] == [lead["id"]]

    def test_contact_required(self, client):
        response = client.post("/api/leads", json={"company": "Acme"})
        assert response.status_code == 400
        assert response.json()["error"] == "At least one of name, email, or phone is required."

    def test_invalid_body(self, client):
        response = client.post(
            "/api/leads",
            content=b"not json",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400

    def test_non_utf8_body(self, client):
        response = client.post(
            "/api/leads",
            content=b"{\"name\": \"Ren\xe9\"}",
            headers={"content-type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_non_object_body(self, client):
        assert client.post("/api/leads", json=["name"]).status_code == 400


class TestStatusWebSocket:
    """WS /ws/status."""

    def test_pushes_status(self, client):
        with client.websocket_connect("/ws/status") as websocket:
            status = websocket.receive_json()
        assert status["state"] == "LIVE"
        assert "status_label" in status
