# tests/test_health.py

from fastapi.testclient import TestClient

from core.config import settings


def test_health_app(client: TestClient):
    response = client.get("/health/app")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["service"] == settings.PROJECT_NAME


def test_root(client: TestClient):
    assert client.get("/").json()["status"] == "ok"


def test_health_db_reports_each_table(client: TestClient, db):
    db.seed("parks", {"name": "Colomos"})
    db.failing_tables.add("ad_placements")

    body = client.get("/health/db").json()
    tables = body["details"]["tables"]

    assert body["status"] == "ok"
    assert tables["parks"] == {"status": "ok", "rows_found": 1}
    assert tables["trees"] == {"status": "ok", "rows_found": 0}
    assert tables["ad_placements"]["status"] == "error"


def test_health_db_not_configured(client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "SUPABASE_URL", None)
    assert client.get("/health/db").json()["status"] == "not_configured"


def test_health_storage_filesystem_mode(client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "OBJECT_STORAGE_BUCKET", None)

    body = client.get("/health/storage").json()
    assert body["mode"] == "filesystem"
    assert body["details"]["uploads_dir"].endswith("uploads")


def test_health_storage_object_mode(client: TestClient, monkeypatch):
    monkeypatch.setattr(settings, "AWS_ACCESS_KEY_ID", "key")
    monkeypatch.setattr(settings, "AWS_SECRET_ACCESS_KEY", "secret")
    monkeypatch.setattr(settings, "OBJECT_STORAGE_BUCKET", "parksys")

    assert client.get("/health/storage").json()["mode"] == "object-storage"
