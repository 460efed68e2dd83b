"""Tests for the FastAPI application."""

import pytest
from fastapi.testclient import TestClient

from ui_migrator.api.main import app
from ui_migrator.api.models import MigrationCreate, MigrationStatusEnum
from ui_migrator.api.storage import migration_storage

from conftest import BROKEN_TSX, GREETING_TSX


@pytest.fixture
def client():
    migration_storage.clear()
    yield TestClient(app)
    migration_storage.clear()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


class TestMigrations:

    def test_create_runs_in_background(self, client, source_tree, tmp_path):
        response = client.post("/api/migrations", json={
            "source_root": str(source_tree),
            "output_root": str(tmp_path / "out"),
            "base_delay": 0,
        })
        assert response.status_code == 200
        created = response.json()
        assert created["dry_run"] is True

        # TestClient runs background tasks before returning.
        fetched = client.get(f"/api/migrations/{created['id']}").json()
        assert fetched["status"] == "completed"
        assert "components/Button.tsx" in fetched["successful"]
        assert fetched["skipped"] == ["components/index.ts"]
        assert not (tmp_path / "out").exists()

    def test_list(self, client, source_tree, tmp_path):
        for name in ("first", "second"):
            client.post("/api/migrations", json={
                "name": name,
                "source_root": str(source_tree),
                "output_root": str(tmp_path / name),
            })
        listing = client.get("/api/migrations").json()
        assert listing["total"] == 2
        assert {m["name"] for m in listing["migrations"]} == {"first", "second"}

    def test_missing_fields_rejected(self, client):
        response = client.post("/api/migrations", json={"source_root": "src"})
        assert response.status_code == 422

    def test_unknown_migration(self, client):
        assert client.get("/api/migrations/nope").status_code == 404
        assert client.post("/api/migrations/nope/cancel").status_code == 404

    def test_cancel_pending_migration(self, client):
        stored = migration_storage.create(MigrationCreate(source_root="src", output_root="out"))

        response = client.post(f"/api/migrations/{stored.id}/cancel")

        assert response.status_code == 200
        assert response.json()["status"] == "cancelling"
        assert migration_storage.get(stored.id).status == MigrationStatusEnum.CANCELLED

    def test_cancel_finished_migration_is_rejected(self, client, source_tree, tmp_path):
        created = client.post("/api/migrations", json={
            "source_root": str(source_tree),
            "output_root": str(tmp_path / "out"),
        }).json()

        response = client.post(f"/api/migrations/{created['id']}/cancel")

        assert response.status_code == 400


class TestPreview:

    def test_preview(self, client):
        response = client.post("/api/preview", json={"source_text": GREETING_TSX, "file_name": "Greeting.tsx"})
        assert response.status_code == 200
        body = response.json()
        assert body["strategy"] == "pattern_mapping"
        assert body["validation"]["valid"] is True
        assert [a["kind"] for a in body["artifacts"]] == ["primary_source", "barrel", "documentation"]
        assert body["artifacts"][0]["content"].endswith("export default Greeting;\n")

    def test_preview_of_broken_source(self, client):
        response = client.post("/api/preview", json={"source_text": BROKEN_TSX, "file_name": "Broken.tsx"})
        assert response.status_code == 422
        assert response.json()["detail"]["kind"] == "extraction"
