"""
API test fixtures: the app wired to an in-memory store and a temp artifact root.
"""

import pytest
from fastapi.testclient import TestClient

from statement_ingest.config import settings
from statement_ingest.dependencies import get_artifact_store, get_store
from statement_ingest.main import app
from statement_ingest.storage.artifact_store import ArtifactStore


@pytest.fixture
def artifacts(tmp_path):
    return ArtifactStore(str(tmp_path / "artifacts"))


@pytest.fixture
def client(memory_store, artifacts, monkeypatch):
    monkeypatch.setattr(settings, "API_KEY", None)
    monkeypatch.setattr(settings, "PROCESS_INLINE", True)
    monkeypatch.setattr(settings, "REJECT_UNSUPPORTED_UPLOADS", False)
    app.dependency_overrides[get_store] = lambda: memory_store
    app.dependency_overrides[get_artifact_store] = lambda: artifacts
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def upload(client, csv_factory, bank_rows):
    """POST a CSV statement and return the response JSON."""

    def _upload(owner_id="owner-123", rows=None, file_name="statement.csv"):
        data = csv_factory(rows if rows is not None else bank_rows(5))
        response = client.post(
            "/api/v1/uploads",
            params={"owner_id": owner_id},
            files={"file": (file_name, data, "text/csv")},
        )
        assert response.status_code == 201, response.text
        return response.json()

    return _upload
