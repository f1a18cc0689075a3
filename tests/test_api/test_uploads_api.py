"""
Tests for the /api/v1/uploads endpoints.
"""

from statement_ingest.config import settings


class TestUploadStatement:

    def test_inline_processing(self, client, upload, artifacts):
        body = upload()

        assert body["status"] == "completed"
        assert body["upload_batch_id"]
        assert body["storage_path"].startswith("financial/bank-statements/owner-123/")
        assert body["storage_path"].endswith("_statement.csv")
        assert len(body["file_hash"]) == 64
        assert artifacts.exists(body["storage_path"])

        batch = client.get(f"/api/v1/uploads/{body['upload_batch_id']}").json()
        assert batch["total_transactions"] == 5
        assert batch["processed_transactions"] == 5

    def test_queued_when_not_inline(self, client, monkeypatch, csv_factory, bank_rows):
        monkeypatch.setattr(settings, "PROCESS_INLINE", False)
        calls = []

        def fake_enqueue(storage_path, file_name, mime_type=None, owner_id=None, queue=None):
            calls.append((storage_path, file_name, owner_id))
            return "job-1"

        monkeypatch.setattr("statement_ingest.worker.jobs.enqueue_ingestion", fake_enqueue)

        response = client.post(
            "/api/v1/uploads",
            params={"owner_id": "owner-123"},
            files={"file": ("statement.csv", csv_factory(bank_rows(2)), "text/csv")},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "queued"
        assert body["job_id"] == "job-1"
        assert calls[0][1:] == ("statement.csv", "owner-123")

    def test_enqueue_failure_keeps_file_stored(self, client, monkeypatch, csv_factory, bank_rows):
        monkeypatch.setattr(settings, "PROCESS_INLINE", False)

        def broken_enqueue(*args, **kwargs):
            raise ConnectionError("redis down")

        monkeypatch.setattr("statement_ingest.worker.jobs.enqueue_ingestion", broken_enqueue)

        response = client.post(
            "/api/v1/uploads",
            params={"owner_id": "owner-123"},
            files={"file": ("statement.csv", csv_factory(bank_rows(2)), "text/csv")},
        )

        assert response.status_code == 201
        assert response.json()["status"] == "stored"

    def test_unsupported_format_finalizes_failed_batch(self, client):
        response = client.post(
            "/api/v1/uploads",
            params={"owner_id": "owner-123"},
            files={"file": ("scan.pdf", b"%PDF-1.4 fake", "application/pdf")},
        )

        body = response.json()
        assert body["status"] == "failed"
        batch = client.get(f"/api/v1/uploads/{body['upload_batch_id']}").json()
        assert batch["errors"] == ["Processing failed: Unsupported file format: .pdf"]

    def test_unsupported_format_rejected_when_configured(self, client, monkeypatch):
        monkeypatch.setattr(settings, "REJECT_UNSUPPORTED_UPLOADS", True)
        response = client.post(
            "/api/v1/uploads",
            params={"owner_id": "owner-123"},
            files={"file": ("scan.pdf", b"%PDF-1.4 fake", "application/pdf")},
        )
        assert response.status_code == 415

    def test_empty_file(self, client):
        response = client.post(
            "/api/v1/uploads",
            params={"owner_id": "owner-123"},
            files={"file": ("statement.csv", b"", "text/csv")},
        )
        assert response.status_code == 400

    def test_too_large(self, client, monkeypatch):
        monkeypatch.setattr(settings, "MAX_UPLOAD_SIZE_MB", 0)
        response = client.post(
            "/api/v1/uploads",
            params={"owner_id": "owner-123"},
            files={"file": ("statement.csv", b"Date,Description,Amount\n", "text/csv")},
        )
        assert response.status_code == 413

    def test_owner_required(self, client, csv_factory, bank_rows):
        response = client.post(
            "/api/v1/uploads",
            files={"file": ("statement.csv", csv_factory(bank_rows(1)), "text/csv")},
        )
        assert response.status_code == 422

    def test_api_key_enforced(self, client, monkeypatch, csv_factory, bank_rows):
        monkeypatch.setattr(settings, "API_KEY", "secret")
        files = {"file": ("statement.csv", csv_factory(bank_rows(1)), "text/csv")}

        denied = client.post("/api/v1/uploads", params={"owner_id": "o"}, files=files)
        allowed = client.post(
            "/api/v1/uploads", params={"owner_id": "o"}, files=files, headers={"X-API-Key": "secret"}
        )

        assert denied.status_code == 401
        assert allowed.status_code == 201


class TestUploadBatches:

    def test_list_for_owner(self, client, upload, bank_rows):
        first = upload()
        second = upload(rows=bank_rows(3), file_name="april.csv")
        upload(owner_id="someone-else")

        body = client.get("/api/v1/uploads", params={"owner_id": "owner-123"}).json()

        assert body["total"] == 2
        ids = {b["id"] for b in body["batches"]}
        assert ids == {first["upload_batch_id"], second["upload_batch_id"]}

    def test_limit(self, client, upload, bank_rows):
        upload()
        upload(rows=bank_rows(3), file_name="april.csv")

        body = client.get("/api/v1/uploads", params={"owner_id": "owner-123", "limit": 1}).json()
        assert body["total"] == 2
        assert len(body["batches"]) == 1

    def test_missing_batch(self, client):
        assert client.get("/api/v1/uploads/does-not-exist").status_code == 404
