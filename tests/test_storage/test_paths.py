"""
Tests for upload path layout and the artifact store.
"""

import pytest

from statement_ingest.storage.artifact_store import ArtifactStore
from statement_ingest.storage.paths import (
    owner_id_from_storage_path,
    safe_file_name,
    statement_upload_path,
)


class TestPaths:

    def test_upload_layout(self):
        path = statement_upload_path("owner-1", "March Statement.csv", timestamp_ms=1700000000000)
        assert path == "financial/bank-statements/owner-1/1700000000000_March_Statement.csv"

    def test_owner_round_trip(self):
        path = statement_upload_path("owner-1", "a.csv")
        assert owner_id_from_storage_path(path) == "owner-1"

    @pytest.mark.parametrize("path", [
        "",
        "financial/bank-statements/owner-1",
        "uploads/bank-statements/owner-1/x.csv",
    ])
    def test_owner_not_recoverable(self, path):
        assert owner_id_from_storage_path(path) is None

    def test_safe_file_name_drops_directories(self):
        assert safe_file_name("../../etc/passwd") == "passwd"
        assert safe_file_name("") == "statement"


class TestArtifactStore:

    def test_save_load_delete(self, tmp_path):
        store = ArtifactStore(str(tmp_path))
        store.save_bytes("financial/bank-statements/o/1_a.csv", b"data")

        assert store.load_bytes("financial/bank-statements/o/1_a.csv") == b"data"
        assert store.delete("financial/bank-statements/o/1_a.csv")
        assert not store.exists("financial/bank-statements/o/1_a.csv")

    def test_escape_rejected(self, tmp_path):
        store = ArtifactStore(str(tmp_path / "root"))
        with pytest.raises(ValueError):
            store.save_bytes("../outside.csv", b"x")
