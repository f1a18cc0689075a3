"""
Storage path layout for uploaded statements.
All paths are relative to ARTIFACT_ROOT.

Uploads live at financial/bank-statements/{owner_id}/{timestamp}_{file_name};
the owner is recovered from that layout when a file is picked up by path.
"""

import hashlib
import re
import time
from pathlib import Path, PurePosixPath
from typing import Optional

UPLOAD_PREFIX = ("financial", "bank-statements")
UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


def file_hash(file_bytes: bytes) -> str:
    """SHA-256 hash of file content."""
    return hashlib.sha256(file_bytes).hexdigest()


def safe_file_name(file_name: str) -> str:
    name = PurePosixPath(file_name or "").name
    return UNSAFE_CHARS.sub("_", name).strip("._") or "statement"


def statement_upload_path(owner_id: str, file_name: str, timestamp_ms: Optional[int] = None) -> str:
    """Path for a raw uploaded statement."""
    ts = timestamp_ms if timestamp_ms is not None else int(time.time() * 1000)
    return "/".join((*UPLOAD_PREFIX, owner_id, f"{ts}_{safe_file_name(file_name)}"))


def owner_id_from_storage_path(path: str) -> Optional[str]:
    """
    Owner id from financial/bank-statements/{owner_id}/... or None when the
    path does not follow the upload layout.
    """
    parts = [p for p in (path or "").strip("/").split("/") if p]
    if len(parts) < 4 or tuple(parts[:2]) != UPLOAD_PREFIX:
        return None
    return parts[2]


def ensure_parent_dirs(artifact_root: str, relative_path: str) -> Path:
    """Create parent directories and return the full absolute path."""
    full_path = Path(artifact_root) / relative_path
    full_path.parent.mkdir(parents=True, exist_ok=True)
    return full_path
