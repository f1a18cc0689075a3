"""
Raw upload storage.
Local filesystem under ARTIFACT_ROOT; paths are relative to the root.
"""

from pathlib import Path
from typing import Optional

import structlog

from statement_ingest.config import settings
from statement_ingest.storage.paths import ensure_parent_dirs

logger = structlog.get_logger(__name__)


class ArtifactStore:
    """
    Save and load uploaded statement files.
    All paths are relative to ARTIFACT_ROOT.
    """

    def __init__(self, root: Optional[str] = None):
        self.root = Path(root or settings.ARTIFACT_ROOT)
        self.root.mkdir(parents=True, exist_ok=True)

    def _resolve(self, relative_path: str) -> Path:
        full_path = (self.root / relative_path).resolve()
        if self.root.resolve() not in full_path.parents:
            raise ValueError(f"Path escapes artifact root: {relative_path}")
        return full_path

    def save_bytes(self, relative_path: str, data: bytes) -> str:
        """Save raw bytes. Returns the relative path."""
        self._resolve(relative_path)
        full_path = ensure_parent_dirs(str(self.root), relative_path)
        full_path.write_bytes(data)
        logger.info("artifact_saved", path=relative_path, size_bytes=len(data))
        return relative_path

    def load_bytes(self, relative_path: str) -> bytes:
        """Load raw bytes from storage."""
        full_path = self._resolve(relative_path)
        if not full_path.exists():
            raise FileNotFoundError(f"Artifact not found: {relative_path}")
        return full_path.read_bytes()

    def exists(self, relative_path: str) -> bool:
        return self._resolve(relative_path).exists()

    def delete(self, relative_path: str) -> bool:
        """Delete an artifact. Returns True if it existed."""
        full_path = self._resolve(relative_path)
        if full_path.exists():
            full_path.unlink()
            logger.info("artifact_deleted", path=relative_path)
            return True
        return False
