"""Local filesystem storage for original and thumbnail assets.

Assets are addressed by relative path strings such as
``photos/originals/<uuid>.jpg``. Every write goes to a freshly generated
random path, so concurrent uploads never contend for a target.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from family_album.core.settings import settings
from family_album.services.errors import StorageError

logger = logging.getLogger(__name__)

ORIGINALS_AREA = "photos/originals"
THUMBNAILS_AREA = "photos/thumbnails"


def random_path(area: str, extension: str) -> str:
    """Return a new relative path under ``area`` with a random file name."""
    return f"{area}/{uuid.uuid4()}.{extension}"


class LocalStorage:
    """Key/blob store backed by a directory on the local filesystem."""

    def __init__(self, root: Path | str) -> None:
        self.root = Path(root)

    def absolute_path(self, path: str) -> Path:
        """Return the absolute filesystem path for a relative asset path."""
        resolved = (self.root / path).resolve()
        root = self.root.resolve()
        if resolved != root and root not in resolved.parents:
            raise StorageError(f"Path escapes storage root: {path}")
        return resolved

    def make_directory(self, path: str) -> None:
        """Create a directory (and parents); existing directories are fine."""
        try:
            self.absolute_path(path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StorageError(f"Could not create directory {path}: {exc}") from exc

    def store(self, path: str, data: bytes) -> None:
        """Write ``data`` to ``path``, creating the parent directory if needed.

        Raises:
            StorageError: If the bytes could not be written.
        """
        target = self.absolute_path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)
        except OSError as exc:
            logger.error("Failed to write %s: %s", path, exc)
            raise StorageError(f"Could not write {path}: {exc}") from exc

    def read(self, path: str) -> bytes:
        """Return the bytes stored at ``path``."""
        try:
            return self.absolute_path(path).read_bytes()
        except OSError as exc:
            raise StorageError(f"Could not read {path}: {exc}") from exc

    def exists(self, path: str) -> bool:
        """Return True if an asset is stored at ``path``."""
        return self.absolute_path(path).is_file()

    def delete(self, path: str) -> bool:
        """Delete the asset at ``path``; returns False if it was already gone."""
        target = self.absolute_path(path)
        try:
            target.unlink()
        except FileNotFoundError:
            return False
        except OSError as exc:
            logger.warning("Failed to delete %s: %s", path, exc)
            return False
        return True


def get_storage() -> LocalStorage:
    """Return a storage instance rooted at the configured directory."""
    return LocalStorage(settings.storage_root)
