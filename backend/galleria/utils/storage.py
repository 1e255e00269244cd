"""Filesystem storage for uploaded image files"""
import os
import uuid
from pathlib import Path
from typing import BinaryIO, Optional, Tuple

from galleria.utils.logger import logger

_CHUNK_SIZE = 1024 * 1024


class ImageStore:
    """Stores uploaded files under ``root`` with random names.

    Only the generated file name is persisted in the database; the original
    extension is kept so the name stays recognisable on disk.
    """

    def __init__(self, root: str):
        self.root = Path(root)

    def ensure_root(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, source: BinaryIO, original_name: Optional[str]) -> Tuple[str, int]:
        """Copy ``source`` into the store.

        Returns:
            ``(filename, size_in_bytes)``
        """
        self.ensure_root()
        ext = os.path.splitext(original_name or "")[1].lower()
        filename = f"{uuid.uuid4().hex}{ext}"
        size = 0
        with open(self.root / filename, "wb") as target:
            while True:
                chunk = source.read(_CHUNK_SIZE)
                if not chunk:
                    break
                target.write(chunk)
                size += len(chunk)
        return filename, size

    def path(self, filename: str) -> Path:
        """Resolve ``filename`` inside the store; names never escape the root."""
        return self.root / Path(filename).name

    def exists(self, filename: str) -> bool:
        return self.path(filename).is_file()

    def delete(self, filename: str) -> bool:
        """Remove a stored file. A missing file is logged and reported as False."""
        target = self.path(filename)
        try:
            target.unlink()
            return True
        except FileNotFoundError:
            logger.warning(f"File {target} not found when attempting to delete", extra={"action": "delete_file"})
            return False
