"""
File storage service for uploaded legal documents.

Files live in a mounted volume (UPLOAD_ROOT), one directory per owner:
{UPLOAD_ROOT}/{user_id}/{document_id}{extension}
"""
import logging
from pathlib import Path
from typing import Optional

from django.conf import settings
from django.core.files.uploadedfile import UploadedFile

logger = logging.getLogger(__name__)


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class FileStorage:
    """Local filesystem storage for uploaded documents."""

    def __init__(self, root: Optional[Path] = None):
        self.root = Path(root or settings.UPLOAD_ROOT)
        self._ensure_dir(self.root)

    def _ensure_dir(self, path: Path) -> None:
        try:
            path.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create storage directory {path}: {e}")
            raise StorageError(f"Cannot create upload directory: {e}")

    def save(self, user_id: str, document_id: str, extension: str, uploaded: UploadedFile) -> str:
        """
        Write an uploaded file to disk.

        Returns:
            Storage path relative to the root (e.g., '<user>/<doc>.pdf')

        Raises:
            StorageError: If the file cannot be written
        """
        if not extension.startswith('.'):
            extension = f'.{extension}'

        relative = Path(str(user_id)) / f"{document_id}{extension}"
        target = self.root / relative
        self._ensure_dir(target.parent)

        try:
            uploaded.seek(0)
            with open(target, 'wb') as dest:
                for chunk in uploaded.chunks():
                    dest.write(chunk)
        except OSError as e:
            logger.error(f"Failed to save file {relative}: {e}")
            raise StorageError(f"Failed to save file: {e}")

        logger.info(f"Saved file: {relative} ({target.stat().st_size} bytes)")
        return relative.as_posix()

    def get_path(self, storage_path: str) -> Path:
        """
        Absolute path of a stored file.

        Raises:
            StorageError: If the path escapes the storage root
        """
        path = (self.root / storage_path).resolve()
        if self.root.resolve() not in path.parents:
            raise StorageError(f"Invalid storage path: {storage_path}")
        return path

    def exists(self, storage_path: str) -> bool:
        return bool(storage_path) and self.get_path(storage_path).exists()

    def delete(self, storage_path: str) -> bool:
        """
        Delete a stored file.

        Returns:
            True if deleted, False if the file didn't exist
        """
        if not storage_path:
            return False
        path = self.get_path(storage_path)
        try:
            if path.exists():
                path.unlink()
                logger.info(f"Deleted file: {storage_path}")
                return True
            return False
        except OSError as e:
            logger.error(f"Failed to delete file {storage_path}: {e}")
            raise StorageError(f"Failed to delete file: {e}")

    def url_for(self, document_id: str) -> str:
        """URL the client uses to fetch a document's file."""
        return f"{settings.MEDIA_BASE_URL.rstrip('/')}/{document_id}/file"


# Singleton instance
_storage: Optional[FileStorage] = None


def get_storage() -> FileStorage:
    """Get the file storage instance (lazy initialization)."""
    global _storage
    if _storage is None:
        _storage = FileStorage()
    return _storage
