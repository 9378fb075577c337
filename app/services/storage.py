"""Storage service for uploaded unit resources (videos and PDFs)."""

import logging
import uuid
from abc import ABC, abstractmethod
from pathlib import Path

from fastapi import UploadFile

from app.config import settings

logger = logging.getLogger(__name__)


class StorageService(ABC):
    """Abstract interface for unit resource files."""

    @abstractmethod
    async def save(self, upload: UploadFile) -> str:
        """Persist an uploaded file and return its public URL."""

    @abstractmethod
    def delete(self, url: str) -> bool:
        """Remove the file behind *url*. Never raises; returns success."""


class LocalStorageService(StorageService):
    """Files on local disk, served by the app under ``UPLOAD_URL_PREFIX``."""

    def __init__(self, base_dir: Path, url_prefix: str = "/uploads") -> None:
        self.base_dir = Path(base_dir)
        self.url_prefix = "/" + url_prefix.strip("/")

    def path_for(self, url: str) -> Path:
        """Map a public URL back to a path inside ``base_dir``."""
        name = url
        if name.startswith(self.url_prefix + "/"):
            name = name[len(self.url_prefix) + 1:]
        # Only the final component; URLs never address subdirectories
        return self.base_dir / Path(name).name

    async def save(self, upload: UploadFile) -> str:
        self.base_dir.mkdir(parents=True, exist_ok=True)
        suffix = Path(upload.filename or "").suffix
        filename = f"{uuid.uuid4()}{suffix}"
        content = await upload.read()
        (self.base_dir / filename).write_bytes(content)
        logger.info("Stored upload %s as %s (%d bytes)", upload.filename, filename, len(content))
        return f"{self.url_prefix}/{filename}"

    def delete(self, url: str) -> bool:
        path = self.path_for(url)
        try:
            if not path.exists():
                logger.info("File does not exist: %s", path)
                return True
            path.unlink()
            logger.info("Deleted file %s", path)
            return True
        except OSError as e:
            logger.error("Failed to delete file %s: %s", path, e)
            return False


# Singleton instance
_storage_service: StorageService | None = None


def get_storage_service() -> StorageService:
    """Factory / FastAPI dependency for the configured storage backend."""
    global _storage_service
    if _storage_service is None:
        logger.info("Using LocalStorageService -> %s", settings.UPLOAD_DIR)
        _storage_service = LocalStorageService(settings.UPLOAD_DIR, settings.UPLOAD_URL_PREFIX)
    return _storage_service
