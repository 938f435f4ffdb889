"""
Output storage for generated media.

The orchestrator only depends on ``Storage.upload(data, filename, bucket)``
returning a public URL. ``LocalStorage`` writes under the configured output
directory and serves files from ``public_base_url`` (mounted by the API).
"""
import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ugcpipe.config import settings

logger = logging.getLogger(__name__)

MIME_EXTENSIONS = {
    "video/mp4": ".mp4",
    "video/quicktime": ".mov",
    "image/png": ".png",
    "image/jpeg": ".jpg",
    "image/webp": ".webp",
}


def extension_for(mime_type: Optional[str], default: str = ".bin") -> str:
    return MIME_EXTENSIONS.get((mime_type or "").lower(), default)


@dataclass
class UploadResult:
    url: str
    path: Optional[str] = None


class Storage(ABC):
    """Blob storage collaborator."""

    @abstractmethod
    async def upload(self, data: bytes, filename: str, bucket: str) -> UploadResult:
        """Store ``data`` and return where it can be fetched from."""
        ...


class LocalStorage(Storage):
    """
    Filesystem-backed storage.

    Layout: {base_dir}/{bucket}/{filename}, where filename may contain
    subdirectories (e.g. "{job_id}/clip_1.mp4").

    Implements path traversal protection to prevent directory escape attacks.
    """

    def __init__(self, base_dir: str | Path | None = None, public_base_url: str | None = None):
        if base_dir is None:
            base_dir = settings.storage.output_dir
        self.base_dir = Path(base_dir).resolve()
        self.base_dir.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or settings.storage.public_base_url).rstrip("/")

    def resolve(self, bucket: str, filename: str) -> Path:
        """
        Resolve the target path for an object.

        Raises:
            ValueError: If the bucket/filename escapes base_dir (traversal attack)
        """
        bucket_dir = (self.base_dir / bucket).resolve()
        target = (bucket_dir / filename).resolve()
        if not bucket_dir.is_relative_to(self.base_dir) or not target.is_relative_to(bucket_dir):
            raise ValueError("Invalid storage path")
        return target

    async def upload(self, data: bytes, filename: str, bucket: str) -> UploadResult:
        target = self.resolve(bucket, filename)
        await asyncio.to_thread(self._write, target, data)
        url = f"{self.public_base_url}/{target.relative_to(self.base_dir).as_posix()}"
        logger.info(f"Stored {len(data)} bytes at {target}")
        return UploadResult(url=url, path=str(target))

    @staticmethod
    def _write(target: Path, data: bytes) -> None:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)


_storage: Optional[Storage] = None


def get_storage() -> Storage:
    """Return the process-wide storage backend, creating it on first call."""
    global _storage
    if _storage is None:
        _storage = LocalStorage()
    return _storage
