"""Local filesystem blob storage."""

import asyncio
from pathlib import Path

from podcast_engine.adapters.storage.base import BlobStorage
from podcast_engine.config import settings
from podcast_engine.logging import get_logger

logger = get_logger(__name__)


class LocalBlobStorage(BlobStorage):
    """Store blobs as files below ``base_path``.

    URLs are built from ``public_base_url``; the API mounts the same directory
    under ``/media`` so the URLs resolve in development.
    """

    def __init__(
        self,
        base_path: Path | None = None,
        public_base_url: str | None = None,
    ) -> None:
        self.base_path = base_path or Path(settings.storage_base_path)
        self.public_base_url = (public_base_url or settings.storage_public_base_url).rstrip("/")

    @property
    def name(self) -> str:
        return "local"

    def _resolve(self, path: str) -> Path:
        target = (self.base_path / path).resolve()
        if not target.is_relative_to(self.base_path.resolve()):
            raise ValueError(f"Path escapes storage root: {path}")
        return target

    async def store(self, path: str, data: bytes, content_type: str) -> str:
        target = self._resolve(path)

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(data)

        await asyncio.get_running_loop().run_in_executor(None, _write)

        logger.info(
            "blob_stored",
            path=path,
            size_bytes=len(data),
            content_type=content_type,
        )
        return f"{self.public_base_url}/{path}"

    async def delete(self, path: str) -> bool:
        target = self._resolve(path)
        if not target.exists():
            return False
        target.unlink()
        logger.info("blob_deleted", path=path)
        return True
