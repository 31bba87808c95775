"""In-memory blob storage for tests and local experiments."""

from podcast_engine.adapters.storage.base import BlobStorage


class InMemoryBlobStorage(BlobStorage):
    """Keeps blobs in a dictionary keyed by path."""

    def __init__(self, base_url: str = "memory://") -> None:
        self.base_url = base_url
        self.objects: dict[str, tuple[bytes, str]] = {}

    @property
    def name(self) -> str:
        return "memory"

    async def store(self, path: str, data: bytes, content_type: str) -> str:
        self.objects[path] = (data, content_type)
        return f"{self.base_url}{path}"

    async def delete(self, path: str) -> bool:
        return self.objects.pop(path, None) is not None
