"""Base interface for blob storage backends."""

from abc import ABC, abstractmethod


class BlobStorage(ABC):
    """Abstract base class for binary object storage (episode audio).

    Implementations:
    - LocalBlobStorage: Files under a local directory, served by the API
    - InMemoryBlobStorage: Dictionary-backed storage for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name identifier."""
        ...

    @abstractmethod
    async def store(self, path: str, data: bytes, content_type: str) -> str:
        """Store bytes at ``path`` and return a publicly readable URL."""
        ...

    @abstractmethod
    async def delete(self, path: str) -> bool:
        """Delete the object at ``path``. Returns False if it did not exist."""
        ...
