"""Base interface for document stores."""

from abc import ABC, abstractmethod
from typing import Any

PODCASTS = "podcasts"
EPISODES = "episodes"
GENERATION_LOGS = "episodeGenerationLogs"


class DocumentStore(ABC):
    """Abstract base class for JSON document persistence.

    Documents are plain dicts grouped in named collections. Filters are
    equality matches on top-level fields.

    Implementations:
    - PostgresDocumentStore: JSONB rows via SQLAlchemy
    - InMemoryDocumentStore: Dictionary-backed store for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Backend name identifier."""
        ...

    @abstractmethod
    async def create(
        self, collection: str, data: dict[str, Any], doc_id: str | None = None
    ) -> str:
        """Insert a document and return its id."""
        ...

    @abstractmethod
    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        """Fetch one document, or None if it does not exist."""
        ...

    @abstractmethod
    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        """Create or fully replace a document."""
        ...

    @abstractmethod
    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        """Merge top-level fields into an existing document.

        Raises:
            DocumentNotFoundError: If the document does not exist
        """
        ...

    @abstractmethod
    async def delete(self, collection: str, doc_id: str) -> bool:
        """Delete a document. Returns False if it did not exist."""
        ...

    @abstractmethod
    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return documents matching all ``filters``, optionally ordered and limited."""
        ...

    async def health_check(self) -> bool:
        """Check if the store is reachable."""
        return True
