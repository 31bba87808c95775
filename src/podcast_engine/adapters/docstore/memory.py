"""In-memory document store for tests and local experiments."""

import copy
from typing import Any
from uuid import uuid4

from podcast_engine.adapters.docstore.base import DocumentStore
from podcast_engine.domain.errors import DocumentNotFoundError


class InMemoryDocumentStore(DocumentStore):
    """Documents held in nested dictionaries; values are deep-copied in and out."""

    def __init__(self) -> None:
        self.collections: dict[str, dict[str, dict[str, Any]]] = {}

    @property
    def name(self) -> str:
        return "memory"

    def _collection(self, collection: str) -> dict[str, dict[str, Any]]:
        return self.collections.setdefault(collection, {})

    async def create(
        self, collection: str, data: dict[str, Any], doc_id: str | None = None
    ) -> str:
        doc_id = doc_id or data.get("id") or uuid4().hex
        self._collection(collection)[doc_id] = copy.deepcopy({**data, "id": doc_id})
        return doc_id

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        doc = self._collection(collection).get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        self._collection(collection)[doc_id] = copy.deepcopy({**data, "id": doc_id})

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        docs = self._collection(collection)
        if doc_id not in docs:
            raise DocumentNotFoundError(collection, doc_id)
        docs[doc_id].update(copy.deepcopy(fields))

    async def delete(self, collection: str, doc_id: str) -> bool:
        return self._collection(collection).pop(doc_id, None) is not None

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        docs = [
            doc
            for doc in self._collection(collection).values()
            if all(doc.get(key) == value for key, value in (filters or {}).items())
        ]
        if order_by:
            docs.sort(key=lambda doc: str(doc.get(order_by) or ""), reverse=descending)
        if limit is not None:
            docs = docs[:limit]
        return copy.deepcopy(docs)
