"""PostgreSQL JSONB document store."""

import asyncio
import json
from collections.abc import Callable
from typing import Any, TypeVar
from uuid import uuid4

from sqlalchemy import select, text
from sqlalchemy.orm import Session

from podcast_engine.adapters.docstore.base import DocumentStore
from podcast_engine.db.models import DocumentModel
from podcast_engine.db.session import session_scope
from podcast_engine.domain.errors import DocumentNotFoundError
from podcast_engine.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


def _row(collection: str, doc_id: str, data: dict[str, Any]) -> DocumentModel:
    return DocumentModel(collection=collection, id=doc_id, data={**data, "id": doc_id})


class PostgresDocumentStore(DocumentStore):
    """Stores each document as a JSONB row keyed by (collection, id).

    SQLAlchemy sessions are synchronous, so each operation runs in the default
    executor inside its own committed session.
    """

    @property
    def name(self) -> str:
        return "postgres"

    async def _run(self, fn: Callable[[Session], T]) -> T:
        def _call() -> T:
            with session_scope() as session:
                return fn(session)

        return await asyncio.get_running_loop().run_in_executor(None, _call)

    async def create(
        self, collection: str, data: dict[str, Any], doc_id: str | None = None
    ) -> str:
        doc_id = doc_id or data.get("id") or uuid4().hex

        def _create(session: Session) -> str:
            session.add(_row(collection, doc_id, data))
            return doc_id

        return await self._run(_create)

    async def get(self, collection: str, doc_id: str) -> dict[str, Any] | None:
        def _get(session: Session) -> dict[str, Any] | None:
            row = session.get(DocumentModel, (collection, doc_id))
            return dict(row.data) if row else None

        return await self._run(_get)

    async def set(self, collection: str, doc_id: str, data: dict[str, Any]) -> None:
        def _set(session: Session) -> None:
            row = session.get(DocumentModel, (collection, doc_id))
            if row is None:
                session.add(_row(collection, doc_id, data))
            else:
                row.data = {**data, "id": doc_id}

        await self._run(_set)

    async def update(self, collection: str, doc_id: str, fields: dict[str, Any]) -> None:
        def _update(session: Session) -> None:
            row = session.get(DocumentModel, (collection, doc_id), with_for_update=True)
            if row is None:
                raise DocumentNotFoundError(collection, doc_id)
            # Reassign so SQLAlchemy sees the JSONB change
            row.data = {**row.data, **fields}

        await self._run(_update)

    async def delete(self, collection: str, doc_id: str) -> bool:
        def _delete(session: Session) -> bool:
            row = session.get(DocumentModel, (collection, doc_id))
            if row is None:
                return False
            session.delete(row)
            return True

        return await self._run(_delete)

    async def query(
        self,
        collection: str,
        filters: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
    ) -> list[dict[str, Any]]:
        stmt = select(DocumentModel).where(DocumentModel.collection == collection)
        for key, value in (filters or {}).items():
            # JSONB renders booleans as true/false
            expected = json.dumps(value) if isinstance(value, bool) else str(value)
            stmt = stmt.where(DocumentModel.data[key].astext == expected)
        if order_by:
            column = DocumentModel.data[order_by].astext
            stmt = stmt.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            stmt = stmt.limit(limit)

        def _query(session: Session) -> list[dict[str, Any]]:
            return [dict(row.data) for row in session.scalars(stmt)]

        return await self._run(_query)

    async def health_check(self) -> bool:
        def _ping(session: Session) -> bool:
            session.execute(text("SELECT 1"))
            return True

        try:
            return await self._run(_ping)
        except Exception as e:
            logger.error("docstore_health_check_failed", error=str(e))
            return False
