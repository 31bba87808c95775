"""Document store adapters."""

from podcast_engine.adapters.docstore.base import (
    EPISODES,
    GENERATION_LOGS,
    PODCASTS,
    DocumentStore,
)
from podcast_engine.adapters.docstore.memory import InMemoryDocumentStore
from podcast_engine.adapters.docstore.postgres import PostgresDocumentStore

__all__ = [
    "EPISODES",
    "GENERATION_LOGS",
    "PODCASTS",
    "DocumentStore",
    "InMemoryDocumentStore",
    "PostgresDocumentStore",
]
