"""Database layer."""

from podcast_engine.db.models import Base, DocumentModel
from podcast_engine.db.session import get_engine, session_scope

__all__ = [
    "Base",
    "DocumentModel",
    "get_engine",
    "session_scope",
]
