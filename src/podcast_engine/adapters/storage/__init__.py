"""Blob storage adapters."""

from podcast_engine.adapters.storage.base import BlobStorage
from podcast_engine.adapters.storage.local import LocalBlobStorage
from podcast_engine.adapters.storage.memory import InMemoryBlobStorage

__all__ = ["BlobStorage", "InMemoryBlobStorage", "LocalBlobStorage"]
