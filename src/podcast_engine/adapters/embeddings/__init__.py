"""Text embedding provider adapters."""

from podcast_engine.adapters.embeddings.base import EmbeddingProvider
from podcast_engine.adapters.embeddings.gemini import GeminiEmbeddingProvider
from podcast_engine.adapters.embeddings.openai import OpenAIEmbeddingProvider
from podcast_engine.adapters.embeddings.stub import StubEmbeddingProvider

__all__ = [
    "EmbeddingProvider",
    "GeminiEmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "StubEmbeddingProvider",
]
