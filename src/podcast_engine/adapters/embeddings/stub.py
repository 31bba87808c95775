"""Stub embedding provider for testing."""

import hashlib

from podcast_engine.adapters.embeddings.base import EmbeddingProvider

_DIMENSIONS = 16


class StubEmbeddingProvider(EmbeddingProvider):
    """Deterministic bag-of-words vectors; texts sharing words land close together."""

    @property
    def name(self) -> str:
        return "stub"

    async def embed(self, texts: list[str]) -> list[list[float]]:
        vectors = []
        for text in texts:
            vector = [0.0] * _DIMENSIONS
            for word in text.lower().split():
                digest = hashlib.md5(word.encode()).digest()
                vector[digest[0] % _DIMENSIONS] += 1.0
            vectors.append(vector)
        return vectors
