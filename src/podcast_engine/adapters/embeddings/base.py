"""Base interface for text embedding providers."""

from abc import ABC, abstractmethod


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers.

    Implementations:
    - GeminiEmbeddingProvider: Gemini text embeddings via google-genai
    - OpenAIEmbeddingProvider: OpenAI embeddings API
    - StubEmbeddingProvider: Deterministic vectors for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @property
    def max_batch_size(self) -> int:
        """Largest number of texts accepted in one request."""
        return 250

    @abstractmethod
    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed a batch of texts.

        Args:
            texts: Texts to embed, at most ``max_batch_size``

        Returns:
            One vector per input text, in input order
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available."""
        return True
