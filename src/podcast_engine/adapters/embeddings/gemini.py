"""Gemini embedding provider."""

import asyncio

from google import genai
from google.genai import types

from podcast_engine.adapters.embeddings.base import EmbeddingProvider
from podcast_engine.config import settings
from podcast_engine.logging import get_logger

logger = get_logger(__name__)


class GeminiEmbeddingProvider(EmbeddingProvider):
    """Text embeddings from the Gemini API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.embedding_model
        self._client: genai.Client | None = None

        if not self.api_key:
            logger.warning("Google API key not configured for Gemini embeddings")

    @property
    def client(self) -> genai.Client:
        """Get or create the Gemini client."""
        if self._client is None:
            if not self.api_key:
                raise ValueError("Google API key not configured")
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    @property
    def name(self) -> str:
        return f"gemini:{self.model}"

    @property
    def max_batch_size(self) -> int:
        return 100

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed texts for clustering."""
        if not self.api_key:
            raise ValueError("Google API key not configured")

        config = types.EmbedContentConfig(task_type="CLUSTERING")
        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: self.client.models.embed_content(
                model=self.model,
                contents=texts,  # type: ignore[arg-type]
                config=config,
            ),
        )

        vectors = [list(e.values or []) for e in response.embeddings or []]
        logger.debug("gemini_embeddings", model=self.model, count=len(vectors))
        return vectors
