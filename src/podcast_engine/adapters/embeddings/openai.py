"""OpenAI embedding provider."""

import httpx

from podcast_engine.adapters.embeddings.base import EmbeddingProvider
from podcast_engine.config import settings
from podcast_engine.logging import get_logger

logger = get_logger(__name__)


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Text embeddings from the OpenAI API."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str = "text-embedding-3-small",
        base_url: str = "https://api.openai.com/v1",
    ) -> None:
        self.api_key = api_key or settings.openai_api_key
        self.model = model
        self.base_url = base_url

        if not self.api_key:
            logger.warning("OpenAI API key not configured for embeddings")

    @property
    def name(self) -> str:
        return f"openai:{self.model}"

    async def embed(self, texts: list[str]) -> list[list[float]]:
        """Embed texts using the OpenAI embeddings endpoint."""
        if not self.api_key:
            raise ValueError("OpenAI API key not configured")

        async with httpx.AsyncClient(timeout=120.0) as client:
            response = await client.post(
                f"{self.base_url}/embeddings",
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={"model": self.model, "input": texts},
            )
            response.raise_for_status()
            data = response.json()

        rows = sorted(data.get("data", []), key=lambda row: row.get("index", 0))
        logger.debug("openai_embeddings", model=self.model, count=len(rows))
        return [row["embedding"] for row in rows]
