"""Perplexity search provider implementation."""

import httpx

from podcast_engine.adapters.search.base import SearchProvider, SearchResult
from podcast_engine.config import settings
from podcast_engine.logging import get_logger

logger = get_logger(__name__)


class PerplexitySearchProvider(SearchProvider):
    """Perplexity online model used as a web search backend."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str = "https://api.perplexity.ai",
    ) -> None:
        self.api_key = api_key or settings.perplexity_api_key
        self.model = model or settings.perplexity_model
        self.base_url = base_url

        if not self.api_key:
            logger.warning("Perplexity API key not configured")

    @property
    def name(self) -> str:
        return "perplexity"

    async def search(self, query: str) -> SearchResult:
        """Answer the query using Perplexity chat completions."""
        if not self.api_key:
            raise ValueError("Perplexity API key not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = {
            "model": self.model,
            "messages": [
                {
                    "role": "system",
                    "content": "You are a research assistant. Be precise and cite sources.",
                },
                {"role": "user", "content": query},
            ],
            "temperature": 0.2,
        }

        logger.debug("perplexity_request", model=self.model, query=query[:100])

        async with httpx.AsyncClient(timeout=120.0) as client:
            response = await client.post(
                f"{self.base_url}/chat/completions",
                headers=headers,
                json=payload,
            )
            response.raise_for_status()
            data = response.json()

        content = data["choices"][0]["message"]["content"] or ""
        citations = [c for c in data.get("citations") or [] if isinstance(c, str)]

        logger.info(
            "perplexity_response",
            model=self.model,
            source_count=len(citations),
            tokens_used=data.get("usage", {}).get("total_tokens", 0),
        )

        return SearchResult(content=content, source_urls=citations, provider=self.name)

    async def health_check(self) -> bool:
        """Perplexity has no health endpoint; report whether a key is configured."""
        return bool(self.api_key)
