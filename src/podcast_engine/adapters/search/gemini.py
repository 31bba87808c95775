"""Gemini search provider using Google Search grounding."""

import asyncio

from google import genai
from google.genai import types

from podcast_engine.adapters.search.base import SearchProvider, SearchResult
from podcast_engine.config import settings
from podcast_engine.logging import get_logger

logger = get_logger(__name__)


class GeminiSearchProvider(SearchProvider):
    """Grounded search through the Gemini google_search tool."""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
    ) -> None:
        self.api_key = api_key or settings.google_api_key
        self.model = model or settings.fast_model
        self._client: genai.Client | None = None

        if not self.api_key:
            logger.warning("Google API key not configured for Gemini search")

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
        return "gemini"

    async def search(self, query: str) -> SearchResult:
        """Answer the query with Google Search grounding enabled."""
        if not self.api_key:
            raise ValueError("Google API key not configured")

        config = types.GenerateContentConfig(
            tools=[types.Tool(google_search=types.GoogleSearch())],
            temperature=0.3,
        )

        logger.debug("gemini_search_request", model=self.model, query=query[:100])

        loop = asyncio.get_running_loop()
        response = await loop.run_in_executor(
            None,
            lambda: self.client.models.generate_content(
                model=self.model,
                contents=query,
                config=config,
            ),
        )

        urls: list[str] = []
        for candidate in response.candidates or []:
            metadata = getattr(candidate, "grounding_metadata", None)
            for chunk in getattr(metadata, "grounding_chunks", None) or []:
                web = getattr(chunk, "web", None)
                uri = getattr(web, "uri", None)
                if uri and uri not in urls:
                    urls.append(uri)

        logger.info("gemini_search_response", model=self.model, source_count=len(urls))

        return SearchResult(content=response.text or "", source_urls=urls, provider=self.name)
