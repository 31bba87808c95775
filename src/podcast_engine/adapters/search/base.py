"""Base interface for web search providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field


@dataclass
class SearchResult:
    """Answer text plus the URLs it was grounded on."""

    content: str
    source_urls: list[str] = field(default_factory=list)
    provider: str = ""


class SearchProvider(ABC):
    """Abstract base class for search providers.

    Implementations:
    - GeminiSearchProvider: Gemini with Google Search grounding
    - PerplexitySearchProvider: Perplexity online models
    - StubSearchProvider: Returns canned results for testing
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier, used as the provenance tag on topics."""
        ...

    @abstractmethod
    async def search(self, query: str) -> SearchResult:
        """Run a search query and return the synthesized answer.

        Args:
            query: Natural-language query or instruction

        Returns:
            SearchResult with answer text and source URLs

        Raises:
            httpx.HTTPStatusError or ValueError on provider failure
        """
        ...

    async def health_check(self) -> bool:
        """Check if the provider is available."""
        return True
