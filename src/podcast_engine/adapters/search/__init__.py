"""Web search provider adapters."""

from podcast_engine.adapters.search.base import SearchProvider, SearchResult
from podcast_engine.adapters.search.gemini import GeminiSearchProvider
from podcast_engine.adapters.search.perplexity import PerplexitySearchProvider
from podcast_engine.adapters.search.stub import StubSearchProvider

__all__ = [
    "SearchProvider",
    "SearchResult",
    "GeminiSearchProvider",
    "PerplexitySearchProvider",
    "StubSearchProvider",
]
