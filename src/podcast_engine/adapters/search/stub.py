"""Stub search provider for testing."""

import json
import re

from podcast_engine.adapters.search.base import SearchProvider, SearchResult
from podcast_engine.logging import get_logger

logger = get_logger(__name__)

STUB_TOPICS = [
    {
        "topic": "AI Regulation in Europe",
        "description": "The EU finalises enforcement rules for general-purpose AI models.",
        "relevance": 9,
        "recency": "breaking",
        "sources": ["https://example.com/eu-ai-act", "https://example.com/brussels"],
        "keyQuestions": ["Who must comply first?", "What are the penalties?"],
        "reasoning": "Major policy milestone.",
    },
    {
        "topic": "Chip Export Controls Tighten",
        "description": "New restrictions on advanced semiconductor exports.",
        "relevance": 8,
        "recency": "developing",
        "sources": ["https://example.com/chips"],
        "keyQuestions": ["Which manufacturers are affected?"],
        "reasoning": "Supply chain impact.",
    },
    {
        "topic": "Battery Recycling Breakthrough",
        "description": "A new process recovers lithium at a fraction of the cost.",
        "relevance": 6,
        "recency": "emerging",
        "sources": ["https://example.com/batteries"],
        "keyQuestions": [],
        "reasoning": "Climate and industry angle.",
    },
]


class StubSearchProvider(SearchProvider):
    """Stub provider that returns canned search results without external calls."""

    def __init__(self, name: str = "stub") -> None:
        self._name = name

    @property
    def name(self) -> str:
        return self._name

    async def search(self, query: str) -> SearchResult:
        """Return topic JSON for topic requests and prose for research queries."""
        logger.info("stub_search", provider=self._name, query=query[:100])

        if '"topics"' in query:
            return SearchResult(
                content=json.dumps({"topics": STUB_TOPICS}),
                source_urls=[u for t in STUB_TOPICS for u in t["sources"]],
                provider=self._name,
            )

        slug = re.sub(r"[^a-z0-9]+", "-", query.lower()).strip("-")[:40] or "result"
        return SearchResult(
            content=(
                f"Reporting on {query[:80]} shows steady developments. Analysts point to "
                "new data released this month and disagreement about long-term effects."
            ),
            source_urls=[f"https://example.com/{slug}"],
            provider=self._name,
        )
