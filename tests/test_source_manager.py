"""Tests for curated sources and source-guided search."""

from dataclasses import replace
from datetime import UTC, datetime

import pytest

from podcast_engine.adapters.llm import LLMMessage, LLMResponse, StubLLMProvider
from podcast_engine.adapters.search import SearchProvider, SearchResult, StubSearchProvider
from podcast_engine.domain.models import PodcastSource
from podcast_engine.services.source_manager import (
    SourceManager,
    build_guided_queries,
    parse_source,
)

NOW = datetime(2026, 3, 15, tzinfo=UTC)


def _source(url, category="News", topics=("chips",), quality=8, perspective=None):
    return PodcastSource(
        url=url,
        name=url.split("//")[1],
        category=category,
        topic_relevance=list(topics),
        quality_score=quality,
        perspective=perspective,
    )


class GarbageLLM(StubLLMProvider):
    """Answers everything with prose."""

    async def complete(self, messages: list[LLMMessage], **kwargs) -> LLMResponse:
        return LLMResponse(content="Sorry, I cannot help with that.", model="stub")


class ReplacingLLM(StubLLMProvider):
    """Drops every source but the first and proposes one new source."""

    def _source_refresh(self, prompt: str) -> str:
        return (
            '{"sourcesToKeep": ["https://www.reuters.com"], '
            '"sourcesToRemove": ["https://blog.example.org"], '
            '"newSources": [{"url": "https://www.ft.com", "name": "Financial Times", '
            '"category": "News", "topicRelevance": ["chips"], "qualityScore": 14}]}'
        )


class FlakySearchProvider(SearchProvider):
    """Fails queries against one site."""

    @property
    def name(self) -> str:
        return "flaky"

    async def search(self, query: str) -> SearchResult:
        if "site:blog.example.org" in query:
            raise RuntimeError("rate limited")
        return SearchResult(
            content=f"Results for {query}",
            source_urls=["https://shared.example.com/story", f"https://x.example.com/{len(query)}"],
            provider=self.name,
        )

    async def health_check(self) -> bool:
        return True


class TestParseSource:
    """Tests for parse_source."""

    def test_valid_source(self):
        source = parse_source(
            {
                "url": "https://www.reuters.com",
                "name": "Reuters",
                "category": "News",
                "topicRelevance": ["policy"],
                "qualityScore": 9,
                "perspective": "neutral",
            }
        )

        assert source is not None
        assert source.quality_score == 9
        assert source.perspective == "neutral"

    @pytest.mark.parametrize(("raw", "expected"), [(42, 10), (0, 1), (-3, 1), (7.6, 7)])
    def test_quality_clamped(self, raw, expected):
        source = parse_source(
            {
                "url": "https://a.example.com",
                "name": "A",
                "category": "News",
                "topicRelevance": [],
                "qualityScore": raw,
            }
        )

        assert source.quality_score == expected

    @pytest.mark.parametrize(
        "override",
        [
            {"url": "ftp://a.example.com"},
            {"name": ""},
            {"topicRelevance": "chips"},
            {"qualityScore": "9"},
            {"qualityScore": True},
        ],
    )
    def test_invalid_source_rejected(self, override):
        data = {
            "url": "https://a.example.com",
            "name": "A",
            "category": "News",
            "topicRelevance": [],
            "qualityScore": 5,
        }

        assert parse_source({**data, **override}) is None

    def test_non_dict_rejected(self):
        assert parse_source("https://a.example.com") is None


class TestBuildGuidedQueries:
    """Tests for build_guided_queries."""

    def test_relevant_sources_queried_by_host(self, podcast):
        podcast = replace(podcast, sources=[_source("https://www.reuters.com/tech")])

        queries = build_guided_queries(podcast, ["chips"], now=NOW)

        assert "site:www.reuters.com chips March 2026" in queries

    def test_top_three_relevant_sources_only(self, podcast):
        sources = [
            _source(f"https://s{i}.example.com", quality=q) for i, q in enumerate([5, 9, 6, 8])
        ]
        podcast = replace(podcast, sources=sources)

        queries = build_guided_queries(podcast, ["chips"], now=NOW)

        topic_queries = [q for q in queries if q.endswith("chips March 2026")]
        assert topic_queries == [
            "site:s1.example.com chips March 2026",
            "site:s3.example.com chips March 2026",
            "site:s2.example.com chips March 2026",
        ]

    def test_perspective_queries_when_sources_disagree(self, podcast):
        sources = [
            _source("https://left.example.com", topics=(), quality=7, perspective="left"),
            _source("https://right.example.com", topics=(), quality=6, perspective="right"),
            _source("https://weak.example.com", topics=(), quality=3, perspective="center"),
        ]
        podcast = replace(podcast, sources=sources)

        queries = build_guided_queries(podcast, ["energy"], now=NOW)

        assert "site:left.example.com energy March 2026" in queries
        assert "site:right.example.com energy March 2026" in queries
        assert not any(q.startswith("site:weak.example.com energy") for q in queries)

    def test_single_perspective_adds_no_perspective_queries(self, podcast):
        sources = [_source("https://a.example.com", topics=(), quality=5, perspective="neutral")]
        podcast = replace(podcast, sources=sources)

        assert build_guided_queries(podcast, ["energy"], now=NOW) == []

    def test_category_queries_use_theme(self, podcast):
        sources = [
            _source("https://news.example.com", category="News", topics=(), quality=9),
            _source("https://gov.example.com", category="Government", topics=(), quality=6),
        ]
        podcast = replace(podcast, sources=sources)

        queries = build_guided_queries(podcast, [], now=NOW)

        assert queries == [f"site:news.example.com {podcast.theme} March 2026"]

    def test_duplicates_removed(self, podcast):
        sources = [_source("https://www.reuters.com/a"), _source("https://www.reuters.com/b")]
        podcast = replace(podcast, sources=sources)

        queries = build_guided_queries(podcast, ["chips"], now=NOW)

        assert len(queries) == len(set(queries))

    def test_no_sources_no_queries(self, podcast):
        assert build_guided_queries(podcast, ["chips"], now=NOW) == []


class TestSourceManager:
    """Tests for SourceManager."""

    @pytest.mark.asyncio
    async def test_discover_sources(self, llm, search_provider):
        sources = await SourceManager(llm, search_provider).discover_sources("tech policy")

        assert [s.name for s in sources] == ["Reuters", "Ars Technica"]
        assert sources[0].quality_score == 9

    @pytest.mark.asyncio
    async def test_refresh_without_sources_discovers(self, llm, search_provider, podcast):
        refresh = await SourceManager(llm, search_provider).refresh_sources(podcast)

        assert refresh.discovered is True
        assert refresh.changed is True
        assert refresh.added == ["https://www.reuters.com", "https://arstechnica.com"]

    @pytest.mark.asyncio
    async def test_refresh_keeps_sources(self, llm, search_provider, podcast):
        podcast = replace(
            podcast,
            sources=[_source("https://www.reuters.com"), _source("https://blog.example.org")],
        )

        refresh = await SourceManager(llm, search_provider).refresh_sources(podcast)

        assert refresh.changed is False
        assert [s.url for s in refresh.sources] == [
            "https://www.reuters.com",
            "https://blog.example.org",
        ]

    @pytest.mark.asyncio
    async def test_refresh_removes_and_adds(self, search_provider, podcast):
        podcast = replace(
            podcast,
            sources=[_source("https://www.reuters.com"), _source("https://blog.example.org")],
        )

        refresh = await SourceManager(ReplacingLLM(), search_provider).refresh_sources(podcast)

        assert refresh.changed is True
        assert refresh.removed == ["https://blog.example.org"]
        assert refresh.added == ["https://www.ft.com"]
        assert [s.url for s in refresh.sources] == ["https://www.reuters.com", "https://www.ft.com"]
        assert refresh.sources[1].quality_score == 10

    @pytest.mark.asyncio
    async def test_unparseable_refresh_leaves_list_unchanged(self, search_provider, podcast):
        original = [_source("https://www.reuters.com")]
        podcast = replace(podcast, sources=original)

        refresh = await SourceManager(GarbageLLM(), search_provider).refresh_sources(podcast)

        assert refresh.changed is False
        assert refresh.sources == original

    @pytest.mark.asyncio
    async def test_guided_search_combines_results(self, llm, podcast):
        podcast = replace(
            podcast,
            sources=[
                _source("https://www.reuters.com", quality=9),
                _source("https://blog.example.org", quality=5),
            ],
        )

        result = await SourceManager(llm, FlakySearchProvider()).source_guided_search(
            podcast, ["chips"], now=NOW
        )

        assert "site:blog.example.org chips March 2026" in result.queries
        assert "Results for site:www.reuters.com chips March 2026" in result.content
        assert result.sources.count("https://shared.example.com/story") == 1

    @pytest.mark.asyncio
    async def test_guided_search_without_sources(self, llm, podcast):
        result = await SourceManager(llm, StubSearchProvider()).source_guided_search(
            podcast, ["chips"], now=NOW
        )

        assert result.content == ""
        assert result.sources == []
        assert result.queries == []
