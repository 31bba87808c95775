"""Tests for topic search, deduplication and ranking."""

import json
from datetime import datetime

import pytest

from podcast_engine.adapters.llm import StubLLMProvider
from podcast_engine.adapters.search import SearchProvider, SearchResult, StubSearchProvider
from podcast_engine.domain.models import EpisodeAnalysis, TopicCandidate
from podcast_engine.services.topic_search import (
    TopicSearchService,
    dedupe_candidates,
    exclude_covered,
    fallback_queries,
    parse_candidates,
    rank_candidates,
    score_candidate,
)


class FailingSearchProvider(SearchProvider):
    """Provider whose every call raises."""

    @property
    def name(self) -> str:
        return "failing"

    async def search(self, query: str) -> SearchResult:
        raise RuntimeError("provider down")


class ProseSearchProvider(SearchProvider):
    """Provider that never returns topic JSON."""

    @property
    def name(self) -> str:
        return "prose"

    async def search(self, query: str) -> SearchResult:
        return SearchResult(
            content="Plain reporting on this week's events, with no structured data.",
            source_urls=["https://example.com/prose"],
            provider=self.name,
        )


class TestDedupeCandidates:
    """Tests for dedupe_candidates."""

    def test_substring_titles_keep_first(self):
        """'AI Regulation in Europe' and 'ai regulation' collapse to the first."""
        first = TopicCandidate(topic="AI Regulation in Europe", provider="gemini")
        second = TopicCandidate(topic="ai regulation", provider="perplexity")

        result = dedupe_candidates([first, second])

        assert result == [first]

    def test_shorter_first_also_wins(self):
        first = TopicCandidate(topic="  AI Regulation ")
        second = TopicCandidate(topic="AI regulation in Europe")

        assert dedupe_candidates([first, second]) == [first]

    def test_idempotent(self):
        candidates = [
            TopicCandidate(topic="Chip export rules"),
            TopicCandidate(topic="chip export"),
            TopicCandidate(topic="Battery recycling"),
            TopicCandidate(topic=""),
        ]
        once = dedupe_candidates(candidates)

        assert dedupe_candidates(once) == once
        assert [c.topic for c in once] == ["Chip export rules", "Battery recycling"]


class TestScoring:
    """Tests for score_candidate and rank_candidates."""

    def test_score_formula(self):
        candidate = TopicCandidate(
            topic="T",
            relevance=9,
            recency="breaking",
            sources=["a", "b"],
            provider="perplexity",
            key_questions=["q1", "q2"],
        )
        # 90 + 30 + 10 + 5 + 6
        assert score_candidate(candidate) == 141

    def test_relevance_clamped_and_defaulted(self):
        assert score_candidate(TopicCandidate(topic="T", relevance=50)) == 100 + 5
        assert score_candidate(TopicCandidate(topic="T", relevance=-4)) == 10 + 5
        assert score_candidate(TopicCandidate(topic="T")) == 10 + 5

    def test_unknown_recency_gets_default_bonus(self):
        assert score_candidate(TopicCandidate(topic="T", relevance=1, recency="weekly")) == 15

    def test_rank_sorts_and_truncates(self):
        candidates = [TopicCandidate(topic=f"T{i}", relevance=i) for i in range(1, 11)]

        ranked = rank_candidates(candidates, limit=3)

        assert [c.topic for c in ranked] == ["T10", "T9", "T8"]
        assert all(c.score is not None for c in ranked)


class TestExcludeCovered:
    """Tests for exclude_covered."""

    def test_drops_overlapping_titles(self):
        analysis = EpisodeAnalysis(
            recent_topics=[{"topic": "Chip Export Controls", "frequency": 2}], episode_count=3
        )
        candidates = [
            TopicCandidate(topic="Chip export controls tighten"),
            TopicCandidate(topic="Battery recycling"),
        ]

        assert [c.topic for c in exclude_covered(candidates, analysis)] == ["Battery recycling"]


class TestParseCandidates:
    """Tests for parse_candidates."""

    def test_parses_object_and_uses_fallback_sources(self):
        payload = {
            "topics": [
                {"topic": "A", "relevance": "7", "keyQuestions": ["Why?"]},
                {"description": "missing title"},
                "not a dict",
            ]
        }

        result = parse_candidates(payload, "gemini", ["https://grounding.example"])

        assert len(result) == 1
        assert result[0].relevance == 7.0
        assert result[0].sources == ["https://grounding.example"]
        assert result[0].provider == "gemini"
        assert result[0].key_questions == ["Why?"]

    def test_non_list_payload(self):
        assert parse_candidates({"topics": "none"}, "x") == []


class TestFallbackQueries:
    def test_date_stamped(self):
        from podcast_engine.domain.models import Podcast

        podcast = Podcast(id="p", title="Garden Hour")
        queries = fallback_queries(podcast, now=datetime(2026, 3, 5))

        assert queries[0] == "latest news about Garden Hour March 2026"
        assert len(queries) == 5


class CoveredOnlySearchProvider(StubSearchProvider):
    """Provider whose topic answer is a single story the podcast already covered."""

    async def search(self, query: str) -> SearchResult:
        if '"topics"' in query:
            topic = {
                "topic": "AI Regulation in Europe",
                "description": "Enforcement rules arrive.",
                "relevance": 9,
                "recency": "breaking",
                "sources": ["https://example.com/ai-act"],
            }
            return SearchResult(
                content=json.dumps({"topics": [topic]}),
                source_urls=topic["sources"],
                provider=self.name,
            )
        return await super().search(query)


class CoveredFallbackLLM(StubLLMProvider):
    def _identified_topics(self, _prompt: str) -> str:
        return json.dumps(
            {"topics": [{"topic": "AI Regulation Enforcement", "relevance": 9}]}
        )


class TestTopicSearchService:
    """Tests for TopicSearchService."""

    @pytest.mark.asyncio
    async def test_merges_providers_and_dedupes(self, podcast, llm):
        """Two providers returning the same stories produce one candidate each."""
        service = TopicSearchService(
            [StubSearchProvider("gemini"), StubSearchProvider("perplexity")], llm
        )

        result = await service.search(podcast, EpisodeAnalysis())

        assert [c.topic for c in result] == [
            "AI Regulation in Europe",
            "Chip Export Controls Tighten",
            "Battery Recycling Breakthrough",
        ]
        # First provider in the list wins dedup precedence
        assert all(c.provider == "gemini" for c in result)

    @pytest.mark.asyncio
    async def test_failing_provider_is_isolated(self, podcast, llm):
        service = TopicSearchService([FailingSearchProvider(), StubSearchProvider()], llm)

        result = await service.search(podcast, EpisodeAnalysis())

        assert len(result) == 3
        assert {c.provider for c in result} == {"stub"}

    @pytest.mark.asyncio
    async def test_covered_topics_excluded(self, podcast, llm):
        analysis = EpisodeAnalysis(
            recent_topics=[{"topic": "AI Regulation", "frequency": 1}], episode_count=1
        )
        service = TopicSearchService([StubSearchProvider()], llm)

        result = await service.search(podcast, analysis)

        assert "AI Regulation in Europe" not in [c.topic for c in result]

    @pytest.mark.asyncio
    async def test_fallback_when_all_providers_empty(self, podcast, llm):
        """Without provider topics, fallback queries plus the LLM still yield candidates."""
        service = TopicSearchService([ProseSearchProvider()], llm)

        result = await service.search(podcast, EpisodeAnalysis())

        assert [c.topic for c in result] == ["Open Source AI Models Gain Ground"]
        assert result[0].provider == "prose-fallback"

    @pytest.mark.asyncio
    async def test_nothing_found_returns_empty(self, podcast, llm):
        service = TopicSearchService([FailingSearchProvider()], llm)

        assert await service.search(podcast, EpisodeAnalysis()) == []

    @pytest.mark.asyncio
    async def test_all_covered_tries_fallback(self, podcast, llm):
        """When every provider topic was covered recently, fallback topics replace them."""
        analysis = EpisodeAnalysis(
            recent_topics=[{"topic": "AI Regulation", "frequency": 1}], episode_count=1
        )
        service = TopicSearchService([CoveredOnlySearchProvider()], llm)

        result = await service.search(podcast, analysis)

        assert [c.topic for c in result] == ["Open Source AI Models Gain Ground"]
        assert result[0].provider == "stub-fallback"

    @pytest.mark.asyncio
    async def test_covered_topics_never_readmitted(self, podcast):
        analysis = EpisodeAnalysis(
            recent_topics=[{"topic": "AI Regulation", "frequency": 1}], episode_count=1
        )
        service = TopicSearchService([CoveredOnlySearchProvider()], CoveredFallbackLLM())

        assert await service.search(podcast, analysis) == []
