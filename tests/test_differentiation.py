"""Tests for the differentiation validator."""

import json

import pytest

from podcast_engine.adapters.llm import StubLLMProvider
from podcast_engine.domain.models import EpisodeAnalysis, EpisodeDraft
from podcast_engine.services.differentiation import DifferentiationValidator

DRAFT = EpisodeDraft(
    title="Chips",
    description="Export rules",
    content=" ".join(["Export controls on chips keep tightening."] * 20),
)

HISTORY = EpisodeAnalysis(
    recent_topics=[{"topic": "Chip export controls", "frequency": 3}],
    recurrent_themes=["trade policy"],
    episode_count=4,
)


class SimilarLLM(StubLLMProvider):
    """Reports a near-repeat and rewrites on request."""

    def _differentiation(self, prompt: str) -> str:
        return json.dumps(
            {
                "similarityScore": 82,
                "uniqueElements": [],
                "redundantElements": ["Same export-control framing"],
                "overallAssessment": "Largely a repeat.",
                "improvementSuggestions": ["Focus on supplier countries"],
            }
        )

    def _rewrite(self, prompt: str) -> str:
        return "A fresh look at how supplier countries respond to the rules."


class BrokenRewriteLLM(SimilarLLM):
    def _rewrite(self, prompt: str) -> str:
        raise RuntimeError("rewrite timed out")


class GarbageLLM(StubLLMProvider):
    def _differentiation(self, prompt: str) -> str:
        return "I could not compare these."


class TestDifferentiationValidator:
    """Tests for DifferentiationValidator."""

    @pytest.mark.asyncio
    async def test_first_episode_passes_with_zero(self, llm):
        result = await DifferentiationValidator(llm).validate(DRAFT, EpisodeAnalysis())

        assert result.is_passing
        assert result.similarity_score == 0
        assert result.improved_content is None

    @pytest.mark.asyncio
    async def test_low_similarity_passes(self, llm):
        result = await DifferentiationValidator(llm).validate(DRAFT, HISTORY)

        assert result.is_passing
        assert result.similarity_score == 20
        assert result.improved_content is None

    @pytest.mark.asyncio
    async def test_high_similarity_triggers_rewrite(self):
        result = await DifferentiationValidator(SimilarLLM()).validate(DRAFT, HISTORY)

        assert not result.is_passing
        assert result.similarity_score == 82
        assert result.redundant_elements == ["Same export-control framing"]
        assert result.improved_content.startswith("A fresh look")
        assert result.to_log()["rewritten"] is True

    @pytest.mark.asyncio
    async def test_threshold_is_exclusive(self):
        """A score equal to the threshold fails."""
        result = await DifferentiationValidator(SimilarLLM(), threshold=82).validate(
            DRAFT, HISTORY
        )

        assert not result.is_passing

    @pytest.mark.asyncio
    async def test_failed_rewrite_keeps_original(self):
        result = await DifferentiationValidator(BrokenRewriteLLM()).validate(DRAFT, HISTORY)

        assert not result.is_passing
        assert result.improved_content == DRAFT.content

    @pytest.mark.asyncio
    async def test_unparseable_score_passes_with_fallback(self):
        result = await DifferentiationValidator(GarbageLLM()).validate(DRAFT, HISTORY)

        assert result.is_passing
        assert result.similarity_score == 30
