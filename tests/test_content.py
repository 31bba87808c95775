"""Tests for the episode script writer."""

import json
from dataclasses import replace

import pytest

from podcast_engine.adapters.llm import StubLLMProvider
from podcast_engine.domain.enums import PodcastType
from podcast_engine.domain.errors import ContentValidationError, ProviderParseError
from podcast_engine.domain.models import DeepDiveResult, EpisodeAnalysis
from podcast_engine.services.content import ContentWriter, extract_bullets, normalize_script

RESEARCH = DeepDiveResult(
    researched_topics=[],
    topic_distribution=[],
    all_sources=["https://example.com/a"],
    narrative="Chip export rules tightened again this week, according to Reuters.",
)


class RecordingLLM(StubLLMProvider):
    """Stub that remembers every prompt it was sent."""

    def __init__(self) -> None:
        super().__init__()
        self.prompts: list[str] = []

    async def complete(self, messages, **kwargs):
        self.prompts.append("\n".join(m.content for m in messages))
        return await super().complete(messages, **kwargs)


class TerseLLM(StubLLMProvider):
    def _draft(self, prompt: str) -> str:
        return json.dumps(
            {"title": "Short", "description": "Too short", "content": "Just a few words."}
        )


class EmptyDraftLLM(StubLLMProvider):
    def _draft(self, prompt: str) -> str:
        return json.dumps({"title": "Nothing", "description": "", "content": ""})


class EscapedDraftLLM(StubLLMProvider):
    def _draft(self, prompt: str) -> str:
        body = " ".join(["Word"] * 80)
        return json.dumps(
            {
                "title": "T" * 150,
                "description": "D" * 200,
                "content": f"{body}\\n\\nShe said \\\"enough\\\".",
            }
        )


class DashBulletLLM(StubLLMProvider):
    def _bullet_points(self, prompt: str) -> str:
        return (
            "Here is the summary:\n"
            "- Export controls on advanced chips were expanded.\n"
            "- Regulators opened a consultation on AI safety.\n"
            "* Battery recycling reached commercial scale.\n"
            "- Short one"
        )


class ProseBulletLLM(StubLLMProvider):
    def _bullet_points(self, prompt: str) -> str:
        return "The episode covered several interesting things."


class TestContentWriter:
    """Tests for ContentWriter.draft."""

    @pytest.mark.asyncio
    async def test_draft_matches_target(self, llm, podcast):
        draft = await ContentWriter(llm, llm).draft(podcast, RESEARCH, target_words=400)

        assert draft.title == "This Week in Review"
        assert draft.description
        assert draft.word_count == 400

    @pytest.mark.asyncio
    async def test_prompt_mentions_covered_topics(self, podcast):
        llm = RecordingLLM()
        analysis = EpisodeAnalysis(recent_topics=[{"topic": "Quantum Computing", "frequency": 2}])

        await ContentWriter(llm, llm).draft(podcast, RESEARCH, 300, analysis)

        prompt = llm.prompts[0]
        assert "Recently covered (do not repeat):\n- Quantum Computing" in prompt
        assert "approximately 300 words" in prompt
        assert "professional news broadcaster" in prompt

    @pytest.mark.asyncio
    async def test_narrative_podcast_uses_storyteller_voice(self, podcast):
        llm = RecordingLLM()
        podcast = replace(podcast, podcast_type=PodcastType.NARRATIVE)

        await ContentWriter(llm, llm).draft(podcast, RESEARCH, 300)

        assert "storyteller" in llm.prompts[0]

    @pytest.mark.asyncio
    async def test_short_draft_rejected(self, podcast):
        llm = TerseLLM()

        with pytest.raises(ContentValidationError, match="too short"):
            await ContentWriter(llm, llm).draft(podcast, RESEARCH, 300)

    @pytest.mark.asyncio
    async def test_empty_content_rejected(self, podcast):
        llm = EmptyDraftLLM()

        with pytest.raises(ProviderParseError):
            await ContentWriter(llm, llm).draft(podcast, RESEARCH, 300)

    @pytest.mark.asyncio
    async def test_draft_fields_normalized(self, podcast):
        llm = EscapedDraftLLM()

        draft = await ContentWriter(llm, llm).draft(podcast, RESEARCH, 300)

        assert len(draft.title) == 100
        assert len(draft.description) == 150
        assert draft.content.endswith('\n\nShe said "enough".')


class TestBulletPoints:
    """Tests for ContentWriter.bullet_points."""

    @pytest.mark.asyncio
    async def test_json_array(self, llm):
        bullets = await ContentWriter(llm, llm).bullet_points("Title", "Some content.")

        assert len(bullets) == 3
        assert all(isinstance(b, str) and b for b in bullets)

    @pytest.mark.asyncio
    async def test_dash_lines_extracted(self):
        llm = DashBulletLLM()

        bullets = await ContentWriter(llm, llm).bullet_points("Title", "Some content.")

        assert bullets == [
            "Export controls on advanced chips were expanded.",
            "Regulators opened a consultation on AI safety.",
            "Battery recycling reached commercial scale.",
        ]

    @pytest.mark.asyncio
    async def test_generic_fallback(self):
        llm = ProseBulletLLM()

        bullets = await ContentWriter(llm, llm).bullet_points("Chip Wars", "Some content.")

        assert bullets[0] == 'Summary of "Chip Wars"'
        assert len(bullets) == 3


class TestScriptHelpers:
    """Tests for script text helpers."""

    def test_normalize_script(self):
        assert normalize_script('  Line one.\\nHe said \\"hi\\".  ') == 'Line one.\nHe said "hi".'

    def test_extract_bullets_caps_at_five(self):
        text = "\n".join(f"- Substantive bullet number {i}" for i in range(8))

        assert len(extract_bullets(text)) == 5
