"""Stub LLM provider for testing."""

import json
import re
from collections.abc import Callable

from podcast_engine.adapters.llm.base import LLMMessage, LLMProvider, LLMResponse
from podcast_engine.logging import get_logger

logger = get_logger(__name__)

_FILLER = (
    "Researchers and policymakers continue to examine how this development affects "
    "markets, communities and everyday listeners, weighing new evidence against earlier "
    "expectations while experts outline what could change in the coming months."
).split()


def filler_text(word_count: int, subject: str = "the story") -> str:
    """Deterministic prose of exactly ``word_count`` words."""
    words = f"This segment looks at {subject}.".split()
    while len(words) < word_count:
        words.extend(_FILLER)
    return " ".join(words[:word_count])


def _target_words(prompt: str, default: int = 300) -> int:
    match = re.search(r"approximately (\d+) words", prompt)
    return int(match.group(1)) if match else default


def _listed_topics(prompt: str) -> list[str]:
    return re.findall(r"^TOPIC: (.+)$", prompt, flags=re.MULTILINE)


class StubLLMProvider(LLMProvider):
    """Stub provider that returns canned responses for testing.

    Responses are chosen by the instruction phrase found in the prompt, so every
    pipeline stage receives a well-formed payload without network access.
    """

    def __init__(self) -> None:
        self._routes: list[tuple[str, Callable[[str], str]]] = [
            ("Analyze these recent podcast episodes", self._episode_analysis),
            ("Identify distinct newsworthy topics", self._identified_topics),
            ("Consolidate these related topic candidates", self._cluster_summary),
            ("for deep research", self._prioritized_topics),
            ("Extract the key insights", self._insights),
            ("Synthesize the research on", self._synthesis),
            ("Write an integrated research narrative", self._narrative),
            ("Write the episode script", self._draft),
            ("Compare the new episode draft", self._differentiation),
            ("Rewrite the episode script", self._rewrite),
            ("Create bullet points", self._bullet_points),
            ("Recommend authoritative sources", self._sources),
            ("Review the current source list", self._source_refresh),
        ]

    @property
    def name(self) -> str:
        return "stub"

    async def complete(
        self,
        messages: list[LLMMessage],
        temperature: float = 0.7,  # noqa: ARG002
        max_tokens: int = 4096,  # noqa: ARG002
        json_mode: bool = False,
    ) -> LLMResponse:
        """Return a canned completion for the recognised instruction."""
        prompt = "\n".join(m.content for m in messages)

        logger.info(
            "stub_llm_complete",
            message_count=len(messages),
            json_mode=json_mode,
        )

        for phrase, builder in self._routes:
            if phrase in prompt:
                content = builder(prompt)
                break
        else:
            user_message = next((m.content for m in reversed(messages) if m.role == "user"), "")
            content = f"This is a stub response for: {user_message[:100]}"

        return LLMResponse(
            content=content,
            model="stub-model",
            usage={
                "prompt_tokens": len(prompt.split()),
                "completion_tokens": len(content.split()),
                "total_tokens": len(prompt.split()) + len(content.split()),
            },
            finish_reason="stop",
        )

    def _episode_analysis(self, prompt: str) -> str:
        titles = re.findall(r"^Title: (.+)$", prompt, flags=re.MULTILINE)
        return json.dumps(
            {
                "topics": [{"topic": t, "frequency": 1} for t in titles],
                "themes": ["technology policy"] if titles else [],
            }
        )

    def _identified_topics(self, _prompt: str) -> str:
        return json.dumps(
            {
                "topics": [
                    {
                        "topic": "Open Source AI Models Gain Ground",
                        "description": "Community models close the gap with commercial labs.",
                        "relevance": 7,
                        "recency": "trending",
                        "sources": ["https://example.com/open-models"],
                        "keyQuestions": ["Who benefits from open weights?"],
                    }
                ]
            }
        )

    def _cluster_summary(self, prompt: str) -> str:
        topics = _listed_topics(prompt)
        title = topics[0] if topics else "Combined topic"
        return json.dumps(
            {"topic": title, "description": f"Consolidated coverage of {len(topics)} stories."}
        )

    def _prioritized_topics(self, prompt: str) -> str:
        match = re.search(r"Select exactly (\d+) topics", prompt)
        count = int(match.group(1)) if match else 1
        topics = _listed_topics(prompt) or ["General update"]
        return json.dumps(
            {
                "topics": [
                    {
                        "topic": topic,
                        "importance": 8 - index,
                        "newsworthiness": 7,
                        "depthPotential": 6,
                        "rationale": "Strong listener interest and fresh developments.",
                        "keyQuestions": [f"What changed with {topic}?"],
                        "searchQueries": [f"{topic} latest news", f"{topic} analysis"],
                    }
                    for index, topic in enumerate(topics[:count])
                ]
            }
        )

    def _insights(self, prompt: str) -> str:
        match = re.search(r"about (.+?) from", prompt)
        subject = match.group(1) if match else "the topic"
        return json.dumps(
            {"insights": [f"Insight {i + 1} about {subject} from recent reporting" for i in range(5)]}
        )

    def _synthesis(self, prompt: str) -> str:
        match = re.search(r"Synthesize the research on (.+?)[.:\n]", prompt)
        return filler_text(120, match.group(1) if match else "the topic")

    def _narrative(self, prompt: str) -> str:
        return filler_text(max(_target_words(prompt), 150), "this week's research")

    def _draft(self, prompt: str) -> str:
        return json.dumps(
            {
                "title": "This Week in Review",
                "description": "A look at the stories shaping the week.",
                "content": filler_text(_target_words(prompt), "this week's stories"),
            }
        )

    def _differentiation(self, _prompt: str) -> str:
        return json.dumps(
            {
                "similarityScore": 20,
                "uniqueElements": ["Fresh angle on recent developments"],
                "redundantElements": [],
                "overallAssessment": "The draft covers new ground.",
                "improvementSuggestions": [],
            }
        )

    def _rewrite(self, prompt: str) -> str:
        return filler_text(_target_words(prompt), "a fresh angle")

    def _bullet_points(self, _prompt: str) -> str:
        return json.dumps(
            [
                "What changed this week and why it matters",
                "How experts read the latest evidence",
                "What to watch for next",
            ]
        )

    def _sources(self, _prompt: str) -> str:
        return json.dumps(
            {
                "sources": [
                    {
                        "url": "https://www.reuters.com",
                        "name": "Reuters",
                        "category": "News",
                        "topicRelevance": ["technology", "policy"],
                        "qualityScore": 9,
                        "frequency": "daily",
                        "perspective": "neutral",
                    },
                    {
                        "url": "https://arstechnica.com",
                        "name": "Ars Technica",
                        "category": "Technology",
                        "topicRelevance": ["technology"],
                        "qualityScore": 8,
                        "frequency": "daily",
                        "perspective": "analytical",
                    },
                ]
            }
        )

    def _source_refresh(self, prompt: str) -> str:
        urls = re.findall(r"^URL: (\S+)$", prompt, flags=re.MULTILINE)
        return json.dumps({"sourcesToKeep": urls, "sourcesToRemove": [], "newSources": []})

    async def health_check(self) -> bool:
        """Stub provider is always healthy."""
        return True
