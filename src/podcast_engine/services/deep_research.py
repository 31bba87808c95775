"""Topic prioritization and layered deep-dive research.

Each selected topic is researched in up to three layers of increasing depth:
a surface pass on the topic's first query, an intermediate pass on remaining
queries plus follow-ups drawn from what was learned, and a deep pass looking
for expert analysis, implications and contrasting views. Layers stop early
once enough insights have been gathered.
"""

import asyncio
from typing import Any

from podcast_engine.adapters.llm import LLMMessage, LLMProvider
from podcast_engine.adapters.search import SearchProvider, SearchResult
from podcast_engine.config import settings
from podcast_engine.domain.errors import ContentValidationError, ProviderParseError
from podcast_engine.domain.models import (
    DeepDiveResult,
    EpisodeAnalysis,
    ResearchLayer,
    ResearchTopic,
    TopicCandidate,
    TopicResearch,
)
from podcast_engine.logging import get_logger
from podcast_engine.utils import parse_json_response, with_timeout

logger = get_logger(__name__)

LAYER_FOCUS = {
    1: "surface-level, factual information",
    2: "intermediate details and additional context",
    3: "deep analysis, expert perspectives, and implications",
}

SYSTEM_PROMPT = """You are a senior research producer for a news podcast. You are \
rigorous, objective and focused on what listeners need to understand."""


def optimal_topic_count(target_words: int) -> int:
    """One topic per 300 words of script, between 1 and 3."""
    return max(1, min(3, target_words // 300))


def allocate_words(
    topics: list[ResearchTopic], target_words: int
) -> list[dict[str, Any]]:
    """Split the script length across topics in proportion to importance.

    Percentages use largest-remainder rounding so they always sum to 100.
    Topics with zero total importance share equally.
    """
    if not topics:
        return []

    weights = [max(0.0, float(t.importance)) for t in topics]
    total = sum(weights)
    if total == 0:
        weights = [1.0] * len(topics)
        total = float(len(topics))

    exact = [w / total * 100 for w in weights]
    allocations = [int(e) for e in exact]
    remainder = 100 - sum(allocations)
    by_fraction = sorted(range(len(topics)), key=lambda i: exact[i] - allocations[i], reverse=True)
    for index in by_fraction[:remainder]:
        allocations[index] += 1

    return [
        {
            "topic": topic.topic,
            "allocation": allocation,
            "target_words": round(target_words * allocation / 100),
        }
        for topic, allocation in zip(topics, allocations, strict=True)
    ]


def followup_queries(topic: str, insights: list[str]) -> list[str]:
    if not insights:
        return [f"latest updates on {topic}"]
    return [f"{topic} {insight[:50]} details" for insight in insights[:3]]


def deep_queries(topic: ResearchTopic, insights: list[str]) -> list[str]:
    base = [
        f"expert analysis {topic.topic}",
        f"implications of {topic.topic}",
        f"historical context {topic.topic}",
        f"future predictions {topic.topic}",
        f"contrasting views {topic.topic}",
    ]
    from_insights = [f"deep analysis of {i[:60]} regarding {topic.topic}" for i in insights[:2]]
    from_questions = [f"in-depth research {q}" for q in topic.key_questions[:2]]
    return [*base, *from_insights, *from_questions][:5]


def _score(value: Any, default: float = 5.0) -> float:
    if isinstance(value, bool):
        return default
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


def parse_research_topics(payload: Any) -> list[ResearchTopic]:
    items = payload
    if isinstance(payload, dict):
        items = payload.get("topics") or payload.get("prioritizedTopics") or []
    if not isinstance(items, list):
        return []

    topics = []
    for item in items:
        if not isinstance(item, dict) or not item.get("topic"):
            continue
        name = str(item["topic"])
        queries = [str(q) for q in item.get("searchQueries") or [] if q]
        topics.append(
            ResearchTopic(
                topic=name,
                importance=_score(item.get("importance")),
                newsworthiness=_score(item.get("newsworthiness")),
                depth_potential=_score(item.get("depthPotential")),
                rationale=str(item.get("rationale") or ""),
                key_questions=[str(q) for q in item.get("keyQuestions") or [] if q],
                search_queries=queries or [name],
            )
        )
    return topics


class DeepResearchService:
    """Selects topics worth a deep dive and researches them."""

    def __init__(
        self,
        search: SearchProvider,
        fast_llm: LLMProvider,
        powerful_llm: LLMProvider,
    ) -> None:
        self.search = search
        self.fast_llm = fast_llm
        self.powerful_llm = powerful_llm

    # -------------------------------------------------------------------------
    # Prioritization
    # -------------------------------------------------------------------------

    async def prioritize(
        self,
        candidates: list[TopicCandidate],
        analysis: EpisodeAnalysis,
        target_words: int,
        supplementary_context: str = "",
    ) -> list[ResearchTopic]:
        """Pick the topics to research, most important first.

        Raises:
            ProviderParseError: If the LLM response has no usable topics
        """
        count = optimal_topic_count(target_words)
        listing = "\n\n".join(
            f"TOPIC: {c.topic}\nDescription: {c.description}\n"
            f"Relevance: {c.relevance}\nRecency: {c.recency}\n"
            f"Key questions: {'; '.join(c.key_questions)}"
            for c in candidates
        )
        covered = "\n".join(f"- {t}" for t in analysis.recent_topic_titles) or "- none"
        context = (
            f"\nAdditional reporting from trusted sources:\n{supplementary_context[:8000]}\n"
            if supplementary_context
            else ""
        )

        prompt = f"""Select exactly {count} topics for deep research for the next episode \
(about {target_words} words of script).

Candidate topics:

{listing}

Recently covered topics:
{covered}
{context}
Favour topics with high newsworthiness and depth potential that have not been covered \
extensively. For each selected topic give importance, newsworthiness and depthPotential \
(1-10), a rationale, 3-5 key questions and 3-5 search queries for layered research.

Return JSON: {{"topics": [{{"topic": "...", "importance": 8, "newsworthiness": 9, \
"depthPotential": 7, "rationale": "...", "keyQuestions": ["..."], "searchQueries": ["..."]}}]}}"""

        response = await with_timeout(
            self.powerful_llm.complete(
                [LLMMessage("system", SYSTEM_PROMPT), LLMMessage("user", prompt)],
                temperature=0.4,
                json_mode=True,
            )
        )
        topics = parse_research_topics(parse_json_response(response.content))[:count]
        if not topics:
            raise ProviderParseError("Prioritization returned no topics", raw=response.content)

        logger.info(
            "topics_prioritized",
            requested=count,
            selected=[t.topic for t in topics],
        )
        return topics

    # -------------------------------------------------------------------------
    # Layered research
    # -------------------------------------------------------------------------

    async def _run_queries(self, queries: list[str]) -> tuple[str, list[str]]:
        results = await asyncio.gather(
            *(with_timeout(self.search.search(q)) for q in queries),
            return_exceptions=True,
        )
        successes: list[SearchResult] = []
        for query, result in zip(queries, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("research_query_failed", query=query, error=str(result))
            else:
                successes.append(result)
        content = "\n\n".join(r.content for r in successes if r.content)
        sources = list(dict.fromkeys(u for r in successes for u in r.source_urls))
        return content, sources

    async def _extract_insights(self, content: str, topic: str, level: int) -> list[str]:
        if not content:
            return []

        prompt = f"""Extract the key insights about {topic} from the research below.
Focus on {LAYER_FOCUS[level]}.

Research:
{content[:15000]}

Give 5-7 concise, substantive insights (1-2 sentences each).
Return JSON: {{"insights": ["..."]}}"""

        try:
            response = await with_timeout(
                self.fast_llm.complete([LLMMessage("user", prompt)], temperature=0.2, json_mode=True)
            )
            payload = parse_json_response(response.content)
        except Exception as e:
            logger.warning("insight_extraction_failed", topic=topic, level=level, error=str(e))
            return []

        items = payload.get("insights", []) if isinstance(payload, dict) else payload
        return [str(i) for i in items or [] if i][:7]

    def _layer_queries(self, topic: ResearchTopic, level: int, insights: list[str]) -> list[str]:
        if level == 1:
            return topic.search_queries[:1] or [topic.topic]
        if level == 2:
            return [*topic.search_queries[1:], *followup_queries(topic.topic, insights)][:3]
        return deep_queries(topic, insights)

    async def _synthesize(self, topic: ResearchTopic, research: TopicResearch) -> str:
        layers = "\n".join(
            f"--- Layer {layer.level} ---\nInsights: {'; '.join(layer.insights)}\n"
            f"Content snippet: {layer.content[:1000]}"
            for layer in research.layers
        )
        questions = "\n".join(f"- {q}" for q in topic.key_questions) or "- none"
        prompt = f"""Synthesize the research on {topic.topic}.

Key questions to answer:
{questions}

Research layers:
{layers[:30000]}

Write a cohesive 400-600 word analysis that moves from the basics to deeper analysis and \
implications, prioritising the deepest layer. Provide context, not a list of facts. \
Output only the text."""

        response = await with_timeout(
            self.powerful_llm.complete(
                [LLMMessage("system", SYSTEM_PROMPT), LLMMessage("user", prompt)],
                temperature=0.5,
            )
        )
        return response.content.strip()

    async def research_topic(self, topic: ResearchTopic) -> TopicResearch:
        """Research one topic. Failures are recorded on the result, not raised."""
        research = TopicResearch(topic=topic.topic)
        try:
            for level in range(1, settings.research_max_layers + 1):
                if level > 1 and len(research.insights) >= settings.research_min_insights:
                    break
                queries = self._layer_queries(topic, level, research.insights)
                content, sources = await self._run_queries(queries)
                if level == 1 and not content:
                    raise ContentValidationError("Surface research returned no content")
                insights = await self._extract_insights(content, topic.topic, level)
                research.layers.append(
                    ResearchLayer(
                        level=level,
                        queries=queries,
                        content=content,
                        sources=sources,
                        insights=insights,
                    )
                )
                logger.debug(
                    "research_layer_completed",
                    topic=topic.topic,
                    level=level,
                    insight_count=len(insights),
                )

            research.synthesized_content = await self._synthesize(topic, research)
        except Exception as e:
            logger.warning("topic_research_failed", topic=topic.topic, error=str(e))
            research.failed = True
            research.error = str(e)

        return research

    async def research(self, topics: list[ResearchTopic], target_words: int) -> DeepDiveResult:
        """Research all topics concurrently and write the integrated narrative.

        Raises:
            ContentValidationError: If every topic failed or the narrative is too short
        """
        researched = list(await asyncio.gather(*(self.research_topic(t) for t in topics)))
        succeeded = [r for r in researched if not r.failed]
        if not succeeded:
            raise ContentValidationError("Deep research failed for every topic")

        distribution = allocate_words(topics, target_words)
        all_sources = list(dict.fromkeys(s for r in researched for s in r.sources))
        narrative = await self._integrate(succeeded, distribution, target_words)

        word_count = len(narrative.split())
        if word_count < settings.min_narrative_words:
            raise ContentValidationError(
                f"Research synthesis too short ({word_count} words, "
                f"minimum {settings.min_narrative_words})"
            )

        logger.info(
            "deep_research_completed",
            topic_count=len(topics),
            failed=len(researched) - len(succeeded),
            source_count=len(all_sources),
            narrative_words=word_count,
        )
        return DeepDiveResult(
            researched_topics=researched,
            topic_distribution=distribution,
            all_sources=all_sources,
            narrative=narrative,
        )

    async def _integrate(
        self,
        researched: list[TopicResearch],
        distribution: list[dict[str, Any]],
        target_words: int,
    ) -> str:
        words_for = {d["topic"]: d["target_words"] for d in distribution}
        sections = "\n\n".join(
            f"--- Topic: {r.topic} (target ~{words_for.get(r.topic, target_words // len(researched))}"
            f" words) ---\n{r.synthesized_content}"
            for r in researched
        )
        prompt = f"""Write an integrated research narrative of approximately {target_words} words \
that covers the topics below in the suggested proportions, with smooth transitions.

Use plain text that can be read aloud: no speaker labels, no sound cues, no references to \
publication dates or schedules. Focus on insight and context.

{sections[:30000]}

Output only the narrative."""

        response = await with_timeout(
            self.powerful_llm.complete(
                [LLMMessage("system", SYSTEM_PROMPT), LLMMessage("user", prompt)],
                temperature=0.6,
                max_tokens=8192,
            )
        )
        return response.content.strip()
