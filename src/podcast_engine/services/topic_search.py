"""Topic discovery across search providers, with deduplication and ranking."""

import asyncio
from datetime import UTC, datetime
from typing import Any

from podcast_engine.adapters.llm import LLMMessage, LLMProvider
from podcast_engine.adapters.search import SearchProvider
from podcast_engine.config import settings
from podcast_engine.domain.enums import Recency
from podcast_engine.domain.models import EpisodeAnalysis, Podcast, TopicCandidate
from podcast_engine.logging import get_logger
from podcast_engine.utils import parse_json_response, with_timeout

logger = get_logger(__name__)

RECENCY_BONUS: dict[str, int] = {
    Recency.BREAKING: 30,
    Recency.DEVELOPING: 25,
    Recency.TRENDING: 20,
    Recency.RECENT: 15,
    Recency.ONGOING: 10,
    Recency.EMERGING: 8,
}
DEFAULT_RECENCY_BONUS = 5

PROVIDER_BONUS: dict[str, int] = {
    "perplexity": 5,
    "gemini": 3,
}


# =============================================================================
# Pure ranking helpers
# =============================================================================


def _normalize(title: str) -> str:
    return title.strip().lower()


def _overlaps(a: str, b: str) -> bool:
    return bool(a and b) and (a in b or b in a)


def dedupe_candidates(candidates: list[TopicCandidate]) -> list[TopicCandidate]:
    """Drop candidates whose normalized title contains, or is contained in, an earlier one.

    The first occurrence wins, so callers control precedence by ordering.
    """
    kept: list[TopicCandidate] = []
    seen: list[str] = []
    for candidate in candidates:
        title = _normalize(candidate.topic)
        if not title or any(_overlaps(title, s) for s in seen):
            continue
        seen.append(title)
        kept.append(candidate)
    return kept


def score_candidate(candidate: TopicCandidate) -> float:
    """Heuristic ranking score; provider-reported relevance is clamped to 1-10."""
    relevance = candidate.relevance if candidate.relevance is not None else 1
    relevance = max(1.0, min(10.0, float(relevance)))

    score = relevance * 10
    score += RECENCY_BONUS.get((candidate.recency or "").lower(), DEFAULT_RECENCY_BONUS)
    score += len(candidate.sources) * 5
    score += PROVIDER_BONUS.get(candidate.provider, 0)
    score += len(candidate.key_questions) * 3
    return score


def rank_candidates(candidates: list[TopicCandidate], limit: int = 8) -> list[TopicCandidate]:
    """Score, sort descending and keep the top ``limit`` candidates."""
    for candidate in candidates:
        candidate.score = score_candidate(candidate)
    ranked = sorted(candidates, key=lambda c: c.score or 0, reverse=True)
    return ranked[:limit]


def exclude_covered(
    candidates: list[TopicCandidate], analysis: EpisodeAnalysis
) -> list[TopicCandidate]:
    """Remove candidates overlapping a topic the podcast covered recently."""
    covered = [_normalize(t) for t in analysis.recent_topic_titles]
    return [
        c for c in candidates if not any(_overlaps(_normalize(c.topic), t) for t in covered)
    ]


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def parse_candidates(
    payload: Any, provider: str, fallback_sources: list[str] | None = None
) -> list[TopicCandidate]:
    """Turn a provider's topic JSON (object with "topics" or a bare list) into candidates."""
    items = payload.get("topics", []) if isinstance(payload, dict) else payload
    if not isinstance(items, list):
        return []

    candidates = []
    for item in items:
        if not isinstance(item, dict) or not item.get("topic"):
            continue
        sources = [s for s in item.get("sources") or [] if isinstance(s, str)]
        candidates.append(
            TopicCandidate(
                topic=str(item["topic"]).strip(),
                description=str(item.get("description") or ""),
                relevance=_as_float(item.get("relevance")),
                recency=str(item["recency"]) if item.get("recency") else None,
                sources=sources or list(fallback_sources or []),
                key_questions=[
                    str(q) for q in item.get("keyQuestions") or item.get("key_questions") or []
                ],
                query=str(item.get("query") or item["topic"]),
                provider=provider,
                reasoning=str(item.get("reasoning") or ""),
            )
        )
    return candidates


def fallback_queries(podcast: Podcast, now: datetime | None = None) -> list[str]:
    """Date-stamped generic queries used when no provider suggests topics."""
    now = now or datetime.now(UTC)
    month, year = now.strftime("%B"), now.year
    base = podcast.prompt or podcast.title
    return [
        f"latest news about {base} {month} {year}",
        f"recent developments in {base}",
        f"{base} current events",
        f"what's new with {base}",
        f"{base} trending topics {month} {year}",
    ]


# =============================================================================
# Service
# =============================================================================


class TopicSearchService:
    """Queries every search provider for topic ideas and merges the answers.

    Providers are queried concurrently; one failing provider only removes its own
    suggestions. Provider order in the constructor sets deduplication precedence.
    """

    def __init__(self, providers: list[SearchProvider], llm: LLMProvider) -> None:
        self.providers = providers
        self.llm = llm

    def _topic_request(self, podcast: Podcast, analysis: EpisodeAnalysis) -> str:
        covered = "\n".join(
            f"- {t.get('topic')} (covered {t.get('frequency', 1)} times)"
            for t in analysis.recent_topics
        )
        return f"""You are a podcast topic researcher with access to current web data. Find \
the most compelling and timely topics for a new episode.

Podcast: {podcast.title}
Description: {podcast.description}
Focus: {podcast.prompt or "General interest based on title and description"}

Recently covered topics (avoid these):
{covered or "- none"}

Find 5-7 newsworthy topics from the last 7-10 days that are directly relevant to the \
podcast and deep enough for a full segment. For each give a title, why it matters now, \
relevance (1-10), recency (breaking, developing, trending, recent, ongoing or emerging), \
2-3 key questions and source URLs.

Return JSON: {{"topics": [{{"topic": "...", "description": "...", "relevance": 8, \
"recency": "breaking", "sources": ["https://..."], "keyQuestions": ["...?"], \
"reasoning": "..."}}]}}"""

    async def _query_provider(
        self, provider: SearchProvider, request: str
    ) -> list[TopicCandidate]:
        try:
            result = await with_timeout(provider.search(request))
            payload = parse_json_response(result.content)
        except Exception as e:
            logger.warning("topic_provider_failed", provider=provider.name, error=str(e))
            return []

        candidates = parse_candidates(payload, provider.name, result.source_urls)
        logger.info("topic_provider_completed", provider=provider.name, count=len(candidates))
        return candidates

    async def search(
        self,
        podcast: Podcast,
        analysis: EpisodeAnalysis,
        limit: int | None = None,
    ) -> list[TopicCandidate]:
        """Find, merge and rank topic candidates for the next episode.

        Topics overlapping the recent-topic digest are never returned. When
        every provider answer overlaps it, the fallback queries run instead;
        the result is empty when they find nothing new either.
        """
        limit = limit or settings.max_topic_candidates
        request = self._topic_request(podcast, analysis)

        per_provider = await asyncio.gather(
            *(self._query_provider(p, request) for p in self.providers)
        )
        combined = [c for batch in per_provider for c in batch]

        used_fallback = not combined
        if used_fallback:
            logger.warning("topic_providers_empty_using_fallback", podcast_id=podcast.id)
            combined = await self._fallback_search(podcast, analysis)

        unique = dedupe_candidates(combined)
        fresh = exclude_covered(unique, analysis)
        if unique and not fresh and not used_fallback:
            # Covered topics are never recommended again, so look wider
            logger.warning("all_topics_recently_covered", podcast_id=podcast.id)
            combined = await self._fallback_search(podcast, analysis)
            unique = dedupe_candidates(combined)
            fresh = exclude_covered(unique, analysis)

        ranked = rank_candidates(fresh, limit)
        logger.info(
            "topic_search_completed",
            podcast_id=podcast.id,
            raw=len(combined),
            unique=len(unique),
            ranked=len(ranked),
        )
        return ranked

    async def _fallback_search(
        self, podcast: Podcast, analysis: EpisodeAnalysis
    ) -> list[TopicCandidate]:
        """Run generic queries and let the LLM pick topics out of the results."""
        if not self.providers:
            return []
        provider = self.providers[0]
        queries = fallback_queries(podcast)

        results = await asyncio.gather(
            *(with_timeout(provider.search(q)) for q in queries),
            return_exceptions=True,
        )
        successes = [r for r in results if not isinstance(r, BaseException)]
        if not successes:
            return []

        combined = "\n\n".join(r.content for r in successes)
        sources = list(dict.fromkeys(u for r in successes for u in r.source_urls))
        covered = "\n".join(f"- {t}" for t in analysis.recent_topic_titles) or "- none"

        prompt = f"""Identify distinct newsworthy topics for a new episode of "{podcast.title}" \
from these search results. Skip anything already covered.

Podcast description: {podcast.description}

Previously covered topics:
{covered}

Search results:
{combined}

Return 5-7 topics as JSON: {{"topics": [{{"topic": "...", "description": "...", \
"relevance": 8, "recency": "ongoing", "sources": ["https://..."], "keyQuestions": ["...?"]}}]}}"""

        try:
            response = await with_timeout(
                self.llm.complete([LLMMessage("user", prompt)], temperature=0.4, json_mode=True)
            )
            payload = parse_json_response(response.content)
        except Exception as e:
            logger.warning("fallback_topic_identification_failed", error=str(e))
            return []

        return parse_candidates(payload, f"{provider.name}-fallback", sources)
