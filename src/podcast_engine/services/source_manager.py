"""Curated source lists and source-guided search.

Each podcast keeps a list of vetted websites. The list is discovered once from
the podcast theme, refreshed before each generation, and used to build
``site:`` queries that bias research toward those domains.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from urllib.parse import urlparse

from podcast_engine.adapters.llm import LLMMessage, LLMProvider
from podcast_engine.adapters.search import SearchProvider, SearchResult
from podcast_engine.domain.errors import ProviderParseError
from podcast_engine.domain.models import Podcast, PodcastSource, clamp_quality
from podcast_engine.logging import get_logger
from podcast_engine.utils import parse_json_response, with_timeout

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are a research librarian who curates trustworthy web sources for \
podcast producers. Respond with JSON only."""


@dataclass
class SourceRefresh:
    """Result of re-evaluating a podcast's sources."""

    sources: list[PodcastSource]
    kept: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)
    added: list[str] = field(default_factory=list)
    discovered: bool = False

    @property
    def changed(self) -> bool:
        return self.discovered or bool(self.removed or self.added)


@dataclass
class GuidedSearchResult:
    """Combined output of the source-guided queries."""

    content: str
    sources: list[str]
    queries: list[str]


def parse_source(data: Any) -> PodcastSource | None:
    """Validate one LLM-proposed source, clamping its quality score to 1-10."""
    if not isinstance(data, dict):
        return None
    url = data.get("url")
    if not isinstance(url, str) or not url.startswith("http"):
        return None
    if not isinstance(data.get("name"), str) or not data["name"]:
        return None
    if not isinstance(data.get("category"), str) or not data["category"]:
        return None
    relevance = data.get("topicRelevance", data.get("topic_relevance"))
    if not isinstance(relevance, list):
        return None
    quality = data.get("qualityScore", data.get("quality_score"))
    if isinstance(quality, bool) or not isinstance(quality, int | float):
        return None

    return PodcastSource(
        url=url,
        name=data["name"],
        category=data["category"],
        topic_relevance=[str(t) for t in relevance],
        quality_score=clamp_quality(quality),
        frequency=data.get("frequency"),
        perspective=data.get("perspective"),
    )


def _hostname(url: str) -> str | None:
    return urlparse(url).hostname


def _month_year(now: datetime) -> str:
    return f"{now.strftime('%B')} {now.year}"


def _is_relevant(source: PodcastSource, topic: str) -> bool:
    topic_lower = topic.lower()
    return any(
        topic_lower in t.lower() or t.lower() in topic_lower for t in source.topic_relevance if t
    )


def build_guided_queries(
    podcast: Podcast,
    topics: list[str],
    now: datetime | None = None,
) -> list[str]:
    """Build ``site:`` queries from a podcast's sources.

    For each topic: the three highest-quality topic-relevant sources, plus the
    best source of quality >= 6 from each perspective when sources disagree on
    perspective. Then the best source of quality >= 7 in each category, queried
    with the podcast theme. Duplicates are removed, order preserved.
    """
    now = now or datetime.now(UTC)
    month_year = _month_year(now)
    sources = [s for s in podcast.sources if _hostname(s.url)]

    by_category: dict[str, list[PodcastSource]] = {}
    by_perspective: dict[str, list[PodcastSource]] = {}
    for source in sources:
        by_category.setdefault(source.category or "Other", []).append(source)
        if source.perspective:
            by_perspective.setdefault(source.perspective, []).append(source)
    for group in (*by_category.values(), *by_perspective.values()):
        group.sort(key=lambda s: s.quality_score, reverse=True)

    queries: list[str] = []
    for topic in topics:
        relevant = sorted(
            (s for s in sources if _is_relevant(s, topic)),
            key=lambda s: s.quality_score,
            reverse=True,
        )
        for source in relevant[:3]:
            queries.append(f"site:{_hostname(source.url)} {topic} {month_year}")

        if len(by_perspective) > 1:
            for group in by_perspective.values():
                best = next((s for s in group if s.quality_score >= 6), None)
                if best:
                    queries.append(f"site:{_hostname(best.url)} {topic} {month_year}")

    for group in by_category.values():
        top = group[0]
        if top.quality_score >= 7:
            queries.append(f"site:{_hostname(top.url)} {podcast.theme} {month_year}")

    return list(dict.fromkeys(queries))


def _format_sources(sources: list[PodcastSource]) -> str:
    return "\n\n".join(
        f"URL: {s.url}\nName: {s.name}\nCategory: {s.category}\n"
        f"Topics: {', '.join(s.topic_relevance)}\nQuality: {s.quality_score}"
        for s in sources
    )


class SourceManager:
    """Discovers, refreshes and searches a podcast's curated sources."""

    def __init__(self, llm: LLMProvider, search: SearchProvider) -> None:
        self.llm = llm
        self.search = search

    async def _ask(self, prompt: str) -> Any:
        response = await with_timeout(
            self.llm.complete(
                [LLMMessage("system", SYSTEM_PROMPT), LLMMessage("user", prompt)],
                temperature=0.3,
                json_mode=True,
            )
        )
        return parse_json_response(response.content)

    async def discover_sources(self, theme: str) -> list[PodcastSource]:
        """Ask the LLM for 20-30 authoritative websites for a podcast theme.

        Raises:
            ProviderParseError: If the response is not JSON
        """
        prompt = f"""Recommend authoritative sources for a podcast with this theme:

"{theme}"

Identify 20-30 websites that publish recent, high-quality material on the theme. Include \
diverse viewpoints and at least two international outlets. For each give its URL, name, \
category (News, Research, Blog, Government, Industry, ...), topics it is relevant to, a \
quality score from 1 to 10, publishing frequency and perspective (Neutral, Left, Right, ...).

Return JSON: {{"sources": [{{"url": "https://...", "name": "...", "category": "News", \
"topicRelevance": ["..."], "qualityScore": 8, "frequency": "Daily", "perspective": "Neutral"}}]}}"""

        data = await self._ask(prompt)
        raw = data.get("sources", []) if isinstance(data, dict) else data
        sources = [s for s in (parse_source(item) for item in raw or []) if s]

        logger.info("sources_discovered", theme=theme[:80], source_count=len(sources))
        return sources

    async def refresh_sources(self, podcast: Podcast) -> SourceRefresh:
        """Re-evaluate the podcast's sources, or discover them if it has none.

        A response that cannot be parsed leaves the list unchanged; other provider
        errors propagate so the caller can apply its failure policy.
        """
        if not podcast.sources:
            sources = await self.discover_sources(podcast.theme)
            return SourceRefresh(
                sources=sources, added=[s.url for s in sources], discovered=True
            )

        prompt = f"""Review the current source list for a podcast with theme: "{podcast.theme}"

These sources are used to find recent, relevant information for episodes.

{_format_sources(podcast.sources)}

For each source decide whether it is still relevant and likely to publish recent \
information. Identify sources to remove and suggest 1-3 new sources to add.

Return JSON: {{"sourcesToKeep": ["url"], "sourcesToRemove": ["url"], "newSources": \
[{{"url": "https://...", "name": "...", "category": "News", "topicRelevance": ["..."], \
"qualityScore": 8}}]}}"""

        try:
            data = await self._ask(prompt)
        except ProviderParseError as e:
            logger.warning("source_refresh_unparseable", podcast_id=podcast.id, error=str(e))
            return SourceRefresh(sources=list(podcast.sources))

        if not isinstance(data, dict) or not isinstance(data.get("sourcesToKeep"), list):
            logger.warning("source_refresh_malformed", podcast_id=podcast.id)
            return SourceRefresh(sources=list(podcast.sources))

        keep = set(data["sourcesToKeep"])
        kept = [s for s in podcast.sources if s.url in keep]
        known = {s.url for s in kept}
        added = [
            s
            for s in (parse_source(item) for item in data.get("newSources") or [])
            if s and s.url not in known
        ]

        refresh = SourceRefresh(
            sources=kept + added,
            kept=[s.url for s in kept],
            removed=[s.url for s in podcast.sources if s.url not in keep],
            added=[s.url for s in added],
        )
        logger.info(
            "sources_refreshed",
            podcast_id=podcast.id,
            kept=len(refresh.kept),
            removed=len(refresh.removed),
            added=len(refresh.added),
        )
        return refresh

    async def source_guided_search(
        self,
        podcast: Podcast,
        topics: list[str],
        now: datetime | None = None,
    ) -> GuidedSearchResult:
        """Run the guided queries in parallel and combine what they return.

        Individual query failures are skipped.
        """
        queries = build_guided_queries(podcast, topics, now)
        if not queries:
            return GuidedSearchResult(content="", sources=[], queries=[])

        logger.info("source_guided_search_started", podcast_id=podcast.id, query_count=len(queries))

        results = await asyncio.gather(
            *(with_timeout(self.search.search(q)) for q in queries),
            return_exceptions=True,
        )

        successes: list[SearchResult] = []
        for query, result in zip(queries, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("source_query_failed", query=query, error=str(result))
            else:
                successes.append(result)

        content = "\n\n---\n\n".join(r.content for r in successes if r.content)
        sources = list(dict.fromkeys(u for r in successes for u in r.source_urls))

        logger.info(
            "source_guided_search_completed",
            podcast_id=podcast.id,
            source_count=len(sources),
        )
        return GuidedSearchResult(content=content, sources=sources, queries=queries)
