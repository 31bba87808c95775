"""Digest of a podcast's recent episodes, used to avoid repeating coverage."""

from podcast_engine.adapters.llm import LLMMessage, LLMProvider
from podcast_engine.config import settings
from podcast_engine.domain.models import Episode, EpisodeAnalysis
from podcast_engine.logging import get_logger
from podcast_engine.services.catalog import PodcastCatalog
from podcast_engine.utils import parse_json_response, with_timeout

logger = get_logger(__name__)

SYSTEM_PROMPT = """You are an editorial assistant for a podcast network. You track what a \
show has already covered so new episodes bring fresh material. Respond with JSON only."""


def _episode_summary(episode: Episode) -> str:
    summary = "\n".join(f"- {b}" for b in episode.bullet_points) or episode.content[:1000]
    return f"Title: {episode.title}\nSummary:\n{summary}"


def _as_int(value: object, default: int) -> int:
    try:
        return int(value)  # type: ignore[call-overload]
    except (TypeError, ValueError):
        return default


class EpisodeAnalyzer:
    """Summarizes recent episodes into covered topics, themes and sources."""

    def __init__(self, catalog: PodcastCatalog, llm: LLMProvider) -> None:
        self.catalog = catalog
        self.llm = llm

    async def analyze(self, podcast_id: str, limit: int | None = None) -> EpisodeAnalysis:
        """Analyze the newest episodes of a podcast.

        Store errors propagate. LLM or parse errors degrade to an analysis built
        from episode titles and sources alone.
        """
        episodes = await self.catalog.list_recent_episodes(
            podcast_id, limit=limit or settings.episode_analysis_limit
        )
        if not episodes:
            logger.info("episode_analysis_no_history", podcast_id=podcast_id)
            return EpisodeAnalysis()

        covered_sources = list(dict.fromkeys(s for e in episodes for s in e.sources))
        fallback = EpisodeAnalysis(
            recent_topics=[{"topic": e.title, "frequency": 1} for e in episodes],
            covered_sources=covered_sources,
            episode_count=len(episodes),
        )

        prompt = (
            "Analyze these recent podcast episodes and identify the topics they covered "
            "and any recurring themes.\n\n"
            + "\n\n".join(_episode_summary(e) for e in episodes)
            + '\n\nReturn JSON: {"topics": [{"topic": "...", "frequency": 1}], '
            '"themes": ["..."]}'
        )

        try:
            response = await with_timeout(
                self.llm.complete(
                    [LLMMessage("system", SYSTEM_PROMPT), LLMMessage("user", prompt)],
                    temperature=0.2,
                    json_mode=True,
                )
            )
            data = parse_json_response(response.content)
        except Exception as e:
            logger.warning("episode_analysis_llm_failed", podcast_id=podcast_id, error=str(e))
            return fallback

        if not isinstance(data, dict):
            return fallback

        topics = [
            {"topic": str(t.get("topic")), "frequency": _as_int(t.get("frequency"), 1)}
            for t in data.get("topics") or []
            if isinstance(t, dict) and t.get("topic")
        ]
        themes = [str(t) for t in data.get("themes") or [] if t]

        analysis = EpisodeAnalysis(
            recent_topics=topics or fallback.recent_topics,
            covered_sources=covered_sources,
            recurrent_themes=themes,
            episode_count=len(episodes),
        )
        logger.info(
            "episode_analysis_completed",
            podcast_id=podcast_id,
            episode_count=analysis.episode_count,
            topic_count=len(analysis.recent_topics),
        )
        return analysis
