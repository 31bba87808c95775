"""Checks that a new draft is not a rerun of recent episodes."""

from podcast_engine.adapters.llm import LLMMessage, LLMProvider
from podcast_engine.config import settings
from podcast_engine.domain.models import DifferentiationResult, EpisodeAnalysis, EpisodeDraft
from podcast_engine.logging import get_logger
from podcast_engine.utils import parse_json_response, with_timeout

logger = get_logger(__name__)

FALLBACK_SCORE = 30.0


def _strings(value: object) -> list[str]:
    return [str(v) for v in value] if isinstance(value, list) else []


class DifferentiationValidator:
    """Scores similarity against prior coverage and requests one rewrite if too close."""

    def __init__(self, llm: LLMProvider, threshold: int | None = None) -> None:
        self.llm = llm
        self.threshold = threshold if threshold is not None else settings.differentiation_threshold

    async def validate(
        self, draft: EpisodeDraft, analysis: EpisodeAnalysis
    ) -> DifferentiationResult:
        """Score the draft; failing drafts carry a rewritten ``improved_content``.

        Scoring errors yield a passing result so validation never blocks an episode.
        """
        if analysis.episode_count == 0:
            return DifferentiationResult(
                is_passing=True,
                similarity_score=0,
                unique_elements=["All content is unique as there are no previous episodes"],
                assessment="First episode of the podcast.",
            )

        covered = "\n".join(
            f"- {t.get('topic')} (covered {t.get('frequency', 1)} times)"
            for t in analysis.recent_topics
        )
        prompt = f"""Compare the new episode draft against what previous episodes covered.

Draft:
{draft.content[:6000]}

Previously covered topics:
{covered or "- none"}

Recurrent themes: {", ".join(analysis.recurrent_themes) or "none"}

Rate similarity from 0 (entirely new) to 100 (a repeat). Return JSON: \
{{"similarityScore": 0, "uniqueElements": ["..."], "redundantElements": ["..."], \
"overallAssessment": "...", "improvementSuggestions": ["..."]}}"""

        try:
            response = await with_timeout(
                self.llm.complete([LLMMessage("user", prompt)], temperature=0.2, json_mode=True)
            )
            data = parse_json_response(response.content)
            score = float(data["similarityScore"])
        except Exception as e:
            logger.warning("differentiation_check_failed", error=str(e))
            return DifferentiationResult(
                is_passing=True,
                similarity_score=FALLBACK_SCORE,
                assessment="Differentiation could not be assessed; draft accepted.",
            )

        result = DifferentiationResult(
            is_passing=score < self.threshold,
            similarity_score=max(0.0, min(100.0, score)),
            unique_elements=_strings(data.get("uniqueElements")),
            redundant_elements=_strings(data.get("redundantElements")),
            assessment=str(
                data.get("overallAssessment") or data.get("differentiationAssessment") or ""
            ),
            suggestions=_strings(data.get("improvementSuggestions")),
        )

        logger.info(
            "differentiation_scored",
            similarity_score=result.similarity_score,
            is_passing=result.is_passing,
        )

        if not result.is_passing:
            result.improved_content = await self._rewrite(draft, result)
        return result

    async def _rewrite(self, draft: EpisodeDraft, result: DifferentiationResult) -> str:
        redundant = "\n".join(f"- {e}" for e in result.redundant_elements) or "- none listed"
        suggestions = "\n".join(f"- {s}" for s in result.suggestions) or "- none listed"
        prompt = f"""Rewrite the episode script below so it offers a clearly different angle \
from earlier episodes.

Original:
{draft.content[:6000]}

Redundant elements:
{redundant}

Suggestions:
{suggestions}

Change the analytical frame or perspective rather than rephrasing. Keep the structure, \
accuracy and plain-text audio style, at approximately {draft.word_count} words. Output \
only the rewritten script."""

        try:
            response = await with_timeout(
                self.llm.complete([LLMMessage("user", prompt)], temperature=0.7, max_tokens=8192)
            )
            rewritten = response.content.strip()
        except Exception as e:
            logger.warning("differentiation_rewrite_failed", error=str(e))
            return draft.content

        return rewritten or draft.content
