"""Episode script writing and bullet point summaries."""

from podcast_engine.adapters.llm import LLMMessage, LLMProvider
from podcast_engine.config import settings
from podcast_engine.domain.enums import PodcastType
from podcast_engine.domain.errors import ContentValidationError, ProviderParseError
from podcast_engine.domain.models import DeepDiveResult, EpisodeAnalysis, EpisodeDraft, Podcast
from podcast_engine.logging import get_logger
from podcast_engine.utils import parse_json_response, with_timeout

logger = get_logger(__name__)

MAX_TITLE_CHARS = 100
MAX_DESCRIPTION_CHARS = 150

AUDIO_RULES = """Write for the ear:
- Short paragraphs of 2-3 sentences separated by a blank line.
- Plain text with standard punctuation only. No markdown, speaker labels or cues \
such as "(pause)" or "(music)".
- Introduce unfamiliar organisations and terms briefly.
- Round numbers and give them context.
- Attribute information naturally ("according to Reuters...")."""

NEWS_INSTRUCTIONS = """You are a professional news broadcaster. Turn the research below \
into an engaging, conversational and well-structured episode: open with a hook, cover the \
most important points in a logical flow, and close with a forward-looking conclusion. \
Select the 3-5 points that make a coherent story rather than including everything. Stay \
factual and objective."""

NARRATIVE_INSTRUCTIONS = """You are a storyteller for an audio series. Create a new \
episode that matches the voice of the series, has a clear beginning, middle and end, and \
does not repeat earlier storylines. Keep it suitable for all audiences."""

GENERIC_BULLETS = [
    "Key points from the episode content",
    "Main takeaways from the discussion",
]


def normalize_script(text: str) -> str:
    """Undo escaped newlines and quotes that models leave in JSON string bodies."""
    return text.replace("\\n", "\n").replace('\\"', '"').strip()


def generic_bullets(title: str) -> list[str]:
    return [f'Summary of "{title}"', *GENERIC_BULLETS]


def extract_bullets(text: str) -> list[str]:
    """Lines starting with "-" or "*" that are long enough to be substantive."""
    bullets = []
    for line in text.splitlines():
        stripped = line.strip()
        if stripped.startswith(("-", "*")):
            bullet = stripped.lstrip("-* ").strip()
            if len(bullet) > 10:
                bullets.append(bullet)
    return bullets[:5]


class ContentWriter:
    """Writes the episode script from research and summarizes it."""

    def __init__(self, powerful_llm: LLMProvider, fast_llm: LLMProvider) -> None:
        self.powerful_llm = powerful_llm
        self.fast_llm = fast_llm

    def _draft_prompt(
        self,
        podcast: Podcast,
        research: DeepDiveResult,
        target_words: int,
        analysis: EpisodeAnalysis | None,
    ) -> str:
        instructions = (
            NARRATIVE_INSTRUCTIONS
            if podcast.podcast_type == PodcastType.NARRATIVE
            else NEWS_INSTRUCTIONS
        )
        covered = ""
        if analysis and analysis.recent_topic_titles:
            covered = "Recently covered (do not repeat):\n" + "\n".join(
                f"- {t}" for t in analysis.recent_topic_titles
            )

        return f"""Write the episode script for the podcast "{podcast.title}".
Podcast theme: {podcast.theme}

{instructions}

{covered}

Research:
{research.narrative}

{AUDIO_RULES}

The script MUST be approximately {target_words} words.

Return JSON: {{"title": "clear, specific episode title", "description": "1-2 sentence \
summary", "content": "the full script"}}"""

    async def draft(
        self,
        podcast: Podcast,
        research: DeepDiveResult,
        target_words: int,
        analysis: EpisodeAnalysis | None = None,
    ) -> EpisodeDraft:
        """Write the script as title, description and content.

        Raises:
            ProviderParseError: If neither JSON nor field extraction succeeds
            ContentValidationError: If the script is too short to publish
        """
        prompt = self._draft_prompt(podcast, research, target_words, analysis)
        response = await with_timeout(
            self.powerful_llm.complete(
                [LLMMessage("user", prompt)],
                temperature=0.7,
                max_tokens=8192,
                json_mode=True,
            )
        )

        data = parse_json_response(
            response.content, required_fields=["title", "description", "content"]
        )
        if not isinstance(data, dict) or not data.get("content"):
            raise ProviderParseError("Draft response has no content", raw=response.content[:500])

        draft = EpisodeDraft(
            title=str(data.get("title") or podcast.title).strip()[:MAX_TITLE_CHARS],
            description=str(data.get("description") or "").strip()[:MAX_DESCRIPTION_CHARS],
            content=normalize_script(str(data["content"])),
        )

        if draft.word_count < settings.min_narrative_words:
            raise ContentValidationError(
                f"Episode script too short ({draft.word_count} words, "
                f"minimum {settings.min_narrative_words})"
            )

        logger.info(
            "episode_drafted",
            podcast_id=podcast.id,
            title=draft.title,
            word_count=draft.word_count,
            target_words=target_words,
            adherence=round(draft.word_count / target_words * 100, 1),
        )
        return draft

    async def bullet_points(self, title: str, content: str) -> list[str]:
        """Summarize an episode in 3-5 bullet points.

        Falls back to bullet lines in free text, then to a generic summary.
        """
        prompt = f"""Create bullet points that summarize this podcast episode.

Title: {title}

Content:
{content[:12000]}

Write 3-5 concise bullet points (1-2 sentences each), each covering a distinct key point.
Return ONLY a JSON array of strings."""

        try:
            response = await with_timeout(
                self.fast_llm.complete([LLMMessage("user", prompt)], temperature=0.3, json_mode=True)
            )
        except Exception as e:
            logger.warning("bullet_points_failed", title=title, error=str(e))
            return generic_bullets(title)

        try:
            data = parse_json_response(response.content)
        except ProviderParseError:
            data = None

        if isinstance(data, dict):
            data = data.get("bullet_points") or data.get("bulletPoints")
        if isinstance(data, list) and 3 <= len(data) <= 5 and all(isinstance(b, str) for b in data):
            return [b.strip() for b in data]

        extracted = extract_bullets(response.content)
        if len(extracted) >= 3:
            return extracted

        logger.warning("bullet_points_unparseable", title=title)
        return generic_bullets(title)
