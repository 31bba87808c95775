"""Episode length resolution.

Requests may give a length in minutes, in words, or not at all; podcasts may
also state a preferred length in their prompt ("Episode length: 5 minutes").
Everything resolves to a word count within the configured bounds.
"""

import re

from podcast_engine.config import settings

_PROMPT_LENGTH_RE = re.compile(
    r"episode\s+(?:length|duration):\s*(\d+)\s*(minutes|minute|min|words|word)",
    re.IGNORECASE,
)


def clamp_words(words: int) -> int:
    """Clamp a word count to ``[min_target_words, max_target_words]``."""
    return max(settings.min_target_words, min(settings.max_target_words, words))


def minutes_to_words(minutes: float) -> int:
    return round(minutes * settings.words_per_minute)


def parse_length_from_prompt(prompt: str | None) -> int | None:
    """Extract an unclamped word count from a podcast prompt, if it states one."""
    if not prompt:
        return None
    match = _PROMPT_LENGTH_RE.search(prompt)
    if not match:
        return None
    value = int(match.group(1))
    if match.group(2).lower().startswith("word"):
        return value
    return minutes_to_words(value)


def resolve_target_word_count(
    target_minutes: float | None = None,
    target_words: int | None = None,
    prompt: str | None = None,
) -> int:
    """Resolve the script length for a generation request.

    Precedence: explicit minutes, explicit words, the podcast prompt, then the
    configured default length.

    Raises:
        ValueError: If an explicit length is not positive.
    """
    if target_minutes is not None:
        if target_minutes <= 0:
            raise ValueError(f"Target minutes must be positive, got {target_minutes}")
        return clamp_words(minutes_to_words(target_minutes))

    if target_words is not None:
        if target_words <= 0:
            raise ValueError(f"Target words must be positive, got {target_words}")
        return clamp_words(target_words)

    from_prompt = parse_length_from_prompt(prompt)
    if from_prompt:
        return clamp_words(from_prompt)

    return clamp_words(minutes_to_words(settings.default_target_minutes))
