"""Base interface for voiceover generation providers."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx


@dataclass
class VoiceoverRequest:
    """Request for voiceover generation."""

    text: str
    voice_id: str | None = None  # Provider-specific voice identifier
    language: str = "en-US"
    speed: float = 1.0  # Speech speed multiplier
    output_format: str = "mp3"
    # Neighbouring chunks of a long script, for providers that keep prosody continuous
    previous_text: str | None = None
    next_text: str | None = None


@dataclass
class VoiceoverResult:
    """Result from voiceover generation."""

    success: bool
    audio_data: bytes | None = None
    duration_seconds: float | None = None
    error_message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


def _error_detail(response: httpx.Response) -> str | None:
    try:
        body = response.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    for key in ("error", "detail"):
        value = body.get(key)
        if isinstance(value, dict) and value.get("message"):
            return str(value["message"])
        if isinstance(value, str) and value:
            return value
    return None


def http_error_result(label: str, error: httpx.HTTPError) -> VoiceoverResult:
    """Failed result for an HTTP error, including the API's own message when it sent one."""
    if isinstance(error, httpx.HTTPStatusError):
        message = f"{label} API error: {error.response.status_code}"
        detail = _error_detail(error.response)
        if detail:
            message = f"{message} - {detail}"
    else:
        message = str(error) or f"{label} request failed"
    return VoiceoverResult(success=False, error_message=message)


class VoiceoverProvider(ABC):
    """Abstract base class for voiceover generation providers.

    Implementations:
    - GoogleTTSProvider: Google Cloud Text-to-Speech (default)
    - ElevenLabsProvider: AI voices via the ElevenLabs API
    - StubVoiceoverProvider: Returns fake audio for testing

    Providers report failures in the result instead of raising, so the audio
    service can name the chunk that failed.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name identifier."""
        ...

    @abstractmethod
    async def generate(self, request: VoiceoverRequest) -> VoiceoverResult:
        """Synthesize one request's text as MP3 audio."""
        ...

    async def list_voices(self) -> list[dict[str, Any]]:
        return []

    async def health_check(self) -> bool:
        return True


def estimate_duration(text: str, words_per_minute: int = 150) -> float:
    """Rough spoken duration of ``text`` in seconds."""
    return (len(text.split()) / words_per_minute) * 60
