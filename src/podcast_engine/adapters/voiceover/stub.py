"""Stub voiceover provider for testing."""

from typing import Any

from podcast_engine.adapters.voiceover.base import (
    VoiceoverProvider,
    VoiceoverRequest,
    VoiceoverResult,
    estimate_duration,
)
from podcast_engine.logging import get_logger

logger = get_logger(__name__)


class StubVoiceoverProvider(VoiceoverProvider):
    """Stub provider that simulates voiceover generation without external calls.

    Every call is recorded in ``requests`` so tests can inspect chunking.
    """

    def __init__(self) -> None:
        self.requests: list[VoiceoverRequest] = []

    @property
    def name(self) -> str:
        return "stub"

    async def generate(self, request: VoiceoverRequest) -> VoiceoverResult:
        """Return the text itself as fake audio bytes."""
        self.requests.append(request)
        fake_audio = b"STUB_AUDIO:" + request.text.encode("utf-8")

        logger.info(
            "stub_voiceover_generated",
            text_length=len(request.text),
            voice=request.voice_id,
        )

        return VoiceoverResult(
            success=True,
            audio_data=fake_audio,
            duration_seconds=estimate_duration(request.text),
            metadata={"provider": self.name, "voice_id": request.voice_id or "default"},
        )

    async def list_voices(self) -> list[dict[str, Any]]:
        """Return stub voice list."""
        return [{"voice_id": "stub_host", "name": "Stub Host", "language": "en-US"}]
