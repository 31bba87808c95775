"""Google Cloud Text-to-Speech provider implementation."""

import base64
from typing import Any

import httpx

from podcast_engine.adapters.voiceover.base import (
    VoiceoverProvider,
    VoiceoverRequest,
    VoiceoverResult,
    estimate_duration,
    http_error_result,
)
from podcast_engine.config import settings
from podcast_engine.logging import get_logger

logger = get_logger(__name__)


class GoogleTTSProvider(VoiceoverProvider):
    """Google Cloud Text-to-Speech via the REST API.

    A single request accepts at most 5000 bytes of input; callers split longer
    scripts (see services.audio).
    """

    def __init__(
        self,
        api_key: str | None = None,
        voice: str | None = None,
        language: str | None = None,
        base_url: str = "https://texttospeech.googleapis.com/v1",
    ) -> None:
        self.api_key = api_key or settings.google_tts_api_key or settings.google_api_key
        self.voice = voice or settings.google_tts_voice
        self.language = language or settings.google_tts_language
        self.base_url = base_url

        if not self.api_key:
            logger.warning("Google TTS API key not configured")

    @property
    def name(self) -> str:
        return "google_tts"

    async def generate(self, request: VoiceoverRequest) -> VoiceoverResult:
        """Synthesize speech as MP3."""
        if not self.api_key:
            return VoiceoverResult(
                success=False,
                error_message="Google TTS API key not configured",
            )

        voice_name = request.voice_id or self.voice
        payload = {
            "input": {"text": request.text},
            "voice": {"languageCode": self.language, "name": voice_name},
            "audioConfig": {"audioEncoding": "MP3", "speakingRate": request.speed},
        }

        logger.info(
            "google_tts_generation_started",
            text_bytes=len(request.text.encode("utf-8")),
            voice=voice_name,
        )

        try:
            async with httpx.AsyncClient(timeout=120.0) as client:
                response = await client.post(
                    f"{self.base_url}/text:synthesize",
                    params={"key": self.api_key},
                    json=payload,
                )
                response.raise_for_status()
                data = response.json()

            audio_content = data.get("audioContent")
            if not audio_content:
                return VoiceoverResult(
                    success=False,
                    error_message="Google TTS returned no audio content",
                )

            audio_data = base64.b64decode(audio_content)
            estimated_duration = estimate_duration(request.text)

            logger.info(
                "google_tts_generation_completed",
                audio_size=len(audio_data),
                estimated_duration=estimated_duration,
            )

            return VoiceoverResult(
                success=True,
                audio_data=audio_data,
                duration_seconds=estimated_duration,
                metadata={
                    "provider": self.name,
                    "voice_id": voice_name,
                    "text_length": len(request.text),
                },
            )

        except httpx.HTTPError as e:
            result = http_error_result("Google TTS", e)
            logger.error("google_tts_generation_error", error=result.error_message)
            return result

    async def list_voices(self) -> list[dict[str, Any]]:
        """List voices for the configured language."""
        if not self.api_key:
            return []

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.get(
                    f"{self.base_url}/voices",
                    params={"key": self.api_key, "languageCode": self.language},
                )
                response.raise_for_status()
                return response.json().get("voices", [])
        except httpx.HTTPError as e:
            logger.error("google_tts_list_voices_error", error=str(e))
            return []

    async def health_check(self) -> bool:
        """Check that the API key can list voices."""
        if not self.api_key:
            return False
        return bool(await self.list_voices())
