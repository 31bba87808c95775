"""ElevenLabs voiceover provider."""

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

# Settings tuned for long-form speech: steadier delivery than the API defaults
HOST_VOICE_SETTINGS = {
    "stability": 0.6,
    "similarity_boost": 0.75,
    "style": 0.2,
    "use_speaker_boost": True,
}


class ElevenLabsProvider(VoiceoverProvider):
    """ElevenLabs text-to-speech.

    Requests for consecutive chunks carry the neighbouring text so the voice
    keeps the same intonation across chunk boundaries.
    """

    def __init__(
        self,
        api_key: str | None = None,
        voice_id: str | None = None,
        model_id: str | None = None,
        base_url: str = "https://api.elevenlabs.io/v1",
    ) -> None:
        self.api_key = api_key or settings.elevenlabs_api_key
        self.voice_id = voice_id or settings.elevenlabs_voice_id
        self.model_id = model_id or settings.elevenlabs_model
        self.base_url = base_url

        if not self.api_key:
            logger.warning("ElevenLabs API key not configured")

    @property
    def name(self) -> str:
        return "elevenlabs"

    def _payload(self, request: VoiceoverRequest) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "text": request.text,
            "model_id": self.model_id,
            "voice_settings": {**HOST_VOICE_SETTINGS, "speed": request.speed},
        }
        if request.previous_text:
            payload["previous_text"] = request.previous_text
        if request.next_text:
            payload["next_text"] = request.next_text
        return payload

    async def generate(self, request: VoiceoverRequest) -> VoiceoverResult:
        if not self.api_key:
            return VoiceoverResult(
                success=False,
                error_message="ElevenLabs API key not configured",
            )

        voice_id = request.voice_id or self.voice_id
        logger.info(
            "elevenlabs_generation_started",
            text_bytes=len(request.text.encode("utf-8")),
            voice_id=voice_id,
            model=self.model_id,
        )

        try:
            async with httpx.AsyncClient(timeout=120.0) as client:
                response = await client.post(
                    f"{self.base_url}/text-to-speech/{voice_id}",
                    params={"output_format": "mp3_44100_128"},
                    headers={"xi-api-key": self.api_key},
                    json=self._payload(request),
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            result = http_error_result("ElevenLabs", e)
            logger.error("elevenlabs_generation_error", error=result.error_message)
            return result

        audio_data = response.content
        logger.info("elevenlabs_generation_completed", audio_size=len(audio_data))
        return VoiceoverResult(
            success=bool(audio_data),
            audio_data=audio_data or None,
            duration_seconds=estimate_duration(request.text),
            error_message=None if audio_data else "ElevenLabs returned no audio",
            metadata={"provider": self.name, "voice_id": voice_id, "model_id": self.model_id},
        )

    async def list_voices(self) -> list[dict[str, Any]]:
        if not self.api_key:
            return []

        try:
            async with httpx.AsyncClient(timeout=30.0) as client:
                response = await client.get(
                    f"{self.base_url}/voices", headers={"xi-api-key": self.api_key}
                )
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error("elevenlabs_list_voices_error", error=str(e))
            return []
        return response.json().get("voices", [])

    async def health_check(self) -> bool:
        return bool(await self.list_voices())
