"""Unit tests for voiceover providers."""

import base64
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from podcast_engine.adapters.voiceover.base import (
    VoiceoverRequest,
    VoiceoverResult,
    estimate_duration,
)
from podcast_engine.adapters.voiceover.elevenlabs import ElevenLabsProvider
from podcast_engine.adapters.voiceover.google_tts import GoogleTTSProvider
from podcast_engine.adapters.voiceover.stub import StubVoiceoverProvider

SYNTHESIZE_URL = "https://texttospeech.googleapis.com/v1/text:synthesize"


def _response(status_code: int, payload: dict) -> httpx.Response:
    return httpx.Response(
        status_code, json=payload, request=httpx.Request("POST", SYNTHESIZE_URL)
    )


class TestVoiceoverRequest:
    """Tests for VoiceoverRequest dataclass."""

    def test_request_defaults(self):
        """Test default values for voiceover request."""
        request = VoiceoverRequest(text="Hello world")

        assert request.text == "Hello world"
        assert request.voice_id is None
        assert request.language == "en-US"
        assert request.speed == 1.0
        assert request.output_format == "mp3"


class TestVoiceoverResult:
    """Tests for VoiceoverResult dataclass."""

    def test_failure_result(self):
        """Test failed result creation."""
        result = VoiceoverResult(success=False, error_message="API error")

        assert result.success is False
        assert result.audio_data is None
        assert result.error_message == "API error"
        assert result.metadata == {}


class TestEstimateDuration:
    """Tests for estimate_duration."""

    def test_150_words_is_one_minute(self):
        assert estimate_duration(" ".join(["word"] * 150)) == 60.0

    def test_custom_rate(self):
        assert estimate_duration(" ".join(["word"] * 100), words_per_minute=200) == 30.0


class TestStubVoiceoverProvider:
    """Tests for StubVoiceoverProvider."""

    @pytest.mark.asyncio
    async def test_generate_success(self):
        """Test stub generates fake audio."""
        provider = StubVoiceoverProvider()

        result = await provider.generate(VoiceoverRequest(text="Test narration"))

        assert result.success is True
        assert result.audio_data == b"STUB_AUDIO:Test narration"
        assert result.metadata["provider"] == "stub"
        assert provider.requests[0].text == "Test narration"

    @pytest.mark.asyncio
    async def test_list_voices(self):
        """Test stub returns voice list."""
        voices = await StubVoiceoverProvider().list_voices()

        assert len(voices) == 1
        assert voices[0]["voice_id"] == "stub_host"


class TestGoogleTTSProvider:
    """Tests for GoogleTTSProvider with the HTTP client mocked."""

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        from podcast_engine.config import settings

        monkeypatch.setattr(settings, "google_tts_api_key", None)
        monkeypatch.setattr(settings, "google_api_key", None)
        provider = GoogleTTSProvider()

        result = await provider.generate(VoiceoverRequest(text="Hello"))

        assert result.success is False
        assert "not configured" in result.error_message
        assert await provider.health_check() is False

    @pytest.mark.asyncio
    async def test_generate_decodes_audio(self):
        provider = GoogleTTSProvider(api_key="key", voice="en-US-Neural2-D", language="en-US")
        audio = base64.b64encode(b"mp3-bytes").decode()

        with patch.object(
            httpx.AsyncClient,
            "post",
            new_callable=AsyncMock,
            return_value=_response(200, {"audioContent": audio}),
        ) as mock_post:
            result = await provider.generate(VoiceoverRequest(text="Hello there", speed=1.1))

        assert result.success is True
        assert result.audio_data == b"mp3-bytes"
        payload = mock_post.call_args.kwargs["json"]
        assert payload["voice"] == {"languageCode": "en-US", "name": "en-US-Neural2-D"}
        assert payload["audioConfig"] == {"audioEncoding": "MP3", "speakingRate": 1.1}

    @pytest.mark.asyncio
    async def test_empty_audio_content(self):
        provider = GoogleTTSProvider(api_key="key")

        with patch.object(
            httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=_response(200, {})
        ):
            result = await provider.generate(VoiceoverRequest(text="Hello"))

        assert result.success is False
        assert "no audio content" in result.error_message

    @pytest.mark.asyncio
    async def test_api_error_message(self):
        provider = GoogleTTSProvider(api_key="key")
        error = {"error": {"message": "Input text too long"}}

        with patch.object(
            httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=_response(400, error)
        ):
            result = await provider.generate(VoiceoverRequest(text="Hello"))

        assert result.success is False
        assert result.error_message == "Google TTS API error: 400 - Input text too long"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        provider = GoogleTTSProvider(api_key="key")

        with patch.object(
            httpx.AsyncClient,
            "post",
            new_callable=AsyncMock,
            side_effect=httpx.ConnectError("connection refused"),
        ):
            result = await provider.generate(VoiceoverRequest(text="Hello"))

        assert result.success is False
        assert "connection refused" in result.error_message


class TestElevenLabsProvider:
    """Tests for ElevenLabsProvider with the HTTP client mocked."""

    @pytest.mark.asyncio
    async def test_generate_sends_chunk_context(self):
        provider = ElevenLabsProvider(api_key="key", voice_id="voice-1", model_id="model-1")
        request = VoiceoverRequest(
            text="Second part.", previous_text="First part.", next_text="Third part."
        )
        response = httpx.Response(
            200, content=b"mp3", request=httpx.Request("POST", "https://api.elevenlabs.io")
        )

        with patch.object(
            httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=response
        ) as mock_post:
            result = await provider.generate(request)

        assert result.success is True
        assert result.audio_data == b"mp3"
        assert mock_post.call_args.args[0].endswith("/text-to-speech/voice-1")
        payload = mock_post.call_args.kwargs["json"]
        assert payload["model_id"] == "model-1"
        assert payload["previous_text"] == "First part."
        assert payload["next_text"] == "Third part."

    @pytest.mark.asyncio
    async def test_api_error_detail(self):
        provider = ElevenLabsProvider(api_key="key")
        response = httpx.Response(
            401,
            json={"detail": {"status": "invalid_api_key", "message": "Invalid API key"}},
            request=httpx.Request("POST", "https://api.elevenlabs.io"),
        )

        with patch.object(httpx.AsyncClient, "post", new_callable=AsyncMock, return_value=response):
            result = await provider.generate(VoiceoverRequest(text="Hello"))

        assert result.success is False
        assert result.error_message == "ElevenLabs API error: 401 - Invalid API key"

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        from podcast_engine.config import settings

        monkeypatch.setattr(settings, "elevenlabs_api_key", None)

        result = await ElevenLabsProvider().generate(VoiceoverRequest(text="Hello"))

        assert result.success is False
        assert "not configured" in result.error_message
