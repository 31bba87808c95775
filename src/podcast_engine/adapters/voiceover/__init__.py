"""Voiceover generation adapters."""

from podcast_engine.adapters.voiceover.base import (
    VoiceoverProvider,
    VoiceoverRequest,
    VoiceoverResult,
)
from podcast_engine.adapters.voiceover.elevenlabs import ElevenLabsProvider
from podcast_engine.adapters.voiceover.google_tts import GoogleTTSProvider
from podcast_engine.adapters.voiceover.stub import StubVoiceoverProvider

__all__ = [
    "VoiceoverProvider",
    "VoiceoverRequest",
    "VoiceoverResult",
    "ElevenLabsProvider",
    "GoogleTTSProvider",
    "StubVoiceoverProvider",
]
