"""Episode audio synthesis and storage."""

import re

from podcast_engine.adapters.storage import BlobStorage
from podcast_engine.adapters.voiceover import VoiceoverProvider, VoiceoverRequest
from podcast_engine.config import settings
from podcast_engine.domain.errors import AudioGenerationError, ContentValidationError
from podcast_engine.logging import get_logger
from podcast_engine.utils import with_timeout

logger = get_logger(__name__)

_SENTENCE_RE = re.compile(r"[^.!?]+(?:[.!?]+|$)")

AUDIO_CONTENT_TYPE = "audio/mpeg"


def _byte_len(text: str) -> int:
    return len(text.encode("utf-8"))


def _split_oversized(sentence: str, max_bytes: int) -> list[str]:
    """Break a single over-long sentence on word boundaries."""
    pieces: list[str] = []
    current = ""
    for word in sentence.split():
        candidate = f"{current} {word}" if current else word
        if current and _byte_len(candidate) > max_bytes:
            pieces.append(current)
            current = word
        else:
            current = candidate
    if current:
        pieces.append(current)
    return pieces


def split_into_chunks(text: str, max_bytes: int | None = None) -> list[str]:
    """Split text into sentence-aligned chunks of at most ``max_bytes`` UTF-8 bytes.

    Sentences are never split unless a single sentence exceeds the limit.
    """
    max_bytes = max_bytes or settings.tts_max_chunk_bytes
    sentences = [s.strip() for s in _SENTENCE_RE.findall(text) if s.strip()] or [text.strip()]

    chunks: list[str] = []
    current = ""
    for sentence in sentences:
        if _byte_len(sentence) <= max_bytes:
            parts = [sentence]
        else:
            parts = _split_oversized(sentence, max_bytes)
        for part in parts:
            candidate = f"{current} {part}" if current else part
            if current and _byte_len(candidate) > max_bytes:
                chunks.append(current)
                current = part
            else:
                current = candidate
    if current:
        chunks.append(current)
    return chunks


def episode_audio_path(podcast_id: str, episode_id: str) -> str:
    return f"podcasts/{podcast_id}/episodes/{episode_id}.mp3"


class AudioService:
    """Turns an episode script into a stored MP3."""

    def __init__(self, voiceover: VoiceoverProvider, storage: BlobStorage) -> None:
        self.voiceover = voiceover
        self.storage = storage

    async def _synthesize(self, request: VoiceoverRequest, index: int | None = None) -> bytes:
        result = await with_timeout(self.voiceover.generate(request))
        if not result.success or not result.audio_data:
            where = f" for chunk {index + 1}" if index is not None else ""
            raise AudioGenerationError(
                f"Speech synthesis failed{where}: {result.error_message or 'no audio returned'}"
            )
        return result.audio_data

    async def generate_and_store(self, text: str, podcast_id: str, episode_id: str) -> str:
        """Synthesize ``text`` and store it; returns the public URL.

        Short scripts go out in one request; longer ones are chunked and the MP3
        segments concatenated in order.

        Raises:
            ContentValidationError: If the text or ids are missing
            AudioGenerationError: If any synthesis call fails
        """
        if not text or not text.strip():
            raise ContentValidationError("Cannot generate audio: text is empty")
        if not podcast_id:
            raise ContentValidationError("Cannot generate audio: podcast id is required")
        if not episode_id:
            raise ContentValidationError("Cannot generate audio: episode id is required")

        text_bytes = _byte_len(text)
        if text_bytes <= settings.tts_single_request_bytes:
            chunks = [text]
        else:
            chunks = split_into_chunks(text)

        logger.info(
            "audio_generation_started",
            episode_id=episode_id,
            text_bytes=text_bytes,
            chunk_count=len(chunks),
            provider=self.voiceover.name,
        )

        segments = []
        for index, chunk in enumerate(chunks):
            request = VoiceoverRequest(
                text=chunk,
                previous_text=chunks[index - 1] if index > 0 else None,
                next_text=chunks[index + 1] if index + 1 < len(chunks) else None,
            )
            segments.append(await self._synthesize(request, index if len(chunks) > 1 else None))
        audio = b"".join(segments)

        url = await self.storage.store(
            episode_audio_path(podcast_id, episode_id), audio, AUDIO_CONTENT_TYPE
        )
        logger.info("audio_generation_completed", episode_id=episode_id, size_bytes=len(audio))
        return url

    async def delete_episode_audio(self, podcast_id: str, episode_id: str) -> bool:
        deleted = await self.storage.delete(episode_audio_path(podcast_id, episode_id))
        logger.info("episode_audio_deleted", episode_id=episode_id, deleted=deleted)
        return deleted
