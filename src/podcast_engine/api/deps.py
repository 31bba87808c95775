"""FastAPI dependencies."""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, status

from podcast_engine.adapters.docstore import DocumentStore
from podcast_engine.config import settings
from podcast_engine.domain.errors import PodcastNotFoundError
from podcast_engine.domain.models import Podcast
from podcast_engine.jobs.generation import GenerationQueue
from podcast_engine.services.audio import AudioService
from podcast_engine.services.catalog import PodcastCatalog
from podcast_engine.services.generation_log import GenerationLogRecorder
from podcast_engine.services.providers import (
    get_blob_storage,
    get_document_store,
    get_voiceover_provider,
)


def get_store() -> DocumentStore:
    """Get the document store instance."""
    return get_document_store()


StoreDep = Annotated[DocumentStore, Depends(get_store)]


def get_catalog(store: StoreDep) -> PodcastCatalog:
    return PodcastCatalog(store)


def get_recorder(store: StoreDep) -> GenerationLogRecorder:
    return GenerationLogRecorder(store)


def get_generation_queue(store: StoreDep) -> GenerationQueue:
    return GenerationQueue(store)


def get_audio_service() -> AudioService:
    return AudioService(get_voiceover_provider(), get_blob_storage())


CatalogDep = Annotated[PodcastCatalog, Depends(get_catalog)]
RecorderDep = Annotated[GenerationLogRecorder, Depends(get_recorder)]
GenerationQueueDep = Annotated[GenerationQueue, Depends(get_generation_queue)]
AudioDep = Annotated[AudioService, Depends(get_audio_service)]


def get_caller_id(
    x_api_key: Annotated[str | None, Header()] = None,
    x_user_id: Annotated[str | None, Header()] = None,
) -> str | None:
    """Check the shared API key and return the caller's identity.

    The key is only enforced when ``API_KEY`` is configured.
    """
    if settings.api_key and x_api_key != settings.api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing API key",
        )
    return x_user_id


CallerDep = Annotated[str | None, Depends(get_caller_id)]


async def get_authorized_podcast(
    podcast_id: str, catalog: CatalogDep, caller_id: CallerDep
) -> Podcast:
    """Load a podcast the caller may access (404 if missing, 403 if owned by someone else)."""
    try:
        podcast = await catalog.get_podcast(podcast_id)
    except PodcastNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    if podcast.owner_id and podcast.owner_id != caller_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to access this podcast",
        )
    return podcast


PodcastDep = Annotated[Podcast, Depends(get_authorized_podcast)]
