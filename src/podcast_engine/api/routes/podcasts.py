"""Podcast and episode endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query, Response, status
from pydantic import BaseModel, Field

from podcast_engine.api.deps import AudioDep, CallerDep, CatalogDep, PodcastDep
from podcast_engine.config import settings
from podcast_engine.domain.enums import PodcastType
from podcast_engine.domain.errors import AudioGenerationError, EpisodeNotFoundError
from podcast_engine.domain.models import Episode, Podcast, PodcastSource, new_id
from podcast_engine.logging import get_logger
from podcast_engine.services.catalog import PodcastCatalog

router = APIRouter(prefix="/podcasts", tags=["Podcasts"])
logger = get_logger(__name__)


class SourceRequest(BaseModel):
    """A curated source supplied when creating or updating a podcast."""

    url: str = Field(..., min_length=1)
    name: str | None = None
    category: str = "Other"
    topic_relevance: list[str] = Field(default_factory=list)
    quality_score: int = Field(default=5, ge=1, le=10)
    perspective: str | None = None

    def to_source(self) -> PodcastSource:
        return PodcastSource(
            url=self.url,
            name=self.name or self.url,
            category=self.category,
            topic_relevance=self.topic_relevance,
            quality_score=self.quality_score,
            perspective=self.perspective,
        )


class CreatePodcastRequest(BaseModel):
    """Request to create a podcast."""

    title: str = Field(..., min_length=1, max_length=255)
    description: str = Field(default="", max_length=5000)
    prompt: str | None = Field(None, max_length=10000)
    podcast_type: PodcastType = PodcastType.NEWS
    sources: list[SourceRequest] = Field(default_factory=list)
    auto_generate: bool = False


class UpdatePodcastRequest(BaseModel):
    """Fields to change on a podcast; omitted fields keep their value."""

    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    prompt: str | None = Field(None, max_length=10000)
    podcast_type: PodcastType | None = None
    auto_generate: bool | None = None
    sources: list[SourceRequest] | None = None


class PodcastResponse(BaseModel):
    """Podcast response model."""

    id: str
    title: str
    description: str
    prompt: str | None
    owner_id: str | None
    podcast_type: str
    sources: list[dict[str, Any]]
    auto_generate: bool
    created_at: str


class EpisodeResponse(BaseModel):
    """Episode response model."""

    id: str
    podcast_id: str
    title: str
    description: str
    content: str
    sources: list[str]
    bullet_points: list[str]
    audio_url: str | None
    created_at: str
    word_count: int


def _podcast_response(podcast: Podcast) -> PodcastResponse:
    return PodcastResponse(**podcast.to_document())


def _episode_response(episode: Episode) -> EpisodeResponse:
    return EpisodeResponse(**episode.to_document(), word_count=episode.word_count)


async def _podcast_episode(
    podcast: Podcast, episode_id: str, catalog: PodcastCatalog
) -> Episode:
    """Load an episode, hiding episodes that belong to another podcast."""
    try:
        episode = await catalog.get_episode(episode_id)
    except EpisodeNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e
    if episode.podcast_id != podcast.id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Episode {episode_id} not found",
        )
    return episode


@router.get(
    "",
    response_model=list[PodcastResponse],
    summary="List podcasts",
    description="Podcasts the caller may access (their own and unowned ones), newest first.",
)
async def list_podcasts(catalog: CatalogDep, caller_id: CallerDep) -> list[PodcastResponse]:
    """List podcasts visible to the caller."""
    podcasts = await catalog.list_podcasts()
    return [
        _podcast_response(p) for p in podcasts if not p.owner_id or p.owner_id == caller_id
    ]


@router.post(
    "",
    response_model=PodcastResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create podcast",
    description="Create a podcast owned by the calling user.",
)
async def create_podcast(
    request: CreatePodcastRequest, catalog: CatalogDep, caller_id: CallerDep
) -> PodcastResponse:
    """Create a new podcast."""
    logger.info("create_podcast", title=request.title, owner_id=caller_id)

    podcast = Podcast(
        id=new_id(),
        title=request.title,
        description=request.description,
        prompt=request.prompt,
        owner_id=caller_id,
        podcast_type=request.podcast_type,
        sources=[s.to_source() for s in request.sources],
        auto_generate=request.auto_generate,
    )
    await catalog.create_podcast(podcast)
    return _podcast_response(podcast)


@router.get(
    "/{podcast_id}",
    response_model=PodcastResponse,
    summary="Get podcast",
)
async def get_podcast(podcast: PodcastDep) -> PodcastResponse:
    """Get a podcast by ID."""
    return _podcast_response(podcast)


@router.patch(
    "/{podcast_id}",
    response_model=PodcastResponse,
    summary="Update podcast",
    description="Change a podcast's details. Only the fields present in the body are updated.",
)
async def update_podcast(
    request: UpdatePodcastRequest, podcast: PodcastDep, catalog: CatalogDep
) -> PodcastResponse:
    """Update a podcast."""
    # Only the prompt may be cleared with an explicit null
    changes = {
        key: value
        for key, value in request.model_dump(
            exclude_unset=True, exclude={"podcast_type", "sources"}
        ).items()
        if value is not None or key == "prompt"
    }
    if request.podcast_type is not None:
        changes["podcast_type"] = request.podcast_type.value
    if request.sources is not None:
        changes["sources"] = [s.to_source().to_document() for s in request.sources]
    if not changes:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update",
        )

    logger.info("update_podcast", podcast_id=podcast.id, fields=sorted(changes))
    updated = await catalog.update_podcast(podcast.id, changes)
    return _podcast_response(updated)


@router.delete(
    "/{podcast_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete podcast",
    description="Delete a podcast together with its episodes and their audio.",
)
async def delete_podcast(
    podcast: PodcastDep, catalog: CatalogDep, audio: AudioDep
) -> Response:
    """Delete a podcast and everything generated for it."""
    episodes = await catalog.delete_podcast(podcast.id)
    for episode in episodes:
        if episode.audio_url:
            await audio.delete_episode_audio(podcast.id, episode.id)
    logger.info("podcast_removed", podcast_id=podcast.id, episode_count=len(episodes))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{podcast_id}/episodes",
    response_model=list[EpisodeResponse],
    summary="List episodes",
    description="Most recent episodes of a podcast, newest first.",
)
async def list_episodes(
    podcast: PodcastDep,
    catalog: CatalogDep,
    limit: int = Query(default=settings.episode_analysis_limit, ge=1, le=100),
) -> list[EpisodeResponse]:
    """List a podcast's episodes."""
    episodes = await catalog.list_recent_episodes(podcast.id, limit=limit)
    return [_episode_response(e) for e in episodes]


@router.get(
    "/{podcast_id}/episodes/{episode_id}",
    response_model=EpisodeResponse,
    summary="Get episode",
)
async def get_episode(podcast: PodcastDep, episode_id: str, catalog: CatalogDep) -> EpisodeResponse:
    """Get one episode of a podcast."""
    return _episode_response(await _podcast_episode(podcast, episode_id, catalog))


@router.delete(
    "/{podcast_id}/episodes/{episode_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete episode",
    description="Delete an episode and its stored audio.",
)
async def delete_episode(
    podcast: PodcastDep, episode_id: str, catalog: CatalogDep, audio: AudioDep
) -> Response:
    """Delete one episode of a podcast."""
    episode = await _podcast_episode(podcast, episode_id, catalog)
    if episode.audio_url:
        await audio.delete_episode_audio(podcast.id, episode.id)
    await catalog.delete_episode(episode.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post(
    "/{podcast_id}/episodes/{episode_id}/regenerate-audio",
    response_model=EpisodeResponse,
    summary="Regenerate episode audio",
    description="Synthesize the episode script again and replace its audio.",
)
async def regenerate_audio(
    podcast: PodcastDep, episode_id: str, catalog: CatalogDep, audio: AudioDep
) -> EpisodeResponse:
    """Regenerate the audio of an existing episode."""
    episode = await _podcast_episode(podcast, episode_id, catalog)
    if not episode.content.strip():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Episode has no content to generate audio for",
        )

    logger.info("regenerate_audio", podcast_id=podcast.id, episode_id=episode.id)
    try:
        audio_url = await audio.generate_and_store(episode.content, podcast.id, episode.id)
    except AudioGenerationError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e)) from e

    episode = await catalog.attach_audio(episode, audio_url)
    return _episode_response(episode)
