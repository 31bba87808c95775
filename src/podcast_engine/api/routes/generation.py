"""Episode generation endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from podcast_engine.api.deps import GenerationQueueDep, PodcastDep
from podcast_engine.logging import get_logger

router = APIRouter(prefix="/podcasts", tags=["Generation"])
logger = get_logger(__name__)


class GenerateEpisodeRequest(BaseModel):
    """Request to generate an episode."""

    target_minutes: float | None = Field(None, gt=0)
    target_words: int | None = Field(None, gt=0)
    selected_topic: str | None = Field(None, min_length=1, max_length=500)


class GenerateEpisodeResponse(BaseModel):
    """Accepted generation request."""

    log_id: str
    status: str
    message: str


@router.post(
    "/{podcast_id}/episodes/generate",
    response_model=GenerateEpisodeResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Generate episode",
    description="Queue generation of a new episode. Poll the returned log for progress.",
)
async def generate_episode(
    podcast: PodcastDep,
    queue: GenerationQueueDep,
    request: GenerateEpisodeRequest | None = None,
) -> GenerateEpisodeResponse:
    """Queue episode generation and return the generation log id."""
    request = request or GenerateEpisodeRequest()
    log_id = await queue.submit(
        podcast.id,
        target_minutes=request.target_minutes,
        target_words=request.target_words,
        selected_topic=request.selected_topic,
    )
    logger.info("generation_accepted", podcast_id=podcast.id, log_id=log_id)

    return GenerateEpisodeResponse(
        log_id=log_id,
        status="in_progress",
        message="Episode generation queued",
    )
