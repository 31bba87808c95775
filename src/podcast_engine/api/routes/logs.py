"""Generation log endpoints."""

from typing import Any

from fastapi import APIRouter, HTTPException, Query, status

from podcast_engine.api.deps import CallerDep, CatalogDep, PodcastDep, RecorderDep
from podcast_engine.domain.errors import PodcastNotFoundError
from podcast_engine.domain.models import GenerationLog

router = APIRouter(tags=["Generation Logs"])


async def _check_access(log: GenerationLog, catalog: CatalogDep, caller_id: str | None) -> None:
    try:
        podcast = await catalog.get_podcast(log.podcast_id)
    except PodcastNotFoundError:
        return
    if podcast.owner_id and podcast.owner_id != caller_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not allowed to access this generation log",
        )


@router.get(
    "/logs/{log_id}",
    summary="Get generation log",
    description="Full audit trail of one generation run: stages, timings and decisions.",
)
async def get_log(
    log_id: str, recorder: RecorderDep, catalog: CatalogDep, caller_id: CallerDep
) -> dict[str, Any]:
    log = await recorder.get(log_id)
    if log is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Generation log {log_id} not found",
        )
    await _check_access(log, catalog, caller_id)
    return log.to_document()


@router.get(
    "/episodes/{episode_id}/log",
    summary="Get an episode's generation log",
)
async def get_episode_log(
    episode_id: str, recorder: RecorderDep, catalog: CatalogDep, caller_id: CallerDep
) -> dict[str, Any]:
    log = await recorder.get_by_episode_id(episode_id)
    if log is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No generation log for episode {episode_id}",
        )
    await _check_access(log, catalog, caller_id)
    return log.to_document()


@router.get(
    "/podcasts/{podcast_id}/logs",
    summary="List generation logs",
    description="Generation runs of a podcast, newest first.",
)
async def list_logs(
    podcast: PodcastDep,
    recorder: RecorderDep,
    limit: int = Query(default=20, ge=1, le=100),
) -> list[dict[str, Any]]:
    logs = await recorder.list_for_podcast(podcast.id, limit=limit)
    return [log.to_document() for log in logs]
