"""Health, liveness and readiness endpoints."""

import asyncio

import redis
from fastapi import APIRouter, status
from pydantic import BaseModel

from podcast_engine import __version__
from podcast_engine.api.deps import StoreDep
from podcast_engine.config import settings
from podcast_engine.logging import get_logger

router = APIRouter(tags=["Health"])
logger = get_logger(__name__)


class HealthResponse(BaseModel):
    """Service status and which providers are real rather than stubs."""

    status: str
    version: str
    components: dict[str, bool] | None = None


class ReadinessResponse(BaseModel):
    ready: bool
    docstore: bool
    redis: bool


def _configured_providers() -> dict[str, str]:
    return {
        "llm": settings.llm_provider,
        "search": ",".join(settings.search_providers),
        "embeddings": settings.embedding_provider,
        "voiceover": settings.voiceover_provider,
    }


def _ping_redis() -> bool:
    client = redis.from_url(settings.redis_url, socket_connect_timeout=2, socket_timeout=2)
    try:
        return bool(client.ping())
    finally:
        client.close()


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check",
    description="Reports that the API is up and which providers are configured.",
)
async def health_check() -> HealthResponse:
    providers = _configured_providers()
    return HealthResponse(
        status="healthy",
        version=__version__,
        components={
            kind: all(p.strip().lower() != "stub" for p in names.split(","))
            for kind, names in providers.items()
        },
    )


@router.get(
    "/health/ready",
    response_model=ReadinessResponse,
    summary="Readiness check",
    description="Checks the document store and the Redis broker used for background runs.",
)
async def readiness_check(store: StoreDep) -> ReadinessResponse:
    docstore_ok = await store.health_check()

    try:
        redis_ok = await asyncio.get_running_loop().run_in_executor(None, _ping_redis)
    except redis.RedisError as e:
        logger.warning("redis_unavailable", error=str(e))
        redis_ok = False

    return ReadinessResponse(
        ready=docstore_ok and redis_ok,
        docstore=docstore_ok,
        redis=redis_ok,
    )


@router.get(
    "/health/live",
    status_code=status.HTTP_200_OK,
    summary="Liveness probe",
)
async def liveness_check() -> dict[str, str]:
    return {"status": "alive"}
