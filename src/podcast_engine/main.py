"""FastAPI application: podcast management, generation requests and run logs."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from podcast_engine import __version__
from podcast_engine.api.routes import generation, health, logs, podcasts
from podcast_engine.config import settings
from podcast_engine.domain.errors import PodcastEngineError
from podcast_engine.logging import get_logger, setup_logging
from podcast_engine.services.providers import get_document_store

setup_logging()
logger = get_logger(__name__)

API_PREFIX = "/api/v1"


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    store = get_document_store()
    logger.info(
        "application_starting",
        version=__version__,
        docstore=store.name,
        llm=settings.llm_provider,
        voiceover=settings.voiceover_provider,
    )
    # Startup continues when the store is down; /health/ready reports it
    if not await store.health_check():
        logger.error("docstore_unreachable", docstore=store.name)

    yield

    logger.info("application_stopped")


async def engine_error_handler(request: Request, exc: PodcastEngineError) -> JSONResponse:
    """Engine errors that escape a route are server-side failures, not client errors."""
    logger.error("unhandled_engine_error", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": str(exc)},
    )


def create_app() -> FastAPI:
    app = FastAPI(
        title="AI Podcast Engine",
        description="Researched, differentiated, voiced podcast episode generation",
        version=__version__,
        lifespan=lifespan,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(PodcastEngineError, engine_error_handler)

    app.include_router(health.router)
    for module in (podcasts, generation, logs):
        app.include_router(module.router, prefix=API_PREFIX)

    # Audio written by local storage is served next to the API
    if settings.storage_provider.lower() == "local":
        media_root = Path(settings.storage_base_path)
        media_root.mkdir(parents=True, exist_ok=True)
        app.mount("/media", StaticFiles(directory=media_root), name="media")

    @app.get("/", include_in_schema=False)
    async def root() -> dict[str, str]:
        return {"name": app.title, "version": __version__, "docs": app.docs_url or ""}

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "podcast_engine.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_reload,
    )
