"""Background episode generation.

``GenerationQueue.submit`` creates the in-progress log up front so callers get
a log id to poll immediately; the Celery task then reloads the podcast and the
log and runs the orchestrator to completion.

``submit_due_generations`` is the scheduled trigger: the beat scheduler runs it
periodically to queue episodes for podcasts with auto-generation enabled.
"""

from datetime import UTC, datetime
from typing import Any

from podcast_engine.adapters.docstore import DocumentStore
from podcast_engine.config import settings
from podcast_engine.domain.enums import GenerationStatus
from podcast_engine.domain.errors import LogTerminatedError
from podcast_engine.logging import get_logger
from podcast_engine.services.catalog import PodcastCatalog
from podcast_engine.services.generation_log import GenerationLogRecorder, create_log, fail_log
from podcast_engine.services.orchestrator import EpisodeOrchestrator
from podcast_engine.services.providers import get_document_store
from podcast_engine.utils import run_async
from podcast_engine.worker import celery_app

logger = get_logger(__name__)


async def _fail_if_open(recorder: GenerationLogRecorder, log_id: str, error: str) -> None:
    """Fail the stored log unless the run already terminated it."""
    log = await recorder.get(log_id)
    if log is not None and not log.is_terminal:
        await recorder.save(fail_log(log, error))
        logger.error("generation_log_failed", log_id=log_id, error=error)


async def _run_episode(
    log_id: str,
    podcast_id: str,
    target_minutes: float | None,
    target_words: int | None,
    selected_topic: str | None,
) -> dict[str, Any]:
    store = get_document_store()
    recorder = GenerationLogRecorder(store)

    log = await recorder.get(log_id)
    if log is None:
        raise ValueError(f"Generation log not found: {log_id}")
    if log.is_terminal:
        # Redelivered after the run already finished
        raise LogTerminatedError(f"Generation log {log_id} is already {log.status.value}")

    try:
        podcast = await PodcastCatalog(store).get_podcast(podcast_id)
    except Exception as e:
        await recorder.save(fail_log(log, f"Could not load podcast: {e}"))
        raise

    try:
        outcome = await EpisodeOrchestrator(store).generate(
            podcast,
            target_minutes=target_minutes,
            target_words=target_words,
            selected_topic=selected_topic,
            log=log,
        )
    except Exception as e:
        await _fail_if_open(recorder, log_id, f"Generation crashed: {e}")
        raise
    return {
        "success": outcome.success,
        "log_id": outcome.log_id,
        "episode_id": outcome.episode.id if outcome.episode else None,
        "error": outcome.error,
    }


@celery_app.task(
    bind=True,
    name="generation.run_episode",
    max_retries=0,
)
def run_episode_task(
    self: Any,
    log_id: str,
    podcast_id: str,
    target_minutes: float | None = None,
    target_words: int | None = None,
    selected_topic: str | None = None,
) -> dict[str, Any]:
    """Generate one episode for a previously submitted request.

    Args:
        log_id: In-progress generation log created by GenerationQueue.submit
        podcast_id: Podcast to generate for

    Returns:
        Dict with success flag, log id, episode id and error
    """
    task_id = self.request.id
    logger.info("run_episode_started", task_id=task_id, log_id=log_id, podcast_id=podcast_id)

    result = run_async(
        _run_episode(log_id, podcast_id, target_minutes, target_words, selected_topic)
    )

    logger.info(
        "run_episode_finished",
        task_id=task_id,
        log_id=log_id,
        success=result["success"],
        episode_id=result["episode_id"],
    )
    return result


class GenerationQueue:
    """Submits episode generation to the worker."""

    def __init__(self, store: DocumentStore | None = None) -> None:
        self.store = store or get_document_store()
        self.recorder = GenerationLogRecorder(self.store)

    def enqueue(self, **kwargs: Any) -> str:
        """Send the task to the broker; returns the Celery task id."""
        result = run_episode_task.apply_async(kwargs=kwargs)
        return str(result.id)

    async def submit(
        self,
        podcast_id: str,
        target_minutes: float | None = None,
        target_words: int | None = None,
        selected_topic: str | None = None,
    ) -> str:
        """Create and save the in-progress log, enqueue the run and return the log id."""
        log = create_log(podcast_id)
        await self.recorder.save(log)

        try:
            task_id = self.enqueue(
                log_id=log.id,
                podcast_id=podcast_id,
                target_minutes=target_minutes,
                target_words=target_words,
                selected_topic=selected_topic,
            )
        except Exception as e:
            await self.recorder.save(fail_log(log, f"Could not queue generation: {e}"))
            raise
        logger.info("generation_submitted", log_id=log.id, podcast_id=podcast_id, task_id=task_id)
        return log.id


def _hours_since(timestamp: str, now: datetime) -> float:
    created = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    if created.tzinfo is None:
        created = created.replace(tzinfo=UTC)
    return (now - created).total_seconds() / 3600


async def submit_due_generations(
    queue: GenerationQueue, now: datetime | None = None
) -> dict[str, str]:
    """Queue a run for every auto-generated podcast that is due a new episode.

    A podcast is due when its latest episode is older than
    ``auto_generate_interval_hours`` (or it has none) and no run is already in
    progress for it.

    Returns:
        Mapping of podcast id to the generation log id queued for it
    """
    now = now or datetime.now(UTC)
    catalog = PodcastCatalog(queue.store)
    queued: dict[str, str] = {}

    for podcast in await catalog.list_podcasts(auto_generate=True):
        latest = await catalog.list_recent_episodes(podcast.id, limit=1)
        if latest:
            age = _hours_since(latest[0].created_at, now)
            if age <= settings.auto_generate_interval_hours:
                logger.info(
                    "scheduled_generation_skipped", podcast_id=podcast.id, hours=round(age, 1)
                )
                continue

        recent_logs = await queue.recorder.list_for_podcast(podcast.id, limit=1)
        if recent_logs and recent_logs[0].status == GenerationStatus.IN_PROGRESS:
            logger.info("scheduled_generation_running", podcast_id=podcast.id)
            continue

        try:
            queued[podcast.id] = await queue.submit(podcast.id)
        except Exception as e:
            # The remaining podcasts are still queued
            logger.error("scheduled_generation_failed", podcast_id=podcast.id, error=str(e))

    logger.info("scheduled_generation_checked", queued=len(queued))
    return queued


@celery_app.task(
    bind=True,
    name="generation.run_scheduled",
    max_retries=0,
)
def run_scheduled_task(self: Any) -> dict[str, Any]:
    """Queue episodes for every podcast due one (run by Celery beat)."""
    queued = run_async(submit_due_generations(GenerationQueue()))
    return {"queued": queued}
