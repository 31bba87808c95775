"""Generation log reducers and persistence.

A GenerationLog is an immutable value. Each reducer returns a new log with one
change applied, which keeps the duration invariant (``total_ms`` equals the sum
of the stage breakdown) in a single place and makes terminal logs impossible to
modify by accident.
"""

import dataclasses
from typing import Any

from podcast_engine.adapters.docstore import GENERATION_LOGS, DocumentStore
from podcast_engine.domain.enums import GenerationStatus, StageName
from podcast_engine.domain.errors import LogTerminatedError
from podcast_engine.domain.models import Decision, GenerationLog, new_id
from podcast_engine.logging import get_logger

logger = get_logger(__name__)


def _check_open(log: GenerationLog) -> None:
    if log.is_terminal:
        raise LogTerminatedError(f"Generation log {log.id} is already {log.status.value}")


def _stage_key(stage: StageName | str) -> str:
    # Raises ValueError for names outside the closed set
    return StageName(stage).value


def create_log(podcast_id: str) -> GenerationLog:
    """Start a new in-progress log with every stage empty."""
    return GenerationLog(id=new_id(), podcast_id=podcast_id)


def update_stage(
    log: GenerationLog,
    stage: StageName | str,
    data: dict[str, Any] | None,
    elapsed_ms: int,
) -> GenerationLog:
    """Record stage data and the cumulative time spent in the stage.

    ``data`` is merged into what the stage already holds, since several
    pipeline steps report into the same stage. ``elapsed_ms`` replaces the
    stage's previous duration.
    """
    _check_open(log)
    key = _stage_key(stage)

    stages = dict(log.stages)
    if data is not None:
        stages[key] = {**(stages.get(key) or {}), **data}

    breakdown = dict(log.stage_breakdown)
    breakdown[key] = max(0, int(elapsed_ms))

    return dataclasses.replace(
        log,
        stages=stages,
        stage_breakdown=breakdown,
        total_ms=sum(breakdown.values()),
    )


def add_decision(
    log: GenerationLog,
    stage: StageName | str,
    decision: str,
    reasoning: str,
    alternatives: list[str] | tuple[str, ...] = (),
) -> GenerationLog:
    """Append a decision entry."""
    _check_open(log)
    entry = Decision(
        stage=_stage_key(stage),
        decision=decision,
        reasoning=reasoning,
        alternatives=tuple(alternatives),
    )
    return dataclasses.replace(log, decisions=(*log.decisions, entry))


def set_episode_id(log: GenerationLog, episode_id: str) -> GenerationLog:
    """Link the log to the episode it produced."""
    _check_open(log)
    return dataclasses.replace(log, episode_id=episode_id)


def complete_log(log: GenerationLog) -> GenerationLog:
    """Mark the run as completed."""
    _check_open(log)
    return dataclasses.replace(log, status=GenerationStatus.COMPLETED, error=None)


def fail_log(log: GenerationLog, error: str) -> GenerationLog:
    """Mark the run as failed with a human-readable reason."""
    _check_open(log)
    return dataclasses.replace(log, status=GenerationStatus.FAILED, error=error or "Unknown error")


def strip_none(value: Any) -> Any:
    """Recursively drop None values from dicts and lists."""
    if isinstance(value, dict):
        return {k: strip_none(v) for k, v in value.items() if v is not None}
    if isinstance(value, list | tuple):
        return [strip_none(v) for v in value if v is not None]
    return value


class GenerationLogRecorder:
    """Persists generation logs in the ``episodeGenerationLogs`` collection."""

    def __init__(self, store: DocumentStore) -> None:
        self.store = store

    async def save(self, log: GenerationLog) -> None:
        await self.store.set(GENERATION_LOGS, log.id, strip_none(log.to_document()))
        logger.debug(
            "generation_log_saved",
            log_id=log.id,
            status=log.status.value,
            total_ms=log.total_ms,
        )

    async def get(self, log_id: str) -> GenerationLog | None:
        data = await self.store.get(GENERATION_LOGS, log_id)
        return GenerationLog.from_document(data) if data else None

    async def get_by_episode_id(self, episode_id: str) -> GenerationLog | None:
        docs = await self.store.query(
            GENERATION_LOGS,
            filters={"episode_id": episode_id},
            order_by="timestamp",
            descending=True,
            limit=1,
        )
        return GenerationLog.from_document(docs[0]) if docs else None

    async def list_for_podcast(
        self, podcast_id: str, limit: int | None = None
    ) -> list[GenerationLog]:
        """Logs for a podcast, newest first."""
        docs = await self.store.query(
            GENERATION_LOGS,
            filters={"podcast_id": podcast_id},
            order_by="timestamp",
            descending=True,
            limit=limit,
        )
        return [GenerationLog.from_document(d) for d in docs]
