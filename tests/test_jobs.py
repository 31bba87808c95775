"""Tests for background generation jobs."""

import dataclasses
from datetime import UTC, datetime, timedelta

import pytest

from podcast_engine.domain.enums import GenerationStatus
from podcast_engine.domain.errors import LogTerminatedError, PodcastNotFoundError
from podcast_engine.jobs import generation
from podcast_engine.adapters.docstore import EPISODES
from podcast_engine.jobs.generation import GenerationQueue, submit_due_generations
from podcast_engine.services.generation_log import (
    GenerationLogRecorder,
    complete_log,
    create_log,
)


@pytest.fixture
def patched_store(store, monkeypatch):
    """Point the task at the test store."""
    monkeypatch.setattr(generation, "get_document_store", lambda: store)
    return store


class TestGenerationQueue:
    """Tests for GenerationQueue.submit."""

    @pytest.mark.asyncio
    async def test_submit_saves_log_and_enqueues(self, store, recording_queue):
        queue = GenerationQueue(store)
        queue.enqueue = recording_queue

        log_id = await queue.submit("podcast-1", target_words=500)

        log = await GenerationLogRecorder(store).get(log_id)
        assert log.status == GenerationStatus.IN_PROGRESS
        assert recording_queue.enqueued == [
            {
                "log_id": log_id,
                "podcast_id": "podcast-1",
                "target_minutes": None,
                "target_words": 500,
                "selected_topic": None,
            }
        ]


class TestRunEpisode:
    """Tests for the worker-side run."""

    @pytest.mark.asyncio
    async def test_runs_queued_generation(self, patched_store, catalog, podcast):
        await catalog.create_podcast(podcast)
        log = create_log(podcast.id)
        await GenerationLogRecorder(patched_store).save(log)

        result = await generation._run_episode(log.id, podcast.id, None, 300, None)

        assert result["success"], result["error"]
        assert result["log_id"] == log.id
        saved = await GenerationLogRecorder(patched_store).get(log.id)
        assert saved.status == GenerationStatus.COMPLETED
        assert saved.episode_id == result["episode_id"]

    @pytest.mark.asyncio
    async def test_missing_log(self, patched_store):
        with pytest.raises(ValueError, match="not found"):
            await generation._run_episode("missing", "podcast-1", None, None, None)

    @pytest.mark.asyncio
    async def test_redelivered_terminal_log(self, patched_store):
        log = complete_log(create_log("podcast-1"))
        await GenerationLogRecorder(patched_store).save(log)

        with pytest.raises(LogTerminatedError):
            await generation._run_episode(log.id, "podcast-1", None, None, None)

    @pytest.mark.asyncio
    async def test_missing_podcast_fails_log(self, patched_store):
        log = create_log("gone")
        await GenerationLogRecorder(patched_store).save(log)

        with pytest.raises(PodcastNotFoundError):
            await generation._run_episode(log.id, "gone", None, None, None)

        saved = await GenerationLogRecorder(patched_store).get(log.id)
        assert saved.status == GenerationStatus.FAILED
        assert "Could not load podcast" in saved.error

    @pytest.mark.asyncio
    async def test_crashed_run_fails_log(self, patched_store, catalog, podcast, monkeypatch):
        """An error escaping the orchestrator still terminates the stored log."""

        class CrashingOrchestrator:
            def __init__(self, store):
                pass

            async def generate(self, podcast, **kwargs):
                raise RuntimeError("worker time limit")

        monkeypatch.setattr(generation, "EpisodeOrchestrator", CrashingOrchestrator)
        await catalog.create_podcast(podcast)
        log = create_log(podcast.id)
        await GenerationLogRecorder(patched_store).save(log)

        with pytest.raises(RuntimeError, match="worker time limit"):
            await generation._run_episode(log.id, podcast.id, None, 300, None)

        saved = await GenerationLogRecorder(patched_store).get(log.id)
        assert saved.status == GenerationStatus.FAILED
        assert saved.error == "Generation crashed: worker time limit"


class TestSubmitFailure:
    """Tests for broker failures during submit."""

    @pytest.mark.asyncio
    async def test_enqueue_failure_fails_log(self, store):
        def broken_enqueue(**kwargs):
            raise ConnectionError("broker down")

        queue = GenerationQueue(store)
        queue.enqueue = broken_enqueue

        with pytest.raises(ConnectionError):
            await queue.submit("podcast-1")

        logs = await GenerationLogRecorder(store).list_for_podcast("podcast-1")
        assert [log.status for log in logs] == [GenerationStatus.FAILED]
        assert logs[0].error == "Could not queue generation: broker down"


NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


class TestScheduledGeneration:
    """Tests for submit_due_generations."""

    async def _episode_aged(self, catalog, store, podcast_id: str, hours: float) -> None:
        episode = await catalog.create_episode(
            podcast_id=podcast_id,
            title="Earlier",
            description="",
            content="Earlier coverage.",
            sources=[],
            bullet_points=[],
        )
        created = (NOW - timedelta(hours=hours)).isoformat()
        await store.update(EPISODES, episode.id, {"created_at": created})

    @pytest.mark.asyncio
    async def test_queues_only_due_podcasts(self, store, catalog, podcast, recording_queue):
        fresh = dataclasses.replace(podcast, id="fresh", auto_generate=True)
        stale = dataclasses.replace(podcast, id="stale", auto_generate=True)
        empty = dataclasses.replace(podcast, id="empty", auto_generate=True)
        manual = dataclasses.replace(podcast, id="manual")
        for p in (fresh, stale, empty, manual):
            await catalog.create_podcast(p)
        await self._episode_aged(catalog, store, "fresh", hours=10)
        await self._episode_aged(catalog, store, "stale", hours=80)
        await self._episode_aged(catalog, store, "manual", hours=200)

        queue = GenerationQueue(store)
        queue.enqueue = recording_queue
        queued = await submit_due_generations(queue, now=NOW)

        assert set(queued) == {"stale", "empty"}
        assert sorted(e["podcast_id"] for e in recording_queue.enqueued) == ["empty", "stale"]
        log = await GenerationLogRecorder(store).get(queued["stale"])
        assert log.status == GenerationStatus.IN_PROGRESS

    @pytest.mark.asyncio
    async def test_skips_podcast_with_run_in_progress(
        self, store, catalog, podcast, recording_queue
    ):
        await catalog.create_podcast(dataclasses.replace(podcast, auto_generate=True))
        await GenerationLogRecorder(store).save(create_log(podcast.id))

        queue = GenerationQueue(store)
        queue.enqueue = recording_queue

        assert await submit_due_generations(queue, now=NOW) == {}
        assert recording_queue.enqueued == []

    @pytest.mark.asyncio
    async def test_enqueue_failure_does_not_stop_others(self, store, catalog, podcast):
        for podcast_id in ("first", "second"):
            await catalog.create_podcast(
                dataclasses.replace(podcast, id=podcast_id, auto_generate=True)
            )
        calls: list[str] = []

        def flaky_enqueue(**kwargs):
            calls.append(kwargs["podcast_id"])
            if len(calls) == 1:
                raise ConnectionError("broker down")
            return "task-1"

        queue = GenerationQueue(store)
        queue.enqueue = flaky_enqueue
        queued = await submit_due_generations(queue, now=NOW)

        assert len(calls) == 2
        assert list(queued) == [calls[1]]
        failed = await GenerationLogRecorder(store).list_for_podcast(calls[0])
        assert [log.status for log in failed] == [GenerationStatus.FAILED]
