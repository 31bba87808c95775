"""Celery job definitions."""

from podcast_engine.jobs.generation import GenerationQueue, run_episode_task

__all__ = [
    "GenerationQueue",
    "run_episode_task",
]
