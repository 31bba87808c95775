"""Celery application for background episode generation."""

from celery import Celery

from podcast_engine.config import settings
from podcast_engine.logging import setup_logging

setup_logging()

celery_app = Celery(
    "podcast_engine",
    broker=settings.celery_broker_url,
    backend=settings.celery_result_backend,
    include=["podcast_engine.jobs.generation"],
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    # A generation run is long and not idempotent: one task per worker process,
    # acknowledged only after it finishes
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    worker_prefetch_multiplier=1,
    worker_concurrency=settings.worker_concurrency,
    # Research plus synthesis of a long episode can take several minutes
    task_soft_time_limit=settings.generation_time_limit_seconds - 60,
    task_time_limit=settings.generation_time_limit_seconds,
    task_track_started=True,
    result_expires=86400,
    task_routes={
        "generation.run_episode": {"queue": "high"},
        "generation.run_scheduled": {"queue": "celery"},
    },
    beat_schedule={
        "generate-due-episodes": {
            "task": "generation.run_scheduled",
            "schedule": settings.auto_generate_check_seconds,
        },
    },
    # Logging is configured by setup_logging above
    worker_hijack_root_logger=False,
)
