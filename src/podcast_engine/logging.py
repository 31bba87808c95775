"""Structured logging.

Every module logs through ``get_logger(__name__)`` with snake_case event names
and keyword fields. Identifiers of the generation run in progress are kept in
context variables so that provider and service logs can be traced back to the
generation log they belong to.
"""

import logging
import sys
from typing import Any

import structlog

from podcast_engine.config import settings

# Keys bound for the duration of one generation run
GENERATION_CONTEXT_KEYS = ("log_id", "podcast_id", "episode_id")

_NOISY_LOGGERS = {
    "uvicorn.access": logging.WARNING,
    "celery": logging.INFO,
    "httpx": logging.WARNING,
    "httpcore": logging.WARNING,
    "google_genai": logging.WARNING,
}


def _renderer() -> Any:
    if settings.log_format == "json":
        return structlog.processors.JSONRenderer()
    return structlog.dev.ConsoleRenderer(colors=sys.stdout.isatty())


def setup_logging() -> None:
    """Route structlog and stdlib logging through one stdout handler.

    Safe to call more than once: the root handler is replaced, not added to.
    """
    pre_chain: list[Any] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
    ]

    structlog.configure(
        processors=[
            *pre_chain,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[
                structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                _renderer(),
            ],
        )
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(settings.log_level.upper())

    for name, level in _NOISY_LOGGERS.items():
        logging.getLogger(name).setLevel(level)


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_generation_context(**values: Any) -> None:
    """Attach run identifiers (log id, podcast id, episode id) to later log lines."""
    unknown = set(values) - set(GENERATION_CONTEXT_KEYS)
    if unknown:
        raise ValueError(f"Unsupported generation context keys: {sorted(unknown)}")
    structlog.contextvars.bind_contextvars(**values)


def clear_generation_context() -> None:
    structlog.contextvars.unbind_contextvars(*GENERATION_CONTEXT_KEYS)
