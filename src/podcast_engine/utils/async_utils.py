"""Async utilities for running coroutines in sync contexts and bounding calls."""

import asyncio
from collections.abc import Awaitable, Coroutine
from typing import Any, TypeVar

from podcast_engine.config import settings

T = TypeVar("T")

_loop: asyncio.AbstractEventLoop | None = None


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run a coroutine to completion from synchronous code (Celery tasks, the CLI).

    All calls share one event loop that is never closed, because httpx and
    google-genai cache clients bound to the loop they were created on, and a
    Celery worker runs many generations one after another in the same process.

    Must not be called while an event loop is running in this thread.
    """
    global _loop
    if _loop is None or _loop.is_closed():
        _loop = asyncio.new_event_loop()
    return _loop.run_until_complete(coro)


async def with_timeout(awaitable: Awaitable[T], timeout: float | None = None) -> T:
    """Await a provider call, raising TimeoutError after the configured bound.

    Args:
        awaitable: The call to bound.
        timeout: Seconds to wait; defaults to ``provider_timeout_seconds``.
    """
    seconds = timeout if timeout is not None else settings.provider_timeout_seconds
    return await asyncio.wait_for(awaitable, timeout=seconds)
