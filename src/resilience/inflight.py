# src/resilience/inflight.py — v1
"""Collapse concurrent identical requests onto one upstream call.

The first caller for a key registers a task before its first await; later
callers await the same task. The entry is removed by a done-callback, so it
disappears on success, failure or cancellation alike. Callers await through
asyncio.shield: a caller that gives up does not cancel the shared call, which
still completes and populates the cache.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class InFlightTracker(Generic[T]):
    """Map of request key to the one outstanding task for it."""

    def __init__(self) -> None:
        self._pending: dict[str, asyncio.Task[T]] = {}
        self._shared_hits = 0

    async def dedupe(self, key: str, producer: Callable[[], Awaitable[T]]) -> T:
        """Await the pending task for ``key``, starting ``producer()`` if none exists."""
        task = self._pending.get(key)
        if task is not None:
            self._shared_hits += 1
            logger.debug("Joining in-flight request %s", key[:12])
        else:
            task = asyncio.ensure_future(producer())
            self._pending[key] = task
            task.add_done_callback(lambda t, k=key: self._on_done(k, t))
        return await asyncio.shield(task)

    def is_pending(self, key: str) -> bool:
        return key in self._pending

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    @property
    def shared_hits(self) -> int:
        """Callers that were served by another caller's in-flight request."""
        return self._shared_hits

    def _on_done(self, key: str, task: asyncio.Task[T]) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]
        # Mark the outcome retrieved when every awaiting caller went away.
        if not task.cancelled():
            task.exception()
