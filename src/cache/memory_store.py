# src/cache/memory_store.py — v1
"""In-process response cache with TTL expiry, bounded capacity and a sweeper.

Entries live in an insertion-ordered dict: when the store is full the oldest
insertion is evicted. Expired entries are never returned by get(); they move
to a bounded stale area that only get_stale() reads, so an open circuit can
still serve the last known answer.
"""

from __future__ import annotations

import asyncio
import logging
import math
import time
from collections import OrderedDict
from typing import Callable

from pegasus_gateway.cache.base_cache_store import BaseResponseCache
from pegasus_gateway.cache.models import CacheEntry, CacheStats

logger = logging.getLogger(__name__)


def estimate_tokens(text: str) -> int:
    """Rough token estimate: four characters per token."""
    return math.ceil(len(text) / 4)


class MemoryResponseCache(BaseResponseCache):
    """Dict-backed cache store owned by a single gateway instance."""

    def __init__(
        self,
        max_age_s: float = 3600.0,
        max_size: int = 1000,
        sweep_interval_s: float = 300.0,
        stale_max_age_s: float = 86400.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._max_age = max_age_s
        self._max_size = max_size
        self._sweep_interval = sweep_interval_s
        self._stale_max_age = stale_max_age_s
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._stale: OrderedDict[str, CacheEntry] = OrderedDict()
        self._sweeper: asyncio.Task[None] | None = None
        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    # --- lookups ---

    def get(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is None:
            self._misses += 1
            return None
        if self._is_expired(entry, self._clock()):
            self._retire(key)
            self._misses += 1
            logger.debug("Cache entry %s expired on access", key[:12])
            return None
        self._hits += 1
        return entry

    def get_stale(self, key: str) -> CacheEntry | None:
        entry = self._entries.get(key)
        if entry is not None:
            return entry
        return self._stale.get(key)

    # --- mutations ---

    def put(self, key: str, response: str, model: str) -> CacheEntry:
        if key in self._entries:
            del self._entries[key]
        elif len(self._entries) >= self._max_size:
            oldest = next(iter(self._entries))
            del self._entries[oldest]
            self._evictions += 1
            logger.debug("Cache full (%d), evicted %s", self._max_size, oldest[:12])

        entry = CacheEntry(
            response=response,
            stored_at=self._clock(),
            token_count=estimate_tokens(response),
            model=model,
        )
        self._entries[key] = entry
        self._stale.pop(key, None)
        return entry

    def delete(self, key: str) -> None:
        self._entries.pop(key, None)
        self._stale.pop(key, None)

    def clear(self) -> None:
        self._entries.clear()
        self._stale.clear()
        logger.info("Response cache cleared")

    def purge_expired(self) -> int:
        now = self._clock()
        expired = [k for k, e in self._entries.items() if self._is_expired(e, now)]
        for key in expired:
            self._retire(key)

        stale_expired = [
            k for k, e in self._stale.items() if e.age(now) > self._stale_max_age
        ]
        for key in stale_expired:
            del self._stale[key]

        if expired or stale_expired:
            logger.debug(
                "Cache sweep removed %d expired and %d stale entries",
                len(expired), len(stale_expired),
            )
        return len(expired)

    def stats(self) -> CacheStats:
        return CacheStats(
            size=len(self._entries),
            max_size=self._max_size,
            stale_size=len(self._stale),
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            expirations=self._expirations,
        )

    def __len__(self) -> int:
        return len(self._entries)

    # --- background sweep ---

    def start_sweeper(self) -> None:
        """Start the periodic expiry sweep on the running event loop."""
        if self._sweeper is not None and not self._sweeper.done():
            return
        self._sweeper = asyncio.create_task(self._sweep_loop(), name="cache-sweeper")
        logger.debug("Cache sweeper started (every %.0fs)", self._sweep_interval)

    async def stop_sweeper(self) -> None:
        """Cancel the sweep task and wait for it to finish."""
        if self._sweeper is None:
            return
        self._sweeper.cancel()
        try:
            await self._sweeper
        except asyncio.CancelledError:
            pass
        self._sweeper = None
        logger.debug("Cache sweeper stopped")

    @property
    def sweeper_running(self) -> bool:
        return self._sweeper is not None and not self._sweeper.done()

    async def _sweep_loop(self) -> None:
        while True:
            await asyncio.sleep(self._sweep_interval)
            try:
                self.purge_expired()
            except Exception:
                logger.exception("Cache sweep failed (non-fatal)")

    # --- internals ---

    def _is_expired(self, entry: CacheEntry, now: float) -> bool:
        return entry.age(now) > self._max_age

    def _retire(self, key: str) -> None:
        """Move an expired entry to the stale area."""
        entry = self._entries.pop(key)
        self._expirations += 1
        self._stale[key] = entry
        self._stale.move_to_end(key)
        while len(self._stale) > self._max_size:
            self._stale.popitem(last=False)
