# src/cache/models.py — v1
"""Cache domain models: CacheEntry, CacheStats."""

from __future__ import annotations

from pydantic import BaseModel


class CacheEntry(BaseModel):
    """Cached upstream response for one (model, prompt) key."""

    response: str
    stored_at: float
    token_count: int
    model: str

    def age(self, now: float) -> float:
        """Seconds elapsed since the entry was stored."""
        return now - self.stored_at


class CacheStats(BaseModel):
    """Counters and occupancy of a response cache."""

    size: int
    max_size: int
    stale_size: int = 0
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        """Hits over lookups, in percent."""
        lookups = self.hits + self.misses
        return (self.hits / lookups) * 100.0 if lookups else 0.0
