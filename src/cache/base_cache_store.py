# src/cache/base_cache_store.py — v1
"""Abstract response cache interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pegasus_gateway.cache.models import CacheEntry, CacheStats


class BaseResponseCache(ABC):
    """Unified interface for response cache backends."""

    @abstractmethod
    def get(self, key: str) -> CacheEntry | None:
        """Return a fresh entry, or None when absent or expired."""

    @abstractmethod
    def get_stale(self, key: str) -> CacheEntry | None:
        """Return an entry regardless of age (open-circuit fallback)."""

    @abstractmethod
    def put(self, key: str, response: str, model: str) -> CacheEntry:
        """Store a response."""

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove an entry."""

    @abstractmethod
    def clear(self) -> None:
        """Remove every entry."""

    @abstractmethod
    def purge_expired(self) -> int:
        """Drop expired entries, returning how many were removed."""

    @abstractmethod
    def stats(self) -> CacheStats:
        """Current counters."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of fresh-or-unswept entries."""
