# tests/unit/cache/test_base_cache_store.py — v1
"""Tests for cache/base_cache_store.py — BaseResponseCache ABC."""

from __future__ import annotations

import pytest

from pegasus_gateway.cache.base_cache_store import BaseResponseCache
from pegasus_gateway.cache.memory_store import MemoryResponseCache


class TestBaseResponseCache:
    def test_cannot_instantiate(self):
        with pytest.raises(TypeError):
            BaseResponseCache()  # type: ignore[abstract]

    def test_has_required_methods(self):
        for method in ["get", "get_stale", "put", "delete", "clear", "purge_expired", "stats"]:
            assert hasattr(BaseResponseCache, method)

    def test_memory_store_implements_interface(self):
        assert isinstance(MemoryResponseCache(), BaseResponseCache)
