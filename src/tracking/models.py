# src/tracking/models.py — v1
"""Tracking domain models: UsageStats."""

from __future__ import annotations

from pydantic import BaseModel


class UsageStats(BaseModel):
    """Token and cache usage of a gateway instance since start or reset."""

    total_requests: int = 0
    upstream_completions: int = 0
    total_tokens: int = 0
    average_tokens_per_request: float = 0.0
    cache_hits: int = 0
    cache_misses: int = 0
    cache_hit_rate: float = 0.0
    cache_size: int = 0
    deduplicated_requests: int = 0
    compression_savings: int = 0
    fallback_recoveries: int = 0
    stale_responses: int = 0
    failed_requests: int = 0
