# src/tracking/usage.py — v1
"""Running usage counters for one gateway instance."""

from __future__ import annotations

from pegasus_gateway.tracking.models import UsageStats


class UsageTracker:
    """Accumulate request, token, cache and compression counters."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._requests = 0
        self._completions = 0
        self._tokens = 0
        self._cache_hits = 0
        self._cache_misses = 0
        self._compression_savings = 0
        self._fallback_recoveries = 0
        self._stale_responses = 0
        self._failures = 0

    def record_request(self, compression_savings: int = 0) -> None:
        self._requests += 1
        self._compression_savings += max(0, compression_savings)

    def record_cache_hit(self) -> None:
        self._cache_hits += 1

    def record_cache_miss(self) -> None:
        self._cache_misses += 1

    def record_completion(self, tokens: int, fallback_used: bool = False) -> None:
        self._completions += 1
        self._tokens += tokens
        if fallback_used:
            self._fallback_recoveries += 1

    def record_stale_response(self) -> None:
        self._stale_responses += 1

    def record_failure(self) -> None:
        self._failures += 1

    def snapshot(self, cache_size: int = 0, deduplicated: int = 0) -> UsageStats:
        lookups = self._cache_hits + self._cache_misses
        return UsageStats(
            total_requests=self._requests,
            upstream_completions=self._completions,
            total_tokens=self._tokens,
            average_tokens_per_request=(
                self._tokens / self._completions if self._completions else 0.0
            ),
            cache_hits=self._cache_hits,
            cache_misses=self._cache_misses,
            cache_hit_rate=(self._cache_hits / lookups) * 100.0 if lookups else 0.0,
            cache_size=cache_size,
            deduplicated_requests=deduplicated,
            compression_savings=self._compression_savings,
            fallback_recoveries=self._fallback_recoveries,
            stale_responses=self._stale_responses,
            failed_requests=self._failures,
        )
