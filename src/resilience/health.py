# src/resilience/health.py — v1
"""Rolling health counters for the upstream provider.

Every upstream attempt reports its outcome and latency. The error rate is an
exponentially weighted moving average: successes decay it toward 0, failures
push it toward 1.
"""

from __future__ import annotations

import logging
import time
from collections import Counter
from typing import Callable, Literal

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

HealthStatus = Literal["healthy", "degraded", "unhealthy"]

_ERROR_RATE_ALPHA = 0.1
_DEGRADED_ERROR_RATE = 0.1
_UNHEALTHY_ERROR_RATE = 0.5


class HealthSnapshot(BaseModel):
    """Point-in-time view of upstream health."""

    is_healthy: bool
    status: HealthStatus
    error_rate: float = Field(ge=0.0, le=1.0)
    last_response_time_ms: int = 0
    consecutive_failures: int = 0
    last_success_at: float | None = None
    seconds_since_success: float = 0.0
    total_successes: int = 0
    total_failures: int = 0
    error_counts: dict[str, int] = Field(default_factory=dict)


class HealthMonitor:
    """Outcome recorder feeding monitoring callers."""

    def __init__(
        self,
        failure_threshold: int = 3,
        degraded_idle_s: float = 60.0,
        unhealthy_idle_s: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._failure_threshold = failure_threshold
        self._degraded_idle = degraded_idle_s
        self._unhealthy_idle = unhealthy_idle_s
        self._clock = clock
        self._started_at = clock()
        self._is_healthy = True
        self._error_rate = 0.0
        self._last_latency_ms = 0
        self._consecutive_failures = 0
        self._last_success_at: float | None = None
        self._successes = 0
        self._failures = 0
        self._error_counts: Counter[str] = Counter()

    def record_outcome(
        self,
        success: bool,
        latency_ms: float,
        error: BaseException | None = None,
    ) -> None:
        """Record one upstream attempt."""
        self._last_latency_ms = int(latency_ms)
        if success:
            self._successes += 1
            self._consecutive_failures = 0
            self._error_rate *= 1.0 - _ERROR_RATE_ALPHA
            self._last_success_at = self._clock()
            if not self._is_healthy:
                logger.info("Upstream recovered after failures")
            self._is_healthy = True
            return

        self._failures += 1
        self._consecutive_failures += 1
        self._error_rate = self._error_rate * (1.0 - _ERROR_RATE_ALPHA) + _ERROR_RATE_ALPHA
        if error is not None:
            self._error_counts[type(error).__name__] += 1
        if self._is_healthy and self._consecutive_failures >= self._failure_threshold:
            self._is_healthy = False
            logger.warning(
                "Upstream marked unhealthy after %d consecutive failures",
                self._consecutive_failures,
            )

    def snapshot(self) -> HealthSnapshot:
        idle = self._clock() - (
            self._last_success_at if self._last_success_at is not None else self._started_at
        )
        return HealthSnapshot(
            is_healthy=self._is_healthy,
            status=self._derive_status(idle),
            error_rate=min(1.0, max(0.0, self._error_rate)),
            last_response_time_ms=self._last_latency_ms,
            consecutive_failures=self._consecutive_failures,
            last_success_at=self._last_success_at,
            seconds_since_success=idle,
            total_successes=self._successes,
            total_failures=self._failures,
            error_counts=dict(self._error_counts),
        )

    def _derive_status(self, idle_s: float) -> HealthStatus:
        if (
            not self._is_healthy
            or self._error_rate > _UNHEALTHY_ERROR_RATE
            or idle_s > self._unhealthy_idle
        ):
            return "unhealthy"
        if (
            self._consecutive_failures > 0
            or self._error_rate > _DEGRADED_ERROR_RATE
            or idle_s > self._degraded_idle
        ):
            return "degraded"
        return "healthy"
