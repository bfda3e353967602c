# src/resilience/retry.py — v1
"""Bounded retries with exponential backoff and jitter for one upstream model.

Only transport failures are retried. Authoritative verdicts (authentication,
rate limiting) and malformed responses are re-raised on the first occurrence.
"""

from __future__ import annotations

import asyncio
import logging
import random
import socket
import time
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Awaitable, Callable, Protocol, TypeVar

from pegasus_gateway.core.errors import (
    AuthoritativeUpstreamError,
    ResponseShapeError,
    RetryExhaustedError,
    TransportError,
    UpstreamTimeoutError,
)

if TYPE_CHECKING:
    from pegasus_gateway.config.settings import Settings
    from pegasus_gateway.resilience.health import HealthMonitor

logger = logging.getLogger(__name__)

T = TypeVar("T")


class SleepFunc(Protocol):
    """Injectable async sleep."""

    async def __call__(self, seconds: float) -> None: ...


class ErrorKind(str, Enum):
    """How the retry executor treats a failure."""

    TRANSPORT = "transport"
    AUTHORITATIVE = "authoritative"
    RESPONSE_SHAPE = "response_shape"
    UNKNOWN = "unknown"

    @property
    def retryable(self) -> bool:
        return self is ErrorKind.TRANSPORT


@dataclass(frozen=True)
class RetryPolicy:
    """Retry configuration for one model attempt sequence."""

    max_attempts: int = 3
    base_delay_s: float = 1.0
    jitter_ratio: float = 1.0
    attempt_timeout_s: float | None = 90.0

    @classmethod
    def from_settings(cls, settings: Settings) -> RetryPolicy:
        return cls(
            max_attempts=settings.retry_max_attempts,
            base_delay_s=settings.retry_base_delay_s,
            jitter_ratio=settings.retry_jitter_ratio,
            attempt_timeout_s=settings.attempt_timeout_s,
        )


_TRANSPORT_MARKERS = (
    "econnreset",
    "econnrefused",
    "etimedout",
    "enotfound",
    "socket",
    "connection reset",
    "connection refused",
    "timed out",
    "name resolution",
)
_AUTHORITATIVE_MARKERS = ("401", "unauthorized", "invalid api key", "429", "rate limit")


def classify_error(error: BaseException) -> ErrorKind:
    """Classify an exception into a retry error kind."""
    if isinstance(error, AuthoritativeUpstreamError):
        return ErrorKind.AUTHORITATIVE
    if isinstance(error, ResponseShapeError):
        return ErrorKind.RESPONSE_SHAPE
    if isinstance(error, (TransportError, TimeoutError, ConnectionError, socket.gaierror)):
        return ErrorKind.TRANSPORT

    msg = str(error).lower()
    if any(marker in msg for marker in _AUTHORITATIVE_MARKERS):
        return ErrorKind.AUTHORITATIVE
    if any(marker in msg for marker in _TRANSPORT_MARKERS):
        return ErrorKind.TRANSPORT
    return ErrorKind.UNKNOWN


def compute_delay(
    policy: RetryPolicy, retry_index: int, rng: random.Random | None = None
) -> float:
    """Delay before retry ``retry_index`` (1 = first retry).

    ``base * 2**(retry_index - 1)`` plus jitter below ``base * jitter_ratio``;
    since jitter never exceeds the base delay the sequence is non-decreasing.
    """
    rng = rng or random.Random()
    backoff = policy.base_delay_s * (2 ** (retry_index - 1))
    jitter = rng.uniform(0.0, policy.base_delay_s * policy.jitter_ratio)
    return backoff + jitter


async def with_retry(
    action: Callable[[], Awaitable[T]],
    policy: RetryPolicy | None = None,
    *,
    model: str | None = None,
    health: HealthMonitor | None = None,
    sleep: SleepFunc = asyncio.sleep,
    rng: random.Random | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> T:
    """Execute ``action`` with retry logic.

    Raises:
        RetryExhaustedError: Every attempt failed with a transport error.
        Exception: Any non-retryable error, re-raised as-is.
    """
    policy = policy or RetryPolicy()
    last_error: BaseException | None = None

    for attempt in range(1, policy.max_attempts + 1):
        if attempt > 1:
            delay = compute_delay(policy, attempt - 1, rng)
            logger.warning(
                "Model '%s' attempt %d/%d failed (%s), retrying in %.2fs",
                model, attempt - 1, policy.max_attempts, last_error, delay,
            )
            await sleep(delay)

        t0 = clock()
        try:
            result = await _run_attempt(action, policy.attempt_timeout_s, model)
        except Exception as exc:
            latency_ms = (clock() - t0) * 1000
            if health is not None:
                health.record_outcome(False, latency_ms, exc)
            kind = classify_error(exc)
            if not kind.retryable:
                logger.debug("Model '%s' failed with terminal %s error", model, kind.value)
                raise
            last_error = exc
            continue

        if health is not None:
            health.record_outcome(True, (clock() - t0) * 1000)
        if attempt > 1:
            logger.info("Model '%s' succeeded on attempt %d", model, attempt)
        return result

    assert last_error is not None
    raise RetryExhaustedError(policy.max_attempts, last_error, model=model) from last_error


async def _run_attempt(
    action: Callable[[], Awaitable[T]], timeout_s: float | None, model: str | None
) -> T:
    if timeout_s is None:
        return await action()
    deadline = asyncio.timeout(timeout_s)
    try:
        async with deadline:
            return await action()
    except TimeoutError as exc:
        # A TimeoutError raised by the action itself keeps its own message.
        if not deadline.expired():
            raise
        raise UpstreamTimeoutError(
            f"Attempt timed out after {timeout_s:.1f}s", model=model
        ) from exc
