# src/resilience/circuit_breaker.py — v1
"""Per-operation circuit breaker with closed / open / half-open states.

Transitions:
  CLOSED    -> OPEN       consecutive failures reach the threshold
  OPEN      -> HALF_OPEN  cool-down elapsed; exactly one trial call admitted
  HALF_OPEN -> CLOSED     trial succeeded
  HALF_OPEN -> OPEN       trial failed

While open (or while a half-open trial is running) callers get the fallback
instead of the action.

With a health source attached, a failure in CLOSED also opens the breaker once
the upstream error rate reaches ``error_rate_threshold``, before the
consecutive-failure threshold is hit. Exceptions listed in ``ignore`` pass
through without counting as success or failure.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, TypeVar

from pydantic import BaseModel

from pegasus_gateway.core.errors import ServiceUnavailableError
from pegasus_gateway.logging.context import set_operation_context
from pegasus_gateway.resilience.health import HealthSnapshot

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CircuitState(str, Enum):
    """Breaker state."""

    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass
class _Breaker:
    """Mutable state of one named breaker."""

    name: str
    state: CircuitState = CircuitState.CLOSED
    consecutive_failures: int = 0
    last_failure_at: float | None = None
    opened_at: float | None = None
    trial_in_flight: bool = False


class CircuitBreakerStatus(BaseModel):
    """Read-only view of a breaker, for monitoring."""

    name: str
    state: CircuitState
    consecutive_failures: int
    last_failure_at: float | None = None
    retry_in_s: float | None = None


class CircuitBreaker:
    """Registry of named breakers sharing one policy."""

    def __init__(
        self,
        failure_threshold: int = 5,
        cooldown_s: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        health: Callable[[], HealthSnapshot] | None = None,
        error_rate_threshold: float = 0.5,
    ) -> None:
        self._threshold = failure_threshold
        self._cooldown = cooldown_s
        self._clock = clock
        self._health = health
        self._error_rate_threshold = error_rate_threshold
        self._breakers: dict[str, _Breaker] = {}

    async def execute(
        self,
        name: str,
        action: Callable[[], Awaitable[T]],
        fallback: Callable[[], Awaitable[T]] | None = None,
        ignore: tuple[type[BaseException], ...] = (),
    ) -> T:
        """Run ``action`` under the breaker named ``name``.

        Args:
            ignore: Exception types re-raised without touching breaker state.

        Raises:
            ServiceUnavailableError: Breaker rejects the call and no fallback is given.
        """
        breaker = self._get(name)
        if not self._admit(breaker):
            return await self._reject(breaker, fallback)

        is_trial = breaker.state is CircuitState.HALF_OPEN
        set_operation_context(name)
        try:
            result = await action()
        except ignore:
            raise
        except Exception as exc:
            self._record_failure(breaker, exc)
            raise
        finally:
            if is_trial:
                breaker.trial_in_flight = False
            set_operation_context(None)

        self._record_success(breaker)
        return result

    def state_of(self, name: str) -> CircuitState:
        """Current state. OPEN only moves to HALF_OPEN when a call arrives."""
        return self._get(name).state

    def retry_in(self, name: str) -> float | None:
        """Seconds until an open breaker admits a trial; None unless OPEN."""
        return self._status(self._get(name)).retry_in_s

    def states(self) -> list[CircuitBreakerStatus]:
        """Snapshot of every breaker."""
        return [self._status(b) for b in self._breakers.values()]

    def force_state(self, name: str, state: CircuitState) -> None:
        """Administratively set a breaker state and reset its counter."""
        breaker = self._get(name)
        breaker.consecutive_failures = 0
        breaker.trial_in_flight = False
        breaker.opened_at = self._clock() if state is CircuitState.OPEN else None
        self._transition(breaker, state, reason="manual override")

    def reset(self, name: str | None = None) -> None:
        """Forget breaker state for one operation, or all of them."""
        if name is None:
            self._breakers.clear()
        else:
            self._breakers.pop(name, None)

    # --- transitions ---

    def _admit(self, breaker: _Breaker) -> bool:
        if breaker.state is CircuitState.CLOSED:
            return True

        if breaker.state is CircuitState.OPEN:
            if self._remaining_cooldown(breaker) > 0:
                return False
            self._transition(breaker, CircuitState.HALF_OPEN, reason="cool-down elapsed")

        # HALF_OPEN: a single trial at a time
        if breaker.trial_in_flight:
            return False
        breaker.trial_in_flight = True
        return True

    def _record_success(self, breaker: _Breaker) -> None:
        breaker.consecutive_failures = 0
        if breaker.state is not CircuitState.CLOSED:
            breaker.opened_at = None
            self._transition(breaker, CircuitState.CLOSED, reason="trial succeeded")

    def _record_failure(self, breaker: _Breaker, exc: BaseException) -> None:
        now = self._clock()
        breaker.consecutive_failures += 1
        breaker.last_failure_at = now

        if breaker.state is CircuitState.HALF_OPEN:
            breaker.opened_at = now
            self._transition(breaker, CircuitState.OPEN, reason=f"trial failed: {exc}")
        elif breaker.state is CircuitState.CLOSED:
            error_rate = self._upstream_error_rate()
            if breaker.consecutive_failures >= self._threshold:
                reason = f"{breaker.consecutive_failures} consecutive failures"
            elif error_rate >= self._error_rate_threshold:
                reason = f"upstream error rate {error_rate:.2f}"
            else:
                return
            breaker.opened_at = now
            self._transition(breaker, CircuitState.OPEN, reason=reason)

    async def _reject(
        self, breaker: _Breaker, fallback: Callable[[], Awaitable[T]] | None
    ) -> T:
        retry_in = self._remaining_cooldown(breaker)
        if fallback is None:
            raise ServiceUnavailableError(breaker.name, retry_in_s=retry_in or None)
        logger.warning("Circuit %s is %s, using fallback", breaker.name, breaker.state.value)
        return await fallback()

    def _transition(self, breaker: _Breaker, state: CircuitState, reason: str) -> None:
        if breaker.state is state:
            return
        previous = breaker.state
        breaker.state = state
        log = logger.warning if state is CircuitState.OPEN else logger.info
        log(
            "Circuit %s: %s -> %s (%s)",
            breaker.name, previous.value, state.value, reason,
        )

    # --- helpers ---

    def _get(self, name: str) -> _Breaker:
        breaker = self._breakers.get(name)
        if breaker is None:
            breaker = _Breaker(name=name)
            self._breakers[name] = breaker
        return breaker

    def _upstream_error_rate(self) -> float:
        if self._health is None:
            return 0.0
        return self._health().error_rate

    def _remaining_cooldown(self, breaker: _Breaker) -> float:
        if breaker.state is not CircuitState.OPEN or breaker.opened_at is None:
            return 0.0
        return max(0.0, breaker.opened_at + self._cooldown - self._clock())

    def _status(self, breaker: _Breaker) -> CircuitBreakerStatus:
        retry_in = self._remaining_cooldown(breaker)
        return CircuitBreakerStatus(
            name=breaker.name,
            state=breaker.state,
            consecutive_failures=breaker.consecutive_failures,
            last_failure_at=breaker.last_failure_at,
            retry_in_s=retry_in if breaker.state is CircuitState.OPEN else None,
        )
