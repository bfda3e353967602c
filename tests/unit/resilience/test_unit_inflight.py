# tests/unit/resilience/test_unit_inflight.py — v1
"""Tests for resilience/inflight.py — concurrent request deduplication."""

from __future__ import annotations

import asyncio

import pytest

from pegasus_gateway.resilience.inflight import InFlightTracker


class TestDedupe:
    @pytest.mark.asyncio
    async def test_single_call(self):
        tracker: InFlightTracker[str] = InFlightTracker()

        async def produce() -> str:
            return "OK"

        assert await tracker.dedupe("k", produce) == "OK"
        assert tracker.pending_count == 0

    @pytest.mark.asyncio
    async def test_concurrent_calls_share_one_producer(self):
        tracker: InFlightTracker[str] = InFlightTracker()
        gate = asyncio.Event()
        calls = 0

        async def produce() -> str:
            nonlocal calls
            calls += 1
            await gate.wait()
            return "shared"

        waiters = [asyncio.create_task(tracker.dedupe("k", produce)) for _ in range(5)]
        await asyncio.sleep(0)
        assert tracker.is_pending("k")
        gate.set()
        results = await asyncio.gather(*waiters)

        assert results == ["shared"] * 5
        assert calls == 1
        assert tracker.shared_hits == 4
        assert not tracker.is_pending("k")

    @pytest.mark.asyncio
    async def test_failure_propagates_to_every_caller(self):
        tracker: InFlightTracker[str] = InFlightTracker()
        gate = asyncio.Event()

        async def produce() -> str:
            await gate.wait()
            raise RuntimeError("upstream down")

        waiters = [asyncio.create_task(tracker.dedupe("k", produce)) for _ in range(3)]
        await asyncio.sleep(0)
        gate.set()
        results = await asyncio.gather(*waiters, return_exceptions=True)

        assert all(isinstance(r, RuntimeError) for r in results)
        assert len({id(r) for r in results}) == 1
        assert tracker.pending_count == 0

    @pytest.mark.asyncio
    async def test_entry_removed_after_failure_allows_new_attempt(self):
        tracker: InFlightTracker[str] = InFlightTracker()
        outcomes = [RuntimeError("first"), "second"]

        async def produce() -> str:
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        with pytest.raises(RuntimeError):
            await tracker.dedupe("k", produce)
        assert await tracker.dedupe("k", produce) == "second"

    @pytest.mark.asyncio
    async def test_distinct_keys_not_shared(self):
        tracker: InFlightTracker[str] = InFlightTracker()

        async def produce_a() -> str:
            return "a"

        async def produce_b() -> str:
            return "b"

        results = await asyncio.gather(
            tracker.dedupe("a", produce_a), tracker.dedupe("b", produce_b),
        )
        assert results == ["a", "b"]
        assert tracker.shared_hits == 0

    @pytest.mark.asyncio
    async def test_cancelled_caller_does_not_cancel_shared_call(self):
        tracker: InFlightTracker[str] = InFlightTracker()
        gate = asyncio.Event()

        async def produce() -> str:
            await gate.wait()
            return "done"

        first = asyncio.create_task(tracker.dedupe("k", produce))
        second = asyncio.create_task(tracker.dedupe("k", produce))
        await asyncio.sleep(0)
        first.cancel()
        await asyncio.sleep(0)
        gate.set()

        assert await second == "done"
        with pytest.raises(asyncio.CancelledError):
            await first
