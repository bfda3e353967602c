# tests/conftest.py — v1
"""Shared test fixtures for all unit and integration tests.

Provides settings isolated from .env, a controllable clock, a recording sleep
and a scripted LLM client. No network access: every upstream call is scripted.
"""

from __future__ import annotations

import asyncio
import random

import pytest

from pegasus_gateway.api.gateway import Gateway
from pegasus_gateway.config.settings import Settings
from pegasus_gateway.llm.base_client import BaseLLMClient
from pegasus_gateway.llm.models import CompletionParams, LLMResponse, Message


# === Test doubles ===


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingSleep:
    """Async sleep that records delays and advances the fake clock instead of waiting."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)
        self.clock.advance(seconds)
        await asyncio.sleep(0)


class ScriptedLLMClient(BaseLLMClient):
    """LLM client returning scripted outcomes per model.

    Each model has a queue of outcomes (response text or exception instance);
    once it is empty ``default`` is used.
    """

    def __init__(self, default: str | BaseException = "OK") -> None:
        self.default = default
        self.scripts: dict[str, list[str | BaseException]] = {}
        self.calls: list[tuple[str, str]] = []
        self.gate: asyncio.Event | None = None
        self.closed = False

    def script(self, model: str, *outcomes: str | BaseException) -> None:
        self.scripts.setdefault(model, []).extend(outcomes)

    def calls_for(self, model: str) -> int:
        return sum(1 for m, _ in self.calls if m == model)

    async def complete(
        self,
        messages: list[Message],
        model: str,
        params: CompletionParams | None = None,
    ) -> LLMResponse:
        self.calls.append((model, messages[-1].content))
        if self.gate is not None:
            await self.gate.wait()
        queue = self.scripts.get(model)
        outcome = queue.pop(0) if queue else self.default
        if isinstance(outcome, BaseException):
            raise outcome
        return LLMResponse(
            content=outcome, model=model, provider="scripted", latency_ms=1,
        )

    async def close(self) -> None:
        self.closed = True

    @property
    def provider_name(self) -> str:
        return "scripted"


# === FIXTURES ===


@pytest.fixture
def settings() -> Settings:
    """Settings with defaults only (no .env) and a dummy API key."""
    return Settings(_env_file=None, openrouter_api_key="test-key")


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def recording_sleep(fake_clock: FakeClock) -> RecordingSleep:
    return RecordingSleep(fake_clock)


@pytest.fixture
def fake_llm() -> ScriptedLLMClient:
    return ScriptedLLMClient()


@pytest.fixture
def gateway(
    settings: Settings,
    fake_llm: ScriptedLLMClient,
    fake_clock: FakeClock,
    recording_sleep: RecordingSleep,
) -> Gateway:
    """Gateway wired to the scripted client, fake clock and recording sleep."""
    return Gateway(
        settings,
        client=fake_llm,
        clock=fake_clock,
        sleep=recording_sleep,
        rng=random.Random(42),
    )
