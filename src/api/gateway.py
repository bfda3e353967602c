# src/api/gateway.py — v1
"""Public API façade: single entry point for prompt completion.

Usage:
    async with Gateway(settings) as gateway:
        text = await gateway.process_direct_prompt("Generate a /heal command")

Request flow:
  1. Validate prompt and model (no network activity on failure)
  2. Compose the prompt (optional context file) and compress it
  3. Fresh cache hit -> return
  4. Join or start the in-flight request for the exact (model, prompt)
  5. Circuit breaker "ai_service" guards the fallback chain; when open the
     last known (stale) answer is served, or ServiceUnavailableError raised.
     Authoritative upstream errors bypass breaker accounting, and the health
     monitor's error rate can open the breaker early
  6. Each model of the chain runs under retry/backoff; the first success is
     cached and returned
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
import uuid
from pathlib import Path
from typing import Callable

from pegasus_gateway.api.models import ChainDescription, ChainLink, GatewayHealth
from pegasus_gateway.api.validation import validate_model, validate_prompt
from pegasus_gateway.cache.keys import cache_key, inflight_key
from pegasus_gateway.cache.memory_store import MemoryResponseCache, estimate_tokens
from pegasus_gateway.config import models as model_config
from pegasus_gateway.config.models import ModelCatalog
from pegasus_gateway.config.settings import Settings
from pegasus_gateway.core.errors import (
    AuthoritativeUpstreamError,
    FallbackChainExhaustedError,
    GatewayError,
    ServiceUnavailableError,
)
from pegasus_gateway.llm.base_client import BaseLLMClient
from pegasus_gateway.llm.models import CompletionParams, Message
from pegasus_gateway.logging.context import (
    clear_context,
    set_model_context,
    set_request_context,
)
from pegasus_gateway.prompt.compressor import PromptCompressor
from pegasus_gateway.resilience.circuit_breaker import CircuitBreaker, CircuitState
from pegasus_gateway.resilience.fallback import ModelFallbackResolver
from pegasus_gateway.resilience.health import HealthMonitor, HealthStatus
from pegasus_gateway.resilience.inflight import InFlightTracker
from pegasus_gateway.resilience.retry import RetryPolicy, SleepFunc, with_retry
from pegasus_gateway.tracking.models import UsageStats
from pegasus_gateway.tracking.usage import UsageTracker

logger = logging.getLogger(__name__)

AI_SERVICE = "ai_service"

_STATUS_ORDER: dict[str, int] = {"healthy": 0, "degraded": 1, "unhealthy": 2}


class Gateway:
    """Resilient, deduplicating, caching broker in front of the LLM provider.

    Args:
        settings: Global settings. Loaded from .env if None.
        client: Upstream client. Built from settings if None.
        clock: Monotonic clock shared by cache, breaker and health.
        sleep: Backoff sleep; tests pass a recording stub.
        rng: Jitter source.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        client: BaseLLMClient | None = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: SleepFunc = asyncio.sleep,
        rng: random.Random | None = None,
    ) -> None:
        self._settings = settings or Settings()
        s = self._settings
        if client is None:
            from pegasus_gateway.llm.client_factory import create_llm_client

            client = create_llm_client(s)
        self._client = client
        self._clock = clock
        self._sleep = sleep
        self._rng = rng

        self._catalog = ModelCatalog.from_settings(s)
        self._resolver = ModelFallbackResolver(self._catalog, s.fallback_max_alternates)
        self._cache = MemoryResponseCache(
            max_age_s=s.cache_max_age_s,
            max_size=s.cache_max_size,
            sweep_interval_s=s.cache_sweep_interval_s,
            stale_max_age_s=s.cache_stale_max_age_s,
            clock=clock,
        )
        self._inflight: InFlightTracker[str] = InFlightTracker()
        self._health = HealthMonitor(
            failure_threshold=s.health_failure_threshold,
            degraded_idle_s=s.health_degraded_idle_s,
            unhealthy_idle_s=s.health_unhealthy_idle_s,
            clock=clock,
        )
        self._breaker = CircuitBreaker(
            failure_threshold=s.circuit_failure_threshold,
            cooldown_s=s.circuit_cooldown_s,
            clock=clock,
            health=self._health.snapshot,
            error_rate_threshold=s.circuit_error_rate_threshold,
        )
        self._policy = RetryPolicy.from_settings(s)
        self._params = CompletionParams(
            max_tokens=s.llm_max_tokens,
            temperature=s.llm_temperature,
            presence_penalty=s.llm_presence_penalty,
            frequency_penalty=s.llm_frequency_penalty,
        )
        self._compressor = PromptCompressor()
        self._usage = UsageTracker()

    # --- lifecycle ---

    async def start(self) -> None:
        """Start background maintenance (cache sweeper)."""
        if self._settings.cache_enabled:
            self._cache.start_sweeper()

    async def close(self) -> None:
        """Stop background tasks and release the upstream client."""
        await self._cache.stop_sweeper()
        await self._client.close()

    async def __aenter__(self) -> Gateway:
        await self.start()
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()

    # --- public operations ---

    async def process_direct_prompt(self, prompt: str, model: str | None = None) -> str:
        """Complete ``prompt`` with ``model`` (default model if None).

        Raises:
            PromptValidationError: Invalid prompt or model identifier.
            AuthoritativeUpstreamError: Authentication or quota failure.
            FallbackChainExhaustedError: Every model of the chain failed.
            ServiceUnavailableError: Circuit open and no stale answer cached.
        """
        s = self._settings
        validate_prompt(prompt, s.prompt_min_chars, s.prompt_max_chars)
        model = validate_model(model or s.llm_default_model)
        return await self._process(prompt, model)

    async def process_prompt(
        self,
        prompt: str,
        context_file: str | Path | None = None,
        model: str | None = None,
    ) -> str:
        """Like process_direct_prompt, with an optional context file appended."""
        s = self._settings
        validate_prompt(prompt, s.prompt_min_chars, s.prompt_max_chars)
        model = validate_model(model or s.llm_default_model)
        if context_file is not None:
            prompt = self._with_context(prompt, Path(context_file))
            validate_prompt(prompt, s.prompt_min_chars, s.prompt_max_chars)
        return await self._process(prompt, model)

    def model_for_task(self, task: str) -> str:
        """Model assigned to a consumer task (e.g. ``CODE_GENERATION``)."""
        return model_config.model_for_task(task)

    def describe_chain(self, model: str | None = None) -> ChainDescription:
        """Fallback chain that a request for ``model`` would walk."""
        primary = validate_model(model or self._settings.llm_default_model)
        return ChainDescription(
            primary=primary,
            links=[
                ChainLink(model=m, tier=self._catalog.tier_of(m))
                for m in self._resolver.chain_for(primary)
            ],
        )

    def health_status(self) -> GatewayHealth:
        """Upstream health combined with breaker states and cache stats."""
        upstream = self._health.snapshot()
        breakers = self._breaker.states()

        status: HealthStatus = upstream.status
        for breaker in breakers:
            if breaker.state is CircuitState.OPEN:
                status = _worst(status, "unhealthy")
            elif breaker.state is CircuitState.HALF_OPEN:
                status = _worst(status, "degraded")

        return GatewayHealth(
            status=status,
            upstream=upstream,
            breakers=breakers,
            cache=self._cache.stats() if self._settings.cache_enabled else None,
            pending_requests=self._inflight.pending_count,
        )

    def usage_stats(self) -> UsageStats:
        return self._usage.snapshot(
            cache_size=len(self._cache),
            deduplicated=self._inflight.shared_hits,
        )

    def clear_cache(self) -> None:
        """Drop every cached response, fresh and stale."""
        size = len(self._cache)
        self._cache.clear()
        logger.info("Cache cleared (%d entries)", size)

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    @property
    def settings(self) -> Settings:
        return self._settings

    # --- pipeline ---

    async def _process(self, prompt: str, model: str) -> str:
        set_request_context(uuid.uuid4().hex[:12], model)
        try:
            text, saved = self._compress(prompt)
            self._usage.record_request(saved)

            key = cache_key(model, text, normalize=self._settings.cache_key_normalize)
            if self._settings.cache_enabled:
                entry = self._cache.get(key)
                if entry is not None:
                    self._usage.record_cache_hit()
                    logger.info("Cache hit for model '%s'", model)
                    return entry.response
                self._usage.record_cache_miss()

            try:
                return await self._inflight.dedupe(
                    inflight_key(model, text),
                    lambda: self._breaker.execute(
                        AI_SERVICE,
                        action=lambda: self._run_chain(text, model, key),
                        fallback=lambda: self._serve_stale(key),
                        ignore=(AuthoritativeUpstreamError,),
                    ),
                )
            except GatewayError:
                self._usage.record_failure()
                raise
        finally:
            clear_context()

    async def _run_chain(self, prompt: str, primary: str, key: str) -> str:
        chain = self._resolver.chain_for(primary)
        messages = [Message(role="user", content=prompt)]
        last_error: BaseException | None = None

        for index, candidate in enumerate(chain):
            set_model_context(candidate)
            try:
                response = await with_retry(
                    lambda m=candidate: self._client.complete(messages, m, self._params),
                    self._policy,
                    model=candidate,
                    health=self._health,
                    sleep=self._sleep,
                    rng=self._rng,
                    clock=self._clock,
                )
            except AuthoritativeUpstreamError:
                raise
            except Exception as exc:
                last_error = exc
                logger.warning(
                    "Model '%s' failed: %s (%d fallback model(s) left)",
                    candidate, exc, len(chain) - index - 1,
                )
                continue

            if index > 0:
                logger.info("Fallback model '%s' served request for '%s'", candidate, primary)
            if self._settings.cache_enabled:
                self._cache.put(key, response.content, candidate)
            tokens = (response.input_tokens + response.output_tokens) or (
                estimate_tokens(prompt) + estimate_tokens(response.content)
            )
            self._usage.record_completion(tokens, fallback_used=index > 0)
            return response.content

        assert last_error is not None
        raise FallbackChainExhaustedError(chain, last_error) from last_error

    async def _serve_stale(self, key: str) -> str:
        entry = self._cache.get_stale(key) if self._settings.cache_enabled else None
        if entry is None:
            raise ServiceUnavailableError(
                AI_SERVICE, retry_in_s=self._breaker.retry_in(AI_SERVICE)
            )
        logger.warning(
            "Serving stale response (age %.0fs) while circuit is open",
            entry.age(self._clock()),
        )
        self._usage.record_stale_response()
        return entry.response

    def _compress(self, prompt: str) -> tuple[str, int]:
        if not self._settings.compression_enabled:
            return prompt, 0
        result = self._compressor.compress(prompt)
        if not result.content.strip():
            return prompt, 0
        return result.content, result.saved_chars

    @staticmethod
    def _with_context(prompt: str, context_file: Path) -> str:
        try:
            context = context_file.read_text(encoding="utf-8")
        except OSError as exc:
            logger.warning("Context file %s not readable, ignoring: %s", context_file, exc)
            return prompt
        return f"{prompt}\n\nContext ({context_file.name}):\n```\n{context}\n```"


def _worst(a: HealthStatus, b: HealthStatus) -> HealthStatus:
    return a if _STATUS_ORDER[a] >= _STATUS_ORDER[b] else b
