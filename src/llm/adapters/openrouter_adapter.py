# src/llm/adapters/openrouter_adapter.py — v1
"""OpenAI-compatible chat completion adapter (OpenRouter by default).

Uses the official openai SDK with SDK-level retries disabled: retries, model
fallback and circuit breaking belong to the gateway. Provider exceptions are
translated into the gateway error taxonomy.
"""

from __future__ import annotations

import time
from typing import Any

from pegasus_gateway.core.errors import (
    ResponseShapeError,
    TransportError,
    UpstreamAuthenticationError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from pegasus_gateway.llm.base_client import BaseLLMClient
from pegasus_gateway.llm.models import CompletionParams, LLMResponse, Message

OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"


class OpenRouterAdapter(BaseLLMClient):
    """Chat completions over an OpenAI-compatible HTTP API."""

    def __init__(
        self,
        api_key: str = "",
        base_url: str = OPENROUTER_BASE_URL,
        site_url: str = "",
        site_name: str = "",
        timeout_s: float = 60.0,
        provider: str = "openrouter",
        client: Any = None,
    ):
        self._api_key = api_key
        self._base_url = base_url
        self._timeout = timeout_s
        self._provider = provider
        self._headers: dict[str, str] = {}
        if site_url:
            self._headers["HTTP-Referer"] = site_url
        if site_name:
            self._headers["X-Title"] = site_name
        self._client = client

    async def complete(
        self,
        messages: list[Message],
        model: str,
        params: CompletionParams | None = None,
    ) -> LLMResponse:
        import openai

        params = params or CompletionParams()
        client = self._get_client(model)

        t0 = time.monotonic()
        try:
            resp = await client.chat.completions.create(
                model=model,
                messages=[{"role": m.role, "content": m.content} for m in messages],
                max_tokens=params.max_tokens,
                temperature=params.temperature,
                presence_penalty=params.presence_penalty,
                frequency_penalty=params.frequency_penalty,
            )
        except openai.OpenAIError as exc:
            raise translate_error(exc, model) from exc
        latency = int((time.monotonic() - t0) * 1000)

        content = extract_content(resp, model)
        usage = getattr(resp, "usage", None)
        return LLMResponse(
            content=content,
            input_tokens=getattr(usage, "prompt_tokens", 0) or 0,
            output_tokens=getattr(usage, "completion_tokens", 0) or 0,
            model=model,
            provider=self._provider,
            latency_ms=latency,
            raw_response=resp,
        )

    async def close(self) -> None:
        if self._client is not None and hasattr(self._client, "close"):
            await self._client.close()
        self._client = None

    @property
    def provider_name(self) -> str:
        return self._provider

    def _get_client(self, model: str) -> Any:
        if self._client is None:
            if not self._api_key:
                raise UpstreamAuthenticationError(
                    f"No API key configured for provider {self._provider!r}", model=model
                )
            import openai

            self._client = openai.AsyncOpenAI(
                api_key=self._api_key,
                base_url=self._base_url,
                default_headers=self._headers or None,
                timeout=self._timeout,
                max_retries=0,
            )
        return self._client


def extract_content(resp: Any, model: str) -> str:
    """Return choices[0].message.content or raise ResponseShapeError."""
    choices = getattr(resp, "choices", None)
    if not choices:
        raise ResponseShapeError("Upstream response has no choices", model=model)
    message = getattr(choices[0], "message", None)
    content = getattr(message, "content", None)
    if not isinstance(content, str) or not content.strip():
        raise ResponseShapeError("Model returned empty response", model=model)
    return content


def translate_error(exc: Exception, model: str) -> UpstreamError:
    """Map an openai SDK exception onto the gateway taxonomy."""
    import openai

    if isinstance(exc, openai.APITimeoutError):
        return UpstreamTimeoutError(f"Request timed out: {exc}", model=model)
    if isinstance(exc, openai.APIConnectionError):
        return TransportError(f"Connection error: {exc}", model=model)
    if isinstance(exc, (openai.AuthenticationError, openai.PermissionDeniedError)):
        return UpstreamAuthenticationError(
            f"Authentication error: invalid API key ({exc})", model=model
        )
    if isinstance(exc, openai.RateLimitError):
        return UpstreamRateLimitError(f"Rate limit exceeded: {exc}", model=model)
    if isinstance(exc, openai.InternalServerError):
        return TransportError(
            f"Upstream server error {exc.status_code}: {exc}", model=model
        )
    if isinstance(exc, openai.APIResponseValidationError):
        return ResponseShapeError(f"Malformed upstream response: {exc}", model=model)
    if isinstance(exc, openai.APIStatusError):
        return UpstreamError(f"Upstream HTTP {exc.status_code}: {exc}", model=model)
    return UpstreamError(f"AI processing failed: {exc}", model=model)
