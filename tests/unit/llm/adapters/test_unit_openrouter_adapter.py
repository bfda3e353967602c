# tests/unit/llm/adapters/test_unit_openrouter_adapter.py — v1
"""Tests for llm/adapters/openrouter_adapter.py — completion and error mapping."""

from __future__ import annotations

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from pegasus_gateway.core.errors import (
    AuthoritativeUpstreamError,
    ResponseShapeError,
    TransportError,
    UpstreamAuthenticationError,
    UpstreamError,
    UpstreamRateLimitError,
    UpstreamTimeoutError,
)
from pegasus_gateway.llm.adapters.openrouter_adapter import (
    OpenRouterAdapter,
    extract_content,
    translate_error,
)
from pegasus_gateway.llm.models import CompletionParams, Message

_REQUEST = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")


def _response(status: int) -> httpx.Response:
    return httpx.Response(status, request=_REQUEST)


def _completion(content: str | None) -> SimpleNamespace:
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3),
    )


def _mock_client(result=None, error: Exception | None = None) -> MagicMock:
    client = MagicMock()
    client.chat.completions.create = AsyncMock(return_value=result, side_effect=error)
    client.close = AsyncMock()
    return client


class TestComplete:
    @pytest.mark.asyncio
    async def test_returns_content(self):
        client = _mock_client(_completion("OK"))
        adapter = OpenRouterAdapter(api_key="k", client=client)
        resp = await adapter.complete([Message(role="user", content="hi")], "openai/gpt-4o")
        assert resp.content == "OK"
        assert resp.input_tokens == 12
        assert resp.output_tokens == 3
        assert resp.model == "openai/gpt-4o"
        assert resp.provider == "openrouter"

    @pytest.mark.asyncio
    async def test_sends_params(self):
        client = _mock_client(_completion("OK"))
        adapter = OpenRouterAdapter(api_key="k", client=client)
        params = CompletionParams(max_tokens=100, temperature=0.9, presence_penalty=0.5)
        await adapter.complete([Message(role="user", content="hi")], "m", params)
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "m"
        assert kwargs["messages"] == [{"role": "user", "content": "hi"}]
        assert kwargs["max_tokens"] == 100
        assert kwargs["temperature"] == 0.9
        assert kwargs["presence_penalty"] == 0.5
        assert kwargs["frequency_penalty"] == 0.0

    @pytest.mark.asyncio
    async def test_empty_content_raises_shape_error(self):
        adapter = OpenRouterAdapter(api_key="k", client=_mock_client(_completion("")))
        with pytest.raises(ResponseShapeError, match="empty"):
            await adapter.complete([Message(role="user", content="hi")], "m")

    @pytest.mark.asyncio
    async def test_sdk_error_translated(self):
        error = openai.RateLimitError("slow down", response=_response(429), body=None)
        adapter = OpenRouterAdapter(api_key="k", client=_mock_client(error=error))
        with pytest.raises(UpstreamRateLimitError) as exc_info:
            await adapter.complete([Message(role="user", content="hi")], "m")
        assert exc_info.value.__cause__ is error
        assert exc_info.value.model == "m"

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        adapter = OpenRouterAdapter(api_key="")
        with pytest.raises(UpstreamAuthenticationError, match="No API key"):
            await adapter.complete([Message(role="user", content="hi")], "m")

    @pytest.mark.asyncio
    async def test_close(self):
        client = _mock_client(_completion("OK"))
        adapter = OpenRouterAdapter(api_key="k", client=client)
        await adapter.close()
        client.close.assert_awaited_once()

    def test_unknown_argument_rejected(self):
        with pytest.raises(TypeError):
            OpenRouterAdapter(api_key="k", temperature=0.2)

    def test_headers(self):
        adapter = OpenRouterAdapter(api_key="k", site_url="https://pegasus.dev", site_name="Pegasus")
        assert adapter._headers == {"HTTP-Referer": "https://pegasus.dev", "X-Title": "Pegasus"}

    def test_sdk_client_built_without_retries(self):
        adapter = OpenRouterAdapter(api_key="k", site_name="Pegasus")
        client = adapter._get_client("m")
        assert isinstance(client, openai.AsyncOpenAI)
        assert client.max_retries == 0
        assert str(client.base_url).startswith("https://openrouter.ai/api/v1")


class TestExtractContent:
    def test_no_choices(self):
        with pytest.raises(ResponseShapeError, match="no choices"):
            extract_content(SimpleNamespace(choices=[]), "m")

    def test_missing_message(self):
        with pytest.raises(ResponseShapeError):
            extract_content(SimpleNamespace(choices=[SimpleNamespace(message=None)]), "m")

    def test_whitespace_only(self):
        with pytest.raises(ResponseShapeError):
            extract_content(_completion("   "), "m")

    def test_ok(self):
        assert extract_content(_completion("OK"), "m") == "OK"


class TestTranslateError:
    def test_timeout(self):
        err = translate_error(openai.APITimeoutError(request=_REQUEST), "m")
        assert isinstance(err, UpstreamTimeoutError)

    def test_connection(self):
        err = translate_error(openai.APIConnectionError(request=_REQUEST), "m")
        assert type(err) is TransportError

    def test_authentication(self):
        exc = openai.AuthenticationError("bad key", response=_response(401), body=None)
        err = translate_error(exc, "m")
        assert isinstance(err, UpstreamAuthenticationError)
        assert isinstance(err, AuthoritativeUpstreamError)

    def test_permission_denied(self):
        exc = openai.PermissionDeniedError("forbidden", response=_response(403), body=None)
        assert isinstance(translate_error(exc, "m"), UpstreamAuthenticationError)

    def test_rate_limit(self):
        exc = openai.RateLimitError("quota", response=_response(429), body=None)
        assert isinstance(translate_error(exc, "m"), UpstreamRateLimitError)

    def test_server_error_is_transport(self):
        exc = openai.InternalServerError("oops", response=_response(502), body=None)
        err = translate_error(exc, "m")
        assert type(err) is TransportError
        assert "502" in str(err)

    def test_other_status(self):
        exc = openai.BadRequestError("bad", response=_response(400), body=None)
        err = translate_error(exc, "m")
        assert type(err) is UpstreamError
        assert "400" in str(err)

    def test_unknown_sdk_error(self):
        err = translate_error(openai.OpenAIError("weird"), "m")
        assert type(err) is UpstreamError
        assert "AI processing failed" in str(err)
