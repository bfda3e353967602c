# tests/unit/llm/test_unit_client_factory.py — v1
"""Tests for llm/client_factory.py — provider registry and client creation."""

from __future__ import annotations

import pytest

from pegasus_gateway.config.settings import Settings
from pegasus_gateway.llm import client_factory
from pegasus_gateway.llm.adapters.openrouter_adapter import OpenRouterAdapter
from pegasus_gateway.llm.client_factory import (
    UnsupportedProviderError,
    create_llm_client,
    register_provider,
)


@pytest.fixture(autouse=True)
def _restore_registry(monkeypatch):
    monkeypatch.setattr(
        client_factory, "_PROVIDER_REGISTRY", dict(client_factory._PROVIDER_REGISTRY),
    )


class TestCreateLLMClient:
    def test_openrouter_default(self):
        settings = Settings(_env_file=None, openrouter_api_key="k", site_url="https://x.dev")
        client = create_llm_client(settings)
        assert isinstance(client, OpenRouterAdapter)
        assert client.provider_name == "openrouter"
        assert client._base_url == "https://openrouter.ai/api/v1"
        assert client._headers["HTTP-Referer"] == "https://x.dev"
        assert client._headers["X-Title"] == "Pegasus API"

    def test_openai_provider(self):
        settings = Settings(_env_file=None, llm_provider="openai", openai_api_key="k")
        client = create_llm_client(settings)
        assert client.provider_name == "openai"
        assert client._base_url == "https://api.openai.com/v1"
        assert client._api_key == "k"

    def test_base_url_override(self):
        settings = Settings(_env_file=None, llm_base_url="http://localhost:8080/v1")
        assert create_llm_client(settings)._base_url == "http://localhost:8080/v1"

    def test_kwargs_override(self):
        settings = Settings(_env_file=None)
        client = create_llm_client(settings, timeout_s=5.0)
        assert client._timeout == 5.0

    def test_unknown_adapter_argument(self):
        with pytest.raises(TypeError):
            create_llm_client(Settings(_env_file=None), retries=3)

    def test_unsupported_provider(self):
        settings = Settings(_env_file=None, llm_provider="nope")
        with pytest.raises(UnsupportedProviderError, match="nope"):
            create_llm_client(settings)


class TestRegisterProvider:
    def test_register_custom(self):
        register_provider(
            "local",
            "pegasus_gateway.llm.adapters.openrouter_adapter.OpenRouterAdapter",
            "http://localhost:1234/v1",
        )
        settings = Settings(_env_file=None, llm_provider="local")
        client = create_llm_client(settings)
        assert client.provider_name == "local"
        assert client._base_url == "http://localhost:1234/v1"
