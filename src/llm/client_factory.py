# src/llm/client_factory.py — v1
"""Factory: instantiate the upstream LLM client from the configured provider."""

from __future__ import annotations

import importlib
import logging

from pegasus_gateway.config.settings import Settings
from pegasus_gateway.llm.base_client import BaseLLMClient

logger = logging.getLogger(__name__)

# Provider name -> (adapter class path, default base URL).
_PROVIDER_REGISTRY: dict[str, tuple[str, str]] = {
    "openrouter": (
        "pegasus_gateway.llm.adapters.openrouter_adapter.OpenRouterAdapter",
        "https://openrouter.ai/api/v1",
    ),
    "openai": (
        "pegasus_gateway.llm.adapters.openrouter_adapter.OpenRouterAdapter",
        "https://api.openai.com/v1",
    ),
}


class UnsupportedProviderError(ValueError):
    """Raised when a provider is not registered."""


def create_llm_client(settings: Settings | None = None, **kwargs: object) -> BaseLLMClient:
    """Instantiate the adapter for ``settings.llm_provider``.

    Args:
        settings: Application settings (provider, API key, headers, timeout).
        **kwargs: Adapter arguments overriding the settings-derived ones.

    Raises:
        UnsupportedProviderError: If provider is not registered.
    """
    settings = settings or Settings()
    provider = settings.llm_provider
    if provider not in _PROVIDER_REGISTRY:
        raise UnsupportedProviderError(
            f"Unsupported LLM provider: {provider!r}. "
            f"Available: {', '.join(sorted(_PROVIDER_REGISTRY))}"
        )

    class_path, default_base_url = _PROVIDER_REGISTRY[provider]
    adapter_cls = _import_class(class_path)

    init_kwargs: dict[str, object] = {
        "api_key": settings.api_key,
        "base_url": settings.llm_base_url or default_base_url,
        "site_url": settings.site_url,
        "site_name": settings.site_name,
        "timeout_s": settings.request_timeout_s,
        "provider": provider,
    }
    init_kwargs.update(kwargs)

    logger.debug("Creating LLM client: provider=%s, base_url=%s", provider, init_kwargs["base_url"])
    return adapter_cls(**init_kwargs)


def register_provider(name: str, class_path: str, base_url: str) -> None:
    """Register a custom provider adapter.

    Args:
        name: Provider identifier.
        class_path: Fully qualified class path implementing BaseLLMClient.
        base_url: Default API base URL for the provider.
    """
    _PROVIDER_REGISTRY[name] = (class_path, base_url)
    logger.info("Registered LLM provider: %s -> %s", name, class_path)


def _import_class(class_path: str) -> type:
    """Dynamically import a class from its fully qualified path."""
    module_path, class_name = class_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    return getattr(module, class_name)
