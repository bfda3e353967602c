# src/llm/base_client.py — v1
"""Abstract LLM client interface."""

from __future__ import annotations

from abc import ABC, abstractmethod

from pegasus_gateway.llm.models import CompletionParams, LLMResponse, Message


class BaseLLMClient(ABC):
    """Unified interface for upstream completion providers.

    Implementations translate provider failures into the gateway error
    taxonomy (TransportError, AuthoritativeUpstreamError subclasses,
    ResponseShapeError, UpstreamError).
    """

    @abstractmethod
    async def complete(
        self,
        messages: list[Message],
        model: str,
        params: CompletionParams | None = None,
    ) -> LLMResponse:
        """Chat completion against ``model``."""

    @abstractmethod
    async def close(self) -> None:
        """Release network resources."""

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Provider identifier (openrouter, openai)."""
