# src/llm/models.py — v1
"""LLM-specific types: Message, CompletionParams, LLMResponse."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel


class Message(BaseModel):
    """Single message in a conversation."""

    role: Literal["user", "assistant", "system"]
    content: str


class CompletionParams(BaseModel):
    """Sampling parameters sent with every completion request."""

    max_tokens: int = 4096
    temperature: float = 0.3
    presence_penalty: float = 0.0
    frequency_penalty: float = 0.0


class LLMResponse(BaseModel):
    """Normalized response from the upstream provider."""

    content: str
    input_tokens: int = 0
    output_tokens: int = 0
    model: str
    provider: str
    latency_ms: int
    raw_response: Any = None
