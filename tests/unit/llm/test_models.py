# tests/unit/llm/test_models.py — v1
"""Tests for llm/models.py — LLM interface types."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from pegasus_gateway.llm.models import CompletionParams, LLMResponse, Message


class TestMessage:
    def test_user_message(self):
        m = Message(role="user", content="Hello")
        assert m.role == "user"

    def test_all_roles(self):
        for role in ["user", "assistant", "system"]:
            assert Message(role=role, content="test").role == role

    def test_invalid_role(self):
        with pytest.raises(ValidationError):
            Message(role="tool", content="x")


class TestCompletionParams:
    def test_defaults(self):
        p = CompletionParams()
        assert p.max_tokens == 4096
        assert p.temperature == 0.3
        assert p.presence_penalty == 0.0
        assert p.frequency_penalty == 0.0


class TestLLMResponse:
    def test_total_tokens(self):
        r = LLMResponse(
            content="output", input_tokens=100, output_tokens=50,
            model="test", provider="openrouter", latency_ms=100,
        )
        assert r.input_tokens + r.output_tokens == 150
        assert r.raw_response is None
