# tests/unit/resilience/test_unit_fallback.py — v1
"""Tests for resilience/fallback.py — model fallback chains."""

from __future__ import annotations

from pegasus_gateway.config.models import ModelCatalog, ModelTier
from pegasus_gateway.resilience.fallback import ModelFallbackResolver

FLOOR = "deepseek/deepseek-chat-v3-0324:free"


class TestChainFor:
    def test_premium_primary(self):
        resolver = ModelFallbackResolver(ModelCatalog(), max_alternates=2)
        assert resolver.chain_for("anthropic/claude-3.7-sonnet") == (
            "anthropic/claude-3.7-sonnet",
            "anthropic/claude-sonnet-4",
            "openai/gpt-4o",
            FLOOR,
        )

    def test_free_primary_floor_not_duplicated(self):
        resolver = ModelFallbackResolver(ModelCatalog(), max_alternates=2)
        chain = resolver.chain_for("deepseek/deepseek-prover-v2:free")
        assert chain == (
            "deepseek/deepseek-prover-v2:free",
            FLOOR,
            "google/gemini-flash-1.5",
        )
        assert chain.count(FLOOR) == 1

    def test_floor_as_primary(self):
        resolver = ModelFallbackResolver(ModelCatalog(), max_alternates=0)
        assert resolver.chain_for(FLOOR) == (FLOOR,)

    def test_alternates_capped(self):
        resolver = ModelFallbackResolver(ModelCatalog(), max_alternates=1)
        assert resolver.chain_for("openai/gpt-4o") == (
            "openai/gpt-4o",
            "anthropic/claude-sonnet-4",
            FLOOR,
        )

    def test_same_tier_alternates_only(self):
        catalog = ModelCatalog()
        resolver = ModelFallbackResolver(catalog, max_alternates=5)
        chain = resolver.chain_for("anthropic/claude-sonnet-4")
        assert [catalog.tier_of(m) for m in chain[:-1]] == [ModelTier.PREMIUM] * (len(chain) - 1)
        assert chain[-1] == FLOOR

    def test_unknown_primary(self):
        resolver = ModelFallbackResolver(ModelCatalog(), max_alternates=1)
        chain = resolver.chain_for("mistral/mistral-7b:free")
        assert chain[0] == "mistral/mistral-7b:free"
        assert chain[1] == "deepseek/deepseek-prover-v2:free"
        assert chain[-1] == FLOOR

    def test_chain_memoised(self):
        resolver = ModelFallbackResolver(ModelCatalog())
        assert resolver.chain_for("openai/gpt-4o") is resolver.chain_for("openai/gpt-4o")
