# tests/unit/api/test_unit_models.py — v1
"""Tests for api/models.py — gateway health and chain description models."""

from __future__ import annotations

from pegasus_gateway.api.models import ChainDescription, ChainLink, GatewayHealth
from pegasus_gateway.config.models import ModelTier
from pegasus_gateway.resilience.health import HealthSnapshot


class TestGatewayHealth:
    def test_create(self):
        upstream = HealthSnapshot(is_healthy=True, status="healthy", error_rate=0.0)
        health = GatewayHealth(status="healthy", upstream=upstream)
        assert health.breakers == []
        assert health.cache is None
        assert health.pending_requests == 0


class TestChainDescription:
    def test_models(self):
        chain = ChainDescription(
            primary="openai/gpt-4o",
            links=[
                ChainLink(model="openai/gpt-4o", tier=ModelTier.PREMIUM),
                ChainLink(model="x:free", tier=ModelTier.FREE),
            ],
        )
        assert chain.models == ["openai/gpt-4o", "x:free"]
