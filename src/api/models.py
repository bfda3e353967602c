# src/api/models.py — v1
"""API-level models: GatewayHealth, ChainDescription."""

from __future__ import annotations

from pydantic import BaseModel, Field

from pegasus_gateway.cache.models import CacheStats
from pegasus_gateway.config.models import ModelTier
from pegasus_gateway.resilience.circuit_breaker import CircuitBreakerStatus
from pegasus_gateway.resilience.health import HealthSnapshot, HealthStatus


class GatewayHealth(BaseModel):
    """Aggregated health view returned by Gateway.health_status()."""

    status: HealthStatus
    upstream: HealthSnapshot
    breakers: list[CircuitBreakerStatus] = Field(default_factory=list)
    cache: CacheStats | None = None
    pending_requests: int = 0


class ChainLink(BaseModel):
    """One model in a resolved fallback chain."""

    model: str
    tier: ModelTier


class ChainDescription(BaseModel):
    """Fallback chain resolved for a primary model."""

    primary: str
    links: list[ChainLink]

    @property
    def models(self) -> list[str]:
        return [link.model for link in self.links]
