# src/resilience/fallback.py — v1
"""Model fallback chains.

A chain starts with the requested model, continues with alternates of the
same tier, and ends on the free-tier floor model:

  free primary     -> other free models              -> free floor
  premium primary  -> other premium models           -> free floor
"""

from __future__ import annotations

import logging

from pegasus_gateway.config.models import ModelCatalog

logger = logging.getLogger(__name__)


class ModelFallbackResolver:
    """Compute and memoise the fallback chain of each primary model."""

    def __init__(self, catalog: ModelCatalog, max_alternates: int = 2) -> None:
        self._catalog = catalog
        self._max_alternates = max_alternates
        self._chains: dict[str, tuple[str, ...]] = {}

    def chain_for(self, primary: str) -> tuple[str, ...]:
        """Ordered models to try for ``primary``, primary first."""
        chain = self._chains.get(primary)
        if chain is None:
            chain = self._build(primary)
            self._chains[primary] = chain
            logger.debug("Fallback chain for %s: %s", primary, " -> ".join(chain))
        return chain

    def _build(self, primary: str) -> tuple[str, ...]:
        tier = self._catalog.tier_of(primary)
        alternates = [
            m for m in self._catalog.models_in_tier(tier) if m != primary
        ][: self._max_alternates]

        chain = [primary, *alternates]
        floor = self._catalog.free_floor_model
        if floor not in chain:
            chain.append(floor)
        return tuple(chain)
