# src/config/models.py — v1
"""Declarative model catalog: known upstream models, their tier, task routing.

Every model identifier carries an explicit ModelTier resolved when the catalog
is built. Identifiers unknown to the catalog are classified once by the
OpenRouter ":free" naming convention and memoised.
"""

from __future__ import annotations

import logging
from enum import Enum

from pegasus_gateway.config.settings import ConfigurationError, Settings

logger = logging.getLogger(__name__)


class ModelTier(str, Enum):
    """Billing tier of an upstream model."""

    FREE = "free"
    PREMIUM = "premium"


# Ordered: earlier entries are preferred as same-tier alternates.
KNOWN_MODELS: dict[str, ModelTier] = {
    "deepseek/deepseek-prover-v2:free": ModelTier.FREE,
    "deepseek/deepseek-chat-v3-0324:free": ModelTier.FREE,
    "google/gemini-flash-1.5": ModelTier.FREE,
    "meta-llama/llama-3.3-70b-instruct:free": ModelTier.FREE,
    "anthropic/claude-sonnet-4": ModelTier.PREMIUM,
    "anthropic/claude-3.7-sonnet": ModelTier.PREMIUM,
    "openai/gpt-4o": ModelTier.PREMIUM,
}

# Consumer task -> model used for it.
TASK_MODEL_MAP: dict[str, str] = {
    "CHAT_CLASSIFICATION": "deepseek/deepseek-prover-v2:free",
    "FEATURE_EXTRACTION": "google/gemini-flash-1.5",
    "FEATURE_VALIDATION": "google/gemini-flash-1.5",
    "PROMPT_REFINEMENT": "deepseek/deepseek-prover-v2:free",
    "CODE_GENERATION": "anthropic/claude-sonnet-4",
    "PLUGIN_CHAT": "anthropic/claude-sonnet-4",
}

_FREE_SUFFIX = ":free"


def classify_by_name(model: str) -> ModelTier:
    """Tier implied by the provider naming convention."""
    return ModelTier.FREE if model.endswith(_FREE_SUFFIX) else ModelTier.PREMIUM


def model_for_task(task: str) -> str:
    """Return the model assigned to a consumer task.

    Raises:
        ValueError: If the task is unknown.
    """
    try:
        return TASK_MODEL_MAP[task.upper()]
    except KeyError:
        raise ValueError(
            f"Unknown task: {task!r}. Available: {', '.join(sorted(TASK_MODEL_MAP))}"
        ) from None


class ModelCatalog:
    """Registry of model identifiers and their tier."""

    def __init__(
        self,
        models: dict[str, ModelTier] | None = None,
        free_floor_model: str = "deepseek/deepseek-chat-v3-0324:free",
    ) -> None:
        self._tiers: dict[str, ModelTier] = dict(KNOWN_MODELS if models is None else models)
        if free_floor_model not in self._tiers:
            self._tiers[free_floor_model] = ModelTier.FREE
        if self._tiers[free_floor_model] is not ModelTier.FREE:
            raise ConfigurationError(
                f"Free floor model {free_floor_model!r} is not a free-tier model"
            )
        self._free_floor = free_floor_model
        self._inferred: dict[str, ModelTier] = {}

    @classmethod
    def from_settings(cls, settings: Settings) -> ModelCatalog:
        """Build the catalog from built-in models plus EXTRA_MODELS."""
        models = dict(KNOWN_MODELS)
        for model, tier in settings.extra_models_map.items():
            try:
                models[model] = ModelTier(tier)
            except ValueError:
                raise ConfigurationError(
                    f"Invalid tier {tier!r} for model {model!r} in EXTRA_MODELS"
                ) from None
        return cls(models=models, free_floor_model=settings.llm_free_floor_model)

    @property
    def free_floor_model(self) -> str:
        return self._free_floor

    def tier_of(self, model: str) -> ModelTier:
        """Return the tier of a model; unknown ids are classified once by name."""
        tier = self._tiers.get(model) or self._inferred.get(model)
        if tier is None:
            tier = classify_by_name(model)
            self._inferred[model] = tier
            logger.debug("Classified unknown model %s as %s tier", model, tier.value)
        return tier

    def models_in_tier(self, tier: ModelTier) -> list[str]:
        """Declared catalog models of a tier, in registration order."""
        return [m for m, t in self._tiers.items() if t is tier]

    def __contains__(self, model: object) -> bool:
        return model in self._tiers
