# src/config/settings.py — v1
"""Typed configuration loaded from .env via pydantic-settings.

Single source of truth for every tunable of the gateway: upstream provider,
request parameters, cache, retry, circuit breaker, health and prompt limits.
"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when configuration is internally inconsistent."""


class Settings(BaseSettings):
    """Application settings loaded from .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # === UPSTREAM PROVIDER ===
    llm_provider: str = "openrouter"
    openrouter_api_key: str = ""
    openai_api_key: str = ""
    llm_base_url: str = ""
    site_url: str = "http://localhost:3000"
    site_name: str = "Pegasus API"

    # === MODELS ===
    llm_default_model: str = "anthropic/claude-3.7-sonnet"
    llm_free_floor_model: str = "deepseek/deepseek-chat-v3-0324:free"
    fallback_max_alternates: int = 2
    # Additional catalog entries: "vendor/model=free,vendor/other=premium"
    extra_models: str = ""

    # === Request parameters ===
    llm_max_tokens: int = 4096
    llm_temperature: float = 0.3
    llm_presence_penalty: float = 0.0
    llm_frequency_penalty: float = 0.0
    request_timeout_s: float = 60.0
    attempt_timeout_s: float = 90.0

    # === Cache ===
    cache_enabled: bool = True
    cache_max_age_s: float = 3600.0
    cache_max_size: int = 1000
    cache_sweep_interval_s: float = 300.0
    cache_stale_max_age_s: float = 86400.0
    cache_key_normalize: bool = False

    # === Retry ===
    retry_max_attempts: int = 3
    retry_base_delay_ms: int = 1000
    retry_jitter_ratio: float = 1.0

    # === Circuit breaker ===
    circuit_failure_threshold: int = 5
    circuit_cooldown_s: float = 60.0
    # Upstream error rate (health EWMA) at which a failure opens the breaker early
    circuit_error_rate_threshold: float = 0.5

    # === Health ===
    health_failure_threshold: int = 3
    health_degraded_idle_s: float = 60.0
    health_unhealthy_idle_s: float = 300.0

    # === Prompt limits ===
    prompt_min_chars: int = 5
    prompt_max_chars: int = 100_000
    compression_enabled: bool = True

    # === Logging ===
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "text"] = "json"
    log_file: Path | None = None
    log_rotation: str = "10MB"
    log_retention: int = 30

    # --- Validators ---

    @field_validator("retry_jitter_ratio")
    @classmethod
    def validate_jitter_ratio(cls, v: float) -> float:  # noqa: N805
        """Jitter never exceeds the base delay, keeping backoff non-decreasing."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("retry_jitter_ratio must be within [0, 1]")
        return v

    @model_validator(mode="after")
    def validate_config_consistency(self) -> Settings:
        """Validate cross-field consistency rules."""
        errors: list[str] = []

        if self.retry_max_attempts < 1:
            errors.append("RETRY_MAX_ATTEMPTS must be >= 1")

        if self.retry_base_delay_ms < 0:
            errors.append("RETRY_BASE_DELAY_MS must be >= 0")

        if self.circuit_failure_threshold < 1:
            errors.append("CIRCUIT_FAILURE_THRESHOLD must be >= 1")

        if not 0.0 < self.circuit_error_rate_threshold <= 1.0:
            errors.append("CIRCUIT_ERROR_RATE_THRESHOLD must be within (0, 1]")

        if self.health_failure_threshold < 1:
            errors.append("HEALTH_FAILURE_THRESHOLD must be >= 1")

        if self.cache_max_size < 1:
            errors.append("CACHE_MAX_SIZE must be >= 1")

        if self.cache_max_age_s <= 0 or self.cache_sweep_interval_s <= 0:
            errors.append("CACHE_MAX_AGE_S and CACHE_SWEEP_INTERVAL_S must be > 0")

        if self.prompt_min_chars >= self.prompt_max_chars:
            errors.append("PROMPT_MIN_CHARS must be < PROMPT_MAX_CHARS")

        if self.health_degraded_idle_s > self.health_unhealthy_idle_s:
            errors.append(
                "HEALTH_DEGRADED_IDLE_S must be <= HEALTH_UNHEALTHY_IDLE_S"
            )

        if self.fallback_max_alternates < 0:
            errors.append("FALLBACK_MAX_ALTERNATES must be >= 0")

        if errors:
            raise ConfigurationError("; ".join(errors))

        return self

    # --- Helpers ---

    @property
    def retry_base_delay_s(self) -> float:
        """Base retry delay in seconds."""
        return self.retry_base_delay_ms / 1000.0

    @property
    def extra_models_map(self) -> dict[str, str]:
        """Parse comma-separated 'model=tier' pairs."""
        pairs: dict[str, str] = {}
        for item in self.extra_models.split(","):
            if "=" not in item:
                continue
            model, tier = item.rsplit("=", 1)
            if model.strip() and tier.strip():
                pairs[model.strip()] = tier.strip().lower()
        return pairs

    @property
    def api_key(self) -> str:
        """API key for the configured provider."""
        if self.llm_provider == "openai":
            return self.openai_api_key
        return self.openrouter_api_key


def load_settings(**overrides: object) -> Settings:
    """Load settings from .env with optional overrides.

    Args:
        **overrides: Field-level overrides (for testing or embedding).

    Returns:
        Validated Settings instance.

    Raises:
        ConfigurationError: If configuration is internally inconsistent.
    """
    return Settings(**overrides)  # type: ignore[arg-type]
