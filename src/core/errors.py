# src/core/errors.py — v1
"""Gateway error taxonomy.

Validation and authoritative upstream errors reach the caller immediately.
Transport and response-shape errors are absorbed by retries and the model
fallback chain, and only surface wrapped in FallbackChainExhaustedError.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for every error raised by the gateway."""


class PromptValidationError(GatewayError, ValueError):
    """Prompt or model input rejected before any network activity."""


# --- Upstream errors ---


class UpstreamError(GatewayError):
    """Failure reported by, or while talking to, the upstream provider."""

    def __init__(self, message: str, model: str | None = None) -> None:
        self.model = model
        super().__init__(message)


class TransportError(UpstreamError):
    """Connection reset, DNS failure, socket error or 5xx gateway error. Retryable."""


class UpstreamTimeoutError(TransportError):
    """An attempt exceeded its timeout. Retryable."""


class ResponseShapeError(UpstreamError):
    """Upstream payload lacks choices[0].message.content. Next model is tried."""


class AuthoritativeUpstreamError(UpstreamError):
    """Terminal upstream verdict: never retried, never fallen back."""


class UpstreamAuthenticationError(AuthoritativeUpstreamError):
    """Invalid or missing API key."""


class UpstreamRateLimitError(AuthoritativeUpstreamError):
    """Provider refused the request because of rate limiting."""


# --- Resilience errors ---


class RetryExhaustedError(GatewayError):
    """All attempts for a single model failed with retryable errors."""

    def __init__(self, attempts: int, last_error: BaseException, model: str | None = None):
        self.attempts = attempts
        self.last_error = last_error
        self.model = model
        target = f" for model '{model}'" if model else ""
        super().__init__(f"Failed after {attempts} attempts{target}: {last_error}")


class FallbackChainExhaustedError(GatewayError):
    """Every model of the fallback chain failed."""

    def __init__(self, models: tuple[str, ...], last_error: BaseException):
        self.models = models
        self.last_error = last_error
        last_model = getattr(last_error, "model", None) or (models[-1] if models else "?")
        super().__init__(
            f"All {len(models)} models failed; last failure ({last_model}): {last_error}"
        )


class ServiceUnavailableError(GatewayError):
    """Circuit is open and no stale response is available."""

    def __init__(self, operation: str, retry_in_s: float | None = None):
        self.operation = operation
        self.retry_in_s = retry_in_s
        suffix = f" (retry in {retry_in_s:.0f}s)" if retry_in_s else ""
        super().__init__(f"Service {operation} is temporarily unavailable{suffix}")
