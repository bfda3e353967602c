# src/logging/context.py — v1
"""Contextual logging support: attach request_id, model, operation to log records."""

from __future__ import annotations

import contextvars
from dataclasses import dataclass
from typing import Any

# Context variables for structured logging, set per gateway request.
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "request_id", default=None
)
_model: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "model", default=None
)
_operation: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "operation", default=None
)


@dataclass
class LogContext:
    """Immutable snapshot of current logging context."""

    request_id: str | None = None
    model: str | None = None
    operation: str | None = None

    def as_dict(self) -> dict[str, Any]:
        """Return non-None fields as dict for JSON log injection."""
        return {k: v for k, v in self.__dict__.items() if v is not None}


def get_context() -> LogContext:
    """Snapshot current context variables."""
    return LogContext(
        request_id=_request_id.get(),
        model=_model.get(),
        operation=_operation.get(),
    )


def set_request_context(request_id: str, model: str | None = None) -> None:
    """Set request-level context (called once per gateway call)."""
    _request_id.set(request_id)
    _model.set(model)


def set_model_context(model: str) -> None:
    """Update the model currently being attempted."""
    _model.set(model)


def set_operation_context(operation: str | None) -> None:
    """Set the named operation (circuit breaker scope)."""
    _operation.set(operation)


def clear_context() -> None:
    """Reset all context variables."""
    _request_id.set(None)
    _model.set(None)
    _operation.set(None)
