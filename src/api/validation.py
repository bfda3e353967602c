# src/api/validation.py — v1
"""Input validation for gateway entry points. Runs before any network activity."""

from __future__ import annotations

import re

from pegasus_gateway.core.errors import PromptValidationError

_MODEL_ID = re.compile(r"^[A-Za-z0-9][A-Za-z0-9._\-/:]*$")
_MAX_MODEL_ID_LENGTH = 200


def validate_prompt(prompt: object, min_chars: int = 5, max_chars: int = 100_000) -> str:
    """Return the prompt if it is a usable string, else raise PromptValidationError."""
    if not isinstance(prompt, str):
        raise PromptValidationError(
            f"Prompt must be a string, got {type(prompt).__name__}"
        )
    if "\x00" in prompt:
        raise PromptValidationError("Prompt contains NUL characters")

    length = len(prompt.strip())
    if length < min_chars:
        raise PromptValidationError(
            f"Prompt too short: {length} characters (minimum {min_chars})"
        )
    if len(prompt) > max_chars:
        raise PromptValidationError(
            f"Prompt too long: {len(prompt)} characters (maximum {max_chars})"
        )
    return prompt


def validate_model(model: object) -> str:
    """Return the model identifier if well-formed, else raise PromptValidationError."""
    if not isinstance(model, str) or not model.strip():
        raise PromptValidationError("Model identifier must be a non-empty string")
    if len(model) > _MAX_MODEL_ID_LENGTH or not _MODEL_ID.match(model):
        raise PromptValidationError(f"Invalid model identifier: {model!r}")
    return model
