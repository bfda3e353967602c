# src/cache/keys.py — v1
"""Request keys for the response cache and the in-flight tracker.

Both keys are SHA-256 digests of (model, prompt). The cache key may normalise
case and whitespace so trivially different prompts share a response; the
in-flight key is always exact, so concurrent bursts only collapse on
byte-identical requests.
"""

from __future__ import annotations

import hashlib
import re

_SEPARATOR = "\x00"


def cache_key(model: str, prompt: str, normalize: bool = False) -> str:
    """Deterministic cache key for a (model, prompt) pair."""
    text = _normalize_text(prompt) if normalize else prompt
    return _digest(model, text)


def inflight_key(model: str, prompt: str) -> str:
    """Exact-text key used to deduplicate concurrent identical requests."""
    return _digest(model, prompt)


def _digest(model: str, prompt: str) -> str:
    payload = f"{model}{_SEPARATOR}{prompt}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()


def _normalize_text(text: str) -> str:
    """Lowercase and collapse whitespace."""
    return re.sub(r"\s+", " ", text).strip().lower()
