# src/prompt/compressor.py — v1
"""Deterministic prompt shrinking to cut outbound token cost.

Removes redundant phrasing only: whitespace runs, filler phrases, and a few
long words with well-known abbreviations. Fenced code blocks and inline
`code` spans are copied verbatim, and abbreviations only apply to standalone
words, never to parts of file names, paths or identifiers. Passes repeat until
the text stops changing, so compress() is idempotent.
"""

from __future__ import annotations

import re

from pydantic import BaseModel

_CODE = re.compile(r"(```.*?```|`[^`\n]+`)", re.DOTALL)

_FILLER_PHRASES: tuple[str, ...] = (
    "it is important to note that",
    "please note that",
    "please make sure that",
    "i would like you to",
    "i want you to",
    "as you can see",
    "needless to say",
    "basically",
    "actually",
    "kindly",
)

_REPLACEMENTS: tuple[tuple[str, str], ...] = (
    ("in order to", "to"),
    ("due to the fact that", "because"),
    ("at this point in time", "now"),
    ("a large number of", "many"),
)

_ABBREVIATIONS: tuple[tuple[str, str], ...] = (
    ("configuration", "config"),
    ("documentation", "docs"),
    ("repository", "repo"),
    ("application", "app"),
)

# Not adjacent to word characters, path separators, dots, dashes or backticks.
_STANDALONE = r"(?<![\w./\\\-`]){}(?![\w./\\\-`])"

_FILLER_RE = re.compile(
    r"\b(?:" + "|".join(re.escape(p) for p in _FILLER_PHRASES) + r")\b[ \t]*,?[ \t]*",
    re.IGNORECASE,
)
_REPLACEMENT_RES = [
    (re.compile(r"\b" + re.escape(src) + r"\b", re.IGNORECASE), dst)
    for src, dst in _REPLACEMENTS
]
_ABBREVIATION_RES = [
    (re.compile(_STANDALONE.format(re.escape(src))), dst) for src, dst in _ABBREVIATIONS
]


class CompressionResult(BaseModel):
    """Outcome of compressing one prompt."""

    content: str
    original_length: int
    compressed_length: int
    ratio: float

    @property
    def saved_chars(self) -> int:
        return self.original_length - self.compressed_length


class PromptCompressor:
    """Apply the fixed compression rules."""

    def compress(self, text: str) -> CompressionResult:
        # Every pass shortens the text or only turns tabs into spaces, so this
        # reaches a fixed point.
        content = text
        while True:
            compressed = self._one_pass(content)
            if compressed == content:
                break
            content = compressed

        original = len(text)
        return CompressionResult(
            content=content,
            original_length=original,
            compressed_length=len(content),
            ratio=(len(content) / original) if original else 1.0,
        )

    def _one_pass(self, text: str) -> str:
        segments = _CODE.split(text)
        # Odd indices are code blocks or inline code spans.
        out = [
            seg if i % 2 else self._compress_prose(seg)
            for i, seg in enumerate(segments)
        ]
        return "".join(out).strip()

    @staticmethod
    def _compress_prose(text: str) -> str:
        for pattern, replacement in _REPLACEMENT_RES:
            text = pattern.sub(replacement, text)
        for pattern, replacement in _ABBREVIATION_RES:
            text = pattern.sub(replacement, text)
        text = _FILLER_RE.sub("", text)
        text = re.sub(r"[ \t]+", " ", text)
        text = re.sub(r" *\n *", "\n", text)
        return re.sub(r"\n{3,}", "\n\n", text)


def compress_prompt(text: str) -> CompressionResult:
    """Module-level convenience wrapper."""
    return PromptCompressor().compress(text)
