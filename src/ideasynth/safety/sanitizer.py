"""Plain-text sanitization for request fields."""

from __future__ import annotations

import re

MAX_TEXT_LENGTH = 10_000

_BLOCK_RE = re.compile(r"<(script|style|iframe|object|embed)\b[^>]*>.*?</\1\s*>", re.IGNORECASE | re.DOTALL)
_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_text(text: str | None, max_length: int = MAX_TEXT_LENGTH) -> str:
    """Drop markup (and the contents of script-like blocks), collapse whitespace, cap length."""
    if not text or not isinstance(text, str):
        return ""
    text = _BLOCK_RE.sub(" ", text)
    text = _TAG_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()[:max_length]
