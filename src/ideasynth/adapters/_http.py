"""Helpers shared by the httpx-based adapters."""

from __future__ import annotations

from typing import Any

import httpx

from ..errors import EmbeddingError
from ..safety.json_parser import ParseLimits, safe_parse, safe_parse_with_fallback


def extract_error_message(response: httpx.Response) -> str:
    """Best-effort human message from an error response body."""
    text = response.text
    body = safe_parse_with_fallback(text, None)
    if isinstance(body, dict):
        for key in ("error", "message", "detail"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
    if isinstance(body, str) and body:
        return body
    if body is None and text.strip():
        return text.strip()
    return "Unknown error"


def parse_json_body(response: httpx.Response, limits: ParseLimits | None = None) -> Any:
    """Run a response body through the safe parser. Raises ParseError."""
    return safe_parse(response.text, limits=limits)


def to_vector(raw: Any) -> list[float]:
    if not isinstance(raw, list):
        raise EmbeddingError("Embedding is not a list of numbers", code="INVALID_RESPONSE")
    try:
        return [float(x) for x in raw]
    except (TypeError, ValueError) as exc:
        raise EmbeddingError("Embedding is not a list of numbers", code="INVALID_RESPONSE", cause=exc) from exc


def check_dimension(vector: list[float], expected: int | None) -> list[float]:
    if expected is not None and len(vector) != expected:
        raise EmbeddingError(
            f"Embedding dimension mismatch: expected {expected}, got {len(vector)}",
            code="DIMENSION_MISMATCH",
        )
    return vector


def first_embedding(body: Any, source: str) -> list[float]:
    """First vector of an ``{"embeddings": [[...], ...]}`` response body."""
    embeddings = body.get("embeddings") if isinstance(body, dict) else None
    if embeddings is not None and not isinstance(embeddings, list):
        raise EmbeddingError(f"{source} returned embeddings in an unexpected shape", code="INVALID_RESPONSE")
    if not embeddings:
        raise EmbeddingError(f"No embeddings returned from {source}", code="NO_EMBEDDINGS")
    return to_vector(embeddings[0])
