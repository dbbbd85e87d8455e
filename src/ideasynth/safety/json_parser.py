"""Safe parsing of untrusted JSON text.

Every call site that reads JSON produced outside this process (backend
response bodies, request bodies, seed files) goes through ``safe_parse``.
The checks run in a fixed order: empty input, byte size, grammar, nesting
depth, then recursive removal of structural keys.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_SIZE_BYTES = 1024 * 1024
DEFAULT_MAX_DEPTH = 100

# Keys that alter object behavior in prototype-based consumers, plus the
# Python attribute names that matter to reflective consumers.
DANGEROUS_KEYS = frozenset({
    "__proto__",
    "constructor",
    "prototype",
    "__defineGetter__",
    "__defineSetter__",
    "__lookupGetter__",
    "__lookupSetter__",
    "__class__",
    "__dict__",
    "__init__",
    "__globals__",
})


class ParseErrorKind(str, Enum):
    EMPTY_INPUT = "EMPTY_INPUT"
    SIZE_EXCEEDED = "SIZE_EXCEEDED"
    SYNTAX_ERROR = "SYNTAX_ERROR"
    DEPTH_EXCEEDED = "DEPTH_EXCEEDED"


class ParseError(ValueError):
    """Untrusted JSON failed one of the safety checks."""

    def __init__(self, message: str, kind: ParseErrorKind) -> None:
        super().__init__(message)
        self.kind = kind


@dataclass(frozen=True)
class ParseLimits:
    """Size and depth bounds applied by ``safe_parse``."""

    max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES
    max_depth: int = DEFAULT_MAX_DEPTH

    @classmethod
    def from_settings(cls, settings: Any) -> ParseLimits:
        return cls(
            max_size_bytes=settings.json_max_size_bytes,
            max_depth=settings.json_max_depth,
        )


def _reject_constant(name: str) -> Any:
    raise ValueError(f"non-standard JSON constant {name!r}")


def nesting_depth(value: Any) -> int:
    """Container nesting depth; a scalar is 0, ``{"a": 1}`` is 1.

    Each level of container counts once for the values it holds, so an empty
    container adds no depth of its own: ``[[]]`` is 1.
    """
    deepest = 0
    stack: list[tuple[Any, int]] = [(value, 0)]
    while stack:
        node, depth = stack.pop()
        if depth > deepest:
            deepest = depth
        if isinstance(node, dict):
            stack.extend((child, depth + 1) for child in node.values())
        elif isinstance(node, list):
            stack.extend((child, depth + 1) for child in node)
    return deepest


def strip_dangerous_keys(value: Any, path: str = "$") -> Any:
    """Return a copy of ``value`` with every dangerous key removed at any depth."""
    if isinstance(value, list):
        return [strip_dangerous_keys(item, f"{path}[{i}]") for i, item in enumerate(value)]
    if not isinstance(value, dict):
        return value
    clean: dict[str, Any] = {}
    for key, child in value.items():
        if key in DANGEROUS_KEYS:
            logger.warning("Dangerous key removed from JSON object", extra={"key": key, "path": path})
            continue
        clean[key] = strip_dangerous_keys(child, f"{path}.{key}")
    return clean


def safe_parse(
    text: str | None,
    *,
    max_size_bytes: int | None = None,
    max_depth: int | None = None,
    limits: ParseLimits | None = None,
) -> Any:
    """Parse untrusted JSON text into a sanitized value.

    Args:
        text: Raw JSON text.
        max_size_bytes: Per-call override of the UTF-8 size limit.
        max_depth: Per-call override of the nesting limit.
        limits: Base limits (defaults to ``ParseLimits()``); explicit
            ``max_size_bytes`` / ``max_depth`` win over it.

    Returns:
        The parsed value: dict, list, str, int, float, bool or None.

    Raises:
        ParseError: ``kind`` tells which check failed.
    """
    base = limits or ParseLimits()
    size_limit = max_size_bytes if max_size_bytes is not None else base.max_size_bytes
    depth_limit = max_depth if max_depth is not None else base.max_depth

    if not isinstance(text, str) or not text:
        raise ParseError("JSON input is empty or not a string", ParseErrorKind.EMPTY_INPUT)
    trimmed = text.strip()
    if not trimmed:
        raise ParseError("JSON input is empty", ParseErrorKind.EMPTY_INPUT)

    size = len(trimmed.encode("utf-8"))
    if size > size_limit:
        logger.warning("JSON size exceeds limit", extra={"size": size, "limit": size_limit})
        raise ParseError(
            f"JSON payload too large ({size} > {size_limit} bytes)",
            ParseErrorKind.SIZE_EXCEEDED,
        )

    try:
        parsed = json.loads(trimmed, parse_constant=_reject_constant)
    except json.JSONDecodeError as exc:
        logger.warning("JSON parse failed", extra={"error": exc.msg, "json_length": len(trimmed)})
        raise ParseError(
            f"JSON syntax error: {exc.msg} (line {exc.lineno}, column {exc.colno})",
            ParseErrorKind.SYNTAX_ERROR,
        ) from exc
    except ValueError as exc:
        raise ParseError(f"JSON syntax error: {exc}", ParseErrorKind.SYNTAX_ERROR) from exc
    except RecursionError as exc:
        raise ParseError(
            f"JSON nesting too deep (> {depth_limit})",
            ParseErrorKind.DEPTH_EXCEEDED,
        ) from exc

    depth = nesting_depth(parsed)
    if depth > depth_limit:
        logger.warning("JSON depth exceeds limit", extra={"depth": depth, "limit": depth_limit})
        raise ParseError(
            f"JSON nesting too deep ({depth} > {depth_limit})",
            ParseErrorKind.DEPTH_EXCEEDED,
        )

    sanitized = strip_dangerous_keys(parsed)
    logger.debug(
        "JSON parsed",
        extra={"size": size, "depth": depth, "json_type": type(sanitized).__name__},
    )
    return sanitized


def safe_parse_with_fallback(
    text: str | None,
    fallback: T,
    *,
    max_size_bytes: int | None = None,
    max_depth: int | None = None,
    limits: ParseLimits | None = None,
) -> Any | T:
    """Like ``safe_parse`` but return ``fallback`` when any check fails."""
    try:
        return safe_parse(text, max_size_bytes=max_size_bytes, max_depth=max_depth, limits=limits)
    except ParseError as exc:
        logger.info("JSON parse failed, using fallback", extra={"kind": exc.kind.value})
        return fallback
