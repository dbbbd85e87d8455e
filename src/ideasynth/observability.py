"""Observability: logging setup, structured tool logs, in-process counters."""

from __future__ import annotations

import logging
from typing import Any

_LOGGER = logging.getLogger("ideasynth.mcp")

_LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

# tool_calls[name] = count, errors[name] = count
METRICS: dict[str, dict[str, int]] = {"tool_calls": {}, "errors": {}}


def configure_logging(level: str = "INFO") -> None:
    """Root logging for the CLI and MCP entry points. Logs go to stderr."""
    logging.basicConfig(level=getattr(logging, level.upper(), logging.INFO), format=_LOG_FORMAT)


def log_tool_invocation(
    tool: str,
    latency_ms: float,
    status: int | None = None,
    error: str | None = None,
    extra: dict[str, Any] | None = None,
) -> None:
    """Emit a structured log line for one tool call and bump the counters."""
    payload: dict[str, Any] = {
        "tool": tool,
        "latency_ms": round(latency_ms, 2),
    }
    if status is not None:
        payload["status_code"] = status
    if error:
        payload["error_kind"] = error
    if extra:
        payload.update(extra)
    _LOGGER.info("tool_invocation", extra=payload)
    METRICS["tool_calls"][tool] = METRICS["tool_calls"].get(tool, 0) + 1
    if error:
        METRICS["errors"][tool] = METRICS["errors"].get(tool, 0) + 1


def metrics_snapshot() -> dict[str, dict[str, int]]:
    return {k: dict(v) for k, v in METRICS.items()}


def reset_metrics() -> None:
    for counters in METRICS.values():
        counters.clear()
