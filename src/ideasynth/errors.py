"""Typed errors raised by adapters and services.

Each component raises its own error type; only the boundary handler in
``ideasynth.interface.errors`` turns them into status codes and messages.
"""

from __future__ import annotations


class EmbeddingError(Exception):
    """Embedding backend failure, tagged with a stable ``code``."""

    def __init__(
        self,
        message: str,
        code: str = "EMBEDDING_ERROR",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.cause = cause


class VectorDBError(Exception):
    """Vector store failure. ``cause`` keeps the transport error for logs only."""

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.cause = cause


class GenerationError(Exception):
    """Generative backend failure."""

    def __init__(
        self,
        message: str,
        code: str = "GENERATION_ERROR",
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.cause = cause


class CallTimeoutError(TimeoutError):
    """An external call exceeded its configured duration."""

    def __init__(self, stage: str, timeout_seconds: float | None) -> None:
        if timeout_seconds is None:
            message = f"{stage} call timed out"
        else:
            message = f"{stage} call timed out after {timeout_seconds:g}s"
        super().__init__(message)
        self.stage = stage
        self.timeout_seconds = timeout_seconds


class ConfigurationError(Exception):
    """Invalid or incomplete runtime configuration."""
