"""Configuration package.

Single source of truth: ``RuntimeSettings`` via ``get_settings()``.
"""

from .runtime import (
    EmbeddingBackend,
    GenerationBackend,
    McpMode,
    RuntimeSettings,
    get_settings,
)

__all__ = [
    "EmbeddingBackend",
    "GenerationBackend",
    "McpMode",
    "RuntimeSettings",
    "get_settings",
]
