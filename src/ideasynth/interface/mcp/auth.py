"""MCP auth: the engine and studio surfaces can each require a key in the environment."""

from __future__ import annotations

import os

from ...config.runtime import RuntimeSettings, get_settings

ENGINE_KEY_ENV = "IDEASYNTH_ENGINE_KEY"
STUDIO_KEY_ENV = "IDEASYNTH_STUDIO_KEY"


def require_engine_scope(settings: RuntimeSettings | None = None) -> None:
    """Raises PermissionError when the engine key is required but not set."""
    settings = settings or get_settings()
    if settings.require_engine_key and not os.environ.get(ENGINE_KEY_ENV):
        raise PermissionError(f"Engine requires {ENGINE_KEY_ENV} to be set")


def require_studio_scope(settings: RuntimeSettings | None = None) -> None:
    """Raises PermissionError when the studio key is required but not set."""
    settings = settings or get_settings()
    if settings.require_studio_key and not os.environ.get(STUDIO_KEY_ENV):
        raise PermissionError(f"Studio requires {STUDIO_KEY_ENV} to be set")


def check_scope(mode: str, settings: RuntimeSettings | None = None) -> None:
    """Check scope for the given server mode. Call at server start."""
    if mode == "engine":
        require_engine_scope(settings)
    elif mode == "studio":
        require_studio_scope(settings)
    else:
        raise ValueError(f"Unknown mode: {mode!r}")
