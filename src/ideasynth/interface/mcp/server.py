"""MCP server factory.

Creates either an Engine or Studio server depending on the requested
mode. Each surface registers only its own tool set.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable

from mcp.server.fastmcp import FastMCP

from ...config.runtime import RuntimeSettings, get_settings
from ...ports.lifecycle import aclose_all
from ...services.index_service import IndexService
from ..endpoints import Endpoints
from .tools import register_engine_tools, register_studio_tools

logger = logging.getLogger(__name__)

_SERVER_NAMES = {
    "engine": "ideasynth-engine",
    "studio": "ideasynth-studio",
}


def create_server(
    mode: str = "engine",
    *,
    settings: RuntimeSettings | None = None,
    endpoints_factory: Callable[[], Endpoints] | None = None,
    index_factory: Callable[[], IndexService] | None = None,
) -> FastMCP:
    """Build and return a configured FastMCP server.

    Args:
        mode: ``"engine"`` for idea generation and search, ``"studio"``
            for collection administration.
        settings: Runtime settings (defaults to ``get_settings()``).
        endpoints_factory / index_factory: Override how the backing
            objects are built; they are only called on first tool use.

    Whatever the factories built is closed when the server shuts down.
    """
    if mode not in _SERVER_NAMES:
        raise ValueError(f"Unknown MCP mode {mode!r}; expected 'engine' or 'studio'")
    settings = settings or get_settings()
    backends: list[Any] = []

    @asynccontextmanager
    async def lifespan(_server: FastMCP) -> AsyncIterator[None]:
        try:
            yield
        finally:
            logger.info("Closing MCP backends", extra={"mode": mode})
            await aclose_all(*backends)

    server = FastMCP(_SERVER_NAMES[mode], lifespan=lifespan)
    if mode == "engine":
        if endpoints_factory is None:
            from ...wiring import build_endpoints

            endpoints_factory = lambda: build_endpoints(settings)  # noqa: E731
        backends.append(register_engine_tools(server, endpoints_factory, settings))
    else:
        if index_factory is None:
            from ...wiring import build_index_service

            index_factory = lambda: build_index_service(settings)  # noqa: E731
        backends.append(register_studio_tools(server, index_factory, settings))
    return server


def run_server(mode: str = "engine", settings: RuntimeSettings | None = None) -> None:
    """Check scope, then serve over stdio."""
    from .auth import check_scope

    settings = settings or get_settings()
    check_scope(mode, settings)
    create_server(mode, settings=settings).run(transport="stdio")
