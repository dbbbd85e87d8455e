"""MCP surfaces (engine and studio)."""

from .server import create_server, run_server

__all__ = ["create_server", "run_server"]
