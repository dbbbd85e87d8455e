"""Caller-facing surfaces: HTTP-shaped endpoints, MCP servers and the CLI."""

from .endpoints import GenerateIdeaEndpoint, SearchProjectsEndpoint
from .errors import ApiResponse, AppError, ErrorKind, classify_error, handle_error

__all__ = [
    "ApiResponse",
    "AppError",
    "ErrorKind",
    "GenerateIdeaEndpoint",
    "SearchProjectsEndpoint",
    "classify_error",
    "handle_error",
]
