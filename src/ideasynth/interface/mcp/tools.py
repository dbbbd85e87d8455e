"""Tool registry for the MCP servers.

Engine tools go through the same HTTP-shaped endpoints as any other caller,
so rate limiting, validation and the error taxonomy apply unchanged. Every
tool returns the JSON of the boundary response, status included.
"""

from __future__ import annotations

import json
import time
from typing import Any, Callable

from ...config.runtime import RuntimeSettings
from ...domain.project import ProjectRecord
from ...observability import log_tool_invocation, metrics_snapshot
from ...ports.lifecycle import aclose_all
from ...services.index_service import IndexService
from ..endpoints import Endpoints
from ..errors import ApiResponse, handle_error

ENGINE_TOOLS = frozenset({"ideas_generate", "projects_search", "ideas_health"})
STUDIO_TOOLS = frozenset({"collection_ensure", "collection_info", "projects_upsert", "projects_delete"})

ALLOWED_COLLECTION_INFO_KEYS = frozenset({"name", "points_count", "indexed_vectors_count", "status"})


def _dump(response: ApiResponse) -> str:
    return json.dumps({"status": response.status, "body": response.body}, ensure_ascii=False, indent=2)


def _error_kind(response: ApiResponse) -> str | None:
    if response.status < 400 or not isinstance(response.body, dict):
        return None
    return response.body.get("type") or str(response.status)


def _failure(exc: Exception, tool: str, settings: RuntimeSettings) -> ApiResponse:
    return handle_error(
        exc,
        {"tool": tool},
        debug=settings.expose_error_details,
        locale=settings.locale,
    )


class _Lazy:
    """Build on first use; a failed build is retried on the next call."""

    def __init__(self, factory: Callable[[], Any]) -> None:
        self._factory = factory
        self._built: list[Any] = []

    def __call__(self) -> Any:
        if not self._built:
            self._built.append(self._factory())
        return self._built[0]

    async def aclose(self) -> None:
        """Close whatever was built; nothing happens if it never was."""
        built, self._built = self._built, []
        await aclose_all(*built)


def register_engine_tools(mcp, endpoints_factory: Callable[[], Endpoints], settings: RuntimeSettings) -> _Lazy:
    """Register Engine (idea generation / search) tools.

    Returns the lazy endpoints holder so the server can close it on shutdown.
    """
    get_endpoints = _Lazy(endpoints_factory)

    @mcp.tool()
    async def ideas_generate(prize: str, client_id: str = "mcp") -> str:
        """Generate a hackathon project idea grounded in similar past projects.

        Args:
            prize: Prize or topic description (1-5000 chars)
            client_id: Caller identity used for rate limiting

        Returns:
            JSON {status, body}; on success body has idea, similarProjects, metadata
        """
        t0 = time.monotonic()
        try:
            response = await get_endpoints().generate.handle({"prize": prize}, client_id=client_id)
        except Exception as exc:
            response = _failure(exc, "ideas_generate", settings)
        log_tool_invocation("ideas_generate", (time.monotonic() - t0) * 1000, response.status, _error_kind(response))
        return _dump(response)

    @mcp.tool()
    async def projects_search(idea: str, limit: int = 5, client_id: str = "mcp") -> str:
        """Find past hackathon projects similar to an idea (no generation).

        Args:
            idea: Idea text (1-5000 chars)
            limit: Maximum projects to return (1-50, default 5)
            client_id: Caller identity used for rate limiting
        """
        t0 = time.monotonic()
        try:
            response = await get_endpoints().search.handle({"idea": idea, "limit": limit}, client_id=client_id)
        except Exception as exc:
            response = _failure(exc, "projects_search", settings)
        log_tool_invocation("projects_search", (time.monotonic() - t0) * 1000, response.status, _error_kind(response))
        return _dump(response)

    @mcp.tool()
    def ideas_health() -> str:
        """Report configured backends and tool call counters."""
        from ...wiring import resolve_generation_backend

        body = {
            "environment": settings.environment,
            "embedding_provider": settings.embedding_provider.value,
            "generation_provider": resolve_generation_backend(settings).value,
            "collection": settings.qdrant_collection_name,
            "metrics": metrics_snapshot(),
        }
        return _dump(ApiResponse(status=200, body=body))

    return get_endpoints


def register_studio_tools(mcp, index_factory: Callable[[], IndexService], settings: RuntimeSettings) -> _Lazy:
    """Register Studio (collection administration) tools. Returns the lazy index holder."""
    get_index = _Lazy(index_factory)

    @mcp.tool()
    async def collection_ensure(dimension: int | None = None) -> str:
        """Create the project collection if it does not exist.

        Args:
            dimension: Vector size (defaults to the embedding dimension)
        """
        t0 = time.monotonic()
        try:
            result = await get_index().ensure_collection(dimension)
            response = ApiResponse(status=200, body=result)
        except Exception as exc:
            response = _failure(exc, "collection_ensure", settings)
        log_tool_invocation("collection_ensure", (time.monotonic() - t0) * 1000, response.status, _error_kind(response))
        return _dump(response)

    @mcp.tool()
    async def collection_info() -> str:
        """Show point counts and status of the project collection."""
        t0 = time.monotonic()
        try:
            info = await get_index().collection_info()
            response = ApiResponse(
                status=200, body={k: info[k] for k in ALLOWED_COLLECTION_INFO_KEYS if k in info}
            )
        except Exception as exc:
            response = _failure(exc, "collection_info", settings)
        log_tool_invocation("collection_info", (time.monotonic() - t0) * 1000, response.status, _error_kind(response))
        return _dump(response)

    @mcp.tool()
    async def projects_upsert(projects: list[dict]) -> str:
        """Embed and upsert project records.

        Args:
            projects: Objects with title, description (or projectDescription), link,
                howItsMade, sourceCode, hackathon
        """
        t0 = time.monotonic()
        try:
            records = [ProjectRecord.from_payload(p) for p in projects]
            count = await get_index().upsert_projects(records)
            response = ApiResponse(status=200, body={"upserted": count})
        except Exception as exc:
            response = _failure(exc, "projects_upsert", settings)
        log_tool_invocation("projects_upsert", (time.monotonic() - t0) * 1000, response.status, _error_kind(response))
        return _dump(response)

    @mcp.tool()
    async def projects_delete(ids: list[str]) -> str:
        """Delete project points by id."""
        t0 = time.monotonic()
        try:
            await get_index().delete_projects(list(ids))
            response = ApiResponse(status=200, body={"deleted": len(ids)})
        except Exception as exc:
            response = _failure(exc, "projects_delete", settings)
        log_tool_invocation("projects_delete", (time.monotonic() - t0) * 1000, response.status, _error_kind(response))
        return _dump(response)

    return get_index
