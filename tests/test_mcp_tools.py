"""Tests that each MCP surface exposes only its own tool set, and that tools
route through the boundary handlers.

The engine surface must never register collection administration tools.
"""

import asyncio
import json

import pytest
from mcp.server.fastmcp import FastMCP

from ideasynth.domain.project import IdeaSynthesisResult, ProjectRecord
from ideasynth.errors import VectorDBError
from ideasynth.interface.endpoints import Endpoints, GenerateIdeaEndpoint, SearchProjectsEndpoint
from ideasynth.interface.mcp.auth import check_scope
from ideasynth.interface.mcp.server import create_server, run_server
from ideasynth.interface.mcp.tools import ENGINE_TOOLS, STUDIO_TOOLS, register_studio_tools
from ideasynth.observability import metrics_snapshot, reset_metrics
from ideasynth.services.rate_limiter import FixedWindowRateLimiter, RateLimitPolicy

FORBIDDEN_ENGINE_TOOLS = {
    "collection_ensure",
    "collection_info",
    "collection_delete",
    "projects_upsert",
    "projects_delete",
}


class FakeAgent:
    async def generate_idea_from_prize(self, prize):
        return IdeaSynthesisResult(
            content="Title: IntentPilot\nPitch: intents to UserOps.",
            similar_projects=[ProjectRecord(title="Intent Router", description="Routes intents")],
        )

    async def similar_projects(self, text, limit=None):
        return [ProjectRecord(title="Intent Router", description="Routes intents")]


class FakeIndex:
    def __init__(self, error=None):
        self.error = error
        self.upserted = []

    async def ensure_collection(self, dimension=None):
        if self.error:
            raise self.error
        return {"name": "eth_global_showcase", "created": True, "dimension": dimension or 768}

    async def collection_info(self):
        return {"name": "eth_global_showcase", "points_count": 3, "status": "green", "secret": "x"}

    async def upsert_projects(self, records):
        self.upserted.extend(records)
        return len(records)

    async def delete_projects(self, ids):
        return None


@pytest.fixture(autouse=True)
def _metrics():
    reset_metrics()
    yield
    reset_metrics()


def _tools(server):
    # FastMCP keeps registered tools in _tool_manager._tools
    return server._tool_manager._tools


def _engine(make_settings, max_requests=100):
    settings = make_settings()

    def factory():
        limiter = FixedWindowRateLimiter(RateLimitPolicy(60, max_requests, "API"))
        agent = FakeAgent()
        return Endpoints(
            generate=GenerateIdeaEndpoint(agent, limiter, settings),
            search=SearchProjectsEndpoint(agent, FixedWindowRateLimiter(RateLimitPolicy(60, 10, "search")), settings),
        )

    return create_server("engine", settings=settings, endpoints_factory=factory)


def _run(server, name, **kwargs):
    result = _tools(server)[name].fn(**kwargs)
    if asyncio.iscoroutine(result):
        result = asyncio.run(result)
    return json.loads(result)


# ---------------------------------------------------------------------------
# Tool sets
# ---------------------------------------------------------------------------

def test_engine_exposes_only_engine_tools(make_settings):
    names = set(_tools(_engine(make_settings)))
    assert names == ENGINE_TOOLS
    assert not names & FORBIDDEN_ENGINE_TOOLS


def test_studio_exposes_only_studio_tools(make_settings):
    server = create_server("studio", settings=make_settings(), index_factory=FakeIndex)
    assert set(_tools(server)) == STUDIO_TOOLS


def test_unknown_mode(make_settings):
    with pytest.raises(ValueError):
        create_server("data", settings=make_settings())


def test_factories_are_lazy(make_settings):
    calls = []
    create_server("studio", settings=make_settings(), index_factory=lambda: calls.append(1))
    assert calls == []


# ---------------------------------------------------------------------------
# Engine tools
# ---------------------------------------------------------------------------

def test_ideas_generate(make_settings):
    result = _run(_engine(make_settings), "ideas_generate", prize="Best use of intents")
    assert result["status"] == 200
    assert result["body"]["idea"].startswith("Title: IntentPilot")
    assert result["body"]["similarProjects"][0]["title"] == "Intent Router"
    assert metrics_snapshot()["tool_calls"] == {"ideas_generate": 1}


def test_ideas_generate_validation(make_settings):
    result = _run(_engine(make_settings), "ideas_generate", prize="   ")
    assert result["status"] == 400
    assert result["body"]["type"] == "VALIDATION_ERROR"
    assert metrics_snapshot()["errors"] == {"ideas_generate": 1}


def test_ideas_generate_rate_limited(make_settings):
    server = _engine(make_settings, max_requests=1)
    assert _run(server, "ideas_generate", prize="a")["status"] == 200
    result = _run(server, "ideas_generate", prize="a")
    assert result["status"] == 429
    assert result["body"]["retryAfter"] >= 1


def test_projects_search(make_settings):
    result = _run(_engine(make_settings), "projects_search", idea="zk", limit=3)
    assert result["status"] == 200
    assert result["body"]["metadata"]["count"] == 1


def test_factory_failure_is_reported(make_settings):
    def broken():
        raise VectorDBError("Qdrant down", code="CONNECTION_ERROR")

    server = create_server("engine", settings=make_settings(), endpoints_factory=broken)
    result = _run(server, "ideas_generate", prize="a")
    assert result["status"] == 502
    assert result["body"]["type"] == "VECTOR_SEARCH_ERROR"


def test_ideas_health(make_settings):
    result = _run(_engine(make_settings), "ideas_health")
    assert result["status"] == 200
    assert result["body"]["generation_provider"] == "openai"
    assert result["body"]["collection"] == "eth_global_showcase"


# ---------------------------------------------------------------------------
# Studio tools
# ---------------------------------------------------------------------------

def test_studio_tools(make_settings):
    index = FakeIndex()
    server = create_server("studio", settings=make_settings(), index_factory=lambda: index)

    assert _run(server, "collection_ensure", dimension=384)["body"]["dimension"] == 384
    info = _run(server, "collection_info")["body"]
    assert "secret" not in info
    assert info["points_count"] == 3

    upserted = _run(server, "projects_upsert", projects=[{"title": "A", "projectDescription": "desc"}])
    assert upserted["body"] == {"upserted": 1}
    assert index.upserted[0].description == "desc"

    assert _run(server, "projects_delete", ids=["a", "b"])["body"] == {"deleted": 2}


class ClosingIndex(FakeIndex):
    def __init__(self):
        super().__init__()
        self.closed = 0

    async def aclose(self):
        self.closed += 1


def test_built_index_is_closed_on_shutdown(make_settings):
    index = ClosingIndex()
    get_index = register_studio_tools(FastMCP("test"), lambda: index, make_settings())
    asyncio.run(get_index.aclose())
    assert index.closed == 0

    assert get_index() is index
    asyncio.run(get_index.aclose())
    asyncio.run(get_index.aclose())
    assert index.closed == 1


def test_studio_error(make_settings):
    index = FakeIndex(VectorDBError("Bad", code="UNSUPPORTED"))
    server = create_server("studio", settings=make_settings(), index_factory=lambda: index)
    result = _run(server, "collection_ensure")
    assert result["status"] == 500
    assert result["body"]["type"] == "VECTOR_SEARCH_ERROR"


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------

def test_engine_key_required(make_settings, monkeypatch):
    settings = make_settings(require_engine_key=True)
    with pytest.raises(PermissionError):
        run_server("engine", settings)
    monkeypatch.setenv("IDEASYNTH_ENGINE_KEY", "secret")
    check_scope("engine", settings)


def test_studio_key_required(make_settings):
    with pytest.raises(PermissionError):
        check_scope("studio", make_settings(require_studio_key=True))
    check_scope("studio", make_settings())


def test_check_scope_unknown_mode(make_settings):
    with pytest.raises(ValueError):
        check_scope("data", make_settings())
