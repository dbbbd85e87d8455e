"""HTTP-shaped request handlers, independent of any web framework.

Each handler takes the raw body (JSON text, bytes or an already-decoded
dict) plus the caller key and returns an ``ApiResponse``. Rate-limit headers
are attached to every response produced after the limiter was consulted.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ..config.runtime import RuntimeSettings
from ..ports.lifecycle import aclose_all
from ..safety.json_parser import ParseLimits, safe_parse
from ..safety.sanitizer import sanitize_text
from ..services.idea_agent import IdeaAgent
from ..services.rate_limiter import (
    FixedWindowRateLimiter,
    RateLimitResult,
    build_headers,
    build_rejection_payload,
)
from .errors import ApiResponse, handle_error, rate_limit_error, validation_error

logger = logging.getLogger(__name__)

CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type",
}


class GenerateIdeaRequest(BaseModel):
    """Body of an idea-generation request."""

    prize: str = Field(..., min_length=1, max_length=5000, description="Prize or topic description")

    @field_validator("prize")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("prize must not be whitespace only")
        return v


class SearchProjectsRequest(BaseModel):
    """Body of a similar-project search request."""

    idea: str = Field(..., min_length=1, max_length=5000, description="Idea text to match against")
    limit: int | None = Field(default=None, ge=1, le=50, description="Maximum projects to return")

    @field_validator("idea")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("idea must not be whitespace only")
        return v


class _Endpoint:
    path = "/"

    def __init__(self, agent: IdeaAgent, limiter: FixedWindowRateLimiter, settings: RuntimeSettings) -> None:
        self._agent = agent
        self._limiter = limiter
        self._settings = settings

    def _decode(self, body: Any) -> dict[str, Any]:
        if body is None or body == "" or body == b"":
            raise validation_error("Request body is required", locale=self._settings.locale)
        if isinstance(body, bytes):
            try:
                body = body.decode("utf-8")
            except UnicodeDecodeError as exc:
                raise validation_error("Request body is not valid UTF-8", locale=self._settings.locale) from exc
        if isinstance(body, str):
            body = safe_parse(body, limits=ParseLimits.from_settings(self._settings))
        if not isinstance(body, dict):
            raise validation_error("Request body must be a JSON object", locale=self._settings.locale)
        return body

    def _preflight(self, method: str) -> ApiResponse | None:
        method = method.upper()
        if method == "OPTIONS":
            return ApiResponse(status=200, headers=dict(CORS_HEADERS))
        if method != "POST":
            return ApiResponse(
                status=405,
                headers={**CORS_HEADERS, "Allow": "POST, OPTIONS"},
                body={"error": "Method Not Allowed", "message": "Only POST method is allowed"},
            )
        return None

    def _rejected(self, rate: RateLimitResult, headers: dict[str, str], client_id: str) -> ApiResponse:
        response = handle_error(
            rate_limit_error(rate.retry_after, self._settings.locale),
            {"endpoint": self.path, "client": client_id},
            debug=self._settings.expose_error_details,
            locale=self._settings.locale,
            headers=headers,
        )
        response.body = {**build_rejection_payload(rate), **response.body}
        return response

    def _failure(self, exc: Exception, headers: dict[str, str], client_id: str, started: float) -> ApiResponse:
        return handle_error(
            exc,
            {"endpoint": self.path, "client": client_id, "durationMs": _elapsed_ms(started)},
            debug=self._settings.expose_error_details,
            locale=self._settings.locale,
            headers=headers,
        )


def _elapsed_ms(started: float) -> int:
    return round((time.perf_counter() - started) * 1000)


class GenerateIdeaEndpoint(_Endpoint):
    """``POST /api/generate-idea``: prize text in, grounded idea out."""

    path = "/api/generate-idea"

    async def handle(self, body: Any, *, client_id: str = "unknown", method: str = "POST") -> ApiResponse:
        started = time.perf_counter()
        early = self._preflight(method)
        if early is not None:
            return early

        rate = self._limiter.check(client_id)
        headers = {**CORS_HEADERS, **build_headers(rate)}
        if not rate.allowed:
            return self._rejected(rate, headers, client_id)

        try:
            request = GenerateIdeaRequest.model_validate(self._decode(body))
            if len(request.prize) > self._settings.prize_max_length:
                raise validation_error(
                    f"prize must be at most {self._settings.prize_max_length} characters",
                    locale=self._settings.locale,
                )
            prize = sanitize_text(request.prize)
            if not prize:
                raise validation_error("prize has no text content", locale=self._settings.locale)

            logger.info("Generate idea request", extra={"prize_length": len(prize), "client": client_id})
            result = await self._agent.generate_idea_from_prize(prize)
        except Exception as exc:
            return self._failure(exc, headers, client_id, started)

        duration = _elapsed_ms(started)
        logger.info(
            "Generate idea completed",
            extra={"duration_ms": duration, "refs_count": len(result.similar_projects)},
        )
        return ApiResponse(
            status=200,
            headers=headers,
            body={
                "idea": result.content,
                "similarProjects": [p.to_public_dict() for p in result.similar_projects],
                "metadata": {"processingTimeMs": duration, "refsCount": len(result.similar_projects)},
            },
        )


class SearchProjectsEndpoint(_Endpoint):
    """``POST /api/search-ideas``: nearest past projects for an idea, no generation."""

    path = "/api/search-ideas"

    async def handle(self, body: Any, *, client_id: str = "unknown", method: str = "POST") -> ApiResponse:
        started = time.perf_counter()
        early = self._preflight(method)
        if early is not None:
            return early

        rate = self._limiter.check(client_id)
        headers = {**CORS_HEADERS, **build_headers(rate)}
        if not rate.allowed:
            return self._rejected(rate, headers, client_id)

        try:
            request = SearchProjectsRequest.model_validate(self._decode(body))
            idea = sanitize_text(request.idea)
            if not idea:
                raise validation_error("idea has no text content", locale=self._settings.locale)
            projects = await self._agent.similar_projects(idea, request.limit)
        except Exception as exc:
            return self._failure(exc, headers, client_id, started)

        return ApiResponse(
            status=200,
            headers=headers,
            body={
                "projects": [p.to_public_dict() for p in projects],
                "metadata": {"processingTimeMs": _elapsed_ms(started), "count": len(projects)},
            },
        )


class Endpoints:
    """The request handlers one process serves."""

    def __init__(self, generate: GenerateIdeaEndpoint, search: SearchProjectsEndpoint) -> None:
        self.generate = generate
        self.search = search

    async def aclose(self) -> None:
        """Release the agents' backend connections."""
        await aclose_all(self.generate._agent, self.search._agent)
