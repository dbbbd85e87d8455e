"""Adapter: Nomic Atlas hosted embeddings."""

from __future__ import annotations

import logging
import os

import httpx

from ..errors import CallTimeoutError, EmbeddingError
from ..safety.json_parser import ParseError, ParseLimits
from ._http import check_dimension, extract_error_message, first_embedding, parse_json_body

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api-atlas.nomic.ai"
DEFAULT_MODEL = "nomic-embed-text-v1"


class NomicEmbeddingProvider:
    """EmbeddingProvider backed by the Nomic ``/v1/embedding/text`` endpoint.

    The API key comes from ``api_key`` or the ``NOMIC_API_KEY`` environment
    variable; construction fails when neither is set.
    """

    def __init__(
        self,
        api_key: str | None = None,
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        dimension: int | None = None,
        timeout_seconds: float | None = 30.0,
        client: httpx.AsyncClient | None = None,
        parse_limits: ParseLimits | None = None,
    ) -> None:
        key = api_key or os.environ.get("NOMIC_API_KEY")
        if not key:
            raise EmbeddingError("NOMIC_API_KEY is required", code="MISSING_API_KEY")
        self._api_key = key
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._dimension = dimension
        self._timeout = timeout_seconds
        self._client = client
        self._parse_limits = parse_limits

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def create_embedding(self, text: str) -> list[float]:
        url = f"{self._base_url}/v1/embedding/text"
        try:
            response = await self._get_client().post(
                url,
                json={"model": self._model, "texts": [text]},
                headers={"Authorization": f"Bearer {self._api_key}"},
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise CallTimeoutError("embedding", self._timeout) from exc
        except httpx.HTTPStatusError as exc:
            raise self._status_error(exc.response, exc) from exc
        except httpx.RequestError as exc:
            raise EmbeddingError(f"Failed to create embedding: {exc}", cause=exc) from exc

        try:
            body = parse_json_body(response, self._parse_limits)
        except ParseError as exc:
            raise EmbeddingError(
                f"Nomic API returned an unreadable response: {exc}",
                code="INVALID_RESPONSE",
                cause=exc,
            ) from exc

        vector = check_dimension(first_embedding(body, "Nomic API"), self._dimension)
        logger.debug("Nomic embedding created", extra={"model": self._model, "dimension": len(vector)})
        return vector

    def _status_error(self, response: httpx.Response, cause: BaseException) -> EmbeddingError:
        status = response.status_code
        logger.warning("Nomic API rejected request", extra={"status": status})
        if status in (401, 403):
            return EmbeddingError(
                "Authentication failed. Please check your NOMIC_API_KEY", code="AUTH_FAILED", cause=cause
            )
        if status == 429:
            return EmbeddingError("Rate limit exceeded. Please try again later", code="RATE_LIMIT", cause=cause)
        if status == 400:
            return EmbeddingError(
                f"Invalid request: {extract_error_message(response)}", code="INVALID_REQUEST", cause=cause
            )
        if status >= 500:
            return EmbeddingError(
                "Nomic API server error. Please try again later", code="SERVER_ERROR", cause=cause
            )
        return EmbeddingError(
            f"Nomic API request failed: {status} {response.reason_phrase}", code="HTTP_ERROR", cause=cause
        )
