"""Adapter: self-hosted Ollama embeddings (no credential)."""

from __future__ import annotations

import httpx

from ..errors import CallTimeoutError, EmbeddingError
from ..safety.json_parser import ParseError, ParseLimits
from ._http import check_dimension, extract_error_message, first_embedding, parse_json_body

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "nomic-embed-text"

_MODEL_MISSING_MARKERS = ("model not found", "no such model", "pull model", "try pulling")


def _is_model_missing(message: str) -> bool:
    lowered = message.lower()
    return ("model" in lowered and "not found" in lowered) or any(m in lowered for m in _MODEL_MISSING_MARKERS)


class OllamaEmbeddingProvider:
    """EmbeddingProvider backed by Ollama's ``/api/embed``."""

    def __init__(
        self,
        *,
        base_url: str = DEFAULT_BASE_URL,
        model: str = DEFAULT_MODEL,
        dimension: int | None = None,
        timeout_seconds: float | None = 30.0,
        client: httpx.AsyncClient | None = None,
        parse_limits: ParseLimits | None = None,
    ) -> None:
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
        try:
            response = await self._get_client().post(
                f"{self._base_url}/api/embed",
                json={"model": self._model, "input": text},
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise CallTimeoutError("embedding", self._timeout) from exc
        except httpx.ConnectError as exc:
            raise EmbeddingError(
                f"Ollama is not running at {self._base_url}. Please start Ollama with: 'ollama serve' "
                f"and pull the model with: 'ollama pull {self._model}'",
                code="CONNECTION_REFUSED",
                cause=exc,
            ) from exc
        except httpx.HTTPStatusError as exc:
            message = extract_error_message(exc.response)
            if exc.response.status_code == 404 or _is_model_missing(message):
                raise EmbeddingError(
                    f"Model '{self._model}' not found. Please pull the model with: 'ollama pull {self._model}'",
                    code="MODEL_NOT_FOUND",
                    cause=exc,
                ) from exc
            raise EmbeddingError(f"Ollama embedding failed: {message}", code="OLLAMA_ERROR", cause=exc) from exc
        except httpx.RequestError as exc:
            raise EmbeddingError(f"Ollama embedding failed: {exc}", code="OLLAMA_ERROR", cause=exc) from exc

        try:
            body = parse_json_body(response, self._parse_limits)
        except ParseError as exc:
            raise EmbeddingError(
                f"Ollama returned an unreadable response: {exc}", code="INVALID_RESPONSE", cause=exc
            ) from exc

        return check_dimension(first_embedding(body, "Ollama"), self._dimension)
