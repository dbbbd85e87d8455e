"""Adapter: Ollama ``/api/chat`` generation."""

from __future__ import annotations

import httpx

from ..errors import CallTimeoutError, GenerationError
from ..ports.generation import ChatMessage
from ..safety.json_parser import ParseError, ParseLimits
from ._http import extract_error_message, parse_json_body


class OllamaChatProvider:
    """GenerationProvider backed by a local Ollama server."""

    def __init__(
        self,
        *,
        base_url: str = "http://localhost:11434",
        model: str = "llama3.1",
        timeout_seconds: float | None = 120.0,
        client: httpx.AsyncClient | None = None,
        parse_limits: ParseLimits | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._model = model
        self._timeout = timeout_seconds
        self._client = client
        self._parse_limits = parse_limits

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def generate(self, messages: list[ChatMessage], model: str | None = None) -> str:
        model_name = model or self._model
        try:
            response = await self._get_client().post(
                f"{self._base_url}/api/chat",
                json={
                    "model": model_name,
                    "messages": [m.model_dump() for m in messages],
                    "stream": False,
                },
            )
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise CallTimeoutError("generation", self._timeout) from exc
        except httpx.ConnectError as exc:
            raise GenerationError(
                f"Ollama is not running at {self._base_url}. Please start Ollama with: 'ollama serve'",
                code="CONNECTION_REFUSED",
                cause=exc,
            ) from exc
        except httpx.HTTPStatusError as exc:
            code = "MODEL_NOT_FOUND" if exc.response.status_code == 404 else "OLLAMA_ERROR"
            raise GenerationError(
                f"Ollama chat failed: {extract_error_message(exc.response)}", code=code, cause=exc
            ) from exc
        except httpx.RequestError as exc:
            raise GenerationError(f"Ollama chat failed: {exc}", code="OLLAMA_ERROR", cause=exc) from exc

        try:
            body = parse_json_body(response, self._parse_limits)
        except ParseError as exc:
            raise GenerationError(
                f"Ollama returned an unreadable response: {exc}", code="INVALID_RESPONSE", cause=exc
            ) from exc

        message = body.get("message") if isinstance(body, dict) else None
        content = message.get("content") if isinstance(message, dict) else None
        if not isinstance(content, str) or not content.strip():
            raise GenerationError("Ollama returned an empty response", code="EMPTY_RESPONSE")
        return content
