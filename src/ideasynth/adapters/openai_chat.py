"""Adapter: OpenAI-compatible chat completions (OpenAI, Groq, ...)."""

from __future__ import annotations

import logging

import openai
from openai import AsyncOpenAI

from ..errors import CallTimeoutError, GenerationError
from ..ports.generation import ChatMessage

logger = logging.getLogger(__name__)


class OpenAIChatProvider:
    """GenerationProvider over any OpenAI-compatible endpoint.

    ``base_url`` defaults to Groq's OpenAI-compatible API.
    """

    def __init__(
        self,
        api_key: str | None,
        *,
        base_url: str = "https://api.groq.com/openai/v1",
        model: str = "llama3-8b-8192",
        timeout_seconds: float | None = 120.0,
        client: AsyncOpenAI | None = None,
    ) -> None:
        if client is None and not api_key:
            raise GenerationError("OPENAI_API_KEY (or GROQ_API_KEY) is required", code="MISSING_API_KEY")
        self._api_key = api_key
        self._base_url = base_url
        self._model = model
        self._timeout = timeout_seconds
        self._client = client

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self._api_key, base_url=self._base_url, timeout=self._timeout)
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def generate(self, messages: list[ChatMessage], model: str | None = None) -> str:
        model_name = model or self._model
        try:
            completion = await self._get_client().chat.completions.create(
                model=model_name,
                messages=[m.model_dump() for m in messages],
            )
        except openai.APITimeoutError as exc:
            raise CallTimeoutError("generation", self._timeout) from exc
        except openai.AuthenticationError as exc:
            raise GenerationError("Authentication failed for the chat backend", code="AUTH_FAILED", cause=exc) from exc
        except openai.RateLimitError as exc:
            raise GenerationError("Rate limit exceeded. Please try again later", code="RATE_LIMIT", cause=exc) from exc
        except openai.APIStatusError as exc:
            raise GenerationError(
                f"Chat completion failed: {exc.status_code}", code="HTTP_ERROR", cause=exc
            ) from exc
        except openai.APIConnectionError as exc:
            raise GenerationError(f"Chat backend unreachable: {exc}", code="CONNECTION_ERROR", cause=exc) from exc

        if not completion.choices:
            raise GenerationError("Chat backend returned no choices", code="EMPTY_RESPONSE")
        content = completion.choices[0].message.content
        if not content or not content.strip():
            raise GenerationError("Chat backend returned an empty message", code="EMPTY_RESPONSE")
        logger.debug("Chat completion", extra={"model": model_name, "content_length": len(content)})
        return content
