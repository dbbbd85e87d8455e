"""Tests for the OpenAI-compatible chat adapter over a mocked transport."""

import asyncio
import json

import httpx
import pytest
from openai import AsyncOpenAI

from ideasynth.adapters.openai_chat import OpenAIChatProvider
from ideasynth.errors import CallTimeoutError, GenerationError
from ideasynth.ports.generation import ChatMessage, GenerationProvider

MESSAGES = [
    ChatMessage(role="system", content="You are a hacker."),
    ChatMessage(role="user", content="Prize: best intents app"),
]


def _completion(content, choices=True):
    return {
        "id": "chatcmpl-1",
        "object": "chat.completion",
        "created": 1700000000,
        "model": "llama3-8b-8192",
        "choices": [
            {"index": 0, "message": {"role": "assistant", "content": content}, "finish_reason": "stop"}
        ]
        if choices
        else [],
    }


def _provider(handler, **kwargs) -> OpenAIChatProvider:
    client = AsyncOpenAI(
        api_key="test-key",
        base_url="http://chat.test/v1",
        max_retries=0,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )
    return OpenAIChatProvider("test-key", client=client, **kwargs)


def _error(provider) -> GenerationError:
    with pytest.raises(GenerationError) as exc_info:
        asyncio.run(provider.generate(MESSAGES))
    return exc_info.value


def test_satisfies_port():
    assert isinstance(_provider(lambda r: httpx.Response(200, json=_completion("x"))), GenerationProvider)


def test_missing_key():
    with pytest.raises(GenerationError) as exc_info:
        OpenAIChatProvider(None)
    assert exc_info.value.code == "MISSING_API_KEY"


def test_generate_sends_messages():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json=_completion("Title: IntentPilot"))

    provider = _provider(handler, model="llama-3.1-70b")
    assert asyncio.run(provider.generate(MESSAGES)) == "Title: IntentPilot"
    assert seen["path"] == "/v1/chat/completions"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"]["model"] == "llama-3.1-70b"
    assert seen["body"]["messages"] == [
        {"role": "system", "content": "You are a hacker."},
        {"role": "user", "content": "Prize: best intents app"},
    ]


def test_model_override_per_call():
    seen = {}

    def handler(request):
        seen["model"] = json.loads(request.content)["model"]
        return httpx.Response(200, json=_completion("ok"))

    asyncio.run(_provider(handler).generate(MESSAGES, model="mixtral"))
    assert seen["model"] == "mixtral"


@pytest.mark.parametrize(
    "status, code",
    [(401, "AUTH_FAILED"), (429, "RATE_LIMIT"), (500, "HTTP_ERROR"), (400, "HTTP_ERROR")],
)
def test_status_errors(status, code):
    provider = _provider(lambda r: httpx.Response(status, json={"error": {"message": "nope"}}))
    assert _error(provider).code == code


def test_connection_error():
    def handler(request):
        raise httpx.ConnectError("refused", request=request)

    assert _error(_provider(handler)).code == "CONNECTION_ERROR"


def test_timeout():
    def handler(request):
        raise httpx.ReadTimeout("slow", request=request)

    with pytest.raises(CallTimeoutError) as exc_info:
        asyncio.run(_provider(handler, timeout_seconds=5).generate(MESSAGES))
    assert exc_info.value.stage == "generation"
    assert exc_info.value.timeout_seconds == 5


@pytest.mark.parametrize("payload", [_completion("", choices=False), _completion("   ")])
def test_empty_response(payload):
    assert _error(_provider(lambda r: httpx.Response(200, json=payload))).code == "EMPTY_RESPONSE"


def test_aclose_releases_the_client():
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json=_completion("x"))))
    client = AsyncOpenAI(api_key="test-key", base_url="http://chat.test/v1", max_retries=0, http_client=http_client)
    asyncio.run(OpenAIChatProvider("test-key", client=client).aclose())
    assert http_client.is_closed
