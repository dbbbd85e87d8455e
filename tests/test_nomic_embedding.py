"""Tests for the hosted (Nomic) embedding provider over a mocked transport."""

import asyncio
import json

import httpx
import pytest

from ideasynth.adapters.nomic_embedding import NomicEmbeddingProvider
from ideasynth.errors import CallTimeoutError, EmbeddingError

VECTOR = [0.1, 0.2, 0.3, 0.4]


def _provider(handler, **kwargs) -> NomicEmbeddingProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    kwargs.setdefault("dimension", len(VECTOR))
    return NomicEmbeddingProvider("test-key", client=client, **kwargs)


def _embed(provider, text="hello world"):
    return asyncio.run(provider.create_embedding(text))


def _embed_error(provider) -> EmbeddingError:
    with pytest.raises(EmbeddingError) as exc_info:
        _embed(provider)
    return exc_info.value


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestConstruction:

    def test_missing_key_fails_before_any_request(self, monkeypatch):
        monkeypatch.delenv("NOMIC_API_KEY", raising=False)
        with pytest.raises(EmbeddingError) as exc_info:
            NomicEmbeddingProvider()
        assert exc_info.value.code == "MISSING_API_KEY"
        assert "NOMIC_API_KEY" in str(exc_info.value)

    def test_empty_key_counts_as_missing(self, monkeypatch):
        monkeypatch.setenv("NOMIC_API_KEY", "")
        with pytest.raises(EmbeddingError):
            NomicEmbeddingProvider(api_key="")

    def test_key_from_environment(self, monkeypatch):
        monkeypatch.setenv("NOMIC_API_KEY", "env-key")
        seen = {}

        def handler(request):
            seen["auth"] = request.headers["Authorization"]
            return httpx.Response(200, json={"embeddings": [VECTOR]})

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        provider = NomicEmbeddingProvider(client=client)
        assert _embed(provider) == VECTOR
        assert seen["auth"] == "Bearer env-key"


# ---------------------------------------------------------------------------
# Success path
# ---------------------------------------------------------------------------

def test_request_shape_and_vector():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"embeddings": [VECTOR], "usage": {"total_tokens": 3}})

    vector = _embed(_provider(handler), "build an intents wallet")
    assert vector == VECTOR
    assert seen["url"] == "https://api-atlas.nomic.ai/v1/embedding/text"
    assert seen["auth"] == "Bearer test-key"
    assert seen["body"] == {"model": "nomic-embed-text-v1", "texts": ["build an intents wallet"]}


def test_custom_base_url_and_model():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["model"] = json.loads(request.content)["model"]
        return httpx.Response(200, json={"embeddings": [VECTOR]})

    _embed(_provider(handler, base_url="https://nomic.internal/", model="nomic-embed-text-v1.5"))
    assert seen == {"url": "https://nomic.internal/v1/embedding/text", "model": "nomic-embed-text-v1.5"}


def test_vector_length_matches_dimension():
    provider = _provider(lambda r: httpx.Response(200, json={"embeddings": [VECTOR]}))
    assert len(_embed(provider)) == provider.dimension


# ---------------------------------------------------------------------------
# Failure mapping
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("status,code,phrase", [
    (401, "AUTH_FAILED", "Authentication failed. Please check your NOMIC_API_KEY"),
    (403, "AUTH_FAILED", "Authentication failed. Please check your NOMIC_API_KEY"),
    (429, "RATE_LIMIT", "Rate limit exceeded. Please try again later"),
    (500, "SERVER_ERROR", "Nomic API server error. Please try again later"),
    (503, "SERVER_ERROR", "Nomic API server error. Please try again later"),
    (404, "HTTP_ERROR", "Nomic API request failed: 404 Not Found"),
])
def test_status_mapping(status, code, phrase):
    err = _embed_error(_provider(lambda r: httpx.Response(status, json={"detail": "nope"})))
    assert err.code == code
    assert str(err) == phrase
    assert isinstance(err.cause, httpx.HTTPStatusError)


@pytest.mark.parametrize("body,expected", [
    ({"error": "text too long"}, "Invalid request: text too long"),
    ({"message": "bad model"}, "Invalid request: bad model"),
    ({"detail": "texts must be a list"}, "Invalid request: texts must be a list"),
])
def test_bad_request_uses_backend_message(body, expected):
    err = _embed_error(_provider(lambda r: httpx.Response(400, json=body)))
    assert err.code == "INVALID_REQUEST"
    assert str(err) == expected


def test_bad_request_with_plain_text_body():
    err = _embed_error(_provider(lambda r: httpx.Response(400, text="missing texts")))
    assert str(err) == "Invalid request: missing texts"


def test_bad_request_with_empty_body():
    err = _embed_error(_provider(lambda r: httpx.Response(400)))
    assert str(err) == "Invalid request: Unknown error"


def test_transport_failure():
    def handler(request):
        raise httpx.ConnectError("name resolution failed", request=request)

    err = _embed_error(_provider(handler))
    assert err.code == "EMBEDDING_ERROR"
    assert str(err).startswith("Failed to create embedding: ")


def test_timeout_is_distinct():
    def handler(request):
        raise httpx.ReadTimeout("read timed out", request=request)

    with pytest.raises(CallTimeoutError) as exc_info:
        _embed(_provider(handler, timeout_seconds=2.5))
    assert exc_info.value.stage == "embedding"
    assert exc_info.value.timeout_seconds == 2.5


@pytest.mark.parametrize("body", [{"embeddings": []}, {"embeddings": None}, {}, []])
def test_no_embeddings(body):
    err = _embed_error(_provider(lambda r: httpx.Response(200, json=body)))
    assert err.code == "NO_EMBEDDINGS"


@pytest.mark.parametrize("body", [{"embeddings": {"a": [0.1]}}, {"embeddings": 5}, {"embeddings": "0.1,0.2"}])
def test_embeddings_not_a_list(body):
    err = _embed_error(_provider(lambda r: httpx.Response(200, json=body)))
    assert err.code == "INVALID_RESPONSE"


def test_unreadable_body():
    err = _embed_error(_provider(lambda r: httpx.Response(200, text="<html>gateway</html>")))
    assert err.code == "INVALID_RESPONSE"


def test_dimension_mismatch():
    provider = _provider(lambda r: httpx.Response(200, json={"embeddings": [[0.1, 0.2]]}), dimension=768)
    err = _embed_error(provider)
    assert err.code == "DIMENSION_MISMATCH"
    assert "768" in str(err)


def test_aclose_releases_the_client():
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200, json={"embeddings": [VECTOR]})))
    provider = NomicEmbeddingProvider("test-key", client=client, dimension=len(VECTOR))
    assert _embed(provider) == VECTOR
    asyncio.run(provider.aclose())
    assert client.is_closed
    asyncio.run(provider.aclose())
