"""Shared fixtures: isolate settings from the host environment."""

import pytest

from ideasynth.config.runtime import RuntimeSettings, get_settings

_ENV_VARS = (
    "ENVIRONMENT",
    "NEXT_PUBLIC_ENVIRONMENT",
    "MCP_MODE",
    "LOG_LEVEL",
    "LOCALE",
    "DEBUG_ERRORS",
    "EMBEDDING_PROVIDER",
    "EMBEDDING_DIMENSION",
    "NOMIC_API_KEY",
    "OLLAMA_BASE_URL",
    "OLLAMA_URL",
    "GENERATION_PROVIDER",
    "OPENAI_API_KEY",
    "GROQ_API_KEY",
    "GENERATION_MODEL",
    "GROQ_MODEL",
    "QDRANT_URL",
    "QD_URL",
    "QDRANT_API_KEY",
    "QD_API_KEY",
    "QDRANT_COLLECTION_NAME",
    "IDEA_TOP_K",
    "JSON_MAX_SIZE_BYTES",
    "JSON_MAX_DEPTH",
    "OPENAI_BASE_URL",
    "OLLAMA_MODEL",
    "REQUIRE_ENGINE_KEY",
    "REQUIRE_STUDIO_KEY",
    "IDEASYNTH_ENGINE_KEY",
    "IDEASYNTH_STUDIO_KEY",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    # Keep a developer's .env out of the tests.
    monkeypatch.chdir(tmp_path)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def make_settings():
    """Build RuntimeSettings for tests; defaults to the 'test' environment."""

    def _make(**overrides) -> RuntimeSettings:
        values = {"environment": "test"}
        values.update(overrides)
        return RuntimeSettings(**values)

    return _make
