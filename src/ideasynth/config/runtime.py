"""Pydantic-based runtime settings.

Loads from environment variables (with optional .env file).
Invalid values fail fast when settings are first built.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings


class McpMode(str, Enum):
    engine = "engine"
    studio = "studio"


class EmbeddingBackend(str, Enum):
    nomic = "nomic"
    ollama = "ollama"
    fastembed = "fastembed"


class GenerationBackend(str, Enum):
    auto = "auto"
    ollama = "ollama"
    openai = "openai"


class RuntimeSettings(BaseSettings):
    """All configuration for the idea pipeline, validated at startup."""

    model_config = {
        "env_prefix": "",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    # --- Environment ---
    environment: Literal["development", "production", "test"] = Field(
        default="development",
        validation_alias=AliasChoices("ENVIRONMENT", "NEXT_PUBLIC_ENVIRONMENT"),
        description="Deployment environment; 'development' enables error details",
    )
    mcp_mode: McpMode = Field(
        default=McpMode.engine,
        description="Which MCP surface to start: 'engine' (idea tools) or 'studio' (collection admin)",
    )
    log_level: str = Field(default="INFO", description="Root log level")
    locale: Literal["en", "ja"] = Field(default="en", description="Language of user-facing error messages")
    debug_errors: bool = Field(default=False, description="Expose internal error details outside development")

    # --- Embeddings ---
    embedding_provider: EmbeddingBackend = Field(
        default=EmbeddingBackend.nomic,
        description="Embedding backend: 'nomic' (hosted), 'ollama' (self-hosted) or 'fastembed' (in-process)",
    )
    embedding_dimension: int = Field(default=768, ge=1, description="Embedding vector dimension")
    nomic_api_key: str | None = Field(default=None, description="Nomic Atlas API key")
    nomic_base_url: str = Field(default="https://api-atlas.nomic.ai", description="Nomic API base URL")
    nomic_model: str = Field(default="nomic-embed-text-v1", description="Nomic embedding model")
    ollama_base_url: str = Field(
        default="http://localhost:11434",
        validation_alias=AliasChoices("OLLAMA_BASE_URL", "OLLAMA_URL"),
        description="Ollama server URL",
    )
    ollama_embed_model: str = Field(default="nomic-embed-text", description="Ollama embedding model")
    fastembed_model_id: str = Field(
        default="nomic-ai/nomic-embed-text-v1.5",
        description="fastembed model identifier",
    )

    # --- Generation ---
    generation_provider: GenerationBackend = Field(
        default=GenerationBackend.auto,
        description="'ollama', 'openai' (any OpenAI-compatible API such as Groq) or 'auto' (by environment)",
    )
    ollama_model: str = Field(default="llama3.1", description="Ollama chat model")
    openai_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("OPENAI_API_KEY", "GROQ_API_KEY"),
        description="API key for the OpenAI-compatible chat backend",
    )
    openai_base_url: str = Field(
        default="https://api.groq.com/openai/v1",
        description="Base URL of the OpenAI-compatible chat backend",
    )
    generation_model: str = Field(
        default="llama3-8b-8192",
        validation_alias=AliasChoices("GENERATION_MODEL", "GROQ_MODEL"),
        description="Chat model for the OpenAI-compatible backend",
    )

    # --- Qdrant ---
    qdrant_url: str = Field(
        default="http://localhost:6333",
        validation_alias=AliasChoices("QDRANT_URL", "QD_URL"),
        description="Qdrant server URL",
    )
    qdrant_api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("QDRANT_API_KEY", "QD_API_KEY"),
        description="Qdrant API key",
    )
    qdrant_collection_name: str = Field(default="eth_global_showcase", description="Qdrant collection name")

    # --- Pipeline ---
    idea_top_k: int = Field(default=5, ge=1, le=50, description="Neighbors used as grounding context")
    prize_max_length: int = Field(default=5000, ge=1, description="Maximum prize text length")
    max_batch_size: int = Field(default=100, ge=1, le=10000, description="Maximum projects per upsert batch")

    # --- Timeouts ---
    embedding_timeout_seconds: float = Field(default=30.0, gt=0, description="Embedding call timeout")
    search_timeout_seconds: float = Field(default=15.0, gt=0, description="Vector search call timeout")
    generation_timeout_seconds: float = Field(default=120.0, gt=0, description="Generative call timeout")

    # --- Untrusted JSON limits ---
    json_max_size_bytes: int = Field(default=1024 * 1024, ge=1, description="Maximum JSON payload size")
    json_max_depth: int = Field(default=100, ge=1, le=500, description="Maximum JSON nesting depth")

    # --- Rate limits ---
    api_rate_limit_window_seconds: float = Field(default=15 * 60, gt=0)
    api_rate_limit_max_requests: int = Field(default=100, ge=1)
    search_rate_limit_window_seconds: float = Field(default=60, gt=0)
    search_rate_limit_max_requests: int = Field(default=10, ge=1)
    crawl_rate_limit_window_seconds: float = Field(default=5 * 60, gt=0)
    crawl_rate_limit_max_requests: int = Field(default=5, ge=1)

    # --- Auth (optional: require key for production) ---
    require_studio_key: bool = Field(default=False, description="If True, Studio requires IDEASYNTH_STUDIO_KEY env")
    require_engine_key: bool = Field(default=False, description="If True, Engine requires IDEASYNTH_ENGINE_KEY env")

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"log_level must be a standard logging level, got {v!r}")
        return level

    @field_validator("nomic_base_url", "ollama_base_url", "openai_base_url", "qdrant_url")
    @classmethod
    def _http_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"expected an http(s) URL, got {v!r}")
        return v.rstrip("/")

    @property
    def is_development(self) -> bool:
        return self.environment == "development"

    @property
    def expose_error_details(self) -> bool:
        return self.is_development or self.debug_errors


@lru_cache(maxsize=1)
def get_settings() -> RuntimeSettings:
    """Return the singleton RuntimeSettings (cached after first call)."""
    return RuntimeSettings()
