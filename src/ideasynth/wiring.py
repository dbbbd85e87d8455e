"""Composition root: the only place concrete adapters are constructed.

Call ``build_idea_agent()``, ``build_index_service()`` or
``build_endpoints()`` to get fully-wired objects for the configured
backends. Backend selection happens here, once, from settings.
"""

from __future__ import annotations

import logging

from .adapters.fastembed_provider import FastEmbedProvider
from .adapters.nomic_embedding import NomicEmbeddingProvider
from .adapters.ollama_chat import OllamaChatProvider
from .adapters.ollama_embedding import OllamaEmbeddingProvider
from .adapters.openai_chat import OpenAIChatProvider
from .adapters.qdrant_search import QdrantSearchClient
from .config.runtime import EmbeddingBackend, GenerationBackend, RuntimeSettings, get_settings
from .errors import ConfigurationError
from .interface.endpoints import Endpoints, GenerateIdeaEndpoint, SearchProjectsEndpoint
from .ports.embedding import EmbeddingProvider
from .ports.generation import GenerationProvider
from .safety.json_parser import ParseLimits
from .services.idea_agent import IdeaAgent
from .services.index_service import IndexService
from .services.rate_limiter import FixedWindowRateLimiter, RateLimitStore, preset_from_settings

logger = logging.getLogger(__name__)

# Process-wide counters shared by every limiter built here.
_RATE_LIMIT_STORE = RateLimitStore()


def build_embedding_provider(settings: RuntimeSettings | None = None) -> EmbeddingProvider:
    settings = settings or get_settings()
    backend = settings.embedding_provider
    limits = ParseLimits.from_settings(settings)
    if backend == EmbeddingBackend.nomic:
        return NomicEmbeddingProvider(
            settings.nomic_api_key,
            base_url=settings.nomic_base_url,
            model=settings.nomic_model,
            dimension=settings.embedding_dimension,
            timeout_seconds=settings.embedding_timeout_seconds,
            parse_limits=limits,
        )
    if backend == EmbeddingBackend.ollama:
        return OllamaEmbeddingProvider(
            base_url=settings.ollama_base_url,
            model=settings.ollama_embed_model,
            dimension=settings.embedding_dimension,
            timeout_seconds=settings.embedding_timeout_seconds,
            parse_limits=limits,
        )
    if backend == EmbeddingBackend.fastembed:
        return FastEmbedProvider(
            model_id=settings.fastembed_model_id,
            dimension=settings.embedding_dimension,
        )
    raise ConfigurationError(f"Unknown embedding provider: {backend!r}")


def build_vector_search(settings: RuntimeSettings | None = None) -> QdrantSearchClient:
    settings = settings or get_settings()
    return QdrantSearchClient(
        url=settings.qdrant_url,
        api_key=settings.qdrant_api_key,
        timeout_seconds=settings.search_timeout_seconds,
    )


def resolve_generation_backend(settings: RuntimeSettings) -> GenerationBackend:
    backend = settings.generation_provider
    if backend == GenerationBackend.auto:
        return GenerationBackend.ollama if settings.is_development else GenerationBackend.openai
    return backend


def build_generation_provider(settings: RuntimeSettings | None = None) -> GenerationProvider:
    settings = settings or get_settings()
    backend = resolve_generation_backend(settings)
    if backend == GenerationBackend.ollama:
        return OllamaChatProvider(
            base_url=settings.ollama_base_url,
            model=settings.ollama_model,
            timeout_seconds=settings.generation_timeout_seconds,
            parse_limits=ParseLimits.from_settings(settings),
        )
    if backend == GenerationBackend.openai:
        return OpenAIChatProvider(
            settings.openai_api_key,
            base_url=settings.openai_base_url,
            model=settings.generation_model,
            timeout_seconds=settings.generation_timeout_seconds,
        )
    raise ConfigurationError(f"Unknown generation provider: {backend!r}")


def build_idea_agent(settings: RuntimeSettings | None = None) -> IdeaAgent:
    """Construct an IdeaAgent with real adapters."""
    settings = settings or get_settings()
    logger.info(
        "Building idea agent",
        extra={
            "embedding_provider": settings.embedding_provider.value,
            "generation_provider": resolve_generation_backend(settings).value,
            "collection": settings.qdrant_collection_name,
        },
    )
    return IdeaAgent(
        embedding_provider=build_embedding_provider(settings),
        vector_search=build_vector_search(settings),
        generator=build_generation_provider(settings),
        settings=settings,
    )


def build_index_service(settings: RuntimeSettings | None = None) -> IndexService:
    """Construct an IndexService with real adapters."""
    settings = settings or get_settings()
    return IndexService(
        embedding_provider=build_embedding_provider(settings),
        vector_store=build_vector_search(settings),
        settings=settings,
    )


def build_rate_limiter(
    preset: str = "api",
    settings: RuntimeSettings | None = None,
    store: RateLimitStore | None = None,
) -> FixedWindowRateLimiter:
    settings = settings or get_settings()
    if store is None:
        store = _RATE_LIMIT_STORE
    return FixedWindowRateLimiter(preset_from_settings(preset, settings), store)


def build_endpoints(settings: RuntimeSettings | None = None, agent: IdeaAgent | None = None) -> Endpoints:
    settings = settings or get_settings()
    agent = agent or build_idea_agent(settings)
    return Endpoints(
        generate=GenerateIdeaEndpoint(agent, build_rate_limiter("api", settings), settings),
        search=SearchProjectsEndpoint(agent, build_rate_limiter("search", settings), settings),
    )
