"""Concrete adapter implementations."""

from .fastembed_provider import FastEmbedProvider
from .nomic_embedding import NomicEmbeddingProvider
from .ollama_chat import OllamaChatProvider
from .ollama_embedding import OllamaEmbeddingProvider
from .openai_chat import OpenAIChatProvider
from .qdrant_search import QdrantSearchClient

__all__ = [
    "FastEmbedProvider",
    "NomicEmbeddingProvider",
    "OllamaChatProvider",
    "OllamaEmbeddingProvider",
    "OpenAIChatProvider",
    "QdrantSearchClient",
]
