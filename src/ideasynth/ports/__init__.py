"""Port interfaces (Protocols).

Application services depend only on these, never on concrete adapters.
No Qdrant, httpx, or other infrastructure imports allowed here.
"""

from .embedding import EmbeddingProvider
from .generation import ChatMessage, GenerationProvider
from .lifecycle import AsyncCloseable, aclose_all
from .vector_store import (
    CollectionConfig,
    SearchQuery,
    SearchResult,
    VectorAdminClient,
    VectorPoint,
    VectorSearchClient,
    supports_admin,
)

__all__ = [
    "AsyncCloseable",
    "ChatMessage",
    "CollectionConfig",
    "EmbeddingProvider",
    "GenerationProvider",
    "SearchQuery",
    "SearchResult",
    "VectorAdminClient",
    "VectorPoint",
    "VectorSearchClient",
    "aclose_all",
    "supports_admin",
]
