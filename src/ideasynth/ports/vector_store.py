"""Port: vector search and optional collection administration."""

from __future__ import annotations

from typing import Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class SearchQuery(BaseModel):
    """Parameters for a nearest-neighbor query."""

    model_config = ConfigDict(frozen=True)

    vector: list[float] = Field(..., min_length=1, description="Query embedding")
    limit: int = Field(default=5, ge=1, le=1000, description="Maximum results")
    filter: dict[str, Any] | None = Field(
        default=None,
        description="Payload filter: {field: value} or {field: [values]}",
    )
    score_threshold: float | None = Field(default=None, description="Drop results scoring below this")


class SearchResult(BaseModel):
    """A single hit. ``score`` is a similarity (higher = more similar)."""

    model_config = ConfigDict(frozen=True)

    id: str | int = Field(..., description="Point identifier")
    score: float = Field(..., description="Similarity score; cosine metric is bounded to [-1, 1]")
    payload: dict[str, Any] | None = Field(default=None, description="Stored record fields")


class VectorPoint(BaseModel):
    """A vector plus payload, for upserts."""

    id: str | int
    vector: list[float] = Field(..., min_length=1)
    payload: dict[str, Any] = Field(default_factory=dict)


class CollectionConfig(BaseModel):
    """Collection creation parameters."""

    vector_size: int = Field(..., ge=1)
    distance: Literal["Cosine", "Euclid", "Dot"] = "Cosine"


@runtime_checkable
class VectorSearchClient(Protocol):
    """Read interface every vector backend must provide."""

    async def search(self, collection: str, query: SearchQuery) -> list[SearchResult]: ...


@runtime_checkable
class VectorAdminClient(Protocol):
    """Optional write/admin capability. Check with ``supports_admin``."""

    async def upsert(self, collection: str, points: list[VectorPoint]) -> None: ...

    async def create_collection(self, collection: str, config: CollectionConfig | None = None) -> None: ...

    async def delete(self, collection: str, ids: list[str | int]) -> None: ...

    async def collection_exists(self, collection: str) -> bool: ...

    async def collection_info(self, collection: str) -> dict[str, Any]: ...


def supports_admin(client: object) -> bool:
    """True when ``client`` implements the admin capability."""
    return isinstance(client, VectorAdminClient)
