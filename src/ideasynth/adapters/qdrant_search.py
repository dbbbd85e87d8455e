"""Adapter: Qdrant-based vector search and collection admin."""

from __future__ import annotations

import logging
from typing import Any

import httpx
from qdrant_client import AsyncQdrantClient
from qdrant_client.http.exceptions import ResponseHandlingException, UnexpectedResponse
from qdrant_client.models import (
    Distance,
    FieldCondition,
    Filter,
    MatchAny,
    MatchValue,
    PointStruct,
    VectorParams,
)

from ..errors import CallTimeoutError, VectorDBError
from ..ports.vector_store import CollectionConfig, SearchQuery, SearchResult, VectorPoint

logger = logging.getLogger(__name__)

_CONNECTION_MARKERS = (
    "ECONNREFUSED",
    "Connection refused",
    "Failed to obtain server version",
    "All connection attempts failed",
)
_AUTH_MARKERS = ("401", "403", "Unauthorized", "Forbidden")


class QdrantSearchClient:
    """VectorSearchClient and VectorAdminClient backed by Qdrant.

    Every failure is re-raised as ``VectorDBError`` with a stable code and the
    operation name as message prefix; the transport error is kept as ``cause``.
    """

    def __init__(
        self,
        url: str = "http://localhost:6333",
        api_key: str | None = None,
        *,
        timeout_seconds: float | None = None,
        client: AsyncQdrantClient | None = None,
    ) -> None:
        self._url = url
        self._api_key = api_key
        self._timeout = timeout_seconds
        self._client = client

    def _get_client(self) -> AsyncQdrantClient:
        if self._client is None:
            self._client = AsyncQdrantClient(
                url=self._url,
                api_key=self._api_key,
                timeout=int(self._timeout) if self._timeout else None,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
            self._client = None

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def search(self, collection: str, query: SearchQuery) -> list[SearchResult]:
        try:
            response = await self._get_client().query_points(
                collection_name=collection,
                query=query.vector,
                limit=query.limit,
                query_filter=self._filter_spec_to_qdrant(query.filter),
                score_threshold=query.score_threshold,
                with_payload=True,
            )
        except Exception as exc:
            raise self._wrap_error(exc, "Search failed", "search") from exc

        results = [
            SearchResult(id=hit.id, score=hit.score, payload=dict(hit.payload) if hit.payload else None)
            for hit in response.points
        ]
        results.sort(key=lambda r: r.score, reverse=True)
        logger.debug("Qdrant search", extra={"collection": collection, "hits": len(results)})
        return results

    async def collection_exists(self, collection: str) -> bool:
        try:
            return await self._get_client().collection_exists(collection_name=collection)
        except Exception as exc:
            raise self._wrap_error(exc, "Collection lookup failed", "collection_exists") from exc

    async def collection_info(self, collection: str) -> dict[str, Any]:
        try:
            info = await self._get_client().get_collection(collection_name=collection)
        except Exception as exc:
            raise self._wrap_error(exc, "Collection lookup failed", "collection_info") from exc
        return {
            "name": collection,
            "points_count": info.points_count,
            "indexed_vectors_count": info.indexed_vectors_count,
            "status": str(info.status),
        }

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def upsert(self, collection: str, points: list[VectorPoint]) -> None:
        structs = [PointStruct(id=p.id, vector=p.vector, payload=p.payload or {}) for p in points]
        try:
            await self._get_client().upsert(collection_name=collection, points=structs)
        except Exception as exc:
            raise self._wrap_error(exc, "Upsert failed", "upsert") from exc

    async def create_collection(self, collection: str, config: CollectionConfig | None = None) -> None:
        if config is None or not config.vector_size:
            raise VectorDBError("Vector size is required for collection creation", code="INVALID_CONFIG")
        try:
            await self._get_client().create_collection(
                collection_name=collection,
                vectors_config=VectorParams(size=config.vector_size, distance=Distance(config.distance)),
            )
        except Exception as exc:
            raise self._wrap_error(exc, "Collection creation failed", "create_collection") from exc

    async def delete(self, collection: str, ids: list[str | int]) -> None:
        try:
            await self._get_client().delete(collection_name=collection, points_selector=list(ids))
        except Exception as exc:
            raise self._wrap_error(exc, "Delete failed", "delete") from exc

    # ------------------------------------------------------------------
    # Translation helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _filter_spec_to_qdrant(filter_spec: dict[str, Any] | Filter | None) -> Filter | None:
        """Convert ``{field: value}`` / ``{field: [values]}`` to a Qdrant Filter."""
        if not filter_spec:
            return None
        if isinstance(filter_spec, Filter):
            return filter_spec
        must = []
        for key, value in filter_spec.items():
            if isinstance(value, list):
                must.append(FieldCondition(key=key, match=MatchAny(any=value)))
            else:
                must.append(FieldCondition(key=key, match=MatchValue(value=value)))
        return Filter(must=must) if must else None

    def _wrap_error(self, exc: BaseException, context: str, stage: str) -> Exception:
        source = exc.source if isinstance(exc, ResponseHandlingException) else exc
        if isinstance(source, (httpx.TimeoutException, TimeoutError)):
            logger.warning("Qdrant call timed out", extra={"context": context, "stage": stage})
            return CallTimeoutError(stage, self._timeout)

        logger.warning("Qdrant call failed", extra={"context": context, "error": str(exc)})
        if isinstance(exc, UnexpectedResponse):
            status = exc.status_code
            if status in (401, 403):
                return VectorDBError(f"{context}: Authentication failed. Please check your API key", "AUTH_ERROR", exc)
            if status == 404:
                return VectorDBError(f"{context}: Collection not found", "NOT_FOUND", exc)
            return VectorDBError(f"{context}: Qdrant returned {status} {exc.reason_phrase}", "QDRANT_ERROR", exc)

        message = str(exc)
        if isinstance(source, (httpx.ConnectError, ConnectionError)) or any(m in message for m in _CONNECTION_MARKERS):
            return VectorDBError(
                f"{context}: Qdrant server is not available. Please ensure Qdrant is running",
                "CONNECTION_ERROR",
                exc,
            )
        if any(m in message for m in _AUTH_MARKERS):
            return VectorDBError(f"{context}: Authentication failed. Please check your API key", "AUTH_ERROR", exc)
        if "404" in message or ("Collection" in message and "not found" in message):
            return VectorDBError(f"{context}: Collection not found", "NOT_FOUND", exc)
        if message:
            return VectorDBError(f"{context}: {message}", "QDRANT_ERROR", exc)
        return VectorDBError(f"{context}: Unknown error occurred", "UNKNOWN_ERROR", exc)
