"""IndexService for seeding and maintaining the project collection."""

from __future__ import annotations

import logging
import uuid

from ..config.runtime import RuntimeSettings
from ..domain.project import ProjectRecord
from ..errors import VectorDBError
from ..ports.embedding import EmbeddingProvider
from ..ports.lifecycle import aclose_all
from ..ports.vector_store import (
    CollectionConfig,
    VectorAdminClient,
    VectorPoint,
    VectorSearchClient,
    supports_admin,
)

logger = logging.getLogger(__name__)


def normalize_link(link: str) -> str:
    return link.strip().lower().rstrip("/")


def project_point_id(record: ProjectRecord) -> str:
    """Deterministic point id, so re-seeding the same project overwrites it."""
    source = normalize_link(record.link) if record.link else f"title:{record.title.strip().lower()}"
    return str(uuid.uuid5(uuid.NAMESPACE_URL, source))


class IndexService:
    """Manage the project collection. Needs a store with the admin capability."""

    def __init__(
        self,
        embedding_provider: EmbeddingProvider,
        vector_store: VectorSearchClient,
        settings: RuntimeSettings,
    ) -> None:
        self._embed = embedding_provider
        self._store = vector_store
        self._settings = settings

    @property
    def _collection(self) -> str:
        return self._settings.qdrant_collection_name

    def _admin(self) -> VectorAdminClient:
        if not supports_admin(self._store):
            raise VectorDBError(
                f"{type(self._store).__name__} does not support collection administration",
                code="UNSUPPORTED",
            )
        return self._store  # type: ignore[return-value]

    async def ensure_collection(self, dimension: int | None = None) -> dict:
        admin = self._admin()
        if dimension is None:
            dimension = self._embed.dimension or self._settings.embedding_dimension
        created = False
        if not await admin.collection_exists(self._collection):
            await admin.create_collection(self._collection, CollectionConfig(vector_size=dimension))
            created = True
            logger.info("Collection created", extra={"collection": self._collection, "dimension": dimension})
        return {"name": self._collection, "created": created, "dimension": dimension}

    async def upsert_projects(self, records: list[ProjectRecord]) -> int:
        admin = self._admin()
        batch_size = self._settings.max_batch_size
        total = 0
        for i in range(0, len(records), batch_size):
            batch = records[i : i + batch_size]
            points = []
            for record in batch:
                text = record.description or record.title
                if not text.strip():
                    logger.warning("Skipping project with no text", extra={"title": record.title})
                    continue
                vector = await self._embed.create_embedding(text)
                points.append(VectorPoint(id=project_point_id(record), vector=vector, payload=record.to_payload()))
            if points:
                await admin.upsert(self._collection, points)
                total += len(points)
        logger.info("Projects upserted", extra={"collection": self._collection, "count": total})
        return total

    async def delete_projects(self, ids: list[str | int]) -> None:
        if ids:
            await self._admin().delete(self._collection, ids)

    async def collection_info(self) -> dict:
        return await self._admin().collection_info(self._collection)

    async def aclose(self) -> None:
        await aclose_all(self._embed, self._store)
