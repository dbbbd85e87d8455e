"""Adapter: FastEmbed-based EmbeddingProvider."""

from __future__ import annotations

import asyncio

from fastembed import TextEmbedding

from ..errors import EmbeddingError
from ._http import check_dimension


class FastEmbedProvider:
    """In-process EmbeddingProvider backed by fastembed.

    Inference is CPU-bound, so it runs on a worker thread.
    """

    def __init__(self, model_id: str, dimension: int | None = None) -> None:
        self._model_id = model_id
        self._dimension = dimension
        self._model: TextEmbedding | None = None

    @property
    def dimension(self) -> int | None:
        return self._dimension

    def _get_model(self) -> TextEmbedding:
        if self._model is None:
            self._model = TextEmbedding(model_name=self._model_id)
        return self._model

    def _embed_sync(self, text: str) -> list[float]:
        first = next(iter(self._get_model().embed([text])), None)
        if first is None:
            raise EmbeddingError(f"No embeddings returned from {self._model_id}", code="NO_EMBEDDINGS")
        return [float(x) for x in first]

    async def create_embedding(self, text: str) -> list[float]:
        try:
            vector = await asyncio.to_thread(self._embed_sync, text)
        except EmbeddingError:
            raise
        except Exception as exc:
            raise EmbeddingError(f"Failed to create embedding: {exc}", cause=exc) from exc
        return check_dimension(vector, self._dimension)
