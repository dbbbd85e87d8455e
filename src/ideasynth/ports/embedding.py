"""Port: embedding provider."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class EmbeddingProvider(Protocol):
    """Turn text into a fixed-length vector.

    ``dimension`` is the vector length the provider guarantees, or ``None``
    when the backend decides it. Failures raise ``EmbeddingError``.
    """

    @property
    def dimension(self) -> int | None: ...

    async def create_embedding(self, text: str) -> list[float]: ...
