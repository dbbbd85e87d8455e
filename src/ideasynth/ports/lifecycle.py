"""Port: optional release of backend connections."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class AsyncCloseable(Protocol):
    """A backend holding connections that should be released on shutdown."""

    async def aclose(self) -> None: ...


async def aclose_all(*resources: object) -> None:
    """Close each closeable resource once; objects without ``aclose`` are skipped.

    Every resource is attempted. The first failure is re-raised afterwards.
    """
    seen: set[int] = set()
    first_error: Exception | None = None
    for resource in resources:
        if id(resource) in seen or not isinstance(resource, AsyncCloseable):
            continue
        seen.add(id(resource))
        try:
            await resource.aclose()
        except Exception as exc:
            if first_error is None:
                first_error = exc
    if first_error is not None:
        raise first_error
