"""Abstract interface for durable preview-cache persistence (port)."""
from __future__ import annotations

from typing import Protocol

from linkpreview.app.domain.models import CacheEntry


class CacheRepositoryError(Exception):
    """Raised by adapters when the durable store cannot be read or written."""


class CacheRepository(Protocol):
    """Port: one row per normalized URL. Implementations live in infrastructure."""

    async def get(self, key: str) -> CacheEntry | None: ...

    async def upsert(self, entry: CacheEntry) -> None: ...

    async def delete(self, key: str) -> None: ...

    async def delete_older_than(self, cutoff: int) -> int:
        """Delete entries with cached_at < cutoff; return how many were removed."""
        ...

    async def close(self) -> None:
        """Release resources (e.g. DB connection). No-op allowed if nothing to close."""
        ...
