"""Process-local CacheRepository, used when no durable backend is configured."""
from __future__ import annotations

from linkpreview.app.domain.models import CacheEntry


class InMemoryCacheRepository:
    """Dict-backed CacheRepository. Contents are lost when the process exits."""

    def __init__(self) -> None:
        self._entries: dict[str, CacheEntry] = {}

    async def get(self, key: str) -> CacheEntry | None:
        return self._entries.get(key)

    async def upsert(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def delete_older_than(self, cutoff: int) -> int:
        stale = [key for key, entry in self._entries.items() if entry.cached_at < cutoff]
        for key in stale:
            del self._entries[key]
        return len(stale)

    async def close(self) -> None:
        self._entries.clear()
