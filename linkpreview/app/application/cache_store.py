"""Two-tier preview cache: process memory in front of a durable repository."""
from __future__ import annotations

import time
from typing import Any, Callable
from urllib.parse import urlsplit, urlunsplit

from loguru import logger

from linkpreview.app.core import SERVICE_NAME
from linkpreview.app.domain.models import CacheEntry, MetadataRecord
from linkpreview.app.ports.cache_repository import CacheRepository, CacheRepositoryError

DEFAULT_TTL_SECONDS = 7 * 24 * 60 * 60


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def normalize_url(url: str) -> str:
    """Cache key: trimmed, lower-case scheme and host, no fragment."""
    raw = url.strip()
    try:
        parts = urlsplit(raw)
    except ValueError:
        return raw
    return urlunsplit((parts.scheme.lower(), parts.netloc.lower(), parts.path, parts.query, ""))


class CacheStore:
    """
    Tier A is a dict owned by this instance; tier B is an optional CacheRepository.

    Both tiers apply the same TTL. A durable-store failure is logged and the
    store carries on with tier A alone; it never propagates to callers.
    """

    def __init__(
        self,
        repository: CacheRepository | None = None,
        *,
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._repository = repository
        self._ttl_seconds = int(ttl_seconds)
        self._clock = clock
        self._memory: dict[str, CacheEntry] = {}

    @property
    def durable(self) -> bool:
        return self._repository is not None

    def _now(self) -> int:
        return int(self._clock())

    def _degrade(self, operation: str, exc: Exception) -> None:
        _log("cache_degraded", operation=operation, error=str(exc))
        logger.warning("durable cache {} failed, continuing memory-only: {}", operation, exc)

    async def get(self, url: str) -> MetadataRecord | None:
        key = normalize_url(url)
        now = self._now()

        entry = self._memory.get(key)
        if entry is not None:
            if not entry.is_expired(now, self._ttl_seconds):
                _log("cache_hit", url=key, tier="memory")
                return entry.record
            del self._memory[key]

        if self._repository is None:
            _log("cache_miss", url=key)
            return None

        try:
            entry = await self._repository.get(key)
            if entry is not None and entry.is_expired(now, self._ttl_seconds):
                _log("cache_expired", url=key, cached_at=entry.cached_at)
                await self._repository.delete(key)
                entry = None
        except CacheRepositoryError as exc:
            self._degrade("get", exc)
            return None

        if entry is None:
            _log("cache_miss", url=key)
            return None

        self._memory[key] = entry
        _log("cache_hit", url=key, tier="durable")
        return entry.record

    async def put(self, url: str, record: MetadataRecord) -> None:
        """Upsert into both tiers (last write wins)."""
        entry = self.remember(url, record)
        if self._repository is None:
            return
        try:
            await self._repository.upsert(entry)
        except CacheRepositoryError as exc:
            self._degrade("put", exc)

    def remember(self, url: str, record: MetadataRecord) -> CacheEntry:
        """Upsert into tier A only."""
        key = normalize_url(url)
        entry = CacheEntry(key=key, record=record, cached_at=self._now())
        self._memory[key] = entry
        return entry

    async def sweep(self) -> int:
        """Drop every durable entry older than the TTL; returns rows removed."""
        now = self._now()
        cutoff = now - self._ttl_seconds
        for key in [k for k, e in self._memory.items() if e.is_expired(now, self._ttl_seconds)]:
            del self._memory[key]
        if self._repository is None:
            return 0
        try:
            deleted = await self._repository.delete_older_than(cutoff)
        except CacheRepositoryError as exc:
            self._degrade("sweep", exc)
            return 0
        _log("cache_sweep", deleted=deleted, cutoff=cutoff)
        return deleted

    async def close(self) -> None:
        self._memory.clear()
        if self._repository is not None:
            await self._repository.close()
