"""Unit tests for the two-tier preview cache."""
from __future__ import annotations

import asyncio

import pytest

from linkpreview.app.application.cache_store import CacheStore, normalize_url
from linkpreview.app.domain.models import CacheEntry, MetadataRecord
from linkpreview.app.infrastructure.persistence.memory.memory_repository import (
    InMemoryCacheRepository,
)
from linkpreview.app.infrastructure.persistence.sqlite.sqlite_repository import (
    SqliteCacheRepository,
)
from linkpreview.app.ports.cache_repository import CacheRepositoryError
from tests.helpers import FailingCacheRepository

URL = "https://example.com/a"
RECORD = MetadataRecord(
    canonical_url=URL,
    title="Hello",
    description="World",
    image_url="https://example.com/img.jpg",
    site_name="Example",
)
WEEK = 7 * 24 * 60 * 60


def test_normalize_url():
    assert normalize_url("  HTTPS://Example.COM/Path?q=1#section ") == "https://example.com/Path?q=1"
    assert normalize_url("https://example.com/a") == "https://example.com/a"


def test_memory_only_round_trip(clock):
    async def _run():
        store = CacheStore(ttl_seconds=WEEK, clock=clock)
        assert await store.get(URL) is None
        await store.put(URL, RECORD)
        assert await store.get(URL) == RECORD
        assert await store.get("https://EXAMPLE.com/a#top") == RECORD
        assert not store.durable

    asyncio.run(_run())


def test_durable_hit_after_restart(tmp_path, clock):
    db_path = tmp_path / "cache" / "opengraph_cache.db"

    async def _run():
        first = CacheStore(await SqliteCacheRepository.open(db_path), ttl_seconds=WEEK, clock=clock)
        await first.put(URL, RECORD)
        await first.close()

        repository = await SqliteCacheRepository.open(db_path)
        second = CacheStore(repository, ttl_seconds=WEEK, clock=clock)
        try:
            record = await second.get(URL)
        finally:
            await second.close()
        return record

    record = asyncio.run(_run())

    assert record == RECORD
    assert record.has_data


def test_entry_expires_from_both_tiers(clock):
    repository = InMemoryCacheRepository()
    store = CacheStore(repository, ttl_seconds=WEEK, clock=clock)

    async def _run():
        await store.put(URL, RECORD)
        clock.advance(days=8)
        first = await store.get(URL)
        stored = await repository.get(normalize_url(URL))
        return first, stored

    first, stored = asyncio.run(_run())

    assert first is None
    assert stored is None


def test_expired_durable_entry_is_deleted_on_read(clock):
    repository = InMemoryCacheRepository()

    async def _run():
        await repository.upsert(
            CacheEntry(key=URL, record=RECORD, cached_at=int(clock()) - WEEK - 1)
        )
        store = CacheStore(repository, ttl_seconds=WEEK, clock=clock)
        assert await store.get(URL) is None
        return await repository.get(URL)

    assert asyncio.run(_run()) is None


def test_entry_at_exact_ttl_is_still_valid(clock):
    store = CacheStore(ttl_seconds=WEEK, clock=clock)

    async def _run():
        await store.put(URL, RECORD)
        clock.advance(seconds=WEEK)
        return await store.get(URL)

    assert asyncio.run(_run()) == RECORD


def test_durable_hit_is_promoted_to_memory(clock):
    repository = InMemoryCacheRepository()

    async def _run():
        await repository.upsert(CacheEntry(key=URL, record=RECORD, cached_at=int(clock())))
        store = CacheStore(repository, ttl_seconds=WEEK, clock=clock)
        assert await store.get(URL) == RECORD
        await repository.delete(URL)
        return await store.get(URL)

    assert asyncio.run(_run()) == RECORD


def test_remember_stays_in_memory(clock):
    repository = InMemoryCacheRepository()
    store = CacheStore(repository, ttl_seconds=WEEK, clock=clock)
    empty = MetadataRecord(canonical_url=URL)

    async def _run():
        store.remember(URL, empty)
        return await store.get(URL), await repository.get(URL)

    cached, stored = asyncio.run(_run())

    assert cached == empty
    assert stored is None


def test_sweep_removes_only_stale_entries(tmp_path, clock):
    async def _run():
        repository = await SqliteCacheRepository.open(tmp_path / "sweep.db")
        store = CacheStore(repository, ttl_seconds=WEEK, clock=clock)
        try:
            await store.put("https://example.com/old", RECORD)
            clock.advance(days=8)
            await store.put("https://example.com/new", RECORD)
            deleted = await store.sweep()
            old = await repository.get("https://example.com/old")
            new = await repository.get("https://example.com/new")
        finally:
            await store.close()
        return deleted, old, new

    deleted, old, new = asyncio.run(_run())

    assert deleted == 1
    assert old is None
    assert new is not None
    assert new.record.title == "Hello"


def test_failing_repository_degrades_to_memory(clock):
    repository = FailingCacheRepository()
    store = CacheStore(repository, ttl_seconds=WEEK, clock=clock)

    async def _run():
        await store.put(URL, RECORD)
        hit = await store.get(URL)
        miss = await store.get("https://example.com/other")
        swept = await store.sweep()
        return hit, miss, swept

    hit, miss, swept = asyncio.run(_run())

    assert hit == RECORD
    assert miss is None
    assert swept == 0
    assert repository.calls == ["upsert", "get", "delete_older_than"]


def test_sqlite_upsert_is_last_write_wins(tmp_path, clock):
    async def _run():
        repository = await SqliteCacheRepository.open(tmp_path / "upsert.db")
        try:
            await repository.upsert(CacheEntry(key=URL, record=RECORD, cached_at=1))
            newer = MetadataRecord(canonical_url=URL, title="Updated")
            await repository.upsert(CacheEntry(key=URL, record=newer, cached_at=2))
            return await repository.get(URL)
        finally:
            await repository.close()

    entry = asyncio.run(_run())

    assert entry.cached_at == 2
    assert entry.record.title == "Updated"
    assert entry.record.image_url is None


def test_sqlite_open_failure_is_repository_error(tmp_path):
    async def _run():
        await SqliteCacheRepository.open(tmp_path)

    with pytest.raises(CacheRepositoryError):
        asyncio.run(_run())
