"""SQLite implementation of CacheRepository."""
from __future__ import annotations

import sqlite3
from pathlib import Path
from typing import Any

import aiosqlite

from linkpreview.app.domain.models import CacheEntry, MetadataRecord
from linkpreview.app.ports.cache_repository import CacheRepositoryError

TABLE_NAME = "opengraph_cache"

_SCHEMA = f"""
CREATE TABLE IF NOT EXISTS {TABLE_NAME} (
    url TEXT PRIMARY KEY,
    title TEXT,
    description TEXT,
    image_url TEXT,
    site_name TEXT,
    cached_at INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_{TABLE_NAME}_cached_at ON {TABLE_NAME}(cached_at);
"""


class SqliteCacheRepository:
    """Concrete implementation of CacheRepository on a single aiosqlite connection."""

    def __init__(self, connection: aiosqlite.Connection) -> None:
        self._conn = connection

    @classmethod
    async def open(cls, db_path: str | Path) -> "SqliteCacheRepository":
        """Open (creating if needed) the database file and its schema."""
        try:
            if str(db_path) != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)
            conn = await aiosqlite.connect(str(db_path))
            conn.row_factory = aiosqlite.Row
            await conn.execute("PRAGMA busy_timeout = 5000;")
            repo = cls(conn)
            await repo.ensure_schema()
            return repo
        except (sqlite3.Error, OSError) as exc:
            raise CacheRepositoryError(f"cannot open cache database {db_path}: {exc}") from exc

    async def ensure_schema(self) -> None:
        """Infrastructure bootstrap: create table and index. Not part of the port."""
        await self._conn.executescript(_SCHEMA)
        await self._conn.commit()

    async def get(self, key: str) -> CacheEntry | None:
        try:
            async with self._conn.execute(
                f"SELECT url, title, description, image_url, site_name, cached_at "
                f"FROM {TABLE_NAME} WHERE url = ?",
                (key,),
            ) as cursor:
                row = await cursor.fetchone()
        except sqlite3.Error as exc:
            raise CacheRepositoryError(f"cache read failed for {key}: {exc}") from exc
        if row is None:
            return None
        return _row_to_entry(row)

    async def upsert(self, entry: CacheEntry) -> None:
        record = entry.record
        try:
            await self._conn.execute(
                f"INSERT OR REPLACE INTO {TABLE_NAME} "
                f"(url, title, description, image_url, site_name, cached_at) "
                f"VALUES (?, ?, ?, ?, ?, ?)",
                (
                    entry.key,
                    record.title,
                    record.description,
                    record.image_url,
                    record.site_name,
                    int(entry.cached_at),
                ),
            )
            await self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheRepositoryError(f"cache write failed for {entry.key}: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._conn.execute(f"DELETE FROM {TABLE_NAME} WHERE url = ?", (key,))
            await self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheRepositoryError(f"cache delete failed for {key}: {exc}") from exc

    async def delete_older_than(self, cutoff: int) -> int:
        try:
            cursor = await self._conn.execute(
                f"DELETE FROM {TABLE_NAME} WHERE cached_at < ?", (int(cutoff),)
            )
            deleted = cursor.rowcount
            await cursor.close()
            await self._conn.commit()
        except sqlite3.Error as exc:
            raise CacheRepositoryError(f"cache sweep failed: {exc}") from exc
        return max(0, int(deleted))

    async def close(self) -> None:
        await self._conn.close()


def _row_to_entry(row: Any) -> CacheEntry:
    record = MetadataRecord(
        canonical_url=row["url"],
        title=row["title"],
        description=row["description"],
        image_url=row["image_url"],
        site_name=row["site_name"],
    )
    return CacheEntry(key=row["url"], record=record, cached_at=int(row["cached_at"]))
