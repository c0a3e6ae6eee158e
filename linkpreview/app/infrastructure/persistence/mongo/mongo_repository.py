"""MongoDB implementation of CacheRepository."""
from __future__ import annotations

from typing import Any

from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo.errors import PyMongoError

from linkpreview.app.domain.models import CacheEntry, MetadataRecord
from linkpreview.app.infrastructure.persistence.mongo.connection import close_mongo_client
from linkpreview.app.ports.cache_repository import CacheRepositoryError

_PROJECTION = {
    "_id": 0,
    "url": 1,
    "title": 1,
    "description": 1,
    "image_url": 1,
    "site_name": 1,
    "cached_at": 1,
}


class MongoCacheRepository:
    """Concrete implementation of CacheRepository using one document per URL."""

    def __init__(self, collection: AsyncIOMotorCollection, *, client: Any | None = None) -> None:
        self._collection = collection
        self._client = client

    async def ensure_indexes(self) -> None:
        """Infrastructure bootstrap: create indexes. Not part of the port."""
        await self._collection.create_index("url", unique=True, name="uq_cache_url")
        await self._collection.create_index("cached_at", name="idx_cache_cached_at")

    async def get(self, key: str) -> CacheEntry | None:
        try:
            doc = await self._collection.find_one({"url": key}, _PROJECTION)
        except PyMongoError as exc:
            raise CacheRepositoryError(f"cache read failed for {key}: {exc}") from exc
        if not doc:
            return None
        return CacheEntry(
            key=key,
            record=MetadataRecord.from_dict(doc),
            cached_at=int(doc.get("cached_at", 0)),
        )

    async def upsert(self, entry: CacheEntry) -> None:
        record = entry.record
        try:
            await self._collection.update_one(
                {"url": entry.key},
                {
                    "$set": {
                        "url": entry.key,
                        "title": record.title,
                        "description": record.description,
                        "image_url": record.image_url,
                        "site_name": record.site_name,
                        "cached_at": int(entry.cached_at),
                    },
                },
                upsert=True,
            )
        except PyMongoError as exc:
            raise CacheRepositoryError(f"cache write failed for {entry.key}: {exc}") from exc

    async def delete(self, key: str) -> None:
        try:
            await self._collection.delete_one({"url": key})
        except PyMongoError as exc:
            raise CacheRepositoryError(f"cache delete failed for {key}: {exc}") from exc

    async def delete_older_than(self, cutoff: int) -> int:
        try:
            result = await self._collection.delete_many({"cached_at": {"$lt": int(cutoff)}})
        except PyMongoError as exc:
            raise CacheRepositoryError(f"cache sweep failed: {exc}") from exc
        return int(result.deleted_count)

    async def close(self) -> None:
        """Close underlying Mongo client when owned by this adapter."""
        if self._client is not None:
            await close_mongo_client(self._client)
