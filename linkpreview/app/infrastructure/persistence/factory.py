"""Repository factory: selects and assembles the durable cache adapter."""
from __future__ import annotations

from pymongo.errors import PyMongoError

from linkpreview.app.config.settings import Settings
from linkpreview.app.infrastructure.persistence.memory.memory_repository import InMemoryCacheRepository
from linkpreview.app.infrastructure.persistence.mongo.connection import create_mongo_client
from linkpreview.app.infrastructure.persistence.mongo.mongo_repository import MongoCacheRepository
from linkpreview.app.infrastructure.persistence.sqlite.sqlite_repository import SqliteCacheRepository
from linkpreview.app.ports.cache_repository import CacheRepository, CacheRepositoryError


async def create_cache_repository(settings: Settings) -> CacheRepository:
    """Select repository adapter from configuration and return port type.

    Raises CacheRepositoryError when the configured store cannot be opened.
    """
    backend = settings.cache_backend.strip().lower()

    if backend == "sqlite":
        return await SqliteCacheRepository.open(settings.cache_db_path)
    if backend == "mongo":
        mongo_client = await create_mongo_client(settings)
        repo = MongoCacheRepository(
            mongo_client[settings.database_name][settings.database_collection],
            client=mongo_client,
        )
        try:
            await repo.ensure_indexes()
        except PyMongoError as exc:
            await repo.close()
            raise CacheRepositoryError(f"cannot create mongo cache indexes: {exc}") from exc
        return repo
    if backend == "memory":
        return InMemoryCacheRepository()
    raise ValueError(f"Unsupported cache backend: {backend}")
