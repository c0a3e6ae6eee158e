"""Connect the Mongo-backed preview cache, retrying with exponential backoff."""
from __future__ import annotations

import inspect
from typing import Any, Callable
from urllib.parse import quote_plus

from loguru import logger
from motor.motor_asyncio import AsyncIOMotorClient

from linkpreview.app.config.settings import Settings
from linkpreview.app.core import SERVICE_NAME
from linkpreview.app.core.backoff import exponential_backoff
from linkpreview.app.ports.cache_repository import CacheRepositoryError


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def build_mongo_uri(settings: Settings) -> str:
    """Credentials are percent-escaped; they are omitted unless both are set."""
    address = f"{settings.database_host}:{settings.database_port}"
    if settings.database_user and settings.database_password:
        user = quote_plus(settings.database_user)
        password = quote_plus(settings.database_password)
        return f"mongodb://{user}:{password}@{address}"
    return f"mongodb://{address}"


async def close_mongo_client(client: Any) -> None:
    # Motor's close() is sync; newer async drivers return an awaitable.
    res = client.close()
    if inspect.isawaitable(res):
        await res


async def create_mongo_client(
    settings: Settings,
    client_factory: Callable[..., Any] = AsyncIOMotorClient,
) -> Any:
    """Return a client that answered ``ping``.

    Raises CacheRepositoryError once MAX_CONNECTION_ATTEMPTS pings have failed.
    """
    uri = build_mongo_uri(settings)
    last_error: Exception | None = None
    async for attempt, delay in exponential_backoff(
        settings.initial_backoff_seconds,
        settings.max_backoff_seconds,
        settings.backoff_multiplier,
        settings.max_connection_attempts,
    ):
        client = None
        try:
            client = client_factory(uri, serverSelectionTimeoutMS=settings.database_connection_timeout_ms)
            await client.admin.command("ping")
        except Exception as exc:
            last_error = exc
            _log(
                "cache_store_connect_failed",
                host=settings.database_host,
                attempt=attempt,
                next_delay=delay,
                error=str(exc),
            )
            if client is not None:
                await close_mongo_client(client)
            continue
        _log("cache_store_connected", host=settings.database_host, attempt=attempt)
        return client

    raise CacheRepositoryError(
        f"mongo at {settings.database_host}:{settings.database_port} unreachable "
        f"after {settings.max_connection_attempts} attempts: {last_error}"
    )
