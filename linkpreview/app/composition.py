"""Composition root: build and lifecycle-manage concrete dependencies.

Composition may: import concrete classes, call factories, store interface types,
manage high-level lifecycle. One ResolverDependencies per process owns the
cache store handle; call sites receive the Resolver explicitly.
"""
from __future__ import annotations

from typing import Any

from loguru import logger

from linkpreview.app.application.cache_store import CacheStore
from linkpreview.app.application.resolver import Resolver
from linkpreview.app.config.settings import Settings
from linkpreview.app.core import SERVICE_NAME
from linkpreview.app.domain.client_identity import IdentityPolicy
from linkpreview.app.domain.metadata_fetcher import MetadataFetcher
from linkpreview.app.infrastructure.http.factory import create_http_client
from linkpreview.app.infrastructure.persistence.factory import create_cache_repository
from linkpreview.app.ports.cache_repository import CacheRepository, CacheRepositoryError
from linkpreview.app.ports.http_client import AbstractHttpClient


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class ResolverDependencies:
    """Holds wired resolver dependencies and their lifecycle."""

    def __init__(self, *, settings: Settings, identities: IdentityPolicy | None = None) -> None:
        self._settings = settings
        self._identities = identities or IdentityPolicy()
        self._http_client: AbstractHttpClient | None = None
        self._cache: CacheStore | None = None
        self._resolver: Resolver | None = None
        self._connected = False

    @property
    def settings(self) -> Settings:
        return self._settings

    @property
    def cache(self) -> CacheStore:
        if self._cache is None:
            raise RuntimeError("cache is not initialized")
        return self._cache

    @property
    def resolver(self) -> Resolver:
        if self._resolver is None:
            raise RuntimeError("resolver is not initialized")
        return self._resolver

    async def _open_repository(self) -> CacheRepository | None:
        try:
            return await create_cache_repository(self._settings)
        except CacheRepositoryError as exc:
            _log("cache_degraded", operation="open", backend=self._settings.cache_backend, error=str(exc))
            logger.warning("durable cache unavailable, running memory-only: {}", exc)
            return None

    async def connect(self, *, sweep: bool = True) -> None:
        repository = await self._open_repository()
        self._cache = CacheStore(repository, ttl_seconds=self._settings.cache_ttl_seconds)
        if sweep:
            await self._cache.sweep()

        self._http_client = create_http_client(self._settings)
        fetcher = MetadataFetcher(
            self._http_client,
            connect_timeout_seconds=self._settings.fetch_connect_timeout_seconds,
            read_timeout_seconds=self._settings.fetch_read_timeout_seconds,
            total_timeout_seconds=self._settings.fetch_total_timeout_seconds,
        )
        self._resolver = Resolver(
            fetcher,
            self._cache,
            self._identities,
            max_page_source_length=self._settings.max_page_source_length,
        )
        self._connected = True
        _log("resolver_ready", durable_cache=self._cache.durable)

    async def close(self) -> None:
        if self._http_client is not None:
            try:
                await self._http_client.close()
            except Exception as exc:
                logger.warning("http client close failed: {}", exc)
            self._http_client = None

        if self._cache is not None:
            try:
                await self._cache.close()
            except Exception as exc:
                logger.warning("cache close failed: {}", exc)

        self._cache = None
        self._resolver = None
        self._connected = False


def create_resolver_dependencies(settings: Settings | None = None) -> ResolverDependencies:
    return ResolverDependencies(settings=settings or Settings())
