from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Iterable, Protocol

from loguru import logger

from linkpreview.app.application.cache_store import CacheStore
from linkpreview.app.core import SERVICE_NAME
from linkpreview.app.domain.client_identity import ClientIdentity, IdentityPolicy, host_of
from linkpreview.app.domain.html_meta_parser import parse_html_metadata
from linkpreview.app.domain.metadata_fetcher import MetadataFetchError, MetadataFetchTimeoutError
from linkpreview.app.domain.models import FetchResult, MetadataRecord
from linkpreview.app.domain.payload_extractor import extract_record_from_payload

DEFAULT_MAX_CONCURRENCY = 20
MAX_PAGE_SOURCE_LENGTH = 2_000_000


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


class PageFetcher(Protocol):
    async def fetch(self, url: str, identity: ClientIdentity) -> FetchResult: ...


@dataclass(frozen=True)
class ResolveRequest:
    """One link to resolve, optionally with the platform's cached payload."""

    url: str
    payload: bytes | None = None


class Resolver:
    """
    Resolves a link into a MetadataRecord: payload, then cache, then network.

    ``resolve`` never raises for bad input or network trouble; every failure
    comes back as None. There is no retry: a later call is safe to repeat.
    Concurrent calls for the same URL are not deduplicated.
    """

    def __init__(
        self,
        fetcher: PageFetcher,
        cache: CacheStore,
        identities: IdentityPolicy,
        *,
        max_page_source_length: int = MAX_PAGE_SOURCE_LENGTH,
    ) -> None:
        self._fetcher = fetcher
        self._cache = cache
        self._identities = identities
        self._max_page_source_length = int(max_page_source_length)

    async def resolve(self, url: str, payload: bytes | None = None) -> MetadataRecord | None:
        if payload:
            record = extract_record_from_payload(payload, url)
            if record is not None and record.has_data:
                _log("metadata_resolved", url=url, source="payload")
                return record

        cached = await self._cache.get(url)
        if cached is not None:
            return cached if cached.has_data else None

        record = await self._fetch_and_parse(url)
        if record is None:
            return None

        if record.has_data:
            await self._cache.put(url, record)
            _log("metadata_resolved", url=url, source="network")
            return record

        self._cache.remember(url, record)
        _log("metadata_empty", url=url)
        return None

    async def resolve_many(
        self,
        requests: Iterable[ResolveRequest],
        *,
        max_concurrency: int = DEFAULT_MAX_CONCURRENCY,
    ) -> list[MetadataRecord | None]:
        """Resolve links concurrently, at most ``max_concurrency`` in flight.

        Results come back in input order.
        """
        semaphore = asyncio.Semaphore(max(1, max_concurrency))

        async def _bounded(request: ResolveRequest) -> MetadataRecord | None:
            async with semaphore:
                return await self.resolve(request.url, request.payload)

        return list(await asyncio.gather(*(_bounded(r) for r in requests)))

    async def _fetch_and_parse(self, url: str) -> MetadataRecord | None:
        identity = self._identities.for_host(host_of(url))
        _log("fetch_started", url=url, identity=identity.name)
        try:
            result = await self._fetcher.fetch(url, identity)
        except MetadataFetchTimeoutError as exc:
            _log("fetch_failed", url=url, reason="timeout", error=str(exc))
            return None
        except MetadataFetchError as exc:
            _log("fetch_failed", url=url, reason="http", error=str(exc))
            return None

        try:
            page_source = result.content.decode("utf-8")
        except UnicodeDecodeError as exc:
            _log("fetch_failed", url=url, reason="decode", error=str(exc))
            return None

        if 0 < self._max_page_source_length < len(page_source):
            page_source = page_source[: self._max_page_source_length]

        try:
            return await asyncio.to_thread(parse_html_metadata, page_source, url)
        except Exception as exc:
            logger.warning("html parse failed for {}: {}", url, exc)
            return None
