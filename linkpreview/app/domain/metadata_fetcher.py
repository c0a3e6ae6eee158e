"""Page fetcher: performs the single network GET of a resolution.

Uses the HTTP port (AbstractHttpClient); the client is built in the
composition root. Only 2xx responses are accepted. Timeouts and transport
failures are mapped to domain exceptions; callers decide how to degrade.
"""
from __future__ import annotations

from loguru import logger

from linkpreview.app.domain.client_identity import GENERIC, ClientIdentity
from linkpreview.app.domain.models import FetchResult
from linkpreview.app.ports.http_client import (
    AbstractHttpClient,
    HttpClientError,
    HttpClientTimeoutError,
    RequestTimeout,
)


class MetadataFetchError(Exception):
    """Base error for page fetching failures."""


class MetadataFetchTimeoutError(MetadataFetchError):
    """Raised when an HTTP request times out."""


class MetadataFetcher:
    """Fetches a page under a declared client identity.

    ``fetch`` returns the raw body; decoding and parsing happen downstream.
    """

    def __init__(
        self,
        client: AbstractHttpClient,
        connect_timeout_seconds: float,
        read_timeout_seconds: float,
        total_timeout_seconds: float | None = None,
    ) -> None:
        self._client = client
        self._timeout = RequestTimeout(
            connect_seconds=connect_timeout_seconds,
            read_seconds=read_timeout_seconds,
            total_seconds=total_timeout_seconds,
        )

    async def fetch(self, url: str, identity: ClientIdentity = GENERIC) -> FetchResult:
        try:
            response = await self._client.get(
                url,
                timeout=self._timeout,
                follow_redirects=True,
                headers=dict(identity.headers),
            )
        except HttpClientTimeoutError as exc:
            raise MetadataFetchTimeoutError(str(exc)) from exc
        except HttpClientError as exc:
            raise MetadataFetchError(str(exc)) from exc

        if not 200 <= response.status_code < 300:
            raise MetadataFetchError(f"http status {response.status_code} for {url}")

        logger.debug(
            "fetched {} as {}: status={} final_url={} bytes={}",
            url,
            identity.name,
            response.status_code,
            response.url,
            len(response.content),
        )
        return FetchResult(
            content=response.content,
            status_code=response.status_code,
            final_url=str(response.url),
            headers=dict(response.headers),
        )
