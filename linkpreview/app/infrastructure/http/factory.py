"""HTTP client factory: builds AbstractHttpClient from settings (no provider logic in composition)."""
from __future__ import annotations

import httpx

from linkpreview.app.config.settings import Settings
from linkpreview.app.ports.http_client import AbstractHttpClient
from linkpreview.app.infrastructure.http.httpx_client import HttpxHttpClient


def create_http_client(settings: Settings) -> AbstractHttpClient:
    """Build an HTTP client. Timeouts and identity headers are applied per request."""
    limits = httpx.Limits(max_connections=max(1, settings.max_concurrent_resolutions))
    return HttpxHttpClient(httpx.AsyncClient(limits=limits))
