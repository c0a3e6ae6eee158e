"""Builders and fakes shared by the unit tests."""
from __future__ import annotations

import plistlib
from typing import Any, Callable

from linkpreview.app.domain.client_identity import ClientIdentity
from linkpreview.app.domain.metadata_fetcher import MetadataFetchError
from linkpreview.app.domain.models import CacheEntry, FetchResult
from linkpreview.app.ports.cache_repository import CacheRepositoryError

# Reference-marker shapes an archive may use for "object N".
MARKER_STYLES: dict[str, Callable[[int], Any]] = {
    "uid": lambda index: plistlib.UID(index),
    "cf_uid_dict": lambda index: {"CF$UID": index},
    "bare_int": lambda index: index,
}


def build_archive(
    *,
    title: str | None = "Hello",
    summary: str | None = "A summary",
    site_name: str | None = "Example",
    image_url: str | None = None,
    icon_url: str | None = None,
    extra_strings: tuple[str, ...] = (),
    marker: str = "uid",
    include_site_name_key: bool = True,
    fmt: plistlib.PlistFormat = plistlib.FMT_BINARY,
) -> bytes:
    """Serialize a minimal keyed archive shaped like a cached rich-link payload."""
    ref = MARKER_STYLES[marker]
    objects: list[Any] = ["$null"]

    def add(value: Any) -> int:
        objects.append(value)
        return len(objects) - 1

    metadata: dict[str, Any] = {}
    objects.append(metadata)

    metadata["$class"] = ref(add({"$classname": "LPLinkMetadata"}))
    metadata["title"] = ref(add(title) if title is not None else 0)
    metadata["summary"] = ref(add(summary) if summary is not None else 0)
    if include_site_name_key:
        metadata["siteName"] = ref(add(site_name) if site_name is not None else 0)

    for key, url in (("image", image_url), ("icon", icon_url)):
        if url is None:
            continue
        nsurl = {}
        nsurl_index = add(nsurl)
        nsurl["NS.base"] = ref(0)
        nsurl["NS.relative"] = ref(add(url))
        metadata[key] = ref(add({"URL": ref(nsurl_index)}))

    for value in extra_strings:
        add(value)

    archive = {
        "$version": 100000,
        "$archiver": "NSKeyedArchiver",
        "$top": {"root": ref(1)},
        "$objects": objects,
    }
    return plistlib.dumps(archive, fmt=fmt)


class FakeFetcher:
    """Implements the resolver's PageFetcher; records calls."""

    def __init__(
        self,
        body: str | bytes = "",
        *,
        status_code: int = 200,
        raise_on_fetch: Exception | None = None,
    ) -> None:
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        self._status_code = status_code
        self._raise_on_fetch = raise_on_fetch
        self.calls: list[tuple[str, ClientIdentity]] = []

    async def fetch(self, url: str, identity: ClientIdentity) -> FetchResult:
        self.calls.append((url, identity))
        if self._raise_on_fetch is not None:
            raise self._raise_on_fetch
        if not 200 <= self._status_code < 300:
            raise MetadataFetchError(f"http status {self._status_code} for {url}")
        return FetchResult(
            content=self._body,
            status_code=self._status_code,
            final_url=url,
            headers={"content-type": "text/html"},
        )


class FailingCacheRepository:
    """CacheRepository whose every operation fails like an unavailable disk."""

    def __init__(self) -> None:
        self.calls: list[str] = []

    async def get(self, key: str) -> CacheEntry | None:
        self.calls.append("get")
        raise CacheRepositoryError("disk I/O error")

    async def upsert(self, entry: CacheEntry) -> None:
        self.calls.append("upsert")
        raise CacheRepositoryError("disk I/O error")

    async def delete(self, key: str) -> None:
        self.calls.append("delete")
        raise CacheRepositoryError("disk I/O error")

    async def delete_older_than(self, cutoff: int) -> int:
        self.calls.append("delete_older_than")
        raise CacheRepositoryError("disk I/O error")

    async def close(self) -> None:
        return


class FakeClock:
    """Settable epoch-seconds clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, *, days: float = 0, seconds: float = 0) -> None:
        self.now += days * 24 * 60 * 60 + seconds


def build_deeply_nested_archive(depth: int) -> bytes:
    """XML keyed archive whose metadata object nests ``depth`` plain dicts."""
    nested = "<dict><key>a</key>" * depth + "<string>leaf</string>" + "</dict>" * depth
    return (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<!DOCTYPE plist PUBLIC "-//Apple//DTD PLIST 1.0//EN" '
        '"http://www.apple.com/DTDs/PropertyList-1.0.dtd">\n'
        '<plist version="1.0"><dict>'
        "<key>$objects</key><array><string>$null</string>"
        "<dict><key>title</key><string>Deep</string>"
        "<key>siteName</key><string>Example</string>"
        f"<key>nested</key>{nested}</dict>"
        "</array></dict></plist>"
    ).encode("utf-8")
