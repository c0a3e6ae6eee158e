"""Declared client identities used when fetching pages."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping
from urllib.parse import urlsplit

BROWSER_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)
SOCIAL_CRAWLER_USER_AGENT = "Twitterbot/1.0"

# Hosts that only serve full meta tags to their own crawler identity.
SOCIAL_CRAWLER_HOSTS = frozenset(
    {"x.com", "www.x.com", "twitter.com", "www.twitter.com", "mobile.twitter.com"}
)


@dataclass(frozen=True)
class ClientIdentity:
    name: str
    headers: Mapping[str, str] = field(default_factory=dict)


GENERIC = ClientIdentity(
    name="generic",
    headers={
        "User-Agent": BROWSER_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    },
)

SOCIAL_CRAWLER = ClientIdentity(
    name="social-crawler",
    headers={
        "User-Agent": SOCIAL_CRAWLER_USER_AGENT,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        "Accept-Language": "en-US,en;q=0.9",
    },
)


@dataclass(frozen=True)
class IdentityPolicy:
    """Pick the declared identity for a host."""

    generic: ClientIdentity = GENERIC
    social_crawler: ClientIdentity = SOCIAL_CRAWLER
    social_hosts: frozenset[str] = SOCIAL_CRAWLER_HOSTS

    def for_host(self, host: str | None) -> ClientIdentity:
        if host and host.lower() in self.social_hosts:
            return self.social_crawler
        return self.generic


def host_of(url: str) -> str | None:
    """Lower-case host of ``url``, or None when it cannot be parsed."""
    try:
        host = urlsplit(url).hostname
    except ValueError:
        return None
    return host.lower() if host else None
