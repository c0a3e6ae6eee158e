"""Decompose social-post preview titles.

Archived previews of social posts pack author and engagement into the title::

    Jane Doe (@jane)
    11K likes · 2K replies

Unmatched pieces are left as None; parsing never fails.
"""
from __future__ import annotations

import re
from dataclasses import dataclass

SOCIAL_SITE_NAMES = frozenset({"X (formerly Twitter)", "Twitter"})
SOCIAL_HOSTS = ("x.com", "twitter.com")

_HANDLE = re.compile(r"\(@(\w+)\)")
_COUNT = r"(\d[\d.,]*[KMB]?)"
_LIKES = re.compile(_COUNT + r"\s*likes?\b", re.IGNORECASE)
_REPLIES = re.compile(_COUNT + r"\s*repl", re.IGNORECASE)


@dataclass(frozen=True)
class SocialTitle:
    author_name: str | None = None
    handle: str | None = None
    like_count: str | None = None
    reply_count: str | None = None


def is_social_source(host: str, site_name: str | None) -> bool:
    host = host.lower()
    if any(host == name or host.endswith("." + name) for name in SOCIAL_HOSTS):
        return True
    return site_name in SOCIAL_SITE_NAMES


def parse_social_title(title: str) -> SocialTitle:
    lines = title.splitlines()
    if not lines:
        return SocialTitle()

    author_name = handle = likes = replies = None

    match = _HANDLE.search(lines[0])
    if match:
        handle = f"@{match.group(1)}"
        author_name = lines[0][: match.start()].strip() or None

    if len(lines) > 1:
        engagement = lines[1]
        likes_match = _LIKES.search(engagement)
        if likes_match:
            likes = likes_match.group(1)
        replies_match = _REPLIES.search(engagement)
        if replies_match:
            replies = replies_match.group(1)

    return SocialTitle(
        author_name=author_name,
        handle=handle,
        like_count=likes,
        reply_count=replies,
    )
