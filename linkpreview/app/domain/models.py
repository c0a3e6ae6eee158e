"""Domain models."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class SocialInfo:
    """Author and engagement fields decoded from a social post preview."""

    author_name: str | None = None
    handle: str | None = None
    like_count: str | None = None
    reply_count: str | None = None
    avatar_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "author_name": self.author_name,
            "handle": self.handle,
            "like_count": self.like_count,
            "reply_count": self.reply_count,
            "avatar_url": self.avatar_url,
        }


@dataclass(frozen=True)
class MetadataRecord:
    """Resolved link preview (value object)."""

    canonical_url: str
    title: str | None = None
    description: str | None = None
    image_url: str | None = None
    site_name: str | None = None
    social: SocialInfo | None = None

    @property
    def has_data(self) -> bool:
        return bool(self.title or self.description or self.image_url)

    def to_dict(self) -> dict[str, Any]:
        """Serialisable dict for persistence and output. Transport-agnostic."""
        payload: dict[str, Any] = {
            "url": self.canonical_url,
            "title": self.title,
            "description": self.description,
            "image_url": self.image_url,
            "site_name": self.site_name,
        }
        if self.social is not None:
            payload["social"] = self.social.to_dict()
        return payload

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "MetadataRecord":
        social = data.get("social")
        return MetadataRecord(
            canonical_url=str(data.get("url") or ""),
            title=data.get("title"),
            description=data.get("description"),
            image_url=data.get("image_url"),
            site_name=data.get("site_name"),
            social=SocialInfo(**social) if isinstance(social, dict) else None,
        )


@dataclass(frozen=True)
class CacheEntry:
    """A cached record and the epoch second it was written."""

    key: str
    record: MetadataRecord
    cached_at: int

    def age(self, now: float) -> float:
        return now - self.cached_at

    def is_expired(self, now: float, ttl_seconds: int) -> bool:
        return self.age(now) > ttl_seconds


@dataclass(frozen=True)
class FetchResult:
    """Body and status of a completed page fetch."""

    content: bytes
    status_code: int
    final_url: str
    headers: dict[str, str]
