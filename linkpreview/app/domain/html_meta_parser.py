"""OpenGraph / Twitter Card extraction from fetched HTML.

Every ``<meta>`` tag is read once: the key comes from ``property`` or
``name``, the value from ``content``. The first non-empty value per key wins.
Per field, OpenGraph beats Twitter Card; the title falls back to ``<title>``
and the description to ``<meta name="description">``.
"""
from __future__ import annotations

from urllib.parse import urljoin

from bs4 import BeautifulSoup

from linkpreview.app.domain.image_scorer import (
    collect_url_pool,
    pick_best_image,
    rank_candidates,
)
from linkpreview.app.domain.models import MetadataRecord

OG_TITLE = ("og:title",)
OG_DESCRIPTION = ("og:description",)
OG_IMAGE = ("og:image", "og:image:url", "og:image:secure_url")
OG_SITE_NAME = ("og:site_name",)

TWITTER_TITLE = ("twitter:title",)
TWITTER_DESCRIPTION = ("twitter:description",)
TWITTER_IMAGE = ("twitter:image", "twitter:image:src")
TWITTER_SITE = ("twitter:site", "twitter:creator")

GENERIC_DESCRIPTION = ("description",)

PROFILE_IMAGE_MARKERS = ("profile_images", "_normal")


def clean_text(value: str | None) -> str | None:
    """Trim; empty results become None.

    Entities are already decoded by the parser for both attribute values and
    element text, so values are not unescaped a second time.
    """
    if value is None:
        return None
    text = value.strip()
    return text or None


def _collect_meta(soup: BeautifulSoup) -> list[tuple[str, str]]:
    tags: list[tuple[str, str]] = []
    for tag in soup.find_all("meta"):
        key = tag.get("property") or tag.get("name")
        content = tag.get("content")
        if not isinstance(key, str) or not isinstance(content, str):
            continue
        if not content.strip():
            continue
        tags.append((key.strip().lower(), content))
    return tags


def _first(tags: list[tuple[str, str]], keys: tuple[str, ...]) -> str | None:
    for key, content in tags:
        if key in keys:
            text = clean_text(content)
            if text:
                return text
    return None


def _image_candidates(tags: list[tuple[str, str]], keys: tuple[str, ...], base_url: str) -> list[str]:
    candidates: list[str] = []
    for key, content in tags:
        if key not in keys:
            continue
        value = clean_text(content)
        if not value or any(marker in value for marker in PROFILE_IMAGE_MARKERS):
            continue
        candidates.append(urljoin(base_url, value))
    return candidates


def _choose_declared_image(candidates: list[str]) -> str | None:
    """Best declared image tag, with no acceptance threshold.

    Only outright rejects (favicons) are dropped: a page that declares its
    logo as og:image keeps it.
    """
    absolute = [url for url in candidates if url.lower().startswith(("http://", "https://"))]
    ranked = rank_candidates(dict.fromkeys(absolute))
    return ranked[0][0] if ranked else None


def _fallback_image_pool(soup: BeautifulSoup, base_url: str) -> list[str]:
    urls: list[str] = []
    for link in soup.find_all("link", rel=True):
        rel = link.get("rel")
        rels = rel if isinstance(rel, list) else [rel]
        href = link.get("href")
        if "image_src" in rels and isinstance(href, str):
            urls.append(urljoin(base_url, href.strip()))
    for img in soup.find_all("img", src=True):
        src = img.get("src")
        if isinstance(src, str) and src.strip():
            urls.append(urljoin(base_url, src.strip()))
    return urls


def _title_tag_text(soup: BeautifulSoup) -> str | None:
    tag = soup.find("title")
    if tag is None:
        return None
    return clean_text(tag.get_text())


def parse_html_metadata(page_source: str, source_url: str) -> MetadataRecord:
    """Parse a page into a record; the record may have no data."""
    soup = BeautifulSoup(page_source, "html.parser")
    tags = _collect_meta(soup)

    title = _first(tags, OG_TITLE) or _first(tags, TWITTER_TITLE) or _title_tag_text(soup)
    description = (
        _first(tags, OG_DESCRIPTION)
        or _first(tags, TWITTER_DESCRIPTION)
        or _first(tags, GENERIC_DESCRIPTION)
    )
    site_name = _first(tags, OG_SITE_NAME) or _first(tags, TWITTER_SITE)

    image_url = (
        _choose_declared_image(_image_candidates(tags, OG_IMAGE, source_url))
        or _choose_declared_image(_image_candidates(tags, TWITTER_IMAGE, source_url))
        or pick_best_image(collect_url_pool(_fallback_image_pool(soup, source_url)))
    )

    return MetadataRecord(
        canonical_url=source_url,
        title=title,
        description=description,
        image_url=image_url,
        site_name=site_name,
    )
