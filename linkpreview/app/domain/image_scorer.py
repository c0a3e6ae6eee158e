"""Content-image heuristics.

Neither archived payloads nor HTML pages reliably mark which URL is the
content image; both expose a flat pool mixing favicons, avatars, logos and
real media. Each candidate gets an additive score and the best one wins.
"""
from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import urlsplit

MIN_CANDIDATE_LENGTH = 20
# A winner must score strictly above this.
ACCEPT_THRESHOLD = -20

KNOWN_CONTENT_CDNS = (
    "pbs.twimg.com/media",
    "pbs.twimg.com/ext_tw_video",
    "pbs.twimg.com/tweet_video",
    "i.ytimg.com",
    "img.youtube.com",
    "scontent",
    "cdninstagram.com",
    "fbcdn.net",
    "tiktokcdn.com",
    "p16-sign",
    "cloudfront.net",
    "imgur.com",
    "medium.com",
    "substack.com",
    "wp.com",
    "githubusercontent.com",
    "twimg.com",
    "akamaized.net",
    "fastly.net",
    "cdn.shopify.com",
    "squarespace-cdn.com",
    "notion.so",
    "unsplash.com",
)

CONTENT_PATH_HINTS = ("/media/", "/image/", "/images/", "/photo/", "/video/", "/thumb")

IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".webp", ".gif", ".svg", ".bmp", ".tiff", ".avif")

_SIZE_HINT = re.compile(r"(?<![a-z0-9])s?\d{2,4}x(?:\d{2,4})?(?![a-z])")


def _is_platform_content(lowered: str) -> bool:
    if "pbs.twimg.com/media" in lowered:
        return True
    if "scontent" in lowered and "cdninstagram.com" in lowered:
        return True
    if "i.ytimg.com" in lowered or "img.youtube.com" in lowered:
        return True
    return "tiktokcdn.com" in lowered or "p16-sign" in lowered


def looks_like_candidate(value: str) -> bool:
    lowered = value.lower()
    return (
        lowered.startswith(("http://", "https://"))
        and len(value) > MIN_CANDIDATE_LENGTH
    )


def score_image_url(url: str) -> int | None:
    """Score one candidate; None means rejected outright."""
    lowered = url.lower()
    path = urlsplit(lowered).path

    if "favicon" in lowered or path.endswith(".ico"):
        return None

    score = 0
    if "/icon" in path or "logo" in path:
        score -= 50
    if "profile_image" in lowered or "profile_pic" in lowered:
        score -= 30
    if "/rsrc.php/" in lowered or "static." in lowered:
        score -= 40

    if any(cdn in lowered for cdn in KNOWN_CONTENT_CDNS):
        score += 25
    if any(hint in path for hint in CONTENT_PATH_HINTS):
        score += 20
    if _is_platform_content(lowered):
        score += 50

    if "maxresdefault" in lowered or "hqdefault" in lowered:
        score += 30
    if "_large" in lowered or "large." in lowered:
        score += 20
    if _SIZE_HINT.search(lowered):
        score += 15
    if path.endswith(IMAGE_EXTENSIONS):
        score += 10
    return score


def collect_url_pool(values: Iterable[str]) -> list[str]:
    """Absolute http(s) strings long enough to be image URLs, first-seen order."""
    pool: list[str] = []
    seen: set[str] = set()
    for value in values:
        candidate = value.strip()
        if candidate in seen or not looks_like_candidate(candidate):
            continue
        seen.add(candidate)
        pool.append(candidate)
    return pool


def rank_candidates(candidates: Iterable[str]) -> list[tuple[str, int]]:
    """Scored, non-rejected candidates, best first; ties keep input order."""
    scored = [
        (url, score)
        for url, score in ((url, score_image_url(url)) for url in candidates)
        if score is not None
    ]
    return sorted(scored, key=lambda item: item[1], reverse=True)


def pick_best_image(candidates: Iterable[str]) -> str | None:
    ranked = rank_candidates(candidates)
    if not ranked:
        return None
    url, score = ranked[0]
    if score > ACCEPT_THRESHOLD:
        return url
    return None
