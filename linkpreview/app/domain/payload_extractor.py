"""Extract preview fields from an archived rich-link payload.

The metadata object has no stable index in ``$objects``; it is found by
shape (a dict carrying both ``title`` and ``siteName``). Text fields are one
reference away. Icon and image are two hops further: field -> nested
metadata object -> ``URL`` object -> ``NS.relative`` string.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from loguru import logger

from linkpreview.app.core import SERVICE_NAME
from linkpreview.app.domain.client_identity import host_of
from linkpreview.app.domain.image_scorer import collect_url_pool, pick_best_image
from linkpreview.app.domain.models import MetadataRecord, SocialInfo
from linkpreview.app.domain.object_graph import (
    Node,
    ObjectGraph,
    PayloadDecodeError,
    decode_object_graph,
)
from linkpreview.app.domain.social_title import is_social_source, parse_social_title

# Hops tried, in order, when turning a URL-valued field into a string.
URL_CHAIN_KEYS = ("URL", "NS.relative")
PROFILE_IMAGE_MARKER = "pbs.twimg.com/profile_images"


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).debug("")


@dataclass(frozen=True)
class PayloadFields:
    title: str
    description: str | None = None
    site_name: str | None = None
    icon_url: str | None = None
    image_url: str | None = None


def resolve_url_string(graph: ObjectGraph, node: Node | None) -> str | None:
    """Walk field -> metadata -> URL -> relative string.

    A plain string reached at any hop is returned as-is, so archives that
    store the URL closer to the field are handled by the same routine.
    """
    for key in (None, *URL_CHAIN_KEYS):
        if key is not None:
            current = graph.resolve_dict(node)
            if current is None:
                return None
            node = current.get(key)
        value = graph.resolve_string(node)
        if value is not None:
            return value
    return None


def extract_payload_fields(graph: ObjectGraph) -> PayloadFields | None:
    for candidate in graph.iter_dicts():
        if "title" in candidate and "siteName" in candidate:
            break
    else:
        return None

    title = graph.resolve_string(candidate.get("title"))
    if not title or not title.strip():
        return None

    return PayloadFields(
        title=title,
        description=graph.resolve_string(candidate.get("summary")),
        site_name=graph.resolve_string(candidate.get("siteName")),
        icon_url=resolve_url_string(graph, candidate.get("icon")),
        image_url=resolve_url_string(graph, candidate.get("image")),
    )


def _find_profile_image(graph: ObjectGraph) -> str | None:
    for value in graph.iter_strings():
        if PROFILE_IMAGE_MARKER in value:
            return value
    return None


def extract_record_from_payload(data: bytes | None, url: str) -> MetadataRecord | None:
    """Build a record from a cached payload, or None when it yields no title."""
    if not data:
        return None
    try:
        graph = decode_object_graph(data)
    except PayloadDecodeError as exc:
        _log("payload_decode_failed", url=url, error=str(exc))
        return None

    fields = extract_payload_fields(graph)
    if fields is None:
        _log("payload_without_metadata", url=url, objects=len(graph))
        return None

    # The archive also stores the link itself; it is never its own image.
    own_url = url.strip().rstrip("/")
    pool = [c for c in collect_url_pool(graph.iter_strings()) if c.rstrip("/") != own_url]
    image_url = pick_best_image(pool) or fields.image_url

    social: SocialInfo | None = None
    if is_social_source(host_of(url) or "", fields.site_name):
        parsed = parse_social_title(fields.title)
        social = SocialInfo(
            author_name=parsed.author_name,
            handle=parsed.handle,
            like_count=parsed.like_count,
            reply_count=parsed.reply_count,
            avatar_url=fields.icon_url or _find_profile_image(graph),
        )

    _log("payload_decoded", url=url, has_image=image_url is not None, social=social is not None)
    return MetadataRecord(
        canonical_url=url,
        title=fields.title,
        description=fields.description,
        image_url=image_url,
        site_name=fields.site_name,
        social=social,
    )
