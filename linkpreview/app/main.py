"""Command-line entry point: resolve links and print one JSON object per line."""
from __future__ import annotations

import asyncio
import json
import signal
from pathlib import Path
from typing import Any

import click
from loguru import logger

from linkpreview.app.application.resolver import ResolveRequest
from linkpreview.app.composition import create_resolver_dependencies
from linkpreview.app.config.settings import Settings
from linkpreview.app.core import SERVICE_NAME
from linkpreview.app.core.logging import configure_logging
from linkpreview.app.domain.models import MetadataRecord


def _log(event: str, **kwargs: Any) -> None:
    logger.bind(service_name=SERVICE_NAME, event=event, **kwargs).info("")


def _render(url: str, record: MetadataRecord | None) -> str:
    if record is None:
        return json.dumps({"url": url, "has_data": False})
    payload = record.to_dict()
    payload["has_data"] = record.has_data
    return json.dumps(payload, ensure_ascii=False)


async def run(
    settings: Settings,
    urls: tuple[str, ...],
    payload: bytes | None,
    *,
    sweep_only: bool = False,
) -> list[str]:
    deps = create_resolver_dependencies(settings)
    await deps.connect()
    try:
        if sweep_only:
            return []
        requests = [ResolveRequest(url=url, payload=payload) for url in urls]
        task = asyncio.ensure_future(
            deps.resolver.resolve_many(
                requests,
                max_concurrency=settings.max_concurrent_resolutions,
            )
        )

        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, task.cancel)
            except NotImplementedError:
                pass

        try:
            records = await task
        except asyncio.CancelledError:
            _log("resolution_cancelled", pending=len(requests))
            return []
        return [_render(r.url, record) for r, record in zip(requests, records)]
    finally:
        await deps.close()


@click.command(name="linkpreview")
@click.argument("urls", nargs=-1)
@click.option(
    "--payload",
    "payload_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Archived rich-link payload for the (single) URL.",
)
@click.option("--sweep-only", is_flag=True, help="Purge expired cache entries and exit.")
@click.option("--max-concurrency", type=int, default=None, help="Override MAX_CONCURRENT_RESOLUTIONS.")
def main(
    urls: tuple[str, ...],
    payload_path: Path | None,
    sweep_only: bool,
    max_concurrency: int | None,
) -> None:
    """Resolve link previews for URLS."""
    settings = Settings()
    if max_concurrency is not None:
        settings = settings.model_copy(update={"max_concurrent_resolutions": max_concurrency})
    configure_logging(settings)

    if not urls and not sweep_only:
        raise click.UsageError("at least one URL is required")
    if payload_path is not None and len(urls) != 1:
        raise click.UsageError("--payload applies to exactly one URL")

    payload = payload_path.read_bytes() if payload_path is not None else None
    try:
        lines = asyncio.run(run(settings, urls, payload, sweep_only=sweep_only))
    except KeyboardInterrupt:
        _log("resolution_interrupted")
        return
    for line in lines:
        click.echo(line)


if __name__ == "__main__":
    main()
