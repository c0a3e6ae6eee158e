"""Unit tests for the composition root and the command-line entry point."""
from __future__ import annotations

import asyncio
import json

import pytest
from click.testing import CliRunner

from linkpreview.app import main as main_module
from linkpreview.app.composition import ResolverDependencies, create_resolver_dependencies
from linkpreview.app.config.settings import Settings
from linkpreview.app.domain.models import CacheEntry, MetadataRecord
from linkpreview.app.infrastructure.persistence.sqlite.sqlite_repository import (
    SqliteCacheRepository,
)
from tests.helpers import build_archive


def _settings(**overrides) -> Settings:
    values = {"cache_backend": "memory", "log_level": "WARNING"}
    values.update(overrides)
    return Settings(**values)


def test_properties_raise_before_connect():
    deps = ResolverDependencies(settings=_settings())

    with pytest.raises(RuntimeError):
        deps.resolver
    with pytest.raises(RuntimeError):
        deps.cache


def test_connect_wires_resolver_with_memory_backend():
    async def _run():
        deps = create_resolver_dependencies(_settings())
        await deps.connect()
        try:
            payload = build_archive(title="Wired")
            record = await deps.resolver.resolve("https://example.com/a", payload)
            return record, deps.cache.durable
        finally:
            await deps.close()

    record, durable = asyncio.run(_run())

    assert record.title == "Wired"
    assert durable


def test_unopenable_sqlite_degrades_to_memory_only(tmp_path):
    async def _run():
        deps = create_resolver_dependencies(
            _settings(cache_backend="sqlite", cache_db_path=str(tmp_path))
        )
        await deps.connect()
        try:
            return deps.cache.durable
        finally:
            await deps.close()

    assert asyncio.run(_run()) is False


def test_connect_sweeps_stale_sqlite_rows(tmp_path):
    db_path = tmp_path / "opengraph_cache.db"
    stale = CacheEntry(
        key="https://example.com/old",
        record=MetadataRecord(canonical_url="https://example.com/old", title="Old"),
        cached_at=0,
    )

    async def _run():
        repo = await SqliteCacheRepository.open(db_path)
        await repo.upsert(stale)
        await repo.close()

        deps = create_resolver_dependencies(
            _settings(cache_backend="sqlite", cache_db_path=str(db_path))
        )
        await deps.connect()
        await deps.close()

        repo = await SqliteCacheRepository.open(db_path)
        try:
            return await repo.get(stale.key)
        finally:
            await repo.close()

    assert asyncio.run(_run()) is None


def test_unknown_backend_is_rejected():
    deps = create_resolver_dependencies(_settings(cache_backend="redis"))

    with pytest.raises(ValueError):
        asyncio.run(deps.connect())


def test_run_renders_one_json_line_per_url():
    payload = build_archive(title="From payload", summary="Archived")

    lines = asyncio.run(
        main_module.run(_settings(), ("https://example.com/a",), payload)
    )

    assert len(lines) == 1
    rendered = json.loads(lines[0])
    assert rendered["url"] == "https://example.com/a"
    assert rendered["title"] == "From payload"
    assert rendered["description"] == "Archived"
    assert rendered["has_data"] is True


def test_render_without_record():
    assert json.loads(main_module._render("https://example.com/a", None)) == {
        "url": "https://example.com/a",
        "has_data": False,
    }


@pytest.fixture
def cli_env(monkeypatch):
    monkeypatch.setenv("CACHE_BACKEND", "memory")
    monkeypatch.setattr(main_module, "configure_logging", lambda settings: None)


def test_cli_sweep_only(cli_env):
    result = CliRunner().invoke(main_module.main, ["--sweep-only"])

    assert result.exit_code == 0, result.output
    assert result.output == ""


def test_cli_requires_a_url(cli_env):
    result = CliRunner().invoke(main_module.main, [])

    assert result.exit_code == 2
    assert "at least one URL" in result.output


def test_cli_payload_needs_exactly_one_url(cli_env, tmp_path):
    payload_path = tmp_path / "payload.plist"
    payload_path.write_bytes(build_archive())

    result = CliRunner().invoke(
        main_module.main,
        ["--payload", str(payload_path), "https://example.com/a", "https://example.com/b"],
    )

    assert result.exit_code == 2


def test_cli_resolves_from_payload(cli_env, tmp_path):
    payload_path = tmp_path / "payload.plist"
    payload_path.write_bytes(build_archive(title="Archived title"))

    result = CliRunner().invoke(
        main_module.main, ["--payload", str(payload_path), "https://example.com/a"]
    )

    assert result.exit_code == 0, result.output
    rendered = json.loads(result.output.strip())
    assert rendered["title"] == "Archived title"
    assert rendered["has_data"] is True
