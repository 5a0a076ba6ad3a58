"""
Root Typer application for the ``skill-registry`` CLI.

Commands:
    sync    fetch catalogs, validate, partition, reconcile index.json
    build   rebuild all.json from the current index.json
"""

from __future__ import annotations

import asyncio
from pathlib import Path

import typer
from typer import Typer

from skill_registry.cli.utils import (
    err_console,
    fail,
    load_settings,
    output_index_result,
    output_sync_report,
    setup_logging,
)
from skill_registry.core.errors import ConfigError, ManifestError, PersistenceError, UpstreamUnavailableError
from skill_registry.core.manifest import load_manifest
from skill_registry.core.storage import RegistryStore
from skill_registry.sync.index_builder import build_search_index
from skill_registry.sync.pipeline import RegistrySync

app = Typer(
    name="skill-registry",
    help="skill-registry — sync skills and MCP connectors into a partitioned registry.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from importlib.metadata import PackageNotFoundError
        from importlib.metadata import version as pkg_version

        try:
            v = pkg_version("skill-registry")
        except PackageNotFoundError:
            from skill_registry import __version__ as v
        typer.echo(f"skill-registry {v}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """skill-registry CLI — sync catalogs and build the search index."""


# ── Commands ─────────────────────────────────────────────────────────────


@app.command("sync")
def sync(
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute and report, write nothing."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Per-item diagnostics."),
    validate: bool = typer.Option(False, "--validate", help="Check every link over the network."),
    merge_existing: bool = typer.Option(False, "--merge-existing", help="Merge with partitions on disk."),
    min_records: int | None = typer.Option(None, "--min-records", help="Smallest owner that gets its own file."),
    concurrency: int | None = typer.Option(None, "--concurrency", help="Max links checked at once."),
    timeout: float | None = typer.Option(None, "--timeout", help="Per-attempt timeout in seconds."),
    registry_dir: Path | None = typer.Option(None, "--registry-dir", "-r", help="Registry root."),
    no_build: bool = typer.Option(False, "--no-build", help="Skip rebuilding all.json."),
    json_logs: bool = typer.Option(False, "--json-logs", help="Emit JSON log lines."),
    json_out: bool = typer.Option(False, "--json", help="Print the run report as JSON."),
) -> None:
    """Sync external catalogs into the registry."""
    try:
        settings = load_settings(
            registry_dir=registry_dir,
            validate_urls=True if validate else None,
            merge_existing=True if merge_existing else None,
            min_records_per_file=min_records,
            max_concurrent_requests=concurrency,
            url_validation_timeout=timeout,
        )
        setup_logging(settings, verbose=verbose, json_logs=json_logs)
        pipeline = RegistrySync(settings, dry_run=dry_run, build_index=not no_build)
        report = asyncio.run(pipeline.run())
    except (ConfigError, ManifestError, PersistenceError, UpstreamUnavailableError) as e:
        raise fail(e)

    output_sync_report(report, as_json=json_out)


@app.command("build")
def build(
    dry_run: bool = typer.Option(False, "--dry-run", help="Compute and report, write nothing."),
    registry_dir: Path | None = typer.Option(None, "--registry-dir", "-r", help="Registry root."),
    verbose: bool = typer.Option(False, "--verbose", "-v"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Rebuild all.json from index.json."""
    try:
        settings = load_settings(registry_dir=registry_dir)
        setup_logging(settings, verbose=verbose)
        store = RegistryStore(settings.registry_dir, dry_run=dry_run)
        if not store.exists(None, settings.index_filename):
            err_console.print(f"[bold red]Error:[/bold red] no {settings.index_filename} under {store.root}")
            raise typer.Exit(code=1)
        manifest = load_manifest(store, settings.manifest_options(), filename=settings.index_filename)
        result = build_search_index(store, manifest, settings.search_index_filename)
    except (ConfigError, ManifestError, PersistenceError) as e:
        raise fail(e)

    output_index_result(result, as_json=json_out)
