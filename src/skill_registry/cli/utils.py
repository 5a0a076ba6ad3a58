"""
CLI utility helpers — settings overlay, logging setup and output formatting.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from typing import Any

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from skill_registry.core.errors import ConfigError, RegistryError
from skill_registry.core.logging import configure_logging, get_logger
from skill_registry.core.settings import RegistrySettings
from skill_registry.sync.index_builder import IndexBuildResult
from skill_registry.sync.pipeline import SyncReport

console = Console()
err_console = Console(stderr=True)

logger = get_logger(__name__)


# ── Settings / logging ───────────────────────────────────────────────────


def load_settings(**overrides: Any) -> RegistrySettings:
    """Resolve settings from env/.env, with CLI flags layered on top.

    ``None`` overrides are ignored so unset flags never mask the environment.
    """
    values = {k: v for k, v in overrides.items() if v is not None}
    try:
        return RegistrySettings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid settings: {e.error_count()} error(s)", cause=e)


def setup_logging(settings: RegistrySettings, *, verbose: bool = False, json_logs: bool = False) -> None:
    configure_logging(
        level="DEBUG" if verbose else settings.log_level,
        json_format=True if json_logs else settings.json_logs,
    )


def fail(error: RegistryError) -> typer.Exit:
    """Report ``error`` on stderr and return the exit to raise."""
    logger.error("cli.failed", **error.to_dict())
    err_console.print(f"[bold red]Error[/bold red] ({error.category.value}): {error.message}")
    return typer.Exit(code=1)


# ── Output helpers ───────────────────────────────────────────────────────


def output_sync_report(report: SyncReport, *, as_json: bool = False) -> None:
    """Render a :class:`SyncReport` to the terminal."""
    if as_json:
        console.print_json(json.dumps(report.to_dict(), default=str))
        return

    title = "Sync (dry run)" if report.dry_run else "Sync"
    table = Table(title=title, show_lines=False, pad_edge=False)
    for col in ("kind", "category", "candidates", "checked", "unreachable", "files", "entries"):
        table.add_column(col, overflow="fold")
    for kind in report.kinds.values():
        table.add_row(
            kind.kind.value,
            kind.category,
            str(kind.candidates),
            str(kind.checked),
            str(kind.unreachable),
            str(len(kind.files)),
            str(kind.entries),
        )
    console.print(table)
    console.print(f"[green]✓[/green] {report.total_count} total entries, manifest updated {report.manifest.updated}")
    if report.index is not None:
        output_index_result(report.index)


def output_index_result(result: IndexBuildResult, *, as_json: bool = False) -> None:
    if as_json:
        console.print_json(json.dumps(asdict(result) | {"size_kb": result.size_kb}))
        return
    verb = "Wrote" if result.written else "Would write"
    console.print(f"[green]✓[/green] {verb} {result.entries} entries from {result.files} files ({result.size_kb} KB)")
    if result.skipped:
        console.print(f"[yellow]![/yellow] Skipped {result.skipped} unreadable files")
