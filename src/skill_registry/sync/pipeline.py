"""
Registry sync pipeline.

Manifesto:
    One invocation is one forward pass. Nothing is cached between runs; the
    partition files and ``index.json`` are the only state of record.

    - **Collect:** every catalog source runs; a source whose listing fails
      contributes nothing, and only a run where *every* source failed aborts
    - **Validate:** one link check per unique ``(owner, id)``
    - **Group:** unreachable records dropped, first-seen-wins per key,
      optionally merged with what is already on disk
    - **Write:** per-owner files plus the overflow file of the category
    - **Reconcile:** manifest gets new filenames, loses stale ones, and its
      totals are refreshed
    - **Index:** ``all.json`` is rebuilt from the reconciled manifest

Architecture:
    ::

        RegistrySync.run()
          │
          ├── load_manifest            (fails fast on a corrupt index.json)
          ├── per RecordKind  ── LogContext(kind=...)
          │     CatalogSource.fetch ─► Deduplicator ─► LinkValidator
          │     ─► Deduplicator.group ─► [merge_existing] ─► PartitionWriter
          ├── ManifestReconciler.reconcile + save
          └── build_search_index       (skipped in dry-run or with build_index=False)

Examples:
    >>> report = asyncio.run(RegistrySync(RegistrySettings(validate_urls=True)).run())
    >>> report.total_count
    1342

Tags:
    pipeline, sync, orchestration
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Callable, Sequence
from contextlib import AsyncExitStack
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from skill_registry.core.errors import UpstreamUnavailableError
from skill_registry.core.logging import LogContext, get_logger
from skill_registry.core.manifest import Manifest, ManifestReconciler, load_manifest
from skill_registry.core.models import CandidateRecord, RecordKind
from skill_registry.core.settings import RegistrySettings
from skill_registry.core.storage import RegistryStore
from skill_registry.execution.link_validator import LinkChecker, LinkValidator
from skill_registry.sync.dedup import Deduplicator, ExistingState, load_existing
from skill_registry.sync.index_builder import IndexBuildResult, build_search_index
from skill_registry.sync.partition import PartitionWriter
from skill_registry.sync.sources import (
    AwesomeSkillsSource,
    CatalogSource,
    GitHubContentsClient,
    McpServerSource,
)

logger = get_logger(__name__)

CATEGORY_BY_KIND: dict[RecordKind, str] = {
    RecordKind.SKILL: "community",
    RecordKind.CONNECTOR: "mcp",
}


@dataclass
class KindReport:
    """What one record kind contributed to the run."""

    kind: RecordKind
    category: str
    sources_ok: int = 0
    sources_failed: int = 0
    candidates: int = 0
    checked: int = 0
    unreachable: int = 0
    files: list[str] = field(default_factory=list)
    entries: int = 0
    persisted: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "category": self.category,
            "sources_ok": self.sources_ok,
            "sources_failed": self.sources_failed,
            "candidates": self.candidates,
            "checked": self.checked,
            "unreachable": self.unreachable,
            "files": list(self.files),
            "entries": self.entries,
            "persisted": self.persisted,
        }


@dataclass
class SyncReport:
    """Outcome of :meth:`RegistrySync.run`."""

    run_id: str
    dry_run: bool
    kinds: dict[RecordKind, KindReport]
    manifest: Manifest
    index: IndexBuildResult | None = None
    duration_seconds: float = 0.0

    @property
    def total_count(self) -> int:
        return sum(k.entries for k in self.kinds.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "dry_run": self.dry_run,
            "total_count": self.total_count,
            "kinds": {kind.value: report.to_dict() for kind, report in self.kinds.items()},
            "categories": {k: list(v) for k, v in self.manifest.categories.items()},
            "index_entries": self.index.entries if self.index else None,
            "duration_seconds": self.duration_seconds,
        }


class RegistrySync:
    """Compose sources, validation, grouping, writing and reconciliation.

    Parameters
    ----------
    settings : RegistrySettings
        Resolved once by the caller; each stage only receives its own options.
    sources : sequence of CatalogSource, optional
        Defaults to the two GitHub catalogs configured in ``settings``.
    checker : LinkChecker, optional
        Network checker handed to the validator (tests pass a fake).
    dry_run : bool
        Compute everything, write nothing.
    build_index : bool
        Rebuild ``all.json`` after reconciliation.
    today : callable
        Clock for the manifest ``updated`` field.
    """

    def __init__(
        self,
        settings: RegistrySettings,
        *,
        sources: Sequence[CatalogSource] | None = None,
        checker: LinkChecker | None = None,
        dry_run: bool = False,
        build_index: bool = True,
        today: Callable[[], date] = date.today,
    ) -> None:
        self._settings = settings
        self._sources = list(sources) if sources is not None else None
        self._store = RegistryStore(settings.registry_dir, dry_run=dry_run)
        self._validator = LinkValidator(settings.validator_options(), checker)
        self._dedup = Deduplicator()
        self._partition_options = settings.partition_options()
        self._writer = PartitionWriter(self._store, self._partition_options)
        self._reconciler = ManifestReconciler(self._store, filename=settings.index_filename, today=today)
        self._build_index = build_index

    @property
    def store(self) -> RegistryStore:
        return self._store

    async def run(self) -> SyncReport:
        """Execute one sync pass.

        Raises:
            UpstreamUnavailableError: every catalog source failed.
            ManifestError: ``index.json`` exists but is corrupt.
            PersistenceError: a partition or manifest write failed.
        """
        run_id = str(uuid.uuid4())
        started = time.monotonic()

        async with LogContext(run_id=run_id):
            logger.info(
                "pipeline.start",
                registry_dir=str(self._store.root),
                dry_run=self._store.dry_run,
                validate=self._validator.options.enabled,
                merge_existing=self._settings.merge_existing,
            )

            manifest = load_manifest(
                self._store,
                self._settings.manifest_options(),
                filename=self._settings.index_filename,
            )

            async with AsyncExitStack() as stack:
                sources = self._sources
                if sources is None:
                    client = await stack.enter_async_context(
                        GitHubContentsClient(
                            api_url=self._settings.github_api_url,
                            timeout=self._settings.fetch_timeout,
                            user_agent=self._settings.user_agent,
                            max_concurrency=self._settings.max_concurrent_requests,
                        )
                    )
                    sources = self._default_sources(client)
                records, kinds = await self._collect(sources)

            if not any(k.sources_ok for k in kinds.values()):
                logger.error("pipeline.all_sources_failed", sources=len(sources))
                raise UpstreamUnavailableError("Every catalog source failed; nothing to sync")

            new_files: dict[str, list[str]] = {}
            for kind, report in kinds.items():
                async with LogContext(kind=kind.value):
                    if report.sources_ok:
                        await self._process_kind(report, records[kind], manifest)
                    new_files[report.category] = report.files

            total = sum(k.entries for k in kinds.values())
            reconciled = self._reconciler.reconcile(manifest, new_files, total)
            self._reconciler.save(reconciled)

            index = None
            if self._build_index and not self._store.dry_run:
                index = build_search_index(self._store, reconciled, self._settings.search_index_filename)
            elif self._build_index:
                logger.info("pipeline.index_skipped", reason="dry_run")

            report = SyncReport(
                run_id=run_id,
                dry_run=self._store.dry_run,
                kinds=kinds,
                manifest=reconciled,
                index=index,
                duration_seconds=round(time.monotonic() - started, 3),
            )
            logger.info(
                "pipeline.complete",
                total=report.total_count,
                duration_seconds=report.duration_seconds,
                **{f"{k.value}_entries": r.entries for k, r in kinds.items()},
            )
            return report

    def _default_sources(self, client: GitHubContentsClient) -> list[CatalogSource]:
        s = self._settings
        return [
            AwesomeSkillsSource(client, repo=s.skills_repo, path=s.skills_path, branch=s.skills_branch),
            McpServerSource(client, repo=s.mcp_repo, path=s.mcp_path, branch=s.mcp_branch),
        ]

    async def _collect(
        self, sources: Sequence[CatalogSource]
    ) -> tuple[dict[RecordKind, list[CandidateRecord]], dict[RecordKind, KindReport]]:
        records: dict[RecordKind, list[CandidateRecord]] = {}
        kinds: dict[RecordKind, KindReport] = {}
        for source in sources:
            kind = source.kind
            report = kinds.setdefault(kind, KindReport(kind=kind, category=CATEGORY_BY_KIND[kind]))
            result = await source.fetch()
            if not result.success:
                report.sources_failed += 1
                continue
            report.sources_ok += 1
            records.setdefault(kind, []).extend(result.records)
            report.candidates += len(result.records)
        return records, kinds

    async def _process_kind(
        self,
        report: KindReport,
        records: Sequence[CandidateRecord],
        manifest: Manifest,
    ) -> None:
        checks = self._dedup.validation_checks(records)
        outcomes = await self._validator.validate_all(checks)
        report.checked = len(checks)
        report.unreachable = sum(1 for ok in outcomes.values() if not ok)

        partitions = self._dedup.group(records, outcomes)

        overflow_base = None
        existing: ExistingState | None = None
        if self._settings.merge_existing:
            existing = load_existing(
                self._store,
                report.category,
                manifest.categories.get(report.category, []),
                self._partition_options.overflow_filename(report.category),
            )
            partitions = self._dedup.merge_existing(partitions, existing)
            overflow_base = existing.overflow

        written = self._writer.write(report.category, partitions, overflow_base=overflow_base)
        report.files = written.filenames
        report.entries = written.total_count
        if existing is not None:
            # owner files this run left alone stay listed, so they still count
            report.persisted = sum(
                len(p) for stem, p in existing.partitions.items() if f"{stem}.json" not in written.filenames
            )
            report.entries += report.persisted


__all__ = ["CATEGORY_BY_KIND", "KindReport", "RegistrySync", "SyncReport"]
