"""
Registry manifest (``index.json``) and its reconciliation.

The manifest is the only state that outlives a run. It lists, per category,
the partition files consumers should load, plus the total entry count and
the date of the last sync.

Manifesto:
    A manifest that names a file which is not on disk breaks every consumer
    that trusts it. Reconciliation therefore does three things on every run,
    in this order:

    - **Append:** filenames written this run join their category list
      (existing order preserved, no duplicates)
    - **Prune:** every listed filename of a managed category is checked
      against the disk and dropped when missing, even if nothing was added
    - **Refresh:** ``totalSkills`` and ``updated`` are recomputed

    Categories the run does not manage are copied through untouched.

Architecture:
    ::

        load_manifest(store)  ──►  Manifest (pydantic, aliases match JSON)
                                        │
        ManifestReconciler.reconcile(manifest, {category: [files]}, total)
                                        │
                              append ─► prune ─► refresh
                                        │
        ManifestReconciler.save(manifest)   (skipped in dry-run)

Examples:
    >>> reconciler = ManifestReconciler(store, today=lambda: date(2026, 1, 2))
    >>> updated = reconciler.reconcile(manifest, {"community": ["acme.json"]}, 1)
    >>> updated.categories["community"]
    ['acme.json']

Tags:
    manifest, reconciliation, self-healing, idempotency
"""

from __future__ import annotations

from collections.abc import Callable, Mapping, Sequence
from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from skill_registry.core.errors import ManifestError, ParseError
from skill_registry.core.logging import get_logger
from skill_registry.core.settings import ManifestOptions
from skill_registry.core.storage import RegistryStore

logger = get_logger(__name__)


class Manifest(BaseModel):
    """Persisted manifest. Field aliases match the JSON keys."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    version: str = "1.0.0"
    updated: str = ""
    format: str = ""
    compatible_with: list[str] = Field(default_factory=list, alias="compatibleWith")
    total_skills: int = Field(default=0, alias="totalSkills")
    categories: dict[str, list[str]] = Field(default_factory=dict)

    @classmethod
    def default(cls, options: ManifestOptions) -> Manifest:
        return cls(
            version=options.version,
            format=options.format,
            compatible_with=list(options.compatible_with),
            categories={name: [] for name in options.categories},
        )

    def to_json(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


def load_manifest(
    store: RegistryStore,
    options: ManifestOptions,
    filename: str = "index.json",
) -> Manifest:
    """Read the manifest, or start a default one when none exists.

    Raises:
        ManifestError: the file exists but is not a valid manifest.
    """
    path = store.path_for(None, filename)
    try:
        raw = store.read_json(path)
    except ParseError as e:
        raise ManifestError(e.message, cause=e).with_context(path=str(path))

    if raw is None:
        logger.warning("manifest.missing_using_default", path=str(path))
        return Manifest.default(options)

    try:
        manifest = Manifest.model_validate(raw)
    except ValidationError as e:
        raise ManifestError(f"Invalid manifest {path}: {e.error_count()} error(s)", cause=e).with_context(
            path=str(path)
        )

    for name in options.categories:
        manifest.categories.setdefault(name, [])
    return manifest


class ManifestReconciler:
    """Merge a run's partition filenames into the manifest and prune stale ones."""

    def __init__(
        self,
        store: RegistryStore,
        *,
        filename: str = "index.json",
        today: Callable[[], date] = date.today,
    ) -> None:
        self._store = store
        self._filename = filename
        self._today = today

    def reconcile(
        self,
        manifest: Manifest,
        new_filenames_by_category: Mapping[str, Sequence[str]],
        total_count: int,
    ) -> Manifest:
        """Return an updated copy of ``manifest``; the input is not modified."""
        updated = manifest.model_copy(deep=True)

        for category, filenames in new_filenames_by_category.items():
            listed = updated.categories.setdefault(category, [])
            pending = set(filenames)

            # Append
            for filename in filenames:
                if filename not in listed:
                    listed.append(filename)
                    logger.info("manifest.add", category=category, file=filename)

            # Prune (dedup on the way, a hand-edited list may repeat names)
            kept: list[str] = []
            for filename in listed:
                if filename in kept:
                    continue
                if filename in pending or self._store.exists(category, filename):
                    kept.append(filename)
                else:
                    logger.warning("manifest.prune_missing", category=category, file=filename)
            updated.categories[category] = kept

        updated.total_skills = total_count
        updated.updated = self._today().isoformat()
        return updated

    def save(self, manifest: Manifest) -> bool:
        path = self._store.path_for(None, self._filename)
        if self._store.dry_run:
            logger.info(
                "manifest.dry_run",
                path=str(path),
                total_skills=manifest.total_skills,
                categories={k: len(v) for k, v in manifest.categories.items()},
            )
            return False
        written = self._store.write_json(path, manifest.to_json())
        logger.info("manifest.updated", path=str(path), total_skills=manifest.total_skills)
        return written


__all__ = ["Manifest", "ManifestReconciler", "load_manifest"]
