"""
Partition writer: one file per owner, small owners folded into overflow.

Layout under ``<registry>/<category>/``::

    acme.json               {"skills": {"pdf-tools": {...}, ...}}
    synced-awesome.json     {"skills": {"bob-notes": {...}, "eve-cli": {...}}}

Owners with at least ``min_records_per_file`` entries get their own file.
The rest share the category's overflow file, where keys become
``<owner>-<localKey>`` since local keys are only unique within an owner.
An owner whose key equals the overflow stem is folded too, whatever its size.

The plan is computed identically in dry-run and real runs. Only the store
decides whether bytes reach the disk.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from skill_registry.core.keys import owner_key
from skill_registry.core.logging import get_logger
from skill_registry.core.models import PartitionFile, RegistryEntry
from skill_registry.core.settings import PartitionOptions
from skill_registry.core.storage import RegistryStore

logger = get_logger(__name__)


@dataclass
class PartitionWriteResult:
    """Filenames written (or that would be written) for one category."""

    category: str
    filenames: list[str] = field(default_factory=list)
    entries_by_file: dict[str, int] = field(default_factory=dict)
    dry_run: bool = False

    @property
    def total_count(self) -> int:
        return sum(self.entries_by_file.values())


class PartitionWriter:
    """Serialize owner partitions for one category at a time."""

    def __init__(self, store: RegistryStore, options: PartitionOptions | None = None) -> None:
        self._store = store
        self._options = options or PartitionOptions()

    def plan(
        self,
        category: str,
        partitions: Mapping[str, Mapping[str, RegistryEntry]],
        *,
        overflow_base: Mapping[str, RegistryEntry] | None = None,
    ) -> dict[str, PartitionFile]:
        """Compute ``{filename: PartitionFile}`` without touching storage.

        ``overflow_base`` seeds the overflow file with entries persisted by an
        earlier run; folded entries with the same key replace them.
        An owner whose own file would be the overflow file is always folded.
        """
        minimum = self._options.min_records_per_file
        overflow_filename = self._options.overflow_filename(category)
        files: dict[str, PartitionFile] = {}
        overflow: dict[str, RegistryEntry] = dict(overflow_base or {})
        folded = 0

        for owner, entries in partitions.items():
            if not entries:
                continue
            key = owner_key(owner)
            collides = f"{key}.json" == overflow_filename
            if collides:
                logger.warning(
                    "partition.owner_collides_with_overflow", category=category, owner=owner, file=overflow_filename
                )
            if len(entries) >= minimum and not collides:
                target = files.setdefault(f"{key}.json", PartitionFile())
                target.skills.update(entries)
            else:
                for local_key, entry in entries.items():
                    overflow[f"{key}-{local_key}"] = entry
                folded += 1

        if overflow:
            files[overflow_filename] = PartitionFile(skills=overflow)
        if folded:
            logger.debug("partition.folded_owners", category=category, owners=folded, minimum=minimum)
        return files

    def write(
        self,
        category: str,
        partitions: Mapping[str, Mapping[str, RegistryEntry]],
        *,
        overflow_base: Mapping[str, RegistryEntry] | None = None,
    ) -> PartitionWriteResult:
        files = self.plan(category, partitions, overflow_base=overflow_base)
        result = PartitionWriteResult(category=category, dry_run=self._store.dry_run)

        for filename, partition in files.items():
            path = self._store.path_for(category, filename)
            self._store.write_json(path, partition.to_json())
            result.filenames.append(filename)
            result.entries_by_file[filename] = len(partition.skills)
            logger.debug(
                "partition.write",
                category=category,
                file=filename,
                entries=len(partition.skills),
                dry_run=result.dry_run,
            )

        logger.info(
            "partition.complete",
            category=category,
            files=len(result.filenames),
            entries=result.total_count,
            dry_run=result.dry_run,
        )
        return result


__all__ = ["PartitionWriteResult", "PartitionWriter"]
