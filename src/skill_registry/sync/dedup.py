"""
Deduplication and owner grouping.

Manifesto:
    Two identity rules apply, each in its own scope:

    - **Key identity, within a run:** records are grouped by owner and keyed
      by ``name_to_key(name)``. The first record to claim ``(owner, key)``
      wins; later ones are dropped. Earlier catalog entries are treated as
      the more authoritative ones.
    - **Source identity, against disk:** when a run merges with existing
      partitions, a new record whose ``source`` already appears anywhere in
      the category's persisted files is rejected, whatever its name.

    Unreachable records are dropped before either rule runs.

Architecture:
    ::

        records ──► validation_checks() ──► LinkValidator
                                               │ {owner/id: bool}
        records ─────────────────────► group(records, outcomes)
                                               │ {owner: {key: RegistryEntry}}
        load_existing(store, category) ─► merge_existing(partitions, existing)

Tags:
    dedup, grouping, first-seen-wins, source-identity
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field

from pydantic import ValidationError

from skill_registry.core.errors import ParseError
from skill_registry.core.logging import get_logger
from skill_registry.core.models import CandidateRecord, LinkCheck, PartitionFile, RegistryEntry
from skill_registry.core.storage import RegistryStore

logger = get_logger(__name__)

OwnerPartition = dict[str, RegistryEntry]


@dataclass
class ExistingState:
    """Persisted partitions of one category, as loaded before a merge run."""

    category: str
    partitions: dict[str, OwnerPartition] = field(default_factory=dict)
    overflow: OwnerPartition = field(default_factory=dict)
    sources: set[str] = field(default_factory=set)

    @property
    def entry_count(self) -> int:
        return sum(len(p) for p in self.partitions.values()) + len(self.overflow)


def load_existing(
    store: RegistryStore,
    category: str,
    filenames: Sequence[str],
    overflow_filename: str,
) -> ExistingState:
    """Load the listed partition files of ``category``.

    Owner files are keyed by filename stem. Files that are missing or cannot
    be parsed are skipped with a warning.
    """
    state = ExistingState(category=category)
    for filename in filenames:
        path = store.path_for(category, filename)
        try:
            raw = store.read_json(path)
            if raw is None:
                continue
            partition = PartitionFile.model_validate(raw)
        except (ParseError, ValidationError) as e:
            logger.warning("dedup.existing_unreadable", category=category, file=filename, error=str(e))
            continue

        state.sources.update(entry.source for entry in partition.skills.values())
        if filename == overflow_filename:
            state.overflow = dict(partition.skills)
        else:
            state.partitions[filename.removesuffix(".json")] = dict(partition.skills)

    logger.debug(
        "dedup.existing_loaded",
        category=category,
        files=len(state.partitions) + (1 if state.overflow else 0),
        entries=state.entry_count,
    )
    return state


class Deduplicator:
    """Turn validated candidate records into owner partitions."""

    def validation_checks(self, records: Iterable[CandidateRecord]) -> list[LinkCheck]:
        """One check per unique ``(owner, id)``, using the first-seen record's URL."""
        checks: dict[str, LinkCheck] = {}
        for record in records:
            vid = record.validation_id
            if vid not in checks:
                checks[vid] = LinkCheck(id=vid, url=record.check_url)
        return list(checks.values())

    def group(
        self,
        records: Iterable[CandidateRecord],
        outcomes: Mapping[str, bool],
    ) -> dict[str, OwnerPartition]:
        """Group reachable records by owner, first-seen-wins per key.

        A record with no outcome (validation never saw it) counts as
        reachable; only an explicit ``False`` drops it.
        """
        partitions: dict[str, OwnerPartition] = {}
        unreachable = duplicates = invalid = 0

        for record in records:
            if outcomes.get(record.validation_id) is False:
                unreachable += 1
                logger.debug("dedup.drop_unreachable", owner=record.owner, key=record.id, url=record.source_url)
                continue

            partition = partitions.setdefault(record.owner, {})
            if record.id in partition:
                duplicates += 1
                logger.debug("dedup.drop_duplicate", owner=record.owner, key=record.id, name=record.name)
                continue
            try:
                partition[record.id] = record.to_entry()
            except ValidationError as e:
                invalid += 1
                logger.warning(
                    "dedup.drop_invalid", owner=record.owner, key=record.id, errors=e.error_count(), error=str(e)
                )

        logger.info(
            "dedup.group",
            owners=len(partitions),
            kept=sum(len(p) for p in partitions.values()),
            unreachable=unreachable,
            duplicates=duplicates,
            invalid=invalid,
        )
        return partitions

    def merge_existing(
        self,
        partitions: Mapping[str, OwnerPartition],
        existing: ExistingState,
    ) -> dict[str, OwnerPartition]:
        """Layer this run's partitions over the persisted ones.

        Each owner's persisted partition is the base. A new entry whose
        ``source`` is already persisted anywhere in the category is rejected;
        otherwise it is added, replacing a persisted entry with the same key.
        Owners without new entries are not returned, so their files are left
        as they are.
        """
        merged: dict[str, OwnerPartition] = {}
        rejected = 0

        for owner, partition in partitions.items():
            base = dict(existing.partitions.get(owner, {}))
            for key, entry in partition.items():
                if entry.source in existing.sources:
                    rejected += 1
                    logger.debug("dedup.drop_known_source", owner=owner, key=key, source=entry.source)
                    continue
                base[key] = entry
            merged[owner] = base

        logger.info(
            "dedup.merge_existing",
            category=existing.category,
            owners=len(merged),
            rejected_known_source=rejected,
        )
        return merged


__all__ = ["Deduplicator", "ExistingState", "OwnerPartition", "load_existing"]
