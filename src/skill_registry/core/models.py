"""Record and partition models.

Two families live here:

- Run-scoped values (:class:`CandidateRecord`, :class:`LinkCheck`,
  :class:`ValidationOutcome`) are frozen dataclasses. They are produced once
  per run and never mutated.
- Persisted documents (:class:`RegistryEntry`, :class:`McpServerConfig`,
  :class:`PartitionFile`) are pydantic models whose field order fixes the
  on-disk JSON layout. Unknown keys found in existing files are kept so a
  rewrite never drops data this tool does not understand.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from skill_registry.core.keys import name_to_key, source_to_url, truncate_description, url_to_source

DESCRIPTION_LIMIT = 200


class RecordKind(str, Enum):
    """Catalog record kinds handled by the sync job."""

    SKILL = "skill"
    CONNECTOR = "connector"


# ── Persisted documents ─────────────────────────────────────────────────


class McpServerConfig(BaseModel):
    """Launch configuration for one MCP server installation."""

    model_config = ConfigDict(extra="allow")

    name: str
    package: str | None = None
    command: str
    args: list[str] = Field(default_factory=list)
    env: dict[str, str] | None = None


class EntryVersions(BaseModel):
    model_config = ConfigDict(extra="allow")

    latest: str = "main"


class RegistryEntry(BaseModel):
    """One skill or connector as it appears inside a partition file."""

    model_config = ConfigDict(extra="allow")

    name: str
    source: str
    description: str = ""
    tags: list[str] = Field(default_factory=list)
    versions: EntryVersions = Field(default_factory=EntryVersions)
    aliases: list[str] | None = None
    dependencies: list[str] | None = None
    mcp_servers: list[McpServerConfig] | None = None

    def to_json(self) -> dict[str, Any]:
        """JSON-ready dict with optional fields omitted when unset."""
        return self.model_dump(mode="json", exclude_none=True)


class PartitionFile(BaseModel):
    """On-disk partition layout: ``{"skills": {key: entry}}``."""

    model_config = ConfigDict(extra="allow")

    skills: dict[str, RegistryEntry] = Field(default_factory=dict)

    def to_json(self) -> dict[str, Any]:
        return {"skills": {key: entry.to_json() for key, entry in self.skills.items()}}


# ── Run-scoped values ───────────────────────────────────────────────────


@dataclass(frozen=True)
class CandidateRecord:
    """A raw catalog entry, prior to validation.

    ``id`` is derived from ``name`` and is unique only within an owner.
    ``tags`` keeps first-seen order and holds no duplicates.
    """

    kind: RecordKind
    owner: str
    name: str
    source_url: str
    description: str = ""
    tags: tuple[str, ...] = ()
    extra: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "tags", tuple(dict.fromkeys(t for t in self.tags if t)))

    @property
    def id(self) -> str:
        return name_to_key(self.name)

    @property
    def validation_id(self) -> str:
        """Key under which this record's link outcome is reported."""
        return f"{self.owner}/{self.id}"

    @property
    def source(self) -> str:
        return url_to_source(self.source_url)

    @property
    def check_url(self) -> str:
        """URL the link validator fetches for this record."""
        return source_to_url(self.source)

    def to_entry(self) -> RegistryEntry:
        """Project to the persisted shape, truncating long descriptions."""
        servers = self.extra.get("mcp_servers") or None
        return RegistryEntry(
            name=self.name,
            source=self.source,
            description=truncate_description(self.description, DESCRIPTION_LIMIT),
            tags=list(self.tags),
            versions=EntryVersions(latest=self.extra.get("latest", "main")),
            aliases=self.extra.get("aliases") or None,
            dependencies=self.extra.get("dependencies") or None,
            mcp_servers=[McpServerConfig.model_validate(s) for s in servers] if servers else None,
        )


@dataclass(frozen=True)
class LinkCheck:
    """One ``(id, url)`` pair submitted to the link validator."""

    id: str
    url: str


@dataclass(frozen=True)
class ValidationOutcome:
    """Final verdict for one submitted id."""

    id: str
    reachable: bool
    attempts: int = 0


__all__ = [
    "DESCRIPTION_LIMIT",
    "RecordKind",
    "McpServerConfig",
    "EntryVersions",
    "RegistryEntry",
    "PartitionFile",
    "CandidateRecord",
    "LinkCheck",
    "ValidationOutcome",
]
