"""Settings for the skill registry sync job.

Manifesto:
    Configuration is resolved once, at the edge. ``RegistrySettings`` reads
    ``SKILL_REGISTRY_*`` environment variables and ``.env`` files; the CLI
    overlays its flags and then hands each component only the option value
    it needs. No component reads settings on its own.

    - **Pydantic validation:** Type-checked at startup, not mid-run
    - **Environment-driven:** Reads from env vars and .env files
    - **Explicit threading:** ``validator_options()``, ``partition_options()``
      and ``manifest_options()`` build the per-component values

Examples:
    >>> settings = RegistrySettings(validate_urls=True, max_concurrent_requests=4)
    >>> settings.validator_options().concurrency_limit
    4

Tags:
    settings, configuration, pydantic, environment
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from skill_registry.core.errors import InvalidConfigError


@dataclass(frozen=True)
class ValidatorOptions:
    """Options consumed by :class:`~skill_registry.execution.link_validator.LinkValidator`."""

    enabled: bool = False
    concurrency_limit: int = 10
    attempt_timeout: float = 5.0
    max_attempts: int = 2
    retry_backoff: float = 1.0
    user_agent: str = "skill-registry-sync/1.0"

    def __post_init__(self) -> None:
        if self.concurrency_limit < 1:
            raise InvalidConfigError("concurrency_limit", self.concurrency_limit)
        if self.max_attempts < 1:
            raise InvalidConfigError("max_attempts", self.max_attempts)
        if self.attempt_timeout <= 0:
            raise InvalidConfigError("attempt_timeout", self.attempt_timeout)
        if self.retry_backoff < 0:
            raise InvalidConfigError("retry_backoff", self.retry_backoff)


@dataclass(frozen=True)
class PartitionOptions:
    """Options consumed by :class:`~skill_registry.sync.partition.PartitionWriter`."""

    min_records_per_file: int = 1
    overflow_filenames: dict[str, str] = field(
        default_factory=lambda: {"community": "synced-awesome.json", "mcp": "synced-mcps.json"}
    )

    def __post_init__(self) -> None:
        if self.min_records_per_file < 1:
            raise InvalidConfigError("min_records_per_file", self.min_records_per_file)

    def overflow_filename(self, category: str) -> str:
        return self.overflow_filenames.get(category, f"synced-{category}.json")


@dataclass(frozen=True)
class ManifestOptions:
    """Defaults used when ``index.json`` does not exist yet."""

    version: str = "1.0.0"
    format: str = "dojo-skills-registry"
    compatible_with: tuple[str, ...] = ("claude-code",)
    categories: tuple[str, ...] = ("official", "community", "mcp", "cursor")


class RegistrySettings(BaseSettings):
    """Skill registry configuration.

    All fields can be set via ``SKILL_REGISTRY_*`` environment variables
    (e.g. ``SKILL_REGISTRY_MAX_CONCURRENT_REQUESTS=20``) or a ``.env`` file.
    """

    model_config = SettingsConfigDict(
        env_prefix="SKILL_REGISTRY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Storage ──────────────────────────────────────────────────
    registry_dir: Path = Field(default=Path("registry"), description="Root of the on-disk registry")
    index_filename: str = Field(default="index.json")
    search_index_filename: str = Field(default="all.json")

    # ── Link validation ──────────────────────────────────────────
    validate_urls: bool = Field(default=False, description="Opt-in network validation of links")
    max_concurrent_requests: int = Field(default=10)
    url_validation_timeout: float = Field(default=5.0, description="Per-attempt timeout in seconds")
    max_attempts: int = Field(default=2)
    retry_backoff_seconds: float = Field(default=1.0)
    user_agent: str = Field(default="skill-registry-sync/1.0")

    # ── Partitioning ─────────────────────────────────────────────
    min_records_per_file: int = Field(default=1)
    merge_existing: bool = Field(default=False, description="Merge against partitions already on disk")

    # ── Catalog sources ──────────────────────────────────────────
    github_api_url: str = Field(default="https://api.github.com")
    skills_repo: str = Field(default="Chat2AnyLLM/awesome-claude-skills")
    skills_branch: str = Field(default="main")
    skills_path: str = Field(default="domains")
    mcp_repo: str = Field(default="Chat2AnyLLM/code-assistant-manager")
    mcp_branch: str = Field(default="main")
    mcp_path: str = Field(default="code_assistant_manager/mcp/registry/servers")
    fetch_timeout: float = Field(default=30.0)

    # ── Manifest defaults ────────────────────────────────────────
    manifest_version: str = Field(default="1.0.0")
    manifest_format: str = Field(default="dojo-skills-registry")
    manifest_compatible_with: list[str] = Field(default=["claude-code"])

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="auto", description="auto, console or json")

    def validator_options(self) -> ValidatorOptions:
        return ValidatorOptions(
            enabled=self.validate_urls,
            concurrency_limit=self.max_concurrent_requests,
            attempt_timeout=self.url_validation_timeout,
            max_attempts=self.max_attempts,
            retry_backoff=self.retry_backoff_seconds,
            user_agent=self.user_agent,
        )

    def partition_options(self) -> PartitionOptions:
        return PartitionOptions(min_records_per_file=self.min_records_per_file)

    def manifest_options(self) -> ManifestOptions:
        return ManifestOptions(
            version=self.manifest_version,
            format=self.manifest_format,
            compatible_with=tuple(self.manifest_compatible_with),
        )

    @property
    def json_logs(self) -> bool | None:
        if self.log_format == "json":
            return True
        if self.log_format == "console":
            return False
        return None


__all__ = [
    "ValidatorOptions",
    "PartitionOptions",
    "ManifestOptions",
    "RegistrySettings",
]
