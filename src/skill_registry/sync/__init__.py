"""Catalog sync: sources, dedup, partitioning, search index and the pipeline."""

from skill_registry.sync.dedup import Deduplicator, ExistingState, OwnerPartition, load_existing
from skill_registry.sync.index_builder import IndexBuildResult, build_search_index
from skill_registry.sync.parsers import parse_mcp_server, parse_skills_markdown
from skill_registry.sync.partition import PartitionWriteResult, PartitionWriter
from skill_registry.sync.pipeline import CATEGORY_BY_KIND, KindReport, RegistrySync, SyncReport
from skill_registry.sync.sources import (
    AwesomeSkillsSource,
    CatalogSource,
    GitHubContentsClient,
    McpServerSource,
    SourceResult,
)

__all__ = [
    "AwesomeSkillsSource",
    "CATEGORY_BY_KIND",
    "CatalogSource",
    "Deduplicator",
    "ExistingState",
    "GitHubContentsClient",
    "IndexBuildResult",
    "KindReport",
    "McpServerSource",
    "OwnerPartition",
    "PartitionWriteResult",
    "PartitionWriter",
    "RegistrySync",
    "SourceResult",
    "SyncReport",
    "build_search_index",
    "load_existing",
    "parse_mcp_server",
    "parse_skills_markdown",
]
