"""Aggregate search index (``all.json``) built from the manifest.

Walks ``manifest.categories`` in order and merges every listed partition's
``skills`` map into one document, so clients can search the whole registry
with a single download. Later files override earlier ones on key collision;
each override is logged as a warning and counted in the result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from skill_registry.core.errors import ParseError
from skill_registry.core.logging import get_logger
from skill_registry.core.manifest import Manifest
from skill_registry.core.storage import RegistryStore, dump_json

logger = get_logger(__name__)


@dataclass
class IndexBuildResult:
    entries: int
    files: int
    skipped: int
    size_bytes: int
    written: bool
    overridden: int = 0

    @property
    def size_kb(self) -> float:
        return round(self.size_bytes / 1024, 2)


def build_search_index(
    store: RegistryStore,
    manifest: Manifest,
    filename: str = "all.json",
) -> IndexBuildResult:
    """Merge all listed partitions into ``<registry>/<filename>``."""
    skills: dict[str, Any] = {}
    origin: dict[str, str] = {}
    files = skipped = overridden = 0

    for category, filenames in manifest.categories.items():
        logger.debug("index_builder.category", category=category, files=len(filenames))
        for name in filenames:
            path = store.path_for(category, name)
            try:
                raw = store.read_json(path)
            except ParseError as e:
                logger.warning("index_builder.unreadable", path=str(path), error=e.message)
                skipped += 1
                continue
            if raw is None:
                logger.warning("index_builder.missing_file", path=str(path))
                skipped += 1
                continue
            if not isinstance(raw, dict) or not isinstance(raw.get("skills"), dict):
                logger.warning("index_builder.unreadable", path=str(path), error="missing 'skills' object")
                skipped += 1
                continue
            location = f"{category}/{name}"
            for key, entry in raw["skills"].items():
                if key in origin:
                    overridden += 1
                    logger.warning(
                        "index_builder.key_override", key=key, previous_file=origin[key], file=location
                    )
                skills[key] = entry
                origin[key] = location
            files += 1

    document = {"skills": skills}
    path = store.path_for(None, filename)
    written = store.write_json(path, document)
    size = store.size_of(path) if written else None
    if size is None:
        size = len(dump_json(document).encode("utf-8"))

    result = IndexBuildResult(
        entries=len(skills), files=files, skipped=skipped, size_bytes=size, written=written, overridden=overridden
    )
    logger.info(
        "index_builder.complete",
        path=str(path),
        entries=result.entries,
        files=result.files,
        skipped=result.skipped,
        overridden=result.overridden,
        size_kb=result.size_kb,
        written=written,
    )
    return result


__all__ = ["IndexBuildResult", "build_search_index"]
