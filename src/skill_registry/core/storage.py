"""
Filesystem storage for the registry tree.

Layout::

    <root>/
        index.json               manifest
        all.json                 aggregated search index
        <category>/<file>.json   partition files

The store is the only component that touches the disk. In dry-run mode every
write is logged and skipped, so callers run the exact same code path in both
modes and only the side effect differs.

Writes go through a temporary sibling file and ``os.replace`` so a reader
never sees a half-written partition. Any ``OSError`` while writing becomes a
:class:`~skill_registry.core.errors.PersistenceError`.
"""

from __future__ import annotations

import contextlib
import json
import os
from pathlib import Path
from typing import Any

from skill_registry.core.errors import ParseError, PersistenceError
from skill_registry.core.logging import get_logger

logger = get_logger(__name__)


def dump_json(data: Any) -> str:
    """Canonical on-disk JSON text: two-space indent, UTF-8, trailing newline."""
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


class RegistryStore:
    """Read and write JSON documents under a registry root."""

    def __init__(self, root: str | Path, *, dry_run: bool = False) -> None:
        self._root = Path(root)
        self._dry_run = dry_run

    @property
    def root(self) -> Path:
        return self._root

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def path_for(self, category: str | None, filename: str) -> Path:
        if category is None:
            return self._root / filename
        return self._root / category / filename

    def exists(self, category: str | None, filename: str) -> bool:
        return self.path_for(category, filename).is_file()

    def read_json(self, path: Path) -> Any | None:
        """Load ``path``; ``None`` when the file is absent.

        Raises:
            ParseError: the file exists but is not valid JSON or not readable.
        """
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise ParseError(f"Cannot read {path}", cause=e).with_context(path=str(path))
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ParseError(f"Invalid JSON in {path}: {e}", cause=e).with_context(path=str(path))

    def write_json(self, path: Path, data: Any) -> bool:
        """Write ``data`` to ``path``. Returns False when skipped by dry-run."""
        if self._dry_run:
            logger.info("store.dry_run_skip_write", path=str(path))
            return False

        text = dump_json(data)
        tmp = path.with_name(f".{path.name}.tmp")
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(text, encoding="utf-8")
            os.replace(tmp, path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink(missing_ok=True)
            raise PersistenceError(f"Failed to write {path}: {e}", cause=e).with_context(path=str(path))

        logger.debug("store.write", path=str(path), bytes=len(text.encode("utf-8")))
        return True

    def size_of(self, path: Path) -> int | None:
        try:
            return path.stat().st_size
        except OSError:
            return None


__all__ = ["RegistryStore", "dump_json"]
