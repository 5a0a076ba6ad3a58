"""
Shared pytest fixtures for skill-registry tests.

This module provides:
- A temporary registry root and store
- A controllable fake link checker (scripted outcomes, in-flight tracking)
- A static catalog source for pipeline tests
- Logging/context reset between tests
"""

import asyncio
import json
import sys
from datetime import date
from pathlib import Path
from typing import Any, Generator

import pytest
import structlog

# Ensure skill_registry package is importable
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from skill_registry.core.models import CandidateRecord, RecordKind
from skill_registry.core.storage import RegistryStore
from skill_registry.sync.sources import SourceResult

FIXED_TODAY = date(2026, 1, 15)


# =============================================================================
# Test Markers Configuration
# =============================================================================


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """Auto-mark tests based on their location."""
    for item in items:
        markers = {mark.name for mark in item.iter_markers()}
        if not markers.intersection({"unit", "integration"}):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Each test starts from structlog defaults with no bound context."""
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()
    yield
    structlog.reset_defaults()
    structlog.contextvars.clear_contextvars()


# =============================================================================
# Registry fixtures
# =============================================================================


@pytest.fixture
def registry_dir(tmp_path: Path) -> Path:
    root = tmp_path / "registry"
    root.mkdir()
    return root


@pytest.fixture
def store(registry_dir: Path) -> RegistryStore:
    return RegistryStore(registry_dir)


@pytest.fixture
def write_json():
    """Write a JSON document under the registry, creating parents."""

    def _write(path: Path, data: Any) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2) + "\n", encoding="utf-8")
        return path

    return _write


# =============================================================================
# Fakes
# =============================================================================


class FakeLinkChecker:
    """Scripted :class:`LinkChecker`.

    ``script`` maps a URL to a list of outcomes consumed one per attempt; the
    last outcome repeats. An outcome is an HTTP status, an exception to raise,
    or ``HANG`` to never answer. Unscripted URLs answer ``default``.
    """

    HANG = "hang"

    def __init__(self, script: dict[str, list[Any]] | None = None, *, default: int = 200, delay: float = 0.0):
        self.script = {url: list(outcomes) for url, outcomes in (script or {}).items()}
        self.default = default
        self.delay = delay
        self.calls: list[str] = []
        self.in_flight = 0
        self.high_water = 0

    async def fetch_status(self, url: str) -> int:
        self.calls.append(url)
        self.in_flight += 1
        self.high_water = max(self.high_water, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcomes = self.script.get(url)
            outcome = (outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]) if outcomes else self.default
            if outcome == self.HANG:
                await asyncio.sleep(3600)
            if isinstance(outcome, BaseException):
                raise outcome
            return outcome
        finally:
            self.in_flight -= 1

    def attempts_for(self, url: str) -> int:
        return self.calls.count(url)


class StaticSource:
    """Catalog source returning a fixed list of records (or failing)."""

    def __init__(self, name: str, kind: RecordKind, records: list[CandidateRecord] | None = None, error=None):
        self._name = name
        self._kind = kind
        self._records = list(records or [])
        self._error = error

    @property
    def name(self) -> str:
        return self._name

    @property
    def kind(self) -> RecordKind:
        return self._kind

    async def fetch(self) -> SourceResult:
        if self._error is not None:
            return SourceResult.fail(self._name, self._kind, self._error)
        return SourceResult(source_name=self._name, kind=self._kind, records=list(self._records))


@pytest.fixture
def fake_checker_cls() -> type[FakeLinkChecker]:
    return FakeLinkChecker


@pytest.fixture
def static_source_cls() -> type[StaticSource]:
    return StaticSource


@pytest.fixture
def make_record():
    """Factory for candidate records with sensible defaults."""

    def _make(
        name: str,
        owner: str = "acme",
        url: str | None = None,
        *,
        kind: RecordKind = RecordKind.SKILL,
        description: str = "",
        tags: tuple[str, ...] = ("tools", "community"),
        extra: dict[str, Any] | None = None,
    ) -> CandidateRecord:
        slug = name.lower().replace(" ", "-")
        return CandidateRecord(
            kind=kind,
            owner=owner,
            name=name,
            source_url=url or f"https://github.com/{owner}/{slug}",
            description=description,
            tags=tags,
            extra=extra or {},
        )

    return _make
