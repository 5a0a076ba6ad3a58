"""Tests for RegistryStore."""

import json

import pytest

from skill_registry.core.errors import ParseError, PersistenceError
from skill_registry.core.storage import RegistryStore, dump_json


class TestDumpJson:
    def test_format(self):
        assert dump_json({"b": 1, "a": "é"}) == '{\n  "b": 1,\n  "a": "é"\n}\n'


class TestRegistryStore:
    def test_paths(self, store, registry_dir):
        assert store.path_for(None, "index.json") == registry_dir / "index.json"
        assert store.path_for("community", "acme.json") == registry_dir / "community" / "acme.json"

    def test_write_and_read(self, store):
        path = store.path_for("community", "acme.json")
        assert store.write_json(path, {"skills": {}}) is True
        assert store.exists("community", "acme.json")
        assert store.read_json(path) == {"skills": {}}
        assert path.read_text(encoding="utf-8").endswith("}\n")
        assert not list(path.parent.glob(".*.tmp"))

    def test_read_missing_returns_none(self, store):
        assert store.read_json(store.path_for(None, "nope.json")) is None

    def test_read_invalid_json_raises(self, store, registry_dir):
        bad = registry_dir / "index.json"
        bad.write_text("{not json", encoding="utf-8")
        with pytest.raises(ParseError) as exc:
            store.read_json(bad)
        assert exc.value.context.path == str(bad)

    def test_dry_run_skips_write(self, registry_dir):
        store = RegistryStore(registry_dir, dry_run=True)
        path = store.path_for("mcp", "x.json")
        assert store.write_json(path, {"skills": {}}) is False
        assert not path.exists()
        assert not (registry_dir / "mcp").exists()

    def test_write_failure_raises_persistence_error(self, registry_dir):
        blocker = registry_dir / "community"
        blocker.write_text("a file where a directory should be", encoding="utf-8")
        store = RegistryStore(registry_dir)
        with pytest.raises(PersistenceError) as exc:
            store.write_json(store.path_for("community", "acme.json"), {"skills": {}})
        assert exc.value.retryable is False

    def test_size_of(self, store):
        path = store.path_for(None, "all.json")
        store.write_json(path, {"skills": {}})
        assert store.size_of(path) == len(json.dumps({"skills": {}}, indent=2)) + 1
        assert store.size_of(store.path_for(None, "missing.json")) is None
