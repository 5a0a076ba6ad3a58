"""Tests for the manifest model, loader and reconciler."""

from datetime import date

import pytest

from skill_registry.core.errors import ManifestError
from skill_registry.core.manifest import Manifest, ManifestReconciler, load_manifest
from skill_registry.core.settings import ManifestOptions
from skill_registry.core.storage import RegistryStore

TODAY = date(2026, 1, 15)


def _manifest(**categories) -> Manifest:
    base = {"official": [], "community": [], "mcp": [], "cursor": []}
    base.update(categories)
    return Manifest(
        version="1.0.0",
        updated="2025-12-01",
        format="dojo-skills-registry",
        compatible_with=["claude-code"],
        total_skills=7,
        categories=base,
    )


def _touch(store: RegistryStore, category: str, filename: str) -> None:
    store.write_json(store.path_for(category, filename), {"skills": {}})


class TestManifestModel:
    def test_json_uses_aliases(self):
        data = _manifest().to_json()
        assert data["compatibleWith"] == ["claude-code"]
        assert data["totalSkills"] == 7
        assert list(data) == ["version", "updated", "format", "compatibleWith", "totalSkills", "categories"]

    def test_unknown_top_level_keys_kept(self):
        m = Manifest.model_validate({"version": "2", "categories": {}, "maintainer": "ops"})
        assert m.to_json()["maintainer"] == "ops"


class TestLoadManifest:
    def test_missing_file_gives_default(self, store):
        m = load_manifest(store, ManifestOptions())
        assert m.categories == {"official": [], "community": [], "mcp": [], "cursor": []}
        assert m.format == "dojo-skills-registry"
        assert m.total_skills == 0

    def test_corrupt_file_raises(self, store, registry_dir):
        (registry_dir / "index.json").write_text("{oops", encoding="utf-8")
        with pytest.raises(ManifestError):
            load_manifest(store, ManifestOptions())

    def test_wrong_shape_raises(self, store, write_json, registry_dir):
        write_json(registry_dir / "index.json", {"categories": ["not", "a", "map"]})
        with pytest.raises(ManifestError):
            load_manifest(store, ManifestOptions())

    def test_fills_missing_categories(self, store, write_json, registry_dir):
        write_json(registry_dir / "index.json", {"version": "1.0.0", "categories": {"community": ["a.json"]}})
        m = load_manifest(store, ManifestOptions())
        assert m.categories["community"] == ["a.json"]
        assert m.categories["mcp"] == []


class TestReconcile:
    def test_appends_new_filenames_in_order(self, store):
        _touch(store, "community", "old.json")
        reconciler = ManifestReconciler(store, today=lambda: TODAY)
        out = reconciler.reconcile(_manifest(community=["old.json"]), {"community": ["b.json", "a.json"]}, 3)
        assert out.categories["community"] == ["old.json", "b.json", "a.json"]

    def test_no_duplicates(self, store):
        _touch(store, "community", "acme.json")
        reconciler = ManifestReconciler(store, today=lambda: TODAY)
        out = reconciler.reconcile(
            _manifest(community=["acme.json", "acme.json"]), {"community": ["acme.json", "acme.json"]}, 1
        )
        assert out.categories["community"] == ["acme.json"]

    def test_prunes_missing_files_without_additions(self, store):
        """A manifest never keeps naming a file that is gone."""
        _touch(store, "community", "real.json")
        reconciler = ManifestReconciler(store, today=lambda: TODAY)
        out = reconciler.reconcile(_manifest(community=["ghost.json", "real.json"]), {"community": []}, 0)
        assert out.categories["community"] == ["real.json"]

    def test_ghost_removed(self, store):
        reconciler = ManifestReconciler(store, today=lambda: TODAY)
        out = reconciler.reconcile(_manifest(community=["ghost.json"]), {"community": []}, 0)
        assert "ghost.json" not in out.categories["community"]

    def test_files_from_this_run_count_as_present(self, registry_dir):
        store = RegistryStore(registry_dir, dry_run=True)
        reconciler = ManifestReconciler(store, today=lambda: TODAY)
        out = reconciler.reconcile(_manifest(), {"mcp": ["acme.json"]}, 1)
        assert out.categories["mcp"] == ["acme.json"]

    def test_unmanaged_categories_untouched(self, store):
        reconciler = ManifestReconciler(store, today=lambda: TODAY)
        m = _manifest(official=["ghost-official.json"], cursor=["ghost-cursor.json"])
        out = reconciler.reconcile(m, {"community": []}, 0)
        assert out.categories["official"] == ["ghost-official.json"]
        assert out.categories["cursor"] == ["ghost-cursor.json"]

    def test_refreshes_count_and_date(self, store):
        reconciler = ManifestReconciler(store, today=lambda: TODAY)
        out = reconciler.reconcile(_manifest(), {}, 42)
        assert out.total_skills == 42
        assert out.updated == "2026-01-15"

    def test_input_not_mutated(self, store):
        m = _manifest(community=["ghost.json"])
        ManifestReconciler(store, today=lambda: TODAY).reconcile(m, {"community": ["new.json"]}, 1)
        assert m.categories["community"] == ["ghost.json"]
        assert m.total_skills == 7


class TestSave:
    def test_writes_index(self, store, registry_dir):
        reconciler = ManifestReconciler(store, today=lambda: TODAY)
        assert reconciler.save(_manifest()) is True
        assert (registry_dir / "index.json").exists()
        reloaded = load_manifest(store, ManifestOptions())
        assert reloaded.total_skills == 7

    def test_dry_run_does_not_write(self, registry_dir):
        store = RegistryStore(registry_dir, dry_run=True)
        assert ManifestReconciler(store).save(_manifest()) is False
        assert not (registry_dir / "index.json").exists()
