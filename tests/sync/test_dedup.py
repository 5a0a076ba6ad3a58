"""Tests for Deduplicator and existing-state loading."""

from skill_registry.core.models import LinkCheck, RegistryEntry
from skill_registry.sync.dedup import Deduplicator, ExistingState, load_existing


def _entry(name: str, source: str) -> RegistryEntry:
    return RegistryEntry(name=name, source=source)


# ── validation_checks ─────────────────────────────────────────


class TestValidationChecks:
    def test_one_check_per_owner_key(self, make_record):
        records = [
            make_record("Foo Bar", url="https://github.com/acme/first"),
            make_record("foo-bar", url="https://github.com/acme/second"),
            make_record("Foo Bar", owner="other"),
        ]
        checks = Deduplicator().validation_checks(records)
        assert checks == [
            LinkCheck(id="acme/foo-bar", url="https://github.com/acme/first"),
            LinkCheck(id="other/foo-bar", url="https://github.com/other/foo-bar"),
        ]

    def test_check_url_is_normalized_source(self, make_record):
        record = make_record("Pdf", url="https://github.com/acme/skills/tree/main/pdf")
        [check] = Deduplicator().validation_checks([record])
        assert check.url == "https://github.com/acme/skills/pdf"


# ── group ─────────────────────────────────────────────────────


class TestGroup:
    def test_first_seen_wins(self, make_record):
        records = [
            make_record("Foo Bar", url="https://github.com/acme/first", description="first"),
            make_record("foo-bar", url="https://github.com/acme/second", description="second"),
        ]
        partitions = Deduplicator().group(records, {})
        assert list(partitions) == ["acme"]
        assert list(partitions["acme"]) == ["foo-bar"]
        assert partitions["acme"]["foo-bar"].description == "first"

    def test_unreachable_dropped(self, make_record):
        records = [make_record("Alive"), make_record("Dead")]
        partitions = Deduplicator().group(records, {"acme/alive": True, "acme/dead": False})
        assert list(partitions["acme"]) == ["alive"]

    def test_missing_outcome_counts_as_reachable(self, make_record):
        partitions = Deduplicator().group([make_record("Unchecked")], {"acme/other": False})
        assert list(partitions["acme"]) == ["unchecked"]

    def test_owner_with_only_unreachable_records_absent(self, make_record):
        partitions = Deduplicator().group([make_record("Gone", owner="bob")], {"bob/gone": False})
        assert partitions == {}

    def test_grouped_by_owner_in_first_seen_order(self, make_record):
        records = [make_record("A", owner="zed"), make_record("B", owner="amy"), make_record("C", owner="zed")]
        partitions = Deduplicator().group(records, {})
        assert list(partitions) == ["zed", "amy"]
        assert list(partitions["zed"]) == ["a", "c"]

    def test_entries_are_persisted_shape(self, make_record):
        long = "x" * 250
        partitions = Deduplicator().group([make_record("Tool", description=long)], {})
        entry = partitions["acme"]["tool"]
        assert entry.source == "github:acme/tool"
        assert len(entry.description) == 200
        assert entry.description.endswith("...")

    def test_record_failing_entry_validation_dropped(self, make_record):
        bad = make_record(
            "Server",
            extra={"mcp_servers": [{"name": "s", "command": "npx", "args": [], "env": {"PORT": 8080}}]},
        )
        partitions = Deduplicator().group([bad, make_record("Other")], {})
        assert list(partitions["acme"]) == ["other"]


# ── merge_existing ────────────────────────────────────────────


class TestMergeExisting:
    def test_known_source_rejected_whatever_its_name(self):
        existing = ExistingState(
            category="community",
            partitions={"acme": {"old-name": _entry("Old Name", "github:acme/tool")}},
            sources={"github:acme/tool"},
        )
        new = {"acme": {"new-name": _entry("New Name", "github:acme/tool")}}
        merged = Deduplicator().merge_existing(new, existing)
        assert list(merged["acme"]) == ["old-name"]

    def test_same_key_new_source_replaces(self):
        existing = ExistingState(
            category="community",
            partitions={"acme": {"tool": _entry("Tool", "github:acme/tool-v1")}},
            sources={"github:acme/tool-v1"},
        )
        new = {"acme": {"tool": _entry("Tool", "github:acme/tool-v2")}}
        merged = Deduplicator().merge_existing(new, existing)
        assert merged["acme"]["tool"].source == "github:acme/tool-v2"

    def test_persisted_entries_kept_and_untouched_owners_omitted(self):
        existing = ExistingState(
            category="community",
            partitions={
                "acme": {"kept": _entry("Kept", "github:acme/kept")},
                "bob": {"notes": _entry("Notes", "github:bob/notes")},
            },
            sources={"github:acme/kept", "github:bob/notes"},
        )
        new = {"acme": {"fresh": _entry("Fresh", "github:acme/fresh")}}
        merged = Deduplicator().merge_existing(new, existing)
        assert list(merged) == ["acme"]
        assert list(merged["acme"]) == ["kept", "fresh"]

    def test_source_known_only_in_overflow_rejected(self):
        existing = ExistingState(
            category="community",
            overflow={"bob-notes": _entry("Notes", "github:bob/notes")},
            sources={"github:bob/notes"},
        )
        new = {"bob": {"notes": _entry("Notes", "github:bob/notes")}}
        merged = Deduplicator().merge_existing(new, existing)
        assert merged == {"bob": {}}


# ── load_existing ─────────────────────────────────────────────


class TestLoadExisting:
    def test_loads_owner_files_and_overflow(self, store, registry_dir, write_json):
        write_json(
            registry_dir / "community" / "acme.json",
            {"skills": {"tool": {"name": "Tool", "source": "github:acme/tool"}}},
        )
        write_json(
            registry_dir / "community" / "synced-awesome.json",
            {"skills": {"bob-notes": {"name": "Notes", "source": "github:bob/notes"}}},
        )
        state = load_existing(store, "community", ["acme.json", "synced-awesome.json"], "synced-awesome.json")
        assert list(state.partitions) == ["acme"]
        assert list(state.overflow) == ["bob-notes"]
        assert state.sources == {"github:acme/tool", "github:bob/notes"}
        assert state.entry_count == 2

    def test_skips_missing_and_unreadable(self, store, registry_dir, write_json):
        (registry_dir / "community").mkdir()
        (registry_dir / "community" / "broken.json").write_text("{", encoding="utf-8")
        write_json(registry_dir / "community" / "shape.json", {"skills": ["not", "a", "map"]})
        state = load_existing(store, "community", ["gone.json", "broken.json", "shape.json"], "synced-awesome.json")
        assert state.partitions == {}
        assert state.sources == set()

    def test_unknown_fields_survive(self, store, registry_dir, write_json):
        write_json(
            registry_dir / "mcp" / "acme.json",
            {"skills": {"srv": {"name": "Srv", "source": "github:acme/srv", "license": "MIT"}}},
        )
        state = load_existing(store, "mcp", ["acme.json"], "synced-mcps.json")
        assert state.partitions["acme"]["srv"].to_json()["license"] == "MIT"
