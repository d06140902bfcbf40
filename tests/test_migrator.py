"""
Tests for the profile extraction migration.
"""

import pytest
import yaml

from memoir_intake.exceptions import MigrationFatalError, RecordStoreError
from memoir_intake.migrate.merge import ProfileAggregate
from memoir_intake.migrate.migrator import (
    MigrationResult,
    group_matched_records,
    run_migration,
    save_report,
)
from memoir_intake.migrate.settings import MigrationSettings
from memoir_intake.migrate.store import InMemoryRecordStore, LifeEventRecord, YamlRecordStore

NOW = "2025-03-01T10:00:00Z"
NO_DELAY = MigrationSettings(retry_delay=0)


class FlakyStore(InMemoryRecordStore):
    """In-memory store whose profile writes fail for selected users."""

    def __init__(self, *args, failing_users=(), failures=None, **kwargs):
        super().__init__(*args, **kwargs)
        self.failing_users = set(failing_users)
        self.failures = failures
        self.upsert_calls = 0

    def upsert_profile(self, aggregate: ProfileAggregate) -> None:
        self.upsert_calls += 1
        if aggregate.user_id in self.failing_users:
            if self.failures is None or self.failures > 0:
                if self.failures is not None:
                    self.failures -= 1
                raise RecordStoreError(f"write of {aggregate.user_id} timed out")
        super().upsert_profile(aggregate)


class BrokenStore(InMemoryRecordStore):
    def list_records(self):
        raise RecordStoreError("connection refused")


class TestRunMigration:
    """Tests for a full migration run."""

    def test_migrates_profile_records(self, record_store):
        result = run_migration(record_store, NO_DELAY, now=NOW)

        assert result.to_dict() == {"analyzed": 5, "deleted": 4, "updated": 2, "errors": []}
        assert result.exit_code == 0
        assert [record.id for record in record_store.records] == ["r2"]

    def test_merges_into_existing_profile(self, record_store):
        run_migration(record_store, NO_DELAY, now=NOW)

        profile = record_store.get_profile("u1")
        assert profile.influences == [
            {"name": "goethe", "type": "author"},
            {"name": "Schiller", "type": "other"},
            {"name": "Rilke", "type": "other"},
        ]
        assert profile.values == ["Ehrlichkeit", "Mut", "Neugier"]
        assert profile.updated_at == NOW

    def test_creates_missing_profile(self, record_store):
        run_migration(record_store, NO_DELAY, now=NOW)

        profile = record_store.get_profile("u2")
        assert profile.role_models == [{"name": "Marie Curie"}]
        assert profile.influences == []

    def test_second_run_is_noop(self, record_store):
        run_migration(record_store, NO_DELAY, now=NOW)
        profiles = {user_id: p.to_dict() for user_id, p in record_store.profiles.items()}

        result = run_migration(record_store, NO_DELAY, now="2026-01-01T00:00:00Z")

        assert result.to_dict() == {"analyzed": 1, "deleted": 0, "updated": 0, "errors": []}
        assert {user_id: p.to_dict() for user_id, p in record_store.profiles.items()} == profiles

    def test_influences_into_empty_profile(self):
        store = InMemoryRecordStore(
            [
                LifeEventRecord(
                    "r1", "u1", "Influences: Literatur", "Influences: Goethe, Schiller und Rilke"
                )
            ]
        )

        result = run_migration(store, NO_DELAY, now=NOW)

        assert result.to_dict() == {"analyzed": 1, "deleted": 1, "updated": 1, "errors": []}
        assert store.records == []
        assert store.get_profile("u1").influences == [
            {"name": "Goethe", "type": "other"},
            {"name": "Schiller", "type": "other"},
            {"name": "Rilke", "type": "other"},
        ]

    def test_profile_only_records_are_deleted_without_update(self):
        store = InMemoryRecordStore([LifeEventRecord("p1", "u9", "Profile: Basis", "Anna")])

        result = run_migration(store, NO_DELAY, now=NOW)

        assert result.deleted == 1
        assert result.updated == 0
        assert store.get_profile("u9") is None

    def test_already_known_entries_do_not_count_as_update(self):
        store = InMemoryRecordStore(
            [LifeEventRecord("r1", "u1", "Werte: alt", "Werte: Mut")],
            [ProfileAggregate(user_id="u1", values=["mut"], updated_at="2024-01-01T00:00:00Z")],
        )

        result = run_migration(store, NO_DELAY, now=NOW)

        assert result.updated == 0
        assert result.deleted == 1
        assert store.get_profile("u1").updated_at == "2024-01-01T00:00:00Z"

    def test_empty_store(self):
        result = run_migration(InMemoryRecordStore(), NO_DELAY)

        assert result == MigrationResult()


class TestMigrationErrors:
    """Tests for per-user errors and fatal failures."""

    def test_failing_user_is_skipped_and_records_kept(self, legacy_records):
        store = FlakyStore(legacy_records, failing_users={"u1"})

        result = run_migration(store, NO_DELAY, now=NOW)

        assert len(result.errors) == 1
        assert result.errors[0].startswith("User u1:")
        assert result.exit_code == 1
        assert result.updated == 1
        assert result.deleted == 2
        assert {record.id for record in store.records} == {"r1", "r2", "r3"}
        assert store.get_profile("u1") is None

    def test_transient_failure_is_retried(self, legacy_records):
        store = FlakyStore(legacy_records, failing_users={"u1"}, failures=1)

        result = run_migration(store, NO_DELAY, now=NOW)

        assert result.errors == []
        assert result.updated == 2
        assert store.upsert_calls == 3

    def test_retry_attempts_from_settings(self, legacy_records):
        store = FlakyStore(legacy_records, failing_users={"u1"})

        run_migration(store, MigrationSettings(retry_attempts=2, retry_delay=0), now=NOW)

        # two attempts for u1, one for u2
        assert store.upsert_calls == 3

    def test_rerun_after_failure_completes(self, legacy_records):
        store = FlakyStore(legacy_records, failing_users={"u1"})
        run_migration(store, NO_DELAY, now=NOW)
        store.failing_users.clear()

        result = run_migration(store, NO_DELAY, now=NOW)

        assert result.errors == []
        assert result.deleted == 2
        assert [record.id for record in store.records] == ["r2"]

    def test_load_failure_is_fatal(self):
        with pytest.raises(MigrationFatalError) as exc_info:
            run_migration(BrokenStore(), NO_DELAY)

        assert "connection refused" in str(exc_info.value)


class TestGrouping:
    """Tests for grouping matched records by user."""

    def test_first_seen_user_order(self):
        records = [
            LifeEventRecord("1", "u2", "Werte: a", "Mut"),
            LifeEventRecord("2", "u1", "Urlaub", "Italien"),
            LifeEventRecord("3", "u1", "Vorbild: b", "Oma"),
            LifeEventRecord("4", "u2", "Influences: c", "Kant"),
        ]

        grouped = group_matched_records(records)

        assert list(grouped) == ["u2", "u1"]
        assert [record.id for record, _ in grouped["u2"]] == ["1", "4"]


class TestYamlStore:
    """Tests for the migration against YAML files."""

    def test_migration_on_yaml_files(self, tmp_path, legacy_records):
        records_file = tmp_path / "records.yaml"
        profiles_file = tmp_path / "profiles.yaml"
        records = {"records": [record.to_dict() for record in legacy_records]}
        records_file.write_text(yaml.dump(records, allow_unicode=True), encoding="utf-8")
        store = YamlRecordStore(records_file, profiles_file)

        result = run_migration(store, NO_DELAY, now=NOW)

        assert result.to_dict() == {"analyzed": 5, "deleted": 4, "updated": 2, "errors": []}
        remaining = yaml.safe_load(records_file.read_text(encoding="utf-8"))["records"]
        assert [record["id"] for record in remaining] == ["r2"]
        profiles = yaml.safe_load(profiles_file.read_text(encoding="utf-8"))["profiles"]
        assert [profile["user_id"] for profile in profiles] == ["u1", "u2"]

    def test_missing_files_read_as_empty(self, tmp_path):
        store = YamlRecordStore(tmp_path / "none.yaml", tmp_path / "none2.yaml")

        assert store.list_records() == []
        assert store.get_profile("u1") is None

    def test_malformed_records_file(self, tmp_path):
        records_file = tmp_path / "records.yaml"
        records_file.write_text("records: {not: a list}", encoding="utf-8")

        with pytest.raises(MigrationFatalError):
            run_migration(YamlRecordStore(records_file, tmp_path / "p.yaml"), NO_DELAY)

    def test_upsert_replaces_profile(self, tmp_path):
        store = YamlRecordStore(tmp_path / "r.yaml", tmp_path / "p.yaml")

        store.upsert_profile(ProfileAggregate(user_id="u1", values=["Mut"]))
        store.upsert_profile(ProfileAggregate(user_id="u1", values=["Mut", "Neugier"]))

        assert store.get_profile("u1").values == ["Mut", "Neugier"]

    def test_migration_keeps_other_profile_fields(self, tmp_path):
        records_file = tmp_path / "records.yaml"
        profiles_file = tmp_path / "profiles.yaml"
        records = [
            {
                "id": "r1",
                "user_id": "u1",
                "title": "Influences: Literatur",
                "description": "Influences: Goethe, Schiller und Rilke",
            }
        ]
        profiles = [
            {"user_id": "u0", "motto": "Andere"},
            {
                "user_id": "u1",
                "values": ["Mut"],
                "motto": "Carpe diem",
                "favorite_authors": ["Mann"],
            },
        ]
        records_file.write_text(yaml.dump({"records": records}), encoding="utf-8")
        profiles_file.write_text(yaml.dump({"profiles": profiles}), encoding="utf-8")

        result = run_migration(YamlRecordStore(records_file, profiles_file), NO_DELAY, now=NOW)

        assert result.updated == 1
        stored = yaml.safe_load(profiles_file.read_text(encoding="utf-8"))["profiles"]
        assert [profile["user_id"] for profile in stored] == ["u0", "u1"]
        assert stored[0] == {"user_id": "u0", "motto": "Andere"}
        assert stored[1]["motto"] == "Carpe diem"
        assert stored[1]["favorite_authors"] == ["Mann"]
        assert stored[1]["values"] == ["Mut"]
        assert [entry["name"] for entry in stored[1]["influences"]] == [
            "Goethe",
            "Schiller",
            "Rilke",
        ]
        assert stored[1]["updated_at"] == NOW


class TestReport:
    """Tests for the YAML run report."""

    def test_save_report(self, tmp_path):
        result = MigrationResult(analyzed=3, deleted=2, updated=1, errors=["User u1: boom"])

        report_file = save_report(result, tmp_path / "runs" / "migrate.yaml")

        assert yaml.safe_load(report_file.read_text(encoding="utf-8")) == result.to_dict()
