"""
Tests for draft persistence and sanitising.
"""

import json

import pytest

from memoir_intake.exceptions import DraftStorageError
from memoir_intake.onboarding import machine
from memoir_intake.onboarding.draft import DRAFT_VERSION, OnboardingDraft, Stage, create_empty_draft
from memoir_intake.onboarding.storage import DraftStore, sanitize_draft


@pytest.fixture
def store(tmp_path):
    return DraftStore(tmp_path / "drafts")


def path_draft():
    draft = machine.submit_entry_answer(create_empty_draft(), "entry_1").unwrap()
    return machine.toggle_option(draft, "A1", "general_life").unwrap()


class TestDraftStore:
    """Tests for loading and saving drafts."""

    def test_missing_draft_loads_empty(self, store):
        draft = store.load("nobody")

        assert draft == create_empty_draft()

    def test_save_and_load(self, store):
        draft = path_draft()

        draft_file = store.save("user-1", draft)
        loaded = store.load("user-1")

        assert draft_file.name == "user-1.json"
        assert loaded == draft
        assert loaded.responses["A1"] == ["general_life"]

    def test_saved_file_is_json(self, store):
        draft_file = store.save("user-1", path_draft())

        data = json.loads(draft_file.read_text(encoding="utf-8"))

        assert data["version"] == DRAFT_VERSION
        assert data["stage"] == "path"
        assert data["entry"] == {"answer_id": "entry_1", "path": "A"}

    def test_completed_draft_round_trips(self, store):
        draft = machine.submit_entry_answer(create_empty_draft(), "entry_5").unwrap()
        draft = machine.advance(machine.advance(draft).unwrap()).unwrap()
        draft = machine.complete_registration(
            draft,
            {"first_name_or_nickname": "Jörg", "email": "joerg@example.org"},
            completed_at="2025-03-01T10:00:00Z",
        ).unwrap()

        store.save("user-2", draft)

        assert store.load("user-2") == draft

    def test_unreadable_json_loads_empty(self, store):
        store.drafts_dir.mkdir(parents=True)
        (store.drafts_dir / "broken.json").write_text("{not json", encoding="utf-8")

        assert store.load("broken").stage is Stage.ENTRY

    def test_clear(self, store):
        store.save("user-1", path_draft())

        store.clear("user-1")
        store.clear("user-1")

        assert not store.draft_file("user-1").exists()

    def test_invalid_draft_id(self, store):
        with pytest.raises(DraftStorageError):
            store.draft_file("../escape")


class TestSanitizeDraft:
    """Tests for discarding inconsistent persisted drafts."""

    def test_valid_draft_kept(self):
        draft = path_draft()

        assert sanitize_draft(draft.to_dict()) == draft

    def test_other_version_discarded(self):
        data = path_draft().to_dict()
        data["version"] = "onboarding-v0"

        assert sanitize_draft(data) == create_empty_draft()

    def test_unknown_stage_discarded(self):
        data = path_draft().to_dict()
        data["stage"] = "somewhere"

        assert sanitize_draft(data) == create_empty_draft()

    def test_invalid_path_discarded(self):
        data = path_draft().to_dict()
        data["path"] = "Z"

        assert sanitize_draft(data) == create_empty_draft()

    def test_entry_path_mismatch_discarded(self):
        data = path_draft().to_dict()
        data["entry"] = {"answer_id": "entry_5", "path": "C"}

        assert sanitize_draft(data) == create_empty_draft()

    def test_step_not_on_path_discarded(self):
        data = path_draft().to_dict()
        data["current_step_id"] = "B2"

        assert sanitize_draft(data) == create_empty_draft()

    def test_path_stage_without_step_discarded(self):
        data = path_draft().to_dict()
        data["current_step_id"] = None

        assert sanitize_draft(data) == create_empty_draft()

    def test_non_mapping_discarded(self):
        assert sanitize_draft(["not", "a", "draft"]) == create_empty_draft()

    def test_empty_draft_kept(self):
        assert sanitize_draft(OnboardingDraft().to_dict()) == create_empty_draft()
