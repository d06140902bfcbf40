"""
Tests for CLI commands.
"""

import json

import pytest
import yaml
from typer.testing import CliRunner

from memoir_intake.cli import app
from memoir_intake.onboarding.draft import Stage

runner = CliRunner()


@pytest.fixture
def in_workspace(temp_workspace, monkeypatch):
    """Run commands from inside an initialized workspace."""
    monkeypatch.chdir(temp_workspace.root)
    return temp_workspace


def invoke(*args):
    return runner.invoke(app, list(args))


class TestInit:
    """Tests for init command."""

    def test_init_creates_workspace(self, tmp_path):
        """Test that init creates workspace structure."""
        workspace_dir = tmp_path / "memoirs"

        result = invoke("init", str(workspace_dir))

        assert result.exit_code == 0
        assert (workspace_dir / "memoir-intake.yaml").exists()
        assert (workspace_dir / "drafts").exists()
        assert (workspace_dir / "data").exists()
        assert (workspace_dir / "runs").exists()
        assert "Next steps:" in result.stdout


class TestTopics:
    """Tests for classify and route commands."""

    def test_classify(self):
        result = invoke("classify", "Hast du Geschwister?")

        assert result.exit_code == 0
        assert "family" in result.stdout
        assert "life_event" in result.stdout

    def test_route(self):
        result = invoke("route", "values")

        assert result.exit_code == 0
        assert "user_profile" in result.stdout

    def test_route_unknown_topic(self):
        result = invoke("route", "hobbies")

        assert result.exit_code == 1
        assert "Unknown topic" in result.stdout


class TestOnboarding:
    """Tests for the onboarding subcommands."""

    def test_requires_workspace(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        result = invoke("onboarding", "show")

        assert result.exit_code == 1
        assert "workspace" in result.stdout.lower()

    def test_start_shows_entry_question(self, in_workspace):
        result = invoke("onboarding", "start")

        assert result.exit_code == 0
        assert "entry_5" in result.stdout

    def test_full_path_c(self, in_workspace):
        steps = [
            ("onboarding", "start", "entry_5"),
            ("onboarding", "next"),
            ("onboarding", "set-field", "C2", "relationshipToPerson", "family"),
            ("onboarding", "set-field", "C2", "thirdPersonAgeRange", "80_plus"),
            ("onboarding", "set-field", "C2", "thirdPersonLanguagePreference", "de"),
            ("onboarding", "next"),
        ]
        for args in steps:
            result = invoke(*args)
            assert result.exit_code == 0, result.stdout

        result = invoke(
            "onboarding",
            "complete",
            "--first-name",
            "Anna",
            "--email",
            "anna@example.org",
            "--address",
            "sie",
        )

        assert result.exit_code == 0, result.stdout
        assert "Onboarding completed" in result.stdout
        draft = in_workspace.draft_store().load("default")
        assert draft.stage is Stage.COMPLETED
        assert draft.responses["C2"]["thirdPersonAgeRange"] == "80_plus"

    def test_answer_and_toggle(self, in_workspace):
        invoke("onboarding", "start", "entry_1", "--draft", "user-7")

        result = invoke("onboarding", "toggle", "A1", "general_life", "--draft", "user-7")
        assert result.exit_code == 0
        invoke(
            "onboarding",
            "answer",
            "A1",
            '["general_life", "important_people"]',
            "--draft",
            "user-7",
        )

        draft = in_workspace.draft_store().load("user-7")
        assert draft.responses["A1"] == ["general_life", "important_people"]

    def test_invalid_answer_reports_field(self, in_workspace):
        invoke("onboarding", "start", "entry_1")

        result = invoke("onboarding", "answer", "A1", "nonsense")

        assert result.exit_code == 1
        assert "A1" in result.stdout
        assert in_workspace.draft_store().load("default").responses == {}

    def test_stage_violation_reported(self, in_workspace):
        result = invoke("onboarding", "next")

        assert result.exit_code == 1
        assert "not allowed" in result.stdout

    def test_neutral_excursion(self, in_workspace):
        invoke("onboarding", "start", "entry_1")
        for _ in range(3):
            invoke("onboarding", "next")
        invoke("onboarding", "answer", "A4", "start_storytelling")

        result = invoke("onboarding", "neutral")
        assert result.exit_code == 0
        assert in_workspace.draft_store().load("default").stage is Stage.NEUTRAL

        result = invoke("onboarding", "resume")
        assert result.exit_code == 0
        draft = in_workspace.draft_store().load("default")
        assert draft.stage is Stage.PATH
        assert draft.current_step_id == "A4"

        invoke("onboarding", "neutral")
        result = invoke("onboarding", "neutral", "--to-registration")
        assert result.exit_code == 0
        assert in_workspace.draft_store().load("default").stage is Stage.REGISTRATION

    def test_back_and_reset(self, in_workspace):
        invoke("onboarding", "start", "entry_2")
        invoke("onboarding", "next")

        invoke("onboarding", "back")
        assert in_workspace.draft_store().load("default").current_step_id == "B1"

        result = invoke("onboarding", "reset")
        assert result.exit_code == 0
        assert in_workspace.draft_store().load("default").stage is Stage.ENTRY


class TestMigrate:
    """Tests for the migrate command."""

    def write_records(self, workspace, records):
        records_file = workspace.root / "data" / "records.yaml"
        records_file.write_text(
            yaml.dump({"records": records}, allow_unicode=True), encoding="utf-8"
        )

    def test_migrate_with_report(self, in_workspace):
        self.write_records(
            in_workspace,
            [
                {"id": "r1", "user_id": "u1", "title": "Influences: x", "description": "Goethe"},
                {"id": "r2", "user_id": "u1", "title": "Urlaub", "description": "Italien"},
            ],
        )

        result = invoke("migrate", "--report")

        assert result.exit_code == 0, result.stdout
        reports = list((in_workspace.root / "runs").glob("migrate-*.yaml"))
        assert len(reports) == 1
        report = yaml.safe_load(reports[0].read_text(encoding="utf-8"))
        assert report == {"analyzed": 2, "deleted": 1, "updated": 1, "errors": []}

    def test_migrate_fatal_error(self, in_workspace):
        (in_workspace.root / "data" / "records.yaml").write_text("records: 5", encoding="utf-8")

        result = invoke("migrate")

        assert result.exit_code == 1
        assert "Failed to load source records" in result.stdout

    def test_migrate_requires_workspace(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        result = invoke("migrate")

        assert result.exit_code == 1


class TestVerbose:
    """Tests for the global options."""

    def test_verbose_flag_accepted(self):
        result = invoke("--verbose", "route", "family")

        assert result.exit_code == 0
        assert "life_event" in result.stdout

    def test_complete_prints_payload(self, in_workspace):
        invoke("onboarding", "start", "entry_5")
        invoke("onboarding", "next")
        invoke("onboarding", "next")

        result = invoke(
            "onboarding", "complete", "--first-name", "Jo", "--email", "jo@example.org"
        )

        assert result.exit_code == 0, result.stdout
        payload = json.loads(result.stdout[result.stdout.index("{"):])
        assert payload["path"] == "C"
        assert payload["full_name"] == "Jo"
