"""
Tests for utility functions.
"""

from memoir_intake.util.files import ensure_dir, write_text


class TestFiles:
    """Tests for file utilities."""

    def test_ensure_dir_creates_directory(self, tmp_path):
        target = tmp_path / "drafts"

        result = ensure_dir(target)

        assert result == target
        assert target.is_dir()

    def test_ensure_dir_existing_directory(self, tmp_path):
        assert ensure_dir(tmp_path) == tmp_path

    def test_write_text_creates_parent_dirs(self, tmp_path):
        target = tmp_path / "data" / "records.yaml"

        write_text(target, "records: []\n")

        assert target.read_text(encoding="utf-8") == "records: []\n"

    def test_write_text_unicode(self, tmp_path):
        target = tmp_path / "draft.json"

        write_text(target, '{"name": "Jörg Größe"}')

        assert "Größe" in target.read_text(encoding="utf-8")
