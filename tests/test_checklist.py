"""Tests for daybook.checklist."""

import json

import pytest

from daybook import checklist
from daybook.errors import DuplicateError, NotFoundError, ValidationError


@pytest.fixture
def release():
    checklist.create_checklist("Release Steps", "Before tagging")
    for item in ("bump version", "update changelog", "tag"):
        checklist.add_item("release steps", item)
    return "release-steps"


class TestNames:

    def test_slugify(self):
        assert checklist.slugify("  Weekly Review!! 2 ") == "weekly-review-2"

    def test_partial_match(self, release):
        assert checklist.get_checklist("release")["name"] == "Release Steps"

    def test_ambiguous_match(self, release):
        checklist.create_checklist("Release Notes")
        with pytest.raises(ValidationError, match="Multiple matches"):
            checklist.get_checklist("release")

    def test_not_found(self):
        with pytest.raises(NotFoundError):
            checklist.get_checklist("nothing")

    def test_duplicate_by_slug(self, release):
        with pytest.raises(DuplicateError):
            checklist.create_checklist("release steps")


class TestItems:

    def test_toggle_and_complete(self, release):
        checklist.toggle_item(release, 1)
        checklist.toggle_item(release, 2)
        result = checklist.toggle_item(release, 3)
        assert result["completed"]
        assert result["checklist"]["completion_count"] == 1
        assert [c["checklist"] for c in checklist.completion_history()] == ["Release Steps"]

    def test_untoggle_does_not_complete(self, release):
        checklist.toggle_item(release, 1)
        result = checklist.toggle_item(release, 1)
        assert not result["item"]["checked"]
        assert not result["completed"]

    def test_item_out_of_range(self, release):
        with pytest.raises(NotFoundError, match="Item #4"):
            checklist.toggle_item(release, 4)

    def test_remove_item(self, release):
        assert checklist.remove_item(release, 2)["text"] == "update changelog"
        assert [i["text"] for i in checklist.get_checklist(release)["items"]] == ["bump version", "tag"]

    def test_reset(self, release):
        checklist.toggle_item(release, 1)
        checklist.reset_checklist(release)
        assert not any(i["checked"] for i in checklist.get_checklist(release)["items"])


class TestCopyAndTemplates:

    def test_copy_is_unchecked(self, release):
        checklist.toggle_item(release, 1)
        copy = checklist.copy_checklist(release, "Hotfix Steps")
        assert [i["checked"] for i in copy["items"]] == [False, False, False]
        assert copy["completion_count"] == 0

    def test_use_template(self):
        created = checklist.use_template("code-review")
        assert created["name"] == "Code Review"
        assert created["items"][0]["text"] == "Code compiles without errors"

    def test_unknown_template(self):
        with pytest.raises(NotFoundError):
            checklist.use_template("nope")


class TestExportImport:

    def test_round_trip_preserves_items(self, release, tmp_path):
        path = tmp_path / "release.json"
        path.write_text(json.dumps(checklist.export_checklist(release)))
        checklist.delete_checklist(release)

        imported = checklist.import_checklist(path)
        assert imported["name"] == "Release Steps"
        assert [i["text"] for i in imported["items"]] == ["bump version", "update changelog", "tag"]

    def test_import_existing_needs_force(self, release, tmp_path):
        path = tmp_path / "release.json"
        path.write_text(json.dumps(checklist.export_checklist(release)))
        with pytest.raises(DuplicateError):
            checklist.import_checklist(path)
        assert len(checklist.import_checklist(path, force=True)["items"]) == 3

    def test_import_malformed(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"name": "x", "items": [{"text": ""}]}))
        with pytest.raises(ValidationError):
            checklist.import_checklist(path)


class TestCli:

    def test_new_add_show(self, run_main, capsys):
        assert run_main(checklist, "new", "Morning") == 0
        assert run_main(checklist, "add", "morning", "stretch") == 0
        assert run_main(checklist, "check", "morning", "1") == 0
        capsys.readouterr()
        assert run_main(checklist, "show", "morning") == 0
        out = capsys.readouterr().out
        assert "[x] stretch" in out
        assert "Progress: 1/1" in out

    def test_missing_checklist_exits_one(self, run_main):
        assert run_main(checklist, "show", "ghost") == 1
