"""Tests for daybook.rename: planning, applying, undo and history."""

import os
from pathlib import Path

import pytest

from daybook import rename
from daybook.errors import NotFoundError, StoreError, ValidationError


@pytest.fixture
def photos(tmp_path):
    folder = tmp_path / "photos"
    folder.mkdir()
    for name in ("Beach Day.JPG", "city.jpg", "notes"):
        (folder / name).write_text(name)
    (folder / ".hidden").write_text("x")
    (folder / "sub").mkdir()
    return folder


def names(folder):
    return sorted(p.name for p in folder.iterdir())


class TestTransforms:

    def test_split_ext(self):
        assert rename.split_ext("a.tar.gz") == ("a.tar", "gz")
        assert rename.split_ext("README") == ("README", "")
        assert rename.split_ext(".bashrc") == (".bashrc", "")

    def test_list_files_skips_hidden_and_dirs(self, photos):
        assert [p.name for p in rename.list_files(photos)] == ["Beach Day.JPG", "city.jpg", "notes"]

    def test_missing_directory(self, tmp_path):
        with pytest.raises(NotFoundError):
            rename.list_files(tmp_path / "nope")

    def test_suffix_goes_before_extension(self, photos):
        moves = rename.plan(photos, rename.suffix_transform("_v2"))
        assert [d.name for _, d in moves] == ["Beach Day_v2.JPG", "city_v2.jpg", "notes_v2"]

    def test_number_prefix_and_suffix(self, photos):
        prefixed = rename.plan(photos, rename.number_transform(start=9, padding=2))
        assert [d.name for _, d in prefixed] == ["09_Beach Day.JPG", "10_city.jpg", "11_notes"]
        suffixed = rename.plan(photos, rename.number_transform(position="suffix"))
        assert suffixed[1][1].name == "city_002.jpg"

    def test_unchanged_names_are_not_planned(self, photos):
        moves = rename.plan(photos, lambda path, index: path.name.lower())
        assert [s.name for s, _ in moves] == ["Beach Day.JPG"]

    def test_spaces_and_strip(self, photos):
        assert rename.plan(photos, rename.spaces_transform("-"))[0][1].name == "Beach-Day.JPG"
        moves = rename.plan(photos, rename.strip_transform("aeiou"))
        assert [d.name for _, d in moves] == ["Bch Dy.JPG", "cty.jpg", "nts"]

    def test_strip_to_empty_is_skipped(self, tmp_path):
        (tmp_path / "aaa").write_text("")
        assert rename.plan(tmp_path, rename.strip_transform("a")) == []

    def test_ext(self, photos):
        moves = rename.plan(photos, rename.ext_transform(".jpeg"))
        assert [d.name for _, d in moves] == ["Beach Day.jpeg", "city.jpeg", "notes.jpeg"]

    def test_date_prefix(self, photos):
        os.utime(photos / "city.jpg", (0, 1700000000))
        moves = rename.plan(photos, rename.date_transform("%Y"))
        assert ("city.jpg", "2023_city.jpg") in [(s.name, d.name) for s, d in moves]

    def test_empty_arguments(self):
        with pytest.raises(ValidationError):
            rename.prefix_transform("")
        with pytest.raises(ValidationError):
            rename.ext_transform(".")


class TestApplyAndUndo:

    def test_apply_renames_and_records(self, photos):
        result = rename.apply("prefix", photos, rename.plan(photos, rename.prefix_transform("2024_")))
        assert len(result["renamed"]) == 3
        assert names(photos) == [".hidden", "2024_Beach Day.JPG", "2024_city.jpg", "2024_notes", "sub"]
        operations, total = rename.recent_operations()
        assert total == 1
        assert operations[0]["type"] == "prefix"

    def test_existing_target_is_skipped(self, photos):
        (photos / "CITY.JPG").write_text("already here")
        moves = rename.plan(photos, lambda path, index: path.name.upper() if path.name == "city.jpg" else path.name)
        result = rename.apply("upper", photos, moves)
        assert result["renamed"] == []
        assert (photos / "CITY.JPG").read_text() == "already here"
        assert rename.recent_operations() == ([], 0)

    def test_failed_rename_keeps_partial_history(self, photos, monkeypatch):
        real_rename = os.rename
        calls = []

        def flaky_rename(source, dest):
            calls.append(source)
            if len(calls) == 2:
                raise PermissionError(13, "Permission denied")
            real_rename(source, dest)

        monkeypatch.setattr(os, "rename", flaky_rename)
        with pytest.raises(StoreError, match="city.jpg"):
            rename.apply("prefix", photos, rename.plan(photos, rename.prefix_transform("x_")))
        monkeypatch.undo()

        operations, total = rename.recent_operations()
        assert total == 1
        assert [Path(m["to"]).name for m in operations[0]["moves"]] == ["x_Beach Day.JPG"]
        rename.undo_last()
        assert names(photos) == [".hidden", "Beach Day.JPG", "city.jpg", "notes", "sub"]

    def test_failed_rename_exits_cleanly(self, photos, monkeypatch, run_main, capsys):
        def denied(source, dest):
            raise PermissionError(13, "Permission denied")

        monkeypatch.setattr(os, "rename", denied)
        assert run_main(rename, "prefix", "x_", str(photos), "--apply") == 1
        assert "Error: Could not rename" in capsys.readouterr().err

    def test_undo_restores_names(self, photos):
        before = names(photos)
        rename.apply("suffix", photos, rename.plan(photos, rename.suffix_transform("_x")))
        result = rename.undo_last()
        assert len(result["restored"]) == 3
        assert names(photos) == before
        assert rename.recent_operations() == ([], 0)

    def test_undo_skips_missing_files(self, photos):
        rename.apply("suffix", photos, rename.plan(photos, rename.suffix_transform("_x")))
        (photos / "notes_x").unlink()
        result = rename.undo_last()
        assert [p.name for p in result["skipped"]] == ["notes_x"]

    def test_undo_with_nothing(self):
        with pytest.raises(NotFoundError):
            rename.undo_last()


class TestCli:

    def test_preview_changes_nothing(self, run_main, photos, capsys):
        before = names(photos)
        assert run_main(rename, "lower", str(photos)) == 0
        out = capsys.readouterr().out
        assert "=== Preview: lower ===" in out
        assert "Would rename 1 file(s)" in out
        assert names(photos) == before

    def test_apply_then_history(self, run_main, photos, capsys):
        assert run_main(rename, "replace", "city", "town", str(photos), "--apply") == 0
        assert "Renamed 1 file(s)" in capsys.readouterr().out
        assert (photos / "town.jpg").exists()
        assert run_main(rename, "history") == 0
        out = capsys.readouterr().out
        assert "replace - 1 file(s)" in out
        assert "Total: 1 operation(s) in history" in out

    def test_no_command_exits_one(self, run_main):
        assert run_main(rename) == 1
