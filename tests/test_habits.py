"""Tests for daybook.habits.

Covers:
- add / check / uncheck, including idempotent uncheck
- current and longest streak math
- rename carrying completions and notes
- export / import merge
- CLI output and exit codes
"""

import json
from datetime import date, timedelta

import pytest

from daybook import habits
from daybook.config import today
from daybook.errors import DuplicateError, NotFoundError, ValidationError


def days_ago(n):
    return (today() - timedelta(days=n)).isoformat()


class TestStreakMath:

    def test_current_streak_counts_back_from_reference(self):
        ref = date(2024, 3, 10)
        dates = ["2024-03-08", "2024-03-09", "2024-03-10"]
        assert habits.current_streak(dates, ref) == 3

    def test_current_streak_zero_when_reference_missing(self):
        assert habits.current_streak(["2024-03-09"], date(2024, 3, 10)) == 0

    def test_longest_streak_finds_best_run(self):
        dates = ["2024-01-01", "2024-01-02", "2024-01-05", "2024-01-06", "2024-01-07", "2024-01-09"]
        assert habits.longest_streak(dates) == 3

    def test_longest_streak_ignores_duplicates(self):
        assert habits.longest_streak(["2024-01-01", "2024-01-01", "2024-01-02"]) == 2

    def test_longest_streak_empty(self):
        assert habits.longest_streak([]) == 0

    def test_week_count_starts_monday(self):
        ref = date(2024, 3, 13)  # Wednesday
        dates = ["2024-03-10", "2024-03-11", "2024-03-13"]
        assert habits.week_count(dates, ref) == 2


class TestAddAndCheck:

    def test_add_rejects_duplicate(self):
        habits.add_habit("exercise")
        with pytest.raises(DuplicateError):
            habits.add_habit("exercise")

    def test_add_rejects_empty(self):
        with pytest.raises(ValidationError):
            habits.add_habit("   ")

    def test_check_unknown_habit(self):
        with pytest.raises(NotFoundError):
            habits.check_habit("nope")

    def test_check_twice_is_noop(self):
        habits.add_habit("read")
        first = habits.check_habit("read")
        second = habits.check_habit("read")
        assert not first["already"]
        assert second["already"]
        assert habits.habit_streak("read")["total"] == 1

    def test_check_past_dates_builds_streak(self):
        habits.add_habit("read")
        for n in (2, 1, 0):
            habits.check_habit("read", days_ago(n))
        assert habits.habit_streak("read")["current"] == 3

    def test_uncheck_twice_leaves_state_unchanged(self):
        habits.add_habit("read")
        habits.check_habit("read")
        habits.uncheck_habit("read")
        after_first = habits.get_store().path.read_text()
        result = habits.uncheck_habit("read")
        assert not result["removed"]
        assert json.loads(habits.get_store().path.read_text()) == json.loads(after_first)

    def test_note_is_recorded(self):
        habits.add_habit("read")
        habits.check_habit("read", note="chapter 3")
        notes = habits.habit_notes("read")
        assert notes[0]["note"] == "chapter 3"


class TestRenameAndRemove:

    def test_rename_moves_history(self):
        habits.add_habit("run")
        habits.check_habit("run", note="5k")
        habits.rename_habit("run", "jog")
        assert habits.habit_streak("jog")["total"] == 1
        assert habits.habit_notes("jog")[0]["note"] == "5k"
        with pytest.raises(NotFoundError):
            habits.habit_streak("run")

    def test_rename_to_existing_name(self):
        habits.add_habit("a")
        habits.add_habit("b")
        with pytest.raises(DuplicateError):
            habits.rename_habit("a", "b")

    def test_remove_drops_completions(self):
        habits.add_habit("run")
        habits.check_habit("run")
        habits.remove_habit("run")
        assert habits.list_habits() == []

    def test_legacy_string_habits(self):
        habits.get_store().save({"habits": ["water"], "completions": {"water": [today().isoformat()]}})
        assert habits.list_habits()[0]["done_today"] is True
        habit = habits.edit_habit("water", 5)
        assert habit["weekly_target"] == 5


class TestExportImport:

    def test_import_merges_completions(self, tmp_path):
        habits.add_habit("read")
        habits.check_habit("read", days_ago(1))
        export = tmp_path / "habits.json"
        export.write_text(json.dumps(habits.export_habits()))

        habits.remove_habit("read")
        habits.add_habit("walk")
        result = habits.import_habits(export)

        assert result == {"added": 1, "total": 2}
        assert habits.habit_streak("read")["total"] == 1

    def test_import_missing_file(self, tmp_path):
        with pytest.raises(NotFoundError):
            habits.import_habits(tmp_path / "missing.json")


class TestCli:

    def test_add_check_streak(self, run_main, capsys):
        assert run_main(habits, "add", "meditate") == 0
        assert run_main(habits, "check", "meditate") == 0
        capsys.readouterr()
        assert run_main(habits, "streak", "meditate") == 0
        assert "Current streak: 1 days" in capsys.readouterr().out

    def test_default_is_list(self, run_main, capsys):
        assert run_main(habits) == 0
        assert "No habits tracked yet." in capsys.readouterr().out

    def test_unknown_habit_exits_one(self, run_main, capsys):
        assert run_main(habits, "check", "ghost") == 1
        assert "Habit 'ghost' not found" in capsys.readouterr().err

    def test_status_grid(self, run_main, capsys):
        run_main(habits, "add", "read")
        run_main(habits, "check", "read")
        capsys.readouterr()
        assert run_main(habits, "status", "3") == 0
        out = capsys.readouterr().out
        assert "Last 3 days" in out
        assert "●" in out
