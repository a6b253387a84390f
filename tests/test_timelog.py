"""Tests for daybook.timelog: timer lifecycle, manual entries, reports."""

import json
import time

import pytest

from daybook import timelog
from daybook.config import today
from daybook.errors import DuplicateError, NotFoundError, StoreError, ValidationError


def rewind_timer(seconds):
    """Pretend the active timer started `seconds` ago."""
    path = timelog.active_path()
    timer = json.loads(path.read_text())
    timer["start_epoch"] = int(time.time()) - seconds
    path.write_text(json.dumps(timer))


class TestElapsed:

    def test_rounds_to_nearest_minute(self):
        timer = {"start_epoch": 1000}
        assert timelog.elapsed_minutes(timer, 1000 + 89) == 1
        assert timelog.elapsed_minutes(timer, 1000 + 90) == 2

    def test_at_least_one_minute(self):
        assert timelog.elapsed_minutes({"start_epoch": 1000}, 1005) == 1


class TestTimer:

    def test_start_stop_logs_entry(self):
        timelog.start_timer("website", "landing page", billable=True)
        rewind_timer(25 * 60)
        entry = timelog.stop_timer()
        assert entry["project"] == "website"
        assert entry["minutes"] == 25
        assert entry["billable"] is True
        assert timelog.get_active() is None
        assert timelog.read_entries()[0]["description"] == "landing page"

    def test_cannot_start_twice(self):
        timelog.start_timer("a")
        with pytest.raises(DuplicateError, match="Timer already running for: a"):
            timelog.start_timer("b")

    def test_stop_without_timer(self):
        with pytest.raises(NotFoundError):
            timelog.stop_timer()


class TestManualEntries:

    def test_log_and_summarize(self):
        timelog.log_time("docs", "30")
        timelog.log_time("docs", "15", "review")
        timelog.log_time("ops", "60", day="yesterday")
        summary = timelog.today_summary()
        assert summary["total"] == 45
        assert len(summary["entries"]) == 2

    def test_minutes_must_be_positive(self):
        with pytest.raises(ValidationError):
            timelog.log_time("docs", "0")
        with pytest.raises(ValidationError):
            timelog.log_time("docs", "abc")

    def test_ids_not_reused_after_delete(self):
        timelog.log_time("a", "5")
        timelog.log_time("b", "5")
        timelog.delete_entry(2)
        assert timelog.log_time("c", "5")["id"] == 3

    def test_delete_missing(self):
        with pytest.raises(NotFoundError):
            timelog.delete_entry(9)

    def test_csv_header(self):
        timelog.log_time("a", "5", "with, comma")
        lines = timelog.log_path().read_text().splitlines()
        assert lines[0] == ",".join(timelog.FIELDS)
        assert timelog.read_entries()[0]["description"] == "with, comma"

    def test_malformed_csv(self):
        timelog.log_path().write_text("id,date,project,minutes\n1,2024-01-01,x,notanumber\n")
        with pytest.raises(StoreError):
            timelog.read_entries()


class TestReports:

    def test_report_totals(self):
        timelog.log_time("a", "30", billable=True)
        timelog.log_time("b", "90")
        timelog.log_time("a", "10", day="30 days ago")
        result = timelog.report(7)
        assert result["projects"] == [("b", 90), ("a", 30)]
        assert result["total"] == 120
        assert result["billable"] == 30
        assert result["daily"] == [(today().isoformat(), 120)]

    def test_report_ignores_future_entries(self):
        timelog.log_time("a", "30")
        timelog.log_time("a", "45", day="tomorrow")
        result = timelog.report(7)
        assert result["total"] == 30
        assert result["daily"] == [(today().isoformat(), 30)]

    def test_project_totals_all_time(self):
        timelog.log_time("a", "30")
        timelog.log_time("a", "10", day="30 days ago")
        assert timelog.project_totals() == [("a", 40)]


class TestCli:

    def test_log_then_today(self, run_main, capsys):
        assert run_main(timelog, "log", "writing", "90", "chapter 2") == 0
        capsys.readouterr()
        assert run_main(timelog) == 0
        out = capsys.readouterr().out
        assert "writing - 1h 30m - chapter 2" in out
        assert "Total today: 1h 30m" in out

    def test_stop_without_timer_exits_one(self, run_main, capsys):
        assert run_main(timelog, "stop") == 1
        assert "No active timer" in capsys.readouterr().err
