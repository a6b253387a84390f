"""Tests for daybook.retrospective."""

import pytest

from daybook import retrospective as retro
from daybook.config import today
from daybook.errors import NotFoundError, ValidationError


class TestNewRetro:

    def test_records_sections(self):
        r = retro.new_retro("Sprint 4", went_well=["shipped"], didnt_go_well=["scope creep"],
                            learned=["cut earlier"], actions=["write RFC"], rating=4)
        assert r["id"] == 1
        assert r["went_well"] == ["shipped"]
        assert r["action_items"][0] == {"id": 1, "text": "write RFC", "completed": False, "completed_at": None}

    def test_default_name_uses_date(self):
        r = retro.new_retro(went_well=["ok"])
        assert r["name"] == f"Retrospective {today().isoformat()}"

    def test_requires_content(self):
        with pytest.raises(ValidationError, match="Nothing to record"):
            retro.new_retro("empty", went_well=["  "])

    @pytest.mark.parametrize("rating", [0, 6])
    def test_rating_range(self, rating):
        with pytest.raises(ValidationError):
            retro.new_retro("x", rating=rating)


class TestActions:

    def test_action_ids_are_global(self):
        retro.new_retro("a", actions=["one", "two"])
        r = retro.new_retro("b", actions=["three"])
        assert r["action_items"][0]["id"] == 3

    def test_complete_action(self):
        retro.new_retro("a", actions=["one", "two"])
        item = retro.complete_action(2)
        assert item["completed"] and item["completed_at"]
        groups = retro.pending_actions()
        assert [i["text"] for _, i_list in groups for i in i_list] == ["one"]

    def test_complete_twice(self):
        retro.new_retro("a", actions=["one"])
        retro.complete_action(1)
        with pytest.raises(ValidationError, match="already completed"):
            retro.complete_action(1)

    def test_complete_missing(self):
        with pytest.raises(NotFoundError):
            retro.complete_action(5)


class TestStats:

    def test_stats(self):
        retro.new_retro("a", actions=["one", "two"], rating=3)
        retro.new_retro("b", went_well=["x"], rating=5)
        retro.new_retro("c", learned=["y"])
        retro.complete_action(1)
        s = retro.retro_stats()
        assert s["total"] == 3
        assert s["average_rating"] == 4.0
        assert s["rated"] == 2
        assert s["completion_rate"] == 50

    def test_format_rating(self):
        assert retro.format_rating(3) == "★★★☆☆"
        assert retro.format_rating(None) == ""


class TestCli:

    def test_new_then_view(self, run_main, capsys):
        assert run_main(retro, "new", "Q1", "-w", "hiring", "-a", "onboarding doc", "-r", "4") == 0
        assert "Saved retrospective #1: Q1" in capsys.readouterr().out
        assert run_main(retro, "view", "1") == 0
        out = capsys.readouterr().out
        assert "  - hiring" in out
        assert "[ ] #1 onboarding doc" in out

    def test_missing_retro_exits_one(self, run_main):
        assert run_main(retro, "view", "3") == 1
