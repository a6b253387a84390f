"""Tests for the `daybook` dispatcher."""

from daybook import __version__, cli
from daybook.config import TOOLS


class TestDispatch:

    def test_lists_every_tool(self, capsys):
        assert cli.main([]) == 0
        out = capsys.readouterr().out
        for tool in TOOLS:
            assert tool in out

    def test_forwards_to_tool(self, capsys):
        assert cli.main(["tasks", "add", "buy", "milk"]) == 0
        assert "Task #1 added: buy milk" in capsys.readouterr().out

    def test_alias(self, capsys):
        assert cli.main(["todo", "list"]) == 0
        assert "No tasks" in capsys.readouterr().out

    def test_unknown_tool(self, capsys):
        assert cli.main(["spreadsheet"]) == 1
        assert "unknown tool" in capsys.readouterr().err

    def test_version(self, capsys):
        assert cli.main(["--version"]) == 0
        assert capsys.readouterr().out.strip() == __version__
