"""Tests for daybook.templates: placeholder rendering and storage."""

import json

import pytest

from daybook import templates
from daybook.config import now_local
from daybook.errors import DuplicateError, NotFoundError, ValidationError


class TestRendering:

    def test_extract_variables_skips_builtins(self):
        content = "Hi {{name}}, on {{_date_}} see {{place:the office}} and {{name}} again"
        assert templates.extract_variables(content) == [("name", None), ("place", "the office")]

    def test_default_used_when_missing(self):
        assert templates.render("Meet at {{place:noon}}", {}) == "Meet at noon"

    def test_value_overrides_default(self):
        assert templates.render("Meet at {{place:noon}}", {"place": "3pm"}) == "Meet at 3pm"

    def test_missing_required_lists_all(self):
        with pytest.raises(ValidationError, match="Missing required variable\\(s\\): a, b"):
            templates.render("{{a}} {{b}} {{c:ok}}", {})

    def test_builtins(self):
        out = templates.render("{{_year_}} {{_name_}}", {}, "standup")
        assert out == f"{now_local().year} standup"

    def test_parse_assignments(self):
        assert templates.parse_assignments(["a=1", "b=x=y"]) == {"a": "1", "b": "x=y"}
        with pytest.raises(ValidationError):
            templates.parse_assignments(["novalue"])


class TestStorage:

    def test_names_are_sanitized(self):
        assert templates.create_template("Weekly Report!", "x")["name"] == "weekly-report"
        assert templates.get_template("weekly report")["content"] == "x"

    def test_duplicate(self):
        templates.create_template("memo", "x")
        with pytest.raises(DuplicateError):
            templates.create_template("Memo", "y")

    def test_use_counts(self):
        templates.create_template("hello", "Hello {{who}}")
        assert templates.use_template("hello", {"who": "Sam"}) == "Hello Sam"
        assert templates.get_template("hello")["uses"] == 1

    def test_failed_render_does_not_count(self):
        templates.create_template("hello", "Hello {{who}}")
        with pytest.raises(ValidationError):
            templates.use_template("hello", {})
        assert templates.get_template("hello")["uses"] == 0

    def test_search(self):
        templates.create_template("bug", "Steps to reproduce", description="Bug report")
        templates.create_template("memo", "To whom")
        assert [t["name"] for t in templates.search_templates("REPRODUCE")] == ["bug"]

    def test_delete_missing(self):
        with pytest.raises(NotFoundError):
            templates.delete_template("ghost")


class TestExportImport:

    def test_round_trip(self, tmp_path):
        templates.create_template("standup", "Yesterday: {{done}}\nToday: {{next}}", "Daily", "work")
        path = tmp_path / "standup.json"
        path.write_text(json.dumps(templates.export_template("standup")))
        templates.delete_template("standup")

        imported = templates.import_template(path)
        assert imported["content"] == "Yesterday: {{done}}\nToday: {{next}}"
        assert imported["category"] == "work"

    def test_import_under_new_name(self, tmp_path):
        templates.create_template("standup", "x")
        path = tmp_path / "standup.json"
        path.write_text(json.dumps(templates.export_template("standup")))
        assert templates.import_template(path, "standup-copy")["name"] == "standup-copy"


class TestCli:

    def test_new_and_use(self, run_main, capsys):
        assert run_main(templates, "new", "greet", "Hello {{who:world}}!") == 0
        capsys.readouterr()
        assert run_main(templates, "use", "greet") == 0
        assert capsys.readouterr().out == "Hello world!\n"

    def test_use_to_file(self, run_main, tmp_path):
        run_main(templates, "new", "greet", "Hello {{who}}")
        out = tmp_path / "out.txt"
        assert run_main(templates, "use", "greet", "who=Ada", "-o", str(out)) == 0
        assert out.read_text() == "Hello Ada"

    def test_missing_variable_exits_one(self, run_main, capsys):
        run_main(templates, "new", "greet", "Hello {{who}}")
        assert run_main(templates, "use", "greet") == 1
        assert "Missing required variable(s): who" in capsys.readouterr().err
