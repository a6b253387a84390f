"""Tests for daybook.scaffold: project creation and custom templates."""

import os

import pytest

from daybook import scaffold
from daybook.config import now_local
from daybook.errors import DuplicateError, NotFoundError, ValidationError


class TestCreate:

    def test_python_package(self, tmp_path):
        scaffold.set_variable("author", "Ada")
        result = scaffold.create_project("python-package", "widget", str(tmp_path))
        project = tmp_path / "widget"
        assert result["path"] == project
        assert "widget/__init__.py" in result["files"]
        assert '__author__ = "Ada"' in (project / "widget" / "__init__.py").read_text()
        assert 'name = "widget"' in (project / "pyproject.toml").read_text()
        assert (project / "tests").is_dir()

    def test_executable_bit(self, tmp_path):
        scaffold.create_project("bash-script", "backup", str(tmp_path))
        assert os.access(tmp_path / "backup" / "backup.sh", os.X_OK)

    def test_year_placeholder(self, tmp_path):
        scaffold.create_project("html-page", "site", str(tmp_path))
        assert f"&copy; {now_local().year}" in (tmp_path / "site" / "index.html").read_text()

    @pytest.mark.parametrize("name", ["1tool", "my tool", "", "a/b"])
    def test_invalid_project_name(self, tmp_path, name):
        with pytest.raises(ValidationError, match="Invalid project name"):
            scaffold.create_project("python-cli", name, str(tmp_path))

    def test_existing_directory_needs_force(self, tmp_path):
        (tmp_path / "tool").mkdir()
        with pytest.raises(DuplicateError):
            scaffold.create_project("python-cli", "tool", str(tmp_path))
        scaffold.create_project("python-cli", "tool", str(tmp_path), force=True)
        assert (tmp_path / "tool" / "tool.py").exists()

    def test_unknown_template(self, tmp_path):
        with pytest.raises(NotFoundError):
            scaffold.create_project("cobol-app", "x", str(tmp_path))


class TestCustomTemplates:

    @pytest.fixture
    def source(self, tmp_path):
        src = tmp_path / "src"
        (src / "bin").mkdir(parents=True)
        (src / "README.md").write_text("# {{PROJECT_NAME}} by {{AUTHOR}}\n")
        run = src / "bin" / "run.sh"
        run.write_text("#!/bin/sh\necho {{PROJECT_NAME}}\n")
        run.chmod(0o755)
        (src / "logo.png").write_bytes(b"\x89PNG\r\n\x1a\n\xff\xfe")
        (src / ".git").mkdir()
        (src / ".git" / "HEAD").write_text("ref")
        return src

    def test_add_snapshots_text_files(self, source):
        result = scaffold.add_template("starter", str(source), "My starter")
        assert result["files"] == ["README.md", "bin/run.sh"]
        assert result["skipped"] == ["logo.png"]
        template = scaffold.load_template("starter")
        assert template["custom"] is True
        assert template["executable"] == ["bin/run.sh"]

    def test_custom_template_creates_project(self, source, tmp_path):
        scaffold.add_template("starter", str(source))
        scaffold.set_variable("author", "Lin")
        scaffold.create_project("starter", "demo", str(tmp_path / "out"))
        project = tmp_path / "out" / "demo"
        assert (project / "README.md").read_text() == "# demo by Lin\n"
        assert os.access(project / "bin" / "run.sh", os.X_OK)

    def test_listed_and_removed(self, source):
        scaffold.add_template("starter", str(source), "My starter")
        assert {"name": "starter", "description": "My starter"} in scaffold.list_templates()["custom"]
        scaffold.remove_template("starter")
        assert scaffold.list_templates()["custom"] == []
        with pytest.raises(NotFoundError):
            scaffold.load_template("starter")

    def test_add_existing_needs_force(self, source):
        scaffold.add_template("starter", str(source))
        with pytest.raises(DuplicateError):
            scaffold.add_template("starter", str(source))

    def test_builtin_cannot_be_removed(self):
        with pytest.raises(ValidationError):
            scaffold.remove_template("python-cli")

    def test_path_escape_rejected(self, tmp_path):
        bad = scaffold.templates_dir() / "evil.json"
        bad.write_text('{"files": {"../outside.txt": "x"}}')
        with pytest.raises(ValidationError):
            scaffold.create_project("evil", "proj", str(tmp_path))
        assert not (tmp_path / "outside.txt").exists()


class TestConfig:

    def test_unknown_key(self):
        with pytest.raises(ValidationError):
            scaffold.set_variable("shoe_size", "42")

    def test_set_and_get(self):
        scaffold.set_variable("email", "me@example.com")
        assert scaffold.get_variables()["email"] == "me@example.com"


class TestCli:

    def test_default_lists_templates(self, run_main, capsys):
        assert run_main(scaffold) == 0
        out = capsys.readouterr().out
        for name in scaffold.BUILTIN_TEMPLATES:
            assert name in out

    def test_create(self, run_main, tmp_path, capsys):
        assert run_main(scaffold, "new", "makefile-project", "proj", str(tmp_path)) == 0
        assert "Project created successfully" in capsys.readouterr().out
        assert (tmp_path / "proj" / "Makefile").exists()

    def test_create_bad_name_exits_one(self, run_main, tmp_path):
        assert run_main(scaffold, "create", "python-cli", "9lives", str(tmp_path)) == 1
