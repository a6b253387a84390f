"""Tests for daybook.bookmarks."""

import json

import pytest

from daybook import bookmarks
from daybook.errors import DuplicateError, NotFoundError, ValidationError


class TestAdd:

    def test_default_title_is_domain(self):
        bookmark = bookmarks.add_bookmark("https://docs.python.org/3/library/")
        assert bookmark["title"] == "docs.python.org"

    def test_tags_normalized(self):
        bookmark = bookmarks.add_bookmark("https://a.example", "A", ["Python", "python", " web "])
        assert bookmark["tags"] == ["python", "web"]

    def test_duplicate_url_rejected(self):
        bookmarks.add_bookmark("https://example.com")
        with pytest.raises(DuplicateError, match="Existing bookmark ID: 1"):
            bookmarks.add_bookmark("https://example.com", "again")

    def test_scheme_required_unless_forced(self):
        with pytest.raises(ValidationError):
            bookmarks.add_bookmark("example.com")
        assert bookmarks.add_bookmark("example.com", force=True)["title"] == "example.com"

    def test_ids_not_reused(self):
        bookmarks.add_bookmark("https://a.example")
        bookmarks.add_bookmark("https://b.example")
        bookmarks.remove_bookmark(2)
        assert bookmarks.add_bookmark("https://c.example")["id"] == 3


class TestQueries:

    @pytest.fixture(autouse=True)
    def seeded(self):
        bookmarks.add_bookmark("https://python.org", "Python", ["lang"])
        bookmarks.add_bookmark("https://rust-lang.org", "Rust", ["lang", "systems"])
        bookmarks.add_bookmark("https://news.example", "News")

    def test_list_by_tag(self):
        assert {b["title"] for b in bookmarks.list_bookmarks("LANG")} == {"Python", "Rust"}

    def test_search_matches_title_url_and_tags(self):
        assert [b["title"] for b in bookmarks.search_bookmarks("systems")] == ["Rust"]
        assert [b["title"] for b in bookmarks.search_bookmarks("news.example")] == ["News"]

    def test_tag_counts(self):
        assert bookmarks.tag_counts() == [("lang", 2), ("systems", 1)]

    def test_touch_counts_access(self):
        bookmarks.touch_bookmark(1)
        bookmark = bookmarks.touch_bookmark(1)
        assert bookmark["access_count"] == 2
        assert bookmark["accessed"]

    def test_edit_url_must_stay_unique(self):
        with pytest.raises(DuplicateError):
            bookmarks.edit_bookmark(1, url="https://rust-lang.org")

    def test_edit_url_is_validated(self):
        with pytest.raises(ValidationError):
            bookmarks.edit_bookmark(1, url="not a url")
        with pytest.raises(ValidationError):
            bookmarks.edit_bookmark(1, url="   ")
        assert bookmarks.list_bookmarks("lang")[-1]["url"] == "https://python.org"

    def test_edit_url_forced(self, run_main):
        assert run_main(bookmarks, "edit", "1", "--url", "intranet/wiki", "--force") == 0
        assert [b["url"] for b in bookmarks.export_bookmarks() if b["id"] == 1] == ["intranet/wiki"]

    def test_edit_nothing(self):
        with pytest.raises(ValidationError):
            bookmarks.edit_bookmark(1)

    def test_remove_missing(self):
        with pytest.raises(NotFoundError):
            bookmarks.remove_bookmark(99)


class TestImport:

    def test_import_skips_known_urls(self, tmp_path):
        bookmarks.add_bookmark("https://python.org", "Python")
        path = tmp_path / "bm.json"
        path.write_text(json.dumps([
            {"url": "https://python.org", "title": "dup"},
            {"url": "https://pypi.org", "tags": ["Packages"]},
        ]))
        assert bookmarks.import_bookmarks(path) == {"added": 1, "skipped": 1}
        assert bookmarks.list_bookmarks("packages")[0]["title"] == "pypi.org"

    def test_import_rejects_garbage(self, tmp_path):
        path = tmp_path / "bm.json"
        path.write_text('"just a string"')
        with pytest.raises(ValidationError):
            bookmarks.import_bookmarks(path)


class TestCli:

    def test_duplicate_add_exits_one(self, run_main, capsys):
        assert run_main(bookmarks, "add", "https://example.com") == 0
        assert run_main(bookmarks, "add", "https://example.com") == 1
        assert "already exists" in capsys.readouterr().err

    def test_open_uses_browser(self, run_main, capsys, monkeypatch):
        opened = []
        monkeypatch.setattr(bookmarks.webbrowser, "open", lambda url: opened.append(url) or True)
        run_main(bookmarks, "add", "https://example.com")
        assert run_main(bookmarks, "open", "1") == 0
        assert opened == ["https://example.com"]

    def test_open_print_only(self, run_main, capsys, monkeypatch):
        monkeypatch.setattr(bookmarks.webbrowser, "open", lambda url: pytest.fail("browser opened"))
        run_main(bookmarks, "add", "https://example.com")
        capsys.readouterr()
        assert run_main(bookmarks, "open", "1", "--print") == 0
        assert "https://example.com" in capsys.readouterr().out
