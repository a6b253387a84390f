#!/usr/bin/env python3
"""Bookmark manager with tags, search and access tracking.

Usage:
    daybook-bookmarks add <url> ["<title>"] [tags...] [--force]
    daybook-bookmarks list [tag]
    daybook-bookmarks search "<query>"
    daybook-bookmarks tags
    daybook-bookmarks open <id> [--print]
    daybook-bookmarks edit <id> [--title T] [--url U] [--tags a b]
    daybook-bookmarks remove <id>
    daybook-bookmarks export [file]
    daybook-bookmarks import <file>
"""

import json
import logging
import re
import sys
import webbrowser
from collections import Counter
from pathlib import Path
from typing import Optional
from urllib.parse import urlparse

from daybook.config import now_local, tool_dir
from daybook.errors import DuplicateError, NotFoundError, StoreError, ValidationError
from daybook.store import JsonStore, next_id
from daybook.utils import CLIParser, add_command, make_logger, parse_cli, print_json, run_cli

URL_PATTERN = re.compile(r"^(https?|file|ftp)://", re.IGNORECASE)
DEFAULT_DATA = {"bookmarks": [], "next_id": 1}

log = logging.getLogger(__name__)


def get_store() -> JsonStore:
    return JsonStore(tool_dir("bookmarks") / "bookmarks.json", DEFAULT_DATA)


def _stamp() -> str:
    return now_local().strftime("%Y-%m-%d %H:%M:%S")


def is_valid_url(url: str) -> bool:
    return bool(URL_PATTERN.match(url))


def domain_of(url: str) -> str:
    """Host part of a URL, used as the default title."""
    netloc = urlparse(url).netloc
    return netloc or url


def _find(data: dict, bookmark_id: int) -> dict:
    for bookmark in data["bookmarks"]:
        if bookmark["id"] == bookmark_id:
            return bookmark
    raise NotFoundError(f"Bookmark #{bookmark_id} not found")


def _check_unique(data: dict, url: str, ignore_id: Optional[int] = None) -> None:
    for bookmark in data["bookmarks"]:
        if bookmark["url"] == url and bookmark["id"] != ignore_id:
            raise DuplicateError(f"Bookmark already exists for this URL. Existing bookmark ID: {bookmark['id']}")


def _clean_tags(tags) -> list:
    seen = []
    for tag in tags or []:
        tag = tag.strip().lower()
        if tag and tag not in seen:
            seen.append(tag)
    return seen

# =============================================================================
# Operations
# =============================================================================

def _check_url(url: str, force: bool) -> None:
    if not is_valid_url(url) and not force:
        raise ValidationError(
            "URL doesn't start with http://, https://, file://, or ftp:// (use --force to accept it anyway)"
        )


def add_bookmark(url: str, title: Optional[str] = None, tags=None, force: bool = False) -> dict:
    url = url.strip()
    if not url:
        raise ValidationError('Usage: bookmarks add <url> ["title"] [tags...]')
    _check_url(url, force)

    with get_store().transaction() as data:
        _check_unique(data, url)
        bookmark = {
            "id": next_id(data),
            "url": url,
            "title": title or domain_of(url),
            "tags": _clean_tags(tags),
            "created": _stamp(),
            "accessed": None,
            "access_count": 0,
        }
        data["bookmarks"].append(bookmark)

    log.info("added bookmark #%s: %s", bookmark["id"], url)
    return bookmark


def list_bookmarks(tag: Optional[str] = None) -> list:
    """Newest first, optionally restricted to one tag."""
    with get_store().read() as data:
        bookmarks = data["bookmarks"]
    if tag:
        tag = tag.lower()
        bookmarks = [b for b in bookmarks if tag in b.get("tags", [])]
    return sorted(bookmarks, key=lambda b: (b.get("created", ""), b["id"]), reverse=True)


def search_bookmarks(query: str) -> list:
    needle = query.lower().strip()
    if not needle:
        raise ValidationError('Usage: bookmarks search "query"')
    with get_store().read() as data:
        bookmarks = data["bookmarks"]
    return [
        b for b in bookmarks
        if needle in b["title"].lower()
        or needle in b["url"].lower()
        or any(needle in t for t in b.get("tags", []))
    ]


def tag_counts() -> list:
    """(tag, count) pairs, most used first."""
    with get_store().read() as data:
        counts = Counter(t for b in data["bookmarks"] for t in b.get("tags", []))
    return sorted(counts.items(), key=lambda kv: (-kv[1], kv[0]))


def touch_bookmark(bookmark_id: int) -> dict:
    """Record an access and return the bookmark."""
    with get_store().transaction() as data:
        bookmark = _find(data, bookmark_id)
        bookmark["accessed"] = _stamp()
        bookmark["access_count"] = bookmark.get("access_count", 0) + 1
    log.info("opened bookmark #%s", bookmark_id)
    return bookmark


def edit_bookmark(bookmark_id: int, title: Optional[str] = None, url: Optional[str] = None,
                  tags=None, force: bool = False) -> dict:
    if title is None and url is None and tags is None:
        raise ValidationError("Nothing to change: pass --title, --url or --tags")
    if url is not None:
        url = url.strip()
        if not url:
            raise ValidationError("URL cannot be empty")
        _check_url(url, force)
    with get_store().transaction() as data:
        bookmark = _find(data, bookmark_id)
        if url is not None:
            _check_unique(data, url, ignore_id=bookmark_id)
            bookmark["url"] = url
        if title is not None:
            bookmark["title"] = title or domain_of(bookmark["url"])
        if tags is not None:
            bookmark["tags"] = _clean_tags(tags)
    log.info("edited bookmark #%s", bookmark_id)
    return bookmark


def remove_bookmark(bookmark_id: int) -> dict:
    with get_store().transaction() as data:
        bookmark = _find(data, bookmark_id)
        data["bookmarks"] = [b for b in data["bookmarks"] if b["id"] != bookmark_id]
    log.info("removed bookmark #%s", bookmark_id)
    return bookmark


def export_bookmarks() -> list:
    with get_store().read() as data:
        return data["bookmarks"]


def import_bookmarks(path: Path) -> dict:
    """Import an exported list, skipping URLs that are already saved."""
    try:
        incoming = json.loads(Path(path).read_text())
    except FileNotFoundError:
        raise NotFoundError(f"File not found: {path}")
    except json.JSONDecodeError as e:
        raise StoreError(f"Invalid JSON in {path}: {e}")
    if isinstance(incoming, dict):
        incoming = incoming.get("bookmarks", [])
    if not isinstance(incoming, list):
        raise ValidationError(f"Not a bookmarks export: {path}")

    added = 0
    skipped = 0
    with get_store().transaction() as data:
        urls = {b["url"] for b in data["bookmarks"]}
        for item in incoming:
            url = item.get("url") if isinstance(item, dict) else None
            if not url:
                raise ValidationError(f"Malformed bookmark in {path}: {item}")
            if url in urls:
                skipped += 1
                continue
            urls.add(url)
            data["bookmarks"].append({
                "id": next_id(data),
                "url": url,
                "title": item.get("title") or domain_of(url),
                "tags": _clean_tags(item.get("tags")),
                "created": item.get("created") or _stamp(),
                "accessed": item.get("accessed"),
                "access_count": item.get("access_count", 0),
            })
            added += 1
    log.info("imported %d bookmark(s) from %s", added, path)
    return {"added": added, "skipped": skipped}

# =============================================================================
# CLI
# =============================================================================

def format_bookmark(bookmark: dict) -> str:
    tags = f" [{', '.join(bookmark['tags'])}]" if bookmark.get("tags") else ""
    return f"  [{bookmark['id']}] {bookmark['title']}{tags}\n      {bookmark['url']}"


def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-bookmarks", description="Bookmark manager")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # add
    add_parser = add_command(subparsers, "add", aliases=["a"], help="Add a bookmark")
    add_parser.add_argument("url", help="URL to save")
    add_parser.add_argument("title", nargs="?", help="Title (default: domain)")
    add_parser.add_argument("tags", nargs="*", help="Tags")
    add_parser.add_argument("-f", "--force", action="store_true", help="Accept non-standard URLs")

    # list
    list_parser = add_command(subparsers, "list", aliases=["ls"], help="List bookmarks")
    list_parser.add_argument("tag", nargs="?", help="Only bookmarks with this tag")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # search
    search_parser = add_command(subparsers, "search", aliases=["find", "s"], help="Search bookmarks")
    search_parser.add_argument("query", help="Text to find in title, URL or tags")

    # tags
    add_command(subparsers, "tags", help="Show tags with counts")

    # open
    open_parser = add_command(subparsers, "open", aliases=["go", "o"], help="Open a bookmark")
    open_parser.add_argument("id", type=int, help="Bookmark ID")
    open_parser.add_argument("--print", dest="print_only", action="store_true", help="Print the URL instead of opening it")

    # edit
    edit_parser = add_command(subparsers, "edit", aliases=["e"], help="Edit a bookmark")
    edit_parser.add_argument("id", type=int, help="Bookmark ID")
    edit_parser.add_argument("--title", help="New title")
    edit_parser.add_argument("--url", help="New URL")
    edit_parser.add_argument("--tags", nargs="*", help="Replace tags")
    edit_parser.add_argument("--force", action="store_true", help="Accept a URL without a known scheme")

    # remove
    remove_parser = add_command(subparsers, "remove", aliases=["rm", "delete"], help="Remove a bookmark")
    remove_parser.add_argument("id", type=int, help="Bookmark ID")

    # export
    export_parser = add_command(subparsers, "export", help="Export bookmarks as JSON")
    export_parser.add_argument("file", nargs="?", help="Output file (default: stdout)")

    # import
    import_parser = add_command(subparsers, "import", help="Import bookmarks from JSON")
    import_parser.add_argument("file", help="Export file")

    return parser


def run(args) -> int:
    if args.command == "add":
        bookmark = add_bookmark(args.url, args.title, args.tags, args.force)
        print(f"Bookmark #{bookmark['id']} added: {bookmark['title']}")
        if bookmark["tags"]:
            print(f"  Tags: {', '.join(bookmark['tags'])}")

    elif args.command == "list":
        bookmarks = list_bookmarks(args.tag)
        if args.json:
            print_json(bookmarks)
        elif not bookmarks:
            print(f"No bookmarks tagged '{args.tag}'." if args.tag else "No bookmarks yet.")
        else:
            header = f"=== Bookmarks tagged '{args.tag}' ===" if args.tag else "=== Bookmarks ==="
            print(header)
            print()
            for bookmark in bookmarks:
                print(format_bookmark(bookmark))

    elif args.command == "search":
        matches = search_bookmarks(args.query)
        if not matches:
            print(f"No bookmarks matching '{args.query}'")
        else:
            print(f"=== {len(matches)} result(s) for '{args.query}' ===")
            print()
            for bookmark in matches:
                print(format_bookmark(bookmark))

    elif args.command == "tags":
        counts = tag_counts()
        if not counts:
            print("No tags yet.")
        else:
            print("=== Tags ===")
            for tag, count in counts:
                print(f"  {tag} ({count})")

    elif args.command == "open":
        bookmark = touch_bookmark(args.id)
        print(f"Opening: {bookmark['title']}")
        print(bookmark["url"])
        if not args.print_only and not webbrowser.open(bookmark["url"]):
            print()
            print("Could not auto-open. Copy the URL above.")

    elif args.command == "edit":
        bookmark = edit_bookmark(args.id, args.title, args.url, args.tags, force=args.force)
        print(f"Updated bookmark #{bookmark['id']}:")
        print(format_bookmark(bookmark))

    elif args.command == "remove":
        bookmark = remove_bookmark(args.id)
        print(f"Removed: {bookmark['title']}")

    elif args.command == "export":
        bookmarks = export_bookmarks()
        if args.file:
            Path(args.file).write_text(json.dumps(bookmarks, indent=2) + "\n")
            print(f"Exported {len(bookmarks)} bookmark(s) to {args.file}")
        else:
            print_json(bookmarks)

    elif args.command == "import":
        result = import_bookmarks(args.file)
        print(f"Imported {result['added']} bookmark(s) ({result['skipped']} duplicates skipped)")

    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv, default="list")
    return run_cli(lambda: run(args), make_logger("bookmarks"))


if __name__ == "__main__":
    sys.exit(main())
