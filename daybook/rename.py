#!/usr/bin/env python3
"""Batch file renamer with preview and undo.

Every operation works on the non-hidden regular files directly inside one
directory, in name order. Nothing is touched unless --apply is given; an
existing destination is skipped rather than overwritten. Applied operations
are recorded so the last one can be undone.

Usage:
    daybook-rename replace <find> <replace> [dir] [--apply]
    daybook-rename prefix <prefix> [dir] [--apply]
    daybook-rename suffix <suffix> [dir] [--apply]
    daybook-rename number [dir] [--start 1] [--padding 3] [--position prefix|suffix] [--apply]
    daybook-rename date [dir] [--format %Y-%m-%d] [--apply]
    daybook-rename lower|upper [dir] [--apply]
    daybook-rename spaces [dir] [--char _] [--apply]
    daybook-rename strip <chars> [dir] [--apply]
    daybook-rename ext <extension> [dir] [--apply]
    daybook-rename undo
    daybook-rename history
"""

import logging
import os
import sys
from datetime import datetime
from pathlib import Path
from typing import Callable

from daybook.config import timestamp, tool_dir
from daybook.errors import NotFoundError, StoreError, ValidationError
from daybook.store import JsonStore
from daybook.utils import CLIParser, add_command, make_logger, parse_cli, run_cli

log = logging.getLogger(__name__)


def history_store() -> JsonStore:
    return JsonStore(tool_dir("rename") / "history.json", {"operations": []})


def list_files(directory: Path) -> list:
    """Non-hidden regular files directly inside directory, sorted by name."""
    directory = Path(directory)
    if not directory.is_dir():
        raise NotFoundError(f"Directory not found: {directory}")
    return sorted(p for p in directory.iterdir() if p.is_file() and not p.name.startswith("."))


def split_ext(filename: str) -> tuple:
    """('name', 'ext') with ext '' when there is none."""
    stem, dot, ext = filename.rpartition(".")
    if not dot or not stem:
        return filename, ""
    return stem, ext


def join_ext(stem: str, ext: str) -> str:
    return f"{stem}.{ext}" if ext else stem

# =============================================================================
# Name transforms
# =============================================================================

def replace_transform(find: str, replace: str) -> Callable:
    if not find:
        raise ValidationError("Please provide a search string")
    return lambda path, index: path.name.replace(find, replace)


def prefix_transform(prefix: str) -> Callable:
    if not prefix:
        raise ValidationError("Please provide a prefix")
    return lambda path, index: prefix + path.name


def suffix_transform(suffix: str) -> Callable:
    if not suffix:
        raise ValidationError("Please provide a suffix")

    def transform(path, index):
        stem, ext = split_ext(path.name)
        return join_ext(stem + suffix, ext)
    return transform


def number_transform(start: int = 1, padding: int = 3, position: str = "prefix") -> Callable:
    if position not in ("prefix", "suffix"):
        raise ValidationError(f"Invalid position: {position} (use prefix or suffix)")
    if padding < 0:
        raise ValidationError(f"Invalid padding: {padding}")

    def transform(path, index):
        num = f"{start + index:0{padding}d}"
        stem, ext = split_ext(path.name)
        if position == "prefix":
            return join_ext(f"{num}_{stem}", ext)
        return join_ext(f"{stem}_{num}", ext)
    return transform


def date_transform(fmt: str = "%Y-%m-%d") -> Callable:
    def transform(path, index):
        modified = datetime.fromtimestamp(path.stat().st_mtime)
        return f"{modified.strftime(fmt)}_{path.name}"
    return transform


def spaces_transform(char: str = "_") -> Callable:
    return lambda path, index: path.name.replace(" ", char)


def strip_transform(chars: str) -> Callable:
    if not chars:
        raise ValidationError("Please provide characters to strip")
    table = str.maketrans("", "", chars)
    return lambda path, index: path.name.translate(table)


def ext_transform(new_ext: str) -> Callable:
    new_ext = new_ext.lstrip(".")
    if not new_ext:
        raise ValidationError("Please provide new extension")
    return lambda path, index: join_ext(split_ext(path.name)[0], new_ext)

# =============================================================================
# Planning and applying
# =============================================================================

def plan(directory: Path, transform: Callable) -> list:
    """(source, destination) pairs for files whose name would change."""
    moves = []
    for index, path in enumerate(list_files(directory)):
        new_name = transform(path, index)
        if not new_name or new_name == path.name or "/" in new_name or new_name in (".", ".."):
            continue
        moves.append((path, path.with_name(new_name)))
    return moves


def apply(op_type: str, directory: Path, moves: list) -> dict:
    """Perform the planned renames and record them for undo."""
    done = []
    skipped = []
    try:
        for source, dest in moves:
            if dest.exists():
                skipped.append((source, dest))
                continue
            try:
                os.rename(source, dest)
            except OSError as e:
                raise StoreError(f"Could not rename {source.name} to {dest.name}: {e.strerror or e}") from e
            done.append({"from": str(source), "to": str(dest)})
    finally:
        # record whatever was renamed before a failure
        if done:
            with history_store().transaction() as history:
                history["operations"].append({
                    "type": op_type,
                    "directory": str(Path(directory).resolve()),
                    "timestamp": timestamp(),
                    "moves": done,
                })
    log.info("%s: renamed %d file(s) in %s, skipped %d", op_type, len(done), directory, len(skipped))
    return {"renamed": done, "skipped": skipped}


def undo_last() -> dict:
    """Reverse the most recent applied operation and drop it from history."""
    with history_store().transaction() as history:
        if not history["operations"]:
            raise NotFoundError("No operations to undo.")
        op = history["operations"].pop()
        restored = []
        missing = []
        for move in reversed(op["moves"]):
            current, original = Path(move["to"]), Path(move["from"])
            if current.is_file() and not original.exists():
                os.rename(current, original)
                restored.append(original)
            else:
                missing.append(current)
    log.info("undid %s in %s: restored %d, skipped %d", op["type"], op["directory"], len(restored), len(missing))
    return {"operation": op, "restored": restored, "skipped": missing}


def recent_operations(limit: int = 10) -> tuple:
    with history_store().read() as history:
        operations = history["operations"]
    return list(reversed(operations))[:limit], len(operations)

# =============================================================================
# CLI
# =============================================================================

def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-rename", description="Batch file renamer (preview by default)")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    def operation(name, help_text, *positionals, aliases=()):
        sub = add_command(subparsers, name, aliases=aliases, help=help_text)
        for positional in positionals:
            sub.add_argument(positional)
        sub.add_argument("directory", nargs="?", default=".", help="Directory (default: current)")
        sub.add_argument("--apply", action="store_true", help="Actually rename (default: preview)")
        return sub

    # replace
    operation("replace", "Find and replace in filenames", "find", "replace")

    # prefix / suffix
    operation("prefix", "Add a prefix", "prefix")
    operation("suffix", "Add a suffix before the extension", "suffix")

    # number
    number_parser = operation("number", "Add sequential numbers", aliases=["num"])
    number_parser.add_argument("--start", type=int, default=1, help="First number (default: 1)")
    number_parser.add_argument("--padding", type=int, default=3, help="Digits (default: 3)")
    number_parser.add_argument("--position", default="prefix", choices=["prefix", "suffix"])

    # date
    date_parser = operation("date", "Prefix the modification date")
    date_parser.add_argument("--format", default="%Y-%m-%d", help="strftime format (default: %%Y-%%m-%%d)")

    # lower / upper
    operation("lower", "Convert names to lowercase", aliases=["lowercase"])
    operation("upper", "Convert names to uppercase", aliases=["uppercase"])

    # spaces
    spaces_parser = operation("spaces", "Replace spaces")
    spaces_parser.add_argument("--char", default="_", help="Replacement (default: _)")

    # strip / ext
    operation("strip", "Remove characters", "chars")
    operation("ext", "Change the extension", "extension", aliases=["extension"])

    # undo / history
    add_command(subparsers, "undo", help="Undo the last applied operation")
    add_command(subparsers, "history", help="Show recent operations")

    return parser


def make_transform(args) -> Callable:
    if args.command == "replace":
        return replace_transform(args.find, args.replace)
    if args.command == "prefix":
        return prefix_transform(args.prefix)
    if args.command == "suffix":
        return suffix_transform(args.suffix)
    if args.command == "number":
        return number_transform(args.start, args.padding, args.position)
    if args.command == "date":
        return date_transform(args.format)
    if args.command == "lower":
        return lambda path, index: path.name.lower()
    if args.command == "upper":
        return lambda path, index: path.name.upper()
    if args.command == "spaces":
        return spaces_transform(args.char)
    if args.command == "strip":
        return strip_transform(args.chars)
    return ext_transform(args.extension)


def run(args) -> int:
    if args.command == "undo":
        result = undo_last()
        op = result["operation"]
        print("=== Undo Last Rename Operation ===")
        print()
        print(f"Type: {op['type']}")
        print(f"Time: {op['timestamp']}")
        print(f"Directory: {op['directory']}")
        print()
        for path in result["restored"]:
            print(f"  Restored: {path.name}")
        for path in result["skipped"]:
            print(f"  Skipped (not found): {path.name}")
        print()
        print("Undo complete.")
        return 0

    if args.command == "history":
        operations, total = recent_operations()
        print("=== Rename History ===")
        print()
        if not operations:
            print("No operations recorded.")
            return 0
        for op in operations:
            print(f"  {op['timestamp'].replace('T', ' ')}")
            print(f"    {op['type']} - {len(op['moves'])} file(s)")
            print(f"    {op['directory']}")
            print()
        print(f"Total: {total} operation(s) in history")
        return 0

    directory = Path(args.directory).expanduser()
    moves = plan(directory, make_transform(args))
    title = args.command if args.apply else f"Preview: {args.command}"
    print(f"=== {title} ===")
    print(f"Directory: {directory.resolve()}")
    print()

    if not moves:
        print("No files to rename.")
        return 0

    if not args.apply:
        for source, dest in moves:
            note = " (exists, will skip)" if dest.exists() else ""
            print(f"  {source.name} → {dest.name}{note}")
        print()
        print(f"Would rename {len(moves)} file(s)")
        print()
        print("Run again with --apply to rename")
        return 0

    result = apply(args.command, directory, moves)
    for move in result["renamed"]:
        print(f"  Renamed: {Path(move['from']).name} → {Path(move['to']).name}")
    for source, dest in result["skipped"]:
        print(f"  Skipped: {dest.name} already exists")
    print()
    print(f"Renamed {len(result['renamed'])} file(s)")
    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv)
    return run_cli(lambda: run(args), make_logger("rename"))


if __name__ == "__main__":
    sys.exit(main())
