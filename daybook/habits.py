#!/usr/bin/env python3
"""Daily habit tracker with streaks, weekly targets and notes.

Usage:
    daybook-habits add "<habit>" [--weekly N]
    daybook-habits check "<habit>" [date] [--note "<text>"]
    daybook-habits uncheck "<habit>" [date]
    daybook-habits list                       # Today's status (default)
    daybook-habits status [days]              # Grid of the last N days
    daybook-habits streak "<habit>"
    daybook-habits stats ["<habit>"]
    daybook-habits notes "<habit>" [limit]
    daybook-habits rename "<old>" "<new>"
    daybook-habits edit "<habit>" --weekly N
    daybook-habits remove "<habit>"
    daybook-habits export [file]
    daybook-habits import <file>
"""

import json
import logging
import sys
from collections import Counter
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

from daybook.config import timestamp, today, tool_dir
from daybook.errors import DuplicateError, NotFoundError, StoreError, ValidationError
from daybook.store import JsonStore
from daybook.utils import (
    CLIParser, add_command, make_logger, parse_cli, parse_date, parse_int, print_json, run_cli,
)

VERSION = "2.0"
DEFAULT_DATA = {"version": VERSION, "habits": [], "completions": {}, "notes": {}, "settings": {}}
WEEKDAY_NAMES = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")

log = logging.getLogger(__name__)


def get_store() -> JsonStore:
    return JsonStore(tool_dir("habits") / "habits.json", DEFAULT_DATA)


def migrate(data: dict) -> dict:
    """Bring an older document up to the current layout in place."""
    data.setdefault("habits", [])
    data.setdefault("completions", {})
    data.setdefault("notes", {})
    data.setdefault("settings", {})
    data["version"] = VERSION
    return data


def habit_name(entry) -> str:
    """Habits are stored as plain strings (legacy) or objects."""
    return entry if isinstance(entry, str) else entry["name"]


def habit_names(data: dict) -> list:
    return [habit_name(h) for h in data.get("habits", [])]


def weekly_target(data: dict, name: str) -> int:
    for entry in data.get("habits", []):
        if isinstance(entry, dict) and entry["name"] == name:
            return entry.get("weekly_target") or 0
    return 0


def _require(data: dict, name: str) -> None:
    if name not in habit_names(data):
        raise NotFoundError(f"Habit '{name}' not found")


def _load() -> dict:
    with get_store().read() as data:
        return migrate(data)

# =============================================================================
# Streak math
# =============================================================================

def current_streak(dates, reference: Optional[date] = None) -> int:
    """Consecutive completed days ending at reference (today by default)."""
    done = set(dates)
    day = reference or today()
    streak = 0
    while day.isoformat() in done:
        streak += 1
        day -= timedelta(days=1)
    return streak


def longest_streak(dates) -> int:
    """Longest run of consecutive days anywhere in the history."""
    longest = 0
    run = 0
    prev = None
    for value in sorted(set(dates)):
        day = date.fromisoformat(value)
        if prev is not None and day == prev + timedelta(days=1):
            run += 1
        else:
            run = 1
        longest = max(longest, run)
        prev = day
    return longest


def week_count(dates, reference: Optional[date] = None) -> int:
    """Completions from Monday of the current week through reference."""
    reference = reference or today()
    monday = reference - timedelta(days=reference.weekday())
    return sum(1 for d in set(dates) if monday.isoformat() <= d <= reference.isoformat())

# =============================================================================
# Operations
# =============================================================================

def add_habit(name: str, weekly: Optional[int] = None) -> dict:
    name = name.strip()
    if not name:
        raise ValidationError('Usage: habits add "habit name" [--weekly N]')
    if weekly is not None and weekly < 0:
        raise ValidationError(f"Invalid weekly target: {weekly}")

    with get_store().transaction() as data:
        migrate(data)
        if name in habit_names(data):
            raise DuplicateError(f"Habit '{name}' already exists")
        habit = {
            "name": name,
            "weekly_target": weekly or None,
            "created": today().isoformat(),
            "active": True,
        }
        data["habits"].append(habit)
        data["completions"].setdefault(name, [])

    log.info("added habit %s", name)
    return habit


def check_habit(name: str, day: Optional[str] = None, note: Optional[str] = None) -> dict:
    """Record a completion. Checking an already-checked day is a no-op."""
    when = parse_date(day, default=today()).isoformat()

    with get_store().transaction() as data:
        migrate(data)
        _require(data, name)
        dates = data["completions"].setdefault(name, [])
        already = when in dates
        if not already:
            dates.append(when)
            dates.sort()
        if note:
            data["notes"].setdefault(name, []).append({
                "date": when,
                "note": note,
                "timestamp": timestamp(),
            })
        streak = current_streak(dates)

    log.info("checked %s for %s", name, when)
    return {"name": name, "date": when, "already": already, "streak": streak}


def uncheck_habit(name: str, day: Optional[str] = None) -> dict:
    """Remove a completion. Unchecking a day that is not checked is a no-op."""
    when = parse_date(day, default=today()).isoformat()

    with get_store().transaction() as data:
        migrate(data)
        _require(data, name)
        dates = data["completions"].setdefault(name, [])
        removed = when in dates
        data["completions"][name] = [d for d in dates if d != when]

    log.info("unchecked %s for %s", name, when)
    return {"name": name, "date": when, "removed": removed}


def list_habits() -> list:
    """Today's status for every habit."""
    data = _load()
    today_str = today().isoformat()
    result = []
    for name in habit_names(data):
        dates = data["completions"].get(name, [])
        result.append({
            "name": name,
            "done_today": today_str in dates,
            "streak": current_streak(dates),
            "week_count": week_count(dates),
            "weekly_target": weekly_target(data, name),
        })
    return result


def status_grid(days: int = 7) -> dict:
    """Completion grid for the last N days, oldest first."""
    if days < 1:
        raise ValidationError(f"Invalid number of days: {days}")
    data = _load()
    end = today()
    window = [end - timedelta(days=i) for i in range(days - 1, -1, -1)]
    rows = []
    for name in habit_names(data):
        dates = set(data["completions"].get(name, []))
        rows.append({
            "name": name,
            "cells": [d.isoformat() in dates for d in window],
            "streak": current_streak(dates),
        })
    return {"days": [d.isoformat() for d in window], "habits": rows}


def habit_streak(name: str) -> dict:
    data = _load()
    _require(data, name)
    dates = data["completions"].get(name, [])
    return {
        "name": name,
        "current": current_streak(dates),
        "longest": longest_streak(dates),
        "total": len(set(dates)),
    }


def habit_stats(name: Optional[str] = None) -> list:
    data = _load()
    names = habit_names(data)
    if name is not None:
        _require(data, name)
        names = [name]

    end = today()
    last_30 = {(end - timedelta(days=i)).isoformat() for i in range(30)}
    result = []
    for habit in names:
        dates = sorted(set(data["completions"].get(habit, [])))
        by_weekday = Counter(date.fromisoformat(d).weekday() for d in dates)
        best_day = None
        if by_weekday:
            # Ties go to the earliest weekday
            best_num = min(by_weekday, key=lambda k: (-by_weekday[k], k))
            best_day = {"day": WEEKDAY_NAMES[best_num], "count": by_weekday[best_num]}
        done_30 = len(last_30.intersection(dates))
        result.append({
            "name": habit,
            "total": len(dates),
            "current": current_streak(dates),
            "longest": longest_streak(dates),
            "last_30": done_30,
            "rate_30": done_30 * 100 // 30,
            "best_day": best_day,
            "weekly_target": weekly_target(data, habit),
            "week_count": week_count(dates),
            "notes": len(data["notes"].get(habit, [])),
        })
    return result


def habit_notes(name: str, limit: int = 10) -> list:
    """Most recent notes first."""
    data = _load()
    _require(data, name)
    notes = sorted(data["notes"].get(name, []), key=lambda n: (n.get("date", ""), n.get("timestamp", "")), reverse=True)
    return notes[:limit]


def remove_habit(name: str) -> None:
    with get_store().transaction() as data:
        migrate(data)
        _require(data, name)
        data["habits"] = [h for h in data["habits"] if habit_name(h) != name]
        data["completions"].pop(name, None)
        data["notes"].pop(name, None)
    log.info("removed habit %s", name)


def rename_habit(old: str, new: str) -> None:
    """Rename a habit along with its completions and notes."""
    new = new.strip()
    if not new:
        raise ValidationError('Usage: habits rename "old" "new"')

    with get_store().transaction() as data:
        migrate(data)
        _require(data, old)
        if new in habit_names(data):
            raise DuplicateError(f"Habit '{new}' already exists")
        for i, entry in enumerate(data["habits"]):
            if habit_name(entry) == old:
                if isinstance(entry, str):
                    data["habits"][i] = new
                else:
                    entry["name"] = new
        if old in data["completions"]:
            data["completions"][new] = data["completions"].pop(old)
        if old in data["notes"]:
            data["notes"][new] = data["notes"].pop(old)
    log.info("renamed habit %s -> %s", old, new)


def edit_habit(name: str, weekly: int) -> dict:
    """Set the weekly target (0 clears it)."""
    if weekly < 0:
        raise ValidationError(f"Invalid weekly target: {weekly}")

    with get_store().transaction() as data:
        migrate(data)
        _require(data, name)
        for i, entry in enumerate(data["habits"]):
            if habit_name(entry) != name:
                continue
            if isinstance(entry, str):
                entry = {"name": name, "weekly_target": None, "created": today().isoformat(), "active": True}
                data["habits"][i] = entry
            entry["weekly_target"] = weekly or None
            habit = entry
    log.info("set weekly target of %s to %s", name, weekly)
    return habit


def export_habits() -> dict:
    return _load()


def import_habits(path: Path) -> dict:
    """Merge an exported document into the current one.

    Habits are matched by name; completions are unioned; notes are kept
    unique by timestamp.
    """
    try:
        incoming = json.loads(Path(path).read_text())
    except FileNotFoundError:
        raise NotFoundError(f"File not found: {path}")
    except json.JSONDecodeError as e:
        raise StoreError(f"Invalid JSON in {path}: {e}")
    if not isinstance(incoming, dict) or "habits" not in incoming:
        raise ValidationError(f"Not a habits export: {path}")
    migrate(incoming)

    added = 0
    with get_store().transaction() as data:
        migrate(data)
        names = set(habit_names(data))
        for entry in incoming["habits"]:
            if habit_name(entry) not in names:
                data["habits"].append(entry)
                names.add(habit_name(entry))
                added += 1
        for name, dates in incoming["completions"].items():
            merged = set(data["completions"].get(name, [])) | set(dates)
            data["completions"][name] = sorted(merged)
        for name, notes in incoming["notes"].items():
            existing = data["notes"].setdefault(name, [])
            seen = {n.get("timestamp") for n in existing}
            for note in notes:
                if note.get("timestamp") not in seen:
                    existing.append(note)
                    seen.add(note.get("timestamp"))

    log.info("imported %d habit(s) from %s", added, path)
    return {"added": added, "total": len(names)}

# =============================================================================
# CLI
# =============================================================================

def format_habit(habit: dict) -> str:
    box = "[✓]" if habit["done_today"] else "[ ]"
    weekly = ""
    if habit["weekly_target"]:
        weekly = f" [{habit['week_count']}/{habit['weekly_target']} this week]"
    return f"  {box} {habit['name']} ({habit['streak']} day streak){weekly}"


def print_grid(grid: dict) -> None:
    days = [date.fromisoformat(d) for d in grid["days"]]
    print(f"=== Habit Tracker (Last {len(days)} days) ===")
    print()
    print(" " * 20 + "".join(f"{d.day:3d}" for d in days))
    print(" " * 20 + "".join(f"{d.strftime('%a')[:2]:>3}" for d in days))
    print()
    for row in grid["habits"]:
        label = row["name"] if len(row["name"]) <= 18 else row["name"][:17] + "…"
        cells = "".join(" ● " if done else " ○ " for done in row["cells"])
        streak = f" {row['streak']}" if row["streak"] else ""
        print(f"{label:<20}{cells}{streak}")
    print()
    print("● = done, ○ = missed, number = current streak")


def print_stats(stats: list) -> None:
    print("=== Habit Statistics ===")
    print()
    for s in stats:
        print(s["name"])
        print()
        print(f"  Total completions:  {s['total']}")
        print(f"  Current streak:     {s['current']} days")
        print(f"  Longest streak:     {s['longest']} days")
        print(f"  Last 30 days:       {s['last_30']}/30 ({s['rate_30']}%)")
        if s["best_day"]:
            print(f"  Best day:           {s['best_day']['day']} ({s['best_day']['count']} completions)")
        if s["weekly_target"]:
            print(f"  This week:          {s['week_count']}/{s['weekly_target']}")
        if s["notes"]:
            print(f"  Notes:              {s['notes']}")
        print()


def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-habits", description="Daily habit tracker")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # add
    add_parser = add_command(subparsers, "add", help="Add a habit")
    add_parser.add_argument("name", help="Habit name")
    add_parser.add_argument("-w", "--weekly", type=int, help="Weekly target")

    # check
    check_parser = add_command(subparsers, "check", aliases=["done", "mark"], help="Mark a habit done")
    check_parser.add_argument("name", help="Habit name")
    check_parser.add_argument("date", nargs="?", help="Date (default: today)")
    check_parser.add_argument("-n", "--note", help="Attach a note")

    # uncheck
    uncheck_parser = add_command(subparsers, "uncheck", aliases=["undo", "unmark"], help="Unmark a habit")
    uncheck_parser.add_argument("name", help="Habit name")
    uncheck_parser.add_argument("date", nargs="?", help="Date (default: today)")

    # list
    list_parser = add_command(subparsers, "list", aliases=["ls"], help="Show today's habits")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # status
    status_parser = add_command(subparsers, "status", aliases=["grid", "show"], help="Show habit grid")
    status_parser.add_argument("days", nargs="?", default="7", help="Number of days (default: 7)")
    status_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # streak
    streak_parser = add_command(subparsers, "streak", help="Show streak for a habit")
    streak_parser.add_argument("name", help="Habit name")

    # stats
    stats_parser = add_command(subparsers, "stats", aliases=["statistics"], help="Detailed statistics")
    stats_parser.add_argument("name", nargs="?", help="Habit name (default: all)")
    stats_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # notes
    notes_parser = add_command(subparsers, "notes", aliases=["note"], help="Show notes for a habit")
    notes_parser.add_argument("name", help="Habit name")
    notes_parser.add_argument("limit", nargs="?", default="10", help="Number of notes (default: 10)")

    # remove
    remove_parser = add_command(subparsers, "remove", aliases=["rm", "delete"], help="Remove a habit")
    remove_parser.add_argument("name", help="Habit name")

    # rename
    rename_parser = add_command(subparsers, "rename", aliases=["mv"], help="Rename a habit")
    rename_parser.add_argument("old", help="Current name")
    rename_parser.add_argument("new", help="New name")

    # edit
    edit_parser = add_command(subparsers, "edit", help="Change a habit's weekly target")
    edit_parser.add_argument("name", help="Habit name")
    edit_parser.add_argument("-w", "--weekly", type=int, required=True, help="Weekly target (0 clears)")

    # export
    export_parser = add_command(subparsers, "export", help="Export all data as JSON")
    export_parser.add_argument("file", nargs="?", help="Output file (default: stdout)")

    # import
    import_parser = add_command(subparsers, "import", help="Merge data from an export")
    import_parser.add_argument("file", help="Export file")

    return parser


def run(args) -> int:
    if args.command == "add":
        habit = add_habit(args.name, args.weekly)
        print(f"Added habit: {habit['name']}")
        if habit["weekly_target"]:
            print(f"  Weekly target: {habit['weekly_target']}")

    elif args.command == "check":
        result = check_habit(args.name, args.date, args.note)
        if result["already"]:
            print(f"'{args.name}' already checked for {result['date']}")
        else:
            print(f"✓ Checked '{args.name}' for {result['date']}")
        if args.note:
            print(f"  Note: {args.note}")
        if result["streak"] > 1:
            print(f"  🔥 {result['streak']} day streak!")

    elif args.command == "uncheck":
        result = uncheck_habit(args.name, args.date)
        if result["removed"]:
            print(f"Unchecked '{args.name}' for {result['date']}")
        else:
            print(f"'{args.name}' was not checked for {result['date']}")

    elif args.command == "list":
        habits = list_habits()
        if args.json:
            print_json(habits)
        elif not habits:
            print("No habits tracked yet.")
            print('Add one with: daybook-habits add "exercise"')
        else:
            print(f"=== Today's Habits ({today().isoformat()}) ===")
            print()
            for habit in habits:
                print(format_habit(habit))
            print()
            done = sum(1 for h in habits if h["done_today"])
            print(f"Progress: {done}/{len(habits)} completed")

    elif args.command == "status":
        grid = status_grid(parse_int(args.days, "number of days", minimum=1))
        if args.json:
            print_json(grid)
        elif not grid["habits"]:
            print("No habits tracked yet.")
        else:
            print_grid(grid)

    elif args.command == "streak":
        s = habit_streak(args.name)
        print(f"{s['name']}")
        print(f"  Current streak: {s['current']} days")
        print(f"  Longest streak: {s['longest']} days")
        print(f"  Total completions: {s['total']}")

    elif args.command == "stats":
        stats = habit_stats(args.name)
        if args.json:
            print_json(stats)
        elif not stats:
            print("No habits tracked yet.")
        else:
            print_stats(stats)

    elif args.command == "notes":
        notes = habit_notes(args.name, parse_int(args.limit, "limit", minimum=1))
        if not notes:
            print(f"No notes for '{args.name}'")
        else:
            print(f"=== Notes: {args.name} ===")
            for note in notes:
                print(f"  {note['date']}: {note['note']}")

    elif args.command == "remove":
        remove_habit(args.name)
        print(f"Removed habit: {args.name}")

    elif args.command == "rename":
        rename_habit(args.old, args.new)
        print(f"Renamed '{args.old}' to '{args.new}'")

    elif args.command == "edit":
        habit = edit_habit(args.name, args.weekly)
        if habit["weekly_target"]:
            print(f"Set weekly target for '{args.name}': {habit['weekly_target']}")
        else:
            print(f"Cleared weekly target for '{args.name}'")

    elif args.command == "export":
        data = export_habits()
        if args.file:
            Path(args.file).write_text(json.dumps(data, indent=2) + "\n")
            print(f"Exported {len(data['habits'])} habit(s) to {args.file}")
        else:
            print_json(data)

    elif args.command == "import":
        result = import_habits(args.file)
        print(f"Imported {result['added']} new habit(s) ({result['total']} total)")

    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv, default="list")
    return run_cli(lambda: run(args), make_logger("habits"))


if __name__ == "__main__":
    sys.exit(main())
