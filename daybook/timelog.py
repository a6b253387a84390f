#!/usr/bin/env python3
"""Track time spent on projects, with a live timer or manual entries.

Entries live in an append-only CSV; the running timer lives in a small JSON
side file that exists only while a timer is active.

Usage:
    daybook-timelog start "<project>" ["<description>"] [--billable]
    daybook-timelog stop
    daybook-timelog status
    daybook-timelog log "<project>" <minutes> ["<description>"] [--billable] [--date <date>]
    daybook-timelog today                     # Today's entries (default)
    daybook-timelog report [days]             # Default: 7 days
    daybook-timelog projects
    daybook-timelog delete <id>
"""

import csv
import io
import json
import logging
import sys
import time
from collections import defaultdict
from datetime import timedelta
from pathlib import Path
from typing import Optional

from daybook.config import now_local, today, tool_dir
from daybook.errors import DuplicateError, NotFoundError, StoreError, ValidationError
from daybook.store import JsonStore, atomic_write_text, file_lock, next_id
from daybook.utils import (
    CLIParser, add_command, format_minutes, make_logger, parse_cli, parse_date, parse_int,
    print_json, run_cli,
)

FIELDS = ["id", "date", "project", "minutes", "description", "start_time", "end_time", "billable"]

log = logging.getLogger(__name__)


def log_path() -> Path:
    return tool_dir("timelog") / "timelog.csv"


def active_path() -> Path:
    return tool_dir("timelog") / "active.json"


def meta_store() -> JsonStore:
    return JsonStore(tool_dir("timelog") / "meta.json", {"next_id": 1})


def _stamp() -> str:
    return now_local().strftime("%Y-%m-%d %H:%M:%S")

# =============================================================================
# CSV storage
# =============================================================================

def read_entries() -> list:
    """All logged entries, oldest first, with numeric fields converted."""
    path = log_path()
    if not path.exists():
        return []
    entries = []
    with open(path, newline="", encoding="utf-8") as f:
        for index, row in enumerate(csv.DictReader(f), start=1):
            try:
                entries.append({
                    "id": int(row.get("id") or index),
                    "date": row["date"],
                    "project": row["project"],
                    "minutes": int(row["minutes"]),
                    "description": row.get("description") or "",
                    "start_time": row.get("start_time") or "",
                    "end_time": row.get("end_time") or "",
                    "billable": (row.get("billable") or "").lower() in ("1", "true", "yes"),
                })
            except (KeyError, TypeError, ValueError) as e:
                raise StoreError(f"Malformed row {index} in {path}: {e}") from e
    return entries


def _render(entries: list) -> str:
    buf = io.StringIO()
    writer = csv.DictWriter(buf, fieldnames=FIELDS, lineterminator="\n")
    writer.writeheader()
    for entry in entries:
        writer.writerow({**entry, "billable": "true" if entry["billable"] else "false"})
    return buf.getvalue()


def _append(project: str, minutes: int, description: str, start_time: str,
            end_time: str, billable: bool, day: Optional[str] = None) -> dict:
    path = log_path()
    with file_lock(path):
        entries = read_entries()
        with meta_store().transaction() as meta:
            # Seed the counter past any ids already in the CSV
            meta["next_id"] = max([meta.get("next_id", 1)] + [e["id"] + 1 for e in entries])
            entry_id = next_id(meta)
        entry = {
            "id": entry_id,
            "date": day or today().isoformat(),
            "project": project,
            "minutes": minutes,
            "description": description,
            "start_time": start_time,
            "end_time": end_time,
            "billable": billable,
        }
        entries.append(entry)
        atomic_write_text(path, _render(entries))
    return entry

# =============================================================================
# Operations
# =============================================================================

def get_active() -> Optional[dict]:
    path = active_path()
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise StoreError(f"Active timer file is corrupt: {path} ({e})") from e


def start_timer(project: str, description: str = "", billable: bool = False) -> dict:
    project = project.strip()
    if not project:
        raise ValidationError('Usage: timelog start "project" ["description"]')
    with file_lock(active_path()):
        active = get_active()
        if active:
            raise DuplicateError(
                f"Timer already running for: {active['project']}. Stop it first with: timelog stop"
            )
        timer = {
            "project": project,
            "description": description,
            "start_time": _stamp(),
            "start_epoch": int(time.time()),
            "billable": billable,
        }
        atomic_write_text(active_path(), json.dumps(timer, indent=2) + "\n")
    log.info("started timer for %s", project)
    return timer


def elapsed_minutes(timer: dict, now_epoch: Optional[float] = None) -> int:
    """Whole minutes since the timer started, rounded to nearest, at least 1."""
    now_epoch = time.time() if now_epoch is None else now_epoch
    seconds = max(0, int(now_epoch) - int(timer["start_epoch"]))
    return max(1, (seconds + 30) // 60)


def stop_timer() -> dict:
    with file_lock(active_path()):
        timer = get_active()
        if not timer:
            raise NotFoundError("No active timer to stop.")
        minutes = elapsed_minutes(timer)
        entry = _append(
            timer["project"], minutes, timer.get("description", ""),
            timer["start_time"], _stamp(), bool(timer.get("billable")),
            day=timer["start_time"][:10],
        )
        active_path().unlink()
    log.info("stopped timer for %s after %d minute(s)", timer["project"], minutes)
    return entry


def log_time(project: str, minutes: str, description: str = "", billable: bool = False,
             day: Optional[str] = None) -> dict:
    project = project.strip()
    if not project:
        raise ValidationError('Usage: timelog log "project" <minutes> ["description"]')
    count = parse_int(minutes, "minutes (must be a positive number)", minimum=1)
    when = parse_date(day).isoformat() if day else None
    stamp = _stamp()
    entry = _append(project, count, description, stamp, stamp, billable, day=when)
    log.info("logged %d minute(s) for %s", count, project)
    return entry


def delete_entry(entry_id: int) -> dict:
    path = log_path()
    with file_lock(path):
        entries = read_entries()
        match = [e for e in entries if e["id"] == entry_id]
        if not match:
            raise NotFoundError(f"Entry #{entry_id} not found")
        atomic_write_text(path, _render([e for e in entries if e["id"] != entry_id]))
    log.info("deleted entry #%s", entry_id)
    return match[0]


def today_summary() -> dict:
    today_str = today().isoformat()
    entries = [e for e in read_entries() if e["date"] == today_str]
    return {
        "date": today_str,
        "entries": entries,
        "total": sum(e["minutes"] for e in entries),
        "active": get_active(),
    }


def report(days: int = 7) -> dict:
    """Totals per project and per day over the last N days."""
    if days < 1:
        raise ValidationError(f"Invalid number of days: {days}")
    until = today().isoformat()
    since = (today() - timedelta(days=days - 1)).isoformat()
    entries = [e for e in read_entries() if since <= e["date"] <= until]

    by_project = defaultdict(int)
    by_day = defaultdict(int)
    for e in entries:
        by_project[e["project"]] += e["minutes"]
        by_day[e["date"]] += e["minutes"]

    return {
        "days": days,
        "since": since,
        "projects": sorted(by_project.items(), key=lambda kv: (-kv[1], kv[0])),
        "daily": sorted(by_day.items(), reverse=True)[:7],
        "total": sum(by_project.values()),
        "billable": sum(e["minutes"] for e in entries if e["billable"]),
    }


def project_totals() -> list:
    totals = defaultdict(int)
    for e in read_entries():
        totals[e["project"]] += e["minutes"]
    return sorted(totals.items())

# =============================================================================
# CLI
# =============================================================================

def format_entry(entry: dict) -> str:
    flag = " $" if entry["billable"] else ""
    desc = f" - {entry['description']}" if entry["description"] else ""
    return f"  [{entry['id']}] {entry['project']} - {format_minutes(entry['minutes'])}{desc}{flag}"


def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-timelog", description="Track time spent on projects")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # start
    start_parser = add_command(subparsers, "start", help="Start timing a project")
    start_parser.add_argument("project", help="Project name")
    start_parser.add_argument("description", nargs="?", default="", help="What you are working on")
    start_parser.add_argument("-b", "--billable", action="store_true", help="Mark as billable")

    # stop
    add_command(subparsers, "stop", help="Stop the current timer")

    # status
    add_command(subparsers, "status", aliases=["st"], help="Show the current timer")

    # log
    log_parser = add_command(subparsers, "log", aliases=["add"], help="Log time manually")
    log_parser.add_argument("project", help="Project name")
    log_parser.add_argument("minutes", help="Minutes spent")
    log_parser.add_argument("description", nargs="?", default="", help="Description")
    log_parser.add_argument("-b", "--billable", action="store_true", help="Mark as billable")
    log_parser.add_argument("-d", "--date", help="Date of the work (default: today)")

    # today
    today_parser = add_command(subparsers, "today", aliases=["td"], help="Show today's time")
    today_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # report
    report_parser = add_command(subparsers, "report", aliases=["rep"], help="Show a time report")
    report_parser.add_argument("days", nargs="?", default="7", help="Number of days (default: 7)")
    report_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # projects
    add_command(subparsers, "projects", aliases=["proj"], help="List all projects")

    # delete
    delete_parser = add_command(subparsers, "delete", aliases=["rm", "remove"], help="Delete an entry")
    delete_parser.add_argument("id", type=int, help="Entry ID")

    return parser


def run(args) -> int:
    if args.command == "start":
        timer = start_timer(args.project, args.description, args.billable)
        print(f"Started timer for: {timer['project']}")
        if timer["description"]:
            print(f"Description: {timer['description']}")
        print(f"Started at: {timer['start_time']}")

    elif args.command == "stop":
        entry = stop_timer()
        print(f"Stopped timer for: {entry['project']}")
        print(f"Duration: {format_minutes(entry['minutes'])}")
        if entry["description"]:
            print(f"Description: {entry['description']}")

    elif args.command == "status":
        timer = get_active()
        if not timer:
            print("No active timer.")
            print('Start one with: daybook-timelog start "project"')
        else:
            print("=== Active Timer ===")
            print()
            print(f"Project: {timer['project']}")
            if timer.get("description"):
                print(f"Description: {timer['description']}")
            print(f"Started: {timer['start_time']}")
            print(f"Elapsed: {format_minutes(elapsed_minutes(timer))}")

    elif args.command == "log":
        entry = log_time(args.project, args.minutes, args.description, args.billable, args.date)
        print(f"Logged: {format_minutes(entry['minutes'])} for {entry['project']}")
        if entry["description"]:
            print(f"Description: {entry['description']}")

    elif args.command == "today":
        summary = today_summary()
        if args.json:
            print_json(summary)
            return 0
        print(f"=== Today's Time ({summary['date']}) ===")
        print()
        if not summary["entries"]:
            print("No time logged today.")
        else:
            for entry in summary["entries"]:
                print(format_entry(entry))
            print()
            print(f"Total today: {format_minutes(summary['total'])}")
        if summary["active"]:
            print()
            print(f"⏱️ Timer running: {summary['active']['project']} "
                  f"({format_minutes(elapsed_minutes(summary['active']))})")

    elif args.command == "report":
        result = report(parse_int(args.days, "number of days", minimum=1))
        if args.json:
            print_json(result)
            return 0
        print(f"=== Time Report (Last {result['days']} days) ===")
        print()
        if not result["projects"]:
            print("No time logged in this period.")
            return 0
        print("Time by Project:")
        for project, minutes in result["projects"]:
            print(f"  {project:<24} {format_minutes(minutes)}")
        print()
        print(f"Total: {format_minutes(result['total'])}")
        if result["billable"]:
            print(f"Billable: {format_minutes(result['billable'])}")
        print()
        print("Daily Breakdown:")
        for day, minutes in result["daily"]:
            print(f"  {day}  {format_minutes(minutes)}")

    elif args.command == "projects":
        totals = project_totals()
        print("=== Projects ===")
        print()
        if not totals:
            print("No projects yet.")
        for project, minutes in totals:
            print(f"  {project} - {format_minutes(minutes)} total")

    elif args.command == "delete":
        entry = delete_entry(args.id)
        print(f"Deleted entry #{entry['id']}: {entry['project']} ({format_minutes(entry['minutes'])})")

    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv, default="today")
    return run_cli(lambda: run(args), make_logger("timelog"))


if __name__ == "__main__":
    sys.exit(main())
