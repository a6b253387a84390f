#!/usr/bin/env python3
"""Meeting notes with attendees, action items, series and archiving.

Meetings are kept in one JSON index; recurring meetings can be grouped into a
named series stored alongside it.

Usage:
    daybook-meetings new "<title>" [--attendees "a,b"] [--series "<name>"] [--note T]... [--action T]...
    daybook-meetings list [n] [--series <name>] [--archived]
    daybook-meetings view <id>
    daybook-meetings note <id> "<text>"
    daybook-meetings action <id> "<text>"
    daybook-meetings actions [id] [--all]
    daybook-meetings complete <meeting_id> <n>
    daybook-meetings search "<query>"
    daybook-meetings series [list|add|show|remove] ...
    daybook-meetings archive <id> | unarchive <id>
    daybook-meetings stats
    daybook-meetings remove <id>
"""

import logging
import sys
from collections import Counter
from datetime import timedelta
from typing import Optional

from daybook.config import now_local, today, tool_dir
from daybook.errors import DuplicateError, NotFoundError, ValidationError
from daybook.store import JsonStore, next_id
from daybook.utils import CLIParser, add_command, make_logger, parse_cli, parse_int, print_json, run_cli

log = logging.getLogger(__name__)

SERIES_ACTIONS = ("list", "add", "show", "remove")


def meeting_store() -> JsonStore:
    return JsonStore(tool_dir("meetings") / "meetings.json", {"meetings": [], "next_id": 1})


def series_store() -> JsonStore:
    return JsonStore(tool_dir("meetings") / "series.json", {"series": []})


def _stamp() -> str:
    return now_local().strftime("%Y-%m-%d %H:%M")


def _find(data: dict, meeting_id: int) -> dict:
    for meeting in data["meetings"]:
        if meeting["id"] == meeting_id:
            meeting.setdefault("attendees", [])
            meeting.setdefault("series", None)
            meeting.setdefault("archived", False)
            meeting.setdefault("notes", [])
            meeting.setdefault("action_items", [])
            return meeting
    raise NotFoundError(f"Meeting #{meeting_id} not found")


def _find_series(data: dict, name: str) -> Optional[dict]:
    for series in data["series"]:
        if series["name"] == name:
            return series
    return None


def split_attendees(value: Optional[str]) -> list:
    if not value:
        return []
    return [a.strip() for a in value.split(",") if a.strip()]

# =============================================================================
# Meetings
# =============================================================================

def new_meeting(title: str, attendees: Optional[str] = None, series: Optional[str] = None,
                notes=None, actions=None) -> dict:
    """Create a meeting. An unknown series is created on the fly."""
    title = title.strip()
    if not title:
        raise ValidationError('Usage: meetings new "Meeting Title" [--attendees "a,b"] [--series "name"]')

    stamp = _stamp()
    # Lock order: meetings before series, everywhere
    with meeting_store().transaction() as data:
        meeting = {
            "id": next_id(data),
            "title": title,
            "created": stamp,
            "modified": stamp,
            "attendees": split_attendees(attendees),
            "series": series or None,
            "archived": False,
            "notes": [n for n in (notes or []) if n.strip()],
            "action_items": [{"text": a, "done": False, "done_at": None} for a in (actions or []) if a.strip()],
        }
        data["meetings"].append(meeting)
        if series:
            with series_store().transaction() as sdata:
                entry = _find_series(sdata, series)
                if entry is None:
                    entry = _new_series_entry(series, "")
                    sdata["series"].append(entry)
                    log.info("created series %s", series)
                entry["meeting_ids"].append(meeting["id"])
                entry["last_meeting"] = today().isoformat()

    log.info("created meeting #%s: %s", meeting["id"], title)
    return meeting


def list_meetings(limit: Optional[int] = None, series: Optional[str] = None,
                  archived: bool = False) -> list:
    """Newest first. Archived meetings are shown only when archived=True."""
    with meeting_store().read() as data:
        meetings = data["meetings"]
    meetings = [m for m in meetings if bool(m.get("archived")) == archived]
    if series:
        meetings = [m for m in meetings if m.get("series") == series]
    meetings = sorted(meetings, key=lambda m: (m["created"], m["id"]), reverse=True)
    return meetings[:limit] if limit else meetings


def get_meeting(meeting_id: int) -> dict:
    with meeting_store().read() as data:
        return _find(data, meeting_id)


def add_note(meeting_id: int, text: str) -> dict:
    if not text.strip():
        raise ValidationError('Usage: meetings note <id> "text"')
    with meeting_store().transaction() as data:
        meeting = _find(data, meeting_id)
        meeting["notes"].append(text.strip())
        meeting["modified"] = _stamp()
    log.info("added note to meeting #%s", meeting_id)
    return meeting


def add_action(meeting_id: int, text: str) -> dict:
    if not text.strip():
        raise ValidationError('Usage: meetings action <id> "text"')
    with meeting_store().transaction() as data:
        meeting = _find(data, meeting_id)
        meeting["action_items"].append({"text": text.strip(), "done": False, "done_at": None})
        meeting["modified"] = _stamp()
    log.info("added action item to meeting #%s", meeting_id)
    return meeting


def action_items(meeting_id: Optional[int] = None, show_all: bool = False) -> list:
    """Action items grouped by meeting, as (meeting, [(number, item)]) pairs.

    Without a meeting id only open items of non-archived meetings are listed.
    """
    with meeting_store().read() as data:
        if meeting_id is not None:
            meetings = [_find(data, meeting_id)]
        else:
            meetings = [m for m in data["meetings"] if not m.get("archived")]
            meetings.sort(key=lambda m: (m["created"], m["id"]), reverse=True)
    groups = []
    for meeting in meetings:
        items = [
            (number, item)
            for number, item in enumerate(meeting.get("action_items", []), start=1)
            if show_all or not item["done"]
        ]
        if items:
            groups.append((meeting, items))
    return groups


def complete_action(meeting_id: int, number: int) -> dict:
    """Mark the Nth (1-based) action item of a meeting done."""
    with meeting_store().transaction() as data:
        meeting = _find(data, meeting_id)
        items = meeting["action_items"]
        if number < 1 or number > len(items):
            raise NotFoundError(f"Action item #{number} not found")
        item = items[number - 1]
        item["done"] = True
        item["done_at"] = _stamp()
        meeting["modified"] = item["done_at"]
    log.info("completed action item %d of meeting #%s", number, meeting_id)
    return item


def search_meetings(query: str) -> list:
    needle = query.lower().strip()
    if not needle:
        raise ValidationError('Usage: meetings search "query"')
    with meeting_store().read() as data:
        meetings = data["meetings"]

    def haystack(m):
        yield m["title"]
        yield from m.get("attendees", [])
        yield from m.get("notes", [])
        yield from (a["text"] for a in m.get("action_items", []))

    return [m for m in meetings if any(needle in text.lower() for text in haystack(m))]


def set_archived(meeting_id: int, archived: bool) -> dict:
    with meeting_store().transaction() as data:
        meeting = _find(data, meeting_id)
        if meeting["archived"] == archived:
            state = "archived" if archived else "not archived"
            raise ValidationError(f"Meeting #{meeting_id} is already {state}")
        meeting["archived"] = archived
        meeting["modified"] = _stamp()
    log.info("%s meeting #%s", "archived" if archived else "unarchived", meeting_id)
    return meeting


def remove_meeting(meeting_id: int) -> dict:
    """Delete a meeting and unlink it from its series."""
    with meeting_store().transaction() as data:
        meeting = _find(data, meeting_id)
        data["meetings"] = [m for m in data["meetings"] if m["id"] != meeting_id]
        if meeting.get("series"):
            with series_store().transaction() as sdata:
                entry = _find_series(sdata, meeting["series"])
                if entry is not None:
                    entry["meeting_ids"] = [i for i in entry["meeting_ids"] if i != meeting_id]
    log.info("removed meeting #%s", meeting_id)
    return meeting


def meeting_stats() -> dict:
    with meeting_store().read() as data:
        meetings = data["meetings"]
    with series_store().read() as sdata:
        series = sdata["series"]

    now = today()
    week_start = (now - timedelta(days=now.weekday())).isoformat()
    month_start = now.replace(day=1).isoformat()
    items = [a for m in meetings for a in m.get("action_items", [])]
    done = sum(1 for a in items if a["done"])
    attendees = Counter(a for m in meetings for a in m.get("attendees", []))
    return {
        "total": len(meetings),
        "active": sum(1 for m in meetings if not m.get("archived")),
        "archived": sum(1 for m in meetings if m.get("archived")),
        "this_week": sum(1 for m in meetings if m["created"][:10] >= week_start),
        "this_month": sum(1 for m in meetings if m["created"][:10] >= month_start),
        "top_attendees": attendees.most_common(5),
        "action_items": len(items),
        "action_items_done": done,
        "action_completion": round(done * 100 / len(items)) if items else 0,
        "series": [(s["name"], len(s.get("meeting_ids", []))) for s in series],
    }

# =============================================================================
# Series
# =============================================================================

def _new_series_entry(name: str, description: str) -> dict:
    return {
        "name": name,
        "description": description,
        "created": today().isoformat(),
        "last_meeting": None,
        "meeting_ids": [],
    }


def add_series(name: str, description: str = "") -> dict:
    name = name.strip()
    if not name:
        raise ValidationError('Usage: meetings series add "name" [--description "desc"]')
    with series_store().transaction() as sdata:
        if _find_series(sdata, name) is not None:
            raise DuplicateError(f"Series '{name}' already exists")
        entry = _new_series_entry(name, description)
        sdata["series"].append(entry)
    log.info("created series %s", name)
    return entry


def list_series() -> list:
    with series_store().read() as sdata:
        return sdata["series"]


def show_series(name: str) -> dict:
    with series_store().read() as sdata:
        entry = _find_series(sdata, name)
    if entry is None:
        raise NotFoundError(f"Series '{name}' not found")
    return {**entry, "meetings": list_meetings(series=name) + list_meetings(series=name, archived=True)}


def remove_series(name: str) -> int:
    """Delete a series; its meetings are kept but unlinked. Returns how many."""
    with meeting_store().transaction() as data:
        with series_store().transaction() as sdata:
            if _find_series(sdata, name) is None:
                raise NotFoundError(f"Series '{name}' not found")
            sdata["series"] = [s for s in sdata["series"] if s["name"] != name]
        unlinked = 0
        for meeting in data["meetings"]:
            if meeting.get("series") == name:
                meeting["series"] = None
                unlinked += 1
    log.info("removed series %s (%d meeting(s) unlinked)", name, unlinked)
    return unlinked

# =============================================================================
# CLI
# =============================================================================

def format_meeting(meeting: dict) -> str:
    extras = []
    if meeting.get("series"):
        extras.append(f"series: {meeting['series']}")
    if meeting.get("attendees"):
        extras.append(f"{len(meeting['attendees'])} attendee(s)")
    open_items = sum(1 for a in meeting.get("action_items", []) if not a["done"])
    if open_items:
        extras.append(f"{open_items} open action(s)")
    suffix = f" ({', '.join(extras)})" if extras else ""
    return f"  [{meeting['id']}] {meeting['created']}  {meeting['title']}{suffix}"


def print_meeting(meeting: dict) -> None:
    print(f"=== {meeting['title']} (#{meeting['id']}) ===")
    print(f"Created:   {meeting['created']}")
    if meeting["modified"] != meeting["created"]:
        print(f"Modified:  {meeting['modified']}")
    if meeting["attendees"]:
        print(f"Attendees: {', '.join(meeting['attendees'])}")
    if meeting["series"]:
        print(f"Series:    {meeting['series']}")
    if meeting["archived"]:
        print("Status:    archived")
    print()
    print("Notes:")
    for note in meeting["notes"] or ["(none)"]:
        print(f"  - {note}")
    print()
    print("Action Items:")
    if not meeting["action_items"]:
        print("  (none)")
    for number, item in enumerate(meeting["action_items"], start=1):
        box = "[x]" if item["done"] else "[ ]"
        print(f"  {number}. {box} {item['text']}")


def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-meetings", description="Meeting notes")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # new
    new_parser = add_command(subparsers, "new", aliases=["create", "add"], help="Create a meeting")
    new_parser.add_argument("title", help="Meeting title")
    new_parser.add_argument("-a", "--attendees", help="Comma-separated attendees")
    new_parser.add_argument("-s", "--series", help="Meeting series")
    new_parser.add_argument("-n", "--note", action="append", default=[], help="Add a note (repeatable)")
    new_parser.add_argument("--action", action="append", default=[], help="Add an action item (repeatable)")

    # list
    list_parser = add_command(subparsers, "list", aliases=["ls"], help="List meetings")
    list_parser.add_argument("limit", nargs="?", help="How many to show")
    list_parser.add_argument("-s", "--series", help="Only this series")
    list_parser.add_argument("--archived", action="store_true", help="Show archived meetings")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # view
    view_parser = add_command(subparsers, "view", aliases=["show", "cat"], help="Show a meeting")
    view_parser.add_argument("id", type=int, help="Meeting ID")

    # note
    note_parser = add_command(subparsers, "note", help="Add a note to a meeting")
    note_parser.add_argument("id", type=int, help="Meeting ID")
    note_parser.add_argument("text", help="Note text")

    # action
    action_parser = add_command(subparsers, "action", help="Add an action item to a meeting")
    action_parser.add_argument("id", type=int, help="Meeting ID")
    action_parser.add_argument("text", help="Action item")

    # actions
    actions_parser = add_command(subparsers, "actions", aliases=["action-items", "todos"], help="List action items")
    actions_parser.add_argument("id", nargs="?", type=int, help="Only this meeting")
    actions_parser.add_argument("-a", "--all", action="store_true", help="Include completed items")

    # complete
    complete_parser = add_command(subparsers, "complete", aliases=["done", "check"], help="Complete an action item")
    complete_parser.add_argument("id", type=int, help="Meeting ID")
    complete_parser.add_argument("number", type=int, help="Action item number")

    # search
    search_parser = add_command(subparsers, "search", aliases=["find"], help="Search meetings")
    search_parser.add_argument("query", help="Text to find")

    # series
    series_parser = add_command(subparsers, "series", help="Manage meeting series")
    series_parser.add_argument("action", nargs="?", default="list",
                               help="list, add, show or remove (a bare series name shows it)")
    series_parser.add_argument("name", nargs="?", help="Series name")
    series_parser.add_argument("-d", "--description", default="", help="Series description")

    # archive / unarchive
    archive_parser = add_command(subparsers, "archive", help="Archive a meeting")
    archive_parser.add_argument("id", type=int, help="Meeting ID")
    unarchive_parser = add_command(subparsers, "unarchive", aliases=["restore"], help="Restore an archived meeting")
    unarchive_parser.add_argument("id", type=int, help="Meeting ID")

    # stats
    stats_parser = add_command(subparsers, "stats", aliases=["statistics"], help="Show statistics")
    stats_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # remove
    remove_parser = add_command(subparsers, "remove", aliases=["rm", "delete"], help="Delete a meeting")
    remove_parser.add_argument("id", type=int, help="Meeting ID")

    return parser


def run_series(args) -> None:
    if args.action not in SERIES_ACTIONS:
        if args.name:
            raise ValidationError(f"Unknown series action: {args.action} (use list, add, show or remove)")
        args.action, args.name = "show", args.action

    if args.action == "list":
        series = list_series()
        if not series:
            print("No meeting series yet.")
            return
        print("=== Meeting Series ===")
        for s in series:
            last = f", last: {s['last_meeting']}" if s.get("last_meeting") else ""
            desc = f" - {s['description']}" if s.get("description") else ""
            print(f"  {s['name']}{desc} ({len(s['meeting_ids'])} meeting(s){last})")
        return

    if not args.name:
        raise ValidationError(f'Usage: meetings series {args.action} "name"')

    if args.action == "add":
        add_series(args.name, args.description)
        print(f"Created series: {args.name}")
    elif args.action == "show":
        entry = show_series(args.name)
        print(f"=== Series: {entry['name']} ===")
        if entry.get("description"):
            print(entry["description"])
        print()
        if not entry["meetings"]:
            print("No meetings in this series.")
        for meeting in entry["meetings"]:
            print(format_meeting(meeting))
    elif args.action == "remove":
        unlinked = remove_series(args.name)
        print(f"Removed series: {args.name} ({unlinked} meeting(s) unlinked)")


def run(args) -> int:
    if args.command == "new":
        meeting = new_meeting(args.title, args.attendees, args.series, args.note, args.action)
        print(f"Created meeting #{meeting['id']}: {meeting['title']}")
        if meeting["attendees"]:
            print(f"  Attendees: {', '.join(meeting['attendees'])}")
        if meeting["series"]:
            print(f"  Series: {meeting['series']}")

    elif args.command == "list":
        limit = parse_int(args.limit, "limit", minimum=1) if args.limit else None
        meetings = list_meetings(limit, args.series, args.archived)
        if args.json:
            print_json(meetings)
        elif not meetings:
            print("No archived meetings." if args.archived else "No meetings yet.")
        else:
            print("=== Archived Meetings ===" if args.archived else "=== Meetings ===")
            print()
            for meeting in meetings:
                print(format_meeting(meeting))

    elif args.command == "view":
        print_meeting(get_meeting(args.id))

    elif args.command == "note":
        add_note(args.id, args.text)
        print(f"Added note to meeting #{args.id}")

    elif args.command == "action":
        meeting = add_action(args.id, args.text)
        print(f"Added action item {len(meeting['action_items'])} to meeting #{args.id}")

    elif args.command == "actions":
        groups = action_items(args.id, args.all)
        print("=== Action Items ===")
        print()
        if not groups:
            print("No uncompleted action items found.")
        for meeting, items in groups:
            print(f"{meeting['title']} (#{meeting['id']})")
            for number, item in items:
                mark = "✓" if item["done"] else "○"
                print(f"  {number}. {mark} {item['text']}")
            print()

    elif args.command == "complete":
        item = complete_action(args.id, args.number)
        print(f"✓ Completed: {item['text']}")

    elif args.command == "search":
        matches = search_meetings(args.query)
        if not matches:
            print(f"No meetings matching '{args.query}'")
        else:
            print(f"=== {len(matches)} meeting(s) matching '{args.query}' ===")
            for meeting in matches:
                print(format_meeting(meeting))

    elif args.command == "series":
        run_series(args)

    elif args.command == "archive":
        set_archived(args.id, True)
        print(f"Archived meeting #{args.id}")

    elif args.command == "unarchive":
        set_archived(args.id, False)
        print(f"Restored meeting #{args.id}")

    elif args.command == "stats":
        s = meeting_stats()
        if args.json:
            print_json(s)
            return 0
        print("=== Meeting Statistics ===")
        print()
        print(f"Total meetings:   {s['total']} ({s['active']} active, {s['archived']} archived)")
        print(f"This week:        {s['this_week']}")
        print(f"This month:       {s['this_month']}")
        print(f"Action items:     {s['action_items_done']}/{s['action_items']} done ({s['action_completion']}%)")
        if s["top_attendees"]:
            print()
            print("Top attendees:")
            for name, count in s["top_attendees"]:
                print(f"  {name} ({count})")
        if s["series"]:
            print()
            print("Series:")
            for name, count in s["series"]:
                print(f"  {name} ({count} meeting(s))")

    elif args.command == "remove":
        meeting = remove_meeting(args.id)
        print(f"Removed meeting #{meeting['id']}: {meeting['title']}")

    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv, default="list")
    return run_cli(lambda: run(args), make_logger("meetings"))


if __name__ == "__main__":
    sys.exit(main())
