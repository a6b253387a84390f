#!/usr/bin/env python3
"""Daily journal with writing prompts, mood tracking and streaks.

Entries are grouped by day; a day may hold any number of entries. Streaks are
derived from the set of days that have at least one entry.

Usage:
    daybook-journal write "<text>" [--prompt]
    daybook-journal add "<thought>"           # Quick one-liner
    daybook-journal prompt | prompts
    daybook-journal today                     # Default
    daybook-journal read [date]
    daybook-journal list [n]
    daybook-journal search "<query>"
    daybook-journal mood [1-5]
    daybook-journal streak | stats | random
    daybook-journal export [file] [--days N]
    daybook-journal import <file>
"""

import json
import logging
import random
import sys
from collections import Counter
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

from daybook.config import now_local, today, tool_dir
from daybook.errors import NotFoundError, StoreError, ValidationError
from daybook.habits import current_streak, longest_streak
from daybook.store import JsonStore, next_id
from daybook.utils import (
    CLIParser, add_command, make_logger, parse_cli, parse_date, parse_int, print_json, run_cli,
)

PROMPTS = [
    "What's on your mind right now?",
    "What are you grateful for today?",
    "What's one thing you learned recently?",
    "How are you feeling, and why?",
    "What's a challenge you're facing?",
    "What made you smile today?",
    "What would make today a great day?",
    "What's something you're looking forward to?",
    "Describe your ideal day.",
    "What's a goal you're working toward?",
    "What's something you'd like to change?",
    "Who had an impact on you today?",
    "What's weighing on your mind?",
    "What's a small win from today?",
    "What are you curious about?",
    "How did you take care of yourself today?",
    "What's something you're proud of?",
    "What would you tell your past self?",
    "What's a lesson life has taught you?",
    "What does success mean to you right now?",
    "What boundaries do you need to set?",
    "What are you avoiding, and why?",
    "How have you grown recently?",
    "What brings you peace?",
    "What's your intention for tomorrow?",
]

MOODS = {
    1: ("Low/Difficult", "😔"),
    2: ("Below Average", "😐"),
    3: ("Neutral/Okay", "🙂"),
    4: ("Good", "😊"),
    5: ("Great/Excellent", "😄"),
}

DEFAULT_DATA = {"entries": [], "moods": {}, "next_id": 1}

log = logging.getLogger(__name__)


def get_store() -> JsonStore:
    return JsonStore(tool_dir("journal") / "journal.json", DEFAULT_DATA)


def _load() -> dict:
    with get_store().read() as data:
        data.setdefault("entries", [])
        data.setdefault("moods", {})
        return data


def word_count(text: str) -> int:
    return len(text.split())


def random_prompt(rng: random.Random = None) -> str:
    return (rng or random).choice(PROMPTS)

# =============================================================================
# Operations
# =============================================================================

def write_entry(text: str, prompt: Optional[str] = None, kind: str = "entry") -> dict:
    """Append an entry for today."""
    text = text.strip()
    if not text:
        raise ValidationError('Usage: journal write "text"')
    now = now_local()
    with get_store().transaction() as data:
        data.setdefault("entries", [])
        entry = {
            "id": next_id(data),
            "date": now.date().isoformat(),
            "time": now.strftime("%H:%M"),
            "text": text,
            "kind": kind,
        }
        if prompt:
            entry["prompt"] = prompt
        data["entries"].append(entry)
    log.info("wrote %s #%s (%d words)", kind, entry["id"], word_count(text))
    return entry


def entries_for(day: date) -> list:
    day_str = day.isoformat()
    return [e for e in _load()["entries"] if e["date"] == day_str]


def day_summaries(limit: int = 10) -> list:
    """Most recent days with entry count, word count and mood."""
    data = _load()
    by_day = {}
    for e in data["entries"]:
        summary = by_day.setdefault(e["date"], {"date": e["date"], "entries": 0, "words": 0})
        summary["entries"] += 1
        summary["words"] += word_count(e["text"])
    days = sorted(by_day.values(), key=lambda s: s["date"], reverse=True)[:limit]
    for summary in days:
        summary["mood"] = data["moods"].get(summary["date"])
    return days


def search_entries(query: str) -> list:
    needle = query.lower()
    if not needle:
        raise ValidationError('Usage: journal search "query"')
    return [e for e in _load()["entries"] if needle in e["text"].lower()]


def set_mood(mood: str) -> int:
    value = parse_int(mood, "mood. Please enter a number from 1-5")
    if value not in MOODS:
        raise ValidationError("Invalid mood. Please enter a number from 1-5")
    with get_store().transaction() as data:
        data.setdefault("moods", {})[today().isoformat()] = value
    log.info("logged mood %d", value)
    return value


def streaks() -> dict:
    days = {e["date"] for e in _load()["entries"]}
    current = current_streak(days)
    # Yesterday's run still counts until today is over
    if current == 0:
        current = current_streak(days, today() - timedelta(days=1))
    return {
        "current": current,
        "longest": longest_streak(days),
        "last_entry": max(days) if days else None,
    }


def stats() -> dict:
    data = _load()
    entries = data["entries"]
    days = {e["date"] for e in entries}
    words = sum(word_count(e["text"]) for e in entries)
    moods = list(data["moods"].values())
    week_start = (today() - timedelta(days=6)).isoformat()
    recent = [e for e in entries if e["date"] >= week_start]
    return {
        "entries": len(entries),
        "days": len(days),
        "words": words,
        "avg_words_per_day": words // len(days) if days else 0,
        "streak": streaks(),
        "mood_average": round(sum(moods) / len(moods), 1) if moods else None,
        "mood_distribution": {m: Counter(moods).get(m, 0) for m in MOODS},
        "week_entries": len(recent),
        "week_words": sum(word_count(e["text"]) for e in recent),
    }


def random_day(rng: random.Random = None) -> Optional[str]:
    days = sorted({e["date"] for e in _load()["entries"]})
    if not days:
        return None
    return (rng or random).choice(days)


def export_journal(days: Optional[int] = None) -> dict:
    data = _load()
    entries = data["entries"]
    moods = data["moods"]
    if days is not None:
        since = (today() - timedelta(days=days - 1)).isoformat()
        entries = [e for e in entries if e["date"] >= since]
        moods = {d: m for d, m in moods.items() if d >= since}
    return {"entries": entries, "moods": moods}


def import_journal(path: Path) -> dict:
    """Merge exported entries, skipping ones already present."""
    try:
        incoming = json.loads(Path(path).read_text())
    except FileNotFoundError:
        raise NotFoundError(f"File not found: {path}")
    except json.JSONDecodeError as e:
        raise StoreError(f"Invalid JSON in {path}: {e}")
    if not isinstance(incoming, dict) or not isinstance(incoming.get("entries"), list):
        raise ValidationError(f"Not a journal export: {path}")

    added = 0
    skipped = 0
    with get_store().transaction() as data:
        data.setdefault("entries", [])
        data.setdefault("moods", {})
        seen = {(e["date"], e.get("time"), e["text"]) for e in data["entries"]}
        for e in sorted(incoming["entries"], key=lambda e: (e.get("date", ""), e.get("time", ""))):
            if "date" not in e or "text" not in e:
                raise ValidationError(f"Malformed entry in {path}: {e}")
            key = (e["date"], e.get("time"), e["text"])
            if key in seen:
                skipped += 1
                continue
            seen.add(key)
            entry = {k: v for k, v in e.items() if k != "id"}
            entry["id"] = next_id(data)
            data["entries"].append(entry)
            added += 1
        for day, mood in incoming.get("moods", {}).items():
            if not isinstance(mood, int) or mood not in MOODS:
                raise ValidationError(f"Invalid mood for {day} in {path}: {mood!r} (use 1-5)")
            data["moods"].setdefault(day, mood)
        data["entries"].sort(key=lambda e: (e["date"], e.get("time", "")))
    log.info("imported %d entries from %s", added, path)
    return {"added": added, "skipped": skipped}

# =============================================================================
# CLI
# =============================================================================

def mood_label(mood: Optional[int]) -> str:
    if not mood:
        return ""
    text, emoji = MOODS[int(mood)]
    return f"{emoji} {text}"


def print_day(day: date) -> None:
    entries = entries_for(day)
    print(f"=== {day.isoformat()} ({day.strftime('%A')}) ===")
    mood = _load()["moods"].get(day.isoformat())
    if mood:
        print(f"Mood: {mood_label(mood)}")
    print()
    if not entries:
        print("No entries for this day.")
        return
    for e in entries:
        if e.get("prompt"):
            print(f"[{e['time']}] Prompt: {e['prompt']}")
            print(f"  {e['text']}")
        else:
            print(f"[{e['time']}] {e['text']}")
        print()


def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-journal", description="Daily journal")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # write
    write_parser = add_command(subparsers, "write", aliases=["w"], help="Write an entry")
    write_parser.add_argument("text", nargs="+", help="Entry text")
    write_parser.add_argument("-p", "--prompt", action="store_true", help="Answer a random prompt")

    # add
    add_parser = add_command(subparsers, "add", aliases=["quick", "q"], help="Add a quick thought")
    add_parser.add_argument("text", nargs="+", help="Thought")

    # prompt / prompts
    add_command(subparsers, "prompt", aliases=["p"], help="Show a random writing prompt")
    add_command(subparsers, "prompts", help="Show all prompts")

    # today
    add_command(subparsers, "today", aliases=["t"], help="Show today's entries")

    # read
    read_parser = add_command(subparsers, "read", aliases=["view", "show"], help="Read a day's entries")
    read_parser.add_argument("date", nargs="?", default="today", help="Date (today, yesterday, YYYY-MM-DD)")

    # list
    list_parser = add_command(subparsers, "list", aliases=["ls"], help="List recent days")
    list_parser.add_argument("count", nargs="?", default="10", help="Number of days (default: 10)")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # search
    search_parser = add_command(subparsers, "search", aliases=["find"], help="Search entries")
    search_parser.add_argument("query", help="Text to find")

    # mood
    mood_parser = add_command(subparsers, "mood", aliases=["m"], help="Log today's mood (1-5)")
    mood_parser.add_argument("value", nargs="?", help="1=low ... 5=great")

    # streak / stats / random
    add_command(subparsers, "streak", aliases=["s"], help="Show writing streak")
    stats_parser = add_command(subparsers, "stats", aliases=["statistics"], help="Show statistics")
    stats_parser.add_argument("--json", action="store_true", help="Output as JSON")
    add_command(subparsers, "random", aliases=["surprise"], help="Read a random past day")

    # export
    export_parser = add_command(subparsers, "export", help="Export entries as JSON")
    export_parser.add_argument("file", nargs="?", help="Output file (default: stdout)")
    export_parser.add_argument("--days", type=int, help="Only the last N days")

    # import
    import_parser = add_command(subparsers, "import", help="Import an export file")
    import_parser.add_argument("file", help="Export file")

    return parser


def run(args) -> int:
    if args.command == "write":
        prompt = random_prompt() if args.prompt else None
        entry = write_entry(" ".join(args.text), prompt)
        if prompt:
            print(f"Prompt: {prompt}")
        print(f"✓ Entry saved ({word_count(entry['text'])} words)")

    elif args.command == "add":
        write_entry(" ".join(args.text), kind="quick")
        print("✓ Quick thought added")

    elif args.command == "prompt":
        print(f"💭 {random_prompt()}")

    elif args.command == "prompts":
        print("=== Writing Prompts ===")
        for i, prompt in enumerate(PROMPTS, start=1):
            print(f"  {i:2d}. {prompt}")

    elif args.command == "today":
        print_day(today())

    elif args.command == "read":
        print_day(parse_date(args.date))

    elif args.command == "list":
        days = day_summaries(parse_int(args.count, "count", minimum=1))
        if args.json:
            print_json(days)
        elif not days:
            print('No journal entries yet. Start with: daybook-journal write "..."')
        else:
            print("=== Recent Entries ===")
            for d in days:
                weekday = date.fromisoformat(d["date"]).strftime("%a")
                mood = f" {MOODS[d['mood']][1]}" if d["mood"] else ""
                print(f"  {d['date']} ({weekday}) - {d['entries']} entries, {d['words']} words{mood}")

    elif args.command == "search":
        matches = search_entries(args.query)
        if not matches:
            print(f"No entries matching '{args.query}'")
        else:
            print(f"=== {len(matches)} match(es) for '{args.query}' ===")
            for e in matches:
                print(f"  {e['date']} {e['time']}: {e['text']}")

    elif args.command == "mood":
        if args.value is None:
            mood = _load()["moods"].get(today().isoformat())
            print(f"Today's mood: {mood_label(mood)}" if mood else "No mood logged today. Rate it 1-5.")
        else:
            mood = set_mood(args.value)
            print(f"Mood logged: {mood_label(mood)}")

    elif args.command == "streak":
        s = streaks()
        print(f"🔥 Current streak: {s['current']} day(s)")
        print(f"🏆 Longest streak: {s['longest']} day(s)")
        if s["last_entry"]:
            print(f"Last entry: {s['last_entry']}")

    elif args.command == "stats":
        s = stats()
        if args.json:
            print_json(s)
            return 0
        print("=== Journal Statistics ===")
        print()
        print(f"Total entries:     {s['entries']}")
        print(f"Days journaled:    {s['days']}")
        print(f"Total words:       {s['words']}")
        print(f"Avg words/day:     {s['avg_words_per_day']}")
        print(f"Current streak:    {s['streak']['current']}")
        print(f"Longest streak:    {s['streak']['longest']}")
        print(f"Last 7 days:       {s['week_entries']} entries, {s['week_words']} words")
        if s["mood_average"] is not None:
            print()
            print(f"Average mood:      {s['mood_average']}")
            for mood, count in s["mood_distribution"].items():
                print(f"  {MOODS[mood][1]} {mood}: {'█' * count} {count}")

    elif args.command == "random":
        day = random_day()
        if day is None:
            print("No journal entries yet.")
        else:
            print_day(date.fromisoformat(day))

    elif args.command == "export":
        if args.days is not None and args.days < 1:
            raise ValidationError(f"Invalid number of days: {args.days}")
        data = export_journal(args.days)
        if args.file:
            Path(args.file).write_text(json.dumps(data, indent=2) + "\n")
            print(f"Exported {len(data['entries'])} entries to {args.file}")
        else:
            print_json(data)

    elif args.command == "import":
        result = import_journal(args.file)
        print(f"Imported {result['added']} entries ({result['skipped']} duplicates skipped)")

    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv, default="today")
    return run_cli(lambda: run(args), make_logger("journal"))


if __name__ == "__main__":
    sys.exit(main())
