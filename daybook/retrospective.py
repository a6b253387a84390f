#!/usr/bin/env python3
"""Personal or team retrospectives: what went well, what didn't, what was
learned, and the action items that come out of it.

Action item ids are global across all retrospectives so they can be
completed without naming the retrospective they belong to.

Usage:
    daybook-retrospective new ["<name>"] [--well T]... [--bad T]... [--learned T]...
                              [--action T]... [--rating 1-5] [--notes T]
    daybook-retrospective list
    daybook-retrospective view <id>
    daybook-retrospective actions
    daybook-retrospective complete <action_id>
    daybook-retrospective stats
"""

import logging
import sys
from typing import Optional

from daybook.config import now_local, today, tool_dir
from daybook.errors import NotFoundError, ValidationError
from daybook.store import JsonStore, next_id
from daybook.utils import CLIParser, add_command, make_logger, parse_cli, print_json, run_cli

DEFAULT_DATA = {"retrospectives": [], "next_id": 1, "action_next_id": 1}
SECTIONS = (
    ("went_well", "What went well"),
    ("didnt_go_well", "What didn't go well"),
    ("learned", "What I learned"),
)

log = logging.getLogger(__name__)


def get_store() -> JsonStore:
    return JsonStore(tool_dir("retrospective") / "retros.json", DEFAULT_DATA)


def _stamp() -> str:
    return now_local().strftime("%Y-%m-%d %H:%M:%S")


def _clean(items) -> list:
    return [i.strip() for i in (items or []) if i and i.strip()]


def _find(data: dict, retro_id: int) -> dict:
    for retro in data["retrospectives"]:
        if retro["id"] == retro_id:
            return retro
    raise NotFoundError(f"Retrospective #{retro_id} not found")


def new_retro(name: Optional[str] = None, went_well=None, didnt_go_well=None, learned=None,
              actions=None, rating: Optional[int] = None, notes: str = "") -> dict:
    if rating is not None and not 1 <= rating <= 5:
        raise ValidationError("Rating must be between 1 and 5")
    sections = [_clean(went_well), _clean(didnt_go_well), _clean(learned), _clean(actions)]
    if not any(sections) and rating is None and not notes:
        raise ValidationError("Nothing to record: pass at least one of --well, --bad, --learned, --action, --rating or --notes")

    with get_store().transaction() as data:
        data.setdefault("action_next_id", 1)
        retro = {
            "id": next_id(data),
            "name": (name or "").strip() or f"Retrospective {today().isoformat()}",
            "date": today().isoformat(),
            "created_at": _stamp(),
            "went_well": sections[0],
            "didnt_go_well": sections[1],
            "learned": sections[2],
            "action_items": [
                {"id": next_id(data, "action_next_id"), "text": text, "completed": False, "completed_at": None}
                for text in sections[3]
            ],
            "rating": rating,
            "notes": notes or "",
        }
        data["retrospectives"].append(retro)

    log.info("saved retrospective #%s: %s", retro["id"], retro["name"])
    return retro


def list_retros() -> list:
    """Newest first."""
    with get_store().read() as data:
        retros = data["retrospectives"]
    return sorted(retros, key=lambda r: (r["date"], r["id"]), reverse=True)


def get_retro(retro_id: int) -> dict:
    with get_store().read() as data:
        return _find(data, retro_id)


def pending_actions() -> list:
    """(retro, [pending items]) pairs, newest retrospective first."""
    groups = []
    for retro in list_retros():
        items = [a for a in retro.get("action_items", []) if not a["completed"]]
        if items:
            groups.append((retro, items))
    return groups


def complete_action(action_id: int) -> dict:
    with get_store().transaction() as data:
        for retro in data["retrospectives"]:
            for item in retro.get("action_items", []):
                if item["id"] == action_id:
                    if item["completed"]:
                        raise ValidationError(f"Action item #{action_id} is already completed")
                    item["completed"] = True
                    item["completed_at"] = _stamp()
                    log.info("completed action item #%s", action_id)
                    return item
        raise NotFoundError(f"Action item #{action_id} not found")


def retro_stats() -> dict:
    retros = list_retros()
    ratings = [r["rating"] for r in retros if r.get("rating") is not None]
    items = [a for r in retros for a in r.get("action_items", [])]
    done = sum(1 for a in items if a["completed"])
    return {
        "total": len(retros),
        "average_rating": round(sum(ratings) / len(ratings), 1) if ratings else None,
        "rated": len(ratings),
        "actions_total": len(items),
        "actions_completed": done,
        "actions_pending": len(items) - done,
        "completion_rate": done * 100 // len(items) if items else 0,
        "recent": [{"id": r["id"], "name": r["name"], "date": r["date"], "rating": r.get("rating")} for r in retros[:5]],
    }

# =============================================================================
# CLI
# =============================================================================

def format_rating(rating: Optional[int]) -> str:
    if rating is None:
        return ""
    return "★" * rating + "☆" * (5 - rating)


def print_retro(retro: dict) -> None:
    print(f"=== {retro['name']} (#{retro['id']}) ===")
    print(f"Date: {retro['date']}")
    if retro.get("rating") is not None:
        print(f"Rating: {format_rating(retro['rating'])} ({retro['rating']}/5)")
    print()
    for key, label in SECTIONS:
        print(f"{label}:")
        for item in retro.get(key) or ["(none)"]:
            print(f"  - {item}")
        print()
    print("Action items:")
    if not retro.get("action_items"):
        print("  (none)")
    for item in retro.get("action_items", []):
        box = "[x]" if item["completed"] else "[ ]"
        print(f"  {box} #{item['id']} {item['text']}")
    if retro.get("notes"):
        print()
        print(f"Notes: {retro['notes']}")


def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-retrospective", description="Retrospectives")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # new
    new_parser = add_command(subparsers, "new", aliases=["start", "create"], help="Record a retrospective")
    new_parser.add_argument("name", nargs="?", help="Name (default: 'Retrospective <date>')")
    new_parser.add_argument("-w", "--well", action="append", default=[], help="Something that went well (repeatable)")
    new_parser.add_argument("-b", "--bad", action="append", default=[], help="Something that didn't go well (repeatable)")
    new_parser.add_argument("-l", "--learned", action="append", default=[], help="Something learned (repeatable)")
    new_parser.add_argument("-a", "--action", action="append", default=[], help="Action item (repeatable)")
    new_parser.add_argument("-r", "--rating", type=int, help="Overall rating 1-5")
    new_parser.add_argument("-n", "--notes", default="", help="Free-form notes")

    # list
    list_parser = add_command(subparsers, "list", aliases=["ls"], help="List retrospectives")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # view
    view_parser = add_command(subparsers, "view", aliases=["show"], help="Show a retrospective")
    view_parser.add_argument("id", type=int, help="Retrospective ID")

    # actions
    add_command(subparsers, "actions", aliases=["pending"], help="List pending action items")

    # complete
    complete_parser = add_command(subparsers, "complete", aliases=["done"], help="Complete an action item")
    complete_parser.add_argument("action_id", type=int, help="Action item ID")

    # stats
    stats_parser = add_command(subparsers, "stats", aliases=["statistics", "summary"], help="Show statistics")
    stats_parser.add_argument("--json", action="store_true", help="Output as JSON")

    return parser


def run(args) -> int:
    if args.command == "new":
        retro = new_retro(args.name, args.well, args.bad, args.learned, args.action, args.rating, args.notes)
        print(f"✓ Saved retrospective #{retro['id']}: {retro['name']}")
        if retro["action_items"]:
            print(f"  {len(retro['action_items'])} action item(s) created")

    elif args.command == "list":
        retros = list_retros()
        if args.json:
            print_json(retros)
        elif not retros:
            print("No retrospectives yet. Start one with: daybook-retrospective new")
        else:
            print("=== Retrospectives ===")
            print()
            for r in retros:
                pending = sum(1 for a in r.get("action_items", []) if not a["completed"])
                rating = f" {format_rating(r['rating'])}" if r.get("rating") else ""
                actions = f" ({pending} pending action(s))" if pending else ""
                print(f"  [{r['id']}] {r['date']}  {r['name']}{rating}{actions}")

    elif args.command == "view":
        print_retro(get_retro(args.id))

    elif args.command == "actions":
        groups = pending_actions()
        print("=== Pending Action Items ===")
        print()
        if not groups:
            print("No pending action items. 🎉")
        for retro, items in groups:
            print(f"{retro['name']} ({retro['date']})")
            for item in items:
                print(f"  #{item['id']} {item['text']}")
            print()

    elif args.command == "complete":
        item = complete_action(args.action_id)
        print(f"✓ Completed: {item['text']}")

    elif args.command == "stats":
        s = retro_stats()
        if args.json:
            print_json(s)
            return 0
        print("=== Retrospective Statistics ===")
        print()
        print(f"Total retrospectives: {s['total']}")
        if s["average_rating"] is not None:
            print(f"Average rating: {s['average_rating']}/5 ({s['rated']} rated)")
        if s["actions_total"]:
            print()
            print("Action items:")
            print(f"  Total:     {s['actions_total']}")
            print(f"  Completed: {s['actions_completed']}")
            print(f"  Pending:   {s['actions_pending']}")
            print(f"  Rate:      {s['completion_rate']}%")
        if s["recent"]:
            print()
            print("Recent:")
            for r in s["recent"]:
                rating = f" {format_rating(r['rating'])}" if r["rating"] else ""
                print(f"  {r['date']}  {r['name']}{rating}")

    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv, default="list")
    return run_cli(lambda: run(args), make_logger("retrospective"))


if __name__ == "__main__":
    sys.exit(main())
