#!/usr/bin/env python3
"""Reusable checklists for recurring processes.

Code reviews, deployments, packing lists, morning routines: build the list
once, tick items off each time, reset, and keep a history of completed runs.
Checklists are addressed by name; any unique part of the name works too.

Usage:
    daybook-checklist new "<name>" [-d "<description>"]
    daybook-checklist add "<name>" "<item>"
    daybook-checklist remove "<name>" <n>
    daybook-checklist check "<name>" <n>          # Toggle an item
    daybook-checklist show "<name>"
    daybook-checklist reset "<name>"
    daybook-checklist list
    daybook-checklist copy "<source>" "<dest>"
    daybook-checklist delete "<name>"
    daybook-checklist history ["<name>"]
    daybook-checklist export "<name>" [file]
    daybook-checklist import <file> [--force]
    daybook-checklist templates
    daybook-checklist use-template <template> ["<name>"]
"""

import json
import logging
import re
import sys
from pathlib import Path
from typing import Optional

from daybook.config import now_local, tool_dir
from daybook.errors import DuplicateError, NotFoundError, StoreError, ValidationError
from daybook.store import JsonStore
from daybook.utils import CLIParser, add_command, make_logger, parse_cli, print_json, run_cli

TEMPLATES = {
    "code-review": ("Standard code review checklist", [
        "Code compiles without errors",
        "All tests pass",
        "No hardcoded secrets or credentials",
        "Error handling is appropriate",
        "Code follows style guidelines",
        "No obvious security vulnerabilities",
        "Documentation updated if needed",
        "No unnecessary console.log/print statements",
        "Edge cases considered",
        "Performance impact reviewed",
    ]),
    "deployment": ("Pre-deployment verification checklist", [
        "All tests passing in CI",
        "Code reviewed and approved",
        "Database migrations ready",
        "Environment variables configured",
        "Rollback plan prepared",
        "Monitoring/alerts configured",
        "Stakeholders notified",
        "Deployment window confirmed",
        "Post-deployment verification steps ready",
    ]),
    "pr-checklist": ("Pull request submission checklist", [
        "Branch is up to date with base",
        "Self-reviewed the diff",
        "Tests added/updated",
        "Documentation updated",
        "Commit messages are clear",
        "PR description explains the why",
        "Screenshots added if UI changes",
        "Linked to issue/ticket",
    ]),
    "morning-routine": ("Daily morning startup routine", [
        "Check calendar for today",
        "Review priority tasks",
        "Check and process email",
        "Review Slack/Teams messages",
        "Update task status",
        "Identify top 3 priorities for today",
        "Block focus time if needed",
    ]),
    "project-setup": ("New project initialization checklist", [
        "Create repository",
        "Initialize with appropriate template",
        "Set up README",
        "Configure linting/formatting",
        "Set up CI/CD pipeline",
        "Configure environment variables",
        "Set up development environment docs",
        "Add .gitignore",
        "Configure issue templates",
        "Set up branch protection rules",
    ]),
    "meeting-prep": ("Meeting preparation checklist", [
        "Review meeting agenda",
        "Prepare talking points",
        "Gather relevant documents/data",
        "Test audio/video if remote",
        "Prepare questions to ask",
        "Block time for follow-up actions",
    ]),
}

log = logging.getLogger(__name__)


def get_store() -> JsonStore:
    return JsonStore(tool_dir("checklist") / "checklists.json", {"checklists": {}})


def history_store() -> JsonStore:
    return JsonStore(tool_dir("checklist") / "history.json", {"completions": []})


def _stamp() -> str:
    return now_local().strftime("%Y-%m-%d %H:%M:%S")


def slugify(name: str) -> str:
    """Lowercase, non-alphanumerics collapsed to single dashes."""
    return re.sub(r"[^a-z0-9]+", "-", name.lower()).strip("-")


def resolve(data: dict, name: str) -> str:
    """Find a checklist key by exact slug, then by unique partial match."""
    slug = slugify(name)
    if not slug:
        raise ValidationError("Checklist name required")
    checklists = data["checklists"]
    if slug in checklists:
        return slug
    matches = [key for key in checklists if slug in key]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        names = ", ".join(checklists[k]["name"] for k in sorted(matches))
        raise ValidationError(f"Multiple matches found for '{name}': {names}")
    raise NotFoundError(f"Checklist '{name}' not found")


def _item_index(checklist: dict, number: int) -> int:
    if number < 1 or number > len(checklist["items"]):
        raise NotFoundError(f"Item #{number} not found")
    return number - 1


def _new_checklist(name: str, description: str = "", items=None) -> dict:
    return {
        "name": name,
        "description": description or "",
        "created": _stamp(),
        "items": [{"text": text, "checked": False} for text in (items or [])],
        "completion_count": 0,
        "last_completed": None,
    }


def _insert(data: dict, checklist: dict, force: bool = False) -> str:
    slug = slugify(checklist["name"])
    if not slug:
        raise ValidationError(f"Invalid checklist name: {checklist['name']!r}")
    if slug in data["checklists"] and not force:
        raise DuplicateError(f"Checklist '{checklist['name']}' already exists")
    data["checklists"][slug] = checklist
    return slug

# =============================================================================
# Operations
# =============================================================================

def create_checklist(name: str, description: str = "") -> dict:
    name = name.strip()
    if not name:
        raise ValidationError('Usage: checklist new "Checklist Name" [-d "Description"]')
    with get_store().transaction() as data:
        checklist = _new_checklist(name, description)
        _insert(data, checklist)
    log.info("created checklist %s", name)
    return checklist


def add_item(name: str, text: str) -> dict:
    text = text.strip()
    if not text:
        raise ValidationError('Usage: checklist add "checklist" "item"')
    with get_store().transaction() as data:
        checklist = data["checklists"][resolve(data, name)]
        checklist["items"].append({"text": text, "checked": False})
    log.info("added item to %s", checklist["name"])
    return checklist


def remove_item(name: str, number: int) -> dict:
    with get_store().transaction() as data:
        checklist = data["checklists"][resolve(data, name)]
        item = checklist["items"].pop(_item_index(checklist, number))
    log.info("removed item %d from %s", number, checklist["name"])
    return item


def toggle_item(name: str, number: int) -> dict:
    """Toggle an item. Checking the last open item records a completion."""
    with get_store().transaction() as data:
        checklist = data["checklists"][resolve(data, name)]
        item = checklist["items"][_item_index(checklist, number)]
        item["checked"] = not item["checked"]
        completed = item["checked"] and all(i["checked"] for i in checklist["items"])
        if completed:
            stamp = _stamp()
            checklist["completion_count"] = checklist.get("completion_count", 0) + 1
            checklist["last_completed"] = stamp
            with history_store().transaction() as history:
                history["completions"].append({"checklist": checklist["name"], "completed_at": stamp})
            log.info("completed checklist %s", checklist["name"])
    return {"item": item, "completed": completed, "checklist": checklist}


def get_checklist(name: str) -> dict:
    with get_store().read() as data:
        return data["checklists"][resolve(data, name)]


def reset_checklist(name: str) -> dict:
    with get_store().transaction() as data:
        checklist = data["checklists"][resolve(data, name)]
        for item in checklist["items"]:
            item["checked"] = False
    log.info("reset checklist %s", checklist["name"])
    return checklist


def list_checklists() -> list:
    with get_store().read() as data:
        return sorted(data["checklists"].values(), key=lambda c: c["name"].lower())


def copy_checklist(source: str, dest: str) -> dict:
    """Copy items into a new, fully unchecked checklist."""
    dest = dest.strip()
    if not dest:
        raise ValidationError('Usage: checklist copy "source" "dest"')
    with get_store().transaction() as data:
        original = data["checklists"][resolve(data, source)]
        checklist = _new_checklist(dest, original.get("description", ""), [i["text"] for i in original["items"]])
        _insert(data, checklist)
    log.info("copied checklist %s to %s", original["name"], dest)
    return checklist


def delete_checklist(name: str) -> dict:
    with get_store().transaction() as data:
        slug = resolve(data, name)
        checklist = data["checklists"].pop(slug)
    log.info("deleted checklist %s", checklist["name"])
    return checklist


def completion_history(name: Optional[str] = None) -> list:
    """Completed runs, newest first, optionally for one checklist."""
    with history_store().read() as history:
        completions = history["completions"]
    if name:
        checklist_name = get_checklist(name)["name"]
        completions = [c for c in completions if c["checklist"] == checklist_name]
    return sorted(completions, key=lambda c: c["completed_at"], reverse=True)


def export_checklist(name: str) -> dict:
    checklist = get_checklist(name)
    return {
        "name": checklist["name"],
        "description": checklist.get("description", ""),
        "items": [{"text": i["text"], "checked": i["checked"]} for i in checklist["items"]],
    }


def import_checklist(path: Path, force: bool = False) -> dict:
    try:
        incoming = json.loads(Path(path).read_text())
    except FileNotFoundError:
        raise NotFoundError(f"File not found: {path}")
    except json.JSONDecodeError as e:
        raise StoreError(f"Invalid JSON in {path}: {e}")
    if not isinstance(incoming, dict) or not incoming.get("name") or not isinstance(incoming.get("items"), list):
        raise ValidationError(f"Not a checklist export: {path}")

    items = []
    for item in incoming["items"]:
        text = item.get("text") if isinstance(item, dict) else item
        if not isinstance(text, str) or not text.strip():
            raise ValidationError(f"Malformed item in {path}: {item!r}")
        items.append(text)

    with get_store().transaction() as data:
        checklist = _new_checklist(incoming["name"], incoming.get("description", ""), items)
        _insert(data, checklist, force=force)
    log.info("imported checklist %s from %s", checklist["name"], path)
    return checklist


def use_template(template: str, name: Optional[str] = None) -> dict:
    if template not in TEMPLATES:
        raise NotFoundError(f"Unknown template: {template} (available: {', '.join(TEMPLATES)})")
    description, items = TEMPLATES[template]
    name = (name or "").strip() or template.replace("-", " ").title()
    with get_store().transaction() as data:
        checklist = _new_checklist(name, description, items)
        _insert(data, checklist)
    log.info("created checklist %s from template %s", name, template)
    return checklist

# =============================================================================
# CLI
# =============================================================================

def progress(checklist: dict) -> str:
    done = sum(1 for i in checklist["items"] if i["checked"])
    return f"{done}/{len(checklist['items'])}"


def print_checklist(checklist: dict) -> None:
    print(f"=== {checklist['name']} ===")
    if checklist.get("description"):
        print(checklist["description"])
    print()
    if not checklist["items"]:
        print('No items yet. Add one with: daybook-checklist add "name" "item"')
    for number, item in enumerate(checklist["items"], start=1):
        box = "[x]" if item["checked"] else "[ ]"
        print(f"  {number:2d}. {box} {item['text']}")
    print()
    print(f"Progress: {progress(checklist)}")
    if checklist.get("completion_count"):
        print(f"Completed {checklist['completion_count']} time(s), last: {checklist['last_completed']}")


def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-checklist", description="Reusable checklists")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # new
    new_parser = add_command(subparsers, "new", aliases=["create"], help="Create a checklist")
    new_parser.add_argument("name", help="Checklist name")
    new_parser.add_argument("-d", "--description", default="", help="Description")

    # add
    add_parser = add_command(subparsers, "add", help="Add an item")
    add_parser.add_argument("name", help="Checklist name")
    add_parser.add_argument("item", help="Item text")

    # remove
    remove_parser = add_command(subparsers, "remove", aliases=["rm"], help="Remove an item")
    remove_parser.add_argument("name", help="Checklist name")
    remove_parser.add_argument("number", type=int, help="Item number")

    # check
    check_parser = add_command(subparsers, "check", aliases=["toggle", "x"], help="Check/uncheck an item")
    check_parser.add_argument("name", help="Checklist name")
    check_parser.add_argument("number", type=int, help="Item number")

    # show
    show_parser = add_command(subparsers, "show", aliases=["view"], help="Show a checklist")
    show_parser.add_argument("name", help="Checklist name")
    show_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # reset
    reset_parser = add_command(subparsers, "reset", aliases=["clear"], help="Uncheck all items")
    reset_parser.add_argument("name", help="Checklist name")

    # list
    list_parser = add_command(subparsers, "list", aliases=["ls"], help="List checklists")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # copy
    copy_parser = add_command(subparsers, "copy", aliases=["clone"], help="Copy a checklist")
    copy_parser.add_argument("source", help="Checklist to copy")
    copy_parser.add_argument("dest", help="Name of the new checklist")

    # delete
    delete_parser = add_command(subparsers, "delete", aliases=["del"], help="Delete a checklist")
    delete_parser.add_argument("name", help="Checklist name")

    # history
    history_parser = add_command(subparsers, "history", aliases=["hist"], help="Show completion history")
    history_parser.add_argument("name", nargs="?", help="Checklist name (default: all)")

    # export
    export_parser = add_command(subparsers, "export", help="Export a checklist as JSON")
    export_parser.add_argument("name", help="Checklist name")
    export_parser.add_argument("file", nargs="?", help="Output file (default: stdout)")

    # import
    import_parser = add_command(subparsers, "import", help="Import a checklist from JSON")
    import_parser.add_argument("file", help="Export file")
    import_parser.add_argument("-f", "--force", action="store_true", help="Overwrite an existing checklist")

    # templates
    add_command(subparsers, "templates", help="List built-in templates")

    # use-template
    template_parser = add_command(subparsers, "use-template", help="Create a checklist from a template")
    template_parser.add_argument("template", help="Template name")
    template_parser.add_argument("name", nargs="?", help="Name for the new checklist")

    return parser


def run(args) -> int:
    if args.command == "new":
        checklist = create_checklist(args.name, args.description)
        print(f"Created checklist: {checklist['name']}")

    elif args.command == "add":
        checklist = add_item(args.name, args.item)
        print(f"Added item {len(checklist['items'])} to {checklist['name']}: {args.item.strip()}")

    elif args.command == "remove":
        item = remove_item(args.name, args.number)
        print(f"Removed: {item['text']}")

    elif args.command == "check":
        result = toggle_item(args.name, args.number)
        box = "[x]" if result["item"]["checked"] else "[ ]"
        print(f"{box} {result['item']['text']}")
        if result["completed"]:
            print()
            print("✅ All items checked!")

    elif args.command == "show":
        checklist = get_checklist(args.name)
        if args.json:
            print_json(checklist)
        else:
            print_checklist(checklist)

    elif args.command == "reset":
        checklist = reset_checklist(args.name)
        print(f"Reset {checklist['name']} ({len(checklist['items'])} items unchecked)")

    elif args.command == "list":
        checklists = list_checklists()
        if args.json:
            print_json(checklists)
        elif not checklists:
            print('No checklists yet. Create one with: daybook-checklist new "name"')
        else:
            print("=== Checklists ===")
            print()
            for c in checklists:
                desc = f" - {c['description']}" if c.get("description") else ""
                print(f"  {c['name']} [{progress(c)}]{desc}")

    elif args.command == "copy":
        checklist = copy_checklist(args.source, args.dest)
        print(f"Created {checklist['name']} with {len(checklist['items'])} item(s)")

    elif args.command == "delete":
        checklist = delete_checklist(args.name)
        print(f"Deleted checklist: {checklist['name']}")

    elif args.command == "history":
        completions = completion_history(args.name)
        if not completions:
            print("No completions recorded yet.")
        else:
            print("=== Completion History ===")
            for c in completions[:20]:
                print(f"  {c['completed_at']}  {c['checklist']}")

    elif args.command == "export":
        exported = export_checklist(args.name)
        if args.file:
            Path(args.file).write_text(json.dumps(exported, indent=2) + "\n")
            print(f"Exported {exported['name']} to {args.file}")
        else:
            print_json(exported)

    elif args.command == "import":
        checklist = import_checklist(args.file, args.force)
        print(f"Imported checklist: {checklist['name']} ({len(checklist['items'])} items)")

    elif args.command == "templates":
        print("=== Built-in Templates ===")
        print()
        for name, (description, items) in TEMPLATES.items():
            print(f"  {name}")
            print(f"    {description} ({len(items)} items)")
        print()
        print("Use with: daybook-checklist use-template <template-name>")

    elif args.command == "use-template":
        checklist = use_template(args.template, args.name)
        print(f"Created checklist: {checklist['name']} ({len(checklist['items'])} items)")

    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv, default="list")
    return run_cli(lambda: run(args), make_logger("checklist"))


if __name__ == "__main__":
    sys.exit(main())
