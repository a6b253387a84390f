#!/usr/bin/env python3
"""Simple command-line task tracker.

Tasks carry an optional priority (high/med/low) and an optional due date.
Ids are small integers handed out from a counter and never reused.

Usage:
    daybook-tasks add "<task>" [-p high|med|low] [-d <date>]
    daybook-tasks list [--all|--overdue|--today|--priority|--high]
    daybook-tasks done <id>
    daybook-tasks undone <id>
    daybook-tasks edit <id> "<new description>"
    daybook-tasks priority <id> <high|med|low>
    daybook-tasks due <id> <date|clear>
    daybook-tasks remove <id>
    daybook-tasks clear               # Remove all completed tasks
"""

import logging
import sys
from datetime import date
from typing import Optional

from daybook.config import now_local, today, tool_dir
from daybook.errors import NotFoundError, ValidationError
from daybook.store import JsonStore, next_id
from daybook.utils import (
    CLIParser, add_command, make_logger, parse_cli, parse_date, print_json, run_cli,
)

PRIORITIES = ("high", "med", "low")
PRIORITY_ORDER = {"high": 0, "med": 1, "low": 2}
DEFAULT_DATA = {"tasks": [], "next_id": 1}

log = logging.getLogger(__name__)


def get_store() -> JsonStore:
    return JsonStore(tool_dir("tasks") / "tasks.json", DEFAULT_DATA)


def _stamp() -> str:
    return now_local().strftime("%Y-%m-%d %H:%M")


def _find(data: dict, task_id: int) -> dict:
    for task in data["tasks"]:
        if task["id"] == task_id:
            return task
    raise NotFoundError(f"Task #{task_id} not found")


def validate_priority(priority: Optional[str]) -> Optional[str]:
    if priority is None:
        return None
    priority = priority.lower()
    if priority not in PRIORITIES:
        raise ValidationError(f"Invalid priority: {priority}. Use high, med, or low.")
    return priority


def add_task(description: str, priority: Optional[str] = None, due: Optional[str] = None) -> dict:
    """Add a new task."""
    description = description.strip()
    if not description:
        raise ValidationError('Usage: tasks add "Task description" [-p high|med|low] [-d DATE]')
    priority = validate_priority(priority)
    due_date = parse_date(due).isoformat() if due else None

    with get_store().transaction() as data:
        task = {
            "id": next_id(data),
            "description": description,
            "created": _stamp(),
            "completed": False,
            "completed_at": None,
            "priority": priority,
            "due": due_date,
        }
        data["tasks"].append(task)

    log.info("added task #%s: %s", task["id"], description)
    return task


def list_tasks(filter_by: Optional[str] = None) -> dict:
    """Split tasks into pending and completed, applying a list filter.

    filter_by is one of None, "all", "overdue", "today", "priority", "high".
    Filters other than "all" and "priority" hide completed tasks.
    """
    with get_store().read() as data:
        tasks = data.get("tasks", [])

    today_str = today().isoformat()
    pending = [t for t in tasks if not t.get("completed")]
    completed = [t for t in tasks if t.get("completed")]

    if filter_by == "overdue":
        pending = [t for t in pending if t.get("due") and t["due"] < today_str]
    elif filter_by == "today":
        pending = [t for t in pending if t.get("due") == today_str]
    elif filter_by == "high":
        pending = [t for t in pending if t.get("priority") == "high"]
    elif filter_by == "priority":
        pending = sorted(pending, key=lambda t: PRIORITY_ORDER.get(t.get("priority"), 3))

    if filter_by in ("overdue", "today", "high"):
        completed = []

    return {
        "pending": pending,
        "completed": completed,
        "overdue_count": sum(1 for t in tasks if not t.get("completed") and t.get("due") and t["due"] < today_str),
        "today_count": sum(1 for t in tasks if not t.get("completed") and t.get("due") == today_str),
        "total": len(tasks),
    }


def complete_task(task_id: int) -> tuple:
    """Mark a task as complete. Returns (task, changed)."""
    with get_store().transaction() as data:
        task = _find(data, task_id)
        if task.get("completed"):
            return task, False
        task["completed"] = True
        task["completed_at"] = _stamp()
    log.info("completed task #%s", task_id)
    return task, True


def reopen_task(task_id: int) -> tuple:
    """Mark a completed task as pending again. Returns (task, changed)."""
    with get_store().transaction() as data:
        task = _find(data, task_id)
        if not task.get("completed"):
            return task, False
        task["completed"] = False
        task["completed_at"] = None
    log.info("reopened task #%s", task_id)
    return task, True


def edit_task(task_id: int, description: str) -> dict:
    description = description.strip()
    if not description:
        raise ValidationError('Usage: tasks edit <id> "new description"')
    with get_store().transaction() as data:
        task = _find(data, task_id)
        task["description"] = description
    log.info("edited task #%s", task_id)
    return task


def set_priority(task_id: int, priority: str) -> dict:
    priority = validate_priority(priority)
    with get_store().transaction() as data:
        task = _find(data, task_id)
        task["priority"] = priority
    log.info("set priority of task #%s to %s", task_id, priority)
    return task


def set_due(task_id: int, due: Optional[str]) -> dict:
    """Set a due date, or clear it when due is empty or 'clear'."""
    due_date = None
    if due and due.lower() != "clear":
        due_date = parse_date(due).isoformat()
    with get_store().transaction() as data:
        task = _find(data, task_id)
        task["due"] = due_date
    log.info("set due date of task #%s to %s", task_id, due_date)
    return task


def remove_task(task_id: int) -> dict:
    """Remove a task entirely."""
    with get_store().transaction() as data:
        task = _find(data, task_id)
        data["tasks"] = [t for t in data["tasks"] if t["id"] != task_id]
    log.info("removed task #%s", task_id)
    return task


def clear_completed() -> int:
    """Remove all completed tasks. Returns how many were removed."""
    with get_store().transaction() as data:
        before = len(data["tasks"])
        data["tasks"] = [t for t in data["tasks"] if not t.get("completed")]
        removed = before - len(data["tasks"])
    log.info("cleared %d completed task(s)", removed)
    return removed


def format_due(due: Optional[str], reference: Optional[date] = None) -> str:
    """Human label for a due date relative to today."""
    if not due:
        return ""
    reference = reference or today()
    due_date = date.fromisoformat(due)
    diff = (due_date - reference).days
    if diff < 0:
        return f"[OVERDUE: {due}]"
    if diff == 0:
        return "[TODAY]"
    if diff == 1:
        return "[Tomorrow]"
    if diff <= 7:
        return f"[{due_date.strftime('%a')}]"
    return f"[{due}]"


def format_task(task: dict) -> str:
    """Format a task for display."""
    status_icon = "✓" if task.get("completed") else "○"
    pri_str = f" ({task['priority']})" if task.get("priority") else ""
    due_str = f" {format_due(task.get('due'))}" if task.get("due") and not task.get("completed") else ""
    return f"[{task['id']}] {status_icon} {task['description']}{pri_str}{due_str}"


def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-tasks", description="Simple command-line task tracker")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # add
    add_parser = add_command(subparsers, "add", help="Add a task")
    add_parser.add_argument("description", nargs="+", help="Task description")
    add_parser.add_argument("-p", "--priority", help="high, med or low")
    add_parser.add_argument("-d", "--due", help="Due date (YYYY-MM-DD, tomorrow, next friday...)")

    # list
    list_parser = add_command(subparsers, "list", aliases=["ls"], help="List tasks")
    group = list_parser.add_mutually_exclusive_group()
    group.add_argument("-a", "--all", dest="filter", action="store_const", const="all", help="Show all including completed")
    group.add_argument("-o", "--overdue", dest="filter", action="store_const", const="overdue", help="Show overdue tasks only")
    group.add_argument("-t", "--today", dest="filter", action="store_const", const="today", help="Show tasks due today")
    group.add_argument("-p", "--priority", dest="filter", action="store_const", const="priority", help="Sort by priority")
    group.add_argument("--high", dest="filter", action="store_const", const="high", help="Show high priority only")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # done
    done_parser = add_command(subparsers, "done", aliases=["complete"], help="Mark a task complete")
    done_parser.add_argument("id", type=int, help="Task ID")

    # undone
    undone_parser = add_command(subparsers, "undone", aliases=["reopen", "undo"], help="Mark a task incomplete")
    undone_parser.add_argument("id", type=int, help="Task ID")

    # edit
    edit_parser = add_command(subparsers, "edit", help="Edit a task description")
    edit_parser.add_argument("id", type=int, help="Task ID")
    edit_parser.add_argument("description", nargs="+", help="New description")

    # priority
    pri_parser = add_command(subparsers, "priority", aliases=["pri"], help="Set task priority")
    pri_parser.add_argument("id", type=int, help="Task ID")
    pri_parser.add_argument("level", help="high, med or low")

    # due
    due_parser = add_command(subparsers, "due", aliases=["deadline"], help="Set or clear a due date")
    due_parser.add_argument("id", type=int, help="Task ID")
    due_parser.add_argument("date", nargs="?", help="Due date, or 'clear'")

    # remove
    remove_parser = add_command(subparsers, "remove", aliases=["rm", "delete"], help="Remove a task")
    remove_parser.add_argument("id", type=int, help="Task ID")

    # clear
    add_command(subparsers, "clear", help="Remove all completed tasks")

    return parser


def run(args) -> int:
    if args.command == "add":
        task = add_task(" ".join(args.description), args.priority, args.due)
        print(f"Task #{task['id']} added: {task['description']}")
        if task["priority"]:
            print(f"  Priority: {task['priority']}")
        if task["due"]:
            print(f"  Due: {format_due(task['due'])}")

    elif args.command == "list":
        result = list_tasks(args.filter)
        if args.json:
            print_json(result)
            return 0
        if result["total"] == 0:
            print('No tasks. Add one with: daybook-tasks add "Your task"')
            return 0
        print("=== Tasks ===")
        print()
        if result["overdue_count"]:
            print(f"⚠️ {result['overdue_count']} overdue task(s)")
        if result["today_count"]:
            print(f"📅 {result['today_count']} task(s) due today")
        if result["overdue_count"] or result["today_count"]:
            print()
        if result["pending"]:
            print(f"Pending ({len(result['pending'])}):")
            for task in result["pending"]:
                print(f"  {format_task(task)}")
            print()
        if result["completed"]:
            print(f"Completed ({len(result['completed'])}):")
            for task in result["completed"]:
                print(f"  {format_task(task)}")

    elif args.command == "done":
        task, changed = complete_task(args.id)
        if changed:
            print(f"✓ Completed: {task['description']}")
        else:
            print(f"Task #{args.id} is already completed")

    elif args.command == "undone":
        task, changed = reopen_task(args.id)
        if changed:
            print(f"Reopened: {task['description']}")
        else:
            print(f"Task #{args.id} is not completed")

    elif args.command == "edit":
        task = edit_task(args.id, " ".join(args.description))
        print(f"Updated task #{task['id']}: {task['description']}")

    elif args.command == "priority":
        task = set_priority(args.id, args.level)
        print(f"Set priority for #{task['id']}: {task['description']}")
        print(f"  Priority: {task['priority']}")

    elif args.command == "due":
        task = set_due(args.id, args.date)
        if task["due"]:
            print(f"Set due date for #{task['id']}: {task['description']}")
            print(f"  Due: {format_due(task['due'])}")
        else:
            print(f"Cleared due date for #{task['id']}: {task['description']}")

    elif args.command == "remove":
        task = remove_task(args.id)
        print(f"Removed: {task['description']}")

    elif args.command == "clear":
        removed = clear_completed()
        if removed:
            print(f"Cleared {removed} completed task(s)")
        else:
            print("No completed tasks to clear.")

    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv, default="list")
    return run_cli(lambda: run(args), make_logger("tasks"))


if __name__ == "__main__":
    sys.exit(main())
