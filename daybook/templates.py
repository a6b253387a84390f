#!/usr/bin/env python3
"""Text templates with {{variable}} placeholders.

Placeholders are ``{{name}}`` (required) or ``{{name:default}}``. A handful
of built-ins are always available: ``_date_``, ``_time_``, ``_datetime_``,
``_year_``, ``_month_``, ``_day_``, ``_user_`` and ``_name_``.

Usage:
    daybook-templates new <name> "<content>" [--description D] [--category C]
    daybook-templates new <name> --file <path>
    daybook-templates edit <name> "<content>" | --file <path>
    daybook-templates use <name> [var=value ...] [--output <file>]
    daybook-templates list
    daybook-templates show <name>
    daybook-templates vars <name>
    daybook-templates search "<term>"
    daybook-templates delete <name>
    daybook-templates export <name> [file]
    daybook-templates import <file> [name]
"""

import getpass
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

PLACEHOLDER = re.compile(r"\{\{([a-zA-Z_][a-zA-Z0-9_]*)(?::([^}]*))?\}\}")
BUILTINS = ("_date_", "_time_", "_datetime_", "_year_", "_month_", "_day_", "_user_", "_name_")

log = logging.getLogger(__name__)


def get_store() -> JsonStore:
    return JsonStore(tool_dir("templates") / "templates.json", {"templates": []})


def _stamp() -> str:
    return now_local().strftime("%Y-%m-%d %H:%M:%S")


def sanitize_name(name: str) -> str:
    return re.sub(r"-+", "-", re.sub(r"[^a-z0-9_-]", "-", name.lower())).strip("-")


def _find(data: dict, name: str) -> dict:
    key = sanitize_name(name)
    for template in data["templates"]:
        if template["name"] == key:
            return template
    raise NotFoundError(f"Template '{name}' not found")


def _read_content(content: Optional[str], file: Optional[str]) -> str:
    if file:
        try:
            return Path(file).read_text()
        except FileNotFoundError:
            raise NotFoundError(f"File not found: {file}")
    if content is None or not content.strip():
        raise ValidationError("Template content required (pass it as an argument or with --file)")
    return content

# =============================================================================
# Rendering
# =============================================================================

def extract_variables(content: str) -> list:
    """(name, default) for each distinct non-builtin placeholder, in order.

    default is None for required variables.
    """
    found = {}
    for match in PLACEHOLDER.finditer(content):
        name, default = match.group(1), match.group(2)
        if name in BUILTINS:
            continue
        if name not in found or (found[name] is None and default is not None):
            found[name] = default
    return list(found.items())


def current_user() -> str:
    try:
        return getpass.getuser()
    except (OSError, KeyError):
        return "unknown"


def builtin_values(template_name: str) -> dict:
    now = now_local()
    return {
        "_date_": now.strftime("%Y-%m-%d"),
        "_time_": now.strftime("%H:%M"),
        "_datetime_": now.strftime("%Y-%m-%d %H:%M:%S"),
        "_year_": now.strftime("%Y"),
        "_month_": now.strftime("%m"),
        "_day_": now.strftime("%d"),
        "_user_": current_user(),
        "_name_": template_name,
    }


def render(content: str, values: dict, template_name: str = "") -> str:
    """Substitute placeholders.

    Raises:
        ValidationError: listing every required variable without a value
    """
    merged = {**builtin_values(template_name), **values}
    missing = [name for name, default in extract_variables(content) if default is None and name not in merged]
    if missing:
        raise ValidationError(f"Missing required variable(s): {', '.join(missing)}")

    def substitute(match):
        name, default = match.group(1), match.group(2)
        if name in merged:
            return merged[name]
        return default if default is not None else match.group(0)

    return PLACEHOLDER.sub(substitute, content)


def parse_assignments(pairs) -> dict:
    values = {}
    for pair in pairs or []:
        if "=" not in pair:
            raise ValidationError(f"Expected var=value, got: {pair}")
        key, value = pair.split("=", 1)
        if not key:
            raise ValidationError(f"Expected var=value, got: {pair}")
        values[key] = value
    return values

# =============================================================================
# Operations
# =============================================================================

def create_template(name: str, content: str, description: str = "", category: str = "general") -> dict:
    key = sanitize_name(name)
    if not key:
        raise ValidationError(f"Invalid template name: {name!r}")
    stamp = _stamp()
    with get_store().transaction() as data:
        if any(t["name"] == key for t in data["templates"]):
            raise DuplicateError(f"Template '{key}' already exists (use edit to change it)")
        template = {
            "name": key,
            "description": description or "",
            "category": category or "general",
            "content": content,
            "created": stamp,
            "modified": stamp,
            "uses": 0,
        }
        data["templates"].append(template)
    log.info("created template %s", key)
    return template


def edit_template(name: str, content: str, description: Optional[str] = None,
                  category: Optional[str] = None) -> dict:
    with get_store().transaction() as data:
        template = _find(data, name)
        template["content"] = content
        if description is not None:
            template["description"] = description
        if category is not None:
            template["category"] = category
        template["modified"] = _stamp()
    log.info("edited template %s", template["name"])
    return template


def use_template(name: str, values: dict) -> str:
    """Render a template and count the use."""
    with get_store().transaction() as data:
        template = _find(data, name)
        output = render(template["content"], values, template["name"])
        template["uses"] = template.get("uses", 0) + 1
    log.info("rendered template %s", template["name"])
    return output


def list_templates() -> list:
    with get_store().read() as data:
        return sorted(data["templates"], key=lambda t: (t.get("category", ""), t["name"]))


def get_template(name: str) -> dict:
    with get_store().read() as data:
        return _find(data, name)


def delete_template(name: str) -> dict:
    with get_store().transaction() as data:
        template = _find(data, name)
        data["templates"] = [t for t in data["templates"] if t["name"] != template["name"]]
    log.info("deleted template %s", template["name"])
    return template


def search_templates(term: str) -> list:
    needle = term.lower().strip()
    if not needle:
        raise ValidationError('Usage: templates search "term"')
    return [
        t for t in list_templates()
        if needle in t["name"] or needle in t.get("description", "").lower() or needle in t["content"].lower()
    ]


def export_template(name: str) -> dict:
    template = get_template(name)
    return {k: template[k] for k in ("name", "description", "category", "content")}


def import_template(path: Path, name: Optional[str] = None) -> dict:
    try:
        incoming = json.loads(Path(path).read_text())
    except FileNotFoundError:
        raise NotFoundError(f"File not found: {path}")
    except json.JSONDecodeError as e:
        raise StoreError(f"Invalid JSON in {path}: {e}")
    if not isinstance(incoming, dict) or not isinstance(incoming.get("content"), str):
        raise ValidationError(f"Not a template export: {path}")
    target = name or incoming.get("name")
    if not target:
        raise ValidationError(f"No template name in {path}; pass one explicitly")
    return create_template(target, incoming["content"], incoming.get("description", ""), incoming.get("category", "general"))

# =============================================================================
# CLI
# =============================================================================

def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-templates", description="Text templates with variables")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # new
    new_parser = add_command(subparsers, "new", aliases=["create", "add"], help="Create a template")
    new_parser.add_argument("name", help="Template name")
    new_parser.add_argument("content", nargs="?", help="Template text")
    new_parser.add_argument("-f", "--file", help="Read template text from a file")
    new_parser.add_argument("-d", "--description", default="", help="Description")
    new_parser.add_argument("-c", "--category", default="general", help="Category")

    # edit
    edit_parser = add_command(subparsers, "edit", help="Replace a template's text")
    edit_parser.add_argument("name", help="Template name")
    edit_parser.add_argument("content", nargs="?", help="New template text")
    edit_parser.add_argument("-f", "--file", help="Read template text from a file")
    edit_parser.add_argument("-d", "--description", help="New description")
    edit_parser.add_argument("-c", "--category", help="New category")

    # use
    use_parser = add_command(subparsers, "use", aliases=["gen", "fill"], help="Render a template")
    use_parser.add_argument("name", help="Template name")
    use_parser.add_argument("vars", nargs="*", help="var=value assignments")
    use_parser.add_argument("-o", "--output", help="Write to a file instead of stdout")

    # list
    list_parser = add_command(subparsers, "list", aliases=["ls"], help="List templates")
    list_parser.add_argument("--json", action="store_true", help="Output as JSON")

    # show
    show_parser = add_command(subparsers, "show", aliases=["view", "cat"], help="Show a template")
    show_parser.add_argument("name", help="Template name")

    # vars
    vars_parser = add_command(subparsers, "vars", aliases=["variables"], help="List a template's variables")
    vars_parser.add_argument("name", help="Template name")

    # delete
    delete_parser = add_command(subparsers, "delete", aliases=["rm", "remove"], help="Delete a template")
    delete_parser.add_argument("name", help="Template name")

    # search
    search_parser = add_command(subparsers, "search", aliases=["find"], help="Search templates")
    search_parser.add_argument("term", help="Text to find")

    # export
    export_parser = add_command(subparsers, "export", help="Export a template as JSON")
    export_parser.add_argument("name", help="Template name")
    export_parser.add_argument("file", nargs="?", help="Output file (default: stdout)")

    # import
    import_parser = add_command(subparsers, "import", help="Import a template from JSON")
    import_parser.add_argument("file", help="Export file")
    import_parser.add_argument("name", nargs="?", help="Name to import as")

    return parser


def run(args) -> int:
    if args.command == "new":
        template = create_template(
            args.name, _read_content(args.content, args.file), args.description, args.category
        )
        print(f"Created template: {template['name']}")
        variables = extract_variables(template["content"])
        if variables:
            print(f"  Variables: {', '.join(name for name, _ in variables)}")

    elif args.command == "edit":
        template = edit_template(args.name, _read_content(args.content, args.file), args.description, args.category)
        print(f"Updated template: {template['name']}")

    elif args.command == "use":
        output = use_template(args.name, parse_assignments(args.vars))
        if args.output:
            Path(args.output).write_text(output)
            print(f"Written to {args.output}")
        else:
            sys.stdout.write(output if output.endswith("\n") else output + "\n")

    elif args.command == "list":
        templates = list_templates()
        if args.json:
            print_json(templates)
        elif not templates:
            print('No templates yet. Create one with: daybook-templates new <name> "content"')
        else:
            print("=== Templates ===")
            category = None
            for t in templates:
                if t.get("category") != category:
                    category = t.get("category")
                    print()
                    print(f"[{category}]")
                desc = t.get("description") or "No description"
                print(f"  {t['name']} - {desc} (used: {t.get('uses', 0)}x)")

    elif args.command == "show":
        template = get_template(args.name)
        print(f"=== {template['name']} ===")
        if template.get("description"):
            print(template["description"])
        print(f"Category: {template.get('category', 'general')}  Uses: {template.get('uses', 0)}")
        print()
        print(template["content"])

    elif args.command == "vars":
        template = get_template(args.name)
        variables = extract_variables(template["content"])
        print(f"=== Variables in {template['name']} ===")
        if not variables:
            print("  (none)")
        for name, default in variables:
            if default is None:
                print(f"  {{{{{name}}}}} - required")
            else:
                print(f"  {{{{{name}}}}} - default: '{default}'")
        print()
        print("Built-in: " + ", ".join(BUILTINS))

    elif args.command == "delete":
        template = delete_template(args.name)
        print(f"Deleted template: {template['name']}")

    elif args.command == "search":
        matches = search_templates(args.term)
        if not matches:
            print(f"No templates matching '{args.term}'")
        else:
            for t in matches:
                print(f"  {t['name']} - {t.get('description') or 'No description'}")

    elif args.command == "export":
        exported = export_template(args.name)
        if args.file:
            Path(args.file).write_text(json.dumps(exported, indent=2) + "\n")
            print(f"Exported {exported['name']} to {args.file}")
        else:
            print_json(exported)

    elif args.command == "import":
        template = import_template(args.file, args.name)
        print(f"Imported template: {template['name']}")

    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv, default="list")
    return run_cli(lambda: run(args), make_logger("templates"))


if __name__ == "__main__":
    sys.exit(main())
