#!/usr/bin/env python3
"""Single entry point that forwards to the individual tools.

Usage:
    daybook <tool> [args...]
    daybook tools
"""

import importlib
import sys

from daybook import __version__
from daybook.config import TOOLS

ALIASES = {
    "todo": "tasks",
    "time": "timelog",
    "retro": "retrospective",
    "meeting": "meetings",
    "notes": "meetings",
    "bm": "bookmarks",
    "pass": "genpass",
    "password": "genpass",
    "tpl": "templates",
}


def resolve(name: str) -> str:
    name = ALIASES.get(name, name)
    if name not in TOOLS:
        raise KeyError(name)
    return name


def print_tools() -> None:
    print(f"daybook {__version__}")
    print()
    print("Usage: daybook <tool> [args...]")
    print()
    print("Tools:")
    for tool in TOOLS:
        module = importlib.import_module(f"daybook.{tool}")
        summary = (module.__doc__ or "").strip().splitlines()[0]
        print(f"  {tool:<15} {summary}")


def main(argv=None) -> int:
    argv = list(sys.argv[1:] if argv is None else argv)
    if not argv or argv[0] in ("tools", "help", "-h", "--help"):
        print_tools()
        return 0
    if argv[0] in ("--version", "version"):
        print(__version__)
        return 0
    try:
        tool = resolve(argv[0])
    except KeyError:
        print(f"Error: unknown tool '{argv[0]}'. Run 'daybook tools' to list them.", file=sys.stderr)
        return 1
    module = importlib.import_module(f"daybook.{tool}")
    return module.main(argv[1:])


if __name__ == "__main__":
    sys.exit(main())
