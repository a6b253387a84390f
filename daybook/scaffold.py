#!/usr/bin/env python3
"""Project scaffolding from built-in or custom templates.

A template is a dict of relative file paths to contents, plus optional extra
directories and a list of files to mark executable. Paths and contents may
use {{PROJECT_NAME}}, {{AUTHOR}}, {{EMAIL}} and {{YEAR}}.

Usage:
    daybook-scaffold create <template> <name> [path] [--force]
    daybook-scaffold list
    daybook-scaffold show <template>
    daybook-scaffold add <name> <source_dir> [--description TEXT]
    daybook-scaffold remove <name>
    daybook-scaffold config [key value]
"""

import json
import logging
import os
import re
import stat
import sys
from pathlib import Path, PurePosixPath

from daybook.config import now_local, tool_dir
from daybook.errors import DuplicateError, NotFoundError, StoreError, ValidationError
from daybook.store import JsonStore, atomic_write_text
from daybook.utils import CLIParser, add_command, make_logger, parse_cli, run_cli

NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")
CONFIG_KEYS = ("author", "email", "github_username")
DEFAULT_CONFIG = {"custom_templates": [], "variables": {key: "" for key in CONFIG_KEYS}}
SKIP_DIRS = {".git", "__pycache__", "node_modules", ".venv", "venv"}

log = logging.getLogger(__name__)

# =============================================================================
# Built-in templates
# =============================================================================

GITIGNORE_PYTHON = """\
# Python
__pycache__/
*.py[cod]
*.so
dist/
build/
*.egg-info/
venv/
.venv/

# IDE
.vscode/
.idea/
*.swp
*~

# Logs
*.log
"""

BUILTIN_TEMPLATES = {
    "bash-script": {
        "description": "Simple bash script project",
        "files": {
            "{{PROJECT_NAME}}.sh": """\
#!/bin/bash
#
# {{PROJECT_NAME}} - Description
#
# Usage:
#   ./{{PROJECT_NAME}}.sh [options]
#

set -euo pipefail

show_help() {
    echo "{{PROJECT_NAME}} - Description"
    echo ""
    echo "Usage:"
    echo "  ./{{PROJECT_NAME}}.sh [options]"
    echo ""
    echo "Options:"
    echo "  -h, --help     Show this help"
}

main() {
    case "${1:-}" in
        -h|--help)
            show_help
            ;;
        *)
            echo "Hello from {{PROJECT_NAME}}!"
            ;;
    esac
}

main "$@"
""",
            "README.md": """\
# {{PROJECT_NAME}}

A bash script for...

## Usage

```bash
./{{PROJECT_NAME}}.sh [options]
```

## License

MIT
""",
            ".gitignore": "# Logs\n*.log\n\n# Data files\ndata/\n\n# Temp files\n*.tmp\n*~\n",
        },
        "executable": ["{{PROJECT_NAME}}.sh"],
        "next_steps": ["./{{PROJECT_NAME}}.sh"],
    },
    "python-cli": {
        "description": "Python command-line application",
        "files": {
            "{{PROJECT_NAME}}.py": """\
#!/usr/bin/env python3
\"\"\"
{{PROJECT_NAME}} - Description

Usage:
    python {{PROJECT_NAME}}.py [options]
\"\"\"

import argparse
import sys


def main():
    parser = argparse.ArgumentParser(description="{{PROJECT_NAME}}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.parse_args()

    print("Hello from {{PROJECT_NAME}}!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
""",
            "README.md": """\
# {{PROJECT_NAME}}

A Python CLI tool for...

## Installation

```bash
pip install -r requirements.txt
```

## Usage

```bash
python {{PROJECT_NAME}}.py [options]
```

## License

MIT
""",
            "requirements.txt": "# Add your dependencies here\n",
            ".gitignore": GITIGNORE_PYTHON,
        },
        "executable": ["{{PROJECT_NAME}}.py"],
        "next_steps": ["python {{PROJECT_NAME}}.py"],
    },
    "python-package": {
        "description": "Python package with pyproject.toml and tests",
        "files": {
            "{{PROJECT_NAME}}/__init__.py": '"""{{PROJECT_NAME}} - Description"""\n\n__version__ = "0.1.0"\n__author__ = "{{AUTHOR}}"\n',
            "{{PROJECT_NAME}}/main.py": """\
\"\"\"Main module for {{PROJECT_NAME}}\"\"\"


def main():
    \"\"\"Entry point.\"\"\"
    print("Hello from {{PROJECT_NAME}}!")


if __name__ == "__main__":
    main()
""",
            "tests/__init__.py": "",
            "tests/test_main.py": """\
\"\"\"Tests for {{PROJECT_NAME}}\"\"\"

from {{PROJECT_NAME}}.main import main


def test_main_prints_greeting(capsys):
    main()
    assert "{{PROJECT_NAME}}" in capsys.readouterr().out
""",
            "pyproject.toml": """\
[build-system]
requires = ["setuptools>=61"]
build-backend = "setuptools.build_meta"

[project]
name = "{{PROJECT_NAME}}"
version = "0.1.0"
description = "Description"
readme = "README.md"
authors = [{name = "{{AUTHOR}}", email = "{{EMAIL}}"}]
requires-python = ">=3.9"
dependencies = []

[project.optional-dependencies]
test = ["pytest>=7.0"]

[project.scripts]
{{PROJECT_NAME}} = "{{PROJECT_NAME}}.main:main"
""",
            "README.md": """\
# {{PROJECT_NAME}}

Description

## Installation

```bash
pip install -e .
```

## Development

```bash
python -m pytest tests/
```

## License

MIT
""",
            ".gitignore": GITIGNORE_PYTHON + "\n# Testing\n.pytest_cache/\n.coverage\nhtmlcov/\n",
        },
        "directories": ["{{PROJECT_NAME}}", "tests"],
        "next_steps": ["pip install -e .", "python -m pytest tests/"],
    },
    "html-page": {
        "description": "Simple HTML/CSS/JS page",
        "files": {
            "index.html": """\
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{{PROJECT_NAME}}</title>
    <link rel="stylesheet" href="styles.css">
</head>
<body>
    <header>
        <h1>{{PROJECT_NAME}}</h1>
    </header>
    <main>
        <p>Welcome to {{PROJECT_NAME}}!</p>
    </main>
    <footer>
        <p>&copy; {{YEAR}} {{AUTHOR}}</p>
    </footer>
    <script src="script.js"></script>
</body>
</html>
""",
            "styles.css": """\
* {
    margin: 0;
    padding: 0;
    box-sizing: border-box;
}

body {
    font-family: -apple-system, BlinkMacSystemFont, 'Segoe UI', Roboto, sans-serif;
    line-height: 1.6;
    color: #333;
    max-width: 1200px;
    margin: 0 auto;
    padding: 2rem;
}

footer {
    margin-top: 2rem;
    padding-top: 1rem;
    border-top: 1px solid #eee;
    color: #666;
    font-size: 0.9rem;
}
""",
            "script.js": "// {{PROJECT_NAME}} JavaScript\n\ndocument.addEventListener('DOMContentLoaded', () => {\n    console.log('{{PROJECT_NAME}} loaded');\n});\n",
            "README.md": "# {{PROJECT_NAME}}\n\nA simple HTML page.\n\n## Usage\n\nOpen `index.html` in your browser.\n\n## License\n\nMIT\n",
        },
        "next_steps": ["open index.html"],
    },
    "makefile-project": {
        "description": "Project with Makefile",
        "files": {
            "Makefile": """\
.PHONY: all build clean test help

PROJECT := {{PROJECT_NAME}}
VERSION := 0.1.0

all: build

build:
\t@echo "Building $(PROJECT)..."
\t@echo "Done."

test:
\t@echo "Running tests..."
\t@echo "All tests passed."

clean:
\t@echo "Cleaning..."
\t@rm -rf build/ dist/
\t@echo "Done."

help:
\t@echo "{{PROJECT_NAME}} Makefile"
\t@echo ""
\t@echo "Targets:"
\t@echo "  build   Build the project"
\t@echo "  test    Run tests"
\t@echo "  clean   Clean build artifacts"
\t@echo "  help    Show this help"
""",
            "README.md": "# {{PROJECT_NAME}}\n\nDescription\n\n## Build\n\n```bash\nmake build\n```\n\n## License\n\nMIT\n",
            ".gitignore": "build/\ndist/\n*.o\n*.a\n*.so\n*~\n",
        },
        "next_steps": ["make build"],
    },
}

# =============================================================================
# Config and custom templates
# =============================================================================

def config_store() -> JsonStore:
    return JsonStore(tool_dir("scaffold") / "config.json", DEFAULT_CONFIG)


def templates_dir() -> Path:
    path = tool_dir("scaffold") / "templates"
    path.mkdir(parents=True, exist_ok=True)
    return path


def validate_name(name: str, what: str = "project") -> str:
    if not NAME_PATTERN.match(name or ""):
        raise ValidationError(
            f"Invalid {what} name: {name!r}. Name must start with a letter and contain "
            "only letters, numbers, hyphens, and underscores."
        )
    return name


def _custom_path(name: str) -> Path:
    return templates_dir() / f"{name}.json"


def load_template(name: str) -> dict:
    """Custom templates shadow built-ins of the same name."""
    path = _custom_path(name) if NAME_PATTERN.match(name or "") else None
    if path is not None and path.exists():
        store = JsonStore(path, {"files": {}})
        with store.read() as template:
            if not isinstance(template.get("files"), dict):
                raise StoreError(f"Template {path} has no 'files' mapping")
            return dict(template, name=name, custom=True)
    if name in BUILTIN_TEMPLATES:
        return dict(BUILTIN_TEMPLATES[name], name=name, custom=False)
    raise NotFoundError(f"Template '{name}' not found. Run 'daybook-scaffold list' to see available templates.")


def list_templates() -> dict:
    with config_store().read() as config:
        custom_names = list(config["custom_templates"])
    custom = []
    for name in custom_names:
        path = _custom_path(name)
        if not path.exists():
            log.warning("custom template %s is registered but %s is missing", name, path)
            continue
        custom.append({"name": name, "description": load_template(name).get("description") or "Custom template"})
    builtin = [{"name": name, "description": t["description"]} for name, t in BUILTIN_TEMPLATES.items()]
    return {"builtin": builtin, "custom": custom}


def get_variables() -> dict:
    with config_store().read() as config:
        return dict(config["variables"])


def set_variable(key: str, value: str) -> dict:
    if key not in CONFIG_KEYS:
        raise ValidationError(f"Unknown setting '{key}'. Choose from: {', '.join(CONFIG_KEYS)}")
    with config_store().transaction() as config:
        config["variables"][key] = value
        variables = dict(config["variables"])
    log.info("set %s", key)
    return variables

# =============================================================================
# Rendering
# =============================================================================

def substitute(text: str, values: dict) -> str:
    for key, value in values.items():
        text = text.replace("{{" + key + "}}", value)
    return text


def _safe_relative(path: str) -> PurePosixPath:
    rel = PurePosixPath(path)
    if rel.is_absolute() or ".." in rel.parts or not rel.parts:
        raise ValidationError(f"Template path escapes the project directory: {path}")
    return rel


def create_project(template_name: str, project_name: str, target: str = ".", force: bool = False) -> dict:
    validate_name(project_name)
    template = load_template(template_name)
    project_dir = Path(target).expanduser() / project_name
    if project_dir.exists() and not force:
        raise DuplicateError(f"Directory already exists: {project_dir} (use --force to write into it)")

    variables = get_variables()
    values = {
        "PROJECT_NAME": project_name,
        "AUTHOR": variables.get("author", ""),
        "EMAIL": variables.get("email", ""),
        "YEAR": str(now_local().year),
    }

    created_dirs = []
    created_files = []
    project_dir.mkdir(parents=True, exist_ok=True)
    for directory in template.get("directories", []):
        rel = _safe_relative(substitute(directory, values))
        (project_dir / rel).mkdir(parents=True, exist_ok=True)
        created_dirs.append(str(rel))

    for path, content in template["files"].items():
        rel = _safe_relative(substitute(path, values))
        dest = project_dir / rel
        dest.parent.mkdir(parents=True, exist_ok=True)
        dest.write_text(substitute(content, values), encoding="utf-8")
        created_files.append(str(rel))

    for path in template.get("executable", []):
        dest = project_dir / _safe_relative(substitute(path, values))
        if dest.exists():
            dest.chmod(dest.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)

    log.info("created %s from %s at %s (%d files)", project_name, template_name, project_dir, len(created_files))
    return {
        "path": project_dir,
        "directories": created_dirs,
        "files": created_files,
        "next_steps": [substitute(step, values) for step in template.get("next_steps", [])],
    }


def snapshot_directory(source: Path) -> dict:
    """Text files under source as a template body; binary files are skipped."""
    files = {}
    executable = []
    skipped = []
    for root, dirs, names in os.walk(source):
        dirs[:] = sorted(d for d in dirs if d not in SKIP_DIRS)
        for filename in sorted(names):
            path = Path(root) / filename
            rel = path.relative_to(source).as_posix()
            try:
                files[rel] = path.read_text(encoding="utf-8")
            except UnicodeDecodeError:
                skipped.append(rel)
                continue
            if os.access(path, os.X_OK):
                executable.append(rel)
    return {"files": files, "executable": executable, "skipped": skipped}


def add_template(name: str, source_dir: str, description: str = "", force: bool = False) -> dict:
    validate_name(name, "template")
    source = Path(source_dir).expanduser()
    if not source.is_dir():
        raise NotFoundError(f"Directory not found: {source}")
    path = _custom_path(name)
    if path.exists() and not force:
        raise DuplicateError(f"Template '{name}' already exists (use --force to overwrite)")

    snapshot = snapshot_directory(source)
    if not snapshot["files"]:
        raise ValidationError(f"No text files found in {source}")
    template = {
        "description": description or "Custom template",
        "files": snapshot["files"],
        "directories": [],
        "executable": snapshot["executable"],
    }
    atomic_write_text(path, json.dumps(template, indent=2) + "\n")
    with config_store().transaction() as config:
        if name not in config["custom_templates"]:
            config["custom_templates"].append(name)

    log.info("saved custom template %s from %s (%d files)", name, source, len(snapshot["files"]))
    return {"name": name, "path": path, "files": sorted(snapshot["files"]), "skipped": snapshot["skipped"]}


def remove_template(name: str) -> None:
    path = _custom_path(validate_name(name, "template"))
    if not path.exists():
        if name in BUILTIN_TEMPLATES:
            raise ValidationError(f"'{name}' is a built-in template and cannot be removed")
        raise NotFoundError(f"Custom template '{name}' not found")
    path.unlink()
    with config_store().transaction() as config:
        config["custom_templates"] = [n for n in config["custom_templates"] if n != name]
    log.info("removed custom template %s", name)

# =============================================================================
# CLI
# =============================================================================

def build_parser() -> CLIParser:
    parser = CLIParser(prog="daybook-scaffold", description="Project scaffolding from templates")
    subparsers = parser.add_subparsers(dest="verb", metavar="command")

    # create
    create_parser = add_command(subparsers, "create", aliases=["new", "init"], help="Create a project from a template")
    create_parser.add_argument("template", help="Template name")
    create_parser.add_argument("name", help="Project name")
    create_parser.add_argument("path", nargs="?", default=".", help="Parent directory (default: current)")
    create_parser.add_argument("--force", action="store_true", help="Write into an existing directory")

    # list
    add_command(subparsers, "list", aliases=["ls"], help="List available templates")

    # show
    show_parser = add_command(subparsers, "show", aliases=["info"], help="Show template details")
    show_parser.add_argument("template", help="Template name")

    # add
    add_parser = add_command(subparsers, "add", help="Save a directory as a custom template")
    add_parser.add_argument("name", help="Template name")
    add_parser.add_argument("source", help="Directory to snapshot")
    add_parser.add_argument("-d", "--description", default="", help="Template description")
    add_parser.add_argument("--force", action="store_true", help="Overwrite an existing template")

    # remove
    remove_parser = add_command(subparsers, "remove", aliases=["rm", "delete"], help="Remove a custom template")
    remove_parser.add_argument("name", help="Template name")

    # config
    config_parser = add_command(subparsers, "config", aliases=["configure"], help="Show or set default variables")
    config_parser.add_argument("key", nargs="?", choices=CONFIG_KEYS, help="Variable to set")
    config_parser.add_argument("value", nargs="?", help="New value")

    return parser


def run(args) -> int:
    if args.command == "create":
        result = create_project(args.template, args.name, args.path, args.force)
        print(f"Creating project: {args.name}")
        print(f"Template: {args.template}")
        print(f"Location: {result['path']}")
        print()
        for directory in result["directories"]:
            print(f"  Created: {directory}/")
        for path in result["files"]:
            print(f"  Created: {path}")
        print()
        print("✓ Project created successfully!")
        print()
        print("Next steps:")
        print(f"  cd {result['path']}")
        for step in result["next_steps"]:
            print(f"  {step}")

    elif args.command == "list":
        templates = list_templates()
        print("=== Available Templates ===")
        print()
        print("Built-in templates:")
        for t in templates["builtin"]:
            print(f"  {t['name']:<18} {t['description']}")
        if templates["custom"]:
            print()
            print("Custom templates:")
            for t in templates["custom"]:
                print(f"  {t['name']:<18} {t['description']}")
        print()
        print("Usage: daybook-scaffold create <template> <project-name> [path]")

    elif args.command == "show":
        template = load_template(args.template)
        print(f"=== Template: {template['name']} ===")
        print()
        kind = "custom" if template["custom"] else "built-in"
        print(f"Description: {template.get('description') or 'No description'} ({kind})")
        print()
        print("Files created:")
        for path in sorted(template["files"]):
            print(f"  - {path}")
        if template.get("directories"):
            print()
            print("Directories:")
            for directory in template["directories"]:
                print(f"  - {directory}/")
        if template.get("executable"):
            print()
            print("Executable:")
            for path in template["executable"]:
                print(f"  - {path}")

    elif args.command == "add":
        result = add_template(args.name, args.source, args.description, args.force)
        print(f"✓ Created template: {result['name']} ({len(result['files'])} file(s))")
        for path in result["skipped"]:
            print(f"  Skipped binary file: {path}")
        print(f"  Stored at: {result['path']}")

    elif args.command == "remove":
        remove_template(args.name)
        print(f"✓ Deleted template: {args.name}")

    elif args.command == "config":
        if args.key and args.value is None:
            raise ValidationError(f"Missing value for '{args.key}'")
        variables = set_variable(args.key, args.value) if args.key else get_variables()
        if args.key:
            print(f"✓ Set {args.key}")
            print()
        print("=== Default Variables ===")
        for key in CONFIG_KEYS:
            print(f"  {key:<16} {variables.get(key) or '(not set)'}")

    return 0


def main(argv=None) -> int:
    args = parse_cli(build_parser(), argv, default="list")
    return run_cli(lambda: run(args), make_logger("scaffold"))


if __name__ == "__main__":
    sys.exit(main())
