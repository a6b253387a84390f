#!/usr/bin/env python3
"""Shared utilities for the daybook tools.

Provides common functionality used across multiple tools:
- make_logger: Create consistent file+stderr loggers
- parse_date: Turn human date strings into dates
- CLIParser / run_cli: argparse plumbing with binary exit codes
"""

import argparse
import json
import logging
import re
import sys
from datetime import date, timedelta
from pathlib import Path
from typing import Callable, Optional

from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

from daybook.config import log_dir, log_level, today
from daybook.errors import DaybookError, ValidationError

WEEKDAYS = {
    "monday": 0, "tuesday": 1, "wednesday": 2, "thursday": 3,
    "friday": 4, "saturday": 5, "sunday": 6,
}


def make_logger(name: str, log_file: Path = None) -> logging.Logger:
    """Create a logger that writes to a file and to stderr.

    Every record goes to the log file; only warnings and worse reach
    stderr so command output stays clean.

    Args:
        name: Logger name (usually the tool name)
        log_file: Path for log file. If None, uses <data_dir>/logs/<name>.log

    Returns:
        Configured logger instance
    """
    if log_file is None:
        log_file = log_dir() / f"{name}.log"

    logger = logging.getLogger(f"daybook.{name}")
    logger.setLevel(log_level())

    # Handlers are bound to the log file path; rebind if the data dir moved
    existing = [h for h in logger.handlers if isinstance(h, logging.FileHandler)]
    if existing and Path(existing[0].baseFilename) == Path(log_file).resolve():
        return logger
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(
        "[%(asctime)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    # File handler
    file_handler = logging.FileHandler(log_file)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    # Stderr handler
    stream_handler = logging.StreamHandler(sys.stderr)
    stream_handler.setLevel(logging.WARNING)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    logger.propagate = False
    return logger


def parse_date(date_str: Optional[str], default: Optional[date] = None) -> date:
    """Parse a human date string.

    Understands today/tomorrow/yesterday, "in N days|weeks|months",
    "N days ago", "next <weekday>", and anything dateutil can parse.

    Raises:
        ValidationError: if the string is not a recognizable date
    """
    if not date_str:
        if default is not None:
            return default
        raise ValidationError("Date required")

    text = date_str.lower().strip()
    base = today()

    if text == "today":
        return base
    if text == "tomorrow":
        return base + timedelta(days=1)
    if text == "yesterday":
        return base - timedelta(days=1)

    match = re.match(r"in\s+(\d+)\s+(day|week|month)s?$", text)
    if match:
        amount = int(match.group(1))
        return base + _offset(match.group(2), amount)

    match = re.match(r"(\d+)\s+(day|week|month)s?\s+ago$", text)
    if match:
        amount = int(match.group(1))
        return base - _offset(match.group(2), amount)

    match = re.match(r"next\s+(\w+)$", text)
    if match:
        unit = match.group(1)
        if unit in WEEKDAYS:
            days_ahead = WEEKDAYS[unit] - base.weekday()
            if days_ahead <= 0:
                days_ahead += 7
            return base + timedelta(days=days_ahead)
        if unit in ("day", "week", "month"):
            return base + _offset(unit, 1)

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, OverflowError):
        raise ValidationError(f"Invalid date: {date_str}")


def _offset(unit: str, amount: int):
    if unit == "day":
        return timedelta(days=amount)
    if unit == "week":
        return timedelta(weeks=amount)
    return relativedelta(months=amount)


def parse_int(value: str, what: str = "number", minimum: Optional[int] = None) -> int:
    """Parse a positive-ish integer argument or raise ValidationError."""
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"Invalid {what}: {value}")
    if minimum is not None and number < minimum:
        raise ValidationError(f"Invalid {what}: {value} (must be at least {minimum})")
    return number


def format_minutes(minutes: int) -> str:
    """Render a duration as 'Xh Ym' or 'Ym'."""
    hours, mins = divmod(int(minutes), 60)
    if hours:
        return f"{hours}h {mins}m"
    return f"{mins}m"


def print_json(obj) -> None:
    print(json.dumps(obj, indent=2, default=str))


class CLIParser(argparse.ArgumentParser):
    """ArgumentParser that reports usage errors with exit status 1."""

    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(1, f"Error: {message}\n")


def add_command(subparsers, name: str, aliases=(), **kwargs) -> argparse.ArgumentParser:
    """Add a subcommand whose canonical name lands in args.command."""
    sub = subparsers.add_parser(name, aliases=list(aliases), **kwargs)
    sub.set_defaults(command=name)
    return sub


def parse_cli(parser: argparse.ArgumentParser, argv: Optional[list], default: Optional[str] = None):
    """Parse argv, running the default verb when none is given."""
    if argv is None:
        argv = sys.argv[1:]
    argv = list(argv)
    if not argv and default:
        argv = [default]
    args = parser.parse_args(argv)
    if getattr(args, "command", None) is None:
        parser.print_help()
        sys.exit(1)
    return args


def run_cli(handler: Callable[[], Optional[int]], logger: logging.Logger) -> int:
    """Run a parsed command, mapping DaybookError to exit status 1."""
    try:
        return handler() or 0
    except DaybookError as e:
        logger.info("error: %s", e)
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)
