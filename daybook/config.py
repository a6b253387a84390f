#!/usr/bin/env python3
"""Shared configuration for the daybook tools.

Centralizes the settings every tool needs: where data lives, which timezone
"today" is computed in, and how verbose the log files are.
"""

import os
from datetime import date, datetime
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

# =============================================================================
# Environment
# =============================================================================
ENV_FILE = Path(os.environ.get("DAYBOOK_ENV_FILE", Path.home() / ".config" / "daybook" / ".env"))
load_dotenv(ENV_FILE)

DEFAULT_DATA_DIR = Path.home() / ".local" / "share" / "daybook"

# Tool names double as data subdirectory and log file names
TOOLS = (
    "habits",
    "tasks",
    "timelog",
    "journal",
    "bookmarks",
    "meetings",
    "retrospective",
    "checklist",
    "templates",
    "genpass",
    "rename",
    "scaffold",
)

# =============================================================================
# Paths
# =============================================================================

def data_dir() -> Path:
    """Root directory for all tool data.

    Read on every call so DAYBOOK_DATA_DIR can be changed at runtime.
    """
    return Path(os.environ.get("DAYBOOK_DATA_DIR", DEFAULT_DATA_DIR)).expanduser()


def tool_dir(name: str) -> Path:
    """Data directory for one tool, created on first use."""
    path = data_dir() / name
    path.mkdir(parents=True, exist_ok=True)
    return path


def log_dir() -> Path:
    path = data_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def log_level() -> str:
    return os.environ.get("DAYBOOK_LOG_LEVEL", "INFO").upper()

# =============================================================================
# Timezone
# =============================================================================

def timezone() -> Optional[ZoneInfo]:
    """Configured timezone, or None for the system local zone."""
    name = os.environ.get("DAYBOOK_TZ")
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return None

# =============================================================================
# Helpers
# =============================================================================

def now_local() -> datetime:
    """Get current time in configured timezone."""
    tz = timezone()
    if tz is None:
        return datetime.now()
    return datetime.now(tz).replace(tzinfo=None)


def today() -> date:
    return now_local().date()


def timestamp() -> str:
    """Current local time as a second-resolution ISO string."""
    return now_local().isoformat(timespec="seconds")
