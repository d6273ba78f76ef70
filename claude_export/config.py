"""claude-export configuration."""
import os
from pathlib import Path


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        return int(value)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    value = os.getenv(name)
    if not value:
        return default
    return Path(value).expanduser()


# Where Claude Code keeps one directory of session logs per project
PROJECTS_DIR = _env_path("CLAUDE_EXPORT_PROJECTS_DIR", Path.home() / ".claude" / "projects")

# Output
OUTPUT_DIR = _env_path("CLAUDE_EXPORT_OUTPUT_DIR", Path.home() / "Downloads")
MAX_RESULT_LINES = _env_int("CLAUDE_EXPORT_MAX_RESULT_LINES", 150)
INCLUDE_THINKING = _env_bool("CLAUDE_EXPORT_INCLUDE_THINKING", True)

# Active session detection reads only this many trailing bytes per log
TAIL_WINDOW_BYTES = _env_int("CLAUDE_EXPORT_TAIL_BYTES", 16384)

# Analysis
MODEL = os.getenv("CLAUDE_EXPORT_MODEL", "claude-sonnet-4-20250514")

# Logging
LOG_LEVEL = os.getenv("CLAUDE_EXPORT_LOG_LEVEL", "WARNING").upper()
