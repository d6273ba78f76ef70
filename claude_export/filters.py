"""Filters for removing noise from session transcripts."""

import re

# Blocks the harness injects into user messages; never part of what the user typed
SYSTEM_TAGS = (
    "system-reminder",
    "ide_opened_file",
    "ide_selection",
    "user-prompt-submit-hook",
    "command-message",
    "command-name",
)

_SYSTEM_TAG_PATTERN = re.compile(
    r"<(%s)>[\s\S]*?</\1>" % "|".join(re.escape(tag) for tag in SYSTEM_TAGS)
)

# Commands too trivial to list as actions
MIN_COMMAND_LENGTH = 6
NOISE_COMMAND_PREFIXES = ("echo ",)


def strip_system_tags(text: str) -> str:
    """Remove injected system/IDE blocks and surrounding whitespace."""
    if not text:
        return ""
    return _SYSTEM_TAG_PATTERN.sub("", text).strip()


def is_noise_command(command: str) -> bool:
    """Check if a shell command is too trivial to report as an action."""
    cmd = (command or "").strip()
    if len(cmd) < MIN_COMMAND_LENGTH:
        return True
    return cmd.startswith(NOISE_COMMAND_PREFIXES)


def is_preview_text(text: str) -> bool:
    """Check if a user text block is worth showing as a session preview."""
    return bool(text) and not text.startswith("<")


def short_path(file_path: str, project_root: str = "", project_name: str = "") -> str:
    """Make file path relative to the project.

    Falls back to cutting at the last occurrence of the project name, then to
    the path as given.
    """
    normalized = (file_path or "").replace("\\", "/")
    root = (project_root or "").replace("\\", "/").rstrip("/")

    if root and normalized.startswith(root + "/"):
        return normalized[len(root) + 1:]

    if project_name:
        marker = "/" + project_name + "/"
        idx = normalized.rfind(marker)
        if idx >= 0:
            return normalized[idx + len(marker):]

    return normalized

