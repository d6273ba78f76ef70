"""Install the /export and /export-continue slash commands into a project."""

import logging
import shutil
from pathlib import Path

logger = logging.getLogger("claude_export.installer")

COMMANDS_DIR = Path(".claude") / "commands"
BACKUP_SUFFIX = ".backup"

CREATED = "created"
UPDATED = "updated"
UNCHANGED = "unchanged"

EXPORT_COMMAND = """---
description: Export this session as a Markdown transcript for review
allowed-tools: Bash(claude-export:*)
---

Run `claude-export chat $ARGUMENTS` from the project root and report the path
it prints after "Exported to:". Do not read the exported file back.
"""

EXPORT_CONTINUE_COMMAND = """---
description: Export this session as a compact JSON handoff for another agent
allowed-tools: Bash(claude-export:*)
---

Run `claude-export continue $ARGUMENTS` from the project root and report the
path it prints after "Exported to:". Do not read the exported file back.
"""

COMMAND_FILES = {
    "export.md": EXPORT_COMMAND,
    "export-continue.md": EXPORT_CONTINUE_COMMAND,
}


def install_commands(project_root: str) -> list:
    """Write the slash command files under `<project_root>/.claude/commands`.

    Files that already match are left alone. A file with other content is
    copied to `<name>.backup` before being replaced.

    Returns:
        List of (path, status) pairs, status being created/updated/unchanged.
    """
    target_dir = Path(project_root) / COMMANDS_DIR
    target_dir.mkdir(parents=True, exist_ok=True)

    results = []
    for name, content in COMMAND_FILES.items():
        path = target_dir / name
        if path.exists():
            if path.read_text(encoding="utf-8") == content:
                results.append((path, UNCHANGED))
                continue
            backup = path.with_name(path.name + BACKUP_SUFFIX)
            shutil.copyfile(path, backup)
            logger.debug("Backed up %s to %s", path, backup)
            status = UPDATED
        else:
            status = CREATED

        path.write_text(content, encoding="utf-8")
        results.append((path, status))

    return results
