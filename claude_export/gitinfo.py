"""Git and project metadata for an export. Never raises to the caller."""

import json
import logging
import re
import subprocess
import tomllib
from pathlib import Path
from typing import Optional

from .filters import short_path
from .models import GitContext

logger = logging.getLogger("claude_export.gitinfo")

GIT_TIMEOUT_SECONDS = 5
RECENT_COMMITS = 5

_REMOTE_NAME_PATTERN = re.compile(r"[/:]([^/:]+?)(?:\.git)?/?$")


def _git(args: list, cwd: str) -> Optional[str]:
    """Run a git command and return stripped stdout, or None on any failure."""
    try:
        completed = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            check=True,
            timeout=GIT_TIMEOUT_SECONDS,
        )
    except (subprocess.SubprocessError, OSError) as e:
        logger.debug("git %s failed: %s", " ".join(args), e)
        return None
    return completed.stdout.strip()


def get_git_context(project_root: str, project_name: str = "") -> GitContext:
    """Collect branch, recent commits and uncommitted files.

    Args:
        project_root: Directory to run git in.
        project_name: Used to shorten uncommitted file paths.

    Returns:
        GitContext, with "unknown"/empty defaults when git is unavailable.
    """
    branch = _git(["rev-parse", "--abbrev-ref", "HEAD"], project_root)
    if not branch:
        return GitContext()

    log = _git(["log", f"-{RECENT_COMMITS}", "--format=%h %s"], project_root) or ""
    status = _git(["diff", "--name-only", "HEAD"], project_root) or ""

    return GitContext(
        branch=branch,
        recent_commits=tuple(line for line in log.split("\n") if line),
        uncommitted_files=tuple(
            short_path(line, project_root, project_name)
            for line in status.split("\n")
            if line
        ),
    )


def detect_project_name(project_root: str) -> str:
    """Detect the project name.

    Priority: pyproject.toml name -> package.json name -> git remote -> folder name
    """
    root = Path(project_root)

    try:
        with open(root / "pyproject.toml", "rb") as f:
            name = tomllib.load(f).get("project", {}).get("name")
        if isinstance(name, str) and name:
            return name
    except (OSError, tomllib.TOMLDecodeError):
        pass

    try:
        pkg = json.loads((root / "package.json").read_text(encoding="utf-8"))
        name = pkg.get("name") if isinstance(pkg, dict) else None
        if isinstance(name, str) and name:
            # strip npm scope
            return re.sub(r"^@[^/]+/", "", name)
    except (OSError, ValueError):
        pass

    remote = _git(["remote", "get-url", "origin"], project_root)
    if remote:
        match = _REMOTE_NAME_PATTERN.search(remote)
        if match:
            return match.group(1)

    return root.resolve().name
