"""Locate Claude Code session logs on disk."""

import json
import logging
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Optional

from . import config
from .dates import to_epoch
from .filters import is_preview_text
from .models import TextBlock
from .parser import parse_records
from .turns import PREVIEW_CHARS, is_user_message

logger = logging.getLogger("claude_export.locator")

MAX_LISTED_ALTERNATIVES = 10
SCAN_WORKERS = 8


class NoSessionDataError(LookupError):
    """No session directory matches the project path."""

    def __init__(self, cwd: str, encoded: str, available: list, projects_dir: Optional[Path] = None):
        self.cwd = cwd
        self.encoded = encoded
        self.available = available
        self.projects_dir = projects_dir
        super().__init__(f"No Claude Code session data found for: {cwd}")


class NoSessionsError(LookupError):
    """The project directory holds no session logs."""


class SessionNotFoundError(LookupError):
    """A requested session id does not match any log."""


def encode_project_path(abs_path: str) -> str:
    """Encode a filesystem path the way Claude Code names project dirs.

    e.g. "c:\\Users\\ADMIN\\project" -> "c--Users-ADMIN-project"
         "/home/user/project"       -> "-home-user-project"
    """
    p = abs_path.replace("\\", "/").rstrip("/")
    return p.replace(":", "-").replace("/", "-")


def find_project_dir(cwd: str, projects_dir: Optional[Path] = None) -> Path:
    """Find the session directory for a project path.

    Tries an exact match, then a case-insensitive one (Windows drive letters
    vary in case), then the longest directory name the encoded path starts
    with (the user is in a subdirectory).

    Raises:
        NoSessionDataError: With the encoded key and some alternatives.
    """
    root = Path(projects_dir) if projects_dir else config.PROJECTS_DIR
    encoded = encode_project_path(cwd)

    if not root.is_dir():
        raise NoSessionDataError(cwd, encoded, [], root)

    exact = root / encoded
    if exact.is_dir():
        return exact

    dirs = sorted(p.name for p in root.iterdir() if p.is_dir())
    lowered = encoded.lower()

    for name in dirs:
        if name.lower() == lowered:
            return root / name

    prefixes = [name for name in dirs if lowered.startswith(name.lower())]
    if prefixes:
        return root / max(prefixes, key=len)

    raise NoSessionDataError(cwd, encoded, dirs[:MAX_LISTED_ALTERNATIVES], root)


def session_files(project_dir: Path) -> list:
    return sorted(Path(project_dir).glob("*.jsonl"))


def last_entry_timestamp(path: Path, window: Optional[int] = None) -> float:
    """Epoch seconds of the newest timestamped record in a log.

    Only the trailing `window` bytes are read. Falls back to the file's
    mtime when no timestamp is found there, and to 0.0 if the file cannot be
    read at all.
    """
    window = window or config.TAIL_WINDOW_BYTES
    try:
        size = path.stat().st_size
        with open(path, "rb") as f:
            f.seek(max(0, size - window))
            tail = f.read(window)
    except OSError as e:
        logger.debug("Cannot read %s: %s", path, e)
        return 0.0

    # The window may start mid-line or mid-character; those lines fail to parse
    lines = [line for line in tail.decode("utf-8", errors="ignore").split("\n") if line.strip()]
    for line in reversed(lines):
        try:
            entry = json.loads(line)
        except (json.JSONDecodeError, RecursionError):
            continue
        if isinstance(entry, dict):
            epoch = to_epoch(entry.get("timestamp"))
            if epoch is not None:
                return epoch

    try:
        return path.stat().st_mtime
    except OSError:
        return 0.0


def find_active_session(project_dir: Path, window: Optional[int] = None) -> Path:
    """Pick the log whose last record is newest.

    File mtime is not trusted: the session currently being written is the
    one whose last entry is the most recent.

    Raises:
        NoSessionsError: If the directory holds no .jsonl files.
    """
    candidates = session_files(project_dir)
    if not candidates:
        raise NoSessionsError(f"No session files found in {project_dir}")

    with ThreadPoolExecutor(max_workers=min(SCAN_WORKERS, len(candidates))) as pool:
        stamps = list(pool.map(lambda p: last_entry_timestamp(p, window), candidates))

    # Newest first; name breaks ties so the choice is stable
    ranked = sorted(zip(stamps, candidates), key=lambda item: (-item[0], item[1].name))
    logger.debug("Active session candidates: %s", [(p.name, ts) for ts, p in ranked[:5]])
    return ranked[0][1]


def resolve_session(session_id: str, project_dir: Path) -> Path:
    """Resolve a full or partial session id to its log file.

    Raises:
        SessionNotFoundError: If nothing matches or a prefix is ambiguous.
    """
    name = session_id[:-len(".jsonl")] if session_id.endswith(".jsonl") else session_id
    exact = Path(project_dir) / f"{name}.jsonl"
    if exact.is_file():
        return exact

    matches = [p for p in session_files(project_dir) if p.stem.startswith(name)]
    if len(matches) == 1:
        return matches[0]
    if len(matches) > 1:
        raise SessionNotFoundError(
            f"Session id {session_id!r} is ambiguous: "
            + ", ".join(p.stem for p in matches[:MAX_LISTED_ALTERNATIVES])
        )
    raise SessionNotFoundError(f"Session file not found: {exact}")


def list_sessions(project_dir: Path, limit: int = 15) -> list:
    """List recent sessions, newest modification first.

    Returns:
        List of dicts with session_id, path, modified, size_kb, preview.
    """
    sessions = sorted(
        session_files(project_dir),
        key=lambda p: p.stat().st_mtime,
        reverse=True,
    )

    result = []
    for s in sessions[:limit]:
        stat = s.stat()
        result.append({
            "session_id": s.stem,
            "path": s,
            "modified": stat.st_mtime,
            "size_kb": stat.st_size / 1024,
            "preview": session_preview(s),
        })

    return result


def session_preview(path: Path) -> str:
    """First line of real user text in a log, for listings."""
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for record in parse_records(f):
                if not is_user_message(record):
                    continue
                for block in record.content:
                    if isinstance(block, TextBlock) and is_preview_text(block.text):
                        return block.text[:PREVIEW_CHARS].replace("\n", " ")
    except OSError as e:
        logger.debug("Cannot preview %s: %s", path, e)
    return ""
