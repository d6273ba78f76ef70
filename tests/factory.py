"""Builders for Claude Code session log entries used across tests."""

import json
from pathlib import Path
from typing import Optional

from claude_export.models import GitContext
from claude_export.parser import parse_entry
from claude_export.pipeline import build_view


def text(value: str) -> dict:
    return {"type": "text", "text": value}


def thinking(value: str) -> dict:
    return {"type": "thinking", "thinking": value}


def tool_use(tool_id: str, name: str, **tool_input) -> dict:
    return {"type": "tool_use", "id": tool_id, "name": name, "input": tool_input}


def tool_result(tool_id: str, content="", is_error: bool = False) -> dict:
    return {"type": "tool_result", "tool_use_id": tool_id, "content": content, "is_error": is_error}


def user(content, timestamp: Optional[str] = None, **extra) -> dict:
    """A user entry; `content` is a string or a list of blocks."""
    entry = {"type": "user", "message": {"role": "user", "content": content}}
    if timestamp:
        entry["timestamp"] = timestamp
    entry.update(extra)
    return entry


def results(*blocks, timestamp: Optional[str] = None) -> dict:
    """The synthetic user entry that carries tool results."""
    return user(list(blocks), timestamp)


def assistant(*blocks, timestamp: Optional[str] = None, **extra) -> dict:
    entry = {"type": "assistant", "message": {"role": "assistant", "content": list(blocks)}}
    if timestamp:
        entry["timestamp"] = timestamp
    entry.update(extra)
    return entry


def records(*entries) -> list:
    return [parse_entry(entry, i) for i, entry in enumerate(entries, 1)]


def view(*entries, session_id: str = "session-1", project_name: str = "demo",
         project_root: str = "/work/demo", git: Optional[GitContext] = None):
    return build_view(records(*entries), session_id, project_name, project_root, git)


def write_jsonl(directory: Path, name: str, entries: list, trailer: str = "") -> Path:
    path = Path(directory) / name
    path.parent.mkdir(parents=True, exist_ok=True)
    body = "\n".join(json.dumps(entry) for entry in entries)
    path.write_text(body + "\n" + trailer, encoding="utf-8")
    return path
