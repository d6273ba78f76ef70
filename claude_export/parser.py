"""Parse Claude Code session logs into typed records."""

import json
import logging
from pathlib import Path
from typing import Iterable, Iterator, Optional

from .models import (
    Attachment,
    Record,
    RecordType,
    TextBlock,
    ThinkingBlock,
    ToolResult,
    ToolUse,
)

logger = logging.getLogger("claude_export.parser")

# Top-level fields the parser consumes; everything else lands in Record.extra
_CONSUMED_FIELDS = frozenset(["type", "timestamp", "message"])


def read_records(session_path: Path) -> list:
    """Read and parse a session JSONL file.

    Args:
        session_path: Path to the .jsonl session file.

    Returns:
        Records in file order. Lines that do not parse are skipped.
    """
    # errors="replace" so a half-written multi-byte tail cannot abort the read
    with open(session_path, "r", encoding="utf-8", errors="replace") as f:
        return list(parse_records(f))


def parse_text(text: str) -> list:
    """Parse a whole JSONL document held in memory."""
    # Only "\n" ends a record; U+2028 and friends are legal inside JSON strings
    return list(parse_records(text.split("\n")))


def parse_records(lines: Iterable[str]) -> Iterator[Record]:
    """Lazily turn raw lines into Records, dropping anything unparseable."""
    skipped = 0
    for line_number, line in enumerate(lines, 1):
        if not line.strip():
            continue

        try:
            entry = json.loads(line)
        except (json.JSONDecodeError, RecursionError):
            skipped += 1
            continue

        if not isinstance(entry, dict):
            skipped += 1
            continue

        yield parse_entry(entry, line_number)

    if skipped:
        logger.debug("Skipped %d unparseable line(s)", skipped)


def parse_entry(entry: dict, line_number: int = 0) -> Record:
    """Build a Record from one decoded JSONL object."""
    message = entry.get("message")
    if not isinstance(message, dict):
        message = {}

    timestamp = entry.get("timestamp")
    if not isinstance(timestamp, str) or not timestamp:
        timestamp = None

    role = message.get("role")
    if not isinstance(role, str):
        role = ""

    extra = {k: v for k, v in entry.items() if k not in _CONSUMED_FIELDS}

    return Record(
        type=RecordType.from_raw(entry.get("type")),
        role=role,
        timestamp=timestamp,
        content=tuple(_parse_content(message.get("content"))),
        line_number=line_number,
        extra=extra,
    )


def _parse_content(content) -> list:
    """Normalize message content into typed blocks."""
    if isinstance(content, str):
        return [TextBlock(text=content)] if content else []
    if not isinstance(content, list):
        return []

    blocks = []
    for raw in content:
        if not isinstance(raw, dict):
            continue
        block = _parse_block(raw)
        if block is not None:
            blocks.append(block)
    return blocks


def _parse_block(raw: dict) -> Optional[object]:
    block_type = raw.get("type")

    if block_type == "text":
        return TextBlock(text=_as_str(raw.get("text")))

    if block_type == "thinking":
        return ThinkingBlock(thinking=_as_str(raw.get("thinking")))

    if block_type == "tool_use":
        tool_input = raw.get("input")
        return ToolUse(
            id=_as_str(raw.get("id")),
            name=_as_str(raw.get("name")),
            input=tool_input if isinstance(tool_input, dict) else {},
        )

    if block_type == "tool_result":
        return ToolResult(
            tool_use_id=_as_str(raw.get("tool_use_id")),
            content=flatten_result_content(raw.get("content")),
            is_error=bool(raw.get("is_error", False)),
        )

    if block_type in ("image", "document"):
        source = raw.get("source")
        media_type = source.get("media_type", "") if isinstance(source, dict) else ""
        return Attachment(kind=block_type, media_type=_as_str(media_type))

    return None


def flatten_result_content(content) -> str:
    """Collapse a tool result payload into plain text.

    Results are either a string or a list of parts. Text parts are joined
    with newlines; images become a placeholder; anything else is kept as JSON.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if not isinstance(content, list):
        return json.dumps(content, default=str, ensure_ascii=False)

    parts = []
    for part in content:
        if isinstance(part, dict) and part.get("type") == "text":
            parts.append(_as_str(part.get("text")))
        elif isinstance(part, dict) and part.get("type") == "image":
            parts.append("[image]")
        elif isinstance(part, str):
            parts.append(part)
        else:
            parts.append(json.dumps(part, default=str, ensure_ascii=False))
    return "\n".join(parts)


def _as_str(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
