"""Group session records into conversational turns."""

from typing import Iterable, Optional

from .filters import strip_system_tags
from .models import Attachment, Record, RecordType, TextBlock, TurnSegment

ELLIPSIS = "..."

# Text blocks of one message share a segment, space separated
SEGMENT_JOINER = " "

# Per-field character budgets shared by both projections
DIGEST_TEXT_CHARS = 300
PREVIEW_CHARS = 80


def truncate(text: Optional[str], limit: int, marker: str = ELLIPSIS) -> str:
    """Cap text at `limit` characters, marker included.

    The result never exceeds the budget, so truncating twice gives the same
    string as truncating once.
    """
    if not text:
        return ""
    if len(text) <= limit:
        return text
    if limit <= len(marker):
        return text[:limit]
    return text[:limit - len(marker)] + marker


def truncate_lines(text: Optional[str], max_lines: int) -> str:
    """Keep at most `max_lines` lines, the last one being a truncation note."""
    if not text:
        return ""
    lines = text.split("\n")
    if len(lines) <= max_lines or max_lines < 2:
        return text
    kept = lines[:max_lines - 1]
    dropped = len(lines) - len(kept)
    kept.append(f"... ({dropped} more lines truncated)")
    return "\n".join(kept)


def is_user_message(record: Record) -> bool:
    """A real user message, as opposed to tool output fed back to the model."""
    return (
        record.type == RecordType.USER
        and record.role == "user"
        and not record.is_tool_result_container
        and not record.is_meta
    )


def user_text(record: Record, sep: str = "\n\n") -> str:
    """Text the user typed, with injected system blocks removed."""
    parts = []
    for block in record.content:
        if isinstance(block, TextBlock):
            cleaned = strip_system_tags(block.text)
            if cleaned:
                parts.append(cleaned)
    return sep.join(parts)


def assistant_text(record: Record, sep: str = "\n\n") -> str:
    parts = []
    for block in record.content:
        if isinstance(block, TextBlock) and block.text.strip():
            parts.append(block.text.strip())
    return sep.join(parts)


def has_attachment(record: Record) -> bool:
    return any(isinstance(b, Attachment) for b in record.content)


def is_conversational(record: Record) -> bool:
    """True when the record opens (user) or continues (assistant) a turn."""
    if is_user_message(record):
        return bool(user_text(record)) or has_attachment(record)
    if record.type == RecordType.ASSISTANT and record.role == "assistant":
        return bool(assistant_text(record))
    return False


def segment_turns(records: Iterable[Record], max_chars: Optional[int] = None) -> list:
    """Split records into numbered turn segments.

    Each user message opens a new turn. Assistant text belongs to the turn
    most recently opened by the user (turn 0 if the log starts with the
    assistant). Tool-result records never open a turn.

    Args:
        records: Parsed records in file order.
        max_chars: Optional per-segment text budget.

    Returns:
        List of TurnSegment in record order.
    """
    segments = []
    turn = 0

    for position, record in enumerate(records):
        if not is_conversational(record):
            continue

        if record.type == RecordType.USER:
            turn += 1
            role = "user"
            text = user_text(record, SEGMENT_JOINER) or "[Image attached]"
        else:
            role = "assistant"
            text = assistant_text(record, SEGMENT_JOINER)

        if max_chars is not None:
            text = truncate(text, max_chars)

        segments.append(TurnSegment(
            turn=turn,
            role=role,
            text=text,
            timestamp=record.timestamp,
            record_index=position,
        ))

    return segments


def first_task(records: Iterable[Record]) -> Optional[str]:
    """The first thing the user asked for, verbatim minus system blocks."""
    for record in records:
        if is_user_message(record):
            text = user_text(record)
            if text:
                return text
    return None


def digest(segments: Iterable[TurnSegment], max_chars: int = DIGEST_TEXT_CHARS) -> list:
    """Turn-by-turn digest entries with text capped at `max_chars`."""
    return [
        {
            "turn": seg.turn,
            "role": seg.role,
            "content": truncate(seg.text, max_chars),
        }
        for seg in segments
    ]
