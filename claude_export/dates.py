"""Timestamp parsing and display helpers."""

from datetime import datetime, timezone
from typing import Optional


def parse_timestamp(value) -> Optional[datetime]:
    """Parse an ISO 8601 log timestamp into an aware UTC datetime."""
    if not isinstance(value, str):
        return None
    token = value.strip()
    if not token:
        return None
    try:
        parsed = datetime.fromisoformat(token.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_epoch(value) -> Optional[float]:
    parsed = parse_timestamp(value)
    return parsed.timestamp() if parsed else None


def format_timestamp(value) -> str:
    """Render as "YYYY-MM-DD HH:MM:SS UTC", or "" when unparseable."""
    parsed = value if isinstance(value, datetime) else parse_timestamp(value)
    if parsed is None:
        return ""
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc).strftime("%Y-%m-%d %H:%M:%S") + " UTC"


def duration_minutes(start, end) -> Optional[int]:
    start_dt = parse_timestamp(start)
    end_dt = parse_timestamp(end)
    if start_dt is None or end_dt is None:
        return None
    return round((end_dt - start_dt).total_seconds() / 60)
