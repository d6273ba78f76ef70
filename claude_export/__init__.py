"""claude-export - Export Claude Code sessions for review and handoff.

claude-export reads a Claude Code session log and produces either a detailed
Markdown transcript (every turn, tool call and result) or a compact JSON
handoff that another agent can use to continue the work.

Basic usage:
    from claude_export import read_records, build_view, render_transcript

    records = read_records(Path("~/.claude/projects/.../session.jsonl"))
    view = build_view(records, session_id="17c072d8", project_name="myapp")
    print(render_transcript(view))

Compact handoff:
    from claude_export import build_handoff, dumps_handoff

    print(dumps_handoff(build_handoff(view)))
"""

__version__ = "0.1.0"

from .models import (
    AnalysisResult,
    GitContext,
    Record,
    SessionMeta,
    SessionStats,
    SessionView,
    ToolKind,
    TurnSegment,
)
from .parser import parse_records, parse_text, read_records
from .correlator import ResultIndex, correlate
from .aggregator import collect_stats
from .turns import segment_turns, truncate
from .pipeline import build_view
from .renderer import RenderOptions, render_transcript
from .handoff import build_handoff, dumps_handoff
from .locator import (
    NoSessionDataError,
    NoSessionsError,
    SessionNotFoundError,
    find_active_session,
    find_project_dir,
    list_sessions,
    resolve_session,
)
from .installer import install_commands
from .analyzer import analyze_session
from .cli import main

__all__ = [
    # Models
    "AnalysisResult",
    "GitContext",
    "Record",
    "SessionMeta",
    "SessionStats",
    "SessionView",
    "ToolKind",
    "TurnSegment",
    # Parsing and correlation
    "parse_records",
    "parse_text",
    "read_records",
    "ResultIndex",
    "correlate",
    "collect_stats",
    "segment_turns",
    "truncate",
    "build_view",
    # Formatters
    "RenderOptions",
    "render_transcript",
    "build_handoff",
    "dumps_handoff",
    # Session lookup
    "NoSessionDataError",
    "NoSessionsError",
    "SessionNotFoundError",
    "find_active_session",
    "find_project_dir",
    "list_sessions",
    "resolve_session",
    # Setup
    "install_commands",
    # Analysis
    "analyze_session",
    # CLI
    "main",
]
