"""Assemble the derived session view that both formatters consume."""

import logging
from typing import Optional

from .aggregator import collect_stats
from .correlator import correlate
from .dates import duration_minutes
from .models import GitContext, SessionMeta, SessionView
from .turns import segment_turns

logger = logging.getLogger("claude_export.pipeline")


def build_view(
    records: list,
    session_id: str,
    project_name: str = "",
    project_root: str = "",
    git: Optional[GitContext] = None,
) -> SessionView:
    """Correlate, aggregate and segment a parsed session.

    Args:
        records: Parsed records in file order.
        session_id: Log file stem.
        project_name: Display name of the project.
        project_root: Absolute project path, used to shorten file paths.
        git: Version-control context; defaults to an "unknown" context.

    Returns:
        SessionView ready for rendering.
    """
    git = git or GitContext()
    index = correlate(records)
    stats = collect_stats(records, index, project_root, project_name)
    turns = segment_turns(records)

    meta = SessionMeta(
        session_id=session_id,
        project=project_name,
        project_root=project_root,
        branch=_session_branch(records, git),
        started=stats.started,
        ended=stats.ended,
        duration_minutes=duration_minutes(stats.started, stats.ended),
    )

    logger.debug(
        "Session %s: %d records, %d turns, %d tool calls (%d pending)",
        session_id, len(records), len(turns), stats.tool_calls, index.pending_count,
    )

    return SessionView(
        records=records,
        index=index,
        stats=stats,
        turns=turns,
        meta=meta,
        git=git,
    )


def _session_branch(records: list, git: GitContext) -> str:
    """Prefer git's answer; fall back to the branch the log recorded."""
    if git.branch and git.branch != "unknown":
        return git.branch
    for record in reversed(records):
        branch = record.extra.get("gitBranch")
        if isinstance(branch, str) and branch:
            return branch
    return "unknown"
