"""Render a session view to the compact JSON handoff.

The handoff is for an agent continuing the work, not for people: it keeps
the task, the progress, what changed and what failed, and a short digest
of the conversation. Optional fields are left out when they would be empty.
"""

import json

from .models import CommandRun, Delegation, SessionView
from .turns import digest, first_task

HANDOFF_FORMAT = "claude-code-handoff"
HANDOFF_VERSION = "1.0"
HANDOFF_TOOL = "claude-export"
HANDOFF_PURPOSE = (
    "Structured session export for AI agent continuation. Read this to "
    "understand what was done, what changed, and what remains."
)
NO_TASK = "(no task detected)"
MAX_UNCOMMITTED_FILES = 20


def build_handoff(view: SessionView) -> dict:
    """Build the compact handoff object for a session.

    Args:
        view: Assembled session view.

    Returns:
        JSON-serializable dict. Keys whose collections are empty are omitted.
    """
    stats = view.stats
    meta = view.meta

    handoff = {
        "_format": HANDOFF_FORMAT,
        "_version": HANDOFF_VERSION,
        "_tool": HANDOFF_TOOL,
        "_purpose": HANDOFF_PURPOSE,
        "session": {
            "id": meta.session_id,
            "project": meta.project,
            "branch": meta.branch,
            "started": meta.started,
            "ended": meta.ended,
            "duration_minutes": meta.duration_minutes if meta.duration_minutes is not None else 0,
            "tool_calls": stats.tool_calls,
            "error_count": len(stats.errors),
        },
        "task": first_task(view.records) or NO_TASK,
        "progress": _progress(view),
        "changes": [_change(change) for change in stats.changes],
        "files_read": list(stats.files_read),
    }

    if stats.errors:
        handoff["errors"] = [
            {"tool": e.tool, "error": e.error, "input_summary": e.input_summary}
            for e in stats.errors
        ]

    if stats.actions:
        handoff["actions"] = [_action(action) for action in stats.actions]

    unique = stats.unique_searches()
    if unique:
        handoff["searches"] = {
            "count": stats.search_count,
            "unique_patterns": [_search(s) for s in unique],
        }

    if stats.other_tools:
        handoff["other_tools"] = [
            {"tool": call.tool, "input": call.input_summary}
            for call in stats.other_tools
        ]

    handoff["conversation_digest"] = digest(view.turns)
    handoff["git_context"] = _git_context(view)

    if view.analysis:
        analysis = _prune({
            "intent": view.analysis.intent,
            "decisions": view.analysis.decisions,
            "open_issues": view.analysis.open_issues,
            "next_steps": view.analysis.next_steps,
        })
        if analysis:
            handoff["analysis"] = analysis

    return handoff


def dumps_handoff(handoff: dict) -> str:
    return json.dumps(handoff, indent=2, ensure_ascii=False)


def _progress(view: SessionView) -> dict:
    """Three-bucket view of the latest todo list; earlier lists are superseded."""
    progress = {"completed": [], "in_progress": [], "pending": []}
    for todo in view.stats.latest_todos or ():
        if todo.status == "completed":
            progress["completed"].append(todo.content)
        elif todo.status == "in_progress":
            progress["in_progress"].append(todo.content)
        else:
            progress["pending"].append(todo.content)
    return progress


def _change(change) -> dict:
    entry = {"file": change.file, "action": change.action}
    if change.summary:
        entry["summary"] = change.summary
    if change.edits:
        entry["edits"] = [
            {"removed": e.removed, "added": e.added, "replace_all": e.replace_all}
            for e in change.edits
        ]
    return entry


def _action(action) -> dict:
    if isinstance(action, CommandRun):
        entry = {"command": action.command}
        if action.description:
            entry["description"] = action.description
        if action.failed:
            entry["failed"] = True
        elif action.output:
            entry["output"] = action.output
        return entry

    if isinstance(action, Delegation):
        entry = {"command": action.command, "agent": action.agent}
        if action.description:
            entry["description"] = action.description
        if action.result:
            entry["result"] = action.result
        if action.failed:
            entry["failed"] = True
        return entry

    raise TypeError(f"Unexpected action type: {type(action).__name__}")


def _search(search) -> dict:
    entry = {"type": search.kind, "pattern": search.pattern}
    if search.path:
        entry["path"] = search.path
    if search.glob:
        entry["glob"] = search.glob
    if search.matches is not None:
        entry["matches"] = search.matches
    return entry


def _git_context(view: SessionView) -> dict:
    context = {
        "branch": view.git.branch,
        "recent_commits": list(view.git.recent_commits),
    }
    if view.git.uncommitted_files:
        context["uncommitted_changes"] = list(view.git.uncommitted_files[:MAX_UNCOMMITTED_FILES])
    return context


def _prune(mapping: dict) -> dict:
    return {key: value for key, value in mapping.items() if value}
