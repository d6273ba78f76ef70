"""Render a session view to a narrative Markdown transcript."""

import json
import re
from dataclasses import dataclass
from typing import Optional

from . import config
from .correlator import ERROR, PENDING
from .dates import format_timestamp
from .filters import short_path, strip_system_tags
from .models import (
    AnalysisResult,
    Attachment,
    Record,
    RecordType,
    SessionView,
    TextBlock,
    ThinkingBlock,
    ToolKind,
    ToolUse,
)
from .turns import truncate, truncate_lines

EXPORT_VERSION = "2.0"

MAX_WRITE_CONTENT_LINES = 300
MAX_THINKING_CHARS = 2000
MAX_PROMPT_CHARS = 3000
MAX_INPUT_JSON_CHARS = 2000
MAX_NOTEBOOK_SOURCE_LINES = 100

_LINE_NUMBERED = re.compile(r"^\s+\d+→", re.MULTILINE)
_BACKTICK_RUN = re.compile(r"`{3,}")


@dataclass
class RenderOptions:
    """What the narrative transcript includes."""
    include_thinking: bool = config.INCLUDE_THINKING
    include_results: bool = True
    max_result_lines: int = config.MAX_RESULT_LINES


def render_transcript(
    view: SessionView,
    options: Optional[RenderOptions] = None,
    exported_at: Optional[str] = None,
) -> str:
    """Render a session as a Markdown document for review by people or agents.

    Sections:
        - Metadata table
        - Session summary (counts, tool breakdown, files, commits, analysis)
        - Conversation replay, every tool call followed by its result

    Args:
        view: Assembled session view.
        options: Thinking/result inclusion and result size limit.
        exported_at: ISO timestamp for the footer; omitted when None.

    Returns:
        Markdown text.
    """
    options = options or RenderOptions()
    lines = []

    _render_header(lines, view)
    _render_summary(lines, view)
    if view.analysis:
        _render_analysis(lines, view.analysis)

    lines.append("---")
    lines.append("")

    _render_conversation(lines, view, options)
    _render_footer(lines, exported_at)

    return "\n".join(lines)


def _render_header(lines: list, view: SessionView) -> None:
    meta = view.meta
    lines.append("# Claude Code Conversation Export")
    lines.append("")
    lines.append("> **Purpose:** This export is structured for AI agents to read, review progress,")
    lines.append("> identify issues, and recommend next steps. Includes full tool inputs/outputs.")
    lines.append("")
    lines.append("## Metadata")
    lines.append("")
    lines.append("| Field | Value |")
    lines.append("|-------|-------|")
    lines.append(f"| Session ID | `{meta.session_id}` |")
    lines.append(f"| Project | {meta.project} |")
    lines.append(f"| Branch | `{meta.branch}` |")
    lines.append(f"| Start | {format_timestamp(meta.started)} |")
    lines.append(f"| End | {format_timestamp(meta.ended)} |")
    if meta.duration_minutes is not None:
        lines.append(f"| Duration | ~{meta.duration_minutes} min |")
    lines.append("")


def _render_summary(lines: list, view: SessionView) -> None:
    stats = view.stats
    lines.append("## Session Summary")
    lines.append("")
    lines.append(f"- **{stats.user_turns}** user turns, **{stats.assistant_messages}** assistant responses")
    lines.append(f"- **{stats.tool_calls}** tool calls ({stats.tool_errors} errors)")
    if stats.thinking_blocks > 0:
        lines.append(f"- **{stats.thinking_blocks}** thinking/reasoning blocks")
    pending = view.index.pending_count
    if pending > 0:
        lines.append(f"- **{pending}** tool calls without a result (pending)")
    lines.append("")

    if stats.tool_breakdown:
        lines.append("**Tool usage breakdown:**")
        # Stable sort keeps first-seen order among equal counts
        for name, count in sorted(stats.tool_breakdown.items(), key=lambda item: -item[1]):
            errors = stats.error_breakdown.get(name, 0)
            suffix = f" ({errors} failed)" if errors else ""
            lines.append(f"- {name}: {count}x{suffix}")
        lines.append("")

    touched = stats.files_touched
    if touched or stats.files_read:
        lines.append("**Files touched:**")
        if touched:
            lines.append(f"- Modified/Created ({len(touched)}):")
            for f in touched:
                lines.append(f"  - `{f}`")
        if stats.files_read:
            lines.append(f"- Read ({len(stats.files_read)}):")
            for f in stats.files_read:
                lines.append(f"  - `{f}`")
        lines.append("")

    if view.git.recent_commits:
        lines.append("**Recent commits (context):**")
        lines.append("```")
        lines.extend(view.git.recent_commits)
        lines.append("```")
        lines.append("")


def _render_analysis(lines: list, analysis: AnalysisResult) -> None:
    lines.append("## Analysis")
    lines.append("")
    if analysis.intent:
        lines.append(f"> {analysis.intent}")
        lines.append("")
    for title, items in (
        ("Decisions", analysis.decisions),
        ("Open issues", analysis.open_issues),
        ("Next steps", analysis.next_steps),
    ):
        if not items:
            continue
        lines.append(f"**{title}:**")
        for item in items:
            lines.append(f"- {item}")
        lines.append("")


def _render_conversation(lines: list, view: SessionView, options: RenderOptions) -> None:
    lines.append("## Conversation")
    lines.append("")

    turn_by_record = {seg.record_index: seg.turn for seg in view.turns if seg.role == "user"}

    for position, record in enumerate(view.records):
        if record.type == RecordType.USER:
            if position in turn_by_record:
                _render_user(lines, record, turn_by_record[position])
        elif record.type == RecordType.ASSISTANT:
            _render_assistant(lines, record, view, options)


def _render_user(lines: list, record: Record, turn: int) -> None:
    lines.append(f"### User (Turn {turn})")
    time = format_timestamp(record.timestamp)
    if time:
        lines.append(f"*{time}*")
    lines.append("")
    for block in record.content:
        if isinstance(block, TextBlock):
            cleaned = strip_system_tags(block.text)
            if cleaned:
                lines.append(cleaned)
                lines.append("")
        elif isinstance(block, Attachment):
            label = "Image" if block.kind == "image" else "Document"
            lines.append(f"*[{label} attached]*")
            lines.append("")
    lines.append("---")
    lines.append("")


def _render_assistant(lines: list, record: Record, view: SessionView, options: RenderOptions) -> None:
    body = []
    for block in record.content:
        if isinstance(block, ThinkingBlock):
            if options.include_thinking and block.thinking.strip():
                body.append("<details>")
                body.append("<summary>Thinking / Internal Reasoning</summary>")
                body.append("")
                body.append(truncate(block.thinking, MAX_THINKING_CHARS, _char_marker(block.thinking)))
                body.append("")
                body.append("</details>")
                body.append("")
        elif isinstance(block, TextBlock):
            if block.text.strip():
                body.append(block.text)
                body.append("")
        elif isinstance(block, ToolUse):
            body.append(format_tool_call(block, view, options))
            body.append("")

    if not body:
        return

    lines.append("### Assistant")
    time = format_timestamp(record.timestamp)
    if time:
        lines.append(f"*{time}*")
    lines.append("")
    lines.extend(body)
    lines.append("---")
    lines.append("")


def format_tool_call(call: ToolUse, view: SessionView, options: RenderOptions) -> str:
    """Format one tool call with its input and, if enabled, its result."""
    parts = []
    name = call.name or "Unknown"
    status = view.index.status_for_call(call)

    parts.append(f"### [ERROR] Tool: {name}" if status == ERROR else f"### Tool: {name}")
    parts.append("")

    formatter = _INPUT_FORMATTERS.get(call.kind, _format_generic)
    formatter(parts, call.input or {}, view)

    if options.include_results:
        _format_result(parts, call, view, options)

    return "\n".join(parts)


def _format_result(parts: list, call: ToolUse, view: SessionView, options: RenderOptions) -> None:
    status = view.index.status_for_call(call)
    parts.append("")

    if status == PENDING:
        parts.append("**Result:** _pending_")
        return

    content = view.index.result_for_call(call).content or ""
    if status == ERROR:
        parts.append("**Result: ERROR**")
        _fenced(parts, truncate_lines(content or "(empty)", options.max_result_lines))
        return

    if not content.strip():
        return
    lang = ""
    if call.kind == ToolKind.READ and _LINE_NUMBERED.search(content):
        lang = _file_ext(call.input.get("file_path"))
    parts.append("**Result:**")
    _fenced(parts, truncate_lines(content, options.max_result_lines), lang)


# ── Per-kind input formatting ──────────────────────────────────────

def _short(view: SessionView, path) -> str:
    return short_path(path if isinstance(path, str) else "", view.meta.project_root, view.meta.project)


def _format_bash(parts: list, tool_input: dict, view: SessionView) -> None:
    if tool_input.get("description"):
        parts.append(f"> {tool_input['description']}")
    parts.append("**Command:**")
    _fenced(parts, str(tool_input.get("command") or ""), "bash")


def _format_read(parts: list, tool_input: dict, view: SessionView) -> None:
    parts.append(f"**File:** `{_short(view, tool_input.get('file_path'))}`")
    if tool_input.get("offset"):
        parts.append(f"**Offset:** line {tool_input['offset']}")
    if tool_input.get("limit"):
        parts.append(f"**Limit:** {tool_input['limit']} lines")


def _format_write(parts: list, tool_input: dict, view: SessionView) -> None:
    parts.append(f"**File:** `{_short(view, tool_input.get('file_path'))}`")
    content = tool_input.get("content")
    if isinstance(content, str) and content:
        parts.append("**Content written:**")
        _fenced(parts, truncate_lines(content, MAX_WRITE_CONTENT_LINES), _file_ext(tool_input.get("file_path")))


def _format_edit(parts: list, tool_input: dict, view: SessionView) -> None:
    parts.append(f"**File:** `{_short(view, tool_input.get('file_path'))}`")
    _format_edit_pair(parts, tool_input)


def _format_edit_pair(parts: list, edit: dict) -> None:
    if edit.get("replace_all"):
        parts.append("**Mode:** replace_all")
    if "old_string" in edit:
        parts.append("**Old:**")
        _fenced(parts, str(edit["old_string"] or ""))
    if "new_string" in edit:
        parts.append("**New:**")
        _fenced(parts, str(edit["new_string"] or ""))


def _format_multi_edit(parts: list, tool_input: dict, view: SessionView) -> None:
    parts.append(f"**File:** `{_short(view, tool_input.get('file_path'))}`")
    edits = [e for e in tool_input.get("edits") or [] if isinstance(e, dict)]
    for i, edit in enumerate(edits, 1):
        parts.append(f"**Edit {i}/{len(edits)}:**")
        _format_edit_pair(parts, edit)


def _format_search(parts: list, tool_input: dict, view: SessionView) -> None:
    parts.append(f"**Pattern:** `{tool_input.get('pattern') or ''}`")
    if tool_input.get("path"):
        parts.append(f"**Path:** `{_short(view, tool_input['path'])}`")
    if tool_input.get("glob"):
        parts.append(f"**Glob:** `{tool_input['glob']}`")
    if tool_input.get("output_mode"):
        parts.append(f"**Mode:** {tool_input['output_mode']}")


def _format_task(parts: list, tool_input: dict, view: SessionView) -> None:
    parts.append(f"**Agent:** {tool_input.get('subagent_type') or '?'}")
    if tool_input.get("description"):
        parts.append(f"**Description:** {tool_input['description']}")
    if tool_input.get("model"):
        parts.append(f"**Model:** {tool_input['model']}")
    prompt = str(tool_input.get("prompt") or "")
    parts.append("**Prompt:**")
    _fenced(parts, truncate(prompt, MAX_PROMPT_CHARS, _char_marker(prompt)))


def _format_web_search(parts: list, tool_input: dict, view: SessionView) -> None:
    parts.append(f"**Query:** `{tool_input.get('query') or ''}`")


def _format_web_fetch(parts: list, tool_input: dict, view: SessionView) -> None:
    parts.append(f"**URL:** {tool_input.get('url') or ''}")
    if tool_input.get("prompt"):
        parts.append(f"**Prompt:** {tool_input['prompt']}")


def _format_todos(parts: list, tool_input: dict, view: SessionView) -> None:
    parts.append("**Tasks:**")
    for todo in tool_input.get("todos") or []:
        if not isinstance(todo, dict):
            continue
        status = todo.get("status")
        icon = "[x]" if status == "completed" else "[~]" if status == "in_progress" else "[ ]"
        parts.append(f"- {icon} {todo.get('content', '')}")


def _format_notebook_edit(parts: list, tool_input: dict, view: SessionView) -> None:
    parts.append(f"**Notebook:** `{_short(view, tool_input.get('notebook_path'))}`")
    if tool_input.get("cell_type"):
        parts.append(f"**Cell type:** {tool_input['cell_type']}")
    if tool_input.get("edit_mode"):
        parts.append(f"**Edit mode:** {tool_input['edit_mode']}")
    source = tool_input.get("new_source")
    if isinstance(source, str) and source:
        parts.append("**Source:**")
        _fenced(parts, truncate_lines(source, MAX_NOTEBOOK_SOURCE_LINES))


def _format_questions(parts: list, tool_input: dict, view: SessionView) -> None:
    for question in tool_input.get("questions") or []:
        if not isinstance(question, dict):
            continue
        parts.append(f"**Q:** {question.get('question', '')}")
        for option in question.get("options") or []:
            if isinstance(option, dict):
                parts.append(f"  - {option.get('label', '')}: {option.get('description') or ''}")


def _format_generic(parts: list, tool_input: dict, view: SessionView) -> None:
    summary = json.dumps(tool_input, indent=2, default=str, ensure_ascii=False)
    parts.append("**Input:**")
    _fenced(parts, truncate(summary, MAX_INPUT_JSON_CHARS, _char_marker(summary)), "json")


_INPUT_FORMATTERS = {
    ToolKind.BASH: _format_bash,
    ToolKind.READ: _format_read,
    ToolKind.WRITE: _format_write,
    ToolKind.EDIT: _format_edit,
    ToolKind.MULTI_EDIT: _format_multi_edit,
    ToolKind.NOTEBOOK_EDIT: _format_notebook_edit,
    ToolKind.GREP: _format_search,
    ToolKind.GLOB: _format_search,
    ToolKind.TASK: _format_task,
    ToolKind.TODO_WRITE: _format_todos,
    ToolKind.WEB_SEARCH: _format_web_search,
    ToolKind.WEB_FETCH: _format_web_fetch,
    ToolKind.ASK_USER: _format_questions,
    ToolKind.UNKNOWN: _format_generic,
}


# ── Helpers ────────────────────────────────────────────────────────

def _fenced(parts: list, text: str, lang: str = "") -> None:
    """Append a code block whose fence cannot be closed by the content."""
    longest = max((len(run) for run in _BACKTICK_RUN.findall(text)), default=2)
    fence = "`" * max(3, longest + 1)
    parts.append(fence + lang)
    parts.append(text)
    parts.append(fence)


def _char_marker(text: str) -> str:
    return f"\n... (truncated, {len(text)} chars total)"


def _file_ext(file_path) -> str:
    if not isinstance(file_path, str) or "." not in file_path.rsplit("/", 1)[-1]:
        return ""
    return file_path.rsplit(".", 1)[-1]


def _render_footer(lines: list, exported_at: Optional[str]) -> None:
    lines.append("")
    lines.append("---")
    if exported_at:
        lines.append(f"*Exported at {format_timestamp(exported_at)}*")
    lines.append(f"*Export version: {EXPORT_VERSION} (AI-optimized with tool results)*")
