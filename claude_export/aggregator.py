"""Aggregate counts and side effects from a session in one pass."""

import json
import logging
from collections import Counter
from typing import Iterable, Optional

from .correlator import ResultIndex
from .filters import is_noise_command, short_path
from .models import (
    CommandRun,
    Delegation,
    EditFragment,
    FileChange,
    OtherToolCall,
    Record,
    RecordType,
    SearchRecord,
    SessionStats,
    ThinkingBlock,
    TodoItem,
    ToolError,
    ToolKind,
    ToolUse,
)
from .turns import is_conversational, truncate

logger = logging.getLogger("claude_export.aggregator")

ERROR_CHARS = 300
INPUT_SUMMARY_CHARS = 200
EDIT_FRAGMENT_CHARS = 200
COMMAND_CHARS = 300
SHORT_OUTPUT_LINES = 5
OUTPUT_CHARS = 200
DELEGATION_CHARS = 300
MAX_EDITS_PER_FILE = 10

_FILE_PATH_KINDS = (ToolKind.READ, ToolKind.WRITE, ToolKind.EDIT, ToolKind.MULTI_EDIT)


class _Accumulator:
    """Mutable state for the single pass; frozen into SessionStats at the end."""

    def __init__(self, project_root: str, project_name: str):
        self.project_root = project_root
        self.project_name = project_name
        self.user_turns = 0
        self.assistant_messages = 0
        self.tool_calls = 0
        self.tool_errors = 0
        self.thinking_blocks = 0
        self.bash_commands = 0
        self.tool_breakdown = Counter()
        self.error_breakdown = Counter()
        # dicts used as ordered sets
        self.files_read = {}
        self.files_written = {}
        self.files_edited = {}
        self.started = None
        self.ended = None
        self.changes = {}
        self.actions = []
        self.searches = []
        self.errors = []
        self.other_tools = []
        self.latest_todos = None

    def short(self, path) -> str:
        return short_path(path if isinstance(path, str) else "", self.project_root, self.project_name)

    def freeze(self) -> SessionStats:
        return SessionStats(
            user_turns=self.user_turns,
            assistant_messages=self.assistant_messages,
            tool_calls=self.tool_calls,
            tool_errors=self.tool_errors,
            thinking_blocks=self.thinking_blocks,
            bash_commands=self.bash_commands,
            search_count=len(self.searches),
            tool_breakdown=dict(self.tool_breakdown),
            error_breakdown=dict(self.error_breakdown),
            files_read=tuple(self.files_read),
            files_written=tuple(self.files_written),
            files_edited=tuple(self.files_edited),
            started=self.started,
            ended=self.ended,
            changes=tuple(self.changes.values()),
            actions=tuple(self.actions),
            searches=tuple(self.searches),
            errors=tuple(self.errors),
            latest_todos=self.latest_todos,
            other_tools=tuple(self.other_tools),
        )


def collect_stats(
    records: Iterable[Record],
    index: ResultIndex,
    project_root: str = "",
    project_name: str = "",
) -> SessionStats:
    """Walk the records once and accumulate session statistics.

    Args:
        records: Parsed records in file order.
        index: Correlated tool results for the same records.
        project_root: Absolute project path used to shorten file paths.
        project_name: Project name used as a fallback when shortening paths.

    Returns:
        Frozen SessionStats.
    """
    acc = _Accumulator(project_root, project_name)

    for record in records:
        if record.timestamp:
            if not acc.started:
                acc.started = record.timestamp
            acc.ended = record.timestamp

        if record.type == RecordType.USER:
            if is_conversational(record):
                acc.user_turns += 1

        elif record.type == RecordType.ASSISTANT:
            if is_conversational(record):
                acc.assistant_messages += 1
            for block in record.content:
                if isinstance(block, ThinkingBlock):
                    acc.thinking_blocks += 1
                elif isinstance(block, ToolUse):
                    _process_tool_call(block, index, acc)

    return acc.freeze()


def _process_tool_call(call: ToolUse, index: ResultIndex, acc: _Accumulator) -> None:
    """Count a tool call and record the side effect its kind implies."""
    name = call.name or "Unknown"
    kind = call.kind
    tool_input = call.input or {}
    result = index.result_for_call(call)
    is_error = bool(result and result.is_error)
    output = result.content if result else None

    acc.tool_calls += 1
    acc.tool_breakdown[name] += 1

    if is_error:
        acc.tool_errors += 1
        acc.error_breakdown[name] += 1
        acc.errors.append(ToolError(
            tool=name,
            error=truncate(output, ERROR_CHARS),
            input_summary=_input_summary(kind, tool_input, acc),
        ))

    if kind == ToolKind.WRITE:
        _record_write(tool_input, acc)
    elif kind in (ToolKind.EDIT, ToolKind.MULTI_EDIT, ToolKind.NOTEBOOK_EDIT):
        _record_edit(kind, tool_input, acc)
    elif kind == ToolKind.READ:
        if tool_input.get("file_path"):
            acc.files_read.setdefault(acc.short(tool_input["file_path"]), None)
    elif kind == ToolKind.BASH:
        acc.bash_commands += 1
        _record_command(tool_input, output, is_error, acc)
    elif kind in (ToolKind.GREP, ToolKind.GLOB, ToolKind.WEB_SEARCH):
        _record_search(kind, tool_input, output, acc)
    elif kind == ToolKind.TASK:
        _record_delegation(tool_input, output, is_error, acc)
    elif kind == ToolKind.TODO_WRITE:
        _record_todos(tool_input, acc)
    else:
        # WebFetch, AskUserQuestion and unknown tools
        acc.other_tools.append(OtherToolCall(
            tool=name,
            input_summary=summarize_input(tool_input, INPUT_SUMMARY_CHARS),
        ))


def _record_write(tool_input: dict, acc: _Accumulator) -> None:
    if not tool_input.get("file_path"):
        return
    path = acc.short(tool_input["file_path"])
    content = tool_input.get("content")
    if isinstance(content, str) and content:
        line_count = len(content.split("\n"))
        summary = f"{line_count} lines written"
    else:
        summary = "file created"
    acc.changes[path] = FileChange(file=path, action="created", summary=summary)
    acc.files_written.setdefault(path, None)


def _record_edit(kind: ToolKind, tool_input: dict, acc: _Accumulator) -> None:
    raw_path = tool_input.get("notebook_path") if kind == ToolKind.NOTEBOOK_EDIT else tool_input.get("file_path")
    if not raw_path:
        return
    path = acc.short(raw_path)

    change = acc.changes.get(path)
    if change is None:
        change = acc.changes[path] = FileChange(file=path, action="modified")
    else:
        change.action = "modified"
    acc.files_edited.setdefault(path, None)

    if kind == ToolKind.EDIT:
        fragments = [tool_input]
    elif kind == ToolKind.MULTI_EDIT:
        fragments = [e for e in tool_input.get("edits") or [] if isinstance(e, dict)]
    else:
        fragments = []

    for fragment in fragments:
        if "old_string" not in fragment or "new_string" not in fragment:
            continue
        if len(change.edits) >= MAX_EDITS_PER_FILE:
            break
        change.edits.append(EditFragment(
            removed=truncate(_text(fragment["old_string"]), EDIT_FRAGMENT_CHARS),
            added=truncate(_text(fragment["new_string"]), EDIT_FRAGMENT_CHARS),
            replace_all=bool(fragment.get("replace_all", False)),
        ))


def _record_command(tool_input: dict, output: Optional[str], is_error: bool, acc: _Accumulator) -> None:
    command = _text(tool_input.get("command")).strip()
    if is_noise_command(command):
        return

    action = CommandRun(
        command=truncate(command, COMMAND_CHARS),
        description=tool_input.get("description") or None,
    )
    if is_error:
        action.failed = True
    elif output:
        if len(output.split("\n")) <= SHORT_OUTPUT_LINES:
            action.output = output.strip()
        else:
            action.output = truncate(output, OUTPUT_CHARS)
    acc.actions.append(action)


def _record_search(kind: ToolKind, tool_input: dict, output: Optional[str], acc: _Accumulator) -> None:
    if kind == ToolKind.WEB_SEARCH:
        search = SearchRecord(kind="web", pattern=_text(tool_input.get("query")))
    else:
        search = SearchRecord(kind=kind.value.lower(), pattern=_text(tool_input.get("pattern")))
        if tool_input.get("path"):
            search.path = acc.short(tool_input["path"])
        if kind == ToolKind.GREP and tool_input.get("glob"):
            search.glob = _text(tool_input["glob"])

    if output:
        search.matches = len([line for line in output.split("\n") if line.strip()])
    acc.searches.append(search)


def _record_delegation(tool_input: dict, output: Optional[str], is_error: bool, acc: _Accumulator) -> None:
    action = Delegation(
        command=truncate(_text(tool_input.get("command") or tool_input.get("prompt")), DELEGATION_CHARS),
        agent=_text(tool_input.get("subagent_type")) or "unknown",
        description=tool_input.get("description") or None,
    )
    if output:
        action.result = truncate(output, DELEGATION_CHARS)
    if is_error:
        action.failed = True
    acc.actions.append(action)


def _record_todos(tool_input: dict, acc: _Accumulator) -> None:
    todos = tool_input.get("todos")
    if not isinstance(todos, list):
        return
    # Each TodoWrite is a full snapshot; the newest one supersedes the rest
    acc.latest_todos = tuple(
        TodoItem(content=_text(t.get("content")), status=_text(t.get("status")) or "pending")
        for t in todos
        if isinstance(t, dict)
    )


def _input_summary(kind: ToolKind, tool_input: dict, acc: _Accumulator) -> str:
    if kind == ToolKind.BASH:
        return truncate(_text(tool_input.get("command")), INPUT_SUMMARY_CHARS)
    if kind in _FILE_PATH_KINDS:
        return acc.short(tool_input.get("file_path"))
    return summarize_input(tool_input, INPUT_SUMMARY_CHARS)


def summarize_input(tool_input, limit: int = INPUT_SUMMARY_CHARS) -> str:
    """Serialize an arbitrary tool input and cap its length."""
    try:
        text = json.dumps(tool_input, default=str, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.debug("Could not serialize tool input: %s", e)
        text = repr(tool_input)
    return truncate(text, limit)


def _text(value) -> str:
    if value is None:
        return ""
    return value if isinstance(value, str) else str(value)
