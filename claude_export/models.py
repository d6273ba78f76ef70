"""Data models for claude-export session projections."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class RecordType(Enum):
    """Top-level kind of a log line."""
    USER = "user"
    ASSISTANT = "assistant"
    OTHER = "other"

    @classmethod
    def from_raw(cls, value) -> "RecordType":
        if value == "user":
            return cls.USER
        if value == "assistant":
            return cls.ASSISTANT
        return cls.OTHER


class ToolKind(Enum):
    """Tool kinds with dedicated handling. Everything else is UNKNOWN."""
    WRITE = "Write"
    EDIT = "Edit"
    MULTI_EDIT = "MultiEdit"
    NOTEBOOK_EDIT = "NotebookEdit"
    READ = "Read"
    BASH = "Bash"
    GREP = "Grep"
    GLOB = "Glob"
    TASK = "Task"
    TODO_WRITE = "TodoWrite"
    WEB_SEARCH = "WebSearch"
    WEB_FETCH = "WebFetch"
    ASK_USER = "AskUserQuestion"
    UNKNOWN = ""

    @classmethod
    def from_name(cls, name: Optional[str]) -> "ToolKind":
        if not name:
            return cls.UNKNOWN
        try:
            return cls(name)
        except ValueError:
            return cls.UNKNOWN


# ── Content blocks ─────────────────────────────────────────────────

@dataclass(frozen=True)
class TextBlock:
    text: str


@dataclass(frozen=True)
class ThinkingBlock:
    thinking: str


@dataclass(frozen=True)
class ToolUse:
    """A tool invocation. The result is looked up by id, never stored here."""
    id: str
    name: str
    input: dict = field(default_factory=dict)

    @property
    def kind(self) -> ToolKind:
        return ToolKind.from_name(self.name)


@dataclass(frozen=True)
class ToolResult:
    tool_use_id: str
    content: str = ""
    is_error: bool = False


@dataclass(frozen=True)
class Attachment:
    kind: str  # "image" or "document"
    media_type: str = ""


@dataclass(frozen=True)
class Record:
    """One parsed line of a session log."""
    type: RecordType
    role: str
    timestamp: Optional[str]
    content: tuple = ()
    line_number: int = 0
    extra: dict = field(default_factory=dict)

    @property
    def tool_uses(self) -> list:
        return [b for b in self.content if isinstance(b, ToolUse)]

    @property
    def tool_results(self) -> list:
        return [b for b in self.content if isinstance(b, ToolResult)]

    @property
    def is_tool_result_container(self) -> bool:
        """True for the synthetic user records that carry tool output."""
        return any(isinstance(b, ToolResult) for b in self.content)

    @property
    def is_meta(self) -> bool:
        return bool(self.extra.get("isMeta"))


# ── Derived views ──────────────────────────────────────────────────

@dataclass(frozen=True)
class TurnSegment:
    """A conversational message with its turn number."""
    turn: int
    role: str  # "user" or "assistant"
    text: str
    timestamp: Optional[str] = None
    record_index: int = -1


@dataclass
class EditFragment:
    removed: str
    added: str
    replace_all: bool = False


@dataclass
class FileChange:
    """Represents a file created or modified during a session."""
    file: str
    action: str  # "created" or "modified"
    summary: Optional[str] = None
    edits: list = field(default_factory=list)


@dataclass
class CommandRun:
    command: str
    description: Optional[str] = None
    output: Optional[str] = None
    failed: bool = False


@dataclass
class Delegation:
    """A sub-task handed to another agent."""
    command: str
    agent: str = "unknown"
    description: Optional[str] = None
    result: Optional[str] = None
    failed: bool = False


@dataclass
class SearchRecord:
    kind: str  # "grep", "glob" or "web"
    pattern: str
    path: Optional[str] = None
    glob: Optional[str] = None
    matches: Optional[int] = None


@dataclass
class ToolError:
    tool: str
    error: str
    input_summary: str


@dataclass
class OtherToolCall:
    """A call with no dedicated handling; input kept as a truncated summary."""
    tool: str
    input_summary: str


@dataclass(frozen=True)
class TodoItem:
    content: str
    status: str  # "completed", "in_progress" or "pending"


@dataclass(frozen=True)
class SessionStats:
    """Aggregates from a single forward pass over a session."""
    user_turns: int = 0
    assistant_messages: int = 0
    tool_calls: int = 0
    tool_errors: int = 0
    thinking_blocks: int = 0
    bash_commands: int = 0
    search_count: int = 0
    tool_breakdown: dict = field(default_factory=dict)
    error_breakdown: dict = field(default_factory=dict)
    files_read: tuple = ()
    files_written: tuple = ()
    files_edited: tuple = ()
    started: Optional[str] = None
    ended: Optional[str] = None
    changes: tuple = ()
    actions: tuple = ()
    searches: tuple = ()
    errors: tuple = ()
    latest_todos: Optional[tuple] = None
    other_tools: tuple = ()

    @property
    def files_touched(self) -> list:
        """Union of created and edited files, in first-seen order."""
        return list(dict.fromkeys(self.files_written + self.files_edited))

    def unique_searches(self) -> list:
        """Searches deduplicated by (kind, pattern), first occurrence kept."""
        seen = set()
        unique = []
        for search in self.searches:
            key = (search.kind, search.pattern)
            if key in seen:
                continue
            seen.add(key)
            unique.append(search)
        return unique


@dataclass(frozen=True)
class GitContext:
    branch: str = "unknown"
    recent_commits: tuple = ()
    uncommitted_files: tuple = ()


@dataclass(frozen=True)
class SessionMeta:
    session_id: str
    project: str
    project_root: str = ""
    branch: str = "unknown"
    started: Optional[str] = None
    ended: Optional[str] = None
    duration_minutes: Optional[int] = None


@dataclass
class AnalysisResult:
    """Model-written reading of a session for whoever picks it up next.

    - intent: What the session was trying to achieve
    - decisions: Choices that were made
    - open_issues: Problems still unresolved at the end
    - next_steps: Concrete follow-ups
    """
    intent: str
    decisions: list = field(default_factory=list)
    open_issues: list = field(default_factory=list)
    next_steps: list = field(default_factory=list)


@dataclass
class SessionView:
    """Everything the formatters need, computed before any output is written."""
    records: list
    index: object  # correlator.ResultIndex
    stats: SessionStats
    turns: list
    meta: SessionMeta
    git: GitContext = field(default_factory=GitContext)
    analysis: Optional[AnalysisResult] = None
