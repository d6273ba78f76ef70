"""Pair tool invocations with their results."""

import logging
from typing import Iterable, Optional

from .models import Record, RecordType, ToolResult, ToolUse

logger = logging.getLogger("claude_export.correlator")

PENDING = "pending"
OK = "ok"
ERROR = "error"


class ResultIndex:
    """Index of tool calls and their outcomes, keyed by tool_use id.

    Records stay immutable: calls never hold a reference to their result,
    formatters look the result up here instead. Results may arrive before
    or after their call in file order; `finalize` drops the ones that never
    matched a call. A call reusing an id that is already taken is detached:
    it never receives an outcome, so no result is counted twice.
    """

    def __init__(self):
        self.calls: dict = {}
        self._results: dict = {}
        self.duplicate_ids: list = []
        self.detached: list = []
        self.orphaned = 0

    def add_call(self, call: ToolUse) -> None:
        if not call.id:
            return
        if call.id in self.calls:
            logger.warning("Duplicate tool_use id %s; keeping the first", call.id)
            self.detached.append(call)
            return
        self.calls[call.id] = call

    def add_result(self, result: ToolResult) -> None:
        if not result.tool_use_id:
            return
        if result.tool_use_id in self._results:
            # Last write wins; the session still renders
            logger.warning("Multiple results for tool_use id %s; using the last", result.tool_use_id)
            self.duplicate_ids.append(result.tool_use_id)
        self._results[result.tool_use_id] = result

    def finalize(self) -> "ResultIndex":
        orphans = [key for key in self._results if key not in self.calls]
        for key in orphans:
            del self._results[key]
        self.orphaned += len(orphans)
        if orphans:
            logger.debug("Dropped %d result(s) with no matching call", len(orphans))
        return self

    def result_for(self, tool_use_id: str) -> Optional[ToolResult]:
        return self._results.get(tool_use_id)

    def status(self, tool_use_id: str) -> str:
        result = self._results.get(tool_use_id)
        if result is None:
            return PENDING
        return ERROR if result.is_error else OK

    def is_error(self, tool_use_id: str) -> bool:
        return self.status(tool_use_id) == ERROR

    def owns(self, call: ToolUse) -> bool:
        """True for the invocation registered under its id, not a later duplicate."""
        return bool(call.id) and self.calls.get(call.id) is call

    def result_for_call(self, call: ToolUse) -> Optional[ToolResult]:
        return self._results.get(call.id) if self.owns(call) else None

    def status_for_call(self, call: ToolUse) -> str:
        return self.status(call.id) if self.owns(call) else PENDING

    @property
    def pending_ids(self) -> list:
        return [key for key in self.calls if key not in self._results]

    @property
    def pending_count(self) -> int:
        """Unresolved invocations, detached duplicates included."""
        return len(self.pending_ids) + len(self.detached)

    def __len__(self) -> int:
        return len(self._results)


def correlate(records: Iterable[Record]) -> ResultIndex:
    """Build a ResultIndex in one forward pass over the records."""
    index = ResultIndex()
    for record in records:
        if record.type == RecordType.ASSISTANT:
            for call in record.tool_uses:
                index.add_call(call)
        elif record.type == RecordType.USER:
            for result in record.tool_results:
                index.add_result(result)
    return index.finalize()
