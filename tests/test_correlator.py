import unittest

from claude_export.correlator import ERROR, OK, PENDING, ResultIndex, correlate
from claude_export.handoff import build_handoff
from claude_export.models import ToolResult, ToolUse
from claude_export.renderer import render_transcript
from tests import factory


class CorrelateTests(unittest.TestCase):
    def test_statuses(self):
        index = correlate(factory.records(
            factory.assistant(
                factory.tool_use("ok1", "Bash", command="pytest -q"),
                factory.tool_use("err1", "Read", file_path="/x"),
                factory.tool_use("wait1", "Grep", pattern="foo"),
            ),
            factory.results(
                factory.tool_result("ok1", "passed"),
                factory.tool_result("err1", "no such file", is_error=True),
            ),
        ))

        self.assertEqual(index.status("ok1"), OK)
        self.assertEqual(index.status("err1"), ERROR)
        self.assertEqual(index.status("wait1"), PENDING)
        self.assertTrue(index.is_error("err1"))
        self.assertEqual(index.result_for("ok1").content, "passed")
        self.assertIsNone(index.result_for("wait1"))
        self.assertEqual(index.pending_ids, ["wait1"])

    def test_result_before_call_still_matches(self):
        index = correlate(factory.records(
            factory.results(factory.tool_result("t1", "early")),
            factory.assistant(factory.tool_use("t1", "Bash", command="make all")),
        ))
        self.assertEqual(index.status("t1"), OK)

    def test_orphan_results_are_dropped(self):
        index = correlate(factory.records(
            factory.assistant(factory.tool_use("t1", "Bash", command="make all")),
            factory.results(factory.tool_result("t1", "done"), factory.tool_result("ghost", "?")),
        ))
        self.assertEqual(len(index), 1)
        self.assertEqual(index.orphaned, 1)
        self.assertIsNone(index.result_for("ghost"))

    def test_results_in_assistant_records_are_ignored(self):
        index = correlate(factory.records(
            factory.assistant(factory.tool_use("t1", "Bash", command="make all"), factory.tool_result("t1", "x")),
        ))
        self.assertEqual(index.status("t1"), PENDING)

    def test_every_outcome_has_a_call(self):
        index = correlate(factory.records(
            factory.assistant(factory.tool_use("a", "Bash"), factory.tool_use("b", "Bash")),
            factory.results(factory.tool_result("a"), factory.tool_result("b"), factory.tool_result("c")),
        ))
        self.assertLessEqual(len(index), len(index.calls))


class ResultIndexTests(unittest.TestCase):
    def test_duplicate_result_last_write_wins(self):
        index = ResultIndex()
        index.add_call(ToolUse(id="t1", name="Bash"))
        with self.assertLogs("claude_export.correlator", level="WARNING"):
            index.add_result(ToolResult(tool_use_id="t1", content="first"))
            index.add_result(ToolResult(tool_use_id="t1", content="second", is_error=True))
        index.finalize()

        self.assertEqual(index.result_for("t1").content, "second")
        self.assertEqual(index.status("t1"), ERROR)
        self.assertEqual(index.duplicate_ids, ["t1"])
        self.assertEqual(len(index), 1)

    def test_duplicate_call_keeps_first(self):
        index = ResultIndex()
        first = ToolUse(id="t1", name="Bash")
        second = ToolUse(id="t1", name="Read")
        index.add_call(first)
        with self.assertLogs("claude_export.correlator", level="WARNING"):
            index.add_call(second)
        index.add_result(ToolResult(tool_use_id="t1", content="boom", is_error=True))
        index.finalize()

        self.assertEqual(index.calls["t1"].name, "Bash")
        self.assertEqual(index.status_for_call(first), ERROR)
        self.assertEqual(index.status_for_call(second), PENDING)
        self.assertIsNone(index.result_for_call(second))
        self.assertEqual(index.detached, [second])
        self.assertEqual(index.pending_count, 1)

    def test_duplicate_call_outcome_is_counted_once(self):
        with self.assertLogs("claude_export.correlator", level="WARNING"):
            view = factory.view(
                factory.user("run it"),
                factory.assistant(factory.tool_use("t1", "Bash", command="make test")),
                factory.assistant(factory.tool_use("t1", "Bash", command="make test")),
                factory.results(factory.tool_result("t1", "boom", is_error=True)),
            )

        self.assertEqual(view.stats.tool_calls, 2)
        self.assertEqual(view.stats.tool_errors, 1)
        self.assertEqual(len(build_handoff(view)["errors"]), 1)
        self.assertEqual(render_transcript(view).count("**Result: ERROR**"), 1)

    def test_blank_ids_are_ignored(self):
        index = ResultIndex()
        index.add_call(ToolUse(id="", name="Bash"))
        index.add_result(ToolResult(tool_use_id=""))
        self.assertEqual(index.calls, {})
        self.assertEqual(len(index.finalize()), 0)


if __name__ == "__main__":
    unittest.main()
