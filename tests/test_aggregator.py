import unittest

from claude_export.models import CommandRun, Delegation, EditFragment, TodoItem
from tests import factory

ROOT = "/work/demo"


def stats_for(*entries):
    return factory.view(*entries, project_root=ROOT).stats


class FileChangeTests(unittest.TestCase):
    def test_write_records_created_file_with_line_count(self):
        stats = stats_for(
            factory.assistant(factory.tool_use("t1", "Write", file_path=ROOT + "/a.txt", content="x\ny")),
            factory.results(factory.tool_result("t1", "ok")),
        )
        self.assertEqual(len(stats.changes), 1)
        change = stats.changes[0]
        self.assertEqual((change.file, change.action, change.summary), ("a.txt", "created", "2 lines written"))
        self.assertEqual(stats.files_written, ("a.txt",))

    def test_edit_after_write_becomes_modified(self):
        stats = stats_for(
            factory.assistant(
                factory.tool_use("t1", "Write", file_path=ROOT + "/a.py", content=""),
                factory.tool_use("t2", "Edit", file_path=ROOT + "/a.py", old_string="a", new_string="b"),
            ),
        )
        change = stats.changes[0]
        self.assertEqual(change.action, "modified")
        self.assertEqual(change.summary, "file created")
        self.assertEqual(change.edits, [EditFragment(removed="a", added="b")])
        self.assertEqual(stats.files_touched, ["a.py"])

    def test_multi_edit_fragments_are_bounded(self):
        edits = [{"old_string": "o" * 500, "new_string": str(i), "replace_all": True} for i in range(15)]
        stats = stats_for(
            factory.assistant(factory.tool_use("t1", "MultiEdit", file_path=ROOT + "/b.py", edits=edits)),
        )
        change = stats.changes[0]
        self.assertEqual(len(change.edits), 10)
        self.assertEqual(len(change.edits[0].removed), 200)
        self.assertTrue(change.edits[0].replace_all)

    def test_notebook_edit_counts_as_modification(self):
        stats = stats_for(
            factory.assistant(factory.tool_use("t1", "NotebookEdit", notebook_path=ROOT + "/nb.ipynb", new_source="x")),
        )
        self.assertEqual(stats.changes[0].file, "nb.ipynb")
        self.assertEqual(stats.changes[0].action, "modified")

    def test_paths_outside_root_fall_back_to_project_name(self):
        stats = stats_for(
            factory.assistant(factory.tool_use("t1", "Read", file_path="/other/checkout/demo/src/m.py")),
            factory.assistant(factory.tool_use("t2", "Read", file_path="/tmp/scratch.txt")),
            factory.assistant(factory.tool_use("t3", "Read", file_path=ROOT + "/src/m.py")),
        )
        self.assertEqual(stats.files_read, ("src/m.py", "/tmp/scratch.txt"))


class ActionTests(unittest.TestCase):
    def test_short_output_kept_and_long_output_truncated(self):
        long_output = "\n".join("line %d" % i for i in range(100))
        stats = stats_for(
            factory.assistant(
                factory.tool_use("t1", "Bash", command="git status", description="Check tree"),
                factory.tool_use("t2", "Bash", command="pytest -q"),
                factory.tool_use("t3", "Bash", command="make lint"),
                factory.tool_use("t4", "Bash", command="echo hi"),
                factory.tool_use("t5", "Bash", command="ls"),
            ),
            factory.results(
                factory.tool_result("t1", "  clean  \n"),
                factory.tool_result("t2", long_output),
                factory.tool_result("t3", "boom", is_error=True),
            ),
        )

        self.assertEqual(stats.bash_commands, 5)
        self.assertEqual(len(stats.actions), 3)
        self.assertEqual(stats.actions[0], CommandRun(command="git status", description="Check tree", output="clean"))
        self.assertEqual(len(stats.actions[1].output), 200)
        self.assertTrue(stats.actions[2].failed)
        self.assertIsNone(stats.actions[2].output)

    def test_delegation(self):
        stats = stats_for(
            factory.assistant(factory.tool_use(
                "t1", "Task", prompt="Find all callers", subagent_type="Explore", description="Search",
            )),
            factory.results(factory.tool_result("t1", "found 3")),
        )
        self.assertEqual(stats.actions, (Delegation(
            command="Find all callers", agent="Explore", description="Search", result="found 3",
        ),))


class SearchTests(unittest.TestCase):
    def test_searches_counted_and_deduplicated(self):
        stats = stats_for(
            factory.assistant(
                factory.tool_use("g1", "Grep", pattern="foo", path=ROOT + "/src", glob="*.py"),
                factory.tool_use("g2", "Grep", pattern="foo"),
                factory.tool_use("w1", "WebSearch", query="python enum"),
            ),
            factory.results(factory.tool_result("g1", "a.py\n\nb.py\n")),
        )
        self.assertEqual(stats.search_count, 3)
        unique = stats.unique_searches()
        self.assertEqual([(s.kind, s.pattern) for s in unique], [("grep", "foo"), ("web", "python enum")])
        self.assertEqual((unique[0].path, unique[0].glob, unique[0].matches), ("src", "*.py", 2))


class TodoTests(unittest.TestCase):
    def test_latest_snapshot_wins(self):
        stats = stats_for(
            factory.assistant(factory.tool_use("t1", "TodoWrite", todos=[{"content": "old", "status": "pending"}])),
            factory.assistant(factory.tool_use("t2", "TodoWrite", todos=[
                {"content": "a", "status": "completed"},
                {"content": "b"},
            ])),
        )
        self.assertEqual(stats.latest_todos, (
            TodoItem(content="a", status="completed"),
            TodoItem(content="b", status="pending"),
        ))


class ErrorTests(unittest.TestCase):
    def test_input_summaries(self):
        stats = stats_for(
            factory.assistant(
                factory.tool_use("t1", "Bash", command="npm test"),
                factory.tool_use("t2", "Read", file_path=ROOT + "/missing.py"),
                factory.tool_use("t3", "WebFetch", url="https://example.com", prompt="x" * 400),
            ),
            factory.results(
                factory.tool_result("t1", "E" * 1000, is_error=True),
                factory.tool_result("t2", "not found", is_error=True),
                factory.tool_result("t3", "timeout", is_error=True),
            ),
        )
        self.assertEqual(stats.tool_errors, 3)
        self.assertEqual(stats.error_breakdown, {"Bash": 1, "Read": 1, "WebFetch": 1})
        self.assertEqual(stats.errors[0].input_summary, "npm test")
        self.assertEqual(len(stats.errors[0].error), 300)
        self.assertEqual(stats.errors[1].input_summary, "missing.py")
        self.assertTrue(stats.errors[2].input_summary.startswith('{"url": "https://example.com"'))
        self.assertEqual(len(stats.errors[2].input_summary), 200)


class CountTests(unittest.TestCase):
    def test_counts_and_time_bounds(self):
        stats = stats_for(
            factory.user("start", "2025-03-01T10:00:00Z"),
            factory.assistant(factory.thinking("plan"), factory.text("ok"),
                              factory.tool_use("t1", "Glob", pattern="**/*.py"),
                              timestamp="2025-03-01T10:01:00Z"),
            factory.results(factory.tool_result("t1", "a.py"), timestamp="2025-03-01T10:02:00Z"),
            factory.assistant(factory.tool_use("t2", "mcp__db__query", sql="select 1")),
            factory.user("Caveat", isMeta=True),
        )
        self.assertEqual(stats.user_turns, 1)
        self.assertEqual(stats.assistant_messages, 1)
        self.assertEqual(stats.thinking_blocks, 1)
        self.assertEqual(stats.tool_calls, 2)
        self.assertEqual(stats.tool_breakdown, {"Glob": 1, "mcp__db__query": 1})
        self.assertEqual(stats.started, "2025-03-01T10:00:00Z")
        self.assertEqual(stats.ended, "2025-03-01T10:02:00Z")
        self.assertEqual(stats.other_tools[0].tool, "mcp__db__query")
        self.assertEqual(stats.other_tools[0].input_summary, '{"sql": "select 1"}')


if __name__ == "__main__":
    unittest.main()
