import tempfile
import unittest
from pathlib import Path

from claude_export.installer import (
    COMMAND_FILES,
    CREATED,
    UNCHANGED,
    UPDATED,
    install_commands,
)


class InstallCommandsTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name)
        self.commands = self.root / ".claude" / "commands"

    def test_fresh_install_creates_both_commands(self):
        results = install_commands(str(self.root))

        self.assertEqual([(p.name, s) for p, s in results], [
            ("export.md", CREATED),
            ("export-continue.md", CREATED),
        ])
        self.assertIn("claude-export chat", (self.commands / "export.md").read_text(encoding="utf-8"))
        self.assertIn("claude-export continue", (self.commands / "export-continue.md").read_text(encoding="utf-8"))

    def test_second_install_leaves_files_alone(self):
        install_commands(str(self.root))
        results = install_commands(str(self.root))

        self.assertEqual([s for _, s in results], [UNCHANGED, UNCHANGED])
        self.assertFalse(list(self.commands.glob("*.backup")))

    def test_changed_file_is_backed_up_then_replaced(self):
        self.commands.mkdir(parents=True)
        (self.commands / "export.md").write_text("my own command\n", encoding="utf-8")

        results = dict((p.name, s) for p, s in install_commands(str(self.root)))

        self.assertEqual(results, {"export.md": UPDATED, "export-continue.md": CREATED})
        self.assertEqual((self.commands / "export.md.backup").read_text(encoding="utf-8"), "my own command\n")
        self.assertEqual((self.commands / "export.md").read_text(encoding="utf-8"), COMMAND_FILES["export.md"])


if __name__ == "__main__":
    unittest.main()
