import json
import subprocess
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from claude_export.gitinfo import detect_project_name, get_git_context
from claude_export.models import GitContext


def _completed(stdout):
    return subprocess.CompletedProcess(args=["git"], returncode=0, stdout=stdout, stderr="")


class GitContextTests(unittest.TestCase):
    def test_git_missing_gives_defaults(self):
        with patch("claude_export.gitinfo.subprocess.run", side_effect=FileNotFoundError("git")):
            self.assertEqual(get_git_context("/work/demo"), GitContext())

    def test_not_a_repository_gives_defaults(self):
        error = subprocess.CalledProcessError(128, ["git"], stderr="fatal: not a git repository")
        with patch("claude_export.gitinfo.subprocess.run", side_effect=error):
            self.assertEqual(get_git_context("/work/demo").branch, "unknown")

    def test_timeout_gives_defaults(self):
        with patch("claude_export.gitinfo.subprocess.run", side_effect=subprocess.TimeoutExpired("git", 5)):
            self.assertEqual(get_git_context("/work/demo"), GitContext())

    def test_collects_branch_commits_and_changes(self):
        outputs = [
            _completed("feature/x\n"),
            _completed("abc123 Add parser\ndef456 Initial commit\n"),
            _completed("/work/demo/src/a.py\nREADME.md\n"),
        ]
        with patch("claude_export.gitinfo.subprocess.run", side_effect=outputs) as run:
            context = get_git_context("/work/demo", "demo")

        self.assertEqual(context, GitContext(
            branch="feature/x",
            recent_commits=("abc123 Add parser", "def456 Initial commit"),
            uncommitted_files=("src/a.py", "README.md"),
        ))
        self.assertEqual(run.call_args_list[0].args[0], ["git", "rev-parse", "--abbrev-ref", "HEAD"])
        self.assertEqual(run.call_args_list[0].kwargs["cwd"], "/work/demo")


class DetectProjectNameTests(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name) / "my-folder"
        self.root.mkdir()

    def tearDown(self):
        self._tmp.cleanup()

    def test_pyproject_name(self):
        (self.root / "pyproject.toml").write_text('[project]\nname = "widgets"\n', encoding="utf-8")
        (self.root / "package.json").write_text(json.dumps({"name": "other"}), encoding="utf-8")
        self.assertEqual(detect_project_name(str(self.root)), "widgets")

    def test_scoped_package_json_name(self):
        (self.root / "package.json").write_text(json.dumps({"name": "@acme/web-app"}), encoding="utf-8")
        self.assertEqual(detect_project_name(str(self.root)), "web-app")

    def test_invalid_manifests_are_skipped(self):
        (self.root / "pyproject.toml").write_text("[project\n", encoding="utf-8")
        (self.root / "package.json").write_text("{", encoding="utf-8")
        with patch("claude_export.gitinfo._git", return_value=None):
            self.assertEqual(detect_project_name(str(self.root)), "my-folder")

    def test_git_remote_name(self):
        with patch("claude_export.gitinfo._git", return_value="git@github.com:acme/tooling.git"):
            self.assertEqual(detect_project_name(str(self.root)), "tooling")

    def test_folder_name_fallback(self):
        with patch("claude_export.gitinfo._git", return_value=None):
            self.assertEqual(detect_project_name(str(self.root)), "my-folder")


if __name__ == "__main__":
    unittest.main()
