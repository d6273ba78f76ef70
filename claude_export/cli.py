"""Command-line interface for claude-export."""

import argparse
import logging
import os
import platform
import subprocess
import sys
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from . import config
from .analyzer import analyze_session
from .gitinfo import detect_project_name, get_git_context
from .handoff import build_handoff, dumps_handoff
from .installer import CREATED, UNCHANGED, UPDATED, install_commands
from .locator import (
    NoSessionDataError,
    NoSessionsError,
    SessionNotFoundError,
    find_active_session,
    find_project_dir,
    list_sessions,
    resolve_session,
)
from .parser import read_records
from .pipeline import build_view
from .renderer import RenderOptions, render_transcript

logger = logging.getLogger("claude_export")

# Rough chars-per-token ratio for JSON, used only for the size report
CHARS_PER_TOKEN = 3.3


def main(argv: Optional[list] = None) -> int:
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        prog="claude-export",
        description="Export Claude Code sessions as Markdown transcripts or JSON handoffs",
        epilog="""
Examples:
  claude-export chat                 Markdown transcript of the active session
  claude-export chat --no-results    Smaller transcript without tool output
  claude-export continue             Compact JSON handoff for another agent
  claude-export continue 17c072d8    Use a specific session
  claude-export list                 Show available sessions
  claude-export install              Add /export slash commands to this project
  claude-export help                 Show detailed help
""",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Debug logging on stderr"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # chat command
    chat_parser = subparsers.add_parser(
        "chat",
        help="Export a detailed Markdown transcript"
    )
    _add_export_arguments(chat_parser)
    chat_parser.add_argument(
        "--no-thinking",
        dest="include_thinking",
        action="store_false",
        default=config.INCLUDE_THINKING,
        help="Leave out thinking blocks"
    )
    chat_parser.add_argument(
        "--no-results",
        dest="include_results",
        action="store_false",
        help="Leave out tool results (much smaller output)"
    )
    chat_parser.add_argument(
        "--max-result-lines",
        type=int,
        default=config.MAX_RESULT_LINES,
        metavar="N",
        help=f"Lines kept per tool result (default: {config.MAX_RESULT_LINES})"
    )

    # continue command
    continue_parser = subparsers.add_parser(
        "continue",
        help="Export a compact JSON handoff"
    )
    _add_export_arguments(continue_parser)

    # list command
    list_parser = subparsers.add_parser(
        "list",
        help="List available sessions"
    )
    list_parser.add_argument(
        "-p", "--project",
        metavar="PATH",
        help="Project path (defaults to current directory)"
    )
    list_parser.add_argument(
        "-n", "--count",
        type=int,
        default=15,
        help="Number of sessions to show"
    )

    # install command
    install_parser = subparsers.add_parser(
        "install",
        help="Install /export and /export-continue slash commands"
    )
    install_parser.add_argument(
        "-p", "--project",
        metavar="PATH",
        help="Project path (defaults to current directory)"
    )

    # help command
    subparsers.add_parser(
        "help",
        help="Show detailed help"
    )

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    # Handle subcommands
    if args.command in ("chat", "continue"):
        return cmd_export(args)
    elif args.command == "list":
        return cmd_list(args)
    elif args.command == "install":
        return cmd_install(args)
    elif args.command == "help":
        return cmd_help()
    else:
        parser.print_help()
        return 0


def _add_export_arguments(sub: argparse.ArgumentParser) -> None:
    sub.add_argument(
        "session",
        nargs="?",
        metavar="SESSION",
        help="Session ID, ID prefix or path to a .jsonl file (default: active session)"
    )
    sub.add_argument(
        "-p", "--project",
        metavar="PATH",
        help="Project path (defaults to current directory)"
    )
    sub.add_argument(
        "-o", "--output",
        metavar="DIR",
        help=f"Output directory (default: {config.OUTPUT_DIR})"
    )
    sub.add_argument(
        "--stdout",
        action="store_true",
        help="Print to stdout instead of writing a file"
    )
    sub.add_argument(
        "--copy",
        action="store_true",
        help="Copy output to clipboard"
    )
    sub.add_argument(
        "--analyze",
        action="store_true",
        help="Add a Claude-written analysis (requires ANTHROPIC_API_KEY)"
    )
    sub.add_argument(
        "--model",
        default=config.MODEL,
        help="Claude model for --analyze"
    )


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.LOG_LEVEL, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def locate_session(session: Optional[str], project_root: str) -> Path:
    """Find the log to export: an explicit path, an id, or the active session."""
    if session and ("/" in session or os.sep in session) and Path(session).expanduser().is_file():
        return Path(session).expanduser()

    project_dir = find_project_dir(project_root)
    if session:
        return resolve_session(session, project_dir)
    return find_active_session(project_dir)


def cmd_export(args) -> int:
    """Export a session as a transcript (chat) or handoff (continue)."""
    project_root = os.path.abspath(args.project or os.getcwd())

    try:
        session_path = locate_session(args.session, project_root)
    except NoSessionDataError as e:
        _print_no_session_data(e)
        return 1
    except (NoSessionsError, SessionNotFoundError) as e:
        print(f"Error: {e}", file=sys.stderr)
        print("Use 'claude-export list' to see available sessions", file=sys.stderr)
        return 1

    logger.debug("Session log: %s", session_path)
    project_name = detect_project_name(project_root)
    session_id = session_path.stem

    print(f"Project: {project_name}", file=sys.stderr)
    print(f"Parsing session: {session_id}", file=sys.stderr)
    print(f"JSONL size: {round(session_path.stat().st_size / 1024)} KB", file=sys.stderr)

    records = read_records(session_path)
    git = get_git_context(project_root, project_name)
    view = build_view(records, session_id, project_name, project_root, git)

    if args.analyze:
        view.analysis = analyze_session(view, model=args.model)

    now = datetime.now(timezone.utc)
    if args.command == "chat":
        options = RenderOptions(
            include_thinking=args.include_thinking,
            include_results=args.include_results,
            max_result_lines=args.max_result_lines,
        )
        output = render_transcript(view, options, exported_at=now.isoformat())
        filename = f"claude-chat_{now.strftime('%Y-%m-%dT%H-%M-%S')}_{session_id[:8]}.md"
        size_note = f"{len(output.splitlines())} lines"
    else:
        output = dumps_handoff(build_handoff(view))
        filename = f"claude-handoff_{now.strftime('%Y-%m-%dT%H-%M-%S')}_{session_id[:8]}.json"
        size_note = f"~{round(len(output) / CHARS_PER_TOKEN):,} tokens"

    # Handle output
    if args.copy:
        copy_to_clipboard(output)
        print("Copied to clipboard", file=sys.stderr)

    if args.stdout:
        print(output)
        return 0

    output_dir = Path(args.output).expanduser().resolve() if args.output else config.OUTPUT_DIR
    try:
        out_path = write_output(output_dir / filename, output)
    except OSError as e:
        print(f"Error: could not write {output_dir / filename}: {e}", file=sys.stderr)
        return 1

    print(f"Exported to: {out_path}", file=sys.stderr)
    print(f"Output size: {round(len(output.encode('utf-8')) / 1024)} KB ({size_note})", file=sys.stderr)
    return 0


def write_output(path: Path, text: str) -> Path:
    """Write text next to its destination first, then move it into place."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=".claude-export-", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise
    return path


def _print_no_session_data(error: NoSessionDataError) -> None:
    if error.projects_dir is not None and not error.projects_dir.is_dir():
        print(f"Claude Code projects directory not found: {error.projects_dir}", file=sys.stderr)
        print("Make sure Claude Code has been used in this project at least once.", file=sys.stderr)
        return
    print(f"Error: {error}", file=sys.stderr)
    print(f"Encoded path tried: {error.encoded}", file=sys.stderr)
    if error.available:
        print("Available projects:", file=sys.stderr)
        for name in error.available:
            print(f"  {name}", file=sys.stderr)


def cmd_list(args) -> int:
    """List available sessions."""
    project_root = os.path.abspath(getattr(args, "project", None) or os.getcwd())
    try:
        project_dir = find_project_dir(project_root)
    except NoSessionDataError as e:
        _print_no_session_data(e)
        return 1

    sessions = list_sessions(project_dir, limit=args.count)
    if not sessions:
        print("No sessions found", file=sys.stderr)
        return 1

    print(f"\n  Project: {detect_project_name(project_root)}")
    print(f"  Sessions dir: {project_dir}\n")
    for s in sessions:
        mtime = datetime.fromtimestamp(s["modified"], tz=timezone.utc)
        print(f"  {s['session_id']}")
        print(f"    {mtime.strftime('%Y-%m-%d %H:%M:%S')} UTC | {round(s['size_kb'])} KB | {s['preview'] or '(no preview)'}")
        print()

    return 0


def cmd_install(args) -> int:
    """Install the slash commands into a project."""
    project_root = os.path.abspath(args.project or os.getcwd())
    print(f"Installing into: {project_root}", file=sys.stderr)

    try:
        results = install_commands(project_root)
    except OSError as e:
        print(f"Error: could not install commands: {e}", file=sys.stderr)
        return 1

    installed = 0
    for path, status in results:
        rel = path.relative_to(project_root)
        if status == UNCHANGED:
            print(f"  [=] {rel} (already up to date)", file=sys.stderr)
            continue
        installed += 1
        if status == UPDATED:
            print(f"  [~] {rel} (updated, backup at {rel}.backup)", file=sys.stderr)
        elif status == CREATED:
            print(f"  [+] {rel}", file=sys.stderr)

    print(f"Done: {installed} installed, {len(results) - installed} already up to date", file=sys.stderr)
    if installed:
        print("Use /export for a Markdown transcript, /export-continue for a JSON handoff", file=sys.stderr)
    return 0


def cmd_help() -> int:
    """Show detailed help."""
    help_text = """
CLAUDE-EXPORT - Hand a Claude Code session to a reviewer or another agent

COMMANDS
  claude-export chat [SESSION] [options]       Markdown transcript with tool inputs/outputs
  claude-export continue [SESSION] [options]   Compact JSON handoff for continuation
  claude-export list [options]                 List available sessions
  claude-export install [-p PATH]              Add /export and /export-continue commands
  claude-export help                           Show this help

SESSION
  Omitted              The active session: the log whose last entry is newest
  17c072d8             Session ID or unique ID prefix (from 'claude-export list')
  path/to/file.jsonl   Any session log on disk

EXPORT OPTIONS
  -p, --project PATH   Project directory (default: current)
  -o, --output DIR     Output directory (default: ~/Downloads)
  --stdout             Print instead of writing a file
  --copy               Copy output to clipboard
  --analyze            Add intent, decisions, open issues and next steps
  --model MODEL        Claude model for --analyze

CHAT OPTIONS
  --no-thinking        Leave out thinking blocks
  --no-results         Leave out tool results
  --max-result-lines N Lines kept per tool result (default: 150)

LIST OPTIONS
  -p, --project PATH   Project directory (default: current)
  -n, --count N        Number of sessions to show (default: 15)

ENVIRONMENT
  CLAUDE_EXPORT_PROJECTS_DIR      Session storage (default: ~/.claude/projects)
  CLAUDE_EXPORT_OUTPUT_DIR        Default output directory
  CLAUDE_EXPORT_MAX_RESULT_LINES  Default for --max-result-lines
  CLAUDE_EXPORT_LOG_LEVEL         Logging level (default: WARNING)
  ANTHROPIC_API_KEY               Required for --analyze
"""
    print(help_text)
    return 0


def copy_to_clipboard(text: str) -> None:
    """Copy text to system clipboard."""
    try:
        if platform.system() == "Darwin":
            subprocess.run(["pbcopy"], input=text.encode(), check=True)
        elif platform.system() == "Linux":
            # Try xclip first, fall back to xsel
            try:
                subprocess.run(["xclip", "-selection", "clipboard"], input=text.encode(), check=True)
            except FileNotFoundError:
                subprocess.run(["xsel", "--clipboard", "--input"], input=text.encode(), check=True)
        else:  # Windows
            subprocess.run(["clip"], input=text.encode(), check=True, shell=True)
    except (subprocess.CalledProcessError, FileNotFoundError) as e:
        print(f"Warning: Could not copy to clipboard: {e}", file=sys.stderr)


if __name__ == "__main__":
    sys.exit(main())
