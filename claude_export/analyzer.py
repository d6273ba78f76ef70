"""Optional model-written analysis of a session, via the Claude API."""

import json
import logging
import os
import re
import sys
from typing import Optional

from . import config
from .models import AnalysisResult, RecordType, SessionView
from .turns import assistant_text, is_user_message, truncate, user_text

logger = logging.getLogger("claude_export.analyzer")

MAX_TRANSCRIPT_CHARS = 50000
MAX_MESSAGE_CHARS = 2000
MAX_TOOLS_PER_MESSAGE = 5

ANALYSIS_PROMPT = '''You are reading a coding session so that another agent can pick up the work.

{files_summary}

Transcript (user and assistant messages, tool calls abbreviated):
{transcript}

Respond in this exact JSON format:
{{
  "intent": "What the session was trying to achieve (1-2 sentences)",
  "decisions": ["A choice that was made and why, one per item"],
  "open_issues": ["Something still broken, failing or unanswered at the end"],
  "next_steps": ["A concrete follow-up the next agent should do"]
}}

RULES:
- Only record what the transcript shows. No speculation, no code review.
- "open_issues": only problems that were NOT resolved by the end.
- "next_steps": only work that remains; skip anything already done.
- Aim for 2-5 decisions, 0-3 open issues, 1-4 next steps.'''


def analyze_session(view: SessionView, model: Optional[str] = None) -> Optional[AnalysisResult]:
    """Use Claude API to summarize intent, decisions and remaining work.

    Args:
        view: Assembled session view.
        model: Claude model to use for analysis.

    Returns:
        AnalysisResult, or None on error.

    Requires:
        ANTHROPIC_API_KEY environment variable.
    """
    try:
        import anthropic
    except ImportError:
        print("Error: anthropic package not installed. Run: pip install anthropic", file=sys.stderr)
        return None

    api_key = os.environ.get("ANTHROPIC_API_KEY")
    if not api_key:
        print("Error: ANTHROPIC_API_KEY environment variable not set", file=sys.stderr)
        return None

    client = anthropic.Anthropic(api_key=api_key)

    prompt = ANALYSIS_PROMPT.format(
        files_summary=_build_files_summary(view),
        transcript=build_transcript(view),
    )

    try:
        print("Analyzing session with Claude...", file=sys.stderr)
        response = client.messages.create(
            model=model or config.MODEL,
            max_tokens=2000,
            messages=[{"role": "user", "content": prompt}]
        )
    except anthropic.APIError as e:
        print(f"Error during analysis: {e}", file=sys.stderr)
        return None

    text = "".join(getattr(block, "text", "") for block in response.content)
    analysis = parse_analysis_response(text)
    if analysis is None:
        logger.warning("Analysis response was not valid JSON")
    return analysis


def build_transcript(view: SessionView, max_length: int = MAX_TRANSCRIPT_CHARS) -> str:
    """Build a readable transcript of the conversation for analysis."""
    lines = []
    total_len = 0

    for record in view.records:
        if is_user_message(record):
            text = truncate(user_text(record), MAX_MESSAGE_CHARS)
            prefix = "USER: "
        elif record.type == RecordType.ASSISTANT:
            text = truncate(assistant_text(record), MAX_MESSAGE_CHARS)
            prefix = "ASSISTANT: "
            tools = record.tool_uses
            if tools:
                tool_summary = ", ".join(
                    f"{tc.name}({next(iter(tc.input), '')})"
                    for tc in tools[:MAX_TOOLS_PER_MESSAGE]
                )
                if len(tools) > MAX_TOOLS_PER_MESSAGE:
                    tool_summary += f", ... +{len(tools) - MAX_TOOLS_PER_MESSAGE} more"
                text = f"{text}\n[Tools: {tool_summary}]" if text else f"[Tools: {tool_summary}]"
        else:
            continue

        if not text:
            continue

        entry = f"{prefix}{text}\n"
        if total_len + len(entry) > max_length:
            lines.append("... [transcript truncated] ...")
            break
        lines.append(entry)
        total_len += len(entry)

    return "\n".join(lines)


def _build_files_summary(view: SessionView) -> str:
    """Build a summary of files changed in the session."""
    if not view.stats.changes:
        return ""

    files_list = []
    for change in view.stats.changes:
        if change.action == "created":
            files_list.append(f"- {change.file} (created)")
        else:
            files_list.append(f"- {change.file} ({len(change.edits)} edits)")

    return "Files changed:\n" + "\n".join(files_list)


def parse_analysis_response(response_text: str) -> Optional[AnalysisResult]:
    """Parse the JSON response from Claude, tolerating fences and prose."""
    json_match = re.search(r'\{[\s\S]*\}', response_text or "")
    if not json_match:
        return None

    try:
        result = json.loads(json_match.group())
    except json.JSONDecodeError:
        return None
    if not isinstance(result, dict):
        return None

    return AnalysisResult(
        intent=str(result.get("intent") or ""),
        decisions=_string_list(result.get("decisions")),
        open_issues=_string_list(result.get("open_issues")),
        next_steps=_string_list(result.get("next_steps")),
    )


def _string_list(value) -> list:
    if not isinstance(value, list):
        return []
    return [str(item) for item in value if item]
