"""Human-readable summaries of a transcript's latest response."""
from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from hookcast.transcript import (
    TranscriptMessage,
    ToolUse,
    assistant_texts,
    extract_tools,
    last_user_timestamp,
    response_segment,
)

if TYPE_CHECKING:
    from hookcast.analyzer import SessionStatus

MAX_SUMMARY = 150

# (verb, tool names, singular noun, plural noun), in display order
TOOL_ACTIONS: list[tuple[str, frozenset[str], str, str]] = [
    ("Created", frozenset({"Write"}), "file", "files"),
    ("Edited", frozenset({"Edit", "MultiEdit", "NotebookEdit"}), "file", "files"),
    ("Ran", frozenset({"Bash"}), "command", "commands"),
    ("Read", frozenset({"Read"}), "file", "files"),
]

_CODE_BLOCK = re.compile(r"```[\s\S]*?```")
_IMAGE = re.compile(r"!\[([^\]]*)\]\([^)]+\)")
_LINK = re.compile(r"\[([^\]]+)\]\([^)]+\)")
_BOLD = re.compile(r"(\*\*|__)(.+?)\1")
_ITALIC = re.compile(r"\*([^*\n]+)\*|(?<!\w)_([^_\n]+)_(?!\w)")
_INLINE_CODE = re.compile(r"`([^`\n]+)`")
_HEADER = re.compile(r"^#+\s*")
_BULLET = re.compile(r"^(?:[-*•]|\d+\.)\s+")


def clean_markdown(text: str) -> str:
    """Strip markdown formatting and collapse the text onto one line."""
    text = _CODE_BLOCK.sub("", text)
    text = _IMAGE.sub(r"\1", text)
    text = _LINK.sub(r"\1", text)
    text = _BOLD.sub(r"\2", text)
    text = _ITALIC.sub(lambda m: m.group(1) or m.group(2), text)
    text = _INLINE_CODE.sub(r"\1", text)
    lines: list[str] = []
    for line in text.splitlines():
        line = _BULLET.sub("", _HEADER.sub("", line.strip())).strip()
        if line:
            lines.append(line)
    return " ".join(lines)


def extract_first_sentence(text: str, min_length: int = 20, max_length: int = 200) -> str:
    """First complete sentence, skipping decimals and dotted names.

    A very short first sentence is joined with the next one.
    """
    sentences: list[str] = []
    start = 0
    for i, ch in enumerate(text):
        if ch not in ".!?":
            continue
        if ch == ".":
            if i > 0 and text[i - 1].isdigit():
                continue
            if i + 1 < len(text) and not text[i + 1].isspace():
                continue
        sentence = text[start:i + 1].strip()
        if not sentence:
            continue
        sentences.append(sentence)
        start = i + 1
        total = len(" ".join(sentences))
        if len(sentences) == 1 and total < min_length:
            continue
        if total >= max_length and len(sentences) > 1:
            return " ".join(sentences[:-1])
        return " ".join(sentences)

    if sentences:
        return " ".join(sentences)
    return text[:100] if len(text) > 100 else text


def truncate_text(text: str, max_len: int = MAX_SUMMARY) -> str:
    """Truncate at a sentence boundary, else a word boundary, else hard with '...'."""
    if len(text) <= max_len:
        return text
    search = text[:max_len]
    for ender in (". ", "! ", "? ", ".\n", "!\n", "?\n"):
        pos = search.rfind(ender)
        if pos > max_len // 3:
            return search[:pos + 1].strip()
    truncated = text[:max_len - 3]
    last_space = truncated.rfind(" ")
    if last_space > max_len // 2:
        return truncated[:last_space] + "..."
    return truncated + "..."


def format_duration(seconds: int) -> str:
    """'Took 45s', 'Took 2m 15s', 'Took 1h 5m'."""
    if seconds < 60:
        return f"Took {seconds}s"
    minutes, secs = divmod(seconds, 60)
    if minutes < 60:
        return f"Took {minutes}m {secs}s" if secs else f"Took {minutes}m"
    hours, mins = divmod(minutes, 60)
    return f"Took {hours}h {mins}m" if mins else f"Took {hours}h"


def elapsed_since_user(messages: list[TranscriptMessage], now: datetime | None = None) -> str:
    """Duration from the last user message to now, or '' when unknown."""
    started = last_user_timestamp(messages)
    if started is None:
        return ""
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    seconds = int((now - started).total_seconds())
    if seconds < 0:
        return ""
    return format_duration(seconds)


def count_tools(tools: list[ToolUse]) -> dict[str, int]:
    counts: dict[str, int] = {}
    for tool in tools:
        counts[tool.name] = counts.get(tool.name, 0) + 1
    return counts


def build_actions(tool_counts: dict[str, int], duration: str = "") -> str:
    """'Created 1 file. Edited 2 files. Ran 1 command. Took 2m 15s'."""
    parts: list[str] = []
    for verb, names, singular, plural in TOOL_ACTIONS:
        count = sum(tool_counts.get(name, 0) for name in names)
        if count:
            parts.append(f"{verb} {count} {singular if count == 1 else plural}")
    if duration:
        parts.append(duration)
    return ". ".join(parts)


def default_message(status: SessionStatus) -> str:
    """Fallback text for a status when the transcript has nothing better."""
    from hookcast.analyzer import SessionStatus

    return {
        SessionStatus.TASK_COMPLETE: "Task completed successfully",
        SessionStatus.RUNNING_TOOL: "Claude is still working",
        SessionStatus.WAITING_FOR_INPUT: "Claude is waiting for your input",
        SessionStatus.REVIEW_COMPLETE: "Code review completed",
        SessionStatus.QUESTION: "Claude needs your input",
        SessionStatus.PLAN_READY: "Plan is ready",
        SessionStatus.SESSION_LIMIT: "Session limit reached",
        SessionStatus.API_ERROR: "Please run /login",
        SessionStatus.UNKNOWN: "Claude Code notification",
    }[status]


def _question_summary(segment: list[TranscriptMessage], messages: list[TranscriptMessage]) -> str:
    """AskUserQuestion text if recent, else the shortest question, else the first sentence."""
    last_assistant = next((m for m in reversed(messages) if m.role == "assistant"), None)
    for msg in reversed(messages):
        if msg.role != "assistant":
            continue
        for tool in reversed(msg.tool_uses):
            if tool.name != "AskUserQuestion":
                continue
            questions = tool.input.get("questions")
            if isinstance(questions, list) and questions and isinstance(questions[0], dict):
                question = questions[0].get("question")
                if isinstance(question, str) and question.strip():
                    recent = (
                        msg.timestamp is None
                        or last_assistant is None
                        or last_assistant.timestamp is None
                        or 0 <= (last_assistant.timestamp - msg.timestamp).total_seconds() <= 60
                    )
                    if recent:
                        return truncate_text(clean_markdown(question))
            break

    texts = assistant_texts(segment or messages, limit=8)
    questions = sorted((t for t in texts if "?" in t), key=len)
    if questions and len(questions[0]) > 10:
        return truncate_text(clean_markdown(questions[0]))
    if texts:
        first = extract_first_sentence(clean_markdown(texts[-1]))
        if len(first) > 10:
            return truncate_text(first)
    return "Claude needs your input to continue"


def _plan_summary(messages: list[TranscriptMessage]) -> str:
    for msg in reversed(messages):
        for tool in reversed(msg.tool_uses):
            if tool.name == "ExitPlanMode" and isinstance(tool.input.get("plan"), str):
                for line in tool.input["plan"].splitlines():
                    cleaned = clean_markdown(line)
                    if cleaned.strip():
                        return truncate_text(cleaned)
    return "Plan is ready for review"


def _review_summary(segment: list[TranscriptMessage]) -> str:
    texts = assistant_texts(segment, limit=5)
    for keyword in ("review", "analyzed", "analysis"):
        for text in texts:
            if keyword in text.lower():
                return truncate_text(clean_markdown(text))
    reads = sum(1 for tool in extract_tools(segment) if tool.name == "Read")
    if reads:
        return f"Reviewed {reads} {'file' if reads == 1 else 'files'}"
    return "Code review completed"


def _task_summary(segment: list[TranscriptMessage], messages: list[TranscriptMessage],
                  now: datetime | None, running: ToolUse | None = None) -> str:
    tools = extract_tools(segment)
    actions = build_actions(count_tools(tools), elapsed_since_user(messages, now))

    texts = assistant_texts(segment, limit=5) or assistant_texts(messages, limit=5)
    message_text = ""
    if running is not None:
        message_text = f"Still running {running.name}"
    elif texts:
        cleaned = clean_markdown(texts[-1])
        message_text = cleaned if len(cleaned) < MAX_SUMMARY else extract_first_sentence(cleaned)

    if message_text and actions:
        room = MAX_SUMMARY - len(actions) - 2
        if room >= 20:
            return f"{truncate_text(message_text, room).rstrip('.')}. {actions}"
        return truncate_text(actions)
    if message_text:
        return truncate_text(message_text)
    if actions:
        return truncate_text(actions)
    if tools:
        return f"Completed task with {len(tools)} operations"
    return "Task completed successfully"


def generate_summary(messages: list[TranscriptMessage], status: SessionStatus, now: datetime | None = None) -> str:
    """Status-specific summary of what happened since the user last spoke."""
    from hookcast.analyzer import SessionStatus

    if not messages:
        return default_message(status)
    segment = response_segment(messages)

    match status:
        case SessionStatus.QUESTION:
            return _question_summary(segment, messages)
        case SessionStatus.PLAN_READY:
            return _plan_summary(messages)
        case SessionStatus.REVIEW_COMPLETE:
            return _review_summary(segment)
        case SessionStatus.SESSION_LIMIT:
            return "Session limit reached. Please start a new conversation."
        case SessionStatus.API_ERROR:
            return "API authentication failed. Please run /login"
        case SessionStatus.WAITING_FOR_INPUT:
            texts = assistant_texts(segment, limit=1)
            if texts:
                return truncate_text(extract_first_sentence(clean_markdown(texts[-1])))
            return default_message(status)
        case SessionStatus.RUNNING_TOOL:
            tools = extract_tools(segment)
            return _task_summary(segment, messages, now, running=tools[-1] if tools else None)
        case _:
            return _task_summary(segment, messages, now)
