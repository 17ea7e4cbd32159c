"""Transcript analysis: session status and activity summary for completion events."""
from __future__ import annotations

import enum
from datetime import datetime
from pathlib import Path
from typing import NamedTuple

from hookcast._log import debug, log
from hookcast.config import ACTIVE_TOOL_RUNNING, ACTIVE_TOOL_TASK_COMPLETE
from hookcast.errors import TranscriptError
from hookcast.summary import default_message, generate_summary
from hookcast.transcript import (
    TranscriptMessage,
    ToolUse,
    assistant_texts,
    extract_tools,
    parse_transcript,
    response_segment,
)


class SessionStatus(enum.Enum):
    TASK_COMPLETE = "TaskComplete"
    RUNNING_TOOL = "RunningTool"
    WAITING_FOR_INPUT = "WaitingForInput"
    REVIEW_COMPLETE = "ReviewComplete"
    QUESTION = "Question"
    PLAN_READY = "PlanReady"
    SESSION_LIMIT = "SessionLimitReached"
    API_ERROR = "APIError"
    UNKNOWN = "Unknown"


ACTIVE_TOOLS = frozenset({"Write", "Edit", "MultiEdit", "Bash", "NotebookEdit", "SlashCommand", "KillShell"})
READ_LIKE_TOOLS = frozenset({"Read", "Grep", "Glob"})

# Only the tail of the response is considered when classifying
ANALYSIS_WINDOW = 15
REVIEW_TEXT_THRESHOLD = 200


class Analysis(NamedTuple):
    status: SessionStatus
    summary: str
    tools: list[str]
    segment_size: int


def _mentions(texts: list[str], *needles: str) -> bool:
    return any(needle in text.lower() for text in texts for needle in needles)


def _session_limit_reached(messages: list[TranscriptMessage]) -> bool:
    texts = assistant_texts(messages, limit=3)
    return _mentions(texts, "session limit reached", "session limit has been reached")


def _api_auth_error(messages: list[TranscriptMessage]) -> bool:
    texts = assistant_texts(messages, limit=3)
    return _mentions(texts, "api error: 401", "api error 401") and _mentions(texts, "/login")


def classify(
    messages: list[TranscriptMessage],
    active_tool_status: str = ACTIVE_TOOL_TASK_COMPLETE,
) -> SessionStatus:
    """Decide the session status from parsed transcript messages.

    When the last tool use has no recorded result, ``active_tool_status``
    chooses between reporting the task as complete or as still running.
    """
    if not messages:
        return SessionStatus.UNKNOWN
    if _session_limit_reached(messages):
        return SessionStatus.SESSION_LIMIT
    if _api_auth_error(messages):
        return SessionStatus.API_ERROR

    segment = response_segment(messages)
    if not segment:
        return SessionStatus.UNKNOWN
    recent = segment[-ANALYSIS_WINDOW:]
    tools = extract_tools(recent)
    if not tools:
        return SessionStatus.WAITING_FOR_INPUT

    last: ToolUse = tools[-1]
    if last.name == "AskUserQuestion":
        return SessionStatus.QUESTION
    if last.name == "ExitPlanMode":
        return SessionStatus.PLAN_READY

    names = [t.name for t in tools]
    # Work continued after the plan was accepted
    if "ExitPlanMode" in names and names.index("ExitPlanMode") < len(names) - 1:
        return SessionStatus.TASK_COMPLETE
    if any(n in READ_LIKE_TOOLS for n in names) and not any(n in ACTIVE_TOOLS for n in names):
        recent_text = " ".join(assistant_texts(recent, limit=5))
        if len(recent_text) > REVIEW_TEXT_THRESHOLD:
            return SessionStatus.REVIEW_COMPLETE

    if not last.completed and active_tool_status == ACTIVE_TOOL_RUNNING:
        return SessionStatus.RUNNING_TOOL
    return SessionStatus.TASK_COMPLETE


def analyze(
    transcript_path: str | Path,
    *,
    active_tool_status: str = ACTIVE_TOOL_TASK_COMPLETE,
    now: datetime | None = None,
    fallback: str | None = None,
    debug_enabled: bool = False,
) -> Analysis:
    """Analyze a transcript. Never raises: unusable input yields an Unknown status."""
    generic = fallback or default_message(SessionStatus.UNKNOWN)
    try:
        messages = parse_transcript(transcript_path)
    except TranscriptError as e:
        log(f"Transcript analysis skipped: {e}")
        return Analysis(SessionStatus.UNKNOWN, generic, [], 0)
    except Exception as e:
        log(f"Transcript analysis failed: {type(e).__name__}: {e}")
        return Analysis(SessionStatus.UNKNOWN, generic, [], 0)

    if not messages:
        debug(debug_enabled, "analyzer", f"Empty transcript: {transcript_path}")
        return Analysis(SessionStatus.UNKNOWN, generic, [], 0)

    try:
        segment = response_segment(messages)
        status = classify(messages, active_tool_status)
        tools = [t.name for t in extract_tools(segment)]
        summary = generate_summary(messages, status, now)
    except Exception as e:
        log(f"Transcript analysis failed: {type(e).__name__}: {e}")
        return Analysis(SessionStatus.UNKNOWN, generic, [], 0)
    if status is SessionStatus.UNKNOWN:
        summary = fallback or summary
    debug(debug_enabled, "analyzer", f"{status.value}: {len(segment)} message(s), tools={tools}")
    return Analysis(status, summary, tools, len(segment))
