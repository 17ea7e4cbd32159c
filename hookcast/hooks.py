"""Hook input: decode the stdin document and derive message/template variables."""
from __future__ import annotations

import json
from datetime import datetime
from pathlib import Path
from typing import Any, NamedTuple

from hookcast.errors import InputError

TRANSCRIPT_EVENTS = {"Stop", "SubagentStop"}


class HookEvent(NamedTuple):
    kind: str
    session_id: str = ""
    transcript_path: str | None = None
    cwd: str | None = None
    tool_name: str | None = None
    message: str | None = None
    title: str | None = None
    notification_type: str | None = None
    reason: str | None = None
    subagent_id: str | None = None
    context: str | None = None


def _opt_str(data: dict[str, Any], key: str) -> str | None:
    val = data.get(key)
    if val is None:
        return None
    return val if isinstance(val, str) else str(val)


def event_from_dict(data: dict[str, Any]) -> HookEvent:
    """Build a HookEvent from a decoded hook document.

    Accepts the Claude Code ``hook_event_name`` field, the older ``hook_type``
    field, and the legacy bare notification format (``message`` without a kind).
    """
    kind = data.get("hook_event_name") or data.get("hook_type")
    if not kind:
        if "message" not in data:
            raise InputError("Hook input has no hook_event_name and no message")
        kind = "Notification"
    if not isinstance(kind, str):
        raise InputError(f"Invalid hook kind: {kind!r}")

    context = _opt_str(data, "context") or _opt_str(data, "description")
    return HookEvent(
        kind=kind,
        session_id=_opt_str(data, "session_id") or "",
        transcript_path=_opt_str(data, "transcript_path") or None,
        cwd=_opt_str(data, "cwd") or None,
        tool_name=_opt_str(data, "tool_name"),
        message=_opt_str(data, "message"),
        title=_opt_str(data, "title"),
        notification_type=_opt_str(data, "notification_type"),
        reason=_opt_str(data, "reason"),
        subagent_id=_opt_str(data, "subagent_id") or _opt_str(data, "agent_id"),
        context=context,
    )


def parse_hook_event(raw: str) -> HookEvent:
    """Decode stdin JSON into a HookEvent. Raises InputError on anything unusable."""
    if not raw.strip():
        raise InputError("Empty input received")
    try:
        data = json.loads(raw)
    except json.JSONDecodeError as e:
        raise InputError(f"Invalid JSON on stdin: {e}") from e
    if not isinstance(data, dict):
        raise InputError("Hook input must be a JSON object")
    return event_from_dict(data)


def needs_transcript(event: HookEvent) -> bool:
    """Completion-type events with a transcript get an analyzed summary."""
    return event.kind in TRANSCRIPT_EVENTS and bool(event.transcript_path)


def event_project(event: HookEvent) -> str:
    """Project name from cwd."""
    return Path(event.cwd).name if event.cwd else ""


def event_message(event: HookEvent, summary: str | None = None) -> str:
    """Derived body text for an event: used for routing and ``{{message}}``."""
    match event.kind:
        case "Notification":
            msg = event.message or "Claude needs your attention"
            if event.notification_type:
                return f"[{event.notification_type}] {msg}"
            return msg
        case "PreToolUse":
            return event.context or event.tool_name or "Tool use"
        case "Stop":
            if summary:
                return summary
            return event.reason or event.message or "Claude stopped generating"
        case "SubagentStop":
            if summary:
                return summary
            if event.subagent_id and event.reason:
                return f"Subagent {event.subagent_id} stopped: {event.reason}"
            if event.reason:
                return f"Subagent stopped: {event.reason}"
            if event.subagent_id:
                return f"Subagent {event.subagent_id} stopped"
            return "Subagent stopped"
        case "PermissionRequest":
            if event.context:
                return event.context
            if event.tool_name:
                return f"Claude requests permission to use {event.tool_name}"
            return "Claude requests permission to execute a tool"
        case _:
            return event.message or event.kind


def event_tool_names(event: HookEvent) -> list[str]:
    """Tool names carried by the event itself."""
    return [event.tool_name] if event.tool_name else []


def template_vars(event: HookEvent, summary: str | None = None, status: str | None = None) -> dict[str, str]:
    """Placeholder values for rendering. Absent values are left out so they render verbatim."""
    values: dict[str, str | None] = {
        "hook_type": event.kind,
        "session_id": event.session_id,
        "transcript_path": event.transcript_path,
        "cwd": event.cwd,
        "project": event_project(event) or None,
        "message": event_message(event, summary),
        "title": event.title,
        "tool_name": event.tool_name,
        "context": event.context,
        "reason": event.reason,
        "subagent_id": event.subagent_id,
        "notification_type": event.notification_type,
        "status": status,
        "summary": summary,
        "timestamp": datetime.now().strftime("%H:%M"),
    }
    return {k: v for k, v in values.items() if v is not None}
