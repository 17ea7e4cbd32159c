"""Transcript reading: JSONL entries → ordered TranscriptMessage list."""
from __future__ import annotations

import json
from collections.abc import Mapping
from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, NamedTuple

from hookcast._log import log
from hookcast.errors import TranscriptError

MAX_TRANSCRIPT_BYTES = 10 * 1024 * 1024


class ToolUse(NamedTuple):
    name: str
    id: str = ""
    completed: bool = False
    input: Mapping[str, Any] = MappingProxyType({})


class TranscriptMessage(NamedTuple):
    role: str
    timestamp: datetime | None
    tool_uses: tuple[ToolUse, ...] = ()
    text: str = ""


def parse_timestamp(ts: Any) -> datetime | None:
    """Parse an ISO-8601 timestamp ("Z" suffix allowed). Returns None if unusable.

    Timestamps without an offset are taken as UTC, so every result is aware.
    """
    if not isinstance(ts, str) or not ts:
        return None
    try:
        parsed = datetime.fromisoformat(ts.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _read_entries(path: Path) -> list[dict[str, Any]]:
    try:
        size = path.stat().st_size
        if size > MAX_TRANSCRIPT_BYTES:
            raise TranscriptError(f"Transcript too large ({size} bytes)")
        raw = path.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        raise TranscriptError(f"Failed to open transcript: {e}") from e

    entries: list[dict[str, Any]] = []
    skipped = 0
    for line in raw.split("\n"):
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except (ValueError, RecursionError):
            skipped += 1
            continue
        if isinstance(entry, dict):
            entries.append(entry)
        else:
            skipped += 1
    if skipped:
        log(f"Skipped {skipped} invalid transcript line(s) in {path.name}")
    return entries


def _blocks(entry: dict[str, Any]) -> list[Any]:
    msg = entry.get("message")
    if not isinstance(msg, dict):
        return []
    content = msg.get("content")
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    return content if isinstance(content, list) else []


def _role(entry: dict[str, Any]) -> str:
    role = entry.get("type")
    if role not in ("user", "assistant"):
        msg = entry.get("message")
        role = msg.get("role") if isinstance(msg, dict) else None
    return role if role in ("user", "assistant") else ""


def messages_from_entries(entries: list[dict[str, Any]]) -> list[TranscriptMessage]:
    """Turn raw transcript entries into messages.

    A tool use counts as completed once any ``tool_result`` names its id.
    User entries that only carry tool results are not user prompts and are
    dropped after their completions are recorded.
    """
    completed_ids: set[str] = set()
    for entry in entries:
        for block in _blocks(entry):
            if isinstance(block, dict) and block.get("type") == "tool_result":
                tool_use_id = block.get("tool_use_id")
                if isinstance(tool_use_id, str):
                    completed_ids.add(tool_use_id)

    messages: list[TranscriptMessage] = []
    for entry in entries:
        role = _role(entry)
        if not role:
            continue
        texts: list[str] = []
        tools: list[ToolUse] = []
        for block in _blocks(entry):
            if not isinstance(block, dict):
                continue
            if block.get("type") == "text":
                text = block.get("text", "")
                if isinstance(text, str) and text.strip():
                    texts.append(text.strip())
            elif block.get("type") == "tool_use" and role == "assistant":
                tool_id = block.get("id") if isinstance(block.get("id"), str) else ""
                tool_input = block.get("input") if isinstance(block.get("input"), dict) else {}
                tools.append(ToolUse(
                    name=str(block.get("name", "unknown")),
                    id=tool_id,
                    completed=bool(tool_id) and tool_id in completed_ids,
                    input=tool_input,
                ))
        if role == "user" and not texts:
            continue
        messages.append(TranscriptMessage(
            role=role,
            timestamp=parse_timestamp(entry.get("timestamp")),
            tool_uses=tuple(tools),
            text=" ".join(texts),
        ))
    return messages


def parse_transcript(transcript_path: str | Path) -> list[TranscriptMessage]:
    """Parse a JSONL transcript file. Raises TranscriptError if it cannot be read."""
    return messages_from_entries(_read_entries(Path(transcript_path)))


def last_user_index(messages: list[TranscriptMessage]) -> int:
    """Index of the last user message, or -1."""
    for i in range(len(messages) - 1, -1, -1):
        if messages[i].role == "user":
            return i
    return -1


def response_segment(messages: list[TranscriptMessage]) -> list[TranscriptMessage]:
    """Messages strictly after the last user message (all of them if there is none)."""
    return messages[last_user_index(messages) + 1:]


def last_user_timestamp(messages: list[TranscriptMessage]) -> datetime | None:
    idx = last_user_index(messages)
    return messages[idx].timestamp if idx >= 0 else None


def extract_tools(messages: list[TranscriptMessage]) -> list[ToolUse]:
    """Every tool use in order of appearance."""
    return [tool for msg in messages for tool in msg.tool_uses]


def assistant_texts(messages: list[TranscriptMessage], limit: int | None = None) -> list[str]:
    """Non-empty assistant texts in order, optionally only the last ``limit`` assistant messages."""
    assistant = [m for m in messages if m.role == "assistant"]
    if limit is not None:
        assistant = assistant[-limit:]
    return [m.text for m in assistant if m.text]
