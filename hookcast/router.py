"""Routing rules: decide which channel ids an event goes to."""
from __future__ import annotations

import re
from collections.abc import Iterable, Sequence
from functools import lru_cache

from hookcast._log import log
from hookcast._types import RoutingRule
from hookcast.hooks import HookEvent, event_message, event_tool_names


@lru_cache(maxsize=128)
def _compile(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern)
    except re.error as e:
        log(f"Invalid routing regex {pattern!r}: {e}")
        return None


def _search(pattern: str, text: str) -> bool:
    regex = _compile(pattern)
    return regex is not None and regex.search(text) is not None


def rule_matches(rule: RoutingRule, event: HookEvent, message: str, tool_names: Sequence[str]) -> bool:
    """True when every condition present on the rule holds for the event."""
    match = rule.get("match") or {}
    hook_types = match.get("hook_types") or []
    if hook_types and event.kind not in hook_types:
        return False
    message_pattern = match.get("message_pattern")
    if message_pattern is not None and not _search(message_pattern, message):
        return False
    tool_pattern = match.get("tool_pattern")
    if tool_pattern is not None and not any(_search(tool_pattern, name) for name in tool_names):
        return False
    return True


def resolve(
    event: HookEvent,
    rules: Sequence[RoutingRule],
    defaults: Sequence[str],
    *,
    message: str | None = None,
    tool_names: Sequence[str] | None = None,
) -> list[str]:
    """Ordered, de-duplicated channel ids for an event.

    Rules are evaluated in configured order; each matching rule appends its
    channels, first occurrence wins. No match (or no rules) yields ``defaults``.
    Ids are not checked against the channel map here.
    """
    if not rules:
        return list(defaults)

    text = message if message is not None else event_message(event)
    tools = list(tool_names) if tool_names is not None else event_tool_names(event)

    matched: list[str] = []
    for rule in rules:
        if not rule.get("enabled", True):
            continue
        if not rule_matches(rule, event, text, tools):
            continue
        for channel_id in rule.get("channels", []):
            if channel_id not in matched:
                matched.append(channel_id)

    return matched if matched else list(defaults)


def override_channels(channel_ids: Iterable[str]) -> list[str]:
    """De-duplicate an explicit channel list, keeping first occurrences."""
    seen: list[str] = []
    for channel_id in channel_ids:
        channel_id = channel_id.strip()
        if channel_id and channel_id not in seen:
            seen.append(channel_id)
    return seen
