"""Type definitions for hookcast configuration structures."""
from __future__ import annotations

from typing import TypedDict


class MessageTemplate(TypedDict, total=False):
    title: str
    body: str
    mentioned_list: list[str]
    mentioned_mobile_list: list[str]


class ChannelConfig(TypedDict, total=False):
    channel_type: str
    name: str
    enabled: bool
    webhook_url: str
    secret: str
    sound: str
    icon: str
    timeout_ms: int
    message_template: MessageTemplate


class RuleMatch(TypedDict, total=False):
    hook_types: list[str]
    message_pattern: str
    tool_pattern: str


class RoutingRule(TypedDict, total=False):
    name: str
    enabled: bool
    match: RuleMatch
    channels: list[str]


class AppConfig(TypedDict, total=False):
    version: str
    debug: bool
    default_channels: list[str]
    channels: dict[str, ChannelConfig]
    routing_rules: list[RoutingRule]
    global_templates: dict[str, MessageTemplate]
    active_tool_status: str
    log_file: str | None
