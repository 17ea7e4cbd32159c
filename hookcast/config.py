"""Configuration: paths, config file loading/validation, defaults, constants."""
from __future__ import annotations

import copy
import json
import os
import re
from pathlib import Path
from typing import Any

from hookcast._types import AppConfig, ChannelConfig, MessageTemplate, RoutingRule
from hookcast.errors import ConfigError

# ── Paths ────────────────────────────────────────────────────────────────────

CLAUDE_DIR = Path.home() / ".claude"
DEFAULT_CONFIG_PATH = CLAUDE_DIR / "hookcast.json"
CLAUDE_SETTINGS_PATH = CLAUDE_DIR / "settings.json"
DEFAULT_ICON_PATH = CLAUDE_DIR / "hookcast-icon.png"


def config_path() -> Path:
    """Config file location: HOOKCAST_CONFIG env var → ~/.claude/hookcast.json."""
    env = os.environ.get("HOOKCAST_CONFIG")
    if env:
        return Path(env).expanduser()
    return DEFAULT_CONFIG_PATH

# ── Constants ────────────────────────────────────────────────────────────────

DEFAULT_TIMEOUT_MS = 2000

ACTIVE_TOOL_TASK_COMPLETE = "task_complete"
ACTIVE_TOOL_RUNNING = "running_tool"
ACTIVE_TOOL_STATUSES = {ACTIVE_TOOL_TASK_COMPLETE, ACTIVE_TOOL_RUNNING}

DEFAULT_TITLE = "Claude Code"
DEFAULT_BODY = "{{message}}"

HOOK_KINDS = ("Notification", "PreToolUse", "Stop", "SubagentStop", "PermissionRequest")

# ── Env overrides ────────────────────────────────────────────────────────────


def _cfg_bool(env_key: str, config: dict[str, Any], config_key: str, default: bool) -> bool:
    """Read a boolean: env var ("1"/"0") → config file (true/false) → default."""
    env = os.environ.get(env_key)
    if env is not None:
        return env == "1"
    val = config.get(config_key)
    if isinstance(val, bool):
        return val
    return default


def _cfg_str(env_key: str, config: dict[str, Any], config_key: str, default: str) -> str:
    """Read a string: env var → config file → default."""
    env = os.environ.get(env_key)
    if env is not None:
        return env
    val = config.get(config_key)
    if isinstance(val, str):
        return val
    return default

# ── Defaults ─────────────────────────────────────────────────────────────────


def default_config() -> AppConfig:
    """Configuration used when no config file exists: a single system channel."""
    return {
        "version": "1.0",
        "debug": False,
        "default_channels": ["system"],
        "channels": {
            "system": {
                "name": "System notification",
                "channel_type": "system",
                "enabled": True,
                "sound": "Hero",
                "timeout_ms": 5000,
            },
        },
        "routing_rules": [],
        "global_templates": {
            "default": {"title": DEFAULT_TITLE, "body": DEFAULT_BODY},
            "PreToolUse": {"title": "Claude Code - PreToolUse", "body": "{{message}}"},
            "PermissionRequest": {"title": "Claude Code - Permission Request", "body": "{{message}}"},
            "Stop": {"title": DEFAULT_TITLE, "body": "{{message}}"},
        },
        "active_tool_status": ACTIVE_TOOL_TASK_COMPLETE,
        "log_file": None,
    }

# ── Loading ──────────────────────────────────────────────────────────────────


def _str_list(value: Any, where: str) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ConfigError(f"{where}: expected a list of strings")
    return list(value)


def _check_regex(pattern: Any, where: str) -> str:
    if not isinstance(pattern, str):
        raise ConfigError(f"{where}: expected a string")
    try:
        re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"{where}: invalid regex {pattern!r}: {e}") from e
    return pattern


def _normalize_template(raw: Any, where: str) -> MessageTemplate:
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: expected an object")
    template: MessageTemplate = {}
    for key in ("title", "body"):
        if raw.get(key) is not None:
            if not isinstance(raw[key], str):
                raise ConfigError(f"{where}.{key}: expected a string")
            template[key] = raw[key]  # type: ignore[literal-required]
    for key in ("mentioned_list", "mentioned_mobile_list"):
        if raw.get(key) is not None:
            template[key] = _str_list(raw[key], f"{where}.{key}")  # type: ignore[literal-required]
    return template


def _normalize_channel(channel_id: str, raw: Any) -> ChannelConfig:
    where = f"channels.{channel_id}"
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: expected an object")
    channel: ChannelConfig = {
        "channel_type": raw.get("channel_type") or channel_id,
        "enabled": raw.get("enabled", False),
    }
    if not isinstance(channel["enabled"], bool):
        raise ConfigError(f"{where}.enabled: expected true/false")
    for key in ("name", "webhook_url", "secret", "sound", "icon"):
        val = raw.get(key)
        if val is None:
            continue
        if not isinstance(val, str):
            raise ConfigError(f"{where}.{key}: expected a string")
        channel[key] = val  # type: ignore[literal-required]
    timeout = raw.get("timeout_ms")
    if timeout is not None:
        if isinstance(timeout, bool) or not isinstance(timeout, int) or timeout <= 0:
            raise ConfigError(f"{where}.timeout_ms: expected a positive integer")
        channel["timeout_ms"] = timeout
    if raw.get("message_template") is not None:
        channel["message_template"] = _normalize_template(raw["message_template"], f"{where}.message_template")
    return channel


def _normalize_rule(index: int, raw: Any) -> RoutingRule:
    where = f"routing_rules[{index}]"
    if not isinstance(raw, dict):
        raise ConfigError(f"{where}: expected an object")
    name = raw.get("name", f"rule {index}")
    if not isinstance(name, str):
        raise ConfigError(f"{where}.name: expected a string")
    enabled = raw.get("enabled", True)
    if not isinstance(enabled, bool):
        raise ConfigError(f"{where}.enabled: expected true/false")
    match_raw = raw.get("match") or {}
    if not isinstance(match_raw, dict):
        raise ConfigError(f"{where}.match: expected an object")
    match: dict[str, Any] = {"hook_types": _str_list(match_raw.get("hook_types", []), f"{where}.match.hook_types")}
    for key in ("message_pattern", "tool_pattern"):
        if match_raw.get(key) is not None:
            match[key] = _check_regex(match_raw[key], f"{where}.match.{key}")
    return {
        "name": name,
        "enabled": enabled,
        "match": match,  # type: ignore[typeddict-item]
        "channels": _str_list(raw.get("channels", []), f"{where}.channels"),
    }


def parse_config(raw: Any) -> AppConfig:
    """Validate a decoded config document and fill in defaults."""
    if not isinstance(raw, dict):
        raise ConfigError("config: expected a JSON object")

    channels_raw = raw.get("channels", {})
    if not isinstance(channels_raw, dict):
        raise ConfigError("channels: expected an object")
    rules_raw = raw.get("routing_rules", [])
    if not isinstance(rules_raw, list):
        raise ConfigError("routing_rules: expected a list")
    templates_raw = raw.get("global_templates", {})
    if not isinstance(templates_raw, dict):
        raise ConfigError("global_templates: expected an object")

    version = raw.get("version", "1.0")
    log_file = raw.get("log_file")
    if log_file is not None and not isinstance(log_file, str):
        raise ConfigError("log_file: expected a string")

    active = _cfg_str("HOOKCAST_ACTIVE_TOOL_STATUS", raw, "active_tool_status", ACTIVE_TOOL_TASK_COMPLETE)
    if active not in ACTIVE_TOOL_STATUSES:
        raise ConfigError(f"active_tool_status: expected one of {sorted(ACTIVE_TOOL_STATUSES)}")

    return {
        "version": str(version),
        "debug": _cfg_bool("HOOKCAST_DEBUG", raw, "debug", False),
        "default_channels": _str_list(raw.get("default_channels", ["system"]), "default_channels"),
        "channels": {cid: _normalize_channel(cid, cfg) for cid, cfg in channels_raw.items()},
        "routing_rules": [_normalize_rule(i, rule) for i, rule in enumerate(rules_raw)],
        "global_templates": {
            name: _normalize_template(tpl, f"global_templates.{name}") for name, tpl in templates_raw.items()
        },
        "active_tool_status": active,
        "log_file": log_file,
    }


def load_config(path: Path | None = None) -> AppConfig:
    """Load and validate the config file. A missing file yields default_config()."""
    path = path or config_path()
    if not path.exists():
        return parse_config(default_config())
    try:
        raw = json.loads(path.read_text())
    except OSError as e:
        raise ConfigError(f"Failed to read config file {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Failed to parse config JSON {path}: {e}") from e
    return parse_config(raw)


def save_config(config: AppConfig, path: Path | None = None) -> None:
    """Write the config file atomically."""
    path = path or config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    try:
        tmp.write_text(json.dumps(config, indent=2, ensure_ascii=False) + "\n")
        tmp.replace(path)
    except OSError as e:
        raise ConfigError(f"Failed to write config file {path}: {e}") from e


def masked(config: AppConfig) -> AppConfig:
    """Copy of the config with webhook secrets and tokens masked for display."""
    shown = copy.deepcopy(config)
    for channel in shown.get("channels", {}).values():
        if channel.get("secret"):
            channel["secret"] = channel["secret"][:4] + "***"
        url = channel.get("webhook_url")
        if url and len(url) > 24:
            channel["webhook_url"] = url[:24] + "***"
    return shown
