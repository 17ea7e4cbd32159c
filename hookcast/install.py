"""Register hookcast as a Claude Code hook command in settings.json."""
from __future__ import annotations

import json
import shlex
from collections.abc import Sequence
from pathlib import Path
from typing import Any

from hookcast.config import CLAUDE_SETTINGS_PATH
from hookcast.errors import ConfigError

DEFAULT_HOOK_TYPES = ("Notification", "PreToolUse", "Stop", "SubagentStop")
INSTALLABLE_HOOK_TYPES = frozenset({*DEFAULT_HOOK_TYPES, "PermissionRequest"})
DEFAULT_PRE_TOOL_USE_MATCHER = "ExitPlanMode|AskUserQuestion"


def hook_command(sound: str | None) -> str:
    if sound:
        return f"hookcast --sound {shlex.quote(sound)}"
    return "hookcast"


def _read_settings(path: Path) -> dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"Failed to read {path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{path}: settings must be a JSON object")
    return data


def install_hooks(
    settings_path: Path | None = None,
    *,
    hook_types: Sequence[str] = DEFAULT_HOOK_TYPES,
    sound: str | None = None,
    matcher: str = DEFAULT_PRE_TOOL_USE_MATCHER,
    force: bool = False,
) -> list[str]:
    """Write hook entries for each hook type. Returns the hook types written.

    Existing entries are left alone unless ``force`` is set.
    """
    path = settings_path or CLAUDE_SETTINGS_PATH
    unknown = [h for h in hook_types if h not in INSTALLABLE_HOOK_TYPES]
    if unknown:
        raise ConfigError(f"Unknown hook type(s): {', '.join(unknown)}")

    settings = _read_settings(path)
    hooks = settings.setdefault("hooks", {})
    if not isinstance(hooks, dict):
        raise ConfigError(f"{path}: 'hooks' must be a JSON object")

    command = hook_command(sound)
    written: list[str] = []
    for hook_type in hook_types:
        if hook_type in hooks:
            if not force:
                print(f"  skip  {hook_type}  (already configured, use --force to overwrite)")
                continue
            print(f"  overwrite  {hook_type}")
        hooks[hook_type] = [{
            "matcher": matcher if hook_type == "PreToolUse" else "",
            "hooks": [{"type": "command", "command": command}],
        }]
        written.append(hook_type)

    if not written:
        return written

    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_suffix(".tmp")
    try:
        tmp.write_text(json.dumps(settings, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")
        tmp.replace(path)
    except OSError as e:
        raise ConfigError(f"Failed to write {path}: {e}") from e
    return written
