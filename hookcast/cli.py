"""Unified CLI dispatcher for hookcast."""
from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any, NamedTuple


class _Options(NamedTuple):
    channels: list[str] | None = None
    sound: str | None = None
    config_file: Path | None = None
    dry_run: bool = False
    force: bool = False
    hook_types: tuple[str, ...] = ()
    matcher: str | None = None
    settings: Path | None = None


def _load(options: _Options) -> Any:
    from hookcast.config import load_config
    from hookcast.errors import ConfigError

    try:
        return load_config(options.config_file)
    except ConfigError as e:
        print(f"❌ hookcast: {e}", file=sys.stderr)
        sys.exit(1)


def _do_run(options: _Options) -> None:
    """Handle a hook event piped on stdin."""
    from hookcast.__main__ import main
    sys.exit(main(
        channels=options.channels,
        sound=options.sound,
        config_file=options.config_file,
        dry_run=options.dry_run,
    ))


def _do_init(options: _Options) -> None:
    """Write hookcast hook entries into Claude Code settings.json."""
    from hookcast.config import CLAUDE_SETTINGS_PATH
    from hookcast.errors import ConfigError
    from hookcast.install import DEFAULT_HOOK_TYPES, DEFAULT_PRE_TOOL_USE_MATCHER, install_hooks

    settings = options.settings or CLAUDE_SETTINGS_PATH
    hook_types = options.hook_types or list(DEFAULT_HOOK_TYPES)
    matcher = options.matcher or DEFAULT_PRE_TOOL_USE_MATCHER
    print("🔧 Configuring Claude Code hooks")
    print(f"  📄 settings: {settings}")
    try:
        written = install_hooks(
            settings,
            hook_types=hook_types,
            sound=options.sound,
            matcher=matcher,
            force=options.force,
        )
    except ConfigError as e:
        print(f"❌ hookcast: {e}", file=sys.stderr)
        sys.exit(1)

    if not written:
        print("⚪ no hooks configured (all requested hooks already exist, use --force to overwrite)")
        return
    print(f"✅ configured hooks: {', '.join(written)}")
    print(f"  🔊 sound: {options.sound or '(channel default)'}")
    if "PreToolUse" in written:
        print(f"  🎯 PreToolUse matcher: {matcher}")


def _do_channels(options: _Options) -> None:
    """List configured channels and whether they can be used."""
    from hookcast.channels import CHANNEL_TYPES, create_channel

    config = _load(options)
    channels = config.get("channels", {})
    defaults = config.get("default_channels", [])

    print("📡 hookcast channels")
    print("──────────────────────────────────────")
    if not channels:
        print("  ⚪ no channels configured")
    for channel_id, cfg in channels.items():
        channel_type = cfg.get("channel_type") or channel_id
        channel = create_channel(channel_type)
        if channel is None:
            icon, state = "❌", f"unknown type '{channel_type}'"
        else:
            problems = channel.validate(cfg)
            if problems:
                icon, state = "🟡", "; ".join(problems)
            elif cfg.get("enabled"):
                icon, state = "🟢", "enabled"
            else:
                icon, state = "⚪", "disabled"
        marker = " (default)" if channel_id in defaults else ""
        name = cfg.get("name") or channel_id
        print(f"  {icon} {channel_id:12s} {channel_type:9s} {state}  {name}{marker}")
    print()
    print(f"  📋 routing rules: {len(config.get('routing_rules', []))}")
    print(f"  🧩 channel types: {', '.join(sorted(CHANNEL_TYPES))}")
    print("──────────────────────────────────────")


def _do_test(channel_id: str | None, options: _Options) -> None:
    """Send a test notification through one channel."""
    from hookcast.manager import ChannelManager

    if not channel_id:
        print("❌ hookcast: usage: hookcast test <channel-id>", file=sys.stderr)
        sys.exit(1)
    manager = ChannelManager(_load(options), dry_run=options.dry_run)
    result = manager.test_channel(channel_id)
    if result.succeeded:
        print(f"✅ {channel_id}: test notification sent ({result.elapsed:.2f}s)")
    else:
        print(f"❌ {channel_id}: {result.error}")
        sys.exit(1)


def _do_config(options: _Options) -> None:
    """Print effective configuration with secrets masked."""
    from hookcast.config import config_path, masked

    path = options.config_file or config_path()
    config = _load(options)
    print(f"⚙️  hookcast config ({path}{'' if path.exists() else ', defaults'})")
    print(json.dumps(masked(config), indent=2, ensure_ascii=False))


def _do_version() -> None:
    """Print version string."""
    from hookcast import __version__
    print(f"📣 hookcast {__version__}")


def _print_usage() -> None:
    from hookcast import __version__
    print(
        f"📣 hookcast {__version__}\n"
        "\n"
        "usage: hookcast [command] [args] [flags]\n"
        "\n"
        "commands:\n"
        "  ▶️  run       handle a hook event from stdin (default when stdin is piped)\n"
        "  🔧 init      add hookcast hooks to Claude Code settings.json\n"
        "  📡 channels  list configured channels\n"
        "  🧪 test ID   send a test notification through a channel\n"
        "  ⚙️  config    print effective configuration (secrets masked)\n"
        "  🏷️  version   print version\n"
        "\n"
        "flags:\n"
        "  --channels a,b     deliver to these channels, ignoring routing rules\n"
        "  --sound NAME       system sound (without a config file) or init hook sound\n"
        "  --config PATH      hookcast config file (default ~/.claude/hookcast.json)\n"
        "  --dry-run          render and log notifications without sending\n"
        "  --force            init: overwrite existing hook entries\n"
        "  --hook-type TYPE   init: hook type to configure (repeatable)\n"
        "  --matcher PATTERN  init: PreToolUse matcher\n"
        "  --settings PATH    init: Claude Code settings file\n"
    )


# Flags that take a value
_VALUE_FLAGS: frozenset[str] = frozenset({
    "--channels", "--sound", "--config", "--hook-type", "--matcher", "--settings",
})


def _split_list(value: str) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()]


def _parse_args(args: list[str]) -> tuple[list[str], _Options]:
    """Split argv into positional args and options. Raises ValueError on bad flags."""
    positional: list[str] = []
    values: dict[str, Any] = {}
    hook_types: list[str] = []
    # --flag=value → --flag value
    expanded: list[str] = []
    for arg in args:
        if arg.startswith("--") and "=" in arg:
            expanded.extend(arg.split("=", 1))
        else:
            expanded.append(arg)
    args = expanded

    i = 0
    while i < len(args):
        arg = args[i]
        if arg in _VALUE_FLAGS:
            if i + 1 >= len(args):
                raise ValueError(f"{arg} requires a value")
            value = args[i + 1]
            if arg == "--channels":
                values["channels"] = _split_list(value)
            elif arg == "--sound":
                values["sound"] = value
            elif arg == "--config":
                values["config_file"] = Path(value).expanduser()
            elif arg == "--hook-type":
                hook_types.extend(_split_list(value))
            elif arg == "--matcher":
                values["matcher"] = value
            elif arg == "--settings":
                values["settings"] = Path(value).expanduser()
            i += 2
            continue
        if arg == "--dry-run":
            values["dry_run"] = True
        elif arg == "--force":
            values["force"] = True
        elif arg.startswith("-") and arg != "-":
            raise ValueError(f"unknown flag '{arg}'")
        else:
            positional.append(arg)
        i += 1
    return positional, _Options(hook_types=tuple(hook_types), **values)


def cli_main() -> None:
    """Unified CLI entry point.

    Delegates to the hook handler when stdin is piped and no subcommand is
    present. Otherwise dispatches CLI subcommands.
    """
    args = sys.argv[1:]

    if "--version" in args or "-V" in args:
        _do_version()
        return
    if "--help" in args or "-h" in args:
        _print_usage()
        return

    try:
        positional, options = _parse_args(args)
    except ValueError as e:
        print(f"❌ hookcast: {e}", file=sys.stderr)
        _print_usage()
        sys.exit(1)

    if not positional:
        if sys.stdin.isatty():
            _print_usage()
            return
        _do_run(options)
        return

    cmd = positional[0]
    if cmd == "run":
        _do_run(options)
    elif cmd == "init":
        _do_init(options)
    elif cmd == "channels":
        _do_channels(options)
    elif cmd == "test":
        _do_test(positional[1] if len(positional) > 1 else None, options)
    elif cmd == "config":
        _do_config(options)
    elif cmd == "version":
        _do_version()
    else:
        print(f"❌ hookcast: unknown command '{cmd}'", file=sys.stderr)
        _print_usage()
        sys.exit(1)
