"""Hook handler for python3 -m hookcast."""
from __future__ import annotations

import sys
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from hookcast._log import debug, log, setup_file_logging
from hookcast._types import AppConfig
from hookcast.config import config_path, load_config
from hookcast.errors import ConfigError, InputError
from hookcast.hooks import parse_hook_event
from hookcast.manager import ChannelManager


def _apply_sound(config: AppConfig, sound: str) -> None:
    """--sound without a config file: set (or with "" disable) the system channel sound."""
    system = config.get("channels", {}).get("system")
    if system is None:
        return
    if sound:
        system["sound"] = sound
    else:
        system.pop("sound", None)


def main(
    *,
    channels: Sequence[str] | None = None,
    sound: str | None = None,
    config_file: Path | None = None,
    dry_run: bool = False,
    stdin: TextIO | None = None,
) -> int:
    """Hook handler: read one event from stdin, route it, deliver it.

    Returns the process exit status: 1 for unusable input or configuration,
    0 otherwise, whatever the individual channels did.
    """
    try:
        event = parse_hook_event((stdin or sys.stdin).read())
    except InputError as e:
        log(f"Invalid hook input: {e}")
        return 1

    path = config_file or config_path()
    try:
        config = load_config(path)
    except ConfigError as e:
        log(f"Configuration error: {e}")
        return 1

    if sound is not None and not path.exists():
        _apply_sound(config, sound)

    log_file = config.get("log_file")
    if log_file:
        try:
            setup_file_logging(Path(log_file).expanduser())
        except OSError as e:
            log(f"File logging disabled: {e}")

    manager = ChannelManager(config, dry_run=dry_run)
    debug(manager.debug, "main", f"Received {event.kind} event (session {event.session_id or '-'})")
    report = manager.notify(event, channels)

    if not report.succeeded:
        log(f"All {len(report.results)} channel(s) failed for {event.kind}")
    else:
        delivered = len(report.results) - len(report.failed)
        debug(manager.debug, "main", f"{delivered}/{len(report.results)} channel(s) delivered in {report.elapsed:.2f}s")
    return 0


if __name__ == "__main__":
    from hookcast.cli import cli_main
    cli_main()
