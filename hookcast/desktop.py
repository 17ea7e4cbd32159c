"""Desktop plumbing: OS notification popups, sound playback, icon lookup."""
from __future__ import annotations

import os
import shutil
import subprocess
import sys
from pathlib import Path

from hookcast.config import DEFAULT_ICON_PATH
from hookcast.errors import DesktopError

MACOS_SOUND_DIR = Path("/System/Library/Sounds")
FREEDESKTOP_SOUND_DIR = Path("/usr/share/sounds/freedesktop/stereo")
SOUND_NAMES = (
    "Glass", "Submarine", "Frog", "Purr", "Basso", "Blow", "Bottle",
    "Funk", "Hero", "Morse", "Ping", "Pop", "Sosumi", "Tink",
)


def _applescript_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def _notification_command(title: str, body: str, timeout_ms: int, icon: str | None) -> list[str]:
    if sys.platform == "darwin":
        script = f"display notification {_applescript_quote(body)} with title {_applescript_quote(title)}"
        return ["osascript", "-e", script]
    if sys.platform.startswith("linux"):
        if not shutil.which("notify-send"):
            raise DesktopError("notify-send not found (install libnotify)")
        cmd = ["notify-send", "-a", "hookcast", "-t", str(timeout_ms)]
        if icon:
            cmd += ["-i", icon]
        return cmd + [title, body]
    raise DesktopError(f"Desktop notifications are not supported on {sys.platform}")


def show_notification(title: str, body: str, timeout_ms: int = 5000, icon: str | None = None) -> None:
    """Show a desktop popup. Raises DesktopError if the OS call fails or outlives ``timeout_ms``."""
    cmd = _notification_command(title, body, timeout_ms, icon)
    try:
        proc = subprocess.run(cmd, capture_output=True, text=True, timeout=timeout_ms / 1000)
    except (OSError, subprocess.TimeoutExpired) as e:
        raise DesktopError(f"Failed to display notification: {e}") from e
    if proc.returncode != 0:
        detail = proc.stderr.strip() or f"exit status {proc.returncode}"
        raise DesktopError(f"Failed to display notification: {detail}")


def resolve_sound(sound: str) -> str:
    """Map a sound setting to a file path.

    Values containing a path separator or ``~`` are files; anything else is a
    system sound name.
    """
    if "/" in sound or "\\" in sound or "~" in sound:
        path = Path(os.path.expandvars(sound)).expanduser()
        if not path.exists():
            raise DesktopError(f"Sound file not found: {path}")
        return str(path)

    candidates = [MACOS_SOUND_DIR / f"{sound}.aiff"]
    candidates += [FREEDESKTOP_SOUND_DIR / f"{sound.lower()}.oga", FREEDESKTOP_SOUND_DIR / "complete.oga"]
    for candidate in candidates:
        if candidate.exists():
            return str(candidate)
    raise DesktopError(f"System sound not found: {sound}. Available sounds: {', '.join(SOUND_NAMES)}")


def _player() -> list[str]:
    if sys.platform == "darwin":
        return ["afplay"]
    for player in ("paplay", "pw-play", "aplay"):
        if shutil.which(player):
            return [player]
    raise DesktopError("No audio player found (afplay/paplay/pw-play/aplay)")


def play_sound(sound: str) -> None:
    """Start playback in the background and return immediately."""
    path = resolve_sound(sound)
    try:
        subprocess.Popen(
            _player() + [path],
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,
        )
    except OSError as e:
        raise DesktopError(f"Failed to start audio player: {e}") from e


def resolve_icon(icon: str | None) -> str | None:
    """Find an icon file: configured path → HOOKCAST_ICON → ~/.claude/hookcast-icon.png.

    Returns None when none of them exist; callers then show no custom icon.
    """
    candidates = [icon, os.environ.get("HOOKCAST_ICON"), str(DEFAULT_ICON_PATH)]
    for candidate in candidates:
        if not candidate:
            continue
        path = Path(candidate).expanduser()
        if path.is_file():
            return str(path)
    return None
