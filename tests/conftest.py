"""Shared fixtures for hookcast tests."""
from __future__ import annotations

import json
import time
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from hookcast.errors import DesktopError


@pytest.fixture(autouse=True)
def sandbox(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Path:
    """Point every hookcast path and env override at tmp_path."""
    import hookcast._log as _log
    import hookcast.config as _config
    import hookcast.desktop as _desktop

    config_file = tmp_path / "hookcast.json"
    monkeypatch.setenv("HOOKCAST_CONFIG", str(config_file))
    for var in ("HOOKCAST_DEBUG", "HOOKCAST_ACTIVE_TOOL_STATUS", "HOOKCAST_ICON"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setattr(_config, "CLAUDE_SETTINGS_PATH", tmp_path / "settings.json")
    monkeypatch.setattr(_desktop, "DEFAULT_ICON_PATH", tmp_path / "hookcast-icon.png")
    monkeypatch.setattr(_log, "_file_logger", None)
    return config_file


@pytest.fixture()
def write_config(sandbox: Path) -> Callable[[dict[str, Any]], Path]:
    """Write a config document to the sandboxed config path."""
    def _write(doc: dict[str, Any]) -> Path:
        sandbox.write_text(json.dumps(doc))
        return sandbox
    return _write


@pytest.fixture()
def write_transcript(tmp_path: Path) -> Callable[..., Path]:
    """Write JSONL transcript entries and return the file path."""
    def _write(entries: list[dict[str, Any]], name: str = "transcript.jsonl") -> Path:
        path = tmp_path / name
        with path.open("w") as f:
            for entry in entries:
                f.write(json.dumps(entry) + "\n")
        return path
    return _write


class WebhookRecorder:
    """Stand-in for post_json: records calls, answers per URL fragment."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, dict[str, Any], float]] = []
        self._responses: dict[str, Any] = {}
        self._delays: dict[str, float] = {}

    def respond(self, url_fragment: str, response: str | Exception) -> None:
        """Answer requests whose URL contains ``url_fragment`` with a body, or raise."""
        self._responses[url_fragment] = response

    def delay(self, url_fragment: str, seconds: float) -> None:
        self._delays[url_fragment] = seconds

    def __call__(self, url: str, payload: dict[str, Any], timeout: float) -> tuple[int, str]:
        self.calls.append((url, payload, timeout))
        for fragment, seconds in self._delays.items():
            if fragment in url:
                time.sleep(seconds)
        for fragment, response in self._responses.items():
            if fragment in url:
                if isinstance(response, Exception):
                    raise response
                return 200, response
        return 200, '{"errcode": 0, "errmsg": "ok"}'

    def urls(self) -> list[str]:
        return [call[0] for call in self.calls]


@pytest.fixture()
def mock_webhook(monkeypatch: pytest.MonkeyPatch) -> WebhookRecorder:
    """Replace the webhook transport with a call recorder."""
    import hookcast.channels.webhook as _webhook

    recorder = WebhookRecorder()
    monkeypatch.setattr(_webhook, "post_json", recorder)
    return recorder


class DesktopRecorder:
    """Stand-in for desktop popups and sound playback."""

    def __init__(self) -> None:
        self.notifications: list[tuple[str, str, int, str | None]] = []
        self.sounds: list[str] = []
        self.fail_notification = False
        self.fail_sound = False

    def show_notification(self, title: str, body: str, timeout_ms: int = 5000, icon: str | None = None) -> None:
        if self.fail_notification:
            raise DesktopError("notification daemon unavailable")
        self.notifications.append((title, body, timeout_ms, icon))

    def play_sound(self, sound: str) -> None:
        if self.fail_sound:
            raise DesktopError(f"System sound not found: {sound}")
        self.sounds.append(sound)


@pytest.fixture()
def mock_desktop(monkeypatch: pytest.MonkeyPatch) -> DesktopRecorder:
    """Replace OS notification and sound calls with a recorder."""
    import hookcast.desktop as _desktop

    recorder = DesktopRecorder()
    monkeypatch.setattr(_desktop, "show_notification", recorder.show_notification)
    monkeypatch.setattr(_desktop, "play_sound", recorder.play_sound)
    return recorder


# ── Transcript entry builders ────────────────────────────────────────────────


def user_entry(text: str, ts: str) -> dict[str, Any]:
    return {"type": "user", "timestamp": ts, "message": {"role": "user", "content": text}}


def assistant_text(text: str, ts: str) -> dict[str, Any]:
    return {
        "type": "assistant",
        "timestamp": ts,
        "message": {"role": "assistant", "content": [{"type": "text", "text": text}]},
    }


def assistant_tool(name: str, tool_id: str, ts: str, tool_input: dict[str, Any] | None = None) -> dict[str, Any]:
    return {
        "type": "assistant",
        "timestamp": ts,
        "message": {"role": "assistant", "content": [
            {"type": "tool_use", "id": tool_id, "name": name, "input": tool_input or {}},
        ]},
    }


def tool_result(tool_id: str, ts: str) -> dict[str, Any]:
    return {
        "type": "user",
        "timestamp": ts,
        "message": {"role": "user", "content": [
            {"type": "tool_result", "tool_use_id": tool_id, "content": "ok"},
        ]},
    }
