"""Tests for routing + concurrent dispatch in ChannelManager."""
from __future__ import annotations

import threading
import time
from collections.abc import Callable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from conftest import DesktopRecorder, WebhookRecorder, assistant_tool, tool_result, user_entry
from hookcast.config import parse_config
from hookcast.errors import ChannelError
from hookcast.hooks import HookEvent
from hookcast.manager import ChannelManager, DispatchReport, DispatchResult


def _config(**overrides: Any) -> dict[str, Any]:
    doc: dict[str, Any] = {
        "default_channels": ["system"],
        "channels": {
            "system": {"channel_type": "system", "enabled": True},
            "team": {"channel_type": "dingtalk", "enabled": True, "webhook_url": "https://hooks.example.com/team"},
            "lark": {"channel_type": "feishu", "enabled": True, "webhook_url": "https://hooks.example.com/lark"},
            "off": {"channel_type": "wechat", "enabled": False, "webhook_url": "https://hooks.example.com/off"},
        },
    }
    doc.update(overrides)
    return parse_config(doc)


class TestDispatchReport:
    """Test aggregate success rules."""

    def test_empty_route_is_success(self) -> None:
        assert DispatchReport([]).succeeded

    def test_any_success_is_success(self) -> None:
        report = DispatchReport([DispatchResult("a", False, "x"), DispatchResult("b", True)])
        assert report.succeeded
        assert [r.channel_id for r in report.failed] == ["a"]

    def test_all_failed(self) -> None:
        assert not DispatchReport([DispatchResult("a", False, "x")]).succeeded


class TestDispatch:
    """Test ChannelManager.dispatch filtering and isolation."""

    def test_unknown_and_disabled_dropped(self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder) -> None:
        manager = ChannelManager(_config())
        report = manager.dispatch(["ghost", "off", "team"], {"message": "hi"}, "Stop")
        assert [r.channel_id for r in report.results] == ["team"]
        assert mock_webhook.urls() == ["https://hooks.example.com/team"]

    def test_unknown_channel_type_dropped(self, mock_desktop: DesktopRecorder) -> None:
        config = _config()
        config["channels"]["odd"] = {"channel_type": "pager", "enabled": True}
        report = ChannelManager(config).dispatch(["odd", "system"], {"message": "hi"}, "Stop")
        assert [r.channel_id for r in report.results] == ["system"]

    def test_failure_isolated(self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder) -> None:
        mock_webhook.respond("team", ChannelError("Webhook request failed: connection refused"))
        report = ChannelManager(_config()).dispatch(["system", "team", "lark"], {"message": "hi"}, "Stop")
        by_id = {r.channel_id: r for r in report.results}
        assert report.succeeded
        assert by_id["system"].succeeded
        assert by_id["lark"].succeeded
        assert not by_id["team"].succeeded
        assert "connection refused" in (by_id["team"].error or "")

    def test_unexpected_exception_is_a_failed_result(
        self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder,
    ) -> None:
        mock_webhook.respond("lark", ValueError("bad payload"))
        report = ChannelManager(_config()).dispatch(["system", "lark"], {"message": "hi"}, "Stop")
        assert [r.succeeded for r in report.results] == [True, False]

    def test_all_failed_reports_failure(self, mock_webhook: WebhookRecorder) -> None:
        mock_webhook.respond("hooks.example.com", ChannelError("HTTP 500"))
        report = ChannelManager(_config()).dispatch(["team", "lark"], {"message": "hi"}, "Stop")
        assert not report.succeeded
        assert len(report.failed) == 2

    def test_per_channel_timeout(self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder) -> None:
        config = _config()
        config["channels"]["team"]["timeout_ms"] = 50
        mock_webhook.delay("team", 0.5)
        report = ChannelManager(config).dispatch(["team", "system"], {"message": "hi"}, "Stop")
        by_id = {r.channel_id: r for r in report.results}
        assert not by_id["team"].succeeded
        assert "Timed out" in (by_id["team"].error or "")
        assert by_id["system"].succeeded
        assert report.elapsed < 0.5

    def test_timed_out_delivery_does_not_hold_process(self, mock_webhook: WebhookRecorder) -> None:
        config = _config()
        config["channels"]["lark"]["timeout_ms"] = 100
        mock_webhook.delay("lark", 3)
        start = time.monotonic()
        report = ChannelManager(config).dispatch(["lark"], {"message": "hi"}, "Stop")
        assert time.monotonic() - start < 1.0
        assert not report.succeeded
        lingering = [t for t in threading.enumerate() if t.name.startswith("hookcast-channel-")]
        assert lingering
        assert all(t.daemon for t in lingering)

    def test_rendering_uses_channel_then_global_templates(
        self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder,
    ) -> None:
        config = _config(global_templates={"Stop": {"title": "Done: {{project}}", "body": "{{message}}"}})
        config["channels"]["team"]["message_template"] = {"title": "", "body": "[{{hook_type}}] {{message}}"}
        variables = {"project": "api", "message": "All good", "hook_type": "Stop"}
        ChannelManager(config).dispatch(["system", "team"], variables, "Stop")
        assert mock_desktop.notifications[0][:2] == ("Done: api", "All good")
        assert mock_webhook.calls[0][1]["text"]["content"] == "Done: api\n[Stop] All good"

    def test_dry_run_sends_nothing(self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder) -> None:
        report = ChannelManager(_config(), dry_run=True).dispatch(["system", "team"], {"message": "hi"}, "Stop")
        assert [r.succeeded for r in report.results] == [True, True]
        assert mock_webhook.calls == []
        assert mock_desktop.notifications == []

    def test_debug_defaults_to_config(self) -> None:
        assert ChannelManager(_config(debug=True)).debug is True
        assert ChannelManager(_config(debug=True), debug=False).debug is False


class TestNotify:
    """Test ChannelManager.notify end to end."""

    def test_default_route_single_system_result(self, mock_desktop: DesktopRecorder) -> None:
        config = parse_config({"default_channels": ["system"], "channels": {"system": {"enabled": True}}})
        report = ChannelManager(config).notify(HookEvent(kind="Notification", message="Test"))
        assert report.results == [DispatchResult("system", True, None, report.results[0].elapsed)]
        assert mock_desktop.notifications[0][1] == "Test"

    def test_rule_routes_error_stop_to_team(
        self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder,
    ) -> None:
        rules = [{"name": "errors", "match": {"hook_types": ["Stop"], "message_pattern": ".*error.*"},
                  "channels": ["team"]}]
        manager = ChannelManager(_config(routing_rules=rules))
        report = manager.notify(HookEvent(kind="Stop", message="build error occurred"))
        assert [r.channel_id for r in report.results] == ["team"]
        assert mock_desktop.notifications == []

    def test_disabled_channel_never_dispatched(
        self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder,
    ) -> None:
        rules = [
            {"name": "a", "match": {}, "channels": ["off", "system"]},
            {"name": "b", "match": {"hook_types": ["Stop"]}, "channels": ["off"]},
        ]
        report = ChannelManager(_config(routing_rules=rules)).notify(HookEvent(kind="Stop"))
        assert [r.channel_id for r in report.results] == ["system"]
        assert "https://hooks.example.com/off" not in mock_webhook.urls()

    def test_team_unreachable_system_ok(self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder) -> None:
        mock_webhook.respond("team", ChannelError("Webhook request failed: [Errno 111] Connection refused"))
        manager = ChannelManager(_config(default_channels=["system", "team"]))
        report = manager.notify(HookEvent(kind="Notification", message="Test"))
        by_id = {r.channel_id: r for r in report.results}
        assert report.succeeded is True
        assert by_id["team"].succeeded is False
        assert by_id["system"].succeeded is True

    def test_explicit_channels_bypass_rules(
        self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder,
    ) -> None:
        rules = [{"name": "all", "match": {}, "channels": ["team"]}]
        manager = ChannelManager(_config(routing_rules=rules))
        report = manager.notify(HookEvent(kind="Stop"), channels=["lark", "lark"])
        assert [r.channel_id for r in report.results] == ["lark"]

    def test_all_rules_disabled_empty_defaults_is_noop(self, mock_desktop: DesktopRecorder) -> None:
        rules = [{"name": "a", "enabled": False, "match": {}, "channels": ["system"]}]
        report = ChannelManager(_config(routing_rules=rules, default_channels=[])).notify(HookEvent(kind="Stop"))
        assert report.results == []
        assert report.succeeded

    def test_stop_uses_transcript_summary(
        self, mock_desktop: DesktopRecorder, write_transcript: Callable[..., Path],
    ) -> None:
        path = write_transcript([
            user_entry("fix the build", "2026-01-01T10:00:00Z"),
            assistant_tool("Edit", "e1", "2026-01-01T10:00:10Z"),
            tool_result("e1", "2026-01-01T10:00:11Z"),
            assistant_tool("Bash", "b1", "2026-01-01T10:00:20Z"),
        ])
        config = _config(global_templates={"Stop": {"title": "{{status}}", "body": "{{summary}}"}})
        ChannelManager(config).notify(HookEvent(kind="Stop", transcript_path=str(path)))
        title, body = mock_desktop.notifications[0][:2]
        assert title == "TaskComplete"
        assert "Edited 1 file" in body
        assert "Ran 1 command" in body

    def test_tool_rule_matches_transcript_tools(
        self, mock_webhook: WebhookRecorder, mock_desktop: DesktopRecorder, write_transcript: Callable[..., Path],
    ) -> None:
        path = write_transcript([
            user_entry("deploy", "2026-01-01T10:00:00Z"),
            assistant_tool("Bash", "b1", "2026-01-01T10:00:20Z"),
        ])
        rules = [{"name": "shell", "match": {"tool_pattern": "^Bash$"}, "channels": ["team"]}]
        report = ChannelManager(_config(routing_rules=rules)).notify(
            HookEvent(kind="Stop", transcript_path=str(path)),
        )
        assert [r.channel_id for r in report.results] == ["team"]

    def test_unreadable_transcript_still_notifies(self, mock_desktop: DesktopRecorder, tmp_path: Path) -> None:
        event = HookEvent(kind="Stop", transcript_path=str(tmp_path / "gone.jsonl"))
        report = ChannelManager(_config()).notify(event)
        assert report.succeeded
        assert mock_desktop.notifications[0][1] == "Claude stopped generating"


class TestTestChannel:
    """Test ChannelManager.test_channel."""

    def test_sends_test_message(self, mock_webhook: WebhookRecorder) -> None:
        result = ChannelManager(_config()).test_channel("lark")
        assert result.succeeded
        assert "test notification" in mock_webhook.calls[0][1]["content"]["text"]

    def test_disabled_channel_can_be_tested(self, mock_webhook: WebhookRecorder) -> None:
        assert ChannelManager(_config()).test_channel("off").succeeded

    def test_unknown_channel(self) -> None:
        result = ChannelManager(_config()).test_channel("ghost")
        assert not result.succeeded
        assert "not available" in (result.error or "")

    def test_invalid_channel_config(self, mock_webhook: WebhookRecorder) -> None:
        config = _config()
        del config["channels"]["team"]["webhook_url"]
        result = ChannelManager(config).test_channel("team")
        assert not result.succeeded
        assert "webhook_url" in (result.error or "")
        assert mock_webhook.calls == []

    @pytest.mark.parametrize("failure", [ChannelError("HTTP 404: not found")])
    def test_delivery_failure(self, mock_webhook: WebhookRecorder, failure: Exception) -> None:
        mock_webhook.respond("team", failure)
        result = ChannelManager(_config()).test_channel("team")
        assert not result.succeeded
        assert result.error == "HTTP 404: not found"
