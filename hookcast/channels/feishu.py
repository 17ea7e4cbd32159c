"""Feishu / Lark custom bot webhook."""
from __future__ import annotations

from typing import Any

from hookcast._types import ChannelConfig
from hookcast.channels.base import NotificationRequest
from hookcast.channels.webhook import WebhookChannel, check_error_code


class FeishuChannel(WebhookChannel):
    channel_type = "feishu"
    display_name = "Feishu/Lark"

    def build_payload(self, request: NotificationRequest, config: ChannelConfig) -> dict[str, Any]:
        return {"msg_type": "text", "content": {"text": self.content(request)}}

    def check_response(self, body: str) -> None:
        check_error_code("Feishu", body, "code", "StatusCode")
