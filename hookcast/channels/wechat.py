"""WeChat Work group robot webhook."""
from __future__ import annotations

from typing import Any

from hookcast._types import ChannelConfig
from hookcast.channels.base import NotificationRequest
from hookcast.channels.webhook import WebhookChannel, check_error_code


class WeChatChannel(WebhookChannel):
    channel_type = "wechat"
    display_name = "WeChat Work"

    def build_payload(self, request: NotificationRequest, config: ChannelConfig) -> dict[str, Any]:
        text: dict[str, Any] = {"content": self.content(request)}
        template = config.get("message_template") or {}
        if template.get("mentioned_list"):
            text["mentioned_list"] = list(template["mentioned_list"])
        if template.get("mentioned_mobile_list"):
            text["mentioned_mobile_list"] = list(template["mentioned_mobile_list"])
        return {"msgtype": "text", "text": text}

    def check_response(self, body: str) -> None:
        check_error_code("WeChat Work", body, "errcode")
