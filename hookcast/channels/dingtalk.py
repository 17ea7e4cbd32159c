"""DingTalk robot webhook, with optional HMAC signing."""
from __future__ import annotations

import base64
import hashlib
import hmac
import time
import urllib.parse
from typing import Any

from hookcast._types import ChannelConfig
from hookcast.channels.base import NotificationRequest
from hookcast.channels.webhook import WebhookChannel, check_error_code


def sign(secret: str, timestamp: int) -> str:
    """base64(HMAC-SHA256(key=secret, msg=f"{timestamp}\\n{secret}"))."""
    string_to_sign = f"{timestamp}\n{secret}"
    digest = hmac.new(secret.encode("utf-8"), string_to_sign.encode("utf-8"), hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def signed_url(webhook_url: str, secret: str, timestamp: int | None = None) -> str:
    """Append ``timestamp`` and URL-encoded ``sign`` query parameters."""
    if timestamp is None:
        timestamp = int(time.time() * 1000)
    query = urllib.parse.urlencode({"timestamp": timestamp, "sign": sign(secret, timestamp)})
    sep = "&" if "?" in webhook_url else "?"
    return f"{webhook_url}{sep}{query}"


class DingTalkChannel(WebhookChannel):
    channel_type = "dingtalk"
    display_name = "DingTalk"

    def build_payload(self, request: NotificationRequest, config: ChannelConfig) -> dict[str, Any]:
        return {"msgtype": "text", "text": {"content": self.content(request)}}

    def build_url(self, config: ChannelConfig) -> str:
        url = config.get("webhook_url", "")
        secret = config.get("secret")
        if secret:
            return signed_url(url, secret)
        return url

    def check_response(self, body: str) -> None:
        check_error_code("DingTalk", body, "errcode")
