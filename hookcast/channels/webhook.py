"""Webhook transport shared by the chat providers."""
from __future__ import annotations

import json
import socket
import urllib.error
import urllib.request
from typing import Any

from hookcast._log import debug
from hookcast._types import ChannelConfig
from hookcast.channels.base import Channel, NotificationRequest
from hookcast.config import DEFAULT_TIMEOUT_MS
from hookcast.errors import ChannelError, ChannelTimeout


def post_json(url: str, payload: dict[str, Any], timeout: float) -> tuple[int, str]:
    """POST a JSON payload. Returns (status, body); raises ChannelError for non-2xx and network errors."""
    data = json.dumps(payload, ensure_ascii=False).encode("utf-8")
    req = urllib.request.Request(
        url, data=data,
        headers={"Content-Type": "application/json; charset=utf-8"},
        method="POST",
    )
    try:
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            status = resp.status
            body = resp.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as e:
        detail = e.read().decode("utf-8", errors="replace")[:200] if e.fp else ""
        raise ChannelError(f"HTTP {e.code}: {detail or e.reason}") from e
    except (TimeoutError, socket.timeout) as e:
        raise ChannelTimeout(f"Webhook timed out after {timeout:.1f}s") from e
    except urllib.error.URLError as e:
        if isinstance(e.reason, (TimeoutError, socket.timeout)):
            raise ChannelTimeout(f"Webhook timed out after {timeout:.1f}s") from e
        raise ChannelError(f"Webhook request failed: {e.reason}") from e
    except OSError as e:
        raise ChannelError(f"Webhook request failed: {e}") from e
    if not 200 <= status < 300:
        raise ChannelError(f"HTTP {status}: {body[:200]}")
    return status, body


class WebhookChannel(Channel):
    """Chat webhook: provider payload → HTTP POST → provider error check."""

    def validate(self, config: ChannelConfig) -> list[str]:
        if not config.get("webhook_url"):
            return [f"webhook_url is required for {self.display_name}"]
        return []

    def content(self, request: NotificationRequest) -> str:
        if request.title and request.body:
            return f"{request.title}\n{request.body}"
        return request.title or request.body

    def build_payload(self, request: NotificationRequest, config: ChannelConfig) -> dict[str, Any]:
        raise NotImplementedError

    def build_url(self, config: ChannelConfig) -> str:
        return config.get("webhook_url", "")

    def check_response(self, body: str) -> None:
        """Providers answer HTTP 200 with an error code in the body; raise on those."""

    def deliver(self, request: NotificationRequest, config: ChannelConfig) -> None:
        problems = self.validate(config)
        if problems:
            raise ChannelError("; ".join(problems))
        payload = self.build_payload(request, config)
        timeout = (request.timeout_ms or DEFAULT_TIMEOUT_MS) / 1000
        debug(self.debug, self.channel_type, f"POST payload={payload}")
        _, body = post_json(self.build_url(config), payload, timeout)
        self.check_response(body)


def _error_code(body: str, *keys: str) -> tuple[int, str] | None:
    """Non-zero provider error code and message from a JSON response body."""
    try:
        data = json.loads(body)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    for key in keys:
        code = data.get(key)
        if isinstance(code, int) and code != 0:
            msg = data.get("errmsg") or data.get("msg") or data.get("StatusMessage") or ""
            return code, str(msg)
    return None


def check_error_code(provider: str, body: str, *keys: str) -> None:
    err = _error_code(body, *keys)
    if err:
        raise ChannelError(f"{provider} error {err[0]}: {err[1]}")
