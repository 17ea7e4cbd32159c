"""Channel implementations, keyed by ``channel_type``."""
from __future__ import annotations

from hookcast.channels.base import Channel, NotificationRequest
from hookcast.channels.dingtalk import DingTalkChannel
from hookcast.channels.feishu import FeishuChannel
from hookcast.channels.system import SystemChannel
from hookcast.channels.wechat import WeChatChannel

CHANNEL_TYPES: dict[str, type[Channel]] = {
    "system": SystemChannel,
    "dingtalk": DingTalkChannel,
    "feishu": FeishuChannel,
    "wechat": WeChatChannel,
}


def create_channel(channel_type: str, debug: bool = False) -> Channel | None:
    """Instantiate the channel for a type name, or None if the type is unknown."""
    cls = CHANNEL_TYPES.get(channel_type)
    return cls(debug=debug) if cls else None


__all__ = [
    "CHANNEL_TYPES",
    "Channel",
    "DingTalkChannel",
    "FeishuChannel",
    "NotificationRequest",
    "SystemChannel",
    "WeChatChannel",
    "create_channel",
]
