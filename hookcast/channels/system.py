"""Local desktop notification channel."""
from __future__ import annotations

from hookcast import desktop
from hookcast._log import debug, log
from hookcast._types import ChannelConfig
from hookcast.channels.base import Channel, NotificationRequest
from hookcast.errors import DesktopError


class SystemChannel(Channel):
    channel_type = "system"
    display_name = "System notification"

    def deliver(self, request: NotificationRequest, config: ChannelConfig) -> None:
        icon = desktop.resolve_icon(request.icon)
        if request.icon and icon is None:
            log(f"Icon not found: {request.icon}, using default")
        debug(self.debug, "system", f"title={request.title!r} icon={icon}")
        desktop.show_notification(request.title, request.body, request.timeout_ms, icon)

        # Sound is best effort: the popup has already been shown.
        if request.sound:
            try:
                desktop.play_sound(request.sound)
            except DesktopError as e:
                log(f"Sound playback failed: {e}")
