"""Channel base class and the rendered request handed to delivery."""
from __future__ import annotations

from collections.abc import Mapping
from typing import NamedTuple

from hookcast._types import ChannelConfig
from hookcast.config import DEFAULT_TIMEOUT_MS
from hookcast.templates import render


class NotificationRequest(NamedTuple):
    title: str
    body: str
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    icon: str | None = None
    sound: str | None = None


class Channel:
    """A delivery backend. One instance per channel type; config is passed per call."""

    channel_type = ""
    display_name = ""

    def __init__(self, debug: bool = False) -> None:
        self.debug = debug

    def render(self, title_template: str, body_template: str, variables: Mapping[str, str]) -> tuple[str, str]:
        return render(title_template, variables), render(body_template, variables)

    def validate(self, config: ChannelConfig) -> list[str]:
        """Configuration problems that would make delivery fail. Empty when usable."""
        return []

    def deliver(self, request: NotificationRequest, config: ChannelConfig) -> None:
        """Deliver one notification. Raises ChannelError on failure."""
        raise NotImplementedError
