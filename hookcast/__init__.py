"""hookcast: route Claude Code hook events to desktop and chat channels."""
from __future__ import annotations

__version__ = "1.0.0"

# Re-export the primary entry points
from hookcast.analyzer import Analysis, SessionStatus, analyze  # noqa: F401
from hookcast.config import default_config, load_config, parse_config  # noqa: F401
from hookcast.errors import (  # noqa: F401
    ChannelError,
    ChannelTimeout,
    ConfigError,
    DesktopError,
    HookcastError,
    InputError,
    TranscriptError,
)
from hookcast.hooks import HookEvent, parse_hook_event  # noqa: F401
from hookcast.manager import ChannelManager, DispatchReport, DispatchResult  # noqa: F401
from hookcast.router import resolve  # noqa: F401
from hookcast.templates import render  # noqa: F401
