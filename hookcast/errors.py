"""Exception hierarchy.

Fatal errors (``InputError``, ``ConfigError``) end the process with a
non-zero status. Everything else is caught at the channel or analysis
boundary, logged, and folded into the dispatch report.
"""
from __future__ import annotations


class HookcastError(Exception):
    """Base class for all hookcast errors."""


class InputError(HookcastError):
    """Hook input on stdin is empty or not a valid hook document."""


class ConfigError(HookcastError):
    """Configuration file is unreadable or structurally invalid."""


class ChannelError(HookcastError):
    """A single channel failed to deliver."""


class ChannelTimeout(ChannelError):
    """A channel did not finish within its timeout."""


class DesktopError(ChannelError):
    """Desktop notification, sound or icon plumbing failed."""


class TranscriptError(HookcastError):
    """Transcript file could not be read."""
