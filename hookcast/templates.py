"""Message templates: ``{{name}}`` substitution and template selection."""
from __future__ import annotations

import re
from collections.abc import Mapping

from hookcast._types import MessageTemplate
from hookcast.config import DEFAULT_BODY, DEFAULT_TITLE

_PLACEHOLDER = re.compile(r"\{\{\s*(\w+)\s*\}\}")


def render(template: str | None, variables: Mapping[str, str]) -> str:
    """Substitute ``{{name}}`` placeholders. Unknown names are left as-is."""
    if not template:
        return ""

    def _sub(m: re.Match[str]) -> str:
        value = variables.get(m.group(1))
        return m.group(0) if value is None else value

    return _PLACEHOLDER.sub(_sub, template)


def select_template(
    kind: str,
    channel_template: MessageTemplate | None,
    global_templates: Mapping[str, MessageTemplate],
) -> tuple[str, str]:
    """Pick (title, body) templates field by field.

    Order: channel template → global template named after the hook kind →
    global ``default`` → built-in default.
    """
    candidates = [
        channel_template or {},
        global_templates.get(kind) or {},
        global_templates.get("default") or {},
    ]
    title = next((c["title"] for c in candidates if c.get("title")), DEFAULT_TITLE)
    body = next((c["body"] for c in candidates if c.get("body")), DEFAULT_BODY)
    return title, body
