"""Agent name and message recipient validation."""

from __future__ import annotations

import re

from mission_control.guardrails.audit import AuditLog

AGENT_NAME_RE = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]{0,30}$")
BROADCAST = "all"


def validate_agent_name(name: object, audit: AuditLog | None = None) -> bool:
    if isinstance(name, str) and AGENT_NAME_RE.fullmatch(name):
        return True
    if audit is not None:
        audit.security("INVALID_AGENT_NAME", name=str(name)[:64])
    return False


def validate_recipient(name: object, audit: AuditLog | None = None) -> bool:
    if name == BROADCAST:
        return True
    return validate_agent_name(name, audit)
