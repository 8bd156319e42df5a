"""Best-effort command-injection filter for free-text input."""

from __future__ import annotations

import logging
import re

from mission_control.guardrails.audit import AuditLog
from mission_control.guardrails.patterns import PatternRule

logger = logging.getLogger(__name__)

REMOVED = "[REMOVED]"
_PREVIEW_CHARS = 100

DANGEROUS_RULES: tuple[PatternRule, ...] = (
    PatternRule.compile("template_injection", r"\$\{.*\}", REMOVED),
    PatternRule.compile("backtick_exec", r"`.*`", REMOVED),
    PatternRule.compile("command_substitution", r"\$\(.*\)", REMOVED),
    PatternRule.compile("chained_rm_rf", r";\s*rm\s+-rf", REMOVED, re.IGNORECASE),
    PatternRule.compile("chained_sudo", r";\s*sudo", REMOVED, re.IGNORECASE),
    PatternRule.compile("pipe_to_bash", r"\|\s*bash", REMOVED, re.IGNORECASE),
    PatternRule.compile("pipe_to_sh", r"\|\s*sh", REMOVED, re.IGNORECASE),
    PatternRule.compile("eval_call", r"eval\s*\(", REMOVED, re.IGNORECASE),
    PatternRule.compile("exec_call", r"exec\s*\(", REMOVED, re.IGNORECASE),
)


def sanitize_input(
    text: object,
    audit: AuditLog | None = None,
    rules: tuple[PatternRule, ...] = DANGEROUS_RULES,
) -> object:
    """Replace every dangerous idiom with a placeholder. Never raises."""
    if not isinstance(text, str):
        return text
    try:
        sanitized = text
        for rule in rules:
            if not rule.detect(text):
                continue
            if audit is not None:
                audit.security(
                    "DANGEROUS_INPUT_DETECTED",
                    pattern=rule.name,
                    input_preview=text[:_PREVIEW_CHARS],
                )
            sanitized = rule.rewrite(sanitized)
        return sanitized
    except Exception:
        logger.exception("Input sanitization failed; discarding input")
        return REMOVED


def sanitize_text(text: str, audit: AuditLog | None = None) -> str:
    return str(sanitize_input(text, audit))
