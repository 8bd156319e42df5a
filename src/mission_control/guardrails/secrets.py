"""Credential detection and redaction.

Every value written to a log, to persisted memory, or echoed back to a human
passes through ``redact_secrets`` first.
"""

from __future__ import annotations

import logging
import re

from mission_control.guardrails.patterns import PatternRule, rewrite_all

logger = logging.getLogger(__name__)

REDACTED = "[REDACTED]"

SECRET_RULES: tuple[PatternRule, ...] = (
    PatternRule.compile("openai_key", r"sk-[a-zA-Z0-9]{20,}", REDACTED),
    PatternRule.compile("stripe_live_key", r"sk_live_[a-zA-Z0-9]{20,}", REDACTED),
    PatternRule.compile("stripe_test_key", r"sk_test_[a-zA-Z0-9]{20,}", REDACTED),
    PatternRule.compile("github_pat", r"ghp_[a-zA-Z0-9]{36}", REDACTED),
    PatternRule.compile("github_oauth", r"gho_[a-zA-Z0-9]{36}", REDACTED),
    PatternRule.compile("slack_token", r"xox[baprs]-[a-zA-Z0-9-]{10,}", REDACTED),
    PatternRule.compile("aws_access_key", r"AKIA[0-9A-Z]{16}", REDACTED),
    PatternRule.compile("jwt", r"eyJ[a-zA-Z0-9_-]*\.eyJ[a-zA-Z0-9_-]*", REDACTED),
    PatternRule.compile(
        "private_key", r"-----BEGIN (?:RSA |EC )?PRIVATE KEY-----", REDACTED
    ),
    PatternRule.compile(
        "password_assignment",
        r"password\s*[=:]\s*[\"']?[^\s\"']{8,}",
        REDACTED,
        re.IGNORECASE,
    ),
    PatternRule.compile(
        "api_key_assignment",
        r"api[_-]?key\s*[=:]\s*[\"']?[^\s\"']{8,}",
        REDACTED,
        re.IGNORECASE,
    ),
)

# A replacement can complete a later rule's match (``password=<key>`` becomes
# ``password=[REDACTED]``), so redaction repeats until the text is stable.
_MAX_REDACTION_PASSES = 4


def contains_secrets(text: object, rules: tuple[PatternRule, ...] = SECRET_RULES) -> bool:
    if not isinstance(text, str):
        return False
    try:
        return any(rule.detect(text) for rule in rules)
    except Exception:
        logger.exception("Secret scan failed; treating text as sensitive")
        return True


def secret_kinds(text: str, rules: tuple[PatternRule, ...] = SECRET_RULES) -> list[str]:
    return [rule.name for rule in rules if rule.detect(text)]


def redact_secrets(text: object, rules: tuple[PatternRule, ...] = SECRET_RULES) -> object:
    if not isinstance(text, str):
        return text
    try:
        working = text
        for _ in range(_MAX_REDACTION_PASSES):
            rewritten = rewrite_all(rules, working)
            if rewritten == working:
                return rewritten
            working = rewritten
        return working
    except Exception:
        logger.exception("Secret redaction failed; dropping text")
        return REDACTED


def redact_text(text: str) -> str:
    """Typed wrapper around ``redact_secrets`` for values known to be strings."""
    return str(redact_secrets(text))


def safe_error(error: BaseException | str) -> str:
    message = str(error) if str(error) else type(error).__name__
    return redact_text(message)
