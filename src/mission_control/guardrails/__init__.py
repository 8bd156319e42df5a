"""Guardrail layer: every boundary crossing is mediated here.

``Guardrails`` owns the mutable guardrail state (audit log destination,
rate-limit windows, workspace root) explicitly so independent instances can
coexist, e.g. one per test or per scheduler.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from mission_control.config import get_settings
from mission_control.guardrails.audit import AuditLog
from mission_control.guardrails.identity import validate_agent_name, validate_recipient
from mission_control.guardrails.paths import PathGuard
from mission_control.guardrails.ratelimit import RateLimiter
from mission_control.guardrails.sanitize import sanitize_text
from mission_control.guardrails.secrets import contains_secrets, redact_text, safe_error


@dataclass(slots=True)
class Guardrails:
    root: Path
    audit: AuditLog
    paths: PathGuard
    limiter: RateLimiter

    @classmethod
    def for_root(cls, root: Path, *, limiter: RateLimiter | None = None) -> Guardrails:
        resolved = root.expanduser().resolve()
        audit = AuditLog(resolved / "logs")
        return cls(
            root=resolved,
            audit=audit,
            paths=PathGuard(resolved, audit),
            limiter=limiter or RateLimiter(audit),
        )

    def is_path_safe(self, target: str | os.PathLike[str]) -> bool:
        return self.paths.is_path_safe(target)

    def safe_path(self, base: str | os.PathLike[str], *segments: str) -> Path | None:
        return self.paths.safe_path(base, *segments)

    def sanitize(self, text: str) -> str:
        return sanitize_text(text, self.audit)

    def contains_secrets(self, text: str) -> bool:
        return contains_secrets(text)

    def redact(self, text: str) -> str:
        return redact_text(text)

    def safe_error(self, error: BaseException | str) -> str:
        return safe_error(error)

    def validate_agent_name(self, name: object) -> bool:
        return validate_agent_name(name, self.audit)

    def validate_recipient(self, name: object) -> bool:
        return validate_recipient(name, self.audit)

    def check_rate_limit(self, operation: str, max_per_minute: int) -> bool:
        return self.limiter.check(operation, max_per_minute)


@lru_cache(maxsize=1)
def get_guardrails() -> Guardrails:
    return Guardrails.for_root(get_settings().root_path)
