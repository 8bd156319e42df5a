"""Append-only activity and security audit log.

Records are newline-delimited JSON written to one session file per process
under the workspace ``logs/`` directory and mirrored to the operator log
stream. Security events are always mirrored at WARNING.
"""

from __future__ import annotations

import functools
import json
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, ParamSpec, TypeVar

from mission_control.guardrails.secrets import redact_text, safe_error

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

ACTIVITY = "ACTIVITY"
SECURITY = "SECURITY"
_CONSOLE_PREVIEW_CHARS = 100
_RECENT_RECORDS = 1000


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _encode_details(details: dict[str, Any]) -> str:
    try:
        encoded = json.dumps(details, sort_keys=True, default=str)
    except (TypeError, ValueError):
        encoded = json.dumps({"unserializable": sorted(details)})
    return redact_text(encoded)


class AuditLog:
    """Session-scoped audit trail bound to a single log file once first used."""

    def __init__(self, log_dir: Path) -> None:
        self._log_dir = log_dir
        self._log_file: Path | None = None
        self._records: deque[dict[str, str]] = deque(maxlen=_RECENT_RECORDS)

    @property
    def log_file(self) -> Path | None:
        return self._log_file

    @property
    def records(self) -> tuple[dict[str, str], ...]:
        return tuple(self._records)

    def initialize(self) -> Path:
        if self._log_file is not None:
            return self._log_file
        stamp = _now_iso().replace(":", "-").replace(".", "-").replace("+", "_")
        self._log_file = self._log_dir / f"session-{stamp}.log"
        try:
            self._log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            logger.error("Failed to create log directory: %s", safe_error(exc))
        self.activity("SESSION_START", timestamp=_now_iso())
        return self._log_file

    def activity(self, action: str, **details: Any) -> None:
        entry = self._append(ACTIVITY, "action", action, details)
        logger.info("%s: %s", action, entry["details"][:_CONSOLE_PREVIEW_CHARS])

    def security(self, event: str, **details: Any) -> None:
        entry = self._append(SECURITY, "event", event, details)
        logger.warning("[SECURITY] %s: %s", event, entry["details"])

    def security_events(self, event: str | None = None) -> list[dict[str, str]]:
        return [
            record
            for record in self._records
            if record["type"] == SECURITY and (event is None or record["event"] == event)
        ]

    def activities(self, action: str | None = None) -> list[dict[str, str]]:
        return [
            record
            for record in self._records
            if record["type"] == ACTIVITY and (action is None or record["action"] == action)
        ]

    def _append(
        self, kind: str, label_key: str, label: str, details: dict[str, Any]
    ) -> dict[str, str]:
        log_file = self._log_file or self.initialize()
        entry = {
            "timestamp": _now_iso(),
            "type": kind,
            label_key: label,
            "details": _encode_details(details),
        }
        self._records.append(entry)
        try:
            with log_file.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(entry) + "\n")
        except OSError as exc:
            logger.error("Failed to write %s log: %s", kind.lower(), safe_error(exc))
        return entry


def audited(
    audit: AuditLog, name: str
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Wrap a coroutine function with START/SUCCESS/ERROR activity records."""

    def decorator(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            audit.activity(f"{name}_START", args_count=len(args) + len(kwargs))
            try:
                result = await func(*args, **kwargs)
            except Exception as exc:
                audit.activity(f"{name}_ERROR", error=safe_error(exc))
                raise
            audit.activity(f"{name}_SUCCESS")
            return result

        return wrapper

    return decorator
