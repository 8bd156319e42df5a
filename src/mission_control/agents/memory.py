"""Per-agent bounded session memory persisted as JSON."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from mission_control.guardrails import Guardrails

logger = logging.getLogger(__name__)

MEMORY_FILE = "memory.json"
MAX_CONVERSATIONS = 100
EXCERPT_CHARS = 100
CONTEXT_ENTRIES = 5


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(slots=True)
class ConversationRecord:
    timestamp: str
    user_message: str
    summary: str

    def to_dict(self) -> dict[str, str]:
        return {
            "timestamp": self.timestamp,
            "userMessage": self.user_message,
            "summary": self.summary,
        }

    @classmethod
    def from_dict(cls, raw: object) -> ConversationRecord:
        if not isinstance(raw, dict):
            raise ValueError("conversation record must be an object")
        values = (raw.get("timestamp"), raw.get("userMessage"), raw.get("summary"))
        if not all(isinstance(value, str) for value in values):
            raise ValueError("conversation record fields must be strings")
        timestamp, user_message, summary = values
        return cls(timestamp=timestamp, user_message=user_message, summary=summary)


@dataclass(slots=True)
class SessionMemory:
    conversations: list[ConversationRecord] = field(default_factory=list)
    last_run: str | None = None

    def append(self, record: ConversationRecord) -> None:
        self.conversations.append(record)
        self.last_run = record.timestamp

    def trim(self, limit: int = MAX_CONVERSATIONS) -> None:
        if len(self.conversations) > limit:
            self.conversations = self.conversations[-limit:]

    def recent(self, count: int = CONTEXT_ENTRIES) -> list[ConversationRecord]:
        if count <= 0:
            return []
        return self.conversations[-count:]

    def to_dict(self) -> dict[str, Any]:
        return {
            "conversations": [record.to_dict() for record in self.conversations],
            "lastRun": self.last_run,
        }

    @classmethod
    def from_dict(cls, raw: object) -> SessionMemory:
        if not isinstance(raw, dict):
            raise ValueError("memory document must be an object")
        conversations = raw.get("conversations", [])
        if not isinstance(conversations, list):
            raise ValueError("conversations must be a list")
        last_run = raw.get("lastRun")
        if last_run is not None and not isinstance(last_run, str):
            raise ValueError("lastRun must be a string or null")
        return cls(
            conversations=[ConversationRecord.from_dict(item) for item in conversations],
            last_run=last_run,
        )


class MemoryStore:
    """Reads and writes one agent's memory file through the guardrail layer."""

    def __init__(self, session_dir: Path, agent_name: str, guardrails: Guardrails) -> None:
        self.path = session_dir / MEMORY_FILE
        self._agent_name = agent_name
        self._guardrails = guardrails

    def excerpt(self, text: str) -> str:
        redact = self._guardrails.redact
        return redact(redact(text)[:EXCERPT_CHARS])

    def record(self, user_message: str, response: str) -> ConversationRecord:
        return ConversationRecord(
            timestamp=now_iso(),
            user_message=self.excerpt(user_message),
            summary=self.excerpt(response),
        )

    def load(self) -> SessionMemory:
        if not self._guardrails.is_path_safe(self.path):
            self._guardrails.audit.security(
                "UNSAFE_MEMORY_PATH", agent=self._agent_name, path=str(self.path)
            )
            return SessionMemory()
        if not self.path.exists():
            return SessionMemory()
        try:
            raw = json.loads(self.path.read_text(encoding="utf-8"))
            return SessionMemory.from_dict(raw)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError, ValueError):
            self._guardrails.audit.activity("MEMORY_CORRUPTED", agent=self._agent_name)
            logger.warning("Corrupted memory file for %s, resetting", self._agent_name)
            return SessionMemory()

    def save(self, memory: SessionMemory) -> bool:
        if not self._guardrails.is_path_safe(self.path):
            self._guardrails.audit.security(
                "UNSAFE_MEMORY_WRITE", agent=self._agent_name, path=str(self.path)
            )
            return False

        memory.trim(MAX_CONVERSATIONS)
        redact = self._guardrails.redact
        safe = SessionMemory(
            conversations=[
                ConversationRecord(
                    timestamp=record.timestamp,
                    user_message=redact(record.user_message),
                    summary=redact(record.summary),
                )
                for record in memory.conversations
            ],
            last_run=memory.last_run,
        )
        payload = json.dumps(safe.to_dict(), indent=2)
        tmp_path = self.path.with_suffix(".json.tmp")
        try:
            tmp_path.write_text(payload, encoding="utf-8")
            tmp_path.replace(self.path)
        except OSError as exc:
            logger.error(
                "Failed to save memory for %s: %s",
                self._agent_name,
                self._guardrails.safe_error(exc),
            )
            return False
        return True
