"""Per-agent runtime: identity, memory, prompt assembly, and coordination calls.

Every boundary crossing goes through the injected ``Guardrails``: text is
sanitized on the way in and redacted on the way out, file access is checked
for containment. ``chat`` and the structured store writes are rate limited
per agent.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

from mission_control.agents.memory import CONTEXT_ENTRIES, MemoryStore
from mission_control.agents.persona import RoleText, load_operating_manual, load_persona
from mission_control.agents.prompt import (
    build_chat_messages,
    build_context_block,
    build_system_prompt,
    build_task_prompt,
    build_work_prompt,
)
from mission_control.agents.roster import AgentIdentity
from mission_control.config import Settings, get_settings
from mission_control.errors import (
    GuardrailError,
    IdentityError,
    ProviderError,
    RateLimitError,
    SecretDetectedError,
    ValidationError,
)
from mission_control.guardrails import Guardrails
from mission_control.providers.base import ModelProvider
from mission_control.store.base import (
    ACTIVE_TASK_STATUSES,
    TASK_PRIORITIES,
    TASK_STATUSES,
    CoordinationStore,
    Record,
)

logger = logging.getLogger(__name__)

IDLE_MESSAGE = "No pending work."
_UPDATABLE_TASK_FIELDS = {
    "title": "title",
    "description": "description",
    "status": "status",
    "priority": "priority",
    "assigned_to": "assignedTo",
}
_SLUG_RE = re.compile(r"[^a-z0-9]+")


class AgentState(str, enum.Enum):
    CONSTRUCTING = "constructing"
    READY = "ready"
    RUNNING = "running"
    IDLE = "idle"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class RunResult:
    action: str
    message: str

    def as_dict(self) -> dict[str, str]:
        return {"action": self.action, "message": self.message}


class AgentRuntime:
    def __init__(
        self,
        name: object,
        *,
        store: CoordinationStore | None,
        provider: ModelProvider,
        guardrails: Guardrails,
        settings: Settings | None = None,
    ) -> None:
        self.state = AgentState.CONSTRUCTING
        self.guardrails = guardrails
        self.settings = settings or get_settings()
        self.identity = AgentIdentity.resolve(name, guardrails)
        self.store = store
        self.provider = provider

        root = guardrails.root
        self.persona: RoleText = load_persona(root, self.name, guardrails)
        self.operating_manual: RoleText = load_operating_manual(root, self.name, guardrails)

        self.session_dir = root / "sessions" / self.name
        if not guardrails.is_path_safe(self.session_dir):
            raise GuardrailError("Invalid session directory path")
        self.session_dir.mkdir(parents=True, exist_ok=True)
        self._memory_store = MemoryStore(self.session_dir, self.name, guardrails)
        self.memory = self._memory_store.load()

        self.state = AgentState.READY
        guardrails.audit.activity("AGENT_INITIALIZED", agent=self.name)

    @property
    def name(self) -> str:
        return self.identity.name

    @property
    def session_key(self) -> str:
        return self.identity.session_key

    @property
    def offline(self) -> bool:
        return self.store is None

    # ------------------------------------------------------------------
    # Memory and prompts

    def save_memory(self) -> bool:
        return self._memory_store.save(self.memory)

    def build_system_prompt(self) -> str:
        return build_system_prompt(
            self.persona.text, self.operating_manual.text, self.name, self.session_key
        )

    def build_context_message(self) -> str:
        return build_context_block(self.memory.recent(CONTEXT_ENTRIES), self.guardrails.redact)

    # ------------------------------------------------------------------
    # Status

    async def heartbeat(self, current_task: str | None = None) -> None:
        if self.store is None:
            return
        try:
            await self.store.heartbeat(self.name, self.session_key, current_task)
        except Exception as exc:
            logger.warning(
                "Heartbeat failed for %s: %s", self.name, self.guardrails.safe_error(exc)
            )

    async def set_idle(self) -> None:
        if self.store is None:
            return
        try:
            await self.store.set_idle(self.name)
        except Exception as exc:
            logger.warning("setIdle failed for %s: %s", self.name, self.guardrails.safe_error(exc))

    # ------------------------------------------------------------------
    # Coordination store reads

    async def fetch_assigned_tasks(self) -> list[Record]:
        if self.store is None:
            return []
        try:
            return await self.store.list_tasks(assigned_to=self.name)
        except Exception as exc:
            self.guardrails.audit.activity(
                "TASKS_FETCH_FAILED", agent=self.name, error=self.guardrails.safe_error(exc)
            )
            return []

    async def fetch_messages(self) -> list[Record]:
        if self.store is None:
            return []
        try:
            return await self.store.list_unread_messages(self.name)
        except Exception as exc:
            self.guardrails.audit.activity(
                "MESSAGES_FETCH_FAILED", agent=self.name, error=self.guardrails.safe_error(exc)
            )
            return []

    # ------------------------------------------------------------------
    # Coordination store writes

    def _reject_secrets(self, event: str, message: str, *values: object, **details: Any) -> None:
        contains = self.guardrails.contains_secrets
        if any(isinstance(value, str) and contains(value) for value in values):
            self.guardrails.audit.security(event, agent=self.name, **details)
            raise SecretDetectedError(message)

    def _check_write_rate(self) -> None:
        ceiling = self.settings.rate_limit_default_per_minute
        if not self.guardrails.check_rate_limit(f"write:{self.name}", ceiling):
            raise RateLimitError("Rate limit exceeded. Please wait before writing more.")

    def _require_agent(self, name: str | None, field: str) -> None:
        if name is not None and not self.guardrails.validate_agent_name(name):
            raise IdentityError(f"Invalid {field}: {self.guardrails.redact(str(name)[:64])}")

    async def create_task(
        self,
        title: str,
        description: str,
        *,
        priority: str = "medium",
        assigned_to: str | None = None,
        tags: tuple[str, ...] | list[str] = (),
        parent_task_id: str | None = None,
        due_date: int | None = None,
    ) -> str | None:
        self._reject_secrets(
            "SECRETS_IN_TASK",
            "Task content appears to contain secrets. Please remove them.",
            title,
            description,
            *tags,
        )
        if priority not in TASK_PRIORITIES:
            raise ValidationError(f"Invalid priority: {priority}")
        self._require_agent(assigned_to, "assignee")
        self._check_write_rate()
        if self.store is None:
            return None

        fields: dict[str, Any] = {
            "title": self.guardrails.sanitize(title),
            "description": self.guardrails.sanitize(description),
            "priority": priority,
            "assignedTo": assigned_to,
            "createdBy": self.name,
            "tags": [self.guardrails.sanitize(tag) for tag in tags],
            "parentTaskId": parent_task_id,
            "dueDate": due_date,
        }
        self.guardrails.audit.activity("TASK_CREATE", agent=self.name, title=fields["title"])
        return await self.store.create_task(fields)

    async def update_task(self, task_id: str, **updates: Any) -> str | None:
        unknown = sorted(set(updates) - set(_UPDATABLE_TASK_FIELDS))
        if unknown:
            raise ValidationError(f"Unsupported task fields: {', '.join(unknown)}")
        self._reject_secrets(
            "SECRETS_IN_TASK_UPDATE",
            "Task update appears to contain secrets. Please remove them.",
            *updates.values(),
            task_id=task_id,
        )
        status = updates.get("status")
        if status is not None and status not in TASK_STATUSES:
            raise ValidationError(f"Invalid status: {status}")
        priority = updates.get("priority")
        if priority is not None and priority not in TASK_PRIORITIES:
            raise ValidationError(f"Invalid priority: {priority}")
        self._require_agent(updates.get("assigned_to"), "assignee")
        self._check_write_rate()
        if self.store is None:
            return None

        fields: dict[str, Any] = {}
        for key, value in updates.items():
            if value is None:
                continue
            fields[_UPDATABLE_TASK_FIELDS[key]] = (
                self.guardrails.sanitize(value) if isinstance(value, str) else value
            )
        self.guardrails.audit.activity("TASK_UPDATE", agent=self.name, task_id=task_id)
        return await self.store.update_task(task_id, fields, self.name)

    async def add_comment(self, task_id: str, content: str) -> str | None:
        self._reject_secrets(
            "SECRETS_IN_COMMENT",
            "Comment appears to contain secrets. Please remove them.",
            content,
        )
        self._check_write_rate()
        if self.store is None:
            return None
        safe_content = self.guardrails.sanitize(content)
        self.guardrails.audit.activity("COMMENT_ADD", agent=self.name, task_id=task_id)
        return await self.store.add_comment(task_id, self.name, safe_content)

    async def send_message(self, to: str, content: str) -> str | None:
        if not self.guardrails.validate_recipient(to):
            raise IdentityError(f"Invalid recipient: {self.guardrails.redact(str(to)[:64])}")
        self._reject_secrets(
            "SECRETS_IN_MESSAGE",
            "Message appears to contain secrets. Please remove them.",
            content,
            to=to,
        )
        self._check_write_rate()
        if self.store is None:
            return None
        safe_content = self.guardrails.sanitize(content)
        self.guardrails.audit.activity("MESSAGE_SEND", sender=self.name, to=to)
        return await self.store.send_message(self.name, to, safe_content)

    async def mark_message_read(self, message_id: str) -> None:
        if self.store is None:
            return
        try:
            await self.store.mark_message_read(message_id)
        except Exception as exc:
            logger.warning(
                "markMessageRead failed for %s: %s", self.name, self.guardrails.safe_error(exc)
            )

    async def create_document(
        self,
        title: str,
        content: str,
        *,
        kind: str = "deliverable",
        task_id: str | None = None,
    ) -> str | None:
        """Write a deliverable under the workspace and register it in the store."""
        self._reject_secrets(
            "SECRETS_IN_DOCUMENT",
            "Document appears to contain secrets. Please remove them.",
            title,
            content,
            kind,
        )
        self._check_write_rate()
        safe_title = self.guardrails.sanitize(title)
        safe_content = self.guardrails.sanitize(content)
        stamp = datetime.now(UTC).strftime("%Y%m%d%H%M%S")
        slug = _SLUG_RE.sub("-", safe_title.lower()).strip("-")[:60] or "document"
        target = self.guardrails.safe_path(
            self.guardrails.root / "deliverables", self.name, f"{stamp}-{slug}.md"
        )
        if target is None:
            raise GuardrailError("Deliverable path rejected by workspace policy")
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(safe_content, encoding="utf-8")
        self.guardrails.audit.activity(
            "DOCUMENT_WRITE", agent=self.name, path=str(target.relative_to(self.guardrails.root))
        )
        if self.store is None:
            return None
        return await self.store.create_document(
            {
                "title": safe_title,
                "content": safe_content,
                "type": self.guardrails.sanitize(kind),
                "createdBy": self.name,
                "taskId": task_id,
                "filePath": str(target.relative_to(self.guardrails.root)),
            }
        )

    # ------------------------------------------------------------------
    # Conversational and autonomous turns

    async def chat(
        self,
        message: str,
        *,
        max_tokens: int | None = None,
        current_task: str | None = None,
    ) -> str:
        ceiling = self.settings.rate_limit_chat_per_minute
        if not self.guardrails.check_rate_limit(f"chat:{self.name}", ceiling):
            raise RateLimitError("Rate limit exceeded. Please wait before sending more messages.")

        safe_message = self.guardrails.sanitize(message)
        if self.guardrails.contains_secrets(message):
            self.guardrails.audit.security("SECRETS_IN_USER_MESSAGE", agent=self.name)
            logger.warning(
                "Message to %s appears to contain secrets; they will be redacted", self.name
            )

        self.guardrails.audit.activity(
            "CHAT_START", agent=self.name, message_length=len(safe_message)
        )
        self.state = AgentState.RUNNING
        await self.heartbeat(current_task)
        try:
            messages = build_chat_messages(
                self.build_system_prompt(), self.build_context_message(), safe_message
            )
            try:
                completion = await self.provider.generate(
                    messages,
                    temperature=self.settings.model_temperature,
                    max_tokens=max_tokens or self.settings.model_max_tokens,
                )
                response = completion.text if completion is not None else ""
                if not isinstance(response, str) or not response.strip():
                    raise ProviderError("model returned an invalid or empty response")
            except Exception as exc:
                self.state = AgentState.ERROR
                detail = self.guardrails.safe_error(exc)
                self.guardrails.audit.activity("CHAT_ERROR", agent=self.name, error=detail)
                raise ProviderError(f"Chat failed: {detail}") from None

            if self.guardrails.contains_secrets(response):
                self.guardrails.audit.security("SECRETS_IN_RESPONSE", agent=self.name)
                response = self.guardrails.redact(response)

            self.memory.append(self._memory_store.record(safe_message, response))
            self.save_memory()
            self.state = AgentState.IDLE
        finally:
            if self.state is AgentState.RUNNING:
                self.state = AgentState.ERROR
            await self.set_idle()

        self.guardrails.audit.activity(
            "CHAT_COMPLETE", agent=self.name, response_length=len(response)
        )
        return response

    async def run(self, task: str | None = None) -> RunResult:
        self.guardrails.audit.activity("AGENT_RUN_START", agent=self.name, has_task=bool(task))

        messages: list[Record] = []
        current_task: str | None = None
        if task:
            safe_task = self.guardrails.sanitize(task)
            current_task = self.guardrails.redact(safe_task[:100])
            await self.heartbeat(current_task=current_task)
            prompt = build_task_prompt(safe_task)
        else:
            await self.heartbeat()
            tasks, messages = await asyncio.gather(
                self.fetch_assigned_tasks(), self.fetch_messages()
            )
            pending = [item for item in tasks if item.get("status") in ACTIVE_TASK_STATUSES]
            if not messages and not pending:
                await self.set_idle()
                self.state = AgentState.IDLE
                self.guardrails.audit.activity("AGENT_IDLE", agent=self.name)
                return RunResult(action="idle", message=IDLE_MESSAGE)
            prompt = build_work_prompt(messages, pending, self.guardrails.sanitize)

        response = await self.chat(prompt, current_task=current_task)
        await self._acknowledge(messages)

        self.guardrails.audit.activity("AGENT_RUN_COMPLETE", agent=self.name)
        return RunResult(action="processed", message=response)

    async def _acknowledge(self, messages: list[Mapping[str, Any]]) -> None:
        for item in messages:
            message_id = item.get("_id")
            if message_id is not None:
                await self.mark_message_read(str(message_id))
