"""Coordination store contract."""

from __future__ import annotations

from typing import Any, Protocol

TASK_STATUSES = ("pending", "in_progress", "review", "completed", "blocked")
TASK_PRIORITIES = ("low", "medium", "high", "urgent")
ACTIVE_TASK_STATUSES = ("pending", "in_progress")

Record = dict[str, Any]


class CoordinationStore(Protocol):
    async def list_tasks(
        self, status: str | None = None, assigned_to: str | None = None
    ) -> list[Record]: ...

    async def get_task(self, task_id: str) -> Record | None: ...

    async def create_task(self, fields: Record) -> str | None: ...

    async def update_task(self, task_id: str, fields: Record, agent_name: str) -> str | None: ...

    async def add_comment(self, task_id: str, agent_name: str, content: str) -> str | None: ...

    async def get_comments(self, task_id: str) -> list[Record]: ...

    async def send_message(self, sender: str, to: str, content: str) -> str | None: ...

    async def list_unread_messages(self, agent_name: str) -> list[Record]: ...

    async def mark_message_read(self, message_id: str) -> None: ...

    async def heartbeat(
        self, agent_name: str, session_key: str, current_task: str | None = None
    ) -> None: ...

    async def set_idle(self, agent_name: str) -> None: ...

    async def agent_status(self) -> list[Record]: ...

    async def list_activities(
        self, limit: int = 50, agent_name: str | None = None
    ) -> list[Record]: ...

    async def list_documents(
        self, kind: str | None = None, created_by: str | None = None
    ) -> list[Record]: ...

    async def create_document(self, fields: Record) -> str | None: ...
