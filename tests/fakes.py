"""In-memory collaborators shared by the test suite."""

from typing import Any

from mission_control.errors import ProviderError
from mission_control.providers.base import ModelResponse


class FakeStore:
    """In-memory coordination store that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.tasks: list[dict[str, Any]] = []
        self.messages: list[dict[str, Any]] = []
        self.documents: list[dict[str, Any]] = []
        self.comments: list[dict[str, Any]] = []
        self.status: dict[str, dict[str, Any]] = {}
        self.activities: list[dict[str, Any]] = []
        self.fail_reads = False

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]

    async def list_tasks(self, status=None, assigned_to=None):
        self._record("list_tasks", status, assigned_to)
        if self.fail_reads:
            raise RuntimeError("store unreachable")
        return [
            task
            for task in self.tasks
            if (status is None or task.get("status") == status)
            and (assigned_to is None or task.get("assignedTo") == assigned_to)
        ]

    async def get_task(self, task_id):
        self._record("get_task", task_id)
        return next((task for task in self.tasks if task["_id"] == task_id), None)

    async def create_task(self, fields):
        self._record("create_task", fields)
        task_id = f"task-{len(self.tasks) + 1}"
        self.tasks.append({**fields, "_id": task_id, "status": "pending"})
        return task_id

    async def update_task(self, task_id, fields, agent_name):
        self._record("update_task", task_id, fields, agent_name)
        return task_id

    async def add_comment(self, task_id, agent_name, content):
        self._record("add_comment", task_id, agent_name, content)
        comment_id = f"comment-{len(self.comments) + 1}"
        self.comments.append({"_id": comment_id, "taskId": task_id, "content": content})
        return comment_id

    async def get_comments(self, task_id):
        self._record("get_comments", task_id)
        return [comment for comment in self.comments if comment["taskId"] == task_id]

    async def send_message(self, sender, to, content):
        self._record("send_message", sender, to, content)
        return f"message-{len(self.calls)}"

    async def list_unread_messages(self, agent_name):
        self._record("list_unread_messages", agent_name)
        if self.fail_reads:
            raise RuntimeError("store unreachable")
        return [item for item in self.messages if item.get("to") in (agent_name, "all")]

    async def mark_message_read(self, message_id):
        self._record("mark_message_read", message_id)

    async def heartbeat(self, agent_name, session_key, current_task=None):
        self._record("heartbeat", agent_name, session_key, current_task)
        self.status[agent_name] = {"agentName": agent_name, "status": "active"}

    async def set_idle(self, agent_name):
        self._record("set_idle", agent_name)
        self.status[agent_name] = {"agentName": agent_name, "status": "idle"}

    async def agent_status(self):
        self._record("agent_status")
        return list(self.status.values())

    async def list_activities(self, limit=50, agent_name=None):
        self._record("list_activities", limit, agent_name)
        return self.activities[:limit]

    async def list_documents(self, kind=None, created_by=None):
        self._record("list_documents", kind, created_by)
        return list(self.documents)

    async def create_document(self, fields):
        self._record("create_document", fields)
        self.documents.append(fields)
        return f"doc-{len(self.documents)}"


class FakeProvider:
    """Scripted model backend."""

    def __init__(self, replies: list[str] | None = None, *, error: str | None = None) -> None:
        self.replies = list(replies or [])
        self.error = error
        self.requests: list[list[dict[str, str]]] = []

    async def generate(self, messages, temperature=0.7, max_tokens=2048):
        self.requests.append(messages)
        if self.error is not None:
            raise ProviderError(self.error)
        text = self.replies.pop(0) if self.replies else "Acknowledged."
        return ModelResponse(text=text, model="fake-model", finish_reason="stop")

    async def health_check(self) -> bool:
        return True
