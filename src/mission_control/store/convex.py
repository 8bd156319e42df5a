"""Coordination store client for the Convex HTTP API."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from mission_control.config import Settings, convex_url_is_valid
from mission_control.errors import StoreError
from mission_control.guardrails.secrets import safe_error
from mission_control.store.base import Record

logger = logging.getLogger(__name__)


def _drop_none(args: dict[str, Any]) -> dict[str, Any]:
    return {key: value for key, value in args.items() if value is not None}


class ConvexStore:
    """Calls Convex query/mutation functions over HTTP.

    Every failure is raised as ``StoreError`` with a redacted message; callers
    decide whether a failure degrades to a neutral value or propagates.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._timeout = max(1.0, float(timeout_seconds))
        self._transport = transport

    async def _call(self, kind: str, path: str, args: dict[str, Any]) -> Any:
        endpoint = f"{self.base_url}/api/{kind}"
        body = {"path": path, "args": _drop_none(args), "format": "json"}
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(endpoint, json=body)
                response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise StoreError(f"convex {kind} {path} failed: {safe_error(exc)}") from None
        if not isinstance(payload, dict):
            raise StoreError(f"convex {kind} {path} returned a malformed response")
        if payload.get("status") != "success":
            detail = safe_error(str(payload.get("errorMessage") or "unknown error"))
            raise StoreError(f"convex {kind} {path} failed: {detail}")
        return payload.get("value")

    async def query(self, path: str, args: dict[str, Any] | None = None) -> Any:
        return await self._call("query", path, args or {})

    async def mutation(self, path: str, args: dict[str, Any] | None = None) -> Any:
        return await self._call("mutation", path, args or {})

    @staticmethod
    def _as_records(value: Any) -> list[Record]:
        if not isinstance(value, list):
            return []
        return [item for item in value if isinstance(item, dict)]

    @staticmethod
    def _as_id(value: Any) -> str | None:
        return str(value) if value is not None else None

    async def list_tasks(
        self, status: str | None = None, assigned_to: str | None = None
    ) -> list[Record]:
        value = await self.query("tasks:list", {"status": status, "assignedTo": assigned_to})
        return self._as_records(value)

    async def get_task(self, task_id: str) -> Record | None:
        value = await self.query("tasks:get", {"id": task_id})
        return value if isinstance(value, dict) else None

    async def create_task(self, fields: Record) -> str | None:
        return self._as_id(await self.mutation("tasks:create", fields))

    async def update_task(self, task_id: str, fields: Record, agent_name: str) -> str | None:
        args = {**fields, "id": task_id, "agentName": agent_name}
        return self._as_id(await self.mutation("tasks:update", args))

    async def add_comment(self, task_id: str, agent_name: str, content: str) -> str | None:
        args = {"taskId": task_id, "agentName": agent_name, "content": content}
        return self._as_id(await self.mutation("tasks:addComment", args))

    async def get_comments(self, task_id: str) -> list[Record]:
        return self._as_records(await self.query("tasks:getComments", {"taskId": task_id}))

    async def send_message(self, sender: str, to: str, content: str) -> str | None:
        args = {"from": sender, "to": to, "content": content}
        return self._as_id(await self.mutation("agents:sendMessage", args))

    async def list_unread_messages(self, agent_name: str) -> list[Record]:
        return self._as_records(await self.query("agents:getMessages", {"agentName": agent_name}))

    async def mark_message_read(self, message_id: str) -> None:
        await self.mutation("agents:markMessageRead", {"id": message_id})

    async def heartbeat(
        self, agent_name: str, session_key: str, current_task: str | None = None
    ) -> None:
        args = {"agentName": agent_name, "sessionKey": session_key, "currentTask": current_task}
        await self.mutation("agents:heartbeat", args)

    async def set_idle(self, agent_name: str) -> None:
        await self.mutation("agents:setIdle", {"agentName": agent_name})

    async def agent_status(self) -> list[Record]:
        return self._as_records(await self.query("agents:getStatus"))

    async def list_activities(
        self, limit: int = 50, agent_name: str | None = None
    ) -> list[Record]:
        args = {"limit": limit, "agentName": agent_name}
        return self._as_records(await self.query("activities:list", args))

    async def list_documents(
        self, kind: str | None = None, created_by: str | None = None
    ) -> list[Record]:
        args = {"type": kind, "createdBy": created_by}
        return self._as_records(await self.query("documents:list", args))

    async def create_document(self, fields: Record) -> str | None:
        return self._as_id(await self.mutation("documents:create", fields))


def build_store(settings: Settings) -> ConvexStore | None:
    """Return a store client, or None for offline mode."""
    url = settings.convex_url.strip()
    if not url:
        logger.warning("CONVEX_URL not set. Running in offline mode.")
        return None
    if not convex_url_is_valid(url):
        logger.error("Invalid CONVEX_URL; URL must start with https:// or http://")
        logger.warning("Running in offline mode due to invalid URL.")
        return None
    return ConvexStore(url, timeout_seconds=settings.convex_timeout_seconds)
