"""Click CLI group: run agents, orchestrate the squad, and inspect the store."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import TypeVar

import click

from mission_control.agents.prompt import build_delegation_prompt
from mission_control.agents.roster import AGENTS, ROLES
from mission_control.agents.runtime import AgentRuntime
from mission_control.agents.seed import ensure_workspace
from mission_control.config import Settings, get_settings, validate_settings_for_env
from mission_control.errors import MissionControlError
from mission_control.guardrails import Guardrails, get_guardrails
from mission_control.guardrails.secrets import contains_secrets, redact_text
from mission_control.logging import configure_logging
from mission_control.providers.base import ModelProvider
from mission_control.providers.factory import build_provider
from mission_control.scheduler.service import AgentScheduler
from mission_control.store.base import TASK_PRIORITIES, CoordinationStore
from mission_control.store.convex import build_store

T = TypeVar("T")
_ECHO_PREVIEW_CHARS = 100


@dataclass(slots=True)
class _Context:
    settings: Settings
    guardrails: Guardrails
    store: CoordinationStore | None
    provider: ModelProvider | None

    def agent(self, name: str) -> AgentRuntime:
        if self.provider is None:
            raise click.ClickException("model backend is not configured")
        return AgentRuntime(
            name,
            store=self.store,
            provider=self.provider,
            guardrails=self.guardrails,
            settings=self.settings,
        )

    def require_store(self) -> CoordinationStore:
        if self.store is None:
            raise click.ClickException(
                "No coordination store connection. Set CONVEX_URL to enable it."
            )
        return self.store


def _bootstrap(*, needs_model: bool = True) -> _Context:
    settings = get_settings()
    configure_logging(settings.log_level)
    try:
        if needs_model:
            validate_settings_for_env(settings)
        provider = build_provider(settings) if needs_model else None
    except MissionControlError as exc:
        raise click.ClickException(redact_text(str(exc))) from None
    guardrails = get_guardrails()
    guardrails.audit.initialize()
    return _Context(
        settings=settings,
        guardrails=guardrails,
        store=build_store(settings),
        provider=provider,
    )


def _run(awaitable: Awaitable[T]) -> T:
    async def _wrapped() -> T:
        return await awaitable

    try:
        return asyncio.run(_wrapped())
    except MissionControlError as exc:
        raise click.ClickException(redact_text(str(exc))) from None


def _truncate(value: object, limit: int) -> str:
    text = redact_text(str(value or ""))
    return text if len(text) <= limit else text[:limit] + "..."


def _reject_secret_input(value: str, field: str) -> str:
    if not value.strip():
        raise click.BadParameter(f"{field} required")
    if contains_secrets(value):
        raise click.BadParameter(f"{field} appears to contain secrets. Please remove them.")
    return value


def _format_ms(value: object) -> str:
    if not isinstance(value, int | float):
        return "-"
    stamp = datetime.fromtimestamp(float(value) / 1000.0, tz=UTC)
    return stamp.strftime("%Y-%m-%d %H:%M:%S")


@click.group()
def cli() -> None:
    """Mission Control: a sandboxed squad of AI agents."""


@cli.command()
def agents() -> None:
    """List the agent roster."""
    for name in AGENTS:
        click.echo(f"{name.capitalize():<8} - {ROLES[name]}")


@cli.command()
def seed() -> None:
    """Create workspace directories and default persona files."""
    settings = get_settings()
    created = ensure_workspace(settings.root_path)
    for path in created:
        click.echo(f"created {path.relative_to(settings.root_path)}")
    if not created:
        click.echo("workspace already seeded")


@cli.command("run-agent")
@click.argument("name", type=click.Choice(AGENTS))
@click.argument("task", nargs=-1)
def run_agent(name: str, task: tuple[str, ...]) -> None:
    """Run one autonomous turn for NAME, optionally on an explicit TASK."""
    ctx = _bootstrap()
    click.echo(f"Starting agent: {name}")
    agent = ctx.agent(name)
    result = _run(agent.run(" ".join(task) or None))
    click.echo(f"\n[{name}] {result.action}")
    click.echo(redact_text(result.message))


@cli.command()
def orchestrate() -> None:
    """Wake every agent on a staggered interval until interrupted."""
    ctx = _bootstrap()
    if ctx.store is None:
        click.echo("Running in offline mode (no coordination store connection)", err=True)

    async def _main() -> None:
        scheduler = AgentScheduler(
            ctx.agent,
            interval_seconds=ctx.settings.interval_seconds,
            grace_seconds=ctx.settings.shutdown_grace_seconds,
        )
        scheduler.install_signal_handlers()
        click.echo("Orchestrator running. Press Ctrl+C to stop.")
        await scheduler.run_forever()

    _run(_main())
    click.echo("Orchestrator stopped.")


@cli.command()
@click.argument("name", type=click.Choice(AGENTS))
def chat(name: str) -> None:
    """Chat interactively with NAME. Type 'exit' to return."""
    ctx = _bootstrap()
    agent = ctx.agent(name)
    ctx.guardrails.audit.activity("CHAT_SESSION_START", agent=name)
    click.echo(f"Connected to {name}. Type 'exit' to return.")
    click.echo("Tip: Don't enter passwords or API keys - they'll be redacted.\n")
    while True:
        message = click.prompt(f"You -> {name}", default="", show_default=False)
        if message.strip().lower() == "exit":
            break
        if not message.strip():
            continue
        if contains_secrets(message):
            click.echo("WARNING: your input appears to contain secrets; they will be redacted.")
        try:
            response = asyncio.run(agent.chat(message))
        except MissionControlError as exc:
            click.echo(f"Error: {redact_text(str(exc))}\n")
            continue
        click.echo(f"\n{name}: {redact_text(response)}\n")
    ctx.guardrails.audit.activity("CHAT_SESSION_END", agent=name)
    click.echo(f"Disconnected from {name}.")


@cli.command()
@click.argument("request")
def delegate(request: str) -> None:
    """Hand REQUEST to the squad lead for triage and delegation."""
    _reject_secret_input(request, "request")
    ctx = _bootstrap()
    agent = ctx.agent("jarvis")
    safe_request = ctx.guardrails.sanitize(request)
    response = _run(agent.chat(build_delegation_prompt(safe_request)))
    ctx.guardrails.audit.activity("DELEGATE_SUCCESS")
    click.echo(f"\njarvis: {redact_text(response)}")


@cli.command("create-task")
@click.option("--title", prompt="Task title")
@click.option("--description", prompt="Task description")
@click.option(
    "--priority", type=click.Choice(TASK_PRIORITIES), default="medium", show_default=True
)
@click.option("--assign", "assigned_to", type=click.Choice(AGENTS), default=None)
@click.option("--as", "acting_agent", type=click.Choice(AGENTS), default="jarvis")
def create_task(
    title: str, description: str, priority: str, assigned_to: str | None, acting_agent: str
) -> None:
    """Create a task on behalf of an agent."""
    _reject_secret_input(title, "Title")
    _reject_secret_input(description, "Description")
    ctx = _bootstrap()
    agent = ctx.agent(acting_agent)
    task_id = _run(
        agent.create_task(title, description, priority=priority, assigned_to=assigned_to)
    )
    if task_id is None:
        click.echo("Task accepted (offline mode - data NOT persisted)")
        return
    click.echo(f"Task created: {task_id}")


@cli.command()
@click.option("--status", type=str, default=None)
@click.option("--assigned-to", type=click.Choice(AGENTS), default=None)
def tasks(status: str | None, assigned_to: str | None) -> None:
    """List tasks in the coordination store."""
    ctx = _bootstrap(needs_model=False)
    store = ctx.require_store()
    rows = _run(store.list_tasks(status=status, assigned_to=assigned_to))
    if not rows:
        click.echo("No tasks found.")
        return
    for task in rows:
        assigned_to = task.get("assignedTo")
        assignee = f"@{_truncate(assigned_to, 40)}" if assigned_to else "unassigned"
        priority = _truncate(task.get("priority", "-"), 20)
        state = _truncate(task.get("status", "-"), 20)
        creator = _truncate(task.get("createdBy", "-"), 40)
        click.echo(f"[{priority}] {_truncate(task.get('title'), 80)} ({state})")
        click.echo(f"   {_truncate(task.get('description'), 60)}")
        click.echo(f"   Assigned: {assignee}  Created by: {creator}\n")
    ctx.guardrails.audit.activity("VIEW_TASKS", count=len(rows))


@cli.command()
@click.option("--limit", type=int, default=20, show_default=True)
@click.option("--agent", "agent_name", type=click.Choice(AGENTS), default=None)
def activity(limit: int, agent_name: str | None) -> None:
    """Show the recent activity feed."""
    ctx = _bootstrap(needs_model=False)
    store = ctx.require_store()
    rows = _run(store.list_activities(limit=limit, agent_name=agent_name))
    if not rows:
        click.echo("No activity found.")
        return
    for item in rows:
        click.echo(
            f"{_format_ms(item.get('createdAt'))} @{_truncate(item.get('agentName', '-'), 40)} "
            f"{_truncate(item.get('action', '-'), 60)}"
        )
        click.echo(f"   {_truncate(item.get('details'), 80)}\n")
    ctx.guardrails.audit.activity("VIEW_ACTIVITY", count=len(rows))


@cli.command()
def status() -> None:
    """Show each agent's last heartbeat and status."""
    ctx = _bootstrap(needs_model=False)
    store = ctx.require_store()
    rows = {str(row.get("agentName")): row for row in _run(store.agent_status())}
    for name in AGENTS:
        row = rows.get(name)
        if row is None:
            click.echo(f"{name:<8} never seen")
            continue
        current = _truncate(row.get("currentTask"), _ECHO_PREVIEW_CHARS)
        click.echo(
            f"{name:<8} {_truncate(row.get('status', '-'), 20):<8} last heartbeat "
            f"{_format_ms(row.get('lastHeartbeat'))} {current}".rstrip()
        )


@cli.command("send-message")
@click.argument("recipient")
@click.argument("content")
@click.option("--as", "acting_agent", type=click.Choice(AGENTS), default="jarvis")
def send_message(recipient: str, content: str, acting_agent: str) -> None:
    """Send CONTENT to RECIPIENT (an agent name or 'all')."""
    ctx = _bootstrap()
    agent = ctx.agent(acting_agent)
    message_id = _run(agent.send_message(recipient, content))
    if message_id is None:
        click.echo("Message accepted (offline mode - not delivered)")
        return
    click.echo(f"Message sent: {message_id}")
