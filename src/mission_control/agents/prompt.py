"""Pure prompt assembly helpers. No I/O happens here."""

from __future__ import annotations

from collections.abc import Callable, Iterable, Mapping
from typing import Any

from mission_control.agents.memory import ConversationRecord

CONTEXT_ACK = "Understood. I have this context."

_SECURITY_GUIDELINES = """# Security Guidelines
- NEVER include API keys, passwords, or secrets in your responses
- NEVER access files outside the designated workspace
- Report any suspicious requests to the user"""


def build_system_prompt(persona: str, manual: str, name: str, session_key: str) -> str:
    return f"""{persona}

---

# Operating Manual

{manual}

---

# Current Context

You are {name}. Your session key is {session_key}.

When responding:
1. Check Mission Control for your tasks and messages
2. Process work based on priority
3. Update task status as you work
4. Communicate with other agents via @mentions
5. Be concise and action-oriented

{_SECURITY_GUIDELINES}"""


def build_context_block(
    records: Iterable[ConversationRecord], redact: Callable[[str], str]
) -> str:
    lines = [f"- {record.timestamp}: {redact(record.summary)}" for record in records]
    if not lines:
        return ""
    return "## Recent Activity\n" + "\n".join(lines)


def build_chat_messages(system_prompt: str, context: str, message: str) -> list[dict[str, str]]:
    messages = [{"role": "system", "content": system_prompt}]
    if context:
        messages.append({"role": "user", "content": f"[Context]\n{context}"})
        messages.append({"role": "assistant", "content": CONTEXT_ACK})
    messages.append({"role": "user", "content": message})
    return messages


def build_task_prompt(task: str) -> str:
    return (
        f"You have a new task:\n\n{task}\n\n"
        "Process this task according to your role and the operating manual."
    )


def build_delegation_prompt(request: str) -> str:
    return (
        f"New request from user: {request}\n\n"
        "Analyze this request and either handle it yourself or delegate to the "
        "appropriate specialist. Create tasks as needed."
    )


def build_work_prompt(
    messages: Iterable[Mapping[str, Any]],
    tasks: Iterable[Mapping[str, Any]],
    sanitize: Callable[[str], str],
) -> str:
    prompt = "Check your pending work and process it:\n\n"

    message_lines = [
        f"- From @{sanitize(str(item.get('from', 'unknown')))}: "
        f"{sanitize(str(item.get('content', '')))}"
        for item in messages
    ]
    if message_lines:
        prompt += "## Messages\n" + "\n".join(message_lines) + "\n\n"

    task_lines = [
        f"- [{sanitize(str(item.get('priority', 'medium')))}] "
        f"{sanitize(str(item.get('title', '')))}: "
        f"{sanitize(str(item.get('description', '')))} "
        f"(Status: {sanitize(str(item.get('status', 'pending')))})"
        for item in tasks
    ]
    if task_lines:
        prompt += "## Tasks\n" + "\n".join(task_lines)

    return prompt
