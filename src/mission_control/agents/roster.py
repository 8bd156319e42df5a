"""Closed agent roster and identity types."""

from __future__ import annotations

from dataclasses import dataclass

from mission_control.errors import IdentityError
from mission_control.guardrails import Guardrails

AGENTS: tuple[str, ...] = ("jarvis", "shuri", "fury", "vision", "loki", "quill", "wanda")

ROLES: dict[str, str] = {
    "jarvis": "Squad Lead",
    "shuri": "Product Analyst",
    "fury": "Customer Researcher",
    "vision": "SEO Analyst",
    "loki": "Content Writer",
    "quill": "Social Media Manager",
    "wanda": "Designer",
}

SESSION_KEYS: dict[str, str] = {
    "jarvis": "agent:main:main",
    "shuri": "agent:product-analyst:main",
    "fury": "agent:customer-researcher:main",
    "vision": "agent:seo-analyst:main",
    "loki": "agent:content-writer:main",
    "quill": "agent:social-media-manager:main",
    "wanda": "agent:designer:main",
}


def session_key_for(name: str) -> str:
    return SESSION_KEYS.get(name, f"agent:{name}:main")


def is_roster_member(name: object) -> bool:
    return isinstance(name, str) and name in AGENTS


@dataclass(frozen=True, slots=True)
class AgentIdentity:
    name: str
    session_key: str
    role: str

    @classmethod
    def resolve(cls, name: object, guardrails: Guardrails) -> AgentIdentity:
        if (
            not guardrails.validate_agent_name(name)
            or not isinstance(name, str)
            or name not in AGENTS
        ):
            guardrails.audit.security("INVALID_AGENT_CREATION", name=str(name)[:64])
            raise IdentityError(
                f'Invalid agent name: "{guardrails.redact(str(name)[:64])}". '
                f"Valid agents: {', '.join(AGENTS)}"
            )
        return cls(name=name, session_key=session_key_for(name), role=ROLES[name])
