"""Role configuration loading with an explicit degraded result."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from mission_control.guardrails import Guardrails

SOUL_FILE = "SOUL.md"
MANUAL_FILE = "AGENTS.md"


@dataclass(frozen=True, slots=True)
class Loaded:
    text: str
    path: Path

    @property
    def degraded(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class FellBack:
    text: str
    reason: str

    @property
    def degraded(self) -> bool:
        return True


RoleText = Loaded | FellBack


def default_persona(name: str) -> str:
    return f"You are {name}, an AI agent in Mission Control."


def persona_path(root: Path, name: str) -> Path:
    return root / "agents" / name / SOUL_FILE


def manual_path(root: Path) -> Path:
    return root / "shared" / MANUAL_FILE


def load_role_text(
    path: Path,
    *,
    default: str,
    guardrails: Guardrails,
    label: str,
    agent: str,
) -> RoleText:
    """Read an opaque role document, falling back to ``default`` when unusable.

    ``label`` names the document in security events (``SOUL``, ``MANUAL``).
    """
    if not guardrails.is_path_safe(path):
        guardrails.audit.security(f"UNSAFE_{label}_PATH", agent=agent, path=str(path))
        return FellBack(default, "unsafe_path")
    if not path.is_file():
        return FellBack(default, "missing")
    try:
        content = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        guardrails.audit.activity(
            f"{label}_READ_FAILED", agent=agent, error=guardrails.safe_error(exc)
        )
        return FellBack(default, "unreadable")
    if guardrails.contains_secrets(content):
        guardrails.audit.security(f"SECRETS_IN_{label}_FILE", agent=agent)
        return FellBack(default, "contains_secrets")
    return Loaded(content, path)


def load_persona(root: Path, name: str, guardrails: Guardrails) -> RoleText:
    return load_role_text(
        persona_path(root, name),
        default=default_persona(name),
        guardrails=guardrails,
        label="SOUL",
        agent=name,
    )


def load_operating_manual(root: Path, name: str, guardrails: Guardrails) -> RoleText:
    return load_role_text(
        manual_path(root),
        default="",
        guardrails=guardrails,
        label="MANUAL",
        agent=name,
    )
