"""Helpers for seeding the sandboxed workspace on first boot."""

from __future__ import annotations

from pathlib import Path

from mission_control.agents.persona import MANUAL_FILE, SOUL_FILE
from mission_control.agents.roster import AGENTS, ROLES
from mission_control.guardrails.paths import WORKSPACE_DIRS

_DEFAULT_MANUAL = """# Mission Control Operating Manual

## Squad
{squad}

## Working agreements
- Tasks move through: pending -> in_progress -> review -> completed (or blocked).
- Mention another agent with @name in a comment to hand work over.
- Message @all only for announcements that affect the whole squad.
- Keep deliverables inside the workspace `deliverables/` directory.
"""


def _soul_text(name: str) -> str:
    return (
        f"You are **{name.capitalize()}**, the {ROLES[name]} in the Mission Control squad.\n\n"
        "Stay within your specialty, keep updates short, and hand work to the right "
        "teammate with an @mention when it falls outside your role.\n"
    )


def ensure_workspace(root: Path) -> list[Path]:
    """Create workspace directories and default role files. Returns created files."""
    created: list[Path] = []
    for name in WORKSPACE_DIRS:
        (root / name).mkdir(parents=True, exist_ok=True)

    manual = root / "shared" / MANUAL_FILE
    if not manual.exists():
        squad = "\n".join(f"- @{name}: {ROLES[name]}" for name in AGENTS)
        manual.write_text(_DEFAULT_MANUAL.format(squad=squad), encoding="utf-8")
        created.append(manual)

    for name in AGENTS:
        soul = root / "agents" / name / SOUL_FILE
        if soul.exists():
            continue
        soul.parent.mkdir(parents=True, exist_ok=True)
        soul.write_text(_soul_text(name), encoding="utf-8")
        created.append(soul)
    return created
