from pathlib import Path

import pytest

from mission_control.guardrails import Guardrails
from mission_control.guardrails.audit import AuditLog
from mission_control.guardrails.paths import PathGuard


def test_relative_paths_resolve_against_workspace_root(guardrails: Guardrails) -> None:
    assert guardrails.is_path_safe("sessions/wanda/memory.json") is True
    assert guardrails.is_path_safe(guardrails.root / "deliverables" / "report.md") is True
    assert guardrails.audit.security_events() == []


@pytest.mark.parametrize(
    "target",
    [
        "sessions/../../outside.txt",
        "../outside",
        "deliverables/../../../tmp/x",
    ],
)
def test_traversal_outside_workspace_is_rejected(guardrails: Guardrails, target: str) -> None:
    assert guardrails.is_path_safe(target) is False
    events = guardrails.audit.security_events("PATH_TRAVERSAL_ATTEMPT")
    assert len(events) == 1
    assert "resolved_path" in events[0]["details"]


def test_traversal_that_lands_inside_workspace_is_allowed(guardrails: Guardrails) -> None:
    assert guardrails.is_path_safe("sessions/../logs/session.log") is True


def test_sensitive_system_path_is_rejected(guardrails: Guardrails) -> None:
    assert guardrails.is_path_safe("/etc/passwd") is False
    events = guardrails.audit.security_events("FORBIDDEN_PATH_ACCESS")
    assert events
    assert "/etc" in events[0]["details"]


def test_sensitive_fragment_below_root_is_rejected(guardrails: Guardrails) -> None:
    target = guardrails.root / "sessions" / ".ssh" / "id_rsa"
    assert guardrails.is_path_safe(target) is False
    assert guardrails.audit.security_events("FORBIDDEN_PATH_ACCESS")


def test_path_inside_root_but_outside_allow_list(guardrails: Guardrails) -> None:
    assert guardrails.is_path_safe(guardrails.root / "src" / "main.py") is False
    assert guardrails.audit.security_events("PATH_OUTSIDE_WORKSPACE")


def test_empty_path_is_rejected(guardrails: Guardrails) -> None:
    assert guardrails.is_path_safe("") is False
    assert guardrails.paths.is_path_safe(None) is False


def test_workspace_under_home_directory_stays_usable(tmp_path: Path) -> None:
    root = tmp_path / "home" / "alice" / "mission-control"
    guard = PathGuard(root, AuditLog(root / "logs"))
    assert guard.is_path_safe(root / "sessions" / "jarvis" / "memory.json") is True


def test_safe_path_joins_and_resolves(guardrails: Guardrails) -> None:
    joined = guardrails.safe_path(guardrails.root / "deliverables", "loki", "draft.md")
    assert joined == guardrails.root / "deliverables" / "loki" / "draft.md"
    assert guardrails.safe_path(guardrails.root / "deliverables", "..", "..", "x") is None


def test_check_error_is_reported_and_denied(
    guardrails: Guardrails, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _boom(_target: object) -> Path:
        raise OSError("disk gone")

    monkeypatch.setattr(guardrails.paths, "resolve", _boom)
    assert guardrails.is_path_safe("sessions/x") is False
    assert guardrails.audit.security_events("PATH_CHECK_ERROR")
