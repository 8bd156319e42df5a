"""Workspace path containment."""

from __future__ import annotations

import os
from pathlib import Path

from mission_control.guardrails.audit import AuditLog

WORKSPACE_DIRS = ("sessions", "deliverables", "agents", "shared", "logs")

FORBIDDEN_FRAGMENTS = (
    "/etc",
    "/usr",
    "/sys",
    "/var",
    "/root",
    "/home",
    "/.ssh",
    "/.gnupg",
    "/.aws",
    "/.config",
    "/Documents",
    "/Desktop",
    "/Downloads",
    "/Pictures",
    "/Movies",
    "/Music",
    "C:\\Windows",
    "C:\\Program Files",
    "C:\\Users",
)


def _is_within(child: Path, parent: Path) -> bool:
    try:
        child.relative_to(parent)
    except ValueError:
        return False
    return os.path.commonpath([str(parent), str(child)]) == str(parent)


class PathGuard:
    """Accepts only paths that resolve inside the workspace allow-list."""

    def __init__(
        self,
        root: Path,
        audit: AuditLog | None = None,
        *,
        allowed_dirs: tuple[str, ...] = WORKSPACE_DIRS,
        forbidden: tuple[str, ...] = FORBIDDEN_FRAGMENTS,
    ) -> None:
        self.root = root.expanduser().resolve()
        self.allowed = tuple(self.root / name for name in allowed_dirs)
        self._forbidden = tuple(fragment.lower() for fragment in forbidden)
        self._audit = audit

    def _event(self, event: str, **details: object) -> None:
        if self._audit is not None:
            self._audit.security(event, **details)

    def resolve(self, target: str | os.PathLike[str]) -> Path:
        candidate = Path(target).expanduser()
        if not candidate.is_absolute():
            candidate = self.root / candidate
        return candidate.resolve()

    def _deny_scope(self, resolved: Path) -> str:
        # Sensitive fragments are matched below the install root so that a
        # workspace living under a home directory stays usable.
        if _is_within(resolved, self.root):
            return "/" + resolved.relative_to(self.root).as_posix()
        return str(resolved)

    def within_allowed(self, resolved: Path) -> bool:
        return any(_is_within(resolved, allowed) for allowed in self.allowed)

    def is_path_safe(self, target: str | os.PathLike[str] | None) -> bool:
        if target is None or not str(target):
            return False
        try:
            resolved = self.resolve(target)

            if ".." in Path(target).parts and not self.within_allowed(resolved):
                self._event(
                    "PATH_TRAVERSAL_ATTEMPT",
                    target_path=str(target),
                    resolved_path=str(resolved),
                )
                return False

            scope = self._deny_scope(resolved).lower()
            for fragment in self._forbidden:
                if fragment in scope:
                    self._event("FORBIDDEN_PATH_ACCESS", target_path=str(target), pattern=fragment)
                    return False

            if not self.within_allowed(resolved):
                self._event(
                    "PATH_OUTSIDE_WORKSPACE",
                    target_path=str(target),
                    resolved_path=str(resolved),
                )
                return False
            return True
        except Exception as exc:
            self._event("PATH_CHECK_ERROR", target_path=str(target), error=type(exc).__name__)
            return False

    def safe_path(self, base: str | os.PathLike[str], *segments: str) -> Path | None:
        full = Path(base).joinpath(*segments)
        if not self.is_path_safe(full):
            return None
        return self.resolve(full)
