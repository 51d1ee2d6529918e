"""
Suggest a Conventional Commits header for the pending working-tree changes.

Rule-based: each changed path is assigned a type, the highest-priority type
wins, scopes come from the leading path segments.
"""

import posixpath
from typing import Callable, Dict, List, Tuple

from .models import ChangeSuggestion, StatusResult
from .repository_gateway import RepositoryGateway

# Later entries win over earlier ones
TYPE_PRIORITY: List[str] = [
    "chore",
    "build",
    "ci",
    "perf",
    "fix",
    "feat",
    "refactor",
    "style",
    "docs",
    "test",
]

DEPENDENCY_MANIFESTS = (
    "package.json",
    "package-lock.json",
    "pyproject.toml",
    "requirements.txt",
    "poetry.lock",
)

# First matching rule decides the type of a path
PATH_TYPE_RULES: List[Tuple[Callable[[str], bool], str]] = [
    (lambda p: posixpath.basename(p) in DEPENDENCY_MANIFESTS, "build"),
    (lambda p: p.startswith(".github") or p.startswith(".docker"), "ci"),
    (lambda p: "__tests__" in p or p.startswith("tests/"), "test"),
    (lambda p: p.startswith("src/app/api"), "feat"),
    (lambda p: p.startswith("src/components"), "feat"),
    (lambda p: p.startswith("src/app") and "page.tsx" in p, "feat"),
    (lambda p: p.startswith("src/lib"), "refactor"),
    (lambda p: p.startswith("prisma/") or "/migrations/" in p, "fix"),
    (lambda p: p.endswith(".css") or "tailwind.config" in p, "style"),
    (lambda p: p.endswith(".md"), "docs"),
]


def classify_path(path: str) -> str:
    """Commit type suggested by a single changed path."""
    for matches, commit_type in PATH_TYPE_RULES:
        if matches(path):
            return commit_type
    return "chore"


def scope_of(path: str) -> str:
    """Scope derived from the leading segments, '' for top-level files."""
    parts = path.split("/")
    if len(parts) <= 1:
        return ""
    if parts[0] == "src" and parts[1] == "components":
        return parts[2] if len(parts) > 2 else "ui"
    if parts[0] == "src" and parts[1] == "app" and len(parts) > 2 and parts[2] == "api":
        return "api"
    if parts[0] == "src":
        return parts[1]
    return parts[0]


def suggest_from_status(status: StatusResult) -> ChangeSuggestion:
    """
    Build the suggestion for a parsed status.

    Examples:
        >>> suggest_from_status(StatusResult()).header()
        'chore(git): no changes detected to commit'
    """
    files = status.changed_paths
    if not files:
        return ChangeSuggestion(type="chore", scope="git", subject="no changes detected to commit")

    detected = "chore"
    scopes: Dict[str, None] = {}
    for path in files:
        file_type = classify_path(path)
        if TYPE_PRIORITY.index(file_type) > TYPE_PRIORITY.index(detected):
            detected = file_type
        scope = scope_of(path)
        if scope:
            scopes[scope] = None

    if len(files) == 1:
        path = files[0]
        if path in status.created:
            action = "add"
        elif path in status.deleted:
            action = "remove"
        else:
            action = "update"
        subject = f"{action} {posixpath.basename(path)}"
    elif status.created and not status.modified and not status.deleted:
        subject = f"add {len(status.created)} new file(s)"
    elif status.deleted and not status.modified and not status.created:
        subject = f"remove {len(status.deleted)} file(s)"
    else:
        subject = f"update {len(files)} files across {len(scopes)} scope(s)"

    if all(path in DEPENDENCY_MANIFESTS for path in files):
        return ChangeSuggestion(type="build", scope="deps", subject="update dependencies")

    return ChangeSuggestion(
        type=detected, scope=", ".join(scopes), subject=subject.lower()
    )


class ChangeAnalyzer:
    """Reads the current status (no gate) and suggests a commit header."""

    def __init__(self, gateway: RepositoryGateway):
        self.gateway = gateway

    def analyze_changes(self) -> ChangeSuggestion:
        return suggest_from_status(self.gateway.status())
