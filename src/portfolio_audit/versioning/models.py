"""
Value types of the content versioning engine.

All of these are values derived from querying the working tree or supplied by
a caller for a single operation; none is persisted independently.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class ChangeAction(str, Enum):
    """Kind of content mutation that produced a commit."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"


# Verb used in commit messages for each action. Total over ChangeAction.
ACTION_VERBS = {
    ChangeAction.CREATE: "oluşturuldu",
    ChangeAction.UPDATE: "güncellendi",
    ChangeAction.DELETE: "silindi",
}

# Marker consumed by external CI triggers; must stay verbatim.
CI_SKIP_MARKER = "[ci skip]"

ADMIN_ROLE = "admin"


@dataclass(frozen=True)
class Commit:
    """Immutable commit record as read from the log."""

    hash: str
    author_name: str
    author_email: str
    timestamp_utc: int
    message: str
    iso_date: str

    def to_dict(self, include_email: bool = True) -> dict:
        data = {
            "hash": self.hash,
            "author_name": self.author_name,
            "author_email": self.author_email,
            "timestamp_utc": self.timestamp_utc,
            "message": self.message,
            "iso_date": self.iso_date,
        }
        if not include_email:
            del data["author_email"]
        return data


@dataclass(frozen=True)
class ChangeDescriptor:
    """
    Describes one content mutation for commit-message synthesis.

    paths optionally restricts the commit to the files written for this
    change; an empty tuple means every changed path in the working tree.
    """

    action: ChangeAction
    content_type: str
    slug: str
    actor_identity: str
    paths: Tuple[str, ...] = ()

    def __post_init__(self):
        if not isinstance(self.action, ChangeAction):
            # Accept "create"/"update"/"delete" strings from callers
            object.__setattr__(self, "action", ChangeAction(self.action))
        if isinstance(self.paths, (list, str)):
            paths = [self.paths] if isinstance(self.paths, str) else self.paths
            object.__setattr__(self, "paths", tuple(paths))


@dataclass(frozen=True)
class RemoteIdentity:
    """Username and token for the remote. The token never appears in repr."""

    username: Optional[str]
    token: Optional[str] = field(default=None, repr=False)

    @property
    def is_complete(self) -> bool:
        return bool(self.username) and bool(self.token)


@dataclass(frozen=True)
class Branch:
    """Local branch of the working tree."""

    name: str
    is_current: bool = False


@dataclass(frozen=True)
class Remote:
    """Configured remote and its fetch URL."""

    name: str
    url: str


@dataclass
class StatusResult:
    """Changed paths of the working tree, split like `git status`."""

    staged: List[str] = field(default_factory=list)
    unstaged: List[str] = field(default_factory=list)
    untracked: List[str] = field(default_factory=list)
    created: List[str] = field(default_factory=list)
    deleted: List[str] = field(default_factory=list)
    modified: List[str] = field(default_factory=list)

    @property
    def changed_paths(self) -> List[str]:
        """Every path with any pending change, in first-seen order."""
        seen: List[str] = []
        for path in self.staged + self.unstaged + self.untracked:
            if path not in seen:
                seen.append(path)
        return seen

    @property
    def count(self) -> int:
        return len(self.changed_paths)

    @property
    def is_clean(self) -> bool:
        return self.count == 0


@dataclass(frozen=True)
class Actor:
    """Authenticated caller as resolved by the host application."""

    identity: str
    role: str = "editor"

    @property
    def is_admin(self) -> bool:
        return self.role == ADMIN_ROLE


@dataclass(frozen=True)
class RecordChangeResult:
    """Outcome of a successful record_change / commit_all_changes call."""

    committed: bool
    pushed: bool
    commit_hash: Optional[str] = None
    message: Optional[str] = None


@dataclass(frozen=True)
class RevertResult:
    """Outcome of a successful revert."""

    reverted_hash: str
    revert_commit_hash: str
    pushed: bool = True


@dataclass(frozen=True)
class SwitchResult:
    current_branch: str
    previous_branch: Optional[str]


@dataclass(frozen=True)
class ConnectionTestResult:
    ok: bool
    message: str


@dataclass(frozen=True)
class ChangeSuggestion:
    """Conventional Commits header suggested by the change analyzer."""

    type: str
    scope: str
    subject: str

    def header(self) -> str:
        if self.scope:
            return f"{self.type}({self.scope}): {self.subject}"
        return f"{self.type}: {self.subject}"
