"""
RepositoryGateway: the only component that talks to git.

Wraps the git binary for exactly the operations the admin workflow needs:
- Inspection: status, log, list_remotes, get_remote_url, list_branches,
  current_branch, head_hash
- Mutation (callers must hold the mutation gate): add, commit, push, revert,
  revert_abort, checkout
- Remote probe: list_remote_refs

Every command runs with the fixed working tree as cwd. Failures are mapped to
the versioning error taxonomy; raw git output stays on the exception for
server-side logs and never becomes part of a public message.
"""

import logging
import re
import subprocess
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from ..server.logging_utils import format_error_log, get_log_extra
from .errors import (
    AuthenticationFailed,
    Conflict,
    DirtyOrMissingChanges,
    InvalidRevision,
    NoSuchBranch,
    NoSuchRemote,
    NotARepository,
    ProcessFailure,
    VersioningError,
)
from .git_error_classifier import classify_git_error
from .git_runner import DEFAULT_TIMEOUT, run_git_command
from .models import Branch, Commit, Remote, StatusResult

logger = logging.getLogger(__name__)

REMOTE_TIMEOUT = 300  # seconds for push
PROBE_TIMEOUT = 30  # seconds for ls-remote

COMMIT_HASH_PATTERN = re.compile(r"^[0-9a-fA-F]{4,64}$")

# Field/record separators for `git log --format`; cannot occur in messages
_FIELD_SEP = "\x1f"
_RECORD_SEP = "\x1e"
_LOG_FORMAT = _FIELD_SEP.join(["%H", "%an", "%ae", "%at", "%aI", "%B"]) + _RECORD_SEP

# Disables any configured credential helper so URL credentials are never stored
_NO_CREDENTIAL_HELPER = ["-c", "credential.helper="]


class RepositoryGateway:
    """Thin synchronous wrapper over git bound to one working tree."""

    def __init__(
        self,
        working_tree: Path,
        local_timeout: float = DEFAULT_TIMEOUT,
        remote_timeout: float = REMOTE_TIMEOUT,
        probe_timeout: float = PROBE_TIMEOUT,
        committer_name: Optional[str] = None,
        committer_email: Optional[str] = None,
    ):
        """
        Initialize the gateway.

        Args:
            working_tree: Root of the git working tree (fixed for the process)
            local_timeout: Timeout for local commands in seconds
            remote_timeout: Timeout for push in seconds
            probe_timeout: Timeout for remote reachability checks in seconds
            committer_name: Identity recorded on commits (git config if None)
            committer_email: Identity recorded on commits (git config if None)
        """
        self._root = Path(working_tree).resolve()
        self.local_timeout = local_timeout
        self.remote_timeout = remote_timeout
        self.probe_timeout = probe_timeout
        self.committer_name = committer_name
        self.committer_email = committer_email

    @property
    def root(self) -> Path:
        return self._root

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    def status(self, paths: Sequence[str] = ()) -> StatusResult:
        """
        Get changed paths of the working tree.

        Args:
            paths: Optional paths to restrict the status to

        Returns:
            StatusResult with staged, unstaged and untracked paths

        Raises:
            NotARepository: If the working tree is not a git repository
            ProcessFailure: If git status fails
        """
        cmd = ["status", "--porcelain=v1", "-z", "--untracked-files=all"]
        cmd.extend(self._pathspec(paths))
        result = self._run(cmd, operation="status", read_only=True)
        return self._parse_status(result.stdout)

    def log(self, limit: int) -> List[Commit]:
        """
        Get at most `limit` commits of the current branch, newest first.

        An unborn branch (no commits yet) yields an empty list.
        """
        if limit <= 0:
            return []
        cmd = ["log", f"--format={_LOG_FORMAT}", f"--max-count={int(limit)}"]
        try:
            result = self._run(cmd, operation="log", read_only=True)
        except _EmptyHistory:
            return []

        commits = []
        for record in result.stdout.split(_RECORD_SEP):
            record = record.strip("\n")
            if not record:
                continue
            fields = record.split(_FIELD_SEP)
            if len(fields) != 6:
                logger.debug(f"Skipping malformed log record: {record[:80]!r}")
                continue
            commit_hash, name, email, timestamp, iso_date, message = fields
            try:
                timestamp_utc = int(timestamp)
            except ValueError:
                timestamp_utc = 0
            commits.append(
                Commit(
                    hash=commit_hash,
                    author_name=name,
                    author_email=email,
                    timestamp_utc=timestamp_utc,
                    message=message.strip(),
                    iso_date=iso_date,
                )
            )
        return commits[:limit]

    def list_remotes(self) -> List[Remote]:
        """List configured remotes with their fetch URLs."""
        result = self._run(["remote", "-v"], operation="list_remotes", read_only=True)
        remotes: Dict[str, str] = {}
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) >= 3 and parts[2] == "(fetch)":
                remotes[parts[0]] = parts[1]
        return [Remote(name=name, url=url) for name, url in remotes.items()]

    def get_remote_url(self, remote_name: str) -> str:
        """
        Get the fetch URL of a remote.

        Raises:
            NoSuchRemote: If the remote is not configured
        """
        self._reject_option_like(remote_name, NoSuchRemote(remote_name))
        for remote in self.list_remotes():
            if remote.name == remote_name:
                return remote.url
        raise NoSuchRemote(remote_name)

    def list_branches(self) -> List[Branch]:
        """List local branches, marking the checked-out one."""
        result = self._run(
            ["for-each-ref", "--format=%(HEAD)\t%(refname:short)", "refs/heads"],
            operation="list_branches",
            read_only=True,
        )
        branches = []
        for line in result.stdout.splitlines():
            if not line.strip():
                continue
            marker, _, name = line.partition("\t")
            branches.append(Branch(name=name.strip(), is_current=marker.strip() == "*"))

        current = self.current_branch()
        if current and not any(b.name == current for b in branches):
            # Unborn branch: HEAD points at a branch with no commits yet
            branches.insert(0, Branch(name=current, is_current=True))
        return branches

    def current_branch(self) -> Optional[str]:
        """Name of the checked-out branch, or None when HEAD is detached."""
        result = self._run(
            ["branch", "--show-current"], operation="current_branch", read_only=True
        )
        name = result.stdout.strip()
        return name or None

    def head_hash(self) -> Optional[str]:
        """Full hash of HEAD, or None on an unborn branch."""
        result = self._run(
            ["rev-parse", "--verify", "--quiet", "HEAD"],
            operation="head_hash",
            read_only=True,
            check=False,
        )
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def has_staged_changes(self, paths: Sequence[str] = ()) -> bool:
        """Whether the index differs from HEAD (optionally for given paths)."""
        cmd = ["diff", "--cached", "--quiet"]
        cmd.extend(self._pathspec(paths))
        result = self._run(cmd, operation="diff_cached", read_only=True, check=False)
        if result.returncode not in (0, 1):
            raise self._translate_failure(
                "diff_cached", ["git", *cmd], result.returncode, result.stdout, result.stderr
            )
        return result.returncode == 1

    # ------------------------------------------------------------------
    # Mutation (gate must be held by the caller)
    # ------------------------------------------------------------------

    def add(self, paths: Sequence[str] = ()) -> None:
        """Stage all changes, or only changes under the given paths."""
        cmd = ["add", "-A"]
        cmd.extend(self._pathspec(paths))
        self._run(cmd, operation="add")

    def commit(self, message: str, paths: Sequence[str] = ()) -> str:
        """
        Commit staged changes.

        Args:
            message: Commit message
            paths: Optional paths; when given only these paths are committed

        Returns:
            Full hash of the new commit

        Raises:
            DirtyOrMissingChanges: If nothing is staged
            ProcessFailure: If git commit fails
        """
        if not message or not message.strip():
            raise ValueError("Commit message must not be empty")
        if not self.has_staged_changes(paths):
            raise DirtyOrMissingChanges("No staged changes to commit")

        cmd = ["commit", "-m", message]
        cmd.extend(self._pathspec(paths))
        self._run(cmd, operation="commit", env=self._identity_env())

        commit_hash = self.head_hash()
        if commit_hash is None:
            raise ProcessFailure("Commit reported success but HEAD is unborn")
        return commit_hash

    def push(self, remote_url: str, branch: str) -> None:
        """
        Push HEAD to `branch` on the given (authenticated) remote URL.

        The URL is passed on the command line only; nothing is written to the
        repository configuration.

        Raises:
            AuthenticationFailed: If the remote rejects the credentials
            ProcessFailure: On network failure, rejection or timeout
        """
        self._reject_option_like(branch, NoSuchBranch(branch))
        cmd = [*_NO_CREDENTIAL_HELPER, "push", remote_url, f"HEAD:refs/heads/{branch}"]
        self._run(cmd, operation="push", timeout=self.remote_timeout)

    def revert(self, commit_hash: str) -> str:
        """
        Create a commit undoing `commit_hash` (git revert --no-edit).

        Returns:
            Full hash of the revert commit

        Raises:
            InvalidRevision: If commit_hash is malformed or unknown
            Conflict: If the revert stopped with conflicts
            DirtyOrMissingChanges: If local changes block the revert
        """
        if not COMMIT_HASH_PATTERN.match(commit_hash or ""):
            raise InvalidRevision(commit_hash)

        self._run(
            ["revert", "--no-edit", commit_hash],
            operation="revert",
            env=self._identity_env(),
        )
        new_hash = self.head_hash()
        if new_hash is None:
            raise ProcessFailure("Revert reported success but HEAD is unborn")
        return new_hash

    def revert_abort(self) -> None:
        """Abort an in-progress revert, restoring the pre-revert tree."""
        self._run(["revert", "--abort"], operation="revert_abort")

    def revert_in_progress(self) -> bool:
        """Whether a stopped revert is waiting to be continued or aborted."""
        result = self._run(
            ["rev-parse", "--verify", "--quiet", "REVERT_HEAD"],
            operation="revert_state",
            read_only=True,
            check=False,
        )
        return result.returncode == 0

    def checkout(self, branch: str) -> None:
        """
        Switch the working tree to an existing local branch.

        Raises:
            NoSuchBranch: If the branch does not exist
            DirtyOrMissingChanges: If local changes would be overwritten
        """
        self._reject_option_like(branch, NoSuchBranch(branch))
        self._run(["checkout", branch, "--"], operation="checkout")

    # ------------------------------------------------------------------
    # Remote probe
    # ------------------------------------------------------------------

    def list_remote_refs(self, remote_url: str) -> List[str]:
        """
        List branch heads on the remote without fetching anything.

        Returns:
            Branch names found under refs/heads/
        """
        cmd = [*_NO_CREDENTIAL_HELPER, "ls-remote", "--heads", remote_url]
        result = self._run(
            cmd, operation="ls_remote", timeout=self.probe_timeout, read_only=True
        )
        heads = []
        for line in result.stdout.splitlines():
            parts = line.split()
            if len(parts) == 2 and parts[1].startswith("refs/heads/"):
                heads.append(parts[1][len("refs/heads/"):])
        return heads

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _run(
        self,
        args: List[str],
        operation: str,
        timeout: Optional[float] = None,
        read_only: bool = False,
        env: Optional[Dict[str, str]] = None,
        check: bool = True,
    ) -> subprocess.CompletedProcess:
        """Run `git <args>` in the working tree, translating failures."""
        if not self._root.is_dir():
            raise NotARepository(f"Working tree does not exist: {self._root}")

        cmd = ["git", *args]
        try:
            return run_git_command(
                cmd,
                cwd=self._root,
                timeout=timeout if timeout is not None else self.local_timeout,
                check=check,
                env=env,
                read_only=read_only,
            )
        except subprocess.CalledProcessError as e:
            error = self._translate_failure(
                operation, cmd, e.returncode, e.stdout or "", e.stderr or ""
            )
            raise error from e
        except subprocess.TimeoutExpired as e:
            logger.error(
                format_error_log(
                    "VCS-GIT-002",
                    f"git {operation} timed out after {e.timeout}s",
                ),
                extra=get_log_extra("VCS-GIT-002"),
            )
            raise ProcessFailure(
                f"git {operation} timed out after {e.timeout}s",
                command=cmd,
                timed_out=True,
            ) from e
        except FileNotFoundError as e:
            raise ProcessFailure(f"git executable not found: {e}", command=cmd) from e

    def _translate_failure(
        self,
        operation: str,
        cmd: List[str],
        returncode: int,
        stdout: str,
        stderr: str,
    ) -> VersioningError:
        """Map a failed git invocation to the error taxonomy."""
        # Revert output echoes the reverted commit's subject; a stopped
        # revert is recognised by REVERT_HEAD, not by matching that text
        if operation == "revert" and self.revert_in_progress():
            category = "conflict"
        else:
            category = classify_git_error(f"{stderr}\n{stdout}")

        if category == "empty_history" and operation in ("log", "head_hash"):
            return _EmptyHistory(operation)

        process_failure = ProcessFailure(
            f"git {operation} failed",
            stderr=stderr,
            returncode=returncode,
            command=cmd,
        )
        # Expected categories are logged at warning, unknown ones at error
        log = logger.error if category == "unknown" else logger.warning
        log(
            format_error_log(
                "VCS-GIT-001",
                f"git {operation} failed",
                category=category,
                returncode=returncode,
                stderr=stderr.strip()[:500],
            ),
            extra=get_log_extra("VCS-GIT-001"),
        )

        if category == "not_a_repository":
            return NotARepository(str(process_failure))
        if category == "no_such_remote":
            return NoSuchRemote(cmd[-1])
        if category == "authentication":
            return AuthenticationFailed(str(process_failure))
        if category == "conflict" and operation == "revert":
            return Conflict(str(process_failure))
        if category == "dirty":
            return DirtyOrMissingChanges(str(process_failure))
        if category == "unknown_branch" and operation == "checkout":
            return NoSuchBranch(cmd[-2])
        if category == "unknown_revision" and operation == "revert":
            return InvalidRevision(cmd[-1])
        return process_failure

    def _identity_env(self) -> Optional[Dict[str, str]]:
        """Author/committer environment for commits, if configured."""
        if not self.committer_name or not self.committer_email:
            return None
        return {
            "GIT_AUTHOR_NAME": self.committer_name,
            "GIT_AUTHOR_EMAIL": self.committer_email,
            "GIT_COMMITTER_NAME": self.committer_name,
            "GIT_COMMITTER_EMAIL": self.committer_email,
        }

    def _pathspec(self, paths: Sequence[str]) -> List[str]:
        """Validated `-- path...` suffix, empty when no paths are given."""
        if not paths:
            return []
        return ["--", *self.validate_paths(paths)]

    def validate_paths(self, paths: Sequence[str]) -> List[str]:
        """
        Normalise paths relative to the working tree.

        Raises:
            ValueError: If a path is empty, option-like or escapes the tree
        """
        validated = []
        for raw in paths:
            if not isinstance(raw, str) or not raw.strip():
                raise ValueError("Path must be a non-empty string")
            if raw.startswith("-"):
                raise ValueError(f"Path must not start with '-': {raw!r}")
            candidate = Path(raw)
            absolute = candidate if candidate.is_absolute() else self._root / candidate
            resolved = absolute.resolve()
            try:
                relative = resolved.relative_to(self._root)
            except ValueError:
                raise ValueError(f"Path escapes the working tree: {raw!r}")
            if relative == Path("."):
                raise ValueError("Path must name something inside the working tree")
            validated.append(relative.as_posix())
        return validated

    @staticmethod
    def _reject_option_like(value: str, error: VersioningError) -> None:
        if not value or value.startswith("-"):
            raise error

    @staticmethod
    def _parse_status(output: str) -> StatusResult:
        """Parse `git status --porcelain=v1 -z` output."""
        status = StatusResult()
        entries = output.split("\0")
        index = 0
        while index < len(entries):
            entry = entries[index]
            index += 1
            if len(entry) < 4:
                continue

            code, path = entry[:2], entry[3:]
            staged_code, worktree_code = code[0], code[1]

            if code == "??":
                status.untracked.append(path)
                status.created.append(path)
                continue

            if staged_code in "RC":
                # The origin path follows as its own NUL-terminated entry
                origin = entries[index] if index < len(entries) else ""
                index += 1
                status.staged.append(path)
                status.created.append(path)
                if staged_code == "R" and origin:
                    status.staged.append(origin)
                    status.deleted.append(origin)
                continue

            if staged_code in "MADTU":
                status.staged.append(path)
            if worktree_code in "MADTU":
                status.unstaged.append(path)

            if "D" in code:
                status.deleted.append(path)
            elif staged_code == "A":
                status.created.append(path)
            else:
                status.modified.append(path)

        return status


class _EmptyHistory(VersioningError):
    """Internal signal: the branch has no commits yet."""
