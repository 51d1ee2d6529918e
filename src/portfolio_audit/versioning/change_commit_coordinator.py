"""
ChangeCommitCoordinator: one content mutation -> one commit -> push.

Flow (all inside the mutation gate):
    1. status (restricted to the change's paths when given)
    2. no changes -> no-op result
    3. add + commit with a structured message      -> CommitFailed on error
    4. authenticated push of HEAD to the branch    -> PushFailed on error

A failed push never rolls back the commit: the content change is durable
locally and the caller receives PushFailed carrying the commit hash.
"""

import logging
from typing import Optional, Sequence

from ..server.logging_utils import format_error_log, get_log_extra
from .credential_injector import CredentialInjector
from .errors import (
    CommitFailed,
    DirtyOrMissingChanges,
    NoSuchBranch,
    PushFailed,
    VersioningError,
)
from .models import ACTION_VERBS, CI_SKIP_MARKER, ChangeDescriptor, RecordChangeResult
from .mutation_serializer import MutationSerializer
from .repository_gateway import RepositoryGateway

logger = logging.getLogger(__name__)


def _single_line(value: str) -> str:
    """Collapse whitespace so caller text cannot add message lines or trailers."""
    return " ".join(str(value).split())


def format_change_message(descriptor: ChangeDescriptor) -> str:
    """
    Commit message for a content change.

    Examples:
        >>> format_change_message(ChangeDescriptor("create", "blog", "first-post", "admin@example.com"))
        "blog: 'first-post' oluşturuldu by admin@example.com. [ci skip]"
    """
    return (
        f"{_single_line(descriptor.content_type)}: '{_single_line(descriptor.slug)}' "
        f"{ACTION_VERBS[descriptor.action]} by {_single_line(descriptor.actor_identity)}. "
        f"{CI_SKIP_MARKER}"
    )


def format_source_message(message: str, actor_identity: str) -> str:
    """Commit message for a bulk/manual commit of every pending change."""
    return (
        f"source: {_single_line(message)} ({_single_line(actor_identity)}) "
        f"{CI_SKIP_MARKER}"
    )


class ChangeCommitCoordinator:
    """Records content mutations as commits and pushes them."""

    def __init__(
        self,
        gateway: RepositoryGateway,
        serializer: MutationSerializer,
        credential_injector: CredentialInjector,
        target_branch: Optional[str] = None,
    ):
        """
        Args:
            gateway: Repository gateway of the shared working tree
            serializer: Process-wide mutation gate
            credential_injector: Builds the authenticated push URL
            target_branch: Remote branch to push to; None follows the
                           currently checked-out branch
        """
        self.gateway = gateway
        self.serializer = serializer
        self.credential_injector = credential_injector
        self.target_branch = target_branch

    def record_change(self, descriptor: ChangeDescriptor) -> RecordChangeResult:
        """
        Commit and push the working-tree delta produced by a content mutation.

        The caller must have finished its storage write before calling, so
        the commit matches the persisted record.

        Returns:
            RecordChangeResult; committed=False when there was nothing to commit

        Raises:
            ValueError: If the descriptor is incomplete or a path is invalid
            CommitFailed: If staging or committing failed (nothing pushed)
            PushFailed: If the commit was created but could not be pushed
        """
        for field_name in ("content_type", "slug", "actor_identity"):
            if not _single_line(getattr(descriptor, field_name)):
                raise ValueError(f"ChangeDescriptor.{field_name} must not be empty")

        message = format_change_message(descriptor)
        owner = f"record_change:{descriptor.content_type}/{descriptor.slug}"
        return self._commit_and_push(owner, message, descriptor.paths)

    def commit_all_changes(self, message: str, actor_identity: str) -> RecordChangeResult:
        """
        Commit every pending change with a caller-supplied message and push.

        Raises:
            ValueError: If message is empty
            CommitFailed: If staging or committing failed
            PushFailed: If the commit was created but could not be pushed
        """
        if not message or not message.strip():
            raise ValueError("Commit message must not be empty")
        commit_message = format_source_message(message, actor_identity or "unknown")
        return self._commit_and_push("commit_all_changes", commit_message, ())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _commit_and_push(
        self, owner: str, message: str, paths: Sequence[str]
    ) -> RecordChangeResult:
        with self.serializer.hold(owner):
            status = self.gateway.status(paths)
            if status.is_clean:
                logger.info(f"{owner}: no changes to commit, skipping")
                return RecordChangeResult(committed=False, pushed=False)

            commit_paths = status.changed_paths if paths else []
            try:
                self.gateway.add(commit_paths)
                commit_hash = self.gateway.commit(message, commit_paths)
            except DirtyOrMissingChanges:
                # Status showed a delta that staging normalised away
                logger.info(f"{owner}: nothing staged after add, skipping")
                return RecordChangeResult(committed=False, pushed=False)
            except VersioningError as e:
                logger.error(
                    format_error_log("VCS-COMMIT-001", f"{owner}: commit failed: {e}"),
                    extra=get_log_extra("VCS-COMMIT-001"),
                )
                raise CommitFailed(f"{owner}: commit failed", cause=e) from e

            logger.info(f"{owner}: committed {commit_hash[:7]} ({status.count} path(s))")
            self.push_commit(commit_hash)
            return RecordChangeResult(
                committed=True, pushed=True, commit_hash=commit_hash, message=message
            )

    def push_commit(self, commit_hash: str) -> None:
        """
        Push HEAD, translating any failure into PushFailed(commit_hash).

        The caller must hold the mutation gate.
        """
        try:
            branch = self.resolve_push_branch()
            self.gateway.push(self.credential_injector.build_authenticated_remote(), branch)
        except VersioningError as e:
            logger.error(
                format_error_log(
                    "VCS-PUSH-001",
                    "Commit retained locally, push failed",
                    commit=commit_hash[:12],
                    cause=type(e).__name__,
                ),
                extra=get_log_extra("VCS-PUSH-001"),
            )
            raise PushFailed(commit_hash, cause=e) from e

        logger.info(f"Pushed {commit_hash[:7]} to '{branch}'")

    def resolve_push_branch(self) -> str:
        """Configured target branch, or the checked-out branch."""
        if self.target_branch:
            return self.target_branch
        current = self.gateway.current_branch()
        if not current:
            raise NoSuchBranch("HEAD")
        return current
