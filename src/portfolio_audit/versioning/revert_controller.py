"""
RevertController: undo one commit and publish the undo.

Phases:
    IDLE -> APPLYING -> PUSHING_AFTER_REVERT -> DONE
                     \\-> ABORTING -> FAILED
    PUSHING_AFTER_REVERT -> FAILED

Each transition is its own method returning the next phase. The whole run
happens inside the mutation gate, which is released on every exit path.
A conflicting revert is aborted so the working tree is left clean; a push
failure keeps the revert commit and surfaces PushFailed.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional

from ..server.logging_utils import format_error_log, get_log_extra
from .change_commit_coordinator import ChangeCommitCoordinator
from .errors import (
    Conflict,
    InvalidRevision,
    PushFailed,
    RevertConflict,
    VersioningError,
)
from .models import RevertResult
from .mutation_serializer import MutationSerializer
from .repository_gateway import COMMIT_HASH_PATTERN, RepositoryGateway

logger = logging.getLogger(__name__)


class RevertPhase(str, Enum):
    IDLE = "idle"
    APPLYING = "applying"
    PUSHING_AFTER_REVERT = "pushing_after_revert"
    ABORTING = "aborting"
    DONE = "done"
    FAILED = "failed"


TERMINAL_PHASES = (RevertPhase.DONE, RevertPhase.FAILED)


@dataclass
class RevertAttempt:
    """Transient state of one revert request."""

    target_hash: str
    phase: RevertPhase = RevertPhase.IDLE
    revert_commit_hash: Optional[str] = None
    error: Optional[VersioningError] = None


class RevertController:
    """Runs the revert state machine against the shared working tree."""

    def __init__(
        self,
        gateway: RepositoryGateway,
        serializer: MutationSerializer,
        coordinator: ChangeCommitCoordinator,
    ):
        """
        Args:
            gateway: Repository gateway of the shared working tree
            serializer: Process-wide mutation gate
            coordinator: Publishes the revert commit (same push path as
                         content changes)
        """
        self.gateway = gateway
        self.serializer = serializer
        self.coordinator = coordinator
        self._transitions: Dict[RevertPhase, Callable[[RevertAttempt], RevertPhase]] = {
            RevertPhase.IDLE: self.begin,
            RevertPhase.APPLYING: self.apply,
            RevertPhase.PUSHING_AFTER_REVERT: self.push,
            RevertPhase.ABORTING: self.abort,
        }

    def revert_commit(self, commit_hash: str, actor_identity: str) -> RevertResult:
        """
        Create a commit undoing `commit_hash` and push it.

        Args:
            commit_hash: Hex hash (abbreviated or full) of the commit to undo
            actor_identity: Who requested the revert; recorded in the log

        Raises:
            InvalidRevision: If commit_hash is malformed or unknown
            RevertConflict: If the revert conflicted (working tree restored)
            PushFailed: If the revert commit exists locally but was not pushed
            VersioningError: Any other failure while applying the revert
        """
        commit_hash = (commit_hash or "").strip()
        if not COMMIT_HASH_PATTERN.match(commit_hash):
            raise InvalidRevision(commit_hash)

        attempt = RevertAttempt(target_hash=commit_hash)
        with self.serializer.hold(f"revert:{commit_hash[:12]}"):
            self.run(attempt)

        if attempt.phase == RevertPhase.FAILED:
            assert attempt.error is not None
            logger.warning(
                f"Revert of {commit_hash[:7]} requested by {actor_identity} failed: "
                f"{type(attempt.error).__name__}"
            )
            raise attempt.error

        logger.info(
            f"{actor_identity} reverted {commit_hash[:7]} "
            f"as {attempt.revert_commit_hash[:7]}"  # type: ignore[index]
        )
        return RevertResult(
            reverted_hash=commit_hash,
            revert_commit_hash=attempt.revert_commit_hash,  # type: ignore[arg-type]
            pushed=True,
        )

    def run(self, attempt: RevertAttempt) -> RevertAttempt:
        """Drive `attempt` to a terminal phase. The caller holds the gate."""
        while attempt.phase not in TERMINAL_PHASES:
            previous = attempt.phase
            attempt.phase = self._transitions[previous](attempt)
            logger.debug(
                f"Revert {attempt.target_hash[:7]}: {previous.value} -> {attempt.phase.value}"
            )
        return attempt

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def begin(self, attempt: RevertAttempt) -> RevertPhase:
        return RevertPhase.APPLYING

    def apply(self, attempt: RevertAttempt) -> RevertPhase:
        """Run `git revert --no-edit`; any failure leads to ABORTING."""
        try:
            attempt.revert_commit_hash = self.gateway.revert(attempt.target_hash)
        except Conflict as e:
            logger.warning(
                format_error_log(
                    "VCS-REVERT-001",
                    "Revert conflicted, aborting",
                    target=attempt.target_hash[:12],
                ),
                extra=get_log_extra("VCS-REVERT-001"),
            )
            attempt.error = RevertConflict(attempt.target_hash, cause=e)
            return RevertPhase.ABORTING
        except VersioningError as e:
            attempt.error = e
            return RevertPhase.ABORTING
        return RevertPhase.PUSHING_AFTER_REVERT

    def abort(self, attempt: RevertAttempt) -> RevertPhase:
        """Restore the pre-revert tree. Abort errors are logged, not raised."""
        try:
            if isinstance(attempt.error, RevertConflict) or self.gateway.revert_in_progress():
                self.gateway.revert_abort()
        except VersioningError as e:
            logger.error(
                format_error_log(
                    "VCS-REVERT-002",
                    f"revert --abort failed: {e}",
                    target=attempt.target_hash[:12],
                ),
                extra=get_log_extra("VCS-REVERT-002"),
            )
        return RevertPhase.FAILED

    def push(self, attempt: RevertAttempt) -> RevertPhase:
        try:
            self.coordinator.push_commit(attempt.revert_commit_hash)  # type: ignore[arg-type]
        except PushFailed as e:
            attempt.error = e
            return RevertPhase.FAILED
        return RevertPhase.DONE
