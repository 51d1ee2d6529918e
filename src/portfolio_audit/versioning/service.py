"""
ContentVersioningService: wiring of the versioning components.

One gateway and one mutation gate per process; every component shares them.
Host applications call the operations on this class (or on the process-wide
instance from get_versioning_service()).
"""

import logging
import threading
from pathlib import Path
from typing import Callable, List, Optional

from ..server.utils.config_manager import (
    AuditConfig,
    AuditConfigManager,
    load_remote_identity,
)
from .branch_manager import BranchManager
from .change_analyzer import ChangeAnalyzer
from .change_commit_coordinator import ChangeCommitCoordinator
from .connectivity_probe import ConnectivityProbe
from .credential_injector import CredentialInjector
from .errors import VersioningError
from .history_reporter import HistoryReporter
from .models import (
    Actor,
    Branch,
    ChangeDescriptor,
    ChangeSuggestion,
    Commit,
    ConnectionTestResult,
    RecordChangeResult,
    RemoteIdentity,
    RevertResult,
    StatusResult,
    SwitchResult,
)
from .mutation_serializer import MutationSerializer
from .repository_gateway import RepositoryGateway
from .revert_controller import RevertController

logger = logging.getLogger(__name__)


class ContentVersioningService:
    """Caller-facing facade over one working tree and one remote."""

    def __init__(
        self,
        config: AuditConfig,
        identity_provider: Callable[[], RemoteIdentity] = load_remote_identity,
    ):
        """
        Args:
            config: Validated engine configuration
            identity_provider: Returns remote credentials at call time
        """
        assert config.repository_config is not None
        assert config.git_timeouts_config is not None
        repo = config.repository_config
        timeouts = config.git_timeouts_config

        self.config = config
        self.gateway = RepositoryGateway(
            Path(repo.working_tree_path),
            local_timeout=timeouts.git_local_timeout,
            remote_timeout=timeouts.git_remote_timeout,
            probe_timeout=timeouts.git_probe_timeout,
            committer_name=repo.committer_name,
            committer_email=repo.committer_email,
        )
        self.serializer = MutationSerializer(acquire_timeout=timeouts.gate_acquire_timeout)
        self.credential_injector = CredentialInjector(
            self.gateway, identity_provider, remote_name=repo.remote_name
        )
        self.coordinator = ChangeCommitCoordinator(
            self.gateway,
            self.serializer,
            self.credential_injector,
            target_branch=repo.target_branch,
        )
        self.revert_controller = RevertController(
            self.gateway, self.serializer, self.coordinator
        )
        self.history_reporter = HistoryReporter(self.gateway, max_entries=repo.history_limit)
        self.branch_manager = BranchManager(self.gateway, self.serializer)
        self.connectivity_probe = ConnectivityProbe(self.gateway, self.credential_injector)
        self.change_analyzer = ChangeAnalyzer(self.gateway)

        logger.info(f"Content versioning bound to {self.gateway.root}")

    # Mutations (through the gate)

    def record_change(self, descriptor: ChangeDescriptor) -> RecordChangeResult:
        return self.coordinator.record_change(descriptor)

    def commit_all_changes(self, message: str, actor_identity: str) -> RecordChangeResult:
        return self.coordinator.commit_all_changes(message, actor_identity)

    def revert_commit(self, commit_hash: str, actor_identity: str) -> RevertResult:
        return self.revert_controller.revert_commit(commit_hash, actor_identity)

    def switch_checkout(self, branch_name: str, actor: Actor) -> SwitchResult:
        return self.branch_manager.switch_checkout(branch_name, actor)

    # Reads (no gate)

    def get_status(self) -> StatusResult:
        return self.gateway.status()

    def get_history(self, limit: Optional[int] = None) -> List[Commit]:
        return self.history_reporter.get_history(
            limit if limit is not None else self.history_reporter.max_entries
        )

    def list_branches(self) -> List[Branch]:
        return self.branch_manager.list_branches()

    def test_connection(self) -> ConnectionTestResult:
        return self.connectivity_probe.test_connection()

    def analyze_changes(self) -> ChangeSuggestion:
        return self.change_analyzer.analyze_changes()

    def public_repo_url(self) -> Optional[str]:
        """Browser URL of the remote, None (logged) when it cannot be derived."""
        try:
            return self.credential_injector.public_url()
        except VersioningError as e:
            logger.warning(f"Could not derive public repository URL: {e}")
            return None


_versioning_service: Optional[ContentVersioningService] = None
_versioning_service_lock = threading.Lock()


def get_versioning_service() -> ContentVersioningService:
    """Get or create the global ContentVersioningService instance."""
    global _versioning_service
    with _versioning_service_lock:
        if _versioning_service is None:
            config = AuditConfigManager().load_or_create_config()
            _versioning_service = ContentVersioningService(config)
        return _versioning_service


def reset_versioning_service() -> None:
    """
    Reset the global ContentVersioningService singleton.

    Used by tests so each test binds a fresh working tree and gate.
    """
    global _versioning_service
    with _versioning_service_lock:
        _versioning_service = None
