"""
BranchManager: list local branches and switch the shared checkout.

Switching rewrites the working tree every other request reads from, so it is
limited to admin actors and runs inside the mutation gate.
"""

import logging
from typing import List

from .errors import InsufficientPrivilege, NoSuchBranch
from .models import Actor, Branch, SwitchResult
from .mutation_serializer import MutationSerializer
from .repository_gateway import RepositoryGateway

logger = logging.getLogger(__name__)


class BranchManager:
    def __init__(self, gateway: RepositoryGateway, serializer: MutationSerializer):
        self.gateway = gateway
        self.serializer = serializer

    def list_branches(self) -> List[Branch]:
        """Local branches with the checked-out one marked (no gate)."""
        return self.gateway.list_branches()

    def switch_checkout(self, branch_name: str, actor: Actor) -> SwitchResult:
        """
        Check out an existing local branch.

        Args:
            branch_name: Name of the local branch
            actor: Caller; must have the admin role

        Returns:
            SwitchResult with the new and previous branch names

        Raises:
            InsufficientPrivilege: If actor is not an admin
            NoSuchBranch: If no local branch has that name
            DirtyOrMissingChanges: If local changes would be overwritten
        """
        if actor is None or not actor.is_admin:
            identity = actor.identity if actor is not None else "anonymous"
            logger.warning(f"Branch switch to '{branch_name}' denied for {identity}")
            raise InsufficientPrivilege(f"{identity} may not switch branches")

        branch_name = (branch_name or "").strip()
        if not branch_name:
            raise NoSuchBranch(branch_name)

        with self.serializer.hold(f"switch_checkout:{branch_name}"):
            branches = self.gateway.list_branches()
            if not any(branch.name == branch_name for branch in branches):
                raise NoSuchBranch(branch_name)

            previous = self.gateway.current_branch()
            if previous == branch_name:
                return SwitchResult(current_branch=branch_name, previous_branch=previous)

            self.gateway.checkout(branch_name)

        logger.info(f"{actor.identity} switched checkout from '{previous}' to '{branch_name}'")
        return SwitchResult(current_branch=branch_name, previous_branch=previous)
