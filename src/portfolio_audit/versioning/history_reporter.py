"""Read-only, bounded commit history."""

import logging
from typing import List

from .models import Commit
from .repository_gateway import RepositoryGateway

logger = logging.getLogger(__name__)

MAX_HISTORY = 50


class HistoryReporter:
    """Queries the log fresh on every call; never takes the mutation gate."""

    def __init__(self, gateway: RepositoryGateway, max_entries: int = MAX_HISTORY):
        self.gateway = gateway
        self.max_entries = min(max_entries, MAX_HISTORY) if max_entries > 0 else MAX_HISTORY

    def get_history(self, limit: int = MAX_HISTORY) -> List[Commit]:
        """
        Get the newest commits of the current branch.

        Args:
            limit: Requested number of entries, clamped to the configured maximum

        Returns:
            At most min(limit, max_entries) commits, newest first; an empty
            list for a repository without commits
        """
        effective = max(0, min(int(limit), self.max_entries))
        commits = self.gateway.log(effective)
        logger.debug(f"History query returned {len(commits)} of {effective} requested")
        return commits
