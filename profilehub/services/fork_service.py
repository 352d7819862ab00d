"""
Fork management for profilehub.

Users without write access to the marketplace publish through a fork
they own. Forks are created on demand and GitHub builds them
asynchronously, so creation is followed by a bounded readiness poll.
"""

import logging
from typing import Any, Dict, Optional

from ..domain.marketplace import repo_name_of
from ..exit_codes import ForgeApiError, ForkTimeout
from ..infra.github_client import GitHubClient
from ..infra.retry import Clock, RetryPolicy

logger = logging.getLogger(__name__)

# Statuses GitHub returns for a fork that exists but is still being built
NOT_READY_STATUSES = (404, 409)


class ForkService:
    """
    Ensures the authenticated user has a usable fork of a repository.

    Example:
        forks = ForkService(client)
        fork = forks.ensure_fork(token, "owner/marketplace")
        # -> "me/marketplace"
    """

    def __init__(
        self,
        client: GitHubClient,
        base_branch: str = "main",
        poll_attempts: int = 30,
        poll_interval: float = 2,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize ForkService.

        Args:
            client: GitHub API client
            base_branch: Branch whose ref signals the fork is ready
            poll_attempts: Readiness checks before giving up
            poll_interval: Seconds between readiness checks
            clock: Time source (real time by default)
        """
        self.client = client
        self.base_branch = base_branch
        self.poll_attempts = poll_attempts
        self.poll_interval = poll_interval
        self.clock = clock or Clock()

    @classmethod
    def from_config(cls, client: GitHubClient, config: Dict[str, Any], clock: Optional[Clock] = None) -> 'ForkService':
        fork = config.get('fork', {})
        return cls(
            client,
            base_branch=config.get('marketplace', {}).get('base_branch', 'main'),
            poll_attempts=fork.get('poll_attempts', 30),
            poll_interval=fork.get('poll_interval', 2),
            clock=clock,
        )

    def _is_ready(self, token: str, fork: str) -> bool:
        try:
            self.client.get_ref(token, fork, f"heads/{self.base_branch}")
            return True
        except ForgeApiError as e:
            if e.status in NOT_READY_STATUSES:
                return False
            raise

    def wait_until_ready(self, token: str, fork: str) -> str:
        """
        Poll until the fork's base branch resolves.

        Raises:
            ForkTimeout: If the fork is not ready within the attempt budget
        """
        policy = RetryPolicy(max_attempts=self.poll_attempts, interval=self.poll_interval)
        for attempt in policy.attempts(self.clock):
            if self._is_ready(token, fork):
                logger.debug(f"Fork {fork} ready after {attempt} checks")
                return fork

        raise ForkTimeout()

    def ensure_fork(self, token: str, upstream: str) -> str:
        """
        Return the user's fork of ``upstream``, creating it if needed.

        An existing repository with the fork's name is reused only if it
        really is a fork; a duplicate fork is never requested.

        Returns:
            Full name of the fork, e.g. ``me/marketplace``
        """
        identity = self.client.get_user(token)
        candidate = f"{identity.login}/{repo_name_of(upstream)}"

        existing = self.client.get_repo(token, candidate)
        if existing is not None and existing.is_fork:
            logger.debug(f"Reusing existing fork {existing.full_name}")
            return existing.full_name

        fork = self.client.fork_repo(token, upstream)
        logger.debug(f"Requested fork of {upstream} as {fork}")
        return self.wait_until_ready(token, fork)
