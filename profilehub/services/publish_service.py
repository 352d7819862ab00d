"""
Publish service for profilehub.

Publishes a local profile to the marketplace as a pull request:

1. Use cached git credentials if there are any, else the device flow.
2. Read the marketplace index, replace this profile's entry.
3. Write profile.json, snapshot.zip and index.json as one commit
   on a submission branch, directly or through a fork.
4. Open a pull request against the marketplace.

Cached credentials often cannot write to the marketplace. A 403 on
the first, direct attempt switches to the device flow and retries
once through a fork; every other failure ends the publish.
"""

import dataclasses
import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Generator, Optional

from ..domain.marketplace import (
    INDEX_PATH,
    IndexEntry,
    PublishPayload,
    PullRequest,
    RepoIndex,
    TreeEntry,
    build_pr_body,
    owner_of,
)
from ..domain.profile import ProfileMetadata
from ..exit_codes import ForgeApiError, InvalidProfile
from ..infra.credential_source import CredentialSource
from ..infra.device_auth import DeviceAuthenticator, DeviceCode, DeviceFlowConfig
from ..infra.github_client import GitHubClient
from ..infra.retry import Clock
from .fork_service import ForkService

logger = logging.getLogger(__name__)


@dataclass
class PublishResult:
    """Result of a publish."""
    pull_request: PullRequest
    author: str
    used_fork: bool
    attempts: int = 1

    @property
    def url(self) -> str:
        return self.pull_request.url

    def to_dict(self) -> Dict[str, Any]:
        return {
            'url': self.url,
            'author': self.author,
            'used_fork': self.used_fork,
            'attempts': self.attempts,
        }


def is_privilege_failure(error: Exception) -> bool:
    """True if ``error`` means the token cannot write to the marketplace."""
    return (
        isinstance(error, ForgeApiError)
        and error.is_forbidden
        and not error.is_rate_limited
    )


class PublishService:
    """
    Drives the end-to-end publish of one profile.

    Yields progress messages, returns PublishResult.

    Example:
        service = PublishService.from_config(config, on_device_code=show_code)
        for message in service.publish("minimal", metadata, snapshot):
            print(message)
        print(service.last_result.url)
    """

    def __init__(
        self,
        client: GitHubClient,
        credentials: CredentialSource,
        authenticator: DeviceAuthenticator,
        forks: ForkService,
        repository: str,
        base_branch: str = "main",
        clock: Optional[Clock] = None,
        on_device_code: Optional[Callable[[DeviceCode], None]] = None,
    ):
        """
        Initialize PublishService.

        Args:
            client: GitHub API client
            credentials: Source of cached tokens
            authenticator: Device flow used when no usable token is cached
            forks: Fork manager for fork-routed publishes
            repository: Marketplace repository (owner/repo)
            base_branch: Marketplace branch pull requests target
            clock: Time source for publish timestamps
            on_device_code: Called with the code the user must enter
        """
        self.client = client
        self.credentials = credentials
        self.authenticator = authenticator
        self.forks = forks
        self.repository = repository
        self.base_branch = base_branch
        self.clock = clock or Clock()
        self.on_device_code = on_device_code
        self.last_result: Optional[PublishResult] = None
        self.write_attempts = 0

    @classmethod
    def from_config(
        cls,
        config: Dict[str, Any],
        on_device_code: Optional[Callable[[DeviceCode], None]] = None,
        clock: Optional[Clock] = None,
    ) -> 'PublishService':
        """Wire up a service from a loaded configuration."""
        github = config.get('github', {})
        marketplace = config.get('marketplace', {})
        clock = clock or Clock()

        client = GitHubClient(
            api_url=github.get('api_url', 'https://api.github.com'),
            raw_url=github.get('raw_url', 'https://raw.githubusercontent.com'),
            user_agent=github.get('user_agent', 'profilehub'),
            timeout=github.get('timeout_seconds', 30),
        )
        credentials = CredentialSource(
            host=github.get('credential_host', 'github.com'),
            timeout=config.get('credentials', {}).get('timeout_seconds', 10),
        )
        authenticator = DeviceAuthenticator(DeviceFlowConfig.from_config(config), clock=clock)

        return cls(
            client,
            credentials,
            authenticator,
            ForkService.from_config(client, config, clock=clock),
            repository=marketplace.get('repository', ''),
            base_branch=marketplace.get('base_branch', 'main'),
            clock=clock,
            on_device_code=on_device_code,
        )

    def publish(
        self,
        profile_name: str,
        metadata: ProfileMetadata,
        snapshot_bytes: bytes,
    ) -> Generator[str, None, PublishResult]:
        """
        Publish a profile.

        Local checks run immediately, before any network call.

        Args:
            profile_name: Name the profile is published under
            metadata: Parsed profile.json
            snapshot_bytes: The profile's snapshot.zip

        Raises:
            InvalidProfile: If the profile has no content or no snapshot
        """
        metadata.validate()
        if not snapshot_bytes:
            raise InvalidProfile("Profile snapshot not found.")
        if metadata.name != profile_name:
            metadata = dataclasses.replace(metadata, name=profile_name)

        self.last_result = None
        self.write_attempts = 0
        return self._publish(metadata, snapshot_bytes)

    def _publish(self, metadata: ProfileMetadata, snapshot_bytes: bytes) -> Generator[str, None, PublishResult]:
        yield "Checking GitHub credentials..."
        token = self.credentials.get_token()
        use_fork = False
        if token is None:
            yield "No cached GitHub credentials found, falling back to browser authentication"
            token = self._device_token()
            use_fork = True

        yield "Verifying identity..."
        author = self.client.get_user(token).login
        yield f"Authenticated as {author}"

        try:
            pr = yield from self._do_publish(token, author, metadata, snapshot_bytes, use_fork)
        except ForgeApiError as e:
            if use_fork or not is_privilege_failure(e):
                raise
            logger.debug(f"Direct publish refused: {e}")
            yield "Credentials lack write access to the marketplace, falling back to browser authentication"

            token = self._device_token()
            use_fork = True
            author = self.client.get_user(token).login
            yield f"Authenticated as {author}"
            yield "Retrying with fork-based pull request..."
            pr = yield from self._do_publish(token, author, metadata, snapshot_bytes, use_fork)

        result = PublishResult(
            pull_request=pr,
            author=author,
            used_fork=use_fork,
            attempts=self.write_attempts,
        )
        self.last_result = result
        yield f"Pull request created: {pr.url}"
        return result

    def _device_token(self) -> str:
        return self.authenticator.authenticate(on_code=self.on_device_code)

    def fetch_index(self, token: str) -> RepoIndex:
        """
        Read the marketplace index from upstream.

        A marketplace without an index.json yet yields an empty index.
        """
        try:
            raw = self.client.get_file_contents(token, self.repository, INDEX_PATH, ref=self.base_branch)
        except ForgeApiError as e:
            if e.status == 404:
                return RepoIndex()
            raise

        try:
            return RepoIndex.from_json(raw.decode('utf-8'))
        except ValueError as e:
            raise ForgeApiError(
                'GET', f"/repos/{self.repository}/contents/{INDEX_PATH}", 200,
                f"index.json is not valid: {e}",
            ) from e

    def build_payload(
        self,
        author: str,
        metadata: ProfileMetadata,
        snapshot_bytes: bytes,
        index: RepoIndex,
    ) -> PublishPayload:
        """Build the files for one attempt, with the index entry replaced."""
        published_at = self.clock.timestamp()

        profile_record = metadata.to_dict()
        profile_record['author'] = author
        profile_record['publishedAt'] = published_at

        entry = IndexEntry.from_metadata(author, metadata, published_at)
        updated = index.upsert(entry, updated_at=self.clock.timestamp())

        return PublishPayload(
            author=author,
            name=metadata.name,
            profile_json=json.dumps(profile_record, indent=2),
            snapshot_bytes=snapshot_bytes,
            index_json=updated.to_json(),
        )

    def _do_publish(
        self,
        token: str,
        author: str,
        metadata: ProfileMetadata,
        snapshot_bytes: bytes,
        use_fork: bool,
    ) -> Generator[str, None, PullRequest]:
        """One attempt: index, blobs, tree, commit, branch, pull request."""
        self.write_attempts += 1
        upstream = self.repository

        yield "Fetching marketplace index..."
        index = self.fetch_index(token)
        payload = self.build_payload(author, metadata, snapshot_bytes, index)

        if use_fork:
            yield f"Ensuring fork of {upstream}..."
            target = self.forks.ensure_fork(token, upstream)
        else:
            target = upstream

        # The parent is always upstream's head, even when writing to a fork
        base_sha = self.client.get_ref(token, upstream, f"heads/{self.base_branch}")
        base_tree = self.client.get_commit(token, upstream, base_sha).tree_sha

        yield f"Uploading profile files to {target}..."
        profile_sha = self.client.create_blob(token, target, payload.profile_json.encode('utf-8'))
        snapshot_sha = self.client.create_blob(token, target, payload.snapshot_bytes)
        index_sha = self.client.create_blob(token, target, payload.index_json.encode('utf-8'))

        tree_sha = self.client.create_tree(token, target, base_tree, [
            TreeEntry(path=payload.profile_path, sha=profile_sha),
            TreeEntry(path=payload.snapshot_path, sha=snapshot_sha),
            TreeEntry(path=INDEX_PATH, sha=index_sha),
        ])
        commit_sha = self.client.create_commit(token, target, payload.commit_message, tree_sha, [base_sha])

        yield f"Updating branch {payload.branch}..."
        self.client.create_or_update_ref(token, target, f"heads/{payload.branch}", commit_sha, force=True)

        head = f"{owner_of(target)}:{payload.branch}" if use_fork else payload.branch
        yield "Creating pull request..."
        return self.client.create_pull_request(
            token,
            upstream,
            title=payload.commit_message,
            body=build_pr_body(author, metadata.name, metadata),
            head=head,
            base=self.base_branch,
        )
