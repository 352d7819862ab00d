"""
GitHub API client infrastructure for profilehub.

Typed operations over the GitHub REST and Git Data APIs:
- Identity lookup
- Refs, commits, trees and blobs (for tree-based commits)
- Pull requests and forks
- File contents

The client holds no credentials; every call takes the token to use,
so one client can serve a cached token and a device flow token.
"""

import base64
import logging
from typing import Any, Dict, List, Optional

import requests

from ..domain.marketplace import ForkTarget, GitCommit, Identity, PullRequest, TreeEntry
from ..exit_codes import ForgeApiError, Unauthorized

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
GITHUB_RAW = "https://raw.githubusercontent.com"
DEFAULT_USER_AGENT = "profilehub"


def _error_message(response: requests.Response) -> str:
    """Extract the provider's error message, or a generic one."""
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get('message'):
        return str(data['message'])
    return f"HTTP {response.status_code}"


def _rate_limit_remaining(response: requests.Response) -> Optional[int]:
    try:
        return int(response.headers.get('X-RateLimit-Remaining', ''))
    except (ValueError, TypeError):
        return None


def encode_content(content: bytes) -> str:
    return base64.b64encode(content).decode('ascii')


def decode_content(content: str) -> bytes:
    # The contents API wraps base64 at 60 columns
    return base64.b64decode(''.join(content.split()))


class GitHubClient:
    """
    GitHub API client.

    Every failing call raises ForgeApiError carrying the HTTP status,
    so callers branch on ``error.status`` rather than message text.

    Example:
        client = GitHubClient()
        identity = client.get_user(token)
        sha = client.get_ref(token, "owner/repo", "heads/main")
    """

    def __init__(
        self,
        api_url: str = GITHUB_API,
        raw_url: str = GITHUB_RAW,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: int = 30,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize GitHubClient.

        Args:
            api_url: REST API base URL
            raw_url: Raw content host used for anonymous file probes
            user_agent: User-Agent header sent with every request
            timeout: HTTP request timeout in seconds
            session: Session to use (a new one by default)
        """
        self.api_url = api_url.rstrip('/')
        self.raw_url = raw_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            'Accept': 'application/vnd.github+json',
            'User-Agent': user_agent,
        })

    def _request(
        self,
        method: str,
        path: str,
        token: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Send one API request and return the decoded JSON body.

        Raises:
            ForgeApiError: On a non-2xx status or transport failure
        """
        headers = {'Authorization': f'Bearer {token}'}
        if body is not None:
            headers['Content-Type'] = 'application/json'

        logger.debug(f"GitHub API {method} {path}")
        try:
            response = self.session.request(
                method,
                f"{self.api_url}{path}",
                headers=headers,
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise ForgeApiError(method, path, None, str(e)) from e

        if not response.ok:
            raise ForgeApiError(
                method,
                path,
                response.status_code,
                _error_message(response),
                rate_limit_remaining=_rate_limit_remaining(response),
            )

        if response.status_code == 204 or not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise ForgeApiError(method, path, response.status_code, f"invalid JSON response: {e}") from e

    def _repo_request(
        self,
        method: str,
        repo: str,
        path: str,
        token: str,
        body: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return self._request(method, f"/repos/{repo}{path}", token, body)

    def get_user(self, token: str) -> Identity:
        """
        Resolve the account a token belongs to.

        Raises:
            Unauthorized: If the token is rejected (HTTP 401)
            ForgeApiError: On any other failure
        """
        try:
            data = self._request('GET', '/user', token)
        except ForgeApiError as e:
            if e.status == 401:
                raise Unauthorized() from e
            raise
        login = data.get('login') if isinstance(data, dict) else None
        if not login:
            raise ForgeApiError('GET', '/user', 200, "response has no login")
        return Identity(login=login)

    def get_ref(self, token: str, repo: str, ref: str) -> str:
        """
        Get the commit sha a ref points at.

        Args:
            ref: Ref without the ``refs/`` prefix, e.g. ``heads/main``
        """
        data = self._repo_request('GET', repo, f"/git/ref/{ref}", token)
        return data['object']['sha']

    def get_commit(self, token: str, repo: str, sha: str) -> GitCommit:
        data = self._repo_request('GET', repo, f"/git/commits/{sha}", token)
        return GitCommit(sha=data.get('sha', sha), tree_sha=data['tree']['sha'])

    def create_blob(self, token: str, repo: str, content: bytes) -> str:
        """Upload raw bytes as a blob and return its sha."""
        data = self._repo_request('POST', repo, "/git/blobs", token, {
            'content': encode_content(content),
            'encoding': 'base64',
        })
        return data['sha']

    def create_tree(self, token: str, repo: str, base_tree_sha: str, entries: List[TreeEntry]) -> str:
        data = self._repo_request('POST', repo, "/git/trees", token, {
            'base_tree': base_tree_sha,
            'tree': [entry.to_dict() for entry in entries],
        })
        return data['sha']

    def create_commit(
        self,
        token: str,
        repo: str,
        message: str,
        tree_sha: str,
        parent_shas: List[str],
    ) -> str:
        data = self._repo_request('POST', repo, "/git/commits", token, {
            'message': message,
            'tree': tree_sha,
            'parents': list(parent_shas),
        })
        return data['sha']

    def create_ref(self, token: str, repo: str, ref: str, sha: str) -> None:
        """Create ``refs/<ref>``; fails with 422 if it already exists."""
        self._repo_request('POST', repo, "/git/refs", token, {
            'ref': f"refs/{ref}",
            'sha': sha,
        })

    def update_ref(self, token: str, repo: str, ref: str, sha: str, force: bool = False) -> None:
        self._repo_request('PATCH', repo, f"/git/refs/{ref}", token, {
            'sha': sha,
            'force': force,
        })

    def create_or_update_ref(self, token: str, repo: str, ref: str, sha: str, force: bool = True) -> None:
        """
        Point ``refs/<ref>`` at ``sha``, creating it if needed.

        An existing ref (left behind by an earlier attempt) is moved
        instead of reported as an error.
        """
        try:
            self.create_ref(token, repo, ref, sha)
        except ForgeApiError as e:
            if e.status != 422:
                raise
            logger.debug(f"{ref} already exists on {repo}, updating it")
            self.update_ref(token, repo, ref, sha, force=force)

    def create_pull_request(
        self,
        token: str,
        repo: str,
        title: str,
        body: str,
        head: str,
        base: str,
    ) -> PullRequest:
        data = self._repo_request('POST', repo, "/pulls", token, {
            'title': title,
            'body': body,
            'head': head,
            'base': base,
        })
        return PullRequest.from_api_response(data)

    def get_repo(self, token: str, repo: str) -> Optional[ForkTarget]:
        """
        Get a repository, or None if it does not exist.
        """
        try:
            data = self._repo_request('GET', repo, "", token)
        except ForgeApiError as e:
            if e.status == 404:
                return None
            raise
        return ForkTarget(full_name=data.get('full_name', repo), is_fork=bool(data.get('fork', False)))

    def fork_repo(self, token: str, upstream: str) -> str:
        """
        Request a fork of ``upstream`` and return the fork's full name.

        GitHub creates forks asynchronously; the fork may not be
        readable for a while after this returns.
        """
        data = self._repo_request('POST', upstream, "/forks", token, {
            'default_branch_only': True,
        })
        return data['full_name']

    def get_file_contents(self, token: str, repo: str, path: str, ref: Optional[str] = None) -> bytes:
        """Fetch a file through the contents API and return its bytes."""
        suffix = f"?ref={ref}" if ref else ""
        data = self._repo_request('GET', repo, f"/contents/{path}{suffix}", token)
        if not isinstance(data, dict) or 'content' not in data:
            raise ForgeApiError('GET', f"/repos/{repo}/contents/{path}", 200, "not a file")
        return decode_content(data['content'])

    def file_exists(self, repo: str, path: str, branch: str = "main") -> bool:
        """
        Anonymously check that a public file exists.

        Returns:
            True if found, False on 404

        Raises:
            ForgeApiError: If the repository is not reachable at all
        """
        url = f"{self.raw_url}/{repo}/{branch}/{path}"
        try:
            response = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise ForgeApiError('GET', url, None, str(e)) from e

        if response.status_code == 404:
            return False
        if not response.ok:
            raise ForgeApiError('GET', url, response.status_code, f"Repository not accessible: {response.status_code}")
        return True
