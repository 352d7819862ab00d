"""
Shared test doubles for profilehub.

FakeClock records sleeps instead of sleeping. FakeGitHubClient is an
in-memory stand-in for GitHubClient with the same method signatures.
"""

from datetime import datetime, timedelta, timezone

import pytest

from profilehub.domain.marketplace import (
    ForkTarget,
    GitCommit,
    Identity,
    PullRequest,
    repo_name_of,
)
from profilehub.domain.profile import ProfileMetadata
from profilehub.exit_codes import ForgeApiError, Unauthorized

UPSTREAM = "profilehub/marketplace"
BASE_SHA = "base-sha"
BASE_TREE = "base-tree"


class FakeClock:
    """Clock that advances only when slept on."""

    def __init__(self, start=None):
        self.start = start or datetime(2026, 3, 1, 12, 0, 0, tzinfo=timezone.utc)
        self.elapsed = 0.0
        self.sleeps = []

    def now(self):
        return self.start + timedelta(seconds=self.elapsed)

    def monotonic(self):
        return self.elapsed

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.elapsed += seconds

    def timestamp(self):
        return self.now().isoformat(timespec='milliseconds').replace('+00:00', 'Z')

    @property
    def total_slept(self):
        return sum(self.sleeps)


class FakeGitHubClient:
    """
    In-memory forge.

    Attributes:
        users: token -> login
        forbidden: tokens whose writes fail with 403
        rate_limited: tokens whose writes fail with a rate-limit 403
        fork_pending_checks: readiness checks a new fork fails before it
            resolves (None means it never resolves)
        calls: (method, repo) for every call, in order
    """

    def __init__(self, upstream=UPSTREAM, users=None, index_json=None):
        self.upstream = upstream
        self.users = dict(users or {})
        self.forbidden = set()
        self.rate_limited = set()
        self.fork_pending_checks = 0

        self.repos = {upstream: ForkTarget(upstream, is_fork=False)}
        self.files = {}
        if index_json is not None:
            self.files[(upstream, 'index.json')] = index_json.encode('utf-8')
        self.refs = {(upstream, 'heads/main'): BASE_SHA}
        self.commits = {BASE_SHA: GitCommit(BASE_SHA, BASE_TREE)}
        self.blobs = {}
        self.trees = {}
        self.commit_messages = {}
        self.commit_parents = {}
        self.ref_updates = []
        self.pull_requests = []
        self.forks_requested = []
        self.calls = []
        self._seq = 0

    def _next(self, prefix):
        self._seq += 1
        return f"{prefix}-{self._seq}"

    def _record(self, method, repo=None):
        self.calls.append((method, repo))

    def _check_write(self, token, repo, path):
        if token in self.rate_limited:
            raise ForgeApiError('POST', f"/repos/{repo}{path}", 403,
                                "API rate limit exceeded", rate_limit_remaining=0)
        if token in self.forbidden:
            raise ForgeApiError('POST', f"/repos/{repo}{path}", 403,
                                "Resource not accessible by integration", rate_limit_remaining=4999)

    def get_user(self, token):
        self._record('get_user')
        if token not in self.users:
            raise Unauthorized()
        return Identity(self.users[token])

    def get_ref(self, token, repo, ref):
        self._record('get_ref', repo)
        target = self.repos.get(repo)
        if target is not None and target.is_fork and (repo, ref) not in self.refs:
            if self.fork_pending_checks is not None:
                if self.fork_pending_checks <= 0:
                    self.refs[(repo, ref)] = BASE_SHA
                else:
                    self.fork_pending_checks -= 1
        if (repo, ref) not in self.refs:
            raise ForgeApiError('GET', f"/repos/{repo}/git/ref/{ref}", 404, "Not Found")
        return self.refs[(repo, ref)]

    def get_commit(self, token, repo, sha):
        self._record('get_commit', repo)
        return self.commits[sha]

    def create_blob(self, token, repo, content):
        self._record('create_blob', repo)
        self._check_write(token, repo, "/git/blobs")
        sha = self._next('blob')
        self.blobs[sha] = content
        return sha

    def create_tree(self, token, repo, base_tree_sha, entries):
        self._record('create_tree', repo)
        self._check_write(token, repo, "/git/trees")
        sha = self._next('tree')
        self.trees[sha] = (repo, base_tree_sha, list(entries))
        return sha

    def create_commit(self, token, repo, message, tree_sha, parent_shas):
        self._record('create_commit', repo)
        self._check_write(token, repo, "/git/commits")
        sha = self._next('commit')
        self.commits[sha] = GitCommit(sha, tree_sha)
        self.commit_messages[sha] = message
        self.commit_parents[sha] = list(parent_shas)
        return sha

    def create_or_update_ref(self, token, repo, ref, sha, force=True):
        self._record('create_or_update_ref', repo)
        self._check_write(token, repo, "/git/refs")
        existed = (repo, ref) in self.refs
        self.refs[(repo, ref)] = sha
        self.ref_updates.append((repo, ref, sha, existed))

    def create_pull_request(self, token, repo, title, body, head, base):
        self._record('create_pull_request', repo)
        number = len(self.pull_requests) + 1
        self.pull_requests.append({
            'repo': repo, 'title': title, 'body': body, 'head': head, 'base': base,
        })
        return PullRequest(url=f"https://github.com/{repo}/pull/{number}", number=number, head=head)

    def get_repo(self, token, repo):
        self._record('get_repo', repo)
        return self.repos.get(repo)

    def fork_repo(self, token, upstream):
        self._record('fork_repo', upstream)
        full_name = f"{self.users[token]}/{repo_name_of(upstream)}"
        self.repos[full_name] = ForkTarget(full_name, is_fork=True)
        self.forks_requested.append(full_name)
        return full_name

    def get_file_contents(self, token, repo, path, ref=None):
        self._record('get_file_contents', repo)
        if (repo, path) not in self.files:
            raise ForgeApiError('GET', f"/repos/{repo}/contents/{path}", 404, "Not Found")
        return self.files[(repo, path)]

    def committed_file(self, commit_sha, path):
        """Bytes of ``path`` in the tree of a commit created here."""
        tree_sha = self.commits[commit_sha].tree_sha
        _, _, entries = self.trees[tree_sha]
        for entry in entries:
            if entry.path == path:
                return self.blobs[entry.sha]
        raise KeyError(path)

    @property
    def last_commit(self):
        return self.ref_updates[-1][2]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def metadata():
    return ProfileMetadata(
        name='minimal',
        version='1.2.0',
        description='A minimal profile',
        tags=('starter',),
        contents={'commands': ('review', 'ship'), 'hooks': ()},
    )
