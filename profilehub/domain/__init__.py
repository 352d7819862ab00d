"""
Domain layer for profilehub.

Contains pure domain objects with no I/O or side effects:
- ProfileMetadata: A profile's profile.json
- RepoIndex / IndexEntry: The marketplace index.json
- Identity, PullRequest, ForkTarget, PublishPayload: Publish workflow values
"""

from .profile import ProfileMetadata, ProfileInfo, format_contents
from .marketplace import (
    Identity,
    PullRequest,
    ForkTarget,
    GitCommit,
    TreeEntry,
    IndexEntry,
    RepoIndex,
    PublishPayload,
    build_pr_body,
)

__all__ = [
    'ProfileMetadata',
    'ProfileInfo',
    'format_contents',
    'Identity',
    'PullRequest',
    'ForkTarget',
    'GitCommit',
    'TreeEntry',
    'IndexEntry',
    'RepoIndex',
    'PublishPayload',
    'build_pr_body',
]
