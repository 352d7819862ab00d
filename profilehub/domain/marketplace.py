"""
Marketplace domain objects for profilehub.

The marketplace is a git repository holding published profiles:

    index.json
    profiles/<author>/<name>/profile.json
    profiles/<author>/<name>/snapshot.zip

These objects carry no I/O; the forge client and publish service
move them over the wire.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .profile import ProfileMetadata, format_contents

INDEX_PATH = "index.json"
PROFILE_FILENAME = "profile.json"
SNAPSHOT_FILENAME = "snapshot.zip"
BLOB_MODE = "100644"


def profile_dir(author: str, name: str) -> str:
    return f"profiles/{author}/{name}"


def submission_branch(author: str, name: str) -> str:
    return f"profile-submission/{author}/{name}"


def commit_message(author: str, name: str) -> str:
    return f"Add profile: {author}/{name}"


def repo_name_of(full_name: str) -> str:
    """Return the repository part of ``owner/repo``."""
    return full_name.split('/', 1)[1]


def owner_of(full_name: str) -> str:
    """Return the owner part of ``owner/repo``."""
    return full_name.split('/', 1)[0]


@dataclass(frozen=True)
class Identity:
    """The account a token belongs to."""
    login: str


@dataclass(frozen=True)
class PullRequest:
    """A pull request opened on the marketplace."""
    url: str
    number: Optional[int] = None
    head: Optional[str] = None

    @classmethod
    def from_api_response(cls, data: Dict[str, Any]) -> 'PullRequest':
        head = data.get('head') or {}
        return cls(
            url=data.get('html_url') or data.get('url', ''),
            number=data.get('number'),
            head=head.get('label') if isinstance(head, dict) else None,
        )


@dataclass(frozen=True)
class ForkTarget:
    """Repository the submission branch is written to."""
    full_name: str
    is_fork: bool = False

    @property
    def owner(self) -> str:
        return owner_of(self.full_name)


@dataclass(frozen=True)
class GitCommit:
    """The parts of a git commit the publish flow reads."""
    sha: str
    tree_sha: str


@dataclass(frozen=True)
class TreeEntry:
    """A blob placed into a new git tree."""
    path: str
    sha: str
    mode: str = BLOB_MODE
    type: str = "blob"

    def to_dict(self) -> Dict[str, str]:
        return {
            'path': self.path,
            'mode': self.mode,
            'type': self.type,
            'sha': self.sha,
        }


@dataclass
class IndexEntry:
    """One published profile in the marketplace index."""
    name: str
    author: str
    version: str
    description: str = ""
    tags: List[str] = field(default_factory=list)
    downloads: int = 0
    stars: int = 0
    created_at: Optional[str] = None
    contents: Dict[str, List[str]] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    @property
    def key(self) -> Tuple[str, str]:
        return (self.author, self.name)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'IndexEntry':
        known = {'name', 'author', 'version', 'description', 'tags',
                 'downloads', 'stars', 'createdAt', 'contents'}
        return cls(
            name=data.get('name', ''),
            author=data.get('author', ''),
            version=data.get('version', ''),
            description=data.get('description', ''),
            tags=list(data.get('tags') or []),
            downloads=data.get('downloads', 0),
            stars=data.get('stars', 0),
            created_at=data.get('createdAt'),
            contents=dict(data.get('contents') or {}),
            extra={k: v for k, v in data.items() if k not in known},
        )

    @classmethod
    def from_metadata(cls, author: str, metadata: ProfileMetadata, published_at: str) -> 'IndexEntry':
        """Build a fresh entry; popularity counters always start at zero."""
        return cls(
            name=metadata.name,
            author=author,
            version=metadata.version,
            description=metadata.description,
            tags=list(metadata.tags),
            downloads=0,
            stars=0,
            created_at=published_at,
            contents={k: list(v) for k, v in metadata.contents.items()},
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(self.extra)
        result.update({
            'name': self.name,
            'author': self.author,
            'version': self.version,
            'description': self.description,
            'tags': list(self.tags),
            'downloads': self.downloads,
            'stars': self.stars,
            'createdAt': self.created_at,
            'contents': self.contents,
        })
        return result


@dataclass
class RepoIndex:
    """
    The marketplace ``index.json``.

    Entries are unique per (author, name); ``upsert`` replaces an
    existing entry rather than appending a duplicate.
    """
    profiles: List[IndexEntry] = field(default_factory=list)
    last_updated: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'RepoIndex':
        return cls(
            profiles=[IndexEntry.from_dict(p) for p in (data.get('profiles') or [])],
            last_updated=data.get('lastUpdated'),
            extra={k: v for k, v in data.items() if k not in ('profiles', 'lastUpdated')},
        )

    @classmethod
    def from_json(cls, text: str) -> 'RepoIndex':
        data = json.loads(text) if text.strip() else {}
        if not isinstance(data, dict):
            raise ValueError("index.json must contain a JSON object")
        return cls.from_dict(data)

    def find(self, author: str, name: str) -> Optional[IndexEntry]:
        for entry in self.profiles:
            if entry.key == (author, name):
                return entry
        return None

    def upsert(self, entry: IndexEntry, updated_at: str) -> 'RepoIndex':
        """Return a new index with ``entry`` replacing any same-key entry."""
        profiles = [p for p in self.profiles if p.key != entry.key]
        profiles.append(entry)
        return RepoIndex(profiles=profiles, last_updated=updated_at, extra=dict(self.extra))

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(self.extra)
        result['profiles'] = [p.to_dict() for p in self.profiles]
        result['lastUpdated'] = self.last_updated
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)


@dataclass(frozen=True)
class PublishPayload:
    """Everything written to the marketplace for one publish attempt."""
    author: str
    name: str
    profile_json: str
    snapshot_bytes: bytes
    index_json: str

    @property
    def profile_path(self) -> str:
        return f"{profile_dir(self.author, self.name)}/{PROFILE_FILENAME}"

    @property
    def snapshot_path(self) -> str:
        return f"{profile_dir(self.author, self.name)}/{SNAPSHOT_FILENAME}"

    @property
    def branch(self) -> str:
        return submission_branch(self.author, self.name)

    @property
    def commit_message(self) -> str:
        return commit_message(self.author, self.name)


def build_pr_body(author: str, name: str, metadata: ProfileMetadata) -> str:
    """Render the markdown body of a profile submission pull request."""
    lines = [
        "## Profile Submission",
        "",
        f"Adds profile **{author}/{name}** v{metadata.version}",
        "",
        f"**Description:** {metadata.description or 'No description'}",
        "",
    ]

    rendered = format_contents(metadata.contents)
    if rendered:
        lines.append("**Contents:**")
        for category, display in rendered:
            lines.append(f"- {category}: {display}")
        lines.append("")

    return "\n".join(lines)
