"""
Profile domain objects for profilehub.

ProfileMetadata is the content of a profile's ``profile.json``.
It is what gets validated and serialized when publishing.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..exit_codes import InvalidProfile

DEFAULT_VERSION = "1.0.0"


def _string_tuple(value: Any, field_name: str) -> Tuple[str, ...]:
    """Normalize a JSON list of names; null counts as empty."""
    if value is None:
        return ()
    if not isinstance(value, list):
        raise InvalidProfile(f"Invalid profile: {field_name} must be a list")
    return tuple(str(item) for item in value)


@dataclass(frozen=True)
class ProfileMetadata:
    """Metadata describing a profile and its functional content."""
    name: str
    version: str = DEFAULT_VERSION
    description: str = ""
    tags: Tuple[str, ...] = ()
    contents: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], name: Optional[str] = None) -> 'ProfileMetadata':
        """
        Create from a parsed ``profile.json``.

        Args:
            data: Parsed JSON object
            name: Fallback name when the record carries none

        Raises:
            InvalidProfile: If the record is not an object or has no name
        """
        if not isinstance(data, dict):
            raise InvalidProfile("Invalid profile: metadata must be a JSON object")

        profile_name = data.get('name') or name
        if not profile_name:
            raise InvalidProfile("Invalid profile: missing name")

        raw_contents = data.get('contents') or {}
        if not isinstance(raw_contents, dict):
            raise InvalidProfile("Invalid profile: contents must map categories to items")

        contents = {
            str(category): _string_tuple(items, f"contents.{category}")
            for category, items in raw_contents.items()
        }

        known = {'name', 'version', 'description', 'tags', 'contents'}
        return cls(
            name=str(profile_name),
            version=str(data.get('version') or DEFAULT_VERSION),
            description=str(data.get('description') or ''),
            tags=_string_tuple(data.get('tags'), 'tags'),
            contents=contents,
            extra={k: v for k, v in data.items() if k not in known},
        )

    @property
    def has_content(self) -> bool:
        """True if at least one content category is non-empty."""
        return any(len(items) > 0 for items in self.contents.values())

    def non_empty_contents(self) -> Dict[str, Tuple[str, ...]]:
        return {k: v for k, v in self.contents.items() if v}

    def validate(self) -> None:
        """
        Check the profile can be published.

        Raises:
            InvalidProfile: If no content category has any items
        """
        if not self.has_content:
            raise InvalidProfile(
                "Profile has no functional content (commands, hooks, skills, etc.)"
            )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = dict(self.extra)
        result.update({
            'name': self.name,
            'version': self.version,
            'description': self.description,
            'tags': list(self.tags),
            'contents': {k: list(v) for k, v in self.contents.items()},
        })
        return result


@dataclass(frozen=True)
class ProfileInfo:
    """A profile found in local storage."""
    name: str
    description: str
    path: Path
    custom: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'description': self.description,
            'path': str(self.path),
            'custom': self.custom,
        }


def format_contents(contents: Dict[str, Tuple[str, ...]]) -> List[Tuple[str, str]]:
    """
    Render content categories for display.

    Commands are shown as slash commands; every other category
    is a plain comma-separated list. Empty categories are dropped.
    """
    lines = []
    for category, items in contents.items():
        if not items:
            continue
        if category == 'commands':
            display = ', '.join(f"/{item}" for item in items)
        else:
            display = ', '.join(items)
        lines.append((category, display))
    return lines
