"""
Local profile storage for profilehub.

A profile is a directory holding the files that make up a ``.claude``
directory, a ``profile.json`` metadata record and, once saved, a
``snapshot.zip`` archive used for publishing.

Built-in profiles ship with a profiles checkout and cannot be
overwritten; custom profiles are saved from a live project.
"""

import io
import logging
import re
import shutil
import zipfile
from dataclasses import dataclass
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from ..domain.marketplace import PROFILE_FILENAME, SNAPSHOT_FILENAME
from ..domain.profile import ProfileInfo, ProfileMetadata
from ..exit_codes import CommandError, InvalidProfile, ProfileNotFoundError
from ..infra.file_store import FileStore

logger = logging.getLogger(__name__)

CLAUDE_DIR = ".claude"
NO_DESCRIPTION = "(no description)"
PROFILE_NAME_PATTERN = re.compile(r'^[A-Za-z0-9_-]+$')

# Files at a profile's top level that belong to the record, not to the live directory
RECORD_FILES = {SNAPSHOT_FILENAME}


def is_valid_profile_name(name: str) -> bool:
    return bool(PROFILE_NAME_PATTERN.match(name))


def scan_contents(directory: Path) -> Dict[str, List[str]]:
    """
    List the functional content of a profile directory.

    Every subdirectory is a category (commands, hooks, skills, agents, ...)
    and each entry inside it is an item, named by its file stem.
    """
    contents: Dict[str, List[str]] = {}
    if not directory.is_dir():
        return contents

    for category in sorted(p for p in directory.iterdir() if p.is_dir()):
        if category.name.startswith('.'):
            continue
        items = sorted({
            entry.stem if entry.is_file() else entry.name
            for entry in category.iterdir()
            if not entry.name.startswith('.')
        })
        contents[category.name] = items
    return contents


def ignore_top_level(root: Path, names: set):
    """copytree ``ignore`` callable that skips ``names`` only directly under ``root``."""
    root = Path(root)

    def ignore(directory, entries):
        if Path(directory) != root:
            return set()
        return {entry for entry in entries if entry in names}

    return ignore


def build_snapshot(directory: Path, exclude: Optional[set] = None) -> bytes:
    """Zip a profile directory into an in-memory archive."""
    exclude = exclude or set()
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as archive:
        for path in sorted(directory.rglob('*')):
            relative = path.relative_to(directory)
            if path.is_file() and relative.parts[0] not in exclude:
                archive.write(path, relative.as_posix())
    return buffer.getvalue()


@dataclass
class SwapResult:
    """Result of applying a profile."""
    name: str
    source: Path
    target: Path
    files_copied: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'source': str(self.source),
            'target': str(self.target),
            'files_copied': self.files_copied,
        }


class ProfileStore:
    """
    Profiles on the local filesystem.

    Example:
        store = ProfileStore(Path("~/.profilehub/profiles"))
        for info in store.list_profiles():
            print(info.name, info.description)
        store.swap("minimal", Path("~/work/project"))
    """

    def __init__(
        self,
        profiles_dir: Path,
        builtin_dir: Optional[Path] = None,
        injected_command: Optional[Path] = None,
    ):
        """
        Initialize ProfileStore.

        Args:
            profiles_dir: Where custom profiles are saved
            builtin_dir: Read-only built-in profiles (optional)
            injected_command: Command file copied into every applied
                profile's ``commands/`` and stripped again on save
        """
        self.profiles_dir = Path(profiles_dir).expanduser()
        self.builtin_dir = Path(builtin_dir).expanduser() if builtin_dir else None
        self.injected_command = Path(injected_command).expanduser() if injected_command else None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> 'ProfileStore':
        general = config.get('general', {})
        builtin = general.get('builtin_profiles_dir') or None
        injected = general.get('injected_command') or None
        return cls(
            Path(general.get('profiles_dir', '~/.profilehub/profiles')),
            Path(builtin) if builtin else None,
            Path(injected) if injected else None,
        )

    def _list_dir(self, directory: Optional[Path], custom: bool) -> List[ProfileInfo]:
        if directory is None or not directory.is_dir():
            return []

        profiles = []
        for entry in sorted(directory.iterdir()):
            if not entry.is_dir():
                continue
            data = FileStore(entry / PROFILE_FILENAME).read_or_default({})
            description = data.get('description') or NO_DESCRIPTION
            profiles.append(ProfileInfo(
                name=entry.name,
                description=str(description),
                path=entry,
                custom=custom,
            ))
        return profiles

    def list_profiles(self) -> List[ProfileInfo]:
        """List built-in profiles followed by custom ones."""
        return self._list_dir(self.builtin_dir, custom=False) + self._list_dir(self.profiles_dir, custom=True)

    def is_builtin(self, name: str) -> bool:
        return self.builtin_dir is not None and (self.builtin_dir / name).is_dir()

    def resolve(self, name: str) -> Optional[Path]:
        """Find a profile directory, preferring built-ins."""
        if self.is_builtin(name):
            return self.builtin_dir / name
        custom = self.profiles_dir / name
        if custom.is_dir():
            return custom
        return None

    def swap(self, name: str, target: Path) -> SwapResult:
        """
        Replace ``<target>/.claude`` with a profile.

        Raises:
            ProfileNotFoundError: If no profile has that name
        """
        source = self.resolve(name)
        if source is None:
            raise ProfileNotFoundError(name)

        target_dir = Path(target).expanduser() / CLAUDE_DIR
        if target_dir.exists():
            shutil.rmtree(target_dir)

        shutil.copytree(source, target_dir, ignore=ignore_top_level(source, RECORD_FILES))

        if self.injected_command and self.injected_command.is_file():
            commands_dir = target_dir / "commands"
            commands_dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(self.injected_command, commands_dir / self.injected_command.name)

        files_copied = sum(1 for p in target_dir.rglob('*') if p.is_file())
        logger.debug(f"Applied {name} from {source} to {target_dir}")
        return SwapResult(name=name, source=source, target=Path(target), files_copied=files_copied)

    def save(
        self,
        name: str,
        target: Path,
        description: Optional[str] = None,
        force: bool = False,
    ) -> Path:
        """
        Save ``<target>/.claude`` as a custom profile.

        Writes profile.json (with scanned contents) and snapshot.zip.

        Returns:
            The new profile directory

        Raises:
            CommandError: On an invalid name, a built-in name clash,
                a missing .claude directory or an existing profile without force
        """
        if not is_valid_profile_name(name):
            raise CommandError(
                "Profile name must contain only letters, numbers, hyphens, and underscores."
            )
        if self.is_builtin(name):
            raise CommandError(f'"{name}" is a built-in profile name. Choose a different name.')

        source = Path(target).expanduser() / CLAUDE_DIR
        if not source.is_dir():
            raise CommandError(f"No .claude/ directory found at {source}")

        save_dir = self.profiles_dir / name
        if save_dir.exists():
            if not force:
                raise CommandError(f'Profile "{name}" already exists. Use --force to overwrite.')
            shutil.rmtree(save_dir)

        self.profiles_dir.mkdir(parents=True, exist_ok=True)
        shutil.copytree(source, save_dir, ignore=ignore_top_level(source, RECORD_FILES))

        # The injected command is re-added on every swap
        if self.injected_command:
            injected = save_dir / "commands" / self.injected_command.name
            if injected.is_file():
                injected.unlink()

        store = FileStore(save_dir / PROFILE_FILENAME)
        previous = store.read_or_default({})
        store.update({
            'name': name,
            'description': description or previous.get('description')
            or f"Custom profile saved on {date.today().isoformat()}",
            'version': previous.get('version', '1.0.0'),
            'tags': previous.get('tags', []),
            'contents': scan_contents(save_dir),
        })

        (save_dir / SNAPSHOT_FILENAME).write_bytes(build_snapshot(save_dir, exclude=RECORD_FILES))
        logger.debug(f"Saved {source} as {save_dir}")
        return save_dir

    def load_for_publish(self, name: str) -> Tuple[ProfileMetadata, bytes]:
        """
        Read what publishing needs from a local profile.

        Raises:
            ProfileNotFoundError: If the profile does not exist
            InvalidProfile: If metadata is missing or unparsable, or
                the snapshot archive is missing
        """
        profile_path = self.resolve(name)
        if profile_path is None:
            raise ProfileNotFoundError(name)

        store = FileStore(profile_path / PROFILE_FILENAME)
        if not store.exists():
            raise InvalidProfile("Invalid profile: missing metadata")
        try:
            metadata = ProfileMetadata.from_dict(store.read(), name=name)
        except ValueError as e:
            raise InvalidProfile(f"Invalid profile: {e}") from e

        snapshot_path = profile_path / SNAPSHOT_FILENAME
        if not snapshot_path.is_file():
            raise InvalidProfile("Profile snapshot not found.")

        return metadata, snapshot_path.read_bytes()
