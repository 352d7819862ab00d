"""
File store infrastructure for profilehub.

Reads and writes a single JSON document (a profile's profile.json)
with atomic replacement, so an interrupted save never leaves a
half-written metadata file behind.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

logger = logging.getLogger(__name__)


class FileStore:
    """
    JSON document persistence with atomic writes.

    Example:
        store = FileStore(profile_dir / "profile.json")
        store.write({"name": "minimal", "description": "..."})
        store.update({"version": "1.1.0"})
        data = store.read()
    """

    def __init__(self, path: Path):
        """
        Initialize FileStore.

        Args:
            path: Path to the JSON file
        """
        self.path = Path(path).expanduser()

    def exists(self) -> bool:
        return self.path.is_file()

    def _write_atomic(self, data: Dict[str, Any]) -> None:
        """Write data atomically using temp file and rename."""
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_path = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp"
        )

        try:
            with os.fdopen(fd, 'w') as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
                f.write('\n')  # Trailing newline

            os.replace(temp_path, self.path)

        except BaseException:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def read(self) -> Dict[str, Any]:
        """
        Read the document.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not a JSON object
        """
        with open(self.path, 'r') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path} does not contain a JSON object")
        return data

    def read_or_default(self, default: Dict[str, Any]) -> Dict[str, Any]:
        """Read the document, or return ``default`` if missing or unparsable."""
        try:
            return self.read()
        except (OSError, ValueError) as e:
            logger.debug(f"Could not read {self.path}: {e}")
            return dict(default)

    def write(self, data: Dict[str, Any]) -> None:
        self._write_atomic(data)

    def update(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        """
        Merge ``updates`` into the stored document.

        Returns:
            The document as written
        """
        data = self.read_or_default({})
        data.update(updates)
        self._write_atomic(data)
        return data
