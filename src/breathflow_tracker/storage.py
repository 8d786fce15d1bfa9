"""
Storage management for BreathFlow Tracker.

PURPOSE: JSON file I/O of the single statistics document with error handling.
AI CONTEXT: All persistence operations go through this module.

STORAGE STRUCTURE:
    ~/.breathflow/
    ├── stats.json          # The StatsDocument (camelCase keys)
    └── stats.json.corrupt  # Last unreadable document, set aside on load

ERROR HANDLING STRATEGY:
- File not found: Return empty document ({})
- JSON or UTF-8 corruption: Log error, move file aside, return empty document
- Read failure: Log error, return None so callers keep their in-memory state
- Write/delete failure: Log error, return False
- Nothing here raises; the service layer turns outcomes into results

USAGE:
    # Production
    store = StatsStore()

    # Testing with MockFileSystem (tests/conftest.py)
    store = StatsStore(storage_dir="/test", filesystem=mock_fs)
"""

from __future__ import annotations

import json
import logging
import os
from typing import TYPE_CHECKING, Any

from .config import Config
from .filesystem import RealFileSystem

if TYPE_CHECKING:
    from .filesystem import FileSystem

__all__ = ["StatsStore"]

logger = logging.getLogger(__name__)


class StatsStore:
    """
    Load/save/delete of one JSON document.

    DESIGN PRINCIPLES:
    1. Fail-safe: Never raise on I/O errors
    2. Predictable: Loads always yield a dict or an explicit None
    3. Testable: FileSystem can be injected for mocking

    THREAD SAFETY:
    Not thread-safe. StatsService serializes every call under its lock.
    """

    def __init__(
        self,
        storage_dir: str | None = None,
        filesystem: FileSystem | None = None,
    ) -> None:
        """
        Initialize the store.

        The directory is created lazily on first write, so read-only
        commands (report, dashboard) never touch the disk layout.

        Args:
            storage_dir: Custom storage path. Default: Config.get_storage_dir()
            filesystem: FileSystem implementation. Default: RealFileSystem
        """
        self.storage_dir = storage_dir or Config.get_storage_dir()
        self._fs: FileSystem = filesystem or RealFileSystem()
        self.stats_file = os.path.join(self.storage_dir, Config.STATS_FILE)
        self.corrupt_file = self.stats_file + Config.CORRUPT_SUFFIX

    def read_document(self) -> dict[str, Any] | None:
        """
        Read the stored document.

        Returns:
            The decoded JSON object; {} when there is no file or the file
            was corrupt (bad UTF-8, bad JSON, not an object) (it is then renamed to *.corrupt); None when the
            file exists but could not be read.
        """
        try:
            content = self._fs.read_text(self.stats_file)
        except FileNotFoundError:
            return {}
        except UnicodeDecodeError as e:
            logger.error(f"Invalid UTF-8 in {self.stats_file}: {e}")
            self.quarantine_document()
            return {}
        except OSError as e:
            logger.error(f"Error reading {self.stats_file}: {e}")
            return None

        try:
            data = json.loads(content)
        except json.JSONDecodeError as e:
            logger.error(f"Invalid JSON in {self.stats_file}: {e}")
            self.quarantine_document()
            return {}

        if not isinstance(data, dict):
            logger.error(f"Unexpected {type(data).__name__} at top of {self.stats_file}")
            self.quarantine_document()
            return {}
        return data

    def write_document(self, data: dict[str, Any]) -> bool:
        """
        Write the document, replacing any previous one.

        Args:
            data: JSON-serializable dict (StatsDocument.to_dict()).

        Returns:
            True on success, False on failure.

        FORMATTING:
        - 2-space indent for readability
        - UTF-8 encoding
        """
        try:
            self._fs.makedirs(self.storage_dir, exist_ok=True)
            content = json.dumps(data, indent=2, ensure_ascii=False)
            self._fs.write_text(self.stats_file, content)
            return True
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing {self.stats_file}: {e}")
            return False

    def delete_document(self) -> bool:
        """
        Delete the stored document.

        Returns:
            True when the document is gone (including when it never
            existed), False on failure.
        """
        try:
            self._fs.remove(self.stats_file)
        except FileNotFoundError:
            return True
        except OSError as e:
            logger.error(f"Error deleting {self.stats_file}: {e}")
            return False
        logger.info(f"Statistics document deleted: {self.stats_file}")
        return True

    def quarantine_document(self) -> None:
        """Move an unreadable document aside to *.corrupt so it can be recovered by hand."""
        try:
            self._fs.rename(self.stats_file, self.corrupt_file)
            logger.warning(f"Corrupt statistics moved to {self.corrupt_file}")
        except OSError as e:
            logger.error(f"Could not move corrupt file aside: {e}")
