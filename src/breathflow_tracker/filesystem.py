"""
FileSystem abstraction for BreathFlow Tracker.

PURPOSE: Injectable file operations behind the statistics store.
AI CONTEXT: StatsStore never calls os/open directly; tests swap in an in-memory fake.

OPERATIONS USED BY THE STORE:
- makedirs: Create the storage directory on first write
- read_text / write_text: Load and save stats.json
- remove: Reset deletes the document
- rename: A corrupt document is moved to stats.json.corrupt

USAGE:
    # Production
    store = StatsStore(filesystem=RealFileSystem())

    # Tests (MockFileSystem from conftest.py)
    store = StatsStore(storage_dir="/test", filesystem=mock_fs)
"""

from __future__ import annotations

import os
from typing import Protocol

__all__ = ["FileSystem", "RealFileSystem"]


class FileSystem(Protocol):
    """
    Protocol for the file operations of the stats store.

    Paths are plain strings. Errors are reported as OSError subclasses;
    the store catches them and never lets them escape.
    """

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """Create a directory and its parents."""
        ...

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        """
        Read a whole file.

        Raises:
            FileNotFoundError: The file does not exist (treated as "no statistics yet").
            OSError: Any other read failure.
        """
        ...

    def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """
        Replace a file's content.

        Business context: The statistics document is always written whole,
        never appended to.
        """
        ...

    def remove(self, path: str) -> None:
        """
        Delete a file.

        Raises:
            FileNotFoundError: The file does not exist (reset treats this as done).
        """
        ...

    def rename(self, src: str, dst: str) -> None:
        """Move src to dst, replacing dst."""
        ...


class RealFileSystem:
    """Disk-backed FileSystem used outside of tests."""

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        os.makedirs(path, exist_ok=exist_ok)

    def read_text(self, path: str, encoding: str = "utf-8") -> str:
        with open(path, encoding=encoding) as f:
            return f.read()

    def write_text(self, path: str, content: str, encoding: str = "utf-8") -> None:
        """
        Write through a sibling *.tmp file and os.replace() it over the target.

        A crash mid-write leaves either the old document or the new one,
        never a truncated stats.json.
        """
        tmp_path = f"{path}.tmp"
        with open(tmp_path, "w", encoding=encoding) as f:
            f.write(content)
        os.replace(tmp_path, path)

    def remove(self, path: str) -> None:
        os.remove(path)

    def rename(self, src: str, dst: str) -> None:
        os.replace(src, dst)
