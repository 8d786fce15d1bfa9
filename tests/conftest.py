"""
Pytest configuration and shared fixtures for BreathFlow Tracker tests.

This module contains:
- MockFileSystem: In-memory filesystem for testing without actual I/O
- Shared fixtures: a pinned "today", engine/store/service wired to the mock
- make_record: SessionRecord factory with naive local timestamps
- new_york_tz: Pins the process timezone for local-date and DST tests
"""

from __future__ import annotations

import time
from collections.abc import Callable, Iterator
from datetime import date, timedelta

import pytest

from breathflow_tracker.config import Config
from breathflow_tracker.models import SessionRecord
from breathflow_tracker.statistics import StatisticsEngine
from breathflow_tracker.stats_service import StatsService
from breathflow_tracker.storage import StatsStore

TODAY = date(2025, 6, 15)
STORAGE_DIR = "/test/.breathflow"
STATS_PATH = f"{STORAGE_DIR}/{Config.STATS_FILE}"

# POSIX rule, no tz database needed: UTC-5, UTC-4 from 2nd Sunday of March
# to 1st Sunday of November.
NEW_YORK_TZ = "EST+5EDT,M3.2.0,M11.1.0"


class MockFileSystem:
    """
    In-memory FileSystem for the stats store.

    STATE:
    - _files: path -> content
    - _dirs: directories created through makedirs()
    - _read_only: paths whose write/remove raise PermissionError
    - _unreadable: paths whose read raises OSError

    The failure sets let tests drive every StatsStore error branch
    without touching the disk.
    """

    def __init__(self) -> None:
        self._files: dict[str, str] = {}
        self._dirs: set[str] = set()
        self._read_only: set[str] = set()
        self._unreadable: set[str] = set()

    def makedirs(self, path: str, exist_ok: bool = False) -> None:
        """
        Register path and every parent as a directory.

        Raises:
            OSError: path already exists and exist_ok is False, or path is a file.
        """
        if path in self._files:
            raise OSError(f"Path is a file, not directory: {path}")
        if path in self._dirs and not exist_ok:
            raise OSError(f"Directory exists: {path}")
        parts = path.rstrip("/").split("/")
        for i in range(1, len(parts) + 1):
            parent = "/".join(parts[:i])
            if parent:
                self._dirs.add(parent)

    def read_text(self, path: str, _encoding: str = "utf-8") -> str:
        if path in self._unreadable:
            raise OSError(f"I/O error: {path}")
        if path not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        return self._files[path]

    def write_text(self, path: str, content: str, _encoding: str = "utf-8") -> None:
        if path in self._read_only:
            raise PermissionError(f"Permission denied: {path}")
        self._files[path] = content

    def remove(self, path: str) -> None:
        if path in self._read_only:
            raise PermissionError(f"Permission denied: {path}")
        if path not in self._files:
            raise FileNotFoundError(f"No such file: {path}")
        del self._files[path]

    def rename(self, src: str, dst: str) -> None:
        if src not in self._files:
            raise FileNotFoundError(f"No such file: {src}")
        self._files[dst] = self._files.pop(src)

    # Test helpers

    def get_file(self, path: str) -> str | None:
        return self._files.get(path)

    def set_file(self, path: str, content: str) -> None:
        """Create a file directly, bypassing read-only checks."""
        self._files[path] = content

    def set_read_only(self, path: str) -> None:
        self._read_only.add(path)

    def set_unreadable(self, path: str) -> None:
        self._unreadable.add(path)

    def has_dir(self, path: str) -> bool:
        return path in self._dirs

    def list_files(self) -> list[str]:
        return sorted(self._files)


@pytest.fixture
def mock_fs() -> MockFileSystem:
    """
    Provide a fresh MockFileSystem instance.

    Example:
        >>> def test_storage(mock_fs):
        ...     store = StatsStore(storage_dir="/test", filesystem=mock_fs)
    """
    return MockFileSystem()


@pytest.fixture(autouse=True)
def _reset_config_overrides() -> Iterator[None]:
    """Clear Config test overrides after every test."""
    yield
    Config.reset_test_overrides()


@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def engine() -> StatisticsEngine:
    """StatisticsEngine whose today is pinned to TODAY."""
    return StatisticsEngine(today_provider=lambda: TODAY)


@pytest.fixture
def store(mock_fs: MockFileSystem) -> StatsStore:
    return StatsStore(storage_dir=STORAGE_DIR, filesystem=mock_fs)


@pytest.fixture
def service(store: StatsStore, engine: StatisticsEngine) -> StatsService:
    """StatsService over the mock filesystem with a pinned today."""
    return StatsService(store=store, engine=engine)


def record_on(
    day: date,
    technique_id: str = "478",
    duration_seconds: int = 300,
    completed: bool = True,
    technique_name: str | None = None,
    hour: int = 9,
) -> SessionRecord:
    """SessionRecord with a naive local timestamp on the given day."""
    return SessionRecord(
        technique_id=technique_id,
        technique_name=technique_name or technique_id,
        duration_seconds=duration_seconds,
        timestamp_iso=f"{day.isoformat()}T{hour:02d}:00:00",
        completed=completed,
    )


@pytest.fixture
def make_record() -> Callable[..., SessionRecord]:
    """
    Factory for records relative to TODAY.

    Example:
        >>> make_record(days_ago=1, technique_id="box")
    """

    def _make(days_ago: int = 0, **kwargs: object) -> SessionRecord:
        return record_on(TODAY - timedelta(days=days_ago), **kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def new_york_tz(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """
    Run the test with the local timezone set to US Eastern.

    Local dates come from datetime.astimezone(), which follows TZ once
    time.tzset() has been called.
    """
    if not hasattr(time, "tzset"):
        pytest.skip("time.tzset() is not available on this platform")
    monkeypatch.setenv("TZ", NEW_YORK_TZ)
    time.tzset()
    yield
    monkeypatch.undo()
    time.tzset()
