"""
Configuration for BreathFlow Tracker.

PURPOSE: Centralized configuration constants and runtime settings.
AI CONTEXT: All configurable values live here - modify this file to change behavior.

CONFIGURATION CATEGORIES:
- Storage: File paths and directory structure
- Sessions: Minimum recordable length, default length, clock cadence
- Streaks: Milestone table and celebration messages
- Activity: Calendar intensity thresholds
- Dashboard: Default bind address

ENVIRONMENT VARIABLES:
- BREATHFLOW_STORAGE_DIR: Directory holding stats.json (default: ~/.breathflow)
- BREATHFLOW_SESSION_MINUTES: Default session length in minutes (default: 5)

USAGE:
    from breathflow_tracker.config import Config
    storage_dir = Config.get_storage_dir()
    milestones = Config.STREAK_MILESTONES
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import ClassVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Config:
    """
    Immutable configuration container for BreathFlow Tracker.

    DESIGN: Frozen dataclass ensures configuration immutability at runtime.
    All values are class-level constants - no instance creation needed.

    STORAGE STRUCTURE:
        ~/.breathflow/
        ├── stats.json          # The single StatsDocument
        └── stats.json.corrupt  # Last unreadable document, kept for recovery
    """

    # =========================================================================
    # STORAGE CONFIGURATION
    # =========================================================================
    STORAGE_DIR: ClassVar[str] = os.path.join(os.path.expanduser("~"), ".breathflow")
    STATS_FILE: ClassVar[str] = "stats.json"
    CORRUPT_SUFFIX: ClassVar[str] = ".corrupt"

    # =========================================================================
    # SESSION PARAMETERS
    # =========================================================================
    MIN_SESSION_SECONDS: ClassVar[int] = 10
    """
    Shortest session the UI layer records.
    The aggregator itself accepts shorter sessions if asked.
    """

    DEFAULT_SESSION_MINUTES: ClassVar[int] = 5

    TICK_INTERVAL_MS: ClassVar[int] = 1000
    """Nominal clock cadence of the terminal runner."""

    # =========================================================================
    # STREAK MILESTONES
    # =========================================================================
    STREAK_MILESTONES: ClassVar[tuple[int, ...]] = (3, 7, 14, 21, 30, 60, 90, 180, 365)

    MILESTONE_MESSAGES: ClassVar[dict[int, str]] = {
        3: "Congratulations! You have practiced 3 days in a row. Keep it up!",
        7: "Well done! A full week of daily practice. You are on the right track!",
        14: "Impressive! 2 weeks of consecutive practice. A habit is taking shape!",
        21: "Congratulations! 21 days of practice - you have formed a new habit!",
        30: "A full month of daily practice! Your commitment is remarkable!",
        60: "Two months of daily practice! Your dedication is inspiring!",
        90: "Three months in a row! You are now a regular practitioner!",
        180: "Six months of daily practice! You are a true master of breathing!",
        365: "ONE YEAR OF DAILY PRACTICE! You have reached the ultimate level of dedication!",
    }

    # =========================================================================
    # ACTIVITY CALENDAR
    # =========================================================================
    ACTIVITY_MEDIUM_SECONDS: ClassVar[int] = 600
    ACTIVITY_HIGH_SECONDS: ClassVar[int] = 1800

    # =========================================================================
    # DASHBOARD
    # =========================================================================
    DEFAULT_HOST: ClassVar[str] = "127.0.0.1"
    DEFAULT_PORT: ClassVar[int] = 8000

    # =========================================================================
    # COMPUTED PROPERTIES
    # =========================================================================
    @classmethod
    def milestone_message(cls, milestone: int) -> str:
        """
        Get the celebration message for a streak milestone.

        Business context: Milestones are shown once, right after the
        session that reached them, as a banner in the UI layer.

        Args:
            milestone: Streak length in days.

        Returns:
            The configured message, or a generic one for values outside
            the milestone table.

        Example:
            >>> Config.milestone_message(7)
            'Well done! A full week of daily practice. You are on the right track!'
        """
        return cls.MILESTONE_MESSAGES.get(
            milestone, f"Congratulations on your {milestone}-day streak!"
        )

    # =========================================================================
    # ENVIRONMENT-BASED SETTINGS (runtime configurable)
    # =========================================================================
    _storage_dir_override: ClassVar[str | None] = None
    _session_minutes_override: ClassVar[int | None] = None

    @classmethod
    def get_storage_dir(cls) -> str:
        """
        Get the directory holding the statistics document.

        Uses a priority system: test overrides first, then the
        BREATHFLOW_STORAGE_DIR environment variable, then the home
        directory default.

        Returns:
            Absolute or user-relative directory path.

        Example:
            >>> # With env var: BREATHFLOW_STORAGE_DIR=/tmp/bf
            >>> Config.get_storage_dir()
            '/tmp/bf'
        """
        if cls._storage_dir_override is not None:
            return cls._storage_dir_override
        return os.environ.get("BREATHFLOW_STORAGE_DIR", cls.STORAGE_DIR)

    @classmethod
    def get_default_session_minutes(cls) -> int:
        """
        Get the default session length used when none is given.

        Reads BREATHFLOW_SESSION_MINUTES; non-numeric or non-positive
        values are logged and ignored.

        Returns:
            Session length in whole minutes.
        """
        if cls._session_minutes_override is not None:
            return cls._session_minutes_override
        raw = os.environ.get("BREATHFLOW_SESSION_MINUTES", "")
        if not raw:
            return cls.DEFAULT_SESSION_MINUTES
        try:
            minutes = int(raw)
        except ValueError:
            logger.warning(f"Ignoring invalid BREATHFLOW_SESSION_MINUTES: {raw!r}")
            return cls.DEFAULT_SESSION_MINUTES
        if minutes <= 0:
            logger.warning(f"Ignoring non-positive BREATHFLOW_SESSION_MINUTES: {minutes}")
            return cls.DEFAULT_SESSION_MINUTES
        return minutes

    @classmethod
    def set_test_overrides(
        cls,
        storage_dir: str | None = None,
        session_minutes: int | None = None,
    ) -> None:
        """
        Set test overrides for environment-based settings.

        Must call reset_test_overrides() in test teardown to avoid
        affecting other tests.

        Args:
            storage_dir: Override for the storage directory. None to clear.
            session_minutes: Override for the default session length. None to clear.

        Example:
            >>> Config.set_test_overrides(storage_dir="/tmp/test")
            >>> Config.get_storage_dir()
            '/tmp/test'
            >>> Config.reset_test_overrides()
        """
        cls._storage_dir_override = storage_dir
        cls._session_minutes_override = session_minutes

    @classmethod
    def reset_test_overrides(cls) -> None:
        """Reset all test overrides to use environment variables."""
        cls._storage_dir_override = None
        cls._session_minutes_override = None
