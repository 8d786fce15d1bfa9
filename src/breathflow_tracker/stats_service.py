"""
Stats Service - the statistics aggregator shared by every surface.

PURPOSE: Own the current StatsDocument and fold finished sessions into it.
AI CONTEXT: The single writer of stats.json; CLI, runner and web all go through it.

ARCHITECTURE:
    SessionRunner ──┐
    CLI commands ───┼──► StatsService ◄── StatsStore (JSON file)
    Web routes ─────┘         │
                              └──► StatisticsEngine (streaks, views)

CONCURRENCY:
Every mutating operation runs under one threading.Lock held through
persistence, so concurrent record_session() calls queue up instead of
interleaving. The document is updated copy-then-swap: readers always see
either the old or the new document, never a half-updated one.

USAGE:
    service = StatsService()
    service.load_from_storage()
    result = service.record_session(record)
    if result.milestone:
        print(result.milestone_message)
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any

from .config import Config
from .models import DailyStat, SessionRecord, StatsDocument
from .statistics import StatisticsEngine, to_local_date_string
from .storage import StatsStore

__all__ = [
    "StatsService",
    "ServiceResult",
    "RecordResult",
]

logger = logging.getLogger(__name__)


@dataclass
class ServiceResult:
    """
    Result from a service operation.

    Attributes:
        success: Whether the operation completed successfully.
        message: Human-readable result message.
        data: Optional dict with operation-specific data.
        error: Optional error message if success is False.
    """

    success: bool
    message: str
    data: dict[str, Any] | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """
        Convert this ServiceResult to a JSON-serializable dictionary.

        Fields with None/empty values (data, error) are omitted.

        Example:
            >>> ServiceResult(success=True, message="Done").to_dict()
            {'success': True, 'message': 'Done'}
        """
        result: dict[str, Any] = {
            "success": self.success,
            "message": self.message,
        }
        if self.data:
            result["data"] = self.data
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class RecordResult:
    """
    Outcome of record_session().

    success is False only when the updated document could not be
    persisted (or the record was unusable); the in-memory document still
    reflects the session in the former case.
    """

    success: bool
    milestone: int | None = None
    milestone_message: str | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "milestone": self.milestone,
            "milestoneMessage": self.milestone_message,
        }
        if self.error:
            result["error"] = self.error
        return result


class StatsService:
    """
    Statistics aggregator.

    OPERATIONS:
    - load_from_storage: Replace the in-memory document with the stored one
    - record_session: Fold one SessionRecord into the document and persist
    - reset_stats: Clear everything, in memory and on disk
    - sync_daily_stats: Rebuild daily buckets that drifted from the sessions
    - weekly_stats / period_stats / technique_distribution / streak_info /
      activity_calendar / summary_report: Read-only views

    Example:
        >>> service = StatsService()
        >>> service.load_from_storage().success
        True
        >>> service.record_session(SessionRecord.create("box", "Box", 300, True)).success
        True
    """

    def __init__(
        self,
        store: StatsStore | None = None,
        engine: StatisticsEngine | None = None,
    ) -> None:
        """
        Initialize the service with an empty document.

        Call load_from_storage() to pick up persisted history; the
        constructor never touches the disk.

        Args:
            store: Persistence backend. Default: StatsStore() under
                Config.get_storage_dir().
            engine: Streak/view calculator. Pass one with a fixed
                today_provider in tests.
        """
        self.store = store or StatsStore()
        self.engine = engine or StatisticsEngine()
        self._document = StatsDocument()
        self._lock = threading.Lock()

    @property
    def document(self) -> StatsDocument:
        """The current document. Treat as read-only; it is replaced, not mutated."""
        return self._document

    # =========================================================================
    # PERSISTENCE
    # =========================================================================

    def load_from_storage(self) -> ServiceResult:
        """
        Load the stored document.

        OUTCOMES:
        - No stored document: empty default, success
        - Corrupt document: set aside as *.corrupt, empty default, success
        - Read failure: in-memory document untouched, failure

        Returns:
            ServiceResult with data={'totalSessions': n} on success.
        """
        with self._lock:
            raw = self.store.read_document()
            if raw is None:
                return ServiceResult(
                    success=False,
                    message="Statistics could not be loaded",
                    error=f"Cannot read {self.store.stats_file}",
                )
            try:
                document = StatsDocument.from_dict(raw)
            except (KeyError, TypeError, ValueError, AttributeError) as e:
                logger.error(f"Stored statistics do not match the schema: {e}")
                self.store.quarantine_document()
                document = StatsDocument()

            self._document = document
            logger.info(f"Statistics loaded: {document.total_sessions} sessions")
            return ServiceResult(
                success=True,
                message="Statistics loaded",
                data={"totalSessions": document.total_sessions},
            )

    def _persist(self, document: StatsDocument) -> bool:
        return self.store.write_document(document.to_dict())

    # =========================================================================
    # AGGREGATION
    # =========================================================================

    def record_session(self, record: SessionRecord) -> RecordResult:
        """
        Fold a finished or interrupted session into the statistics.

        STEPS (on a copy swapped in at the end):
        1. Local date of the session
        2. Daily bucket: duration, count, technique count
        3. Append record, update totals and last session date
        4. Favorite technique counter
        5. Recompute the streak
        6. Milestone crossed since the previous streak, if any; otherwise
           the previous milestone and message are kept
        7. max_streak = max(max_streak, streak)
        8. Persist

        Any duration is accepted here; the minimum session length is
        enforced by the callers.

        Args:
            record: The session to add.

        Returns:
            RecordResult with the milestone reached by this session.
            success=False when the timestamp is unusable (nothing changed)
            or when persistence failed (memory already updated).

        Example:
            >>> result = service.record_session(record)
            >>> result.milestone, result.success
            (3, True)
        """
        with self._lock:
            try:
                local_date = to_local_date_string(record.timestamp_iso)
            except (TypeError, ValueError) as e:
                logger.error(f"Rejected session with bad timestamp {record.timestamp_iso!r}: {e}")
                return RecordResult(success=False, error=f"Invalid timestamp: {e}")

            current = self._document
            updated = current.copy()

            updated.daily_stats.setdefault(local_date, DailyStat(date=local_date)).add(record)

            updated.sessions.append(record)
            updated.total_sessions += 1
            updated.total_duration_seconds += record.duration_seconds
            updated.last_session_date_iso = record.timestamp_iso

            updated.favorite_techniques[record.technique_id] = (
                updated.favorite_techniques.get(record.technique_id, 0) + 1
            )

            previous_streak = current.streak
            updated.streak = self.engine.calculate_streak(
                updated.last_session_date_iso, updated.daily_stats
            )

            milestone = self.engine.check_streak_milestone(updated.streak, previous_streak)
            message = None
            if milestone is not None:
                message = Config.milestone_message(milestone)
                updated.last_streak_milestone = milestone
                updated.streak_milestone_message = message
                logger.info(f"Streak milestone reached: {milestone} days")

            updated.max_streak = max(updated.max_streak, updated.streak)

            self._document = updated
            logger.info(
                f"Session recorded: {record.technique_id} {record.duration_seconds}s "
                f"on {local_date}, streak {updated.streak}"
            )

            if not self._persist(updated):
                return RecordResult(
                    success=False,
                    milestone=milestone,
                    milestone_message=message,
                    error="Statistics could not be saved",
                )
            return RecordResult(success=True, milestone=milestone, milestone_message=message)

    def reset_stats(self) -> ServiceResult:
        """
        Clear all statistics.

        The in-memory document becomes the empty default and the stored
        document is deleted. Safe to call repeatedly.

        Returns:
            ServiceResult; failure only when the stored file could not be
            deleted.
        """
        with self._lock:
            self._document = StatsDocument()
            if not self.store.delete_document():
                return ServiceResult(
                    success=False,
                    message="Statistics cleared in memory only",
                    error=f"Cannot delete {self.store.stats_file}",
                )
            logger.info("Statistics reset")
            return ServiceResult(success=True, message="Statistics reset")

    def sync_daily_stats(self) -> ServiceResult:
        """
        Rebuild daily buckets that disagree with the session list.

        Returns:
            ServiceResult with data={'changedDates': [...]}; persistence
            only happens when something changed.
        """
        with self._lock:
            updated = self._document.copy()
            changed = self.engine.reconcile_daily_stats(updated)
            if not changed:
                return ServiceResult(
                    success=True,
                    message="Daily statistics already consistent",
                    data={"changedDates": []},
                )

            self._document = updated
            logger.warning(f"Daily statistics repaired for {len(changed)} day(s)")
            if not self._persist(updated):
                return ServiceResult(
                    success=False,
                    message="Daily statistics repaired in memory only",
                    data={"changedDates": changed},
                    error="Statistics could not be saved",
                )
            return ServiceResult(
                success=True,
                message=f"Daily statistics repaired for {len(changed)} day(s)",
                data={"changedDates": changed},
            )

    # =========================================================================
    # VIEWS
    # =========================================================================

    def weekly_stats(self, num_weeks: int = 4) -> list[dict[str, Any]]:
        return self.engine.weekly_series(self._document, num_weeks)

    def period_stats(self, period: str = "week", count: int = 4) -> list[dict[str, Any]]:
        return self.engine.period_series(self._document, period, count)

    def technique_distribution(self) -> list[dict[str, Any]]:
        return self.engine.technique_distribution(self._document)

    def streak_info(self) -> dict[str, Any]:
        return self.engine.streak_info(self._document)

    def activity_calendar(self, year: int, month: int) -> list[dict[str, Any]]:
        return self.engine.activity_calendar(self._document, year, month)

    def summary_report(self) -> str:
        return self.engine.generate_summary_report(self._document)
