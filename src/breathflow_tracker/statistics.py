"""
Statistics engine for BreathFlow Tracker.

PURPOSE: Streak calculation and read-only projections of the StatsDocument.
AI CONTEXT: Pure data processing - no visualization, no I/O.

METRIC CATEGORIES:
1. Dates: Local calendar date of a session timestamp
2. Streaks: Consecutive practice days, milestones, next goal
3. Series: Daily durations over trailing weeks, day/week/month buckets
4. Distribution: Technique usage shares
5. Calendar: Per-day activity intensity for one month

VIEW SHAPES:
Every dict returned here is served as JSON as is, so keys are camelCase like
the persisted document.

DATE MODEL:
Every aggregation is keyed by the local calendar date (YYYY-MM-DD) of the
session. Day distances are computed on datetime.date, never by subtracting
durations, so DST transitions cannot shift a session to another day.

USAGE:
    engine = StatisticsEngine()
    streak = engine.calculate_streak(doc.last_session_date_iso, doc.daily_stats)
    series = engine.weekly_series(doc, num_weeks=4)
    report = engine.generate_summary_report(doc)
"""

from __future__ import annotations

import calendar
from collections.abc import Callable
from datetime import date, datetime, timedelta
from typing import Any

from .config import Config
from .models import DailyStat, SessionRecord, StatsDocument

__all__ = ["StatisticsEngine", "to_local_date", "to_local_date_string", "PERIODS"]

PERIODS = ("day", "week", "month")


def to_local_date(timestamp_iso: str) -> date:
    """
    Convert an ISO 8601 timestamp to the local calendar date.

    Timestamps with an offset (or a trailing 'Z') are converted to the
    machine's local timezone first; naive timestamps are taken as local.

    Args:
        timestamp_iso: e.g. '2025-06-01T23:30:00+02:00' or '2025-06-01T21:30:00Z'.

    Returns:
        The local date.

    Raises:
        ValueError: If the string is not ISO 8601.
    """
    if timestamp_iso.endswith("Z"):
        timestamp_iso = timestamp_iso[:-1] + "+00:00"
    parsed = datetime.fromisoformat(timestamp_iso)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone()
    return parsed.date()


def to_local_date_string(timestamp_iso: str) -> str:
    """Same as to_local_date() formatted as YYYY-MM-DD."""
    return to_local_date(timestamp_iso).isoformat()


def _has_activity(stat: DailyStat | None) -> bool:
    return stat is not None and (stat.sessions_count > 0 or stat.total_duration_seconds > 0)


class StatisticsEngine:
    """
    Calculator for practice statistics.

    DESIGN:
    - Stateless: Each method operates on the provided document
    - Pure: No side effects, only data transformation
    - Injectable clock: today_provider decides what "today" is, so tests
      can pin dates without patching datetime
    """

    def __init__(self, today_provider: Callable[[], date] | None = None) -> None:
        """
        Initialize the engine.

        Args:
            today_provider: Callable returning the current local date.
                Default: date.today
        """
        self._today = today_provider or date.today

    def today(self) -> date:
        return self._today()

    # =========================================================================
    # STREAKS
    # =========================================================================

    def calculate_streak(
        self,
        last_session_date_iso: str | None,
        daily_stats: dict[str, DailyStat],
    ) -> int:
        """
        Count consecutive practice days ending today (or yesterday).

        ALGORITHM:
        1. No last session → 0
        2. Last session before yesterday → 0 (streak broken)
        3. Walk backward from today counting days with activity; today also
           counts when the last session is dated today
        4. If today has no activity yet the walk starts at yesterday, so a
           streak stays alive until a full calendar day passes without practice

        Args:
            last_session_date_iso: Timestamp of the latest session, or None.
            daily_stats: Buckets keyed by local date.

        Returns:
            Streak length in days (>= 0).

        Example:
            >>> engine = StatisticsEngine(today_provider=lambda: date(2025, 6, 3))
            >>> stats = {d: DailyStat(d, 60, 1) for d in ("2025-06-02", "2025-06-03")}
            >>> engine.calculate_streak("2025-06-03T08:00:00", stats)
            2
        """
        if last_session_date_iso is None:
            return 0

        today = self._today()
        yesterday = today - timedelta(days=1)
        last_date = to_local_date(last_session_date_iso)
        if last_date < yesterday:
            return 0

        def active(day: date) -> bool:
            if _has_activity(daily_stats.get(day.isoformat())):
                return True
            return day == today and last_date == today

        day = today if active(today) else yesterday
        streak = 0
        while active(day):
            streak += 1
            day -= timedelta(days=1)
        return streak

    @staticmethod
    def check_streak_milestone(current_streak: int, previous_streak: int) -> int | None:
        """
        Find the milestone crossed when a streak grows.

        Args:
            current_streak: Streak after the session.
            previous_streak: Streak before the session.

        Returns:
            Smallest milestone m with previous < m <= current, else None.

        Example:
            >>> StatisticsEngine.check_streak_milestone(3, 2)
            3
            >>> StatisticsEngine.check_streak_milestone(4, 3) is None
            True
        """
        for milestone in Config.STREAK_MILESTONES:
            if previous_streak < milestone <= current_streak:
                return milestone
        return None

    @staticmethod
    def next_milestone(current_streak: int) -> int | None:
        """Smallest milestone strictly greater than the streak, or None."""
        for milestone in Config.STREAK_MILESTONES:
            if milestone > current_streak:
                return milestone
        return None

    def streak_info(self, doc: StatsDocument) -> dict[str, Any]:
        """
        Summarize the streak for display.

        Args:
            doc: Statistics document.

        Returns:
            Dict with current, max (falls back to current when 0),
            lastMilestone and nextMilestone.
        """
        return {
            "current": doc.streak,
            "max": doc.max_streak or doc.streak,
            "lastMilestone": doc.last_streak_milestone,
            "nextMilestone": self.next_milestone(doc.streak),
        }

    # =========================================================================
    # SERIES
    # =========================================================================

    def _duration_on(self, doc: StatsDocument, day: str) -> tuple[int, int]:
        """(duration_seconds, sessions) for a day, falling back to raw sessions."""
        stat = doc.daily_stats.get(day)
        if stat is not None:
            return stat.total_duration_seconds, stat.sessions_count
        matching = [s for s in doc.sessions if self._session_day(s) == day]
        return sum(s.duration_seconds for s in matching), len(matching)

    @staticmethod
    def _session_day(record: SessionRecord) -> str | None:
        try:
            return to_local_date_string(record.timestamp_iso)
        except ValueError:
            return None

    def weekly_series(self, doc: StatsDocument, num_weeks: int = 4) -> list[dict[str, Any]]:
        """
        Daily practice durations over the trailing weeks, oldest first.

        Every day is present, including days without practice. The daily
        bucket is read first; when it is missing the raw sessions of that
        date are summed instead.

        Args:
            doc: Statistics document.
            num_weeks: Number of weeks; the series has num_weeks * 7 entries
                ending today.

        Returns:
            List of {date, durationSeconds}.

        Raises:
            ValueError: If num_weeks < 1.
        """
        if num_weeks < 1:
            raise ValueError(f"num_weeks must be >= 1, got {num_weeks}")
        today = self._today()
        start = today - timedelta(days=num_weeks * 7 - 1)
        series = []
        for offset in range(num_weeks * 7):
            day = (start + timedelta(days=offset)).isoformat()
            duration, _ = self._duration_on(doc, day)
            series.append({"date": day, "durationSeconds": duration})
        return series

    def period_series(
        self, doc: StatsDocument, period: str = "week", count: int = 4
    ) -> list[dict[str, Any]]:
        """
        Practice totals bucketed by day, ISO week or month, oldest first.

        Args:
            doc: Statistics document.
            period: 'day', 'week' (Monday-based) or 'month'.
            count: Number of trailing buckets, the last one containing today.

        Returns:
            List of {start, end, durationSeconds, sessionsCount} with
            inclusive YYYY-MM-DD bounds.

        Raises:
            ValueError: For an unknown period or count < 1.
        """
        if period not in PERIODS:
            raise ValueError(f"Unknown period {period!r}, expected one of {PERIODS}")
        if count < 1:
            raise ValueError(f"count must be >= 1, got {count}")

        today = self._today()
        bounds: list[tuple[date, date]] = []
        if period == "day":
            for back in range(count - 1, -1, -1):
                day = today - timedelta(days=back)
                bounds.append((day, day))
        elif period == "week":
            monday = today - timedelta(days=today.weekday())
            for back in range(count - 1, -1, -1):
                start = monday - timedelta(weeks=back)
                bounds.append((start, start + timedelta(days=6)))
        else:
            year, month = today.year, today.month
            months = []
            for _ in range(count):
                months.append((year, month))
                year, month = (year, month - 1) if month > 1 else (year - 1, 12)
            for year, month in reversed(months):
                last_day = calendar.monthrange(year, month)[1]
                bounds.append((date(year, month, 1), date(year, month, last_day)))

        buckets = []
        for start, end in bounds:
            duration = sessions = 0
            day = start
            while day <= end:
                day_duration, day_sessions = self._duration_on(doc, day.isoformat())
                duration += day_duration
                sessions += day_sessions
                day += timedelta(days=1)
            buckets.append(
                {
                    "start": start.isoformat(),
                    "end": end.isoformat(),
                    "durationSeconds": duration,
                    "sessionsCount": sessions,
                }
            )
        return buckets

    # =========================================================================
    # DISTRIBUTION & CALENDAR
    # =========================================================================

    def technique_distribution(self, doc: StatsDocument) -> list[dict[str, Any]]:
        """
        Share of each technique in the practice history.

        Args:
            doc: Statistics document.

        Returns:
            List of {techniqueId, name, count, percentage} sorted by count
            descending; the name comes from the first session recorded with
            that technique (else the id). Empty when nothing was counted.

        Example:
            >>> [d["percentage"] for d in engine.technique_distribution(doc)]
            [75.0, 25.0]
        """
        counts = doc.favorite_techniques
        total = sum(counts.values())
        if total <= 0:
            return []

        names: dict[str, str] = {}
        for record in doc.sessions:
            names.setdefault(record.technique_id, record.technique_name)

        distribution = [
            {
                "techniqueId": technique_id,
                "name": names.get(technique_id, technique_id),
                "count": count,
                "percentage": 100.0 * count / total,
            }
            for technique_id, count in counts.items()
        ]
        distribution.sort(key=lambda item: item["count"], reverse=True)
        return distribution

    @staticmethod
    def activity_intensity(duration_seconds: int) -> int:
        """Map a day's practice time to 0 (none) .. 3 (30 min or more)."""
        if duration_seconds >= Config.ACTIVITY_HIGH_SECONDS:
            return 3
        if duration_seconds >= Config.ACTIVITY_MEDIUM_SECONDS:
            return 2
        if duration_seconds > 0:
            return 1
        return 0

    def activity_calendar(
        self, doc: StatsDocument, year: int, month: int
    ) -> list[dict[str, Any]]:
        """
        Per-day activity of one month.

        Args:
            doc: Statistics document.
            year: Calendar year.
            month: 1-12.

        Returns:
            One {date, durationSeconds, sessions, intensity} per day.

        Raises:
            ValueError: If month is out of range.
        """
        if not 1 <= month <= 12:
            raise ValueError(f"month must be 1-12, got {month}")
        days = calendar.monthrange(year, month)[1]
        result = []
        for day_number in range(1, days + 1):
            day = date(year, month, day_number).isoformat()
            duration, sessions = self._duration_on(doc, day)
            intensity = self.activity_intensity(duration)
            if intensity == 0 and sessions > 0:
                intensity = 1
            result.append(
                {
                    "date": day,
                    "durationSeconds": duration,
                    "sessions": sessions,
                    "intensity": intensity,
                }
            )
        return result

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    def rebuild_daily_stats(self, sessions: list[SessionRecord]) -> dict[str, DailyStat]:
        """
        Recompute every daily bucket from the raw session list.

        Sessions with an unparseable timestamp are skipped.
        """
        rebuilt: dict[str, DailyStat] = {}
        for record in sessions:
            day = self._session_day(record)
            if day is None:
                continue
            rebuilt.setdefault(day, DailyStat(date=day)).add(record)
        return rebuilt

    def reconcile_daily_stats(self, doc: StatsDocument) -> list[str]:
        """
        Fix daily buckets that disagree with the raw sessions, in place.

        Buckets for days that have sessions are replaced by the rebuilt
        ones when their totals differ; buckets for days without any
        session are left alone.

        Args:
            doc: Document to repair (callers pass a copy).

        Returns:
            Sorted list of the dates that were changed.
        """
        changed = []
        for day, rebuilt in self.rebuild_daily_stats(doc.sessions).items():
            current = doc.daily_stats.get(day)
            if current != rebuilt:
                doc.daily_stats[day] = rebuilt
                changed.append(day)
        return sorted(changed)

    # =========================================================================
    # REPORT
    # =========================================================================

    @staticmethod
    def format_duration(seconds: int) -> str:
        """
        Human readable duration.

        Example:
            >>> StatisticsEngine.format_duration(3900)
            '1h 5m'
            >>> StatisticsEngine.format_duration(45)
            '45s'
        """
        hours, rest = divmod(max(0, int(seconds)), 3600)
        minutes, secs = divmod(rest, 60)
        if hours:
            return f"{hours}h {minutes}m"
        if minutes:
            return f"{minutes}m"
        return f"{secs}s"

    def generate_summary_report(self, doc: StatsDocument) -> str:
        """
        Generate a text summary of all practice statistics.

        Args:
            doc: Statistics document.

        Returns:
            Multi-line report for terminal display: totals, streak,
            technique shares and the last seven days.

        Example:
            >>> print(engine.generate_summary_report(doc))
            ==================================================
            BREATHFLOW - PRACTICE REPORT
            ...
        """
        streak = self.streak_info(doc)
        completed = sum(1 for s in doc.sessions if s.completed)
        average = doc.total_duration_seconds // doc.total_sessions if doc.total_sessions else 0
        next_goal = streak["nextMilestone"]

        lines = [
            "=" * 50,
            "BREATHFLOW - PRACTICE REPORT",
            "=" * 50,
            "",
            "📊 PRACTICE SUMMARY",
            f"  • Total sessions: {doc.total_sessions}",
            f"  • Completed sessions: {completed}",
            f"  • Total practice time: {self.format_duration(doc.total_duration_seconds)}",
            f"  • Average session: {self.format_duration(average)}",
            "",
            "🔥 STREAK",
            f"  • Current: {streak['current']} days",
            f"  • Best: {streak['max']} days",
            f"  • Next milestone: {f'{next_goal} days' if next_goal else 'all reached'}",
        ]
        if doc.streak_milestone_message:
            lines.append(f"  • {doc.streak_milestone_message}")

        lines.extend(["", "🧘 TECHNIQUES"])
        distribution = self.technique_distribution(doc)
        if not distribution:
            lines.append("  • No sessions yet")
        for item in distribution:
            lines.append(f"  • {item['name']}: {item['count']} ({item['percentage']:.0f}%)")

        lines.extend(["", "📅 LAST 7 DAYS"])
        for entry in self.weekly_series(doc, num_weeks=1):
            lines.append(f"  {entry['date']}: {self.format_duration(entry['durationSeconds'])}")

        lines.extend(["", "=" * 50])
        return "\n".join(lines)
