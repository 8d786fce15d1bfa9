"""Tests for statistics module."""

from __future__ import annotations

import sys
from datetime import date, timedelta
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from breathflow_tracker.models import DailyStat, SessionRecord, StatsDocument
from breathflow_tracker.statistics import StatisticsEngine, to_local_date
from conftest import TODAY, record_on


def _stats_for(*days_ago: int, duration: int = 300) -> dict[str, DailyStat]:
    stats = {}
    for back in days_ago:
        day = (TODAY - timedelta(days=back)).isoformat()
        stats[day] = DailyStat(day, duration, 1, {"478": 1})
    return stats


def _iso(days_ago: int) -> str:
    return f"{(TODAY - timedelta(days=days_ago)).isoformat()}T09:00:00"


class TestToLocalDate:
    """Tests for to_local_date()."""

    def test_naive_timestamp_is_local(self) -> None:
        assert to_local_date("2025-06-01T23:30:00") == date(2025, 6, 1)

    def test_utc_suffix_accepted(self) -> None:
        assert to_local_date("2025-06-01T12:00:00Z") == date(2025, 6, 1)

    def test_invalid_raises(self) -> None:
        with pytest.raises(ValueError):
            to_local_date("yesterday")


@pytest.mark.usefixtures("new_york_tz")
class TestToLocalDateInTimezone:
    """Test suite for to_local_date() with the local zone pinned to US Eastern.

    Categories:
    1. Offsets near midnight - converted before taking the date (4 tests)
    2. DST switches - the offset in force at that instant is used (4 tests)
    3. Naive timestamps - never converted (1 test)

    Total: 9 tests.
    """

    @pytest.mark.parametrize(
        ("timestamp", "expected"),
        [
            ("2025-06-14T23:30:00-05:00", date(2025, 6, 15)),
            ("2025-06-15T00:30:00+09:00", date(2025, 6, 14)),
            ("2025-06-15T03:59:00Z", date(2025, 6, 14)),
            ("2025-01-15T04:30:00Z", date(2025, 1, 14)),
        ],
    )
    def test_offset_near_midnight(self, timestamp: str, expected: date) -> None:
        assert to_local_date(timestamp) == expected

    @pytest.mark.parametrize(
        ("timestamp", "expected"),
        [
            # Spring forward 2025-03-09 07:00Z
            ("2025-03-09T06:30:00Z", date(2025, 3, 9)),
            ("2025-03-10T04:30:00Z", date(2025, 3, 10)),
            # Fall back 2025-11-02 06:00Z
            ("2025-11-02T05:30:00Z", date(2025, 11, 2)),
            ("2025-11-03T04:30:00Z", date(2025, 11, 2)),
        ],
    )
    def test_dst_transition(self, timestamp: str, expected: date) -> None:
        assert to_local_date(timestamp) == expected

    def test_naive_timestamp_in_skipped_hour_keeps_its_date(self) -> None:
        assert to_local_date("2025-03-09T02:30:00") == date(2025, 3, 9)


class TestCalculateStreak:
    """Test suite for StatisticsEngine.calculate_streak().

    Categories:
    1. Empty history (1 test)
    2. Consecutive days ending today or yesterday (1 parametrized test)
    3. Broken streaks (2 tests)
    4. Last session today without a bucket (1 test)

    Total: 5 tests.
    """

    def test_no_sessions(self, engine: StatisticsEngine) -> None:
        assert engine.calculate_streak(None, {}) == 0

    @pytest.mark.parametrize(
        ("last_days_ago", "active_days_ago", "expected"),
        [
            (0, (0,), 1),
            (0, (0, 1, 2), 3),
            (1, (1, 2), 2),
            (1, (1,), 1),
            (0, (0, 1, 2, 3, 4, 5, 6), 7),
        ],
    )
    def test_consecutive_days(
        self,
        engine: StatisticsEngine,
        last_days_ago: int,
        active_days_ago: tuple[int, ...],
        expected: int,
    ) -> None:
        """Verifies the streak counts consecutive active days.

        Business context:
        A streak that ends yesterday is still alive: the user has until
        the end of today to extend it.

        Arrangement:
        Daily buckets on the given days before TODAY.

        Action:
        calculate_streak() with the last session on last_days_ago.

        Assertion Strategy:
        Validates the exact streak length.
        """
        stats = _stats_for(*active_days_ago)
        assert engine.calculate_streak(_iso(last_days_ago), stats) == expected

    def test_last_session_before_yesterday_breaks_streak(
        self, engine: StatisticsEngine
    ) -> None:
        assert engine.calculate_streak(_iso(2), _stats_for(2, 3, 4)) == 0

    def test_gap_resets_count(self, engine: StatisticsEngine) -> None:
        assert engine.calculate_streak(_iso(0), _stats_for(0, 2, 3)) == 1

    def test_today_counts_without_bucket(self, engine: StatisticsEngine) -> None:
        assert engine.calculate_streak(_iso(0), _stats_for(1)) == 2


class TestMilestones:
    """Tests for milestone detection."""

    @pytest.mark.parametrize(
        ("current", "previous", "expected"),
        [
            (3, 2, 3),
            (4, 3, None),
            (7, 6, 7),
            (1, 0, None),
            (8, 2, 3),
            (0, 5, None),
        ],
    )
    def test_check_streak_milestone(
        self, current: int, previous: int, expected: int | None
    ) -> None:
        assert StatisticsEngine.check_streak_milestone(current, previous) == expected

    @pytest.mark.parametrize(
        ("streak", "expected"), [(0, 3), (3, 7), (29, 30), (364, 365), (365, None)]
    )
    def test_next_milestone(self, streak: int, expected: int | None) -> None:
        assert StatisticsEngine.next_milestone(streak) == expected

    def test_streak_info_falls_back_to_current_for_best(
        self, engine: StatisticsEngine
    ) -> None:
        info = engine.streak_info(StatsDocument(streak=4, last_streak_milestone=3))
        assert info == {"current": 4, "max": 4, "lastMilestone": 3, "nextMilestone": 7}


class TestSeries:
    """Test suite for weekly and period series.

    Categories:
    1. Weekly - length, order, fallback to sessions (3 tests)
    2. Period - day, week, month buckets (3 tests)
    3. Validation (2 tests)

    Total: 8 tests.
    """

    def test_weekly_series_shape(self, engine: StatisticsEngine) -> None:
        series = engine.weekly_series(StatsDocument(daily_stats=_stats_for(0, 3)), num_weeks=1)

        assert len(series) == 7
        assert series[0]["date"] == "2025-06-09"
        assert series[-1] == {"date": "2025-06-15", "durationSeconds": 300}
        assert series[3] == {"date": "2025-06-12", "durationSeconds": 300}
        assert series[1]["durationSeconds"] == 0

    def test_weekly_series_default_four_weeks(self, engine: StatisticsEngine) -> None:
        assert len(engine.weekly_series(StatsDocument())) == 28

    def test_weekly_series_falls_back_to_sessions(self, engine: StatisticsEngine) -> None:
        """Verifies days without a bucket are summed from raw sessions.

        Business context:
        Stores imported from older versions may lack some daily buckets;
        the charts must still show that practice.
        """
        doc = StatsDocument(
            sessions=[
                record_on(TODAY, duration_seconds=120),
                record_on(TODAY, duration_seconds=60, hour=18),
            ]
        )
        series = engine.weekly_series(doc, num_weeks=1)
        assert series[-1]["durationSeconds"] == 180

    def test_period_days(self, engine: StatisticsEngine) -> None:
        buckets = engine.period_series(StatsDocument(daily_stats=_stats_for(1)), "day", 3)
        assert [b["start"] for b in buckets] == ["2025-06-13", "2025-06-14", "2025-06-15"]
        assert buckets[1]["sessionsCount"] == 1

    def test_period_weeks_are_monday_based(self, engine: StatisticsEngine) -> None:
        doc = StatsDocument(daily_stats=_stats_for(0, 6, 7))
        buckets = engine.period_series(doc, "week", 2)

        assert buckets[0]["start"] == "2025-06-02"
        assert buckets[0]["end"] == "2025-06-08"
        assert buckets[0]["durationSeconds"] == 300
        assert buckets[1] == {
            "start": "2025-06-09",
            "end": "2025-06-15",
            "durationSeconds": 600,
            "sessionsCount": 2,
        }

    def test_period_months_cross_year(self, engine: StatisticsEngine) -> None:
        buckets = engine.period_series(StatsDocument(), "month", 7)
        assert buckets[0]["start"] == "2024-12-01"
        assert buckets[0]["end"] == "2024-12-31"
        assert buckets[-1]["end"] == "2025-06-30"

    def test_unknown_period(self, engine: StatisticsEngine) -> None:
        with pytest.raises(ValueError, match="Unknown period"):
            engine.period_series(StatsDocument(), "year", 1)

    @pytest.mark.parametrize("weeks", [0, -1])
    def test_invalid_week_count(self, engine: StatisticsEngine, weeks: int) -> None:
        with pytest.raises(ValueError):
            engine.weekly_series(StatsDocument(), weeks)


class TestTechniqueDistribution:
    """Tests for technique_distribution()."""

    def test_percentages_sorted_by_count(self, engine: StatisticsEngine) -> None:
        """Verifies shares of a 3:1 split.

        Arrangement:
        favorite_techniques {A: 3, B: 1}, no sessions (names fall back to ids).

        Assertion Strategy:
        Validates order, counts and percentages 75/25.
        """
        doc = StatsDocument(favorite_techniques={"B": 1, "A": 3})

        result = engine.technique_distribution(doc)

        assert [(d["name"], d["count"], d["percentage"]) for d in result] == [
            ("A", 3, 75.0),
            ("B", 1, 25.0),
        ]
        assert result[0]["techniqueId"] == "A"

    def test_names_come_from_sessions(self, engine: StatisticsEngine) -> None:
        doc = StatsDocument(
            sessions=[record_on(TODAY, technique_id="box", technique_name="Box Breathing")],
            favorite_techniques={"box": 1},
        )
        assert engine.technique_distribution(doc)[0]["name"] == "Box Breathing"

    def test_empty(self, engine: StatisticsEngine) -> None:
        assert engine.technique_distribution(StatsDocument()) == []


class TestActivityCalendar:
    """Tests for activity_calendar() and activity_intensity()."""

    @pytest.mark.parametrize(
        ("seconds", "expected"), [(0, 0), (1, 1), (599, 1), (600, 2), (1799, 2), (1800, 3)]
    )
    def test_intensity_thresholds(self, seconds: int, expected: int) -> None:
        assert StatisticsEngine.activity_intensity(seconds) == expected

    def test_month_days(self, engine: StatisticsEngine) -> None:
        stats = {
            "2025-06-01": DailyStat("2025-06-01", 1800, 2),
            "2025-06-02": DailyStat("2025-06-02", 0, 1),
        }
        days = engine.activity_calendar(StatsDocument(daily_stats=stats), 2025, 6)

        assert len(days) == 30
        assert days[0] == {
            "date": "2025-06-01",
            "durationSeconds": 1800,
            "sessions": 2,
            "intensity": 3,
        }
        assert days[1]["intensity"] == 1
        assert days[2]["intensity"] == 0

    def test_february_leap_year(self, engine: StatisticsEngine) -> None:
        assert len(engine.activity_calendar(StatsDocument(), 2024, 2)) == 29

    def test_invalid_month(self, engine: StatisticsEngine) -> None:
        with pytest.raises(ValueError):
            engine.activity_calendar(StatsDocument(), 2025, 13)


class TestReconcile:
    """Tests for rebuild_daily_stats() and reconcile_daily_stats()."""

    def test_rebuild_skips_bad_timestamps(self, engine: StatisticsEngine) -> None:
        good = record_on(TODAY, duration_seconds=60)
        bad = SessionRecord("478", "478", 30, "garbage", True)

        rebuilt = engine.rebuild_daily_stats([good, bad])

        assert list(rebuilt) == ["2025-06-15"]
        assert rebuilt["2025-06-15"].total_duration_seconds == 60

    def test_reconcile_repairs_drifted_days_only(self, engine: StatisticsEngine) -> None:
        """Verifies only buckets that disagree with sessions are rewritten.

        Business context:
        Buckets without sessions may come from an imported store that
        dropped its raw history; they must survive a repair.

        Arrangement:
        Two sessions on the 14th with a stale bucket, a correct bucket on
        the 15th and an orphan bucket on the 1st.

        Action:
        reconcile_daily_stats().

        Assertion Strategy:
        Validates changed dates and that the orphan bucket is untouched.
        """
        day = TODAY - timedelta(days=1)
        sessions = [
            record_on(day, duration_seconds=100),
            record_on(day, duration_seconds=50, hour=20),
            record_on(TODAY, duration_seconds=60),
        ]
        orphan = DailyStat("2025-06-01", 999, 3, {"box": 3})
        doc = StatsDocument(
            sessions=sessions,
            daily_stats={
                "2025-06-14": DailyStat("2025-06-14", 100, 1, {"478": 1}),
                "2025-06-15": DailyStat("2025-06-15", 60, 1, {"478": 1}),
                "2025-06-01": orphan,
            },
        )

        changed = engine.reconcile_daily_stats(doc)

        assert changed == ["2025-06-14"]
        assert doc.daily_stats["2025-06-14"] == DailyStat("2025-06-14", 150, 2, {"478": 2})
        assert doc.daily_stats["2025-06-01"] == orphan


class TestReport:
    """Tests for format_duration() and generate_summary_report()."""

    @pytest.mark.parametrize(
        ("seconds", "expected"), [(0, "0s"), (45, "45s"), (300, "5m"), (3900, "1h 5m")]
    )
    def test_format_duration(self, seconds: int, expected: str) -> None:
        assert StatisticsEngine.format_duration(seconds) == expected

    def test_empty_report(self, engine: StatisticsEngine) -> None:
        report = engine.generate_summary_report(StatsDocument())
        assert "BREATHFLOW - PRACTICE REPORT" in report
        assert "No sessions yet" in report
        assert "Total sessions: 0" in report

    def test_report_with_history(self, engine: StatisticsEngine) -> None:
        doc = StatsDocument(
            total_sessions=2,
            total_duration_seconds=600,
            streak=3,
            max_streak=5,
            streak_milestone_message="Three days!",
            sessions=[
                record_on(TODAY, technique_id="box", technique_name="Box Breathing"),
                record_on(TODAY, technique_id="box", completed=False, hour=19),
            ],
            daily_stats=_stats_for(0),
            favorite_techniques={"box": 2},
        )

        report = engine.generate_summary_report(doc)

        assert "Completed sessions: 1" in report
        assert "Average session: 5m" in report
        assert "Best: 5 days" in report
        assert "Next milestone: 7 days" in report
        assert "Three days!" in report
        assert "Box Breathing: 2 (100%)" in report
        assert "2025-06-15: 5m" in report
