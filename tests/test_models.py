"""Tests for models module."""

from __future__ import annotations

import json
import sys
from datetime import date
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent))

from breathflow_tracker.models import (
    DailyStat,
    RepetitionGate,
    SessionRecord,
    Step,
    StepCatalog,
    StatsDocument,
)
from conftest import record_on


class TestStep:
    """Test suite for Step.

    Categories:
    1. Serialization - camelCase keys, optional flags (2 tests)
    2. Legacy keys - 'duration' accepted (1 test)
    3. Validation - non-integer durations (1 test)

    Total: 4 tests.
    """

    def test_to_dict_omits_unset_flags(self) -> None:
        assert Step("In", 4000, "breathe").to_dict() == {
            "name": "In",
            "durationMs": 4000,
            "instruction": "breathe",
        }

    def test_from_dict_reads_flags(self) -> None:
        step = Step.from_dict(
            {"name": "Hold", "durationMs": 0, "isHold": True, "holdUntilUserAction": True}
        )
        assert step.is_hold
        assert step.hold_until_user_action
        assert Step.from_dict(step.to_dict()) == step

    def test_from_dict_accepts_legacy_duration(self) -> None:
        assert Step.from_dict({"name": "In", "duration": 1500}).duration_ms == 1500

    @pytest.mark.parametrize("duration", ["4000", 4.5, True, None])
    def test_from_dict_rejects_non_integer_duration(self, duration: object) -> None:
        with pytest.raises(TypeError):
            Step.from_dict({"name": "In", "durationMs": duration})


class TestStepCatalog:
    """Tests for derived catalog properties."""

    def test_cycle_duration_counts_gate_repetitions_and_skips_user_holds(self) -> None:
        catalog = StepCatalog(
            steps=(
                Step("In", 1000),
                Step("Out", 1000),
                Step("Hold", 0, hold_until_user_action=True),
                Step("Recover", 5000),
            ),
            gate=RepetitionGate(repetitions=3),
        )
        assert catalog.cycle_duration_ms == 3 * 2000 + 5000


class TestSessionRecord:
    """Test suite for SessionRecord.

    Categories:
    1. Factory - timestamp defaults (2 tests)
    2. Serialization - round trip and legacy keys (2 tests)

    Total: 4 tests.
    """

    def test_create_stamps_local_time_with_offset(self) -> None:
        record = SessionRecord.create("box", "Box Breathing", 300, True)
        assert record.timestamp_iso
        assert "+" in record.timestamp_iso[10:] or "-" in record.timestamp_iso[10:]

    def test_create_keeps_explicit_timestamp(self) -> None:
        record = SessionRecord.create("box", "Box", 60, False, "2025-01-01T08:00:00")
        assert record.timestamp_iso == "2025-01-01T08:00:00"

    def test_round_trip(self) -> None:
        record = record_on(date(2025, 6, 1), technique_id="box")
        assert SessionRecord.from_dict(record.to_dict()) == record

    def test_from_dict_accepts_legacy_keys(self) -> None:
        record = SessionRecord.from_dict(
            {"techniqueId": "478", "duration": 120, "date": "2025-06-01T10:00:00.000Z"}
        )
        assert record.duration_seconds == 120
        assert record.timestamp_iso == "2025-06-01T10:00:00.000Z"
        assert record.technique_name == "478"
        assert record.completed is False


class TestDailyStat:
    """Tests for DailyStat."""

    def test_add_folds_record(self) -> None:
        stat = DailyStat(date="2025-06-01")
        stat.add(record_on(date(2025, 6, 1), technique_id="box", duration_seconds=60))
        stat.add(record_on(date(2025, 6, 1), technique_id="box", duration_seconds=30))

        assert stat.total_duration_seconds == 90
        assert stat.sessions_count == 2
        assert stat.technique_counts == {"box": 2}

    def test_from_dict_accepts_legacy_keys(self) -> None:
        stat = DailyStat.from_dict(
            {"date": "2025-06-01", "totalDuration": 90, "sessionsCount": 2, "techniques": {"box": 2}}
        )
        assert stat == DailyStat("2025-06-01", 90, 2, {"box": 2})


class TestStatsDocument:
    """Test suite for StatsDocument serialization.

    Categories:
    1. Round trip through JSON with no field loss (1 test)
    2. Defaults for absent fields (1 test)
    3. Legacy mobile store import (1 test)
    4. Copy isolation (1 test)

    Total: 4 tests.
    """

    def test_round_trip_through_json(self) -> None:
        """Verifies save-then-load yields an equal document.

        Business context:
        Statistics survive restarts; losing a field would silently break
        streaks or milestones.

        Arrangement:
        Document with every field populated.

        Action:
        to_dict → json.dumps → json.loads → from_dict.

        Assertion Strategy:
        Validates dataclass equality.
        """
        record = record_on(date(2025, 6, 1), technique_id="box", duration_seconds=120)
        stat = DailyStat("2025-06-01")
        stat.add(record)
        doc = StatsDocument(
            total_sessions=1,
            total_duration_seconds=120,
            last_session_date_iso=record.timestamp_iso,
            streak=3,
            max_streak=7,
            last_streak_milestone=3,
            streak_milestone_message="three days",
            sessions=[record],
            daily_stats={"2025-06-01": stat},
            favorite_techniques={"box": 1},
        )

        restored = StatsDocument.from_dict(json.loads(json.dumps(doc.to_dict())))

        assert restored == doc

    def test_absent_fields_default(self) -> None:
        doc = StatsDocument.from_dict({})
        assert doc == StatsDocument()
        assert doc.last_streak_milestone is None
        assert doc.max_streak == 0

    def test_legacy_store_import(self) -> None:
        doc = StatsDocument.from_dict(
            {
                "totalSessions": 1,
                "totalDuration": 300,
                "lastSessionDate": "2025-06-01T10:00:00.000Z",
                "streak": 1,
                "sessions": [
                    {"techniqueId": "478", "techniqueName": "4-7-8", "duration": 300,
                     "date": "2025-06-01T10:00:00.000Z", "completed": True}
                ],
                "dailyStats": {
                    "2025-06-01": {"totalDuration": 300, "sessionsCount": 1, "techniques": {"478": 1}}
                },
                "favoriteTechniques": {"478": 1},
            }
        )
        assert doc.total_duration_seconds == 300
        assert doc.last_session_date_iso == "2025-06-01T10:00:00.000Z"
        assert doc.daily_stats["2025-06-01"].date == "2025-06-01"
        assert doc.sessions[0].duration_seconds == 300

    def test_copy_is_deep(self) -> None:
        doc = StatsDocument(favorite_techniques={"box": 1})
        clone = doc.copy()
        clone.favorite_techniques["box"] = 5
        assert doc.favorite_techniques == {"box": 1}
