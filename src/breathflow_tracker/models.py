"""
Data models for BreathFlow Tracker.

PURPOSE: Type-safe dataclasses representing core domain entities.
AI CONTEXT: These models define the step catalog and the persisted statistics schema.

MODEL HIERARCHY:
- Step: One named phase of a breathing cycle (inhale, hold, exhale...)
- RepetitionGate: Count-gated repetition of the leading steps of a catalog
- StepCatalog: Ordered steps plus gate/round settings for one technique
- SessionRecord: Immutable summary of one finished or interrupted run
- DailyStat: Per-calendar-day bucket of practice
- StatsDocument: The single persisted aggregate of all practice

SERIALIZATION:
SessionRecord, DailyStat and StatsDocument have to_dict() for JSON persistence
and from_dict() for loading. Keys are camelCase so the document stays
compatible with stores exported from the mobile app; from_dict() also
accepts that app's legacy key names.

USAGE:
    step = Step("Inhale", 4000, "Breathe in slowly through the nose")
    catalog = StepCatalog(steps=(step, ...))
    record = SessionRecord.create("box", "Box Breathing", 300, completed=True)
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any


def _now_iso() -> str:
    """
    Get current local time as an ISO 8601 string with UTC offset.

    The offset is kept so the local calendar date of the session can be
    recovered later regardless of the machine's timezone at read time.

    Returns:
        ISO 8601 formatted datetime string, e.g. '2025-12-01T10:30:00+01:00'.
    """
    return datetime.now().astimezone().isoformat()


@dataclass(frozen=True)
class Step:
    """
    One named phase of a breathing cycle.

    FLAGS:
    - is_hold: The phase is a breath retention (feedback hint only)
    - hold_until_user_action: The phase has no timer; only an explicit
      advance() leaves it. duration_ms is ignored and may be 0.
    """

    name: str
    duration_ms: int
    instruction: str = ""
    is_hold: bool = False
    hold_until_user_action: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Serialize step to the catalog JSON shape."""
        data: dict[str, Any] = {
            "name": self.name,
            "durationMs": self.duration_ms,
            "instruction": self.instruction,
        }
        if self.is_hold:
            data["isHold"] = True
        if self.hold_until_user_action:
            data["holdUntilUserAction"] = True
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Step:
        """
        Deserialize a step from catalog JSON.

        Accepts both 'durationMs' and the mobile app's 'duration' key.

        Args:
            data: Dict with name, durationMs/duration, instruction and
                optional isHold/holdUntilUserAction flags.

        Returns:
            Step instance.

        Raises:
            KeyError: If 'name' is missing.
            TypeError: If the duration is not an integer.
        """
        duration = data.get("durationMs", data.get("duration", 0))
        if isinstance(duration, bool) or not isinstance(duration, int):
            raise TypeError(f"Step duration must be an integer, got {duration!r}")
        return cls(
            name=data["name"],
            duration_ms=duration,
            instruction=data.get("instruction", ""),
            is_hold=bool(data.get("isHold", False)),
            hold_until_user_action=bool(data.get("holdUntilUserAction", False)),
        )


@dataclass(frozen=True)
class RepetitionGate:
    """
    Count-gated repetition of the first steps of a catalog.

    The first block_length steps (typically an inhale/exhale pair) repeat
    `repetitions` times; after the last repetition the sequencer moves on
    to step block_length, usually a retention held until user action.
    """

    repetitions: int
    block_length: int = 2


@dataclass(frozen=True)
class StepCatalog:
    """
    Read-only configuration input of the sequencer for one technique.

    ROUNDS:
    When max_rounds is set, every cycles_per_round completed cycles close
    a round; closing round max_rounds completes the session even when the
    target duration has not elapsed.
    """

    steps: tuple[Step, ...]
    gate: RepetitionGate | None = None
    max_rounds: int | None = None
    cycles_per_round: int = 1

    @property
    def cycle_duration_ms(self) -> int:
        """
        Duration of one timed pass through the catalog.

        Gate repetitions are included; steps held until user action
        contribute nothing because they have no timer.
        """
        total = 0
        for index, step in enumerate(self.steps):
            if step.hold_until_user_action:
                continue
            if self.gate is not None and index < self.gate.block_length:
                total += step.duration_ms * self.gate.repetitions
            else:
                total += step.duration_ms
        return total

    def to_dict(self) -> dict[str, Any]:
        """Serialize catalog to the JSON object form accepted by catalog.parse_catalog()."""
        data: dict[str, Any] = {"steps": [step.to_dict() for step in self.steps]}
        if self.gate is not None:
            data["gate"] = {
                "repetitions": self.gate.repetitions,
                "blockLength": self.gate.block_length,
            }
        if self.max_rounds is not None:
            data["maxRounds"] = self.max_rounds
            data["cyclesPerRound"] = self.cycles_per_round
        return data


@dataclass(frozen=True)
class SessionRecord:
    """
    Immutable summary of one practice run.

    duration_seconds is the time actually practiced, not the configured
    target: interrupted sessions report their elapsed time and
    completed=False.
    """

    technique_id: str
    technique_name: str
    duration_seconds: int
    timestamp_iso: str
    completed: bool

    @classmethod
    def create(
        cls,
        technique_id: str,
        technique_name: str,
        duration_seconds: int,
        completed: bool,
        timestamp_iso: str | None = None,
    ) -> SessionRecord:
        """
        Factory method stamping the record with the current local time.

        Args:
            technique_id: Catalog key of the technique practiced.
            technique_name: Display name of the technique.
            duration_seconds: Whole seconds practiced.
            completed: True when the session ran to its natural end.
            timestamp_iso: Explicit timestamp; defaults to now.

        Returns:
            New SessionRecord.

        Example:
            >>> record = SessionRecord.create("box", "Box Breathing", 300, True)
            >>> record.completed
            True
        """
        return cls(
            technique_id=technique_id,
            technique_name=technique_name,
            duration_seconds=duration_seconds,
            timestamp_iso=timestamp_iso or _now_iso(),
            completed=completed,
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize record to dictionary for JSON storage."""
        return {
            "techniqueId": self.technique_id,
            "techniqueName": self.technique_name,
            "durationSeconds": self.duration_seconds,
            "timestampIso": self.timestamp_iso,
            "completed": self.completed,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SessionRecord:
        """
        Deserialize record from dictionary.

        Supports both current keys and the legacy 'duration'/'date' keys
        of the mobile app store.

        Args:
            data: Dict as stored by to_dict().

        Returns:
            SessionRecord instance.

        Raises:
            KeyError: If 'techniqueId' is missing.
        """
        technique_id = data["techniqueId"]
        return cls(
            technique_id=technique_id,
            technique_name=data.get("techniqueName", technique_id),
            duration_seconds=int(data.get("durationSeconds", data.get("duration", 0))),
            timestamp_iso=data.get("timestampIso", data.get("date", "")),
            completed=bool(data.get("completed", False)),
        )


@dataclass
class DailyStat:
    """Practice bucket for one local calendar date (YYYY-MM-DD)."""

    date: str
    total_duration_seconds: int = 0
    sessions_count: int = 0
    technique_counts: dict[str, int] = field(default_factory=dict)

    def add(self, record: SessionRecord) -> None:
        """
        Fold one session into this bucket.

        Args:
            record: Session whose local date is this bucket's date.
        """
        self.total_duration_seconds += record.duration_seconds
        self.sessions_count += 1
        self.technique_counts[record.technique_id] = (
            self.technique_counts.get(record.technique_id, 0) + 1
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize bucket to dictionary for JSON storage."""
        return {
            "date": self.date,
            "totalDurationSeconds": self.total_duration_seconds,
            "sessionsCount": self.sessions_count,
            "techniqueCounts": dict(self.technique_counts),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DailyStat:
        """Deserialize bucket, accepting the legacy 'totalDuration'/'techniques' keys."""
        return cls(
            date=data["date"],
            total_duration_seconds=int(
                data.get("totalDurationSeconds", data.get("totalDuration", 0))
            ),
            sessions_count=int(data.get("sessionsCount", 0)),
            technique_counts=dict(data.get("techniqueCounts", data.get("techniques", {}))),
        )


@dataclass
class StatsDocument:
    """
    The single persisted aggregate of all practice history.

    INVARIANTS:
    - total_sessions == len(sessions)
    - total_duration_seconds == sum of session durations
    - daily_stats[d].sessions_count == sessions whose local date is d
    - streak <= max_streak

    LIFECYCLE:
    Loaded once at startup, replaced as a whole (never mutated in place
    where callers can see it) after every recorded session.
    """

    total_sessions: int = 0
    total_duration_seconds: int = 0
    last_session_date_iso: str | None = None
    streak: int = 0
    max_streak: int = 0
    last_streak_milestone: int | None = None
    streak_milestone_message: str | None = None
    sessions: list[SessionRecord] = field(default_factory=list)
    daily_stats: dict[str, DailyStat] = field(default_factory=dict)
    favorite_techniques: dict[str, int] = field(default_factory=dict)

    def copy(self) -> StatsDocument:
        """Return a deep copy safe to mutate before swapping it in."""
        return copy.deepcopy(self)

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize document to dictionary for JSON storage.

        Returns:
            Dict with camelCase keys; daily stats keyed by date.

        Example:
            >>> StatsDocument().to_dict()["totalSessions"]
            0
        """
        return {
            "totalSessions": self.total_sessions,
            "totalDurationSeconds": self.total_duration_seconds,
            "lastSessionDateIso": self.last_session_date_iso,
            "streak": self.streak,
            "maxStreak": self.max_streak,
            "lastStreakMilestone": self.last_streak_milestone,
            "streakMilestoneMessage": self.streak_milestone_message,
            "sessions": [s.to_dict() for s in self.sessions],
            "dailyStats": {d: stat.to_dict() for d, stat in self.daily_stats.items()},
            "favoriteTechniques": dict(self.favorite_techniques),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> StatsDocument:
        """
        Deserialize document from dictionary.

        Absent optional fields default to 0/None instead of raising, and
        the legacy keys of the mobile app store are accepted.

        Args:
            data: Dict as stored by to_dict(), possibly partial.

        Returns:
            StatsDocument instance.

        Raises:
            KeyError: If a session or daily bucket lacks its required key.
            TypeError: If a nested value has the wrong container type.
        """
        daily = data.get("dailyStats") or {}
        return cls(
            total_sessions=int(data.get("totalSessions", 0)),
            total_duration_seconds=int(
                data.get("totalDurationSeconds", data.get("totalDuration", 0))
            ),
            last_session_date_iso=data.get("lastSessionDateIso", data.get("lastSessionDate")),
            streak=int(data.get("streak", 0)),
            max_streak=int(data.get("maxStreak") or 0),
            last_streak_milestone=data.get("lastStreakMilestone"),
            streak_milestone_message=data.get("streakMilestoneMessage"),
            sessions=[SessionRecord.from_dict(s) for s in data.get("sessions") or []],
            daily_stats={
                day: DailyStat.from_dict({"date": day, **stat}) for day, stat in daily.items()
            },
            favorite_techniques=dict(data.get("favoriteTechniques") or {}),
        )
