"""
Presenters for BreathFlow Tracker dashboards.

PURPOSE: Testable layer between the statistics service and the HTTP/CLI views.
AI CONTEXT: Pure data transformation plus server-side chart rendering.

DESIGN PRINCIPLES:
1. Presenters receive a StatsService, return view models (dataclasses)
2. No dependency on a specific UI framework
3. Charts are PNG bytes rendered with matplotlib's Agg backend
4. matplotlib is imported lazily; callers fall back to a placeholder on ImportError

USAGE:
    presenter = DashboardPresenter(service)
    overview = presenter.get_overview()
    png = ChartPresenter(service).render_weekly_chart()
"""

from __future__ import annotations

import io
from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING, Any

from .statistics import StatisticsEngine

if TYPE_CHECKING:
    from .stats_service import StatsService

__all__ = [
    "OverviewViewModel",
    "StreakViewModel",
    "TechniqueShareViewModel",
    "CalendarDayViewModel",
    "DashboardPresenter",
    "ChartPresenter",
]

# Chart color palette for consistent styling
BAR_COLOR = "#0ea5e9"
TODAY_COLOR = "#0369a1"
TECHNIQUE_COLORS: tuple[str, ...] = (
    "#0ea5e9",
    "#22c55e",
    "#a855f7",
    "#f59e0b",
    "#ef4444",
    "#14b8a6",
    "#6366f1",
    "#84cc16",
    "#ec4899",
)

INTENSITY_CLASSES: dict[int, str] = {
    0: "activity-none",
    1: "activity-low",
    2: "activity-medium",
    3: "activity-high",
}


@dataclass
class StreakViewModel:
    """View model for the streak panel."""

    current: int
    best: int
    last_milestone: int | None
    next_milestone: int | None
    milestone_message: str | None = None

    @property
    def days_to_next(self) -> int | None:
        """Days of practice left before the next milestone, or None when all are reached."""
        if self.next_milestone is None:
            return None
        return self.next_milestone - self.current

    @property
    def progress_percent(self) -> int:
        """
        Progress from the previous milestone toward the next one.

        Example:
            >>> StreakViewModel(5, 5, 3, 7).progress_percent
            50
        """
        if self.next_milestone is None:
            return 100
        floor = self.last_milestone if self.last_milestone and self.last_milestone <= self.current else 0
        span = self.next_milestone - floor
        return int(100 * (self.current - floor) / span) if span > 0 else 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "current": self.current,
            "best": self.best,
            "lastMilestone": self.last_milestone,
            "nextMilestone": self.next_milestone,
            "milestoneMessage": self.milestone_message,
            "daysToNext": self.days_to_next,
            "progressPercent": self.progress_percent,
        }


@dataclass
class TechniqueShareViewModel:
    """One row of the technique distribution."""

    technique_id: str
    name: str
    count: int
    percentage: float

    @property
    def percentage_display(self) -> str:
        return f"{self.percentage:.0f}%"

    def to_dict(self) -> dict[str, Any]:
        return {
            "techniqueId": self.technique_id,
            "name": self.name,
            "count": self.count,
            "percentage": self.percentage,
            "percentageDisplay": self.percentage_display,
        }


@dataclass
class CalendarDayViewModel:
    """One cell of the activity calendar."""

    date: str
    duration_seconds: int
    sessions: int
    intensity: int

    @property
    def css_class(self) -> str:
        return INTENSITY_CLASSES.get(self.intensity, "activity-none")

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "durationSeconds": self.duration_seconds,
            "sessions": self.sessions,
            "intensity": self.intensity,
        }


@dataclass
class OverviewViewModel:
    """Complete view model for the dashboard overview."""

    total_sessions: int = 0
    total_duration_seconds: int = 0
    completed_sessions: int = 0
    streak: StreakViewModel | None = None
    techniques: list[TechniqueShareViewModel] = field(default_factory=list)
    last_session_date_iso: str | None = None

    @property
    def duration_display(self) -> str:
        """
        Total practice time, e.g. '1h 5m' or '5m'.

        Example:
            >>> OverviewViewModel(total_duration_seconds=3900).duration_display
            '1h 5m'
        """
        return StatisticsEngine.format_duration(self.total_duration_seconds)

    @property
    def completion_rate(self) -> float:
        if not self.total_sessions:
            return 0.0
        return 100.0 * self.completed_sessions / self.total_sessions

    def to_dict(self) -> dict[str, Any]:
        """JSON shape of GET /api/stats (camelCase, like the stored document)."""
        return {
            "totalSessions": self.total_sessions,
            "totalDurationSeconds": self.total_duration_seconds,
            "completedSessions": self.completed_sessions,
            "durationDisplay": self.duration_display,
            "completionRate": self.completion_rate,
            "streak": self.streak.to_dict() if self.streak else None,
            "techniques": [t.to_dict() for t in self.techniques],
            "lastSessionDateIso": self.last_session_date_iso,
        }


class DashboardPresenter:
    """
    Presenter for the dashboard views.

    All methods read the service's current document; none of them write.
    """

    def __init__(self, service: StatsService) -> None:
        """
        Initialize dashboard presenter.

        Args:
            service: StatsService whose document is presented.
        """
        self.service = service

    def get_streak(self) -> StreakViewModel:
        info = self.service.streak_info()
        return StreakViewModel(
            current=info["current"],
            best=info["max"],
            last_milestone=info["lastMilestone"],
            next_milestone=info["nextMilestone"],
            milestone_message=self.service.document.streak_milestone_message,
        )

    def get_techniques(self) -> list[TechniqueShareViewModel]:
        return [
            TechniqueShareViewModel(
                technique_id=item["techniqueId"],
                name=item["name"],
                count=item["count"],
                percentage=item["percentage"],
            )
            for item in self.service.technique_distribution()
        ]

    def get_calendar(self, year: int | None = None, month: int | None = None) -> list[CalendarDayViewModel]:
        """
        Activity calendar of a month, defaulting to the current one.

        Raises:
            ValueError: If month is out of range.
        """
        today = self.service.engine.today()
        return [
            CalendarDayViewModel(
                date=day["date"],
                duration_seconds=day["durationSeconds"],
                sessions=day["sessions"],
                intensity=day["intensity"],
            )
            for day in self.service.activity_calendar(year or today.year, month or today.month)
        ]

    def get_overview(self) -> OverviewViewModel:
        """
        Get complete overview data for the dashboard.

        Returns:
            OverviewViewModel with totals, streak and technique shares;
            an empty history yields zero values.

        Example:
            >>> presenter.get_overview().total_sessions
            12
        """
        doc = self.service.document
        return OverviewViewModel(
            total_sessions=doc.total_sessions,
            total_duration_seconds=doc.total_duration_seconds,
            completed_sessions=sum(1 for s in doc.sessions if s.completed),
            streak=self.get_streak(),
            techniques=self.get_techniques(),
            last_session_date_iso=doc.last_session_date_iso,
        )


class ChartPresenter:
    """
    Presenter for generating chart images.

    Uses matplotlib for server-side chart rendering and returns PNG bytes.
    """

    def __init__(self, service: StatsService) -> None:
        self.service = service

    @staticmethod
    def _pyplot() -> Any:
        # Lazy import matplotlib to keep the core importable without it
        import matplotlib

        matplotlib.use("Agg")  # Non-interactive backend
        import matplotlib.pyplot as plt

        return plt

    @staticmethod
    def _to_png(plt: Any, fig: Any) -> bytes:
        buf = io.BytesIO()
        plt.tight_layout()
        plt.savefig(buf, format="png", dpi=100, bbox_inches="tight")
        plt.close(fig)
        buf.seek(0)
        return buf.read()

    def render_weekly_chart(self, num_weeks: int = 4) -> bytes:
        """
        Render daily practice minutes over the trailing weeks as a bar chart PNG.

        Today's bar is highlighted; days without practice show as gaps.

        Args:
            num_weeks: Weeks to display (7 bars each).

        Returns:
            PNG image as bytes.

        Raises:
            ImportError: If matplotlib is not installed. Caller should
                catch this and provide a fallback.
            ValueError: If num_weeks < 1.
        """
        series = self.service.weekly_stats(num_weeks)
        plt = self._pyplot()

        today = self.service.engine.today().isoformat()
        labels = [date.fromisoformat(entry["date"]).strftime("%d/%m") for entry in series]
        minutes = [entry["durationSeconds"] / 60 for entry in series]
        colors = [TODAY_COLOR if entry["date"] == today else BAR_COLOR for entry in series]

        fig, ax = plt.subplots(figsize=(max(6, len(series) * 0.3), 3))
        ax.bar(range(len(series)), minutes, color=colors)
        step = 7 if len(series) > 14 else 1
        ax.set_xticks(range(0, len(series), step))
        ax.set_xticklabels(labels[::step], rotation=45, ha="right", fontsize=8)
        ax.set_ylabel("Minutes")
        ax.set_title(f"Practice over the last {num_weeks} week(s)")
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)
        return self._to_png(plt, fig)

    def render_techniques_chart(self) -> bytes:
        """
        Render the technique distribution as a horizontal bar chart PNG.

        Returns:
            PNG image as bytes; an empty history renders a "No sessions yet" note.

        Raises:
            ImportError: If matplotlib is not installed.
        """
        distribution = self.service.technique_distribution()
        plt = self._pyplot()

        fig, ax = plt.subplots(figsize=(6, 3))
        if not distribution:
            ax.text(0.5, 0.5, "No sessions yet", ha="center", va="center", fontsize=12)
            ax.axis("off")
            return self._to_png(plt, fig)

        names = [item["name"] for item in reversed(distribution)]
        counts = [item["count"] for item in reversed(distribution)]
        colors = [TECHNIQUE_COLORS[i % len(TECHNIQUE_COLORS)] for i in range(len(names))]
        bars = ax.barh(names, counts, color=colors)
        for bar, item in zip(bars, reversed(distribution), strict=True):
            ax.text(
                bar.get_width(),
                bar.get_y() + bar.get_height() / 2,
                f" {item['percentage']:.0f}%",
                va="center",
                fontsize=9,
            )
        ax.set_xlabel("Sessions")
        ax.set_title("Techniques")
        ax.spines["top"].set_visible(False)
        ax.spines["right"].set_visible(False)
        return self._to_png(plt, fig)
