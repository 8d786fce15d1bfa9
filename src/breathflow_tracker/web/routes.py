"""
FastAPI routes for BreathFlow Tracker.

PURPOSE: Thin route handlers that delegate to StatsService and the presenters.
AI CONTEXT: Routes should be simple - business logic lives in the service.

ROUTE STRUCTURE:
- / : Overview page (HTML)
- /api/* : JSON endpoints
- /charts/* : PNG chart images

STATUS CODES:
- 201: Session recorded
- 400: Unusable timestamp or query value
- 422: Body validation failure, including sessions shorter than 10 seconds
- 500: The statistics document could not be saved or deleted

Handlers that write the document or render charts are plain def; FastAPI
runs them in its threadpool so lock waits and file I/O stay off the event loop.
"""

from __future__ import annotations

import html
from functools import lru_cache
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import HTMLResponse, Response
from pydantic import BaseModel, ConfigDict, Field

from ..catalog import BUILTIN_TECHNIQUES
from ..config import Config
from ..models import SessionRecord
from ..presenters import (
    CalendarDayViewModel,
    ChartPresenter,
    DashboardPresenter,
    OverviewViewModel,
)
from ..statistics import PERIODS, to_local_date_string
from ..stats_service import StatsService

__all__ = [
    "router",
    "SessionRecordIn",
    "get_stats_service",
    "get_dashboard_presenter",
    "get_chart_presenter",
]

router = APIRouter()

_DASHBOARD_CSS = """
:root {
    --bg: #0f172a;
    --surface: #1e293b;
    --border: #334155;
    --text: #f1f5f9;
    --text-muted: #94a3b8;
    --primary: #0ea5e9;
}
* { box-sizing: border-box; margin: 0; padding: 0; }
body {
    font-family: system-ui, -apple-system, sans-serif;
    background: var(--bg);
    color: var(--text);
    line-height: 1.6;
    padding: 1rem;
}
.container { max-width: 1100px; margin: 0 auto; }
header { margin-bottom: 1.5rem; padding-bottom: 1rem; border-bottom: 1px solid var(--border); }
h1 { font-size: 1.5rem; font-weight: 600; }
.grid {
    display: grid;
    grid-template-columns: repeat(auto-fit, minmax(220px, 1fr));
    gap: 1rem;
    margin-bottom: 1.5rem;
}
.panel {
    background: var(--surface);
    border: 1px solid var(--border);
    border-radius: 0.5rem;
    padding: 1rem;
}
.panel h2 { font-size: 1rem; font-weight: 500; color: var(--text-muted); margin-bottom: 0.75rem; }
.metric { font-size: 2rem; font-weight: 700; color: var(--primary); }
.metric-label { font-size: 0.875rem; color: var(--text-muted); }
.chart-container { display: flex; justify-content: center; padding: 1rem 0; }
.chart-container img { max-width: 100%; height: auto; border-radius: 0.25rem; }
.progress { height: 0.5rem; background: var(--border); border-radius: 0.25rem; margin: 0.5rem 0; }
.progress-fill { height: 100%; background: var(--primary); border-radius: 0.25rem; }
.calendar { display: grid; grid-template-columns: repeat(7, 1.25rem); gap: 0.25rem; }
.calendar div { width: 1.25rem; height: 1.25rem; border-radius: 0.2rem; }
.activity-none { background: var(--border); }
.activity-low { background: #0c4a6e; }
.activity-medium { background: #0369a1; }
.activity-high { background: var(--primary); }
"""


class SessionRecordIn(BaseModel):
    """Request body of POST /api/sessions (camelCase or snake_case keys)."""

    model_config = ConfigDict(populate_by_name=True)

    technique_id: str = Field(alias="techniqueId", min_length=1)
    technique_name: str | None = Field(default=None, alias="techniqueName")
    duration_seconds: int = Field(alias="durationSeconds", ge=Config.MIN_SESSION_SECONDS)
    timestamp_iso: str | None = Field(default=None, alias="timestampIso")
    completed: bool = False


# =============================================================================
# Dependency Factory Functions
# =============================================================================


@lru_cache(maxsize=1)
def get_stats_service() -> StatsService:
    """
    Return the process-wide StatsService, loading stats.json on first use.

    One instance is shared by all requests: it is the single writer of
    the statistics document and serializes writes under its lock.
    Tests replace it through app.dependency_overrides.

    Returns:
        Loaded StatsService.
    """
    service = StatsService()
    service.load_from_storage()
    return service


def get_dashboard_presenter(
    service: Annotated[StatsService, Depends(get_stats_service)],
) -> DashboardPresenter:
    return DashboardPresenter(service)


def get_chart_presenter(
    service: Annotated[StatsService, Depends(get_stats_service)],
) -> ChartPresenter:
    return ChartPresenter(service)


ServiceDep = Annotated[StatsService, Depends(get_stats_service)]


# ============================================================================
# Page
# ============================================================================


@router.get("/", response_class=HTMLResponse)
async def dashboard_page(
    presenter: Annotated[DashboardPresenter, Depends(get_dashboard_presenter)],
) -> HTMLResponse:
    """Render the overview page with totals, streak, this month and both charts."""
    return HTMLResponse(
        content=_render_dashboard_html(presenter.get_overview(), presenter.get_calendar())
    )


# ============================================================================
# JSON API
# ============================================================================


@router.get("/api/stats")
async def api_stats(
    presenter: Annotated[DashboardPresenter, Depends(get_dashboard_presenter)],
) -> dict[str, Any]:
    """
    Get the overview: totals, streak panel and technique shares.

    Example:
        >>> # GET /api/stats
        >>> {"totalSessions": 12, "durationDisplay": "1h 5m", "streak": {...}, ...}
    """
    return presenter.get_overview().to_dict()


@router.get("/api/streak")
async def api_streak(service: ServiceDep) -> dict[str, Any]:
    """Get {current, max, lastMilestone, nextMilestone}."""
    return service.streak_info()


@router.get("/api/weekly")
async def api_weekly(
    service: ServiceDep,
    weeks: Annotated[int, Query(ge=1, le=52)] = 4,
) -> list[dict[str, Any]]:
    """Get one {date, duration_seconds} entry per day over the trailing weeks."""
    return service.weekly_stats(weeks)


@router.get("/api/period")
async def api_period(
    service: ServiceDep,
    period: str = "week",
    count: Annotated[int, Query(ge=1, le=366)] = 4,
) -> list[dict[str, Any]]:
    """Get totals bucketed by day, week or month."""
    if period not in PERIODS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"period must be one of {', '.join(PERIODS)}",
        )
    return service.period_stats(period, count)


@router.get("/api/techniques")
async def api_techniques(service: ServiceDep) -> list[dict[str, Any]]:
    """Get the technique distribution, most practiced first."""
    return service.technique_distribution()


@router.get("/api/calendar")
async def api_calendar(
    presenter: Annotated[DashboardPresenter, Depends(get_dashboard_presenter)],
    year: Annotated[int | None, Query(ge=1970, le=9999)] = None,
    month: Annotated[int | None, Query(ge=1, le=12)] = None,
) -> list[dict[str, Any]]:
    """Get the activity calendar of a month (default: current month)."""
    return [day.to_dict() for day in presenter.get_calendar(year, month)]


@router.get("/api/report")
async def api_report(service: ServiceDep) -> dict[str, str]:
    """Get the text report printed by `breathflow report`, wrapped in JSON."""
    return {"report": service.summary_report()}


@router.post("/api/sessions", status_code=status.HTTP_201_CREATED)
def api_record_session(body: SessionRecordIn, service: ServiceDep) -> dict[str, Any]:
    """
    Record a finished session.

    Sessions shorter than Config.MIN_SESSION_SECONDS are rejected by body
    validation (422). The technique name defaults to the built-in name
    for known ids, else the id itself.

    Returns:
        RecordResult as JSON: {success, milestone, milestoneMessage}.

    Raises:
        HTTPException: 400 for an unusable timestamp, 500 when the
            statistics could not be saved.
    """
    if body.timestamp_iso is not None:
        try:
            to_local_date_string(body.timestamp_iso)
        except ValueError as e:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid timestampIso: {e}",
            ) from e

    name = body.technique_name
    if not name:
        technique = BUILTIN_TECHNIQUES.get(body.technique_id)
        name = technique.name if technique else body.technique_id

    record = SessionRecord.create(
        technique_id=body.technique_id,
        technique_name=name,
        duration_seconds=body.duration_seconds,
        completed=body.completed,
        timestamp_iso=body.timestamp_iso,
    )
    result = service.record_session(record)
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.error or "Session could not be recorded",
        )
    return result.to_dict()


@router.delete("/api/stats")
def api_reset_stats(service: ServiceDep) -> dict[str, Any]:
    """Clear all statistics. Idempotent."""
    result = service.reset_stats()
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.error or result.message,
        )
    return result.to_dict()


@router.post("/api/stats/sync")
def api_sync_daily_stats(service: ServiceDep) -> dict[str, Any]:
    """Rebuild daily buckets that drifted from the session list."""
    result = service.sync_daily_stats()
    if not result.success:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=result.error or result.message,
        )
    return result.to_dict()


# ============================================================================
# Charts
# ============================================================================


@router.get("/charts/weekly.png")
def weekly_chart(
    presenter: Annotated[ChartPresenter, Depends(get_chart_presenter)],
    weeks: Annotated[int, Query(ge=1, le=52)] = 4,
) -> Response:
    """
    Serve the daily practice bar chart.

    Returns:
        PNG bytes, or an SVG placeholder when matplotlib is not installed.
    """
    try:
        return Response(content=presenter.render_weekly_chart(weeks), media_type="image/png")
    except ImportError:
        return Response(content=_placeholder_chart_svg("Weekly"), media_type="image/svg+xml")


@router.get("/charts/techniques.png")
def techniques_chart(
    presenter: Annotated[ChartPresenter, Depends(get_chart_presenter)],
) -> Response:
    """Serve the technique distribution chart (PNG or SVG placeholder)."""
    try:
        return Response(content=presenter.render_techniques_chart(), media_type="image/png")
    except ImportError:
        return Response(
            content=_placeholder_chart_svg("Techniques"),
            media_type="image/svg+xml",
        )


# ============================================================================
# Template Rendering Helpers
# ============================================================================


def _placeholder_chart_svg(title: str) -> bytes:
    """
    Generate a placeholder SVG when matplotlib is unavailable.

    Example:
        >>> b'Weekly Chart' in _placeholder_chart_svg('Weekly')
        True
    """
    svg = f"""<svg xmlns="http://www.w3.org/2000/svg" width="400" height="200">
        <rect width="100%" height="100%" fill="#f1f5f9"/>
        <text x="50%" y="50%" text-anchor="middle" fill="#64748b" font-size="16">
            {title} Chart (install matplotlib)
        </text>
    </svg>"""
    return svg.encode("utf-8")


def _render_dashboard_html(
    overview: OverviewViewModel, calendar_days: list[CalendarDayViewModel]
) -> str:
    """Render the overview page; every user-provided string is escaped."""
    streak = overview.streak
    current = streak.current if streak else 0
    best = streak.best if streak else 0
    progress = streak.progress_percent if streak else 0
    next_goal = "all reached"
    if streak and streak.next_milestone is not None:
        next_goal = f"{streak.next_milestone} days ({streak.days_to_next} to go)"
    message = ""
    if streak and streak.milestone_message:
        message = f'<p class="metric-label">🏆 {html.escape(streak.milestone_message)}</p>'

    rows = "".join(
        f"<p>{html.escape(t.name)}: {t.count} ({t.percentage_display})</p>"
        for t in overview.techniques
    ) or '<p class="metric-label">No sessions yet</p>'
    cells = "".join(
        f'<div class="{day.css_class}" title="{day.date}: {day.sessions} sessions"></div>'
        for day in calendar_days
    )

    return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>BreathFlow - Practice</title>
    <style>
        {_DASHBOARD_CSS}
    </style>
</head>
<body>
    <div class="container">
        <header><h1>🌬 BreathFlow</h1></header>

        <div class="grid">
            <div class="panel">
                <h2>Sessions</h2>
                <div class="metric">{overview.total_sessions}</div>
                <div class="metric-label">{overview.duration_display} practiced</div>
            </div>
            <div class="panel">
                <h2>Streak</h2>
                <div class="metric">{current} days</div>
                <div class="metric-label">Best: {best} days &bull; Next: {next_goal}</div>
                <div class="progress"><div class="progress-fill" style="width: {progress}%;"></div></div>
                {message}
            </div>
            <div class="panel">
                <h2>Techniques</h2>
                {rows}
            </div>
            <div class="panel">
                <h2>This month</h2>
                <div class="calendar">{cells}</div>
            </div>
        </div>

        <div class="panel">
            <h2>Last 4 weeks</h2>
            <div class="chart-container"><img src="/charts/weekly.png" alt="Weekly chart"></div>
        </div>

        <div class="panel" style="margin-top: 1rem;">
            <h2>Technique distribution</h2>
            <div class="chart-container">
                <img src="/charts/techniques.png" alt="Techniques chart">
            </div>
        </div>
    </div>
</body>
</html>"""
