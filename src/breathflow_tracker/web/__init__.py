"""
Web dashboard module for BreathFlow Tracker.

PURPOSE: FastAPI JSON API and PNG charts over the practice statistics.
AI CONTEXT: Thin HTTP layer - all logic lives in StatsService and the presenters.

FEATURES:
- JSON endpoints for stats, streak, weekly/period series, techniques, calendar
- Session recording and reset over HTTP
- Server-side chart rendering (matplotlib)
- Minimal HTML overview page

USAGE:
    # Via CLI
    breathflow dashboard

    # Programmatically
    from breathflow_tracker.web import create_app
    app = create_app()
"""

from .app import create_app, run_dashboard

__all__ = ["create_app", "run_dashboard"]
