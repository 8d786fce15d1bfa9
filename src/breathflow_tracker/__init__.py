"""
BreathFlow Tracker.

PURPOSE: Run timed breathing exercises and keep durable practice statistics.
AI CONTEXT: This package holds the session state machine and the stats aggregator.

PACKAGE STRUCTURE:
- models.py: Data models (Step, StepCatalog, SessionRecord, DailyStat, StatsDocument)
- sequencer.py: Session timing state machine (phases, cycles, rounds)
- catalog.py: Built-in techniques and JSON catalog loading
- runner.py: Wall-clock driver for the sequencer
- storage.py: JSON document persistence
- statistics.py: Streaks, milestones and derived views
- stats_service.py: Serialized record/reset/load operations
- presenters.py: View models and matplotlib charts
- config.py: Configuration constants

QUICK START:
    # Practice box breathing for 5 minutes
    breathflow breathe box --minutes 5

    # Print the practice report
    breathflow report

    # Launch the local stats API
    breathflow dashboard
"""

from breathflow_tracker.__version__ import (
    __author__,
    __copyright__,
    __description__,
    __license__,
    __title__,
    __url__,
    __version__,
    __version_date__,
)

__all__ = [
    "__version__",
    "__version_date__",
    "__title__",
    "__description__",
    "__url__",
    "__author__",
    "__license__",
    "__copyright__",
]
