"""Version information for breathflow-tracker."""

__version__ = "1.2.0"
__version_date__ = "2026-10-18"

__title__ = "breathflow_tracker"
__description__ = "Guided breathing sessions with streaks, milestones and practice statistics"
__url__ = "https://github.com/breathflow/breathflow-tracker"

__author__ = "BreathFlow contributors"

__license__ = "MIT"
__copyright__ = "Copyright 2025 BreathFlow contributors"

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
