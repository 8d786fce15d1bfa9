"""
CLI entry point for BreathFlow Tracker.

PURPOSE: Command-line interface for practicing and inspecting statistics.
AI CONTEXT: Main entry point for package execution.

USAGE:
    # Via CLI command (after install)
    breathflow breathe box --minutes 5      # Guided session, recorded if >= 10s
    breathflow breathe custom --catalog my.json
    breathflow techniques                   # List built-in techniques
    breathflow report                       # Print text report
    breathflow reset --yes                  # Delete all statistics
    breathflow sync                         # Repair daily buckets
    breathflow dashboard --port 8000        # Local JSON API + charts

    # Or as a module
    python -m breathflow_tracker report
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import Callable
from functools import lru_cache
from typing import TYPE_CHECKING

from .config import Config

if TYPE_CHECKING:
    from .runner import SessionRunner
    from .stats_service import StatsService


@lru_cache(maxsize=1)
def _get_logger() -> logging.Logger:
    """Get module logger (cached for thread safety)."""
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    return logging.getLogger(__name__)


def _log(message: str, *, emoji: str = "") -> None:
    """Log message with optional emoji prefix for CLI output.

    Args:
        message: The message to log.
        emoji: Optional emoji prefix for visual CLI feedback.
    """
    prefix = f"{emoji} " if emoji else ""
    _get_logger().info(f"{prefix}{message}")


def _load_service(service: StatsService | None) -> StatsService | None:
    """Return the given service, or a freshly loaded one; None if loading failed."""
    if service is not None:
        return service
    from .stats_service import StatsService as Service

    service = Service()
    result = service.load_from_storage()
    if not result.success:
        _log(f"{result.message}: {result.error}", emoji="❌")
        return None
    return service


def run_breathe(
    technique_id: str,
    minutes: float | None = None,
    catalog_path: str | None = None,
    *,
    service: StatsService | None = None,
    runner_factory: Callable[[StatsService], SessionRunner] | None = None,
) -> int:
    """
    Run a guided breathing session in the terminal.

    With --catalog the steps come from a JSON file and technique_id only
    names the session; otherwise technique_id must be a built-in technique.

    Args:
        technique_id: Built-in technique id, or the id to record a custom
            catalog under.
        minutes: Session length. Default: Config.get_default_session_minutes()
        catalog_path: Optional JSON step catalog.
        service: Optional StatsService for testability.
        runner_factory: Optional SessionRunner factory for testability.

    Returns:
        0 when the session ran (recorded or too short), 1 when the
        statistics could not be saved, 2 for an unknown technique or
        invalid catalog.

    Example:
        >>> # From command line:
        >>> # breathflow breathe 478 --minutes 3
        >>> run_breathe("478", minutes=3)
        0
    """
    from .catalog import BUILTIN_TECHNIQUES, Technique, load_catalog_file
    from .runner import SessionRunner as Runner
    from .sequencer import InvalidConfiguration

    try:
        if catalog_path:
            builtin = BUILTIN_TECHNIQUES.get(technique_id)
            technique = Technique(
                technique_id=technique_id,
                name=builtin.name if builtin else technique_id,
                description=f"Custom catalog from {catalog_path}",
                catalog=load_catalog_file(catalog_path),
            )
        else:
            technique = BUILTIN_TECHNIQUES[technique_id]
    except KeyError:
        _log(f"Unknown technique: {technique_id}", emoji="❌")
        _log(f"Available: {', '.join(sorted(BUILTIN_TECHNIQUES))}")
        return 2
    except InvalidConfiguration as e:
        _log(f"Invalid catalog: {e}", emoji="❌")
        return 2

    loaded = _load_service(service)
    if loaded is None:
        return 1

    runner = (runner_factory or Runner)(loaded)
    try:
        outcome = runner.run(technique, minutes)
    except InvalidConfiguration as e:
        _log(f"Cannot start session: {e}", emoji="❌")
        return 2

    if outcome.result is not None and not outcome.result.success:
        return 1
    if outcome.recorded:
        _log(f"Session recorded: {outcome.record.duration_seconds}s", emoji="✅")
    return 0


def run_techniques() -> None:
    """Print the built-in techniques with their cycle length."""
    from .catalog import BUILTIN_TECHNIQUES

    for technique in BUILTIN_TECHNIQUES.values():
        cycle_s = technique.catalog.cycle_duration_ms / 1000
        # Note: Using print() intentionally for stdout piping support
        print(f"{technique.technique_id:<24} {technique.name:<28} {cycle_s:>6g}s/cycle")
        print(f"{'':<24} {technique.description}")


def run_report(service: StatsService | None = None) -> int:
    """
    Print the text practice report to stdout.

    Args:
        service: Optional StatsService for testability.

    Returns:
        0 on success, 1 when the statistics could not be read.

    Example:
        >>> # From command line:
        >>> # breathflow report > practice.txt
        >>> run_report()
        ==================================================
        BREATHFLOW - PRACTICE REPORT
        ...
    """
    loaded = _load_service(service)
    if loaded is None:
        return 1
    # Note: Using print() intentionally for stdout piping support
    print(loaded.summary_report())
    return 0


def run_reset(
    assume_yes: bool = False,
    *,
    service: StatsService | None = None,
    confirm: Callable[[str], str] = input,
) -> int:
    """
    Delete all statistics after confirmation.

    Args:
        assume_yes: Skip the confirmation prompt.
        service: Optional StatsService for testability.
        confirm: Prompt function for testability.

    Returns:
        0 when reset (or aborted by the user), 1 on failure.
    """
    if not assume_yes:
        try:
            answer = confirm("Delete all BreathFlow statistics? [y/N] ")
        except EOFError:
            answer = ""
        if answer.strip().lower() not in ("y", "yes"):
            _log("Reset aborted")
            return 0

    loaded = _load_service(service)
    if loaded is None:
        return 1
    result = loaded.reset_stats()
    if not result.success:
        _log(f"{result.message}: {result.error}", emoji="❌")
        return 1
    _log(result.message, emoji="🧹")
    return 0


def run_sync(service: StatsService | None = None) -> int:
    """Repair daily buckets that disagree with the session list."""
    loaded = _load_service(service)
    if loaded is None:
        return 1
    result = loaded.sync_daily_stats()
    _log(result.message, emoji="✅" if result.success else "❌")
    return 0 if result.success else 1


def run_dashboard(host: str = Config.DEFAULT_HOST, port: int = Config.DEFAULT_PORT) -> None:
    """
    Launch the local dashboard (JSON API and charts).

    Args:
        host: Network interface to bind to. Default '127.0.0.1' for
            local-only access.
        port: TCP port for the HTTP server. Default 8000.

    Returns:
        None. Blocks until server shutdown (Ctrl+C).

    Raises:
        OSError: If port is already in use.

    Example:
        >>> # From command line:
        >>> # breathflow dashboard --port 3000
        >>> run_dashboard(port=3000)
        🚀 Starting dashboard at http://127.0.0.1:3000
    """
    from .web import run_dashboard as start_web

    _log(f"Starting dashboard at http://{host}:{port}", emoji="🚀")
    _log("Press Ctrl+C to stop")
    start_web(host=host, port=port)


def _positive_minutes(value: str) -> float:
    try:
        minutes = float(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not a number: {value!r}") from None
    if minutes <= 0:
        raise argparse.ArgumentTypeError("minutes must be positive")
    return minutes


def main() -> int:
    """
    Main CLI entry point for BreathFlow Tracker.

    Parses command-line arguments and dispatches to the subcommand
    handler. Without a subcommand the help text is printed.

    Subcommands:
    - breathe TECHNIQUE [--minutes N] [--catalog FILE]
    - techniques
    - report
    - reset [--yes]
    - sync
    - dashboard [--host HOST] [--port PORT]

    Returns:
        Exit code: 0 success, 1 runtime failure, 2 bad input.

    Raises:
        SystemExit: On --help, --version or argument parsing errors.
    """
    from .__version__ import __version__

    parser = argparse.ArgumentParser(
        prog="breathflow",
        description="BreathFlow Tracker - guided breathing sessions and practice statistics",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    breathe_parser = subparsers.add_parser("breathe", help="Run a guided session")
    breathe_parser.add_argument("technique", help="Technique id (see 'techniques')")
    breathe_parser.add_argument(
        "--minutes",
        type=_positive_minutes,
        default=None,
        help="Session length in minutes (default: $BREATHFLOW_SESSION_MINUTES or "
        f"{Config.DEFAULT_SESSION_MINUTES})",
    )
    breathe_parser.add_argument(
        "--catalog",
        default=None,
        help="JSON step catalog to use instead of the built-in steps",
    )

    subparsers.add_parser("techniques", help="List built-in techniques")
    subparsers.add_parser("report", help="Print practice report to stdout")

    reset_parser = subparsers.add_parser("reset", help="Delete all statistics")
    reset_parser.add_argument("--yes", action="store_true", help="Do not ask for confirmation")

    subparsers.add_parser("sync", help="Rebuild daily statistics from the session list")

    dashboard_parser = subparsers.add_parser("dashboard", help="Launch local dashboard")
    dashboard_parser.add_argument(
        "--host",
        default=Config.DEFAULT_HOST,
        help=f"Bind address (default: {Config.DEFAULT_HOST})",
    )
    dashboard_parser.add_argument(
        "--port",
        type=int,
        default=Config.DEFAULT_PORT,
        help=f"Port number (default: {Config.DEFAULT_PORT})",
    )

    args = parser.parse_args()

    if args.command == "breathe":
        return run_breathe(args.technique, args.minutes, args.catalog)
    if args.command == "techniques":
        run_techniques()
        return 0
    if args.command == "report":
        return run_report()
    if args.command == "reset":
        return run_reset(args.yes)
    if args.command == "sync":
        return run_sync()
    if args.command == "dashboard":
        run_dashboard(host=args.host, port=args.port)
        return 0

    parser.print_help()
    return 1


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
