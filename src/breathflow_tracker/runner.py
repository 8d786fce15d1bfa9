"""
Terminal session runner for BreathFlow Tracker.

PURPOSE: Drive a SessionSequencer from a real clock and record the result.
AI CONTEXT: The only place where wall-clock time meets the sequencer.

FLOW:
    start ─► sleep ≤ 1s ─► tick(measured ms) ─► ... ─► stop/complete
                │
                └─ hold-until-user step: wait for Enter, tick, advance()

    Ctrl-C → stop(); the session is still recorded when long enough.

TESTABILITY:
clock, sleep, wait_for_user and output are injected, so tests run a full
five-minute session instantly with a fake clock.

USAGE:
    runner = SessionRunner(service)
    outcome = runner.run(get_technique("box"), minutes=5)
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from .catalog import Technique
from .config import Config
from .models import RepetitionGate, SessionRecord, Step
from .sequencer import (
    PhaseChanged,
    SequencerEvent,
    SessionCompleted,
    SessionSequencer,
    SessionStopped,
)
from .stats_service import RecordResult, StatsService

__all__ = ["SessionRunner", "RunOutcome"]

logger = logging.getLogger(__name__)


@dataclass
class RunOutcome:
    """What happened to one run: the record, and whether it was stored."""

    record: SessionRecord
    recorded: bool
    result: RecordResult | None = None


def _seconds_label(ms: int) -> str:
    seconds = ms / 1000
    return f"{seconds:g}s"


class SessionRunner:
    """
    Wall-clock driver for one breathing session at a time.

    The sequencer is ticked with the measured elapsed time rather than the
    nominal sleep, so a slow terminal never makes the session run long.
    """

    def __init__(
        self,
        service: StatsService,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        wait_for_user: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
        listener: Callable[[SequencerEvent], None] | None = None,
    ) -> None:
        """
        Initialize the runner.

        Args:
            service: Aggregator receiving the finished session.
            clock: Monotonic clock in seconds.
            sleep: Sleep function taking seconds.
            wait_for_user: Blocking prompt used to end user-terminated holds.
            output: Line printer for phase announcements.
            listener: Extra sequencer event consumer (sound, haptics).
        """
        self.service = service
        self._clock = clock
        self._sleep = sleep
        self._wait_for_user = wait_for_user
        self._output = output
        self._listener = listener
        self._gate: RepetitionGate | None = None

    def run(self, technique: Technique, minutes: float | None = None) -> RunOutcome:
        """
        Run one session to completion or interruption.

        Args:
            technique: Technique to practice.
            minutes: Session length. Default: Config.get_default_session_minutes()

        Returns:
            RunOutcome; recorded is False for sessions shorter than
            Config.MIN_SESSION_SECONDS.

        Raises:
            InvalidConfiguration: If the technique catalog or length is invalid.
        """
        if minutes is None:
            minutes = Config.get_default_session_minutes()
        target_ms = int(minutes * 60_000)

        self._gate = technique.catalog.gate
        sequencer = SessionSequencer(listener=self._on_event)
        self._output(f"▶ {technique.name} for {minutes:g} min (Ctrl-C to stop)")
        sequencer.start(technique.catalog, target_ms)

        last = self._clock()
        try:
            while sequencer.is_running:
                step = sequencer.current_step
                if step is not None and step.hold_until_user_action:
                    self._hold(step)
                    last = self._tick(sequencer, last)
                    if sequencer.is_running:
                        sequencer.advance()
                    continue

                wait_ms = min(
                    Config.TICK_INTERVAL_MS,
                    sequencer.phase_remaining_ms,
                    sequencer.remaining_ms,
                )
                self._sleep(wait_ms / 1000)
                last = self._tick(sequencer, last)
        except KeyboardInterrupt:
            last = self._tick(sequencer, last)
            sequencer.stop()

        record = sequencer.build_record(technique.technique_id, technique.name)
        if record.duration_seconds < Config.MIN_SESSION_SECONDS:
            logger.info(f"Session of {record.duration_seconds}s too short, not recorded")
            self._output(f"Session too short to be recorded ({record.duration_seconds}s)")
            return RunOutcome(record=record, recorded=False)

        result = self.service.record_session(record)
        if result.milestone_message:
            self._output(f"🏆 {result.milestone_message}")
        if not result.success:
            self._output(f"⚠ {result.error}")
        return RunOutcome(record=record, recorded=result.success, result=result)

    def _tick(self, sequencer: SessionSequencer, last: float) -> float:
        """Tick by the whole milliseconds measured since `last`; return the new mark."""
        if not sequencer.is_running:
            return last
        delta_ms = max(0, round((self._clock() - last) * 1000))
        sequencer.tick(delta_ms)
        return last + delta_ms / 1000

    def _hold(self, step: Step) -> None:
        try:
            self._wait_for_user(f"   {step.instruction or step.name} - press Enter to continue ")
        except EOFError:
            logger.warning("No terminal input available, ending hold")

    def _on_event(self, event: SequencerEvent) -> None:
        if isinstance(event, PhaseChanged):
            step = event.step
            duration = "" if step.hold_until_user_action else f" ({_seconds_label(step.duration_ms)})"
            counter = ""
            if self._gate is not None and event.step_index < self._gate.block_length:
                counter = f" {event.repetition_count + 1}/{self._gate.repetitions}"
            self._output(
                f"[cycle {event.cycle_count}] {step.name}{duration}{counter} - {step.instruction}"
            )
        elif isinstance(event, SessionCompleted):
            self._output(f"✔ Session complete after {event.elapsed_ms // 1000}s")
        elif isinstance(event, SessionStopped):
            self._output(f"■ Session stopped after {event.elapsed_ms // 1000}s")
        if self._listener is not None:
            self._listener(event)
