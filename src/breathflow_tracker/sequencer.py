"""
Session sequencer for BreathFlow Tracker.

PURPOSE: One generic state machine that walks a step catalog on an external clock.
AI CONTEXT: No wall-clock access here - callers feed elapsed time through tick().

STATE MACHINE:
    IDLE ──start()──► RUNNING ──tick() reaches target──► COMPLETED
                         │  └──tick() closes last round──► COMPLETED
                         └──stop()──► STOPPED
    any ──reset()──► IDLE        any ──start()──► RUNNING (fresh run)

COUNTERS:
- step_index: Position in catalog.steps
- cycle_count: 1-based, incremented when step_index wraps to 0
- repetition_count: Passes through the gated block (breath counter)
- round_count: 1-based, only meaningful when catalog.max_rounds is set

EVENTS:
Every state-changing call returns the events it produced and forwards them
to the optional listener (audio/haptic feedback, UI refresh).

USAGE:
    sequencer = SessionSequencer(listener=print)
    sequencer.start(catalog, target_duration_ms=300_000)
    sequencer.tick(1000)          # from a timer, once per second
    sequencer.stop()
    record = sequencer.build_record("box", "Box Breathing")
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import TypeAlias

from .models import SessionRecord, Step, StepCatalog

__all__ = [
    "SessionSequencer",
    "SessionStatus",
    "SequencerError",
    "InvalidConfiguration",
    "InvalidTransition",
    "PhaseChanged",
    "SessionStopped",
    "SessionCompleted",
    "SequencerEvent",
    "validate_catalog",
]

logger = logging.getLogger(__name__)


class SessionStatus(str, Enum):
    """Lifecycle status of a sequencer run."""

    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    STOPPED = "stopped"


class SequencerError(Exception):
    """Base class for sequencer precondition violations."""


class InvalidConfiguration(SequencerError):
    """Raised by start() for an unusable catalog or target duration."""


class InvalidTransition(SequencerError):
    """Raised for an operation that the current status does not allow."""


@dataclass(frozen=True)
class PhaseChanged:
    """A new step became current."""

    step: Step
    step_index: int
    cycle_count: int
    round_count: int
    repetition_count: int


@dataclass(frozen=True)
class SessionStopped:
    """The run was interrupted by stop()."""

    elapsed_ms: int
    cycle_count: int


@dataclass(frozen=True)
class SessionCompleted:
    """The run reached its target duration or its last round."""

    elapsed_ms: int
    cycle_count: int
    round_count: int


SequencerEvent: TypeAlias = PhaseChanged | SessionStopped | SessionCompleted


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def validate_catalog(catalog: StepCatalog) -> None:
    """
    Check that a catalog can drive a session.

    RULES:
    - At least one step
    - Timed steps need a positive integer duration_ms
    - Steps held until user action need duration_ms >= 0
    - Gate: repetitions >= 1, 1 <= block_length <= len(steps)
    - Rounds: max_rounds >= 1 when set, cycles_per_round >= 1

    Args:
        catalog: Catalog to validate.

    Raises:
        InvalidConfiguration: Describing the first rule violated.

    Example:
        >>> validate_catalog(StepCatalog(steps=()))
        Traceback (most recent call last):
        ...
        InvalidConfiguration: Step catalog is empty
    """
    if not catalog.steps:
        raise InvalidConfiguration("Step catalog is empty")

    for index, step in enumerate(catalog.steps):
        if not _is_int(step.duration_ms):
            raise InvalidConfiguration(
                f"Step {index} ({step.name!r}) duration must be an integer"
            )
        if step.hold_until_user_action:
            if step.duration_ms < 0:
                raise InvalidConfiguration(
                    f"Step {index} ({step.name!r}) has a negative duration"
                )
        elif step.duration_ms <= 0:
            raise InvalidConfiguration(
                f"Step {index} ({step.name!r}) must have a positive duration"
            )

    gate = catalog.gate
    if gate is not None:
        if not _is_int(gate.repetitions) or gate.repetitions < 1:
            raise InvalidConfiguration("Gate repetitions must be at least 1")
        if not _is_int(gate.block_length) or not 1 <= gate.block_length <= len(catalog.steps):
            raise InvalidConfiguration(
                f"Gate block length must be between 1 and {len(catalog.steps)}"
            )

    if catalog.max_rounds is not None and (
        not _is_int(catalog.max_rounds) or catalog.max_rounds < 1
    ):
        raise InvalidConfiguration("max_rounds must be at least 1")
    if not _is_int(catalog.cycles_per_round) or catalog.cycles_per_round < 1:
        raise InvalidConfiguration("cycles_per_round must be at least 1")


class SessionSequencer:
    """
    Generic breathing session state machine.

    DESIGN:
    - Clock-free: time only moves through tick(delta_ms)
    - Check-then-mutate: every precondition is verified before state changes
    - Not reentrant: callers must not tick() again before the previous call returns

    TRANSITION RULES:
    - Completion (elapsed >= target) is checked before a step boundary, so a
      session that ends exactly at the end of a cycle does not count a new one
    - A step held until user action consumes time but never auto-advances
    - tick()/advance() while not running log a warning and do nothing,
      unless the sequencer is strict, in which case they raise
    """

    def __init__(
        self,
        listener: Callable[[SequencerEvent], None] | None = None,
        strict: bool = False,
    ) -> None:
        """
        Initialize an idle sequencer.

        Args:
            listener: Optional callable receiving every emitted event, e.g.
                audio/haptic feedback. Exceptions it raises are logged and
                do not affect the state machine.
            strict: Raise InvalidTransition instead of logging a warning when
                tick()/advance() arrive while not running.
        """
        self._listener = listener
        self._strict = strict
        self._clear()

    def _clear(self) -> None:
        self._catalog: StepCatalog | None = None
        self._status = SessionStatus.IDLE
        self._step_index = 0
        self._cycle_count = 0
        self._round_count = 0
        self._repetition_count = 0
        self._target_duration_ms = 0
        self._elapsed_ms = 0
        self._phase_remaining_ms = 0
        self._hold_elapsed_ms = 0

    # =========================================================================
    # READ-ONLY STATE
    # =========================================================================

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def is_running(self) -> bool:
        return self._status is SessionStatus.RUNNING

    @property
    def catalog(self) -> StepCatalog | None:
        return self._catalog

    @property
    def current_step(self) -> Step | None:
        """Current step, or None when idle."""
        if self._catalog is None:
            return None
        return self._catalog.steps[self._step_index]

    @property
    def step_index(self) -> int:
        return self._step_index

    @property
    def cycle_count(self) -> int:
        return self._cycle_count

    @property
    def round_count(self) -> int:
        return self._round_count

    @property
    def repetition_count(self) -> int:
        return self._repetition_count

    @property
    def target_duration_ms(self) -> int:
        return self._target_duration_ms

    @property
    def elapsed_ms(self) -> int:
        return self._elapsed_ms

    @property
    def remaining_ms(self) -> int:
        """Time left before the target duration is reached."""
        return max(0, self._target_duration_ms - self._elapsed_ms)

    @property
    def phase_remaining_ms(self) -> int:
        """Time left in the current timed step (0 for user-terminated holds)."""
        return self._phase_remaining_ms

    @property
    def hold_elapsed_ms(self) -> int:
        """Time spent so far in the current user-terminated hold."""
        return self._hold_elapsed_ms

    # =========================================================================
    # OPERATIONS
    # =========================================================================

    def start(self, catalog: StepCatalog, target_duration_ms: int) -> list[SequencerEvent]:
        """
        Begin a fresh run of the given catalog.

        Any previous run is discarded. Validation happens before anything
        is touched, so a rejected start leaves the previous state intact.

        Args:
            catalog: Steps and gate/round settings of the technique.
            target_duration_ms: Session length; the run completes once this
                much time has been ticked.

        Returns:
            A single PhaseChanged event for the first step.

        Raises:
            InvalidConfiguration: Empty/invalid catalog or non-positive target.

        Example:
            >>> seq = SessionSequencer()
            >>> events = seq.start(catalog, 16_000)
            >>> seq.status
            <SessionStatus.RUNNING: 'running'>
        """
        validate_catalog(catalog)
        if not _is_int(target_duration_ms) or target_duration_ms <= 0:
            raise InvalidConfiguration(
                f"Target duration must be a positive number of ms, got {target_duration_ms!r}"
            )

        self._clear()
        self._catalog = catalog
        self._status = SessionStatus.RUNNING
        self._cycle_count = 1
        self._round_count = 1
        self._target_duration_ms = target_duration_ms

        events: list[SequencerEvent] = [self._enter_step(0)]
        logger.debug(f"Session started: {len(catalog.steps)} steps, {target_duration_ms}ms")
        return self._emit(events)

    def tick(self, delta_ms: int) -> list[SequencerEvent]:
        """
        Advance the clocks by delta_ms.

        A single delta may cross several step boundaries; each boundary
        emits a PhaseChanged event. The run completes as soon as elapsed
        time reaches the target, or when the last round closes.

        Args:
            delta_ms: Milliseconds elapsed since the previous tick (>= 0).

        Returns:
            Events produced by this tick, in order. Empty when not running.

        Raises:
            ValueError: If delta_ms is negative.
            InvalidTransition: If not running and the sequencer is strict.

        Example:
            >>> seq.start(box_catalog, 16_000)
            >>> seq.tick(16_000)[-1]
            SessionCompleted(elapsed_ms=16000, cycle_count=1, round_count=1)
        """
        if delta_ms < 0:
            raise ValueError(f"delta_ms must be >= 0, got {delta_ms}")
        if not self._check_running("tick"):
            return []

        events: list[SequencerEvent] = []
        remaining = delta_ms
        while self._status is SessionStatus.RUNNING:
            step = self._current()
            budget = self._target_duration_ms - self._elapsed_ms
            if step.hold_until_user_action:
                consumed = min(remaining, budget)
                self._hold_elapsed_ms += consumed
            else:
                consumed = min(remaining, budget, self._phase_remaining_ms)
                self._phase_remaining_ms -= consumed
            self._elapsed_ms += consumed
            remaining -= consumed

            if self._elapsed_ms >= self._target_duration_ms:
                events.append(self._complete())
                break
            if step.hold_until_user_action or self._phase_remaining_ms > 0:
                break
            events.extend(self._next_step())

        return self._emit(events)

    def advance(self) -> list[SequencerEvent]:
        """
        Leave the current step on explicit request.

        This is the only way out of a step held until user action; on a
        timed step it skips the rest of the phase clock.

        Returns:
            Events produced by the transition. Empty when not running.

        Raises:
            InvalidTransition: If not running and the sequencer is strict.
        """
        if not self._check_running("advance"):
            return []
        return self._emit(self._next_step())

    def stop(self) -> list[SequencerEvent]:
        """
        Interrupt the run.

        Idempotent: stopping a run that is already stopped, completed or
        idle does nothing and emits nothing.

        Returns:
            A single SessionStopped event, or an empty list.
        """
        if self._status is not SessionStatus.RUNNING:
            return []
        self._status = SessionStatus.STOPPED
        logger.debug(f"Session stopped after {self._elapsed_ms}ms")
        return self._emit([SessionStopped(self._elapsed_ms, self._cycle_count)])

    def reset(self) -> None:
        """Return to IDLE, discarding all runtime state."""
        self._clear()

    def build_record(
        self,
        technique_id: str,
        technique_name: str,
        timestamp_iso: str | None = None,
    ) -> SessionRecord:
        """
        Build the SessionRecord of a finished run.

        Args:
            technique_id: Catalog key of the technique practiced.
            technique_name: Display name of the technique.
            timestamp_iso: Explicit timestamp; defaults to now.

        Returns:
            Record with duration_seconds = elapsed_ms // 1000 and
            completed = (status == COMPLETED).

        Raises:
            InvalidTransition: If the run is still going or never started.
        """
        if self._status not in (SessionStatus.STOPPED, SessionStatus.COMPLETED):
            raise InvalidTransition(
                f"Cannot build a session record while {self._status.value}"
            )
        return SessionRecord.create(
            technique_id=technique_id,
            technique_name=technique_name,
            duration_seconds=self._elapsed_ms // 1000,
            completed=self._status is SessionStatus.COMPLETED,
            timestamp_iso=timestamp_iso,
        )

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _require_catalog(self) -> StepCatalog:
        if self._catalog is None:
            raise InvalidTransition("No session has been started")
        return self._catalog

    def _current(self) -> Step:
        return self._require_catalog().steps[self._step_index]

    def _check_running(self, operation: str) -> bool:
        if self._status is SessionStatus.RUNNING:
            return True
        message = f"{operation}() ignored: session is {self._status.value}"
        if self._strict:
            raise InvalidTransition(message)
        logger.warning(message)
        return False

    def _enter_step(self, index: int) -> PhaseChanged:
        step = self._require_catalog().steps[index]
        self._step_index = index
        self._phase_remaining_ms = 0 if step.hold_until_user_action else step.duration_ms
        self._hold_elapsed_ms = 0
        return PhaseChanged(
            step=step,
            step_index=index,
            cycle_count=self._cycle_count,
            round_count=self._round_count,
            repetition_count=self._repetition_count,
        )

    def _next_step(self) -> list[SequencerEvent]:
        catalog = self._require_catalog()
        index = self._step_index
        gate = catalog.gate

        if gate is not None and index == gate.block_length - 1:
            if self._repetition_count + 1 < gate.repetitions:
                self._repetition_count += 1
                return [self._enter_step(0)]
            self._repetition_count = 0

        next_index = index + 1
        if next_index < len(catalog.steps):
            return [self._enter_step(next_index)]

        # End of a cycle
        if catalog.max_rounds is not None and self._cycle_count % catalog.cycles_per_round == 0:
            if self._round_count >= catalog.max_rounds:
                return [self._complete()]
            self._round_count += 1
        self._cycle_count += 1
        return [self._enter_step(0)]

    def _complete(self) -> SessionCompleted:
        self._status = SessionStatus.COMPLETED
        logger.debug(f"Session completed after {self._elapsed_ms}ms")
        return SessionCompleted(self._elapsed_ms, self._cycle_count, self._round_count)

    def _emit(self, events: list[SequencerEvent]) -> list[SequencerEvent]:
        if self._listener is not None:
            for event in events:
                try:
                    self._listener(event)
                except Exception:
                    logger.exception(f"Sequencer listener failed on {type(event).__name__}")
        return events
