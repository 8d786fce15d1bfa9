"""
Technique catalog for BreathFlow Tracker.

PURPOSE: Built-in breathing techniques and loading of custom step catalogs.
AI CONTEXT: Read-only content - the sequencer receives a StepCatalog from here.

BUILT-IN TECHNIQUES:
- box: 4-4-4-4 square breathing
- 478: Inhale 4s, hold 7s, exhale 8s
- wim-hof: 30 power breaths, retention until the user is ready, 15s recovery
- tummo: 30 power breaths, timed retention and recovery, 3 rounds
- physiological-sigh, ujjayi, buteyko, alternate-nostril
- cyclic-hyperventilation: counted cycles of 25 breaths

CUSTOM CATALOG JSON:
    [{"name": "Inhale", "durationMs": 4000, "instruction": "..."}, ...]
  or
    {"steps": [...], "gate": {"repetitions": 30, "blockLength": 2},
     "maxRounds": 3, "cyclesPerRound": 1}
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .models import RepetitionGate, Step, StepCatalog
from .sequencer import InvalidConfiguration, validate_catalog

__all__ = [
    "Technique",
    "BUILTIN_TECHNIQUES",
    "get_technique",
    "parse_catalog",
    "load_catalog_file",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Technique:
    """A named breathing technique and its step catalog."""

    technique_id: str
    name: str
    description: str
    catalog: StepCatalog

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.technique_id,
            "name": self.name,
            "description": self.description,
            "catalog": self.catalog.to_dict(),
        }


def _power_breaths() -> tuple[Step, Step]:
    return (
        Step("Inhale", 1500, "Breathe in deeply through the nose"),
        Step("Exhale", 1500, "Let the air out through the mouth"),
    )


_TECHNIQUES = (
    Technique(
        "box",
        "Box Breathing",
        "Four equal phases to calm the nervous system.",
        StepCatalog(
            steps=(
                Step("Inhale", 4000, "Breathe in slowly through the nose"),
                Step("Hold", 4000, "Hold your breath, lungs full", is_hold=True),
                Step("Exhale", 4000, "Breathe out slowly through the mouth"),
                Step("Hold", 4000, "Hold your breath, lungs empty", is_hold=True),
            )
        ),
    ),
    Technique(
        "478",
        "4-7-8 Breathing",
        "Long retention and exhale to help falling asleep.",
        StepCatalog(
            steps=(
                Step("Inhale", 4000, "Breathe in quietly through the nose"),
                Step("Hold", 7000, "Hold your breath", is_hold=True),
                Step("Exhale", 8000, "Exhale completely through the mouth"),
                Step("Pause", 1000, "Rest before the next cycle"),
            )
        ),
    ),
    Technique(
        "wim-hof",
        "Wim Hof Method",
        "Thirty power breaths, then hold as long as comfortable.",
        StepCatalog(
            steps=(
                *_power_breaths(),
                Step(
                    "Retention",
                    0,
                    "Exhale and hold; continue when you need to breathe",
                    is_hold=True,
                    hold_until_user_action=True,
                ),
                Step("Recovery", 15000, "Inhale fully and hold for 15 seconds", is_hold=True),
            ),
            gate=RepetitionGate(repetitions=30),
        ),
    ),
    Technique(
        "tummo",
        "Tummo Breathing",
        "Three rounds of power breaths, retention and recovery.",
        StepCatalog(
            steps=(
                *_power_breaths(),
                Step("Retention", 90000, "Exhale completely and hold", is_hold=True),
                Step("Recovery", 15000, "Inhale deeply and hold for 15 seconds", is_hold=True),
                Step("Pause", 5000, "Breathe normally before the next round"),
            ),
            gate=RepetitionGate(repetitions=30),
            max_rounds=3,
        ),
    ),
    Technique(
        "physiological-sigh",
        "Physiological Sigh",
        "Double inhale and long exhale for fast stress relief.",
        StepCatalog(
            steps=(
                Step("First inhale", 1500, "Breathe in deeply through the nose"),
                Step("Second inhale", 1000, "Top up with a short extra inhale"),
                Step("Exhale", 3000, "Exhale slowly through the mouth"),
                Step("Pause", 1000, "Wait before the next cycle"),
            )
        ),
    ),
    Technique(
        "ujjayi",
        "Ujjayi Breathing",
        "Ocean breath with a gentle throat contraction.",
        StepCatalog(
            steps=(
                Step("Inhale", 5000, "Breathe in through the nose, throat slightly closed"),
                Step("Pause", 1000, "Brief pause"),
                Step("Exhale", 6000, "Breathe out through the nose, keep the contraction"),
                Step("Pause", 1000, "Brief pause before the next cycle"),
            )
        ),
    ),
    Technique(
        "buteyko",
        "Buteyko Breathing",
        "Reduced breathing with a comfortable control pause.",
        StepCatalog(
            steps=(
                Step("Normal breathing", 10000, "Breathe calmly and normally"),
                Step("Gentle exhale", 5000, "Exhale softly through the nose"),
                Step("Retention", 20000, "Hold as long as comfortable", is_hold=True),
                Step("Recovery", 10000, "Breathe calmly through the nose"),
            )
        ),
    ),
    Technique(
        "alternate-nostril",
        "Alternate Nostril Breathing",
        "Nadi shodhana: breathe through one nostril at a time.",
        StepCatalog(
            steps=(
                Step("Preparation", 3000, "Close the right nostril with the right thumb"),
                Step("Inhale left", 4000, "Breathe in slowly through the left nostril"),
                Step("Switch", 2000, "Close the left nostril, open the right"),
                Step("Exhale right", 4000, "Breathe out slowly through the right nostril"),
                Step("Inhale right", 4000, "Breathe in slowly through the right nostril"),
                Step("Switch", 2000, "Close the right nostril, open the left"),
                Step("Exhale left", 4000, "Breathe out slowly through the left nostril"),
            )
        ),
    ),
    Technique(
        "cyclic-hyperventilation",
        "Cyclic Hyperventilation",
        "Energizing power breaths counted in cycles of 25.",
        StepCatalog(
            steps=_power_breaths(),
            gate=RepetitionGate(repetitions=25),
        ),
    ),
)

BUILTIN_TECHNIQUES: dict[str, Technique] = {t.technique_id: t for t in _TECHNIQUES}


def get_technique(technique_id: str) -> Technique:
    """
    Look up a built-in technique by id.

    Args:
        technique_id: Catalog key, e.g. 'box'.

    Returns:
        The Technique.

    Raises:
        KeyError: If the id is unknown; the message lists valid ids.
    """
    try:
        return BUILTIN_TECHNIQUES[technique_id]
    except KeyError:
        known = ", ".join(sorted(BUILTIN_TECHNIQUES))
        raise KeyError(f"Unknown technique {technique_id!r} (known: {known})") from None


def parse_catalog(data: Any) -> StepCatalog:
    """
    Build a validated StepCatalog from decoded JSON.

    Args:
        data: A list of step objects, or an object with 'steps' and
            optional 'gate', 'maxRounds', 'cyclesPerRound'.

    Returns:
        Validated StepCatalog.

    Raises:
        InvalidConfiguration: For any shape or value problem.

    Example:
        >>> parse_catalog([{"name": "In", "durationMs": 4000}]).steps[0].name
        'In'
    """
    if isinstance(data, list):
        data = {"steps": data}
    if not isinstance(data, dict):
        raise InvalidConfiguration("Catalog must be a list of steps or an object")

    raw_steps = data.get("steps")
    if not isinstance(raw_steps, list):
        raise InvalidConfiguration("Catalog 'steps' must be a list")

    try:
        steps = tuple(Step.from_dict(item) for item in raw_steps)
        gate = None
        if data.get("gate") is not None:
            raw_gate = data["gate"]
            gate = RepetitionGate(
                repetitions=raw_gate["repetitions"],
                block_length=raw_gate.get("blockLength", 2),
            )
        catalog = StepCatalog(
            steps=steps,
            gate=gate,
            max_rounds=data.get("maxRounds"),
            cycles_per_round=data.get("cyclesPerRound", 1),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise InvalidConfiguration(f"Malformed catalog: {e}") from e

    validate_catalog(catalog)
    return catalog


def load_catalog_file(path: str | Path) -> StepCatalog:
    """
    Load and validate a step catalog from a JSON file.

    Args:
        path: Path to the JSON catalog.

    Returns:
        Validated StepCatalog.

    Raises:
        InvalidConfiguration: If the file cannot be read, is not JSON, or
            describes an invalid catalog.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InvalidConfiguration(f"Catalog {path} is not valid UTF-8: {e}") from e
    except OSError as e:
        raise InvalidConfiguration(f"Cannot read catalog {path}: {e}") from e
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidConfiguration(f"Catalog {path} is not valid JSON: {e}") from e
    logger.debug(f"Loaded catalog from {path}")
    return parse_catalog(data)
