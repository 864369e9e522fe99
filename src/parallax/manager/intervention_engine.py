"""Intervention heuristics: decides when the mediator should interject.

Pure functions over data the caller already holds: no I/O, no state.

Pipeline:
1. Cooldown gate: at least COOLDOWN_HUMAN_TURNS human messages since the
   last mediator message, otherwise nothing fires
2. Detectors in priority order; the first that fires wins

Temperature windows count analyzed messages only. A message still waiting
on its analysis is skipped, never read as a zero.
"""

import logging
from collections.abc import Callable, Sequence

from parallax.models.intervention import InterventionDecision, InterventionType
from parallax.models.message import AnalysisResult, Message, ResolutionDirection

logger = logging.getLogger(__name__)

COOLDOWN_HUMAN_TURNS = 3

ESCALATION_MIN_TEMPERATURE = 0.85
ESCALATION_MIN_JUMP = 0.15
ESCALATION_WINDOW = 3

DOMINANCE_RUN_LENGTH = 3

BREAKTHROUGH_MAX_TEMPERATURE = 0.3
BREAKTHROUGH_PRIOR_HOT = 0.6
BREAKTHROUGH_WINDOW = 3

RESOLUTION_MIN_HUMAN_MESSAGES = 8
RESOLUTION_MAX_TEMPERATURE = 0.35
RESOLUTION_WINDOW = 4
RESOLUTION_MIN_SAMPLES = 3
RESOLUTION_PRIOR_CALM = 0.4


def recent_temperatures(
    history: Sequence[Message],
    count: int,
    before: int | None = None,
) -> list[float]:
    """Collect up to ``count`` temperatures scanning backward.

    Args:
        history: Messages in chronological order
        count: Maximum number of temperatures to collect
        before: Index of the message under evaluation; the scan starts just
            before it. None scans from the end of ``history``.

    Returns:
        Temperatures, most recent first
    """
    start = len(history) if before is None else before
    temps: list[float] = []
    for message in reversed(history[:start]):
        if len(temps) >= count:
            break
        if message.analysis is None:
            continue
        temps.append(message.analysis.temperature)
    return temps


def human_messages_since_mediator(history: Sequence[Message]) -> int:
    """Count human messages after the most recent mediator message."""
    count = 0
    for message in reversed(history):
        if not message.is_human:
            break
        count += 1
    return count


def detect_escalation(
    history: Sequence[Message], latest: AnalysisResult, before: int | None
) -> bool:
    """Temperature is high and jumped clear of the recent baseline."""
    if latest.temperature < ESCALATION_MIN_TEMPERATURE:
        return False
    window = recent_temperatures(history, ESCALATION_WINDOW, before)
    if not window:
        return False
    baseline = sum(window) / len(window)
    return latest.temperature - baseline > ESCALATION_MIN_JUMP


def detect_dominance(
    history: Sequence[Message], latest: AnalysisResult, before: int | None
) -> bool:
    """The last few human turns all came from one person."""
    humans = [m for m in history if m.is_human]
    if len(humans) < DOMINANCE_RUN_LENGTH:
        return False
    run = humans[-DOMINANCE_RUN_LENGTH:]
    return all(m.sender == run[0].sender for m in run)


def detect_breakthrough(
    history: Sequence[Message], latest: AnalysisResult, before: int | None
) -> bool:
    """A hot exchange just cooled off and is heading down."""
    if latest.temperature >= BREAKTHROUGH_MAX_TEMPERATURE:
        return False
    if latest.resolution_direction != ResolutionDirection.DE_ESCALATING:
        return False
    window = recent_temperatures(history, BREAKTHROUGH_WINDOW, before)
    return any(t > BREAKTHROUGH_PRIOR_HOT for t in window)


def detect_resolution(
    history: Sequence[Message], latest: AnalysisResult, before: int | None
) -> bool:
    """A long conversation has stayed calm for several analyzed turns."""
    human_count = sum(1 for m in history if m.is_human)
    if human_count < RESOLUTION_MIN_HUMAN_MESSAGES:
        return False
    if latest.temperature >= RESOLUTION_MAX_TEMPERATURE:
        return False
    if latest.resolution_direction == ResolutionDirection.ESCALATING:
        return False
    window = recent_temperatures(history, RESOLUTION_WINDOW, before)
    if len(window) < RESOLUTION_MIN_SAMPLES:
        return False
    return all(t < RESOLUTION_PRIOR_CALM for t in window)


Detector = Callable[[Sequence[Message], AnalysisResult, int | None], bool]

# Priority order: first match wins
DETECTORS: list[tuple[InterventionType, Detector]] = [
    (InterventionType.ESCALATION, detect_escalation),
    (InterventionType.DOMINANCE, detect_dominance),
    (InterventionType.BREAKTHROUGH, detect_breakthrough),
    (InterventionType.RESOLUTION, detect_resolution),
]


def decide(
    history: Sequence[Message],
    latest: AnalysisResult,
    *,
    evaluated_index: int | None = None,
) -> InterventionDecision:
    """Decide whether the mediator should interject after ``latest``.

    Args:
        history: The session's messages in chronological order
        latest: Analysis of the message under evaluation
        evaluated_index: Position of that message in ``history``. When
            omitted, the message is assumed not to be in ``history`` yet.

    Returns:
        The decision; at most one intervention type
    """
    if human_messages_since_mediator(history) < COOLDOWN_HUMAN_TURNS:
        return InterventionDecision.none()

    for intervention_type, detector in DETECTORS:
        if detector(history, latest, evaluated_index):
            logger.debug(
                f"Intervention {intervention_type.value} at "
                f"temperature={latest.temperature:.2f}"
            )
            return InterventionDecision.of(intervention_type)

    return InterventionDecision.none()
