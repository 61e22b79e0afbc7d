"""Decision confidence.

Not every decision is equally certain. Confident decisions move weights
further and fade slower; hasty ones move them less and fade faster.
"""

from dataclasses import dataclass
from enum import Enum

from signal_feedback.errors import InvalidConfidenceLevelError
from signal_feedback.weights.models import DecisionAction


# Decisions made faster than this are treated as low confidence
QUICK_DECISION_SECONDS: float = 3.0


class ConfidenceLevel(str, Enum):
    """How sure the user was about a decision."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass(frozen=True)
class DecisionConfidence:
    """Effect of one confidence level on learning.

    Attributes:
        level: Confidence level.
        revisable: Whether the decision may be revised later.
        decay_multiplier: Exponent applied to the weekly decay factor.
        weight_multiplier: Factor applied to decision deltas.
    """

    level: ConfidenceLevel
    revisable: bool
    decay_multiplier: float
    weight_multiplier: float


CONFIDENCE_CONFIG: dict[ConfidenceLevel, DecisionConfidence] = {
    config.level: config
    for config in (
        DecisionConfidence(ConfidenceLevel.LOW, True, 2.0, 0.5),
        DecisionConfidence(ConfidenceLevel.MEDIUM, True, 1.0, 1.0),
        DecisionConfidence(ConfidenceLevel.HIGH, False, 0.5, 1.5),
    )
}


def parse_confidence(level: ConfidenceLevel | str) -> ConfidenceLevel:
    """Validate a confidence level.

    Raises:
        InvalidConfidenceLevelError: If the level is unknown.
    """
    if isinstance(level, ConfidenceLevel):
        return level
    try:
        return ConfidenceLevel(level)
    except ValueError as e:
        raise InvalidConfidenceLevelError(level) from e


def infer_confidence(
    action: DecisionAction,
    has_ignore_reason: bool = False,
    time_taken_seconds: float | None = None,
) -> ConfidenceLevel:
    """Infer how confident a decision was from how it was made.

    Args:
        action: Decision taken.
        has_ignore_reason: Whether an ignore came with a reason.
        time_taken_seconds: Time spent deciding, if measured.

    Returns:
        Inferred confidence level.
    """
    if time_taken_seconds is not None and time_taken_seconds < QUICK_DECISION_SECONDS:
        return ConfidenceLevel.LOW
    if action in (DecisionAction.INTEGRATE, DecisionAction.EXPERIMENT):
        return ConfidenceLevel.HIGH
    if action is DecisionAction.IGNORE and not has_ignore_reason:
        return ConfidenceLevel.LOW
    return ConfidenceLevel.MEDIUM


def apply_confidence_to_weight(delta: float, confidence: ConfidenceLevel) -> float:
    """Scale a decision delta by confidence."""
    return delta * CONFIDENCE_CONFIG[confidence].weight_multiplier


def confidence_decay_factor(base_factor: float, confidence: ConfidenceLevel) -> float:
    """Adjust a weekly decay factor for confidence.

    A larger decay multiplier yields a smaller factor, so weights fade
    faster: ``0.9`` at low confidence becomes ``0.9 ** 2 = 0.81``.

    Args:
        base_factor: Weekly decay factor.
        confidence: Confidence of the decisions behind the weight.

    Returns:
        Adjusted weekly factor.
    """
    return base_factor ** CONFIDENCE_CONFIG[confidence].decay_multiplier
