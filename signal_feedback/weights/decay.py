"""Read-time weight decay.

Weights fade once a signal has seen no decision for a while, so stale
preferences stop dominating. Decay is applied to copies at read time;
stored weights are only ever changed additively.

Formula: ``weight * factor ** (weeks_inactive - DECAY_GRACE_WEEKS)`` where
``factor`` is DECAY_FACTOR adjusted for decision confidence, with a
magnitude floor of DECAY_MIN_WEIGHT that keeps the sign.
"""

from dataclasses import dataclass
from datetime import datetime

from signal_feedback.weights.confidence import (
    ConfidenceLevel,
    confidence_decay_factor,
)
from signal_feedback.weights.constants import (
    DECAY_FACTOR,
    DECAY_GRACE_WEEKS,
    DECAY_MIN_WEIGHT,
    SECONDS_PER_WEEK,
)
from signal_feedback.weights.models import WeightRecord


@dataclass(frozen=True)
class DecayResult:
    """Decayed weight and how long the signal has been idle.

    Attributes:
        decayed_weight: Weight after decay.
        weeks_inactive: Whole weeks since the last decision (0 in grace).
    """

    decayed_weight: float
    weeks_inactive: int


def calculate_decayed_weight(
    weight: float,
    last_decision_at: datetime | None,
    now: datetime,
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM,
) -> DecayResult:
    """Calculate the decayed value of a weight.

    Args:
        weight: Stored weight.
        last_decision_at: When a delta was last added, if ever.
        now: Current time.
        confidence: Confidence of the decisions behind the weight; low
            confidence fades faster, high confidence slower.

    Returns:
        Decay result.
    """
    if last_decision_at is None:
        return DecayResult(decayed_weight=weight, weeks_inactive=0)

    weeks = (now - last_decision_at).total_seconds() / SECONDS_PER_WEEK
    if weeks < DECAY_GRACE_WEEKS:
        return DecayResult(decayed_weight=weight, weeks_inactive=0)

    factor = confidence_decay_factor(DECAY_FACTOR, confidence)
    decayed = weight * factor ** (weeks - DECAY_GRACE_WEEKS)
    if weight > 0:
        decayed = max(DECAY_MIN_WEIGHT, decayed)
    elif weight < 0:
        decayed = min(-DECAY_MIN_WEIGHT, decayed)

    return DecayResult(decayed_weight=round(decayed, 2), weeks_inactive=int(weeks))


def apply_decay(
    records: list[WeightRecord],
    now: datetime,
    confidence: ConfidenceLevel = ConfidenceLevel.MEDIUM,
) -> list[WeightRecord]:
    """Return copies of the records carrying decayed weights.

    Muted records are returned unchanged.

    Args:
        records: Stored weight records.
        now: Current time.
        confidence: Confidence assumed for every record.

    Returns:
        Records with decayed weights.
    """
    decayed: list[WeightRecord] = []
    for record in records:
        if record.is_muted or record.weight == 0:
            decayed.append(record)
            continue
        result = calculate_decayed_weight(
            record.weight, record.last_decision_at, now, confidence
        )
        decayed.append(record.model_copy(update={"weight": result.decayed_weight}))
    return decayed


def format_weight(weight: float, result: DecayResult) -> str:
    """Format a weight for display, marking decay when it applies.

    Args:
        weight: Stored weight.
        result: Decay result for the weight.

    Returns:
        ``+1.5`` style string, with ``↓(3w)`` appended when decayed.
    """
    if result.weeks_inactive == 0:
        return f"{weight:+.1f}"
    indicator = "↓" if result.decayed_weight < weight else ""
    return f"{result.decayed_weight:+.1f} {indicator}({result.weeks_inactive}w)"
