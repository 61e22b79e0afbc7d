"""Ignore reasons: why an item was ignored, and what that teaches.

Some reasons say nothing about the item's topics (duplicate, bad timing)
and leave weights alone; others penalize only the signal types they are
about.
"""

from dataclasses import dataclass
from enum import Enum

import structlog

from signal_feedback.errors import InvalidFeatureKeyError, InvalidIgnoreReasonError
from signal_feedback.signals.codec import parse_typed_key
from signal_feedback.signals.models import ExtractedSignals, SignalType
from signal_feedback.weights.models import WeightUpdate


logger = structlog.get_logger()


class IgnoreReasonType(str, Enum):
    """Reasons a user gives when ignoring an item."""

    IRRELEVANT = "irrelevant"
    NOISE = "noise"
    DUPLICATE = "duplicate"
    TOO_SHALLOW = "too_shallow"
    TOO_TECHNICAL = "too_technical"
    BAD_TIMING = "bad_timing"
    OFF_TOPIC = "off_topic"
    KNOWN = "known"
    CUSTOM = "custom"


@dataclass(frozen=True)
class IgnoreReason:
    """Configuration of one ignore reason.

    Attributes:
        reason_type: Reason identifier.
        label: Short display label.
        description: Longer description.
        weight_impact: Delta applied to each affected signal.
        affects: Signal types the delta is applied to.
    """

    reason_type: IgnoreReasonType
    label: str
    description: str
    weight_impact: float
    affects: tuple[SignalType, ...] = ()


IGNORE_REASONS: dict[IgnoreReasonType, IgnoreReason] = {
    reason.reason_type: reason
    for reason in (
        IgnoreReason(
            IgnoreReasonType.IRRELEVANT,
            "Irrelevant",
            "Not relevant to my work",
            -1.5,
            (SignalType.CATEGORY, SignalType.CONCEPT),
        ),
        IgnoreReason(
            IgnoreReasonType.NOISE,
            "Noise/Hype",
            "Marketing fluff, clickbait, no substance",
            -0.5,
        ),
        IgnoreReason(
            IgnoreReasonType.DUPLICATE, "Duplicate", "Already seen this story", 0.0
        ),
        IgnoreReason(
            IgnoreReasonType.TOO_SHALLOW,
            "Too Shallow",
            "Not enough depth or detail",
            -0.3,
        ),
        IgnoreReason(
            IgnoreReasonType.TOO_TECHNICAL,
            "Too Technical",
            "Too deep for current needs",
            -0.3,
            (SignalType.CONCEPT,),
        ),
        IgnoreReason(
            IgnoreReasonType.BAD_TIMING,
            "Not Now",
            "Interesting but not relevant right now",
            0.0,
        ),
        IgnoreReason(
            IgnoreReasonType.OFF_TOPIC,
            "Off Topic",
            "Wrong category or focus area",
            -1.0,
            (SignalType.CATEGORY,),
        ),
        IgnoreReason(
            IgnoreReasonType.KNOWN, "Already Know", "Already familiar with this", 0.0
        ),
        IgnoreReason(
            IgnoreReasonType.CUSTOM,
            "Other",
            "Custom reason",
            -0.5,
            (SignalType.CONCEPT,),
        ),
    )
}


def parse_ignore_reason(reason: IgnoreReasonType | str) -> IgnoreReasonType:
    """Validate an ignore reason.

    Args:
        reason: Reason enum or its string value.

    Returns:
        The reason enum.

    Raises:
        InvalidIgnoreReasonError: If the reason is unknown.
    """
    if isinstance(reason, IgnoreReasonType):
        return reason
    try:
        return IgnoreReasonType(reason)
    except ValueError as e:
        raise InvalidIgnoreReasonError(reason) from e


def calculate_ignore_adjustments(
    reason: IgnoreReasonType | str,
    signals: ExtractedSignals,
) -> list[WeightUpdate]:
    """Compute weight deltas implied by an ignore reason.

    Args:
        reason: Why the item was ignored.
        signals: The item's signals.

    Returns:
        One update per affected key; empty for reasons with no impact.

    Raises:
        InvalidIgnoreReasonError: If the reason is unknown.
    """
    config = IGNORE_REASONS[parse_ignore_reason(reason)]
    if config.weight_impact == 0:
        return []

    updates: list[WeightUpdate] = []
    for signal_type, key in signals.typed_keys():
        if signal_type not in config.affects:
            continue
        try:
            signal = parse_typed_key(signal_type, key)
        except InvalidFeatureKeyError:
            logger.warning("malformed_signal_key_skipped", component="weights", key=key)
            continue
        updates.append(WeightUpdate(signal=signal, delta=config.weight_impact))
    return updates
