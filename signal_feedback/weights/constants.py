"""Constants for weight learning.

The type multiplier tables are shared by the decision updater (write side)
and the preference scorer (read side).
"""

from signal_feedback.signals.models import SignalType
from signal_feedback.weights.models import DecisionAction


DECISION_DELTAS: dict[DecisionAction, float] = {
    DecisionAction.IGNORE: -2.0,
    DecisionAction.MONITOR: 0.5,
    DecisionAction.EXPERIMENT: 1.5,
    DecisionAction.INTEGRATE: 3.0,
}

# Narrow signals learn faster than broad ones
TYPE_MULTIPLIERS: dict[SignalType, float] = {
    SignalType.CONTEXT: 0.70,
    SignalType.CONCEPT: 0.40,
    SignalType.ENTITY: 0.15,
    SignalType.TOOL: 0.15,
    SignalType.CATEGORY: 0.05,
}

# Used when an item carries a toxic concept: the narrow signals keep their
# full multiplier, broad ones are shielded.
TOXIC_TYPE_MULTIPLIERS: dict[SignalType, float] = {
    SignalType.CONTEXT: 0.70,
    SignalType.CONCEPT: 0.40,
    SignalType.ENTITY: 0.05,
    SignalType.TOOL: 0.05,
    SignalType.CATEGORY: 0.02,
}

# Weight decay
DECAY_FACTOR: float = 0.9  # per week after the grace period
DECAY_MIN_WEIGHT: float = 0.1  # magnitude floor, sign preserved
DECAY_GRACE_WEEKS: float = 2.0
SECONDS_PER_WEEK: int = 7 * 24 * 60 * 60

# Blind spots: strongly negative signals left without decisions for weeks
BLIND_SPOT_MAX_WEIGHT: float = -1.0
BLIND_SPOT_MIN_WEEKS: int = 6
BLIND_SPOT_MIN_DECISIONS: int = 3
BLIND_SPOT_MAX_ALERTS: int = 2

# Read cache for loaded weight maps
DEFAULT_CACHE_TTL_SECONDS: float = 300.0
