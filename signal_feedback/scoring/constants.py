"""Constants for preference scoring."""

from signal_feedback.signals.models import SignalType
from signal_feedback.weights.constants import TYPE_MULTIPLIERS


MIN_SCORE: float = 0.0
MAX_SCORE: float = 100.0

# Fixed contribution of one matched muted signal, and the floor for their sum
MUTE_PENALTY: float = -10.0
MUTE_PENALTY_CAP: float = -20.0

PREFERENCE_SCALE: float = 0.5
MAX_REASONS: int = 2

# Entities and tools share one "subject" group on the read side
SCORE_GROUPS: dict[SignalType, str] = {
    SignalType.CONTEXT: "context",
    SignalType.CONCEPT: "concept",
    SignalType.ENTITY: "subject",
    SignalType.TOOL: "subject",
    SignalType.CATEGORY: "category",
}

GROUP_MULTIPLIERS: dict[str, float] = {
    "context": TYPE_MULTIPLIERS[SignalType.CONTEXT],
    "concept": TYPE_MULTIPLIERS[SignalType.CONCEPT],
    "subject": TYPE_MULTIPLIERS[SignalType.ENTITY],
    "category": TYPE_MULTIPLIERS[SignalType.CATEGORY],
}

# Serendipity: occasionally lift a decent item from outside the top ranks
SERENDIPITY_PERCENTAGE: float = 15.0
SERENDIPITY_MIN_BASE_SCORE: float = 40.0
SERENDIPITY_MIN_ITEMS: int = 10
SERENDIPITY_TOP_FRACTION: float = 0.3
SERENDIPITY_FIRST_SLOT: int = 5
SERENDIPITY_SLOT_SPACING: int = 3
