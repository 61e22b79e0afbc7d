"""Per-user signal weights: store contract, learning and mutators."""

from signal_feedback.weights.cache import WeightCache
from signal_feedback.weights.confidence import (
    CONFIDENCE_CONFIG,
    ConfidenceLevel,
    DecisionConfidence,
    infer_confidence,
)
from signal_feedback.weights.counter_bias import BlindSpotAlert, detect_blind_spots
from signal_feedback.weights.decay import (
    DecayResult,
    apply_decay,
    calculate_decayed_weight,
)
from signal_feedback.weights.errors import (
    MigrationError,
    StoreConnectionError,
    WeightStoreError,
)
from signal_feedback.weights.ignore_reasons import (
    IGNORE_REASONS,
    IgnoreReason,
    IgnoreReasonType,
    calculate_ignore_adjustments,
)
from signal_feedback.weights.metrics import WeightMetrics
from signal_feedback.weights.models import (
    DecisionAction,
    WeightRecord,
    WeightState,
    WeightUpdate,
)
from signal_feedback.weights.operators import adjust_signal, mute_signal, reset_signal
from signal_feedback.weights.sqlite_store import SqliteWeightStore
from signal_feedback.weights.store import (
    BatchWeightStore,
    InMemoryWeightStore,
    WeightStore,
)
from signal_feedback.weights.updater import (
    DecisionWeightUpdater,
    compute_decision_updates,
    parse_action,
)


__all__ = [
    "CONFIDENCE_CONFIG",
    "IGNORE_REASONS",
    "BatchWeightStore",
    "BlindSpotAlert",
    "ConfidenceLevel",
    "DecayResult",
    "DecisionAction",
    "DecisionConfidence",
    "DecisionWeightUpdater",
    "IgnoreReason",
    "IgnoreReasonType",
    "InMemoryWeightStore",
    "MigrationError",
    "SqliteWeightStore",
    "StoreConnectionError",
    "WeightCache",
    "WeightMetrics",
    "WeightRecord",
    "WeightState",
    "WeightStore",
    "WeightStoreError",
    "WeightUpdate",
    "adjust_signal",
    "apply_decay",
    "calculate_decayed_weight",
    "calculate_ignore_adjustments",
    "compute_decision_updates",
    "detect_blind_spots",
    "infer_confidence",
    "mute_signal",
    "parse_action",
    "reset_signal",
]
