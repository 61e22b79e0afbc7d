"""Preference-aware scoring of content items."""

from signal_feedback.scoring.metrics import ScoringMetrics
from signal_feedback.scoring.models import (
    ScorableItem,
    ScoreBreakdown,
    ScoredItem,
    ScoreReason,
    ScoreReasons,
    SerendipityConfig,
)
from signal_feedback.scoring.scorer import (
    PreferenceScorer,
    apply_serendipity,
    build_weight_map,
    rank_items,
    score_items,
    score_signals,
)


__all__ = [
    "PreferenceScorer",
    "ScorableItem",
    "ScoreBreakdown",
    "ScoreReason",
    "ScoreReasons",
    "ScoredItem",
    "ScoringMetrics",
    "SerendipityConfig",
    "apply_serendipity",
    "build_weight_map",
    "rank_items",
    "score_items",
    "score_signals",
]
