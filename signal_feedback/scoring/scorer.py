"""Preference-aware scoring of content items.

Score formula:
    delta = (0.70 * context + 0.40 * concept + 0.15 * subject + 0.05 * category)
            * 0.5 + mute_penalty
    adjusted = clamp(base + delta, 0, 100)

The group multipliers are the same ones applied when weights are written,
so a narrow rejected pattern ends up far more suppressed than the broad
entity or category it merely co-occurred with.
"""

import math
import random
import time
from collections.abc import Iterable, Mapping
from dataclasses import replace

import structlog

from signal_feedback.scoring.constants import (
    GROUP_MULTIPLIERS,
    MAX_REASONS,
    MAX_SCORE,
    MIN_SCORE,
    MUTE_PENALTY,
    MUTE_PENALTY_CAP,
    PREFERENCE_SCALE,
    SCORE_GROUPS,
    SERENDIPITY_FIRST_SLOT,
    SERENDIPITY_MIN_ITEMS,
    SERENDIPITY_SLOT_SPACING,
    SERENDIPITY_TOP_FRACTION,
)
from signal_feedback.scoring.metrics import ScoringMetrics
from signal_feedback.scoring.models import (
    ScorableItem,
    ScoreBreakdown,
    ScoredItem,
    ScoreReason,
    ScoreReasons,
    SerendipityConfig,
)
from signal_feedback.signals.bundle import resolve_item_signals
from signal_feedback.signals.codec import display_label
from signal_feedback.signals.dictionary import SignalDictionary
from signal_feedback.signals.extractor import SignalExtractor
from signal_feedback.signals.models import ExtractedSignals
from signal_feedback.weights.models import WeightRecord


logger = structlog.get_logger()


def build_weight_map(weights: Iterable[WeightRecord]) -> dict[str, WeightRecord]:
    """Index weight records by feature key.

    Args:
        weights: A user's weight records.

    Returns:
        Mapping of feature key to record.
    """
    return {record.feature_key: record for record in weights}


def clamp_score(score: float) -> float:
    """Clamp a score into the valid range."""
    return max(MIN_SCORE, min(MAX_SCORE, score))


def _top_reasons(
    matched: list[tuple[str, float]], *, positive: bool
) -> tuple[ScoreReason, ...]:
    if positive:
        candidates = sorted(
            (m for m in matched if m[1] > 0), key=lambda m: m[1], reverse=True
        )
    else:
        candidates = sorted((m for m in matched if m[1] < 0), key=lambda m: m[1])
    return tuple(
        ScoreReason(key=key, weight=weight, label=display_label(key))
        for key, weight in candidates[:MAX_REASONS]
    )


def score_signals(
    signals: ExtractedSignals,
    weight_map: Mapping[str, WeightRecord],
) -> tuple[float, ScoreBreakdown, ScoreReasons]:
    """Compute the preference delta of one item's signals.

    Args:
        signals: Signals of the item.
        weight_map: The user's weights indexed by feature key.

    Returns:
        Tuple of (preference_delta, breakdown, reasons).
    """
    group_sums = dict.fromkeys(GROUP_MULTIPLIERS, 0.0)
    mute_total = 0.0
    muted_count = 0
    matched: list[tuple[str, float]] = []

    for signal_type, key in signals.typed_keys():
        record = weight_map.get(key)
        if record is None:
            continue
        if record.is_muted:
            mute_total += MUTE_PENALTY
            muted_count += 1
            continue
        group_sums[SCORE_GROUPS[signal_type]] += record.weight
        matched.append((key, record.weight))

    mute_penalty = max(mute_total, MUTE_PENALTY_CAP)
    scaled = sum(GROUP_MULTIPLIERS[group] * s for group, s in group_sums.items())
    delta = scaled * PREFERENCE_SCALE + mute_penalty

    breakdown = ScoreBreakdown(
        context_sum=group_sums["context"],
        concept_sum=group_sums["concept"],
        subject_sum=group_sums["subject"],
        category_sum=group_sums["category"],
        mute_penalty=mute_penalty,
        matched_count=len(matched) + muted_count,
    )
    reasons = ScoreReasons(
        boosted=_top_reasons(matched, positive=True),
        suppressed=_top_reasons(matched, positive=False),
    )
    return delta, breakdown, reasons


def rank_items(scored: Iterable[ScoredItem]) -> list[ScoredItem]:
    """Order scored items by adjusted score, highest first.

    The sort is stable, so ties keep their input order.

    Args:
        scored: Scored items.

    Returns:
        New list in ranked order.
    """
    return sorted(scored, key=lambda s: s.adjusted_score, reverse=True)



def apply_serendipity(
    scored: Iterable[ScoredItem],
    rng: random.Random,
    config: SerendipityConfig | None = None,
) -> list[ScoredItem]:
    """Rank items, then lift a few from below the top ranks into view.

    Picks are drawn from outside the top 30% of the ranking, need a decent
    base score and, unless configured otherwise, must not match a muted
    signal. They are copied with ``exploration`` set and placed at slots
    5, 8, 11 and so on. Lists shorter than ten items are only ranked.

    Args:
        scored: Scored items.
        rng: Random source; pass a seeded instance for repeatable output.
        config: Serendipity settings (default: enabled, 15%).

    Returns:
        New list in ranked order with exploration picks inserted.
    """
    ranked = rank_items(scored)
    config = config or SerendipityConfig()
    if not config.enabled or len(ranked) < SERENDIPITY_MIN_ITEMS:
        return ranked

    top_count = math.floor(len(ranked) * SERENDIPITY_TOP_FRACTION)
    pick_count = math.floor(len(ranked) * config.percentage / 100)
    candidates = [
        s
        for s in ranked[top_count:]
        if s.base_score >= config.min_base_score
        and not (config.exclude_muted and s.breakdown.mute_penalty < 0)
    ]
    picks = rng.sample(candidates, min(pick_count, len(candidates)))
    if not picks:
        return ranked

    picked = {id(s) for s in picks}
    result = [s for s in ranked if id(s) not in picked]
    for index, pick in enumerate(picks):
        slot = SERENDIPITY_FIRST_SLOT + index * SERENDIPITY_SLOT_SPACING
        result.insert(min(slot, len(result)), replace(pick, exploration=True))
    logger.debug(
        "serendipity_applied",
        component="scoring",
        picks=[s.item_id for s in picks],
        candidates=len(candidates),
    )
    return result


class PreferenceScorer:
    """Scores batches of items against one user's weight map.

    Scoring is pure apart from metrics: the weight list is indexed once per
    batch and never reloaded per item.
    """

    def __init__(
        self,
        dictionary: SignalDictionary | None = None,
        metrics: ScoringMetrics | None = None,
    ) -> None:
        """Initialize the scorer.

        Args:
            dictionary: Dictionary used when signals must be re-extracted.
            metrics: Optional metrics instance.
        """
        self._extractor = SignalExtractor(dictionary)
        self._metrics = metrics or ScoringMetrics.get_instance()
        self._log = logger.bind(component="scoring")

    def score_item(
        self,
        item: ScorableItem,
        weight_map: Mapping[str, WeightRecord],
    ) -> ScoredItem:
        """Score a single item.

        Args:
            item: Item with base score and cached or extractable signals.
            weight_map: The user's weights indexed by feature key.

        Returns:
            Scored item.
        """
        signals = resolve_item_signals(item.content, item.signals, self._extractor)
        delta, breakdown, reasons = score_signals(signals, weight_map)
        return ScoredItem(
            item_id=item.item_id,
            base_score=item.base_score,
            signals=signals,
            preference_delta=delta,
            adjusted_score=clamp_score(item.base_score + delta),
            reasons=reasons,
            breakdown=breakdown,
        )

    def score_items(
        self,
        items: Iterable[ScorableItem],
        weights: Iterable[WeightRecord],
    ) -> list[ScoredItem]:
        """Score a batch of items, preserving input order.

        Args:
            items: Items to score.
            weights: The user's full weight list.

        Returns:
            Scored items in input order.
        """
        start = time.perf_counter()
        weight_map = build_weight_map(weights)
        scored = [self.score_item(item, weight_map) for item in items]
        duration_ms = (time.perf_counter() - start) * 1000

        personalized = sum(1 for s in scored if s.is_personalized)
        self._metrics.record_batch(len(scored), personalized, duration_ms)
        self._log.info(
            "scoring_complete",
            items=len(scored),
            personalized=personalized,
            weights=len(weight_map),
            duration_ms=round(duration_ms, 2),
        )
        return scored


def score_items(
    items: Iterable[ScorableItem],
    weights: Iterable[WeightRecord],
    dictionary: SignalDictionary | None = None,
) -> list[ScoredItem]:
    """Score a batch of items with a default scorer.

    Args:
        items: Items to score.
        weights: The user's full weight list.
        dictionary: Optional dictionary for re-extraction.

    Returns:
        Scored items in input order.
    """
    return PreferenceScorer(dictionary).score_items(items, weights)
