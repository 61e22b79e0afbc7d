"""Personalization service facade.

Ties extraction, weight learning and scoring to one weight store and owns
the read cache of loaded weight maps. Every mutation goes through this class
so the cache is invalidated after each decision, mute, reset and adjustment.
"""

import random
from collections.abc import Callable, Iterable
from datetime import UTC, datetime

import structlog

from signal_feedback.scoring.models import ScorableItem, ScoredItem, SerendipityConfig
from signal_feedback.scoring.scorer import PreferenceScorer, apply_serendipity
from signal_feedback.settings import AppSettings
from signal_feedback.signals.dictionary import (
    SignalDictionary,
    default_dictionary,
    load_dictionary,
)
from signal_feedback.signals.extractor import SignalExtractor
from signal_feedback.signals.models import ContentItem, ExtractedSignals, SignalKey
from signal_feedback.weights.cache import WeightCache
from signal_feedback.weights.confidence import ConfidenceLevel, infer_confidence
from signal_feedback.weights.counter_bias import BlindSpotAlert, detect_blind_spots
from signal_feedback.weights.decay import apply_decay
from signal_feedback.weights.ignore_reasons import IgnoreReasonType
from signal_feedback.weights.models import DecisionAction, WeightRecord, WeightUpdate
from signal_feedback.weights.operators import adjust_signal, mute_signal, reset_signal
from signal_feedback.weights.store import WeightStore
from signal_feedback.weights.updater import DecisionWeightUpdater, parse_action


logger = structlog.get_logger()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class PersonalizationService:
    """Entry point for callers of the feedback loop."""

    def __init__(
        self,
        store: WeightStore,
        dictionary: SignalDictionary | None = None,
        cache: WeightCache | None = None,
        apply_weight_decay: bool = False,
        batch_writes: bool = False,
        clock: Callable[[], datetime] = _utcnow,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            store: Weight store backing every user.
            dictionary: Signal dictionary (default: built-in).
            cache: Read cache for weight maps; None disables caching.
            apply_weight_decay: Decay idle weights before scoring.
            batch_writes: Write each decision in one batch when supported.
            clock: Source of the current time for decay.
            rng: Random source for exploration picks.
        """
        self._store = store
        self._dictionary = dictionary or default_dictionary()
        self._extractor = SignalExtractor(self._dictionary)
        self._updater = DecisionWeightUpdater(
            store, self._dictionary, batch=batch_writes
        )
        self._scorer = PreferenceScorer(self._dictionary)
        self._cache = cache
        self._apply_weight_decay = apply_weight_decay
        self._clock = clock
        self._rng = rng or random.Random()  # noqa: S311
        self._log = logger.bind(component="service")

    @classmethod
    def from_settings(
        cls, store: WeightStore, settings: AppSettings
    ) -> "PersonalizationService":
        """Build a service configured from application settings.

        Args:
            store: Weight store backing every user.
            settings: Application settings.

        Returns:
            Configured service.

        Raises:
            DictionaryValidationError: If the configured dictionary is invalid.
        """
        dictionary = (
            load_dictionary(settings.dictionary_path)
            if settings.dictionary_path is not None
            else None
        )
        return cls(
            store,
            dictionary=dictionary,
            cache=WeightCache(ttl_seconds=settings.weight_cache_ttl_seconds),
            apply_weight_decay=settings.apply_weight_decay,
        )

    @property
    def dictionary(self) -> SignalDictionary:
        """Get the signal dictionary in use."""
        return self._dictionary

    def _invalidate(self, user_id: str) -> None:
        if self._cache is not None:
            self._cache.invalidate(user_id)

    def extract_signals(self, item: ContentItem) -> ExtractedSignals:
        """Extract signals from an item."""
        return self._extractor.extract(item)

    def get_weights(self, user_id: str) -> list[WeightRecord]:
        """Load a user's weight records, from cache when fresh.

        Args:
            user_id: User identifier.

        Returns:
            Stored weight records (not decayed).
        """
        if self._cache is None:
            return self._store.get_weights(user_id)

        cached = self._cache.get(user_id)
        if cached is not None:
            return cached

        generation = self._cache.generation(user_id)
        records = self._store.get_weights(user_id)
        stored = self._cache.put(user_id, records, generation=generation)
        if not stored and self._cache.ttl_seconds > 0:
            self._log.debug("weight_snapshot_discarded", user_id=user_id)
        return records

    def update_weights_from_decision(
        self,
        user_id: str,
        item: ContentItem | ExtractedSignals,
        action: DecisionAction | str,
        confidence: ConfidenceLevel | str | None = None,
        time_taken_seconds: float | None = None,
    ) -> list[WeightUpdate]:
        """Learn from a decision and return the persisted updates.

        Without an explicit confidence, it is inferred from the action when
        the decision time is known, and is medium otherwise.

        Args:
            user_id: User who decided.
            item: The item, or its already extracted signals.
            action: Decision taken.
            confidence: How sure the user was.
            time_taken_seconds: Time spent deciding, if measured.

        Returns:
            Updates that were actually persisted.

        Raises:
            InvalidDecisionActionError: If the action is unknown.
            InvalidConfidenceLevelError: If the confidence level is unknown.
        """
        try:
            if confidence is None:
                confidence = (
                    infer_confidence(parse_action(action), False, time_taken_seconds)
                    if time_taken_seconds is not None
                    else ConfidenceLevel.MEDIUM
                )
            return self._updater.update_from_decision(
                user_id, item, action, confidence=confidence
            )
        finally:
            self._invalidate(user_id)

    def record_ignore_reason(
        self,
        user_id: str,
        item: ContentItem | ExtractedSignals,
        reason: IgnoreReasonType | str,
    ) -> list[WeightUpdate]:
        """Learn from why an item was ignored.

        Raises:
            InvalidIgnoreReasonError: If the reason is unknown.
        """
        try:
            return self._updater.update_from_ignore_reason(user_id, item, reason)
        finally:
            self._invalidate(user_id)

    def score_items(
        self,
        items: Iterable[ScorableItem],
        weights: Iterable[WeightRecord],
    ) -> list[ScoredItem]:
        """Score items against an explicit weight list.

        Args:
            items: Items to score.
            weights: Weight records to score against.

        Returns:
            Scored items in input order.
        """
        return self._scorer.score_items(items, weights)

    def score_items_for_user(
        self,
        user_id: str,
        items: Iterable[ScorableItem],
    ) -> list[ScoredItem]:
        """Score items against a user's weights, loaded once for the batch.

        Args:
            user_id: User identifier.
            items: Items to score.

        Returns:
            Scored items in input order.
        """
        weights = self.get_weights(user_id)
        if self._apply_weight_decay:
            weights = apply_decay(weights, self._clock())
        return self._scorer.score_items(items, weights)

    def rank_items_for_user(
        self,
        user_id: str,
        items: Iterable[ScorableItem],
        serendipity: SerendipityConfig | None = None,
    ) -> list[ScoredItem]:
        """Score and rank items, lifting a few exploration picks into view.

        Args:
            user_id: User identifier.
            items: Items to score.
            serendipity: Exploration settings (default: enabled, 15%).

        Returns:
            Scored items in ranked order.
        """
        scored = self.score_items_for_user(user_id, items)
        return apply_serendipity(scored, self._rng, serendipity)

    def detect_blind_spots(self, user_id: str) -> list[BlindSpotAlert]:
        """Find topics the user has been ignoring for weeks.

        Args:
            user_id: User identifier.

        Returns:
            At most two alerts, most negative weight first.
        """
        alerts = detect_blind_spots(self.get_weights(user_id), self._clock())
        if alerts:
            self._log.info(
                "blind_spots_detected",
                user_id=user_id,
                keys=[a.feature_key for a in alerts],
            )
        return alerts

    def mute_signal(
        self,
        user_id: str,
        signal_type: str,
        value: str,
        muted: bool = True,
    ) -> SignalKey:
        """Mute or unmute a signal.

        Raises:
            InvalidSignalTypeError: If the type is unknown.
        """
        try:
            return mute_signal(self._store, user_id, signal_type, value, muted)
        finally:
            self._invalidate(user_id)

    def reset_signal(self, user_id: str, signal_type: str, value: str) -> SignalKey:
        """Reset a signal to weight 0, active.

        Raises:
            InvalidSignalTypeError: If the type is unknown.
        """
        try:
            return reset_signal(self._store, user_id, signal_type, value)
        finally:
            self._invalidate(user_id)

    def adjust_signal(
        self,
        user_id: str,
        signal_type: str,
        value: str,
        delta: float,
    ) -> SignalKey:
        """Add a manual delta to a signal.

        Raises:
            InvalidSignalTypeError: If the type is unknown.
        """
        try:
            return adjust_signal(self._store, user_id, signal_type, value, delta)
        finally:
            self._invalidate(user_id)
