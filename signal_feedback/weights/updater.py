"""Decision-driven weight updates.

A decision on an item turns into one delta per extracted signal key:
``DECISION_DELTAS[action] * multiplier(type)``. When the item carries a
toxic concept, the multipliers of its broad signals (entities, tools,
categories) are reduced so that the narrow toxic pattern absorbs the
punishment instead of the topic or source it co-occurred with.

Writes fan out one key at a time and are best effort: a key that fails is
logged and skipped, and the returned list is the authoritative record of
what was persisted.
"""

from collections.abc import Sequence

import structlog

from signal_feedback.errors import InvalidDecisionActionError, InvalidFeatureKeyError
from signal_feedback.signals.codec import parse_typed_key
from signal_feedback.signals.dictionary import SignalDictionary, default_dictionary
from signal_feedback.signals.extractor import SignalExtractor
from signal_feedback.signals.models import ContentItem, ExtractedSignals, SignalType
from signal_feedback.weights.confidence import (
    ConfidenceLevel,
    apply_confidence_to_weight,
    parse_confidence,
)
from signal_feedback.weights.constants import (
    DECISION_DELTAS,
    TOXIC_TYPE_MULTIPLIERS,
    TYPE_MULTIPLIERS,
)
from signal_feedback.weights.ignore_reasons import (
    IgnoreReasonType,
    calculate_ignore_adjustments,
    parse_ignore_reason,
)
from signal_feedback.weights.metrics import WeightMetrics
from signal_feedback.weights.models import DecisionAction, WeightUpdate
from signal_feedback.weights.store import BatchWeightStore, WeightStore


logger = structlog.get_logger()


def parse_action(action: DecisionAction | str) -> DecisionAction:
    """Validate a decision action.

    Args:
        action: Action enum or its string value.

    Returns:
        The action enum.

    Raises:
        InvalidDecisionActionError: If the action is unknown.
    """
    if isinstance(action, DecisionAction):
        return action
    try:
        return DecisionAction(action)
    except ValueError as e:
        raise InvalidDecisionActionError(action) from e


def multiplier_for(signal_type: SignalType, toxic: bool) -> float:
    """Get the learning-rate multiplier for a signal type.

    Args:
        signal_type: Type of the signal.
        toxic: Whether the item carries a toxic concept.

    Returns:
        Multiplier applied to the base decision delta.
    """
    table = TOXIC_TYPE_MULTIPLIERS if toxic else TYPE_MULTIPLIERS
    return table[signal_type]


def compute_decision_updates(
    signals: ExtractedSignals,
    action: DecisionAction | str,
    dictionary: SignalDictionary | None = None,
    confidence: ConfidenceLevel | str = ConfidenceLevel.MEDIUM,
) -> list[WeightUpdate]:
    """Compute per-key deltas for a decision without writing them.

    Args:
        signals: The item's signals.
        action: Decision taken on the item.
        dictionary: Dictionary providing the toxic set (default: built-in).
        confidence: How sure the user was; medium leaves deltas unchanged.

    Returns:
        One update per signal key, in ``all_keys`` order.

    Raises:
        InvalidDecisionActionError: If the action is unknown.
        InvalidConfidenceLevelError: If the confidence level is unknown.
    """
    base_delta = apply_confidence_to_weight(
        DECISION_DELTAS[parse_action(action)], parse_confidence(confidence)
    )
    toxic = (dictionary or default_dictionary()).has_toxic(signals.concepts)

    updates: list[WeightUpdate] = []
    for signal_type, key in signals.typed_keys():
        try:
            signal = parse_typed_key(signal_type, key)
        except InvalidFeatureKeyError:
            logger.warning("malformed_signal_key_skipped", component="weights", key=key)
            continue
        delta = base_delta * multiplier_for(signal_type, toxic)
        updates.append(WeightUpdate(signal=signal, delta=delta))
    return updates


class DecisionWeightUpdater:
    """Writes decision and ignore-reason deltas through a weight store.

    With ``batch=True`` and a store implementing ``upsert_add_many``, all
    deltas of one decision are written in a single transaction instead of
    fanning out per key; the result is then all keys or none.
    """

    def __init__(
        self,
        store: WeightStore,
        dictionary: SignalDictionary | None = None,
        metrics: WeightMetrics | None = None,
        batch: bool = False,
    ) -> None:
        """Initialize the updater.

        Args:
            store: Weight store to write to.
            dictionary: Signal dictionary (default: built-in).
            metrics: Optional metrics instance.
            batch: Prefer a single batch write when the store supports it.
        """
        self._store = store
        self._dictionary = dictionary or default_dictionary()
        self._extractor = SignalExtractor(self._dictionary)
        self._metrics = metrics or WeightMetrics.get_instance()
        self._batch = batch and isinstance(store, BatchWeightStore)
        self._log = logger.bind(component="weights", subcomponent="updater")

    def _signals_for(self, item: ContentItem | ExtractedSignals) -> ExtractedSignals:
        if isinstance(item, ExtractedSignals):
            return item
        return self._extractor.extract(item)

    def update_from_decision(
        self,
        user_id: str,
        item: ContentItem | ExtractedSignals,
        action: DecisionAction | str,
        confidence: ConfidenceLevel | str = ConfidenceLevel.MEDIUM,
    ) -> list[WeightUpdate]:
        """Learn from a decision on an item.

        Args:
            user_id: User who decided.
            item: The item, or its already extracted signals.
            action: Decision taken.
            confidence: How sure the user was; scales every delta.

        Returns:
            Updates that were actually persisted.

        Raises:
            InvalidDecisionActionError: If the action is unknown. Nothing is
                written in that case.
            InvalidConfidenceLevelError: If the confidence level is unknown.
        """
        decision = parse_action(action)
        level = parse_confidence(confidence)
        signals = self._signals_for(item)
        updates = compute_decision_updates(
            signals, decision, self._dictionary, confidence=level
        )

        written = self._write(user_id, updates, operation="decision")
        self._metrics.record_decision()

        self._log.info(
            "decision_weights_updated",
            user_id=user_id,
            action=decision.value,
            confidence=level.value,
            toxic=self._dictionary.has_toxic(signals.concepts),
            keys_total=len(updates),
            keys_written=len(written),
        )
        return written

    def update_from_ignore_reason(
        self,
        user_id: str,
        item: ContentItem | ExtractedSignals,
        reason: IgnoreReasonType | str,
    ) -> list[WeightUpdate]:
        """Learn from the reason given for ignoring an item.

        Args:
            user_id: User who ignored the item.
            item: The item, or its already extracted signals.
            reason: Why the item was ignored.

        Returns:
            Updates that were actually persisted.

        Raises:
            InvalidIgnoreReasonError: If the reason is unknown.
        """
        reason_type = parse_ignore_reason(reason)
        updates = calculate_ignore_adjustments(reason_type, self._signals_for(item))
        written = self._write(user_id, updates, operation="ignore_reason")
        self._metrics.record_ignore_reason()

        self._log.info(
            "ignore_reason_weights_updated",
            user_id=user_id,
            reason=reason_type.value,
            keys_total=len(updates),
            keys_written=len(written),
        )
        return written

    def _write(
        self,
        user_id: str,
        updates: Sequence[WeightUpdate],
        operation: str,
    ) -> list[WeightUpdate]:
        if not updates:
            return []
        if self._batch:
            return self._write_batch(user_id, updates, operation)

        written: list[WeightUpdate] = []
        for update in updates:
            try:
                self._store.upsert_add(user_id, update.signal, update.delta)
            except Exception as e:  # noqa: BLE001
                self._metrics.record_write_failure()
                self._log.warning(
                    "weight_write_failed",
                    user_id=user_id,
                    op=operation,
                    key=update.key,
                    error=str(e),
                )
                continue
            written.append(update)

        self._metrics.record_writes(len(written))
        return written

    def _write_batch(
        self,
        user_id: str,
        updates: Sequence[WeightUpdate],
        operation: str,
    ) -> list[WeightUpdate]:
        store: BatchWeightStore = self._store  # type: ignore[assignment]
        try:
            store.upsert_add_many(user_id, updates)
        except Exception as e:  # noqa: BLE001
            for _ in updates:
                self._metrics.record_write_failure()
            self._log.warning(
                "weight_batch_write_failed",
                user_id=user_id,
                op=operation,
                keys=len(updates),
                error=str(e),
            )
            return []

        self._metrics.record_writes(len(updates))
        return list(updates)
