"""Direct weight mutators that bypass the decision flow."""

import structlog

from signal_feedback.signals.codec import typed_signal_key
from signal_feedback.signals.models import SignalKey
from signal_feedback.weights.metrics import WeightMetrics
from signal_feedback.weights.store import WeightStore


logger = structlog.get_logger()


def mute_signal(
    store: WeightStore,
    user_id: str,
    signal_type: str,
    value: str,
    muted: bool = True,
) -> SignalKey:
    """Mute or unmute a signal for a user.

    The stored weight is left untouched; a muted signal scores as a fixed
    penalty until unmuted.

    Args:
        store: Weight store.
        user_id: User identifier.
        signal_type: Signal type name.
        value: Raw value (``subject_key|concept_key`` for contexts).
        muted: True to mute, False to unmute.

    Returns:
        The normalized signal key.

    Raises:
        InvalidSignalTypeError: If the type is unknown.
    """
    signal = typed_signal_key(signal_type, value)
    store.set_muted(user_id, signal, muted)
    WeightMetrics.get_instance().record_mute()
    logger.info(
        "signal_mute_set",
        component="weights",
        user_id=user_id,
        key=signal.key,
        muted=muted,
    )
    return signal


def reset_signal(
    store: WeightStore,
    user_id: str,
    signal_type: str,
    value: str,
) -> SignalKey:
    """Reset a signal to neutral: weight 0, active.

    Args:
        store: Weight store.
        user_id: User identifier.
        signal_type: Signal type name.
        value: Raw value.

    Returns:
        The normalized signal key.

    Raises:
        InvalidSignalTypeError: If the type is unknown.
    """
    signal = typed_signal_key(signal_type, value)
    store.reset_weight(user_id, signal)
    WeightMetrics.get_instance().record_reset()
    logger.info("signal_reset", component="weights", user_id=user_id, key=signal.key)
    return signal


def adjust_signal(
    store: WeightStore,
    user_id: str,
    signal_type: str,
    value: str,
    delta: float,
) -> SignalKey:
    """Add a manual delta to a signal weight.

    Args:
        store: Weight store.
        user_id: User identifier.
        signal_type: Signal type name.
        value: Raw value.
        delta: Amount to add.

    Returns:
        The normalized signal key.

    Raises:
        InvalidSignalTypeError: If the type is unknown.
    """
    signal = typed_signal_key(signal_type, value)
    store.upsert_add(user_id, signal, delta)
    WeightMetrics.get_instance().record_adjustment()
    logger.info(
        "signal_adjusted",
        component="weights",
        user_id=user_id,
        key=signal.key,
        delta=delta,
    )
    return signal
