"""Weight store contract and an in-memory implementation.

The contract fixes update semantics, not storage technology:

- ``upsert_add`` is an atomic per-key increment; a missing row is created
  with ``weight=delta`` and ``state=active``.
- ``set_muted`` touches the state only, never the weight.
- ``reset_weight`` sets the weight to 0 and the state to active.
- Rows are created lazily and never deleted.

No atomicity across keys is required. Stores that can apply several
increments in one transaction also implement :class:`BatchWeightStore`.
"""

import threading
from collections.abc import Callable, Sequence
from datetime import UTC, datetime
from typing import Protocol, runtime_checkable

from signal_feedback.signals.models import SignalKey
from signal_feedback.weights.models import WeightRecord, WeightState, WeightUpdate


@runtime_checkable
class WeightStore(Protocol):
    """Persistent per-user map of signal key to weight and mute state."""

    def get_weights(self, user_id: str) -> list[WeightRecord]:
        """Load every weight record of a user."""
        ...

    def upsert_add(self, user_id: str, signal: SignalKey, delta: float) -> None:
        """Atomically add ``delta`` to the weight of ``signal``."""
        ...

    def set_muted(self, user_id: str, signal: SignalKey, muted: bool) -> None:
        """Set the mute state of ``signal``."""
        ...

    def reset_weight(self, user_id: str, signal: SignalKey) -> None:
        """Reset ``signal`` to weight 0 and active state."""
        ...


@runtime_checkable
class BatchWeightStore(WeightStore, Protocol):
    """Weight store that can apply several increments in one transaction."""

    def upsert_add_many(self, user_id: str, updates: Sequence[WeightUpdate]) -> None:
        """Apply all increments atomically, or none of them."""
        ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


class InMemoryWeightStore:
    """Thread-safe in-memory weight store.

    Suitable for tests and for embedding the feedback loop in a process
    that persists weights elsewhere.
    """

    def __init__(self, clock: Callable[[], datetime] = _utcnow) -> None:
        """Initialize an empty store.

        Args:
            clock: Source of record timestamps.
        """
        self._clock = clock
        self._lock = threading.Lock()
        self._records: dict[tuple[str, str], WeightRecord] = {}

    def _get_or_create(self, user_id: str, signal: SignalKey) -> WeightRecord:
        existing = self._records.get((user_id, signal.key))
        if existing is not None:
            return existing
        return WeightRecord(
            user_id=user_id,
            feature_key=signal.key,
            feature_type=signal.feature_type,
            feature_value=signal.value,
            updated_at=self._clock(),
        )

    def _put(self, record: WeightRecord, **changes: object) -> None:
        updated = record.model_copy(update={"updated_at": self._clock(), **changes})
        self._records[(record.user_id, record.feature_key)] = updated

    def get_weights(self, user_id: str) -> list[WeightRecord]:
        """Load every weight record of a user, ordered by key.

        Args:
            user_id: User identifier.

        Returns:
            Weight records.
        """
        with self._lock:
            records = [r for (uid, _), r in self._records.items() if uid == user_id]
        return sorted(records, key=lambda r: r.feature_key)

    def upsert_add(self, user_id: str, signal: SignalKey, delta: float) -> None:
        """Atomically add ``delta`` to a signal weight.

        Args:
            user_id: User identifier.
            signal: Target signal.
            delta: Amount to add.
        """
        with self._lock:
            self._add(user_id, signal, delta)

    def _add(self, user_id: str, signal: SignalKey, delta: float) -> None:
        record = self._get_or_create(user_id, signal)
        self._put(
            record,
            weight=record.weight + delta,
            last_decision_at=self._clock(),
            decision_count=record.decision_count + 1,
        )

    def upsert_add_many(self, user_id: str, updates: Sequence[WeightUpdate]) -> None:
        """Apply several increments under one lock acquisition.

        Args:
            user_id: User identifier.
            updates: Deltas to apply.
        """
        with self._lock:
            for update in updates:
                self._add(user_id, update.signal, update.delta)

    def set_muted(self, user_id: str, signal: SignalKey, muted: bool) -> None:
        """Set the mute state of a signal.

        Args:
            user_id: User identifier.
            signal: Target signal.
            muted: True to mute, False to unmute.
        """
        state = WeightState.MUTED if muted else WeightState.ACTIVE
        with self._lock:
            self._put(self._get_or_create(user_id, signal), state=state)

    def reset_weight(self, user_id: str, signal: SignalKey) -> None:
        """Reset a signal to weight 0 and active state.

        Args:
            user_id: User identifier.
            signal: Target signal.
        """
        with self._lock:
            self._put(
                self._get_or_create(user_id, signal),
                weight=0.0,
                state=WeightState.ACTIVE,
            )
