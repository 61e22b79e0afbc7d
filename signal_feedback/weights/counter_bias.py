"""Counter-bias: surface topics a user has been steadily ignoring.

A blind spot is an active signal with a clearly negative weight that has
collected several decisions and then gone untouched for weeks. Alerts are
capped per scan so they stay a gentle nudge.
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime

from signal_feedback.signals.codec import display_label
from signal_feedback.weights.constants import (
    BLIND_SPOT_MAX_ALERTS,
    BLIND_SPOT_MAX_WEIGHT,
    BLIND_SPOT_MIN_DECISIONS,
    BLIND_SPOT_MIN_WEEKS,
    SECONDS_PER_WEEK,
)
from signal_feedback.weights.models import WeightRecord


@dataclass(frozen=True)
class BlindSpotAlert:
    """A signal the user may be filtering out too eagerly.

    Attributes:
        feature_key: Canonical key of the signal.
        feature_type: Signal type name.
        feature_value: Normalized value.
        weight: Current stored weight.
        weeks_ignored: Whole weeks since the last decision.
        last_decision_at: When a delta was last added.
        decision_count: Number of decisions behind the weight.
        message: Human readable nudge.
    """

    feature_key: str
    feature_type: str
    feature_value: str
    weight: float
    weeks_ignored: int
    last_decision_at: datetime | None
    decision_count: int
    message: str

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "feature_key": self.feature_key,
            "feature_type": self.feature_type,
            "feature_value": self.feature_value,
            "weight": self.weight,
            "weeks_ignored": self.weeks_ignored,
            "last_decision_at": (
                self.last_decision_at.isoformat() if self.last_decision_at else None
            ),
            "decision_count": self.decision_count,
            "message": self.message,
        }


def weeks_since(last_decision_at: datetime | None, now: datetime) -> int:
    """Whole weeks between the last decision and now (0 if never decided)."""
    if last_decision_at is None:
        return 0
    seconds = (now - last_decision_at).total_seconds()
    return max(0, math.floor(seconds / SECONDS_PER_WEEK))


def detect_blind_spots(
    records: Iterable[WeightRecord],
    now: datetime,
    max_alerts: int = BLIND_SPOT_MAX_ALERTS,
) -> list[BlindSpotAlert]:
    """Find strongly negative signals that have been left alone for weeks.

    Candidates are active records below BLIND_SPOT_MAX_WEIGHT, most negative
    first. A candidate becomes an alert when it has at least
    BLIND_SPOT_MIN_DECISIONS decisions and none in BLIND_SPOT_MIN_WEEKS.

    Args:
        records: A user's stored (not decayed) weight records.
        now: Current time.
        max_alerts: Maximum number of alerts to return.

    Returns:
        Alerts, most negative weight first.
    """
    candidates = sorted(
        (r for r in records if not r.is_muted and r.weight < BLIND_SPOT_MAX_WEIGHT),
        key=lambda r: r.weight,
    )

    alerts: list[BlindSpotAlert] = []
    for record in candidates:
        if len(alerts) >= max_alerts:
            break
        weeks = weeks_since(record.last_decision_at, now)
        if weeks < BLIND_SPOT_MIN_WEEKS:
            continue
        if record.decision_count < BLIND_SPOT_MIN_DECISIONS:
            continue
        label = display_label(record.feature_key)
        alerts.append(
            BlindSpotAlert(
                feature_key=record.feature_key,
                feature_type=record.feature_type,
                feature_value=record.feature_value,
                weight=record.weight,
                weeks_ignored=weeks,
                last_decision_at=record.last_decision_at,
                decision_count=record.decision_count,
                message=f"You've been ignoring {label} for {weeks} weeks",
            )
        )
    return alerts
