"""Data models for per-user signal weights."""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated

from pydantic import Field

from signal_feedback.data_model import StrictBaseModel
from signal_feedback.signals.models import SignalKey


class DecisionAction(str, Enum):
    """Decisions a user can make on an item.

    - ignore: not interested
    - monitor: keep an eye on it
    - experiment: worth trying
    - integrate: adopt it
    """

    IGNORE = "ignore"
    MONITOR = "monitor"
    EXPERIMENT = "experiment"
    INTEGRATE = "integrate"


class WeightState(str, Enum):
    """Weight state.

    - active: weight contributes to scoring
    - muted: fixed penalty regardless of weight
    """

    ACTIVE = "active"
    MUTED = "muted"


class WeightRecord(StrictBaseModel):
    """Stored preference weight for one user and one signal key."""

    user_id: Annotated[str, Field(min_length=1, description="Owning user")]
    feature_key: Annotated[str, Field(min_length=1, description="type:value key")]
    feature_type: Annotated[str, Field(min_length=1, description="Signal type")]
    feature_value: str = Field(description="Normalized value")
    weight: float = Field(default=0.0, description="Accumulated weight")
    state: WeightState = Field(default=WeightState.ACTIVE)
    updated_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the record was last mutated",
    )
    last_decision_at: datetime | None = Field(
        default=None, description="When a delta was last added"
    )
    decision_count: int = Field(default=0, ge=0, description="Deltas added")

    @property
    def is_muted(self) -> bool:
        """Whether the signal is muted."""
        return self.state is WeightState.MUTED


@dataclass(frozen=True)
class WeightUpdate:
    """A delta for one signal key, computed or written.

    Attributes:
        signal: Target signal key.
        delta: Amount added to the stored weight.
    """

    signal: SignalKey
    delta: float

    @property
    def key(self) -> str:
        """Canonical key of the target signal."""
        return self.signal.key

    def to_dict(self) -> dict[str, str | float]:
        """Convert to dictionary for serialization.

        Returns:
            Dictionary with key, type, value and delta.
        """
        return {
            "feature_key": self.signal.key,
            "feature_type": self.signal.feature_type,
            "feature_value": self.signal.value,
            "delta": self.delta,
        }
