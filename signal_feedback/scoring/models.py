"""Data models for preference scoring."""

from dataclasses import dataclass, field
from typing import Annotated, Any

from pydantic import Field

from signal_feedback.data_model import StrictBaseModel
from signal_feedback.scoring.constants import (
    MAX_SCORE,
    MIN_SCORE,
    SERENDIPITY_MIN_BASE_SCORE,
    SERENDIPITY_PERCENTAGE,
)
from signal_feedback.signals.bundle import SignalBundle
from signal_feedback.signals.models import ContentItem, ExtractedSignals


class ScorableItem(StrictBaseModel):
    """An item awaiting personalization.

    Attributes:
        item_id: Caller-side identifier, echoed back on the scored item.
        base_score: Externally computed relevance score.
        content: Item text, used when signals must be re-extracted.
        signals: Signal bundle cached with the item, if any. Raw payloads
            are accepted and validated lazily so a malformed bundle falls
            back to extraction instead of rejecting the item.
    """

    item_id: str
    base_score: Annotated[float, Field(ge=MIN_SCORE, le=MAX_SCORE)]
    content: ContentItem = Field(default_factory=ContentItem)
    signals: SignalBundle | dict[str, Any] | None = None


@dataclass(frozen=True)
class ScoreReason:
    """One matched signal surfaced as an explanation.

    Attributes:
        key: Feature key.
        weight: Stored weight of the key.
        label: Display label, ``Subject · Concept`` for contexts.
    """

    key: str
    weight: float
    label: str

    def to_dict(self) -> dict[str, str | float]:
        """Convert to dictionary for serialization."""
        return {"key": self.key, "weight": self.weight, "label": self.label}


@dataclass(frozen=True)
class ScoreReasons:
    """Top boosting and suppressing signals of an item."""

    boosted: tuple[ScoreReason, ...] = ()
    suppressed: tuple[ScoreReason, ...] = ()

    @property
    def is_empty(self) -> bool:
        """Whether there is nothing to explain."""
        return not self.boosted and not self.suppressed

    def to_dict(self) -> dict[str, list[dict[str, str | float]]]:
        """Convert to dictionary for serialization."""
        return {
            "boosted": [r.to_dict() for r in self.boosted],
            "suppressed": [r.to_dict() for r in self.suppressed],
        }


@dataclass(frozen=True)
class ScoreBreakdown:
    """Raw per-group weight sums behind a preference delta.

    Attributes:
        context_sum: Sum of matched context weights.
        concept_sum: Sum of matched concept weights.
        subject_sum: Sum of matched entity and tool weights.
        category_sum: Sum of matched category weights.
        mute_penalty: Capped penalty from matched muted signals.
        matched_count: Keys found in the weight map, muted included.
    """

    context_sum: float = 0.0
    concept_sum: float = 0.0
    subject_sum: float = 0.0
    category_sum: float = 0.0
    mute_penalty: float = 0.0
    matched_count: int = 0

    def to_dict(self) -> dict[str, float | int]:
        """Convert to dictionary for serialization.

        Returns:
            Dictionary of component name to value.
        """
        return {
            "context_sum": self.context_sum,
            "concept_sum": self.concept_sum,
            "subject_sum": self.subject_sum,
            "category_sum": self.category_sum,
            "mute_penalty": self.mute_penalty,
            "matched_count": self.matched_count,
        }


@dataclass
class ScoredItem:
    """An item with its personalized score.

    Attributes:
        item_id: Identifier of the item.
        base_score: Score before personalization.
        signals: Signals the score was computed from.
        preference_delta: Scaled preference contribution plus mute penalty.
        adjusted_score: ``base_score + preference_delta`` clamped to [0, 100].
        reasons: Explanations for the delta.
        breakdown: Per-group sums.
        exploration: Whether the item was lifted into view by serendipity.
    """

    item_id: str
    base_score: float
    signals: ExtractedSignals
    preference_delta: float
    adjusted_score: float
    reasons: ScoreReasons = field(default_factory=ScoreReasons)
    breakdown: ScoreBreakdown = field(default_factory=ScoreBreakdown)
    exploration: bool = False

    @property
    def is_personalized(self) -> bool:
        """Whether learned preferences changed or explain this item."""
        return not self.reasons.is_empty or self.breakdown.mute_penalty != 0

    def to_dict(self) -> dict[str, object]:
        """Convert to dictionary for serialization."""
        return {
            "item_id": self.item_id,
            "base_score": self.base_score,
            "preference_delta": round(self.preference_delta, 4),
            "adjusted_score": round(self.adjusted_score, 4),
            "is_personalized": self.is_personalized,
            "exploration": self.exploration,
            "reasons": self.reasons.to_dict(),
            "breakdown": self.breakdown.to_dict(),
            "signals": self.signals.to_dict(),
        }


@dataclass(frozen=True)
class SerendipityConfig:
    """How often and from where exploration picks are lifted.

    Attributes:
        enabled: Whether to lift any items at all.
        percentage: Share of the list to lift, in percent.
        min_base_score: Minimum base score for a pick.
        exclude_muted: Skip items that matched a muted signal.
    """

    enabled: bool = True
    percentage: float = SERENDIPITY_PERCENTAGE
    min_base_score: float = SERENDIPITY_MIN_BASE_SCORE
    exclude_muted: bool = True
