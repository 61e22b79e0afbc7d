"""Metrics collection for preference scoring."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class ScoringMetrics:
    """Metrics for scoring batches.

    Attributes:
        batches_total: Batches scored.
        items_scored_total: Items scored across batches.
        personalized_items_total: Items whose score or reasons were affected.
        scoring_duration_ms: Duration of the last batch.
    """

    batches_total: int = 0
    items_scored_total: int = 0
    personalized_items_total: int = 0
    scoring_duration_ms: float = 0.0

    _instance: ClassVar["ScoringMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "ScoringMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_batch(self, items: int, personalized: int, duration_ms: float) -> None:
        """Record a scored batch.

        Args:
            items: Number of items scored.
            personalized: Number of personalized items.
            duration_ms: Time spent scoring.
        """
        self.batches_total += 1
        self.items_scored_total += items
        self.personalized_items_total += personalized
        self.scoring_duration_ms = duration_ms

    def to_dict(self) -> dict[str, object]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "batches_total": self.batches_total,
            "items_scored_total": self.items_scored_total,
            "personalized_items_total": self.personalized_items_total,
            "scoring_duration_ms": self.scoring_duration_ms,
        }
