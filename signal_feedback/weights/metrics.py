"""Metrics collection for weight learning."""

from dataclasses import dataclass
from typing import ClassVar


@dataclass
class WeightMetrics:
    """Metrics for weight mutations.

    Attributes:
        decisions_total: Decisions processed.
        ignore_reasons_total: Ignore reasons processed.
        weight_writes_total: Per-key deltas persisted.
        weight_write_failures_total: Per-key deltas that failed to persist.
        mutes_total: Mute or unmute operations.
        resets_total: Reset operations.
        adjustments_total: Manual adjustments.
    """

    decisions_total: int = 0
    ignore_reasons_total: int = 0
    weight_writes_total: int = 0
    weight_write_failures_total: int = 0
    mutes_total: int = 0
    resets_total: int = 0
    adjustments_total: int = 0

    _instance: ClassVar["WeightMetrics | None"] = None

    @classmethod
    def get_instance(cls) -> "WeightMetrics":
        """Get singleton metrics instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def reset(cls) -> None:
        """Reset metrics (primarily for testing)."""
        cls._instance = None

    def record_decision(self) -> None:
        """Record a processed decision."""
        self.decisions_total += 1

    def record_ignore_reason(self) -> None:
        """Record a processed ignore reason."""
        self.ignore_reasons_total += 1

    def record_writes(self, count: int) -> None:
        """Record persisted deltas.

        Args:
            count: Number of keys written.
        """
        self.weight_writes_total += count

    def record_write_failure(self) -> None:
        """Record a delta that failed to persist."""
        self.weight_write_failures_total += 1

    def record_mute(self) -> None:
        """Record a mute or unmute."""
        self.mutes_total += 1

    def record_reset(self) -> None:
        """Record a reset."""
        self.resets_total += 1

    def record_adjustment(self) -> None:
        """Record a manual adjustment."""
        self.adjustments_total += 1

    def to_dict(self) -> dict[str, int]:
        """Convert metrics to dictionary.

        Returns:
            Dictionary of metric name to value.
        """
        return {
            "decisions_total": self.decisions_total,
            "ignore_reasons_total": self.ignore_reasons_total,
            "weight_writes_total": self.weight_writes_total,
            "weight_write_failures_total": self.weight_write_failures_total,
            "mutes_total": self.mutes_total,
            "resets_total": self.resets_total,
            "adjustments_total": self.adjustments_total,
        }
