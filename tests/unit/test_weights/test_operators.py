"""Unit tests for mute, reset and adjust operators."""

import pytest

from signal_feedback.errors import InvalidFeatureKeyError, InvalidSignalTypeError
from signal_feedback.signals.models import SignalKey
from signal_feedback.weights.metrics import WeightMetrics
from signal_feedback.weights.operators import adjust_signal, mute_signal, reset_signal
from signal_feedback.weights.store import InMemoryWeightStore


@pytest.fixture(autouse=True)
def reset_metrics() -> None:
    """Start every test with fresh metrics."""
    WeightMetrics.reset()


@pytest.fixture
def store() -> InMemoryWeightStore:
    """Empty in-memory store."""
    return InMemoryWeightStore()


def _weights(store: InMemoryWeightStore, user_id: str = "u1") -> dict[str, float]:
    return {r.feature_key: r.weight for r in store.get_weights(user_id)}


class TestMuteSignal:
    """Tests for mute_signal."""

    def test_mutes_normalized_key(self, store: InMemoryWeightStore) -> None:
        """Test the raw value is normalized before muting."""
        signal = mute_signal(store, "u1", "Concept", "  Undress ")

        assert signal == SignalKey(feature_type="concept", value="undress")
        [record] = store.get_weights("u1")
        assert record.is_muted
        assert WeightMetrics.get_instance().mutes_total == 1

    def test_unmute(self, store: InMemoryWeightStore) -> None:
        """Test muted=False unmutes."""
        mute_signal(store, "u1", "entity", "grok")
        mute_signal(store, "u1", "entity", "grok", muted=False)

        [record] = store.get_weights("u1")
        assert not record.is_muted

    def test_context_signal(self, store: InMemoryWeightStore) -> None:
        """Test context signals are addressed by subject|concept."""
        signal = mute_signal(store, "u1", "context", "entity:grok|concept:undress")
        assert signal.key == "context:entity:grok|concept:undress"

    def test_unknown_type(self, store: InMemoryWeightStore) -> None:
        """Test unknown types are rejected and nothing is written."""
        with pytest.raises(InvalidSignalTypeError):
            mute_signal(store, "u1", "tag", "llm")
        assert store.get_weights("u1") == []

    def test_malformed_context(self, store: InMemoryWeightStore) -> None:
        """Test context values need both halves."""
        with pytest.raises(InvalidFeatureKeyError):
            mute_signal(store, "u1", "context", "entity:grok")


class TestResetSignal:
    """Tests for reset_signal."""

    def test_resets(self, store: InMemoryWeightStore) -> None:
        """Test weight returns to zero and mute is lifted."""
        adjust_signal(store, "u1", "concept", "rag", 2.0)
        mute_signal(store, "u1", "concept", "rag")

        reset_signal(store, "u1", "concept", "RAG")

        [record] = store.get_weights("u1")
        assert record.weight == 0.0
        assert not record.is_muted
        assert WeightMetrics.get_instance().resets_total == 1


class TestAdjustSignal:
    """Tests for adjust_signal."""

    def test_adds_delta(self, store: InMemoryWeightStore) -> None:
        """Test manual deltas accumulate like decisions."""
        adjust_signal(store, "u1", "tool", "Cursor", 1.0)
        adjust_signal(store, "u1", "tool", "cursor", -0.25)

        assert _weights(store) == {"tool:cursor": pytest.approx(0.75)}
        assert WeightMetrics.get_instance().adjustments_total == 2

    def test_unknown_type(self, store: InMemoryWeightStore) -> None:
        """Test unknown types are rejected."""
        with pytest.raises(InvalidSignalTypeError):
            adjust_signal(store, "u1", "source", "hn", 1.0)
