"""Unit tests for the weight cache."""

import pytest

from signal_feedback.weights.cache import WeightCache
from signal_feedback.weights.models import WeightRecord
from tests.helpers.time import FIXED_NOW, ManualClock


def _record(user_id: str = "u1", key: str = "entity:grok") -> WeightRecord:
    feature_type, _, value = key.partition(":")
    return WeightRecord(
        user_id=user_id,
        feature_key=key,
        feature_type=feature_type,
        feature_value=value,
        weight=1.0,
        updated_at=FIXED_NOW,
    )


@pytest.fixture
def clock() -> ManualClock:
    """Manual clock."""
    return ManualClock()


@pytest.fixture
def cache(clock: ManualClock) -> WeightCache:
    """Cache with a 60 second TTL."""
    return WeightCache(ttl_seconds=60, clock=clock.monotonic)


class TestWeightCache:
    """Tests for WeightCache."""

    def test_miss_when_empty(self, cache: WeightCache) -> None:
        """Test unknown users miss."""
        assert cache.get("u1") is None

    def test_hit_within_ttl(self, cache: WeightCache, clock: ManualClock) -> None:
        """Test entries are served until the TTL elapses."""
        cache.put("u1", [_record()])
        clock.advance(seconds=59)

        cached = cache.get("u1")

        assert cached is not None
        assert [r.feature_key for r in cached] == ["entity:grok"]

    def test_expires_after_ttl(self, cache: WeightCache, clock: ManualClock) -> None:
        """Test entries expire and are dropped."""
        cache.put("u1", [_record()])
        clock.advance(seconds=60)

        assert cache.get("u1") is None
        assert len(cache) == 0

    def test_invalidate(self, cache: WeightCache) -> None:
        """Test explicit invalidation drops only that user."""
        cache.put("u1", [_record("u1")])
        cache.put("u2", [_record("u2")])

        cache.invalidate("u1")

        assert cache.get("u1") is None
        assert cache.get("u2") is not None

    def test_invalidate_unknown_user(self, cache: WeightCache) -> None:
        """Test invalidating a missing entry is a no-op."""
        cache.invalidate("nobody")
        assert len(cache) == 0

    def test_clear(self, cache: WeightCache) -> None:
        """Test clear drops everything."""
        cache.put("u1", [_record("u1")])
        cache.put("u2", [_record("u2")])

        cache.clear()

        assert len(cache) == 0

    def test_returned_list_is_a_copy(self, cache: WeightCache) -> None:
        """Test callers cannot mutate the cached entry."""
        cache.put("u1", [_record()])

        first = cache.get("u1")
        assert first is not None
        first.clear()

        assert cache.get("u1") is not None
        assert len(cache.get("u1") or []) == 1

    def test_zero_ttl_disables(self, clock: ManualClock) -> None:
        """Test a zero TTL never stores anything."""
        cache = WeightCache(ttl_seconds=0, clock=clock.monotonic)
        cache.put("u1", [_record()])
        assert cache.get("u1") is None


class TestCacheGenerations:
    """Tests for discarding loads that raced with an invalidation."""

    def test_put_with_current_generation(self, cache: WeightCache) -> None:
        """Test a load with an unchanged generation is cached."""
        generation = cache.generation("u1")

        assert cache.put("u1", [_record()], generation=generation)
        assert cache.get("u1") is not None

    def test_put_after_invalidate_discarded(self, cache: WeightCache) -> None:
        """Test a snapshot taken before an invalidation is not cached."""
        generation = cache.generation("u1")
        cache.invalidate("u1")

        assert not cache.put("u1", [_record()], generation=generation)
        assert cache.get("u1") is None

    def test_generation_is_per_user(self, cache: WeightCache) -> None:
        """Test invalidating one user leaves other loads cacheable."""
        generation = cache.generation("u2")
        cache.invalidate("u1")

        assert cache.put("u2", [_record("u2")], generation=generation)
        assert cache.generation("u1") == 1
        assert cache.generation("u2") == 0

    def test_put_after_clear_discarded(self, cache: WeightCache) -> None:
        """Test a snapshot taken before a clear is not cached."""
        generation = cache.generation("u1")
        cache.clear()

        assert not cache.put("u1", [_record()], generation=generation)
        assert len(cache) == 0
