"""Integration tests for the personalization service."""

import random
from collections.abc import Callable, Generator
from pathlib import Path

import pytest

from signal_feedback.errors import InvalidDecisionActionError, InvalidSignalTypeError
from signal_feedback.scoring.models import ScorableItem
from signal_feedback.service import PersonalizationService
from signal_feedback.settings import AppSettings
from signal_feedback.signals.bundle import SignalBundle
from signal_feedback.signals.models import ContentItem, ExtractedSignals, SignalKey
from signal_feedback.weights.cache import WeightCache
from signal_feedback.weights.models import WeightRecord
from signal_feedback.weights.sqlite_store import SqliteWeightStore
from signal_feedback.weights.store import InMemoryWeightStore
from tests.helpers.time import ManualClock


TOXIC_SIGNALS = ExtractedSignals(
    categories=("category:security",),
    entities=("entity:grok",),
    concepts=("concept:undress",),
    contexts=("context:entity:grok|concept:undress",),
)


class MutatingStore(InMemoryWeightStore):
    """Store that runs a callback once, right after taking a read snapshot."""

    def __init__(self, clock: ManualClock) -> None:
        super().__init__(clock=clock)
        self.after_read: Callable[[], object] | None = None

    def get_weights(self, user_id: str) -> list[WeightRecord]:
        records = super().get_weights(user_id)
        callback, self.after_read = self.after_read, None
        if callback is not None:
            callback()
        return records


def _scorable(item_id: str, signals: ExtractedSignals) -> ScorableItem:
    return ScorableItem(
        item_id=item_id,
        base_score=50,
        signals=SignalBundle.from_signals(signals),
    )


@pytest.fixture
def clock() -> ManualClock:
    """Shared manual clock."""
    return ManualClock()


@pytest.fixture
def store(clock: ManualClock) -> InMemoryWeightStore:
    """Empty in-memory store."""
    return InMemoryWeightStore(clock=clock)


@pytest.fixture
def service(store: InMemoryWeightStore, clock: ManualClock) -> PersonalizationService:
    """Service with a 60 second cache on the manual clock."""
    return PersonalizationService(
        store,
        cache=WeightCache(ttl_seconds=60, clock=clock.monotonic),
        clock=clock,
    )


class TestFeedbackLoop:
    """Decision to score round trip."""

    def test_ignore_then_score(self, service: PersonalizationService) -> None:
        """Test an ignored toxic item pushes similar items down."""
        updates = service.update_weights_from_decision("u1", TOXIC_SIGNALS, "ignore")
        assert {u.key: u.delta for u in updates} == {
            "context:entity:grok|concept:undress": pytest.approx(-1.4),
            "concept:undress": pytest.approx(-0.8),
            "entity:grok": pytest.approx(-0.1),
            "category:security": pytest.approx(-0.04),
        }

        [scored] = service.score_items_for_user("u1", [_scorable("a", TOXIC_SIGNALS)])

        expected = (0.70 * -1.4 + 0.40 * -0.8 + 0.15 * -0.1 + 0.05 * -0.04) * 0.5
        assert scored.preference_delta == pytest.approx(expected)
        assert scored.reasons.suppressed[0].label == "Grok · Undress"

    def test_other_users_unaffected(self, service: PersonalizationService) -> None:
        """Test one user's decisions do not move another user's scores."""
        service.update_weights_from_decision("u1", TOXIC_SIGNALS, "ignore")

        [scored] = service.score_items_for_user("u2", [_scorable("a", TOXIC_SIGNALS)])

        assert scored.adjusted_score == 50
        assert not scored.is_personalized

    def test_extracts_from_content(self, service: PersonalizationService) -> None:
        """Test decisions on raw content extract signals first."""
        service.update_weights_from_decision(
            "u1", ContentItem(title="Grok undress app"), "ignore"
        )

        keys = {r.feature_key for r in service.get_weights("u1")}
        assert "concept:undress" in keys
        assert "entity:grok" in keys

    def test_invalid_action(self, service: PersonalizationService) -> None:
        """Test an unknown action is rejected without writes."""
        with pytest.raises(InvalidDecisionActionError):
            service.update_weights_from_decision("u1", TOXIC_SIGNALS, "love")

        assert service.get_weights("u1") == []

    def test_quick_decision_learns_less(self, service: PersonalizationService) -> None:
        """Test a hasty decision is inferred as low confidence."""
        updates = service.update_weights_from_decision(
            "u1", TOXIC_SIGNALS, "ignore", time_taken_seconds=1.0
        )
        deltas = {u.key: u.delta for u in updates}
        assert deltas["concept:undress"] == pytest.approx(-0.4)

    def test_explicit_confidence(self, service: PersonalizationService) -> None:
        """Test an explicit confidence wins over inference."""
        updates = service.update_weights_from_decision(
            "u1", TOXIC_SIGNALS, "ignore", confidence="high", time_taken_seconds=1.0
        )
        deltas = {u.key: u.delta for u in updates}
        assert deltas["concept:undress"] == pytest.approx(-1.2)

    def test_ignore_reason(self, service: PersonalizationService) -> None:
        """Test ignore reasons write their own deltas."""
        updates = service.record_ignore_reason("u1", TOXIC_SIGNALS, "irrelevant")

        assert updates
        assert service.get_weights("u1")


class TestCacheInvalidation:
    """Tests that every mutation refreshes the cached weight map."""

    def test_cached_within_ttl(
        self,
        service: PersonalizationService,
        store: InMemoryWeightStore,
    ) -> None:
        """Test reads inside the TTL are served from cache."""
        assert service.get_weights("u1") == []
        store.upsert_add("u1", SignalKey("entity", "grok"), 1.0)

        assert service.get_weights("u1") == []

    def test_expires(
        self,
        service: PersonalizationService,
        store: InMemoryWeightStore,
        clock: ManualClock,
    ) -> None:
        """Test entries are reloaded once the TTL passes."""
        service.get_weights("u1")
        store.upsert_add("u1", SignalKey("entity", "grok"), 1.0)
        clock.advance(seconds=60)

        assert len(service.get_weights("u1")) == 1

    @pytest.mark.parametrize(
        "mutate",
        [
            lambda s: s.update_weights_from_decision("u1", TOXIC_SIGNALS, "monitor"),
            lambda s: s.record_ignore_reason("u1", TOXIC_SIGNALS, "too_shallow"),
            lambda s: s.mute_signal("u1", "concept", "undress"),
            lambda s: s.reset_signal("u1", "concept", "undress"),
            lambda s: s.adjust_signal("u1", "concept", "undress", 0.5),
        ],
        ids=["decision", "ignore_reason", "mute", "reset", "adjust"],
    )
    def test_mutation_invalidates(
        self,
        service: PersonalizationService,
        store: InMemoryWeightStore,
        mutate: Callable[[PersonalizationService], object],
    ) -> None:
        """Test each mutation makes the next read hit the store."""
        service.get_weights("u1")
        store.upsert_add("u1", SignalKey("tool", "cursor"), 1.0)

        mutate(service)

        keys = {r.feature_key for r in service.get_weights("u1")}
        assert "tool:cursor" in keys

    def test_failed_mutation_invalidates(
        self,
        service: PersonalizationService,
        store: InMemoryWeightStore,
    ) -> None:
        """Test the cache is dropped even when a mutation fails."""
        service.get_weights("u1")
        store.upsert_add("u1", SignalKey("tool", "cursor"), 1.0)

        with pytest.raises(InvalidSignalTypeError):
            service.mute_signal("u1", "colour", "red")

        assert len(service.get_weights("u1")) == 1

    def test_mutation_during_load_not_cached(self, clock: ManualClock) -> None:
        """Test a snapshot read before a concurrent mute is not cached."""
        store = MutatingStore(clock)
        service = PersonalizationService(
            store,
            cache=WeightCache(ttl_seconds=60, clock=clock.monotonic),
            clock=clock,
        )
        store.after_read = lambda: service.mute_signal("u1", "concept", "undress")

        assert service.get_weights("u1") == []

        [record] = service.get_weights("u1")
        assert record.feature_key == "concept:undress"
        assert record.is_muted

    def test_mute_reflected_in_scores(self, service: PersonalizationService) -> None:
        """Test a mute takes effect on the very next scoring call."""
        item = _scorable("a", TOXIC_SIGNALS)
        [before] = service.score_items_for_user("u1", [item])

        service.mute_signal("u1", "concept", "undress")
        [after] = service.score_items_for_user("u1", [item])

        assert before.adjusted_score == 50
        assert after.breakdown.mute_penalty == -10.0
        assert after.adjusted_score == 40


class TestDecay:
    """Tests for read-time decay."""

    def test_decay_applied_when_enabled(
        self, store: InMemoryWeightStore, clock: ManualClock
    ) -> None:
        """Test idle weights are decayed before scoring."""
        service = PersonalizationService(store, apply_weight_decay=True, clock=clock)
        service.adjust_signal("u1", "concept", "rag", 2.0)
        clock.advance(weeks=4)
        signals = ExtractedSignals(concepts=("concept:rag",))

        [scored] = service.score_items_for_user("u1", [_scorable("a", signals)])

        assert scored.reasons.boosted[0].weight == pytest.approx(1.62)
        assert scored.preference_delta == pytest.approx(1.62 * 0.40 * 0.5)
        assert service.get_weights("u1")[0].weight == 2.0

    def test_decay_off_by_default(
        self, store: InMemoryWeightStore, clock: ManualClock
    ) -> None:
        """Test stored weights are used as-is by default."""
        service = PersonalizationService(store, clock=clock)
        service.adjust_signal("u1", "concept", "rag", 2.0)
        clock.advance(weeks=4)
        signals = ExtractedSignals(concepts=("concept:rag",))

        [scored] = service.score_items_for_user("u1", [_scorable("a", signals)])

        assert scored.preference_delta == pytest.approx(2.0 * 0.40 * 0.5)


class TestCounterBias:
    """Tests for blind spots and exploration picks through the service."""

    def test_blind_spots_after_weeks_of_ignoring(
        self, service: PersonalizationService, clock: ManualClock
    ) -> None:
        """Test repeated ignores surface once they go quiet for six weeks."""
        for _ in range(3):
            service.update_weights_from_decision("u1", TOXIC_SIGNALS, "ignore")
        assert service.detect_blind_spots("u1") == []

        clock.advance(weeks=7)
        alerts = service.detect_blind_spots("u1")

        assert [a.feature_key for a in alerts] == [
            "context:entity:grok|concept:undress",
            "concept:undress",
        ]
        assert alerts[0].weeks_ignored == 7

    def test_rank_with_seeded_exploration(
        self, store: InMemoryWeightStore, clock: ManualClock
    ) -> None:
        """Test a seeded service lifts the same picks every time."""
        items = [
            ScorableItem(
                item_id=f"i{i:02d}",
                base_score=90 - i,
                signals=SignalBundle.from_signals(ExtractedSignals()),
            )
            for i in range(20)
        ]

        def ranked_ids(seed: int) -> list[tuple[str, bool]]:
            service = PersonalizationService(
                store, clock=clock, rng=random.Random(seed)
            )
            return [
                (s.item_id, s.exploration)
                for s in service.rank_items_for_user("u1", items)
            ]

        first = ranked_ids(11)

        assert first == ranked_ids(11)
        assert [i for i, (_, picked) in enumerate(first) if picked] == [5, 8, 11]


class TestFromSettings:
    """Tests for building the service from settings."""

    @pytest.fixture
    def sqlite_store(self, tmp_path: Path) -> Generator[SqliteWeightStore]:
        """Connected SQLite store."""
        with SqliteWeightStore(tmp_path / "weights.sqlite") as store:
            yield store

    def test_settings_applied(
        self,
        sqlite_store: SqliteWeightStore,
        tmp_path: Path,
        monkeypatch: pytest.MonkeyPatch,
    ) -> None:
        """Test dictionary path and decay come from the environment."""
        dictionary_file = tmp_path / "signals.yaml"
        dictionary_file.write_text(
            "entities:\n  acme: [acme]\nconcepts:\n  spam: [spam]\n",
            encoding="utf-8",
        )
        monkeypatch.setenv("SIGNAL_DICTIONARY_PATH", str(dictionary_file))
        monkeypatch.setenv("APPLY_WEIGHT_DECAY", "true")

        service = PersonalizationService.from_settings(sqlite_store, AppSettings())
        signals = service.extract_signals(ContentItem(title="Acme spam digest"))

        assert signals.entities == ("entity:acme",)
        assert signals.concepts == ("concept:spam",)

    def test_round_trip_through_sqlite(
        self, sqlite_store: SqliteWeightStore, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test the loop works end to end against SQLite."""
        monkeypatch.delenv("SIGNAL_DICTIONARY_PATH", raising=False)
        service = PersonalizationService.from_settings(sqlite_store, AppSettings())

        service.update_weights_from_decision("u1", TOXIC_SIGNALS, "ignore")
        [scored] = service.score_items_for_user("u1", [_scorable("a", TOXIC_SIGNALS)])

        assert scored.adjusted_score < 50
        assert len(sqlite_store.get_weights("u1")) == 4
