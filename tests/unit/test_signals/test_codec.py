"""Unit tests for the feature key codec."""

import re

import pytest

from signal_feedback.errors import InvalidFeatureKeyError, InvalidSignalTypeError
from signal_feedback.signals.codec import (
    display_label,
    make_context_key,
    normalize_feature_key,
    normalize_value,
    parse_feature_key,
    parse_typed_key,
    split_context_value,
    typed_signal_key,
)
from signal_feedback.signals.models import SignalKey, SignalType


VALUE_CHARSET = re.compile(r"^[a-z0-9_\-]*$")


class TestNormalizeValue:
    """Tests for value normalization."""

    def test_lowercases_and_trims(self) -> None:
        """Test case and surrounding whitespace are removed."""
        assert normalize_value("  OpenAI  ") == "openai"

    def test_collapses_whitespace_runs(self) -> None:
        """Test internal whitespace runs become one underscore."""
        assert normalize_value("AI \t  Tools") == "ai_tools"

    def test_strips_disallowed_characters(self) -> None:
        """Test characters outside the charset are dropped."""
        assert normalize_value("Bolt.new (beta)!") == "boltnew_beta"

    def test_keeps_hyphen_and_underscore(self) -> None:
        """Test hyphens and underscores survive."""
        assert normalize_value("fine-tuning_v2") == "fine-tuning_v2"

    @pytest.mark.parametrize(
        "raw",
        ["Hello World", "ÜBER café", "a:b|c", "🤗 Hugging Face", "", "   "],
    )
    def test_output_charset(self, raw: str) -> None:
        """Test output only ever contains allowed characters."""
        assert VALUE_CHARSET.match(normalize_value(raw))


class TestNormalizeFeatureKey:
    """Tests for normalize_feature_key."""

    def test_builds_key(self) -> None:
        """Test a key is built from normalized type and value."""
        signal = normalize_feature_key(" Category ", "AI Tools")
        assert signal == SignalKey(feature_type="category", value="ai_tools")
        assert signal.key == "category:ai_tools"

    def test_is_total(self) -> None:
        """Test arbitrary input never raises."""
        signal = normalize_feature_key("weird", "!!!")
        assert signal.key == "weird:"

    def test_deterministic(self) -> None:
        """Test the same input always gives the same key."""
        assert normalize_feature_key("entity", "Grok") == normalize_feature_key(
            "entity", "Grok"
        )

    @pytest.mark.parametrize(
        ("feature_type", "raw"),
        [
            ("category", "Security & Privacy"),
            ("entity", "Hugging Face"),
            ("tool", "GitHub Copilot"),
            ("concept", "fine tuning"),
        ],
    )
    def test_round_trip(self, feature_type: str, raw: str) -> None:
        """Test produced keys parse back to the same key."""
        key = normalize_feature_key(feature_type, raw).key
        assert parse_feature_key(key).key == key
        assert SignalKey.parse(key).key == key
        assert parse_feature_key(key).feature_type == feature_type

    @pytest.mark.parametrize(
        ("feature_type", "expected_type"),
        [
            ("", ""),
            ("  ", ""),
            ("a:b", "ab"),
            ("Concept", "concept"),
            ("Entity Name", "entity_name"),
            ("type:with:colons", "typewithcolons"),
        ],
    )
    def test_round_trip_degenerate_types(
        self, feature_type: str, expected_type: str
    ) -> None:
        """Test keys built from odd types still parse back to the same type."""
        signal = normalize_feature_key(feature_type, "x")

        parsed = parse_feature_key(signal.key)

        assert signal.feature_type == expected_type
        assert parsed == signal
        assert parsed.value == "x"


class TestParseFeatureKey:
    """Tests for parse_feature_key."""

    def test_splits_on_first_separator(self) -> None:
        """Test context values keep their embedded separators."""
        signal = parse_feature_key("context:entity:grok|concept:undress")
        assert signal.feature_type == "context"
        assert signal.value == "entity:grok|concept:undress"

    def test_missing_separator_raises(self) -> None:
        """Test a key without a separator is rejected."""
        with pytest.raises(InvalidFeatureKeyError) as exc_info:
            parse_feature_key("grok")
        assert exc_info.value.key == "grok"

    def test_empty_type_allowed(self) -> None:
        """Test a key with an empty type still parses."""
        signal = parse_feature_key(":grok")
        assert signal == SignalKey(feature_type="", value="grok")

    def test_empty_value_allowed(self) -> None:
        """Test an empty value still parses."""
        assert parse_feature_key("category:").value == ""


class TestContextKeys:
    """Tests for context key helpers."""

    def test_make_context_key(self) -> None:
        """Test context key format."""
        key = make_context_key("entity:grok", "concept:undress")
        assert key == "context:entity:grok|concept:undress"

    def test_context_key_round_trip(self) -> None:
        """Test context keys round-trip through the parser."""
        key = make_context_key("tool:cursor", "concept:pricing")
        parsed = parse_feature_key(key)
        assert parsed.key == key
        assert parsed.signal_type is SignalType.CONTEXT

    def test_split_context_value(self) -> None:
        """Test splitting a context value into its halves."""
        assert split_context_value("entity:grok|concept:undress") == (
            "entity:grok",
            "concept:undress",
        )

    @pytest.mark.parametrize("value", ["entity:grok", "|concept:x", "entity:grok|"])
    def test_split_context_value_rejects_malformed(self, value: str) -> None:
        """Test malformed context values are rejected."""
        with pytest.raises(InvalidFeatureKeyError):
            split_context_value(value)


class TestDisplayLabel:
    """Tests for display_label."""

    def test_context_label(self) -> None:
        """Test context keys render as Subject · Concept."""
        assert display_label("context:entity:grok|concept:undress") == (
            "Grok · Undress"
        )

    def test_plain_label(self) -> None:
        """Test other keys render their humanized value."""
        assert display_label("concept:prompt_injection") == "Prompt Injection"
        assert display_label("tool:github_copilot") == "Github Copilot"

    def test_unparseable_returned_unchanged(self) -> None:
        """Test garbage input is echoed back."""
        assert display_label("nonsense") == "nonsense"
        assert display_label("context:broken") == "context:broken"


class TestTypedSignalKey:
    """Tests for typed_signal_key."""

    def test_normalizes_value(self) -> None:
        """Test the value is normalized like any other key."""
        assert typed_signal_key("Entity", " Grok ").key == "entity:grok"

    def test_unknown_type_raises(self) -> None:
        """Test unknown signal types are rejected."""
        with pytest.raises(InvalidSignalTypeError) as exc_info:
            typed_signal_key("tag", "llm")
        assert exc_info.value.signal_type == "tag"

    def test_context_halves_normalized(self) -> None:
        """Test each half of a context value is normalized."""
        signal = typed_signal_key("context", "Entity:Grok | Concept:Undress")
        assert signal.key == "context:entity:grok|concept:undress"

    def test_malformed_context_raises(self) -> None:
        """Test a context value without both halves is rejected."""
        with pytest.raises(InvalidFeatureKeyError):
            typed_signal_key("context", "entity:grok")

    @pytest.mark.parametrize(
        "value",
        ["concept:undress|concept:nsfw", "entity:grok|tool:cursor", ":grok|concept:x"],
    )
    def test_context_halves_typed(self, value: str) -> None:
        """Test a context needs an entity or tool subject and a concept."""
        with pytest.raises(InvalidFeatureKeyError):
            typed_signal_key("context", value)


class TestParseTypedKey:
    """Tests for parse_typed_key."""

    def test_matching_type(self) -> None:
        """Test a key of the expected type parses."""
        signal = parse_typed_key(SignalType.TOOL, "tool:cursor")
        assert signal == SignalKey(feature_type="tool", value="cursor")

    @pytest.mark.parametrize("key", ["concept:cursor", ":cursor", "cursor"])
    def test_other_type_rejected(self, key: str) -> None:
        """Test keys listed under the wrong type are rejected."""
        with pytest.raises(InvalidFeatureKeyError):
            parse_typed_key(SignalType.TOOL, key)
