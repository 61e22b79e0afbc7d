"""Unit tests for the signal dictionary."""

import tempfile
from collections.abc import Generator
from pathlib import Path

import pytest
from pydantic import ValidationError

from signal_feedback.errors import DictionaryValidationError
from signal_feedback.signals.dictionary import (
    DEFAULT_CONCEPTS,
    DEFAULT_TOXIC_CONCEPTS,
    SignalDictionary,
    default_dictionary,
    load_dictionary,
)
from signal_feedback.signals.models import SignalType


VALID_YAML = """
version: "1.0"
concepts:
  undress: [undress, naked]
  pricing: [pricing, subscription]
entities:
  grok: [grok]
tools:
  cursor: [cursor]
toxic_concepts:
  - concept:undress
"""


@pytest.fixture
def temp_dir() -> Generator[Path]:
    """Create a temporary directory for dictionary files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


class TestDefaultDictionary:
    """Tests for the built-in dictionary."""

    def test_tables_populated(self) -> None:
        """Test the built-in tables are not empty."""
        dictionary = default_dictionary()
        assert dictionary.concepts
        assert dictionary.entities
        assert dictionary.tools

    def test_is_cached(self) -> None:
        """Test the same instance is returned."""
        assert default_dictionary() is default_dictionary()

    @pytest.mark.parametrize(
        "key",
        [
            "concept:nsfw",
            "concept:undress",
            "concept:porn",
            "concept:celebrity_deepfake",
            "concept:gossip",
        ],
    )
    def test_toxic_concepts(self, key: str) -> None:
        """Test the toxic set."""
        assert default_dictionary().is_toxic(key)

    def test_non_toxic_concept(self) -> None:
        """Test an ordinary concept is not toxic."""
        assert not default_dictionary().is_toxic("concept:privacy")
        assert not default_dictionary().is_toxic("entity:grok")

    def test_toxic_concepts_with_entries_exist(self) -> None:
        """Test toxic concepts other than porn have dictionary entries."""
        for key in DEFAULT_TOXIC_CONCEPTS - {"concept:porn"}:
            assert key.removeprefix("concept:") in DEFAULT_CONCEPTS

    def test_has_toxic(self) -> None:
        """Test any-of toxicity check."""
        dictionary = default_dictionary()
        assert dictionary.has_toxic(["concept:privacy", "concept:undress"])
        assert not dictionary.has_toxic(["concept:privacy"])
        assert not dictionary.has_toxic([])

    def test_table_for(self) -> None:
        """Test table lookup per keyword-matched type."""
        dictionary = default_dictionary()
        assert dictionary.table_for(SignalType.ENTITY) is dictionary.entities
        with pytest.raises(ValueError, match="not keyword matched"):
            dictionary.table_for(SignalType.CATEGORY)


class TestSignalDictionaryValidation:
    """Tests for SignalDictionary model validation."""

    def test_rejects_non_concept_toxic_key(self) -> None:
        """Test toxic entries must be concept keys."""
        with pytest.raises(ValidationError, match="concept keys"):
            SignalDictionary(toxic_concepts=frozenset({"entity:grok"}))

    def test_rejects_empty_synonym_list(self) -> None:
        """Test every entry needs at least one synonym."""
        with pytest.raises(ValidationError):
            SignalDictionary(concepts={"undress": []})

    def test_rejects_blank_synonym(self) -> None:
        """Test blank synonyms are rejected."""
        with pytest.raises(ValidationError, match="non-empty"):
            SignalDictionary(entities={"grok": ["grok", "  "]})

    def test_rejects_unknown_field(self) -> None:
        """Test extra fields are forbidden."""
        with pytest.raises(ValidationError):
            SignalDictionary.model_validate({"topics": {}})

    def test_is_frozen(self) -> None:
        """Test the dictionary is read-only."""
        dictionary = SignalDictionary()
        with pytest.raises(ValidationError):
            dictionary.version = "2.0"  # type: ignore[misc]


class TestLoadDictionary:
    """Tests for load_dictionary."""

    def test_loads_valid_file(self, temp_dir: Path) -> None:
        """Test a valid YAML dictionary loads."""
        path = temp_dir / "signals.yaml"
        path.write_text(VALID_YAML)

        dictionary = load_dictionary(path)

        assert list(dictionary.concepts) == ["undress", "pricing"]
        assert dictionary.entities == {"grok": ["grok"]}
        assert dictionary.is_toxic("concept:undress")

    def test_empty_file_gives_empty_dictionary(self, temp_dir: Path) -> None:
        """Test an empty file yields empty tables."""
        path = temp_dir / "empty.yaml"
        path.write_text("")

        dictionary = load_dictionary(path)

        assert dictionary.concepts == {}

    def test_invalid_yaml_raises(self, temp_dir: Path) -> None:
        """Test malformed YAML is reported."""
        path = temp_dir / "bad.yaml"
        path.write_text("concepts: [unclosed")

        with pytest.raises(DictionaryValidationError) as exc_info:
            load_dictionary(path)

        assert exc_info.value.file_path == str(path)
        assert "YAML parse error" in exc_info.value.errors[0]["msg"]

    def test_lists_every_validation_error(self, temp_dir: Path) -> None:
        """Test all validation errors are collected."""
        path = temp_dir / "invalid.yaml"
        path.write_text(
            'version: "one"\n'
            "concepts:\n  undress: []\n"
            "toxic_concepts: [\"entity:grok\"]\n"
        )

        with pytest.raises(DictionaryValidationError) as exc_info:
            load_dictionary(path)

        locations = {error["loc"] for error in exc_info.value.errors}
        assert "version" in locations
        assert "toxic_concepts" in locations
        assert any(loc.startswith("concepts") for loc in locations)

    def test_missing_file_raises(self, temp_dir: Path) -> None:
        """Test a missing file surfaces as FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            load_dictionary(temp_dir / "missing.yaml")
