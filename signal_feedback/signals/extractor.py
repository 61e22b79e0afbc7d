"""Signal extraction from item text.

Matches a lowercase haystack built from title, summary and a bounded content
excerpt against the dictionary tables. Each dictionary entry is matched at
most once (first matching synonym wins). Categories are not keyword matched;
they come verbatim from the analysis label string.
"""

from dataclasses import dataclass

from signal_feedback.signals.codec import make_context_key, normalize_feature_key
from signal_feedback.signals.constants import (
    CONTENT_EXCERPT_CHARS,
    MAX_CONTEXTS_PER_ITEM,
)
from signal_feedback.signals.dictionary import SignalDictionary, default_dictionary
from signal_feedback.signals.models import ContentItem, ExtractedSignals, SignalType


@dataclass(frozen=True)
class CompiledEntry:
    """A dictionary entry with its key and lowercased synonyms.

    Attributes:
        key: Normalized feature key for the entry.
        synonyms: Trigger synonyms, lowercased.
    """

    key: str
    synonyms: tuple[str, ...]

    def matches(self, haystack: str) -> bool:
        """Check whether any synonym occurs in the haystack."""
        return any(synonym in haystack for synonym in self.synonyms)


def _compile_table(
    dictionary: SignalDictionary, signal_type: SignalType
) -> list[CompiledEntry]:
    return [
        CompiledEntry(
            key=normalize_feature_key(signal_type.value, name).key,
            synonyms=tuple(s.lower() for s in synonyms),
        )
        for name, synonyms in dictionary.table_for(signal_type).items()
    ]


def build_haystack(item: ContentItem) -> str:
    """Build the lowercase text that dictionary synonyms are matched against.

    Args:
        item: Content item.

    Returns:
        Title, summary and content excerpt joined by spaces, lowercased.
    """
    excerpt = (item.content or "")[:CONTENT_EXCERPT_CHARS]
    return " ".join([item.title or "", item.summary or "", excerpt]).lower()


def parse_categories(labels: str | None) -> tuple[str, ...]:
    """Parse a comma-separated category label string into category keys.

    Args:
        labels: Labels such as ``"Security, AI Tools"``.

    Returns:
        Distinct ``category:*`` keys in label order.
    """
    if not labels:
        return ()
    keys: list[str] = []
    for label in labels.split(","):
        label = label.strip()
        if not label:
            continue
        key = normalize_feature_key(SignalType.CATEGORY.value, label).key
        if key not in keys:
            keys.append(key)
    return tuple(keys)


def derive_contexts(
    subjects: tuple[str, ...] | list[str],
    concepts: tuple[str, ...] | list[str],
) -> tuple[str, ...]:
    """Pair every subject with every concept and keep the first few.

    Iteration is subject-major in extraction order, so the kept contexts
    follow dictionary order rather than toxicity.

    Args:
        subjects: Entity keys followed by tool keys.
        concepts: Concept keys.

    Returns:
        At most MAX_CONTEXTS_PER_ITEM context keys.
    """
    contexts = [
        make_context_key(subject, concept)
        for subject in subjects
        for concept in concepts
    ]
    return tuple(contexts[:MAX_CONTEXTS_PER_ITEM])


class SignalExtractor:
    """Extracts typed signals from content items.

    Compiles the dictionary tables once; :meth:`extract` is pure and safe
    to call concurrently.
    """

    def __init__(self, dictionary: SignalDictionary | None = None) -> None:
        """Initialize the extractor.

        Args:
            dictionary: Keyword tables (default: built-in dictionary).
        """
        self._dictionary = dictionary or default_dictionary()
        self._concepts = _compile_table(self._dictionary, SignalType.CONCEPT)
        self._entities = _compile_table(self._dictionary, SignalType.ENTITY)
        self._tools = _compile_table(self._dictionary, SignalType.TOOL)

    @property
    def dictionary(self) -> SignalDictionary:
        """Get the dictionary in use."""
        return self._dictionary

    @staticmethod
    def _match(entries: list[CompiledEntry], haystack: str) -> tuple[str, ...]:
        keys: list[str] = []
        for entry in entries:
            if entry.key not in keys and entry.matches(haystack):
                keys.append(entry.key)
        return tuple(keys)

    def extract(self, item: ContentItem) -> ExtractedSignals:
        """Extract signals from a content item.

        Never raises; missing optional fields are treated as empty.

        Args:
            item: Content item.

        Returns:
            Extracted signals.
        """
        haystack = build_haystack(item)

        concepts = self._match(self._concepts, haystack)
        entities = self._match(self._entities, haystack)
        tools = self._match(self._tools, haystack)

        return ExtractedSignals(
            categories=parse_categories(item.categories),
            entities=entities,
            tools=tools,
            concepts=concepts,
            contexts=derive_contexts(entities + tools, concepts),
        )


def extract_signals(
    item: ContentItem,
    dictionary: SignalDictionary | None = None,
) -> ExtractedSignals:
    """Pure function API for signal extraction.

    Args:
        item: Content item.
        dictionary: Keyword tables (default: built-in dictionary).

    Returns:
        Extracted signals.
    """
    return SignalExtractor(dictionary).extract(item)
