"""Data models for extracted signals."""

from dataclasses import dataclass
from enum import Enum

from pydantic import Field

from signal_feedback.data_model import StrictBaseModel
from signal_feedback.errors import InvalidFeatureKeyError, InvalidSignalTypeError
from signal_feedback.signals.constants import KEY_SEPARATOR


class SignalType(str, Enum):
    """Closed set of signal types.

    - category: broad topic label supplied by content analysis
    - entity: AI company or product
    - tool: developer tool
    - concept: narrow pattern (privacy, deepfake, nsfw, ...)
    - context: a subject (entity or tool) paired with a concept
    """

    CATEGORY = "category"
    ENTITY = "entity"
    TOOL = "tool"
    CONCEPT = "concept"
    CONTEXT = "context"


@dataclass(frozen=True)
class SignalKey:
    """Normalized feature key value object.

    ``feature_type`` stays a plain string so the codec remains total over
    arbitrary input; :attr:`signal_type` narrows it to :class:`SignalType`.

    Attributes:
        feature_type: Lowercased signal type.
        value: Normalized value.
    """

    feature_type: str
    value: str

    @property
    def key(self) -> str:
        """Canonical ``type:value`` string."""
        return f"{self.feature_type}{KEY_SEPARATOR}{self.value}"

    @property
    def signal_type(self) -> SignalType:
        """Typed view of ``feature_type``.

        Raises:
            InvalidSignalTypeError: If the type is not a known signal type.
        """
        try:
            return SignalType(self.feature_type)
        except ValueError as e:
            raise InvalidSignalTypeError(self.feature_type) from e

    @classmethod
    def parse(cls, key: str) -> "SignalKey":
        """Parse a ``type:value`` string, splitting on the first separator.

        An empty type is kept as-is, so keys built from an empty type still
        round-trip.

        Raises:
            InvalidFeatureKeyError: If the key has no type separator.
        """
        feature_type, sep, value = key.partition(KEY_SEPARATOR)
        if not sep:
            raise InvalidFeatureKeyError(key)
        return cls(feature_type=feature_type, value=value)

    def __str__(self) -> str:
        return self.key


class ContentItem(StrictBaseModel):
    """Text of a content item as supplied by the content-analysis provider.

    Attributes:
        title: Item title.
        summary: Optional summary.
        categories: Optional comma-separated category labels.
        content: Optional body text; only a bounded excerpt is matched.
    """

    title: str = ""
    summary: str | None = None
    categories: str | None = None
    content: str | None = Field(default=None, repr=False)


@dataclass(frozen=True)
class ExtractedSignals:
    """Signals extracted from one item, grouped by type.

    Attributes:
        categories: ``category:*`` keys.
        entities: ``entity:*`` keys.
        tools: ``tool:*`` keys.
        concepts: ``concept:*`` keys.
        contexts: ``context:{subject}|{concept}`` keys (at most 2).
    """

    categories: tuple[str, ...] = ()
    entities: tuple[str, ...] = ()
    tools: tuple[str, ...] = ()
    concepts: tuple[str, ...] = ()
    contexts: tuple[str, ...] = ()

    @property
    def subjects(self) -> tuple[str, ...]:
        """Entities followed by tools."""
        return self.entities + self.tools

    @property
    def all_keys(self) -> list[str]:
        """Every key in a flat list, for iteration."""
        return [
            *self.categories,
            *self.entities,
            *self.tools,
            *self.concepts,
            *self.contexts,
        ]

    def typed_keys(self) -> list[tuple[SignalType, str]]:
        """Every key paired with the type of the group it came from."""
        return [
            *((SignalType.CATEGORY, k) for k in self.categories),
            *((SignalType.ENTITY, k) for k in self.entities),
            *((SignalType.TOOL, k) for k in self.tools),
            *((SignalType.CONCEPT, k) for k in self.concepts),
            *((SignalType.CONTEXT, k) for k in self.contexts),
        ]

    @property
    def is_empty(self) -> bool:
        """Whether no signal was extracted."""
        return not self.all_keys

    def to_dict(self) -> dict[str, list[str]]:
        """Convert to dictionary for serialization.

        Returns:
            Dictionary of signal group name to keys.
        """
        return {
            "categories": list(self.categories),
            "entities": list(self.entities),
            "tools": list(self.tools),
            "concepts": list(self.concepts),
            "contexts": list(self.contexts),
        }
