"""Versioned schema for signal bundles cached alongside items.

Schema history:
    1: categories, entities, tools, concepts (no contexts)
    2: adds contexts

Bundles are upgraded in one place, at read time, by :func:`upgrade_bundle`.
Anything that cannot be upgraded falls back to re-extraction from text.
"""

from collections.abc import Mapping
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from signal_feedback.signals.extractor import SignalExtractor, derive_contexts
from signal_feedback.signals.models import ContentItem, ExtractedSignals


logger = structlog.get_logger()

CURRENT_BUNDLE_VERSION = 2


class SignalBundle(BaseModel):
    """Serialized signals for one item.

    Payloads written before versioning carry no ``schema_version`` and are
    read as version 1. Unknown fields from older writers are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    schema_version: int = Field(default=1, ge=1)
    categories: list[str] = Field(default_factory=list)
    entities: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    concepts: list[str] = Field(default_factory=list)
    contexts: list[str] = Field(default_factory=list)

    @classmethod
    def from_signals(cls, signals: ExtractedSignals) -> "SignalBundle":
        """Build a current-version bundle from extracted signals."""
        return cls(schema_version=CURRENT_BUNDLE_VERSION, **signals.to_dict())

    def to_signals(self) -> ExtractedSignals:
        """Convert to :class:`ExtractedSignals`."""
        return ExtractedSignals(
            categories=tuple(self.categories),
            entities=tuple(self.entities),
            tools=tuple(self.tools),
            concepts=tuple(self.concepts),
            contexts=tuple(self.contexts),
        )


class UnsupportedBundleVersionError(ValueError):
    """Raised when a bundle was written by a newer schema."""

    def __init__(self, version: int) -> None:
        """Initialize the error.

        Args:
            version: The unsupported schema version.
        """
        self.version = version
        super().__init__(
            f"Signal bundle version {version} is newer than {CURRENT_BUNDLE_VERSION}"
        )


def upgrade_bundle(bundle: SignalBundle) -> SignalBundle:
    """Upgrade a bundle to the current schema version.

    Args:
        bundle: Bundle of any supported version.

    Returns:
        Bundle at CURRENT_BUNDLE_VERSION.

    Raises:
        UnsupportedBundleVersionError: If the bundle is from a newer schema.
    """
    if bundle.schema_version > CURRENT_BUNDLE_VERSION:
        raise UnsupportedBundleVersionError(bundle.schema_version)

    if bundle.schema_version == 1:
        contexts = derive_contexts(bundle.entities + bundle.tools, bundle.concepts)
        bundle = bundle.model_copy(
            update={"schema_version": 2, "contexts": list(contexts)}
        )

    return bundle


def resolve_item_signals(
    item: ContentItem,
    bundle: SignalBundle | Mapping[str, Any] | None,
    extractor: SignalExtractor,
) -> ExtractedSignals:
    """Get signals for an item from its cached bundle or by re-extraction.

    Args:
        item: Content item text.
        bundle: Cached bundle, raw bundle payload, or None.
        extractor: Extractor used for the fallback.

    Returns:
        Signals at the current schema.
    """
    if bundle is None:
        return extractor.extract(item)

    try:
        parsed = (
            bundle
            if isinstance(bundle, SignalBundle)
            else SignalBundle.model_validate(bundle)
        )
        upgraded = upgrade_bundle(parsed)
    except (ValidationError, UnsupportedBundleVersionError) as e:
        logger.warning(
            "signal_bundle_unusable",
            component="signals",
            title=item.title[:80],
            error=str(e),
        )
        return extractor.extract(item)

    signals = upgraded.to_signals()
    if signals.is_empty:
        return extractor.extract(item)
    return signals
