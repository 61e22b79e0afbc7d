"""Signal extraction: feature keys, keyword dictionary and extractor.

Signals are typed, normalized feature keys (``type:value``) pulled from
item text by deterministic keyword matching against a static dictionary.
"""

from signal_feedback.signals.bundle import (
    CURRENT_BUNDLE_VERSION,
    SignalBundle,
    resolve_item_signals,
    upgrade_bundle,
)
from signal_feedback.signals.codec import (
    display_label,
    make_context_key,
    normalize_feature_key,
    parse_feature_key,
    parse_typed_key,
    split_context_value,
    typed_signal_key,
)
from signal_feedback.signals.dictionary import (
    SignalDictionary,
    default_dictionary,
    load_dictionary,
)
from signal_feedback.signals.extractor import SignalExtractor, extract_signals
from signal_feedback.signals.models import (
    ContentItem,
    ExtractedSignals,
    SignalKey,
    SignalType,
)


__all__ = [
    "CURRENT_BUNDLE_VERSION",
    "ContentItem",
    "ExtractedSignals",
    "SignalBundle",
    "SignalDictionary",
    "SignalExtractor",
    "SignalKey",
    "SignalType",
    "default_dictionary",
    "display_label",
    "extract_signals",
    "load_dictionary",
    "make_context_key",
    "normalize_feature_key",
    "parse_feature_key",
    "parse_typed_key",
    "resolve_item_signals",
    "split_context_value",
    "typed_signal_key",
    "upgrade_bundle",
]
