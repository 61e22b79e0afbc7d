"""Feature key codec.

Canonicalizes ``(type, value)`` pairs into stable ``type:value`` strings and
parses them back. Context keys carry two full keys in their value
(``context:entity:grok|concept:undress``) and are built with
:func:`make_context_key` rather than normalized.
"""

import re

from signal_feedback.errors import InvalidFeatureKeyError
from signal_feedback.signals.constants import (
    CONTEXT_SEPARATOR,
    KEY_SEPARATOR,
    LABEL_SEPARATOR,
)
from signal_feedback.signals.models import SignalKey, SignalType


_WHITESPACE_RUN = re.compile(r"\s+")
_DISALLOWED_VALUE_CHARS = re.compile(r"[^a-z0-9_\-]")
_SUBJECT_TYPES = frozenset({SignalType.ENTITY.value, SignalType.TOOL.value})


def normalize_value(raw_value: str) -> str:
    """Normalize a raw signal value.

    Lowercases and trims, collapses internal whitespace to ``_`` and strips
    every character outside ``[a-z0-9_-]``.

    Args:
        raw_value: Value as found in content or config.

    Returns:
        Normalized value (possibly empty).
    """
    value = _WHITESPACE_RUN.sub("_", raw_value.lower().strip())
    return _DISALLOWED_VALUE_CHARS.sub("", value)


def normalize_feature_key(feature_type: str, raw_value: str) -> SignalKey:
    """Normalize a ``(type, value)`` pair into a :class:`SignalKey`.

    Total over all string input; never raises. The type goes through the
    same charset rules as the value, so it never contains the key separator
    and every produced key parses back to the same type.

    Args:
        feature_type: Signal type name, any case.
        raw_value: Raw value.

    Returns:
        Normalized signal key.
    """
    return SignalKey(
        feature_type=normalize_value(feature_type),
        value=normalize_value(raw_value),
    )


def parse_feature_key(key: str) -> SignalKey:
    """Parse a ``type:value`` string back into a :class:`SignalKey`.

    Splits on the first separator only, so context values keep their
    embedded keys intact.

    Args:
        key: Canonical key string.

    Returns:
        Parsed signal key.

    Raises:
        InvalidFeatureKeyError: If the key has no type separator.
    """
    return SignalKey.parse(key)


def parse_typed_key(signal_type: SignalType, key: str) -> SignalKey:
    """Parse a key that must belong to a given signal type.

    Args:
        signal_type: Type of the group the key was listed under.
        key: Canonical key string.

    Returns:
        Parsed signal key.

    Raises:
        InvalidFeatureKeyError: If the key does not parse or has another type.
    """
    signal = SignalKey.parse(key)
    if signal.feature_type != signal_type.value:
        raise InvalidFeatureKeyError(key, reason=f"expected a {signal_type.value} key")
    return signal


def make_context_key(subject_key: str, concept_key: str) -> str:
    """Build a context key from a subject key and a concept key.

    Args:
        subject_key: ``entity:*`` or ``tool:*`` key.
        concept_key: ``concept:*`` key.

    Returns:
        ``context:{subject_key}|{concept_key}``.
    """
    value = f"{subject_key}{CONTEXT_SEPARATOR}{concept_key}"
    return f"{SignalType.CONTEXT.value}{KEY_SEPARATOR}{value}"


def split_context_value(value: str) -> tuple[str, str]:
    """Split a context value into its subject and concept keys.

    Args:
        value: The value part of a context key.

    Returns:
        Tuple of (subject_key, concept_key).

    Raises:
        InvalidFeatureKeyError: If the value is not a subject|concept pair.
    """
    subject, sep, concept = value.partition(CONTEXT_SEPARATOR)
    if not sep or not subject or not concept:
        raise InvalidFeatureKeyError(value, reason="context needs subject|concept")
    return subject, concept


def _humanize(value: str) -> str:
    words = value.replace("_", " ").replace("-", " ").split()
    return " ".join(word.capitalize() for word in words)


def display_label(key: str) -> str:
    """Render a feature key for explanations.

    Context keys render as ``Subject · Concept``; other keys as their
    humanized value. Unparseable input is returned unchanged.

    Args:
        key: Canonical key string.

    Returns:
        Human readable label.
    """
    try:
        parsed = parse_feature_key(key)
        if parsed.feature_type != SignalType.CONTEXT.value:
            return _humanize(parsed.value)
        subject, concept = split_context_value(parsed.value)
        return (
            _humanize(parse_feature_key(subject).value)
            + LABEL_SEPARATOR
            + _humanize(parse_feature_key(concept).value)
        )
    except InvalidFeatureKeyError:
        return key


def typed_signal_key(feature_type: str, raw_value: str) -> SignalKey:
    """Normalize user-supplied type and value into a known signal key.

    Unlike :func:`normalize_feature_key` this validates the type. Context
    values are given as ``subject_key|concept_key`` and each half is
    normalized on its own.

    Args:
        feature_type: Signal type name, any case.
        raw_value: Raw value, or ``subject|concept`` for contexts.

    Returns:
        Normalized signal key.

    Raises:
        InvalidSignalTypeError: If the type is not a known signal type.
        InvalidFeatureKeyError: If a context value is malformed.
    """
    signal = normalize_feature_key(feature_type, raw_value)
    signal_type = signal.signal_type
    if signal_type is not SignalType.CONTEXT:
        return signal

    subject, concept = split_context_value(raw_value.strip())
    subject_key = parse_feature_key(subject.strip())
    concept_key = parse_feature_key(concept.strip())
    subject_signal = normalize_feature_key(subject_key.feature_type, subject_key.value)
    concept_signal = normalize_feature_key(concept_key.feature_type, concept_key.value)
    if subject_signal.feature_type not in _SUBJECT_TYPES:
        raise InvalidFeatureKeyError(raw_value, reason="subject must be entity or tool")
    if concept_signal.feature_type != SignalType.CONCEPT.value:
        raise InvalidFeatureKeyError(raw_value, reason="second half must be a concept")
    return parse_feature_key(make_context_key(subject_signal.key, concept_signal.key))
