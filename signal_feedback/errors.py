"""Domain exceptions for the signal feedback loop.

Validation errors (bad keys, unknown actions) are kept separate from
infrastructure errors raised by weight stores so callers can decide
which ones to surface to users.
"""


class SignalFeedbackError(Exception):
    """Base exception for all signal feedback errors."""


class InvalidFeatureKeyError(SignalFeedbackError):
    """Raised when a feature key string cannot be parsed."""

    def __init__(self, key: str, reason: str = "missing type separator") -> None:
        """Initialize the error.

        Args:
            key: The offending key string.
            reason: Why the key is invalid.
        """
        self.key = key
        self.reason = reason
        super().__init__(f"Invalid feature key {key!r}: {reason}")


class InvalidSignalTypeError(SignalFeedbackError):
    """Raised when a signal type is not one of the known types."""

    def __init__(self, signal_type: str) -> None:
        """Initialize the error.

        Args:
            signal_type: The unknown signal type.
        """
        self.signal_type = signal_type
        super().__init__(f"Unknown signal type: {signal_type!r}")


class InvalidDecisionActionError(SignalFeedbackError):
    """Raised when a decision action is not recognised.

    Raised before any delta is computed so that no weight is touched.
    """

    def __init__(self, action: object) -> None:
        """Initialize the error.

        Args:
            action: The rejected action value.
        """
        self.action = action
        super().__init__(f"Unknown decision action: {action!r}")


class InvalidIgnoreReasonError(SignalFeedbackError):
    """Raised when an ignore reason type is not recognised."""

    def __init__(self, reason: object) -> None:
        """Initialize the error.

        Args:
            reason: The rejected reason value.
        """
        self.reason = reason
        super().__init__(f"Unknown ignore reason: {reason!r}")


class DictionaryValidationError(SignalFeedbackError):
    """Raised when a signal dictionary file fails validation."""

    def __init__(self, errors: list[dict[str, str]], file_path: str) -> None:
        """Initialize the error.

        Args:
            errors: List of validation error details.
            file_path: Path to the file that failed validation.
        """
        self.errors = errors
        self.file_path = file_path
        super().__init__(f"Validation failed for {file_path}: {len(errors)} errors")


class InvalidConfidenceLevelError(SignalFeedbackError):
    """Raised when a decision confidence level is not recognised."""

    def __init__(self, level: object) -> None:
        """Initialize the error.

        Args:
            level: The rejected confidence value.
        """
        self.level = level
        super().__init__(f"Unknown confidence level: {level!r}")
