"""Exceptions raised by weight stores.

Infrastructure failures are wrapped in :class:`WeightStoreError` so the
decision updater can skip a failed key without knowing the backend.
"""

from signal_feedback.errors import SignalFeedbackError


class WeightStoreError(SignalFeedbackError):
    """Base exception for weight store failures."""

    def __init__(self, operation: str, message: str) -> None:
        """Initialize the error.

        Args:
            operation: Store operation that failed.
            message: Human-readable error message.
        """
        self.operation = operation
        super().__init__(f"{operation} failed: {message}")


class StoreConnectionError(WeightStoreError):
    """Raised when the store is used before it is connected."""

    def __init__(self, message: str = "Database not connected") -> None:
        """Initialize the connection error.

        Args:
            message: Human-readable error message.
        """
        super().__init__("connect", message)


class MigrationError(WeightStoreError):
    """Raised when a schema migration fails."""

    def __init__(self, version: int, message: str) -> None:
        """Initialize the migration error.

        Args:
            version: The migration version that failed.
            message: Human-readable error message.
        """
        self.version = version
        super().__init__(f"migration {version}", message)
